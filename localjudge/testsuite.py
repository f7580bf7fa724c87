"""
The in-memory model of the test cases of a problem.

Test suites come out of already parsed markup (a dict per suite file) and
are checked through pydantic models before being turned into the immutable
case objects used for judging.  A suite file looks like

    type: simple
    timelimit: 2
    match: {float: {absolute_error: 1e-9, relative_error: 1e-9}}
    cases:
      - in: "1 2\\n"
        out: "3\\n"

or

    type: interactive
    timelimit: 2
    tester: python3
    each_args: [["1"], ["2"]]
"""
from dataclasses import dataclass, field
from typing import Annotated, Any, Iterable, Iterator, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, PositiveFloat, TypeAdapter, ValidationError

from .languages import CommandSpec, LanguageConfigError
from .matcher import ExactMatch, FloatMatch, LinesMatch, MatchSpec


class SuiteError(Exception):
    pass


def _check_timelimit(case_id: str, timelimit: float | None) -> None:
    if timelimit is not None and not timelimit > 0:
        raise SuiteError(f'{case_id}: timelimit must be positive, got {timelimit}')


@dataclass(frozen=True)
class SimpleCase:
    case_id: str
    input: str
    expected_output: str | None = None
    timelimit: float | None = None
    match: MatchSpec = field(default_factory=ExactMatch)

    def __post_init__(self) -> None:
        _check_timelimit(self.case_id, self.timelimit)

    def __str__(self) -> str:
        return f'test case {self.case_id}'


@dataclass(frozen=True)
class InteractiveCase:
    case_id: str
    tester: CommandSpec
    each_args: tuple[tuple[str, ...], ...] = ()
    timelimit: float | None = None

    def __post_init__(self) -> None:
        _check_timelimit(self.case_id, self.timelimit)
        # Copy into fresh tuples so no two sessions share an argument list
        object.__setattr__(self, 'each_args', tuple(tuple(args) for args in self.each_args))

    def sessions(self) -> tuple[tuple[str, ...], ...]:
        """Argument sets to run, one session each."""
        return self.each_args if self.each_args else ((),)

    def __str__(self) -> str:
        return f'interactive test case {self.case_id}'


TestCase = SimpleCase | InteractiveCase


# ---------------------------------------------------------------------------
# Schema of suite files
# ---------------------------------------------------------------------------


Tolerance = Annotated[float, Field(ge=0, allow_inf_nan=False)]


class FloatTolerance(BaseModel):
    absolute_error: Tolerance = 0.0
    relative_error: Tolerance = 0.0

    model_config = ConfigDict(extra='forbid')


class FloatMatchSchema(BaseModel):
    float_: FloatTolerance = Field(alias='float')

    model_config = ConfigDict(extra='forbid')


class CaseSchema(BaseModel):
    in_: str = Field(alias='in')
    out: str | None = None

    model_config = ConfigDict(extra='forbid')


class SimpleSuiteSchema(BaseModel):
    type: Literal['simple']
    timelimit: PositiveFloat | None = None
    match: Literal['exact', 'lines'] | FloatMatchSchema = 'exact'
    cases: list[CaseSchema] = []

    model_config = ConfigDict(extra='forbid')

    def match_spec(self) -> MatchSpec:
        if isinstance(self.match, FloatMatchSchema):
            return FloatMatch(self.match.float_.absolute_error, self.match.float_.relative_error)
        return LinesMatch() if self.match == 'lines' else ExactMatch()


class InteractiveSuiteSchema(BaseModel):
    type: Literal['interactive']
    timelimit: PositiveFloat | None = None
    tester: str | dict[str, Any]
    each_args: list[list[str]] = []

    model_config = ConfigDict(extra='forbid')


_SUITE_SCHEMA: TypeAdapter = TypeAdapter(
    Annotated[Union[SimpleSuiteSchema, InteractiveSuiteSchema], Field(discriminator='type')]
)


def _tester(schema: InteractiveSuiteSchema, testers: Mapping[str, CommandSpec], filename: str) -> CommandSpec:
    if isinstance(schema.tester, str):
        if schema.tester not in testers:
            raise SuiteError(f'{filename}: no tester called "{schema.tester}"')
        return testers[schema.tester]
    try:
        return CommandSpec.from_dict(schema.tester, f'{filename}: tester')
    except LanguageConfigError as err:
        raise SuiteError(str(err))


class TestSuite:
    """The test cases of one problem, in a fixed order.

    A TestSuite is not modified once constructed.
    """

    # Not a collection of pytest tests
    __test__ = False

    def __init__(self, problem: str, cases: Iterable[TestCase]) -> None:
        self._problem = problem
        self._cases: tuple[TestCase, ...] = tuple(cases)
        seen = set()
        for case in self._cases:
            if case.case_id in seen:
                raise SuiteError(f'Duplicate test case id "{case.case_id}" in problem {problem}')
            seen.add(case.case_id)

    @property
    def problem(self) -> str:
        return self._problem

    @property
    def cases(self) -> tuple[TestCase, ...]:
        return self._cases

    def __iter__(self) -> Iterator[TestCase]:
        return iter(self._cases)

    def __len__(self) -> int:
        return len(self._cases)

    def get(self, case_id: str) -> TestCase | None:
        return next((case for case in self._cases if case.case_id == case_id), None)

    def is_simple(self) -> bool:
        return all(isinstance(case, SimpleCase) for case in self._cases)

    def is_interactive(self) -> bool:
        return all(isinstance(case, InteractiveCase) for case in self._cases)

    def __str__(self) -> str:
        return f'test suite of {self._problem} ({len(self)} test cases)'

    @classmethod
    def from_dict(cls, problem: str, data: Any, filename: str,
                  testers: Mapping[str, CommandSpec] | None = None) -> 'TestSuite':
        """Build a suite from the parsed content of a suite file.

        Args:
            problem (str): name of the problem
            data (dict): parsed suite file content
            filename (str): name of the suite file, used in case ids
            testers (dict): tester commands by name, for suites naming
                their tester instead of spelling out its command

        Raises:
            SuiteError: if the data does not describe a valid suite.
        """
        try:
            schema = _SUITE_SCHEMA.validate_python(data)
        except ValidationError as err:
            raise SuiteError(f'{filename}: invalid test suite:\n{err}')

        if isinstance(schema, SimpleSuiteSchema):
            match = schema.match_spec()
            cases: list[TestCase] = [
                SimpleCase(
                    case_id=f'{filename}[{i}]',
                    input=case.in_,
                    expected_output=case.out,
                    timelimit=schema.timelimit,
                    match=match,
                )
                for i, case in enumerate(schema.cases)
            ]
        else:
            cases = [
                InteractiveCase(
                    case_id=filename,
                    tester=_tester(schema, testers or {}, filename),
                    each_args=tuple(tuple(args) for args in schema.each_args),
                    timelimit=schema.timelimit,
                )
            ]
        return cls(problem, cases)

    @classmethod
    def merge(cls, problem: str, suites: Iterable['TestSuite']) -> 'TestSuite':
        """Combine the suites of one problem (e.g. from several files) into one."""
        cases: list[TestCase] = []
        for suite in suites:
            cases.extend(suite)
        if any(isinstance(case, SimpleCase) for case in cases) and \
           any(isinstance(case, InteractiveCase) for case in cases):
            raise SuiteError(f'Problem {problem} mixes simple and interactive test suites')
        return cls(problem, cases)
