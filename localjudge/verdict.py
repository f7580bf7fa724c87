"""
Verdicts for test cases and the report collecting them for one judging run.
"""
import collections
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterable, Iterator


class VerdictKind(StrEnum):
    ACCEPTED = 'AC'
    WRONG_ANSWER = 'WA'
    RUNTIME_ERROR = 'RTE'
    TIME_LIMIT_EXCEEDED = 'TLE'
    COMPILE_ERROR = 'CE'
    IO_ERROR = 'IE'


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    exit_code: int | None = None

    @classmethod
    def accepted(cls) -> 'Verdict':
        return cls(VerdictKind.ACCEPTED)

    @classmethod
    def wrong_answer(cls) -> 'Verdict':
        return cls(VerdictKind.WRONG_ANSWER)

    @classmethod
    def runtime_error(cls, exit_code: int) -> 'Verdict':
        return cls(VerdictKind.RUNTIME_ERROR, exit_code)

    @classmethod
    def time_limit_exceeded(cls) -> 'Verdict':
        return cls(VerdictKind.TIME_LIMIT_EXCEEDED)

    @classmethod
    def compile_error(cls) -> 'Verdict':
        return cls(VerdictKind.COMPILE_ERROR)

    @classmethod
    def io_error(cls) -> 'Verdict':
        return cls(VerdictKind.IO_ERROR)

    @property
    def is_accepted(self) -> bool:
        return self.kind is VerdictKind.ACCEPTED

    def __str__(self) -> str:
        if self.kind is VerdictKind.RUNTIME_ERROR and self.exit_code is not None:
            return f'{self.kind} (exit code {self.exit_code})'
        return str(self.kind)


@dataclass(frozen=True)
class SessionResult:
    """Outcome of one interactive session, i.e. one argument set."""
    args: tuple[str, ...]
    verdict: Verdict
    elapsed: float
    solution_exit: int | None = None
    tester_exit: int | None = None
    solution_stderr: str = ''
    tester_stderr: str = ''
    reason: str | None = None


@dataclass(frozen=True)
class CaseResult:
    case_id: str
    verdict: Verdict
    elapsed: float
    stdout_excerpt: str = ''
    stderr_excerpt: str = ''
    reason: str | None = None
    sessions: tuple[SessionResult, ...] = ()

    def __str__(self) -> str:
        details = [f'{self.elapsed:.2f}s']
        if self.reason is not None:
            details.append(self.reason)
        return f'{self.case_id}: {self.verdict} [{", ".join(details)}]'


def combine_sessions(results: Iterable[SessionResult]) -> Verdict:
    """Verdict of an interactive case from the verdicts of its sessions.

    Accepted if every session was accepted, otherwise the first verdict
    that was not, in execution order.
    """
    for result in results:
        if not result.verdict.is_accepted:
            return result.verdict
    return Verdict.accepted()


class RunReport:
    """The results of one judging run, one entry per test case in suite order."""

    def __init__(self, problem: str) -> None:
        self.problem = problem
        self._entries: list[CaseResult] = []

    def append(self, result: CaseResult) -> None:
        self._entries.append(result)

    def __iter__(self) -> Iterator[CaseResult]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> CaseResult:
        return self._entries[index]

    def verdicts(self) -> list[Verdict]:
        return [entry.verdict for entry in self._entries]

    def all_accepted(self) -> bool:
        return all(entry.verdict.is_accepted for entry in self._entries)

    def failures(self) -> list[CaseResult]:
        return [entry for entry in self._entries if not entry.verdict.is_accepted]

    def counts(self) -> collections.Counter:
        return collections.Counter(entry.verdict.kind for entry in self._entries)

    def __str__(self) -> str:
        failed = len(self.failures())
        if failed == 0:
            return f'{self.problem}: all {len(self)} test cases passed'
        return f'{self.problem}: {failed}/{len(self)} test cases failed'
