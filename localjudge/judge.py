"""
Judging a solution against the test suite of a problem.
"""
import logging
from dataclasses import dataclass
from pathlib import Path

from . import config
from .languages import CommandSpec, Language
from .logger import get_judge_logger
from .matcher import Matched, MatchSpec, compare
from .run import limit
from .run.errors import ProgramError
from .run.interactive import InteractiveSession
from .run.program import ProcessResult
from .run.source import CommandProgram, SourceCode
from .template import TemplateContext
from .testsuite import InteractiveCase, SimpleCase, TestSuite
from .verdict import CaseResult, RunReport, SessionResult, Verdict, combine_sessions

log = logging.getLogger(__name__)


@dataclass
class JudgeOptions:
    max_excerpt_lines: int = 15


def load_judge_options(priority_dirs: list[Path] = []) -> JudgeOptions:
    """Load the judge: section of judge.yaml."""
    options = config.load_config('judge.yaml', priority_dirs).get('judge') or {}
    if not isinstance(options, dict):
        raise config.ConfigError(f'judge options must be a dictionary, but is {type(options)}')
    try:
        return JudgeOptions(**options)
    except TypeError as err:
        raise config.ConfigError(f'Invalid judge options: {err}')


def excerpt(text: str, max_lines: int) -> str:
    """The first max_lines lines of text, marked if anything was cut."""
    text = text.rstrip()
    if not text or max_lines <= 0:
        return ''
    lines = text.split('\n')
    if len(lines) > max_lines:
        lines = lines[:max_lines] + ['[.....truncated to %d lines.....]' % max_lines]
    return '\n'.join(lines)


def batch_verdict(result: ProcessResult, expected: str | None, match: MatchSpec) -> tuple[Verdict, str | None]:
    """Verdict of a batch run, and the reason for it if not obvious.

    Running out of time overrides everything else, then a nonzero exit
    status, and only then is the output compared.
    """
    if result.timed_out:
        return (Verdict.time_limit_exceeded(), None)
    if result.exit_code != 0:
        return (Verdict.runtime_error(result.exit_code), None)
    if expected is None:
        return (Verdict.accepted(), None)
    outcome = compare(expected, result.stdout, match)
    if isinstance(outcome, Matched):
        return (Verdict.accepted(), None)
    return (Verdict.wrong_answer(), outcome.description)


class Judge:
    """Runs one solution on every test case of a suite.

    All templates are resolved when the Judge is constructed, so a
    TemplateError surfaces before anything is run.
    """

    def __init__(self, suite: TestSuite, language: Language, context: TemplateContext,
                 base_dir: str = '.', options: JudgeOptions | None = None) -> None:
        self.suite = suite
        self.options = options if options is not None else JudgeOptions()
        self.log = get_judge_logger(suite.problem)
        self.solution = SourceCode(language, context, base_dir)
        self.testers: dict[CommandSpec, CommandProgram] = {}
        for case in suite:
            if isinstance(case, InteractiveCase) and case.tester not in self.testers:
                self.testers[case.tester] = CommandProgram(case.tester, context, base_dir)

    def _excerpt(self, text: str) -> str:
        return excerpt(text, self.options.max_excerpt_lines)

    def compile(self) -> str | None:
        """Compile the solution and every tester.

        Returns:
            None if everything compiled, otherwise an excerpt of the
            compiler output of the first failure.
        """
        for program in [self.solution, *self.testers.values()]:
            (success, msg) = program.compile()
            if not success:
                self.log.error('Compile error for %s:\n%s', program, self._excerpt(msg or ''))
                return self._excerpt(msg or '')
        return None

    def run(self) -> RunReport:
        limit.check_limit_capabilities(log)
        report = RunReport(self.suite.problem)

        failure = self.compile()
        if failure is not None:
            for case in self.suite:
                report.append(CaseResult(case.case_id, Verdict.compile_error(), 0.0, stderr_excerpt=failure))
            return report

        for case in self.suite:
            if isinstance(case, SimpleCase):
                result = self._judge_simple(case)
            else:
                result = self._judge_interactive(case)
            if result.verdict.is_accepted:
                self.log.info('%s', result)
            elif result.stderr_excerpt:
                self.log.warning('%s\n%s', result, result.stderr_excerpt)
            else:
                self.log.warning('%s', result)
            report.append(result)

        self.log.info('%s', report)
        return report

    def _judge_simple(self, case: SimpleCase) -> CaseResult:
        try:
            result = self.solution.run(case.input, case.timelimit)
        except ProgramError as err:
            return CaseResult(case.case_id, Verdict.io_error(), 0.0, reason=str(err))
        (verdict, reason) = batch_verdict(result, case.expected_output, case.match)
        return CaseResult(case.case_id, verdict, result.elapsed,
                          stdout_excerpt=self._excerpt(result.stdout),
                          stderr_excerpt=self._excerpt(result.stderr),
                          reason=reason)

    def _judge_interactive(self, case: InteractiveCase) -> CaseResult:
        tester = self.testers[case.tester]
        sessions: list[SessionResult] = []
        # Every session runs, even after a failure, for the diagnostics
        for args in case.sessions():
            try:
                sessions.append(InteractiveSession(self.solution, tester, args, case.timelimit).run())
            except ProgramError as err:
                sessions.append(SessionResult(args, Verdict.io_error(), 0.0, reason=str(err)))

        verdict = combine_sessions(sessions)
        shown = next((s for s in sessions if not s.verdict.is_accepted), sessions[-1])
        reason = shown.reason
        if reason is None and not verdict.is_accepted and shown.args:
            reason = 'arguments: %s' % ' '.join(shown.args)
        return CaseResult(case.case_id, verdict, max(s.elapsed for s in sessions),
                          stdout_excerpt=self._excerpt(shown.tester_stderr),
                          stderr_excerpt=self._excerpt(shown.solution_stderr),
                          reason=reason,
                          sessions=tuple(sessions))


def judge(suite: TestSuite, language: Language, context: TemplateContext,
          base_dir: str = '.', options: JudgeOptions | None = None) -> RunReport:
    """Judge a solution on a test suite.

    Raises:
        TemplateError: if some command or path template cannot be resolved.
    """
    return Judge(suite, language, context, base_dir, options).run()
