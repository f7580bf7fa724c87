# -*- coding: utf-8 -*-
from unittest import TestCase
import sys
import textwrap
import pytest

from localjudge import judge as judge_module
from localjudge.judge import Judge, JudgeOptions, batch_verdict, excerpt, judge
from localjudge.languages import CommandSpec, Language
from localjudge.matcher import ExactMatch, FloatMatch, LinesMatch
from localjudge.run import Program
from localjudge.run.program import ProcessResult
from localjudge.template import TemplateContext, TemplateError
from localjudge.testsuite import InteractiveCase, SimpleCase, TestSuite
from localjudge.verdict import Verdict, VerdictKind


SCENARIO_INPUT = '1\n2 3\ntest\n'

SUM = '''
import sys
a = int(sys.stdin.readline())
b, c = map(int, sys.stdin.readline().split())
s = sys.stdin.readline().strip()
print('%d%s%s' % (a + b + c, SEPARATOR, s))
'''

COMPILER = '''
import shutil
import sys

src, dst = sys.argv[1:]
with open(src) as f:
    text = f.read()
if 'COMPILE ERROR' in text:
    print('error: bad source', file=sys.stderr)
    sys.exit(1)
shutil.copy(src, dst)
'''

TESTER = '''
import sys

n = int(sys.argv[1])
print(n, flush=True)
answer = sys.stdin.readline()
if answer.strip() != str(2 * n):
    print('expected %d, got %r' % (2 * n, answer), file=sys.stderr)
    sys.exit(1)
'''

# Gets 2 wrong
DOUBLER = '''
import sys
n = int(sys.stdin.readline())
print(2 * n if n != 2 else 0, flush=True)
'''


def write(path, code):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(code).lstrip('\n'))
    return str(path)


def context(problem):
    return TemplateContext(problem=problem, variables={}, env={})


def python_language():
    return Language('python3', {
        'name': 'Python 3',
        'src': 'py/{snake}.py',
        'run': {'command': [sys.executable, '$src'], 'working_directory': 'py/'},
    })


def compiled_language(compiler):
    return Language('compiled', {
        'src': 'src/{kebab}.py',
        'compile': {'command': [sys.executable, compiler, '$src', '$bin'], 'bin': 'build/{kebab}.py'},
        'run': {'command': [sys.executable, '$bin']},
    })


def sum_solution(tmp_path, problem='scenario_a', separator=' '):
    return write(tmp_path / 'py' / (problem + '.py'), SUM.replace('SEPARATOR', repr(separator)))


def scenario_case(case_id='sample[0]', match=ExactMatch(), timelimit=10.0):
    return SimpleCase(case_id, SCENARIO_INPUT, '6 test', timelimit, match)


def fail_if_run(*args, **kwargs):
    raise AssertionError('no program may run')


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class Excerpt_test(TestCase):
    def test_short(self):
        assert excerpt('a\nb\n', 15) == 'a\nb'
        assert excerpt('', 15) == ''
        assert excerpt('  \n\n', 15) == ''

    def test_truncated(self):
        text = '\n'.join(str(i) for i in range(20))
        assert excerpt(text, 3) == '0\n1\n2\n[.....truncated to 3 lines.....]'
        assert excerpt(text, 0) == ''


class BatchVerdict_test(TestCase):
    @staticmethod
    def result(stdout='6 test\n', exit_code=0, timed_out=False):
        return ProcessResult(stdout, '', exit_code, 0.1, timed_out)

    def test_accepted(self):
        assert batch_verdict(self.result(), '6 test', ExactMatch()) == (Verdict.accepted(), None)
        assert batch_verdict(self.result('anything'), None, ExactMatch()) == (Verdict.accepted(), None)

    def test_wrong_answer(self):
        (verdict, reason) = batch_verdict(self.result('6  test\n'), '6 test', ExactMatch())
        assert verdict == Verdict.wrong_answer()
        assert reason.startswith('line 1')

    def test_runtime_error(self):
        assert batch_verdict(self.result(exit_code=1), '6 test', ExactMatch())[0] == Verdict.runtime_error(1)
        assert batch_verdict(self.result(exit_code=-11), None, ExactMatch())[0] == Verdict.runtime_error(-11)

    def test_timeout_overrides(self):
        assert batch_verdict(self.result(timed_out=True), '6 test', ExactMatch())[0] == Verdict.time_limit_exceeded()
        assert batch_verdict(self.result(exit_code=1, timed_out=True), None, ExactMatch())[0] == \
            Verdict.time_limit_exceeded()


# ---------------------------------------------------------------------------
# Simple cases
# ---------------------------------------------------------------------------


def test_scenario_a_accepted(tmp_path):
    sum_solution(tmp_path)
    suite = TestSuite('scenario_a', [scenario_case()])
    report = judge(suite, python_language(), context('scenario_a'), str(tmp_path))
    assert report.verdicts() == [Verdict.accepted()]
    assert report[0].case_id == 'sample[0]'
    assert report[0].stdout_excerpt == '6 test'
    assert report.all_accepted()


def test_scenario_a_double_space(tmp_path):
    sum_solution(tmp_path, separator='  ')
    suite = TestSuite('scenario_a', [
        scenario_case('exact', ExactMatch()),
        scenario_case('lines', LinesMatch()),
    ])
    report = judge(suite, python_language(), context('scenario_a'), str(tmp_path))
    assert report.verdicts() == [Verdict.wrong_answer(), Verdict.wrong_answer()]
    assert report[0].reason is not None


def test_float_match(tmp_path):
    write(tmp_path / 'py' / 'pi.py', '''
        print(3.14159)
    ''')
    suite = TestSuite('pi', [
        SimpleCase('close', '', '3.1416', 10.0, FloatMatch(absolute_error=1e-3)),
        SimpleCase('far', '', '3.2', 10.0, FloatMatch(absolute_error=1e-3)),
    ])
    report = judge(suite, python_language(), context('pi'), str(tmp_path))
    assert report.verdicts() == [Verdict.accepted(), Verdict.wrong_answer()]


def test_timelimit_overrides_correct_output(tmp_path):
    write(tmp_path / 'py' / 'slow.py', '''
        import time
        print('6 test', flush=True)
        time.sleep(30)
    ''')
    suite = TestSuite('slow', [scenario_case(timelimit=1.0)])
    report = judge(suite, python_language(), context('slow'), str(tmp_path))
    assert report.verdicts() == [Verdict.time_limit_exceeded()]
    assert report[0].stdout_excerpt == '6 test'


def test_runtime_error_and_remaining_cases(tmp_path):
    write(tmp_path / 'py' / 'picky.py', '''
        import sys
        line = sys.stdin.read()
        if line.startswith('crash'):
            print('crashing', file=sys.stderr)
            sys.exit(2)
        print(line.strip())
    ''')
    suite = TestSuite('picky', [
        SimpleCase('0', 'crash\n', 'crash'),
        SimpleCase('1', 'hello\n', 'hello'),
        SimpleCase('2', 'hello\n', 'goodbye'),
        SimpleCase('3', 'no expected output\n'),
    ])
    report = judge(suite, python_language(), context('picky'), str(tmp_path))
    assert [entry.case_id for entry in report] == ['0', '1', '2', '3']
    assert report.verdicts() == [Verdict.runtime_error(2), Verdict.accepted(),
                                 Verdict.wrong_answer(), Verdict.accepted()]
    assert report[0].stderr_excerpt == 'crashing'
    assert report.counts()[VerdictKind.ACCEPTED] == 2
    assert [entry.case_id for entry in report.failures()] == ['0', '2']


def test_excerpt_length(tmp_path):
    write(tmp_path / 'py' / 'chatty.py', '''
        for i in range(100):
            print(i)
    ''')
    suite = TestSuite('chatty', [SimpleCase('0', '')])
    report = judge(suite, python_language(), context('chatty'), str(tmp_path), JudgeOptions(max_excerpt_lines=2))
    assert report[0].stdout_excerpt == '0\n1\n[.....truncated to 2 lines.....]'


def test_io_error(tmp_path):
    language = Language('missing', {'src': 'x', 'run': {'command': [str(tmp_path / 'no-such-binary')]}})
    suite = TestSuite('io', [SimpleCase('0', ''), SimpleCase('1', '')])
    report = judge(suite, language, context('io'), str(tmp_path))
    assert report.verdicts() == [Verdict.io_error(), Verdict.io_error()]
    assert 'no-such-binary' in report[0].reason


def test_template_error_is_fatal(tmp_path):
    language = Language('broken', {'src': 'x', 'run': {'command': 'run $UNDEFINED'}})
    suite = TestSuite('broken', [SimpleCase('0', '')])
    with pytest.raises(TemplateError):
        Judge(suite, language, context('broken'), str(tmp_path))


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------


def test_compiled_language(tmp_path):
    compiler = write(tmp_path / 'compiler.py', COMPILER)
    write(tmp_path / 'src' / 'scenario-a.py', SUM.replace('SEPARATOR', repr(' ')))
    suite = TestSuite('Scenario A', [scenario_case('0'), scenario_case('1')])
    report = judge(suite, compiled_language(compiler), context('Scenario A'), str(tmp_path))
    assert report.verdicts() == [Verdict.accepted(), Verdict.accepted()]
    assert (tmp_path / 'build' / 'scenario-a.py').is_file()


def test_scenario_b_compile_error(tmp_path, monkeypatch):
    compiler = write(tmp_path / 'compiler.py', COMPILER)
    write(tmp_path / 'src' / 'scenario-b.py', 'COMPILE ERROR')
    monkeypatch.setattr(Program, 'run', fail_if_run)
    monkeypatch.setattr(judge_module, 'InteractiveSession', fail_if_run)

    suite = TestSuite('Scenario B', [scenario_case('0'), scenario_case('1'), scenario_case('2')])
    the_judge = Judge(suite, compiled_language(compiler), context('Scenario B'), str(tmp_path))
    errors_before = the_judge.log.count.errors
    report = the_judge.run()

    assert len(report) == 3
    assert report.verdicts() == [Verdict.compile_error()] * 3
    assert all('error: bad source' in entry.stderr_excerpt for entry in report)
    assert the_judge.log.count.errors == errors_before + 1


# ---------------------------------------------------------------------------
# Interactive cases
# ---------------------------------------------------------------------------


def interactive_suite(tmp_path, problem, each_args, tester=None, timelimit=10.0):
    if tester is None:
        tester = CommandSpec.parse([sys.executable, write(tmp_path / 'tester.py', TESTER)])
    return TestSuite(problem, [InteractiveCase('interactive.yml', tester, each_args, timelimit)])


def test_interactive_all_sessions_accepted(tmp_path):
    write(tmp_path / 'py' / 'doubler.py', DOUBLER)
    suite = interactive_suite(tmp_path, 'doubler', [['1'], ['3'], ['4']])
    report = judge(suite, python_language(), context('doubler'), str(tmp_path))
    assert report.verdicts() == [Verdict.accepted()]
    entry = report[0]
    assert len(entry.sessions) == 3
    assert [session.args for session in entry.sessions] == [('1',), ('3',), ('4',)]
    assert entry.elapsed == max(session.elapsed for session in entry.sessions)


def test_interactive_first_failure_wins(tmp_path):
    write(tmp_path / 'py' / 'doubler.py', DOUBLER)
    suite = interactive_suite(tmp_path, 'doubler', [['1'], ['2'], ['3']])
    report = judge(suite, python_language(), context('doubler'), str(tmp_path))
    entry = report[0]
    assert entry.verdict == Verdict.wrong_answer()
    # Sessions after the failing one still run
    assert [session.verdict for session in entry.sessions] == \
        [Verdict.accepted(), Verdict.wrong_answer(), Verdict.accepted()]
    assert entry.reason == 'arguments: 2'
    assert 'expected 4' in entry.stdout_excerpt


def test_interactive_without_args(tmp_path):
    write(tmp_path / 'py' / 'constant.py', '''
        import sys
        sys.stdin.readline()
    ''')
    tester = CommandSpec.parse([sys.executable, write(tmp_path / 'tester.py', '''
        import sys
        assert sys.argv[1:] == []
        print('hi', flush=True)
    ''')])
    suite = interactive_suite(tmp_path, 'constant', [], tester)
    report = judge(suite, python_language(), context('constant'), str(tmp_path))
    assert report.verdicts() == [Verdict.accepted()]
    assert [session.args for session in report[0].sessions] == [()]


def test_interactive_missing_tester(tmp_path):
    write(tmp_path / 'py' / 'doubler.py', DOUBLER)
    tester = CommandSpec.parse([str(tmp_path / 'no-such-tester')])
    suite = interactive_suite(tmp_path, 'doubler', [['1'], ['2']], tester)
    report = judge(suite, python_language(), context('doubler'), str(tmp_path))
    entry = report[0]
    assert entry.verdict == Verdict.io_error()
    assert len(entry.sessions) == 2
    assert 'no-such-tester' in entry.reason


def test_tester_compile_error(tmp_path, monkeypatch):
    compiler = write(tmp_path / 'compiler.py', COMPILER)
    write(tmp_path / 'tester.py', 'COMPILE ERROR')
    write(tmp_path / 'py' / 'doubler.py', DOUBLER)
    monkeypatch.setattr(judge_module, 'InteractiveSession', fail_if_run)
    tester = CommandSpec.from_dict({
        'command': [sys.executable, '$bin'],
        'compile': {'command': [sys.executable, compiler, '$src', '$bin'],
                    'bin': 'build/tester.py', 'src': 'tester.py'},
    })
    suite = interactive_suite(tmp_path, 'doubler', [['1']], tester)
    report = judge(suite, python_language(), context('doubler'), str(tmp_path))
    assert report.verdicts() == [Verdict.compile_error()]


def test_logging(tmp_path, caplog):
    sum_solution(tmp_path, 'logged')
    suite = TestSuite('logged', [scenario_case('good'), SimpleCase('bad', SCENARIO_INPUT, 'nope', 10.0)])
    the_judge = Judge(suite, python_language(), context('logged'), str(tmp_path))
    warnings_before = the_judge.log.count.warnings
    with caplog.at_level('INFO', logger='localjudge'):
        the_judge.run()
    assert the_judge.log.count.warnings == warnings_before + 1
    messages = [record.getMessage() for record in caplog.records if record.name == 'localjudge.problem.logged']
    assert any(message.startswith('good: AC') for message in messages)
    assert any(message.startswith('bad: WA') for message in messages)
