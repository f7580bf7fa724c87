"""
Comparison of expected and actual program output.

Three policies are supported: exact comparison, line-wise comparison
forgiving trailing whitespace, and token-wise comparison with a floating
point tolerance.  compare() never raises; it always classifies.
"""
import math
import re
from dataclasses import dataclass


@dataclass(frozen=True)
class ExactMatch:
    pass


@dataclass(frozen=True)
class LinesMatch:
    pass


@dataclass(frozen=True)
class FloatMatch:
    absolute_error: float = 0.0
    relative_error: float = 0.0

    def __post_init__(self) -> None:
        for name in ('absolute_error', 'relative_error'):
            value = getattr(self, name)
            if not math.isfinite(value) or value < 0:
                raise ValueError(f'{name} must be a non-negative number, got {value}')


MatchSpec = ExactMatch | LinesMatch | FloatMatch


@dataclass(frozen=True)
class Matched:
    def __str__(self) -> str:
        return 'matched'


@dataclass(frozen=True)
class Mismatched:
    description: str

    def __str__(self) -> str:
        return self.description


MatchResult = Matched | Mismatched


_NUMBER_RE = re.compile(r'[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?')


def _lines(text: str) -> list[str]:
    """Split text into lines; a final newline does not start a new line."""
    if text.endswith('\n'):
        text = text[:-1]
    return text.split('\n')


def _shorten(text: str, limit: int = 60) -> str:
    return repr(text if len(text) <= limit else text[:limit] + '...')


def _first_line_difference(expected: list[str], actual: list[str]) -> str:
    for lineno, (exp, act) in enumerate(zip(expected, actual), start=1):
        if exp != act:
            return f'line {lineno}: expected {_shorten(exp)}, got {_shorten(act)}'
    return f'expected {len(expected)} lines, got {len(actual)}'


def _compare_exact(expected: str, actual: str) -> MatchResult:
    if not expected.endswith('\n'):
        expected += '\n'
    if not actual.endswith('\n'):
        actual += '\n'
    if expected == actual:
        return Matched()
    return Mismatched(_first_line_difference(_lines(expected), _lines(actual)))


def _compare_lines(expected: str, actual: str) -> MatchResult:
    exp_lines = [line.rstrip() for line in _lines(expected)]
    act_lines = [line.rstrip() for line in _lines(actual)]
    if len(exp_lines) != len(act_lines):
        return Mismatched(f'expected {len(exp_lines)} lines, got {len(act_lines)}')
    if exp_lines != act_lines:
        return Mismatched(_first_line_difference(exp_lines, act_lines))
    return Matched()


def _parse_number(token: str) -> float | None:
    if _NUMBER_RE.fullmatch(token) is None:
        return None
    value = float(token)
    # Literals such as 1e999 overflow to infinity, compare those as text
    return value if math.isfinite(value) else None


def _tokens_match(expected: str, actual: str, spec: FloatMatch) -> bool:
    exp_val = _parse_number(expected)
    act_val = _parse_number(actual)
    if exp_val is None or act_val is None:
        return expected == actual
    diff = abs(exp_val - act_val)
    # Relative error is taken with respect to the expected value
    return diff <= spec.absolute_error or diff <= spec.relative_error * abs(exp_val)


def _compare_float(expected: str, actual: str, spec: FloatMatch) -> MatchResult:
    exp_lines = [line.split() for line in _lines(expected)]
    act_lines = [line.split() for line in _lines(actual)]
    if len(exp_lines) != len(act_lines):
        return Mismatched(f'expected {len(exp_lines)} lines, got {len(act_lines)}')
    for lineno, (exp_tokens, act_tokens) in enumerate(zip(exp_lines, act_lines), start=1):
        if len(exp_tokens) != len(act_tokens):
            return Mismatched(f'line {lineno}: expected {len(exp_tokens)} tokens, got {len(act_tokens)}')
        for index, (exp, act) in enumerate(zip(exp_tokens, act_tokens), start=1):
            if not _tokens_match(exp, act, spec):
                return Mismatched(f'line {lineno}, token {index}: expected {_shorten(exp)}, got {_shorten(act)}')
    return Matched()


def compare(expected: str, actual: str, spec: MatchSpec) -> MatchResult:
    """Compare program output against the expected output.

    Args:
        expected (str): the expected output
        actual (str): the output produced by the program
        spec (MatchSpec): how to compare

    Returns:
        Matched(), or Mismatched with a description of the first difference.
    """
    if isinstance(spec, FloatMatch):
        return _compare_float(expected, actual, spec)
    if isinstance(spec, LinesMatch):
        return _compare_lines(expected, actual)
    return _compare_exact(expected, actual)
