"""
Expansion of placeholder templates into paths and command lines.

A template is plain text with two kinds of placeholders:

  {tag}     the problem name, converted by a case conversion (see
            CaseConversion).  "{}" is the same as "{lower}".
  $name     a variable: $src, $bin, $* and $1..$9 for the session
            arguments, a service variable, or an environment variable.
            "$$" is a literal dollar sign.

For example, with the problem name "Problem Name", the template
"cc/{kebab}.cc" resolves to "cc/problem-name.cc" and "g++ -o $bin $src"
resolves to the compile command once $src and $bin have been bound.
"""
import os
import re
import shlex
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Callable, Iterator, Mapping, Sequence


class TemplateError(Exception):
    """Exception class for malformed or unresolvable templates."""
    pass


class CaseConversion(StrEnum):
    LOWER = 'lower'
    UPPER = 'UPPER'
    KEBAB = 'kebab'
    SNAKE = 'snake'
    SCREAMING = 'SCREAMING'
    MIXED = 'mixed'
    PASCAL = 'Pascal'
    TITLE = 'Title'


_CHUNK_RE = re.compile(r'[^\W_]+')


def _is_boundary(chunk: str, i: int) -> bool:
    prev, cur = chunk[i - 1], chunk[i]
    if prev.isdigit():
        return cur.isalpha()
    if not cur.isupper():
        return False
    # "abcDef" and "ABCDef" both split before the "D"
    return prev.islower() or (prev.isupper() and i + 1 < len(chunk) and chunk[i + 1].islower())


def _words(name: str) -> list[str]:
    """Split a name into words, on non-alphanumerics and case boundaries.

    Letters without case (e.g. CJK) never start a new word.
    """
    words = []
    for chunk in _CHUNK_RE.findall(name):
        start = 0
        for i in range(1, len(chunk)):
            if _is_boundary(chunk, i):
                words.append(chunk[start:i])
                start = i
        words.append(chunk[start:])
    return words


def _mixed(name: str) -> str:
    words = _words(name)
    if not words:
        return ''
    return words[0].lower() + ''.join(w.capitalize() for w in words[1:])


_CONVERSIONS: dict[CaseConversion, Callable[[str], str]] = {
    CaseConversion.LOWER: str.lower,
    CaseConversion.UPPER: str.upper,
    CaseConversion.KEBAB: lambda name: '-'.join(w.lower() for w in _words(name)),
    CaseConversion.SNAKE: lambda name: '_'.join(w.lower() for w in _words(name)),
    CaseConversion.SCREAMING: lambda name: '_'.join(w.upper() for w in _words(name)),
    CaseConversion.MIXED: _mixed,
    CaseConversion.PASCAL: lambda name: ''.join(w.capitalize() for w in _words(name)),
    CaseConversion.TITLE: lambda name: ' '.join(w.capitalize() for w in _words(name)),
}

assert set(_CONVERSIONS) == set(CaseConversion), 'every case conversion needs an implementation'


def convert_case(name: str, conversion: CaseConversion) -> str:
    return _CONVERSIONS[conversion](name)


@dataclass(frozen=True)
class TemplateContext:
    """Everything a template may refer to.

    Attributes:
        problem (str): the raw problem name, source of all {tag} placeholders
        variables (Mapping): user-defined service variables
        env (Mapping): environment variables, consulted after variables
        src (str): value of $src, or None while not yet known
        bin (str): value of $bin, or None while not yet known
        arguments (tuple of str): session arguments, bound to $* and $1..$9
    """
    problem: str
    variables: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)
    src: str | None = None
    bin: str | None = None
    arguments: tuple[str, ...] = ()

    @classmethod
    def from_environ(cls, problem: str, variables: Mapping[str, str] | None = None) -> 'TemplateContext':
        return cls(problem=problem, variables=dict(variables or {}), env=dict(os.environ))

    def bind(self, **bindings) -> 'TemplateContext':
        if 'arguments' in bindings:
            bindings['arguments'] = tuple(bindings['arguments'])
        return replace(self, **bindings)


_PLACEHOLDER_RE = re.compile(
    r'\$(?P<dollar>\$)'
    r'|\$(?P<star>\*)'
    r'|\$(?P<positional>[0-9])'
    r'|\$(?P<variable>[A-Za-z_][A-Za-z0-9_]*)'
    r'|(?P<bad_dollar>\$)'
    r'|\{(?P<tag>[^{}]*)\}'
    r'|(?P<bad_brace>[{}])'
)


def _scan(template: str) -> Iterator[tuple[str, str]]:
    """Tokenize a template into (kind, value) pairs.

    kind is one of 'text', 'dollar', 'star', 'positional', 'variable'
    and 'tag'.
    """
    pos = 0
    for match in _PLACEHOLDER_RE.finditer(template):
        if match.start() > pos:
            yield ('text', template[pos:match.start()])
        pos = match.end()
        kind = match.lastgroup
        if kind == 'bad_dollar':
            raise TemplateError(f'Dangling "$" at offset {match.start()} in template "{template}"')
        if kind == 'bad_brace':
            raise TemplateError(f'Unbalanced "{match.group()}" at offset {match.start()} in template "{template}"')
        yield (kind, match.group(kind))
    if pos < len(template):
        yield ('text', template[pos:])


def _conversion(tag: str, template: str) -> CaseConversion:
    tag = tag.strip()
    if tag == '':
        return CaseConversion.LOWER
    try:
        return CaseConversion(tag)
    except ValueError:
        expected = ', '.join(f'{{{c}}}' for c in CaseConversion)
        raise TemplateError(f'Unknown placeholder "{{{tag}}}" in template "{template}" (expected one of {{}}, {expected})')


def _lookup(name: str, context: TemplateContext, template: str) -> str:
    if name in ('src', 'bin'):
        value = getattr(context, name)
        if value is None:
            raise TemplateError(f'"${name}" is not available in template "{template}"')
        return value
    if name in context.variables:
        return context.variables[name]
    if name in context.env:
        return context.env[name]
    raise TemplateError(f'Undefined variable "${name}" in template "{template}"')


def _substitute(kind: str, value: str, context: TemplateContext, template: str) -> str:
    if kind == 'text':
        return value
    if kind == 'dollar':
        return '$'
    if kind == 'star':
        return ' '.join(context.arguments)
    if kind == 'positional':
        index = int(value)
        if index == 0:
            raise TemplateError(f'"$0" is not a valid argument reference in template "{template}"')
        return context.arguments[index - 1] if index <= len(context.arguments) else ''
    if kind == 'variable':
        return _lookup(value, context, template)
    return convert_case(context.problem, _conversion(value, template))


def resolve(template: str, context: TemplateContext) -> str:
    """Expand all placeholders of a template into text.

    The result is used as is; templates denoting paths go through
    resolve_path() instead, which also turns "" and "." into "./".

    Raises:
        TemplateError: if the template is malformed or refers to
            something that context does not define.
    """
    return ''.join(_substitute(kind, value, context, template) for kind, value in _scan(template))


def normalize_path(path: str) -> str:
    if path in ('', '.'):
        return './'
    if path.startswith(('/', './', '../')):
        return path
    return './' + path


def resolve_path(template: str, context: TemplateContext) -> str:
    """Expand a template denoting a path.

    The result is either absolute or explicitly relative, so "" and "."
    become "./" and "cc/a.cc" becomes "./cc/a.cc".
    """
    return normalize_path(resolve(template, context))


def _tokens(template: str | Sequence[str]) -> list[str]:
    if isinstance(template, str):
        try:
            return shlex.split(template)
        except ValueError as err:
            raise TemplateError(f'Could not split command "{template}": {err}')
    return list(template)


def _split_variable(name: str, value: str, template: str) -> list[str]:
    try:
        return shlex.split(value)
    except ValueError as err:
        raise TemplateError(f'Could not split variable "${name}" in template "{template}": {err}')


def _expand_token(token: str, context: TemplateContext) -> list[str]:
    """Expand one token of a command into zero or more arguments.

    The value of a service variable is split into words like an unquoted
    shell variable, the first and last word joining the text around it.
    Everything else ($src, $bin, session arguments, environment variables
    and tags) stays within the token.
    """
    if token == '$*':
        return list(context.arguments)
    words: list[str] = []
    current = ''
    # A token made only of empty service variables gives no argument
    has_word = token == ''
    for kind, value in _scan(token):
        if kind == 'variable' and value not in ('src', 'bin') and value in context.variables:
            fields = _split_variable(value, context.variables[value], token)
            if not fields:
                continue
            current += fields[0]
            if len(fields) > 1:
                words.append(current)
                words.extend(fields[1:-1])
                current = fields[-1]
        else:
            current += _substitute(kind, value, context, token)
        has_word = True
    if has_word:
        words.append(current)
    return words


def resolve_command(template: str | Sequence[str], context: TemplateContext) -> list[str]:
    """Expand a command template into an argument vector.

    A string template is split into tokens like a shell would before
    expansion, so $src, $bin and environment values containing spaces stay
    a single argument.  A token consisting of exactly "$*" expands to one
    token per session argument, and a service variable expands to as many
    arguments as its value has words, so "g++ $cxx_flags -o $bin $src"
    works with cxx_flags set to "-std=c++17 -O2".
    """
    argv = []
    for token in _tokens(template):
        argv.extend(_expand_token(token, context))
    return argv


def placeholders(template: str | Sequence[str]) -> set[str]:
    """Names of the variables and tags a template refers to.

    Variables are returned with their leading "$" (e.g. "$src", "$*"),
    tags with their braces (e.g. "{kebab}").

    Raises:
        TemplateError: on syntax errors and unknown tags.
    """
    names = set()
    tokens = [template] if isinstance(template, str) else list(template)
    for token in tokens:
        for kind, value in _scan(token):
            if kind in ('star', 'positional', 'variable'):
                names.add(f'${value}')
            elif kind == 'tag':
                names.add(f'{{{_conversion(value, token)}}}')
    return names


def uses_arguments(template: str | Sequence[str]) -> bool:
    """True if the template places the session arguments itself."""
    return any(name == '$*' or name[1:].isdigit() for name in placeholders(template))
