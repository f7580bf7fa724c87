"""
This module contains functionality for reading and using configuration
of programming languages, and the command specifications they are made of.
"""
import re
import shlex
from dataclasses import dataclass
from typing import Any

from . import config
from . import template
from .template import TemplateError


class LanguageConfigError(Exception):
    """Exception class for errors in language configuration."""
    pass


@dataclass(frozen=True)
class CompileSpec:
    """A compile step: command to run and the binary it produces.

    Attributes:
        command (CommandSpec): the compiler invocation
        bin (str): path template of the produced binary, bound to $bin
        src (str): path template of the source, bound to $src.  For
            languages the source path comes from the language instead.
    """
    command: 'CommandSpec'
    bin: str
    src: str | None = None


@dataclass(frozen=True)
class CommandSpec:
    """A command template: tokens, working directory and optional compile step."""
    argv: tuple[str, ...]
    working_directory: str = ''
    compile: CompileSpec | None = None

    @classmethod
    def parse(cls, command: str | list[str], working_directory: str = '',
              compile: CompileSpec | None = None) -> 'CommandSpec':
        if isinstance(command, str):
            try:
                argv = shlex.split(command)
            except ValueError as err:
                raise LanguageConfigError(f'Could not split command "{command}": {err}')
        elif isinstance(command, list) and all(isinstance(token, str) for token in command):
            argv = command
        else:
            raise LanguageConfigError(f'Command must be a string or a list of strings, but is {command!r}')
        if not argv:
            raise LanguageConfigError('Command is empty')
        return cls(argv=tuple(argv), working_directory=working_directory, compile=compile)

    @classmethod
    def from_dict(cls, data: Any, what: str = 'command') -> 'CommandSpec':
        """Build a CommandSpec from configuration data.

        Args:
            data (dict): {command: ..., working_directory: ..., compile: {...}}
                where compile is {command, bin, src, working_directory}
        """
        if not isinstance(data, dict):
            raise LanguageConfigError(f'{what} must be a dictionary, but is {type(data)}.')
        for unknown in set(data) - {'command', 'working_directory', 'compile'}:
            raise LanguageConfigError(f'Unknown key "{unknown}" specified for {what}')
        if 'command' not in data:
            raise LanguageConfigError(f'{what} has no command')
        compile_spec = None
        if data.get('compile') is not None:
            compile_spec = _compile_from_dict(data['compile'], f'{what}: compile')
        return cls.parse(data['command'], _string(data.get('working_directory', ''), what, 'working_directory'),
                         compile_spec)

    def __str__(self) -> str:
        return shlex.join(self.argv)


def _string(value: Any, what: str, key: str) -> str:
    if not isinstance(value, str):
        raise LanguageConfigError(f'{what}: {key} must be string but is {type(value)}.')
    return value


def _compile_from_dict(data: Any, what: str) -> CompileSpec:
    if not isinstance(data, dict):
        raise LanguageConfigError(f'{what} must be a dictionary, but is {type(data)}.')
    for unknown in set(data) - {'command', 'working_directory', 'bin', 'src'}:
        raise LanguageConfigError(f'Unknown key "{unknown}" specified for {what}')
    for key in ('command', 'bin'):
        if key not in data:
            raise LanguageConfigError(f'{what} has no {key}')
    src = data.get('src')
    return CompileSpec(
        command=CommandSpec.parse(data['command'], _string(data.get('working_directory', ''), what, 'working_directory')),
        bin=_string(data['bin'], what, 'bin'),
        src=None if src is None else _string(src, what, 'src'),
    )


def rewrite_source(source_text: str, pattern: str | re.Pattern, capture_index: int, replacement: str) -> str:
    """Replace the text captured by a group of every match of pattern.

    Args:
        source_text (str): the source code
        pattern (str or compiled RE): pattern to look for
        capture_index (int): group whose span gets replaced
        replacement (str): literal replacement text (no backreferences)

    Returns:
        str, the rewritten source code.
    """
    regex = re.compile(pattern) if isinstance(pattern, str) else pattern
    if capture_index < 0 or capture_index > regex.groups:
        raise LanguageConfigError(
            f'Pattern "{regex.pattern}" has no capture group {capture_index}')
    parts = []
    pos = 0
    for match in regex.finditer(source_text):
        start, end = match.span(capture_index)
        if start < 0:
            # The group did not take part in this match
            continue
        parts.append(source_text[pos:start])
        parts.append(replacement)
        pos = end
    parts.append(source_text[pos:])
    return ''.join(parts)


@dataclass(frozen=True)
class SourceRewrite:
    """Substitution applied to a source file before it is compiled for submission."""
    pattern: re.Pattern
    capture_index: int
    replacement: str

    def __post_init__(self) -> None:
        if self.capture_index < 0 or self.capture_index > self.pattern.groups:
            raise LanguageConfigError(
                f'Pattern "{self.pattern.pattern}" has no capture group {self.capture_index}')

    @classmethod
    def from_dict(cls, data: Any, what: str) -> 'SourceRewrite':
        if not isinstance(data, dict):
            raise LanguageConfigError(f'{what} must be a dictionary, but is {type(data)}.')
        for unknown in set(data) - {'regex', 'match_group', 'replacement'}:
            raise LanguageConfigError(f'Unknown key "{unknown}" specified for {what}')
        for key in ('regex', 'replacement'):
            if key not in data:
                raise LanguageConfigError(f'{what} has no {key}')
        group = data.get('match_group', 1)
        if not isinstance(group, int):
            raise LanguageConfigError(f'{what}: match_group must be integer but is {type(group)}.')
        try:
            pattern = re.compile(_string(data['regex'], what, 'regex'))
        except re.error as err:
            raise LanguageConfigError(f'{what}: invalid regex: {err}')
        return cls(pattern, group, _string(data['replacement'], what, 'replacement'))

    def apply(self, source_text: str) -> str:
        return rewrite_source(source_text, self.pattern, self.capture_index, self.replacement)


class Language(object):
    """
    Class representing a single language: where its source lives, how to
    compile it and how to run it.
    """

    __KEYS = ['name', 'src', 'compile', 'run', 'replace']

    def __init__(self, lang_id: str, lang_spec: dict) -> None:
        """Construct language object

        Args:
            lang_id (str): language identifier
            lang_spec (dict): dictionary containing the specification
                of the language.
        """
        if not re.match('[a-z][a-z0-9+#_-]*$', lang_id):
            raise LanguageConfigError('Invalid language ID "%s"' % lang_id)
        self.lang_id = lang_id
        self.name: str = lang_id
        self.src: str | None = None
        self.compile: CompileSpec | None = None
        self.run: CommandSpec | None = None
        self.replace: SourceRewrite | None = None
        self.update(lang_spec)

    def update(self, values: dict) -> None:
        """Update a language specification with new values.

        Args:
            values (dict): dictionary containing new values for some
                subset of the language properties.
        """
        for unknown in set(values) - set(Language.__KEYS):
            raise LanguageConfigError(
                'Unknown key "%s" specified for language %s'
                % (unknown, self.lang_id))

        what = f'Language {self.lang_id}'
        for (key, value) in values.items():
            if key in ('name', 'src'):
                self.__dict__[key] = _string(value, what, key)
            elif key == 'compile':
                self.compile = None if value is None else _compile_from_dict(value, f'{what}: compile')
            elif key == 'run':
                self.run = CommandSpec.from_dict(value, f'{what}: run')
            elif key == 'replace':
                self.replace = None if value is None else SourceRewrite.from_dict(value, f'{what}: replace')

        self.__check()

    def __check(self) -> None:
        """Check that the language specification is valid: all mandatory
        fields provided and all placeholders used in templates resolvable.
        """
        if self.src is None:
            raise LanguageConfigError(
                'Language %s has no src' % self.lang_id)
        if self.run is None:
            raise LanguageConfigError(
                'Language %s has no run command' % self.lang_id)
        if self.run.compile is not None:
            raise LanguageConfigError(
                'Language %s: compile step belongs to the language, not to its run command' % self.lang_id)

        self.__check_template(self.src, 'src', set())
        allowed = {'$src'}
        if self.compile is not None:
            self.__check_template(self.compile.bin, 'compile bin', allowed)
            allowed = allowed | {'$bin'}
            self.__check_template(self.compile.command.argv, 'compile command', allowed)
            self.__check_template(self.compile.command.working_directory, 'compile working_directory', allowed)
        self.__check_template(self.run.argv, 'run command', allowed)
        self.__check_template(self.run.working_directory, 'run working_directory', allowed)

    def __check_template(self, tmpl, what: str, allowed: set[str]) -> None:
        try:
            names = template.placeholders(tmpl)
        except TemplateError as err:
            raise LanguageConfigError(f'Language {self.lang_id}: {what}: {err}')
        for name in {'$src', '$bin'} & names - allowed:
            raise LanguageConfigError(
                'Variable "%s" cannot be used in %s of language %s'
                % (name, what, self.lang_id))

    def __str__(self) -> str:
        return self.name


class Languages(object):
    """A set of languages."""

    def __init__(self, data: dict | None = None) -> None:
        """Create a set of languages from a dict.

        Args:
            data (dict): dictonary containing configuration.
                If None, resulting set of languages is empty.
                See documentation of update() method below for details.
        """
        self.languages: dict[str, Language] = {}
        if data is not None:
            self.update(data)

    def get(self, lang_id: str) -> Language | None:
        if not isinstance(lang_id, str):
            raise LanguageConfigError(
                'Config file error: language IDs must be strings, but %s is %s.'
                % (lang_id, type(lang_id)))
        return self.languages.get(lang_id, None)

    def __contains__(self, lang_id: str) -> bool:
        return lang_id in self.languages

    def __iter__(self):
        return iter(self.languages.values())

    def update(self, data: dict) -> None:
        """Update the set with language configuration data from a dict.

        Args:
            data (dict): dictionary containing configuration.
                If this dictionary contains (possibly partial) configuration
                for a language already in the set, the configuration
                for that language will be overridden and updated.
        """
        if not isinstance(data, dict):
            raise LanguageConfigError(
                'Config file error: content must be a dictionary, but is %s.'
                % (type(data)))

        for (lang_id, lang_spec) in data.items():
            if not isinstance(lang_id, str):
                raise LanguageConfigError(
                    'Config file error: language IDs must be strings, but %s is %s.'
                    % (lang_id, type(lang_id)))

            if not isinstance(lang_spec, (dict, Language)):
                raise LanguageConfigError(
                    'Config file error: language spec must be a dictionary, but spec of language %s is %s.'
                    % (lang_id, type(lang_spec)))

            if isinstance(lang_spec, Language):
                self.languages[lang_id] = lang_spec
            elif lang_id not in self.languages:
                self.languages[lang_id] = Language(lang_id, lang_spec)
            else:
                self.languages[lang_id].update(lang_spec)


def load_language_config() -> Languages:
    """Load language configuration.

    Returns:
        Languages object for the set of languages.
    """
    return Languages(config.load_config('languages.yaml'))
