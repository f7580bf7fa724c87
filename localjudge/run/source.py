"""
Implementation of programs described by command templates from the
configuration: testers, and solutions provided by source code.
"""
import logging
import os
import subprocess

from .. import template
from ..languages import CommandSpec, CompileSpec, Language
from ..template import TemplateContext
from .errors import ProgramError
from .program import Program

log = logging.getLogger(__name__)


def _absolute(base_dir: str, path: str) -> str:
    return os.path.normpath(path if os.path.isabs(path) else os.path.join(base_dir, path))


class CommandProgram(Program):
    """Class for programs run by a command template, possibly after a
    compile step.
    """

    def __init__(self, spec: CommandSpec, context: TemplateContext, base_dir: str = '.',
                 src: str | None = None, compile_spec: CompileSpec | None = None) -> None:
        """Resolve all templates of the program.

        $src is resolved first, then $bin, then the compile command and
        finally the run command, so each template can use what was
        resolved before it.

        Args:
            spec (CommandSpec): how to run the program
            context (TemplateContext): problem name and variables
            base_dir (str): directory relative paths are resolved against
            src (str): path template of the source file, overriding the
                one of the compile step
            compile_spec (CompileSpec): compile step, overriding the one
                of spec

        Raises:
            TemplateError: if some template cannot be resolved
        """
        super().__init__()
        self.spec = spec
        base_dir = os.path.abspath(base_dir)
        if compile_spec is None:
            compile_spec = spec.compile
        if src is None and compile_spec is not None:
            src = compile_spec.src

        bindings = {}
        if src is not None:
            bindings['src'] = _absolute(base_dir, template.resolve_path(src, context))
        if compile_spec is not None:
            bindings['bin'] = _absolute(base_dir, template.resolve_path(compile_spec.bin, context.bind(**bindings)))
        self.context = context.bind(**bindings)
        self.src = bindings.get('src')
        self.binary = bindings.get('bin')

        self.compile_cmd: list[str] | None = None
        self.compile_dir: str | None = None
        if compile_spec is not None:
            self.compile_cmd = template.resolve_command(compile_spec.command.argv, self.context)
            self.compile_dir = _absolute(base_dir, template.resolve_path(compile_spec.command.working_directory,
                                                                         self.context))

        self.path = _absolute(base_dir, template.resolve_path(spec.working_directory, self.context))
        self._runcmd = template.resolve_command(spec.argv, self.context)
        self._places_arguments = template.uses_arguments(spec.argv)

    def do_compile(self) -> tuple[bool, str | None]:
        """Run the compile command.

        Returns tuple:
            (True, None) if compilation succeeded
            (False, errmsg) otherwise
        """
        if self.compile_cmd is None:
            return (True, None)

        log.debug('compile command: %s', self.compile_cmd)
        os.makedirs(os.path.dirname(self.binary), exist_ok=True)

        try:
            subprocess.check_output(self.compile_cmd, stderr=subprocess.STDOUT, cwd=self.compile_dir)
        except subprocess.CalledProcessError as err:
            return (False, err.output.decode('utf8', 'replace'))
        except OSError as err:
            return (False, 'Could not run compile command %s: %s' % (self.compile_cmd[0], err))
        return (True, None)

    def get_runcmd(self, args=()) -> list[str]:
        """Run command for the program.

        Args:
            args (list of str): session arguments.  They are appended to
                the command, unless its template places them itself
                through $* or $1..$9.
        """
        args = tuple(args)
        if self._places_arguments:
            return template.resolve_command(self.spec.argv, self.context.bind(arguments=args))
        return self._runcmd + list(args)

    def __str__(self) -> str:
        """String representation"""
        return str(self.spec)


class SourceCode(CommandProgram):
    """Class representing a solution provided by source code in a
    configured language.
    """

    def __init__(self, language: Language, context: TemplateContext, base_dir: str = '.') -> None:
        self.language = language
        super().__init__(language.run, context, base_dir, src=language.src, compile_spec=language.compile)

    def submission_source(self) -> str:
        """Source code as it should be submitted: the file contents with
        the language's rewrite rule applied.  Local judging always uses the
        file as is.
        """
        try:
            with open(self.src, 'r') as f:
                source = f.read()
        except OSError as err:
            raise ProgramError('Could not read source file %s: %s' % (self.src, err))
        if self.language.replace is not None:
            source = self.language.replace.apply(source)
        return source

    def __str__(self) -> str:
        """String representation"""
        return '%s (%s)' % (os.path.basename(self.src), self.language.name)
