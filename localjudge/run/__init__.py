"""Package for managing execution of solutions and testers in localjudge.
"""
from .errors import ProgramError
from .interactive import InteractiveSession, SessionState
from .program import ProcessResult, Program, run_process
from .source import CommandProgram, SourceCode

__all__ = [
    'CommandProgram',
    'InteractiveSession',
    'ProcessResult',
    'Program',
    'ProgramError',
    'SessionState',
    'SourceCode',
    'run_process',
]
