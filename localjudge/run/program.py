"""Abstract base class for programs, and running a process on one input.
"""
import logging
import os
import signal
import subprocess
import threading
import time
from dataclasses import dataclass

from . import limit
from .errors import ProgramError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Outcome of running a process on a single input.

    Attributes:
        stdout (str): everything the process wrote to stdout (up to the
            point it was killed, if it timed out)
        stderr (str): same for stderr
        exit_code (int): exit status; negative if killed by a signal
        elapsed (float): wall-clock running time in seconds
        timed_out (bool): True if the process exceeded its time limit
    """
    stdout: str
    stderr: str
    exit_code: int
    elapsed: float
    timed_out: bool


def _decode(data: bytes | None) -> str:
    return '' if data is None else data.decode('utf8', 'replace')


def spawn(argv: list[str], cwd: str | None = None, **kwargs) -> subprocess.Popen:
    """Start a process in a session of its own, so that it can be killed
    along with anything it starts.

    Raises:
        ProgramError: if the process could not be started.
    """
    log.debug('run "%s" in %s', ' '.join(argv), cwd or os.getcwd())
    try:
        return subprocess.Popen(argv, cwd=cwd, start_new_session=True,
                                preexec_fn=limit.prepare_child, **kwargs)
    except (OSError, subprocess.SubprocessError) as exc:
        raise ProgramError(f'Could not start {argv[0]}: {exc}')


def terminate(process: subprocess.Popen) -> None:
    """Kill a process started by spawn() and its whole process group."""
    if process.poll() is not None:
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        # Exited between poll() and killpg()
        pass
    except PermissionError:
        process.kill()


def run_process(argv: list[str], input: str, timelim: float | None, cwd: str | None = None) -> ProcessResult:
    """Run a process on an input.

    The input is written to the process's stdin, which is then closed.
    If the process runs longer than timelim seconds it is killed, and
    whatever it wrote until then is returned.

    Args:
        argv (list of str): command to run
        input (str): text to pass on stdin
        timelim (float): wall-clock time limit in seconds, None for no limit
        cwd (str): working directory of the process

    Raises:
        ProgramError: if the process could not be started.
    """
    start = time.perf_counter()
    process = spawn(argv, cwd, stdin=subprocess.PIPE, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    timed_out = False
    try:
        stdout, stderr = process.communicate(input.encode('utf8'), timeout=timelim)
    except subprocess.TimeoutExpired:
        timed_out = True
        terminate(process)
        stdout, stderr = process.communicate()
    except BaseException:
        terminate(process)
        process.wait()
        raise
    elapsed = time.perf_counter() - start
    if timelim is not None and elapsed > timelim:
        timed_out = True
    log.debug('"%s" exited with status %d after %.3fs%s', argv[0], process.returncode, elapsed,
              ' (timed out)' if timed_out else '')
    return ProcessResult(_decode(stdout), _decode(stderr), process.returncode, elapsed, timed_out)


class Program(object):
    """Abstract base class for programs.
    """

    def __init__(self) -> None:
        self.runtime = 0.0
        self.path: str | None = None
        self._compile_lock = threading.Lock()
        self._compile_result: tuple[bool, str | None] | None = None

    def run(self, input: str = '', timelim: float | None = None, args=()) -> ProcessResult:
        """Run the program.

        Args:
            input (str): text to pass on stdin
            timelim (float): wall-clock time limit in seconds
            args (list of str): additional command-line arguments to
                pass to the program

        Returns:
            ProcessResult of the run
        """
        runcmd = self.get_runcmd(args)
        if runcmd == []:
            raise ProgramError('Could not figure out how to run %s' % self)

        result = run_process(runcmd, input, timelim, self.path)

        self.runtime = max(self.runtime, result.elapsed)

        return result

    def compile(self) -> tuple[bool, str | None]:
        with self._compile_lock:
            if self._compile_result is None:
                self._compile_result = self.do_compile()
            return self._compile_result

    def do_compile(self) -> tuple[bool, str | None]:
        """Actually compile the program, if needed. Subclasses should override this method.
        Do not call this manually -- use compile() instead."""
        return (True, None)

    def get_runcmd(self, args=()) -> list[str]:
        """Command to run the program with the given extra arguments.
        Subclasses must override this method."""
        raise NotImplementedError
