"""
Running a solution against a tester, with the stdout of each connected to
the stdin of the other.

The verdict of a session is decided by whichever of these happens first:

  - the time limit is reached: both processes are killed, TLE
  - the tester exits: AC if it exited with status 0, WA otherwise
  - the solution exits with a nonzero status: RTE

A solution exiting with status 0 leaves the decision to the tester.  Once
a verdict is decided, whatever is still running is killed.

Exits are read without reaping the processes, so when the tester's exit
is seen the solution's state is still there to look at.  A solution that
has already terminated with a nonzero status by then counts as having
exited first (the tester typically exits because the solution closed its
end of the pipe), unless it was killed by SIGPIPE: that only happens once
the tester stopped reading, so the tester went first.
"""
import logging
import os
import queue
import signal
import subprocess
import threading
import time
from enum import Enum

from ..verdict import SessionResult, Verdict
from . import program
from .program import Program

log = logging.getLogger(__name__)


class SessionState(Enum):
    STARTING = 1
    RUNNING = 2
    SOLUTION_FINISHED = 3
    TESTER_FINISHED = 4
    DONE = 5


class Pipe:
    """An OS pipe whose ends are handed to child processes.

    The parent closes both ends once the children are started, so that
    each child sees end-of-file when the other one exits.
    """

    def __init__(self) -> None:
        self.read_fd: int | None
        self.write_fd: int | None
        self.read_fd, self.write_fd = os.pipe()

    def close(self) -> None:
        if self.read_fd is not None:
            os.close(self.read_fd)
            self.read_fd = None
        if self.write_fd is not None:
            os.close(self.write_fd)
            self.write_fd = None

    def __enter__(self) -> 'Pipe':
        return self

    def __exit__(self, *exc) -> None:
        self.close()


class _Drain(threading.Thread):
    """Reads a stream to end-of-file in the background."""

    def __init__(self, stream) -> None:
        super().__init__(daemon=True)
        self._stream = stream
        self.data = b''

    def run(self) -> None:
        try:
            self.data = self._stream.read()
        finally:
            self._stream.close()

    def text(self) -> str:
        return self.data.decode('utf8', 'replace')


def exit_status(pid: int, block: bool = True) -> int | None:
    """Exit status of a child process, leaving it unreaped.

    Returns the exit code, the negated signal number if the process was
    killed by a signal, or None if block is False and the process is still
    running.

    Raises:
        ChildProcessError: if the process has already been reaped.
    """
    options = os.WEXITED | os.WNOWAIT
    if not block:
        options |= os.WNOHANG
    info = os.waitid(os.P_PID, pid, options)
    if info is None:
        return None
    if info.si_code == os.CLD_EXITED:
        return info.si_status
    return -info.si_status


def _broken_pipe(exit_code: int) -> bool:
    return exit_code == -signal.SIGPIPE


class InteractiveSession:
    """One run of a solution against a tester, for one argument set."""

    SOLUTION = 'solution'
    TESTER = 'tester'

    def __init__(self, solution: Program, tester: Program, args=(), timelim: float | None = None) -> None:
        """
        Args:
            solution (Program): the program being judged
            tester (Program): the program judging it
            args (list of str): session arguments, given to both programs
            timelim (float): wall-clock limit for the whole session, in
                seconds, or None for no limit
        """
        self.solution = solution
        self.tester = tester
        self.args = tuple(args)
        self.timelim = timelim
        self.state = SessionState.STARTING

    def _set_state(self, state: SessionState) -> None:
        log.debug('session %s: %s -> %s', self.args, self.state.name, state.name)
        self.state = state

    def run(self) -> SessionResult:
        """Run the session to completion.

        Raises:
            ProgramError: if either program could not be started.  Anything
                already started is killed first.
        """
        solution_cmd = self.solution.get_runcmd(self.args)
        tester_cmd = self.tester.get_runcmd(self.args)

        processes: dict[str, subprocess.Popen] = {}
        drains: list[_Drain] = []
        start = time.perf_counter()
        try:
            with Pipe() as to_solution, Pipe() as to_tester:
                processes[self.SOLUTION] = program.spawn(
                    solution_cmd, self.solution.path,
                    stdin=to_solution.read_fd, stdout=to_tester.write_fd, stderr=subprocess.PIPE)
                processes[self.TESTER] = program.spawn(
                    tester_cmd, self.tester.path,
                    stdin=to_tester.read_fd, stdout=to_solution.write_fd, stderr=subprocess.PIPE)
            self._set_state(SessionState.RUNNING)

            drains = [_Drain(processes[self.SOLUTION].stderr), _Drain(processes[self.TESTER].stderr)]
            events: queue.Queue = queue.Queue()
            for name, process in processes.items():
                threading.Thread(target=self._watch, args=(name, process.pid, events), daemon=True).start()
            for drain in drains:
                drain.start()

            verdict = self._await_verdict(events, start, processes[self.SOLUTION].pid)
            elapsed = time.perf_counter() - start
        finally:
            for process in processes.values():
                program.terminate(process)
            for process in processes.values():
                process.wait()
            for drain in drains:
                drain.join()
            if not drains:
                for process in processes.values():
                    process.stderr.close()
            self._set_state(SessionState.DONE)

        solution_process = processes[self.SOLUTION]
        tester_process = processes[self.TESTER]
        self.solution.runtime = max(self.solution.runtime, elapsed)
        return SessionResult(
            args=self.args,
            verdict=verdict,
            elapsed=elapsed,
            solution_exit=solution_process.returncode,
            tester_exit=tester_process.returncode,
            solution_stderr=drains[0].text(),
            tester_stderr=drains[1].text(),
        )

    def _watch(self, name: str, pid: int, events: queue.Queue) -> None:
        try:
            events.put((name, exit_status(pid)))
        except ChildProcessError:
            # Reaped once the verdict was decided, nobody is listening
            return

    def _await_verdict(self, events: queue.Queue, start: float, solution_pid: int) -> Verdict:
        deadline = None if self.timelim is None else start + self.timelim
        while True:
            timeout = None
            if deadline is not None:
                timeout = deadline - time.perf_counter()
                if timeout <= 0:
                    log.debug('session %s: time limit of %ss reached', self.args, self.timelim)
                    return Verdict.time_limit_exceeded()
            try:
                name, exit_code = events.get(timeout=timeout)
            except queue.Empty:
                continue

            if name == self.TESTER:
                solution_exit = exit_status(solution_pid, block=False)
                if solution_exit and not _broken_pipe(solution_exit):
                    self._set_state(SessionState.SOLUTION_FINISHED)
                    return Verdict.runtime_error(solution_exit)
                self._set_state(SessionState.TESTER_FINISHED)
                return Verdict.accepted() if exit_code == 0 else Verdict.wrong_answer()

            self._set_state(SessionState.SOLUTION_FINISHED)
            if exit_code != 0 and not _broken_pipe(exit_code):
                return Verdict.runtime_error(exit_code)
