"""
Logging for localjudge.

Library modules log through logging.getLogger(__name__).  Judging a
problem logs through a JudgeLogger of its own, so the warnings and errors
of one judging run can be counted separately from everything else:

  localjudge: Logger
  |
  +- judge, run.program, ...: Logger (one per module)
  |
  +- problem: Logger
     |
     +- hello: JudgeLogger
     +- Problem Name: JudgeLogger

Messages propagate to the root logger, whose handler is set up by
initialize_logging().
"""

import logging
import sys

import colorlog


class Counter(logging.Filter):
    """
    A stateful filter than counts the number of warnings and errors it has seen.
    """

    def __init__(self):
        super().__init__()
        self.errors: int = 0
        self.warnings: int = 0

    def __str__(self) -> str:
        def p(x):
            return "" if x == 1 else "s"

        return f"{self.errors} error{p(self.errors)}, {self.warnings} warning{p(self.warnings)}"

    def filter(self, record) -> bool:
        if record.levelno == logging.WARNING:
            self.warnings += 1
        if record.levelno >= logging.ERROR:
            self.errors += 1
        return True


class JudgeLogger(logging.Logger):
    """
    Logger for judging one problem, such as "localjudge.problem.hello".

    The logger's count attribute gives access to its Counter filter. For
    instance,
        logger.count.errors
    contains the number of errors logged through this logger.

    Never instantiate this class yourself; use get_judge_logger(problem).
    """

    def __init__(self, name, *args, **kwargs):
        logging.Logger.__init__(self, name, *args, **kwargs)

        self.propagate = True
        self.count = Counter()
        self.addFilter(self.count)


def get_judge_logger(problem: str) -> JudgeLogger:
    """Return the JudgeLogger for this problem, creating it if necessary.
    get_judge_logger("hello") creates a JudgeLogger called
    "localjudge.problem.hello".
    """
    saved_class = logging.getLoggerClass()
    try:
        logging.setLoggerClass(JudgeLogger)
        return logging.getLogger("localjudge.problem." + problem)
    finally:
        logging.setLoggerClass(saved_class)


def initialize_logging(log_level: str = 'info', stream=sys.stdout) -> None:
    fmt = '%(log_color)s%(levelname)s %(message)s'
    colorlog.basicConfig(stream=stream, format=fmt, level=getattr(logging, log_level.upper()))
