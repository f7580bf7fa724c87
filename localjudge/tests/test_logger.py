# -*- coding: utf-8 -*-
import io
import logging

from localjudge import logger


def test_counter():
    counter = logger.Counter()
    assert str(counter) == '0 errors, 0 warnings'
    for level in [logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL]:
        counter.filter(logging.LogRecord('x', level, __file__, 1, 'msg', None, None))
    assert counter.warnings == 1
    assert counter.errors == 2
    assert str(counter) == '2 errors, 1 warning'


def test_judge_logger():
    log = logger.get_judge_logger('hello')
    assert isinstance(log, logger.JudgeLogger)
    assert log.name == 'localjudge.problem.hello'
    assert logger.get_judge_logger('hello') is log
    assert not isinstance(logging.getLogger('localjudge.problem.other-logger'), logger.JudgeLogger)

    before = log.count.warnings
    log.warning('something')
    assert log.count.warnings == before + 1


def test_initialize_logging():
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    stream = io.StringIO()
    try:
        root.handlers = []
        logger.initialize_logging('debug', stream=stream)
        assert root.level == logging.DEBUG
        logging.getLogger('localjudge.tests').debug('visible')
        assert 'DEBUG' in stream.getvalue()
        assert 'visible' in stream.getvalue()
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
