# -*- coding: utf-8 -*-
from unittest import TestCase
import logging
import resource

from localjudge.run import limit


class Limit_test(TestCase):
    def test_less(self):
        less = limit.__dict__['__limit_less']
        assert less(42, 42)
        assert not less(42, 41)
        assert less(1e99, resource.RLIM_INFINITY)
        assert less(resource.RLIM_INFINITY, resource.RLIM_INFINITY)
        assert not less(resource.RLIM_INFINITY, 1e99)

    def test_check_capabilities(self):
        logger = logging.getLogger('localjudge.tests.limit')
        with self.assertLogs(logger, level='WARNING') as logs:
            limit.check_limit_capabilities(logger)
            logger.warning('done')
        (_, stack_hard) = resource.getrlimit(resource.RLIMIT_STACK)
        expected = 1 if stack_hard == resource.RLIM_INFINITY else 2
        assert len(logs.records) == expected
