"""Unit tests for error formatting and logger setup."""
import logging
import unittest

from arm_controller.errors import ConfigurationError, ErrorCode, ProtocolError, TransportError
from arm_controller.utils.logging_utils import get_logger


class TestErrors(unittest.TestCase):
    def test_message_format(self):
        """Test error message formatting with detail."""
        error = ConfigurationError(ErrorCode.MANAGER_COUNT_INVALID, 'found 2')
        self.assertEqual(
            error.to_error_message(),
            '[E1001] exactly one controller manager is required per robot: found 2',
        )
        self.assertEqual(str(error), error.message)

    def test_detail_is_optional(self):
        self.assertEqual(TransportError(ErrorCode.TRANSPORT_UNAVAILABLE).message, '[E2001] transport unavailable')

    def test_protocol_errors_share_base(self):
        error = ProtocolError(ErrorCode.CANCEL_WITHOUT_GOAL)
        self.assertIsInstance(error, Exception)
        self.assertEqual(error.code, ErrorCode.CANCEL_WITHOUT_GOAL)
        self.assertIsNone(error.detail)


class TestLogging(unittest.TestCase):
    def test_logger_is_cached(self):
        self.assertIs(get_logger('arm_controller.test'), get_logger('arm_controller.test'))

    def test_console_only_when_log_dir_disabled(self):
        """An empty log directory keeps logging on the console."""
        logger = get_logger('arm_controller.test_console')

        self.assertFalse(logger.propagate)
        self.assertFalse(any(isinstance(h, logging.FileHandler) for h in logger.handlers))
        self.assertTrue(any(isinstance(h, logging.StreamHandler) for h in logger.handlers))


if __name__ == '__main__':
    unittest.main()
