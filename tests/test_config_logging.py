"""Tests for environment configuration and logging setup."""
import io
import json
import logging
import os
import sys
import unittest
from unittest.mock import patch

from loanbook.config import DEFAULT_DB_PATH, LoanBookConfig
from loanbook.logging_config import JsonFormatter, setup_logging


class TestLoanBookConfig(unittest.TestCase):

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            config = LoanBookConfig.from_env()
        self.assertEqual(config.db_path, DEFAULT_DB_PATH)
        self.assertEqual(config.log_level, "INFO")
        self.assertEqual(config.log_format, "standard")

    def test_reads_environment(self):
        env = {
            "LOANBOOK_DB_PATH": "/tmp/other.db",
            "LOANBOOK_LOG_LEVEL": "DEBUG",
            "LOANBOOK_LOG_FORMAT": "json",
        }
        with patch.dict(os.environ, env, clear=True):
            config = LoanBookConfig.from_env()
        self.assertEqual(config.db_path, "/tmp/other.db")
        self.assertEqual(config.log_level, "DEBUG")
        self.assertEqual(config.log_format, "json")


class TestSetupLogging(unittest.TestCase):

    def setUp(self):
        self.logger = logging.getLogger("loanbook")
        saved = (self.logger.level, self.logger.handlers[:], self.logger.propagate)

        def restore():
            self.logger.setLevel(saved[0])
            self.logger.handlers[:] = saved[1]
            self.logger.propagate = saved[2]
        self.addCleanup(restore)

    def test_standard_format(self):
        setup_logging("warning")
        self.assertEqual(self.logger.level, logging.WARNING)
        self.assertEqual(len(self.logger.handlers), 1)
        self.assertNotIsInstance(self.logger.handlers[0].formatter, JsonFormatter)
        self.assertFalse(self.logger.propagate)

    def test_json_format_replaces_handlers(self):
        setup_logging("INFO")
        setup_logging("DEBUG", "json")
        self.assertEqual(len(self.logger.handlers), 1)
        self.assertIsInstance(self.logger.handlers[0].formatter, JsonFormatter)
        self.assertEqual(self.logger.level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self):
        setup_logging("chatty")
        self.assertEqual(self.logger.level, logging.INFO)

    def test_child_loggers_reach_handler(self):
        setup_logging("INFO", "json")
        stream = io.StringIO()
        self.logger.handlers[0].setStream(stream)

        logging.getLogger("loanbook.engine").info("Loaded %d contracts", 3)

        line = json.loads(stream.getvalue())
        self.assertEqual(line["message"], "Loaded 3 contracts")
        self.assertEqual(line["logger"], "loanbook.engine")
        self.assertEqual(line["level"], "INFO")


class TestJsonFormatter(unittest.TestCase):

    def test_includes_exception(self):
        try:
            raise ValueError("bad amount")
        except ValueError:
            record = logging.LogRecord(
                "loanbook", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
        data = json.loads(JsonFormatter().format(record))
        self.assertEqual(data["message"], "failed")
        self.assertIn("ValueError: bad amount", data["exception"])
        self.assertIn("timestamp", data)


if __name__ == "__main__":
    unittest.main(verbosity=2)
