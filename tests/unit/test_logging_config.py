"""
Unit tests for logging configuration, formatters and ContextLogger
"""

import json
import logging
import sys

import pytest

from utils.logging import (
    ConsoleFormatter,
    ContextLogger,
    JSONFormatter,
    extra_fields,
    setup_logging,
    shutdown_logging,
)


def _record(msg: str = "Page checked", level: int = logging.INFO, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="reconciliation.engine",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    shutdown_logging()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestJSONFormatter:

    def test_basic_fields(self):
        formatter = JSONFormatter(app_name="test-app")

        data = json.loads(formatter.format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "reconciliation.engine"
        assert data["message"] == "Page checked"
        assert data["app"] == "test-app"
        assert "timestamp" in data
        assert data["source"]["line"] == 10

    def test_extra_fields_in_context(self):
        formatter = JSONFormatter(include_hostname=False)

        data = json.loads(formatter.format(_record(partition_id=1, page=3)))

        assert data["context"] == {"partition_id": 1, "page": 3}
        assert "hostname" not in data

    def test_exception_info(self):
        formatter = JSONFormatter()
        try:
            raise ValueError("broken page")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(formatter.format(record))

        assert data["exception"]["type"] == "ValueError"
        assert data["exception"]["message"] == "broken page"

    def test_non_serializable_extra(self):
        formatter = JSONFormatter()

        data = json.loads(formatter.format(_record(keys={1, 2})))

        assert data["context"]["keys"] == "{1, 2}"


class TestConsoleFormatter:

    def test_appends_context(self):
        formatter = ConsoleFormatter(use_colors=False)

        line = formatter.format(_record(partition_id=1, page=3))

        assert "[INFO] reconciliation.engine: Page checked" in line
        assert line.endswith("[partition_id=1, page=3]")

    def test_does_not_mutate_record(self):
        formatter = ConsoleFormatter(use_colors=True)
        formatter.use_colors = True
        record = _record()

        formatter.format(record)

        assert record.levelname == "INFO"


class TestContextLogger:

    def test_context_attached(self, caplog):
        logger = ContextLogger("reconciliation.test", partition_id=2)

        with caplog.at_level(logging.INFO):
            logger.info("Checked page", page=5)

        record = caplog.records[-1]
        assert record.partition_id == 2
        assert record.page == 5
        assert extra_fields(record)["page"] == 5

    def test_update_context(self):
        logger = ContextLogger("reconciliation.test", partition_id=2)
        logger.update_context(import_position=10)

        assert logger.get_context() == {"partition_id": 2, "import_position": 10}

    def test_disabled_level_skipped(self, caplog):
        logger = ContextLogger("reconciliation.test")

        with caplog.at_level(logging.WARNING):
            logger.debug("hidden")

        assert not caplog.records


class TestSetupLogging:

    def test_console_handler_on_stderr(self, restore_root_logger):
        setup_logging(level="DEBUG")

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_json_file_logging(self, restore_root_logger, tmp_path):
        log_file = tmp_path / "logs" / "reconcile.log"

        setup_logging(level="INFO", log_file=str(log_file), console_output=False, json_format=True)
        logging.getLogger("reconciliation.test").info("written to file")
        shutdown_logging()

        line = log_file.read_text().strip().splitlines()[-1]
        assert json.loads(line)["message"] == "written to file"

    def test_unknown_level_defaults_to_info(self, restore_root_logger):
        setup_logging(level="CHATTY", console_output=False)

        assert restore_root_logger.level == logging.INFO
