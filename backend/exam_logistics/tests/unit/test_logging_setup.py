# backend/exam_logistics/tests/unit/test_logging_setup.py

import logging
import logging.handlers

import pytest

from exam_logistics import config as app_config
from exam_logistics.logging_config import LOGGING_CONFIG, BatchContextFilter, configure_logging


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    package = logging.getLogger("exam_logistics")
    root_handlers, root_level = root.handlers[:], root.level
    package_handlers, package_level = package.handlers[:], package.level
    package_propagate = package.propagate
    yield
    for handler in root.handlers + package.handlers:
        if handler not in root_handlers and handler not in package_handlers:
            handler.close()
    root.handlers[:] = root_handlers
    root.setLevel(root_level)
    package.handlers[:] = package_handlers
    package.setLevel(package_level)
    package.propagate = package_propagate


def _record(**extra):
    record = logging.LogRecord("exam_logistics", logging.INFO, __file__, 1, "msg", None, None)
    record.__dict__.update(extra)
    return record


class TestBatchContextFilter:
    def test_adds_placeholder(self):
        record = _record()
        assert BatchContextFilter().filter(record)
        assert record.batch_id == "no-batch"

    def test_keeps_existing_batch_id(self):
        record = _record(batch_id="b-42")
        BatchContextFilter().filter(record)
        assert record.batch_id == "b-42"


def test_configure_logging_overrides_package_level(restore_logging):
    configure_logging("warning")
    assert logging.getLogger("exam_logistics").level == logging.WARNING
    assert LOGGING_CONFIG["loggers"]["exam_logistics"]["level"] == "DEBUG"


def test_setup_logging_adds_rotating_file(tmp_path, restore_logging):
    log_file = tmp_path / "logs" / "allocation.log"
    app_config.setup_logging(app_config.TestingSettings(LOG_FILE=str(log_file)))

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(
        isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers
    )
    assert log_file.exists()
