"""Tests for structured logging functionality."""

from __future__ import annotations

import json
import logging
import logging.handlers

import pytest
from sqlalchemy.exc import OperationalError

from hematwoi.config import BaseConfig
from hematwoi.domain.errors import DependencyError, NotFoundError
from hematwoi.logging_config import JSONFormatter, get_logger, setup_logging
from hematwoi.services.debt_ledger import DebtLedger


def test_json_formatter_includes_extra_fields():
    """JSONFormatter keeps fields passed through ``extra``."""
    formatter = JSONFormatter()
    record = logging.LogRecord(
        name="hematwoi.test",
        level=logging.INFO,
        pathname="test.py",
        lineno=42,
        msg="Debt created",
        args=(),
        exc_info=None,
    )
    record.debt_id = 7

    log_data = json.loads(formatter.format(record))

    assert log_data["level"] == "INFO"
    assert log_data["logger"] == "hematwoi.test"
    assert log_data["message"] == "Debt created"
    assert log_data["line"] == 42
    assert log_data["extra"] == {"debt_id": 7}
    assert "timestamp" in log_data


def test_json_formatter_with_exception():
    formatter = JSONFormatter()
    try:
        raise ValueError("Test error")
    except ValueError:
        import sys

        exc_info = sys.exc_info()

    record = logging.LogRecord(
        name="hematwoi.test",
        level=logging.ERROR,
        pathname="test.py",
        lineno=1,
        msg="Error occurred",
        args=(),
        exc_info=exc_info,
    )

    log_data = json.loads(formatter.format(record))

    assert log_data["exception"]["type"] == "ValueError"
    assert "Test error" in log_data["exception"]["message"]


def test_setup_logging(tmp_path):
    """Logging setup creates a rotating JSON log file under DATA_DIR."""
    config = BaseConfig()
    config.DATA_DIR = str(tmp_path)
    config.DEV_MODE = False

    logger = setup_logging(config)

    assert logger.name == "hematwoi"
    assert logger.level == logging.INFO
    assert len(logger.handlers) == 2  # Console + File

    log_file = tmp_path / "logs" / "hematwoi.log"
    assert log_file.exists()

    logger.warning("Test warning message")
    for line in log_file.read_text().strip().split("\n"):
        if line.strip():
            entry = json.loads(line)
            assert "timestamp" in entry
            assert "level" in entry


@pytest.mark.parametrize("dev_mode", [True, False])
def test_logging_levels_by_mode(tmp_path, dev_mode):
    config = BaseConfig()
    config.DATA_DIR = str(tmp_path)
    config.DEV_MODE = dev_mode

    logger = setup_logging(config)

    console_handler = next(
        handler
        for handler in logger.handlers
        if isinstance(handler, logging.StreamHandler)
        and not isinstance(handler, logging.handlers.RotatingFileHandler)
    )
    expected_level = logging.DEBUG if dev_mode else logging.WARNING
    assert console_handler.level == expected_level


def test_get_logger_namespaces():
    assert get_logger("module1").name == "hematwoi.module1"
    assert get_logger("hematwoi.services.debt_ledger").name == "hematwoi.services.debt_ledger"


def test_ledger_logs_rejections_with_context(ledger, user, caplog):
    with caplog.at_level(logging.INFO, logger="hematwoi"):
        with pytest.raises(NotFoundError):
            ledger.delete_debt(404, user_id=user.id)

    (record,) = [r for r in caplog.records if r.getMessage().startswith("Ledger operation rejected")]
    assert record.operation == "delete_debt"
    assert record.entity_id == 404
    assert record.user_id == user.id
    assert record.error_code == "not_found"


def test_store_failures_become_dependency_errors(test_config, caplog):
    def broken_factory():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    ledger = DebtLedger(broken_factory, config=test_config)

    with caplog.at_level(logging.ERROR, logger="hematwoi"):
        with pytest.raises(DependencyError) as excinfo:
            ledger.list_debts(user_id=1)

    assert "locked" not in excinfo.value.message
    assert excinfo.value.message == "Gagal memuat hutang"
    assert any(r.getMessage() == "Ledger operation failed in the store" for r in caplog.records)
