import logging
from unittest.mock import MagicMock

import pytest

from game_catalog.logger import LogContext, log_error_with_context, log_with_stats, setup_logger


def test_setup_logger_is_idempotent():
    logger = setup_logger("game-catalog.test-idempotent", level=logging.DEBUG)
    again = setup_logger("game-catalog.test-idempotent")

    assert logger is again
    assert len(logger.handlers) == 1
    assert logger.propagate is False


def test_setup_logger_reads_level_from_env(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")

    logger = setup_logger("game-catalog.test-env-level")

    assert logger.level == logging.WARNING


def test_log_context_success_includes_fields():
    logger = MagicMock()

    with LogContext(logger, "IGDB import", target=5000):
        pass

    messages = [call[0][0] for call in logger.info.call_args_list]
    assert messages[0] == "IGDB import started (target=5000)"
    assert messages[1].startswith("IGDB import finished in ")
    assert messages[1].endswith("(target=5000)")


def test_log_context_does_not_suppress_errors():
    logger = MagicMock()

    with pytest.raises(RuntimeError):
        with LogContext(logger, "IGDB import"):
            raise RuntimeError("IGDB API error: 500")

    message = logger.error.call_args[0][0]
    assert message.startswith("IGDB import aborted after ")
    assert message.endswith("RuntimeError: IGDB API error: 500")


def test_log_with_stats_single_line():
    logger = MagicMock()

    log_with_stats(logger, {"batches": 3, "games_imported": 1500, "completed": True}, prefix="Import results")

    logger.info.assert_called_once_with("Import results: batches=3 games_imported=1500 completed=True")


def test_log_error_with_context():
    logger = MagicMock()

    log_error_with_context(logger, "Upsert", "companies, 500 games", ValueError("duplicate key"))

    logger.error.assert_called_once_with("Upsert failed [companies, 500 games]: ValueError: duplicate key")
