# =============================================================================
# tests/unit/test_logging.py
# Unit Tests for logging setup
# =============================================================================

import logging

import pytest

from shopfloor_core.logging import LogContext, get_logger, setup_logging


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestSetupLogging:

    def test_level_by_name(self, restore_root_logging):
        setup_logging("debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_unknown_level_name_falls_back_to_info(self, restore_root_logging):
        setup_logging("chatty")
        assert logging.getLogger().level == logging.INFO

    def test_daily_file_in_log_dir(self, tmp_path, restore_root_logging):
        setup_logging(logging.INFO, log_dir=tmp_path / "logs")
        get_logger("shopfloor_core.test").info("written to file")

        for handler in logging.getLogger().handlers:
            handler.flush()
        files = list((tmp_path / "logs").glob("shopfloor_*.log"))
        assert len(files) == 1
        assert "written to file" in files[0].read_text()

    def test_supabase_stack_quieted(self, restore_root_logging):
        setup_logging()
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("postgrest").level == logging.WARNING


class TestLogContext:

    def test_success_logged_with_timing(self, caplog):
        logger = get_logger("shopfloor_core.test")
        with caplog.at_level(logging.INFO, logger="shopfloor_core.test"):
            with LogContext(logger, "Saving job"):
                pass

        assert "Saving job: ok in" in caplog.text

    def test_failure_logged_and_reraised(self, caplog):
        logger = get_logger("shopfloor_core.test")
        with caplog.at_level(logging.INFO, logger="shopfloor_core.test"):
            with pytest.raises(RuntimeError):
                with LogContext(logger, "Saving job"):
                    raise RuntimeError("disk full")

        assert "Saving job: failed after" in caplog.text
        assert "disk full" in caplog.text
