"""Tests for logging setup"""
import logging
from logging.handlers import TimedRotatingFileHandler

import pytest

from authkeeper.backend.config import Settings
from authkeeper.backend.logging import ProjectOnlyFilter, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def flush_all():
    for handler in logging.getLogger().handlers:
        handler.flush()


def test_setup_logging_creates_log_files(tmp_path, restore_root_logger):
    setup_logging(tmp_path, Settings(logging_level="DEBUG"))
    logging.getLogger("authkeeper.backend.reaper").info("sweep done")

    logs_dir = tmp_path / "logs"
    for name in ("debug.log", "info.log", "error.log", "reaper.log"):
        assert (logs_dir / name).exists()
    assert len(logging.getLogger().handlers) == 5

    flush_all()
    assert "sweep done" in (logs_dir / "info.log").read_text()
    assert "sweep done" in (logs_dir / "debug.log").read_text()


def test_reaper_log_only_holds_reaper_records(tmp_path, restore_root_logger):
    setup_logging(tmp_path, Settings())
    logging.getLogger("authkeeper.backend.reaper").info("removed 3 accounts")
    logging.getLogger("authkeeper.backend.store").info("created user 1")

    flush_all()
    reaper_log = (tmp_path / "logs" / "reaper.log").read_text()
    assert "removed 3 accounts" in reaper_log
    assert "created user 1" not in reaper_log
    assert "created user 1" in (tmp_path / "logs" / "info.log").read_text()


def test_rotation_follows_settings(tmp_path, restore_root_logger):
    setup_logging(tmp_path, Settings(logging_when="H", logging_backup_count=7))

    file_handlers = [
        h for h in logging.getLogger().handlers
        if isinstance(h, TimedRotatingFileHandler)
    ]
    assert len(file_handlers) == 4
    for handler in file_handlers:
        assert handler.when == "H"
        assert handler.backupCount == 7


def test_project_only_filter():
    project_filter = ProjectOnlyFilter()

    def record(name):
        return logging.LogRecord(name, logging.DEBUG, __file__, 1, "msg", None, None)

    assert project_filter.filter(record("authkeeper.backend.store"))
    assert not project_filter.filter(record("sqlalchemy.engine"))
