"""Logging setup for an authkeeper instance"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from .config import Settings

LOG_FORMAT = '%(asctime)s.%(msecs)03d - %(levelname)s - %(name)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Sweeps get their own file so deletions can be audited apart from store traffic
REAPER_LOGGER = "authkeeper.backend.reaper"


class ProjectOnlyFilter(logging.Filter):
    """Pass records from authkeeper.* loggers only"""

    def filter(self, record):
        return record.name.startswith('authkeeper.')


def _rotating_handler(
    path: Path,
    level: int,
    settings: Settings,
    formatter: logging.Formatter,
) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        filename=path,
        when=settings.logging_when,
        backupCount=settings.logging_backup_count,
        encoding='utf-8',
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(instance_path: Path, settings: Settings) -> None:
    """Route authkeeper logs to rotating files under `<instance>/logs`

    Files:
    - debug.log: DEBUG+ from authkeeper.* loggers
    - info.log: INFO+ from every logger
    - error.log: ERROR+ from every logger
    - reaper.log: DEBUG+ from the unverified-account reaper only

    The console gets `settings.logging_level` and above. Rotation interval
    and retained backups come from `settings.logging_when` and
    `settings.logging_backup_count`.

    Args:
        instance_path: Path to the authkeeper instance directory
        settings: Loaded instance settings
    """
    logs_dir = instance_path / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    debug_handler = _rotating_handler(
        logs_dir / "debug.log", logging.DEBUG, settings, formatter
    )
    debug_handler.addFilter(ProjectOnlyFilter())

    reaper_handler = _rotating_handler(
        logs_dir / "reaper.log", logging.DEBUG, settings, formatter
    )
    reaper_handler.addFilter(logging.Filter(REAPER_LOGGER))

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.getLevelName(settings.logging_level.upper()))
    console_handler.setFormatter(formatter)

    for handler in (
        debug_handler,
        _rotating_handler(logs_dir / "info.log", logging.INFO, settings, formatter),
        _rotating_handler(logs_dir / "error.log", logging.ERROR, settings, formatter),
        reaper_handler,
        console_handler,
    ):
        root_logger.addHandler(handler)

    # apscheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging initialized for instance {instance_path} "
        f"(rotate={settings.logging_when}, keep={settings.logging_backup_count})"
    )
