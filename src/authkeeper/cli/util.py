"""CLI utility functions"""

import os
from pathlib import Path

from ..backend.config import Settings, get_settings


def get_instance_path(path: str | None = None) -> Path:
    """Get instance path, default to ~/.authkeeper

    Args:
        path: Custom path (relative or absolute), None for default

    Returns:
        Resolved absolute path
    """
    if path is None:
        return Path.home() / ".authkeeper"
    return Path(path).resolve()


def is_initialized(instance_path: Path) -> bool:
    """Check if instance is initialized

    Args:
        instance_path: Instance directory path

    Returns:
        True if config.toml exists
    """
    return (instance_path / "config.toml").exists()


def load_settings(instance_path: Path) -> Settings:
    """Load settings for an instance

    Points the settings loader at the instance's config.toml; environment
    variables and .env still take precedence over the file.

    Args:
        instance_path: Instance directory path

    Returns:
        Settings instance
    """
    os.environ["AUTHKEEPER_INSTANCE_PATH"] = str(instance_path)
    return get_settings()
