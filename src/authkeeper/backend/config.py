"""Configuration management module"""
import os
from pathlib import Path
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
    PydanticBaseSettingsSource,
    TomlConfigSettingsSource,
)


def get_instance_path() -> Path:
    """Get the current instance path from environment or default"""
    instance_path = os.environ.get("AUTHKEEPER_INSTANCE_PATH")
    if instance_path:
        return Path(instance_path).expanduser()
    return Path.home() / ".authkeeper"


def get_config_file() -> Path | None:
    """Get config file path if it exists"""
    instance_path = get_instance_path()
    config_file = instance_path / "config.toml"
    if config_file.exists():
        return config_file
    return None


class Settings(BaseSettings):
    """System configuration settings"""

    # Database configuration
    # Connection string, read from DATABASE_URL. Left unset, the
    # bootstrap fails and every store operation raises ConnectionError.
    database_url: str | None = None
    database_name: str = "authkeeper"
    database_echo: bool = False

    # Password hashing configuration
    bcrypt_rounds: int = 10

    # Verification code configuration
    verification_code_expire_minutes: int = 5
    reset_password_expire_minutes: int = 15

    # Unverified account cleanup configuration
    unverified_retention_minutes: int = 30
    cleanup_cron: str = "*/30 * * * *"

    # Logging configuration
    logging_level: str = "INFO"
    # TimedRotatingFileHandler `when` value and number of rotated files kept
    logging_when: str = "midnight"
    logging_backup_count: int = 30

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include TOML file"""
        config_file = get_config_file()
        if config_file:
            toml_settings = TomlConfigSettingsSource(
                settings_cls, toml_file=config_file
            )
            return (
                init_settings,
                env_settings,
                dotenv_settings,
                toml_settings,
                file_secret_settings,
            )
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )


def get_settings(**overrides) -> Settings:
    """Build settings from all sources

    Args:
        **overrides: Values that take precedence over every other source

    Returns:
        Settings instance
    """
    return Settings(**overrides)
