"""
pgsandbox Configuration Management

Uses Pydantic v2 BaseSettings for type-safe configuration loaded from
DB_* environment variables and an optional .env file.
"""

import logging
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import quote

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError

ENV_PREFIX = "DB_"


class SandboxSettings(BaseSettings):
    """
    Connection settings for the template database server.

    Configuration priority:
    1. Environment variables (DB_*)
    2. .env file (or the config file passed to get_settings)
    3. Default values

    host, port, username, password and database have no defaults;
    they describe the server and the template to clone.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(description="PostgreSQL host")
    port: int = Field(ge=1, le=65535, description="PostgreSQL port")
    username: str = Field(description="Role used for CREATE/DROP DATABASE")
    password: str = Field(description="Password for the role")
    database: str = Field(description="Template database cloned for each test file")

    system_database: str = Field(
        default="postgres",
        description="Maintenance database the administrative connection uses",
    )

    connect_timeout: float = Field(
        default=10.0,
        gt=0,
        le=300.0,
        description="Timeout for opening the administrative connection (seconds)",
    )

    application_name: str = Field(
        default="pgsandbox",
        description="application_name reported by administrative connections",
    )

    rollback_on_failure: bool = Field(
        default=True,
        description="Drop the clone and close the connection when setup fails midway",
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @field_validator("host", "username", "database", "system_database")
    @classmethod
    def validate_not_blank(cls, v):
        if not v.strip():
            raise ValueError("must not be empty")
        return v

    def dsn(self, database: Optional[str] = None) -> str:
        """Build a DSN for the given database (the system database by default)."""
        target = database or self.system_database
        user = quote(self.username, safe="")
        password = quote(self.password, safe="")
        return f"postgresql://{user}:{password}@{self.host}:{self.port}/{target}"

    def connection_environ(self, database: Optional[str] = None) -> Dict[str, str]:
        """DB_* variables a test process needs to reach the given database."""
        return {
            f"{ENV_PREFIX}HOST": self.host,
            f"{ENV_PREFIX}PORT": str(self.port),
            f"{ENV_PREFIX}USERNAME": self.username,
            f"{ENV_PREFIX}PASSWORD": self.password,
            f"{ENV_PREFIX}DATABASE": database or self.database,
        }

    def connect_kwargs(self, database: Optional[str] = None) -> dict:
        """Keyword arguments for asyncpg.connect()."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.username,
            "password": self.password,
            "database": database or self.system_database,
            "timeout": self.connect_timeout,
            "server_settings": {"application_name": self.application_name},
        }


# Global settings instance
_settings: Optional[SandboxSettings] = None


def _setup_logging(settings: SandboxSettings) -> None:
    logging.getLogger("pgsandbox").setLevel(getattr(logging, settings.log_level))


def get_settings(
    config_file: Optional[Path] = None, reload: bool = False
) -> SandboxSettings:
    """
    Get pgsandbox settings with caching.

    Args:
        config_file: Optional path to an env file
        reload: Force reload settings from environment

    Returns:
        SandboxSettings instance

    Raises:
        ConfigurationError: If a required setting is missing or invalid
    """
    global _settings

    if _settings is None or reload:
        try:
            if config_file and config_file.exists():
                _settings = SandboxSettings(_env_file=str(config_file))
            else:
                _settings = SandboxSettings()
        except ValidationError as e:
            fields = [
                ENV_PREFIX + ".".join(str(part) for part in err["loc"]).upper()
                for err in e.errors()
            ]
            reasons = "; ".join(
                f"{field}: {err['msg']}" for field, err in zip(fields, e.errors())
            )
            raise ConfigurationError(fields, reasons) from e

        _setup_logging(_settings)

    return _settings


def reload_settings(config_file: Optional[Path] = None) -> SandboxSettings:
    """Force reload settings from environment/config file."""
    return get_settings(config_file=config_file, reload=True)
