"""Configuration module for the RouterOS API client.

Implements Pydantic v2 Settings for configuration management with support for:
- Environment variables (ROUTEROS_API_* prefix)
- YAML/TOML configuration files
- Command-line argument overrides
- Fail-fast validation

Configuration priority (later overrides earlier):
1. Built-in defaults
2. Configuration file (YAML/TOML)
3. Environment variables
4. Command-line arguments / explicit Connection arguments
"""

import codecs
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 8728
DEFAULT_USERNAME = "admin"
DEFAULT_PASSWORD = ""
DEFAULT_CONN_TIMEOUT = 60.0
DEFAULT_CMD_TIMEOUT = 60.0


class Settings(BaseSettings):
    """Client configuration with sensible defaults.

    Example:
        # Load from environment only
        settings = Settings()

        # Override specific values
        settings = Settings(host="192.168.88.1", cmd_timeout=10)
    """

    model_config = SettingsConfigDict(
        env_prefix="ROUTEROS_API_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Device Connection
    # ========================================

    host: str | None = Field(default=None, description="RouterOS device hostname or IP")

    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535, description="API TCP port")

    username: str = Field(default=DEFAULT_USERNAME, description="RouterOS username")

    password: str = Field(default=DEFAULT_PASSWORD, description="RouterOS password")

    conn_timeout: float = Field(
        default=DEFAULT_CONN_TIMEOUT, gt=0, description="TCP connect timeout in seconds"
    )

    cmd_timeout: float = Field(
        default=DEFAULT_CMD_TIMEOUT,
        gt=0,
        description="Maximum seconds to wait for one complete reply sentence",
    )

    login_method: Literal["challenge", "plain", "auto"] = Field(
        default="challenge", description="Login handshake (challenge: pre-6.43, plain: 6.43+)"
    )

    encoding: str = Field(default="utf-8", description="Text encoding of API words")

    # ========================================
    # Logging
    # ========================================

    debug: bool = Field(default=False, description="Enable debug mode with sentence logging")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING", description="Logging level"
    )

    log_format: Literal["json", "text"] = Field(default="text", description="Log output format")

    log_file: str | None = Field(default=None, description="Optional JSON log file")

    # ========================================
    # Validators
    # ========================================

    @field_validator("encoding")
    @classmethod
    def validate_encoding(cls, v: str) -> str:
        """Validate that the encoding names a known codec."""
        try:
            codecs.lookup(v)
        except LookupError as e:
            raise ValueError(f"Unknown encoding: {v}") from e
        return v

    @model_validator(mode="after")
    def validate_debug_level(self) -> "Settings":
        """Debug mode always logs at DEBUG level."""
        if self.debug:
            self.log_level = "DEBUG"
        return self

    # ========================================
    # Helper Methods
    # ========================================

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    def to_dict(self) -> dict:
        """Convert settings to dictionary, masking secrets."""
        data = self.model_dump()
        if data.get("password"):
            data["password"] = "***REDACTED***"
        return data


# ========================================
# Global Settings Instance
# ========================================

_settings: Settings | None = None


def get_settings() -> Settings:
    """Get global settings instance (singleton).

    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings | None) -> None:
    """Set global settings instance (None resets to lazy defaults).

    Args:
        settings: Settings instance to use globally
    """
    global _settings
    _settings = settings


def load_settings_from_file(config_file: Path | str) -> Settings:
    """Load settings from YAML or TOML configuration file.

    Args:
        config_file: Path to configuration file

    Returns:
        Settings from the file, with environment variables taking precedence

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file format is invalid

    Example:
        settings = load_settings_from_file("config/lab.yaml")
        set_settings(settings)
    """
    config_path = Path(config_file)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    if suffix in [".yaml", ".yml"]:
        import yaml

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}
    elif suffix == ".toml":
        import tomllib

        with open(config_path, "rb") as f:
            config_data = tomllib.load(f)
    else:
        raise ValueError(f"Unsupported config file format: {suffix}. Use .yaml, .yml, or .toml")

    if not isinstance(config_data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    # Environment (and .env) values outrank the file
    from_env = Settings()
    env_values = from_env.model_dump(include=from_env.model_fields_set)

    return Settings(**{**config_data, **env_values})
