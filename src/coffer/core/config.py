"""Core configuration - centralized config for the coffer package.

All environment-based configuration flows through this module. Only the
CLI reads it; library entry points receive paths, the product tag and the
chunk size as explicit arguments.

Usage:
    from coffer.core.config import get_config
    config = get_config()

    identity_path = config.identity_file
    log_level = config.log_level
"""

from __future__ import annotations

from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PRODUCT = "COFFER"
DEFAULT_CHUNK_SIZE = 1024
MIN_CHUNK_SIZE = 16

_DEFAULT_HOME = Path.home() / ".coffer"


class CofferSettings(BaseSettings):
    """Configuration settings for Coffer.

    Settings can be configured via environment variables with the
    COFFER_ prefix, or from a ``.env`` file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # LOCAL STORAGE
    # ==========================================================================

    identity_path: str = Field(
        default=str(_DEFAULT_HOME / "identity.json"),
        description="Path to the local identity (private key + signed profile)",
        validation_alias="COFFER_IDENTITY",
    )
    contacts_path: str = Field(
        default=str(_DEFAULT_HOME / "contacts.json"),
        description="Path to the contact address book",
        validation_alias="COFFER_CONTACTS",
    )
    editor: str = Field(
        default="vi",
        description="Editor command used by 'coffer edit'",
        validation_alias=AliasChoices("COFFER_EDITOR", "EDITOR"),
    )

    # ==========================================================================
    # ENVELOPE FORMAT
    # ==========================================================================

    product: str = Field(
        default=DEFAULT_PRODUCT,
        description="Product tag used in envelope sentinels and metadata line prefixes",
        validation_alias="COFFER_PRODUCT",
    )
    chunk_size: int = Field(
        default=DEFAULT_CHUNK_SIZE,
        description="Plaintext bytes per body line when encrypting",
        validation_alias="COFFER_CHUNK_SIZE",
    )

    # ==========================================================================
    # LOGGING SETTINGS
    # ==========================================================================

    log_level: str = Field(
        default="WARNING",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="COFFER_LOG_LEVEL",
    )
    log_format: str = Field(
        default="",
        description="Log format: 'json', 'text', or '' (auto-detect)",
        validation_alias="COFFER_LOG_FORMAT",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (optional)",
        validation_alias="COFFER_LOG_FILE",
    )

    @field_validator("product")
    @classmethod
    def _check_product(cls, value: str) -> str:
        value = value.strip()
        if not value or "\n" in value:
            raise ValueError("product tag must be a non-empty single line")
        return value

    @field_validator("chunk_size")
    @classmethod
    def _check_chunk_size(cls, value: int) -> int:
        if value < MIN_CHUNK_SIZE:
            raise ValueError(f"chunk_size must be at least {MIN_CHUNK_SIZE}")
        return value

    # ==========================================================================
    # COMPUTED PROPERTIES
    # ==========================================================================

    @property
    def identity_file(self) -> Path:
        """Identity path with ``~`` expanded."""
        return Path(self.identity_path).expanduser()

    @property
    def contacts_file(self) -> Path:
        """Contacts path with ``~`` expanded."""
        return Path(self.contacts_path).expanduser()


# ==========================================================================
# GLOBAL CONFIG INSTANCE (lazy loaded)
# ==========================================================================

_config: CofferSettings | None = None


def get_config() -> CofferSettings:
    """Get the global configuration instance.

    Returns:
        The singleton CofferSettings instance.
    """
    global _config
    if _config is None:
        _config = CofferSettings()
    return _config


def set_config(config: CofferSettings) -> None:
    """Replace the global configuration (called by the CLI after parsing flags)."""
    global _config
    _config = config


def clear_config_cache() -> None:
    """Clear the config cache. Useful for testing."""
    global _config
    _config = None
