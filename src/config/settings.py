"""
Application settings and configuration

Uses pydantic-settings for type-safe configuration via environment variables.
All settings use SEQN_ prefix (e.g., SEQN_METADATA_INDENT=4).

Settings can also be loaded from a .env file in the project root.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application configuration via environment variables.

    Environment variables use SEQN_ prefix.

    Examples:
        SEQN_VERBOSITY=2
        SEQN_VALIDATE_TIME_TAGS=false
        SEQN_METADATA_INDENT=4
    """

    model_config = SettingsConfigDict(
        env_prefix="SEQN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Logging configuration
    verbosity: int = Field(
        default=0,
        description="Verbosity used by LOG() when no ProgramState is connected",
    )

    debug_mode: bool = Field(
        default=False,
        description="Build the grammar with lark debug output enabled",
    )

    # Extraction configuration
    validate_time_tags: bool = Field(
        default=True,
        description="Check A/R/E/G time tags against the time grammars while extracting",
    )

    # Time configuration
    decimal_precision: int = Field(
        default=6,
        ge=1,
        description="Maximum fractional-second digits accepted by calendar time parsing",
    )

    # Serialization configuration
    metadata_indent: int = Field(
        default=2,
        ge=0,
        description="JSON indentation for @METADATA values",
    )

    def metadataIndent_get(self) -> int | None:
        """
        Indentation to hand to json.dumps for metadata values.

        An indent of zero means compact single-line JSON, which json.dumps
        spells as ``None`` rather than ``0`` (``0`` still inserts newlines).

        Returns:
            Indent width, or None for compact output
        """
        return self.metadata_indent or None


# Singleton instance - import this in your code
appsettings = AppSettings()
