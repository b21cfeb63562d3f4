"""
Configuration management using Pydantic Settings.
Loads settings from environment variables and .env files.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReasonerSettings(BaseSettings):
    """External reasoning service configuration."""

    model_config = SettingsConfigDict(env_prefix="REASONER_")

    model: str = Field(default="gpt-5", description="Model requested from the reasoning session")
    timeout: int = Field(default=300, description="Seconds to wait for a single completion")
    max_prompt_tokens: int = Field(
        default=24000, description="Prompts above this estimate are truncated"
    )


class AssemblySettings(BaseSettings):
    """Document assembly limits and matching thresholds."""

    model_config = SettingsConfigDict(env_prefix="ASSEMBLY_")

    max_chars_per_block: int = Field(default=1900, description="Max characters in one text block")
    max_toggle_depth: int = Field(
        default=2, description="Depth at which nested objects are flattened inline"
    )
    max_toggle_children: int = Field(default=100, description="Max children per collapsible group")
    organize_min_fields: int = Field(
        default=3, description="Minimum object fields before delegated organization is tried"
    )
    similarity_threshold: float = Field(default=0.7, description="Levenshtein similarity gate")
    urgency_threshold: float = Field(default=7.0, description="Score at which urgency is detected")


class TemplateCacheSettings(BaseSettings):
    """Template cache configuration."""

    model_config = SettingsConfigDict(env_prefix="TEMPLATE_CACHE_")

    ttl_seconds: int = Field(default=900, description="Cache entry lifetime (15 minutes)")


class RecordSettings(BaseSettings):
    """Structured-record creation configuration."""

    model_config = SettingsConfigDict(env_prefix="RECORD_")

    max_corrections: int = Field(default=2, description="Self-correction rounds before failing")
    default_assignee_id: Optional[str] = Field(
        default=None, description="Assignee used by the fallback property mapping"
    )


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    log_level: str = Field(default="INFO", description="Logging level")

    reasoner: ReasonerSettings = Field(default_factory=ReasonerSettings)
    assembly: AssemblySettings = Field(default_factory=AssemblySettings)
    template_cache: TemplateCacheSettings = Field(default_factory=TemplateCacheSettings)
    record: RecordSettings = Field(default_factory=RecordSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v.upper()


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
