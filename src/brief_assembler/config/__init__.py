"""Configuration for the brief assembler."""

from .settings import (
    AssemblySettings,
    ReasonerSettings,
    RecordSettings,
    Settings,
    TemplateCacheSettings,
    get_settings,
)

__all__ = [
    "AssemblySettings",
    "ReasonerSettings",
    "RecordSettings",
    "Settings",
    "TemplateCacheSettings",
    "get_settings",
]
