"""Collaborator interfaces consumed by the engine."""

from .reasoner import CopilotSessionReasoner, Reasoner
from .template_cache import TemplateCache, TemplateSource

__all__ = [
    "CopilotSessionReasoner",
    "Reasoner",
    "TemplateCache",
    "TemplateSource",
]
