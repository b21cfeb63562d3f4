"""
Conflict Detector - factual contradictions stated in the brief itself.

Only contradictions between facts are reported. Judgments about whether a
budget or timeline is adequate belong to the people running the request.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, Optional

from ..models.extraction import Conflict, ConflictType
from ..utils.logger import get_logger
from ..utils.text import brief_text
from .field_resolver import FieldResolver

logger = get_logger(__name__)

DURATION_PATTERN = re.compile(r"(\d+)\s*(seconds?|secs?|minutes?|mins?)\b", re.IGNORECASE)
VERTICAL_PLATFORMS = ["instagram", "tiktok", "reels", "stories"]
HORIZONTAL_PLATFORMS = ["youtube", "linkedin", "vimeo"]


def _canonical_unit(unit: str) -> str:
    return "min" if unit.lower().startswith("min") else "sec"


def find_durations(text: str) -> list[tuple[int, str, str]]:
    """``(amount, canonical unit, original mention)`` for each distinct duration."""
    distinct: dict[tuple[int, str], str] = {}
    for match in DURATION_PATTERN.finditer(text):
        key = (int(match.group(1)), _canonical_unit(match.group(2)))
        distinct.setdefault(key, match.group(0).lower())
    return [(amount, unit, mention) for (amount, unit), mention in distinct.items()]


class ConflictDetector:
    """Detects duration and platform-format contradictions."""

    def __init__(self, resolver: Optional[FieldResolver] = None):
        self.resolver = resolver or FieldResolver()

    def detect(self, brief: Mapping[str, Any]) -> list[Conflict]:
        conflicts: list[Conflict] = []

        platform_conflict = self._platform_conflict(brief)
        if platform_conflict:
            conflicts.append(platform_conflict)

        duration_conflict = self._duration_conflict(brief_text(brief))
        if duration_conflict:
            conflicts.append(duration_conflict)

        if conflicts:
            logger.info(f"Detected {len(conflicts)} factual conflicts: {[c.type.value for c in conflicts]}")
        return conflicts

    def _platform_conflict(self, brief: Mapping[str, Any]) -> Optional[Conflict]:
        platforms = self.resolver.resolve("platforms", brief, descend=True)
        if platforms is None:
            return None
        text = platforms if isinstance(platforms, str) else json.dumps(platforms, default=str)
        text = text.lower()

        has_vertical = any(keyword in text for keyword in VERTICAL_PLATFORMS)
        has_horizontal = any(keyword in text for keyword in HORIZONTAL_PLATFORMS)
        if not (has_vertical and has_horizontal):
            return None

        return Conflict(
            type=ConflictType.PLATFORM_FORMAT,
            emoji="📱",
            title="Multi-Format Requirement",
            message=(
                "This project includes platforms requiring different formats "
                "(vertical 9:16 for Instagram/TikTok and horizontal 16:9 for YouTube/LinkedIn). "
                "Multiple cuts will be delivered."
            ),
        )

    def _duration_conflict(self, text: str) -> Optional[Conflict]:
        durations = find_durations(text)
        if len(durations) < 2:
            return None

        mentions = ", ".join(mention for _, _, mention in durations)
        return Conflict(
            type=ConflictType.DURATION_CONTRADICTION,
            emoji="⏱️",
            title="Duration Clarification",
            message=f"Multiple durations mentioned in brief: {mentions}. Please confirm which is correct.",
        )
