"""
Section Prioritizer - orders sections by what matters most in this brief.

Reorders, never filters. Used for summary ordering; document emission
follows template order.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping, Optional

from ..config import get_settings
from ..models.extraction import Conflict, ConflictType, NovelSection, SectionPriority
from ..utils.logger import get_progress_logger
from ..utils.text import brief_text, clean_heading

progress = get_progress_logger(__name__, "Prioritizer")

DEFAULT_PRIORITIES: dict[str, int] = {
    "Raw Brief": 100,
    "Brief Details": 90,
    "Key Details": 80,
    "Technical Specifications": 70,
    "Creative Direction": 60,
    "Production & Logistics": 50,
    "Notes & Considerations": 40,
    "Additional Information": 10,
}
BASE_PRIORITY = 50

URGENCY_BOOST = 30
CONFLICT_BOOST = 20
BUDGET_BOOST = 25
NOVEL_BOOST = 15

URGENCY_KEYWORDS = ["deadline", "timeline", "delivery", "critical", "requirements", "key details"]
BUDGET_HEADING_KEYWORDS = ["budget", "scope", "deliverable", "production"]
BUDGET_CONSTRAINT_TERMS = ["limited", "tight", "constraint", "only £", "only $"]

# Headings that carry the facts a conflict type is about
CONFLICT_HEADING_KEYWORDS: dict[ConflictType, list[str]] = {
    ConflictType.DURATION_CONTRADICTION: ["timeline", "duration", "technical", "deliverable"],
    ConflictType.PLATFORM_FORMAT: ["platform", "format", "technical", "deliverable"],
}

EMERGING_TYPES: list[tuple[list[str], str]] = [
    (["nft", "web3", "blockchain", "crypto"], "🌐 Web3 & Blockchain Requirements"),
    (["ar", "augmented reality", "ar filter"], "🥽 AR/XR Requirements"),
    (["ai generated", "midjourney", "dall-e", "generative"], "🤖 AI-Generated Content Specs"),
    (["podcast", "audio series", "voice"], "🎙️ Audio Production Requirements"),
    (["livestream", "live stream", "streaming"], "📡 Live Streaming Requirements"),
    (["ugc", "user generated content", "creator content"], "👥 UGC Content Guidelines"),
]
NOVEL_PRIORITY = 75


def _mentions(text: str, keyword: str) -> bool:
    return re.search(rf"(?<![a-z0-9]){re.escape(keyword)}(?![a-z0-9])", text) is not None


class SectionPrioritizer:
    """Computes a priority per section heading and sorts descending."""

    def __init__(self, urgency_threshold: Optional[float] = None):
        self.urgency_threshold = (
            urgency_threshold
            if urgency_threshold is not None
            else get_settings().assembly.urgency_threshold
        )

    def prioritize(
        self,
        headings: Iterable[str],
        brief: Mapping[str, Any],
        urgency_score: float = 0.0,
        conflicts: Iterable[Conflict] = (),
        novel_sections: Iterable[str] = (),
    ) -> list[SectionPriority]:
        conflicts = list(conflicts)
        novel = set(novel_sections)
        budget_constrained = self.detects_budget_constraint(brief)

        priorities = []
        for heading in headings:
            priority = self.base_priority(heading)
            reasons = []

            if urgency_score >= self.urgency_threshold and self.is_urgency_relevant(heading):
                priority += URGENCY_BOOST
                reasons.append("Urgency-critical section")
            if conflicts and self.is_conflict_relevant(heading, conflicts):
                priority += CONFLICT_BOOST
                reasons.append("Contains flagged conflicts")
            if budget_constrained and self.is_budget_relevant(heading):
                priority += BUDGET_BOOST
                reasons.append("Budget-sensitive section")
            if heading in novel:
                priority += NOVEL_BOOST
                reasons.append("Novel content type requiring attention")

            priorities.append(
                SectionPriority(
                    section=heading,
                    priority=priority,
                    reasoning=", ".join(reasons) or "Standard priority",
                )
            )

        # Stable sort keeps template order among equal priorities
        priorities.sort(key=lambda p: p.priority, reverse=True)
        for p in priorities[:5]:
            progress.debug(f"{p.section}: {p.priority} ({p.reasoning})")
        return priorities

    def base_priority(self, heading: str) -> int:
        normalized = clean_heading(heading).lower()
        for name, priority in DEFAULT_PRIORITIES.items():
            if clean_heading(name).lower() in normalized:
                return priority
        return BASE_PRIORITY

    def is_urgency_relevant(self, heading: str) -> bool:
        lowered = heading.lower()
        return any(keyword in lowered for keyword in URGENCY_KEYWORDS)

    def is_conflict_relevant(self, heading: str, conflicts: list[Conflict]) -> bool:
        lowered = heading.lower()
        for conflict in conflicts:
            keywords = CONFLICT_HEADING_KEYWORDS.get(conflict.type, [])
            if any(keyword in lowered for keyword in keywords):
                return True
            # Types named after a heading concept match that heading directly
            if any(word in lowered and word in conflict.type.value for word in ("budget", "timeline", "scope")):
                return True
        return False

    def detects_budget_constraint(self, brief: Mapping[str, Any]) -> bool:
        text = brief_text(brief)
        return "budget" in text and any(term in text for term in BUDGET_CONSTRAINT_TERMS)

    def is_budget_relevant(self, heading: str) -> bool:
        lowered = heading.lower()
        return any(keyword in lowered for keyword in BUDGET_HEADING_KEYWORDS)

    def identify_novel_sections(
        self,
        brief: Mapping[str, Any],
        template_sections: Iterable[str],
    ) -> list[NovelSection]:
        """Emerging content types the brief mentions but the template lacks."""
        text = brief_text(brief)
        existing = [clean_heading(s).lower() for s in template_sections]

        novel = []
        for keywords, name in EMERGING_TYPES:
            if not any(_mentions(text, keyword) for keyword in keywords):
                continue
            bare_name = clean_heading(name).lower()
            if any(bare_name in section for section in existing):
                continue
            novel.append(NovelSection(name=name, reason=f"Brief mentions {keywords[0]} content", priority=NOVEL_PRIORITY))
            progress.info(f"Novel section identified: {name}")
        return novel
