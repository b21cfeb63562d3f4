"""
Pre-flight analysis run before extraction.

Re-classifies complexity from content signals, fills silent smart defaults
for well-known platforms and tones, and collects factual conflicts. Nothing
here is shown on the page except the conflicts.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..models.extraction import ComplexityTier, PreflightAnalysis
from ..utils.logger import get_progress_logger
from ..utils.text import brief_text
from .conflict_detector import ConflictDetector
from .field_resolver import FieldResolver

progress = get_progress_logger(__name__, "Preflight")

COMPLEXITY_SIGNALS: dict[ComplexityTier, dict[str, list[str]]] = {
    ComplexityTier.CUP_OF_TEA: {
        "positive": ["quick", "simple", "basic", "fast", "easy", "under 30", "tiktok ready", "no edit", "raw post"],
        "negative": ["cinema", "color grade", "multi-day", "stakeholder", "high budget", "extensive", "campaign"],
    },
    ComplexityTier.PIZZA: {
        "positive": ["branding", "logo", "music", "platform-specific", "color grade", "sound design"],
        "negative": ["cinema camera", "multi-stakeholder", "extensive direction", "high-end", "full production"],
    },
    ComplexityTier.THREE_COURSE_MEAL: {
        "positive": [
            "cinema", "full production", "multi-stakeholder", "extensive",
            "high-end", "campaign", "multiple deliverables",
        ],
        "negative": [],
    },
}

PLATFORM_DEFAULTS: dict[str, dict[str, str]] = {
    "instagram": {"platform": "Instagram", "aspect_ratio": "9:16", "max_duration": "90s", "format": "Reels"},
    "tiktok": {"platform": "TikTok", "aspect_ratio": "9:16", "max_duration": "3min", "format": "TikTok"},
    "youtube": {"platform": "YouTube", "aspect_ratio": "16:9", "format": "YouTube"},
    "linkedin": {"platform": "LinkedIn", "aspect_ratio": "1:1", "max_duration": "10min", "format": "LinkedIn"},
    "facebook": {"platform": "Facebook", "aspect_ratio": "1:1", "format": "Facebook"},
    "twitter": {"platform": "Twitter/X", "aspect_ratio": "16:9", "max_duration": "2min20s", "format": "Twitter/X"},
}
# Keys filled from a platform match when the brief lacks them
PLATFORM_DEFAULT_KEYS = ("platform", "aspect_ratio", "format")

TONE_DEFAULTS: list[tuple[list[str], str, str]] = [
    (["quick", "fast", "simple"], "editing_style", "Fast turnaround - basic cuts and transitions"),
    (["professional", "high-end", "premium"], "quality_level", "Premium production quality"),
    (["social media", "social post"], "captions_needed", "Yes (for accessibility)"),
]


class PreflightAnalyzer:
    """Sanity pass over the raw brief."""

    def __init__(
        self,
        resolver: Optional[FieldResolver] = None,
        conflict_detector: Optional[ConflictDetector] = None,
    ):
        self.resolver = resolver or FieldResolver()
        self.conflict_detector = conflict_detector or ConflictDetector(self.resolver)

    def analyze(
        self,
        brief: Mapping[str, Any],
        provided_complexity: Optional[ComplexityTier] = None,
    ) -> PreflightAnalysis:
        progress.start_operation("preflight")
        provided = provided_complexity or self._complexity_from_brief(brief)

        detected = self.detect_complexity(brief)
        use = provided
        if detected is not None and detected != provided:
            progress.info(f"Complexity adjusted from {provided.value} to {detected.value}")
            use = detected

        analysis = PreflightAnalysis(
            use_complexity=use,
            detected_complexity=detected,
            smart_defaults=self.smart_defaults(brief),
            conflicts=self.conflict_detector.detect(brief),
        )
        progress.end_operation(
            "preflight",
            details=f"complexity={use.value}, defaults={len(analysis.smart_defaults)}, "
            f"conflicts={len(analysis.conflicts)}",
        )
        return analysis

    def detect_complexity(self, brief: Mapping[str, Any]) -> Optional[ComplexityTier]:
        """Highest-scoring tier if its score is positive, otherwise None."""
        text = brief_text(brief)
        scores: dict[ComplexityTier, int] = {}
        for tier, signals in COMPLEXITY_SIGNALS.items():
            score = sum(1 for signal in signals["positive"] if signal in text)
            score -= sum(2 for signal in signals["negative"] if signal in text)
            scores[tier] = score

        best = max(scores, key=lambda tier: scores[tier])
        return best if scores[best] > 0 else None

    def smart_defaults(self, brief: Mapping[str, Any]) -> dict[str, Any]:
        """Defaults for facts the brief implies but does not state."""
        text = brief_text(brief)
        defaults: dict[str, Any] = {}

        for keyword, platform_defaults in PLATFORM_DEFAULTS.items():
            if keyword not in text:
                continue
            for key in PLATFORM_DEFAULT_KEYS:
                if key in platform_defaults and not self._has(brief, key):
                    defaults[key] = platform_defaults[key]
            progress.debug(f"Platform defaults from {keyword}", defaults=defaults)
            break

        for keywords, key, value in TONE_DEFAULTS:
            if any(k in text for k in keywords) and not self._has(brief, key):
                defaults[key] = value

        return defaults

    def _has(self, brief: Mapping[str, Any], key: str) -> bool:
        value = self.resolver.resolve(key, brief, descend=True)
        return value is not None and value != ""

    def _complexity_from_brief(self, brief: Mapping[str, Any]) -> ComplexityTier:
        value = self.resolver.resolve("complexity_level", brief)
        if isinstance(value, str):
            for tier in ComplexityTier:
                if tier.value.lower() == value.strip().lower():
                    return tier
        return ComplexityTier.PIZZA
