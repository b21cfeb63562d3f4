"""Models produced by the advisory checks and structured extraction."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class UrgencyLevel(str, Enum):
    """Urgency tiers by weighted score."""

    CRITICAL = "CRITICAL"  # 9-10
    HIGH = "HIGH"  # 7-8.9
    MEDIUM = "MEDIUM"  # 4-6.9
    LOW = "LOW"  # below 4

    @classmethod
    def from_score(cls, score: float) -> UrgencyLevel:
        if score >= 9:
            return cls.CRITICAL
        if score >= 7:
            return cls.HIGH
        if score >= 4:
            return cls.MEDIUM
        return cls.LOW


class ComplexityTier(str, Enum):
    """Complexity tiers used to choose and fill templates."""

    CUP_OF_TEA = "Cup of Tea"
    PIZZA = "Pizza"
    THREE_COURSE_MEAL = "3-Course Meal"


class UrgencyAssessment(BaseModel):
    """Weighted urgency from temporal, linguistic and business signals."""

    detected: bool = False
    score: float = Field(default=0.0, ge=0, le=10)
    level: UrgencyLevel = UrgencyLevel.LOW
    summary: Optional[str] = None
    temporal: float = Field(default=0.0, ge=0, le=10)
    linguistic: float = Field(default=0.0, ge=0, le=10)
    business: float = Field(default=0.0, ge=0, le=10)

    @property
    def imminent(self) -> bool:
        """Deadline is within a day regardless of tone."""
        return self.temporal >= 9

    @property
    def requires_callout(self) -> bool:
        return self.detected or self.imminent

    def callout_level(self) -> UrgencyLevel:
        if self.requires_callout and self.level in (UrgencyLevel.MEDIUM, UrgencyLevel.LOW):
            return UrgencyLevel.HIGH
        return self.level

    def to_fields(self) -> dict[str, Any]:
        """Flat urgency fields merged into extracted data."""
        return {
            "urgency": {
                "detected": self.detected,
                "score": self.score,
                "level": self.level.value,
                "summary": self.summary,
            },
            "urgency_detected": self.detected,
            "urgency_score": self.score,
            "urgency_level": self.level.value,
            "urgency_summary": self.summary,
        }


class ConflictType(str, Enum):
    """Factual contradiction kinds."""

    DURATION_CONTRADICTION = "duration_contradiction"
    PLATFORM_FORMAT = "platform_format"


class Conflict(BaseModel):
    """A factual contradiction found in the brief itself."""

    type: ConflictType
    emoji: str
    title: str
    message: str

    def callout_text(self) -> str:
        return f"**{self.title}**\n\n{self.message}"


class CompletenessFlag(BaseModel):
    """Soft advisory flag for a missing core field."""

    field: str
    severity: str = "medium"
    recommendation: str


class CompletenessAssessment(BaseModel):
    """Advisory completeness result; never blocks assembly."""

    complete: bool = True
    soft_flags: list[CompletenessFlag] = Field(default_factory=list)
    normal_tbds: list[str] = Field(default_factory=list)
    critical_missing: list[str] = Field(default_factory=list)


class NovelSection(BaseModel):
    """Emerging content type present in the brief but absent from the template."""

    name: str
    reason: str
    priority: int = 75


class SectionPriority(BaseModel):
    """Computed ordering weight for one section."""

    section: str
    priority: int
    reasoning: str = "Standard priority"


class SectionMatch(BaseModel):
    """Data found for a template heading and the key it consumed."""

    data: Any
    matched_key: str
    # Source fields folded into a smart aggregation
    consumed_keys: list[str] = Field(default_factory=list)

    @property
    def all_keys(self) -> list[str]:
        return [self.matched_key, *self.consumed_keys]


class PreflightAnalysis(BaseModel):
    """Pre-extraction sanity pass over the raw brief."""

    use_complexity: ComplexityTier = ComplexityTier.PIZZA
    detected_complexity: Optional[ComplexityTier] = None
    smart_defaults: dict[str, Any] = Field(default_factory=dict)
    conflicts: list[Conflict] = Field(default_factory=list)


class ExtractionResult(BaseModel):
    """Authoritative data for matching plus advisory metadata."""

    data: dict[str, Any] = Field(default_factory=dict)
    urgency: UrgencyAssessment = Field(default_factory=UrgencyAssessment)
    conflicts: list[Conflict] = Field(default_factory=list)
    completeness: CompletenessAssessment = Field(default_factory=CompletenessAssessment)
    novel_sections: list[NovelSection] = Field(default_factory=list)
    complexity: ComplexityTier = ComplexityTier.PIZZA
    used_fallback: bool = False
