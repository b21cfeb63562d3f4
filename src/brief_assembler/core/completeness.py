"""Completeness Checker - soft advisory flags for missing core fields."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..models.extraction import CompletenessAssessment, CompletenessFlag, ComplexityTier
from ..utils.logger import get_logger
from .field_resolver import FieldResolver

logger = get_logger(__name__)

CORE_FIELDS = ["project_name", "deliverables", "timeline"]

LABELS = {
    "user_id": "User ID",
    "project_name": "Project Name",
    "raw_footage": "Raw Footage",
    "color_grading": "Color Grading",
    "music_preference": "Music Preference",
    "branding_elements": "Branding Elements",
    "shot_list": "Shot List",
    "budget_breakdown": "Budget Breakdown",
}


def field_label(key: str) -> str:
    label = LABELS.get(key.lower())
    if label:
        return label
    return " ".join(w[:1].upper() + w[1:] for w in key.lower().replace("_", " ").split())


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip() or value.strip().lower() == "tbd"
    if isinstance(value, (list, dict)):
        return len(value) == 0
    return False


class CompletenessChecker:
    """Flags empty or TBD core fields; never blocks assembly."""

    def __init__(self, resolver: Optional[FieldResolver] = None, core_fields: Optional[list[str]] = None):
        self.resolver = resolver or FieldResolver()
        self.core_fields = core_fields or CORE_FIELDS

    def assess(
        self,
        brief: Mapping[str, Any],
        complexity: ComplexityTier = ComplexityTier.PIZZA,
    ) -> CompletenessAssessment:
        assessment = CompletenessAssessment()

        for field_name in self.core_fields:
            value = self.resolver.resolve(field_name, brief, descend=True)
            if is_missing(value):
                label = field_label(field_name)
                assessment.soft_flags.append(
                    CompletenessFlag(
                        field=label,
                        recommendation=f"Recommended: Confirm {label} before proceeding",
                    )
                )
                if isinstance(value, str) and value.strip():
                    assessment.normal_tbds.append(label)
                assessment.complete = False

        logger.info(
            f"Completeness for {complexity.value}: "
            f"{'complete' if assessment.complete else f'{len(assessment.soft_flags)} soft flags'}"
        )
        return assessment
