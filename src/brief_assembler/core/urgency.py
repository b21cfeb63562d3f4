"""
Deterministic urgency scoring.

score = 0.4 * temporal + 0.3 * linguistic + 0.3 * business, each signal on a
0-10 scale taken from the strongest tier that matches. Runs for every brief.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Mapping, Optional

from ..config import get_settings
from ..models.extraction import UrgencyAssessment, UrgencyLevel
from ..utils.logger import get_logger
from ..utils.text import brief_text, first_present

logger = get_logger(__name__)

TEMPORAL_WEIGHT = 0.4
LINGUISTIC_WEIGHT = 0.3
BUSINESS_WEIGHT = 0.3

TEMPORAL_TIERS: list[tuple[float, list[str]]] = [
    (10, [r"\btoday\b", r"\btonight\b", r"\bright now\b", r"\bimmediately\b"]),
    (9, [r"\btomorrow\b", r"\beod\b", r"\bend of (?:the )?day\b", r"\b24[ -]hours?\b", r"\bwithin a day\b"]),
    (7, [r"\bthis week\b", r"\b2-3 days\b", r"\b48[ -]hours?\b", r"\bcouple of days\b", r"\bend of (?:the )?week\b"]),
    (5, [r"\bnext week\b"]),
    (2, [r"\bnext month\b", r"\bnext quarter\b", r"\bq[1-4]\b"]),
]

LINGUISTIC_TIERS: list[tuple[float, list[str]]] = [
    (8, [r"or we(?:'ll| will) lose", r"\bcritical for\b", r"\bat risk\b", r"\blose the (?:client|deal)\b"]),
    (7, [r"\b(really|very|super)\s+\1\b", r"!!", r"\burgent\b", r"\basap\b", r"\brush\b", r"\bemergency\b"]),
    (6, [r"\bmust have\b", r"\bmust be\b", r"\bneed this\b", r"\bneeds? to\b", r"\bneed(?:ed)?\b", r"\brequired\b", r"\bhave to\b"]),
    (2, [r"would be nice", r"when possible", r"\bno rush\b", r"\bwhenever\b"]),
]
CAPS_PATTERN = re.compile(r"\b(URGENT|ASAP|IMMEDIATELY|CRITICAL|EMERGENCY|RUSH|NOW)\b")
CAPS_SCORE = 8

BUSINESS_TIERS: list[tuple[float, list[str]]] = [
    (9, [r"\bceo\b", r"\bcfo\b", r"\bcoo\b", r"\bfounder\b", r"\bchairman\b", r"\bmanaging director\b", r"\bvip\b"]),
    (8, [r"\bmeeting\b", r"\blaunch event\b", r"\bpresentation\b", r"\bpitch\b", r"\bboard\b", r"\bpremiere\b"]),
    (7, [r"client-facing", r"\bexternal\b", r"\bpublic launch\b", r"[£$€]\s?\d", r"\bmajor client\b", r"\bcampaign\b"]),
    (3, [r"\binternal\b", r"\btest\b", r"\bexploratory\b"]),
]

DUE_DATE_KEYS = ("Due Dates", "Due Date", "Deadline", "due_date", "dueDate", "deadline", "Desired Date", "desired_date")
ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
DATE_FORMATS = ("%d/%m/%Y", "%B %d, %Y", "%B %d %Y", "%d %B %Y", "%b %d, %Y", "%b %d %Y", "%d %b %Y")


def _strongest(text: str, tiers: list[tuple[float, list[str]]]) -> tuple[float, Optional[str]]:
    for score, patterns in tiers:
        for pattern in patterns:
            match = re.search(pattern, text)
            if match:
                return score, match.group(0)
    return 0.0, None


def parse_due_date(value: Any) -> Optional[date]:
    """Best-effort parse of a deadline field value."""
    if isinstance(value, (datetime, date)):
        return value if isinstance(value, date) and not isinstance(value, datetime) else value.date()
    if not isinstance(value, str):
        return None

    text = value.replace("PUBLISH BY:", "").strip()
    iso = ISO_DATE.search(text)
    if iso:
        try:
            return date.fromisoformat(iso.group(0))
        except ValueError:
            return None
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def temporal_score_for_days(days: int) -> float:
    """Proximity tiers; never increases as the deadline moves further away."""
    if days <= 0:
        return 10
    if days <= 2:
        return 9
    if days <= 7:
        return 7
    if days <= 14:
        return 5
    if days <= 45:
        return 2
    return 1


def deadline_text(brief: Mapping[str, Any]) -> Optional[str]:
    value = first_present(brief, *DUE_DATE_KEYS)
    if isinstance(value, str):
        return value.replace("PUBLISH BY:", "").strip()
    return None


class UrgencyScorer:
    """Weighted multi-signal urgency scoring over the raw brief."""

    def __init__(self, threshold: Optional[float] = None):
        self.threshold = threshold if threshold is not None else get_settings().assembly.urgency_threshold

    def score(self, brief: Mapping[str, Any], today: Optional[date] = None) -> UrgencyAssessment:
        today = today or date.today()
        lowered = brief_text(brief)
        original = " ".join(str(v) for v in _walk_strings(brief))

        temporal, temporal_phrase = _strongest(lowered, TEMPORAL_TIERS)
        due = parse_due_date(first_present(brief, *DUE_DATE_KEYS))
        days_until: Optional[int] = None
        if due is not None:
            days_until = (due - today).days
            temporal = max(temporal, temporal_score_for_days(days_until))

        linguistic, _ = _strongest(lowered, LINGUISTIC_TIERS)
        if CAPS_PATTERN.search(original):
            linguistic = max(linguistic, CAPS_SCORE)

        business, _ = _strongest(lowered, BUSINESS_TIERS)

        total = round(
            TEMPORAL_WEIGHT * temporal + LINGUISTIC_WEIGHT * linguistic + BUSINESS_WEIGHT * business,
            1,
        )
        assessment = UrgencyAssessment(
            detected=total >= self.threshold,
            score=total,
            level=UrgencyLevel.from_score(total),
            summary=self._summary(brief, due, days_until, temporal_phrase),
            temporal=temporal,
            linguistic=linguistic,
            business=business,
        )
        logger.info(
            f"Urgency {assessment.score} ({assessment.level.value}) "
            f"T={temporal} L={linguistic} B={business}"
        )
        return assessment

    def _summary(
        self,
        brief: Mapping[str, Any],
        due: Optional[date],
        days_until: Optional[int],
        phrase: Optional[str],
    ) -> Optional[str]:
        """Factual deadline statement, never an assessment."""
        deadline = deadline_text(brief)
        if due is not None and days_until is not None:
            label = due.strftime("%B %d, %Y").replace(" 0", " ")
            if days_until < 0:
                return f"Due {label} ({-days_until} days ago)"
            if days_until == 0:
                return f"Due {label} (today)"
            unit = "day" if days_until == 1 else "days"
            return f"Due {label} (in {days_until} {unit})"
        if deadline:
            return f"Deadline: {deadline}"
        if phrase:
            return f"Needed {phrase}"
        return None


def _walk_strings(value: Any):
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _walk_strings(item)
    elif isinstance(value, list):
        for item in value:
            yield from _walk_strings(item)
