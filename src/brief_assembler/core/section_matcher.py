"""
Section Matcher - decide which data fills a template heading.

Well-known sections (key details, references, notes, raw brief, brief
details) are filled by smart aggregation over several fields. Everything
else walks a cascade: exact, normalized, containment, semantic concept
table, character similarity, then word overlap. A miss returns None and
the section is omitted from the document.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from ..config import get_settings
from ..models.extraction import SectionMatch
from ..utils.logger import get_logger
from ..utils.text import clean_heading, compact_key, extract_urls, first_present, string_similarity

logger = get_logger(__name__)

# Heading concept -> key fragments that carry that concept.
# Hand-curated; sets overlap ("video component" is both production and technical).
SEMANTIC_MAPPINGS: dict[str, list[str]] = {
    "details": [
        "brief details", "key details", "overview", "summary",
        "description", "project details", "scope", "requirements",
    ],
    "production": [
        "video component", "shoot requirements", "production logistics",
        "filming", "recording", "video details", "video requirements",
    ],
    "logistics": ["production", "shoot", "video component", "delivery", "timeline", "schedule", "workflow"],
    "budget": ["budget allocation", "cost", "pricing", "financial", "money", "budget conflict", "scope issue"],
    "technical": [
        "specifications", "tech specs", "format", "resolution",
        "video component", "video details", "technical requirements",
    ],
    "creative": ["creative direction", "visual style", "aesthetic", "design", "branding", "mood", "look", "feel"],
    "approval": ["approval workflow", "review process", "sign-off", "timeline"],
    "attachments": ["files", "documents", "assets", "materials", "resources", "references"],
    "notes": ["notes", "considerations", "important", "additional info", "scope issue", "conflict"],
}

# Pipeline bookkeeping written into extracted data; never section content
METADATA_KEYS = frozenset({
    "urgency", "urgency_detected", "urgency_summary", "urgency_score", "urgency_level",
    "conflicts", "completenessAssessment", "softFlags", "criticalMissing", "normalTBDs",
    "complexityAppropriate", "complete", "novelSections",
    "intent_rating", "confidence", "semantic_score",
})

SMART_KEY_DETAILS = "_smart_key_details"
SMART_REFERENCES = "_smart_references"
SMART_NOTES = "_smart_notes"


class SectionMatcher:
    """Maps template headings to extracted or original brief data."""

    def __init__(self, similarity_threshold: Optional[float] = None):
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else get_settings().assembly.similarity_threshold
        )
        self._smart_rules: list[tuple[tuple[str, ...], Callable[..., Optional[SectionMatch]]]] = [
            (("keydetails",), self._key_details),
            (("reference", "embed"), self._references),
            (("notes", "considerations", "context"), self._notes),
            (("rawbrief",), self._raw_brief),
            (("briefdetails", "details"), self._brief_details),
        ]

    def match(
        self,
        heading: str,
        extracted: Mapping[str, Any],
        original: Mapping[str, Any],
    ) -> Optional[SectionMatch]:
        """
        Find data for ``heading``.

        Returns:
            The match with its consumed key(s), or None when the section
            has nothing to show.
        """
        clean = clean_heading(heading)
        normalized = compact_key(clean)
        if not normalized:
            return None

        for fragments, rule in self._smart_rules:
            if any(fragment in normalized for fragment in fragments):
                found = rule(extracted, original)
                if found is not None:
                    logger.info(f"Smart mapping: '{clean}' <- {found.matched_key}")
                    return found

        combined = {
            key: value
            for key, value in {**extracted, **original}.items()
            if key not in METADATA_KEYS and _has_content(value)
        }

        found = self._standard_match(clean, normalized, extracted, original, combined)
        if found is None:
            found = self._semantic_match(clean, combined)
        if found is None:
            logger.debug(f"No data for section '{clean}'")
        return found

    # -------------------------------------------------------------------------
    # Smart aggregation
    # -------------------------------------------------------------------------

    def _key_details(self, extracted: Mapping[str, Any], original: Mapping[str, Any]) -> Optional[SectionMatch]:
        sources: dict[str, tuple[Mapping[str, Any], tuple[str, ...]]] = {
            "dates": (original, ("Due Dates", "dates")),
            "client": (original, ("Client Name",)),
            "email": (original, ("Client Email", "Contact Email")),
            "company": (original, ("Company Name",)),
            "userId": (original, ("User_Number", "USER ID")),
        }
        details: dict[str, Any] = {}
        consumed: list[str] = []
        for label, (source, keys) in sources.items():
            key = _first_key(source, keys)
            if key is not None:
                details[label] = source[key]
                consumed.append(key)

        fallbacks = {
            "dates": extracted.get("dates"),
            "client": extracted.get("client_name"),
            "company": extracted.get("company_name"),
        }
        for label, value in fallbacks.items():
            if label not in details and _has_content(value):
                details[label] = value

        platform_key = _first_key(extracted, ("platform",)) or _first_key(original, ("platform",))
        if platform_key is not None:
            details["platform"] = extracted.get(platform_key, original.get(platform_key))
            consumed.append(platform_key)

        priority = first_present(dict(extracted), "priority", "urgency_level")
        if priority:
            details["priority"] = priority
        complexity = extracted.get("complexity_level")
        if complexity:
            details["complexity"] = complexity

        if not details:
            return None
        return SectionMatch(data=details, matched_key=SMART_KEY_DETAILS, consumed_keys=consumed)

    def _references(self, extracted: Mapping[str, Any], original: Mapping[str, Any]) -> Optional[SectionMatch]:
        urls: list[str] = []
        for value in {**original, **extracted}.values():
            if isinstance(value, str):
                urls.extend(extract_urls(value))
        if not urls:
            return None
        return SectionMatch(data={"urls": list(dict.fromkeys(urls))}, matched_key=SMART_REFERENCES)

    def _notes(self, extracted: Mapping[str, Any], original: Mapping[str, Any]) -> Optional[SectionMatch]:
        notes: dict[str, Any] = {}
        consumed: list[str] = []
        for label, keys in (
            ("interaction_notes", ("interaction notes", "Interaction Notes")),
            ("additional_context", ("everything_else", "Everything_else")),
        ):
            key = _first_key(original, keys)
            if key is not None:
                notes[label] = original[key]
                consumed.append(key)

        if _has_content(extracted.get("conversation_summary")):
            notes["conversation_summary"] = extracted["conversation_summary"]
            consumed.append("conversation_summary")

        if not notes:
            return None
        return SectionMatch(data=notes, matched_key=SMART_NOTES, consumed_keys=consumed)

    def _raw_brief(self, extracted: Mapping[str, Any], original: Mapping[str, Any]) -> Optional[SectionMatch]:
        key = _first_key(original, ("Raw Brief", "raw_brief", "rawBrief"))
        if key is None:
            return None
        return SectionMatch(data=original[key], matched_key="Raw Brief", consumed_keys=[key])

    def _brief_details(self, extracted: Mapping[str, Any], original: Mapping[str, Any]) -> Optional[SectionMatch]:
        key = _first_key(original, ("brief_details", "Brief Details"))
        if key is None:
            return None
        return SectionMatch(data=original[key], matched_key="brief_details", consumed_keys=[key])

    # -------------------------------------------------------------------------
    # Cascade
    # -------------------------------------------------------------------------

    def _standard_match(
        self,
        clean: str,
        normalized: str,
        extracted: Mapping[str, Any],
        original: Mapping[str, Any],
        combined: Mapping[str, Any],
    ) -> Optional[SectionMatch]:
        if clean not in METADATA_KEYS:
            for source in (extracted, original):
                if _has_content(source.get(clean)):
                    return SectionMatch(data=source[clean], matched_key=clean)

        for key, value in combined.items():
            if compact_key(key) == normalized:
                return SectionMatch(data=value, matched_key=key)

        for key, value in combined.items():
            norm_key = compact_key(key)
            if len(norm_key) > 3 and (normalized in norm_key or norm_key in normalized):
                return SectionMatch(data=value, matched_key=key)

        return None

    def _semantic_match(self, clean: str, combined: Mapping[str, Any]) -> Optional[SectionMatch]:
        if not combined:
            return None
        heading_lower = clean.lower()

        for concept, keywords in SEMANTIC_MAPPINGS.items():
            if concept not in heading_lower:
                continue
            for key in combined:
                key_lower = key.lower()
                if any(keyword in key_lower for keyword in keywords):
                    logger.info(f"Semantic match: '{clean}' -> '{key}'")
                    return SectionMatch(data=combined[key], matched_key=key)

        heading_norm = compact_key(heading_lower)
        for key in combined:
            if string_similarity(compact_key(key), heading_norm) > self.similarity_threshold:
                return SectionMatch(data=combined[key], matched_key=key)

        words = [word for word in heading_lower.split() if len(word) > 3]
        if not words:
            return None
        required = min(2, len(words))
        for key in combined:
            key_lower = key.lower()
            if sum(1 for word in words if word in key_lower) >= required:
                return SectionMatch(data=combined[key], matched_key=key)

        return None


def _has_content(value: Any) -> bool:
    return value is not None and value != "" and value != [] and value != {}


def _first_key(data: Mapping[str, Any], keys: tuple[str, ...]) -> Optional[str]:
    for key in keys:
        if _has_content(data.get(key)):
            return key
    return None
