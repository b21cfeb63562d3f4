"""
Structured Extraction Orchestrator.

One reasoning call turns the raw brief into a cleaned, aliased and
synthesized data object. The response is untrusted text: fences are
stripped, brace-boundary recovery is attempted, and on any failure a
minimal object derived from the brief is used instead. Urgency is always
scored locally as well, so it never depends on the call succeeding.
"""

from __future__ import annotations

import json
from datetime import date
from typing import Any, Mapping, Optional

from ..clients.reasoner import Reasoner
from ..exceptions import ReasonerError, ResponseParseError
from ..models.extraction import ComplexityTier, ExtractionResult, UrgencyAssessment, UrgencyLevel
from ..utils.logger import get_progress_logger
from ..utils.text import brief_text, parse_json_response
from .urgency import UrgencyScorer, deadline_text

progress = get_progress_logger(__name__, "Extraction")

FALLBACK_URGENCY_KEYWORDS = ["urgent", "asap", "24-hour", "rush", "emergency"]
BRIEF_DETAILS_KEYS = ("brief_details", "briefDetails")
INTRODUCTION = "Introduction"

EXTRACTION_PROMPT = """You are a structured data extractor for creative content operations.

BRIEF DATA:
{brief_json}

COMPLEXITY LEVEL: {complexity}

Extract structured information following these rules:

1. ADAPTIVE MODE: only extract fields that have actual data. Use null for missing information.

2. URGENCY (always evaluate, never skip). Score each signal 0-10:
   Temporal: "today"/"now"/"immediately" = 10; "tomorrow"/"by EOD"/"24 hours" = 9;
     "this week"/"2-3 days" = 7; "next week" = 5; "next month"/"Q1" = 2.
     Due date within 2 days of {today} = 9, within a week = 7.
   Linguistic: ALL CAPS ("URGENT", "ASAP") = 8; consequence language ("or we'll lose") = 8;
     repeated emphasis = 7; imperative ("must have", "need this") = 6; polite ("when possible") = 2.
   Business: VIP mentions ("CEO wants") = 9; named deadlines ("for tomorrow's meeting") = 8;
     client-facing or financial stakes = 7; internal/test/exploratory = 3.
   urgency_score = temporal x 0.4 + linguistic x 0.3 + business x 0.3 (one decimal).
   Return urgency_detected (score >= 7), urgency_score, urgency_level
   ("CRITICAL" 9-10, "HIGH" 7-8.9, "MEDIUM" 4-6.9, "LOW" < 4) and urgency_summary.
   urgency_summary states facts only, e.g. "Due November 28, 2025 (in 2 days)".
   Never write opinions such as "this timeline is tight".

3. PRESERVE STRUCTURE: keep nested objects and arrays nested. Keep original field names.

4. SEMANTIC ALIASES: if "Raw Brief" exists also add "user_brain_dump"; if "Brief Details"
   exists also add "brief_details". Do not duplicate otherwise.

5. CONTENT SYNTHESIS: aggregate facts scattered across the brief into cohesive objects,
   e.g. "vertical for Instagram" + "30-45 seconds" + "MP4" becomes one "video_component" object.

6. IMPLIED DEFAULTS: add standard platform specs that are implied but not stated and tag them
   {{"value": "1080x1920px", "confidence": "implied_standard"}}.

7. CONTRADICTIONS: report only factual contradictions between stated facts.

Return ONLY one valid JSON object. No markdown, no explanations."""


def is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def parse_brief_details(text: Any) -> Optional[dict[str, str]]:
    """
    Explode a pre-formatted details blob into sections keyed by header lines.

    A header is a line ending in ':' that is not a bullet and is 3-99 chars
    long. Text before the first header goes under "Introduction". Returns
    None when no header is found.
    """
    if not isinstance(text, str) or not text.strip():
        return None

    sections: dict[str, str] = {}
    introduction: list[str] = []
    current: Optional[str] = None
    content: list[str] = []
    found_header = False

    for line in text.split("\n"):
        stripped = line.strip()
        is_header = (
            stripped.endswith(":")
            and not stripped.startswith("*")
            and not stripped.startswith("-")
            and 2 < len(stripped) < 100
        )
        if is_header:
            if current and content:
                sections[current] = "\n".join(content).strip()
            found_header = True
            current = stripped[:-1].strip()
            content = []
        elif current and stripped:
            content.append(line)
        elif not current and stripped and not found_header:
            introduction.append(line)

    if current and content:
        sections[current] = "\n".join(content).strip()

    if not found_header:
        return None
    if introduction:
        sections = {INTRODUCTION: "\n".join(introduction).strip(), **sections}
    return sections or None


class StructuredExtractor:
    """Builds the extraction prompt and defends against its response."""

    def __init__(self, reasoner: Optional[Reasoner] = None, scorer: Optional[UrgencyScorer] = None):
        self.reasoner = reasoner
        self.scorer = scorer or UrgencyScorer()

    def build_prompt(self, brief: Mapping[str, Any], complexity: ComplexityTier, today: date) -> str:
        return EXTRACTION_PROMPT.format(
            brief_json=json.dumps(brief, indent=2, default=str, ensure_ascii=False),
            complexity=complexity.value,
            today=today.isoformat(),
        )

    async def extract(
        self,
        brief: Mapping[str, Any],
        complexity: ComplexityTier = ComplexityTier.PIZZA,
        today: Optional[date] = None,
    ) -> ExtractionResult:
        """
        Extract structured data from the brief.

        Never raises for reasoning or parse failures; those produce the
        minimal fallback object with ``used_fallback=True``.
        """
        today = today or date.today()
        progress.start_operation("extraction", f"complexity={complexity.value}")
        local_urgency = self.scorer.score(brief, today=today)

        used_fallback = False
        try:
            data = await self._extract_with_reasoner(brief, complexity, today)
        except (ReasonerError, ResponseParseError) as e:
            progress.warning(f"[FALLBACK] Extraction failed, using minimal object: {e.message}")
            data = self.fallback(brief)
            used_fallback = True
        except Exception as e:
            progress.error(f"[FALLBACK] Unexpected extraction error: {type(e).__name__}: {e}")
            data = self.fallback(brief)
            used_fallback = True

        urgency = self._merge_urgency(local_urgency, data, used_fallback)
        data.update(urgency.to_fields())

        progress.end_operation(
            "extraction",
            details=f"{len(data)} fields, urgency={urgency.score} ({urgency.level.value}), fallback={used_fallback}",
        )
        return ExtractionResult(
            data=data,
            urgency=urgency,
            complexity=complexity,
            used_fallback=used_fallback,
        )

    async def _extract_with_reasoner(
        self,
        brief: Mapping[str, Any],
        complexity: ComplexityTier,
        today: date,
    ) -> dict[str, Any]:
        if self.reasoner is None:
            raise ReasonerError("No reasoner configured")

        response = await self.reasoner.complete(self.build_prompt(brief, complexity, today))
        parsed = parse_json_response(response, opener="{")
        if not isinstance(parsed, dict):
            raise ResponseParseError("Extraction response is not a JSON object", raw_text=response)

        cleaned = {key: value for key, value in parsed.items() if not is_empty(value)}

        for details_key in BRIEF_DETAILS_KEYS:
            sections = parse_brief_details(cleaned.get(details_key))
            if sections:
                progress.info(f"Exploded {details_key} into {len(sections)} sections: {list(sections)}")
                for name, content in sections.items():
                    cleaned[name.lower().replace(" ", "_")] = content
                for key in BRIEF_DETAILS_KEYS:
                    cleaned.pop(key, None)
                break

        return cleaned

    def fallback(self, brief: Mapping[str, Any]) -> dict[str, Any]:
        """Original brief plus a keyword urgency flag and a literal deadline."""
        text = brief_text(brief)
        deadline = deadline_text(brief)
        data = dict(brief)
        data["urgency_detected"] = any(keyword in text for keyword in FALLBACK_URGENCY_KEYWORDS)
        data["urgency_summary"] = f"Deadline: {deadline}" if deadline else None
        return data

    def _merge_urgency(
        self, local: UrgencyAssessment, data: Mapping[str, Any], used_fallback: bool = False
    ) -> UrgencyAssessment:
        """
        Take the higher of the local score and the reasoner's advisory score.

        ``detected`` follows the merged score; only the fallback keyword flag
        can set it below the threshold.
        """
        nested = data.get("urgency") if isinstance(data.get("urgency"), Mapping) else {}
        remote_score = _as_score(data.get("urgency_score", nested.get("score")))
        remote_summary = data.get("urgency_summary") or nested.get("summary")
        keyword_flag = used_fallback and data.get("urgency_detected") is True

        if remote_score is not None and remote_score > local.score:
            merged = local.model_copy(
                update={
                    "score": remote_score,
                    "level": UrgencyLevel.from_score(remote_score),
                    "detected": remote_score >= self.scorer.threshold,
                }
            )
        else:
            merged = local.model_copy()

        if keyword_flag and not merged.detected:
            merged = merged.model_copy(update={"detected": True})
        if not merged.summary and isinstance(remote_summary, str) and remote_summary.strip():
            merged = merged.model_copy(update={"summary": remote_summary.strip()})
        return merged


def _as_score(value: Any) -> Optional[float]:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    return round(min(max(score, 0.0), 10.0), 1)
