"""
Document Engine - one brief in, one block tree out.

Runs the advisory checks and structured extraction, then assembles the
template. Component failures degrade to documented fallbacks; the caller
always receives a document.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from ..clients.reasoner import Reasoner
from ..config import Settings, get_settings
from ..models.blocks import BlockType
from ..models.document import AssembledDocument
from ..models.extraction import ComplexityTier, Conflict, ExtractionResult, PreflightAnalysis
from ..models.template import TemplateBlock
from ..utils.logger import get_progress_logger
from .assembler import Assembler, minimal_blocks
from .completeness import CompletenessChecker
from .conflict_detector import ConflictDetector
from .content_generator import ContentGenerator
from .extraction import StructuredExtractor
from .field_resolver import FieldResolver
from .preflight import PreflightAnalyzer
from .prioritizer import SectionPrioritizer
from .section_matcher import SectionMatcher
from .template_parser import TemplateParser
from .urgency import UrgencyScorer

progress = get_progress_logger(__name__, "Engine")

BlockInput = Union[TemplateBlock, dict[str, Any]]


class DocumentEngine:
    """Semantic document assembly for a single brief."""

    def __init__(self, reasoner: Optional[Reasoner] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        assembly = self.settings.assembly

        self.resolver = FieldResolver(similarity_threshold=assembly.similarity_threshold)
        self.conflict_detector = ConflictDetector(self.resolver)
        self.preflight = PreflightAnalyzer(self.resolver, self.conflict_detector)
        self.completeness = CompletenessChecker(self.resolver)
        self.extractor = StructuredExtractor(reasoner, UrgencyScorer(assembly.urgency_threshold))
        self.parser = TemplateParser()
        self.prioritizer = SectionPrioritizer(assembly.urgency_threshold)
        self.assembler = Assembler(
            SectionMatcher(assembly.similarity_threshold),
            ContentGenerator(reasoner, assembly),
            self.resolver,
        )

    async def build(
        self,
        brief: Mapping[str, Any],
        template_blocks: Iterable[BlockInput],
        complexity: Optional[ComplexityTier] = None,
        today: Optional[date] = None,
    ) -> AssembledDocument:
        """
        Build the document for ``brief`` from the reference template.

        Args:
            brief: Raw brief; read-only.
            template_blocks: Fully paginated template blocks.
            complexity: Complexity hint from intake, re-checked by preflight.
            today: Reference date for deadline proximity.
        """
        blocks = [b if isinstance(b, TemplateBlock) else TemplateBlock.from_payload(b) for b in template_blocks]
        progress.start_operation("build", f"{len(brief)} brief fields, {len(blocks)} template blocks")

        progress.step("build", "advisory checks", 1, 3)
        analysis = self.preflight.analyze(brief, complexity)
        completeness = self.completeness.assess(brief, analysis.use_complexity)

        progress.step("build", "structured extraction", 2, 3)
        extraction = await self.extractor.extract(brief, analysis.use_complexity, today=today)

        extraction.data.setdefault("complexity_level", analysis.use_complexity.value)
        self._apply_smart_defaults(extraction, analysis)
        extraction.conflicts = self._merge_conflicts(analysis.conflicts, extraction.data.get("conflicts"))
        extraction.completeness = completeness

        progress.step("build", "assembly", 3, 3)
        parsed = self.parser.parse(blocks)
        titles = [s.title for s in parsed.sections if s.level.startswith("heading")]
        extraction.novel_sections = self.prioritizer.identify_novel_sections({**brief, **extraction.data}, titles)

        if not parsed.sections:
            progress.warning("Template has no content, using minimal page")
            document = self._minimal(brief, extraction)
        else:
            try:
                document = await self.assembler.assemble(blocks, extraction, brief)
            except Exception as e:
                progress.error(f"Assembly failed ({type(e).__name__}: {e}), using minimal page")
                document = self._minimal(brief, extraction)
            else:
                if all(b.type == BlockType.CALLOUT for b in document.blocks):
                    progress.warning("Assembly produced no content, using minimal page")
                    document = self._minimal(brief, extraction)

        document.priorities = self.prioritizer.prioritize(
            document.included_sections,
            {**brief, **extraction.data},
            extraction.urgency.score,
            extraction.conflicts,
            [n.name for n in extraction.novel_sections],
        )
        progress.end_operation(
            "build",
            details=f"{len(document.blocks)} blocks, minimal={document.minimal}, fallback={extraction.used_fallback}",
        )
        return document

    def _minimal(self, brief: Mapping[str, Any], extraction: ExtractionResult) -> AssembledDocument:
        blocks = self.assembler.callouts(extraction) + minimal_blocks(brief, self.settings.assembly.max_chars_per_block)
        return AssembledDocument(blocks=blocks, extraction=extraction, minimal=True)

    def _apply_smart_defaults(self, extraction: ExtractionResult, analysis: PreflightAnalysis) -> None:
        """Add defaults the extraction did not cover, tagged as suggestions."""
        for key, value in analysis.smart_defaults.items():
            if key not in extraction.data:
                extraction.data[key] = {"value": value, "confidence": "suggested"}

    def _merge_conflicts(self, detected: list[Conflict], reported: Any) -> list[Conflict]:
        """Deterministic conflicts plus well-formed reported ones of a new type."""
        merged = list(detected)
        if not isinstance(reported, list):
            return merged
        seen = {conflict.type for conflict in merged}
        for item in reported:
            try:
                conflict = Conflict.model_validate(item)
            except ValidationError:
                progress.debug(f"Ignoring malformed reported conflict: {item!r}")
                continue
            if conflict.type not in seen:
                merged.append(conflict)
                seen.add(conflict.type)
        return merged
