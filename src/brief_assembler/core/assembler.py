"""
Assembler - walks the template and emits the finished block tree.

States per block: no section, section skipped, section with data. A
heading flushes the previous section and opens the next; a toggle is read
as instruction metadata only; a divider flushes and resets; any other
template block is forwarded only outside a section. Headings are emitted
together with their generated content so no heading is left empty.
Leftover data goes under "Additional Information" and callouts are
prepended last.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Union

from ..models.blocks import BlockType, CalloutColor, ContentBlock
from ..models.document import AssembledDocument
from ..models.extraction import Conflict, ExtractionResult, SectionMatch, UrgencyAssessment, UrgencyLevel
from ..models.template import BlockKind, TemplateBlock
from ..utils.logger import get_progress_logger
from ..utils.text import humanize_key, intelligent_split, parse_markdown_to_rich_text
from .content_generator import ContentGenerator
from .field_resolver import FieldResolver, render_placeholders
from .section_matcher import METADATA_KEYS, SectionMatcher
from .template_parser import extract_instructions

progress = get_progress_logger(__name__, "Assembler")

ADDITIONAL_INFORMATION = "📋 Additional Information"

# Fields that are internal metadata, already record properties, or already
# rendered in their own section
LEFTOVER_DENY_LIST = METADATA_KEYS | frozenset({
    "editing_style", "quality_level",
    "complexity level", "complexityLevel", "complexity_level",
    "user_brain_dump",
    "Raw Brief", "raw_brief", "rawBrief",
    "Project Name", "project_name", "projectName",
    "Client Name", "client_name", "clientName",
    "Company Name", "company_name", "companyName",
    "USER ID", "user_id", "userId", "User_Number", "User Number",
    "Contact Email", "contact_email", "contactEmail", "Client Email",
    "Category", "category",
    "Asset Type", "asset_type", "assetType",
    "Desired Date", "desired_date", "Due Dates", "due_date", "dueDate",
    "interaction notes", "interactionNotes", "interaction_notes",
    "Requested Priority", "requested_priority",
    "Freelancer Needed?", "freelancer_needed",
    "Freelancer Allocated", "freelancer_allocated",
    "Accept Brief?", "accept_brief",
    "Media Link", "media_link",
    "brief_details", "briefDetails",
})

URGENCY_CALLOUTS: dict[UrgencyLevel, tuple[str, CalloutColor, str]] = {
    UrgencyLevel.CRITICAL: ("🚨", CalloutColor.RED, "CRITICAL DEADLINE"),
    UrgencyLevel.HIGH: ("⚠️", CalloutColor.ORANGE, "URGENT DEADLINE"),
    UrgencyLevel.MEDIUM: ("⏰", CalloutColor.YELLOW, "TIME-SENSITIVE"),
}
DEFAULT_URGENCY_MESSAGE = "This request requires immediate attention"
MINIMAL_NOTICE = (
    "⚠️ This page was created with minimal formatting due to a processing issue. "
    "Please review and organize manually."
)

HEADING_LEVELS = {BlockKind.HEADING_1: 1, BlockKind.HEADING_2: 2, BlockKind.HEADING_3: 3}

BlockInput = Union[TemplateBlock, dict[str, Any]]


@dataclass
class _OpenSection:
    heading: ContentBlock
    title: str
    match: SectionMatch
    instructions: list[str] = field(default_factory=list)


def urgency_callout(urgency: UrgencyAssessment) -> Optional[ContentBlock]:
    """Severity-colored callout, or None when the brief is not urgent."""
    if not urgency.requires_callout:
        return None
    emoji, color, prefix = URGENCY_CALLOUTS.get(urgency.callout_level(), URGENCY_CALLOUTS[UrgencyLevel.HIGH])
    text = f"**{prefix}:** {urgency.summary or DEFAULT_URGENCY_MESSAGE}"
    return ContentBlock(type=BlockType.CALLOUT, rich_text=parse_markdown_to_rich_text(text), icon=emoji, color=color)


def conflict_callout(conflict: Conflict) -> ContentBlock:
    return ContentBlock(
        type=BlockType.CALLOUT,
        rich_text=parse_markdown_to_rich_text(conflict.callout_text()),
        icon=conflict.emoji,
        color=CalloutColor.ORANGE,
    )


def minimal_blocks(brief: Mapping[str, Any], max_chars: int = 1900) -> list[ContentBlock]:
    """Last-resort page: raw brief, details and a review notice."""
    blocks: list[ContentBlock] = []
    raw = brief.get("Raw Brief") or brief.get("rawBrief")
    if raw:
        blocks.append(ContentBlock.heading(2, "📝 Raw Brief"))
        blocks.extend(ContentBlock.paragraph(chunk, italic=True) for chunk in intelligent_split(str(raw), max_chars))

    details = brief.get("brief_details") or brief.get("Brief Details")
    if details:
        blocks.append(ContentBlock.heading(2, "📋 Details"))
        blocks.extend(ContentBlock.paragraph(chunk) for chunk in intelligent_split(str(details), max_chars))

    blocks.append(ContentBlock.callout(MINIMAL_NOTICE, "⚠️", CalloutColor.YELLOW))
    return blocks


def _passthrough(block: TemplateBlock) -> Optional[ContentBlock]:
    """Template boilerplate forwarded as-is, without store identifiers."""
    if not block.has_content():
        return None
    type_name = block.raw.get("type") if block.raw else None
    if type_name:
        body = block.raw.get(type_name) or {}
        return ContentBlock(
            type=BlockType.PARAGRAPH if block.kind == BlockKind.OTHER else BlockType(block.kind.value),
            rich_text=[],
            passthrough={"object": "block", "type": type_name, type_name: body},
        )
    if block.kind == BlockKind.OTHER:
        return None
    return ContentBlock.text_block(BlockType(block.kind.value), block.text)


def _has_content(value: Any) -> bool:
    return value is not None and value != "" and value != [] and value != {}


class Assembler:
    """Template-driven state machine producing the document body."""

    def __init__(
        self,
        matcher: Optional[SectionMatcher] = None,
        generator: Optional[ContentGenerator] = None,
        resolver: Optional[FieldResolver] = None,
    ):
        self.matcher = matcher or SectionMatcher()
        self.generator = generator or ContentGenerator()
        self.resolver = resolver or FieldResolver()

    async def assemble(
        self,
        template_blocks: Iterable[BlockInput],
        extraction: ExtractionResult,
        original: Mapping[str, Any],
    ) -> AssembledDocument:
        """
        Build the document body for one brief.

        Args:
            template_blocks: Reference template in document order.
            extraction: Extracted data plus urgency and conflicts.
            original: The brief as received; never modified.
        """
        blocks = [b if isinstance(b, TemplateBlock) else TemplateBlock.from_payload(b) for b in template_blocks]
        extracted = extraction.data
        combined = {**extracted, **original}
        progress.start_operation("assemble", f"{len(blocks)} template blocks, {len(combined)} data fields")

        document = AssembledDocument(extraction=extraction)
        consumed: set[str] = set()
        body: list[ContentBlock] = []
        current: Optional[_OpenSection] = None
        skipping = False

        for block in blocks:
            if block.kind.is_heading:
                await self._flush(current, body, document, consumed)
                current, skipping = self._open_section(block, extracted, original, combined, consumed, document)
                continue

            if block.kind == BlockKind.TOGGLE:
                if current is not None and not skipping:
                    current.instructions.extend(extract_instructions(block.text) or [block.text.strip()])
                continue

            if block.kind == BlockKind.DIVIDER:
                await self._flush(current, body, document, consumed)
                if not skipping:
                    body.append(ContentBlock.divider())
                current, skipping = None, False
                continue

            if current is None and not skipping:
                forwarded = _passthrough(block)
                if forwarded is not None:
                    body.append(forwarded)

        await self._flush(current, body, document, consumed)

        body.extend(await self._additional_information(extracted, original, consumed, document))
        document.matched_keys = sorted(consumed)
        document.blocks = self.callouts(extraction) + body

        progress.end_operation(
            "assemble",
            details=f"{len(document.included_sections)} sections, {len(document.skipped_sections)} skipped, "
            f"{len(document.leftover_keys)} leftovers, {len(document.blocks)} blocks",
        )
        return document

    def callouts(self, extraction: ExtractionResult) -> list[ContentBlock]:
        """Conflict callouts in detection order, then the urgency callout."""
        callouts = [conflict_callout(conflict) for conflict in extraction.conflicts]
        urgency = urgency_callout(extraction.urgency)
        if urgency is not None:
            callouts.append(urgency)
            progress.info(f"{urgency.icon} {extraction.urgency.callout_level().value} urgency callout added")
        return callouts

    def _open_section(
        self,
        block: TemplateBlock,
        extracted: Mapping[str, Any],
        original: Mapping[str, Any],
        combined: Mapping[str, Any],
        consumed: set[str],
        document: AssembledDocument,
    ) -> tuple[Optional[_OpenSection], bool]:
        title = render_placeholders(block.text.strip(), combined, self.resolver)
        match = self.matcher.match(title, extracted, original)

        if match is None or not _has_content(match.data):
            progress.info(f"Skipping section '{title}' (no data)")
            document.skipped_sections.append(title)
            return None, True

        if match.matched_key in consumed:
            progress.info(f"Skipping section '{title}' ({match.matched_key} already shown)")
            document.skipped_sections.append(title)
            return None, True

        heading = ContentBlock.heading(HEADING_LEVELS[block.kind], title)
        return _OpenSection(heading=heading, title=title, match=match), False

    async def _flush(
        self,
        section: Optional[_OpenSection],
        body: list[ContentBlock],
        document: AssembledDocument,
        consumed: set[str],
    ) -> None:
        if section is None:
            return
        content = await self.generator.generate(
            section.match.data,
            section.instructions or None,
            section.title,
        )
        if not content:
            progress.warning(f"Section '{section.title}' produced no content, omitting heading")
            document.skipped_sections.append(section.title)
            return

        body.append(section.heading)
        body.extend(content)
        consumed.update(section.match.all_keys)
        document.included_sections.append(section.title)
        progress.debug(f"Generated {len(content)} blocks for '{section.title}'")

    async def _additional_information(
        self,
        extracted: Mapping[str, Any],
        original: Mapping[str, Any],
        consumed: set[str],
        document: AssembledDocument,
    ) -> list[ContentBlock]:
        leftovers = {
            key: value
            for key, value in {**extracted, **original}.items()
            if key not in consumed and key not in LEFTOVER_DENY_LIST and _has_content(value)
        }
        if not leftovers:
            return []

        progress.info(f"Additional Information: {len(leftovers)} unmatched fields: {list(leftovers)}")
        blocks: list[ContentBlock] = []
        for key, value in leftovers.items():
            label = humanize_key(key)
            content = await self.generator.generate(value, None, label)
            if not content:
                continue
            blocks.append(ContentBlock.heading(3, label, bold=True))
            blocks.extend(content)
            document.leftover_keys.append(key)

        if not blocks:
            return []
        return [ContentBlock.divider(), ContentBlock.heading(2, ADDITIONAL_INFORMATION, bold=True), *blocks]
