"""
Content Block Generator.

Turns a matched value (string, list or arbitrarily nested mapping) into
content blocks. Large flat mappings at the top level may be laid out by
the reasoner; its layout is used only if every descriptor validates,
otherwise generation is mechanical. Collapsible groups never nest deeper
than ``max_toggle_depth``; deeper mappings are flattened inline.
"""

from __future__ import annotations

import json
from typing import Any, Literal, Optional

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from ..clients.reasoner import Reasoner
from ..config import get_settings
from ..config.settings import AssemblySettings
from ..exceptions import ReasonerError, ResponseParseError
from ..models.blocks import BlockType, ContentBlock
from ..utils.logger import get_logger
from ..utils.text import (
    UrlKind,
    classify_url,
    extract_urls,
    format_inline,
    has_markdown_bullets,
    intelligent_split,
    parse_json_response,
    parse_markdown_bullets,
    parse_markdown_to_rich_text,
    strip_html,
    strip_instruction_markers,
)

logger = get_logger(__name__)

CONFIDENCE_MARKERS = {
    "implied_standard": "*(industry standard - confirm if needed)*",
    "inferred": "*(inferred from context - please verify)*",
    "estimated": "*(estimated - confirm with client)*",
    "suggested": "*(suggested default - adjust as needed)*",
}
DEFAULT_CONFIDENCE_MARKER = "*(please confirm)*"

ORGANIZE_PROMPT = """You are organizing a brief for the internal creative team (or trusted freelancers).
They need this information to execute the work.

SECTION: {heading}
{guidance}
DATA:
{data}

YOUR TASK:
Organize this data semantically - group related information by MEANING, not by field name.
For every piece of data ask: "Does the team need this to execute the work?"
- Include: what to create, when, where, how, who to contact, budget, specs
- Exclude: system metadata, scores, internal processing info

FORMATTING RULES:
1. Use heading_2 for major groups, with an emoji
2. Use heading_3 for subsections
3. Use paragraph with "bold_prefix" for key-value pairs (e.g. "Budget:")
4. Use bulleted_list with "items" for lists
5. Add a divider between major groups
6. No markdown asterisks in content

OUTPUT FORMAT:
{{
  "blocks": [
    {{"type": "heading_2", "content": "📅 Schedule & Logistics"}},
    {{"type": "paragraph", "content": "£2,500", "bold_prefix": "Budget:"}},
    {{"type": "bulleted_list", "items": ["Item 1", "Item 2"]}},
    {{"type": "divider"}}
  ]
}}

Return ONLY valid JSON. No explanations."""


class BlockDescriptor(BaseModel):
    """One layout instruction returned by the reasoner."""

    type: Literal["heading_2", "heading_3", "paragraph", "bulleted_list", "divider"]
    content: Optional[str] = None
    bold_prefix: Optional[str] = None
    items: Optional[list[Any]] = None

    @field_validator("content", "bold_prefix")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if isinstance(v, str) else v

    @model_validator(mode="after")
    def check_payload(self) -> BlockDescriptor:
        if self.type == "bulleted_list":
            if not self.items or not any(str(item).strip() for item in self.items):
                raise ValueError("bulleted_list requires non-empty items")
        elif self.type != "divider" and not self.content:
            raise ValueError(f"{self.type} requires non-empty content")
        return self

    def to_blocks(self) -> list[ContentBlock]:
        if self.type == "heading_2":
            return [ContentBlock.heading(2, self.content)]
        if self.type == "heading_3":
            return [ContentBlock.heading(3, self.content)]
        if self.type == "divider":
            return [ContentBlock.divider()]
        if self.type == "bulleted_list":
            return [ContentBlock.bullet(str(item)) for item in self.items if str(item).strip()]
        if self.bold_prefix:
            value = self.content.replace(self.bold_prefix, "", 1).strip()
            return [ContentBlock.labeled(f"{self.bold_prefix} ", value)]
        return [ContentBlock.paragraph(self.content)]


def is_confidence_value(value: Any) -> bool:
    """A ``{value, confidence}`` pair marking an implied or inferred fact."""
    return isinstance(value, dict) and "confidence" in value and "value" in value and len(value) <= 3


def with_confidence_marker(value: dict[str, Any]) -> str:
    marker = CONFIDENCE_MARKERS.get(str(value.get("confidence")), DEFAULT_CONFIDENCE_MARKER)
    return f"{scalar_text(value.get('value'))} {marker}"


def scalar_text(value: Any) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    return str(value)


def _is_scalar(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


class ContentGenerator:
    """Expands matched section data into content blocks."""

    def __init__(self, reasoner: Optional[Reasoner] = None, settings: Optional[AssemblySettings] = None):
        self.reasoner = reasoner
        self.settings = settings or get_settings().assembly

    async def generate(
        self,
        value: Any,
        instructions: Optional[list[str]] = None,
        heading: Optional[str] = None,
        depth: int = 0,
    ) -> list[ContentBlock]:
        """
        Generate blocks for one section's data.

        Args:
            value: Matched data of any shape.
            instructions: Section process instructions, used as layout guidance.
            heading: Section heading text; selects references and raw-brief rendering.
            depth: Current nesting depth of collapsible groups.
        """
        heading_lower = (heading or "").lower()

        if ("reference" in heading_lower or "embed" in heading_lower) and isinstance(value, dict):
            urls = value.get("urls")
            if isinstance(urls, list) and urls:
                blocks = self.reference_blocks(urls)
                logger.info(f"Created {len(blocks)} embed/bookmark blocks for '{heading}'")
                return blocks

        if is_confidence_value(value):
            return [ContentBlock.paragraph(runs=parse_markdown_to_rich_text(with_confidence_marker(value)))]

        if depth == 0 and isinstance(value, dict):
            organized = await self.organize(value, heading, instructions)
            if organized:
                logger.info(f"Using semantic organization for '{heading}'")
                return organized

        italic = "raw brief" in heading_lower or "rawbrief" in heading_lower

        if isinstance(value, str):
            return self._string_blocks(value, italic)
        if isinstance(value, list):
            return self._list_blocks(value)
        if isinstance(value, dict):
            return await self._mapping_blocks(value, instructions, heading, depth)
        if value is None:
            return []
        return [ContentBlock.paragraph(scalar_text(value), italic=italic)]

    # -------------------------------------------------------------------------
    # Organization via reasoner
    # -------------------------------------------------------------------------

    async def organize(
        self,
        data: dict[str, Any],
        heading: Optional[str] = None,
        instructions: Optional[list[str]] = None,
    ) -> Optional[list[ContentBlock]]:
        """
        Ask the reasoner for a layout of ``data``.

        Returns None when no reasoner is configured, the mapping is too small,
        or the response fails to parse or validate.
        """
        if self.reasoner is None or len(data) < self.settings.organize_min_fields:
            return None

        guidance = ""
        if instructions:
            guidance = "\nSECTION GUIDANCE:\n" + "\n".join(f"- {i}" for i in instructions) + "\n"
        prompt = ORGANIZE_PROMPT.format(
            heading=heading or "Information",
            guidance=guidance,
            data=json.dumps(data, indent=2, default=str, ensure_ascii=False),
        )

        try:
            response = await self.reasoner.complete(prompt)
            parsed = parse_json_response(response, opener="{")
            descriptors = parsed.get("blocks") if isinstance(parsed, dict) else parsed
            if not isinstance(descriptors, list) or not descriptors:
                logger.warning("Organization returned no block list, falling back")
                return None
            blocks = self.convert_descriptors(descriptors)
        except (ReasonerError, ResponseParseError) as e:
            logger.warning(f"Organization failed: {e.message}, falling back to mechanical generation")
            return None
        except ValidationError as e:
            logger.warning(f"Organization returned invalid blocks ({e.error_count()} errors), falling back")
            return None
        except Exception as e:
            logger.warning(f"Organization error {type(e).__name__}: {e}, falling back to mechanical generation")
            return None

        logger.info(f"Organized {len(data)} fields into {len(blocks)} blocks")
        return blocks or None

    def convert_descriptors(self, descriptors: list[Any]) -> list[ContentBlock]:
        """
        Validate and convert reasoner block descriptors.

        Raises:
            ValidationError: If any descriptor is not a known, non-empty block.
        """
        blocks: list[ContentBlock] = []
        for descriptor in descriptors:
            blocks.extend(BlockDescriptor.model_validate(descriptor).to_blocks())
        return blocks

    # -------------------------------------------------------------------------
    # Mechanical generation
    # -------------------------------------------------------------------------

    def reference_blocks(self, urls: list[Any]) -> list[ContentBlock]:
        blocks = []
        for url in urls:
            kind = classify_url(str(url))
            if kind == UrlKind.EMBED:
                blocks.append(ContentBlock.link(BlockType.EMBED, str(url)))
            elif kind == UrlKind.IMAGE:
                blocks.append(ContentBlock.link(BlockType.IMAGE, str(url)))
            else:
                blocks.append(ContentBlock.link(BlockType.BOOKMARK, str(url)))
        return blocks

    def media_blocks(self, text: str) -> list[ContentBlock]:
        """Image, embed, bookmark or link blocks for URLs inside text."""
        blocks = []
        for url in extract_urls(text):
            kind = classify_url(url)
            if kind == UrlKind.IMAGE:
                blocks.append(ContentBlock.link(BlockType.IMAGE, url))
            elif kind == UrlKind.EMBED:
                blocks.append(ContentBlock.link(BlockType.EMBED, url))
            elif kind == UrlKind.BOOKMARK:
                blocks.append(ContentBlock.link(BlockType.BOOKMARK, url))
            else:
                blocks.append(ContentBlock.link_paragraph(url))
        return blocks

    def _string_blocks(self, value: str, italic: bool = False) -> list[ContentBlock]:
        text = strip_instruction_markers(strip_html(value.replace("\r\n", "\n")))
        if not text:
            return []

        blocks: list[ContentBlock] = []
        if has_markdown_bullets(text):
            for kind, content in parse_markdown_bullets(text):
                runs = parse_markdown_to_rich_text(content, force_italic=italic)
                if kind == "bullet":
                    blocks.append(ContentBlock.bullet(runs=runs))
                else:
                    blocks.append(ContentBlock.paragraph(runs=runs))
        else:
            for chunk in intelligent_split(text, self.settings.max_chars_per_block):
                blocks.append(ContentBlock.paragraph(runs=parse_markdown_to_rich_text(chunk, force_italic=italic)))

        blocks.extend(self.media_blocks(text))
        return blocks

    def _labeled_blocks(self, label: str, value: str) -> list[ContentBlock]:
        """Bold label and value; a long value continues in plain paragraphs."""
        limit = self.settings.max_chars_per_block
        if len(label) + len(value) <= limit:
            return [ContentBlock.labeled(label, value)]

        chunks = intelligent_split(value, max(limit - len(label), 1))
        return [ContentBlock.labeled(label, chunks[0])] + [ContentBlock.paragraph(chunk) for chunk in chunks[1:]]

    def _list_blocks(self, items: list[Any]) -> list[ContentBlock]:
        blocks = []
        for item in items:
            if is_confidence_value(item):
                blocks.append(ContentBlock.bullet(with_confidence_marker(item)))
            elif isinstance(item, dict):
                blocks.append(ContentBlock.bullet(format_inline(item)))
            elif isinstance(item, list):
                blocks.append(ContentBlock.bullet(", ".join(scalar_text(v) for v in item)))
            elif item is not None:
                blocks.append(ContentBlock.bullet(scalar_text(item)))
        return blocks

    async def _mapping_blocks(
        self,
        data: dict[str, Any],
        instructions: Optional[list[str]],
        heading: Optional[str],
        depth: int,
    ) -> list[ContentBlock]:
        blocks: list[ContentBlock] = []
        for key, value in data.items():
            if is_confidence_value(value):
                blocks.extend(self._labeled_blocks(f"{key}: ", with_confidence_marker(value)))
            elif _is_scalar(value):
                blocks.extend(self._labeled_blocks(f"{key}: ", scalar_text(value)))
            elif isinstance(value, list):
                blocks.append(ContentBlock.labeled(f"{key}:"))
                blocks.extend(self._list_blocks(value))
            elif isinstance(value, dict) and value:
                blocks.extend(await self._nested_blocks(key, value, instructions, heading, depth))
        return blocks

    async def _nested_blocks(
        self,
        key: str,
        value: dict[str, Any],
        instructions: Optional[list[str]],
        heading: Optional[str],
        depth: int,
    ) -> list[ContentBlock]:
        if depth >= self.settings.max_toggle_depth:
            return self._labeled_blocks(f"{key}: ", format_inline(value))

        children = await self.generate(value, instructions, heading, depth + 1)
        if not children:
            return []

        limit = self.settings.max_toggle_children
        blocks = [ContentBlock.toggle(key, children[:limit])]
        # Store caps children per block; overflow follows the group
        blocks.extend(children[limit:])
        return blocks


def block_text(blocks: list[ContentBlock]) -> str:
    """Concatenated plain text of blocks and their children."""
    parts: list[str] = []
    for block in blocks:
        parts.append(block.plain_text)
        parts.append(block_text(block.children))
    return "\n".join(part for part in parts if part)


__all__ = [
    "BlockDescriptor",
    "ContentGenerator",
    "block_text",
    "is_confidence_value",
    "scalar_text",
    "with_confidence_marker",
]
