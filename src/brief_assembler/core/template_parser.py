"""
Template Parser - turn a reference block document into semantic sections.

Headings open sections, collapsible blocks carry per-section process
instructions, and ``{{placeholder}}`` tokens plus conditional phrasings are
collected so later stages know what each section expects.
"""

from __future__ import annotations

import re
from typing import Any, Iterable, Union

from ..models.template import BlockKind, ContentItem, ParsedTemplate, Section, TemplateBlock
from ..utils.logger import get_logger

logger = get_logger(__name__)

INSTRUCTION_PATTERN = re.compile(r"\[SOP:(.*?)\]", re.DOTALL)
PLACEHOLDER_PATTERN = re.compile(r"\{\{(.*?)\}\}")
CONDITIONAL_PATTERNS = [
    re.compile(r"\(if applicable\)", re.IGNORECASE),
    re.compile(r"\(if exists\)", re.IGNORECASE),
    re.compile(r"\(optional\)", re.IGNORECASE),
    re.compile(r"\(if available\)", re.IGNORECASE),
    re.compile(r"\(if provided\)", re.IGNORECASE),
    re.compile(r"\(conditional\)", re.IGNORECASE),
]

ROOT_SECTION_TITLE = "Template Content"
INSTRUCTION_SECTION_TITLE = "Process Instruction"

BlockInput = Union[TemplateBlock, dict[str, Any]]


def extract_variables(text: str) -> list[str]:
    """Placeholder names in order of appearance, without braces."""
    return [name.strip() for name in PLACEHOLDER_PATTERN.findall(text) if name.strip()]


def extract_instructions(text: str) -> list[str]:
    """Contents of every ``[SOP: ...]`` marker."""
    return [m.strip() for m in INSTRUCTION_PATTERN.findall(text) if m.strip()]


def is_conditional(text: str) -> bool:
    return any(pattern.search(text) for pattern in CONDITIONAL_PATTERNS)


class TemplateParser:
    """Parses ordered template blocks into sections."""

    def parse(self, blocks: Iterable[BlockInput]) -> ParsedTemplate:
        """
        Parse template blocks in document order.

        Args:
            blocks: Template blocks, either ``TemplateBlock`` or raw store payloads.

        Returns:
            ParsedTemplate with sections in the order they were encountered.
        """
        sections: list[Section] = []
        current: Section | None = None
        awaiting_first_content = False

        for raw in blocks:
            block = raw if isinstance(raw, TemplateBlock) else TemplateBlock.from_payload(raw)
            text = block.text.strip()
            if not text:
                continue

            if block.kind.is_heading:
                if current is not None:
                    sections.append(current)
                current = Section(
                    level=block.kind.value,
                    title=text,
                    variables=extract_variables(text),
                    is_conditional=is_conditional(text),
                )
                awaiting_first_content = True
                continue

            if block.kind == BlockKind.TOGGLE:
                markers = extract_instructions(text)
                if current is None:
                    current = Section(
                        level="instruction",
                        title=INSTRUCTION_SECTION_TITLE,
                        instructions=markers or [text],
                    )
                    awaiting_first_content = False
                    continue
                if markers:
                    current.instructions.extend(markers)
                    continue
                if awaiting_first_content:
                    current.instructions.append(text)
                    awaiting_first_content = False
                    continue

            item = ContentItem(
                kind=block.kind,
                text=text,
                instructions=extract_instructions(text),
                variables=extract_variables(text),
                is_conditional=is_conditional(text),
            )
            if current is None:
                current = Section(level="root", title=ROOT_SECTION_TITLE)
            current.content.append(item)
            awaiting_first_content = False

        if current is not None:
            sections.append(current)

        parsed = ParsedTemplate(sections=sections)
        logger.info(
            f"Parsed template: {parsed.total_sections} sections, "
            f"{parsed.total_instructions} instructions, {parsed.total_variables} variables, "
            f"{parsed.conditional_sections} conditional"
        )
        return parsed

    def all_variables(self, parsed: ParsedTemplate) -> list[str]:
        """Unique placeholder names across the template, first occurrence order."""
        seen: dict[str, None] = {}
        for section in parsed.sections:
            for name in section.all_variables():
                seen.setdefault(name, None)
        return list(seen)

    def all_instructions(self, parsed: ParsedTemplate) -> list[tuple[str, str, str]]:
        """``(section title, source kind, instruction)`` for every instruction."""
        entries: list[tuple[str, str, str]] = []
        for section in parsed.sections:
            for instruction in section.instructions:
                entries.append((section.title, "section", instruction))
            for item in section.content:
                for instruction in item.instructions:
                    entries.append((section.title, item.kind.value, instruction))
        return entries

    def describe(self, parsed: ParsedTemplate) -> str:
        """Prompt-friendly outline of the template structure."""
        lines = [
            "# Template Structure",
            "",
            f"Total sections: {parsed.total_sections}",
            f"Total instructions: {parsed.total_instructions}",
            f"Total variables: {parsed.total_variables}",
            f"Conditional sections: {parsed.conditional_sections}",
            "",
        ]

        for index, section in enumerate(parsed.sections, 1):
            tag = " (conditional)" if section.is_conditional else ""
            lines.append(f"## {index}. {section.title} [{section.level}]{tag}")
            for instruction in section.instructions:
                lines.append(f"  Instruction: {instruction}")
            if section.variables:
                lines.append(f"  Variables: {', '.join(section.variables)}")
            for item in section.content:
                flags = " (conditional)" if item.is_conditional else ""
                variables = f" vars={','.join(item.variables)}" if item.variables else ""
                lines.append(f"  - {item.kind.value}{flags}{variables}: {item.text[:80]}")
            lines.append("")

        return "\n".join(lines).rstrip() + "\n"
