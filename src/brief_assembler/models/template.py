"""Reference template blocks and the parsed section structure."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class BlockKind(str, Enum):
    """Kinds of blocks a reference template may contain."""

    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    PARAGRAPH = "paragraph"
    TOGGLE = "toggle"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    QUOTE = "quote"
    DIVIDER = "divider"
    CALLOUT = "callout"
    EMBED = "embed"
    BOOKMARK = "bookmark"
    IMAGE = "image"
    OTHER = "other"

    @property
    def is_heading(self) -> bool:
        return self in (BlockKind.HEADING_1, BlockKind.HEADING_2, BlockKind.HEADING_3)


class TemplateBlock(BaseModel):
    """One block of the reference template, as supplied by the template source."""

    kind: BlockKind
    text: str = ""
    block_id: Optional[str] = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TemplateBlock:
        """
        Build from a store payload such as
        ``{"type": "heading_2", "heading_2": {"rich_text": [{"plain_text": "..."}]}}``.

        Unknown kinds map to ``BlockKind.OTHER`` and keep the raw payload.
        """
        type_name = payload.get("type", "")
        try:
            kind = BlockKind(type_name)
        except ValueError:
            kind = BlockKind.OTHER

        body = payload.get(type_name) or {}
        runs = body.get("rich_text", []) if isinstance(body, dict) else []
        text = "".join(
            run.get("plain_text") or (run.get("text") or {}).get("content", "")
            for run in runs
        )
        return cls(kind=kind, text=text, block_id=payload.get("id"), raw=payload)

    def has_content(self) -> bool:
        if self.kind == BlockKind.DIVIDER:
            return True
        if self.kind in (BlockKind.EMBED, BlockKind.BOOKMARK, BlockKind.IMAGE):
            return bool(self.raw)
        return bool(self.text.strip())


@dataclass
class ContentItem:
    """A non-heading block inside a template section."""

    kind: BlockKind
    text: str
    instructions: list[str] = field(default_factory=list)
    variables: list[str] = field(default_factory=list)
    is_conditional: bool = False


@dataclass
class Section:
    """One heading-delimited region of the template."""

    level: str  # heading_1, heading_2, heading_3, root or instruction
    title: str
    instructions: list[str] = field(default_factory=list)
    variables: list[str] = field(default_factory=list)
    content: list[ContentItem] = field(default_factory=list)
    is_conditional: bool = False

    def all_variables(self) -> list[str]:
        names = list(self.variables)
        for item in self.content:
            names.extend(item.variables)
        return names

    def all_instructions(self) -> list[str]:
        found = list(self.instructions)
        for item in self.content:
            found.extend(item.instructions)
        return found


@dataclass
class ParsedTemplate:
    """A fully parsed reference template."""

    sections: list[Section] = field(default_factory=list)

    @property
    def total_sections(self) -> int:
        return len(self.sections)

    @property
    def total_instructions(self) -> int:
        return sum(len(s.all_instructions()) for s in self.sections)

    @property
    def total_variables(self) -> int:
        unique = {name for s in self.sections for name in s.all_variables()}
        return len(unique)

    @property
    def conditional_sections(self) -> int:
        return sum(1 for s in self.sections if s.is_conditional)

    def get_section_titles(self) -> list[str]:
        return [s.title for s in self.sections]

    def get_section(self, title: str) -> Optional[Section]:
        """Get a section by title (case-insensitive)."""
        title_lower = title.lower()
        for section in self.sections:
            if section.title.lower() == title_lower:
                return section
        return None

    def summary(self) -> dict[str, int]:
        return {
            "totalSections": self.total_sections,
            "totalSOPs": self.total_instructions,
            "totalVariables": self.total_variables,
            "conditionalSections": self.conditional_sections,
        }
