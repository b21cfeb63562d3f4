"""The finished document returned by the engine."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from .blocks import ContentBlock
from .extraction import ExtractionResult, SectionPriority


class AssembledDocument(BaseModel):
    """Block tree plus the metadata gathered while building it."""

    blocks: list[ContentBlock] = Field(default_factory=list)
    extraction: ExtractionResult = Field(default_factory=ExtractionResult)
    matched_keys: list[str] = Field(default_factory=list)
    included_sections: list[str] = Field(default_factory=list)
    skipped_sections: list[str] = Field(default_factory=list)
    leftover_keys: list[str] = Field(default_factory=list)
    priorities: list[SectionPriority] = Field(default_factory=list)
    minimal: bool = False

    def to_payload(self) -> list[dict[str, Any]]:
        return [block.to_payload() for block in self.blocks]

    def headings(self) -> list[str]:
        return [block.plain_text for block in self.blocks if block.is_heading]
