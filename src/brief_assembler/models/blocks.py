"""Output content blocks and their document-store payload rendering."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class BlockType(str, Enum):
    """Renderable block kinds understood by the document store."""

    PARAGRAPH = "paragraph"
    HEADING_1 = "heading_1"
    HEADING_2 = "heading_2"
    HEADING_3 = "heading_3"
    BULLETED_LIST_ITEM = "bulleted_list_item"
    NUMBERED_LIST_ITEM = "numbered_list_item"
    TOGGLE = "toggle"
    QUOTE = "quote"
    CALLOUT = "callout"
    EMBED = "embed"
    BOOKMARK = "bookmark"
    IMAGE = "image"
    DIVIDER = "divider"


URL_BLOCK_TYPES = {BlockType.EMBED, BlockType.BOOKMARK, BlockType.IMAGE}
HEADING_TYPES = {BlockType.HEADING_1, BlockType.HEADING_2, BlockType.HEADING_3}


class CalloutColor(str, Enum):
    """Background colors used for callouts."""

    RED = "red_background"
    ORANGE = "orange_background"
    YELLOW = "yellow_background"
    BLUE = "blue_background"
    GRAY = "gray_background"


class RichText(BaseModel):
    """One annotated text run."""

    content: str
    bold: bool = False
    italic: bool = False
    link: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        annotations: dict[str, Any] = {}
        if self.bold:
            annotations["bold"] = True
        if self.italic:
            annotations["italic"] = True
        return {
            "type": "text",
            "text": {
                "content": self.content,
                "link": {"url": self.link} if self.link else None,
            },
            "annotations": annotations,
        }


class ContentBlock(BaseModel):
    """A typed, renderable node of the output document."""

    type: BlockType
    rich_text: list[RichText] = Field(default_factory=list)
    children: list[ContentBlock] = Field(default_factory=list)
    url: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[CalloutColor] = None
    # Untouched template block forwarded verbatim
    passthrough: Optional[dict[str, Any]] = None

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def text_block(cls, block_type: BlockType, text: str, **annotations: Any) -> ContentBlock:
        return cls(type=block_type, rich_text=[RichText(content=text, **annotations)])

    @classmethod
    def paragraph(cls, text: str = "", runs: Optional[list[RichText]] = None, **annotations: Any) -> ContentBlock:
        if runs is not None:
            return cls(type=BlockType.PARAGRAPH, rich_text=runs)
        return cls.text_block(BlockType.PARAGRAPH, text, **annotations)

    @classmethod
    def bullet(cls, text: str = "", runs: Optional[list[RichText]] = None) -> ContentBlock:
        if runs is not None:
            return cls(type=BlockType.BULLETED_LIST_ITEM, rich_text=runs)
        return cls.text_block(BlockType.BULLETED_LIST_ITEM, text)

    @classmethod
    def heading(cls, level: int, text: str, bold: bool = False) -> ContentBlock:
        block_type = {1: BlockType.HEADING_1, 2: BlockType.HEADING_2}.get(level, BlockType.HEADING_3)
        return cls.text_block(block_type, text, bold=bold)

    @classmethod
    def labeled(cls, label: str, value: str = "") -> ContentBlock:
        """Paragraph with a bold 'label' run followed by a plain value run."""
        runs = [RichText(content=label, bold=True)]
        if value:
            runs.append(RichText(content=value))
        return cls(type=BlockType.PARAGRAPH, rich_text=runs)

    @classmethod
    def toggle(cls, label: str, children: list[ContentBlock]) -> ContentBlock:
        return cls(
            type=BlockType.TOGGLE,
            rich_text=[RichText(content=label, bold=True)],
            children=children,
        )

    @classmethod
    def callout(cls, text: str, emoji: str, color: CalloutColor) -> ContentBlock:
        return cls(type=BlockType.CALLOUT, rich_text=[RichText(content=text)], icon=emoji, color=color)

    @classmethod
    def link(cls, block_type: BlockType, url: str) -> ContentBlock:
        return cls(type=block_type, url=url.strip())

    @classmethod
    def link_paragraph(cls, url: str) -> ContentBlock:
        return cls(
            type=BlockType.PARAGRAPH,
            rich_text=[RichText(content="🔗 "), RichText(content=url, link=url)],
        )

    @classmethod
    def divider(cls) -> ContentBlock:
        return cls(type=BlockType.DIVIDER)

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    @property
    def plain_text(self) -> str:
        return "".join(run.content for run in self.rich_text)

    @property
    def is_heading(self) -> bool:
        return self.type in HEADING_TYPES

    def toggle_depth(self) -> int:
        """Nesting depth of collapsible groups rooted at this block."""
        below = max((child.toggle_depth() for child in self.children), default=0)
        return below + (1 if self.type == BlockType.TOGGLE else 0)

    def to_payload(self) -> dict[str, Any]:
        """Render as the store's 'block kind + text-run payload'."""
        if self.passthrough is not None:
            return self.passthrough

        kind = self.type.value
        if self.type == BlockType.DIVIDER:
            body: dict[str, Any] = {}
        elif self.type in URL_BLOCK_TYPES:
            body = {"url": self.url}
            if self.type == BlockType.IMAGE:
                body = {"type": "external", "external": {"url": self.url}}
        else:
            body = {"rich_text": [run.to_payload() for run in self.rich_text]}
            if self.type == BlockType.CALLOUT:
                body["icon"] = {"type": "emoji", "emoji": self.icon}
                body["color"] = (self.color or CalloutColor.GRAY).value
            if self.children:
                body["children"] = [child.to_payload() for child in self.children]

        return {"object": "block", "type": kind, kind: body}


ContentBlock.model_rebuild()
