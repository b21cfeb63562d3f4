"""
Tests for content block generation.
"""

import json

import pytest
from pydantic import ValidationError

from conftest import ScriptedReasoner

from brief_assembler.config import AssemblySettings
from brief_assembler.core.content_generator import BlockDescriptor, ContentGenerator, block_text
from brief_assembler.exceptions import ReasonerError
from brief_assembler.models import BlockType


def max_toggle_depth(blocks) -> int:
    return max((block.toggle_depth() for block in blocks), default=0)


class TestMechanicalGeneration:
    """Tests for generation without a reasoner."""

    @pytest.fixture
    def generator(self, assembly_settings: AssemblySettings) -> ContentGenerator:
        """Create a generator without a reasoner."""
        return ContentGenerator(None, assembly_settings)

    @pytest.mark.asyncio
    async def test_string_paragraph(self, generator: ContentGenerator):
        """Test plain text becomes one paragraph."""
        blocks = await generator.generate("A short brand film.")
        assert [b.type for b in blocks] == [BlockType.PARAGRAPH]
        assert blocks[0].plain_text == "A short brand film."

    @pytest.mark.asyncio
    async def test_markdown_bullets(self, generator: ContentGenerator):
        """Test markdown bullets become list items."""
        blocks = await generator.generate("Deliver:\n- one reel\n- three stills")
        assert [b.type for b in blocks] == [
            BlockType.PARAGRAPH,
            BlockType.BULLETED_LIST_ITEM,
            BlockType.BULLETED_LIST_ITEM,
        ]
        assert blocks[2].plain_text == "three stills"

    @pytest.mark.asyncio
    async def test_long_text_split(self, generator: ContentGenerator):
        """Test long text is split under the per-block limit."""
        blocks = await generator.generate("This sentence is filler. " * 200)
        assert len(blocks) > 1
        assert all(len(b.plain_text) <= 1900 for b in blocks)

    @pytest.mark.asyncio
    async def test_long_text_keeps_final_instruction(self):
        """Test an unpunctuated closing instruction survives splitting."""
        generator = ContentGenerator(None, AssemblySettings(max_chars_per_block=100))
        blocks = await generator.generate("Shoot on Tuesday. " * 8 + "Deliver the master file to Sam")

        assert all(len(b.plain_text) <= 100 for b in blocks)
        assert blocks[-1].plain_text.endswith("Deliver the master file to Sam")

    @pytest.mark.asyncio
    async def test_long_labelled_value_split(self):
        """Test a long mapping value continues in extra paragraphs under the limit."""
        generator = ContentGenerator(None, AssemblySettings(max_chars_per_block=100))
        notes = "Keep the logo visible. " * 12
        blocks = await generator.generate({"notes": notes})

        assert len(blocks) > 1
        assert all(len(b.plain_text) <= 100 for b in blocks)
        assert blocks[0].rich_text[0].content == "notes: "
        assert blocks[0].rich_text[0].bold
        assert " ".join(b.plain_text for b in blocks).split() == ["notes:"] + notes.split()

    @pytest.mark.asyncio
    async def test_flattened_value_split(self):
        """Test values flattened beyond the nesting cap respect the limit."""
        generator = ContentGenerator(None, AssemblySettings(max_chars_per_block=80))
        value = {"a": {"b": {"c": {f"shot_{i}": "wide establishing angle" for i in range(6)}}}}
        blocks = await generator.generate(value)

        def flatten(items):
            for block in items:
                yield block
                yield from flatten(block.children)

        assert all(len(b.plain_text) <= 80 for b in flatten(blocks))
        assert "shot_5: wide establishing angle" in "".join(b.plain_text for b in flatten(blocks))

    @pytest.mark.asyncio
    async def test_raw_brief_italic(self, generator: ContentGenerator):
        """Test raw brief text is italicized."""
        blocks = await generator.generate("Need a reel", heading="📝 Raw Brief")
        assert all(run.italic for run in blocks[0].rich_text)

    @pytest.mark.asyncio
    async def test_markup_removed(self, generator: ContentGenerator):
        """Test HTML and instruction markers never reach the page."""
        blocks = await generator.generate("Hello<br>world [SOP: internal only]")
        text = block_text(blocks)
        assert "SOP" not in text
        assert "<br>" not in text
        assert "Hello\nworld" in text

    @pytest.mark.asyncio
    async def test_urls_in_text(self, generator: ContentGenerator):
        """Test URLs in text add media blocks after the paragraph."""
        blocks = await generator.generate("Mood: https://cdn.example.com/ref.png")
        assert [b.type for b in blocks] == [BlockType.PARAGRAPH, BlockType.IMAGE]
        assert blocks[1].url == "https://cdn.example.com/ref.png"

    @pytest.mark.asyncio
    async def test_list_items(self, generator: ContentGenerator):
        """Test lists become bullets and booleans read Yes/No."""
        blocks = await generator.generate(["Reel", True, {"size": "1080p", "fps": 25}, None])
        assert [b.plain_text for b in blocks] == ["Reel", "Yes", "size: 1080p | fps: 25"]

    @pytest.mark.asyncio
    async def test_mapping_labels(self, generator: ContentGenerator):
        """Test mapping scalars become bold-labelled paragraphs."""
        blocks = await generator.generate({"budget": "£500", "captions": False})
        assert [b.plain_text for b in blocks] == ["budget: £500", "captions: No"]
        assert blocks[0].rich_text[0].bold
        assert not blocks[0].rich_text[1].bold

    @pytest.mark.asyncio
    async def test_mapping_list_values(self, generator: ContentGenerator):
        """Test list values are labelled and bulleted."""
        blocks = await generator.generate({"platforms": ["TikTok", "Reels"]})
        assert [b.type for b in blocks] == [
            BlockType.PARAGRAPH,
            BlockType.BULLETED_LIST_ITEM,
            BlockType.BULLETED_LIST_ITEM,
        ]

    @pytest.mark.asyncio
    async def test_confidence_markers(self, generator: ContentGenerator):
        """Test implied values carry a visible marker."""
        blocks = await generator.generate({"value": "1080x1920px", "confidence": "implied_standard"})
        assert blocks[0].plain_text == "1080x1920px *(industry standard - confirm if needed)*"

        labelled = await generator.generate({"resolution": {"value": "4K", "confidence": "mystery"}})
        assert labelled[0].plain_text == "resolution: 4K *(please confirm)*"

    @pytest.mark.asyncio
    async def test_nesting_bounded(self, generator: ContentGenerator):
        """Test five levels of nesting produce at most two collapsible levels."""
        value = {"a": {"b": {"c": {"d": {"e": "deep"}}}}}
        blocks = await generator.generate(value)

        assert max_toggle_depth(blocks) == 2
        assert "deep" in block_text(blocks)
        innermost = blocks[0].children[0].children[0]
        assert innermost.plain_text == "c: d: {e: deep}"

    @pytest.mark.asyncio
    async def test_toggle_children_capped(self):
        """Test overflow children follow the collapsible group."""
        generator = ContentGenerator(None, AssemblySettings(max_toggle_children=2))
        blocks = await generator.generate({"group": {"a": 1, "b": 2, "c": 3}})

        assert blocks[0].type == BlockType.TOGGLE
        assert len(blocks[0].children) == 2
        assert blocks[1].plain_text == "c: 3"

    @pytest.mark.asyncio
    async def test_references(self, generator: ContentGenerator):
        """Test reference URLs become embeds, images and bookmarks."""
        urls = [
            "https://youtube.com/watch?v=1",
            "https://cdn.example.com/a.jpg",
            "https://docs.google.com/doc/1",
            "https://example.com/page",
        ]
        blocks = await generator.generate({"urls": urls}, heading="📎 References")
        assert [b.type for b in blocks] == [
            BlockType.EMBED,
            BlockType.IMAGE,
            BlockType.BOOKMARK,
            BlockType.BOOKMARK,
        ]

    @pytest.mark.asyncio
    async def test_none_and_empty(self, generator: ContentGenerator):
        """Test empty values produce nothing."""
        assert await generator.generate(None) == []
        assert await generator.generate("   ") == []
        assert await generator.generate({"x": None}) == []


class TestOrganization:
    """Tests for reasoner-driven layout."""

    @pytest.fixture
    def data(self) -> dict:
        """Mapping large enough to be organized."""
        return {"budget": "£2,500", "deadline": "Friday", "deliverables": ["Reel", "Story"]}

    @pytest.mark.asyncio
    async def test_valid_layout_used(self, data, assembly_settings):
        """Test a valid layout replaces mechanical generation."""
        layout = {
            "blocks": [
                {"type": "heading_2", "content": "📅 Schedule"},
                {"type": "paragraph", "content": "£2,500", "bold_prefix": "Budget:"},
                {"type": "bulleted_list", "items": ["Reel", "Story"]},
                {"type": "divider"},
            ]
        }
        reasoner = ScriptedReasoner([json.dumps(layout)])
        blocks = await ContentGenerator(reasoner, assembly_settings).generate(data, ["Group by phase"], "Details")

        assert [b.type for b in blocks] == [
            BlockType.HEADING_2,
            BlockType.PARAGRAPH,
            BlockType.BULLETED_LIST_ITEM,
            BlockType.BULLETED_LIST_ITEM,
            BlockType.DIVIDER,
        ]
        assert blocks[1].plain_text == "Budget: £2,500"
        assert "- Group by phase" in reasoner.prompts[0]
        assert "SECTION: Details" in reasoner.prompts[0]

    @pytest.mark.asyncio
    async def test_invalid_descriptor_falls_back(self, data, assembly_settings):
        """Test one unknown block type discards the whole layout."""
        layout = {"blocks": [{"type": "heading_2", "content": "OK"}, {"type": "table", "content": "x"}]}
        generator = ContentGenerator(ScriptedReasoner([json.dumps(layout)]), assembly_settings)
        blocks = await generator.generate(data)

        assert blocks[0].plain_text == "budget: £2,500"
        assert all(b.type != BlockType.HEADING_2 for b in blocks)

    @pytest.mark.asyncio
    async def test_empty_content_falls_back(self, data, assembly_settings):
        """Test a descriptor without content is rejected."""
        layout = {"blocks": [{"type": "paragraph", "content": "  "}]}
        generator = ContentGenerator(ScriptedReasoner([json.dumps(layout)]), assembly_settings)
        blocks = await generator.generate(data)
        assert blocks[0].plain_text == "budget: £2,500"

    @pytest.mark.asyncio
    async def test_reasoner_failure_falls_back(self, data, assembly_settings):
        """Test a failed call falls back to mechanical generation."""
        generator = ContentGenerator(ScriptedReasoner([ReasonerError("down")]), assembly_settings)
        blocks = await generator.generate(data)
        assert blocks[0].plain_text == "budget: £2,500"

    @pytest.mark.asyncio
    async def test_small_mappings_not_organized(self, assembly_settings):
        """Test mappings below the field minimum skip the reasoner."""
        reasoner = ScriptedReasoner([])
        await ContentGenerator(reasoner, assembly_settings).generate({"a": 1, "b": 2})
        assert reasoner.prompts == []

    def test_descriptor_validation(self):
        """Test descriptor rules."""
        with pytest.raises(ValidationError):
            BlockDescriptor.model_validate({"type": "bulleted_list", "items": []})
        with pytest.raises(ValidationError):
            BlockDescriptor.model_validate({"type": "heading_3"})
        assert BlockDescriptor.model_validate({"type": "divider"}).to_blocks()[0].type == BlockType.DIVIDER
