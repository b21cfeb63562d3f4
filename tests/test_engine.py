"""
End-to-end tests for the document engine.
"""

import json
from unittest.mock import AsyncMock

import pytest

from conftest import ScriptedReasoner, heading

from brief_assembler.config import Settings
from brief_assembler.core.assembler import MINIMAL_NOTICE
from brief_assembler.core.engine import DocumentEngine
from brief_assembler.models import BlockType, CalloutColor, ComplexityTier, ConflictType


def section_text(document, title: str) -> str:
    """Plain text of the blocks between a heading and the next heading."""
    blocks = document.blocks
    start = next(i for i, b in enumerate(blocks) if b.is_heading and b.plain_text == title)
    texts = []
    for block in blocks[start + 1:]:
        if block.is_heading or block.type == BlockType.DIVIDER:
            break
        texts.append(block.plain_text)
    return "\n".join(texts)


@pytest.fixture
def settings() -> Settings:
    """Settings with documented defaults."""
    return Settings()


class TestDocumentEngine:
    """Tests for the DocumentEngine class."""

    @pytest.mark.asyncio
    async def test_urgent_instagram_reel(self, settings, instagram_brief, basic_template, today):
        """Test a next-day social request gets a callout, the raw brief and key details."""
        document = await DocumentEngine(settings=settings).build(instagram_brief, basic_template, today=today)

        callout = document.blocks[0]
        assert callout.type == BlockType.CALLOUT
        assert callout.color == CalloutColor.ORANGE
        assert callout.plain_text == "URGENT DEADLINE: Needed tomorrow"
        assert document.extraction.urgency.temporal >= 9

        raw = document.blocks[2]
        assert document.blocks[1].plain_text == "📝 Raw Brief"
        assert raw.plain_text == instagram_brief["Raw Brief"]
        assert all(run.italic for run in raw.rich_text)

        key_details = section_text(document, "🔑 Key Details")
        assert "platform: Instagram" in key_details
        assert "complexity: Pizza" in key_details

    @pytest.mark.asyncio
    async def test_suggested_defaults_are_marked(self, settings, instagram_brief, basic_template, today):
        """Test implied specs are shown as suggestions under Additional Information."""
        document = await DocumentEngine(settings=settings).build(instagram_brief, basic_template, today=today)

        assert section_text(document, "Aspect Ratio") == "9:16 *(suggested default - adjust as needed)*"
        assert "aspect_ratio" in document.leftover_keys
        assert "platform" not in document.leftover_keys

    @pytest.mark.asyncio
    async def test_multi_platform_conflict(self, settings, multi_platform_brief, basic_template, today):
        """Test a vertical plus horizontal brief gets exactly one multi-format callout."""
        document = await DocumentEngine(settings=settings).build(multi_platform_brief, basic_template, today=today)

        callouts = [b for b in document.blocks if b.type == BlockType.CALLOUT]
        assert len(callouts) == 1
        assert "9:16" in callouts[0].plain_text
        assert "16:9" in callouts[0].plain_text
        assert [c.type for c in document.extraction.conflicts] == [ConflictType.PLATFORM_FORMAT]

    @pytest.mark.asyncio
    async def test_reported_conflicts_deduplicated(self, settings, multi_platform_brief, basic_template, today):
        """Test a reported conflict of a type already found is not repeated."""
        response = json.dumps(
            {
                "Raw Brief": "A product teaser for our autumn range",
                "conflicts": [
                    {"type": "platform_format", "emoji": "📱", "title": "Formats", "message": "Two formats"},
                    {"type": "budget_adequacy", "emoji": "💰", "title": "Budget", "message": "Too low"},
                    "not a conflict",
                ],
            }
        )
        engine = DocumentEngine(ScriptedReasoner([response]), settings=settings)
        document = await engine.build(multi_platform_brief, basic_template, today=today)

        callouts = [b for b in document.blocks if b.type == BlockType.CALLOUT]
        assert len(callouts) == 1
        assert callouts[0].rich_text[0].content == "Multi-Format Requirement"

    @pytest.mark.asyncio
    async def test_malformed_extraction_still_builds(self, settings, full_brief, basic_template, today):
        """Test malformed reasoning output degrades to the fallback object."""
        engine = DocumentEngine(ScriptedReasoner(["this is {not json"]), settings=settings)
        document = await engine.build(full_brief, basic_template, today=today)

        assert document.extraction.used_fallback
        assert not document.minimal
        assert "📝 Raw Brief" in document.headings()
        assert "Jane Doe" in section_text(document, "🔑 Key Details")

    @pytest.mark.asyncio
    async def test_extracted_values_win_over_defaults(self, settings, instagram_brief, basic_template, today):
        """Test smart defaults never replace extracted facts."""
        response = json.dumps({"Raw Brief": instagram_brief["Raw Brief"], "platform": "TikTok"})
        engine = DocumentEngine(ScriptedReasoner([response]), settings=settings)
        document = await engine.build(instagram_brief, basic_template, today=today)

        key_details = section_text(document, "🔑 Key Details")
        assert "platform: TikTok" in key_details
        assert "suggested" not in key_details

    @pytest.mark.asyncio
    async def test_empty_template_uses_minimal_page(self, settings, instagram_brief, today):
        """Test a template without sections produces the minimal page."""
        document = await DocumentEngine(settings=settings).build(instagram_brief, [], today=today)

        assert document.minimal
        assert document.blocks[0].type == BlockType.CALLOUT
        assert "📝 Raw Brief" in document.headings()
        assert document.blocks[-1].plain_text == MINIMAL_NOTICE

    @pytest.mark.asyncio
    async def test_assembly_failure_uses_minimal_page(self, settings, full_brief, basic_template, today):
        """Test an assembly error never escapes the engine."""
        engine = DocumentEngine(settings=settings)
        engine.assembler.assemble = AsyncMock(side_effect=RuntimeError("boom"))

        document = await engine.build(full_brief, basic_template, today=today)
        assert document.minimal
        assert document.blocks[-1].plain_text == MINIMAL_NOTICE

    @pytest.mark.asyncio
    async def test_callouts_only_uses_minimal_page(self, settings, today):
        """Test a body with nothing but callouts is replaced by the minimal page."""
        brief = {"Raw Brief": "URGENT fix today"}
        document = await DocumentEngine(settings=settings).build(brief, [heading("Zzzz Qqqq")], today=today)

        assert document.minimal
        assert document.blocks[0].type == BlockType.CALLOUT
        assert "📝 Raw Brief" in document.headings()

    @pytest.mark.asyncio
    async def test_priorities_and_complexity(self, settings, full_brief, sectioned_template, today):
        """Test included sections are prioritized and complexity is re-checked from content."""
        document = await DocumentEngine(settings=settings).build(
            full_brief, sectioned_template, complexity=ComplexityTier.PIZZA, today=today
        )

        assert [p.section for p in document.priorities][0] == "📝 Raw Brief"
        assert {p.section for p in document.priorities} == set(document.included_sections)
        assert document.extraction.data["complexity_level"] == ComplexityTier.THREE_COURSE_MEAL.value
        assert not document.extraction.completeness.complete

    @pytest.mark.asyncio
    async def test_novel_sections_identified(self, settings, basic_template, today):
        """Test emerging content types missing from the template are recorded."""
        brief = {"Raw Brief": "A weekly podcast about design"}
        document = await DocumentEngine(settings=settings).build(brief, basic_template, today=today)
        assert [n.name for n in document.extraction.novel_sections] == ["🎙️ Audio Production Requirements"]

    @pytest.mark.asyncio
    async def test_brief_not_mutated(self, settings, full_brief, sectioned_template, today):
        """Test the input brief is read-only."""
        snapshot = dict(full_brief)
        await DocumentEngine(settings=settings).build(full_brief, sectioned_template, today=today)
        assert full_brief == snapshot
