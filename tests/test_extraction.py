"""
Tests for structured extraction.
"""

import json

import pytest

from conftest import ScriptedReasoner

from brief_assembler.core.extraction import StructuredExtractor, parse_brief_details
from brief_assembler.core.urgency import UrgencyScorer
from brief_assembler.exceptions import ReasonerError
from brief_assembler.models import ComplexityTier, UrgencyLevel


def make_extractor(reasoner=None) -> StructuredExtractor:
    return StructuredExtractor(reasoner, UrgencyScorer(threshold=7.0))


class TestParseBriefDetails:
    """Tests for exploding pre-formatted details text."""

    def test_headers_become_sections(self):
        """Test header lines split the text and leading text is the introduction."""
        text = "Quick summary first\nDeliverables:\n- one video\n- two stills\nTimeline:\nTwo weeks"
        assert parse_brief_details(text) == {
            "Introduction": "Quick summary first",
            "Deliverables": "- one video\n- two stills",
            "Timeline": "Two weeks",
        }

    def test_bullets_are_not_headers(self):
        """Test bullet lines ending in a colon stay content."""
        sections = parse_brief_details("Notes:\n- includes:\n* also:")
        assert sections == {"Notes": "- includes:\n* also:"}

    def test_no_headers(self):
        """Test plain text is not exploded."""
        assert parse_brief_details("Just a sentence about the project.") is None
        assert parse_brief_details(None) is None


class TestStructuredExtractor:
    """Tests for the StructuredExtractor class."""

    @pytest.mark.asyncio
    async def test_fenced_response(self, today):
        """Test fenced JSON is parsed and empty values dropped."""
        response = "```json\n" + json.dumps({"project_name": "Launch", "empty": "", "none": None, "list": []}) + "\n```"
        result = await make_extractor(ScriptedReasoner([response])).extract({"Raw Brief": "x"}, today=today)

        assert not result.used_fallback
        assert result.data["project_name"] == "Launch"
        assert "empty" not in result.data
        assert "none" not in result.data
        assert "list" not in result.data

    @pytest.mark.asyncio
    async def test_brace_recovery(self, today):
        """Test JSON wrapped in prose is recovered."""
        reasoner = ScriptedReasoner(['Here is the data: {"budget": "£500"} Let me know!'])
        result = await make_extractor(reasoner).extract({"Raw Brief": "x"}, today=today)
        assert result.data["budget"] == "£500"
        assert not result.used_fallback

    @pytest.mark.asyncio
    async def test_brief_details_exploded(self, today):
        """Test a details blob becomes one key per header."""
        payload = {"brief_details": "Goals:\nSell more\nTarget Audience:\nStudents", "project_name": "X"}
        result = await make_extractor(ScriptedReasoner([json.dumps(payload)])).extract({"a": 1}, today=today)

        assert result.data["goals"] == "Sell more"
        assert result.data["target_audience"] == "Students"
        assert "brief_details" not in result.data

    @pytest.mark.asyncio
    async def test_malformed_response_falls_back(self, today):
        """Test unparseable output yields the brief plus urgency fields."""
        brief = {"Raw Brief": "urgent rush job", "Due Dates": "Friday"}
        result = await make_extractor(ScriptedReasoner(["this is {not json"])).extract(brief, today=today)

        assert result.used_fallback
        assert result.data["Raw Brief"] == "urgent rush job"
        assert result.data["urgency_detected"] is True
        assert result.urgency.detected
        assert result.urgency.summary == "Deadline: Friday"

    @pytest.mark.asyncio
    async def test_reported_flag_does_not_override_score(self, today):
        """Test a reasoner's urgency flag below the threshold is not trusted."""
        payload = {"urgency_detected": True, "urgency_score": 2, "project_name": "Calm"}
        reasoner = ScriptedReasoner([json.dumps(payload)])
        result = await make_extractor(reasoner).extract({"Raw Brief": "calm request"}, today=today)

        assert not result.used_fallback
        assert result.urgency.score < 7
        assert not result.urgency.detected
        assert result.urgency.level == UrgencyLevel.LOW
        assert result.data["urgency_detected"] is False

    @pytest.mark.asyncio
    async def test_non_object_response_falls_back(self, today):
        """Test a JSON array is not accepted as the extraction."""
        result = await make_extractor(ScriptedReasoner(["[1, 2, 3]"])).extract({"a": "b"}, today=today)
        assert result.used_fallback
        assert result.data["a"] == "b"

    @pytest.mark.asyncio
    async def test_reasoner_error_falls_back(self, today):
        """Test a failed call yields the fallback object."""
        reasoner = ScriptedReasoner([ReasonerError("timed out")])
        result = await make_extractor(reasoner).extract({"a": "b"}, today=today)
        assert result.used_fallback
        assert result.data["urgency_summary"] is None

    @pytest.mark.asyncio
    async def test_no_reasoner_falls_back(self, today):
        """Test extraction works without a reasoner."""
        result = await make_extractor().extract({"a": "b"}, today=today)
        assert result.used_fallback
        assert result.data["urgency_level"] == "LOW"

    @pytest.mark.asyncio
    async def test_higher_remote_score_wins(self, today):
        """Test the reasoner's advisory score is used when higher."""
        reasoner = ScriptedReasoner([json.dumps({"urgency_score": 9.5, "urgency_summary": "Due tonight"})])
        result = await make_extractor(reasoner).extract({"Raw Brief": "hello"}, today=today)

        assert result.urgency.score == 9.5
        assert result.urgency.level == UrgencyLevel.CRITICAL
        assert result.urgency.detected
        assert result.urgency.summary == "Due tonight"
        assert result.data["urgency_score"] == 9.5

    @pytest.mark.asyncio
    async def test_local_score_is_floor(self, today, instagram_brief):
        """Test a low remote score never lowers the local one."""
        reasoner = ScriptedReasoner([json.dumps({"urgency_score": 1, "urgency_summary": "Not urgent"})])
        result = await make_extractor(reasoner).extract(instagram_brief, today=today)

        assert result.urgency.score == pytest.approx(5.4)
        assert result.urgency.summary == "Needed tomorrow"
        assert result.urgency.requires_callout

    @pytest.mark.asyncio
    async def test_remote_score_clamped(self, today):
        """Test out-of-range remote scores are clamped."""
        result = await make_extractor(ScriptedReasoner([json.dumps({"urgency_score": 42})])).extract(
            {"a": "b"}, today=today
        )
        assert result.urgency.score == 10

    @pytest.mark.asyncio
    async def test_prompt_contents(self, today):
        """Test the prompt carries the brief, complexity and date."""
        reasoner = ScriptedReasoner(['{"a": 1}'])
        await make_extractor(reasoner).extract({"Raw Brief": "A reel"}, ComplexityTier.CUP_OF_TEA, today=today)

        prompt = reasoner.prompts[0]
        assert '"Raw Brief": "A reel"' in prompt
        assert "COMPLEXITY LEVEL: Cup of Tea" in prompt
        assert "2025-11-26" in prompt
        assert '{"value": "1080x1920px", "confidence": "implied_standard"}' in prompt

    @pytest.mark.asyncio
    async def test_brief_not_mutated(self, today):
        """Test the original brief is never modified."""
        brief = {"Raw Brief": "urgent"}
        await make_extractor().extract(brief, today=today)
        assert brief == {"Raw Brief": "urgent"}
