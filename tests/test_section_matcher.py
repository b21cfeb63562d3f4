"""
Tests for section matching.
"""

import pytest

from brief_assembler.core.section_matcher import (
    SMART_KEY_DETAILS,
    SMART_NOTES,
    SMART_REFERENCES,
    SectionMatcher,
)


class TestSmartAggregation:
    """Tests for the hard-coded section aggregations."""

    @pytest.fixture
    def matcher(self) -> SectionMatcher:
        """Create a matcher with the default threshold."""
        return SectionMatcher(similarity_threshold=0.7)

    def test_key_details(self, matcher: SectionMatcher, full_brief):
        """Test key details gather contact and date fields."""
        match = matcher.match("🔑 Key Details", {}, full_brief)

        assert match.matched_key == SMART_KEY_DETAILS
        assert match.data == {
            "dates": "2025-12-20",
            "client": "Jane Doe",
            "email": "jane@example.com",
            "company": "Acme Ltd",
        }
        assert set(match.consumed_keys) == {"Due Dates", "Client Name", "Client Email", "Company Name"}

    def test_key_details_platform_and_priority(self, matcher: SectionMatcher):
        """Test platform, priority and complexity come from extracted data."""
        extracted = {"platform": "Instagram", "urgency_level": "HIGH", "complexity_level": "Pizza"}
        match = matcher.match("Key Details", extracted, {"platform": "TikTok"})

        assert match.data == {"platform": "Instagram", "priority": "HIGH", "complexity": "Pizza"}
        assert match.all_keys == [SMART_KEY_DETAILS, "platform"]

    def test_key_details_empty(self, matcher: SectionMatcher):
        """Test key details with nothing to show do not match."""
        assert matcher.match("Key Details", {}, {"Raw Brief": "hi"}) is None

    def test_references(self, matcher: SectionMatcher):
        """Test URLs anywhere in the brief fill the references section."""
        original = {
            "notes": "See https://youtube.com/watch?v=1 and https://cdn.example.com/a.png",
            "more": "again https://youtube.com/watch?v=1",
        }
        match = matcher.match("📎 References", {}, original)
        assert match.matched_key == SMART_REFERENCES
        assert match.data == {"urls": ["https://youtube.com/watch?v=1", "https://cdn.example.com/a.png"]}

    def test_notes(self, matcher: SectionMatcher):
        """Test notes gather interaction notes and conversation summaries."""
        match = matcher.match(
            "📌 Notes & Considerations",
            {"conversation_summary": "Agreed on tone"},
            {"interaction notes": "Called twice"},
        )
        assert match.matched_key == SMART_NOTES
        assert match.data == {"interaction_notes": "Called twice", "conversation_summary": "Agreed on tone"}
        assert match.consumed_keys == ["interaction notes", "conversation_summary"]

    def test_raw_brief(self, matcher: SectionMatcher, full_brief):
        """Test the raw brief is matched from the original brief."""
        match = matcher.match("📝 Raw Brief", {"Raw Brief": "rewritten"}, full_brief)
        assert match.matched_key == "Raw Brief"
        assert match.data == full_brief["Raw Brief"]

    def test_brief_details(self, matcher: SectionMatcher):
        """Test brief details come from the original details field."""
        match = matcher.match("Brief Details", {}, {"Brief Details": "All the details"})
        assert match.matched_key == "brief_details"
        assert match.all_keys == ["brief_details", "Brief Details"]


class TestMatchCascade:
    """Tests for the generic matching cascade."""

    @pytest.fixture
    def matcher(self) -> SectionMatcher:
        """Create a matcher with the default threshold."""
        return SectionMatcher(similarity_threshold=0.7)

    def test_exact_heading(self, matcher: SectionMatcher):
        """Test an exact key wins."""
        match = matcher.match("Deliverables", {"Deliverables": ["reel"]}, {})
        assert match.matched_key == "Deliverables"

    def test_normalized_heading(self, matcher: SectionMatcher):
        """Test emoji and separators are ignored."""
        match = matcher.match("💰 Budget", {"budget": "£2,500"}, {})
        assert match.matched_key == "budget"
        assert match.data == "£2,500"

    def test_containment(self, matcher: SectionMatcher):
        """Test a key containing the heading matches."""
        match = matcher.match("Creative Direction", {"creative_direction_notes": "Warm"}, {})
        assert match.matched_key == "creative_direction_notes"

    def test_semantic_concept(self, matcher: SectionMatcher):
        """Test the concept table links headings to differently named keys."""
        match = matcher.match("⚙️ Technical Requirements", {"video_specifications": {"fps": 25}}, {})
        assert match.matched_key == "video_specifications"

    def test_similarity(self, matcher: SectionMatcher):
        """Test near-identical spellings match."""
        match = matcher.match("Deliverabels", {"deliverables": ["reel"]}, {})
        assert match.matched_key == "deliverables"

    def test_word_overlap(self, matcher: SectionMatcher):
        """Test two shared heading words match a key."""
        match = matcher.match("Music and Sound Preferences", {"music_sound_notes": "Upbeat"}, {})
        assert match.matched_key == "music_sound_notes"

    def test_short_words_never_overlap(self, matcher: SectionMatcher):
        """Test headings made of short words do not match arbitrary keys."""
        assert matcher.match("A to Z", {"anything": "value"}, {}) is None

    def test_metadata_keys_excluded(self, matcher: SectionMatcher):
        """Test pipeline bookkeeping never fills a section."""
        extracted = {"urgency": {"score": 9}, "urgency_level": "HIGH", "confidence": 0.9}
        assert matcher.match("Urgency Level", extracted, {}) is None
        assert matcher.match("Confidence", extracted, {}) is None

    def test_empty_values_ignored(self, matcher: SectionMatcher):
        """Test empty values do not match."""
        assert matcher.match("Budget", {"budget": ""}, {"budget": []}) is None

    def test_exact_key_prefers_extracted(self, matcher: SectionMatcher):
        """Test an exact key is read from extracted data before the original."""
        match = matcher.match("budget", {"budget": "£3,000"}, {"budget": "3k"})
        assert match.data == "£3,000"

    def test_normalized_key_prefers_original(self, matcher: SectionMatcher):
        """Test normalized matches read the brief as received."""
        match = matcher.match("Budget", {"budget": "£3,000"}, {"budget": "3k"})
        assert match.data == "3k"

    def test_no_match(self, matcher: SectionMatcher):
        """Test unrelated headings return None."""
        assert matcher.match("🎬 Shot List (if applicable)", {"budget": "£1"}, {"Raw Brief": "x"}) is None
        assert matcher.match("✨", {"budget": "£1"}, {}) is None
