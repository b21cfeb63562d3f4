"""
Tests for section prioritization and novel section detection.
"""

import pytest

from brief_assembler.core.prioritizer import SectionPrioritizer
from brief_assembler.models import Conflict, ConflictType


@pytest.fixture
def prioritizer() -> SectionPrioritizer:
    """Create a prioritizer with the default urgency threshold."""
    return SectionPrioritizer(urgency_threshold=7.0)


@pytest.fixture
def duration_conflict() -> Conflict:
    """A duration contradiction."""
    return Conflict(
        type=ConflictType.DURATION_CONTRADICTION,
        emoji="⏱️",
        title="Duration Clarification",
        message="Multiple durations mentioned",
    )


class TestSectionPrioritizer:
    """Tests for the SectionPrioritizer class."""

    def test_base_priorities(self, prioritizer: SectionPrioritizer):
        """Test well-known sections carry their default weights."""
        assert prioritizer.base_priority("📝 Raw Brief") == 100
        assert prioritizer.base_priority("🔑 Key Details") == 80
        assert prioritizer.base_priority("Something Else") == 50

    def test_urgency_boost(self, prioritizer: SectionPrioritizer):
        """Test urgent briefs lift timeline sections."""
        result = prioritizer.prioritize(["Creative Direction", "Timeline"], {}, urgency_score=8)
        assert [(p.section, p.priority) for p in result] == [("Timeline", 80), ("Creative Direction", 60)]
        assert result[0].reasoning == "Urgency-critical section"

    def test_no_urgency_boost_below_threshold(self, prioritizer: SectionPrioritizer):
        """Test calm briefs keep base weights."""
        result = prioritizer.prioritize(["Timeline"], {}, urgency_score=6.9)
        assert result[0].priority == 50
        assert result[0].reasoning == "Standard priority"

    def test_conflict_boost(self, prioritizer: SectionPrioritizer, duration_conflict: Conflict):
        """Test sections carrying conflicting facts are lifted."""
        result = prioritizer.prioritize(["Technical Specifications", "Creative Direction"], {}, conflicts=[duration_conflict])
        assert result[0].section == "Technical Specifications"
        assert result[0].priority == 90
        assert result[1].priority == 60

    def test_budget_boost(self, prioritizer: SectionPrioritizer):
        """Test a constrained budget lifts budget sections."""
        brief = {"budget": "Tight budget of £500"}
        result = prioritizer.prioritize(["Budget", "Mood"], brief)
        assert result[0].section == "Budget"
        assert result[0].priority == 75
        assert not prioritizer.detects_budget_constraint({"budget": "£50,000"})

    def test_novel_boost(self, prioritizer: SectionPrioritizer):
        """Test novel sections are lifted."""
        result = prioritizer.prioritize(["🥽 AR/XR Requirements"], {}, novel_sections=["🥽 AR/XR Requirements"])
        assert result[0].priority == 65

    def test_reorders_never_filters(self, prioritizer: SectionPrioritizer):
        """Test every heading is kept and ties keep template order."""
        headings = ["Alpha", "Beta", "Gamma"]
        result = prioritizer.prioritize(headings, {})
        assert [p.section for p in result] == headings


class TestNovelSections:
    """Tests for emerging content type detection."""

    def test_detected(self, prioritizer: SectionPrioritizer):
        """Test an AR mention adds an AR/XR section."""
        novel = prioritizer.identify_novel_sections({"Raw Brief": "An AR filter for the launch"}, ["Raw Brief"])
        assert [n.name for n in novel] == ["🥽 AR/XR Requirements"]
        assert novel[0].priority == 75

    def test_word_boundaries(self, prioritizer: SectionPrioritizer):
        """Test keywords inside other words do not count."""
        novel = prioritizer.identify_novel_sections({"Raw Brief": "Brand refresh for the car park"}, [])
        assert novel == []

    def test_existing_section_not_repeated(self, prioritizer: SectionPrioritizer):
        """Test types the template already covers are skipped."""
        novel = prioritizer.identify_novel_sections({"Raw Brief": "A podcast series"}, ["Audio Production Requirements"])
        assert novel == []
