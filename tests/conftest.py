"""
Pytest fixtures for brief assembler tests.
"""

from datetime import date
from typing import Any, Union

import pytest

from brief_assembler.config import AssemblySettings
from brief_assembler.exceptions import ReasonerError
from brief_assembler.models.properties import RecordSchema


class ScriptedReasoner:
    """Reasoner returning queued responses; exceptions in the queue are raised."""

    def __init__(self, responses: list[Union[str, Exception]]):
        self.responses = list(responses)
        self.prompts: list[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.responses:
            raise ReasonerError("No scripted response left")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def heading(text: str, level: int = 2) -> dict[str, Any]:
    kind = f"heading_{level}"
    return {"type": kind, kind: {"rich_text": [{"plain_text": text}]}}


def text_block(kind: str, text: str) -> dict[str, Any]:
    return {"type": kind, kind: {"rich_text": [{"plain_text": text}]}}


def divider() -> dict[str, Any]:
    return {"type": "divider", "divider": {}}


@pytest.fixture
def today() -> date:
    """Fixed reference date for deadline proximity."""
    return date(2025, 11, 26)


@pytest.fixture
def scripted_reasoner():
    """Factory for reasoners with a fixed response queue."""
    return ScriptedReasoner


@pytest.fixture
def assembly_settings() -> AssemblySettings:
    """Assembly settings with the documented defaults."""
    return AssemblySettings()


@pytest.fixture
def instagram_brief() -> dict[str, Any]:
    """Short urgent social brief."""
    return {"Raw Brief": "Need a 30 second Instagram reel by tomorrow"}


@pytest.fixture
def multi_platform_brief() -> dict[str, Any]:
    """Brief targeting both vertical and horizontal platforms."""
    return {
        "Project Name": "Autumn Launch",
        "Raw Brief": "A product teaser for our autumn range",
        "platforms": "Instagram, YouTube",
    }


@pytest.fixture
def full_brief() -> dict[str, Any]:
    """Brief with contact fields, details and loose extra fields."""
    return {
        "Project Name": "Spring Campaign",
        "Client Name": "Jane Doe",
        "Client Email": "jane@example.com",
        "Company Name": "Acme Ltd",
        "Due Dates": "2025-12-20",
        "Raw Brief": "We want a short brand film for LinkedIn about our new office.",
        "budget": "£2,500",
        "mood_board": "Warm tones, natural light",
    }


@pytest.fixture
def basic_template() -> list[dict[str, Any]]:
    """Template with a raw brief section and a key details section."""
    return [
        heading("📝 Raw Brief"),
        heading("🔑 Key Details"),
    ]


@pytest.fixture
def sectioned_template() -> list[dict[str, Any]]:
    """Template with instructions, an unmatched section and a divider."""
    return [
        text_block("paragraph", "Internal brief for the production team."),
        heading("📝 Raw Brief"),
        text_block("toggle", "[SOP: Keep the client's wording]"),
        heading("🔑 Key Details"),
        heading("💰 Budget"),
        text_block("paragraph", "Budget guidance placeholder"),
        heading("🎬 Shot List (if applicable)"),
        divider(),
        heading("📎 References"),
    ]


@pytest.fixture
def record_schema() -> RecordSchema:
    """Record schema with the common intake properties."""
    return RecordSchema.from_payload(
        {
            "properties": {
                "Project name": {"type": "title", "title": {}},
                "Client Name": {"type": "rich_text", "rich_text": {}},
                "Contact Email": {"type": "email", "email": {}},
                "Brief for AI": {"type": "rich_text", "rich_text": {}},
                "Priority": {
                    "type": "select",
                    "select": {"options": [{"name": "High"}, {"name": "Normal"}]},
                },
                "Budget": {"type": "number", "number": {}},
                "Due": {"type": "date", "date": {}},
                "Assignee": {"type": "people", "people": {}},
                "Approved": {"type": "checkbox", "checkbox": {}},
            }
        }
    )
