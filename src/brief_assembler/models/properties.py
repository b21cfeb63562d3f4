"""Structured-record property schema and mapping models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator


class PropertyType(str, Enum):
    """Field types the record store declares."""

    TITLE = "title"
    RICH_TEXT = "rich_text"
    NUMBER = "number"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    DATE = "date"
    CHECKBOX = "checkbox"
    URL = "url"
    EMAIL = "email"
    PHONE_NUMBER = "phone_number"
    PEOPLE = "people"
    RELATION = "relation"


class PropertySchema(BaseModel):
    """Declared type and constraints of one record field."""

    name: str
    type: str
    options: list[str] = Field(default_factory=list)
    description: Optional[str] = None

    @property
    def property_type(self) -> Optional[PropertyType]:
        try:
            return PropertyType(self.type)
        except ValueError:
            return None

    @classmethod
    def from_payload(cls, name: str, payload: dict[str, Any]) -> PropertySchema:
        prop_type = payload.get("type", "rich_text")
        body = payload.get(prop_type) or {}
        options = [opt.get("name", "") for opt in body.get("options", [])] if isinstance(body, dict) else []
        return cls(name=name, type=prop_type, options=options, description=payload.get("description"))


class RecordSchema(BaseModel):
    """All record fields keyed by property name."""

    properties: dict[str, PropertySchema] = Field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> RecordSchema:
        return cls(
            properties={
                name: PropertySchema.from_payload(name, definition)
                for name, definition in (payload.get("properties") or {}).items()
            }
        )

    def get(self, name: str) -> Optional[PropertySchema]:
        return self.properties.get(name)


# Word labels some replies use instead of a number
CONFIDENCE_LABELS = {"high": 0.9, "medium": 0.6, "low": 0.3}


class MappedProperty(BaseModel):
    """A value the mapper decided to populate."""

    value: Any
    confidence: float = 0.0
    reason: str = ""
    source_field: Optional[str] = Field(default=None, validation_alias=AliasChoices("source_field", "sourceField"))

    @field_validator("confidence", mode="before")
    @classmethod
    def coerce_confidence(cls, v: Any) -> float:
        """Accept numbers, numeric strings and high/medium/low labels."""
        if isinstance(v, bool) or v is None:
            return 0.0
        if isinstance(v, (int, float)):
            return float(v)
        if isinstance(v, str):
            label = v.strip().lower()
            if label in CONFIDENCE_LABELS:
                return CONFIDENCE_LABELS[label]
            try:
                return float(label.rstrip("%")) / (100 if label.endswith("%") else 1)
            except ValueError:
                return 0.0
        return 0.0

    @field_validator("reason", mode="before")
    @classmethod
    def coerce_reason(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("source_field", mode="before")
    @classmethod
    def coerce_source_field(cls, v: Any) -> Optional[str]:
        return None if v is None or v == "" else str(v)


class PropertyMapping(BaseModel):
    """Populate / skip / uncertain decisions for every schema property."""

    populate: dict[str, MappedProperty] = Field(default_factory=dict)
    skip: dict[str, dict[str, Any]] = Field(default_factory=dict)
    uncertain: dict[str, dict[str, Any]] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)
    used_fallback: bool = False


class RecordCreationResult(BaseModel):
    """Outcome of a successful record creation."""

    record: dict[str, Any]
    properties: dict[str, Any]
    attempts: int = 1
    corrections: int = 0
