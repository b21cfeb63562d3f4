"""
Property mapping for the structured-record store.

The reasoner decides which schema properties the brief populates; values
are converted to typed payloads by declared field type. Record creation
runs a bounded attempt -> validate -> correct loop and fails with full
diagnostic context once the correction budget is spent.
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime
from typing import Any, Mapping, Optional, Protocol

from ..clients.reasoner import Reasoner
from ..config import get_settings
from ..exceptions import ReasonerError, RecordValidationError, ResponseParseError
from ..models.properties import (
    MappedProperty,
    PropertyMapping,
    PropertySchema,
    PropertyType,
    RecordCreationResult,
    RecordSchema,
)
from ..models.template import ParsedTemplate
from ..utils.logger import get_progress_logger
from ..utils.text import first_present, parse_json_response
from .template_parser import TemplateParser

progress = get_progress_logger(__name__, "PropertyMapper")

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
URL_PATTERN = re.compile(r"^https?://\S+$")
ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2}:\d{2}(:\d{2})?.*)?$")

# Schema property -> brief keys, most specific first
FALLBACK_FIELDS: dict[str, tuple[str, ...]] = {
    "USER ID": ("User_Number", "USER ID", "user_id"),
    "Project name": ("Project Name", "project_name"),
    "Client Name": ("Client Name", "client_name", "Company Name"),
    "Contact Email": ("Client Email", "Contact Email", "email", "contact"),
    "Brief for AI": ("brief_details", "Raw_Brief", "Raw Brief"),
}
FALLBACK_CONFIDENCE = 0.7
ASSIGNEE_PROPERTY = "Assignee"

MAPPING_PROMPT = """You are a semantic property mapper for creative content operations.
You receive a completed brief and must decide which record properties to populate.

## BRIEF DATA
{brief_json}

## TARGET SCHEMA
{schema}

## TEMPLATE CONTEXT
{template}

## GUIDELINES
{guidelines}

## DECISION RULES
POPULATE when the brief contains the information and it is captured at intake
(names, contact, project details, dates, descriptions, platform, priority, budget).
SKIP post-intake workflow fields: assignments, approvals, responses, final links or results
(names containing "allocated", "assigned", "approval", "accept", "response", "update", "link", "final").
Mark UNCERTAIN when the field name does not clearly indicate intake or workflow.
Values MUST match the declared type; select values MUST be one of the listed options.

## OUTPUT
Return ONLY valid JSON:
{{
  "populate": {{"Property Name": {{"value": "...", "notionType": "select", "confidence": 0.95,
                "reason": "why", "sourceField": "brief field"}}}},
  "skip": {{"Property Name": {{"reason": "why"}}}},
  "uncertain": {{"Property Name": {{"reason": "why", "suggestedValue": "..."}}}},
  "metadata": {{"totalPropertiesAnalyzed": 0, "decisionsSummary": "..."}}
}}"""

CORRECTION_PROMPT = """A record store call failed with this error:

ERROR: {error}

SCHEMA: {schema}

PROPERTIES WE TRIED: {properties}

Based on the error and schema, fix the properties to match the store's requirements.
Return the corrected properties as one JSON object keyed by property name."""


class RecordStore(Protocol):
    """Creates a record from typed property values."""

    async def create_record(self, properties: dict[str, Any]) -> dict[str, Any]:
        ...


def describe_schema(schema: RecordSchema) -> str:
    """Per-property constraints for the mapping prompt."""
    lines = ["Available properties and their constraints:", ""]
    for name, prop in schema.properties.items():
        line = f"- {name} ({prop.type})"
        kind = prop.property_type
        if kind == PropertyType.SELECT and prop.options:
            line += f"\n  -> MUST match ONE of: [{', '.join(prop.options)}]"
        elif kind == PropertyType.MULTI_SELECT and prop.options:
            line += f"\n  -> MUST match from: [{', '.join(prop.options)}]"
        elif kind == PropertyType.PEOPLE:
            line += "\n  -> MUST be a user ID (UUID), NOT a name"
        elif kind == PropertyType.DATE:
            line += "\n  -> Format: ISO 8601 (YYYY-MM-DD or YYYY-MM-DDTHH:mm:ss)"
        elif kind == PropertyType.NUMBER:
            line += "\n  -> MUST be numeric"
        elif kind == PropertyType.CHECKBOX:
            line += "\n  -> MUST be boolean (true/false)"
        elif kind == PropertyType.URL:
            line += "\n  -> MUST be a valid URL"
        elif kind == PropertyType.EMAIL:
            line += "\n  -> MUST be a valid email address"
        if prop.description:
            line += f"\n  -> Description: {prop.description}"
        lines.append(line)
    return "\n".join(lines)


def typed_value(value: Any, prop: PropertySchema) -> dict[str, Any]:
    """
    Convert a plain value to the store payload for the declared type.

    Raises:
        ValueError: If the value cannot be represented in that type.
    """
    kind = prop.property_type
    if kind == PropertyType.TITLE:
        return {"title": [{"text": {"content": str(value)}}]}
    if kind == PropertyType.NUMBER:
        return {"number": float(value) if not isinstance(value, (int, float)) else value}
    if kind == PropertyType.SELECT:
        return {"select": {"name": str(value)}}
    if kind == PropertyType.MULTI_SELECT:
        values = value if isinstance(value, list) else [value]
        return {"multi_select": [{"name": str(v)} for v in values]}
    if kind == PropertyType.DATE:
        if isinstance(value, str):
            return {"date": {"start": value}}
        if isinstance(value, Mapping) and value.get("start"):
            return {"date": dict(value)}
        if isinstance(value, (date, datetime)):
            return {"date": {"start": value.isoformat()[:10]}}
        raise ValueError(f"Cannot convert {value!r} to a date")
    if kind == PropertyType.CHECKBOX:
        return {"checkbox": bool(value)}
    if kind in (PropertyType.URL, PropertyType.EMAIL, PropertyType.PHONE_NUMBER):
        return {kind.value: str(value)}
    if kind in (PropertyType.PEOPLE, PropertyType.RELATION):
        ids = value if isinstance(value, list) else [value]
        return {kind.value: [{"id": str(i)} for i in ids]}
    if kind != PropertyType.RICH_TEXT:
        progress.warning(f"Unknown property type {prop.type!r} for {prop.name}, using rich_text")
    return {"rich_text": [{"text": {"content": str(value)}}]}


def _payload_errors(name: str, payload: Any, prop: PropertySchema) -> list[str]:
    if not isinstance(payload, Mapping):
        return [f"{name}: expected an object payload"]
    kind = prop.property_type
    if kind is None:
        return []
    if kind.value not in payload:
        return [f"{name}: payload is missing '{kind.value}'"]
    body = payload[kind.value]

    if kind == PropertyType.SELECT:
        option = (body or {}).get("name") if isinstance(body, Mapping) else None
        if prop.options and option not in prop.options:
            return [f"{name}: '{option}' is not one of {prop.options}"]
    elif kind == PropertyType.MULTI_SELECT and prop.options:
        bad = [o.get("name") for o in body or [] if isinstance(o, Mapping) and o.get("name") not in prop.options]
        if bad:
            return [f"{name}: {bad} not in {prop.options}"]
    elif kind == PropertyType.NUMBER:
        if isinstance(body, bool) or not isinstance(body, (int, float)):
            return [f"{name}: number expected, got {body!r}"]
    elif kind == PropertyType.CHECKBOX:
        if not isinstance(body, bool):
            return [f"{name}: boolean expected, got {body!r}"]
    elif kind == PropertyType.DATE:
        start = body.get("start") if isinstance(body, Mapping) else None
        if not isinstance(start, str) or not ISO_DATE_PATTERN.match(start):
            return [f"{name}: ISO 8601 date expected, got {start!r}"]
    elif kind == PropertyType.URL:
        if not isinstance(body, str) or not URL_PATTERN.match(body):
            return [f"{name}: valid URL expected, got {body!r}"]
    elif kind == PropertyType.EMAIL:
        if not isinstance(body, str) or not EMAIL_PATTERN.match(body):
            return [f"{name}: valid email expected, got {body!r}"]
    return []


def _section(parsed: Mapping[str, Any], key: str, allow_list: bool = True) -> dict[str, Any]:
    """One top-level section of a mapping reply; a list of names is accepted where allowed."""
    value = parsed.get(key) or {}
    if allow_list and isinstance(value, list) and all(isinstance(item, str) for item in value):
        return {item: {} for item in value}
    if not isinstance(value, Mapping):
        raise TypeError(f"'{key}' must be an object, got {type(value).__name__}")
    return dict(value)


def _decisions(section: Mapping[str, Any]) -> dict[str, dict[str, Any]]:
    return {
        str(name): dict(detail) if isinstance(detail, Mapping) else ({"reason": str(detail)} if detail else {})
        for name, detail in section.items()
    }


class PropertyMapper:
    """Maps brief data onto a record schema."""

    def __init__(self, reasoner: Optional[Reasoner] = None, default_assignee_id: Optional[str] = None):
        self.reasoner = reasoner
        self.default_assignee_id = default_assignee_id or get_settings().record.default_assignee_id
        self.parser = TemplateParser()

    async def map_properties(
        self,
        brief: Mapping[str, Any],
        schema: RecordSchema,
        parsed_template: Optional[ParsedTemplate] = None,
        guidelines: Optional[Mapping[str, Any]] = None,
    ) -> PropertyMapping:
        """Decide populate / skip / uncertain for each schema property."""
        progress.start_operation("map_properties", f"{len(schema.properties)} schema properties")
        if self.reasoner is None:
            mapping = self.fallback_mapping(brief, schema)
        else:
            prompt = self.build_prompt(brief, schema, parsed_template, guidelines)
            try:
                response = await self.reasoner.complete(prompt)
                mapping = self.parse_mapping(response)
            except (ReasonerError, ResponseParseError) as e:
                progress.warning(f"[FALLBACK] Property mapping failed: {e}")
                mapping = self.fallback_mapping(brief, schema)

        progress.end_operation(
            "map_properties",
            details=f"populate={len(mapping.populate)}, skip={len(mapping.skip)}, "
            f"uncertain={len(mapping.uncertain)}, fallback={mapping.used_fallback}",
        )
        return mapping

    def build_prompt(
        self,
        brief: Mapping[str, Any],
        schema: RecordSchema,
        parsed_template: Optional[ParsedTemplate] = None,
        guidelines: Optional[Mapping[str, Any]] = None,
    ) -> str:
        if parsed_template is not None:
            template = self.parser.describe(parsed_template)
            variables = self.parser.all_variables(parsed_template)
            if variables:
                template += f"\nTemplate variables: {', '.join(variables)}\n"
        else:
            template = "No template context available"

        if guidelines:
            rules = "\n".join(f"- {key}: {value}" for key, value in guidelines.items())
        else:
            rules = "No additional guidelines"

        return MAPPING_PROMPT.format(
            brief_json=json.dumps(brief, indent=2, default=str, ensure_ascii=False),
            schema=describe_schema(schema),
            template=template,
            guidelines=rules,
        )

    def parse_mapping(self, response: str) -> PropertyMapping:
        """
        Parse the reasoner's mapping response.

        Populate entries go through ``MappedProperty`` validation, which
        coerces loose confidence values. Skip and uncertain may be objects
        or plain lists of property names.

        Raises:
            ResponseParseError: If no JSON object can be recovered or a
                section has an unusable shape.
        """
        parsed = parse_json_response(response, opener="{")
        if not isinstance(parsed, dict):
            raise ResponseParseError("Mapping response is not a JSON object", raw_text=response)

        try:
            populate = {}
            for name, entry in _section(parsed, "populate", allow_list=False).items():
                if isinstance(entry, Mapping) and "value" in entry:
                    populate[str(name)] = MappedProperty.model_validate(dict(entry))
            return PropertyMapping(
                populate=populate,
                skip=_decisions(_section(parsed, "skip")),
                uncertain=_decisions(_section(parsed, "uncertain")),
                metadata=_section(parsed, "metadata", allow_list=False),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ResponseParseError(f"Malformed mapping response: {e}", raw_text=response) from e

    def fallback_mapping(self, brief: Mapping[str, Any], schema: RecordSchema) -> PropertyMapping:
        """Deterministic mapping of the obvious fields."""
        mapping = PropertyMapping(used_fallback=True, metadata={"model": "fallback"})
        for prop_name, keys in FALLBACK_FIELDS.items():
            value = first_present(dict(brief), *keys)
            if value and schema.get(prop_name) is not None:
                mapping.populate[prop_name] = MappedProperty(
                    value=value,
                    confidence=FALLBACK_CONFIDENCE,
                    reason="Fallback mapping",
                    source_field=next(k for k in keys if brief.get(k)),
                )

        if self.default_assignee_id and schema.get(ASSIGNEE_PROPERTY) is not None:
            mapping.populate[ASSIGNEE_PROPERTY] = MappedProperty(
                value=self.default_assignee_id,
                confidence=1.0,
                reason="System default",
            )
        progress.info(f"Fallback mapping: {len(mapping.populate)} properties")
        return mapping

    def to_typed_values(self, mapping: PropertyMapping, schema: RecordSchema) -> dict[str, Any]:
        """Typed store payloads for every populated property in the schema."""
        properties: dict[str, Any] = {}
        for name, mapped in mapping.populate.items():
            prop = schema.get(name)
            if prop is None:
                progress.warning(f"Property '{name}' not found in schema, skipping")
                continue
            try:
                properties[name] = typed_value(mapped.value, prop)
            except (TypeError, ValueError) as e:
                progress.error(f"Failed to format property '{name}': {e}")
        return properties

    def validate(self, properties: Mapping[str, Any], schema: RecordSchema) -> list[str]:
        """Local type-constraint errors; empty when the payload looks valid."""
        errors: list[str] = []
        for name, payload in properties.items():
            prop = schema.get(name)
            if prop is None:
                errors.append(f"{name}: not a property of this schema")
                continue
            errors.extend(_payload_errors(name, payload, prop))
        return errors


class RecordCreator:
    """
    Bounded self-correcting record creation.

    attempt -> validate -> success, or correct -> attempt, with at most
    ``max_corrections`` corrections through the reasoner.
    """

    def __init__(
        self,
        store: RecordStore,
        reasoner: Optional[Reasoner] = None,
        mapper: Optional[PropertyMapper] = None,
        max_corrections: Optional[int] = None,
    ):
        self.store = store
        self.reasoner = reasoner
        self.mapper = mapper or PropertyMapper(reasoner)
        self.max_corrections = (
            max_corrections if max_corrections is not None else get_settings().record.max_corrections
        )

    async def create(self, properties: dict[str, Any], schema: RecordSchema) -> RecordCreationResult:
        """
        Create the record, correcting rejected properties.

        Raises:
            RecordValidationError: When the record is still rejected after the
                correction budget, or a correction itself fails.
        """
        progress.start_operation("create_record", f"{len(properties)} properties")
        current = dict(properties)
        attempts = 0
        corrections = 0

        while True:
            attempts += 1
            error = await self._attempt(current, schema)
            if isinstance(error, dict):
                progress.end_operation("create_record", details=f"attempts={attempts}, corrections={corrections}")
                return RecordCreationResult(
                    record=error,
                    properties=current,
                    attempts=attempts,
                    corrections=corrections,
                )

            progress.warning(f"Attempt {attempts} failed: {error}")
            if corrections >= self.max_corrections:
                self._fail(f"Record creation failed after {attempts} attempts", current, error, attempts)

            try:
                current = await self._correct(error, current, schema)
            except (ReasonerError, ResponseParseError) as e:
                self._fail(f"Self-correction failed: {e.message}", current, error, attempts)
            corrections += 1
            progress.info(f"Properties corrected (round {corrections}/{self.max_corrections})")

    async def _attempt(self, properties: dict[str, Any], schema: RecordSchema) -> dict[str, Any] | str:
        """The created record, or the error text that rejected it."""
        local_errors = self.mapper.validate(properties, schema)
        if local_errors:
            return "; ".join(local_errors)

        try:
            response = await self.store.create_record(properties)
        except Exception as e:
            return f"{type(e).__name__}: {e}"

        if not isinstance(response, dict):
            return f"Unexpected store response: {response!r}"
        if response.get("object") == "error" or not response.get("id"):
            return str(response.get("message") or "Validation error")
        return response

    async def _correct(self, error: str, properties: dict[str, Any], schema: RecordSchema) -> dict[str, Any]:
        if self.reasoner is None:
            raise ReasonerError("No reasoner configured for self-correction")

        prompt = CORRECTION_PROMPT.format(
            error=error,
            schema=json.dumps(
                {name: prop.model_dump() for name, prop in schema.properties.items()},
                indent=2,
                ensure_ascii=False,
            ),
            properties=json.dumps(properties, indent=2, default=str, ensure_ascii=False),
        )
        response = await self.reasoner.complete(prompt)
        corrected = parse_json_response(response, opener="{")
        if not isinstance(corrected, dict) or not corrected:
            raise ResponseParseError("Correction is not a JSON object", raw_text=response)
        if isinstance(corrected.get("properties"), dict):
            corrected = corrected["properties"]
        return corrected

    def _fail(self, message: str, properties: dict[str, Any], error: str, attempts: int) -> None:
        progress.error(f"{message}: {error}")
        progress.end_operation("create_record", success=False, details=f"attempts={attempts}")
        raise RecordValidationError(
            message,
            attempted_properties=properties,
            raw_error=error,
            attempts=attempts,
        )
