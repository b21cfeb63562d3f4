"""
Field Resolver - find the value a variable name refers to in a brief.

Briefs arrive with the same concept under many spellings ("Due Date",
"due_date", "dueDate", "Deadline"), so resolution walks a cascade from
exact key to canonical aliases and stops at the first hit.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping, Optional

from ..config import get_settings
from ..utils.logger import get_logger
from ..utils.text import normalize_key, string_similarity

logger = get_logger(__name__)

# Canonical concept -> synonyms, compared with normalized equality
CANONICAL_ALIASES: dict[str, list[str]] = {
    "description": ["brief_details", "raw_brief", "details", "overview", "brief"],
    "project_name": ["project name", "projectname", "title"],
    "due_date": ["due dates", "deadline", "duedate", "publish by"],
    "requested_by": ["client name", "requester", "requested by name"],
    "platform": ["asset type", "channel"],
    "client_email": ["contact email", "email"],
}


def naming_variants(name: str) -> list[str]:
    """Deterministic spelling rewrites of a variable name."""
    variants = [
        name,
        name.replace("_", " "),
        name.replace(" ", "_"),
        name.replace("_", ""),
        re.sub(r"_([a-z])", lambda m: m.group(1).upper(), name),
        re.sub(r"([A-Z])", r"_\1", name).lower().lstrip("_"),
        " ".join(w[:1].upper() + w[1:] for w in re.split(r"[_\s]+", name) if w),
        name.lower(),
    ]
    seen: dict[str, None] = {}
    for variant in variants:
        if variant:
            seen.setdefault(variant, None)
    return list(seen)


class FieldResolver:
    """Resolves variable names against arbitrarily named brief fields."""

    def __init__(
        self,
        aliases: Optional[dict[str, list[str]]] = None,
        similarity_threshold: Optional[float] = None,
    ):
        self.aliases = aliases if aliases is not None else CANONICAL_ALIASES
        self.similarity_threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else get_settings().assembly.similarity_threshold
        )

    def resolve(self, name: str, data: Mapping[str, Any], descend: bool = False) -> Optional[Any]:
        """
        Return the best-matching value for ``name`` or None.

        Args:
            name: Variable name, in any naming convention.
            data: Brief mapping (flat or nested).
            descend: Also search nested mappings when the top level misses.
        """
        if not name or not isinstance(data, Mapping):
            return None

        found = self._resolve_flat(name, data)
        if found is not None or not descend:
            return found

        for value in data.values():
            if isinstance(value, Mapping):
                nested = self.resolve(name, value, descend=True)
                if nested is not None:
                    return nested
        return None

    def _resolve_flat(self, name: str, data: Mapping[str, Any]) -> Optional[Any]:
        # 1. exact
        if name in data and data[name] is not None:
            return data[name]

        # 2. naming-convention rewrites
        for variant in naming_variants(name):
            if variant in data and data[variant] is not None:
                return data[variant]

        target = normalize_key(name)
        if not target:
            return None
        normalized = {normalize_key(str(key)): key for key in data}

        # 3. normalized equality
        key = normalized.get(target)
        if key is not None and data[key] is not None:
            return data[key]

        # 4. containment gated by similarity
        for norm, key in normalized.items():
            if not norm or data[key] is None:
                continue
            if (target in norm or norm in target) and string_similarity(norm, target) > self.similarity_threshold:
                return data[key]

        # 5. canonical aliases
        for canonical, synonyms in self.aliases.items():
            if normalize_key(canonical) != target:
                continue
            for alias in synonyms:
                key = normalized.get(normalize_key(alias))
                if key is not None and data[key] is not None:
                    return data[key]

        return None

    def has_value(self, name: str, data: Mapping[str, Any]) -> bool:
        value = self.resolve(name, data)
        return value is not None and value != ""


def render_placeholders(text: str, data: Mapping[str, Any], resolver: Optional[FieldResolver] = None) -> str:
    """
    Replace ``{{name}}`` tokens using the resolver.

    Lists join with ", ", mappings serialize as JSON, and unresolved names
    render as ``[name]``.
    """
    resolver = resolver or FieldResolver()

    def replace(match: re.Match) -> str:
        name = match.group(1).strip()
        value = resolver.resolve(name, data)
        if value is None:
            logger.warning(f"Variable {{{{{name}}}}} not found in brief data")
            return f"[{name}]"
        if isinstance(value, list):
            return ", ".join(str(v) for v in value)
        if isinstance(value, Mapping):
            return json.dumps(value, default=str, ensure_ascii=False)
        return str(value)

    return re.sub(r"\{\{(.*?)\}\}", replace, text)
