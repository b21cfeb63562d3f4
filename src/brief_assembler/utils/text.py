"""Text helpers shared by the matching, extraction and generation stages."""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any, Optional

from rapidfuzz.distance import Levenshtein

from ..exceptions import ResponseParseError
from ..models.blocks import RichText

URL_PATTERN = re.compile(r"https?://[^\s\"'<>]+")
IMAGE_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|webp|svg)(\?|$)", re.IGNORECASE)
VIDEO_PATTERN = re.compile(r"youtube\.com|youtu\.be|vimeo\.com|loom\.com", re.IGNORECASE)
DOCUMENT_PATTERN = re.compile(
    r"drive\.google\.com|docs\.google\.com|sheets\.google\.com|slides\.google\.com",
    re.IGNORECASE,
)
BOLD_PATTERN = re.compile(r"(\*\*[^*]+\*\*)")
INSTRUCTION_MARKER_PATTERN = re.compile(r"\[SOP:.*?\]", re.DOTALL)
HTML_BREAK_PATTERN = re.compile(r"<br\s*/?>", re.IGNORECASE)
HTML_TAG_PATTERN = re.compile(r"</?[^>]+(>|$)")
SENTENCE_PATTERN = re.compile(r"[^.!?]+(?:[.!?]+|$)|[.!?]+")
FENCE_PATTERN = re.compile(r"```(?:json)?\s*\n?")

# Keys whose human-readable header differs from plain title casing
HEADER_LABELS = {
    "video_component": "🎥 Video Component",
    "user_id": "User ID",
    "project_name": "Project Name",
    "raw_brief": "Raw Brief",
    "budget_conflict": "💰 Budget & Scope Notes",
    "scope_issue": "⚠️ Scope Considerations",
    "platforms": "📱 Platforms",
    "contact": "📧 Contact Information",
    "video_details": "🎥 Video Requirements",
    "video_requirements": "🎥 Video Requirements",
    "audio_requirements": "🎵 Audio Requirements",
    "creative_direction": "🎨 Creative Direction",
    "technical_specs": "⚙️ Technical Specifications",
    "deliverables": "📦 Deliverables",
    "timeline": "📅 Timeline",
    "budget": "💰 Budget",
}


class UrlKind(str, Enum):
    """How a URL should be rendered in the document."""

    EMBED = "embed"
    IMAGE = "image"
    BOOKMARK = "bookmark"
    LINK = "link"


# =============================================================================
# Similarity
# =============================================================================


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between two strings."""
    return Levenshtein.distance(a, b)


def string_similarity(a: str, b: str) -> float:
    """Similarity in [0, 1]: (len(longer) - distance) / len(longer)."""
    if not a and not b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def normalize_key(text: str) -> str:
    """Lowercase and strip every non-alphanumeric character."""
    return re.sub(r"[^a-z0-9]", "", text.lower())


def compact_key(text: str) -> str:
    """Lowercase and strip separators (underscore, whitespace, dash)."""
    return re.sub(r"[_\s-]", "", text.lower())


def clean_heading(text: str) -> str:
    """Drop emoji and punctuation from a heading, keeping words and spaces."""
    return re.sub(r"[^\w\s]", "", text).strip()


def humanize_key(key: str) -> str:
    """
    Turn a data key into a readable sub-heading.

    Keys that already contain spaces are treated as human-written and kept
    as they are; snake_case and camelCase keys are title-cased.
    """
    special = HEADER_LABELS.get(key.lower())
    if special:
        return special
    if " " in key.strip():
        return key.strip()

    spaced = re.sub(r"([A-Z])", r" \1", key.replace("_", " "))
    words = [w for w in spaced.split(" ") if w]
    return " ".join(w[:1].upper() + w[1:].lower() for w in words)


def brief_text(data: Any) -> str:
    """Lowercase JSON rendering of a brief used for keyword scans."""
    return json.dumps(data, default=str, ensure_ascii=False).lower()


# =============================================================================
# URLs
# =============================================================================


def extract_urls(text: str) -> list[str]:
    """Return every http(s) URL in order of appearance."""
    return [u.rstrip(".,;)") for u in URL_PATTERN.findall(text)]


def classify_url(url: str) -> UrlKind:
    """Infer the block kind for a URL from its suffix or domain."""
    if IMAGE_PATTERN.search(url):
        return UrlKind.IMAGE
    if VIDEO_PATTERN.search(url):
        return UrlKind.EMBED
    if DOCUMENT_PATTERN.search(url):
        return UrlKind.BOOKMARK
    return UrlKind.LINK


# =============================================================================
# Markdown and splitting
# =============================================================================


def strip_html(text: str) -> str:
    text = HTML_BREAK_PATTERN.sub("\n", text)
    return HTML_TAG_PATTERN.sub("", text)


def strip_instruction_markers(text: str) -> str:
    return INSTRUCTION_MARKER_PATTERN.sub("", text).strip()


def has_markdown_bullets(text: str) -> bool:
    return "\n*" in text or "\n-" in text or text.startswith("*") or text.startswith("-")


def parse_markdown_bullets(text: str) -> list[tuple[str, str]]:
    """
    Split text into ("bullet" | "paragraph", content) items.

    Lines starting with * or - are bullets; consecutive plain lines are
    joined into one paragraph; blank lines end a paragraph.
    """
    items: list[tuple[str, str]] = []
    paragraph: list[str] = []

    def flush() -> None:
        if paragraph:
            items.append(("paragraph", " ".join(paragraph).strip()))
            paragraph.clear()

    for line in text.split("\n"):
        stripped = line.strip()
        if stripped.startswith("**") and stripped.count("**") >= 2 and not stripped.startswith("** "):
            # Bold run at line start, not a bullet
            paragraph.append(stripped)
        elif stripped.startswith("*") or stripped.startswith("-"):
            flush()
            content = re.sub(r"^[*\-]\s*", "", stripped).strip()
            if content:
                items.append(("bullet", content))
        elif stripped:
            paragraph.append(stripped)
        else:
            flush()
    flush()
    return items


def parse_markdown_to_rich_text(text: str, force_italic: bool = False) -> list[RichText]:
    """Convert **bold** markdown into annotated rich-text runs."""
    runs: list[RichText] = []
    for part in BOLD_PATTERN.split(text):
        if not part:
            continue
        if part.startswith("**") and part.endswith("**") and len(part) > 4:
            runs.append(RichText(content=part[2:-2], bold=True, italic=force_italic))
        else:
            runs.append(RichText(content=part, italic=force_italic))
    if not runs:
        runs.append(RichText(content=text, italic=force_italic))
    return runs


def intelligent_split(content: str, max_chars: int) -> list[str]:
    """Split at paragraph boundaries first, then sentences, within max_chars."""
    chunks: list[str] = []
    current = ""
    for para in re.split(r"\n\n+", content):
        if current and len(current) + len(para) + 2 > max_chars:
            chunks.append(current.strip())
            current = para
        else:
            current = f"{current}\n\n{para}" if current else para
    if current.strip():
        chunks.append(current.strip())

    final: list[str] = []
    for chunk in chunks:
        if len(chunk) <= max_chars:
            final.append(chunk)
            continue
        sentences = SENTENCE_PATTERN.findall(chunk) or [chunk]
        piece = ""
        for sentence in sentences:
            if piece and len(piece) + len(sentence) > max_chars:
                final.append(piece.strip())
                piece = sentence
            else:
                piece += sentence
        if piece.strip():
            final.append(piece.strip())

    # Sentences longer than the limit are hard-cut
    bounded: list[str] = []
    for chunk in final:
        while len(chunk) > max_chars:
            bounded.append(chunk[:max_chars])
            chunk = chunk[max_chars:]
        if chunk:
            bounded.append(chunk)
    return bounded or [content[:max_chars]]


def format_inline(obj: dict[str, Any]) -> str:
    """Render a mapping as 'key: value | key: value', nesting with braces."""
    parts = []
    for key, value in obj.items():
        if isinstance(value, dict):
            parts.append(f"{key}: {{{format_inline(value)}}}")
        elif isinstance(value, list):
            parts.append(f"{key}: [{', '.join(_inline_item(v) for v in value)}]")
        elif value is not None:
            parts.append(f"{key}: {value}")
    return " | ".join(parts)


def _inline_item(value: Any) -> str:
    if isinstance(value, dict):
        return f"{{{format_inline(value)}}}"
    return str(value)


# =============================================================================
# Untrusted JSON
# =============================================================================


def strip_code_fences(text: str) -> str:
    return FENCE_PATTERN.sub("", text).replace("```", "").strip()


def parse_json_response(text: str, opener: str = "{") -> Any:
    """
    Parse reasoning output as JSON.

    Strips markdown fences, then tries a direct parse, then the substring
    between the first opener and the matching last closer.

    Raises:
        ResponseParseError: If neither attempt yields JSON.
    """
    closer = "}" if opener == "{" else "]"
    cleaned = strip_code_fences(text or "")
    if not cleaned:
        raise ResponseParseError("Empty response", raw_text=text or "")

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    first = cleaned.find(opener)
    last = cleaned.rfind(closer)
    if first != -1 and last > first:
        try:
            return json.loads(cleaned[first:last + 1])
        except json.JSONDecodeError as e:
            raise ResponseParseError(f"Brace-boundary recovery failed: {e}", raw_text=text) from e

    raise ResponseParseError("No JSON object found in response", raw_text=text)


def first_present(data: dict[str, Any], *keys: str) -> Optional[Any]:
    """Return the first truthy value among keys."""
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return None
