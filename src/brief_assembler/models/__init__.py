"""Data models for the brief assembler."""

from .blocks import BlockType, CalloutColor, ContentBlock, RichText
from .document import AssembledDocument
from .extraction import (
    CompletenessAssessment,
    CompletenessFlag,
    ComplexityTier,
    Conflict,
    ConflictType,
    ExtractionResult,
    NovelSection,
    PreflightAnalysis,
    SectionMatch,
    SectionPriority,
    UrgencyAssessment,
    UrgencyLevel,
)
from .properties import (
    MappedProperty,
    PropertyMapping,
    PropertySchema,
    PropertyType,
    RecordCreationResult,
    RecordSchema,
)
from .template import BlockKind, ContentItem, ParsedTemplate, Section, TemplateBlock

__all__ = [
    "AssembledDocument",
    "BlockKind",
    "BlockType",
    "CalloutColor",
    "CompletenessAssessment",
    "CompletenessFlag",
    "ComplexityTier",
    "Conflict",
    "ConflictType",
    "ContentBlock",
    "ContentItem",
    "ExtractionResult",
    "MappedProperty",
    "NovelSection",
    "ParsedTemplate",
    "PreflightAnalysis",
    "PropertyMapping",
    "PropertySchema",
    "PropertyType",
    "RecordCreationResult",
    "RecordSchema",
    "RichText",
    "Section",
    "SectionMatch",
    "SectionPriority",
    "TemplateBlock",
    "UrgencyAssessment",
    "UrgencyLevel",
]
