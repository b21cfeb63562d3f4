"""Core assembly components."""

from .assembler import Assembler
from .completeness import CompletenessChecker
from .conflict_detector import ConflictDetector
from .content_generator import ContentGenerator
from .engine import DocumentEngine
from .extraction import StructuredExtractor
from .field_resolver import FieldResolver
from .preflight import PreflightAnalyzer
from .prioritizer import SectionPrioritizer
from .property_mapper import PropertyMapper, RecordCreator, RecordStore
from .section_matcher import SectionMatcher
from .template_parser import TemplateParser
from .urgency import UrgencyScorer

__all__ = [
    "Assembler",
    "CompletenessChecker",
    "ConflictDetector",
    "ContentGenerator",
    "DocumentEngine",
    "FieldResolver",
    "PreflightAnalyzer",
    "PropertyMapper",
    "RecordCreator",
    "RecordStore",
    "SectionMatcher",
    "SectionPrioritizer",
    "StructuredExtractor",
    "TemplateParser",
    "UrgencyScorer",
]
