"""
Brief Assembler - semantic document assembly for creative briefs.

Turns a loosely structured brief and a reference template into a finished
block document, and maps the brief onto a structured record.
"""

__version__ = "0.1.0"

from .core import DocumentEngine, PropertyMapper, RecordCreator
from .exceptions import BriefAssemblerError, RecordValidationError

__all__ = [
    "BriefAssemblerError",
    "DocumentEngine",
    "PropertyMapper",
    "RecordCreator",
    "RecordValidationError",
    "__version__",
]
