"""
Exception hierarchy for the brief assembler.
Component-local failures are absorbed into fallbacks by the pipeline;
only record validation after bounded correction surfaces to callers.
"""

from typing import Any, Optional


class BriefAssemblerError(Exception):
    """Base exception for all brief assembler errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for the host pipeline."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "details": self.details,
            }
        }


# =============================================================================
# External Service Errors
# =============================================================================


class ExternalServiceError(BriefAssemblerError):
    """Error communicating with an external collaborator."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message=f"{service_name} error: {message}",
            code="EXTERNAL_SERVICE_ERROR",
            details={"service": service_name, **(details or {})},
        )


class ReasonerError(ExternalServiceError):
    """The reasoning service failed, timed out, or returned nothing."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(service_name="Reasoner", message=message, details=details)
        self.code = "REASONER_ERROR"


class TemplateSourceError(ExternalServiceError):
    """The template source could not supply blocks."""

    def __init__(self, template_key: str, message: str) -> None:
        super().__init__(
            service_name="Template source",
            message=message,
            details={"template": template_key},
        )
        self.code = "TEMPLATE_SOURCE_ERROR"


# =============================================================================
# Parsing Errors
# =============================================================================


class ResponseParseError(BriefAssemblerError):
    """Untrusted reasoning output could not be parsed as the expected JSON."""

    def __init__(self, message: str, raw_text: str = "") -> None:
        super().__init__(
            message=message,
            code="RESPONSE_PARSE_ERROR",
            details={"raw_preview": raw_text[:500]},
        )
        self.raw_text = raw_text


# =============================================================================
# Record Validation Errors
# =============================================================================


class RecordValidationError(BriefAssemblerError):
    """Record properties still invalid after bounded self-correction."""

    def __init__(
        self,
        message: str,
        attempted_properties: dict[str, Any],
        raw_error: str,
        attempts: int,
    ) -> None:
        super().__init__(
            message=message,
            code="RECORD_VALIDATION_FAILED",
            details={
                "attempted_properties": attempted_properties,
                "raw_error": raw_error,
                "attempts": attempts,
            },
        )
        self.attempted_properties = attempted_properties
        self.raw_error = raw_error
        self.attempts = attempts
