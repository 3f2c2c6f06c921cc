"""
Underwriting error taxonomy
===========================
Every failure the core can raise derives from ``UnderwritingError`` so callers
(and the FastAPI exception handler) can render a structured payload:

    {"error_code": "...", "message": "...", "details": {...}}

  ValidationError     missing / invalid required field         → 422
  InvalidInputError   out-of-contract pricing input            → 422
  StateConflictError  transition from the wrong state          → 409
  NotFoundError       unknown id                               → 404
  PricingError        pricing service failed / bad value       → 502
  PersistenceError    store operation failed or timed out      → 503
"""

from typing import Any, Optional


class UnderwritingError(Exception):
    """Base class for all errors raised by the underwriting core."""

    status_code: int = 500
    default_code: str = "UNDERWRITING_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


class ValidationError(UnderwritingError):
    status_code = 422
    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, error_code, details)
        self.field = field
        if field:
            self.details["field"] = field


class InvalidInputError(ValidationError):
    default_code = "INVALID_INPUT"


class StateConflictError(UnderwritingError):
    status_code = 409
    default_code = "STATE_CONFLICT"

    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        expected_status: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)
        if current_status:
            self.details["current_status"] = current_status
        if expected_status:
            self.details["expected_status"] = expected_status


class NotFoundError(UnderwritingError):
    status_code = 404
    default_code = "NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: str):
        super().__init__(
            f"{entity_type} {entity_id!r} not found",
            details={"entity_type": entity_type, "entity_id": entity_id},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class PricingError(UnderwritingError):
    status_code = 502
    default_code = "PRICING_ERROR"


class PersistenceError(UnderwritingError):
    status_code = 503
    default_code = "PERSISTENCE_ERROR"
