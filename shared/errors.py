"""
Shared error handling for the Tier Configurator.
"""

from typing import Dict, Any, List, Optional
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = {}


class ConfiguratorException(Exception):
    """Base exception for configurator components."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self, request_id: Optional[str] = None) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id,
            code=self.code,
            message=self.message,
            details=self.details
        )


class StructuralError(ConfiguratorException):
    """Catalog document violates the schema or references unknown items.

    Carries the full batch of detected issues so the operator sees every
    defect at once.
    """

    def __init__(self, issues: List[Any], message: str = "Catalog failed structural validation"):
        self.issues = list(issues)
        super().__init__(
            "STRUCTURAL_ERROR",
            f"{message} ({len(self.issues)} issue(s))",
            {"issues": [issue.to_dict() for issue in self.issues]}
        )


class InvalidMutation(ConfiguratorException):
    """Selection change rejected; prior state is unchanged."""

    def __init__(self, message: str = "Invalid selection change", details: Optional[Dict[str, Any]] = None):
        super().__init__("INVALID_MUTATION", message, details)


class UnknownItemError(ConfiguratorException):
    """Lookup of an item id the catalog does not define."""

    def __init__(self, item_id: str, details: Optional[Dict[str, Any]] = None):
        self.item_id = item_id
        super().__init__("UNKNOWN_ITEM", f"Unknown item '{item_id}'", details)


class DecodeError(ConfiguratorException):
    """Configuration token is malformed."""

    def __init__(self, message: str = "Malformed configuration token", details: Optional[Dict[str, Any]] = None):
        super().__init__("DECODE_ERROR", message, details)


class ValidationError(ConfiguratorException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ExternalServiceError(ConfiguratorException):
    """External service errors."""

    def __init__(self, service: str, message: str = "External service error", details: Optional[Dict[str, Any]] = None):
        self.service = service
        super().__init__("EXTERNAL_SERVICE_ERROR", f"{service}: {message}", details)
