"""
Domain errors raised by the bulk ad creation service.

NotFoundError subclasses map to HTTP 404 and ValidationError subclasses to
HTTP 400 at the API boundary.
"""

from typing import Dict, Any, Optional

class BulkAdsError(Exception):
    """Base class for domain errors raised to callers."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Initialize the error.

        Args:
            message: Human readable description of the failure
            details: Optional dictionary with structured context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

class NotFoundError(BulkAdsError):
    """Raised when a requested entity does not exist."""

    entity = "Entity"

    def __init__(self, entity_id: str) -> None:
        super().__init__(f"{self.entity} not found", {"id": entity_id})
        self.entity_id = entity_id

class JobNotFoundError(NotFoundError):
    """Raised when a bulk creation job does not exist."""
    entity = "Job"

class TemplateNotFoundError(NotFoundError):
    """Raised when an ad template does not exist."""
    entity = "Template"

class MediaNotFoundError(NotFoundError):
    """Raised when an uploaded media file does not exist."""
    entity = "Media"

class AuthNotInitializedError(BulkAdsError):
    """Raised when the platform client has no usable credentials."""

    def __init__(self, message: str = "Facebook API not initialized. Please validate credentials first.") -> None:
        super().__init__(message)

class ValidationError(BulkAdsError):
    """Raised when caller supplied data is rejected."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message, {"field": field} if field else None)
        self.field = field

class TemplateValidationError(ValidationError):
    """Raised when a template payload is invalid."""
    pass

class MediaValidationError(ValidationError):
    """Raised when an uploaded file is rejected."""
    pass
