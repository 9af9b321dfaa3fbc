"""
Error taxonomy for the writing assistant.

Each error carries the HTTP status it maps to; only the API layer turns
them into responses.
"""

from typing import Dict, List, Optional


class AssistantError(Exception):
    """Base class for all errors surfaced to API callers."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(AssistantError):
    """Malformed, missing or oversize request fields."""
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []


class InvalidOption(InvalidInput):
    """Unknown style, tone or optimization value."""

    def __init__(self, field_name: str, value: str, allowed: List[str]):
        super().__init__(
            f"Invalid {field_name}: {value!r}",
            errors=[{
                "field": field_name,
                "message": f"must be one of: {', '.join(allowed)}",
            }],
        )
        self.field_name = field_name
        self.value = value


class Unauthenticated(AssistantError):
    status_code = 401

    def __init__(self, message: str = "User is not authenticated"):
        super().__init__(message)


class ForbiddenTier(AssistantError):
    """Capability not included in the caller's subscription tier."""
    status_code = 403


class QuotaExceeded(AssistantError):
    status_code = 429

    def __init__(
        self,
        message: str = "Daily usage limit reached, upgrade your plan or try again tomorrow",
    ):
        super().__init__(message)


class ModelError(AssistantError):
    """Failure talking to the language model provider."""


class ModelUnavailable(ModelError):
    """Transport or authentication failure on the completion endpoint."""


class ModelTimeout(ModelError):
    """Completion endpoint did not answer within the bounded wait."""


class ProcessingFailed(AssistantError):
    """Generic failure reported to callers without internal detail."""
    status_code = 500
