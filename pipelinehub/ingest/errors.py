"""Error taxonomy for webhook ingestion.

Every error carries the HTTP status the adapter boundary answers with.
"""

from typing import Any, Optional


class WebhookError(Exception):
    """Base exception for ingestion errors."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(WebhookError):
    """Raised when the token or signature does not authenticate the sender."""

    status_code = 401


class BadRequest(WebhookError):
    """Raised when the request body cannot be parsed."""

    status_code = 400


class PayloadValidationError(WebhookError):
    """Raised when the payload does not match the provider schema."""

    status_code = 400

    def __init__(self, message: str, details: Optional[list[dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []


class IgnoredEvent(WebhookError):
    """Raised for event kinds this service does not process.

    Not a failure: answered with 200 so providers do not retry.
    """

    status_code = 200

    def __init__(self, event_type: Optional[str]):
        super().__init__("Event type not processed")
        self.event_type = event_type


class PersistenceConflict(WebhookError):
    """Raised when a write hits a uniqueness constraint."""

    status_code = 409


class InternalError(WebhookError):
    """Raised on unexpected store failures or malformed internal state."""

    status_code = 500


class ConfigurationError(InternalError):
    """Raised when the service is missing configuration needed for a request."""
