"""Core exceptions for the gateway."""

from typing import Any, Optional


class GatewayError(Exception):
    """Base exception carrying the HTTP status and OpenAI error type."""

    status_code = 500
    error_type = "internal_error"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_type is not None:
            self.error_type = error_type

    def to_response_body(self) -> dict[str, Any]:
        return {"error": {"message": self.message, "type": self.error_type}}


class ValidationError(GatewayError):
    """Raised when an incoming request is rejected before any upstream call."""

    status_code = 400
    error_type = "invalid_request_error"


class UpstreamError(GatewayError):
    """Raised when Vertex AI answers with a non-success status."""

    error_type = "upstream_error"

    def __init__(self, message: str, status_code: int, body: str = "") -> None:
        super().__init__(message, status_code=status_code)
        self.body = body


class ConfigurationError(GatewayError):
    """Raised when there's an issue with the configuration."""
    pass


class InternalError(GatewayError):
    """Any other failure while serving a non-streaming request."""
    pass
