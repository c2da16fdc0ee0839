"""
Shared error handling for the Places Gateway.
"""

from typing import Any, Dict, Optional

from opentelemetry import trace


def current_trace_id() -> Optional[str]:
    """Return the active trace id, if a recording span is present."""
    current_span = trace.get_current_span()
    if current_span and current_span.is_recording():
        span_context = current_span.get_span_context()
        if span_context.trace_id != 0:
            return f"{span_context.trace_id:032x}"
    return None


class GatewayError(Exception):
    """Base exception for gateway failures that map onto an HTTP response."""

    status_code = 500

    def __init__(
        self,
        error: str,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.error = error
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message or error)

    def to_response(self) -> Dict[str, Any]:
        """Convert to the JSON body returned to callers."""
        body: Dict[str, Any] = {"error": self.error}
        if self.message:
            body["message"] = self.message
        body.update(self.details)
        trace_id = current_trace_id()
        if trace_id:
            body["traceId"] = trace_id
        return body


class ValidationError(GatewayError):
    """Missing or out-of-range input."""

    status_code = 400

    def __init__(self, error: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(error, details=details)


class RateLimitExceeded(GatewayError):
    """Caller exceeded its request quota for the current window."""

    status_code = 429

    def __init__(self, retry_after: int, limit: int, reset_in_seconds: int):
        self.retry_after = retry_after
        self.limit = limit
        self.reset_in_seconds = reset_in_seconds
        super().__init__(
            "Rate limit exceeded",
            message=f"Too many requests. Please try again in {retry_after} seconds.",
            details={"retryAfter": retry_after},
        )

    def headers(self) -> Dict[str, str]:
        return {
            "Retry-After": str(self.retry_after),
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(self.reset_in_seconds),
        }


class ConfigurationError(GatewayError):
    """Required credential or setting is absent or invalid."""

    status_code = 500

    def __init__(self, error: str = "Service is not configured", details: Optional[Dict[str, Any]] = None):
        super().__init__(error, details=details)


class UpstreamError(GatewayError):
    """Non-success response, timeout or transport failure from the provider.

    ``reached_upstream`` is True when the provider actually answered, which
    is the case that still has to be accounted for in usage tracking.
    """

    status_code = 502

    def __init__(
        self,
        service: str,
        error: str = "Upstream service error",
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        reached_upstream: bool = False,
    ):
        self.service = service
        self.reached_upstream = reached_upstream
        super().__init__(error, message=message, status_code=status_code)


class InternalError(GatewayError):
    """Unexpected failure. Detail is logged server-side only."""

    status_code = 500

    def __init__(self):
        super().__init__("Internal server error")
