"""
Closed error taxonomy for badge handlers.

Every failure a badge handler can hit is one of these. The service executor
catches them and turns each into a badge message/color pair.
"""

from typing import Any, Optional

from .constants import COLOR_LIGHTGRAY, COLOR_RED


class BadgeError(Exception):
    """Base class for badge errors."""

    default_message = "error"
    color = COLOR_LIGHTGRAY

    def __init__(
        self,
        code: str,
        pretty_message: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.pretty_message = pretty_message or self.default_message
        self.details = details or {}
        super().__init__(self.pretty_message)

    def to_badge_data(self) -> dict:
        """Message/color pair shown on the badge."""
        return {"message": self.pretty_message, "color": self.color}


class NotFound(BadgeError):
    """Raised when the upstream has no such package, video, or result."""

    default_message = "not found"
    color = COLOR_RED

    def __init__(self, pretty_message: Optional[str] = None):
        super().__init__(code="not_found", pretty_message=pretty_message)


class InvalidResponse(BadgeError):
    """Raised when the upstream answers with a non-2xx status."""

    default_message = "invalid"

    def __init__(
        self,
        status_code: Optional[int] = None,
        reason: Optional[str] = None,
        pretty_message: Optional[str] = None,
    ):
        self.status_code = status_code
        self.reason = reason or "invalid"
        super().__init__(
            code="invalid_response",
            pretty_message=pretty_message or self.reason,
            details={"status_code": status_code},
        )


class ParseError(BadgeError):
    """Raised when a response body cannot be parsed as its wire format."""

    def __init__(self, raw: Any = None, wire_format: str = "json", kind: str = "unparseable"):
        self.raw = raw
        self.wire_format = wire_format
        self.kind = kind
        super().__init__(
            code="parse_error",
            pretty_message=f"{kind} {wire_format} response",
            details={"wire_format": wire_format},
        )


class ValidationError(BadgeError):
    """Raised when a parsed body does not match its schema."""

    default_message = "invalid response data"

    def __init__(self, path: str, expected_kind: str, actual_value: Any):
        self.path = path
        self.expected_kind = expected_kind
        self.actual_value = actual_value
        super().__init__(
            code="validation_error",
            details={"path": path, "expected": expected_kind},
        )

    def __str__(self) -> str:
        where = self.path or "<root>"
        return f"{where}: expected {self.expected_kind}, got {self.actual_value!r}"


class Inaccessible(BadgeError):
    """Raised when the upstream cannot be reached (timeout, DNS, reset)."""

    default_message = "inaccessible"

    def __init__(self, underlying: Optional[Exception] = None, pretty_message: Optional[str] = None):
        self.underlying = underlying
        super().__init__(
            code="inaccessible",
            pretty_message=pretty_message,
            details={"error_type": type(underlying).__name__} if underlying else None,
        )


class InvalidParameter(BadgeError):
    """Raised when the badge URL carries a bad path or query parameter."""

    default_message = "invalid parameter"
    color = COLOR_RED

    def __init__(self, pretty_message: Optional[str] = None):
        super().__init__(code="invalid_parameter", pretty_message=pretty_message)


class Deprecated(BadgeError):
    """Raised by services that no longer exist upstream."""

    default_message = "no longer available"

    def __init__(self):
        super().__init__(code="deprecated")


class ImproperlyConfigured(BadgeError):
    """Raised when a service needs configuration that is missing."""

    default_message = "improperly configured"

    def __init__(self, pretty_message: Optional[str] = None):
        super().__init__(code="improperly_configured", pretty_message=pretty_message)
