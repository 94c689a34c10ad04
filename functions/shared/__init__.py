# Shared utilities package
from .errors import (
    BadgeError,
    Deprecated,
    ImproperlyConfigured,
    Inaccessible,
    InvalidParameter,
    InvalidResponse,
    NotFound,
    ParseError,
    ValidationError,
)
from .types import RawResponse

__all__ = [
    "BadgeError",
    "Deprecated",
    "ImproperlyConfigured",
    "Inaccessible",
    "InvalidParameter",
    "InvalidResponse",
    "NotFound",
    "ParseError",
    "ValidationError",
    "RawResponse",
]
