"""
Response utilities for Lambda handlers.

Badges are served as shields.io "endpoint" JSON so any badge renderer can
draw them; responses are public and cacheable.
"""

import json
from typing import Dict, Optional

from .constants import BADGE_CACHE_MAX_AGE, SCHEMA_VERSION
from .types import EndpointBadge, LambdaResponse

# Badges are embedded everywhere, so any origin may read them
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
}


def json_response(
    status_code: int, body: dict, headers: Optional[dict] = None
) -> LambdaResponse:
    """
    Create standardized JSON response.

    Args:
        status_code: HTTP status code
        body: Response body dictionary
        headers: Optional additional headers

    Returns:
        Lambda response dictionary
    """
    response_headers = {"Content-Type": "application/json"}
    response_headers.update(CORS_HEADERS)
    if headers:
        response_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": json.dumps(body, ensure_ascii=False),
    }


def badge_response(
    badge: EndpointBadge,
    status_code: int = 200,
    cache_max_age: int = BADGE_CACHE_MAX_AGE,
) -> LambdaResponse:
    """
    Create a badge response.

    Args:
        badge: label/message/color (and optional link) fields
        status_code: HTTP status code (badge errors are still 200)
        cache_max_age: Cache-Control max-age in seconds

    Returns:
        Lambda response dict
    """
    return json_response(
        status_code,
        {"schemaVersion": SCHEMA_VERSION, **badge},
        headers={"Cache-Control": f"public, max-age={cache_max_age}"},
    )


def redirect_response(
    location: str,
    status_code: int = 301,
    headers: Optional[Dict[str, str]] = None,
) -> LambdaResponse:
    """
    Create a redirect response.

    Args:
        location: Redirect URL
        status_code: HTTP status code (301 for moved badge routes)
        headers: Additional headers

    Returns:
        Lambda response dict
    """
    response_headers = {"Location": location, "Cache-Control": "public, max-age=86400"}
    if headers:
        response_headers.update(headers)

    return {
        "statusCode": status_code,
        "headers": response_headers,
        "body": "",
    }
