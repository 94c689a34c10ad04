"""
Shared HTTP Client with Connection Pooling.

Every upstream badge API is reached through one httpx.AsyncClient so that
connections and TLS sessions are reused across badge requests handled by
the same execution context.

Usage:
    from collectors.http_client import get_http_client

    client = get_http_client()
    response = await client.get("https://api.example.com/data")

Testing:
    Set USE_CONNECTION_POOLING=false in test fixtures. A new client is then
    created per call, so patching httpx.AsyncClient with a MockTransport
    works for every request.
"""

import asyncio
import logging
import os
from typing import Optional

import httpx

from shared.constants import DEFAULT_TIMEOUT as DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

_client: Optional[httpx.AsyncClient] = None
_client_loop_id: Optional[int] = None  # Event loop the shared client belongs to

DEFAULT_TIMEOUT = httpx.Timeout(DEFAULT_TIMEOUT_SECONDS, connect=10.0)

DEFAULT_LIMITS = httpx.Limits(
    max_connections=100,
    max_keepalive_connections=20,
    keepalive_expiry=30.0,
)

USER_AGENT = "pkgbadges (+https://github.com/pkgbadges/pkgbadges)"


def _use_connection_pooling() -> bool:
    """Check if connection pooling is enabled (runtime check)."""
    return os.environ.get("USE_CONNECTION_POOLING", "true").lower() == "true"


def _new_client(verify: bool = True) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=DEFAULT_TIMEOUT,
        limits=DEFAULT_LIMITS,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
        verify=verify,
    )


def get_http_client() -> httpx.AsyncClient:
    """
    Get an HTTP client for making requests.

    With pooling enabled the shared client is returned, recreated when the
    running event loop changes (Lambda may start a new loop per invocation
    while reusing the execution context). With pooling disabled a new client
    is created per call.
    """
    global _client, _client_loop_id

    if not _use_connection_pooling():
        return _new_client()

    try:
        current_loop_id = id(asyncio.get_running_loop())
    except RuntimeError:
        current_loop_id = None

    if _client is not None and _client_loop_id != current_loop_id:
        logger.debug("Event loop changed, recreating HTTP client")
        _client = None

    if _client is None:
        logger.debug("Initializing shared HTTP client with connection pooling")
        _client = _new_client()
        _client_loop_id = current_loop_id

    return _client


def get_insecure_http_client() -> httpx.AsyncClient:
    """
    New client that skips TLS verification.

    Only for self-hosted upstreams (e.g. Jenkins) where the badge URL asked
    for disableStrictSSL. Never pooled; use as a context manager.
    """
    return _new_client(verify=False)


async def close_http_client() -> None:
    """Close the shared HTTP client."""
    global _client, _client_loop_id

    if _client is not None:
        await _client.aclose()
        _client = None
        _client_loop_id = None
        logger.debug("Closed shared HTTP client")
