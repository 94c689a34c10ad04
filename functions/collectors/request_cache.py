"""
Cached upstream fetches - the fetch collaborator for every badge service.

send_and_cache_request() issues one GET through the shared HTTP client and
returns the body plus status metadata as a RawResponse. On top of the plain
request it:
- retries rate limits, server errors and network errors with backoff
- caches responses in memory for BADGE_CACHE_TTL_SECONDS (default 300)
- deduplicates identical concurrent requests into one in-flight fetch

Non-2xx statuses are returned, not raised: turning them into badge errors is
the request pipeline's job. Network errors that survive the retries are
raised as httpx.RequestError.
"""

import asyncio
import logging
import os
import random
import time
from typing import Optional

import httpx

from collectors.http_client import get_http_client, get_insecure_http_client
from shared.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    MAX_CACHE_ENTRIES,
    RETRYABLE_STATUS_CODES,
)
from shared.types import FetchOptions, RawResponse

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MAX_RETRIES = 3
BASE_DELAY = 0.5

# key -> (expires_at, response)
_cache: dict[tuple, tuple[float, RawResponse]] = {}
_inflight: dict[tuple, asyncio.Future] = {}


def _cache_ttl() -> float:
    """Cache TTL in seconds (runtime check, 0 disables caching)."""
    try:
        return float(os.environ.get("BADGE_CACHE_TTL_SECONDS", DEFAULT_CACHE_TTL_SECONDS))
    except ValueError:
        return float(DEFAULT_CACHE_TTL_SECONDS)


def _cache_key(url: str, options: FetchOptions) -> tuple:
    return (
        url,
        tuple(sorted((options.get("params") or {}).items())),
        tuple(sorted((options.get("headers") or {}).items())),
        options.get("strict_ssl", True),
    )


def _is_cacheable(response: RawResponse) -> bool:
    return response.status_code < 500 and response.status_code != 429


def _evict(now: float) -> None:
    """Drop expired entries, then the oldest ones, to stay under the size cap."""
    for key in [k for k, (expires_at, _) in _cache.items() if expires_at <= now]:
        del _cache[key]
    while len(_cache) >= MAX_CACHE_ENTRIES:
        del _cache[next(iter(_cache))]


def clear_cache() -> None:
    """Forget every cached response. Used in tests."""
    _cache.clear()
    _inflight.clear()


async def retry_with_backoff(
    func,
    *args,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    **kwargs,
):
    """Retry async function with exponential backoff and equal jitter (50%)."""
    last_exception = None

    for attempt in range(max_retries):
        try:
            return await func(*args, **kwargs)
        except httpx.HTTPStatusError as e:
            # Only retry on server errors and rate limits, not client errors
            if e.response.status_code not in RETRYABLE_STATUS_CODES:
                raise
            last_exception = e
        except httpx.RequestError as e:
            last_exception = e

        if attempt == max_retries - 1:
            logger.error(f"Failed after {max_retries} attempts: {last_exception}")
            raise last_exception

        base = base_delay * (2**attempt)
        delay = base * 0.5 + random.uniform(0, base * 0.5)
        logger.warning(f"Attempt {attempt + 1} failed, retrying in {delay:.2f}s: {last_exception}")
        await asyncio.sleep(delay)

    raise RuntimeError("Retry loop exited unexpectedly")


async def _get(client: httpx.AsyncClient, url: str, options: FetchOptions) -> httpx.Response:
    resp = await client.get(url, params=options.get("params"), headers=options.get("headers"))
    if resp.status_code in RETRYABLE_STATUS_CODES:
        resp.raise_for_status()
    return resp


async def _fetch(url: str, options: FetchOptions) -> RawResponse:
    try:
        if options.get("strict_ssl", True):
            resp = await retry_with_backoff(_get, get_http_client(), url, options)
        else:
            async with get_insecure_http_client() as client:
                resp = await retry_with_backoff(_get, client, url, options)
    except httpx.HTTPStatusError as e:
        # Retries exhausted on 429/5xx: hand the last response to the pipeline
        resp = e.response

    return RawResponse(
        body=resp.content,
        status_code=resp.status_code,
        headers=dict(resp.headers),
    )


async def send_and_cache_request(url: str, options: Optional[FetchOptions] = None) -> RawResponse:
    """
    Fetch url, serving from cache or joining an identical in-flight request.

    Args:
        url: Absolute URL to GET
        options: headers, params, strict_ssl

    Returns:
        RawResponse with body bytes, status code and headers

    Raises:
        httpx.RequestError when the upstream stays unreachable after retries
    """
    options = options or {}
    key = _cache_key(url, options)
    ttl = _cache_ttl()
    now = time.monotonic()

    cached = _cache.get(key)
    if cached is not None:
        expires_at, response = cached
        if expires_at > now:
            logger.debug(f"Cache hit: {url}")
            return response
        del _cache[key]

    # In-flight futures belong to the loop that created them
    flight_key = (id(asyncio.get_running_loop()),) + key
    pending = _inflight.get(flight_key)
    if pending is not None and not pending.done():
        logger.debug(f"Joining in-flight request: {url}")
        return await asyncio.shield(pending)

    task = asyncio.ensure_future(_fetch(url, options))
    _inflight[flight_key] = task
    try:
        response = await asyncio.shield(task)
    finally:
        if _inflight.get(flight_key) is task:
            del _inflight[flight_key]

    if ttl > 0 and _is_cacheable(response):
        _evict(now)
        _cache[key] = (now + ttl, response)

    return response
