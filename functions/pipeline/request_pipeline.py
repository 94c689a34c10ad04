"""
Request pipeline shared by every badge service.

    fetch -> check status -> parse -> validate

Each step short-circuits with a typed BadgeError so that the caller can
tell a missing package (NotFound) from an upstream outage (Inaccessible),
a broken body (ParseError) or a changed API (ValidationError).
"""

import logging
import time
from typing import Any, Awaitable, Callable, Mapping, Optional

import httpx

from pipeline.parsers import WireFormat, parse
from shared.errors import Inaccessible, InvalidResponse, NotFound, ValidationError
from shared.logging_utils import log_upstream_call
from shared.schema import Rule, validate
from shared.types import FetchOptions, RawResponse

logger = logging.getLogger(__name__)

Fetcher = Callable[[str, FetchOptions], Awaitable[RawResponse]]

JSON_ACCEPT = "application/json"
XML_ACCEPT = "application/atom+xml, application/xml, text/xml"


def check_error_response(
    response: RawResponse,
    error_messages: Optional[Mapping[int, str]] = None,
) -> RawResponse:
    """
    Raise for non-2xx responses.

    Args:
        response: Upstream response
        error_messages: Optional status code -> badge message overrides

    Raises:
        NotFound for 404, InvalidResponse for any other non-2xx status
    """
    error_messages = error_messages or {}
    status = response.status_code

    if 200 <= status < 300:
        return response
    if status == 404:
        raise NotFound(error_messages.get(404))
    raise InvalidResponse(
        status_code=status,
        reason=error_messages.get(status, "invalid"),
    )


async def fetch(fetcher: Fetcher, url: str, options: Optional[FetchOptions] = None) -> RawResponse:
    """Call the fetch collaborator once, typing request failures as Inaccessible."""
    start = time.monotonic()
    try:
        response = await fetcher(url, options or {})
    except httpx.RequestError as e:
        log_upstream_call(logger, url, (time.monotonic() - start) * 1000, error=type(e).__name__)
        raise Inaccessible(e) from e

    log_upstream_call(logger, url, (time.monotonic() - start) * 1000, status_code=response.status_code)
    return response


def _with_accept(options: Optional[FetchOptions], accept: str) -> FetchOptions:
    options = dict(options or {})
    headers = dict(options.get("headers") or {})
    headers.setdefault("Accept", accept)
    options["headers"] = headers
    return options


async def run(
    fetcher: Fetcher,
    *,
    url: str,
    schema: Rule,
    wire_format: WireFormat = WireFormat.JSON,
    options: Optional[FetchOptions] = None,
    error_messages: Optional[Mapping[int, str]] = None,
) -> Any:
    """
    Fetch, parse and validate one upstream response.

    Returns:
        The validated value; every field the schema requires is present
        and coerced to its declared type

    Raises:
        Inaccessible, NotFound, InvalidResponse, ParseError, ValidationError
    """
    response = await fetch(fetcher, url, options)
    check_error_response(response, error_messages)
    payload = parse(response.body, wire_format)
    try:
        return validate(schema, payload)
    except ValidationError as e:
        logger.warning(
            f"Response from {url} failed validation: {e}",
            extra={"url": url, "wire_format": WireFormat(wire_format).value},
        )
        raise


async def request_json(fetcher: Fetcher, *, url: str, schema: Rule, options=None, error_messages=None) -> Any:
    return await run(
        fetcher,
        url=url,
        schema=schema,
        wire_format=WireFormat.JSON,
        options=_with_accept(options, JSON_ACCEPT),
        error_messages=error_messages,
    )


async def request_xml(fetcher: Fetcher, *, url: str, schema: Rule, options=None, error_messages=None) -> Any:
    return await run(
        fetcher,
        url=url,
        schema=schema,
        wire_format=WireFormat.XML,
        options=_with_accept(options, XML_ACCEPT),
        error_messages=error_messages,
    )
