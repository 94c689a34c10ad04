"""
Badge Endpoint - GET /{service path}[.json]

Looks up the badge service for the request path, runs it through the
fetch -> parse -> validate -> render pipeline and returns the badge as
shields.io endpoint JSON:

    {"schemaVersion": 1, "label": "chocolatey", "message": "v2.19.2", "color": "blue"}

No authentication required - this is a public endpoint. Upstream failures
still answer 200 with an error badge so embedded images never break.
"""

import asyncio
import logging
import time
from urllib.parse import unquote

from collectors.http_client import close_http_client
from collectors.request_cache import send_and_cache_request
from pipeline.render import BadgeFields
from pipeline.service import Redirector, run_service
from services import find_route
from shared.constants import COLOR_RED
from shared.logging_utils import (
    configure_structured_logging,
    log_badge_request,
    set_badge_service,
    set_request_id,
)
from shared.metrics import emit_badge_metric
from shared.response_utils import badge_response, redirect_response
from shared.types import APIGatewayEvent, LambdaResponse

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

NOT_FOUND_BADGE = BadgeFields(label="404", message="badge not found", color=COLOR_RED)


def _request_path(event: APIGatewayEvent) -> str:
    path = event.get("path")
    if not path:
        proxy = (event.get("pathParameters") or {}).get("proxy", "")
        path = f"/{proxy}"
    path = unquote(path)
    if path.endswith(".json"):
        path = path[: -len(".json")]
    return path


def handler(event: APIGatewayEvent, context) -> LambdaResponse:
    """
    Lambda handler for badge requests.

    Returns a JSON badge; unknown paths get a 404 badge, legacy routes a
    301 redirect.
    """
    configure_structured_logging()
    start_time = time.time()
    set_request_id(event)

    path = _request_path(event)
    query_params = event.get("queryStringParameters") or {}

    target, path_params = find_route(path)

    if target is None:
        logger.info(f"No badge route for {path}")
        log_badge_request(logger, path, 404, (time.time() - start_time) * 1000)
        return badge_response(NOT_FOUND_BADGE.to_dict(), status_code=404)

    set_badge_service(target.name)

    if isinstance(target, Redirector):
        location = target.location(path_params, query_params)
        log_badge_request(logger, path, 301, (time.time() - start_time) * 1000, target.name)
        return redirect_response(location)

    loop = asyncio.new_event_loop()
    try:
        fields, outcome = loop.run_until_complete(
            run_service(target, send_and_cache_request, path_params, query_params)
        )
    finally:
        # The shared client is bound to this loop
        loop.run_until_complete(close_http_client())
        loop.close()

    latency_ms = (time.time() - start_time) * 1000
    emit_badge_metric(target.name, outcome, latency_ms)
    log_badge_request(logger, path, 200, latency_ms, target.name, outcome)

    return badge_response(fields.to_dict())
