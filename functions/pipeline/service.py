"""
Generic badge service executor.

A badge service is a configuration record, not a subclass:

    Service(
        name="NugetDownloads",
        category="downloads",
        route=Route(base="nuget", pattern="dt/:packageName"),
        handle=handle_downloads,      # async (fetcher, path, query) -> render data
        render=render_download_badge, # pure, also used for static examples
        default_badge_data={"label": "nuget"},
    )

invoke_handler() runs one service for one request and always comes back with
BadgeFields: success data from the service's render function, or the badge
for whichever BadgeError the pipeline raised.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Any, Awaitable, Callable, Mapping, Optional, Tuple
from urllib.parse import urlencode

from pipeline.render import BadgeFields
from pipeline.request_pipeline import Fetcher
from shared.constants import COLOR_LIGHTGRAY, DEFAULT_LABEL
from shared.errors import BadgeError, InvalidParameter, ValidationError
from shared.schema import Rule, validate

logger = logging.getLogger(__name__)

# :name, :name(a|b), :name+ (rest of path, may contain slashes), :name* (may be empty)
PARAM_PATTERN = re.compile(r":(\w+)(?:\(([^)]*)\))?([+*])?")

OUTCOME_OK = "ok"
OUTCOME_INTERNAL_ERROR = "internal_error"


@lru_cache(maxsize=None)
def _compile_route(base: str, pattern: str) -> re.Pattern:
    full = "/".join(part for part in (base.strip("/"), pattern.strip("/")) if part)
    regex = ""
    pos = 0
    for match in PARAM_PATTERN.finditer(full):
        regex += re.escape(full[pos:match.start()])
        name, alternatives, modifier = match.groups()
        if alternatives:
            body = alternatives
        elif modifier == "+":
            body = ".+"
        elif modifier == "*":
            body = ".*"
        else:
            body = "[^/]+"
        regex += f"(?P<{name}>{body})"
        pos = match.end()
    regex += re.escape(full[pos:])
    return re.compile(f"^{regex}$")


@dataclass(frozen=True)
class Route:
    base: str
    pattern: str = ""
    query_param_schema: Optional[Rule] = None

    def match(self, path: str) -> Optional[dict]:
        """Path parameters if path (without extension) matches this route."""
        found = _compile_route(self.base, self.pattern).match(path.strip("/"))
        return found.groupdict() if found else None

    def build_path(self, named_params: Mapping[str, str]) -> str:
        full = "/".join(part for part in (self.base.strip("/"), self.pattern.strip("/")) if part)
        return "/" + PARAM_PATTERN.sub(lambda m: str(named_params[m.group(1)]), full)


@dataclass(frozen=True)
class Example:
    title: str
    named_params: Mapping[str, str]
    static_preview: Mapping[str, Any]
    query_params: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Service:
    name: str
    category: str
    route: Route
    handle: Callable[[Fetcher, dict, dict], Awaitable[dict]]
    render: Callable[..., dict]
    default_badge_data: Mapping[str, str] = field(default_factory=dict)
    examples: Tuple[Example, ...] = ()

    @property
    def default_label(self) -> str:
        return self.default_badge_data.get("label") or self.route.base.split("/")[0]


@dataclass(frozen=True)
class Redirector:
    name: str
    category: str
    route: Route
    transform_path: Callable[[dict], str]
    transform_query: Callable[[dict], dict] = lambda params: {}

    def location(self, path_params: dict, query_params: Optional[dict] = None) -> str:
        target = self.transform_path(path_params)
        query = {**(query_params or {}), **self.transform_query(path_params)}
        return f"{target}?{urlencode(query)}" if query else target


def validate_query_params(schema: Optional[Rule], query_params: Mapping[str, str]) -> dict:
    if schema is None:
        return {}
    try:
        return validate(schema, dict(query_params))
    except ValidationError as e:
        raise InvalidParameter("invalid query parameter") from e


def _to_fields(data: Mapping[str, Any], label: str) -> BadgeFields:
    return BadgeFields(
        label=data.get("label") or label,
        message=str(data["message"]),
        color=data.get("color") or COLOR_LIGHTGRAY,
        link=tuple(data.get("link") or ()),
    )


async def run_service(
    service: Service,
    fetcher: Fetcher,
    path_params: Mapping[str, str],
    query_params: Optional[Mapping[str, str]] = None,
    handle_internal_errors: bool = True,
) -> Tuple[BadgeFields, str]:
    """
    Run a service and report the outcome alongside the badge.

    Returns:
        (badge fields, outcome) where outcome is 'ok', a BadgeError code,
        or 'internal_error'
    """
    query_params = dict(query_params or {})
    override_label = query_params.pop("label", None)
    label = override_label or service.default_label

    try:
        service_query = validate_query_params(service.route.query_param_schema, query_params)
        data = await service.handle(fetcher, dict(path_params), service_query)
    except BadgeError as e:
        logger.info(
            f"{service.name} -> {e.code}: {e.pretty_message}",
            extra={"service": service.name, "error_code": e.code, "details": e.details},
        )
        return _to_fields(e.to_badge_data(), label), e.code
    except Exception:
        if not handle_internal_errors:
            raise
        logger.exception(f"Unhandled error in {service.name}", extra={"service": service.name})
        fields = BadgeFields(label=DEFAULT_LABEL, message="internal error", color=COLOR_LIGHTGRAY)
        return fields, OUTCOME_INTERNAL_ERROR

    fields = _to_fields(data, service.default_label)
    if override_label:
        fields = replace(fields, label=override_label)
    return fields, OUTCOME_OK


async def invoke_handler(
    service: Service,
    fetcher: Fetcher,
    path_params: Mapping[str, str],
    query_params: Optional[Mapping[str, str]] = None,
    handle_internal_errors: bool = True,
) -> BadgeFields:
    """Run a service for one request; every failure becomes a badge."""
    fields, _ = await run_service(service, fetcher, path_params, query_params, handle_internal_errors)
    return fields


def render_example(service: Service, values: Mapping[str, Any]) -> BadgeFields:
    """Render hand-made example values without any network access."""
    return _to_fields(service.render(**values), service.default_label)


def prepare_examples(service: Service) -> list[dict]:
    """Static example badges for documentation."""
    prepared = []
    for example in service.examples:
        path = service.route.build_path(example.named_params)
        if example.query_params:
            path = f"{path}?{urlencode(example.query_params)}"
        prepared.append(
            {
                "title": example.title,
                "example_url": path,
                "preview": render_example(service, example.static_preview).to_dict(),
            }
        )
    return prepared
