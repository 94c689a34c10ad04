"""
Shared Type Definitions.

Lambda event/response shapes plus the raw upstream response passed from
the fetch collaborator to the request pipeline.
"""

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, TypedDict, Union


class APIGatewayEvent(TypedDict, total=False):
    """API Gateway proxy event structure."""

    httpMethod: str
    headers: dict[str, str]
    pathParameters: Optional[dict[str, str]]
    queryStringParameters: Optional[dict[str, str]]
    body: Optional[str]
    requestContext: dict[str, Any]
    resource: str
    path: str
    isBase64Encoded: bool


class LambdaResponse(TypedDict):
    """Standard Lambda response structure."""

    statusCode: int
    headers: dict[str, str]
    body: str


class EndpointBadge(TypedDict, total=False):
    """JSON badge body served to clients."""

    schemaVersion: int
    label: str
    message: str
    color: str
    link: list[str]


class FetchOptions(TypedDict, total=False):
    """Options accepted by the fetch collaborator."""

    headers: dict[str, str]
    params: dict[str, str]
    strict_ssl: bool


@dataclass(frozen=True)
class RawResponse:
    """Upstream response as returned by the fetch collaborator."""

    body: Union[bytes, str]
    status_code: int
    headers: Mapping[str, str] = field(default_factory=dict)
