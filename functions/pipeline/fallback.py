"""
Fallback search across release channels.

Some package indexes (NuGet v2 OData feeds) only answer "latest stable
version" or "latest version including prereleases" per query. A package
that has only prereleases returns an empty stable result, so lookups walk
an explicit, ordered list of attempts:

    stable -> prerelease

The wire format is fixed by the caller and never changes between attempts.
Only an empty result moves on to the next attempt; any error (network,
status, parse, validation) ends the search immediately.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, List, Mapping, Sequence

from pipeline.parsers import WireFormat
from shared.errors import NotFound

logger = logging.getLogger(__name__)


class ReleaseChannel(str, Enum):
    STABLE = "stable"
    PRERELEASE = "prerelease"


@dataclass(frozen=True)
class FetchAttempt:
    """One point in the search space. Built fresh per lookup."""

    wire_format: WireFormat
    release_channel: ReleaseChannel = ReleaseChannel.STABLE
    query_parameters: Mapping[str, str] = field(default_factory=dict)


def release_channel_attempts(
    wire_format: WireFormat,
    build_query: Callable[[ReleaseChannel], Mapping[str, str]],
    include_prereleases: bool = False,
) -> List[FetchAttempt]:
    """
    Build the ordered attempt list for one lookup.

    Args:
        wire_format: Format chosen by the caller, used for every attempt
        build_query: Query parameters for a given release channel
        include_prereleases: Start (and end) with the prerelease channel

    Returns:
        [stable, prerelease], or [prerelease] when prereleases were requested
    """
    if include_prereleases:
        channels = [ReleaseChannel.PRERELEASE]
    else:
        channels = [ReleaseChannel.STABLE, ReleaseChannel.PRERELEASE]

    return [
        FetchAttempt(
            wire_format=wire_format,
            release_channel=channel,
            query_parameters=build_query(channel),
        )
        for channel in channels
    ]


async def resolve_first(
    attempts: Sequence[FetchAttempt],
    fetch_results: Callable[[FetchAttempt], Awaitable[Sequence[Any]]],
) -> Any:
    """
    Return the first result of the first attempt that found anything.

    Args:
        attempts: Ordered attempts, tried one at a time
        fetch_results: Runs the request pipeline for an attempt

    Raises:
        NotFound when every attempt came back empty
    """
    for attempt in attempts:
        results = await fetch_results(attempt)
        if results:
            return results[0]
        logger.debug(
            f"No results on {attempt.release_channel.value} channel",
            extra={
                "release_channel": attempt.release_channel.value,
                "wire_format": attempt.wire_format.value,
            },
        )
    raise NotFound()
