"""
YouTube video likes badge.

Needs a YouTube Data API key in YOUTUBE_API_KEY.
"""

import logging
import os
from typing import Optional

from pipeline.render import render_likes_badge
from pipeline.request_pipeline import Fetcher, request_json
from pipeline.service import Example, Route, Service
from shared.constants import YOUTUBE_API
from shared.errors import ImproperlyConfigured, NotFound
from shared.schema import Array, Enum, NonNegativeInteger, Object, Optional as OptionalField, Required

logger = logging.getLogger(__name__)

VIDEO_NOT_FOUND = "video not found"

STATISTICS_SCHEMA = Object({
    "items": Required(Array(
        Object({
            "statistics": Required(Object({
                "viewCount": OptionalField(NonNegativeInteger(), default=0),
                # likeCount is hidden for some videos, dislikeCount is no longer public
                "likeCount": OptionalField(NonNegativeInteger(), default=0),
                "dislikeCount": OptionalField(NonNegativeInteger(), default=0),
                "commentCount": OptionalField(NonNegativeInteger(), default=0),
            })),
        }),
        max_length=1,
    )),
})

QUERY_PARAM_SCHEMA = Object({
    "withDislikes": OptionalField(Enum(("",))),
})


def _api_key() -> str:
    api_key = os.environ.get("YOUTUBE_API_KEY", "")
    if not api_key:
        raise ImproperlyConfigured()
    return api_key


async def fetch_statistics(fetcher: Fetcher, video_id: str) -> dict:
    data = await request_json(
        fetcher,
        url=f"{YOUTUBE_API}/videos",
        schema=STATISTICS_SCHEMA,
        options={"params": {"id": video_id, "part": "statistics", "key": _api_key()}},
        error_messages={404: VIDEO_NOT_FOUND},
    )
    if not data["items"]:
        raise NotFound(VIDEO_NOT_FOUND)
    return data["items"][0]["statistics"]


def render(likes: int, dislikes: Optional[int] = None, video_id: Optional[str] = None) -> dict:
    link = (f"https://www.youtube.com/video/{video_id}",) if video_id else ()
    return {"label": "likes", **render_likes_badge(likes, dislikes, link=link)}


async def handle(fetcher: Fetcher, path_params: dict, query_params: dict) -> dict:
    video_id = path_params["videoId"]
    statistics = await fetch_statistics(fetcher, video_id)
    dislikes = statistics["dislikeCount"] if "withDislikes" in query_params else None
    return render(likes=statistics["likeCount"], dislikes=dislikes, video_id=video_id)


LIKES_SERVICE = Service(
    name="YouTubeLikes",
    category="social",
    route=Route(base="youtube/likes", pattern=":videoId", query_param_schema=QUERY_PARAM_SCHEMA),
    handle=handle,
    render=render,
    default_badge_data={"label": "youtube"},
    examples=(
        Example(
            title="YouTube Video Likes",
            named_params={"videoId": "abBdk8bSPKU"},
            static_preview={"likes": 7, "video_id": "abBdk8bSPKU"},
        ),
        Example(
            title="YouTube Video Likes and Dislikes",
            named_params={"videoId": "abBdk8bSPKU"},
            query_params={"withDislikes": ""},
            static_preview={"likes": 7, "dislikes": 2, "video_id": "abBdk8bSPKU"},
        ),
    ),
)

SERVICES = (LIKES_SERVICE,)
