"""
Badge renderers.

Pure functions from the few validated values a badge needs to its displayed
fields. They never touch the network, so they also produce the static
examples shown in documentation.
"""

from dataclasses import asdict, dataclass
from typing import Optional, Tuple

from shared.constants import COLOR_LIGHTGRAY, COLOR_RED
from shared.formatters import (
    DateLike,
    addv,
    age_color,
    download_count_color,
    format_date,
    metric,
    version_color,
)
from shared.types import EndpointBadge


@dataclass(frozen=True)
class BadgeFields:
    label: str
    message: str
    color: str = COLOR_LIGHTGRAY
    link: Tuple[str, ...] = ()

    def to_dict(self) -> EndpointBadge:
        data = asdict(self)
        if not self.link:
            del data["link"]
        else:
            data["link"] = list(self.link)
        return data


def render_version_badge(version, feed: Optional[str] = None) -> dict:
    data = {"message": addv(version), "color": version_color(version)}
    if feed:
        data["label"] = feed
    return data


def render_download_badge(downloads: int, message_suffix: str = "") -> dict:
    return {
        "message": f"{metric(downloads)}{message_suffix}",
        "color": download_count_color(downloads),
    }


def render_date_badge(date: DateLike) -> dict:
    return {"message": format_date(date), "color": age_color(date)}


def render_likes_badge(likes: int, dislikes: Optional[int] = None, link: Tuple[str, ...] = ()) -> dict:
    """Like count, or 'likes 👍 dislikes 👎' when dislikes are requested."""
    if dislikes is None:
        message = metric(likes)
    else:
        message = f"{metric(likes)} 👍 {metric(dislikes)} 👎"
    return {"message": message, "color": COLOR_RED, "link": tuple(link)}
