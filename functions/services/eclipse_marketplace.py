"""
Eclipse Marketplace badges: monthly/total installs and last update.

The marketplace only speaks XML. Every value of interest sits in a
<node> element; repeated elements are declared as single-tolerant arrays so
one node or one value validates the same as many.
"""

import logging

from pipeline.render import render_date_badge, render_download_badge
from pipeline.request_pipeline import Fetcher, request_xml
from pipeline.service import Example, Route, Service
from shared.constants import ECLIPSE_MARKETPLACE_API
from shared.schema import Array, NonNegativeInteger, Object, Required

logger = logging.getLogger(__name__)


def _node_schema(field_name: str) -> Object:
    return Object({
        "marketplace": Required(Object({
            "node": Required(Array(
                Object({
                    field_name: Required(Array(NonNegativeInteger(), min_length=1, single=True)),
                }),
                min_length=1,
                single=True,
            )),
        })),
    })


MONTHLY_SCHEMA = _node_schema("installsrecent")
TOTAL_SCHEMA = _node_schema("installstotal")
UPDATE_SCHEMA = _node_schema("changed")

# interval -> (route base, schema, node field, message suffix)
DOWNLOAD_INTERVALS = {
    "month": ("eclipse-marketplace/dm", MONTHLY_SCHEMA, "installsrecent", "/month"),
    "total": ("eclipse-marketplace/dt", TOTAL_SCHEMA, "installstotal", ""),
}


async def fetch_node(fetcher: Fetcher, name: str, schema: Object) -> dict:
    """Fetch and validate the first <node> of a marketplace listing."""
    data = await request_xml(
        fetcher,
        url=f"{ECLIPSE_MARKETPLACE_API}/{name}/api/p",
        schema=schema,
    )
    return data["marketplace"]["node"][0]


def downloads_service(interval: str) -> Service:
    base, schema, node_field, message_suffix = DOWNLOAD_INTERVALS[interval]

    def render(downloads: int) -> dict:
        return render_download_badge(downloads, message_suffix=message_suffix)

    async def handle(fetcher: Fetcher, path_params: dict, query_params: dict) -> dict:
        node = await fetch_node(fetcher, path_params["name"], schema)
        return render(downloads=node[node_field][0])

    return Service(
        name=f"EclipseMarketplaceDownloads{interval.capitalize()}",
        category="downloads",
        route=Route(base=base, pattern=":name"),
        handle=handle,
        render=render,
        default_badge_data={"label": "downloads"},
        examples=(
            Example(
                title="Eclipse Marketplace",
                named_params={"name": "notepad4e"},
                static_preview={"downloads": 30000},
            ),
        ),
    )


async def handle_update(fetcher: Fetcher, path_params: dict, query_params: dict) -> dict:
    node = await fetch_node(fetcher, path_params["name"], UPDATE_SCHEMA)
    # changed is in seconds
    return render_date_badge(date=1000 * node["changed"][0])


UPDATE_SERVICE = Service(
    name="EclipseMarketplaceUpdate",
    category="activity",
    route=Route(base="eclipse-marketplace/last-update", pattern=":name"),
    handle=handle_update,
    render=render_date_badge,
    default_badge_data={"label": "updated"},
    examples=(
        Example(
            title="Eclipse Marketplace",
            named_params={"name": "notepad4e"},
            static_preview={"date": 1535779262000},
        ),
    ),
)

SERVICES = (downloads_service("month"), downloads_service("total"), UPDATE_SERVICE)
