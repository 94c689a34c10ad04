"""
Services whose upstream has shut down.

They keep their routes so existing badges render "no longer available"
instead of a 404.
"""

from datetime import date

from pipeline.request_pipeline import Fetcher
from pipeline.service import Route, Service
from shared.errors import Deprecated


def deprecated_service(*, name: str, category: str, route: Route, label: str, date_added: date) -> Service:
    """Service that always answers with the 'no longer available' badge."""

    async def handle(fetcher: Fetcher, path_params: dict, query_params: dict) -> dict:
        raise Deprecated()

    def render() -> dict:
        return Deprecated().to_badge_data()

    return Service(
        name=name,
        category=category,
        route=route,
        handle=handle,
        render=render,
        default_badge_data={"label": label, "date_added": date_added.isoformat()},
    )


COCOAPODS_APPS = deprecated_service(
    name="CocoapodsApps",
    category="other",
    route=Route(base="cocoapods", pattern=":interval(aw|at)/:spec"),
    label="apps",
    date_added=date(2018, 1, 6),
)

ISSUE_STATS = deprecated_service(
    name="IssueStats",
    category="issue-tracking",
    route=Route(base="issuestats", pattern=":which(i|p)/:various+"),
    label="issue stats",
    date_added=date(2018, 9, 1),
)

NSP = deprecated_service(
    name="Nsp",
    category="other",
    route=Route(base="nsp/npm", pattern=":various+"),
    label="nsp",
    date_added=date(2018, 12, 27),
)

SERVICES = (COCOAPODS_APPS, ISSUE_STATS, NSP)
