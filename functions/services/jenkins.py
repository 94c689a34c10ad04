"""
Jenkins build status badge and shared Jenkins URL helpers.

Jenkins is self-hosted, so the job is given as a full URL in the jobUrl query
parameter, and disableStrictSSL lets users point at instances with
self-signed certificates.
"""

import logging

from pipeline.request_pipeline import Fetcher, request_json
from pipeline.service import Example, Redirector, Route, Service
from shared.constants import COLOR_BRIGHTGREEN, COLOR_LIGHTGRAY, COLOR_RED, COLOR_YELLOW
from shared.schema import Enum, Object, Optional as OptionalField, Required, Url

logger = logging.getLogger(__name__)

QUERY_PARAM_SCHEMA = Object({
    "disableStrictSSL": OptionalField(Enum(("",))),
    "jobUrl": Required(Url()),
})

# Jenkins ball color -> build status
COLOR_STATUS = {
    "red": "failing",
    "red_anime": "building",
    "yellow": "unstable",
    "yellow_anime": "building",
    "blue": "passing",
    "blue_anime": "building",
    "green": "passing",
    "green_anime": "building",
    "aborted": "not built",
    "aborted_anime": "building",
    "notbuilt": "not built",
    "notbuilt_anime": "building",
    "disabled": "not built",
    "disabled_anime": "building",
    "grey": "not built",
    "grey_anime": "building",
}

STATUS_COLOR = {
    "passing": COLOR_BRIGHTGREEN,
    "failing": COLOR_RED,
    "unstable": COLOR_YELLOW,
}

BUILD_SCHEMA = Object({
    "color": Required(Enum(tuple(COLOR_STATUS))),
})


def build_redirect_url(protocol: str, host: str, job: str) -> str:
    """Job URL from the legacy /jenkins/s/<protocol>/<host>/<job> route."""
    job_prefix = "" if "/" in job else "job/"
    return f"{protocol}://{host}/{job_prefix}{job}"


def build_url(job_url: str, last_completed_build: bool = True, plugin: str = None) -> str:
    """JSON API URL for a job, optionally its last completed build and a plugin."""
    last_completed_build_element = "lastCompletedBuild/" if last_completed_build else ""
    plugin_element = f"{plugin}/" if plugin else ""
    return f"{job_url.rstrip('/')}/{last_completed_build_element}{plugin_element}api/json"


def build_tree_param(tree: str) -> dict:
    """Jenkins 'tree' filter limiting the JSON API response to the given fields."""
    return {"tree": tree}


def render(status: str) -> dict:
    return {"message": status, "color": STATUS_COLOR.get(status, COLOR_LIGHTGRAY)}


async def handle_build(fetcher: Fetcher, path_params: dict, query_params: dict) -> dict:
    data = await request_json(
        fetcher,
        url=build_url(query_params["jobUrl"], last_completed_build=False),
        schema=BUILD_SCHEMA,
        options={
            "params": build_tree_param("color"),
            "strict_ssl": "disableStrictSSL" not in query_params,
        },
    )
    return render(status=COLOR_STATUS[data["color"]])


BUILD_SERVICE = Service(
    name="JenkinsBuild",
    category="build",
    route=Route(base="jenkins", pattern="build", query_param_schema=QUERY_PARAM_SCHEMA),
    handle=handle_build,
    render=render,
    default_badge_data={"label": "build"},
    examples=(
        Example(
            title="Jenkins",
            named_params={},
            query_params={"jobUrl": "https://ci.eclipse.org/jgit/job/jgit"},
            static_preview={"status": "passing"},
        ),
    ),
)

BUILD_REDIRECTOR = Redirector(
    name="JenkinsBuildRedirect",
    category="build",
    route=Route(base="jenkins/s", pattern=":protocol(http|https)/:host/:job+"),
    transform_path=lambda params: "/jenkins/build",
    transform_query=lambda params: {
        "jobUrl": build_redirect_url(params["protocol"], params["host"], params["job"]),
    },
)

SERVICES = (BUILD_SERVICE,)
REDIRECTORS = (BUILD_REDIRECTOR,)
