"""
NuGet v2 (OData) service family.

Several package indexes expose the NuGet v2 OData API: Chocolatey,
PowerShell Gallery, JetBrains ReSharper plugins. Each gets a version badge,
a downloads badge and a legacy /vpre redirect, all built by
create_service_family() from the same fetch logic.

A v2 feed only answers "latest stable" (IsLatestVersion) or "latest
including prereleases" (IsAbsoluteLatestVersion). Packages with nothing but
prereleases come back empty on the stable query, so lookups fall back from
the stable to the prerelease channel before reporting "not found".
"""

import logging
from typing import Optional

from pipeline.fallback import ReleaseChannel, release_channel_attempts, resolve_first
from pipeline.parsers import WireFormat, odata_to_object
from pipeline.render import render_download_badge, render_version_badge
from pipeline.request_pipeline import Fetcher, request_json, request_xml
from pipeline.service import Example, Redirector, Route, Service
from shared.constants import CHOCOLATEY_API, POWERSHELL_GALLERY_API, RESHARPER_API
from shared.errors import ValidationError
from shared.schema import (
    AnyOf,
    Array,
    Enum,
    NonNegativeInteger,
    Number,
    Object,
    Optional as OptionalField,
    Required,
    String,
)

logger = logging.getLogger(__name__)

ODATA_JSON_ACCEPT = "application/atom+json,application/json"

VERSION_RULE = AnyOf((String(), Number()))

PACKAGE_PROPERTIES = {
    "Version": OptionalField(VERSION_RULE),
    "NormalizedVersion": OptionalField(String()),
    "DownloadCount": OptionalField(NonNegativeInteger()),
}

JSON_SCHEMA = Object({
    "d": Required(Object({
        "results": OptionalField(Array(Object(PACKAGE_PROPERTIES), max_length=1), default=[]),
    })),
})

XML_SCHEMA = Object({
    "feed": Required(Object({
        "entry": OptionalField(Object({
            "properties": OptionalField(Object({
                **PACKAGE_PROPERTIES,
                "Tags": OptionalField(String(allow_empty=True)),
            })),
        })),
    })),
})

QUERY_PARAM_SCHEMA = Object({
    "include_prereleases": OptionalField(Enum(("",))),
})


def create_filter(package_name: str, include_prereleases: bool = False) -> str:
    """OData $filter selecting the latest (stable or absolute) version of a package."""
    release_type_filter = (
        "IsAbsoluteLatestVersion eq true" if include_prereleases else "IsLatestVersion eq true"
    )
    return f"Id eq '{package_name}' and {release_type_filter}"


async def fetch_package(
    fetcher: Fetcher,
    *,
    odata_format: WireFormat,
    base_url: str,
    package_name: str,
    include_prereleases: bool = False,
) -> dict:
    """
    Look up the latest version record of a package.

    Tries the stable channel, then the prerelease channel, always in the
    feed's own format.

    Raises:
        NotFound when neither channel has the package
    """
    url = f"{base_url}/Packages()"
    wire_format = WireFormat(odata_format)

    attempts = release_channel_attempts(
        wire_format,
        lambda channel: {
            "$filter": create_filter(package_name, channel is ReleaseChannel.PRERELEASE),
        },
        include_prereleases=include_prereleases,
    )

    async def fetch_results(attempt) -> list:
        options = {"params": dict(attempt.query_parameters)}
        if attempt.wire_format is WireFormat.XML:
            data = await request_xml(fetcher, url=url, schema=XML_SCHEMA, options=options)
            package_data = odata_to_object(data["feed"].get("entry"))
            return [package_data] if package_data else []

        options["headers"] = {"Accept": ODATA_JSON_ACCEPT}
        data = await request_json(fetcher, url=url, schema=JSON_SCHEMA, options=options)
        return data["d"]["results"]

    return await resolve_first(attempts, fetch_results)


def create_service_family(
    *,
    title: str,
    default_label: str,
    service_base_url: str,
    api_base_url: str,
    odata_format: str,
    example_package_name: str,
    example_version: str,
    example_prerelease_version: str,
    example_download_count: int,
    name: Optional[str] = None,
) -> dict:
    """
    Create the version, downloads and /vpre redirect services for one NuGet v2 feed.

    Args:
        title: Human name of the feed, e.g. "Chocolatey"
        default_label: Left-hand badge text
        service_base_url: Route prefix, e.g. "chocolatey"
        api_base_url: Complete API base, e.g. "https://community.chocolatey.org/api/v2"
        odata_format: "json" or "xml"

    Returns:
        {"version": Service, "version_redirector": Redirector, "downloads": Service}
    """
    name = name or title.replace(" ", "")
    wire_format = WireFormat(odata_format)

    async def handle_version(fetcher: Fetcher, path_params: dict, query_params: dict) -> dict:
        package_data = await fetch_package(
            fetcher,
            odata_format=wire_format,
            base_url=api_base_url,
            package_name=path_params["packageName"],
            include_prereleases="include_prereleases" in query_params,
        )
        version = package_data.get("NormalizedVersion") or package_data.get("Version")
        if version is None:
            raise ValidationError("Version", VERSION_RULE.kind, None)
        return render_version_badge(version=f"{version}")

    async def handle_downloads(fetcher: Fetcher, path_params: dict, query_params: dict) -> dict:
        package_data = await fetch_package(
            fetcher,
            odata_format=wire_format,
            base_url=api_base_url,
            package_name=path_params["packageName"],
        )
        downloads = package_data.get("DownloadCount")
        if downloads is None:
            raise ValidationError("DownloadCount", NonNegativeInteger.kind, None)
        return render_download_badge(downloads=downloads)

    version_service = Service(
        name=f"{name}Version",
        category="version",
        route=Route(
            base=f"{service_base_url}/v",
            pattern=":packageName",
            query_param_schema=QUERY_PARAM_SCHEMA,
        ),
        handle=handle_version,
        render=render_version_badge,
        default_badge_data={"label": default_label},
        examples=(
            Example(
                title=f"{title} Version",
                named_params={"packageName": example_package_name},
                static_preview={"version": example_version},
            ),
            Example(
                title=f"{title} Version (including pre-releases)",
                named_params={"packageName": example_package_name},
                query_params={"include_prereleases": ""},
                static_preview={"version": example_prerelease_version},
            ),
        ),
    )

    version_redirector = Redirector(
        name=f"{name}VersionRedirect",
        category="version",
        route=Route(base=f"{service_base_url}/vpre", pattern=":packageName"),
        transform_path=lambda params: f"/{service_base_url}/v/{params['packageName']}",
        transform_query=lambda params: {"include_prereleases": ""},
    )

    downloads_service = Service(
        name=f"{name}Downloads",
        category="downloads",
        route=Route(base=service_base_url, pattern="dt/:packageName"),
        handle=handle_downloads,
        render=render_download_badge,
        default_badge_data={"label": "downloads"},
        examples=(
            Example(
                title=f"{title} Downloads",
                named_params={"packageName": example_package_name},
                static_preview={"downloads": example_download_count},
            ),
        ),
    )

    return {
        "version": version_service,
        "version_redirector": version_redirector,
        "downloads": downloads_service,
    }


CHOCOLATEY = create_service_family(
    title="Chocolatey",
    default_label="chocolatey",
    service_base_url="chocolatey",
    api_base_url=CHOCOLATEY_API,
    odata_format="json",
    example_package_name="git",
    example_version="2.19.2",
    example_prerelease_version="2.19.2-rc1",
    example_download_count=2_500_000,
)

POWERSHELL_GALLERY = create_service_family(
    title="PowerShell Gallery",
    default_label="powershell gallery",
    service_base_url="powershellgallery",
    api_base_url=POWERSHELL_GALLERY_API,
    odata_format="xml",
    example_package_name="Az.Storage",
    example_version="5.1.0",
    example_prerelease_version="5.2.0-preview",
    example_download_count=41_000_000,
)

RESHARPER = create_service_family(
    title="JetBrains ReSharper plugins",
    name="Resharper",
    default_label="resharper",
    service_base_url="resharper",
    api_base_url=RESHARPER_API,
    odata_format="xml",
    example_package_name="ReSharper.Nuke",
    example_version="0.13.0",
    example_prerelease_version="0.14.0-beta1",
    example_download_count=11_000,
)

FAMILIES = (CHOCOLATEY, POWERSHELL_GALLERY, RESHARPER)
