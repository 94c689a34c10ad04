"""
Service registry.

Routes are matched in registration order; the first match wins.
"""

from typing import Optional, Tuple, Union

from pipeline.service import Redirector, Service

from . import deprecated, eclipse_marketplace, jenkins, nuget, youtube


def all_services() -> Tuple[Service, ...]:
    services = []
    for family in nuget.FAMILIES:
        services.extend((family["version"], family["downloads"]))
    services.extend(eclipse_marketplace.SERVICES)
    services.extend(youtube.SERVICES)
    services.extend(jenkins.SERVICES)
    services.extend(deprecated.SERVICES)
    return tuple(services)


def all_redirectors() -> Tuple[Redirector, ...]:
    redirectors = [family["version_redirector"] for family in nuget.FAMILIES]
    redirectors.extend(jenkins.REDIRECTORS)
    return tuple(redirectors)


def find_route(path: str) -> Tuple[Optional[Union[Service, Redirector]], dict]:
    """
    Find the service or redirector for a badge path.

    Returns:
        (service or redirector, path params), or (None, {}) when nothing matches
    """
    for candidate in all_redirectors() + all_services():
        params = candidate.route.match(path)
        if params is not None:
            return candidate, params
    return None, {}
