"""
Tests for the generic service executor, routes and the service registry.

Tests cover:
- Route pattern matching and path building
- Label override and query parameter validation
- BadgeError -> badge mapping, internal errors
- Static examples
- Registry lookups
"""

import logging

import pytest

from pipeline.render import BadgeFields
from pipeline.service import (
    Example,
    Redirector,
    Route,
    Service,
    invoke_handler,
    prepare_examples,
    render_example,
    run_service,
)
from shared.errors import Deprecated, ImproperlyConfigured, NotFound
from shared.schema import Enum, Object, Optional, Required, String


def make_service(handle, query_param_schema=None, **kwargs):
    def render(version):
        return {"message": f"v{version}", "color": "blue"}

    defaults = dict(
        name="DummyVersion",
        category="version",
        route=Route(base="dummy/v", pattern=":packageName", query_param_schema=query_param_schema),
        handle=handle,
        render=render,
        default_badge_data={"label": "dummy"},
    )
    defaults.update(kwargs)
    return Service(**defaults)


# =============================================================================
# ROUTE TESTS
# =============================================================================


class TestRoute:
    """Tests for Route matching."""

    def test_named_param(self):
        route = Route(base="chocolatey/v", pattern=":packageName")
        assert route.match("/chocolatey/v/git") == {"packageName": "git"}

    def test_no_match(self):
        route = Route(base="chocolatey/v", pattern=":packageName")
        assert route.match("/chocolatey/dt/git") is None
        assert route.match("/chocolatey/v/git/extra") is None

    def test_alternatives(self):
        route = Route(base="cocoapods", pattern=":interval(aw|at)/:spec")
        assert route.match("/cocoapods/aw/AFNetworking") == {"interval": "aw", "spec": "AFNetworking"}
        assert route.match("/cocoapods/ad/AFNetworking") is None

    def test_rest_of_path(self):
        route = Route(base="jenkins/s", pattern=":protocol(http|https)/:host/:job+")
        assert route.match("/jenkins/s/https/ci.example.com/folder/job/x") == {
            "protocol": "https",
            "host": "ci.example.com",
            "job": "folder/job/x",
        }

    def test_static_pattern(self):
        assert Route(base="jenkins", pattern="build").match("/jenkins/build") == {}

    def test_build_path(self):
        route = Route(base="chocolatey", pattern="dt/:packageName")
        assert route.build_path({"packageName": "git"}) == "/chocolatey/dt/git"


# =============================================================================
# EXECUTOR TESTS
# =============================================================================


class TestInvokeHandler:
    """Tests for invoke_handler()."""

    @pytest.mark.asyncio
    async def test_success(self, make_fetcher):
        async def handle(fetcher, path_params, query_params):
            assert path_params == {"packageName": "git"}
            return {"message": "v2.19.2", "color": "blue"}

        fields = await invoke_handler(make_service(handle), make_fetcher([]), {"packageName": "git"})

        assert fields == BadgeFields(label="dummy", message="v2.19.2", color="blue")

    @pytest.mark.asyncio
    async def test_label_override(self, make_fetcher):
        async def handle(fetcher, path_params, query_params):
            assert "label" not in query_params
            return {"label": "service label", "message": "v1", "color": "blue"}

        fields = await invoke_handler(make_service(handle), make_fetcher([]), {}, {"label": "mine"})

        assert fields.label == "mine"

    @pytest.mark.asyncio
    async def test_render_label_beats_default(self, make_fetcher):
        async def handle(fetcher, path_params, query_params):
            return {"label": "likes", "message": "7", "color": "red"}

        fields = await invoke_handler(make_service(handle), make_fetcher([]), {})

        assert fields.label == "likes"

    @pytest.mark.asyncio
    async def test_label_override_on_error_badge(self, make_fetcher):
        async def handle(fetcher, path_params, query_params):
            raise NotFound()

        fields = await invoke_handler(make_service(handle), make_fetcher([]), {}, {"label": "mine"})

        assert fields == BadgeFields(label="mine", message="not found", color="red")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,message,color",
        [
            (NotFound("package not found"), "package not found", "red"),
            (Deprecated(), "no longer available", "lightgray"),
            (ImproperlyConfigured(), "improperly configured", "lightgray"),
        ],
    )
    async def test_badge_errors(self, make_fetcher, error, message, color):
        async def handle(fetcher, path_params, query_params):
            raise error

        fields = await invoke_handler(make_service(handle), make_fetcher([]), {})

        assert fields.label == "dummy"
        assert fields.message == message
        assert fields.color == color

    @pytest.mark.asyncio
    async def test_internal_error(self, make_fetcher, caplog):
        async def handle(fetcher, path_params, query_params):
            raise KeyError("boom")

        with caplog.at_level(logging.ERROR, logger="pipeline.service"):
            fields = await invoke_handler(make_service(handle), make_fetcher([]), {})

        assert fields == BadgeFields(label="pkgbadges", message="internal error", color="lightgray")
        assert "Unhandled error in DummyVersion" in caplog.text

    @pytest.mark.asyncio
    async def test_internal_error_reraised_when_not_handled(self, make_fetcher):
        async def handle(fetcher, path_params, query_params):
            raise KeyError("boom")

        with pytest.raises(KeyError):
            await invoke_handler(make_service(handle), make_fetcher([]), {}, handle_internal_errors=False)

    @pytest.mark.asyncio
    async def test_run_service_reports_outcome(self, make_fetcher):
        async def handle(fetcher, path_params, query_params):
            raise NotFound()

        fields, outcome = await run_service(make_service(handle), make_fetcher([]), {})

        assert outcome == "not_found"
        assert fields.message == "not found"


class TestQueryParams:
    """Tests for query parameter validation."""

    SCHEMA = Object({"include_prereleases": Optional(Enum(("",)))})

    @pytest.mark.asyncio
    async def test_validated_params_reach_handler(self, make_fetcher):
        seen = {}

        async def handle(fetcher, path_params, query_params):
            seen.update(query_params)
            return {"message": "v1"}

        await invoke_handler(
            make_service(handle, self.SCHEMA),
            make_fetcher([]),
            {},
            {"include_prereleases": "", "style": "flat"},
        )

        # Undeclared params are dropped
        assert seen == {"include_prereleases": ""}

    @pytest.mark.asyncio
    async def test_invalid_param_is_red_badge(self, make_fetcher):
        async def handle(fetcher, path_params, query_params):
            raise AssertionError("handler must not run")

        fields = await invoke_handler(
            make_service(handle, self.SCHEMA),
            make_fetcher([]),
            {},
            {"include_prereleases": "yes"},
        )

        assert fields.message == "invalid query parameter"
        assert fields.color == "red"

    @pytest.mark.asyncio
    async def test_missing_required_param(self, make_fetcher):
        async def handle(fetcher, path_params, query_params):
            raise AssertionError("handler must not run")

        schema = Object({"jobUrl": Required(String())})
        fields = await invoke_handler(make_service(handle, schema), make_fetcher([]), {}, {})

        assert fields.message == "invalid query parameter"


# =============================================================================
# EXAMPLE AND REDIRECT TESTS
# =============================================================================


class TestExamples:
    """Tests for static examples."""

    def test_render_example(self):
        service = make_service(None)
        assert render_example(service, {"version": "1.0"}).message == "v1.0"

    def test_prepare_examples(self):
        service = make_service(
            None,
            examples=(
                Example(title="Dummy", named_params={"packageName": "git"}, static_preview={"version": "2"}),
                Example(
                    title="Dummy pre",
                    named_params={"packageName": "git"},
                    query_params={"include_prereleases": ""},
                    static_preview={"version": "3-rc"},
                ),
            ),
        )

        examples = prepare_examples(service)

        assert examples[0] == {
            "title": "Dummy",
            "example_url": "/dummy/v/git",
            "preview": {"label": "dummy", "message": "v2", "color": "blue"},
        }
        assert examples[1]["example_url"] == "/dummy/v/git?include_prereleases="

    def test_default_label_from_route(self):
        service = make_service(None, default_badge_data={})
        assert service.default_label == "dummy"


class TestRedirector:
    """Tests for Redirector.location()."""

    def test_location_merges_query(self):
        redirector = Redirector(
            name="DummyRedirect",
            category="version",
            route=Route(base="dummy/vpre", pattern=":packageName"),
            transform_path=lambda params: f"/dummy/v/{params['packageName']}",
            transform_query=lambda params: {"include_prereleases": ""},
        )

        assert redirector.location({"packageName": "git"}, {"label": "x"}) == (
            "/dummy/v/git?label=x&include_prereleases="
        )

    def test_location_without_query(self):
        redirector = Redirector(
            name="DummyRedirect",
            category="version",
            route=Route(base="old"),
            transform_path=lambda params: "/new",
        )

        assert redirector.location({}) == "/new"


# =============================================================================
# REGISTRY TESTS
# =============================================================================


class TestRegistry:
    """Tests for the service registry."""

    def test_service_names_are_unique(self):
        from services import all_redirectors, all_services

        names = [s.name for s in all_services()] + [r.name for r in all_redirectors()]
        assert len(names) == len(set(names))

    @pytest.mark.parametrize(
        "path,name,params",
        [
            ("/chocolatey/v/git", "ChocolateyVersion", {"packageName": "git"}),
            ("/chocolatey/dt/git", "ChocolateyDownloads", {"packageName": "git"}),
            ("/chocolatey/vpre/git", "ChocolateyVersionRedirect", {"packageName": "git"}),
            ("/powershellgallery/v/Az.Storage", "PowerShellGalleryVersion", {"packageName": "Az.Storage"}),
            ("/resharper/dt/ReSharper.Nuke", "ResharperDownloads", {"packageName": "ReSharper.Nuke"}),
            ("/eclipse-marketplace/dm/notepad4e", "EclipseMarketplaceDownloadsMonth", {"name": "notepad4e"}),
            ("/eclipse-marketplace/dt/notepad4e", "EclipseMarketplaceDownloadsTotal", {"name": "notepad4e"}),
            ("/eclipse-marketplace/last-update/notepad4e", "EclipseMarketplaceUpdate", {"name": "notepad4e"}),
            ("/youtube/likes/abBdk8bSPKU", "YouTubeLikes", {"videoId": "abBdk8bSPKU"}),
            ("/jenkins/build", "JenkinsBuild", {}),
            ("/nsp/npm/left-pad", "Nsp", {"various": "left-pad"}),
        ],
    )
    def test_find_route(self, path, name, params):
        from services import find_route

        target, found_params = find_route(path)

        assert target.name == name
        assert found_params == params

    def test_unknown_path(self):
        from services import find_route

        assert find_route("/nope/v/git") == (None, {})

    def test_every_example_renders(self):
        from services import all_services

        for service in all_services():
            for prepared in prepare_examples(service):
                assert prepared["preview"]["message"]
                assert prepared["example_url"].startswith("/")
