"""
Tests for the fetch -> check -> parse -> validate pipeline.

Tests cover:
- Successful JSON and XML requests
- Status code mapping (404 -> NotFound, other non-2xx -> InvalidResponse)
- Transport and other request failures -> Inaccessible
- Unparseable and invalid bodies
"""

import logging

import httpx
import pytest

from pipeline.request_pipeline import (
    JSON_ACCEPT,
    XML_ACCEPT,
    check_error_response,
    request_json,
    request_xml,
    run,
)
from pipeline.service import Route, Service, invoke_handler
from shared.errors import Inaccessible, InvalidResponse, NotFound, ParseError, ValidationError
from shared.schema import NonNegativeInteger, Object, Required, String
from shared.types import RawResponse

SCHEMA = Object({"requiredString": Required(String())})


# =============================================================================
# STATUS CODE TESTS
# =============================================================================


class TestCheckErrorResponse:
    """Tests for check_error_response()."""

    def test_passes_2xx(self):
        response = RawResponse(body=b"{}", status_code=204)
        assert check_error_response(response) is response

    def test_404_is_not_found(self):
        with pytest.raises(NotFound) as exc_info:
            check_error_response(RawResponse(body=b"", status_code=404))
        assert exc_info.value.pretty_message == "not found"

    def test_404_custom_message(self):
        with pytest.raises(NotFound) as exc_info:
            check_error_response(
                RawResponse(body=b"", status_code=404),
                {404: "video not found"},
            )
        assert exc_info.value.pretty_message == "video not found"

    @pytest.mark.parametrize("status", [301, 400, 429, 500, 503])
    def test_other_errors_are_invalid_response(self, status):
        with pytest.raises(InvalidResponse) as exc_info:
            check_error_response(RawResponse(body=b"", status_code=status))
        assert exc_info.value.status_code == status
        assert exc_info.value.pretty_message == "invalid"

    def test_custom_message_for_other_status(self):
        with pytest.raises(InvalidResponse) as exc_info:
            check_error_response(
                RawResponse(body=b"", status_code=403),
                {403: "private"},
            )
        assert exc_info.value.pretty_message == "private"


# =============================================================================
# PIPELINE TESTS
# =============================================================================


class TestRun:
    """Tests for run() and its JSON/XML wrappers."""

    @pytest.mark.asyncio
    async def test_valid_json(self, make_fetcher):
        fetcher = make_fetcher([RawResponse(body=b'{"requiredString": "some-string"}', status_code=200)])

        data = await request_json(fetcher, url="https://example.com/api", schema=SCHEMA)

        assert data == {"requiredString": "some-string"}
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_json_sets_accept_header(self, make_fetcher):
        fetcher = make_fetcher([RawResponse(body=b'{"requiredString": "x"}', status_code=200)])

        await request_json(fetcher, url="https://example.com/api", schema=SCHEMA)

        _, options = fetcher.calls[0]
        assert options["headers"]["Accept"] == JSON_ACCEPT

    @pytest.mark.asyncio
    async def test_caller_accept_header_wins(self, make_fetcher):
        fetcher = make_fetcher([RawResponse(body=b'{"requiredString": "x"}', status_code=200)])

        await request_json(
            fetcher,
            url="https://example.com/api",
            schema=SCHEMA,
            options={"headers": {"Accept": "application/vnd.custom+json"}, "params": {"q": "1"}},
        )

        _, options = fetcher.calls[0]
        assert options["headers"]["Accept"] == "application/vnd.custom+json"
        assert options["params"] == {"q": "1"}

    @pytest.mark.asyncio
    async def test_valid_xml(self, make_fetcher):
        schema = Object({"node": Required(Object({"count": Required(NonNegativeInteger())}))})
        fetcher = make_fetcher([RawResponse(body=b"<node><count>12</count></node>", status_code=200)])

        data = await request_xml(fetcher, url="https://example.com/api", schema=schema)

        assert data == {"node": {"count": 12}}
        assert fetcher.calls[0][1]["headers"]["Accept"] == XML_ACCEPT

    @pytest.mark.asyncio
    async def test_unparseable_json(self, make_fetcher):
        fetcher = make_fetcher([RawResponse(body=b"not json", status_code=200)])

        with pytest.raises(ParseError):
            await run(fetcher, url="https://example.com/api", schema=SCHEMA)

    @pytest.mark.asyncio
    async def test_schema_mismatch(self, make_fetcher, caplog):
        fetcher = make_fetcher([RawResponse(body=b'{"requiredString": 7}', status_code=200)])

        with caplog.at_level(logging.WARNING, logger="pipeline.request_pipeline"):
            with pytest.raises(ValidationError) as exc_info:
                await run(fetcher, url="https://example.com/api", schema=SCHEMA)

        assert exc_info.value.path == "requiredString"
        assert "failed validation" in caplog.text

    @pytest.mark.asyncio
    async def test_status_checked_before_parsing(self, make_fetcher):
        fetcher = make_fetcher([RawResponse(body=b"<html>Not Found</html>", status_code=404)])

        with pytest.raises(NotFound):
            await run(fetcher, url="https://example.com/api", schema=SCHEMA)

    @pytest.mark.asyncio
    async def test_transport_error_is_inaccessible(self, make_fetcher):
        def refuse(url, options):
            raise httpx.ConnectError("connection refused")

        fetcher = make_fetcher(refuse)

        with pytest.raises(Inaccessible) as exc_info:
            await run(fetcher, url="https://example.com/api", schema=SCHEMA)

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)
        assert exc_info.value.details == {"error_type": "ConnectError"}

    @pytest.mark.asyncio
    async def test_timeout_is_inaccessible(self, make_fetcher):
        def slow(url, options):
            raise httpx.ReadTimeout("timed out")

        with pytest.raises(Inaccessible):
            await run(make_fetcher(slow), url="https://example.com/api", schema=SCHEMA)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            httpx.TooManyRedirects("Exceeded maximum allowed redirects."),
            httpx.DecodingError("Error -3 while decompressing data"),
        ],
    )
    async def test_non_transport_request_errors_are_inaccessible(self, make_fetcher, error):
        def fail(url, options):
            raise error

        with pytest.raises(Inaccessible) as exc_info:
            await run(make_fetcher(fail), url="https://example.com/api", schema=SCHEMA)

        assert exc_info.value.underlying is error
        assert exc_info.value.details == {"error_type": type(error).__name__}


# =============================================================================
# END-TO-END THROUGH THE SERVICE EXECUTOR
# =============================================================================


def _dummy_service():
    async def handle(fetcher, path_params, query_params):
        data = await request_json(fetcher, url="https://example.com/api", schema=SCHEMA)
        return {"message": data["requiredString"], "color": "blue"}

    return Service(
        name="Dummy",
        category="other",
        route=Route(base="dummy"),
        handle=handle,
        render=lambda message: {"message": message},
        default_badge_data={"label": "dummy"},
    )


class TestThroughService:
    """Pipeline errors as they appear on the badge."""

    @pytest.mark.asyncio
    async def test_valid_response(self, make_fetcher):
        fetcher = make_fetcher([RawResponse(body=b'{"requiredString": "some-string"}', status_code=200)])

        fields = await invoke_handler(_dummy_service(), fetcher, {})

        assert fields.message == "some-string"
        assert fields.color == "blue"

    @pytest.mark.asyncio
    async def test_unparseable_json_badge(self, make_fetcher):
        fetcher = make_fetcher([RawResponse(body=b"not json", status_code=200)])

        fields = await invoke_handler(_dummy_service(), fetcher, {})

        assert fields.label == "dummy"
        assert fields.message == "unparseable json response"
        assert fields.color == "lightgray"

    @pytest.mark.asyncio
    async def test_invalid_data_badge(self, make_fetcher):
        fetcher = make_fetcher([RawResponse(body=b'{"other": 1}', status_code=200)])

        fields = await invoke_handler(_dummy_service(), fetcher, {})

        assert fields.message == "invalid response data"
        assert fields.color == "lightgray"

    @pytest.mark.asyncio
    async def test_not_found_badge(self, make_fetcher):
        fetcher = make_fetcher([RawResponse(body=b"", status_code=404)])

        fields = await invoke_handler(_dummy_service(), fetcher, {})

        assert fields.message == "not found"
        assert fields.color == "red"

    @pytest.mark.asyncio
    async def test_inaccessible_badge(self, make_fetcher):
        def refuse(url, options):
            raise httpx.ConnectError("connection refused")

        fields = await invoke_handler(_dummy_service(), make_fetcher(refuse), {})

        assert fields.message == "inaccessible"
        assert fields.color == "lightgray"
