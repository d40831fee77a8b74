from __future__ import annotations

import asyncio
import json
from typing import Callable, List

import httpx
import pytest

from weather_company import (
    MissingCredential,
    MissingMethod,
    ParseError,
    TransportError,
    UpstreamDomainError,
    WeatherClient,
)
from weather_company.config import ClientSettings

OBSERVATION = {"metadata": {"language": "en-US", "units": "e", "status_code": 200}, "observation": {"imperial": {"temp": 61}}}
INVALID_KEY = {
    "metadata": {"status_code": 401},
    "success": False,
    "errors": [{"error": {"code": "CDN-0001", "message": "Invalid apiKey."}}],
}


class Recorder:
    """MockTransport handler that records requests and replays one response."""

    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.respond = respond
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


def json_response(payload, status_code: int = 200) -> Recorder:
    return Recorder(lambda _: httpx.Response(status_code, text=json.dumps(payload)))


def make_client(handler: Recorder, api_key: str | None = "KEY") -> WeatherClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WeatherClient(api_key, client=client, settings=ClientSettings())


def collect(results: list) -> Callable:
    def callback(error, body):
        results.append((error, body))
        return "delivered"

    return callback


def test_v1_request_url_and_body() -> None:
    handler = json_response(OBSERVATION)
    results: list = []

    returned = (
        make_client(handler)
        .set_units("m")
        .set_geocode("37.317850,-122.035920")
        .call("observations/current", collect(results))
    )

    assert returned == "delivered"
    assert results == [(None, OBSERVATION)]
    assert len(handler.requests) == 1
    request = handler.requests[0]
    assert request.method == "GET"
    assert str(request.url) == (
        "https://api.weather.com/v1/geocode/37.317850/-122.035920/observations/current.json"
        "?apiKey=KEY&units=m&language=en-US"
    )
    assert "user-agent" in request.headers


def test_v3_point_request_url() -> None:
    handler = json_response({"location": {"city": "San Francisco"}})

    body = asyncio.run(make_client(handler).set_units("m").point("iataCode", "SFO"))

    assert body == {"location": {"city": "San Francisco"}}
    request = handler.requests[0]
    assert request.url.path == "/v3/location/point"
    assert dict(request.url.params) == {
        "iataCode": "SFO",
        "apiKey": "KEY",
        "format": "json",
        "language": "en-US",
    }


def test_v3_search_request_params() -> None:
    handler = json_response({"location": {"city": ["Cupertino"]}})

    asyncio.run(make_client(handler).search("cupertino", "city"))

    request = handler.requests[0]
    assert request.url.path == "/v3/location/search"
    assert request.url.params["query"] == "cupertino"
    assert request.url.params["locationType"] == "city"
    assert "units" not in request.url.params


@pytest.mark.parametrize("api_key", [None, ""])
def test_missing_credential_skips_transport(api_key) -> None:
    handler = json_response(OBSERVATION)
    client = make_client(handler, api_key=api_key).set_location("94024", "US")
    results: list = []

    client.call("observations/current", collect(results))
    client.point("iataCode", "SFO", collect(results))

    assert handler.requests == []
    assert [type(error) for error, _ in results] == [MissingCredential, MissingCredential]
    assert str(results[0][0]) == "apiKey is Missing"
    assert results[0][1] == {}


def test_missing_credential_rejects_awaitable() -> None:
    handler = json_response(OBSERVATION)

    with pytest.raises(MissingCredential):
        asyncio.run(make_client(handler, api_key=None).search("cupertino", "city"))
    assert handler.requests == []


def test_invalid_method_reports_missing_method() -> None:
    handler = json_response(OBSERVATION)
    results: list = []

    make_client(handler).set_units("h").set_geocode("37.317850,-122.035920").call("invalid", collect(results))

    error, body = results[0]
    assert isinstance(error, MissingMethod)
    assert str(error) == "method is missing"
    assert body is False
    assert handler.requests == []


def test_invalid_method_reuses_previous_method() -> None:
    handler = json_response(OBSERVATION)
    client = make_client(handler).set_location("94024", "US")
    results: list = []

    client.call("forecast/daily/15day", collect(results))
    client.call("invalid", collect(results))

    assert [error for error, _ in results] == [None, None]
    assert handler.requests[1].url.path == "/v1/location/94024:4:US/forecast/daily/15day.json"


def test_call_after_point_uses_v1_location() -> None:
    handler = json_response(OBSERVATION)
    client = make_client(handler).set_location("94024", "US")
    results: list = []

    client.point("iataCode", "SFO", collect(results))
    client.call("observations/current", collect(results))

    assert handler.requests[0].url.path.startswith("/v3/")
    assert handler.requests[1].url.path == "/v1/location/94024:4:US/observations/current.json"


def test_upstream_error_returns_errors_and_body() -> None:
    handler = json_response(INVALID_KEY, status_code=401)
    results: list = []

    make_client(handler).set_geocode("37.3,-122.0").call("observations/current", collect(results))

    error, body = results[0]
    assert isinstance(error, UpstreamDomainError)
    assert error.errors == INVALID_KEY["errors"]
    assert error.errors[0]["error"]["message"] == "Invalid apiKey."
    assert str(error) == "Invalid apiKey."
    assert body == INVALID_KEY
    assert error.body is body


def test_truthy_success_flag_is_not_an_error() -> None:
    payload = {"success": True, "location": {}}
    handler = json_response(payload)

    body = asyncio.run(make_client(handler).point("geocode", "1,2"))

    assert body == payload


def test_non_json_body_reports_parse_error() -> None:
    handler = Recorder(lambda _: httpx.Response(502, text="<html>Bad Gateway</html>"))
    results: list = []

    make_client(handler).search("cupertino", "city", collect(results))

    error, body = results[0]
    assert isinstance(error, ParseError)
    assert error.body == "<html>Bad Gateway</html>"
    assert body is False


def test_network_failure_reports_transport_error() -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    handler = Recorder(refuse)
    results: list = []

    make_client(handler).point("iataCode", "SFO", collect(results))

    error, body = results[0]
    assert isinstance(error, TransportError)
    assert isinstance(error.__cause__, httpx.ConnectError)
    assert body is False


@pytest.mark.parametrize(
    "respond",
    [
        lambda _: httpx.Response(200, text=json.dumps(OBSERVATION)),
        lambda _: httpx.Response(401, text=json.dumps(INVALID_KEY)),
        lambda _: httpx.Response(200, text="not json"),
    ],
)
def test_callback_and_awaitable_agree(respond) -> None:
    callback_results: list = []
    make_client(Recorder(respond)).set_location("2020", "AU").call("observations/current", collect(callback_results))
    callback_error, callback_body = callback_results[0]

    awaitable = make_client(Recorder(respond)).set_location("2020", "AU").call("observations/current")
    try:
        awaited_body = asyncio.run(awaitable)
        awaited_error = None
    except Exception as exc:  # noqa: BLE001
        awaited_error = exc
        awaited_body = getattr(exc, "body", None)

    assert type(awaited_error) is type(callback_error)
    if callback_error is None:
        assert awaited_body == callback_body
    elif isinstance(callback_error, UpstreamDomainError):
        assert awaited_body == callback_body
        assert awaited_error.errors == callback_error.errors
    else:
        assert callback_body is False
        assert awaited_body == callback_error.body


def test_callback_inside_running_loop_returns_task() -> None:
    handler = json_response(OBSERVATION)
    results: list = []

    async def main():
        task = make_client(handler).set_location("94024", "US").call("observations/current", collect(results))
        assert isinstance(task, asyncio.Task)
        return await task

    assert asyncio.run(main()) == "delivered"
    assert results == [(None, OBSERVATION)]


def test_pending_request_ignores_later_setters() -> None:
    handler = json_response(OBSERVATION)
    client = make_client(handler).set_units("m").set_location("94024", "US")

    pending = client.call("observations/current")
    client.set_units("h").set_language("fr-FR").set_geocode("1,2")
    asyncio.run(pending)

    request = handler.requests[0]
    assert request.url.path == "/v1/location/94024:4:US/observations/current.json"
    assert request.url.params["units"] == "m"
    assert request.url.params["language"] == "en-US"
