from __future__ import annotations

import asyncio
import uuid
from collections.abc import Mapping
from dataclasses import replace
from typing import Any, Callable, Optional

import httpx

from weather_company.config import AppConfig, ClientSettings, app_config
from weather_company.logging import get_logger

from .errors import (
    InvalidArgument,
    MissingCredential,
    MissingMethod,
    ParseError,
    TransportError,
    UpstreamDomainError,
)
from .http_client import HttpTransport
from .models import (
    SUPPORTED_METHODS,
    UNIT_CODES,
    DispatchOutcome,
    ForecastRequest,
    PointRequest,
    RequestOptions,
    SearchRequest,
    WeatherRequest,
)

logger = get_logger(__name__)

Callback = Callable[[Optional[Exception], Any], Any]


def _is_blank(value: Any) -> bool:
    return value is None or str(value) == ""


class WeatherClient:
    """Fluent client for The Weather Company Data API.

    Setters return the client so calls can be chained. ``point``, ``search``
    and ``call`` dispatch the request: pass ``callback(error, body)`` to have
    the outcome delivered to it, or omit it and await the returned value.

        client = WeatherClient(api_key)
        data = await client.set_units("m").set_location("94024", "US").call("observations/current")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        settings: Optional[ClientSettings] = None,
        strict: Optional[bool] = None,
    ) -> None:
        settings = settings or app_config.client
        self.base_url = settings.base_url
        self.strict = settings.strict if strict is None else strict
        self.options = RequestOptions(
            api_key=api_key,
            units=settings.units if settings.units in UNIT_CODES else "e",
            language=str(settings.language).strip(),
        )
        self.location = ""
        self.method = ""
        self.transport = HttpTransport(client, user_agent=settings.user_agent)
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @classmethod
    def from_config(cls, config: Optional[AppConfig] = None, **kwargs: Any) -> "WeatherClient":
        config = config or app_config
        kwargs.setdefault("settings", config.client)
        return cls(config.api_key, **kwargs)

    # ---------------- Setters -----------------
    def set_units(self, code: str) -> "WeatherClient":
        """Set the unit system: ``e`` (english), ``m`` (metric) or ``h`` (UK hybrid).

        Unknown codes leave the current value in place unless the client is strict.
        """
        if code in UNIT_CODES:
            self.options.units = code
        elif self.strict:
            raise InvalidArgument(f"Unsupported unit code: {code!r}")
        return self

    def set_language(self, tag: str) -> "WeatherClient":
        if tag is None:
            raise InvalidArgument("Language tag is required")
        self.options.language = tag.strip()
        return self

    def set_geocode(self, lat: Any, lng: Any = None) -> "WeatherClient":
        """Set the location to a latitude/longitude pair.

        ``lat`` may carry both coordinates as ``"lat,lng"``, in which case the
        ``lng`` argument is ignored.
        """
        if _is_blank(lat):
            raise InvalidArgument("Latitude (and longitude) are required in geocode request")
        lat = str(lat)
        if lat.find(",") > 0:
            parts = lat.split(",")
            lat, lng = parts[0].strip(), parts[1].strip()
        if _is_blank(lng):
            raise InvalidArgument("Latitude (and longitude) are required in geocode request")
        self.location = f"geocode/{lat}/{lng}"
        return self

    def set_location(self, postal: Any, country: Any) -> "WeatherClient":
        """Set the location to a postal code within a country."""
        if _is_blank(postal) or _is_blank(country):
            raise InvalidArgument("Postal code and country are required in location request")
        # 4 is the API's location type code for postal keys
        self.location = f"location/{str(postal).strip()}:4:{str(country).strip()}"
        return self

    # ---------------- Terminal operations -----------------
    def point(self, key: str, value: str, callback: Optional[Callback] = None):
        if _is_blank(key) or _is_blank(value):
            raise InvalidArgument("Key and value are required in point request")
        return self._request(PointRequest(key=key, value=value), callback)

    def search(self, query: str, location_type: str, callback: Optional[Callback] = None):
        if _is_blank(query) or _is_blank(location_type):
            raise InvalidArgument("Query and location type are required in search request")
        return self._request(SearchRequest(text=query, location_type=location_type), callback)

    def call(self, method: str, callback: Optional[Callback] = None):
        """Request a v1 data product for the current location.

        Unknown methods are ignored, so the dispatch reports ``MissingMethod``
        unless a valid method was selected earlier on this client.
        """
        if method in SUPPORTED_METHODS:
            self.method = method
        elif self.strict:
            raise InvalidArgument(f"Unsupported API method: {method!r}")
        else:
            logger.debug("weather.unknown_method", method=method)
        return self._request(ForecastRequest(query=self.location, method=self.method), callback)

    def build_url(self, request: WeatherRequest) -> str:
        return request.build_url(self.base_url, self.options)

    # ---------------- Dispatch -----------------
    def _request(self, request: WeatherRequest, callback: Optional[Callback]):
        # Later setter calls must not leak into a pending dispatch.
        options = replace(self.options)
        if callback is None:
            return self._resolve(request, options)
        return self._deliver(request, options, callback)

    async def _resolve(self, request: WeatherRequest, options: RequestOptions) -> Any:
        outcome = await self._execute(request, options)
        if not outcome.ok:
            raise outcome.error
        return outcome.body

    def _deliver(self, request: WeatherRequest, options: RequestOptions, callback: Callback):
        async def run() -> Any:
            outcome = await self._execute(request, options)
            return callback(outcome.error, outcome.body)

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return self._callback_loop().run_until_complete(run())
        return loop.create_task(run())

    def _callback_loop(self) -> asyncio.AbstractEventLoop:
        # Pooled connections of an injected client stay bound to this loop,
        # so it is kept open across callback dispatches.
        if self._loop is None or self._loop.is_closed():
            self._loop = asyncio.new_event_loop()
        return self._loop

    def close(self) -> None:
        """Close the event loop used for callback delivery outside a running loop.

        An injected ``httpx.AsyncClient`` is left open; its owner closes it
        first, since connections opened by callback dispatches belong to this loop.
        """
        if self._loop is not None and not self._loop.is_closed():
            self._loop.run_until_complete(self._loop.shutdown_asyncgens())
            self._loop.close()
        self._loop = None

    def __enter__(self) -> "WeatherClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    async def _execute(self, request: WeatherRequest, options: RequestOptions) -> DispatchOutcome:
        trace_id = uuid.uuid4().hex
        if not options.api_key:
            logger.error("weather.missing_credential", trace_id=trace_id)
            return DispatchOutcome(error=MissingCredential("apiKey is Missing"), body={})

        if isinstance(request, ForecastRequest) and not request.method:
            logger.error("weather.missing_method", trace_id=trace_id, query=request.query)
            return DispatchOutcome(error=MissingMethod("method is missing"), body=False)

        url = request.build_url(self.base_url, options)
        logger.info(
            "weather.dispatch",
            trace_id=trace_id,
            api_version=request.api_version,
            request_type=type(request).__name__,
        )
        try:
            response = await self.transport.fetch(url, trace_id=trace_id)
        except TransportError as exc:
            return DispatchOutcome(error=exc, body=False)

        return _classify(response, trace_id=trace_id)


def _classify(response: httpx.Response, *, trace_id: str) -> DispatchOutcome:
    try:
        payload = response.json()
    except ValueError as exc:
        logger.error("weather.parse_error", trace_id=trace_id, error=str(exc))
        error = ParseError(f"Invalid JSON in response: {exc}", body=response.text)
        error.__cause__ = exc
        return DispatchOutcome(error=error, body=False)

    if isinstance(payload, Mapping) and "success" in payload and not payload["success"]:
        errors = payload.get("errors")
        logger.warning(
            "weather.upstream_error",
            trace_id=trace_id,
            status_code=response.status_code,
            errors=errors,
        )
        return DispatchOutcome(error=UpstreamDomainError(errors, body=payload), body=payload)

    logger.info("weather.success", trace_id=trace_id, status_code=response.status_code)
    return DispatchOutcome(error=None, body=payload)
