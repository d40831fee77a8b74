from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Tuple, Union

UNIT_CODES = ("e", "m", "h")

SUPPORTED_METHODS = (
    "forecast/daily/15day",
    "forecast/hourly/360hour",
    "observations/current",
)


@dataclass
class RequestOptions:
    """Query parameters shared by every request.

    Serialized in declaration order under the API's own parameter names.
    """

    api_key: Optional[str] = None
    format: str = "json"
    units: str = "e"
    language: str = "en-US"

    def items(self) -> List[Tuple[str, Any]]:
        return [
            ("apiKey", self.api_key),
            ("format", self.format),
            ("units", self.units),
            ("language", self.language),
        ]

    def format_params(self, exclude: Union[str, Iterable[str], None] = None) -> str:
        """Join ``key=value`` pairs with ``&``, skipping excluded keys.

        Values are inserted as-is; nothing is percent-encoded.
        """
        if isinstance(exclude, str):
            excluded = {exclude}
        else:
            excluded = set(exclude or ())
        return "&".join(f"{key}={value}" for key, value in self.items() if key not in excluded)


@dataclass(frozen=True)
class ForecastRequest:
    """A v1 data request: a location fragment plus an API method."""

    query: str
    method: str = ""

    api_version = "v1"

    def build_url(self, base_url: str, options: RequestOptions) -> str:
        return (
            f"{base_url.rstrip('/')}/{self.api_version}/"
            f"{self.query}/{self.method}.{options.format}?{options.format_params('format')}"
        )


@dataclass(frozen=True)
class PointRequest:
    """A v3 location lookup by a single key (geocode, postalKey, iataCode, ...)."""

    key: str
    value: str

    api_version = "v3"

    @property
    def query(self) -> str:
        return f"point?{self.key}={self.value}"

    def build_url(self, base_url: str, options: RequestOptions) -> str:
        return _location_url(base_url, self.api_version, self.query, options)


@dataclass(frozen=True)
class SearchRequest:
    """A v3 free-text location search."""

    text: str
    location_type: str

    api_version = "v3"

    @property
    def query(self) -> str:
        return f"search?query={self.text}&locationType={self.location_type}"

    def build_url(self, base_url: str, options: RequestOptions) -> str:
        return _location_url(base_url, self.api_version, self.query, options)


WeatherRequest = Union[ForecastRequest, PointRequest, SearchRequest]


def _location_url(base_url: str, api_version: str, query: str, options: RequestOptions) -> str:
    return f"{base_url.rstrip('/')}/{api_version}/location/{query}&{options.format_params('units')}"


@dataclass
class DispatchOutcome:
    """Result of a single dispatch, shared by the callback and awaitable adapters."""

    error: Optional[Exception] = None
    body: Any = False

    @property
    def ok(self) -> bool:
        return self.error is None
