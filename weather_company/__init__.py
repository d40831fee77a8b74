"""Client for The Weather Company Data API."""

from .client import WeatherClient
from .errors import (
    InvalidArgument,
    MissingCredential,
    MissingMethod,
    ParseError,
    TransportError,
    UpstreamDomainError,
    WeatherAPIError,
)
from .models import (
    SUPPORTED_METHODS,
    UNIT_CODES,
    DispatchOutcome,
    ForecastRequest,
    PointRequest,
    RequestOptions,
    SearchRequest,
)

__all__ = [
    "DispatchOutcome",
    "ForecastRequest",
    "InvalidArgument",
    "MissingCredential",
    "MissingMethod",
    "ParseError",
    "PointRequest",
    "RequestOptions",
    "SearchRequest",
    "SUPPORTED_METHODS",
    "TransportError",
    "UNIT_CODES",
    "UpstreamDomainError",
    "WeatherAPIError",
    "WeatherClient",
]
