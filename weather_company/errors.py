"""Error types raised or delivered by :class:`weather_company.WeatherClient`."""
from __future__ import annotations

from typing import Any


class WeatherAPIError(Exception):
    """Base class for every failure surfaced by the client."""


class InvalidArgument(WeatherAPIError, ValueError):
    """A required chain argument was empty; raised before any network activity."""


class MissingCredential(WeatherAPIError):
    """No API key was configured when a request was dispatched."""


class MissingMethod(WeatherAPIError):
    """A v1 request was dispatched without a recognized API method."""


class TransportError(WeatherAPIError):
    """The HTTP request failed at the network level."""


class ParseError(WeatherAPIError, ValueError):
    """The response body could not be decoded as JSON."""

    def __init__(self, message: str, *, body: str) -> None:
        super().__init__(message)
        self.body = body


class UpstreamDomainError(WeatherAPIError):
    """The API answered with well-formed JSON carrying ``success: false``.

    ``errors`` is the payload's ``errors`` value as sent by the API and
    ``body`` is the full parsed response.
    """

    def __init__(self, errors: Any, *, body: Any) -> None:
        super().__init__(_describe(errors))
        self.errors = errors
        self.body = body


def _describe(errors: Any) -> str:
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict):
            detail = first.get("error") or {}
            if isinstance(detail, dict) and detail.get("message"):
                return str(detail["message"])
    return f"Upstream API reported failure: {errors!r}"
