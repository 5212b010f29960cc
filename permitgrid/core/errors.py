"""Failure taxonomy for connectors.

These exceptions are raised inside a connector and converted to a failed
``SourceResult`` before they can reach the aggregator's caller.
"""

from __future__ import annotations

from typing import List, Optional


class ConnectorError(Exception):
    """Base class for every connector-local failure."""

    kind = "connector"

    def __init__(self, message: str, *, city: Optional[str] = None):
        super().__init__(message)
        self.city = city

    def describe(self) -> str:
        return f"{self.kind}: {self}"


class NetworkError(ConnectorError):
    """Endpoint unreachable, timed out, or answered with an error status."""

    kind = "network"


class ParseError(ConnectorError):
    """Response body matches no recognized envelope shape."""

    kind = "parse"


class ConfigurationError(ConnectorError):
    """City missing from the registry or endpoint misconfigured."""

    kind = "configuration"


class RecordValidationError(ConnectorError):
    """A single record failed the canonical schema."""

    kind = "validation"

    def __init__(self, message: str, issues: List, *, city: Optional[str] = None):
        super().__init__(message, city=city)
        self.issues = issues
