from __future__ import annotations


class TimetableMcpError(Exception):
    """Base exception for all timetable MCP errors."""


class InvalidServiceIDError(TimetableMcpError):
    """Raised when a service ID string or its components are malformed or out of range."""


class NotFoundError(TimetableMcpError):
    """Raised when a requested stop, line or service does not exist in the loaded data."""


class StopNotFoundError(NotFoundError):
    """Raised when a stop ID or name matches no stop in the network."""


class LineNotFoundError(NotFoundError):
    """Raised when a line ID matches no line in the network."""


class ServiceNotFoundError(NotFoundError):
    """Raised when a well-formed service ID points at no timetable entry."""


class DataFormatError(TimetableMcpError):
    """Raised when the data bundle (stops.json, lines.json, .ttbl files) cannot be parsed."""


class DataUnavailableError(TimetableMcpError):
    """Raised when a query arrives before any data snapshot has been loaded."""


class DataFetchError(TimetableMcpError):
    """Raised when the data server returns an unexpected response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class ValidationError(TimetableMcpError):
    """Raised when input parameters fail validation before any query runs."""
