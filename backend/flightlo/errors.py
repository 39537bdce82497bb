from __future__ import annotations


class FlightloError(Exception):
    """Base class for errors raised by the flight data pipeline."""


class FetchError(FlightloError):
    """An upstream feed could not be used. Never escapes an adapter."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"{source}: {message}")
        self.source = source


class NetworkFailure(FetchError):
    pass


class ParseFailure(FetchError):
    pass


class NotFound(FlightloError, LookupError):
    def __init__(self, kind: str, key: str) -> None:
        super().__init__(f"Unknown {kind}: {key}")
        self.kind = kind
        self.key = key


class ValidationFailure(FlightloError, ValueError):
    pass
