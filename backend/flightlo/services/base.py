from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import Any, Generic, Hashable, TypeVar

import requests

from backend.flightlo.cache import ResponseCache
from backend.flightlo.config import Settings
from backend.flightlo.errors import FetchError, NetworkFailure, ParseFailure


logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class SearchCriteria:
    """Optional bounding query. Feeds without server-side filtering ignore it."""

    origin: str | None = None
    destination: str | None = None
    airline: str | None = None
    country: str | None = None

    def cache_key(self) -> tuple[str, ...]:
        return tuple((v or "").strip().lower() for v in (self.origin, self.destination, self.airline, self.country))


class SourceAdapter(Generic[R]):
    """One upstream feed normalized into canonical records.

    ``fetch`` never raises: network and parse failures are logged and
    turned into an empty list. Subclasses implement ``_fetch`` and raise
    ``NetworkFailure``/``ParseFailure`` (or let ``requests`` errors through).
    """

    name: str = "source"
    ttl_seconds: int = 600
    uses_criteria: bool = False

    def __init__(self, *, settings: Settings, cache: ResponseCache[Any] | None = None) -> None:
        self.settings = settings
        self.cache = cache

    def fetch(self, criteria: SearchCriteria | None = None) -> list[R]:
        criteria = criteria or SearchCriteria()
        if self.cache is None:
            return self._safe_fetch(criteria)
        key: Hashable = (self.name, *criteria.cache_key()) if self.uses_criteria else (self.name,)
        return self.cache.get_or_fetch(key, lambda: self._safe_fetch(criteria), ttl_seconds=self.ttl_seconds)

    def _safe_fetch(self, criteria: SearchCriteria) -> list[R]:
        try:
            records = self._fetch(criteria)
        except FetchError as e:
            logger.warning("%s unavailable: %s", self.name, e)
            return []
        except requests.RequestException as e:
            logger.warning("%s unavailable: %s", self.name, NetworkFailure(self.name, str(e)))
            return []
        except (ValueError, KeyError, TypeError, AttributeError, OverflowError) as e:
            logger.warning("%s unavailable: %s", self.name, ParseFailure(self.name, str(e)))
            return []
        logger.info("%s: %d records", self.name, len(records))
        return records

    def _fetch(self, criteria: SearchCriteria) -> list[R]:
        raise NotImplementedError

    def _get(self, url: str, *, params: dict[str, Any] | None = None, headers: dict[str, str] | None = None) -> requests.Response:
        merged = {"User-Agent": self.settings.user_agent}
        if headers:
            merged.update(headers)
        resp = requests.get(url, params=params, headers=merged, timeout=self.settings.fetch_timeout_seconds)
        resp.raise_for_status()
        return resp

    def _get_json(self, url: str, **kwargs: Any) -> Any:
        resp = self._get(url, **kwargs)
        try:
            return resp.json()
        except ValueError as e:
            raise ParseFailure(self.name, f"invalid JSON: {e}") from e

    def _get_text(self, url: str, **kwargs: Any) -> str:
        return self._get(url, **kwargs).text


def as_float(value: Any) -> float | None:
    if value is None or value == "" or value == "\\N":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    # "nan" and "inf" parse as floats but are never usable coordinates
    return number if math.isfinite(number) else None


def as_text(value: Any) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    return "" if text == "\\N" else text
