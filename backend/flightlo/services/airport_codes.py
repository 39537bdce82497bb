from __future__ import annotations

from typing import Any

from backend.flightlo.models import AirportRecord, Provenance, is_airport_code
from backend.flightlo.services.base import SearchCriteria, SourceAdapter, as_float, as_text


class AirportCodesAdapter(SourceAdapter[AirportRecord]):
    """airport-codes.org free tier. Only the "international" listing is used."""

    name = "airport-codes"
    ttl_seconds = 1800

    def _fetch(self, criteria: SearchCriteria) -> list[AirportRecord]:
        payload = self._get_json(
            self.settings.airport_codes_url,
            params={"search": "international", "limit": 50},
            headers={"Accept": "application/json"},
        )
        items = (payload or {}).get("airports") or []
        if not isinstance(items, list):
            return []
        return [a for a in (_parse_airport(item) for item in items) if a is not None]


def _parse_airport(item: Any) -> AirportRecord | None:
    if not isinstance(item, dict):
        return None
    code = as_text(item.get("iata")).upper()
    name = as_text(item.get("name"))
    if not is_airport_code(code) or not name:
        return None
    return AirportRecord(
        code=code,
        name=name,
        city=as_text(item.get("city") or item.get("municipality")),
        country=as_text(item.get("country") or item.get("iso_country")),
        lat=as_float(item.get("latitude")),
        lon=as_float(item.get("longitude")),
        source=Provenance.AIRPORT_CODES,
    )
