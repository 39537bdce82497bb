from __future__ import annotations

from backend.flightlo.models import AirlineRecord, Provenance, is_airline_code
from backend.flightlo.services.base import SearchCriteria, SourceAdapter, as_text


class FlightStatsAirlines(SourceAdapter[AirlineRecord]):
    name = "flightstats"
    ttl_seconds = 1800
    max_records = 100

    def _fetch(self, criteria: SearchCriteria) -> list[AirlineRecord]:
        payload = self._get_json(self.settings.flightstats_url, headers={"Accept": "application/json"})
        items = (payload or {}).get("airlines") or []
        airlines: list[AirlineRecord] = []
        for item in items[: self.max_records]:
            if not isinstance(item, dict):
                continue
            code = as_text(item.get("iata")).upper()
            name = as_text(item.get("name"))
            if not is_airline_code(code) or not name:
                continue
            airlines.append(
                AirlineRecord(
                    code=code,
                    name=name,
                    icao=as_text(item.get("icao")) or None,
                    country=as_text(item.get("country")) or None,
                    source=Provenance.FLIGHTSTATS,
                )
            )
        return airlines
