from __future__ import annotations

import re
from typing import Any

from backend.flightlo.models import AirportRecord, Provenance
from backend.flightlo.services.base import SearchCriteria, SourceAdapter, as_float, as_text


_CODE_IN_NAME = re.compile(r"\(([A-Z]{3})\)")


class GeonamesAdapter(SourceAdapter[AirportRecord]):
    name = "geonames"
    ttl_seconds = 3600

    def _fetch(self, criteria: SearchCriteria) -> list[AirportRecord]:
        payload = self._get_json(
            self.settings.geonames_url,
            params={
                "q": "airport",
                "featureCode": "AIRP",
                "maxRows": 50,
                "username": self.settings.geonames_username,
            },
        )
        places = (payload or {}).get("geonames") or []
        if not isinstance(places, list):
            return []
        return [a for a in (_parse_place(p) for p in places) if a is not None]


def _parse_place(place: Any) -> AirportRecord | None:
    # Geonames has no IATA field; only names like "Heathrow Airport (LHR)" are usable
    if not isinstance(place, dict):
        return None
    raw_name = as_text(place.get("name"))
    match = _CODE_IN_NAME.search(raw_name)
    if not match:
        return None
    return AirportRecord(
        code=match.group(1),
        name=_CODE_IN_NAME.sub("", raw_name).strip(),
        city=as_text(place.get("adminName1") or place.get("toponymName")),
        country=as_text(place.get("countryName")),
        lat=as_float(place.get("lat")),
        lon=as_float(place.get("lng")),
        source=Provenance.GEONAMES,
    )
