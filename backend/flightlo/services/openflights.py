from __future__ import annotations

import csv
import io
import logging
from typing import Iterator

from backend.flightlo.models import AirlineRecord, AirportRecord, Provenance, is_airline_code, is_airport_code
from backend.flightlo.services.base import SearchCriteria, SourceAdapter, as_float, as_text


logger = logging.getLogger(__name__)


# airports.dat columns:
# id, name, city, country, iata, icao, lat, lon, altitude_ft, utc_offset, dst, tz_database, type, source
# airlines.dat columns:
# id, name, alias, iata, icao, callsign, country, active


def _rows(text: str, limit: int) -> Iterator[list[str]]:
    lines = [line for line in text.splitlines() if line.strip()]
    # csv handles quoted names that contain commas ("Washington, D.C.")
    yield from csv.reader(io.StringIO("\n".join(lines[:limit])))


def parse_airports(text: str, *, limit: int = 1000) -> tuple[list[AirportRecord], int]:
    airports: list[AirportRecord] = []
    skipped = 0
    for fields in _rows(text, limit):
        if len(fields) < 8:
            skipped += 1
            continue
        code = as_text(fields[4]).upper()
        if not is_airport_code(code):
            skipped += 1
            continue
        elevation = as_float(fields[8]) if len(fields) > 8 else None
        airports.append(
            AirportRecord(
                code=code,
                name=as_text(fields[1]),
                city=as_text(fields[2]),
                country=as_text(fields[3]),
                lat=as_float(fields[6]),
                lon=as_float(fields[7]),
                icao=as_text(fields[5]) or None,
                timezone=(as_text(fields[11]) or None) if len(fields) > 11 else None,
                elevation_ft=int(elevation) if elevation is not None else None,
                source=Provenance.OPENFLIGHTS,
            )
        )
    return airports, skipped


def parse_airlines(text: str, *, limit: int = 500) -> tuple[list[AirlineRecord], int]:
    airlines: list[AirlineRecord] = []
    skipped = 0
    for fields in _rows(text, limit):
        if len(fields) < 7:
            skipped += 1
            continue
        code = as_text(fields[3]).upper()
        name = as_text(fields[1])
        if not is_airline_code(code) or not name:
            skipped += 1
            continue
        airlines.append(
            AirlineRecord(
                code=code,
                name=name,
                icao=as_text(fields[4]) or None,
                country=as_text(fields[6]) or None,
                source=Provenance.OPENFLIGHTS,
            )
        )
    return airlines, skipped


class OpenFlightsAirports(SourceAdapter[AirportRecord]):
    name = "openflights-airports"
    ttl_seconds = 3600

    def _fetch(self, criteria: SearchCriteria) -> list[AirportRecord]:
        text = self._get_text(self.settings.openflights_airports_url)
        airports, skipped = parse_airports(text, limit=self.settings.openflights_airport_rows)
        if skipped:
            logger.debug("%s: skipped %d rows without a usable IATA code", self.name, skipped)
        return airports


class OpenFlightsAirlines(SourceAdapter[AirlineRecord]):
    name = "openflights-airlines"
    ttl_seconds = 3600

    def _fetch(self, criteria: SearchCriteria) -> list[AirlineRecord]:
        text = self._get_text(self.settings.openflights_airlines_url)
        airlines, skipped = parse_airlines(text, limit=self.settings.openflights_airline_rows)
        if skipped:
            logger.debug("%s: skipped %d rows without a usable IATA code", self.name, skipped)
        return airlines
