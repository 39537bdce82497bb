from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
import re
from typing import Any


AIRPORT_CODE_RE = re.compile(r"^[A-Z]{3}$")
AIRLINE_CODE_RE = re.compile(r"^[A-Z0-9]{2,3}$")


class Provenance:
    OPENFLIGHTS = "openflights"
    AIRPORT_CODES = "airport-codes"
    GEONAMES = "geonames"
    FLIGHTSTATS = "flightstats"
    AMADEUS = "amadeus"
    OPENSKY = "opensky"
    AVIATIONSTACK = "aviationstack"
    AVIATIONSTACK_SIM = "aviationstack-sim"
    CATALOG = "catalog"
    GENERATOR = "generator"

    SIMULATED = frozenset({AVIATIONSTACK_SIM, GENERATOR})


class FlightStatus:
    ON_TIME = "On Time"
    DELAYED = "Delayed"
    BOARDING = "Boarding"
    DEPARTED = "Departed"
    CANCELLED = "Cancelled"
    SCHEDULED = "Scheduled"
    ARRIVED = "Arrived"


def is_airport_code(value: str | None) -> bool:
    return bool(value) and AIRPORT_CODE_RE.match(value) is not None


def is_airline_code(value: str | None) -> bool:
    return bool(value) and AIRLINE_CODE_RE.match(value) is not None


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle in haystack.lower()


@dataclass(frozen=True)
class AirportRecord:
    code: str
    name: str
    city: str
    country: str
    lat: float | None = None
    lon: float | None = None
    icao: str | None = None
    timezone: str | None = None
    elevation_ft: int | None = None
    source: str = Provenance.CATALOG

    @property
    def dedupe_key(self) -> str:
        return self.code.upper()

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lon is not None

    def matches_query(self, query: str) -> bool:
        q = query.lower()
        return any(_contains(v, q) for v in (self.name, self.code, self.city, self.country))

    def matches_country(self, country: str) -> bool:
        return _contains(self.country, country.lower())


@dataclass(frozen=True)
class AirlineRecord:
    code: str
    name: str
    icao: str | None = None
    country: str | None = None
    source: str = Provenance.CATALOG

    @property
    def dedupe_key(self) -> str:
        return self.code.upper()

    def matches_query(self, query: str) -> bool:
        q = query.lower()
        return any(_contains(v, q) for v in (self.name, self.code, self.country))

    def matches_country(self, country: str) -> bool:
        return _contains(self.country, country.lower())


@dataclass(frozen=True)
class FlightEndpoint:
    airport_code: str
    airport_name: str
    city: str
    country: str
    time: datetime
    gate: str | None = None
    terminal: str | None = None

    @classmethod
    def at(cls, airport: AirportRecord, time: datetime, *, gate: str | None = None, terminal: str | None = None) -> "FlightEndpoint":
        return cls(
            airport_code=airport.code,
            airport_name=airport.name,
            city=airport.city,
            country=airport.country,
            time=time,
            gate=gate,
            terminal=terminal,
        )

    def matches(self, text: str) -> bool:
        q = text.strip().lower()
        return bool(q) and any(q in (v or "").lower() for v in (self.airport_code, self.airport_name, self.city))


@dataclass(frozen=True)
class FlightRecord:
    id: str
    airline_code: str
    airline_name: str
    flight_number: str
    departure: FlightEndpoint | None
    arrival: FlightEndpoint | None
    duration_minutes: int
    price: float | None
    status: str
    aircraft_type: str
    source: str
    amenities: tuple[str, ...] = ()

    # live telemetry (OpenSky)
    callsign: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    altitude_m: float | None = None
    velocity_ms: float | None = None

    distance_km: float | None = field(default=None, compare=False)

    @property
    def simulated(self) -> bool:
        return self.source in Provenance.SIMULATED

    @property
    def dedupe_key(self) -> str:
        dep = self.departure.airport_code if self.departure else ""
        arr = self.arrival.airport_code if self.arrival else ""
        return f"{self.flight_number.upper()}_{dep.upper()}_{arr.upper()}"

    def matches_query(self, query: str) -> bool:
        q = query.lower()
        values = [self.flight_number, self.airline_name, self.airline_code]
        for ep in (self.departure, self.arrival):
            if ep:
                values.extend([ep.airport_code, ep.airport_name, ep.city, ep.country])
        return any(_contains(v, q) for v in values)

    def matches_country(self, country: str) -> bool:
        c = country.lower()
        return any(ep is not None and _contains(ep.country, c) for ep in (self.departure, self.arrival))


def to_payload(record: Any) -> dict[str, Any]:
    data = asdict(record)
    if isinstance(record, FlightRecord):
        data["simulated"] = record.simulated
        for key in ("departure", "arrival"):
            if data[key] is not None:
                data[key]["time"] = data[key]["time"].isoformat(timespec="minutes")
        data["amenities"] = list(record.amenities)
    return data
