from __future__ import annotations

from datetime import datetime, timedelta
import logging
import random
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from backend.flightlo.cache import ResponseCache
from backend.flightlo.catalog import ReferenceCatalog
from backend.flightlo.config import Settings
from backend.flightlo.errors import ParseFailure
from backend.flightlo.geo import airport_distance_km
from backend.flightlo.models import (
    AirportRecord,
    FlightEndpoint,
    FlightRecord,
    FlightStatus,
    Provenance,
    is_airline_code,
    is_airport_code,
)
from backend.flightlo.services.base import SearchCriteria, SourceAdapter, as_text
from backend.flightlo.services.generator import FlightGenerator


logger = logging.getLogger(__name__)


SIMULATED_FLIGHTS = 5
# bounded so a narrow query over a small catalog cannot spin
MAX_DRAWS = 50

STATUS_MAP = {
    "scheduled": FlightStatus.SCHEDULED,
    "active": FlightStatus.DEPARTED,
    "landed": FlightStatus.ARRIVED,
    "cancelled": FlightStatus.CANCELLED,
    "incident": FlightStatus.DELAYED,
    "diverted": FlightStatus.DELAYED,
}


def _zone(name: str | None) -> ZoneInfo | None:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def elapsed_minutes(
    departure: datetime, origin: AirportRecord, arrival: datetime, destination: AirportRecord
) -> int | None:
    """Minutes between two local wall-clock times at their airports, or None when a zone is unknown."""
    dep_zone, arr_zone = _zone(origin.timezone), _zone(destination.timezone)
    if dep_zone is None or arr_zone is None:
        return None
    elapsed = arrival.replace(tzinfo=arr_zone) - departure.replace(tzinfo=dep_zone)
    minutes = int(elapsed.total_seconds() // 60)
    return minutes if minutes > 0 else None


def _section(item: dict[str, Any], key: str) -> dict[str, Any] | None:
    value = item.get(key)
    if value is None:
        return {}
    return value if isinstance(value, dict) else None


def _parse_time(value: Any) -> datetime | None:
    text = as_text(value)
    if not text:
        return None
    try:
        # scheduled times are airport-local wall clock despite the "+00:00" suffix
        return datetime.fromisoformat(text.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        return None


class AviationStackFlights(SourceAdapter[FlightRecord]):
    """AviationStack flights.

    With ``AVIATIONSTACK_KEY`` set this queries the real API. Without one it
    simulates a handful of flights between catalog airports and tags them
    ``aviationstack-sim`` so they are never mistaken for live data.
    """

    name = "aviationstack"
    ttl_seconds = 300
    uses_criteria = True

    def __init__(
        self,
        *,
        settings: Settings,
        catalog: ReferenceCatalog,
        cache: ResponseCache[Any] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(settings=settings, cache=cache)
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.generator = FlightGenerator(catalog, rng=self.rng)

    @property
    def simulated(self) -> bool:
        return not self.settings.aviationstack_key

    def _fetch(self, criteria: SearchCriteria) -> list[FlightRecord]:
        if self.simulated:
            return self._simulate(criteria)
        return self._query(criteria)

    def _query(self, criteria: SearchCriteria) -> list[FlightRecord]:
        params: dict[str, Any] = {"access_key": self.settings.aviationstack_key, "limit": 50}
        dep = self.catalog.resolve_airport(criteria.origin)
        arr = self.catalog.resolve_airport(criteria.destination)
        airline = self.catalog.find_airline(criteria.airline)
        if dep:
            params["dep_iata"] = dep.code
        if arr:
            params["arr_iata"] = arr.code
        if airline:
            params["airline_iata"] = airline.code

        payload = self._get_json(self.settings.aviationstack_url, params=params)
        if not isinstance(payload, dict):
            raise ParseFailure(self.name, "expected an object with 'data'")
        if payload.get("error"):
            # the API reports quota/auth problems with a 200 and an error object
            raise ParseFailure(self.name, as_text((payload["error"] or {}).get("message")) or "API error")

        flights = []
        skipped = 0
        for item in payload.get("data") or []:
            flight = self._parse_flight(item)
            if flight is None:
                skipped += 1
                continue
            flights.append(flight)
        if skipped:
            logger.debug("%s: skipped %d malformed entries", self.name, skipped)
        return flights

    def _parse_flight(self, item: Any) -> FlightRecord | None:
        if not isinstance(item, dict):
            return None
        sections = [_section(item, key) for key in ("departure", "arrival", "airline", "flight", "aircraft")]
        if any(s is None for s in sections):
            return None
        dep, arr, airline, flight, aircraft = sections

        dep_code = as_text(dep.get("iata")).upper()
        arr_code = as_text(arr.get("iata")).upper()
        number = as_text(flight.get("iata")).upper()
        dep_time = _parse_time(dep.get("scheduled"))
        arr_time = _parse_time(arr.get("scheduled"))
        if not (is_airport_code(dep_code) and is_airport_code(arr_code) and number and dep_time):
            return None

        origin = self.catalog.airport(dep_code) or _placeholder(dep_code, dep.get("airport"))
        destination = self.catalog.airport(arr_code) or _placeholder(arr_code, arr.get("airport"))
        distance = airport_distance_km(origin, destination)
        duration = elapsed_minutes(dep_time, origin, arr_time, destination) if arr_time else None
        if duration is None:
            duration = self.generator.duration_minutes(distance)
            if arr_time is not None and arr_time <= dep_time:
                arr_time = None

        airline_code = as_text(airline.get("iata")).upper()
        if not is_airline_code(airline_code):
            airline_code = number[:2]

        departure = FlightEndpoint.at(
            origin, dep_time, gate=as_text(dep.get("gate")) or None, terminal=as_text(dep.get("terminal")) or None
        )
        arrival = FlightEndpoint.at(
            destination,
            arr_time or dep_time + timedelta(minutes=duration),
            gate=as_text(arr.get("gate")) or None,
            terminal=as_text(arr.get("terminal")) or None,
        )
        return FlightRecord(
            id=f"AS_{number}_{dep_time:%Y%m%d%H%M}",
            airline_code=airline_code,
            airline_name=as_text(airline.get("name")) or f"{airline_code} Airlines",
            flight_number=number,
            departure=departure,
            arrival=arrival,
            duration_minutes=duration,
            price=self.generator.price(distance, airline_code, dep_time.hour),
            status=STATUS_MAP.get(as_text(item.get("flight_status")).lower(), FlightStatus.SCHEDULED),
            aircraft_type=as_text(aircraft.get("iata") or aircraft.get("icao")) or self.generator.aircraft_for(distance),
            source=Provenance.AVIATIONSTACK,
            distance_km=round(distance, 1),
        )

    def _simulate(self, criteria: SearchCriteria) -> list[FlightRecord]:
        origins = self._pool(criteria.origin, criteria.country)
        destinations = self._pool(criteria.destination, None)
        if not origins or not destinations:
            return []
        carrier = self.generator.airline_for(criteria.airline)

        now = datetime.now().replace(second=0, microsecond=0)
        used_numbers: set[str] = set()
        flights = []
        for _ in range(MAX_DRAWS):
            if len(flights) >= SIMULATED_FLIGHTS:
                break
            origin = self.rng.choice(origins)
            destination = self.rng.choice(destinations)
            if origin.code == destination.code:
                continue
            airline = carrier or self.rng.choice(self.generator.rank_airlines(origin, destination))
            departure = now.replace(minute=0) + timedelta(hours=self.rng.randint(1, 12), minutes=self.rng.randint(0, 59))
            flights.append(
                self.generator.build_flight(
                    origin,
                    destination,
                    airline,
                    departure,
                    airport_distance_km(origin, destination),
                    used_numbers,
                    source=Provenance.AVIATIONSTACK_SIM,
                )
            )
        return flights

    def _pool(self, text: str | None, country: str | None) -> list[AirportRecord]:
        if text and text.strip():
            found = self.catalog.resolve_airport(text)
            return [found] if found else []
        airports = list(self.catalog.airports)
        if country and country.strip():
            airports = [a for a in airports if a.matches_country(country.strip())]
        return airports


def _placeholder(code: str, name: Any) -> AirportRecord:
    label = as_text(name) or code
    return AirportRecord(code=code, name=label, city=label, country="", source=Provenance.AVIATIONSTACK)
