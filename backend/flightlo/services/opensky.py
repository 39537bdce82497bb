from __future__ import annotations

from datetime import datetime, timedelta
import logging
import random
from typing import Any

from backend.flightlo.cache import ResponseCache
from backend.flightlo.catalog import ReferenceCatalog
from backend.flightlo.config import Settings
from backend.flightlo.errors import ParseFailure
from backend.flightlo.geo import airport_distance_km, nearest_airports
from backend.flightlo.models import FlightEndpoint, FlightRecord, FlightStatus, Provenance
from backend.flightlo.services.base import SearchCriteria, SourceAdapter, as_float, as_text
from backend.flightlo.services.generator import FlightGenerator


logger = logging.getLogger(__name__)


# ICAO callsign prefix -> (IATA code, name)
CALLSIGN_AIRLINES: dict[str, tuple[str, str]] = {
    "AAL": ("AA", "American Airlines"),
    "DAL": ("DL", "Delta Air Lines"),
    "UAL": ("UA", "United Airlines"),
    "BAW": ("BA", "British Airways"),
    "AFR": ("AF", "Air France"),
    "DLH": ("LH", "Lufthansa"),
    "SIA": ("SQ", "Singapore Airlines"),
    "QFA": ("QF", "Qantas"),
    "EZY": ("U2", "easyJet"),
    "RYR": ("FR", "Ryanair"),
    "THY": ("TK", "Turkish Airlines"),
    "VIR": ("VS", "Virgin Atlantic"),
}

# state vector indices, see https://openskynetwork.github.io/opensky-api/rest.html
ICAO24, CALLSIGN = 0, 1
LONGITUDE, LATITUDE, BARO_ALTITUDE, ON_GROUND, VELOCITY = 5, 6, 7, 8, 9

DESTINATION_CANDIDATES = 10


def live_status(altitude_m: float | None, velocity_ms: float | None) -> str:
    alt = altitude_m or 0.0
    vel = velocity_ms or 0.0
    if alt > 10000 and vel > 200:
        return FlightStatus.ON_TIME
    if alt < 1000 and vel < 50:
        return FlightStatus.BOARDING
    if alt < 500:
        return FlightStatus.DELAYED
    return FlightStatus.ON_TIME


def airborne_states(payload: Any, limit: int) -> list[list[Any]]:
    if not isinstance(payload, dict):
        raise ParseFailure("opensky", "expected an object with 'states'")
    states = payload.get("states") or []
    kept = []
    for state in states:
        if not isinstance(state, list) or len(state) <= VELOCITY:
            continue
        if not as_text(state[CALLSIGN]) or state[LATITUDE] is None or state[LONGITUDE] is None:
            continue
        if state[ON_GROUND]:
            continue
        kept.append(state)
        if len(kept) >= limit:
            break
    return kept


class OpenSkyFlights(SourceAdapter[FlightRecord]):
    """Live aircraft positions from OpenSky turned into route-shaped flights.

    OpenSky only reports where an aircraft is, so the route is inferred from
    the catalog: nearest airport as origin, a random near neighbour as
    destination. Price and duration come from the generator heuristics.
    """

    name = "opensky"
    ttl_seconds = 60
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

    def _fetch(self, criteria: SearchCriteria) -> list[FlightRecord]:
        payload = self._get_json(self.settings.opensky_url)
        states = airborne_states(payload, self.settings.opensky_max_states)
        now = datetime.now().replace(second=0, microsecond=0)

        flights = []
        for state in states:
            flight = self._to_flight(state, now)
            if flight is not None and _matches(flight, criteria):
                flights.append(flight)
        return flights

    def _to_flight(self, state: list[Any], now: datetime) -> FlightRecord | None:
        lat, lon = as_float(state[LATITUDE]), as_float(state[LONGITUDE])
        if lat is None or lon is None:
            return None
        nearby = nearest_airports(lat, lon, self.catalog.airports, n=DESTINATION_CANDIDATES)
        if len(nearby) < 2:
            return None
        origin = nearby[0]
        destination = self.rng.choice(nearby[1:])

        callsign = as_text(state[CALLSIGN]).upper()
        prefix = callsign[:3]
        airline_code, airline_name = self._airline_for(prefix)

        distance = airport_distance_km(origin, destination)
        duration = self.generator.duration_minutes(distance)
        departure = now - timedelta(minutes=self.rng.randint(5, max(5, duration // 2)))
        altitude = as_float(state[BARO_ALTITUDE])
        velocity = as_float(state[VELOCITY])

        return FlightRecord(
            id=f"OS_{as_text(state[ICAO24])}_{callsign}",
            airline_code=airline_code,
            airline_name=airline_name,
            flight_number=callsign,
            departure=FlightEndpoint.at(origin, departure, gate=self.generator.gate()),
            arrival=FlightEndpoint.at(destination, departure + timedelta(minutes=duration), gate=self.generator.gate()),
            duration_minutes=duration,
            price=self.generator.price(distance, airline_code, departure.hour),
            status=live_status(altitude, velocity),
            aircraft_type=self.generator.aircraft_for(distance),
            source=Provenance.OPENSKY,
            callsign=callsign,
            latitude=lat,
            longitude=lon,
            altitude_m=altitude,
            velocity_ms=velocity,
            distance_km=round(distance, 1),
        )

    def _airline_for(self, prefix: str) -> tuple[str, str]:
        if prefix in CALLSIGN_AIRLINES:
            return CALLSIGN_AIRLINES[prefix]
        known = self.catalog.find_airline(prefix)
        if known is not None and known.icao and known.icao.upper() == prefix:
            return known.code, known.name
        return prefix, f"{prefix} Airlines"


def _matches(flight: FlightRecord, criteria: SearchCriteria) -> bool:
    if criteria.origin and not (flight.departure and flight.departure.matches(criteria.origin)):
        return False
    if criteria.destination and not (flight.arrival and flight.arrival.matches(criteria.destination)):
        return False
    return True
