from __future__ import annotations

from datetime import date, datetime, time, timedelta
import logging
import random
import string
from typing import Sequence

from backend.flightlo.catalog import BUILTIN_AIRLINES, COUNTRY_AIRLINES, PREMIUM_AIRLINES, ReferenceCatalog
from backend.flightlo.geo import airport_distance_km
from backend.flightlo.models import (
    AirlineRecord,
    AirportRecord,
    FlightEndpoint,
    FlightRecord,
    FlightStatus,
    Provenance,
    is_airport_code,
)


logger = logging.getLogger(__name__)


SHORT_HAUL = "short"
MEDIUM_HAUL = "medium"
LONG_HAUL = "long"

SHORT_HAUL_MAX_KM = 1000.0
MEDIUM_HAUL_MAX_KM = 3000.0
CRUISE_SPEED_KMH = 800.0

AIRCRAFT_BY_TIER: dict[str, tuple[str, ...]] = {
    SHORT_HAUL: ("Boeing 737-800", "Airbus A320", "Embraer E190", "CRJ-900"),
    MEDIUM_HAUL: ("Boeing 757-200", "Airbus A321", "Boeing 767-300", "Airbus A330-200"),
    LONG_HAUL: ("Boeing 777-300ER", "Boeing 787-9", "Airbus A350-900", "Airbus A380", "Boeing 747-8"),
}

BASE_PRICE_BY_TIER: dict[str, float] = {SHORT_HAUL: 150.0, MEDIUM_HAUL: 450.0, LONG_HAUL: 800.0}

# (hour, minute) local departure slots; busier schedules on short routes
DEPARTURE_SLOTS_BY_TIER: dict[str, tuple[tuple[int, int], ...]] = {
    SHORT_HAUL: ((6, 0), (7, 30), (9, 0), (10, 30), (12, 0), (13, 30), (15, 0), (16, 30), (18, 0), (19, 30), (21, 0)),
    MEDIUM_HAUL: ((7, 0), (9, 30), (12, 0), (14, 30), (17, 0), (20, 0)),
    LONG_HAUL: ((8, 0), (13, 0), (18, 30), (22, 0)),
}

AMENITIES_BY_TIER: dict[str, tuple[str, ...]] = {
    SHORT_HAUL: ("Wi-Fi", "Snacks", "USB power"),
    MEDIUM_HAUL: ("Wi-Fi", "Meals", "Entertainment", "USB power"),
    LONG_HAUL: ("Wi-Fi", "Meals", "Entertainment", "Lie-flat seats", "Power outlets"),
}

PREMIUM_MULTIPLIER = 1.3
PEAK_MULTIPLIER = 1.2
PEAK_HOURS = frozenset({7, 8, 9, 17, 18, 19})
PRICE_JITTER = 200.0
MIN_PRICE = 100.0

STATUS_WEIGHTS: tuple[tuple[str, float], ...] = (
    (FlightStatus.ON_TIME, 0.60),
    (FlightStatus.DELAYED, 0.20),
    (FlightStatus.BOARDING, 0.15),
    (FlightStatus.DEPARTED, 0.05),
)

# departure boards also show cancellations
BOARD_STATUS_WEIGHTS: tuple[tuple[str, float], ...] = (
    (FlightStatus.ON_TIME, 0.60),
    (FlightStatus.DELAYED, 0.20),
    (FlightStatus.BOARDING, 0.10),
    (FlightStatus.DEPARTED, 0.08),
    (FlightStatus.CANCELLED, 0.02),
)

RELEVANT_AIRLINE_COUNT = 8

SHOWCASE_ROUTES: tuple[tuple[str, str], ...] = (
    ("JFK", "LAX"),
    ("LHR", "CDG"),
    ("DXB", "SIN"),
    ("NRT", "SYD"),
    ("FRA", "JFK"),
    ("AMS", "BOM"),
)


def distance_tier(distance_km: float) -> str:
    if distance_km < SHORT_HAUL_MAX_KM:
        return SHORT_HAUL
    if distance_km < MEDIUM_HAUL_MAX_KM:
        return MEDIUM_HAUL
    return LONG_HAUL


def flight_duration_minutes(distance_km: float) -> int:
    return max(1, int(round(distance_km / CRUISE_SPEED_KMH * 60)))


def is_peak_hour(hour: int) -> bool:
    return hour in PEAK_HOURS


def weighted_choice(weights: Sequence[tuple[str, float]], draw: float) -> str:
    """Map one uniform draw in [0, 1) onto cumulative weight boundaries."""
    total = sum(w for _, w in weights)
    target = draw * total
    cumulative = 0.0
    for value, weight in weights:
        cumulative += weight
        if target < cumulative:
            return value
    return weights[-1][0]


def airport_statistics(airport: AirportRecord) -> dict[str, int]:
    # seeded by code so the same airport always reports the same figures
    rng = random.Random(airport.code)
    return {
        "daily_flights": rng.randint(200, 1500),
        "airlines": rng.randint(20, 90),
        "destinations": rng.randint(60, 250),
        "terminals": rng.randint(2, 5),
        "gates": rng.randint(50, 149),
        "runways": rng.randint(2, 4),
    }


class FlightGenerator:
    """Fabricates plausible flights when live feeds have nothing.

    Output is tagged ``Provenance.GENERATOR`` unless a caller passes its own
    simulated provenance to ``build_flight``. Inputs are defaulted
    rather than rejected, so a call always yields a result set.
    """

    def __init__(self, catalog: ReferenceCatalog, *, rng: random.Random | None = None, count: int = 8) -> None:
        self.catalog = catalog
        self.rng = rng or random.Random()
        self.count = count

    distance_tier = staticmethod(distance_tier)
    duration_minutes = staticmethod(flight_duration_minutes)

    def price(self, distance_km: float, airline_code: str, departure_hour: int) -> float:
        base = BASE_PRICE_BY_TIER[distance_tier(distance_km)]
        premium = PREMIUM_MULTIPLIER if airline_code.upper() in PREMIUM_AIRLINES else 1.0
        peak = PEAK_MULTIPLIER if is_peak_hour(departure_hour) else 1.0
        value = base * premium * peak + self.rng.uniform(-PRICE_JITTER, PRICE_JITTER)
        return round(max(MIN_PRICE, value), 2)

    def pick_status(self, weights: Sequence[tuple[str, float]] = STATUS_WEIGHTS) -> str:
        return weighted_choice(weights, self.rng.random())

    def aircraft_for(self, distance_km: float) -> str:
        return self.rng.choice(AIRCRAFT_BY_TIER[distance_tier(distance_km)])

    def gate(self) -> str:
        return f"{self.rng.choice('ABCDEF')}{self.rng.randint(1, 20)}"

    def amenities_for(self, distance_km: float) -> tuple[str, ...]:
        pool = AMENITIES_BY_TIER[distance_tier(distance_km)]
        picked = set(self.rng.sample(pool, self.rng.randint(1, len(pool))))
        return tuple(a for a in pool if a in picked)

    def rank_airlines(
        self,
        origin: AirportRecord,
        destination: AirportRecord,
        limit: int = RELEVANT_AIRLINE_COUNT,
    ) -> list[AirlineRecord]:
        airlines = list(self.catalog.airlines) or list(BUILTIN_AIRLINES)
        relevant: set[str] = set()
        for country in (origin.country, destination.country):
            relevant.update(COUNTRY_AIRLINES.get(country or "", ()))
        ranked = sorted(airlines, key=lambda a: 0 if a.code in relevant else 1)
        return ranked[:limit]

    def generate(
        self,
        origin: AirportRecord | str | None,
        destination: AirportRecord | str | None,
        when: date | datetime | None = None,
        *,
        airline: AirlineRecord | str | None = None,
        count: int | None = None,
        country: str | None = None,
    ) -> list[FlightRecord]:
        if not origin and not destination:
            return self.generate_for_airline(airline, when, count=count, country=country)
        # one open end gets a random catalog counterpart, from the country when one is given
        dep_airport = self.airport_for(origin) if origin else None
        arr_airport = self.airport_for(destination) if destination else None
        dep_airport = dep_airport or self._counterpart(arr_airport, country)
        arr_airport = arr_airport or self._counterpart(dep_airport, country)
        day = _as_day(when)
        count = self.count if count is None else count

        distance = airport_distance_km(dep_airport, arr_airport)
        slots = DEPARTURE_SLOTS_BY_TIER[distance_tier(distance)]
        carrier = self.airline_for(airline)
        airlines = [carrier] if carrier else self.rank_airlines(dep_airport, arr_airport)

        used_numbers: set[str] = set()
        flights = []
        for i in range(count):
            hour, minute = slots[i % len(slots)]
            departure = datetime.combine(day, time(hour, minute + self.rng.choice((0, 5, 10, 15, 20, 25))))
            flights.append(
                self.build_flight(dep_airport, arr_airport, airlines[i % len(airlines)], departure, distance, used_numbers)
            )
        flights.sort(key=lambda f: f.departure.time)
        logger.debug("Generated %d flights %s -> %s (%.0f km)", len(flights), dep_airport.code, arr_airport.code, distance)
        return flights

    def generate_for_airline(
        self,
        airline: AirlineRecord | str | None,
        when: date | datetime | None = None,
        *,
        count: int | None = None,
        country: str | None = None,
    ) -> list[FlightRecord]:
        """Flights for a carrier with no route given, cycling through the showcase routes."""
        carrier = self.airline_for(airline) or BUILTIN_AIRLINES[0]
        day = _as_day(when)
        count = self.count if count is None else count
        routes = self._showcase_routes(country)
        used_numbers: set[str] = set()
        flights = []
        for i in range(count):
            dep_airport, arr_airport = routes[i % len(routes)]
            distance = airport_distance_km(dep_airport, arr_airport)
            departure = datetime.combine(day, time((8 + i * 2) % 24, self.rng.randint(0, 59)))
            flights.append(self.build_flight(dep_airport, arr_airport, carrier, departure, distance, used_numbers))
        flights.sort(key=lambda f: f.departure.time)
        return flights

    def _showcase_routes(self, country: str | None) -> list[tuple[AirportRecord, AirportRecord]]:
        routes = [(self.airport_for(dep), self.airport_for(arr)) for dep, arr in SHOWCASE_ROUTES]
        country = (country or "").strip()
        if not country:
            return routes
        local = [r for r in routes if r[0].matches_country(country) or r[1].matches_country(country)]
        if local:
            return local
        pool = self.catalog.search_airports(country=country)
        if pool:
            return [(a, self._counterpart(a)) for a in pool]
        return routes

    def departure_board(
        self,
        airport: AirportRecord,
        when: datetime | None = None,
        size: int = 10,
    ) -> list[FlightRecord]:
        start = (when or datetime.now()).replace(minute=0, second=0, microsecond=0)
        destinations = [a for a in self.catalog.airports if a.code != airport.code]
        self.rng.shuffle(destinations)
        used_numbers: set[str] = set()
        board = []
        for i, dest in enumerate(destinations[:size]):
            distance = airport_distance_km(airport, dest)
            carrier = self.rng.choice(self.rank_airlines(airport, dest))
            departure = start + timedelta(hours=i, minutes=self.rng.randint(0, 59))
            board.append(
                self.build_flight(airport, dest, carrier, departure, distance, used_numbers, weights=BOARD_STATUS_WEIGHTS)
            )
        return board

    def build_flight(
        self,
        origin: AirportRecord,
        destination: AirportRecord,
        airline: AirlineRecord,
        departure: datetime,
        distance: float,
        used_numbers: set[str] | None = None,
        *,
        weights: Sequence[tuple[str, float]] = STATUS_WEIGHTS,
        source: str = Provenance.GENERATOR,
    ) -> FlightRecord:
        duration = flight_duration_minutes(distance)
        arrival = departure + timedelta(minutes=duration)
        number = self._flight_number(airline.code, used_numbers if used_numbers is not None else set())
        prefix = "GEN" if source == Provenance.GENERATOR else "SIM"
        return FlightRecord(
            id=f"{prefix}_{number}_{departure:%Y%m%d%H%M}",
            airline_code=airline.code,
            airline_name=airline.name,
            flight_number=number,
            departure=FlightEndpoint.at(origin, departure, gate=self.gate()),
            arrival=FlightEndpoint.at(destination, arrival, gate=self.gate()),
            duration_minutes=duration,
            price=self.price(distance, airline.code, departure.hour),
            status=self.pick_status(weights),
            aircraft_type=self.aircraft_for(distance),
            source=source,
            amenities=self.amenities_for(distance),
            distance_km=round(distance, 1),
        )

    def _flight_number(self, airline_code: str, used: set[str]) -> str:
        while True:
            number = f"{airline_code}{self.rng.randint(1000, 9999)}"
            if number not in used:
                used.add(number)
                return number

    def airport_for(self, value: AirportRecord | str | None) -> AirportRecord:
        if isinstance(value, AirportRecord):
            return value
        found = self.catalog.resolve_airport(value)
        if found:
            return found
        text = (value or "").strip()
        code = text.upper() if is_airport_code(text.upper()) else "UNK"
        return AirportRecord(code=code, name=text or "Unknown airport", city=text, country="", source=Provenance.GENERATOR)

    def _counterpart(self, other: AirportRecord, country: str | None = None) -> AirportRecord:
        candidates = [a for a in self.catalog.airports if a.code != other.code]
        if country and country.strip():
            local = [a for a in candidates if a.matches_country(country.strip())]
            # no catalog airport in that country: any airport will do
            candidates = local or candidates
        if not candidates:
            return self.airport_for(None)
        return self.rng.choice(candidates)

    def airline_for(self, value: AirlineRecord | str | None) -> AirlineRecord | None:
        if value is None or isinstance(value, AirlineRecord):
            return value
        text = value.strip()
        if not text:
            return None
        found = self.catalog.find_airline(text)
        if found:
            return found
        code = "".join(c for c in text.upper() if c in string.ascii_uppercase + string.digits)[:2] or "XX"
        return AirlineRecord(code=code, name=text, source=Provenance.GENERATOR)


def _as_day(when: date | datetime | None) -> date:
    if when is None:
        return date.today()
    if isinstance(when, datetime):
        return when.date()
    return when
