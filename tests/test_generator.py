"""Tests for the fallback flight generator heuristics."""

from collections import Counter
from datetime import date, datetime
import random

import pytest

from backend.flightlo.models import AirportRecord, FlightStatus, Provenance
from backend.flightlo.services.generator import (
    AIRCRAFT_BY_TIER,
    AMENITIES_BY_TIER,
    BOARD_STATUS_WEIGHTS,
    LONG_HAUL,
    MEDIUM_HAUL,
    MIN_PRICE,
    SHORT_HAUL,
    STATUS_WEIGHTS,
    FlightGenerator,
    airport_statistics,
    distance_tier,
    flight_duration_minutes,
    weighted_choice,
)


@pytest.fixture
def generator(catalog, rng):
    return FlightGenerator(catalog, rng=rng)


class TestDistanceTier:
    @pytest.mark.parametrize("km,tier", [
        (0, SHORT_HAUL),
        (999.9, SHORT_HAUL),
        (1000, MEDIUM_HAUL),
        (2999, MEDIUM_HAUL),
        (3000, LONG_HAUL),
        (12000, LONG_HAUL),
    ])
    def test_bands(self, km, tier):
        assert distance_tier(km) == tier

    def test_duration_from_cruise_speed(self):
        assert flight_duration_minutes(800) == 60
        assert flight_duration_minutes(4000) == 300
        assert flight_duration_minutes(0) == 1


class TestPricing:
    def test_never_below_minimum(self, catalog):
        gen = FlightGenerator(catalog, rng=random.Random(7))
        prices = [gen.price(100, "AA", 12) for _ in range(2000)]
        assert min(prices) >= MIN_PRICE

    def test_premium_and_peak_multipliers(self, catalog):
        class _NoJitter(random.Random):
            def uniform(self, a, b):
                return 0.0

        gen = FlightGenerator(catalog, rng=_NoJitter())
        assert gen.price(5000, "AA", 12) == 800.0
        assert gen.price(5000, "EK", 12) == pytest.approx(1040.0)
        assert gen.price(5000, "EK", 8) == pytest.approx(1248.0)
        assert gen.price(2000, "AA", 18) == pytest.approx(540.0)


class TestStatusChoice:
    def test_cumulative_boundaries(self):
        assert weighted_choice(STATUS_WEIGHTS, 0.0) == FlightStatus.ON_TIME
        assert weighted_choice(STATUS_WEIGHTS, 0.59) == FlightStatus.ON_TIME
        assert weighted_choice(STATUS_WEIGHTS, 0.61) == FlightStatus.DELAYED
        assert weighted_choice(STATUS_WEIGHTS, 0.81) == FlightStatus.BOARDING
        assert weighted_choice(STATUS_WEIGHTS, 0.99) == FlightStatus.DEPARTED

    def test_distribution_matches_weights(self, catalog):
        gen = FlightGenerator(catalog, rng=random.Random(2024))
        n = 100_000
        counts = Counter(gen.pick_status() for _ in range(n))
        for status, weight in STATUS_WEIGHTS:
            assert abs(counts[status] / n - weight) < 0.02

    def test_board_weights_include_cancelled(self):
        assert FlightStatus.CANCELLED in dict(BOARD_STATUS_WEIGHTS)
        assert FlightStatus.CANCELLED not in dict(STATUS_WEIGHTS)


class TestGenerate:
    def test_jfk_lax_long_haul(self, generator):
        flights = generator.generate("JFK", "LAX", date(2025, 3, 1))
        assert len(flights) == 8
        for f in flights:
            assert f.aircraft_type in AIRCRAFT_BY_TIER[LONG_HAUL]
            assert f.duration_minutes > 0
            assert f.arrival.time > f.departure.time
            assert f.price >= MIN_PRICE
            assert f.source == Provenance.GENERATOR
            assert f.simulated
            assert set(f.amenities) <= set(AMENITIES_BY_TIER[LONG_HAUL])

    def test_flight_numbers_unique(self, generator):
        flights = generator.generate("JFK", "LAX", date(2025, 3, 1))
        assert len({f.flight_number for f in flights}) == len(flights)

    def test_departures_on_requested_day(self, generator):
        flights = generator.generate("LHR", "CDG", datetime(2025, 6, 9, 15, 0), count=5)
        assert len(flights) == 5
        assert all(f.departure.time.date() == date(2025, 6, 9) for f in flights)
        assert flights == sorted(flights, key=lambda f: f.departure.time)

    def test_gate_format(self, generator):
        for f in generator.generate("LHR", "CDG", date(2025, 6, 9)):
            gate = f.departure.gate
            assert gate[0] in "ABCDEF"
            assert 1 <= int(gate[1:]) <= 20

    def test_relevant_airlines_first(self, generator, catalog):
        ranked = generator.rank_airlines(catalog.airport("LHR"), catalog.airport("CDG"))
        assert len(ranked) == 8
        assert {a.code for a in ranked[:3]} == {"BA", "VS", "AF"}

    def test_explicit_airline(self, generator):
        flights = generator.generate("JFK", "LAX", date(2025, 3, 1), airline="Delta")
        assert {f.airline_code for f in flights} == {"DL"}

    def test_unknown_airports_default_distance(self, generator):
        flights = generator.generate("Atlantis", "ZZZ", date(2025, 3, 1), count=3)
        assert len(flights) == 3
        assert all(f.distance_km == 1000.0 for f in flights)
        assert all(f.aircraft_type in AIRCRAFT_BY_TIER[MEDIUM_HAUL] for f in flights)
        assert flights[0].arrival.airport_code == "ZZZ"

    def test_one_open_end_gets_counterpart(self, generator):
        flights = generator.generate("JFK", None, date(2025, 3, 1), count=2)
        assert all(f.departure.airport_code == "JFK" for f in flights)
        assert all(f.arrival.airport_code != "JFK" for f in flights)

    def test_airline_only_uses_showcase_routes(self, generator):
        flights = generator.generate(None, None, date(2025, 3, 1), airline="BA")
        assert len(flights) == 8
        assert flights[0].departure.airport_code == "JFK"
        assert all(f.airline_code == "BA" for f in flights)


    def test_airline_only_honours_count(self, generator):
        flights = generator.generate(None, None, date(2025, 3, 1), airline="BA", count=12)
        assert len(flights) == 12
        assert len({f.flight_number for f in flights}) == 12
        assert all(f.departure.time.date() == date(2025, 3, 1) for f in flights)
        assert flights == sorted(flights, key=lambda f: f.departure.time)

    def test_open_end_prefers_country(self, generator):
        flights = generator.generate("JFK", None, date(2025, 3, 1), count=3, country="France")
        assert {f.arrival.airport_code for f in flights} == {"CDG"}

    def test_open_end_unknown_country_uses_catalog(self, generator):
        flights = generator.generate("JFK", None, date(2025, 3, 1), count=2, country="Atlantis")
        assert len(flights) == 2
        assert all(f.arrival.airport_code != "JFK" for f in flights)

    def test_airline_only_with_country(self, generator):
        flights = generator.generate(None, None, date(2025, 3, 1), airline="AC", count=4, country="Canada")
        assert len(flights) == 4
        assert all(f.departure.airport_code == "YYZ" for f in flights)

    def test_airline_only_country_on_showcase_route(self, generator):
        flights = generator.generate(None, None, date(2025, 3, 1), airline="AF", count=4, country="France")
        assert all("CDG" in (f.departure.airport_code, f.arrival.airport_code) for f in flights)

class TestDepartureBoard:
    def test_board_size_and_origin(self, generator, catalog):
        jfk = catalog.airport("JFK")
        board = generator.departure_board(jfk, datetime(2025, 3, 1, 10, 0), size=10)
        assert len(board) == 10
        assert all(f.departure.airport_code == "JFK" for f in board)
        assert all(f.arrival.airport_code != "JFK" for f in board)


class TestAirportStatistics:
    def test_ranges(self, catalog):
        stats = airport_statistics(catalog.airport("LHR"))
        assert 2 <= stats["terminals"] <= 5
        assert 50 <= stats["gates"] <= 149
        assert 2 <= stats["runways"] <= 4

    def test_deterministic(self, catalog):
        lhr = catalog.airport("LHR")
        assert airport_statistics(lhr) == airport_statistics(lhr)

    def test_placeholder_airport(self):
        stats = airport_statistics(AirportRecord("ZZZ", "Nowhere", "Nowhere", ""))
        assert set(stats) == {"daily_flights", "airlines", "destinations", "terminals", "gates", "runways"}
