"""Tests for airport/airline reference adapters (with mocked HTTP requests)."""

from unittest.mock import patch

import requests

from backend.flightlo.config import Settings
from backend.flightlo.models import Provenance
from backend.flightlo.services.airport_codes import AirportCodesAdapter
from backend.flightlo.services.amadeus import AmadeusReference
from backend.flightlo.services.flightstats import FlightStatsAirlines
from backend.flightlo.services.geonames import GeonamesAdapter
from backend.flightlo.services.openflights import (
    OpenFlightsAirlines,
    OpenFlightsAirports,
    parse_airlines,
    parse_airports,
)

from conftest import fake_response


AIRPORTS_DAT = "\n".join([
    '1,"Goroka Airport","Goroka","Papua New Guinea","GKA","AYGA",-6.0816,145.3919,5282,10,"U","Pacific/Port_Moresby","airport","OurAirports"',
    '2,"Some Strip","Nowhere","Canada",\\N,"CXYZ",50.0,-100.0,100,-6,"A","America/Winnipeg","airport","OurAirports"',
    "",
    '3,"Washington Dulles International Airport","Washington, D.C.","United States","IAD","KIAD",38.9444,-77.4558,312,-5,"A","America/New_York","airport","OurAirports"',
    "bad line",
])

AIRLINES_DAT = "\n".join([
    '1355,"British Airways",\\N,"BA","BAW","SPEEDBIRD","United Kingdom","Y"',
    '-1,"Unknown",\\N,"-","N/A",\\N,\\N,"Y"',
    '2009,"easyJet",\\N,"U2","EZY","EASY","United Kingdom","Y"',
])

GET = "backend.flightlo.services.base.requests.get"
POST = "backend.flightlo.services.base.requests.post"


class TestParseOpenFlightsAirports:
    def test_keeps_valid_rows(self):
        airports, skipped = parse_airports(AIRPORTS_DAT)
        assert [a.code for a in airports] == ["GKA", "IAD"]
        assert skipped == 2

    def test_quoted_comma_in_city(self):
        airports, _ = parse_airports(AIRPORTS_DAT)
        iad = airports[1]
        assert iad.city == "Washington, D.C."
        assert iad.country == "United States"

    def test_optional_fields(self):
        airports, _ = parse_airports(AIRPORTS_DAT)
        gka = airports[0]
        assert gka.icao == "AYGA"
        assert gka.timezone == "Pacific/Port_Moresby"
        assert gka.elevation_ft == 5282
        assert gka.lat == -6.0816
        assert gka.source == Provenance.OPENFLIGHTS

    def test_row_limit(self):
        airports, _ = parse_airports(AIRPORTS_DAT, limit=1)
        assert [a.code for a in airports] == ["GKA"]

    def test_non_finite_numbers_dropped(self):
        text = "\n".join([
            '4,"Odd Field","Oddtown","Canada","ODD","CODD",nan,-100.0,nan,-6,"A","America/Winnipeg","airport","OurAirports"',
            '5,"Far Field","Fartown","Canada","FAR","CFAR",50.0,-100.0,inf,-6,"A","America/Winnipeg","airport","OurAirports"',
        ])
        airports, skipped = parse_airports(text)
        assert skipped == 0
        odd, far = airports
        assert odd.lat is None
        assert odd.elevation_ft is None
        assert far.elevation_ft is None
        assert far.lat == 50.0

    @patch(GET)
    def test_non_finite_elevation_keeps_feed(self, mock_get, settings):
        row = '6,"Inf Field","Inftown","Canada","INF","CINF",50.0,-100.0,-inf,-6,"A","America/Winnipeg","airport","OurAirports"'
        mock_get.return_value = fake_response(text=AIRPORTS_DAT + "\n" + row)
        airports = OpenFlightsAirports(settings=settings).fetch()
        assert [a.code for a in airports] == ["GKA", "IAD", "INF"]


class TestParseOpenFlightsAirlines:
    def test_keeps_valid_rows(self):
        airlines, skipped = parse_airlines(AIRLINES_DAT)
        assert [a.code for a in airlines] == ["BA", "U2"]
        assert skipped == 1

    def test_icao_and_country(self):
        airlines, _ = parse_airlines(AIRLINES_DAT)
        assert airlines[0].icao == "BAW"
        assert airlines[0].country == "United Kingdom"


class TestOpenFlightsAdapters:
    @patch(GET)
    def test_airports_fetch(self, mock_get, settings):
        mock_get.return_value = fake_response(text=AIRPORTS_DAT)
        airports = OpenFlightsAirports(settings=settings).fetch()
        assert [a.code for a in airports] == ["GKA", "IAD"]
        args, kwargs = mock_get.call_args
        assert args[0] == settings.openflights_airports_url
        assert kwargs["timeout"] == settings.fetch_timeout_seconds
        assert kwargs["headers"]["User-Agent"] == settings.user_agent

    @patch(GET)
    def test_airlines_fetch(self, mock_get, settings):
        mock_get.return_value = fake_response(text=AIRLINES_DAT)
        assert len(OpenFlightsAirlines(settings=settings).fetch()) == 2

    @patch(GET)
    def test_network_failure_returns_empty(self, mock_get, settings):
        mock_get.side_effect = requests.ConnectionError("down")
        assert OpenFlightsAirports(settings=settings).fetch() == []

    @patch(GET)
    def test_http_error_returns_empty(self, mock_get, settings):
        mock_get.return_value = fake_response(status_code=503)
        assert OpenFlightsAirports(settings=settings).fetch() == []

    @patch(GET)
    def test_cached_between_calls(self, mock_get, settings, cache):
        mock_get.return_value = fake_response(text=AIRPORTS_DAT)
        adapter = OpenFlightsAirports(settings=settings, cache=cache)
        adapter.fetch()
        adapter.fetch()
        assert mock_get.call_count == 1


class TestAirportCodesAdapter:
    @patch(GET)
    def test_parses_airports(self, mock_get, settings):
        mock_get.return_value = fake_response({
            "airports": [
                {"iata": "lhr", "name": "Heathrow", "municipality": "London", "iso_country": "GB",
                 "latitude": "51.47", "longitude": "-0.45"},
                {"iata": "", "name": "No code"},
                {"iata": "CDG", "name": "Charles de Gaulle", "city": "Paris", "country": "France"},
            ]
        })
        airports = AirportCodesAdapter(settings=settings).fetch()
        assert [a.code for a in airports] == ["LHR", "CDG"]
        assert airports[0].city == "London"
        assert airports[0].lat == 51.47
        assert airports[1].source == Provenance.AIRPORT_CODES

    @patch(GET)
    def test_sends_search_params(self, mock_get, settings):
        mock_get.return_value = fake_response({"airports": []})
        AirportCodesAdapter(settings=settings).fetch()
        _, kwargs = mock_get.call_args
        assert kwargs["params"] == {"search": "international", "limit": 50}

    @patch(GET)
    def test_invalid_json_returns_empty(self, mock_get, settings):
        mock_get.return_value = fake_response(text="<html>")
        assert AirportCodesAdapter(settings=settings).fetch() == []


class TestGeonamesAdapter:
    @patch(GET)
    def test_code_taken_from_name(self, mock_get, settings):
        mock_get.return_value = fake_response({
            "geonames": [
                {"name": "Heathrow Airport (LHR)", "adminName1": "England",
                 "countryName": "United Kingdom", "lat": "51.4775", "lng": "-0.4614"},
                {"name": "Some Airfield", "countryName": "France"},
            ]
        })
        airports = GeonamesAdapter(settings=settings).fetch()
        assert len(airports) == 1
        assert airports[0].code == "LHR"
        assert airports[0].name == "Heathrow Airport"
        assert airports[0].lon == -0.4614

    @patch(GET)
    def test_uses_username(self, mock_get, settings):
        mock_get.return_value = fake_response({"geonames": []})
        GeonamesAdapter(settings=settings).fetch()
        _, kwargs = mock_get.call_args
        assert kwargs["params"]["username"] == settings.geonames_username
        assert kwargs["params"]["featureCode"] == "AIRP"


class TestFlightStatsAirlines:
    @patch(GET)
    def test_parses_airlines(self, mock_get, settings):
        mock_get.return_value = fake_response({
            "airlines": [
                {"iata": "AA", "icao": "AAL", "name": "American Airlines", "country": "United States"},
                {"iata": "?", "name": "Broken"},
            ]
        })
        airlines = FlightStatsAirlines(settings=settings).fetch()
        assert [a.code for a in airlines] == ["AA"]
        assert airlines[0].source == Provenance.FLIGHTSTATS

    @patch(GET)
    def test_caps_at_one_hundred(self, mock_get, settings):
        items = [{"iata": f"{i:02d}", "name": f"Air {i}"} for i in range(150)]
        mock_get.return_value = fake_response({"airlines": items})
        assert len(FlightStatsAirlines(settings=settings).fetch()) == 100


class TestAmadeusReference:
    def _configured(self):
        return Settings(amadeus_client_id="id", amadeus_client_secret="secret", fetch_timeout_seconds=2)

    @patch(GET)
    def test_unconfigured_skips_network(self, mock_get, settings):
        assert AmadeusReference(settings=settings).fetch() == []
        mock_get.assert_not_called()

    @patch(POST)
    @patch(GET)
    def test_fetches_airlines_with_token(self, mock_get, mock_post, cache):
        mock_post.return_value = fake_response({"access_token": "tok", "expires_in": 1799})
        mock_get.return_value = fake_response({
            "data": [{"iataCode": "LH", "icaoCode": "DLH", "businessName": "LUFTHANSA"}]
        })
        airlines = AmadeusReference(settings=self._configured(), cache=cache).fetch()
        assert airlines[0].code == "LH"
        assert airlines[0].icao == "DLH"
        _, kwargs = mock_get.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer tok"
        assert cache.get(("amadeus_token",)) == "tok"

    @patch(POST)
    @patch(GET)
    def test_missing_token_returns_empty(self, mock_get, mock_post):
        mock_post.return_value = fake_response({"error": "invalid_client"})
        assert AmadeusReference(settings=self._configured()).fetch() == []
        mock_get.assert_not_called()

    @patch(POST)
    @patch(GET)
    def test_lookup_airport(self, mock_get, mock_post):
        mock_post.return_value = fake_response({"access_token": "tok", "expires_in": 1799})
        mock_get.return_value = fake_response({
            "data": [{
                "iataCode": "BCN",
                "name": "BARCELONA INTL",
                "address": {"cityName": "BARCELONA", "countryName": "SPAIN"},
                "geoCode": {"latitude": 41.29, "longitude": 2.07},
            }]
        })
        airport = AmadeusReference(settings=self._configured()).lookup_airport("bcn")
        assert airport.code == "BCN"
        assert airport.city == "BARCELONA"
        assert airport.source == Provenance.AMADEUS

    @patch(POST)
    def test_lookup_airport_never_raises(self, mock_post):
        mock_post.side_effect = requests.ConnectionError("down")
        assert AmadeusReference(settings=self._configured()).lookup_airport("BCN") is None
