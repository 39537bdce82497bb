from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Sequence

from backend.flightlo.errors import NotFound
from backend.flightlo.models import AirlineRecord, AirportRecord, Provenance, is_airport_code
from backend.flightlo.services.aggregator import dedupe, filter_records


logger = logging.getLogger(__name__)


def _ap(code: str, name: str, city: str, country: str, lat: float, lon: float, tz: str, icao: str) -> AirportRecord:
    return AirportRecord(
        code=code, name=name, city=city, country=country, lat=lat, lon=lon,
        icao=icao, timezone=tz, source=Provenance.CATALOG,
    )


def _al(code: str, name: str, icao: str, country: str) -> AirlineRecord:
    return AirlineRecord(code=code, name=name, icao=icao, country=country, source=Provenance.CATALOG)


# Small built-in reference set. Live feeds extend it through ReferenceCatalog.refreshed().
BUILTIN_AIRPORTS: tuple[AirportRecord, ...] = (
    _ap("JFK", "John F. Kennedy International Airport", "New York", "United States", 40.6413, -73.7781, "America/New_York", "KJFK"),
    _ap("LAX", "Los Angeles International Airport", "Los Angeles", "United States", 33.9416, -118.4085, "America/Los_Angeles", "KLAX"),
    _ap("ORD", "O'Hare International Airport", "Chicago", "United States", 41.9742, -87.9073, "America/Chicago", "KORD"),
    _ap("ATL", "Hartsfield-Jackson Atlanta International Airport", "Atlanta", "United States", 33.6407, -84.4277, "America/New_York", "KATL"),
    _ap("DFW", "Dallas/Fort Worth International Airport", "Dallas", "United States", 32.8998, -97.0403, "America/Chicago", "KDFW"),
    _ap("DEN", "Denver International Airport", "Denver", "United States", 39.8561, -104.6737, "America/Denver", "KDEN"),
    _ap("LAS", "Harry Reid International Airport", "Las Vegas", "United States", 36.0840, -115.1537, "America/Los_Angeles", "KLAS"),
    _ap("MIA", "Miami International Airport", "Miami", "United States", 25.7959, -80.2870, "America/New_York", "KMIA"),
    _ap("SEA", "Seattle-Tacoma International Airport", "Seattle", "United States", 47.4502, -122.3088, "America/Los_Angeles", "KSEA"),
    _ap("SFO", "San Francisco International Airport", "San Francisco", "United States", 37.6213, -122.3790, "America/Los_Angeles", "KSFO"),
    _ap("BOS", "Logan International Airport", "Boston", "United States", 42.3656, -71.0096, "America/New_York", "KBOS"),
    _ap("YYZ", "Toronto Pearson International Airport", "Toronto", "Canada", 43.6777, -79.6248, "America/Toronto", "CYYZ"),
    _ap("LHR", "London Heathrow Airport", "London", "United Kingdom", 51.4700, -0.4543, "Europe/London", "EGLL"),
    _ap("LGW", "Gatwick Airport", "London", "United Kingdom", 51.1537, -0.1821, "Europe/London", "EGKK"),
    _ap("CDG", "Charles de Gaulle Airport", "Paris", "France", 49.0097, 2.5479, "Europe/Paris", "LFPG"),
    _ap("FRA", "Frankfurt Airport", "Frankfurt", "Germany", 50.0379, 8.5622, "Europe/Berlin", "EDDF"),
    _ap("MUC", "Munich Airport", "Munich", "Germany", 48.3537, 11.7750, "Europe/Berlin", "EDDM"),
    _ap("AMS", "Amsterdam Airport Schiphol", "Amsterdam", "Netherlands", 52.3105, 4.7683, "Europe/Amsterdam", "EHAM"),
    _ap("ZRH", "Zurich Airport", "Zurich", "Switzerland", 47.4647, 8.5492, "Europe/Zurich", "LSZH"),
    _ap("VIE", "Vienna International Airport", "Vienna", "Austria", 48.1103, 16.5697, "Europe/Vienna", "LOWW"),
    _ap("ARN", "Stockholm Arlanda Airport", "Stockholm", "Sweden", 59.6519, 17.9186, "Europe/Stockholm", "ESSA"),
    _ap("CPH", "Copenhagen Airport", "Copenhagen", "Denmark", 55.6180, 12.6561, "Europe/Copenhagen", "EKCH"),
    _ap("IST", "Istanbul Airport", "Istanbul", "Turkey", 41.2753, 28.7519, "Europe/Istanbul", "LTFM"),
    _ap("SVO", "Sheremetyevo International Airport", "Moscow", "Russia", 55.9726, 37.4146, "Europe/Moscow", "UUEE"),
    _ap("DXB", "Dubai International Airport", "Dubai", "United Arab Emirates", 25.2532, 55.3657, "Asia/Dubai", "OMDB"),
    _ap("DOH", "Hamad International Airport", "Doha", "Qatar", 25.2731, 51.6081, "Asia/Qatar", "OTHH"),
    _ap("DEL", "Indira Gandhi International Airport", "Delhi", "India", 28.5562, 77.1000, "Asia/Kolkata", "VIDP"),
    _ap("BOM", "Chhatrapati Shivaji Maharaj International Airport", "Mumbai", "India", 19.0896, 72.8656, "Asia/Kolkata", "VABB"),
    _ap("SIN", "Singapore Changi Airport", "Singapore", "Singapore", 1.3644, 103.9915, "Asia/Singapore", "WSSS"),
    _ap("HKG", "Hong Kong International Airport", "Hong Kong", "Hong Kong", 22.3080, 113.9185, "Asia/Hong_Kong", "VHHH"),
    _ap("PEK", "Beijing Capital International Airport", "Beijing", "China", 40.0799, 116.6031, "Asia/Shanghai", "ZBAA"),
    _ap("ICN", "Incheon International Airport", "Seoul", "South Korea", 37.4602, 126.4407, "Asia/Seoul", "RKSI"),
    _ap("NRT", "Narita International Airport", "Tokyo", "Japan", 35.7647, 140.3864, "Asia/Tokyo", "RJAA"),
    _ap("SYD", "Sydney Kingsford Smith Airport", "Sydney", "Australia", -33.9461, 151.1772, "Australia/Sydney", "YSSY"),
    _ap("GRU", "Sao Paulo-Guarulhos International Airport", "Sao Paulo", "Brazil", -23.4356, -46.4731, "America/Sao_Paulo", "SBGR"),
)

BUILTIN_AIRLINES: tuple[AirlineRecord, ...] = (
    _al("AA", "American Airlines", "AAL", "United States"),
    _al("DL", "Delta Air Lines", "DAL", "United States"),
    _al("UA", "United Airlines", "UAL", "United States"),
    _al("BA", "British Airways", "BAW", "United Kingdom"),
    _al("VS", "Virgin Atlantic", "VIR", "United Kingdom"),
    _al("LH", "Lufthansa", "DLH", "Germany"),
    _al("AF", "Air France", "AFR", "France"),
    _al("KL", "KLM Royal Dutch Airlines", "KLM", "Netherlands"),
    _al("LX", "Swiss International Air Lines", "SWR", "Switzerland"),
    _al("EK", "Emirates", "UAE", "United Arab Emirates"),
    _al("QR", "Qatar Airways", "QTR", "Qatar"),
    _al("SQ", "Singapore Airlines", "SIA", "Singapore"),
    _al("CX", "Cathay Pacific", "CPA", "Hong Kong"),
    _al("JL", "Japan Airlines", "JAL", "Japan"),
    _al("NH", "All Nippon Airways", "ANA", "Japan"),
    _al("TK", "Turkish Airlines", "THY", "Turkey"),
    _al("SU", "Aeroflot", "AFL", "Russia"),
    _al("AI", "Air India", "AIC", "India"),
    _al("ET", "Ethiopian Airlines", "ETH", "Ethiopia"),
    _al("AC", "Air Canada", "ACA", "Canada"),
    _al("QF", "Qantas", "QFA", "Australia"),
)

# Carriers considered relevant for a route touching the given country.
COUNTRY_AIRLINES: dict[str, tuple[str, ...]] = {
    "United States": ("AA", "DL", "UA"),
    "Canada": ("AC",),
    "United Kingdom": ("BA", "VS"),
    "France": ("AF",),
    "Germany": ("LH",),
    "Netherlands": ("KL",),
    "Switzerland": ("LX",),
    "Austria": ("LH",),
    "Sweden": ("LH",),
    "Denmark": ("LH",),
    "Turkey": ("TK",),
    "Russia": ("SU",),
    "United Arab Emirates": ("EK",),
    "Qatar": ("QR",),
    "India": ("AI",),
    "Singapore": ("SQ",),
    "Hong Kong": ("CX",),
    "China": ("CX",),
    "Japan": ("JL", "NH"),
    "South Korea": ("NH",),
    "Australia": ("QF",),
    "Brazil": ("AA",),
}

PREMIUM_AIRLINES: frozenset[str] = frozenset({"EK", "QR", "SQ", "CX", "NH", "LX"})


@dataclass(frozen=True)
class ReferenceCatalog:
    """Read-only airports/airlines reference data for one process.

    Build it once at startup (``builtin()``) and pass it to whatever needs
    it. Refreshing never mutates a catalog: ``refreshed()`` returns a new
    one and the owner swaps its reference.
    """

    airports: tuple[AirportRecord, ...]
    airlines: tuple[AirlineRecord, ...]
    _airports_by_code: dict[str, AirportRecord] = field(default_factory=dict, repr=False, compare=False)
    _airlines_by_code: dict[str, AirlineRecord] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        for airport in self.airports:
            self._airports_by_code.setdefault(airport.dedupe_key, airport)
        for airline in self.airlines:
            self._airlines_by_code.setdefault(airline.dedupe_key, airline)
            if airline.icao:
                self._airlines_by_code.setdefault(airline.icao.upper(), airline)

    @classmethod
    def builtin(cls) -> "ReferenceCatalog":
        return cls(airports=BUILTIN_AIRPORTS, airlines=BUILTIN_AIRLINES)

    def refreshed(
        self,
        airports: Sequence[AirportRecord] = (),
        airlines: Sequence[AirlineRecord] = (),
    ) -> "ReferenceCatalog":
        # live records first; the first copy of a code wins
        merged_airports = dedupe([*airports, *self.airports])
        merged_airlines = dedupe([*airlines, *self.airlines])
        logger.info("Catalog refreshed: %d airports, %d airlines", len(merged_airports), len(merged_airlines))
        return ReferenceCatalog(airports=tuple(merged_airports), airlines=tuple(merged_airlines))

    def airport(self, code: str) -> AirportRecord | None:
        return self._airports_by_code.get((code or "").strip().upper())

    def resolve_airport(self, text: str | None) -> AirportRecord | None:
        """Exact IATA code first, then a name/city substring match."""
        raw = (text or "").strip()
        if not raw:
            return None
        # "JFK - New York" style labels from the autocomplete
        head = raw.split(" - ")[0].strip()
        found = self.airport(head)
        if found:
            return found
        q = raw.lower()
        for airport in self.airports:
            if q in airport.city.lower() or q in airport.name.lower():
                return airport
        return None

    def require_airport(self, code: str) -> AirportRecord:
        code_u = (code or "").strip().upper()
        if not is_airport_code(code_u):
            raise NotFound("airport", code_u or code)
        airport = self.airport(code_u)
        if airport is None:
            raise NotFound("airport", code_u)
        return airport

    def find_airline(self, text: str | None) -> AirlineRecord | None:
        raw = (text or "").strip()
        if not raw:
            return None
        found = self._airlines_by_code.get(raw.split(" - ")[0].strip().upper())
        if found:
            return found
        q = raw.lower()
        for airline in self.airlines:
            if q in airline.name.lower():
                return airline
        return None

    def search_airports(self, query: str = "", country: str = "") -> list[AirportRecord]:
        return filter_records(self.airports, query, country)

    def search_airlines(self, query: str = "", country: str = "") -> list[AirlineRecord]:
        return filter_records(self.airlines, query, country)
