from __future__ import annotations

from dataclasses import dataclass
import os

from dotenv import load_dotenv


load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class Settings:
    log_level: str = os.getenv("FLIGHTLO_LOG_LEVEL", "INFO")
    user_agent: str = os.getenv("FLIGHTLO_USER_AGENT", "FlightTracker/1.0")

    fetch_timeout_seconds: float = float(os.getenv("FETCH_TIMEOUT_SECONDS", "8"))
    cache_ttl_seconds: int = int(os.getenv("CACHE_TTL_SECONDS", "600"))

    search_result_limit: int = int(os.getenv("SEARCH_RESULT_LIMIT", "15"))
    default_list_limit: int = int(os.getenv("DEFAULT_LIST_LIMIT", "100"))
    generated_flight_count: int = int(os.getenv("GENERATED_FLIGHT_COUNT", "8"))
    departure_board_size: int = int(os.getenv("DEPARTURE_BOARD_SIZE", "10"))
    # 503 instead of an empty 200 when nothing at all could be loaded
    fail_on_empty_live_data: bool = _env_bool("FAIL_ON_EMPTY_LIVE_DATA")

    opensky_url: str = os.getenv("OPENSKY_URL", "https://opensky-network.org/api/states/all")
    opensky_max_states: int = int(os.getenv("OPENSKY_MAX_STATES", "10"))

    openflights_airports_url: str = os.getenv(
        "OPENFLIGHTS_AIRPORTS_URL",
        "https://raw.githubusercontent.com/jpatokal/openflights/master/data/airports.dat",
    )
    openflights_airlines_url: str = os.getenv(
        "OPENFLIGHTS_AIRLINES_URL",
        "https://raw.githubusercontent.com/jpatokal/openflights/master/data/airlines.dat",
    )
    openflights_airport_rows: int = int(os.getenv("OPENFLIGHTS_AIRPORT_ROWS", "1000"))
    openflights_airline_rows: int = int(os.getenv("OPENFLIGHTS_AIRLINE_ROWS", "500"))

    airport_codes_url: str = os.getenv("AIRPORT_CODES_URL", "https://api.airport-codes.org/airports")

    geonames_url: str = os.getenv("GEONAMES_URL", "http://api.geonames.org/searchJSON")
    geonames_username: str = os.getenv("GEONAMES_USERNAME", "demo")

    aviationstack_url: str = os.getenv("AVIATIONSTACK_URL", "http://api.aviationstack.com/v1/flights")
    aviationstack_key: str | None = os.getenv("AVIATIONSTACK_KEY")

    flightstats_url: str = os.getenv(
        "FLIGHTSTATS_URL", "https://api.flightstats.com/flex/airlines/rest/v1/json/all"
    )

    amadeus_host: str = os.getenv("AMADEUS_HOST", "test.api.amadeus.com")
    amadeus_client_id: str | None = os.getenv("AMADEUS_CLIENT_ID")
    amadeus_client_secret: str | None = os.getenv("AMADEUS_CLIENT_SECRET")

    @property
    def amadeus_configured(self) -> bool:
        return bool(self.amadeus_client_id and self.amadeus_client_secret)


settings = Settings()
