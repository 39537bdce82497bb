from __future__ import annotations

from datetime import date, datetime, timezone
import logging
from typing import Any, Sequence

from fastapi import FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from backend.flightlo.cache import ResponseCache
from backend.flightlo.catalog import ReferenceCatalog
from backend.flightlo.config import Settings, settings
from backend.flightlo.errors import FlightloError, NotFound, ValidationFailure
from backend.flightlo.models import AirportRecord, FlightRecord, Provenance, to_payload
from backend.flightlo.services.aggregator import aggregate, collect, dedupe, rank_by_relevance
from backend.flightlo.services.airport_codes import AirportCodesAdapter
from backend.flightlo.services.amadeus import AmadeusReference
from backend.flightlo.services.aviationstack import AviationStackFlights
from backend.flightlo.services.base import SearchCriteria, SourceAdapter
from backend.flightlo.services.flightstats import FlightStatsAirlines
from backend.flightlo.services.generator import FlightGenerator, airport_statistics
from backend.flightlo.services.geonames import GeonamesAdapter
from backend.flightlo.services.openflights import OpenFlightsAirlines, OpenFlightsAirports
from backend.flightlo.services.opensky import OpenSkyFlights


logging.basicConfig(level=settings.log_level, format="%(levelname)s: %(name)s: %(message)s")
logger = logging.getLogger(__name__)


app = FastAPI(title="Flightlo", version="0.1.0")
app.state.settings = settings
app.state.catalog = ReferenceCatalog.builtin()


cache: ResponseCache[Any] = ResponseCache(default_ttl_seconds=settings.cache_ttl_seconds)


def _settings() -> Settings:
    return app.state.settings


def _catalog() -> ReferenceCatalog:
    return app.state.catalog


# Adapter order is the dedupe priority order.
def _airport_adapters() -> list[SourceAdapter[AirportRecord]]:
    s = _settings()
    return [
        OpenFlightsAirports(settings=s, cache=cache),
        AirportCodesAdapter(settings=s, cache=cache),
        GeonamesAdapter(settings=s, cache=cache),
    ]


def _airline_adapters() -> list[SourceAdapter[Any]]:
    s = _settings()
    return [
        OpenFlightsAirlines(settings=s, cache=cache),
        FlightStatsAirlines(settings=s, cache=cache),
        AmadeusReference(settings=s, cache=cache),
    ]


def _flight_adapters(catalog: ReferenceCatalog) -> list[SourceAdapter[FlightRecord]]:
    s = _settings()
    return [
        OpenSkyFlights(settings=s, catalog=catalog, cache=cache),
        AviationStackFlights(settings=s, catalog=catalog, cache=cache),
    ]


class FlightSearchQuery(BaseModel):
    origin: str | None = Field(None, max_length=100)
    destination: str | None = Field(None, max_length=100)
    airline: str | None = Field(None, max_length=100)
    country: str | None = Field(None, max_length=100)
    departure_date: date | None = Field(None, description="YYYY-MM-DD")

    @field_validator("origin", "destination", "airline", "country", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @model_validator(mode="after")
    def require_criteria(self) -> "FlightSearchQuery":
        if not (self.origin or self.destination or self.airline):
            raise ValueError("Provide at least one of origin, destination or airline")
        return self

    def criteria(self) -> SearchCriteria:
        return SearchCriteria(
            origin=self.origin,
            destination=self.destination,
            airline=self.airline,
            country=self.country,
        )


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _source_counts(adapters: Sequence[SourceAdapter[Any]], results: Sequence[Sequence[Any]]) -> dict[str, int]:
    return {a.name: len(r) for a, r in zip(adapters, results)}


def _listing(
    kind: str,
    adapters: Sequence[SourceAdapter[Any]],
    results: list[list[Any]],
    matched: Sequence[Any],
    query: str,
    country: str,
    limit: int | None,
) -> Any:
    s = _settings()
    live_total = sum(len(r) for r in results)
    records = aggregate([*results, list(matched)], query, country, limit or s.default_list_limit)

    sources = _source_counts(adapters, results)
    sources[Provenance.CATALOG] = len(matched)
    logger.info("%s: %s -> %d records", kind, sources, len(records))

    if not records and not live_total:
        if s.fail_on_empty_live_data:
            return JSONResponse(status_code=503, content={"error": "Live data unavailable", kind: []})
        source = "none"
    elif live_total:
        source = "live-apis"
    else:
        source = Provenance.CATALOG

    return {
        kind: [to_payload(r) for r in records],
        "source": source,
        "sources": sources,
        "timestamp": _now(),
        "count": len(records),
    }


def _require_airport(code: str) -> AirportRecord:
    try:
        return _catalog().require_airport(code)
    except NotFound:
        # Amadeus knows many codes the small catalog does not
        if _settings().amadeus_configured:
            found = AmadeusReference(settings=_settings(), cache=cache).lookup_airport(code)
            if found:
                return found
        raise


@app.exception_handler(ValidationFailure)
async def _validation_failure(request: Request, exc: ValidationFailure) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(RequestValidationError)
async def _request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"detail": detail})


@app.exception_handler(NotFound)
async def _not_found(request: Request, exc: NotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(FlightloError)
async def _flightlo_error(request: Request, exc: FlightloError) -> JSONResponse:
    logger.warning("Unhandled %s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Upstream data error"})


@app.exception_handler(Exception)
async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unexpected error on %s", request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/airports")
async def airports(
    query: str = Query("", max_length=100),
    country: str = Query("", max_length=100),
    limit: int | None = Query(None, ge=1, le=1000),
) -> Any:
    adapters = _airport_adapters()
    results = await collect(adapters, timeout=_settings().fetch_timeout_seconds)
    matched = _catalog().search_airports(query, country)
    return _listing("airports", adapters, results, matched, query.strip(), country.strip(), limit)


@app.get("/airlines")
async def airlines(
    query: str = Query("", max_length=100),
    country: str = Query("", max_length=100),
    limit: int | None = Query(None, ge=1, le=1000),
) -> Any:
    adapters = _airline_adapters()
    results = await collect(adapters, timeout=_settings().fetch_timeout_seconds)
    matched = _catalog().search_airlines(query, country)
    return _listing("airlines", adapters, results, matched, query.strip(), country.strip(), limit)


@app.get("/airports/{code}")
def airport_detail(code: str) -> dict[str, Any]:
    airport = _require_airport(code)
    board = FlightGenerator(_catalog()).departure_board(airport, datetime.now(), _settings().departure_board_size)
    return {
        "airport": to_payload(airport),
        "statistics": airport_statistics(airport),
        "departures": [to_payload(f) for f in board],
        "source": airport.source,
    }


@app.get("/flights/search")
async def search_flights(
    origin: str | None = None,
    destination: str | None = None,
    airline: str | None = None,
    country: str | None = None,
    departure_date: str | None = Query(None, alias="date"),
) -> dict[str, Any]:
    try:
        search = FlightSearchQuery(
            origin=origin,
            destination=destination,
            airline=airline,
            country=country,
            departure_date=departure_date,
        )
    except ValidationError as e:
        errors = e.errors()
        raise ValidationFailure(errors[0]["msg"] if errors else "Invalid search") from e

    s = _settings()
    catalog = _catalog()
    adapters = _flight_adapters(catalog)
    results = await collect(adapters, search.criteria(), timeout=s.fetch_timeout_seconds)
    sources = _source_counts(adapters, results)

    live = any(not f.simulated for batch in results for f in batch)
    generated: list[FlightRecord] = []
    if not live:
        generated = FlightGenerator(catalog, count=s.generated_flight_count).generate(
            search.origin,
            search.destination,
            search.departure_date,
            airline=search.airline,
            country=search.country,
        )
        sources[Provenance.GENERATOR] = len(generated)

    flights = aggregate([*results, generated], country=search.country)
    flights = rank_by_relevance(flights, search.origin, search.destination, search.airline)[: s.search_result_limit]
    logger.info("flights: %s -> %d records", sources, len(flights))

    source = "live-apis" if live else "simulated"
    return {
        "flights": [to_payload(f) for f in flights],
        "source": source,
        "sources": sources,
        "simulated": not live,
        "timestamp": _now(),
        "count": len(flights),
    }


@app.post("/catalog/refresh")
async def refresh_catalog() -> dict[str, Any]:
    s = _settings()
    airport_adapters = _airport_adapters()
    airline_adapters = _airline_adapters()
    for adapter in (*airport_adapters, *airline_adapters):
        cache.invalidate(adapter.name)

    airport_results = await collect(airport_adapters, timeout=s.fetch_timeout_seconds)
    airline_results = await collect(airline_adapters, timeout=s.fetch_timeout_seconds)

    current = _catalog()
    refreshed = current.refreshed(
        dedupe(a for batch in airport_results for a in batch),
        dedupe(a for batch in airline_results for a in batch),
    )
    app.state.catalog = refreshed
    return {
        "airports": len(refreshed.airports),
        "airlines": len(refreshed.airlines),
        "sources": {
            **_source_counts(airport_adapters, airport_results),
            **_source_counts(airline_adapters, airline_results),
        },
        "timestamp": _now(),
    }
