from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Sequence, TypeVar

from backend.flightlo.models import FlightRecord
from backend.flightlo.services.base import SearchCriteria, SourceAdapter


logger = logging.getLogger(__name__)

R = TypeVar("R")


def dedupe(records: Iterable[R]) -> list[R]:
    """Keep the first record per ``dedupe_key``; later copies are dropped as-is."""
    seen: set[str] = set()
    out = []
    for record in records:
        key = record.dedupe_key
        if key in seen:
            continue
        seen.add(key)
        out.append(record)
    return out


def filter_records(records: Iterable[R], query: str | None = None, country: str | None = None) -> list[R]:
    query = (query or "").strip()
    country = (country or "").strip()
    return [
        r for r in records
        if (not query or r.matches_query(query)) and (not country or r.matches_country(country))
    ]


def aggregate(
    adapter_results: Sequence[Sequence[R]],
    query: str | None = None,
    country: str | None = None,
    limit: int | None = None,
) -> list[R]:
    merged = dedupe(r for results in adapter_results for r in results)
    filtered = filter_records(merged, query, country)
    return filtered if limit is None else filtered[:max(0, limit)]


def relevance_score(
    flight: FlightRecord,
    origin: str | None = None,
    destination: str | None = None,
    airline: str | None = None,
) -> int:
    score = 0
    if origin and flight.departure is not None and flight.departure.matches(origin):
        score += 10
    if destination and flight.arrival is not None and flight.arrival.matches(destination):
        score += 10
    if airline:
        q = airline.lower()
        if q in flight.airline_name.lower() or q == flight.airline_code.lower():
            score += 10
    if flight.departure is not None and flight.arrival is not None:
        score += 5
    return score


def rank_by_relevance(
    flights: Iterable[FlightRecord],
    origin: str | None = None,
    destination: str | None = None,
    airline: str | None = None,
) -> list[FlightRecord]:
    # sorted() is stable, so ties keep their incoming order
    return sorted(flights, key=lambda f: relevance_score(f, origin, destination, airline), reverse=True)


async def collect(
    adapters: Sequence[SourceAdapter[R]],
    criteria: SearchCriteria | None = None,
    timeout: float = 8.0,
) -> list[list[R]]:
    """Run every adapter in a worker thread and wait for all of them.

    Returns one list per adapter, in adapter order. A timeout or an
    exception from any adapter becomes an empty list for that slot.
    """

    async def run(adapter: SourceAdapter[R]) -> list[R]:
        return await asyncio.wait_for(asyncio.to_thread(adapter.fetch, criteria), timeout=timeout)

    settled = await asyncio.gather(*(run(a) for a in adapters), return_exceptions=True)

    results: list[list[R]] = []
    for adapter, outcome in zip(adapters, settled):
        if isinstance(outcome, asyncio.TimeoutError):
            logger.warning("%s timed out after %.1fs", adapter.name, timeout)
            results.append([])
        elif isinstance(outcome, BaseException):
            logger.warning("%s failed: %r", adapter.name, outcome)
            results.append([])
        else:
            results.append(list(outcome))
    logger.info("Collected %s", ", ".join(f"{a.name}={len(r)}" for a, r in zip(adapters, results)))
    return results
