from __future__ import annotations

import logging
from typing import Any

import requests

from backend.flightlo.errors import FetchError, NetworkFailure
from backend.flightlo.models import AirlineRecord, AirportRecord, Provenance, is_airline_code, is_airport_code
from backend.flightlo.services.base import SearchCriteria, SourceAdapter, as_float, as_text


logger = logging.getLogger(__name__)


class AmadeusReference(SourceAdapter[AirlineRecord]):
    """Amadeus self-service reference data (airlines, single-airport lookups)."""

    name = "amadeus"
    ttl_seconds = 3600
    max_records = 100

    @property
    def configured(self) -> bool:
        return self.settings.amadeus_configured

    def _token(self) -> str:
        if self.cache is not None:
            cached = self.cache.get(("amadeus_token",))
            if isinstance(cached, str) and cached:
                return cached

        token_url = f"https://{self.settings.amadeus_host}/v1/security/oauth2/token"
        data = {
            "grant_type": "client_credentials",
            "client_id": self.settings.amadeus_client_id,
            "client_secret": self.settings.amadeus_client_secret,
        }
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        resp = requests.post(token_url, headers=headers, data=data, timeout=self.settings.fetch_timeout_seconds)
        resp.raise_for_status()
        payload = resp.json()

        token = payload.get("access_token")
        expires_in = int(payload.get("expires_in", 1800))
        if not token:
            raise NetworkFailure(self.name, "auth failed: missing access_token")

        if self.cache is not None:
            self.cache.set(("amadeus_token",), token, ttl_seconds=max(30, expires_in - 30))
        return token

    def _fetch(self, criteria: SearchCriteria) -> list[AirlineRecord]:
        if not self.configured:
            return []
        payload = self._get_json(
            f"https://{self.settings.amadeus_host}/v1/reference-data/airlines",
            headers={"Authorization": f"Bearer {self._token()}", "Accept": "application/json"},
        )
        data = (payload or {}).get("data") or []
        airlines: list[AirlineRecord] = []
        for item in data[: self.max_records]:
            if not isinstance(item, dict):
                continue
            code = as_text(item.get("iataCode")).upper()
            name = as_text(item.get("businessName") or item.get("commonName"))
            if not is_airline_code(code) or not name:
                continue
            airlines.append(
                AirlineRecord(
                    code=code,
                    name=name,
                    icao=as_text(item.get("icaoCode")) or None,
                    country=as_text(item.get("country")) or None,
                    source=Provenance.AMADEUS,
                )
            )
        return airlines

    def lookup_airport(self, code: str) -> AirportRecord | None:
        """Live fallback for codes missing from the catalog. Never raises."""
        code_u = (code or "").strip().upper()
        if not self.configured or not is_airport_code(code_u):
            return None
        try:
            return self._lookup_airport(code_u)
        except (requests.RequestException, FetchError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("%s airport lookup for %s failed: %s", self.name, code_u, e)
            return None

    def _lookup_airport(self, code: str) -> AirportRecord | None:
        cache_key = ("amadeus_airport", code)
        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if isinstance(cached, AirportRecord):
                return cached

        payload = self._get_json(
            f"https://{self.settings.amadeus_host}/v1/reference-data/locations",
            params={"subType": "AIRPORT", "keyword": code, "page[limit]": 10},
            headers={"Authorization": f"Bearer {self._token()}"},
        )
        data = (payload or {}).get("data") or []
        best = next((item for item in data if as_text(item.get("iataCode")).upper() == code), None)
        if best is None:
            return None

        geo = best.get("geoCode") or {}
        address: dict[str, Any] = best.get("address") or {}
        airport = AirportRecord(
            code=code,
            name=as_text(best.get("name")) or code,
            city=as_text(address.get("cityName") or address.get("cityCode")) or code,
            country=as_text(address.get("countryName") or address.get("countryCode")),
            lat=as_float(geo.get("latitude")),
            lon=as_float(geo.get("longitude")),
            source=Provenance.AMADEUS,
        )
        if self.cache is not None:
            self.cache.set(cache_key, airport, ttl_seconds=86400)
        return airport
