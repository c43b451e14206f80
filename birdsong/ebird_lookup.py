#!/usr/bin/env python3
"""
eBird lookup module for Bird Song Explorer.

Recent observations around a point, and species taxonomy by code.

AUTHENTICATION REQUIRED:
Set EBIRD_API_KEY to a key from https://ebird.org/api/keygen
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from birdsong.config import EBIRD_API_KEY, HTTP_TIMEOUT_SECONDS
from birdsong.content_generator.helpers import log
from birdsong.errors import UpstreamUnavailable

EBIRD_BASE_URL = "https://api.ebird.org/v2"
MAX_RESULTS = 100


@dataclass(frozen=True)
class Observation:
    """One recent sighting. Transient, never persisted."""
    species_code: str
    common_name: str
    scientific_name: str
    latitude: float = 0.0
    longitude: float = 0.0
    obs_date: str = ""
    location_name: str = ""
    how_many: int = 0


@dataclass(frozen=True)
class SpeciesInfo:
    species_code: str
    common_name: str
    scientific_name: str
    family: str = ""
    order: str = ""


def _observation(raw: dict[str, Any]) -> Observation:
    return Observation(
        species_code=raw.get("speciesCode", ""),
        common_name=raw.get("comName", ""),
        scientific_name=raw.get("sciName", ""),
        latitude=float(raw.get("lat") or 0.0),
        longitude=float(raw.get("lng") or 0.0),
        obs_date=raw.get("obsDt", ""),
        location_name=raw.get("locName", ""),
        how_many=int(raw.get("howMany") or 0),
    )


class EBirdClient:
    """Observation source backed by the eBird API."""

    def __init__(
        self,
        api_key: str = EBIRD_API_KEY,
        client: Optional[httpx.Client] = None,
        base_url: str = EBIRD_BASE_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        try:
            response = self._client.get(
                f"{self.base_url}{path}",
                params=params,
                headers={"X-eBirdApiToken": self.api_key},
            )
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailable(f"eBird {path} failed: {exc}") from exc

    def recent_observations(self, latitude: float, longitude: float, radius_km: int, days: int) -> list[Observation]:
        """Recent observations, in upstream order. An empty list is a normal answer."""
        data = self._get(
            "/data/obs/geo/recent",
            {
                "lat": f"{latitude:.4f}",
                "lng": f"{longitude:.4f}",
                "dist": radius_km,
                "back": days,
                "maxResults": MAX_RESULTS,
            },
        )
        if not isinstance(data, list):
            raise UpstreamUnavailable(f"eBird returned unexpected payload: {type(data).__name__}")
        observations = [_observation(item) for item in data if item.get("speciesCode")]
        log(f"[EBIRD] {len(observations)} observations within {radius_km}km over {days} days")
        return observations

    def species_info(self, species_code: str) -> SpeciesInfo | None:
        data = self._get("/ref/taxonomy/ebird", {"species": species_code, "fmt": "json"})
        if not data:
            return None
        raw = data[0]
        return SpeciesInfo(
            species_code=raw.get("speciesCode", species_code),
            common_name=raw.get("comName", ""),
            scientific_name=raw.get("sciName", ""),
            family=raw.get("familyComName", ""),
            order=raw.get("order", ""),
        )

    def close(self) -> None:
        self._client.close()
