#!/usr/bin/env python3
"""
Xeno-canto lookup module for Bird Song Explorer.

Finds a playable bird-song recording for a species and downloads it.
API v3 requires a key: set XENO_CANTO_API_KEY.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from birdsong.config import HTTP_TIMEOUT_SECONDS, XENO_CANTO_API_KEY
from birdsong.content_generator.helpers import log
from birdsong.errors import NotFound, UpstreamUnavailable

XENO_CANTO_BASE_URL = "https://xeno-canto.org/api/3"

PREFERRED_TYPES = ("song", "call")
MIN_PREFERRED_SECONDS = 15
MAX_PREFERRED_SECONDS = 60


@dataclass(frozen=True)
class Recording:
    """A Xeno-canto recording with a ready-to-fetch file URL."""
    recording_id: str
    file_url: str
    english_name: str = ""
    genus: str = ""
    species: str = ""
    recordist: str = ""
    country: str = ""
    sound_type: str = ""
    length: str = ""
    quality: str = ""
    page_url: str = ""
    license: str = ""

    @property
    def attribution(self) -> str:
        return f"{self.recordist}, XC{self.recording_id}, {self.license}, {self.page_url}"

    @property
    def duration_seconds(self) -> int:
        return parse_length(self.length)


def parse_length(length: str) -> int:
    """'1:05' -> 65. Anything else -> 0."""
    parts = length.split(":")
    if len(parts) != 2:
        return 0
    try:
        return int(parts[0]) * 60 + int(parts[1])
    except ValueError:
        return 0


def _https(url: str) -> str:
    if url.startswith("//"):
        return "https:" + url
    return url


def _recording(raw: dict[str, Any]) -> Recording:
    return Recording(
        recording_id=str(raw.get("id", "")),
        file_url=_https(raw.get("file", "")),
        english_name=raw.get("en", ""),
        genus=raw.get("gen", ""),
        species=raw.get("sp", ""),
        recordist=raw.get("rec", ""),
        country=raw.get("cnt", ""),
        sound_type=raw.get("type", ""),
        length=raw.get("length", ""),
        quality=raw.get("q", ""),
        page_url=_https(raw.get("url", "")),
        license=_https(raw.get("lic", "")),
    )


def build_query(name: str, quality: str = "") -> str:
    """Scientific names ('Turdus migratorius') search by genus/species tags,
    anything else searches the English name."""
    parts = name.split()
    if len(parts) == 2 and parts[0][:1].isupper() and parts[1].islower():
        query = f"gen:{parts[0]} sp:{parts[1]}"
    else:
        query = f'en:"{name}"'
    if quality:
        query = f"{query} q:{quality}"
    return query


def choose_recording(recordings: list[Recording]) -> Recording:
    """First song or call recording 15-60 s long, else the first recording."""
    for rec in recordings:
        if rec.sound_type in PREFERRED_TYPES and MIN_PREFERRED_SECONDS <= rec.duration_seconds <= MAX_PREFERRED_SECONDS:
            return rec
    return recordings[0]


class XenoCantoClient:
    """Audio-source lookup backed by the Xeno-canto API."""

    def __init__(
        self,
        api_key: str = XENO_CANTO_API_KEY,
        client: Optional[httpx.Client] = None,
        base_url: str = XENO_CANTO_BASE_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)

    def search_recordings(self, name: str, quality: str = "") -> list[Recording]:
        params = {"query": build_query(name, quality)}
        if self.api_key:
            params["key"] = self.api_key
        try:
            response = self._client.get(f"{self.base_url}/recordings", params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailable(f"Xeno-canto search for {name} failed: {exc}") from exc
        return [_recording(raw) for raw in data.get("recordings") or [] if raw.get("file")]

    def best_recording(self, name: str) -> Recording:
        """Quality A first, then any quality. Raises NotFound when nothing matches."""
        recordings = self.search_recordings(name, "A")
        if not recordings:
            recordings = self.search_recordings(name)
        if not recordings:
            raise NotFound(f"no recordings found for {name}")
        best = choose_recording(recordings)
        log(f"[XENO_CANTO] {name}: XC{best.recording_id} ({best.sound_type}, {best.length})")
        return best

    def download(self, url: str) -> bytes:
        try:
            response = self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"download of {url} failed: {exc}") from exc
        return response.content

    def close(self) -> None:
        self._client.close()
