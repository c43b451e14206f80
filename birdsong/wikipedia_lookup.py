#!/usr/bin/env python3
"""
Wikipedia lookup module for Bird Song Explorer.

Page summaries from Simple English Wikipedia (kid-friendly) with English
Wikipedia as the fallback. A missing summary is never fatal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import httpx

from birdsong.config import HTTP_TIMEOUT_SECONDS
from birdsong.content_generator.helpers import log
from birdsong.errors import NotFound, UpstreamUnavailable

SIMPLE_WIKI_URL = "https://simple.wikipedia.org/api/rest_v1"
ENGLISH_WIKI_URL = "https://en.wikipedia.org/api/rest_v1"
USER_AGENT = "BirdSongExplorer/1.0 (daily bird program for kids)"

MAX_KID_SENTENCES = 5
MAX_SENTENCE_CHARS = 250
TECHNICAL_WORDS = ("genus", "taxonomy", "subspecies", "binomial", "phylogen")

KID_FRIENDLY_PHRASES = (
    (" is a species of bird", " is a type of bird"),
    (" are a species of bird", " are a type of bird"),
    ("It is found", "You can find them"),
    ("They are found", "You can find them"),
    ("It inhabits", "They live in"),
    ("They inhabit", "They live in"),
    ("endemic to", "only found in"),
)

_SCIENTIFIC_RE = re.compile(r"\(([A-Z][a-z]+ [a-z]+)\)")


@dataclass(frozen=True)
class PageSummary:
    title: str
    extract: str
    page_url: str = ""
    description: str = ""


def generic_description(bird_name: str) -> str:
    return (
        f"The {bird_name} is an amazing bird! Scientists and bird watchers love "
        "studying this species to learn more about how birds live in nature."
    )


def format_for_kids(summary: PageSummary | None, bird_name: str) -> str:
    """Up to five short, non-technical sentences in plainer words."""
    if summary is None or not summary.extract:
        return generic_description(bird_name)

    kept = []
    for sentence in summary.extract.split(". "):
        if len(kept) >= MAX_KID_SENTENCES:
            break
        sentence = sentence.strip()
        if not sentence or len(sentence) >= MAX_SENTENCE_CHARS:
            continue
        if any(word in sentence.lower() for word in TECHNICAL_WORDS):
            continue
        if not sentence.endswith("."):
            sentence += "."
        kept.append(sentence)

    if not kept:
        return generic_description(bird_name)

    text = " ".join(kept)
    for old, new in KID_FRIENDLY_PHRASES:
        text = text.replace(old, new)
    return text


def extract_scientific_name(text: str) -> str:
    """'The American robin (Turdus migratorius) is...' -> 'Turdus migratorius'."""
    match = _SCIENTIFIC_RE.search(text)
    return match.group(1) if match else ""


class WikipediaClient:
    """Encyclopedia lookup backed by the Wikipedia REST API."""

    def __init__(
        self,
        client: Optional[httpx.Client] = None,
        simple_url: str = SIMPLE_WIKI_URL,
        english_url: str = ENGLISH_WIKI_URL,
        timeout: float = HTTP_TIMEOUT_SECONDS,
    ):
        self.simple_url = simple_url.rstrip("/")
        self.english_url = english_url.rstrip("/")
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )

    def _fetch(self, base_url: str, name: str) -> PageSummary | None:
        title = quote(name.replace(" ", "_"))
        try:
            response = self._client.get(f"{base_url}/page/summary/{title}")
            if response.status_code == 404:
                return None
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise UpstreamUnavailable(f"Wikipedia summary for {name} failed: {exc}") from exc
        return PageSummary(
            title=data.get("title", name),
            extract=data.get("extract", ""),
            page_url=data.get("content_urls", {}).get("desktop", {}).get("page", ""),
            description=data.get("description", ""),
        )

    def summary(self, name: str) -> PageSummary:
        """Simple Wikipedia first, English second. Raises NotFound if neither has text."""
        try:
            simple = self._fetch(self.simple_url, name)
        except UpstreamUnavailable as exc:
            log(f"[WIKIPEDIA] Simple Wikipedia unavailable for {name}: {exc}")
            simple = None
        if simple is not None and simple.extract:
            return simple

        english = self._fetch(self.english_url, name)
        if english is None or not english.extract:
            raise NotFound(f"no Wikipedia summary for {name}")
        return english

    def close(self) -> None:
        self._client.close()
