#!/usr/bin/env python3
"""
Bird Song Explorer regional bird resolver

Cascading search for today's local bird:
1. widen (radius, days) tiers until one returns observations
2. keep the first observation per species code, in upstream order
3. try up to five random species until one has a playable recording
4. otherwise fall back to the global list, rotated by day of year

Only a global list where no entry has any recording raises
ExhaustedFallback. Every other upstream failure is logged and degrades.
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Protocol

from birdsong.config import ExplorerConfig, FallbackBird
from birdsong.content_generator.helpers import clean_description_text, log
from birdsong.daily import fallback_day_index
from birdsong.ebird_lookup import Observation, SpeciesInfo
from birdsong.errors import ExhaustedFallback, NotFound, UpstreamUnavailable
from birdsong.location import Location
from birdsong.wikipedia_lookup import PageSummary, extract_scientific_name, format_for_kids
from birdsong.xenocanto_lookup import Recording

MAX_ATTEMPTS = 5
MAX_FACTS = 5

KNOWN_SCIENTIFIC_NAMES = {
    # North America
    "American Robin": "Turdus migratorius",
    "Northern Cardinal": "Cardinalis cardinalis",
    "Blue Jay": "Cyanocitta cristata",
    "Mourning Dove": "Zenaida macroura",
    "Cedar Waxwing": "Bombycilla cedrorum",
    "Nashville Warbler": "Leiothlypis ruficapilla",
    "Great Blue Heron": "Ardea herodias",
    "House Finch": "Haemorhous mexicanus",
    "Common Nighthawk": "Chordeiles minor",
    "Stilt Sandpiper": "Calidris himantopus",
    "Vaux's Swift": "Chaetura vauxi",
    "Williamson's Sapsucker": "Sphyrapicus thyroideus",
    # Europe
    "European Robin": "Erithacus rubecula",
    "Great Tit": "Parus major",
    "Common Blackbird": "Turdus merula",
    # Widespread
    "House Sparrow": "Passer domesticus",
    "Barn Swallow": "Hirundo rustica",
    "Mallard": "Anas platyrhynchos",
    "Rock Pigeon": "Columba livia",
    # Australia
    "Australian Magpie": "Gymnorhina tibicen",
    "Rainbow Lorikeet": "Trichoglossus moluccanus",
}

GENERIC_FACTS = (
    "Listen carefully to hear its distinctive call!",
    "Birds use songs to communicate with each other.",
    "Every bird species has its own unique song pattern.",
    "Bird songs are loudest during the early morning hours.",
)


class ObservationSource(Protocol):
    def recent_observations(self, latitude: float, longitude: float, radius_km: int, days: int) -> list[Observation]: ...


class TaxonomySource(Protocol):
    def species_info(self, species_code: str) -> SpeciesInfo | None: ...


class RecordingSource(Protocol):
    def best_recording(self, name: str) -> Recording: ...


class EncyclopediaSource(Protocol):
    def summary(self, name: str) -> PageSummary: ...


@dataclass
class Bird:
    common_name: str
    scientific_name: str = ""
    family: str = ""
    order: str = ""
    region: str = ""
    audio_url: str = ""
    audio_attribution: str = ""
    description: str = ""
    wikipedia_url: str = ""
    facts: list[str] = field(default_factory=list)
    latitude: float = 0.0
    longitude: float = 0.0
    source: str = "regional"


def dedupe_species(observations: list[Observation]) -> list[Observation]:
    """First observation per species code wins; upstream order is kept."""
    unique: dict[str, Observation] = {}
    for obs in observations:
        unique.setdefault(obs.species_code, obs)
    return list(unique.values())


def generate_bird_facts(bird: Bird) -> list[str]:
    facts = []
    if bird.scientific_name:
        facts.append(f"The {bird.common_name}'s scientific name is {bird.scientific_name}.")
    if bird.family:
        facts.append(f"It belongs to the {bird.family} family.")
    if bird.region:
        facts.append(f"This bird can be found in {bird.region}.")
    for fact in GENERIC_FACTS:
        if len(facts) >= MAX_FACTS:
            break
        facts.append(fact)
    return facts


def known_scientific_name(common_name: str) -> str:
    return KNOWN_SCIENTIFIC_NAMES.get(common_name, "")


class RegionalBirdResolver:
    """Turns a location and a day into a bird with a playable recording."""

    def __init__(
        self,
        observations: ObservationSource,
        recordings: RecordingSource,
        encyclopedia: EncyclopediaSource,
        config: ExplorerConfig,
        taxonomy: Optional[TaxonomySource] = None,
        rng: Optional[random.Random] = None,
        max_attempts: int = MAX_ATTEMPTS,
    ):
        self.observations = observations
        self.recordings = recordings
        self.encyclopedia = encyclopedia
        self.config = config
        self.taxonomy = taxonomy
        # Candidate retry order only; day-seeded picks never touch this.
        self.rng = rng or random.Random()
        self.max_attempts = max_attempts

    def _search_tiers(self, location: Location) -> list[Observation]:
        for tier in self.config.search_tiers:
            log(f"[BIRD_SELECTOR] Trying {tier.label} search near {location.city or 'location'}")
            try:
                found = self.observations.recent_observations(
                    location.latitude, location.longitude, tier.radius_km, tier.days
                )
            except UpstreamUnavailable as exc:
                log(f"[BIRD_SELECTOR] Observation source error for {tier.label} search: {exc}")
                continue
            if found:
                log(f"[BIRD_SELECTOR] Found {len(found)} observations with {tier.label} search")
                return found
            log(f"[BIRD_SELECTOR] No observations found with {tier.label} search")
        return []

    def resolve(self, location: Location, day: date) -> Bird:
        log(
            f"[BIRD_SELECTOR] Starting bird selection for {location.city or 'unknown'} "
            f"(lat: {location.latitude:.4f}, lng: {location.longitude:.4f})"
        )
        observations = self._search_tiers(location)
        if not observations:
            log("[BIRD_SELECTOR] No observations found after all attempts, using global fallback")
            return self.fallback_bird(day)

        pool = dedupe_species(observations)
        log(f"[BIRD_SELECTOR] Found {len(pool)} unique species to choose from")

        for attempt in range(1, self.max_attempts + 1):
            if not pool:
                break
            idx = self.rng.randrange(len(pool))
            candidate = pool[idx]
            log(
                f"[BIRD_SELECTOR] Trying bird {attempt}/{self.max_attempts}: "
                f"{candidate.common_name} (Scientific: {candidate.scientific_name})"
            )
            try:
                recording = self.recordings.best_recording(candidate.scientific_name)
            except (NotFound, UpstreamUnavailable) as exc:
                log(f"[BIRD_SELECTOR] No recording for {candidate.common_name}: {exc}")
                pool.pop(idx)
                continue

            bird = Bird(
                common_name=candidate.common_name,
                scientific_name=candidate.scientific_name,
                region=location.region,
                audio_url=recording.file_url,
                audio_attribution=recording.attribution,
                latitude=location.latitude,
                longitude=location.longitude,
            )
            self._add_taxonomy(bird, candidate.species_code)
            bird.facts = generate_bird_facts(bird)
            self.enrich(bird)
            log(f"[BIRD_SELECTOR] Selected {bird.common_name} with audio URL: {bird.audio_url}")
            return bird

        log("[BIRD_SELECTOR] No candidate had a playable recording, using global fallback")
        return self.fallback_bird(day)

    def _add_taxonomy(self, bird: Bird, species_code: str) -> None:
        if self.taxonomy is None:
            return
        try:
            info = self.taxonomy.species_info(species_code)
        except UpstreamUnavailable as exc:
            log(f"[BIRD_SELECTOR] Taxonomy lookup failed for {species_code}: {exc}")
            return
        if info is not None:
            bird.family = info.family
            bird.order = info.order

    def _recording_for(self, entry: FallbackBird) -> Recording | None:
        for name in (entry.scientific, entry.common):
            try:
                return self.recordings.best_recording(name)
            except (NotFound, UpstreamUnavailable) as exc:
                log(f"[BIRD_SELECTOR] Fallback recording lookup failed for {name}: {exc}")
        return None

    def fallback_entry(self, day: date) -> FallbackBird:
        birds = self.config.fallback_birds
        return birds[fallback_day_index(day, len(birds))]

    def fallback_bird(self, day: date) -> Bird:
        """Day's global fallback bird.

        Starts at (year*365 + day_of_year) % n and walks forward through the
        list until an entry has a recording.
        """
        birds = self.config.fallback_birds
        start = fallback_day_index(day, len(birds))
        for offset in range(len(birds)):
            entry = birds[(start + offset) % len(birds)]
            log(f"[BIRD_SELECTOR] Selected global fallback: {entry.common} from {entry.region or 'anywhere'}")
            recording = self._recording_for(entry)
            if recording is None:
                continue
            bird = Bird(
                common_name=entry.common,
                scientific_name=entry.scientific,
                region=entry.region,
                audio_url=recording.file_url,
                audio_attribution=recording.attribution,
                source="global_fallback",
            )
            bird.facts = generate_bird_facts(bird)
            self.enrich(bird)
            return bird
        raise ExhaustedFallback(f"no fallback bird has a playable recording ({len(birds)} tried)")

    def bird_by_name(
        self,
        common_name: str,
        audio_url: str = "",
        scientific_name: str = "",
        attribution: str = "",
        region: str = "",
        family: str = "",
        order: str = "",
    ) -> Bird:
        """Rebuild a bird chosen earlier (cache hit or global daily slot).

        A stored audio URL is reused together with its attribution; without
        one, a fresh recording is looked up by scientific name.
        """
        scientific = scientific_name or known_scientific_name(common_name)
        if not scientific:
            try:
                scientific = extract_scientific_name(self.encyclopedia.summary(common_name).extract)
            except (NotFound, UpstreamUnavailable) as exc:
                log(f"[BIRD_SELECTOR] Encyclopedia lookup failed for {common_name}: {exc}")

        if not audio_url:
            if not scientific:
                raise NotFound(f"no scientific name found for {common_name}")
            log(f"[BIRD_SELECTOR] Fetching audio for {common_name} (scientific: {scientific})")
            recording = self.recordings.best_recording(scientific)
            audio_url = recording.file_url
            attribution = recording.attribution

        bird = Bird(
            common_name=common_name,
            scientific_name=scientific,
            family=family,
            order=order,
            region=region,
            audio_url=audio_url,
            audio_attribution=attribution,
            source="cache",
        )
        bird.facts = generate_bird_facts(bird)
        self.enrich(bird)
        return bird

    def enrich(self, bird: Bird) -> None:
        """Best-effort kid-friendly description. Never raises for missing text."""
        summary = None
        for name in (bird.common_name, bird.scientific_name):
            if not name:
                continue
            try:
                summary = self.encyclopedia.summary(name)
                break
            except (NotFound, UpstreamUnavailable) as exc:
                log(f"[BIRD_SELECTOR] No encyclopedia summary for {name}: {exc}")

        parts = []
        if summary is not None:
            parts.append(format_for_kids(summary, bird.common_name))
            bird.wikipedia_url = summary.page_url
        parts.extend(fact for fact in bird.facts[:2] if fact)

        if summary is not None and parts:
            bird.description = clean_description_text(" ".join(parts))
        else:
            bird.description = (
                f"The {bird.common_name} is an amazing bird that you can hear in your area! "
                "Listen carefully to learn its unique song."
            )
