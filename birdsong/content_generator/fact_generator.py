#!/usr/bin/env python3
"""
Bird Song Explorer fact generators

Turn a resolved bird (plus where the listener is) into a short,
TTS-friendly narration script.

- basic: scientific name, one fact from the description, one themed fact
- enhanced: adds what local bird watchers have reported recently

Select with `fact_generator: basic|enhanced` in the explorer YAML config.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Optional, Protocol

from birdsong.bird_selector import Bird, ObservationSource
from birdsong.content_generator.helpers import first_sentences, log, remove_parentheticals
from birdsong.daily import SALT_FACT, pick
from birdsong.ebird_lookup import Observation
from birdsong.errors import ConfigError, UpstreamUnavailable
from birdsong.location import Location
from birdsong.wikipedia_lookup import extract_scientific_name

SIGHTING_RADIUS_KM = 50
SIGHTING_DAYS = 30
NEARBY_KM = 8.0

# (name keywords, fact) in priority order
THEMED_FACTS = [
    (("eagle", "hawk", "owl"), "Birds of prey have incredible eyesight. They can spot tiny movements from far away!"),
    (("hummingbird",), "Hummingbirds are the only birds that can fly backwards, and their hearts beat over one thousand times a minute!"),
    (("duck", "goose", "swan", "mallard"), "Water birds have special oil glands that keep their feathers waterproof!"),
    (("robin", "sparrow", "finch", "warbler", "blackbird", "tit"), "Songbirds learn their songs by listening to their parents, just like you learned to talk!"),
    (("cardinal", "blue", "gold", "lorikeet"), "Bright colors help birds recognize their own species and attract mates!"),
    (("nightjar", "nighthawk"), "Night birds have special feathers that let them fly almost silently!"),
    (("swallow", "crane", "arctic", "swift"), "Some birds travel thousands of miles each year, using the stars and Earth's magnetic field to find their way!"),
    (("crow", "raven", "jay", "magpie"), "These birds are super smart. They can use tools and even recognize human faces!"),
]

DEFAULT_FACTS = [
    "Birds are the only animals with feathers. No other creature has them!",
    "A bird's bones are hollow, making them light enough to fly!",
    "Birds can see colors that humans can't even imagine!",
    "Most birds have excellent memories and can remember hundreds of food hiding spots!",
    "Birds help plants grow by spreading seeds wherever they go!",
    "Some birds can sleep with one half of their brain while the other half stays awake!",
    "Birds lived alongside the dinosaurs. In fact, they are living dinosaurs themselves!",
]

TECHNICAL_WORDS = ("derived from", "greek", "latin")


class FactGenerator(Protocol):
    kind: str

    def generate(self, bird: Bird, location: Optional[Location], day: date) -> str: ...


def themed_fact(bird_name: str, day: date) -> str:
    lower = bird_name.lower()
    for keywords, fact in THEMED_FACTS:
        if any(word in lower for word in keywords):
            return fact
    return pick(DEFAULT_FACTS, day, SALT_FACT)


def simple_fact(description: str, bird_name: str) -> str:
    fallback = f"The {bird_name} is an amazing bird!"
    if not description:
        return fallback
    text = remove_parentheticals(description)
    first = first_sentences(text, 1)
    fact = first if " is a" in first.lower() else first_sentences(text, 2)
    if not fact or any(word in fact.lower() for word in TECHNICAL_WORDS):
        return fallback
    return fact


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    r = 6371.0
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * r * math.asin(math.sqrt(a))


class BasicFactGenerator:
    kind = "basic"

    def generate(self, bird: Bird, location: Optional[Location], day: date) -> str:
        scientific = bird.scientific_name or extract_scientific_name(bird.description)
        fact = simple_fact(bird.description, bird.common_name)
        extra = themed_fact(bird.common_name, day)
        if scientific:
            return (
                f"The scientific name for the {bird.common_name} is {scientific}. [pause] "
                f"Did you know? {fact} {extra} [pause] "
                "Birds are found all over the world, each one perfectly adapted to its home!"
            )
        return (
            f"Let me tell you about the amazing {bird.common_name}! [pause] "
            f"Did you know? {fact} {extra} [pause] "
            "Every bird has its own special story. Listen carefully to learn its unique song!"
        )


class EnhancedFactGenerator:
    """Basic script plus recent sightings of the same species near the listener."""

    kind = "enhanced"

    def __init__(self, observations: ObservationSource, basic: Optional[BasicFactGenerator] = None):
        self.observations = observations
        self.basic = basic or BasicFactGenerator()

    def local_sightings(self, bird: Bird, location: Location) -> list[Observation]:
        try:
            found = self.observations.recent_observations(
                location.latitude, location.longitude, SIGHTING_RADIUS_KM, SIGHTING_DAYS
            )
        except UpstreamUnavailable as exc:
            log(f"[FACTS] Sightings lookup failed: {exc}")
            return []
        name = bird.common_name.lower()
        sci = bird.scientific_name.lower()
        return [
            obs for obs in found
            if obs.common_name.lower() == name or (sci and obs.scientific_name.lower() == sci)
        ]

    def sightings_line(self, bird: Bird, location: Location, sightings: list[Observation], day: date) -> str:
        where = location.city or "your area"
        lines = [f"Great news! {bird.common_name}s have been spotted near {where} this month!"]

        nearest = min(
            (distance_km(location.latitude, location.longitude, obs.latitude, obs.longitude) for obs in sightings),
            default=None,
        )
        if nearest is not None and nearest < NEARBY_KM:
            lines.append(f"Wow! One was seen less than {max(1, round(nearest))} kilometers from you!")

        recent_days = []
        for obs in sightings:
            try:
                seen = datetime.strptime(obs.obs_date[:10], "%Y-%m-%d").date()
            except ValueError:
                continue
            recent_days.append((day - seen).days)
        this_week = sum(1 for days_ago in recent_days if 0 <= days_ago <= 7)
        if this_week:
            lines.append(f"Bird watchers reported them {this_week} times near you just this week!")

        flock = next((obs for obs in sightings[:3] if obs.how_many > 1), None)
        if flock is not None:
            lines.append(f"Someone saw {flock.how_many} of them together in your neighborhood!")

        return f"[long pause] Local bird alert! [pause] {pick(lines, day, SALT_FACT)}"

    def generate(self, bird: Bird, location: Optional[Location], day: date) -> str:
        script = self.basic.generate(bird, location, day)
        if location is None:
            return script
        sightings = self.local_sightings(bird, location)
        if not sightings:
            return script
        return (
            f"{script} {self.sightings_line(bird, location, sightings, day)} "
            f"[pause] Report your {bird.common_name} sightings to help scientists learn about birds!"
        )


def make_fact_generator(kind: str, observations: Optional[ObservationSource] = None) -> FactGenerator:
    if kind == "basic":
        return BasicFactGenerator()
    if kind == "enhanced":
        if observations is None:
            raise ConfigError("enhanced fact generator needs an observation source")
        return EnhancedFactGenerator(observations)
    raise ConfigError(f"unknown fact generator {kind!r}")
