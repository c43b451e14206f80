#!/usr/bin/env python3
"""
Bird Song Explorer

Builds the day's three tracks for a listener:
1. intro: chime and ambience around a welcome line
2. narration: facts about the local bird over the same ambience
3. outro: the weekday outro over the bird's own song

Stages run strictly in order: bird, fact text, speech, composition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Optional

from birdsong.audio_tools import DurationProbe, Renderer
from birdsong.bird_selector import Bird, RegionalBirdResolver
from birdsong.config import AmbienceOption, ExplorerConfig, VoiceProfile, load_config
from birdsong.content_generator.fact_generator import FactGenerator, make_fact_generator
from birdsong.content_generator.helpers import log
from birdsong.content_generator.scripts import bird_intro, intro_line, outro_text
from birdsong.content_generator.tts_engine import SpeechSynthesizer
from birdsong.daily import DailySelector
from birdsong.ebird_lookup import EBirdClient
from birdsong.errors import ExhaustedFallback, NotFound, UpstreamUnavailable
from birdsong.location import Location, local_date, location_key
from birdsong.mixer import AudioTimelineComposer
from birdsong.outros import IntroOutroSelector
from birdsong.update_cache import CacheEntry, DailyContentCache, get_cache
from birdsong.wikipedia_lookup import WikipediaClient
from birdsong.xenocanto_lookup import XenoCantoClient

DEFAULT_CARD_ID = "default"


def _entry_details(bird: Bird) -> dict[str, str]:
    return {
        "bird_audio_attribution": bird.audio_attribution,
        "region": bird.region,
        "family": bird.family,
        "order": bird.order,
    }


@dataclass
class DailyProgram:
    day: date
    voice: VoiceProfile
    ambience: AmbienceOption
    bird: Bird
    narration_text: str
    intro: bytes
    narration: bytes
    outro: bytes
    outro_source: str = ""
    tracks: dict[str, int] = field(default_factory=dict)


class BirdSongExplorer:
    """Entry point for request handlers, the scheduler and the CLI."""

    def __init__(
        self,
        config: ExplorerConfig,
        resolver: RegionalBirdResolver,
        synthesizer: SpeechSynthesizer,
        composer: AudioTimelineComposer,
        downloader: XenoCantoClient,
        facts: FactGenerator,
        cache: Optional[DailyContentCache] = None,
        outros: Optional[IntroOutroSelector] = None,
    ):
        self.config = config
        self.resolver = resolver
        self.synthesizer = synthesizer
        self.composer = composer
        self.downloader = downloader
        self.facts = facts
        self.cache = cache if cache is not None else get_cache()
        self.outros = outros or IntroOutroSelector(config.assets_dir)
        self.selector = DailySelector(config)

    @classmethod
    def from_config(cls, config: Optional[ExplorerConfig] = None) -> "BirdSongExplorer":
        config = config or load_config()
        ebird = EBirdClient()
        xeno_canto = XenoCantoClient()
        resolver = RegionalBirdResolver(
            observations=ebird,
            recordings=xeno_canto,
            encyclopedia=WikipediaClient(),
            config=config,
            taxonomy=ebird,
        )
        return cls(
            config=config,
            resolver=resolver,
            synthesizer=SpeechSynthesizer(),
            composer=AudioTimelineComposer(config, DurationProbe(), Renderer()),
            downloader=xeno_canto,
            facts=make_fact_generator(config.fact_generator, ebird),
        )

    # Selection

    def get_daily_voice(self, day: Optional[date] = None) -> VoiceProfile:
        return self.selector.daily_voice(day or date.today())

    def get_bird_for_location(
        self,
        location: Location,
        card_id: str = DEFAULT_CARD_ID,
        day: Optional[date] = None,
        tz_name: Optional[str] = None,
    ) -> Bird:
        """Today's bird for this card and ~11 km bucket; cached for the rest of the day."""
        day = day or local_date(location, tz_name)
        loc_key = location_key(location.latitude, location.longitude)

        entry = self.cache.get(card_id, day, loc_key)
        if entry is not None:
            log(f"[EXPLORER] Cache hit for {loc_key} on {day}: {entry.bird_name}")
            try:
                return self._rebuild(entry)
            except (NotFound, UpstreamUnavailable) as exc:
                log(f"[EXPLORER] Could not rebuild cached {entry.bird_name} ({exc}), resolving again")

        try:
            bird = self.resolver.resolve(location, day)
        except ExhaustedFallback:
            global_entry = self.cache.get_global_daily(day)
            if global_entry is None:
                raise
            log(f"[EXPLORER] Using global daily bird {global_entry.bird_name}")
            try:
                bird = self._rebuild(global_entry)
            except (NotFound, UpstreamUnavailable) as exc:
                raise ExhaustedFallback(f"global daily bird {global_entry.bird_name} unusable: {exc}") from exc

        self.cache.put(card_id, day, loc_key, bird.common_name, bird.audio_url, bird.scientific_name,
                       **_entry_details(bird))
        return bird

    def _rebuild(self, entry: CacheEntry) -> Bird:
        return self.resolver.bird_by_name(
            entry.bird_name,
            entry.bird_audio_url,
            entry.scientific_name,
            attribution=entry.bird_audio_attribution,
            region=entry.region,
            family=entry.family,
            order=entry.order,
        )

    def refresh_global_daily(self, day: Optional[date] = None) -> Bird:
        """Scheduler job: fill GLOBAL_DAILY_<date> with the day's fallback bird."""
        day = day or date.today()
        bird = self.resolver.fallback_bird(day)
        self.cache.set_global_daily(day, bird.common_name, bird.audio_url, bird.scientific_name,
                                    **_entry_details(bird))
        return bird

    def fetch_birdsong(self, bird: Bird) -> Optional[bytes]:
        if not bird.audio_url:
            return None
        try:
            return self.downloader.download(bird.audio_url)
        except UpstreamUnavailable as exc:
            log(f"[EXPLORER] Bird song download failed for {bird.common_name}: {exc}")
            return None

    # Tracks

    def _speak(self, text: str, voice: VoiceProfile) -> bytes:
        return self.synthesizer.synthesize(text, voice.voice_id, self.config.voice_settings)

    def compose_intro(
        self,
        voice_id: Optional[str] = None,
        day: Optional[date] = None,
        bird_name: str = "",
    ) -> bytes:
        day = day or date.today()
        voice = self.selector.resolve_voice(voice_id, day)
        ambience = self.selector.daily_ambience(day)

        prerendered = None if bird_name else self.outros.select_intro(voice.name, day)
        if prerendered is not None:
            log(f"[INTRO] Using pre-rendered intro {prerendered.name}")
            spoken = prerendered.read_bytes()
        else:
            text = intro_line(day)
            if bird_name:
                text = f"{text} [pause] {bird_intro(bird_name, day)}"
            spoken = self._speak(text, voice)

        log(f"[INTRO] Voice {voice.name}, ambience {ambience.name}")
        return self.composer.compose_intro(spoken, ambience.path)

    def compose_narration(
        self,
        bird: Bird,
        location: Optional[Location] = None,
        voice_id: Optional[str] = None,
        day: Optional[date] = None,
    ) -> tuple[str, bytes]:
        day = day or date.today()
        voice = self.selector.resolve_voice(voice_id, day)
        ambience = self.selector.daily_ambience(day)
        text = self.facts.generate(bird, location, day)
        log(f"[NARRATION] {self.facts.kind} script for {bird.common_name}: {len(text.split())} words")
        spoken = self._speak(text, voice)
        return text, self.composer.compose_narration(spoken, ambience.path)

    def outro_file(self, voice: VoiceProfile, day_of_week: int, day: date) -> Optional[Path]:
        path = self.outros.select_outro(day_of_week, voice.name, day)
        if path is None:
            default = self.selector.default_voice()
            if default.name != voice.name:
                log(f"[OUTRO] No outros for {voice.name}, trying default voice {default.name}")
                path = self.outros.select_outro(day_of_week, default.name, day)
        return path

    def compose_outro(
        self,
        voice_id: Optional[str] = None,
        day_of_week: Optional[int] = None,
        birdsong: Optional[bytes] = None,
        bird_name: str = "",
        day: Optional[date] = None,
    ) -> tuple[str, bytes]:
        """Returns (source, audio): the pre-rendered file name, or 'generated'."""
        day = day or date.today()
        day_of_week = day.weekday() if day_of_week is None else day_of_week
        voice = self.selector.resolve_voice(voice_id, day)

        path = self.outro_file(voice, day_of_week, day)
        if path is not None:
            log(f"[OUTRO] Using pre-recorded outro: {path.name}")
            source, spoken = path.name, path.read_bytes()
        else:
            log(f"[OUTRO] No pre-recorded outro for {voice.name}, generating text")
            source = "generated"
            spoken = self._speak(outro_text(bird_name or "bird", day, day_of_week), voice)

        return source, self.composer.compose_outro(spoken, birdsong)

    def build_daily_program(
        self,
        location: Location,
        card_id: str = DEFAULT_CARD_ID,
        voice_id: Optional[str] = None,
        tz_name: Optional[str] = None,
        day: Optional[date] = None,
    ) -> DailyProgram:
        day = day or local_date(location, tz_name)
        voice = self.selector.resolve_voice(voice_id, day)
        ambience = self.selector.daily_ambience(day)
        log(f"[EXPLORER] Building program for {location.city or 'listener'} on {day} with {voice.name}")

        bird = self.get_bird_for_location(location, card_id, day)
        intro = self.compose_intro(voice.voice_id, day)
        text, narration = self.compose_narration(bird, location, voice.voice_id, day)
        source, outro = self.compose_outro(
            voice.voice_id, day.weekday(), self.fetch_birdsong(bird), bird.common_name, day
        )

        return DailyProgram(
            day=day,
            voice=voice,
            ambience=ambience,
            bird=bird,
            narration_text=text,
            intro=intro,
            narration=narration,
            outro=outro,
            outro_source=source,
            tracks={"intro": len(intro), "narration": len(narration), "outro": len(outro)},
        )
