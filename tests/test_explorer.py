"""
Tests for BirdSongExplorer with every upstream and ffmpeg stubbed.
"""

import random
from datetime import timedelta

import pytest

from birdsong.bird_selector import RegionalBirdResolver
from birdsong.content_generator.fact_generator import BasicFactGenerator
from birdsong.daily import fallback_day_index
from birdsong.errors import ExhaustedFallback
from birdsong.explorer import BirdSongExplorer
from birdsong.location import Location, location_key
from birdsong.mixer import AudioTimelineComposer
from birdsong.update_cache import DailyContentCache

from tests.doubles import (
    FALLBACK_BIRDS,
    FakeEncyclopedia,
    FakeObservations,
    FakeRecordings,
    FakeSynthesizer,
    StubProbe,
    StubRenderer,
    make_observation,
)

NEW_YORK = Location(40.7128, -74.0060, "New York", "New York", "United States")
NEARBY = Location(40.7311, -73.9712, "Manhattan", "New York", "United States")
FALLBACK_COMMON = [b["common"] for b in FALLBACK_BIRDS]
FALLBACK_SCIENTIFIC = [b["scientific"] for b in FALLBACK_BIRDS]

LOCAL_SPECIES = [
    make_observation("amerob", "American Robin", "Turdus migratorius"),
    make_observation("blujay", "Blue Jay", "Cyanocitta cristata"),
    make_observation("norcar", "Northern Cardinal", "Cardinalis cardinalis"),
    make_observation("moudov", "Mourning Dove", "Zenaida macroura"),
]
LOCAL_SCIENTIFIC = {o.scientific_name for o in LOCAL_SPECIES}


class Harness:
    """Doubles for one explorer; tests swap them before calling build()."""

    def __init__(self, config):
        self.config = config
        self.observations = FakeObservations({(50, 30): LOCAL_SPECIES})
        self.recordings = FakeRecordings(LOCAL_SCIENTIFIC | set(FALLBACK_SCIENTIFIC))
        self.synthesizer = FakeSynthesizer()
        self.renderer = StubRenderer()
        self.cache = DailyContentCache()

    def build(self) -> BirdSongExplorer:
        resolver = RegionalBirdResolver(
            observations=self.observations,
            recordings=self.recordings,
            encyclopedia=FakeEncyclopedia(),
            config=self.config,
            rng=random.Random(11),
        )
        return BirdSongExplorer(
            config=self.config,
            resolver=resolver,
            synthesizer=self.synthesizer,
            composer=AudioTimelineComposer(self.config, StubProbe(4.0), self.renderer),
            downloader=self.recordings,
            facts=BasicFactGenerator(),
            cache=self.cache,
        )


@pytest.fixture
def parts(config):
    return Harness(config)


class TestDailyStability:
    def test_same_bird_all_day(self, parts, day):
        explorer = parts.build()
        first = explorer.get_bird_for_location(NEW_YORK, "card1", day)
        for _ in range(10):
            assert explorer.get_bird_for_location(NEW_YORK, "card1", day).common_name == first.common_name
        assert parts.observations.calls == [(50, 30)]

    def test_same_bucket_shares_bird(self, parts, day):
        assert location_key(NEW_YORK.latitude, NEW_YORK.longitude) == location_key(NEARBY.latitude, NEARBY.longitude)
        explorer = parts.build()
        first = explorer.get_bird_for_location(NEW_YORK, "card1", day)
        assert explorer.get_bird_for_location(NEARBY, "card1", day).common_name == first.common_name

    def test_same_voice_all_day(self, parts, day):
        explorer = parts.build()
        voices = {explorer.get_daily_voice(day) for _ in range(10)}
        assert len(voices) == 1

    def test_cache_entry_keeps_audio_and_scientific_name(self, parts, day):
        explorer = parts.build()
        bird = explorer.get_bird_for_location(NEW_YORK, "card1", day)
        entry = parts.cache.get("card1", day, "40.7_-74.0")
        assert entry.bird_name == bird.common_name
        assert entry.bird_audio_url == bird.audio_url
        assert entry.scientific_name == bird.scientific_name
        assert entry.bird_audio_attribution == bird.audio_attribution
        assert entry.region == bird.region

    def test_cache_hit_keeps_attribution_and_region(self, parts, day):
        explorer = parts.build()
        first = explorer.get_bird_for_location(NEW_YORK, "card1", day)
        again = explorer.get_bird_for_location(NEW_YORK, "card1", day)

        assert first.audio_attribution.startswith("Test Recordist, XC12345")
        assert again.source == "cache"
        for name in ("common_name", "scientific_name", "audio_url", "audio_attribution", "region", "family", "order"):
            assert getattr(again, name) == getattr(first, name)

    def test_global_slot_keeps_attribution(self, parts, day):
        explorer = parts.build()
        stored = explorer.refresh_global_daily(day)
        parts.observations = FakeObservations()
        parts.recordings = FakeRecordings()
        bird = parts.build().get_bird_for_location(NEW_YORK, "card9", day)

        assert bird.common_name == stored.common_name
        assert bird.audio_attribution == stored.audio_attribution != ""
        assert bird.region == stored.region

    def test_unusable_cache_entry_is_resolved_again(self, parts, day):
        parts.cache.put("card1", day, "40.7_-74.0", "Mystery Bird")
        explorer = parts.build()
        bird = explorer.get_bird_for_location(NEW_YORK, "card1", day)
        assert bird.common_name in {o.common_name for o in LOCAL_SPECIES}
        assert parts.cache.get("card1", day, "40.7_-74.0").bird_name == bird.common_name


class TestCrossMidnight:
    def test_fallback_bird_changes_with_the_date(self, parts, day):
        parts.observations = FakeObservations()
        parts.recordings = FakeRecordings(set(FALLBACK_SCIENTIFIC))
        explorer = parts.build()

        today = explorer.get_bird_for_location(NEW_YORK, "card1", day)
        tomorrow = explorer.get_bird_for_location(NEW_YORK, "card1", day + timedelta(days=1))

        n = len(FALLBACK_COMMON)
        assert today.common_name == FALLBACK_COMMON[(day.year * 365 + day.timetuple().tm_yday) % n]
        next_day = day + timedelta(days=1)
        assert tomorrow.common_name == FALLBACK_COMMON[(next_day.year * 365 + next_day.timetuple().tm_yday) % n]
        assert today.common_name != tomorrow.common_name


class TestGlobalDaily:
    def test_refresh_fills_slot(self, parts, day):
        explorer = parts.build()
        bird = explorer.refresh_global_daily(day)
        assert bird.common_name == FALLBACK_COMMON[fallback_day_index(day, len(FALLBACK_COMMON))]
        assert parts.cache.get_global_daily(day).bird_name == bird.common_name

    def test_global_slot_used_when_everything_fails(self, parts, day):
        parts.observations = FakeObservations()
        parts.recordings = FakeRecordings()
        parts.cache.set_global_daily(day, "Blue Jay", "https://xeno-canto.org/blue-jay/download")
        explorer = parts.build()

        bird = explorer.get_bird_for_location(NEW_YORK, "card1", day)

        assert bird.common_name == "Blue Jay"
        assert bird.audio_url == "https://xeno-canto.org/blue-jay/download"

    def test_exhausted_without_global_slot(self, parts, day):
        parts.observations = FakeObservations()
        parts.recordings = FakeRecordings()
        explorer = parts.build()
        with pytest.raises(ExhaustedFallback):
            explorer.get_bird_for_location(NEW_YORK, "card1", day)


class TestTracks:
    def test_intro_is_synthesized_with_daily_voice(self, parts, day):
        explorer = parts.build()
        audio = explorer.compose_intro(day=day)
        assert audio == b"mixed-audio"
        text, voice_id = parts.synthesizer.calls[0]
        assert voice_id == explorer.get_daily_voice(day).voice_id == "voice-stuart"
        assert text

    def test_prerendered_intro_skips_synthesis(self, parts, config, day):
        intro_dir = config.assets_dir / "final_intros"
        intro_dir.mkdir()
        (intro_dir / "intro_1_Stuart.mp3").write_bytes(b"ID3-prerendered")
        explorer = parts.build()

        explorer.compose_intro(day=day)

        assert parts.synthesizer.calls == []
        inputs, _, _ = parts.renderer.calls[0]
        assert inputs[2].source == b"ID3-prerendered"

    def test_intro_with_bird_name_is_synthesized(self, parts, day):
        explorer = parts.build()
        explorer.compose_intro(day=day, bird_name="Blue Jay")
        assert "Blue Jay" in parts.synthesizer.calls[0][0]

    def test_narration_returns_script(self, parts, day):
        explorer = parts.build()
        bird = explorer.get_bird_for_location(NEW_YORK, "card1", day)
        text, audio = explorer.compose_narration(bird, NEW_YORK, day=day)
        assert bird.common_name in text
        assert audio == b"mixed-audio"

    def test_generated_outro_without_files(self, parts, day):
        explorer = parts.build()
        source, audio = explorer.compose_outro(day=day, birdsong=b"song", bird_name="Blue Jay")
        assert source == "generated"
        assert "Blue Jay" in parts.synthesizer.calls[0][0]
        assert audio == b"mixed-audio"

    def test_outro_falls_back_to_default_voice_files(self, parts, config, day):
        outro_dir = config.assets_dir / "final_outros"
        outro_dir.mkdir()
        (outro_dir / "outro_challenge_1_Antoni.mp3").write_bytes(b"ID3-antoni-outro")
        explorer = parts.build()

        # Saturday -> challenge; the day's voice is Stuart, who has no files
        source, _ = explorer.compose_outro(day=day, birdsong=b"song")

        assert source == "outro_challenge_1_Antoni.mp3"
        assert parts.synthesizer.calls == []
        inputs, _, _ = parts.renderer.calls[0]
        assert inputs[0].source == b"ID3-antoni-outro"


class TestDailyProgram:
    def test_builds_all_three_tracks_with_one_voice(self, parts, day):
        explorer = parts.build()

        program = explorer.build_daily_program(NEW_YORK, "card1", day=day)

        assert program.voice.name == "Stuart"
        assert {voice_id for _, voice_id in parts.synthesizer.calls} == {"voice-stuart"}
        assert program.intro == program.narration == program.outro == b"mixed-audio"
        assert set(program.tracks) == {"intro", "narration", "outro"}
        assert program.bird.common_name in program.narration_text
        assert program.outro_source == "generated"

    def test_outro_loops_downloaded_bird_song(self, parts, day):
        explorer = parts.build()
        program = explorer.build_daily_program(NEW_YORK, "card1", day=day)
        outro_inputs, _, _ = parts.renderer.calls[-1]
        assert outro_inputs[1].source == f"birdsong:{program.bird.audio_url}".encode()
        assert outro_inputs[1].loop is True

    def test_failed_download_boosts_voice_only(self, parts, day):
        parts.recordings = FakeRecordings(LOCAL_SCIENTIFIC, download_error=True)
        explorer = parts.build()
        explorer.build_daily_program(NEW_YORK, "card1", day=day)
        outro_inputs, graph, _ = parts.renderer.calls[-1]
        assert len(outro_inputs) == 1
        assert graph == "[0:a]volume=2.2[out]"

    def test_render_failure_degrades_to_voice(self, parts, day):
        parts.renderer = StubRenderer(fail=True)
        explorer = parts.build()
        program = explorer.build_daily_program(NEW_YORK, "card1", day=day)
        assert program.intro == b"speech:voice-stuart"
        assert program.narration == b"speech:voice-stuart"
        assert program.outro == b"speech:voice-stuart"
