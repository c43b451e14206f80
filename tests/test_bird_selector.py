"""
Tests for the regional bird resolver: tier cascade, candidate retries,
global fallback rotation and rebuilding cached birds.
"""

import random
from datetime import timedelta

import pytest

from birdsong.bird_selector import (
    Bird,
    RegionalBirdResolver,
    dedupe_species,
    generate_bird_facts,
    known_scientific_name,
)
from birdsong.daily import fallback_day_index
from birdsong.errors import ExhaustedFallback, NotFound, UpstreamUnavailable
from birdsong.location import Location
from birdsong.wikipedia_lookup import PageSummary

from tests.doubles import (
    FALLBACK_BIRDS,
    FakeEncyclopedia,
    FakeObservations,
    FakeRecordings,
    FakeTaxonomy,
    make_observation,
)

NEW_YORK = Location(40.7128, -74.0060, "New York", "New York", "United States")
FALLBACK_SCIENTIFIC = [b["scientific"] for b in FALLBACK_BIRDS]
FALLBACK_COMMON = [b["common"] for b in FALLBACK_BIRDS]

ROBIN = make_observation("amerob", "American Robin", "Turdus migratorius")
JAY = make_observation("blujay", "Blue Jay", "Cyanocitta cristata")


def make_resolver(config, observations, recordings, encyclopedia=None, taxonomy=None, seed=7):
    return RegionalBirdResolver(
        observations=observations,
        recordings=recordings,
        encyclopedia=encyclopedia or FakeEncyclopedia(),
        config=config,
        taxonomy=taxonomy,
        rng=random.Random(seed),
    )


class TestHelpers:
    def test_dedupe_keeps_first_per_species_in_order(self):
        later_robin = make_observation("amerob", "American Robin", "Turdus migratorius", how_many=9)
        unique = dedupe_species([ROBIN, JAY, later_robin])
        assert unique == [ROBIN, JAY]

    def test_facts_skip_missing_fields(self):
        facts = generate_bird_facts(Bird(common_name="Mystery Bird"))
        assert not any("scientific name" in f for f in facts)
        assert len(facts) == 4

    def test_facts_capped_at_five(self):
        bird = Bird("American Robin", "Turdus migratorius", family="Thrushes", region="New York")
        facts = generate_bird_facts(bird)
        assert len(facts) == 5
        assert facts[0] == "The American Robin's scientific name is Turdus migratorius."
        assert facts[1] == "It belongs to the Thrushes family."
        assert facts[2] == "This bird can be found in New York."

    def test_known_scientific_name(self):
        assert known_scientific_name("Blue Jay") == "Cyanocitta cristata"
        assert known_scientific_name("Dodo") == ""


class TestCascadingTiers:
    def test_third_tier_after_two_empty(self, config, day):
        observations = FakeObservations({(150, 60): [ROBIN]})
        resolver = make_resolver(config, observations, FakeRecordings({"Turdus migratorius"}))

        bird = resolver.resolve(NEW_YORK, day)

        assert observations.calls == [(50, 30), (100, 30), (150, 60)]
        assert bird.common_name == "American Robin"
        assert bird.source == "regional"

    def test_first_non_empty_tier_stops_search(self, config, day):
        observations = FakeObservations({(50, 30): [JAY], (100, 30): [ROBIN]})
        resolver = make_resolver(config, observations, FakeRecordings({"Cyanocitta cristata"}))

        assert resolver.resolve(NEW_YORK, day).common_name == "Blue Jay"
        assert observations.calls == [(50, 30)]

    def test_upstream_error_moves_to_next_tier(self, config, day):
        observations = FakeObservations({(50, 30): UpstreamUnavailable("eBird down"), (100, 30): [ROBIN]})
        resolver = make_resolver(config, observations, FakeRecordings({"Turdus migratorius"}))

        assert resolver.resolve(NEW_YORK, day).common_name == "American Robin"
        assert observations.calls == [(50, 30), (100, 30)]

    def test_resolved_bird_is_enriched(self, config, day):
        encyclopedia = FakeEncyclopedia({
            "American Robin": PageSummary(
                title="American robin",
                extract="The American robin is a species of bird in the thrush family. It is found in gardens.",
                page_url="https://simple.wikipedia.org/wiki/American_robin",
            )
        })
        resolver = make_resolver(
            config,
            FakeObservations({(50, 30): [ROBIN]}),
            FakeRecordings({"Turdus migratorius"}),
            encyclopedia=encyclopedia,
            taxonomy=FakeTaxonomy(),
        )

        bird = resolver.resolve(NEW_YORK, day)

        assert bird.family == "Thrushes and Allies"
        assert bird.order == "Passeriformes"
        assert bird.region == "New York"
        assert bird.audio_url == "https://xeno-canto.org/turdus-migratorius/download"
        assert "XC12345" in bird.audio_attribution
        assert bird.wikipedia_url == "https://simple.wikipedia.org/wiki/American_robin"
        assert "type of bird" in bird.description
        assert "You can find them in gardens." in bird.description

    def test_synthetic_description_without_encyclopedia(self, config, day):
        resolver = make_resolver(config, FakeObservations({(50, 30): [ROBIN]}), FakeRecordings({"Turdus migratorius"}))
        bird = resolver.resolve(NEW_YORK, day)
        assert bird.description.startswith("The American Robin is an amazing bird")


class TestCandidateRetries:
    def test_failed_candidates_are_not_retried(self, config, day):
        species = [make_observation(f"sp{i}", f"Bird {i}", f"Genus species{i}") for i in range(3)]
        recordings = FakeRecordings(set(FALLBACK_SCIENTIFIC))
        resolver = make_resolver(config, FakeObservations({(50, 30): species}), recordings)

        bird = resolver.resolve(NEW_YORK, day)

        regional_calls = [name for name in recordings.calls if name.startswith("Genus")]
        assert sorted(regional_calls) == ["Genus species0", "Genus species1", "Genus species2"]
        assert bird.source == "global_fallback"

    def test_at_most_five_attempts(self, config, day):
        species = [make_observation(f"sp{i}", f"Bird {i}", f"Genus species{i}") for i in range(12)]
        recordings = FakeRecordings(set(FALLBACK_SCIENTIFIC))
        resolver = make_resolver(config, FakeObservations({(50, 30): species}), recordings)

        resolver.resolve(NEW_YORK, day)

        regional_calls = [name for name in recordings.calls if name.startswith("Genus")]
        assert len(regional_calls) == 5
        assert len(set(regional_calls)) == 5

    def test_same_rng_seed_same_pick(self, config, day):
        species = [make_observation(f"sp{i}", f"Bird {i}", f"Genus species{i}") for i in range(10)]
        available = {f"Genus species{i}" for i in range(10)}
        picks = {
            make_resolver(config, FakeObservations({(50, 30): species}), FakeRecordings(available), seed=42)
            .resolve(NEW_YORK, day)
            .common_name
            for _ in range(5)
        }
        assert len(picks) == 1


class TestGlobalFallback:
    def test_no_observations_uses_day_rotation(self, config, day):
        resolver = make_resolver(config, FakeObservations(), FakeRecordings(set(FALLBACK_SCIENTIFIC)))

        bird = resolver.resolve(NEW_YORK, day)

        expected = FALLBACK_COMMON[(day.year * 365 + day.timetuple().tm_yday) % len(FALLBACK_COMMON)]
        assert bird.common_name == expected
        assert bird.source == "global_fallback"

    def test_next_day_moves_to_next_entry(self, config, day):
        resolver = make_resolver(config, FakeObservations(), FakeRecordings(set(FALLBACK_SCIENTIFIC)))

        today = resolver.resolve(NEW_YORK, day).common_name
        tomorrow = resolver.resolve(NEW_YORK, day + timedelta(days=1)).common_name

        start = fallback_day_index(day, len(FALLBACK_COMMON))
        assert today == FALLBACK_COMMON[start]
        assert tomorrow == FALLBACK_COMMON[(start + 1) % len(FALLBACK_COMMON)]
        assert today != tomorrow

    def test_always_resolvable_from_fallback_list(self, config, day):
        resolver = make_resolver(config, FakeObservations(), FakeRecordings(set(FALLBACK_SCIENTIFIC)))
        for offset in range(30):
            bird = resolver.resolve(NEW_YORK, day + timedelta(days=offset))
            assert bird.common_name in FALLBACK_COMMON
            assert bird.audio_url

    def test_walks_list_until_an_entry_has_audio(self, config, day):
        resolver = make_resolver(config, FakeObservations(), FakeRecordings({"Passer domesticus"}))
        for offset in range(len(FALLBACK_COMMON)):
            assert resolver.resolve(NEW_YORK, day + timedelta(days=offset)).common_name == "House Sparrow"

    def test_common_name_tried_after_scientific(self, config, day):
        recordings = FakeRecordings({"Rainbow Lorikeet"})
        bird = make_resolver(config, FakeObservations(), recordings).fallback_bird(day)
        assert bird.common_name == "Rainbow Lorikeet"
        assert bird.scientific_name == "Trichoglossus moluccanus"
        assert "Trichoglossus moluccanus" in recordings.calls

    def test_exhausted_when_nothing_has_audio(self, config, day):
        recordings = FakeRecordings()
        resolver = make_resolver(config, FakeObservations(), recordings)
        with pytest.raises(ExhaustedFallback):
            resolver.resolve(NEW_YORK, day)
        assert len(recordings.calls) == 2 * len(FALLBACK_COMMON)

    def test_fallback_entry(self, config, day):
        resolver = make_resolver(config, FakeObservations(), FakeRecordings())
        assert resolver.fallback_entry(day).common == FALLBACK_COMMON[fallback_day_index(day, len(FALLBACK_COMMON))]


class TestBirdByName:
    def test_reuses_cached_audio_url(self, config):
        recordings = FakeRecordings()
        bird = make_resolver(config, FakeObservations(), recordings).bird_by_name("Blue Jay", "https://xc/blue.mp3")
        assert recordings.calls == []
        assert bird.audio_url == "https://xc/blue.mp3"
        assert bird.scientific_name == "Cyanocitta cristata"
        assert bird.source == "cache"

    def test_keeps_stored_attribution_and_taxonomy(self, config):
        bird = make_resolver(config, FakeObservations(), FakeRecordings()).bird_by_name(
            "Blue Jay",
            "https://xc/blue.mp3",
            "Cyanocitta cristata",
            attribution="Jo Birder, XC42, CC BY-SA, https://xeno-canto.org/42",
            region="North America",
            family="Jays and Crows",
            order="Passeriformes",
        )
        assert bird.audio_attribution == "Jo Birder, XC42, CC BY-SA, https://xeno-canto.org/42"
        assert (bird.region, bird.family, bird.order) == ("North America", "Jays and Crows", "Passeriformes")
        assert "It belongs to the Jays and Crows family." in bird.facts

    def test_fetches_audio_by_known_scientific_name(self, config):
        recordings = FakeRecordings({"Cyanocitta cristata"})
        bird = make_resolver(config, FakeObservations(), recordings).bird_by_name("Blue Jay")
        assert recordings.calls == ["Cyanocitta cristata"]
        assert bird.audio_url.endswith("cyanocitta-cristata/download")

    def test_scientific_name_from_encyclopedia(self, config):
        encyclopedia = FakeEncyclopedia({
            "Kea": PageSummary(title="Kea", extract="The kea (Nestor notabilis) is a large parrot."),
        })
        recordings = FakeRecordings({"Nestor notabilis"})
        bird = make_resolver(config, FakeObservations(), recordings, encyclopedia=encyclopedia).bird_by_name("Kea")
        assert bird.scientific_name == "Nestor notabilis"
        assert recordings.calls == ["Nestor notabilis"]

    def test_unknown_without_audio_is_not_found(self, config):
        with pytest.raises(NotFound):
            make_resolver(config, FakeObservations(), FakeRecordings()).bird_by_name("Mystery Bird")
