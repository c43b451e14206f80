"""
Shared pytest fixtures for Bird Song Explorer tests.

Configs are built from an in-memory payload; asset files live under
tmp_path so nothing depends on $BIRDSONG_ASSETS_DIR.
"""

from datetime import date

import pytest

from birdsong.config import parse_config
from birdsong.update_cache import DailyContentCache

from tests.doubles import FALLBACK_BIRDS

VOICES = [
    {"id": "voice-amelia", "name": "Amelia", "region": "British"},
    {"id": "voice-antoni", "name": "Antoni", "region": "American"},
    {"id": "voice-stuart", "name": "Stuart", "region": "Australian"},
]

AMBIENCE_FILES = (
    "sound_effects/ambience/forest.mp3",
    "sound_effects/ambience/jungle.mp3",
    "sound_effects/ambience/morning.mp3",
)
CHIME_FILE = "sound_effects/chimes/sparkle_chime.mp3"


@pytest.fixture
def config_payload():
    return {
        "default_voice": "Antoni",
        "voices": [dict(v) for v in VOICES],
        "ambiences": [
            {"name": "forest", "path": AMBIENCE_FILES[0]},
            {"name": "jungle", "path": AMBIENCE_FILES[1]},
            {"name": "morning", "path": AMBIENCE_FILES[2]},
        ],
        "chime": CHIME_FILE,
        "fallback_birds": [dict(b) for b in FALLBACK_BIRDS],
        "search_tiers": [
            {"radius_km": 50, "days": 30},
            {"radius_km": 100, "days": 30},
            {"radius_km": 150, "days": 60},
        ],
        "fact_generator": "basic",
    }


@pytest.fixture
def assets_dir(tmp_path):
    root = tmp_path / "assets"
    for relative in AMBIENCE_FILES + (CHIME_FILE,):
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"ID3-fake")
    return root


@pytest.fixture
def config(config_payload, assets_dir):
    return parse_config(config_payload, assets_dir=assets_dir)


@pytest.fixture
def empty_assets_config(config_payload, tmp_path):
    """Valid config whose asset directory has no files at all."""
    return parse_config(config_payload, assets_dir=tmp_path / "no-assets")


@pytest.fixture
def cache():
    """A cache with no sweeper thread running."""
    return DailyContentCache()


@pytest.fixture
def day():
    return date(2024, 3, 9)
