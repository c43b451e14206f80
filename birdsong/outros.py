#!/usr/bin/env python3
"""
Bird Song Explorer intro/outro selection

Binds the day of week to an outro content type and picks one pre-rendered
file per day from the voice's pool:

    $BIRDSONG_ASSETS_DIR/final_outros/outro_{type}_{index}_{Voice}.mp3
    $BIRDSONG_ASSETS_DIR/final_intros/intro_{index}_{Voice}.mp3

An empty pool returns None; retrying with the default voice is the
caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from pathlib import Path

from birdsong.daily import SALT_OUTRO_FILE, day_seed, select_index

DAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")
CONTENT_TYPES = ("joke", "wisdom", "teaser", "challenge", "funfact")
INTRO_TYPE = "intro"

# Monday=0 .. Sunday=6, same as date.weekday()
WEEKDAY_CONTENT = {
    0: "joke",
    1: "teaser",
    2: "wisdom",
    3: "teaser",
    4: "joke",
    5: "challenge",
    6: "funfact",
}
DEFAULT_CONTENT_TYPE = "teaser"


def content_type_for_day(day_of_week: int) -> str:
    return WEEKDAY_CONTENT.get(day_of_week, DEFAULT_CONTENT_TYPE)


@dataclass
class IntroOutroSelector:
    assets_dir: Path
    outro_dir: str = "final_outros"
    intro_dir: str = "final_intros"

    def pool(self, content_type: str, voice_name: str) -> list[Path]:
        if content_type == INTRO_TYPE:
            directory = self.assets_dir / self.intro_dir
            pattern = f"intro_*_{voice_name}.mp3"
        else:
            directory = self.assets_dir / self.outro_dir
            pattern = f"outro_{content_type}_*_{voice_name}.mp3"
        if not directory.is_dir():
            return []
        return sorted(directory.glob(pattern))

    def select_file(self, content_type: str, voice_name: str, day: date) -> Path | None:
        matches = self.pool(content_type, voice_name)
        if not matches:
            return None
        return matches[select_index(day_seed(day) * SALT_OUTRO_FILE, len(matches))]

    def select_outro(self, day_of_week: int, voice_name: str, day: date) -> Path | None:
        return self.select_file(content_type_for_day(day_of_week), voice_name, day)

    def select_intro(self, voice_name: str, day: date) -> Path | None:
        return self.select_file(INTRO_TYPE, voice_name, day)

    def count_available(self, voice_names: list[str]) -> dict[str, int]:
        counts: dict[str, int] = {}
        for voice in voice_names:
            for content_type in CONTENT_TYPES:
                counts[f"{voice}_{content_type}"] = len(self.pool(content_type, voice))
        return counts

    def missing(self, voice_names: list[str]) -> list[str]:
        return [key for key, count in self.count_available(voice_names).items() if count == 0]
