"""
Daily-consistent selection.

Everything picked here is a pure function of the calendar date, so every
request on the same day (on any process) gets the same voice, ambience
and intro line. Nothing here is a security primitive.

Each selection domain multiplies the day seed by its own small odd
constant before reducing modulo the list length, so two lists of equal
length do not always land on the same slot. Lists whose length divides
the seed delta between two days can still alias; that is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Sequence, TypeVar

from birdsong.config import AmbienceOption, ExplorerConfig, VoiceProfile
from birdsong.errors import ConfigError

T = TypeVar("T")

# Selection domains. VOICE and OUTRO_FILE keep the plain seed so the
# rotation matches the pre-rendered file naming already in use. The other
# multipliers are odd primes larger than any list they pick from, so the
# product never collapses onto a single slot.
SALT_VOICE = 1
SALT_OUTRO_FILE = 1
SALT_AMBIENCE = 31
SALT_INTRO_LINE = 37
SALT_FACT = 41
SALT_OUTRO_TEXT = 43
SALT_SEASON = 47


def day_seed(day: date) -> int:
    """year*10000 + month*100 + day, e.g. 2024-03-09 -> 20240309."""
    return day.year * 10000 + day.month * 100 + day.day


def select_index(seed: int, n: int) -> int:
    if n <= 0:
        raise ValueError("cannot select from an empty candidate list")
    return seed % n


def pick(items: Sequence[T], day: date, salt: int = 1) -> T:
    return items[select_index(day_seed(day) * salt, len(items))]


def fallback_day_index(day: date, n: int) -> int:
    """Global fallback rotation: (year*365 + day_of_year) % n.

    Consecutive days step by one slot, so the sequence repeats every n days.
    After a leap year, Dec 31 and Jan 1 land on the same slot.
    """
    return select_index(day.year * 365 + day.timetuple().tm_yday, n)


@dataclass
class DailySelector:
    config: ExplorerConfig

    def daily_voice(self, day: date) -> VoiceProfile:
        return pick(self.config.voices, day, SALT_VOICE)

    def daily_ambience(self, day: date) -> AmbienceOption:
        return pick(self.config.ambiences, day, SALT_AMBIENCE)

    def default_voice(self) -> VoiceProfile:
        voice = self.config.voice_by_name(self.config.default_voice)
        if voice is None:
            raise ConfigError(f"default_voice {self.config.default_voice!r} is not a configured voice")
        return voice

    def resolve_voice(self, voice_id: str | None, day: date) -> VoiceProfile:
        """Voice for an explicit id, or the day's voice when no id is given.

        Unconfigured ids are still honoured for synthesis; they have no
        pre-rendered files, so outro selection falls back to the default voice.
        """
        if not voice_id:
            return self.daily_voice(day)
        voice = self.config.voice_by_id(voice_id)
        if voice is None:
            return VoiceProfile(voice_id=voice_id, name=voice_id)
        return voice
