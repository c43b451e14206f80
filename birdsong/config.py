#!/usr/bin/env python3
"""
Bird Song Explorer configuration

Loads `birdsong/data/explorer.yaml` (or $BIRDSONG_CONFIG) and validates it
into frozen dataclasses:
- voices (one is picked per day, all tracks of a day share it)
- ambience tracks and the intro chime
- the global fallback bird list and the observation search tiers
- audio timing for the intro, narration and outro compositions

Secrets and filesystem roots come from the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from birdsong.errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "data" / "explorer.yaml"

EBIRD_API_KEY = os.environ.get("EBIRD_API_KEY", "")
XENO_CANTO_API_KEY = os.environ.get("XENO_CANTO_API_KEY", "")
ELEVENLABS_API_KEY = os.environ.get("ELEVENLABS_API_KEY", "")

ASSETS_DIR = Path(os.environ.get("BIRDSONG_ASSETS_DIR", str(PROJECT_ROOT / "assets"))).expanduser()

HTTP_TIMEOUT_SECONDS = float(os.environ.get("BIRDSONG_HTTP_TIMEOUT", "10"))
TTS_TIMEOUT_SECONDS = float(os.environ.get("BIRDSONG_TTS_TIMEOUT", "30"))
RENDER_TIMEOUT_SECONDS = float(os.environ.get("BIRDSONG_RENDER_TIMEOUT", "60"))

FACT_GENERATORS = ("basic", "enhanced")


@dataclass(frozen=True)
class VoiceProfile:
    voice_id: str
    name: str
    region: str = ""
    language: str = ""


@dataclass(frozen=True)
class VoiceSettings:
    """ElevenLabs voice settings.

    Ranges: stability, similarity_boost and style in [0, 1]; speed in
    [0.7, 1.2]. Lower stability gives more emotional range, higher
    similarity_boost stays closer to the reference voice.
    """

    model_id: str = "eleven_multilingual_v2"
    stability: float = 0.40
    similarity_boost: float = 0.90
    speed: float = 1.0
    style: float = 0.0
    use_speaker_boost: bool = True

    def validate(self) -> None:
        for name in ("stability", "similarity_boost", "style"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"voice_settings.{name} must be within [0, 1]: {value!r}")
        if not 0.7 <= self.speed <= 1.2:
            raise ConfigError(f"voice_settings.speed must be within [0.7, 1.2]: {self.speed!r}")
        if not self.model_id:
            raise ConfigError("voice_settings.model_id is empty")

    def payload(self) -> dict[str, Any]:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "speed": self.speed,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
        }


@dataclass(frozen=True)
class AmbienceOption:
    name: str
    path: str


@dataclass(frozen=True)
class FallbackBird:
    common: str
    scientific: str
    region: str = ""


@dataclass(frozen=True)
class SearchTier:
    radius_km: int
    days: int

    @property
    def label(self) -> str:
        return f"{self.radius_km}km/{self.days}days"


@dataclass(frozen=True)
class IntroTiming:
    fade_in_seconds: float = 2.5
    pre_voice_volume: float = 0.35
    during_voice_volume: float = 0.15
    chime_delay_seconds: float = 2.0
    chime_volume: float = 0.6
    voice_delay_seconds: float = 3.0
    voice_boost: float = 2.0
    fade_out_seconds: float = 2.0


@dataclass(frozen=True)
class NarrationTiming:
    ambience_volume: float = 0.15
    voice_boost: float = 2.2
    voice_fade_in_seconds: float = 0.1
    ambience_fade_in_seconds: float = 0.1
    fade_out_gap_seconds: float = 0.5
    fade_out_seconds: float = 1.0
    tail_seconds: float = 2.0


@dataclass(frozen=True)
class OutroTiming:
    birdsong_volume: float = 0.15
    birdsong_fade_in_seconds: float = 1.0
    voice_boost: float = 2.2
    total_seconds: float = 30.0
    fade_out_seconds: float = 2.0


@dataclass(frozen=True)
class AudioSettings:
    intro: IntroTiming = field(default_factory=IntroTiming)
    narration: NarrationTiming = field(default_factory=NarrationTiming)
    outro: OutroTiming = field(default_factory=OutroTiming)
    fallback_voice_seconds: float = 5.0
    boost_only_volume: float = 2.2


@dataclass(frozen=True)
class ExplorerConfig:
    voices: tuple[VoiceProfile, ...]
    default_voice: str
    ambiences: tuple[AmbienceOption, ...]
    chime: str
    fallback_birds: tuple[FallbackBird, ...]
    search_tiers: tuple[SearchTier, ...]
    voice_settings: VoiceSettings = field(default_factory=VoiceSettings)
    audio: AudioSettings = field(default_factory=AudioSettings)
    fact_generator: str = "basic"
    assets_dir: Path = ASSETS_DIR

    def voice_by_id(self, voice_id: str) -> VoiceProfile | None:
        for voice in self.voices:
            if voice.voice_id == voice_id:
                return voice
        return None

    def voice_by_name(self, name: str) -> VoiceProfile | None:
        for voice in self.voices:
            if voice.name == name:
                return voice
        return None

    def asset_path(self, relative: str) -> Path:
        return self.assets_dir / relative

    def validate(self) -> None:
        if not self.voices:
            raise ConfigError("voices is empty")
        if self.voice_by_name(self.default_voice) is None:
            raise ConfigError(f"default_voice {self.default_voice!r} is not a configured voice")
        if not self.ambiences:
            raise ConfigError("ambiences is empty")
        if not self.fallback_birds:
            raise ConfigError("fallback_birds is empty")
        if not self.search_tiers:
            raise ConfigError("search_tiers is empty")
        for tier in self.search_tiers:
            if tier.radius_km <= 0 or tier.days <= 0:
                raise ConfigError(f"search tier {tier.label} must be positive")
        if self.fact_generator not in FACT_GENERATORS:
            raise ConfigError(f"fact_generator must be one of {FACT_GENERATORS}: {self.fact_generator!r}")
        if self.audio.fallback_voice_seconds <= 0:
            raise ConfigError("audio.fallback_voice_seconds must be > 0")
        intro = self.audio.intro
        if intro.chime_delay_seconds >= intro.voice_delay_seconds:
            raise ConfigError("audio.intro.chime_delay_seconds must be before voice_delay_seconds")
        if intro.pre_voice_volume <= 0:
            raise ConfigError("audio.intro.pre_voice_volume must be > 0")
        narration = self.audio.narration
        if narration.fade_out_gap_seconds < 0 or narration.fade_out_seconds < 0:
            raise ConfigError("audio.narration fade_out_gap_seconds and fade_out_seconds must be >= 0")
        if narration.tail_seconds < narration.fade_out_gap_seconds + narration.fade_out_seconds:
            raise ConfigError(
                "audio.narration.tail_seconds must cover fade_out_gap_seconds + fade_out_seconds"
            )
        if self.audio.outro.total_seconds <= self.audio.outro.fade_out_seconds:
            raise ConfigError("audio.outro.total_seconds must exceed fade_out_seconds")
        self.voice_settings.validate()


def _require_mapping(value: Any, where: str) -> dict:
    if not isinstance(value, dict):
        raise ConfigError(f"{where} must be a mapping")
    return value


def _require_list(value: Any, where: str) -> list:
    if not isinstance(value, list) or not value:
        raise ConfigError(f"{where} must be a non-empty list")
    return value


def _require_str(cfg: dict, key: str, where: str) -> str:
    value = cfg.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"{where}: missing `{key}`")
    return value.strip()


def _timing(cls, raw: Any, where: str):
    if raw is None:
        return cls()
    raw = _require_mapping(raw, where)
    known = set(cls.__dataclass_fields__)
    unknown = set(raw) - known
    if unknown:
        raise ConfigError(f"{where}: unknown keys {sorted(unknown)}")
    try:
        return cls(**{k: float(v) for k, v in raw.items()})
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{where}: {exc}") from exc


def parse_config(payload: Any, assets_dir: Path | None = None) -> ExplorerConfig:
    payload = _require_mapping(payload, "Config YAML top level")

    voices = []
    for item in _require_list(payload.get("voices"), "voices"):
        item = _require_mapping(item, "voices[]")
        voices.append(
            VoiceProfile(
                voice_id=_require_str(item, "id", "voices[]"),
                name=_require_str(item, "name", "voices[]"),
                region=str(item.get("region", "")),
                language=str(item.get("language", "")),
            )
        )

    ambiences = []
    for item in _require_list(payload.get("ambiences"), "ambiences"):
        item = _require_mapping(item, "ambiences[]")
        ambiences.append(
            AmbienceOption(
                name=_require_str(item, "name", "ambiences[]"),
                path=_require_str(item, "path", "ambiences[]"),
            )
        )

    birds = []
    for item in _require_list(payload.get("fallback_birds"), "fallback_birds"):
        item = _require_mapping(item, "fallback_birds[]")
        birds.append(
            FallbackBird(
                common=_require_str(item, "common", "fallback_birds[]"),
                scientific=_require_str(item, "scientific", "fallback_birds[]"),
                region=str(item.get("region", "")),
            )
        )

    tiers = []
    for item in _require_list(payload.get("search_tiers"), "search_tiers"):
        item = _require_mapping(item, "search_tiers[]")
        try:
            tiers.append(SearchTier(radius_km=int(item["radius_km"]), days=int(item["days"])))
        except (KeyError, TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid search tier {item!r}") from exc

    settings_raw = payload.get("voice_settings") or {}
    settings_raw = _require_mapping(settings_raw, "voice_settings")
    try:
        voice_settings = VoiceSettings(
            model_id=str(settings_raw.get("model_id", VoiceSettings.model_id)),
            stability=float(settings_raw.get("stability", VoiceSettings.stability)),
            similarity_boost=float(settings_raw.get("similarity_boost", VoiceSettings.similarity_boost)),
            speed=float(settings_raw.get("speed", VoiceSettings.speed)),
            style=float(settings_raw.get("style", VoiceSettings.style)),
            use_speaker_boost=bool(settings_raw.get("use_speaker_boost", True)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"voice_settings: {exc}") from exc

    audio_raw = _require_mapping(payload.get("audio") or {}, "audio")
    audio = AudioSettings(
        intro=_timing(IntroTiming, audio_raw.get("intro"), "audio.intro"),
        narration=_timing(NarrationTiming, audio_raw.get("narration"), "audio.narration"),
        outro=_timing(OutroTiming, audio_raw.get("outro"), "audio.outro"),
        fallback_voice_seconds=float(audio_raw.get("fallback_voice_seconds", 5.0)),
        boost_only_volume=float(audio_raw.get("boost_only_volume", 2.2)),
    )

    default_voice = str(payload.get("default_voice") or voices[0].name)

    config = ExplorerConfig(
        voices=tuple(voices),
        default_voice=default_voice,
        ambiences=tuple(ambiences),
        chime=str(payload.get("chime", "sound_effects/chimes/sparkle_chime.mp3")),
        fallback_birds=tuple(birds),
        search_tiers=tuple(tiers),
        voice_settings=voice_settings,
        audio=audio,
        fact_generator=str(payload.get("fact_generator", "basic")),
        assets_dir=assets_dir or ASSETS_DIR,
    )
    config.validate()
    return config


def load_config(path: Path | None = None, assets_dir: Path | None = None) -> ExplorerConfig:
    if path is None:
        path = Path(os.environ.get("BIRDSONG_CONFIG", str(DEFAULT_CONFIG_PATH))).expanduser()
    try:
        payload = yaml.safe_load(path.read_text())
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except Exception as exc:
        raise ConfigError(f"Failed to read config YAML: {exc}") from exc
    return parse_config(payload, assets_dir=assets_dir)
