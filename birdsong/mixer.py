#!/usr/bin/env python3
"""
Bird Song Explorer audio timeline composer

Layers the synthesized voice with ambience, chime or bird song:
- intro: ambience fade-in, chime, voice entering over a ducked bed
- narration: boosted voice over the day's ambience
- outro: boosted voice padded to card length over looped bird song
- boost: louder voice alone, when there is no bird song

Every compose call fails soft. In order:
  (a) no ffmpeg              -> voice bytes unchanged
  (b) ambience/chime missing -> voice bytes unchanged
  (c) ffmpeg exits non-zero  -> stderr logged, voice bytes unchanged
  (d) otherwise              -> rendered bytes
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional, Protocol

from birdsong.audio_tools import DurationProbe, Renderer, RenderInput
from birdsong.config import ExplorerConfig
from birdsong.content_generator.helpers import log
from birdsong.errors import AssetMissing, RenderToolFailure
from birdsong.timeline import (
    ROLE_AMBIENCE,
    ROLE_BIRDSONG,
    ROLE_CHIME,
    ROLE_VOICE,
    AudioLayer,
    TimingPlan,
    compile_filter_graph,
    plan_boost,
    plan_intro,
    plan_narration,
    plan_outro,
)

STDERR_LOG_CHARS = 500


class Probe(Protocol):
    def probe(self, audio: bytes) -> float: ...


class RenderBackend(Protocol):
    def available(self) -> bool: ...

    def render(self, inputs: list[RenderInput], filter_graph: str, total_seconds: Optional[float] = None) -> bytes: ...


class AudioTimelineComposer:
    """Composes finished tracks; never raises for audio tooling problems."""

    def __init__(
        self,
        config: ExplorerConfig,
        probe: Optional[Probe] = None,
        renderer: Optional[RenderBackend] = None,
    ):
        self.config = config
        self.probe = probe or DurationProbe()
        self.renderer = renderer or Renderer()

    def voice_duration(self, voice: bytes) -> float:
        try:
            return self.probe.probe(voice)
        except RenderToolFailure as exc:
            fallback = self.config.audio.fallback_voice_seconds
            log(f"[MIXER] Could not measure voice duration ({exc}), assuming {fallback}s")
            return fallback

    def _asset(self, relative: str) -> Path:
        path = self.config.asset_path(relative)
        if not path.is_file():
            raise AssetMissing(f"{path} not found")
        return path

    def _plan(self, label: str, builder: Callable[..., TimingPlan], *args) -> Optional[TimingPlan]:
        try:
            return builder(*args)
        except ValueError as exc:
            log(f"[MIXER] {label} timing plan rejected ({exc}), using voice only")
            return None

    def _render(self, label: str, layers: list[AudioLayer], plan: TimingPlan, voice: bytes) -> bytes:
        graph = compile_filter_graph(plan)
        total = plan.total_duration_seconds if plan.trim else None
        try:
            mixed = self.renderer.render([layer.as_input() for layer in layers], graph, total)
        except RenderToolFailure as exc:
            detail = f": {exc.stderr[:STDERR_LOG_CHARS]}" if exc.stderr else ""
            log(f"[MIXER] {label} render failed ({exc}){detail}; using voice only")
            return voice
        if not mixed:
            log(f"[MIXER] {label} render returned no audio; using voice only")
            return voice
        log(f"[MIXER] {label} mixed: {len(mixed)} bytes, {plan.total_duration_seconds:.1f}s")
        return mixed

    def _tool_ready(self, label: str) -> bool:
        if self.renderer.available():
            return True
        log(f"[MIXER] ffmpeg not available, {label} is voice only")
        return False

    def compose_intro(self, voice: bytes, ambience_path: str) -> bytes:
        """Ambience + chime + voice. Returns voice unchanged on any failure."""
        if not voice or not self._tool_ready("intro"):
            return voice
        try:
            ambience = self._asset(ambience_path)
            chime = self._asset(self.config.chime)
        except AssetMissing as exc:
            log(f"[MIXER] Intro asset missing ({exc}), using voice only")
            return voice

        duration = self.voice_duration(voice)
        plan = self._plan("intro", plan_intro, duration, self.config.audio.intro)
        if plan is None:
            return voice
        layers = [
            AudioLayer(ROLE_AMBIENCE, ambience),
            AudioLayer(ROLE_CHIME, chime),
            AudioLayer(ROLE_VOICE, voice, duration),
        ]
        return self._render("intro", layers, plan, voice)

    def compose_narration(self, voice: bytes, ambience_path: str) -> bytes:
        """Voice over the same ambience the intro used."""
        if not voice or not self._tool_ready("narration"):
            return voice
        try:
            ambience = self._asset(ambience_path)
        except AssetMissing as exc:
            log(f"[MIXER] Narration ambience missing ({exc}), using voice only")
            return voice

        duration = self.voice_duration(voice)
        plan = self._plan("narration", plan_narration, duration, self.config.audio.narration)
        if plan is None:
            return voice
        layers = [
            AudioLayer(ROLE_VOICE, voice, duration),
            AudioLayer(ROLE_AMBIENCE, ambience),
        ]
        return self._render("narration", layers, plan, voice)

    def compose_outro(self, voice: bytes, birdsong: Optional[bytes] = None) -> bytes:
        """Voice over looped bird song; without bird song the voice is only boosted."""
        if not voice:
            return voice
        if not birdsong:
            log("[MIXER] No bird song for outro, boosting voice only")
            return self.boost(voice)
        if not self._tool_ready("outro"):
            return voice

        duration = self.voice_duration(voice)
        plan = self._plan("outro", plan_outro, duration, self.config.audio.outro)
        if plan is None:
            return voice
        layers = [
            AudioLayer(ROLE_VOICE, voice, duration),
            AudioLayer(ROLE_BIRDSONG, birdsong, loop=True),
        ]
        return self._render("outro", layers, plan, voice)

    def boost(self, voice: bytes, volume: Optional[float] = None) -> bytes:
        if not voice or not self._tool_ready("boost"):
            return voice
        volume = volume if volume is not None else self.config.audio.boost_only_volume
        duration = self.voice_duration(voice)
        plan = self._plan("boost", plan_boost, duration, volume)
        if plan is None:
            return voice
        return self._render("boost", [AudioLayer(ROLE_VOICE, voice, duration)], plan, voice)
