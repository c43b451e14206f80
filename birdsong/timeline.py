"""
Audio timeline plans.

A TimingPlan fixes every delay, fade and duck point for one composed
track. compile_filter_graph() turns it into an ffmpeg -filter_complex
string, so all timing arithmetic can be checked without running ffmpeg.

Ordering rule for every plan: the final fade-out starts at or after the
moment the voice finishes, never before.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from birdsong.audio_tools import RenderInput
from birdsong.config import IntroTiming, NarrationTiming, OutroTiming

ROLE_AMBIENCE = "ambience"
ROLE_CHIME = "chime"
ROLE_VOICE = "voice"
ROLE_BIRDSONG = "birdsong"
ROLES = (ROLE_AMBIENCE, ROLE_CHIME, ROLE_VOICE, ROLE_BIRDSONG)

EPSILON = 1e-6


@dataclass(frozen=True)
class AudioLayer:
    """Raw audio for one role. Beds (ambience, looped bird song) may have no duration."""
    role: str
    audio: Union[bytes, Path]
    duration_seconds: Optional[float] = None
    loop: bool = False

    def as_input(self) -> RenderInput:
        return RenderInput(source=self.audio, loop=self.loop)


@dataclass(frozen=True)
class LayerCue:
    """How one input is placed on the timeline."""
    role: str
    delay_seconds: float = 0.0
    volume: float = 1.0
    fade_in_seconds: float = 0.0
    duck_volume: Optional[float] = None  # factor applied on top of `volume` from duck_start
    fade_out_start_seconds: Optional[float] = None
    fade_out_seconds: float = 0.0
    pad_to_seconds: Optional[float] = None
    duration_seconds: Optional[float] = None

    @property
    def delay_ms(self) -> int:
        return int(round(self.delay_seconds * 1000))

    @property
    def end_seconds(self) -> Optional[float]:
        if self.duration_seconds is None:
            return None
        return self.delay_seconds + self.duration_seconds


@dataclass(frozen=True)
class TimingPlan:
    cues: tuple[LayerCue, ...]
    lead_in_seconds: float
    fade_out_start_seconds: float
    fade_out_duration_seconds: float
    total_duration_seconds: float
    voice_end_seconds: float
    duck_start_seconds: Optional[float] = None
    amix_duration: str = "longest"
    dropout_transition: Optional[float] = None
    trim: bool = True

    @property
    def per_layer_delay_ms(self) -> list[int]:
        return [cue.delay_ms for cue in self.cues]

    def cue(self, role: str) -> LayerCue:
        for cue in self.cues:
            if cue.role == role:
                return cue
        raise KeyError(role)

    def check(self) -> "TimingPlan":
        if not self.cues:
            raise ValueError("timing plan has no layers")
        for cue in self.cues:
            if cue.role not in ROLES:
                raise ValueError(f"unknown layer role {cue.role!r}")
            end = cue.end_seconds
            if end is not None and end > self.total_duration_seconds + EPSILON:
                raise ValueError(f"{cue.role} ends at {end:.3f}s after total {self.total_duration_seconds:.3f}s")
        if self.fade_out_start_seconds + EPSILON < self.voice_end_seconds:
            raise ValueError("fade-out starts before the voice has finished")
        if self.fade_out_start_seconds + self.fade_out_duration_seconds > self.total_duration_seconds + EPSILON:
            raise ValueError("fade-out runs past the end of the track")
        return self


def plan_intro(voice_seconds: float, timing: IntroTiming) -> TimingPlan:
    """Ambience fades in, chime lands during the fade, voice enters and ducks the bed."""
    voice_end = timing.voice_delay_seconds + voice_seconds
    return TimingPlan(
        cues=(
            LayerCue(
                role=ROLE_AMBIENCE,
                volume=timing.pre_voice_volume,
                fade_in_seconds=timing.fade_in_seconds,
                duck_volume=timing.during_voice_volume / timing.pre_voice_volume,
            ),
            LayerCue(
                role=ROLE_CHIME,
                delay_seconds=timing.chime_delay_seconds,
                volume=timing.chime_volume,
            ),
            LayerCue(
                role=ROLE_VOICE,
                delay_seconds=timing.voice_delay_seconds,
                volume=timing.voice_boost,
                duration_seconds=voice_seconds,
            ),
        ),
        lead_in_seconds=timing.voice_delay_seconds,
        duck_start_seconds=timing.voice_delay_seconds,
        fade_out_start_seconds=voice_end,
        fade_out_duration_seconds=timing.fade_out_seconds,
        total_duration_seconds=voice_end + timing.fade_out_seconds,
        voice_end_seconds=voice_end,
        dropout_transition=0.5,
    ).check()


def plan_narration(voice_seconds: float, timing: NarrationTiming) -> TimingPlan:
    """Boosted voice over a quiet ambience bed that fades shortly after the voice ends."""
    total = voice_seconds + timing.tail_seconds
    fade_start = voice_seconds + timing.fade_out_gap_seconds
    return TimingPlan(
        cues=(
            LayerCue(
                role=ROLE_VOICE,
                volume=timing.voice_boost,
                fade_in_seconds=timing.voice_fade_in_seconds,
                pad_to_seconds=total,
                duration_seconds=voice_seconds,
            ),
            LayerCue(
                role=ROLE_AMBIENCE,
                volume=timing.ambience_volume,
                fade_in_seconds=timing.ambience_fade_in_seconds,
                fade_out_start_seconds=fade_start,
                fade_out_seconds=timing.fade_out_seconds,
            ),
        ),
        lead_in_seconds=0.0,
        fade_out_start_seconds=fade_start,
        fade_out_duration_seconds=timing.fade_out_seconds,
        total_duration_seconds=total,
        voice_end_seconds=voice_seconds,
        amix_duration="first",
        dropout_transition=0.5,
    ).check()


def plan_outro(voice_seconds: float, timing: OutroTiming) -> TimingPlan:
    """Voice padded to the card length over looped bird song.

    The total is normally capped at timing.total_seconds; a voice too long
    to finish before the fade stretches the track rather than being cut.
    """
    total = max(timing.total_seconds, voice_seconds + timing.fade_out_seconds)
    return TimingPlan(
        cues=(
            LayerCue(
                role=ROLE_VOICE,
                volume=timing.voice_boost,
                pad_to_seconds=total,
                duration_seconds=voice_seconds,
            ),
            LayerCue(
                role=ROLE_BIRDSONG,
                volume=timing.birdsong_volume,
                fade_in_seconds=timing.birdsong_fade_in_seconds,
            ),
        ),
        lead_in_seconds=0.0,
        fade_out_start_seconds=total - timing.fade_out_seconds,
        fade_out_duration_seconds=timing.fade_out_seconds,
        total_duration_seconds=total,
        voice_end_seconds=voice_seconds,
        amix_duration="first",
    ).check()


def plan_boost(voice_seconds: float, volume: float) -> TimingPlan:
    """Single voice layer, louder, untrimmed."""
    return TimingPlan(
        cues=(LayerCue(role=ROLE_VOICE, volume=volume, duration_seconds=voice_seconds),),
        lead_in_seconds=0.0,
        fade_out_start_seconds=voice_seconds,
        fade_out_duration_seconds=0.0,
        total_duration_seconds=voice_seconds,
        voice_end_seconds=voice_seconds,
        trim=False,
    ).check()


def _num(value: float) -> str:
    text = f"{value:.4f}".rstrip("0").rstrip(".")
    return text or "0"


def _cue_filters(cue: LayerCue, duck_start: Optional[float]) -> list[str]:
    filters = []
    if cue.fade_in_seconds > 0:
        filters.append(f"afade=t=in:st=0:d={_num(cue.fade_in_seconds)}")
    filters.append(f"volume={_num(cue.volume)}")
    if cue.duck_volume is not None and duck_start is not None:
        filters.append(f"volume={_num(cue.duck_volume)}:enable='gte(t,{_num(duck_start)})'")
    if cue.fade_out_start_seconds is not None and cue.fade_out_seconds > 0:
        filters.append(f"afade=t=out:st={_num(cue.fade_out_start_seconds)}:d={_num(cue.fade_out_seconds)}")
    if cue.delay_ms > 0:
        filters.append(f"adelay={cue.delay_ms}|{cue.delay_ms}")
    if cue.pad_to_seconds is not None:
        filters.append(f"apad=whole_dur={_num(cue.pad_to_seconds)}")
    return filters


def compile_filter_graph(plan: TimingPlan) -> str:
    """TimingPlan -> ffmpeg filter_complex. Input i is cue i; the result is labelled [out]."""
    chains = []
    fade_out = ""
    if plan.fade_out_duration_seconds > 0:
        fade_out = f"afade=t=out:st={_num(plan.fade_out_start_seconds)}:d={_num(plan.fade_out_duration_seconds)}"

    if len(plan.cues) == 1:
        filters = _cue_filters(plan.cues[0], plan.duck_start_seconds)
        if fade_out:
            filters.append(fade_out)
        return f"[0:a]{','.join(filters)}[out]"

    labels = []
    for i, cue in enumerate(plan.cues):
        label = f"[{cue.role}{i}]"
        chains.append(f"[{i}:a]{','.join(_cue_filters(cue, plan.duck_start_seconds))}{label}")
        labels.append(label)

    amix = f"amix=inputs={len(labels)}:duration={plan.amix_duration}"
    if plan.dropout_transition is not None:
        amix += f":dropout_transition={_num(plan.dropout_transition)}"

    if fade_out:
        chains.append(f"{''.join(labels)}{amix}[mixed]")
        chains.append(f"[mixed]{fade_out}[out]")
    else:
        chains.append(f"{''.join(labels)}{amix}[out]")
    return ";".join(chains)
