#!/usr/bin/env python3
"""
ffmpeg/ffprobe boundary.

Every invocation runs in its own temporary directory, removed on every
exit path. Probe failures raise RenderToolFailure so the caller can fall
back to a fixed duration.
"""

from __future__ import annotations

import shutil
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from birdsong.config import RENDER_TIMEOUT_SECONDS
from birdsong.errors import RenderToolFailure


def find_tool(name: str) -> Optional[str]:
    return shutil.which(name)


@dataclass(frozen=True)
class RenderInput:
    """One ffmpeg input: a file on disk or raw bytes, optionally looped forever."""
    source: Union[Path, bytes]
    loop: bool = False


class DurationProbe:
    """Measures audio length with ffprobe."""

    def __init__(self, tool: str = "ffprobe", timeout: float = 10.0):
        self.tool = tool
        self.timeout = timeout

    def probe(self, audio: bytes) -> float:
        exe = find_tool(self.tool)
        if exe is None:
            raise RenderToolFailure(f"{self.tool} not found in PATH")

        with tempfile.TemporaryDirectory(prefix="birdsong_probe_") as tmp:
            path = Path(tmp) / "audio.mp3"
            path.write_bytes(audio)
            try:
                result = subprocess.run(
                    [exe, "-v", "quiet", "-show_entries", "format=duration",
                     "-of", "default=noprint_wrappers=1:nokey=1", str(path)],
                    capture_output=True, text=True, timeout=self.timeout
                )
            except subprocess.TimeoutExpired as exc:
                raise RenderToolFailure(f"{self.tool} timed out") from exc

        if result.returncode != 0:
            raise RenderToolFailure(f"{self.tool} exited {result.returncode}", stderr=result.stderr)
        try:
            duration = float(result.stdout.strip())
        except ValueError as exc:
            raise RenderToolFailure(f"{self.tool} returned no duration: {result.stdout!r}") from exc
        if duration <= 0:
            raise RenderToolFailure(f"{self.tool} returned non-positive duration {duration}")
        return duration


class Renderer:
    """Runs an ffmpeg filter graph over a set of inputs and returns MP3 bytes."""

    def __init__(self, tool: str = "ffmpeg", timeout: float = RENDER_TIMEOUT_SECONDS, bitrate: str = "192k"):
        self.tool = tool
        self.timeout = timeout
        self.bitrate = bitrate

    def available(self) -> bool:
        return find_tool(self.tool) is not None

    def render(self, inputs: list[RenderInput], filter_graph: str, total_seconds: Optional[float] = None) -> bytes:
        exe = find_tool(self.tool)
        if exe is None:
            raise RenderToolFailure(f"{self.tool} not found in PATH")

        with tempfile.TemporaryDirectory(prefix="birdsong_render_") as tmp:
            tmp_dir = Path(tmp)
            cmd = [exe, "-y", "-hide_banner", "-loglevel", "error"]
            for i, item in enumerate(inputs):
                if isinstance(item.source, bytes):
                    path = tmp_dir / f"input_{i}.mp3"
                    path.write_bytes(item.source)
                else:
                    path = item.source
                if item.loop:
                    cmd += ["-stream_loop", "-1"]
                cmd += ["-i", str(path)]

            output = tmp_dir / "output.mp3"
            cmd += ["-filter_complex", filter_graph, "-map", "[out]"]
            if total_seconds is not None:
                cmd += ["-t", f"{total_seconds:.2f}"]
            cmd += [
                "-c:a", "libmp3lame",
                "-b:a", self.bitrate,
                str(output),
            ]

            try:
                result = subprocess.run(cmd, capture_output=True, timeout=self.timeout)
            except subprocess.TimeoutExpired as exc:
                raise RenderToolFailure(f"{self.tool} timed out after {self.timeout}s") from exc

            if result.returncode != 0:
                stderr = result.stderr.decode(errors="replace")
                raise RenderToolFailure(f"{self.tool} exited {result.returncode}", stderr=stderr)

            if not output.exists() or output.stat().st_size == 0:
                raise RenderToolFailure(f"{self.tool} produced no output")
            return output.read_bytes()
