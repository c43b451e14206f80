#!/usr/bin/env python3
"""
Bird Song Explorer TTS Module

Speech synthesis through the ElevenLabs text-to-speech API. Every track of
a day is spoken by the same voice, so callers pass the day's voice id.

Usage:
    from birdsong.content_generator.tts_engine import SpeechSynthesizer

    audio = SpeechSynthesizer().synthesize("Hello, explorers!", voice_id)

Environment:
    ELEVENLABS_API_KEY: required
    BIRDSONG_TTS_TIMEOUT: request timeout in seconds (default 30)
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import httpx

from birdsong.config import ELEVENLABS_API_KEY, TTS_TIMEOUT_SECONDS, VoiceSettings
from birdsong.content_generator.helpers import log, preprocess_for_tts, strip_breaks
from birdsong.errors import UpstreamUnavailable

ELEVENLABS_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"


class SpeechSynthesizer:
    """Text + voice id -> MP3 bytes."""

    def __init__(
        self,
        api_key: str = ELEVENLABS_API_KEY,
        client: Optional[httpx.Client] = None,
        timeout: float = TTS_TIMEOUT_SECONDS,
    ):
        self.api_key = api_key
        self._client = client or httpx.Client(timeout=timeout)

    def synthesize(self, text: str, voice_id: str, settings: Optional[VoiceSettings] = None) -> bytes:
        """
        Render text to speech.

        Args:
            text: Script text; [pause] markers become SSML breaks
            voice_id: ElevenLabs voice id
            settings: Typed voice settings (defaults if omitted)

        Returns:
            MP3 bytes

        Raises:
            UpstreamUnavailable: missing key, HTTP failure or empty audio
        """
        if not self.api_key:
            raise UpstreamUnavailable("ELEVENLABS_API_KEY is not set")
        settings = settings or VoiceSettings()
        prepared = preprocess_for_tts(text)
        log(f"[TTS] Synthesizing {len(strip_breaks(prepared).split())} words with voice {voice_id}")

        try:
            response = self._client.post(
                ELEVENLABS_URL.format(voice_id=voice_id),
                headers={"xi-api-key": self.api_key, "Accept": "audio/mpeg"},
                json={
                    "text": prepared,
                    "model_id": settings.model_id,
                    "voice_settings": settings.payload(),
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"ElevenLabs synthesis failed: {exc}") from exc

        if not response.content:
            raise UpstreamUnavailable("ElevenLabs returned empty audio")
        return response.content

    def close(self) -> None:
        self._client.close()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Bird Song Explorer TTS")
    parser.add_argument("text", help="Text to speak")
    parser.add_argument("voice_id", help="ElevenLabs voice id")
    parser.add_argument("-o", "--output", default="speech.mp3", help="Output file")
    args = parser.parse_args()

    audio = SpeechSynthesizer().synthesize(args.text, args.voice_id)
    Path(args.output).write_bytes(audio)
    print(f"Wrote {len(audio)} bytes to {args.output}")
