from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional

from loguru import logger

from .logging_io import EventLogger

SynthesizeCall = Callable[[str], Awaitable[bytes]]
SuspendCapture = Callable[[float], None]


class ResponsePlayback:
    """Speaks a reply and keeps the microphone shut while it plays.

    The synthesized audio is written to one fixed path, its duration is probed,
    capture is suspended for exactly that long, and then the file is played.
    Playbacks run one at a time so the file is never rewritten mid-play.
    """

    def __init__(
        self,
        synthesize: SynthesizeCall,
        audio_output,
        suspend_capture: SuspendCapture,
        output_path: Path,
        *,
        event_logger: Optional[EventLogger] = None,
    ):
        self._synthesize = synthesize
        self._audio_output = audio_output
        self._suspend_capture = suspend_capture
        self._output_path = Path(output_path)
        self._event_logger = event_logger
        self._lock = asyncio.Lock()

    async def speak(self, text: str) -> Optional[float]:
        text = (text or "").strip()
        if not text:
            return None
        async with self._lock:
            stage = "synthesize"
            try:
                audio = await self._synthesize(text)
                stage = "write"
                self._output_path.parent.mkdir(parents=True, exist_ok=True)
                self._output_path.write_bytes(audio)
                stage = "probe"
                duration = await self._audio_output.probe_duration(self._output_path)
                self._suspend_capture(duration)
                if self._event_logger:
                    self._event_logger.emit("playback_started", {"text": text, "duration_s": duration})
                stage = "play"
                await self._audio_output.play(self._output_path)
            except Exception as exc:
                logger.error(f"playback failed during {stage}: {exc!r}")
                if self._event_logger:
                    self._event_logger.emit("playback_failed", {"stage": stage, "error": repr(exc)})
                return None
        return duration
