from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional

from loguru import logger
from pipecat.frames.frames import AudioRawFrame, TranscriptionFrame
from pipecat.pipeline.pipeline import Pipeline
from pipecat.pipeline.runner import PipelineRunner
from pipecat.pipeline.task import PipelineParams, PipelineTask
from pipecat.processors.frame_processor import FrameDirection, FrameProcessor

from .config import RuntimeConfig
from .logging_io import EventLogger


class MicrophoneGate(FrameProcessor):
    """Drops microphone audio while the device is talking.

    A single resume timer is kept; a new ``suspend`` replaces any pending one, so
    the gate always reopens ``duration`` seconds after the latest request.
    """

    def __init__(self, event_logger: Optional[EventLogger] = None, **kwargs):
        super().__init__(**kwargs)
        self._event_logger = event_logger
        self._suspended = False
        self._resume_task: Optional[asyncio.Task[None]] = None

    @property
    def suspended(self) -> bool:
        return self._suspended

    def suspend(self, duration: float) -> None:
        duration = max(0.0, float(duration))
        if self._resume_task:
            self._resume_task.cancel()
        self._suspended = True
        self._resume_task = asyncio.get_running_loop().create_task(self._delayed_resume(duration))
        logger.info(f"Microphone paused for {duration:.2f} seconds.")
        if self._event_logger:
            self._event_logger.emit("capture_suspended", {"duration_s": duration})

    def reopen(self) -> None:
        if self._resume_task:
            self._resume_task.cancel()
            self._resume_task = None
        self._reopen_now()

    def _reopen_now(self) -> None:
        if not self._suspended:
            return
        self._suspended = False
        logger.info("Microphone resumed.")
        if self._event_logger:
            self._event_logger.emit("capture_resumed")

    async def _delayed_resume(self, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return
        self._resume_task = None
        self._reopen_now()

    async def cleanup(self) -> None:
        if self._resume_task:
            self._resume_task.cancel()
            self._resume_task = None
        await super().cleanup()

    def should_drop(self, frame, direction: FrameDirection) -> bool:
        return direction == FrameDirection.DOWNSTREAM and self._suspended and isinstance(frame, AudioRawFrame)

    async def process_frame(self, frame, direction: FrameDirection):  # type: ignore[override]
        await super().process_frame(frame, direction)
        if self.should_drop(frame, direction):
            return
        await self.push_frame(frame, direction)


class TranscriptCollector(FrameProcessor):
    """Hands final transcriptions over to whoever consumes the transcript stream."""

    def __init__(self, queue: "asyncio.Queue[Optional[str]]", **kwargs):
        super().__init__(enable_direct_mode=True, **kwargs)
        self._queue = queue

    async def process_frame(self, frame, direction: FrameDirection):  # type: ignore[override]
        await super().process_frame(frame, direction)
        if isinstance(frame, TranscriptionFrame) and direction == FrameDirection.DOWNSTREAM:
            text = (frame.text or "").strip()
            if text:
                logger.info(f"TJ hears: {text}")
                self._queue.put_nowait(text)
        await self.push_frame(frame, direction)


class AudioCaptureGate:
    """Microphone → gate → speech-to-text, exposed as an async stream of transcripts."""

    def __init__(self, config: RuntimeConfig, deepgram_api_key: str, *, event_logger: Optional[EventLogger] = None):
        self._config = config
        self._api_key = deepgram_api_key
        self._event_logger = event_logger
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._gate = MicrophoneGate(event_logger=event_logger)
        self._collector = TranscriptCollector(self._queue)
        self._task: Optional[PipelineTask] = None
        self._runner_task: Optional[asyncio.Task[None]] = None
        self._streaming = False
        self._closed = False

    @property
    def collector(self) -> TranscriptCollector:
        return self._collector

    @property
    def suspended(self) -> bool:
        return self._gate.suspended

    def suspend(self, duration: float) -> None:
        self._gate.suspend(duration)

    def _build_pipeline(self) -> Pipeline:
        # PyAudio and the Deepgram client are only needed on the device itself.
        from pipecat.transports.local.audio import LocalAudioTransport, LocalAudioTransportParams

        from providers.stt import build_deepgram_flux_stt

        audio = self._config.audio
        transport = LocalAudioTransport(
            LocalAudioTransportParams(
                audio_in_enabled=True,
                audio_in_sample_rate=audio.sample_rate,
                audio_out_enabled=False,
                input_device_index=audio.input_device_index,
            )
        )
        stt = build_deepgram_flux_stt(self._config, self._api_key)
        return Pipeline([transport.input(), self._gate, stt, self._collector])

    async def start(self) -> None:
        if self._runner_task:
            return
        pipeline = self._build_pipeline()
        self._task = PipelineTask(pipeline, params=PipelineParams(audio_in_sample_rate=self._config.audio.sample_rate))
        runner = PipelineRunner(handle_sigint=False)
        self._runner_task = asyncio.get_running_loop().create_task(runner.run(self._task))
        self._runner_task.add_done_callback(self._on_capture_finished)
        logger.info("TJ is listening, you may speak now.")

    def _on_capture_finished(self, task: "asyncio.Task[None]") -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"audio capture stopped: {task.exception()!r}")
            if self._event_logger:
                self._event_logger.emit("capture_failed", {"error": repr(task.exception())})
        self.close_stream()

    def close_stream(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def transcripts(self) -> AsyncIterator[str]:
        if self._streaming:
            raise RuntimeError("transcript stream can only be consumed once")
        self._streaming = True
        while True:
            text = await self._queue.get()
            if text is None:
                return
            yield text

    async def stop(self) -> None:
        self._gate.reopen()
        if self._task:
            await self._task.cancel()
        if self._runner_task:
            try:
                await asyncio.wait_for(self._runner_task, timeout=2.0)
            except (asyncio.TimeoutError, asyncio.CancelledError):
                pass
            except Exception as exc:
                logger.debug(f"capture pipeline exited with {exc!r}")
        self.close_stream()
