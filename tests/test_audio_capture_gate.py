import asyncio

import pytest

from pipecat.frames.frames import InputAudioRawFrame, TextFrame, TranscriptionFrame
from pipecat.processors.frame_processor import FrameDirection

from tjbot.capture import AudioCaptureGate, MicrophoneGate
from tjbot.config import RuntimeConfig


def _audio_frame() -> InputAudioRawFrame:
    return InputAudioRawFrame(audio=b"\x00\x00" * 160, sample_rate=16000, num_channels=1)


@pytest.mark.asyncio
async def test_gate_resumes_after_requested_duration():
    gate = MicrophoneGate()
    gate.suspend(0.05)
    assert gate.suspended
    await asyncio.sleep(0.1)
    assert not gate.suspended


@pytest.mark.asyncio
async def test_latest_suspend_replaces_pending_timer():
    gate = MicrophoneGate()
    gate.suspend(0.05)
    gate.suspend(0.3)
    await asyncio.sleep(0.12)
    assert gate.suspended

    gate.suspend(0.02)
    await asyncio.sleep(0.08)
    assert not gate.suspended
    await gate.cleanup()


@pytest.mark.asyncio
async def test_gate_drops_audio_only_while_suspended():
    gate = MicrophoneGate()
    pushed = []

    async def record(frame, direction=FrameDirection.DOWNSTREAM):
        pushed.append(frame)

    gate.push_frame = record

    await gate.process_frame(_audio_frame(), FrameDirection.DOWNSTREAM)
    gate.suspend(5)
    await gate.process_frame(_audio_frame(), FrameDirection.DOWNSTREAM)
    text = TextFrame(text="still flows")
    await gate.process_frame(text, FrameDirection.DOWNSTREAM)
    gate.reopen()
    await gate.process_frame(_audio_frame(), FrameDirection.DOWNSTREAM)

    assert len(pushed) == 3
    assert pushed[1] is text
    assert not gate.suspended


@pytest.mark.asyncio
async def test_transcripts_stream_yields_collected_text_then_ends():
    capture = AudioCaptureGate(RuntimeConfig(), "dg-key")
    for text in ["hello tj", "   ", "how are you"]:
        frame = TranscriptionFrame(text=text, user_id="mic", timestamp="2024-01-01T00:00:00Z")
        await capture.collector.process_frame(frame, FrameDirection.DOWNSTREAM)
    capture.close_stream()

    received = [text async for text in capture.transcripts()]
    assert received == ["hello tj", "how are you"]


@pytest.mark.asyncio
async def test_transcripts_stream_cannot_be_restarted():
    capture = AudioCaptureGate(RuntimeConfig(), "dg-key")
    capture.close_stream()
    assert [text async for text in capture.transcripts()] == []

    with pytest.raises(RuntimeError):
        async for _ in capture.transcripts():
            pass


@pytest.mark.asyncio
async def test_capture_suspend_goes_through_gate():
    capture = AudioCaptureGate(RuntimeConfig(), "dg-key")
    capture.suspend(0.02)
    assert capture.suspended
    await asyncio.sleep(0.06)
    assert not capture.suspended
