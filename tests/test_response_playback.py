import sys
from pathlib import Path

import pytest

from providers.audio_out import AudioOutput, AudioToolError
from tjbot.playback import ResponsePlayback


class FakeOutput:
    def __init__(self, duration=3.2, play_error=None):
        self.duration = duration
        self.play_error = play_error
        self.played: list[Path] = []

    async def probe_duration(self, path):
        return self.duration

    async def play(self, path):
        if self.play_error:
            raise self.play_error
        self.played.append(path)


async def _synth(text):
    return b"RIFF" + text.encode()


@pytest.mark.asyncio
async def test_speak_suspends_capture_for_measured_duration(tmp_path: Path):
    suspended: list[float] = []
    output = FakeOutput(duration=3.2)
    playback = ResponsePlayback(_synth, output, suspended.append, tmp_path / "speech.wav")

    duration = await playback.speak("Hi there, I am awake.")

    assert duration == 3.2
    assert suspended == [3.2]
    assert output.played == [tmp_path / "speech.wav"]
    assert (tmp_path / "speech.wav").read_bytes() == b"RIFFHi there, I am awake."


@pytest.mark.asyncio
async def test_speak_overwrites_fixed_path(tmp_path: Path):
    playback = ResponsePlayback(_synth, FakeOutput(), lambda d: None, tmp_path / "speech.wav")

    await playback.speak("first reply")
    await playback.speak("second")

    assert (tmp_path / "speech.wav").read_bytes() == b"RIFFsecond"


@pytest.mark.asyncio
async def test_speak_swallows_synthesis_failure(tmp_path: Path):
    async def broken(text):
        raise ConnectionError("tts unavailable")

    suspended: list[float] = []
    playback = ResponsePlayback(broken, FakeOutput(), suspended.append, tmp_path / "speech.wav")

    assert await playback.speak("hello") is None
    assert suspended == []


@pytest.mark.asyncio
async def test_speak_logs_player_failure(tmp_path: Path):
    playback = ResponsePlayback(_synth, FakeOutput(play_error=AudioToolError("no device")), lambda d: None, tmp_path / "s.wav")
    assert await playback.speak("hello") is None


@pytest.mark.asyncio
async def test_speak_ignores_blank_text(tmp_path: Path):
    suspended: list[float] = []
    playback = ResponsePlayback(_synth, FakeOutput(), suspended.append, tmp_path / "speech.wav")
    assert await playback.speak("   ") is None
    assert suspended == []
    assert not (tmp_path / "speech.wav").exists()


@pytest.mark.asyncio
async def test_audio_output_probes_and_plays_with_external_commands(tmp_path: Path):
    wav = tmp_path / "speech.wav"
    wav.write_bytes(b"RIFF")
    marker = tmp_path / "played.txt"
    probe = [sys.executable, "-c", "import json; print(json.dumps({'format': {'duration': '3.200000'}}))"]
    player = [sys.executable, "-c", f"import sys, pathlib; pathlib.Path({str(marker)!r}).write_text(sys.argv[-1])"]
    output = AudioOutput(player_command=player, probe_command=probe, check_binaries=False)

    assert await output.probe_duration(wav) == pytest.approx(3.2)
    await output.play(wav)
    assert marker.read_text() == str(wav)


@pytest.mark.asyncio
async def test_audio_output_raises_on_failed_tools(tmp_path: Path):
    failing = [sys.executable, "-c", "import sys; sys.exit(3)"]
    garbled = [sys.executable, "-c", "print('not json')"]

    with pytest.raises(AudioToolError):
        await AudioOutput(player_command=failing, probe_command=failing, check_binaries=False).play(tmp_path / "x.wav")
    with pytest.raises(AudioToolError):
        await AudioOutput(player_command=failing, probe_command=garbled, check_binaries=False).probe_duration(tmp_path / "x.wav")
