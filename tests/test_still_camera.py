import sys
from pathlib import Path

import pytest

from providers.camera import StillCamera, StillOptions, format_timestamp, image_path_for

_WRITE_PHOTO = "import sys; out = sys.argv[sys.argv.index('-o') + 1]; open(out, 'wb').write(b'jpeg')"


@pytest.mark.asyncio
async def test_camera_reports_captured_photo(tmp_path: Path):
    captured: list[Path] = []

    async def on_captured(path):
        captured.append(path)

    output = tmp_path / "images" / "image_1.jpg"
    camera = StillCamera(output, on_captured, command=[sys.executable, "-c", _WRITE_PHOTO], check_binary=False)
    await camera.start()
    await camera.wait()

    assert captured == [output]
    assert output.read_bytes() == b"jpeg"


@pytest.mark.asyncio
async def test_camera_failure_does_not_fire_callback(tmp_path: Path):
    captured: list[Path] = []
    camera = StillCamera(
        tmp_path / "image.jpg",
        captured.append,
        command=[sys.executable, "-c", "import sys; sys.exit(1)"],
        check_binary=False,
    )
    await camera.start()
    await camera.wait()
    await camera.stop()

    assert captured == []


@pytest.mark.asyncio
async def test_camera_with_missing_binary_logs_instead_of_raising(tmp_path: Path):
    captured: list[Path] = []
    camera = StillCamera(tmp_path / "p.jpg", captured.append, command=["no-such-camera-bin"], check_binary=False)

    assert await camera.start() is False
    await camera.wait()
    await camera.stop()

    assert captured == []


def test_camera_command_carries_capture_parameters(tmp_path: Path):
    camera = StillCamera(tmp_path / "p.jpg", lambda path: None, options=StillOptions(), command=["rpicam-still"], check_binary=False)
    args = camera._build_command()
    assert args[args.index("--width") + 1] == "320"
    assert args[args.index("--height") + 1] == "240"
    assert args[args.index("-q") + 1] == "20"
    assert args[args.index("-o") + 1] == str(tmp_path / "p.jpg")


def test_image_path_uses_epoch_millis(tmp_path: Path):
    assert image_path_for(tmp_path, now=1700000000.123) == tmp_path / "image_1700000000123.jpg"


def test_format_timestamp_pads_minutes_and_seconds():
    import time

    stamp = time.mktime((2024, 1, 1, 9, 5, 7, 0, 0, -1))
    assert format_timestamp(stamp) == "9:05:07"
