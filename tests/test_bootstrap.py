from pathlib import Path

import pytest

from tjbot.bootstrap import start_camera
from tjbot.config import RuntimeConfig


@pytest.mark.asyncio
async def test_start_camera_without_binary_returns_none(tmp_path: Path):
    config = RuntimeConfig()
    config.camera.command = "no-such-camera-bin"
    config.camera.image_dir = str(tmp_path / "images")
    captured: list[Path] = []

    assert await start_camera(config, captured.append) is None
    assert captured == []
