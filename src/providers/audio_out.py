from __future__ import annotations

import asyncio
import json
import shutil
from pathlib import Path
from typing import Optional, Sequence

from loguru import logger


class AudioToolError(RuntimeError):
    pass


async def _run(args: Sequence[str]) -> tuple[int, bytes, bytes]:
    process = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    return process.returncode or 0, stdout, stderr


class AudioOutput:
    """Speaker playback and duration probing through the system audio tools."""

    def __init__(
        self,
        *,
        player_command: Optional[Sequence[str]] = None,
        probe_command: Optional[Sequence[str]] = None,
        check_binaries: bool = True,
    ):
        self._player_command = list(player_command) if player_command else ["aplay", "-q"]
        self._probe_command = list(probe_command) if probe_command else ["ffprobe"]
        if check_binaries:
            self._ensure_supported()

    def _ensure_supported(self) -> None:
        for binary in (self._player_command[0], self._probe_command[0]):
            if shutil.which(binary) is None:
                raise RuntimeError(f"`{binary}` not found on PATH.")

    async def play(self, path: Path) -> None:
        returncode, _, stderr = await _run([*self._player_command, str(path)])
        if returncode != 0:
            detail = stderr.decode("utf-8", errors="ignore").strip()
            raise AudioToolError(f"{self._player_command[0]} exited with {returncode}: {detail}")

    async def probe_duration(self, path: Path) -> float:
        args = [
            *self._probe_command,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "json",
            str(path),
        ]
        returncode, stdout, stderr = await _run(args)
        if returncode != 0:
            detail = stderr.decode("utf-8", errors="ignore").strip()
            raise AudioToolError(f"{self._probe_command[0]} exited with {returncode}: {detail}")
        try:
            duration = float(json.loads(stdout)["format"]["duration"])
        except (ValueError, KeyError, TypeError) as exc:
            raise AudioToolError(f"unreadable duration for {path}") from exc
        logger.debug(f"{path} lasts {duration:.2f}s")
        return duration
