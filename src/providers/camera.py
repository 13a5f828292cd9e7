from __future__ import annotations

import asyncio
import inspect
import shutil
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from loguru import logger

PhotoCallback = Callable[[Path], Any]


@dataclass(frozen=True)
class StillOptions:
    width: int = 320
    height: int = 240
    quality: int = 20
    encoding: str = "jpg"
    timeout_ms: int = 0


def format_timestamp(timestamp: float) -> str:
    moment = time.localtime(timestamp)
    return f"{moment.tm_hour}:{moment.tm_min:02d}:{moment.tm_sec:02d}"


def image_path_for(image_dir: Path, now: Optional[float] = None) -> Path:
    millis = int((now if now is not None else time.time()) * 1000)
    return image_dir / f"image_{millis}.jpg"


class StillCamera:
    """Takes a single photo with the Pi camera CLI and reports the file once written."""

    def __init__(
        self,
        output: Path,
        on_captured: PhotoCallback,
        *,
        options: StillOptions | None = None,
        command: Optional[Sequence[str]] = None,
        check_binary: bool = True,
    ):
        self._output = Path(output)
        self._on_captured = on_captured
        self._options = options or StillOptions()
        self._command = list(command) if command else ["rpicam-still"]
        self._process: Optional[asyncio.subprocess.Process] = None
        self._monitor_task: Optional[asyncio.Task[None]] = None
        if check_binary and shutil.which(self._command[0]) is None:
            raise RuntimeError(f"camera command `{self._command[0]}` not found on PATH.")

    def _build_command(self) -> list[str]:
        opts = self._options
        return [
            *self._command,
            "-n",
            "--width",
            str(opts.width),
            "--height",
            str(opts.height),
            "-q",
            str(opts.quality),
            "-e",
            opts.encoding,
            "-t",
            str(opts.timeout_ms or 1),  # rpicam-still waits forever on -t 0
            "-o",
            str(self._output),
        ]

    async def start(self) -> bool:
        """Spawn the capture; a camera that cannot be started is logged, never raised."""
        if self._process is not None:
            return True
        try:
            self._output.parent.mkdir(parents=True, exist_ok=True)
            self._process = await asyncio.create_subprocess_exec(
                *self._build_command(),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.error(f"camera could not be started: {exc!r}")
            return False
        logger.info(f"photo started at {format_timestamp(time.time())}")
        self._monitor_task = asyncio.get_running_loop().create_task(self._wait_for_photo(self._process))
        return True

    async def _wait_for_photo(self, process: asyncio.subprocess.Process) -> None:
        _, stderr = await process.communicate()
        logger.info(f"photo child process has exited at {format_timestamp(time.time())}")
        if process.returncode != 0 or not self._output.exists():
            detail = stderr.decode("utf-8", errors="ignore").strip() if stderr else ""
            logger.error(f"camera capture failed (exit {process.returncode}): {detail}")
            return
        logger.info(f"photo image captured with filename: {self._output}")
        result = self._on_captured(self._output)
        if inspect.isawaitable(result):
            await result

    async def wait(self) -> None:
        if self._monitor_task:
            await self._monitor_task

    async def stop(self) -> None:
        process = self._process
        if process and process.returncode is None:
            try:
                process.send_signal(signal.SIGTERM)
            except ProcessLookupError:
                pass
        if self._monitor_task and not self._monitor_task.done():
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
        self._monitor_task = None
