from __future__ import annotations

import time
from pathlib import Path
from typing import Optional

from loguru import logger

from providers.audio_out import AudioOutput
from providers.camera import PhotoCallback, StillCamera, StillOptions, image_path_for
from providers.watson import build_dialog_client, build_speech_client, build_tone_client, build_vision_client

from .capture import AudioCaptureGate
from .character import CharacterIdentifier
from .config import ConfigManager, RuntimeConfig, get_api_keys, missing_api_keys
from .coordinator import DialogCoordinator
from .logging_io import EventLogger, TranscriptWriter
from .metrics import TurnMetrics
from .playback import ResponsePlayback
from .session import new_session
from .tone import ToneDetector


def write_default_config(manager: Optional[ConfigManager] = None) -> Path:
    manager = manager or ConfigManager()
    manager.save()
    return manager.path


async def start_camera(config: RuntimeConfig, on_captured: PhotoCallback) -> Optional[StillCamera]:
    """Start the one-shot character photo; returns ``None`` when the camera cannot run."""
    cam = config.camera
    try:
        camera = StillCamera(
            image_path_for(Path(cam.image_dir)),
            on_captured,
            options=StillOptions(
                width=cam.width,
                height=cam.height,
                quality=cam.quality,
                encoding=cam.encoding,
                timeout_ms=cam.timeout_ms,
            ),
            command=[cam.command],
        )
    except RuntimeError as exc:
        logger.error(f"camera unavailable, continuing without a character: {exc}")
        return None
    if not await camera.start():
        logger.error("camera unavailable, continuing without a character")
        return None
    return camera


async def run_tjbot(session_name: Optional[str] = None) -> None:
    config = ConfigManager().config
    keys = get_api_keys()
    missing = missing_api_keys(keys)
    if missing:
        raise RuntimeError(f"Missing credentials: {', '.join(missing)}. Set them in the environment or .env.")
    if not config.dialog.workspace_id:
        raise RuntimeError("dialog.workspace_id (or ASSISTANT_WORKSPACE_ID) must be set.")
    if not config.vision.classifier_id:
        raise RuntimeError("vision.classifier_id (or VISUAL_RECOGNITION_CLASSIFIER_ID) must be set.")

    session_paths = new_session(config, session_name=session_name)
    event_logger = EventLogger(session_paths.event_log)
    event_logger.emit("session_started", {"session": session_paths.session_name, "timestamp": time.time()})

    tone_client = build_tone_client(config, keys["tone_analyzer_apikey"], keys["tone_analyzer_url"])
    vision_client = build_vision_client(config, keys["visual_recognition_apikey"], keys["visual_recognition_url"])
    dialog_client = build_dialog_client(config, keys["assistant_apikey"], keys["assistant_url"])
    speech_client = build_speech_client(config, keys["text_to_speech_apikey"], keys["text_to_speech_url"])

    capture = AudioCaptureGate(config, keys["deepgram"], event_logger=event_logger)
    playback = ResponsePlayback(
        speech_client.synthesize,
        AudioOutput(player_command=config.tts.player_command, probe_command=config.tts.probe_command),
        capture.suspend,
        session_paths.speech_wav,
        event_logger=event_logger,
    )
    coordinator = DialogCoordinator(
        attention_phrase=config.dialog.attention_phrase,
        tone_detector=ToneDetector(tone_client.tone),
        dialog=dialog_client.message,
        speak=playback.speak,
        character_identifier=CharacterIdentifier(vision_client.classify),
        event_logger=event_logger,
        transcript=TranscriptWriter(session_paths.transcript),
        metrics=TurnMetrics(event_logger),
    )

    await capture.start()
    camera: Optional[StillCamera] = None
    try:
        camera = await start_camera(config, coordinator.identify_character)
        await playback.speak(config.dialog.greeting)
        await coordinator.run(capture.transcripts())
    finally:
        logger.info("shutting down")
        if camera:
            await camera.stop()
        await capture.stop()
        await coordinator.wait_for_playback()
        event_logger.emit("session_finished", {"timestamp": time.time()})
