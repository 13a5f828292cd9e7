from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

CONFIG_PATH = Path("runtime/config.json")


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    return value


@dataclass
class AudioConfig:
    input_device_index: Optional[int] = None
    sample_rate: int = 16000


@dataclass
class STTConfig:
    model: str = field(default_factory=lambda: _env("TJBOT_STT_MODEL", "flux-general-en"))
    eager_eot_threshold: float = 0.5
    eot_threshold: float = 0.85
    eot_timeout_ms: int = 1500


@dataclass
class DialogConfig:
    attention_phrase: str = field(default_factory=lambda: _env("TJBOT_ATTENTION_PHRASE", "hello tj"))
    greeting: str = "Hi there, I am awake."
    workspace_id: str = field(default_factory=lambda: _env("ASSISTANT_WORKSPACE_ID", ""))
    version: str = "2018-07-10"


@dataclass
class VisionConfig:
    classifier_id: str = field(default_factory=lambda: _env("VISUAL_RECOGNITION_CLASSIFIER_ID", ""))
    threshold: float = 0.0
    version: str = "2018-03-19"


@dataclass
class ToneConfig:
    version: str = "2016-05-19"


@dataclass
class TTSConfig:
    voice: str = field(default_factory=lambda: _env("TJBOT_VOICE", "en-US_MichaelV3Voice"))
    accept: str = "audio/wav"
    player_command: List[str] = field(default_factory=lambda: ["aplay", "-q"])
    probe_command: List[str] = field(default_factory=lambda: ["ffprobe"])


@dataclass
class CameraConfig:
    command: str = "rpicam-still"
    width: int = 320
    height: int = 240
    quality: int = 20
    encoding: str = "jpg"
    timeout_ms: int = 0
    image_dir: str = "runtime/images"


@dataclass
class RuntimeConfig:
    audio: AudioConfig = field(default_factory=AudioConfig)
    stt: STTConfig = field(default_factory=STTConfig)
    dialog: DialogConfig = field(default_factory=DialogConfig)
    vision: VisionConfig = field(default_factory=VisionConfig)
    tone: ToneConfig = field(default_factory=ToneConfig)
    tts: TTSConfig = field(default_factory=TTSConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConfigManager:
    """Loads the runtime configuration once and persists it as JSON."""

    def __init__(self, path: Path = CONFIG_PATH):
        self._path = path
        self._config = self._load()

    def _load(self) -> RuntimeConfig:
        if self._path.exists():
            data = json.loads(self._path.read_text(encoding="utf-8"))
            return RuntimeConfig(
                audio=AudioConfig(**data.get("audio", {})),
                stt=STTConfig(**data.get("stt", {})),
                dialog=DialogConfig(**data.get("dialog", {})),
                vision=VisionConfig(**data.get("vision", {})),
                tone=ToneConfig(**data.get("tone", {})),
                tts=TTSConfig(**data.get("tts", {})),
                camera=CameraConfig(**data.get("camera", {})),
            )
        return RuntimeConfig()

    @property
    def config(self) -> RuntimeConfig:
        return self._config

    @property
    def path(self) -> Path:
        return self._path

    def save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._config.as_dict(), indent=2), encoding="utf-8")


# Watson services each take their own IAM key and regional endpoint.
_WATSON_SERVICES = ("tone_analyzer", "visual_recognition", "assistant", "text_to_speech")


def get_api_keys() -> Dict[str, Optional[str]]:
    keys: Dict[str, Optional[str]] = {"deepgram": _env("DEEPGRAM_API_KEY")}
    for service in _WATSON_SERVICES:
        prefix = service.upper()
        keys[f"{service}_apikey"] = _env(f"{prefix}_APIKEY")
        keys[f"{service}_url"] = _env(f"{prefix}_URL")
    return keys


def missing_api_keys(keys: Dict[str, Optional[str]]) -> List[str]:
    return sorted(name for name, value in keys.items() if not value)
