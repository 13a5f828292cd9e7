"""Turn-taking state machine that sits between the microphone and the dialog engine.

The coordinator is idle until it hears the attention phrase. From then on every
transcript is one turn: resolve its tone, merge the tone and the cached
character into the session context, send both to the dialog engine, adopt the
context it returns and hand the reply to playback. The engine's turn counter
decides when the session ends and the context is wiped.
"""

from __future__ import annotations

import asyncio
import copy
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterable, Awaitable, Callable, Dict, Optional, Set

from loguru import logger

from .character import CharacterIdentifier
from .logging_io import EventLogger, TranscriptWriter
from .metrics import TurnMetrics
from .records import DialogReply, EmotionResult, parse_dialog_reply
from .tone import ToneDetector

# The dialog engine's turn counter value that closes a session.
TERMINATION_TURN = 2

UNSET_CHARACTER = ""

DialogCall = Callable[[str, Dict[str, Any]], Awaitable[Dict[str, Any]]]
SpeakCall = Callable[[str], Awaitable[Any]]


class DialogState(enum.Enum):
    IDLE = "idle"
    ACTIVE = "active"


@dataclass
class SessionContext:
    """Conversation state handed to the dialog engine on every turn."""

    values: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.values

    def merge_turn(self, emotion: Optional[str], character: str) -> None:
        self.values["emotion"] = emotion
        self.values["character"] = character

    def replace(self, state: Dict[str, Any]) -> None:
        self.values = dict(state)

    def clear(self) -> None:
        self.values = {}

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self.values)


@dataclass(frozen=True)
class TurnResult:
    text: str
    emotion: EmotionResult
    character: str
    reply: Optional[DialogReply]
    session_ended: bool = False


class DialogCoordinator:
    def __init__(
        self,
        *,
        attention_phrase: str,
        tone_detector: ToneDetector,
        dialog: DialogCall,
        speak: SpeakCall,
        character_identifier: Optional[CharacterIdentifier] = None,
        event_logger: Optional[EventLogger] = None,
        transcript: Optional[TranscriptWriter] = None,
        metrics: Optional[TurnMetrics] = None,
        termination_turn: int = TERMINATION_TURN,
    ):
        phrase = (attention_phrase or "").strip().lower()
        if not phrase:
            raise ValueError("attention_phrase must not be empty")
        self._attention_phrase = phrase
        self._tone_detector = tone_detector
        self._dialog = dialog
        self._speak = speak
        self._character_identifier = character_identifier
        self._event_logger = event_logger
        self._transcript = transcript
        self._metrics = metrics or TurnMetrics(event_logger)
        self._termination_turn = termination_turn

        self._state = DialogState.IDLE
        self._context = SessionContext()
        self._character = UNSET_CHARACTER
        self._playback_tasks: Set[asyncio.Task[Any]] = set()

    @property
    def state(self) -> DialogState:
        return self._state

    @property
    def context(self) -> SessionContext:
        return self._context

    @property
    def character(self) -> str:
        return self._character

    def set_character(self, label: str) -> None:
        self._character = label
        self._emit("character_identified", {"character": label})

    async def identify_character(self, image_path: Path) -> Optional[str]:
        """Photo-ready handler: classify the photo and cache the result for later turns."""
        if self._character_identifier is None:
            logger.warning("photo captured but no character identifier is configured")
            return None
        label = await self._character_identifier.identify(Path(image_path))
        if label is None:
            self._emit("character_failed", {"image": str(image_path)})
            return None
        self.set_character(label)
        return label

    def hears_attention_phrase(self, text: str) -> bool:
        return self._attention_phrase in text.lower()

    async def run(self, transcripts: AsyncIterable[str]) -> None:
        async for transcript in transcripts:
            await self.handle_transcript(transcript)

    async def handle_transcript(self, transcript: str) -> Optional[TurnResult]:
        text = (transcript or "").strip().lower()
        if not text:
            return None

        if self._state is DialogState.IDLE:
            if not self.hears_attention_phrase(text):
                logger.info(f'Waiting to hear the word "{self._attention_phrase}"')
                return None
            self._state = DialogState.ACTIVE
            logger.info("attention phrase heard, starting dialog")
            self._emit("dialog_activated", {"text": text})

        return await self._take_turn(text)

    async def _take_turn(self, text: str) -> TurnResult:
        self._metrics.reset()
        self._metrics.mark("turn_start")

        emotion = await self._resolve_emotion(text)
        self._metrics.mark("tone_resolved")

        character = self._character
        self._context.merge_turn(emotion.label, character)
        self._record("user", text, emotion=emotion.label, character=character)

        try:
            raw = await self._dialog(text, self._context.snapshot())
            reply = parse_dialog_reply(raw)
        except Exception as exc:
            logger.error(f"dialog turn failed: {exc!r}")
            self._emit("turn_failed", {"stage": "dialog", "error": repr(exc), "text": text})
            return TurnResult(text=text, emotion=emotion, character=character, reply=None)
        self._metrics.mark("dialog_reply")

        self._context.replace(reply.context)
        logger.info(f"TJ says: {reply.text}")
        self._record("assistant", reply.text, turn=reply.turn_counter)
        if reply.text:
            self.say(reply.text)

        self._emit(
            "turn_completed",
            {"text": text, "reply": reply.text, "emotion": emotion.label, "character": character, "turn": reply.turn_counter},
        )
        self._metrics.mark("turn_complete")
        self._metrics.compute_turn_metrics()

        ended = reply.turn_counter == self._termination_turn
        if ended:
            self.reset()
        return TurnResult(text=text, emotion=emotion, character=character, reply=reply, session_ended=ended)

    async def _resolve_emotion(self, text: str) -> EmotionResult:
        try:
            return await self._tone_detector.detect(text)
        except Exception as exc:
            logger.warning(f"tone detection failed, continuing without emotion: {exc!r}")
            self._emit("turn_failed", {"stage": "tone", "error": repr(exc), "text": text})
            return EmotionResult.none()

    def reset(self) -> None:
        """End the current dialog session; the character label survives."""
        self._context.clear()
        self._state = DialogState.IDLE
        logger.info("dialog session finished, context cleared")
        self._emit("dialog_reset")

    def say(self, text: str) -> "asyncio.Task[Any]":
        """Queue a reply for playback without waiting for it to finish."""
        task = asyncio.get_running_loop().create_task(self._speak(text))
        self._playback_tasks.add(task)
        task.add_done_callback(self._playback_done)
        return task

    def _playback_done(self, task: "asyncio.Task[Any]") -> None:
        self._playback_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"playback task failed: {exc!r}")

    async def wait_for_playback(self) -> None:
        while self._playback_tasks:
            await asyncio.gather(*list(self._playback_tasks), return_exceptions=True)

    def _record(self, role: str, text: str, **fields: Any) -> None:
        if not self._transcript:
            return
        try:
            getattr(self._transcript, role)(text, **fields)
        except OSError as exc:
            logger.warning(f"could not write {role} transcript entry: {exc!r}")

    def _emit(self, event: str, data: Optional[Dict[str, Any]] = None) -> None:
        if not self._event_logger:
            return
        try:
            self._event_logger.emit(event, data)
        except OSError as exc:
            logger.warning(f"could not log {event} event: {exc!r}")
