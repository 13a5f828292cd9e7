from __future__ import annotations

from typing import Any, Awaitable, Callable, Dict, Iterable

from loguru import logger

from .records import EmotionResult, ToneScore, parse_first_tone_category

ToneCall = Callable[[str], Awaitable[Dict[str, Any]]]


def dominant_tone(tones: Iterable[ToneScore]) -> EmotionResult:
    """Highest-scoring tone; the first one wins a tie and zero scores never win."""
    best = EmotionResult.none()
    for tone in tones:
        if tone.score > best.score:
            best = EmotionResult(label=tone.tone_id, score=tone.score)
    return best


class ToneDetector:
    """Resolves the dominant emotion of an utterance from the first tone category."""

    def __init__(self, tone: ToneCall):
        self._tone = tone

    async def detect(self, text: str) -> EmotionResult:
        raw = await self._tone(text)
        category = parse_first_tone_category(raw)
        if category is None:
            return EmotionResult.none()
        result = dominant_tone(category.tones)
        logger.debug(f"tone for {text!r}: {result.label} ({result.score:.2f})")
        return result
