from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from loguru import logger

from .records import ClassScore, parse_classes

ClassifyCall = Callable[[Path], Awaitable[Dict[str, Any]]]


def select_character(classes: Iterable[ClassScore]) -> Optional[str]:
    best: Optional[ClassScore] = None
    for candidate in classes:
        if best is None or candidate.score > best.score:
            best = candidate
    return best.label if best else None


class CharacterIdentifier:
    """One-shot image classification that resolves a photo to a persona label."""

    def __init__(self, classify: ClassifyCall):
        self._classify = classify

    async def identify(self, image_path: Path) -> Optional[str]:
        try:
            raw = await self._classify(Path(image_path))
            label = select_character(parse_classes(raw))
        except Exception as exc:
            logger.error(f"character identification failed for {image_path}: {exc!r}")
            return None
        if label is None:
            logger.warning(f"classifier returned no classes for {image_path}")
            return None
        logger.info(f"Hello, {label}")
        return label
