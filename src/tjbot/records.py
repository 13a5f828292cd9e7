"""Typed views over the raw provider payloads.

Each ``parse_*`` helper validates the fields the coordinator depends on and
raises :class:`ProviderResponseError` instead of letting a ``KeyError`` or
``TypeError`` escape from deep inside a turn.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


class ProviderResponseError(Exception):
    """A provider answered, but not in the shape we expect."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


def _require(mapping: Any, key: str, provider: str, where: str) -> Any:
    if not isinstance(mapping, Mapping):
        raise ProviderResponseError(provider, f"expected an object at {where}")
    if key not in mapping:
        raise ProviderResponseError(provider, f"missing '{key}' at {where}")
    return mapping[key]


def _require_list(value: Any, provider: str, where: str) -> list:
    if not isinstance(value, list):
        raise ProviderResponseError(provider, f"expected a list at {where}")
    return value


def _score(value: Any, provider: str, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProviderResponseError(provider, f"expected a numeric score at {where}")
    return float(value)


@dataclass(frozen=True)
class EmotionResult:
    label: Optional[str]
    score: float

    @classmethod
    def none(cls) -> "EmotionResult":
        return cls(label=None, score=0.0)


@dataclass(frozen=True)
class ToneScore:
    tone_id: str
    score: float


@dataclass(frozen=True)
class ToneCategory:
    category_id: str
    tones: List[ToneScore] = field(default_factory=list)


def parse_first_tone_category(raw: Any) -> Optional[ToneCategory]:
    """Read ``document_tone.tone_categories[0].tones[*]`` from a tone analyzer result.

    Only the first category is used, so the others are not validated.
    """
    provider = "tone_analyzer"
    document = _require(raw, "document_tone", provider, "result")
    raw_categories = document.get("tone_categories", []) if isinstance(document, Mapping) else None
    categories = _require_list(raw_categories, provider, "document_tone.tone_categories")

    if not categories:
        return None
    raw_category = categories[0]
    where = "tone_categories[0]"
    raw_tones = _require_list(_require(raw_category, "tones", provider, where), provider, f"{where}.tones")
    tones = []
    for t_idx, raw_tone in enumerate(raw_tones):
        tone_where = f"{where}.tones[{t_idx}]"
        tones.append(
            ToneScore(
                tone_id=str(_require(raw_tone, "tone_id", provider, tone_where)),
                score=_score(_require(raw_tone, "score", provider, tone_where), provider, tone_where),
            )
        )
    return ToneCategory(category_id=str(raw_category.get("category_id", "")), tones=tones)


@dataclass(frozen=True)
class ClassScore:
    label: str
    score: float


def parse_classes(raw: Any) -> List[ClassScore]:
    """Read ``images[0].classifiers[0].classes[*]`` from a visual recognition result."""
    provider = "visual_recognition"
    images = _require_list(_require(raw, "images", provider, "result"), provider, "images")
    if not images:
        raise ProviderResponseError(provider, "no images in result")
    image = images[0]
    if isinstance(image, Mapping) and "error" in image:
        raise ProviderResponseError(provider, f"image error: {image['error']}")
    classifiers = _require_list(_require(image, "classifiers", provider, "images[0]"), provider, "images[0].classifiers")
    if not classifiers:
        raise ProviderResponseError(provider, "no classifiers in result")
    raw_classes = _require_list(
        _require(classifiers[0], "classes", provider, "classifiers[0]"), provider, "classifiers[0].classes"
    )
    classes = []
    for idx, raw_class in enumerate(raw_classes):
        where = f"classes[{idx}]"
        classes.append(
            ClassScore(
                label=str(_require(raw_class, "class", provider, where)),
                score=_score(_require(raw_class, "score", provider, where), provider, where),
            )
        )
    return classes


@dataclass(frozen=True)
class DialogReply:
    text: str
    context: Dict[str, Any]
    turn_counter: Optional[int]


def _whole_number(value: Any) -> Optional[int]:
    # 2.0 counts as turn 2, 2.9 is no turn at all
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def parse_dialog_reply(raw: Any) -> DialogReply:
    provider = "assistant"
    context = _require(raw, "context", provider, "result")
    if not isinstance(context, Mapping):
        raise ProviderResponseError(provider, "context must be an object")
    output = _require(raw, "output", provider, "result")
    texts = _require_list(_require(output, "text", provider, "output"), provider, "output.text")
    text = texts[0] if texts else ""
    if not isinstance(text, str):
        raise ProviderResponseError(provider, "output.text[0] must be a string")

    turn_counter: Optional[int] = None
    system = context.get("system")
    if isinstance(system, Mapping):
        turn_counter = _whole_number(system.get("dialog_turn_counter"))

    return DialogReply(text=text, context=dict(context), turn_counter=turn_counter)
