"""
TJBot turn coordinator.

Listens for the attention phrase, identifies the character in front of the
camera once, and runs short tone-aware dialog sessions that are spoken back
through the speaker.
"""

from .coordinator import DialogCoordinator, DialogState, SessionContext, TurnResult
from .records import EmotionResult, ProviderResponseError

__all__ = [
    "DialogCoordinator",
    "DialogState",
    "EmotionResult",
    "ProviderResponseError",
    "SessionContext",
    "TurnResult",
]
