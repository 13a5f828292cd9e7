from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, Optional

from loguru import logger

from .logging_io import EventLogger


@dataclass
class TurnMetrics:
    event_logger: Optional[EventLogger] = None
    marks: Dict[str, int] = field(default_factory=dict)

    def mark(self, name: str) -> None:
        self.marks[name] = time.monotonic_ns()

    def compute_turn_metrics(self) -> Dict[str, float]:
        def delta_ms(start: str, end: str) -> Optional[float]:
            if start not in self.marks or end not in self.marks:
                return None
            return (self.marks[end] - self.marks[start]) / 1_000_000.0

        metrics = {
            "tone_ms": delta_ms("turn_start", "tone_resolved"),
            "dialog_ms": delta_ms("tone_resolved", "dialog_reply"),
            "turn_total_ms": delta_ms("turn_start", "turn_complete"),
        }
        filtered = {k: v for k, v in metrics.items() if v is not None}
        if filtered and self.event_logger:
            try:
                self.event_logger.emit("turn_metrics", filtered)
            except OSError as exc:
                logger.warning(f"could not log turn metrics: {exc!r}")
        return filtered

    def reset(self) -> None:
        self.marks.clear()
