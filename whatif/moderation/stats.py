"""Running counters over moderation results, for the admin dashboard."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone

from whatif.moderation.models import FlagType, ModerationResult


@dataclass
class StatsSnapshot:
    """Point-in-time copy of the counters."""

    total_moderated: int = 0
    approved: int = 0
    rejected: int = 0
    pending_review: int = 0
    degraded: int = 0
    flagged_content: int = 0
    categories: dict[str, int] = field(default_factory=dict)
    average_confidence: float = 0.0
    last_updated: str = ""


class ModerationStats:
    """Thread-safe tally of every result passed to :meth:`record`."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.reset()

    def reset(self) -> None:
        with self._lock:
            self._total = 0
            self._approved = 0
            self._pending_review = 0
            self._degraded = 0
            self._flagged = 0
            self._confidence_sum = 0.0
            self._flag_counts: Counter[str] = Counter()
            self._last_updated = ""

    def record(self, result: ModerationResult) -> None:
        with self._lock:
            self._total += 1
            self._confidence_sum += result.confidence
            if result.is_approved:
                self._approved += 1
            if result.requires_review:
                self._pending_review += 1
            if result.degraded:
                self._degraded += 1
            if result.flags:
                self._flagged += 1
            self._flag_counts.update(f.type.value for f in result.flags)
            self._last_updated = datetime.now(timezone.utc).isoformat()

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            average = self._confidence_sum / self._total if self._total else 0.0
            return StatsSnapshot(
                total_moderated=self._total,
                approved=self._approved,
                rejected=self._total - self._approved,
                pending_review=self._pending_review,
                degraded=self._degraded,
                flagged_content=self._flagged,
                categories={t.value: self._flag_counts.get(t.value, 0) for t in FlagType},
                average_confidence=round(average, 4),
                last_updated=self._last_updated,
            )
