"""
Bounded time-series history with day rollover.

Keeps one open ``today`` record with a bounded sample list per metric and a
bounded list of closed days. The day-key is the ISO date of the ingest time
in a configured IANA zone, so tests and deployments fix the calendar policy
explicitly instead of inheriting the host's local time.

CHANGELOG:
- 2026-10-14: Derive day-key from configured zone instead of host local time (STORY-006)
- 2026-10-13: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

import logging
import math
from datetime import datetime
from zoneinfo import ZoneInfo

from meteo_backend.models import SERIES_NAMES, DayRecord, Memory, SeriesPoint

logger = logging.getLogger(__name__)


def day_key(now: float, tz: ZoneInfo) -> str:
    """Return the canonical day-key for *now* (epoch seconds) in *tz*."""
    return datetime.fromtimestamp(now, tz=tz).date().isoformat()


class HistoryManager:
    """Maintains the bounded per-day series inside a :class:`Memory`.

    Args:
        memory: Canonical history to mutate in place.
        tz: Zone used to derive day-keys.
        max_samples: Bound of every sample series.
        max_days: Number of closed days kept.
    """

    def __init__(
        self,
        memory: Memory,
        *,
        tz: ZoneInfo,
        max_samples: int = 2000,
        max_days: int = 14,
    ) -> None:
        self.memory = memory
        self.tz = tz
        self.max_samples = max_samples
        self.max_days = max_days

    @classmethod
    def create(
        cls,
        now: float,
        *,
        tz: ZoneInfo,
        max_samples: int = 2000,
        max_days: int = 14,
    ) -> HistoryManager:
        """Build a manager over a fresh memory keyed to *now*."""
        memory = Memory(today=DayRecord(key=day_key(now, tz)))
        return cls(memory, tz=tz, max_samples=max_samples, max_days=max_days)

    @property
    def today(self) -> DayRecord:
        return self.memory.today

    def append_sample(self, series: str, ts_ms: int, value: float | None) -> bool:
        """Append ``{ts, value}`` to a series of today, evicting the oldest.

        Args:
            series: One of :data:`SERIES_NAMES`.
            ts_ms: Sample time in epoch milliseconds.
            value: Sample value; non-finite or missing values are ignored.

        Returns:
            True if the sample was stored.

        Raises:
            KeyError: If *series* is not a known series name.
        """
        if series not in SERIES_NAMES:
            raise KeyError(series)
        if value is None or isinstance(value, bool) or not math.isfinite(value):
            return False

        points: list[SeriesPoint] = getattr(self.memory.today, series)
        points.append(SeriesPoint(ts=ts_ms, value=value))
        excess = len(points) - self.max_samples
        if excess > 0:
            del points[:excess]
        return True

    def rollover(self, now: float) -> bool:
        """Close today and open a new record if the day-key changed.

        Args:
            now: Current time in epoch seconds.

        Returns:
            True if a new day was started; the caller must reset the
            energy integrator baseline.
        """
        key = day_key(now, self.tz)
        if key == self.memory.today.key:
            return False

        closed = self.memory.today
        self.memory.days.append(closed)
        excess = len(self.memory.days) - self.max_days
        if excess > 0:
            del self.memory.days[:excess]
        self.memory.today = DayRecord(key=key)

        logger.info(
            "Day rollover %s -> %s (in=%.4f Wh, out=%.4f Wh, days kept=%d)",
            closed.key,
            key,
            closed.totals.in_wh,
            closed.totals.out_wh,
            len(self.memory.days),
        )
        return True

    def replace(self, memory: Memory) -> None:
        """Swap in a restored memory, trimming it to the current bounds."""
        for record in [memory.today, *memory.days]:
            for series in SERIES_NAMES:
                points = getattr(record, series)
                excess = len(points) - self.max_samples
                if excess > 0:
                    del points[:excess]
        excess = len(memory.days) - self.max_days
        if excess > 0:
            del memory.days[:excess]
        self.memory = memory

    def summary(self) -> dict:
        """Return day-key, closed-day count and per-series sample counts."""
        today = self.memory.today
        return {
            "dayKey": today.key,
            "daysCount": len(self.memory.days),
            "counts": {
                DayRecord.model_fields[name].alias or name: len(getattr(today, name))
                for name in SERIES_NAMES
            },
        }
