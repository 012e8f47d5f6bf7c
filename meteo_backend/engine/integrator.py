"""
Energy integrator: turns instantaneous virtual power into watt-hours.

Elapsed time between ingests is measured on the wall clock and clamped to a
maximum single step, so a long gap (process suspended, device offline) is
never credited as continuous full-power operation. The baseline timestamp
always advances, so gaps are never counted twice.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import math

from meteo_backend.models import DayTotals

_SECONDS_PER_HOUR = 3600.0


class EnergyIntegrator:
    """Accumulates energy into day totals using elapsed wall-clock time.

    Args:
        max_step_s: Longest elapsed time credited to a single call.
    """

    def __init__(self, max_step_s: float = 60.0) -> None:
        self.max_step_s = max_step_s
        self.last_ts: float | None = None

    def reset(self) -> None:
        """Forget the baseline so the next call accumulates nothing."""
        self.last_ts = None

    def integrate(
        self,
        totals: DayTotals,
        p_in: float,
        p_out: float,
        now: float,
    ) -> DayTotals:
        """Add ``p * dt`` to *totals* and advance the baseline to *now*.

        The first call after construction or :meth:`reset` only sets the
        baseline. A *now* earlier than the baseline (clock skew) credits
        nothing.

        Args:
            totals: Day totals to mutate.
            p_in: Instantaneous input power in watts.
            p_out: Instantaneous output power in watts.
            now: Current time in epoch seconds.

        Returns:
            The mutated *totals*.
        """
        if self.last_ts is None:
            dt = 0.0
        else:
            dt = min(max(0.0, now - self.last_ts), self.max_step_s)
        self.last_ts = now

        if not math.isfinite(dt):
            dt = 0.0
        hours = dt / _SECONDS_PER_HOUR

        in_wh = totals.in_wh + _finite(p_in) * hours
        out_wh = totals.out_wh + _finite(p_out) * hours
        if math.isfinite(in_wh):
            totals.in_wh = in_wh
        if math.isfinite(out_wh):
            totals.out_wh = out_wh
        return totals


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0
