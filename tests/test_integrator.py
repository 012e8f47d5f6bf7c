"""
Tests for the energy integrator.

Verifies Wh accumulation, the first-call baseline, idempotence under zero
elapsed time, the single-step clamp, clock skew and reset.

CHANGELOG:
- 2026-10-13: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

import math

import pytest

from meteo_backend.engine.integrator import EnergyIntegrator
from meteo_backend.models import DayTotals


class TestAccumulation:
    def test_first_call_only_sets_baseline(self) -> None:
        integrator = EnergyIntegrator()
        totals = integrator.integrate(DayTotals(), 10.0, 5.0, now=1000.0)

        assert totals.in_wh == 0.0
        assert totals.out_wh == 0.0
        assert integrator.last_ts == 1000.0

    def test_accumulates_watt_hours(self) -> None:
        integrator = EnergyIntegrator(max_step_s=60.0)
        totals = DayTotals()
        integrator.integrate(totals, 3600.0, 1800.0, now=0.0)
        integrator.integrate(totals, 3600.0, 1800.0, now=30.0)

        assert totals.in_wh == pytest.approx(30.0)
        assert totals.out_wh == pytest.approx(15.0)
        assert totals.net_wh == pytest.approx(15.0)

    def test_zero_elapsed_time_adds_nothing(self) -> None:
        integrator = EnergyIntegrator()
        totals = DayTotals()
        integrator.integrate(totals, 2.0, 1.0, now=0.0)
        integrator.integrate(totals, 2.0, 1.0, now=50.0)
        before = (totals.in_wh, totals.out_wh)

        integrator.integrate(totals, 2.0, 1.0, now=50.0)

        assert (totals.in_wh, totals.out_wh) == before


class TestGapClamp:
    @pytest.mark.parametrize("gap", [61.0, 600.0, 86400.0 * 3])
    def test_long_gap_credits_at_most_one_step(self, gap: float) -> None:
        integrator = EnergyIntegrator(max_step_s=60.0)
        totals = DayTotals()
        integrator.integrate(totals, 3.6, 0.0, now=0.0)
        integrator.integrate(totals, 3.6, 0.0, now=gap)

        assert totals.in_wh == pytest.approx(3.6 * 60.0 / 3600.0)

    def test_baseline_advances_even_when_clamped(self) -> None:
        integrator = EnergyIntegrator(max_step_s=60.0)
        totals = DayTotals()
        integrator.integrate(totals, 3600.0, 0.0, now=0.0)
        integrator.integrate(totals, 3600.0, 0.0, now=1000.0)
        integrator.integrate(totals, 3600.0, 0.0, now=1010.0)

        assert integrator.last_ts == 1010.0
        assert totals.in_wh == pytest.approx(60.0 + 10.0)

    def test_clock_skew_credits_nothing(self) -> None:
        integrator = EnergyIntegrator()
        totals = DayTotals()
        integrator.integrate(totals, 3600.0, 3600.0, now=100.0)
        integrator.integrate(totals, 3600.0, 3600.0, now=40.0)

        assert totals.in_wh == 0.0
        assert totals.out_wh == 0.0
        assert integrator.last_ts == 40.0


class TestRobustness:
    def test_non_finite_power_treated_as_zero(self) -> None:
        integrator = EnergyIntegrator()
        totals = DayTotals()
        integrator.integrate(totals, math.nan, math.inf, now=0.0)
        integrator.integrate(totals, math.nan, math.inf, now=30.0)

        assert totals.in_wh == 0.0
        assert totals.out_wh == 0.0

    def test_reset_drops_baseline(self) -> None:
        integrator = EnergyIntegrator()
        totals = DayTotals()
        integrator.integrate(totals, 3600.0, 0.0, now=0.0)
        integrator.reset()
        integrator.integrate(totals, 3600.0, 0.0, now=30.0)

        assert integrator.last_ts == 30.0
        assert totals.in_wh == 0.0
