"""
Tests for the bounded time-series history manager.

Verifies finite-only appends, FIFO eviction by value, day-key derivation
in the configured zone, rollover into closed days and the day bound.

CHANGELOG:
- 2026-10-14: Add zone-dependent day-key tests (STORY-006)
- 2026-10-13: Initial creation (STORY-006)

TODO:
- None
"""

from __future__ import annotations

import math
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import pytest

from meteo_backend.engine.history import HistoryManager, day_key
from meteo_backend.models import DayRecord, Memory, SeriesPoint

UTC_ZONE = ZoneInfo("UTC")


def _ts(year: int, month: int, day: int, hour: int = 12, minute: int = 0) -> float:
    return datetime(year, month, day, hour, minute, tzinfo=UTC).timestamp()


def _manager(max_samples: int = 2000, max_days: int = 14) -> HistoryManager:
    return HistoryManager.create(
        _ts(2026, 10, 12),
        tz=UTC_ZONE,
        max_samples=max_samples,
        max_days=max_days,
    )


class TestDayKey:
    def test_iso_date_in_utc(self) -> None:
        assert day_key(_ts(2026, 10, 12, 23, 59), UTC_ZONE) == "2026-10-12"

    def test_configured_zone_shifts_the_day(self) -> None:
        # 23:30 UTC is already the next day in Prague (UTC+2 in October)
        moment = _ts(2026, 10, 12, 23, 30)
        assert day_key(moment, UTC_ZONE) == "2026-10-12"
        assert day_key(moment, ZoneInfo("Europe/Prague")) == "2026-10-13"

    def test_create_keys_today_to_now(self) -> None:
        assert _manager().today.key == "2026-10-12"


class TestAppendSample:
    def test_appends_point(self) -> None:
        manager = _manager()
        assert manager.append_sample("temperature", 1000, 21.5) is True

        point = manager.today.temperature[0]
        assert (point.ts, point.value) == (1000, 21.5)

    @pytest.mark.parametrize("value", [None, math.nan, math.inf, -math.inf, True])
    def test_non_finite_is_noop(self, value: object) -> None:
        manager = _manager()
        assert manager.append_sample("light", 1000, value) is False  # type: ignore[arg-type]
        assert manager.today.light == []

    def test_unknown_series_raises(self) -> None:
        with pytest.raises(KeyError):
            _manager().append_sample("pressure", 1000, 1013.0)

    def test_fifo_eviction_keeps_newest_in_order(self) -> None:
        manager = _manager(max_samples=5)
        for i in range(12):
            manager.append_sample("energy_in", i, float(i))

        values = [p.value for p in manager.today.energy_in]
        assert len(values) == 5
        assert values == [7.0, 8.0, 9.0, 10.0, 11.0]

    def test_series_are_bounded_independently(self) -> None:
        manager = _manager(max_samples=3)
        for i in range(10):
            manager.append_sample("temperature", i, float(i))
        manager.append_sample("light", 0, 100.0)

        assert len(manager.today.temperature) == 3
        assert len(manager.today.light) == 1


class TestRollover:
    def test_same_day_is_noop(self) -> None:
        manager = _manager()
        manager.append_sample("temperature", 1, 20.0)

        assert manager.rollover(_ts(2026, 10, 12, 23, 59)) is False
        assert manager.memory.days == []
        assert len(manager.today.temperature) == 1

    def test_new_day_moves_exactly_one_record(self) -> None:
        manager = _manager()
        manager.append_sample("temperature", 1, 20.0)
        manager.today.totals.in_wh = 1.5

        assert manager.rollover(_ts(2026, 10, 13, 0, 1)) is True

        assert len(manager.memory.days) == 1
        closed = manager.memory.days[0]
        assert closed.key == "2026-10-12"
        assert closed.totals.in_wh == 1.5
        assert [p.value for p in closed.temperature] == [20.0]

        assert manager.today.key == "2026-10-13"
        assert manager.today.temperature == []
        assert manager.today.totals.in_wh == 0.0

    def test_second_call_same_new_day_does_not_roll_again(self) -> None:
        manager = _manager()
        manager.rollover(_ts(2026, 10, 13, 0, 1))
        assert manager.rollover(_ts(2026, 10, 13, 6, 0)) is False
        assert len(manager.memory.days) == 1

    def test_days_are_capped_oldest_first(self) -> None:
        manager = _manager(max_days=3)
        for day in range(13, 19):
            manager.rollover(_ts(2026, 10, day))

        keys = [d.key for d in manager.memory.days]
        assert keys == ["2026-10-15", "2026-10-16", "2026-10-17"]
        assert manager.today.key == "2026-10-18"


class TestReplaceAndSummary:
    def test_replace_trims_to_bounds(self) -> None:
        manager = _manager(max_samples=2, max_days=1)
        today = DayRecord(
            key="2026-10-12",
            light=[SeriesPoint(ts=i, value=float(i)) for i in range(5)],
        )
        memory = Memory(
            today=today,
            days=[DayRecord(key="2026-10-10"), DayRecord(key="2026-10-11")],
        )

        manager.replace(memory)

        assert [p.value for p in manager.today.light] == [3.0, 4.0]
        assert [d.key for d in manager.memory.days] == ["2026-10-11"]

    def test_summary_uses_legacy_series_names(self) -> None:
        manager = _manager()
        manager.append_sample("energy_out", 1, 0.1)
        manager.append_sample("brain_risk", 1, 0.4)

        summary = manager.summary()

        assert summary == {
            "dayKey": "2026-10-12",
            "daysCount": 0,
            "counts": {
                "temperature": 0,
                "light": 0,
                "energyIn": 0,
                "energyOut": 1,
                "brainRisk": 1,
            },
        }
