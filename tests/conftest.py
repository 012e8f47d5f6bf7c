"""
Shared test fixtures for the meteostation backend tests.

Provides a controllable clock, isolated settings pointing at tmp_path, a
fresh state store with its pipeline, and a FastAPI TestClient. All backend
env vars are cleaned before each test so a developer's environment or
.env file cannot leak into the suite.

CHANGELOG:
- 2026-10-16: Add client fixture built through create_app (STORY-012)
- 2026-10-13: Initial creation (STORY-001)

TODO:
- None
"""

from __future__ import annotations

from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from meteo_backend.config import Settings
from meteo_backend.services.ingestion import IngestionPipeline
from meteo_backend.store import StateStore

# All Settings environment variable names, used for cleanup.
_ALL_ENV_VARS = tuple(name.upper() for name in Settings.model_fields)

START = datetime(2026, 10, 12, 8, 0, 0, tzinfo=UTC).timestamp()
"""Default fake-clock start: 2026-10-12 08:00 UTC."""


class FakeClock:
    """Callable clock returning a settable epoch-seconds value."""

    def __init__(self, start: float = START) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds

    def set(self, moment: datetime) -> None:
        self.t = moment.timestamp()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Remove backend env vars and isolate from .env files before each test."""
    for var in _ALL_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """Default settings with the data directory inside tmp_path."""
    return Settings(data_dir=str(tmp_path / "data"))


@pytest.fixture()
def store(settings: Settings, clock: FakeClock) -> StateStore:
    return StateStore(settings, clock=clock)


@pytest.fixture()
def pipeline(store: StateStore) -> IngestionPipeline:
    return IngestionPipeline(store)


@pytest.fixture()
def client(settings: Settings, clock: FakeClock) -> Generator[TestClient, None, None]:
    """Create a TestClient for an app built with test settings and clock.

    Uses a context manager so the lifespan (restore / flush) runs.
    """
    from meteo_backend.api.main import create_app

    app = create_app(settings, clock=clock)
    with TestClient(app) as test_client:
        yield test_client
