"""
Unit tests for backend configuration (Settings).

Tests verify:
- Defaults apply with an empty environment.
- Values are read from environment variables.
- Model constants, retention bounds, port and HISTORY_TZ are validated.

CHANGELOG:
- 2026-10-14: Add HISTORY_TZ validation tests (STORY-006)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

import pytest
from pydantic import ValidationError

from meteo_backend.config import Settings


class TestSettingsDefaults:
    """All settings have defaults so the service starts with no env."""

    def test_defaults_applied(self) -> None:
        settings = Settings()

        assert settings.data_dir == "/data"
        assert settings.max_request_bytes == 6 * 1024 * 1024
        assert settings.port == 3000
        assert settings.max_samples_per_series == 2000
        assert settings.max_days == 14
        assert settings.power_deadband_w == 0.05
        assert settings.max_integration_step_s == 60.0
        assert settings.history_tz == "UTC"
        assert settings.persist_history is True

    def test_cors_origins_default_is_wildcard(self) -> None:
        assert Settings().cors_origins == ["*"]


class TestSettingsLoadsFromEnv:
    """Values come from environment variables."""

    def test_loads_env_vars(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATA_DIR", "/tmp/meteo")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("PANEL_MAX_POWER_W", "6.5")
        monkeypatch.setenv("MAX_DAYS", "21")
        monkeypatch.setenv("HISTORY_TZ", "Europe/Prague")
        monkeypatch.setenv("PERSIST_HISTORY", "false")
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://a.example, https://b.example")

        settings = Settings()

        assert settings.data_dir == "/tmp/meteo"
        assert settings.port == 8080
        assert settings.panel_max_power_w == 6.5
        assert settings.max_days == 21
        assert settings.history_tz == "Europe/Prague"
        assert settings.persist_history is False
        assert settings.cors_origins == ["https://a.example", "https://b.example"]


class TestSettingsValidation:
    """Invalid values are rejected at startup."""

    @pytest.mark.parametrize(
        "var", ["PANEL_MAX_POWER_W", "FULL_SCALE_LUX", "PANEL_GAMMA", "DUTY_MAX"]
    )
    def test_model_constants_must_be_positive(
        self, monkeypatch: pytest.MonkeyPatch, var: str
    ) -> None:
        monkeypatch.setenv(var, "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_negative_current_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BASELINE_CURRENT_MA", "-1")
        with pytest.raises(ValidationError):
            Settings()

    def test_zero_sample_bound_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAX_SAMPLES_PER_SERIES", "0")
        with pytest.raises(ValidationError):
            Settings()

    def test_port_out_of_range_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("PORT", "70000")
        with pytest.raises(ValidationError):
            Settings()

    def test_unknown_zone_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HISTORY_TZ", "Mars/Olympus_Mons")
        with pytest.raises(ValidationError, match="IANA"):
            Settings()
