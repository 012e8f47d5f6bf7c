"""
Meteostation HW backend package.

Receives telemetry snapshots POSTed by the ESP32 sensor unit, derives a
virtual energy budget from illuminance and fan duty, keeps bounded daily
history and serves a single current-state view to the dashboard UI.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""
