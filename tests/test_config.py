"""
Configuration Tests
===================

Tests for YAML loading and environment overrides.
"""

import pytest

from sentinel_id.config import Settings, load_config


class TestLoadConfig:
    """Tests for load_config()."""

    def test_defaults(self):
        """Verify default values."""
        settings = Settings()

        assert settings.capture.interval_seconds == 4.0
        assert settings.cooldown.window_seconds == 60.0
        assert settings.banner.display_seconds == 3.0
        assert settings.oracle.model == "gemini-2.5-flash"
        assert settings.oracle.max_references == 8
        assert settings.activity_log.max_entries == 0
        assert settings.references.max_width == 512

    def test_yaml_file(self, tmp_path, monkeypatch):
        """Verify values are read from YAML."""
        for var in ("SENTINEL_COOLDOWN_SECONDS", "SENTINEL_ORACLE_BACKEND"):
            monkeypatch.delenv(var, raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("cooldown:\n  window_seconds: 10\noracle:\n  backend: mock\n")

        settings = load_config(str(path))

        assert settings.cooldown.window_seconds == 10.0
        assert settings.oracle.backend == "mock"

    def test_env_overrides_yaml(self, tmp_path, monkeypatch):
        """Verify environment variables take precedence."""
        path = tmp_path / "config.yaml"
        path.write_text("cooldown:\n  window_seconds: 10\n")
        monkeypatch.setenv("SENTINEL_COOLDOWN_SECONDS", "45")
        monkeypatch.setenv("SENTINEL_CAMERA_DEVICE", "2")
        monkeypatch.setenv("GEMINI_API_KEY", "secret")

        settings = load_config(str(path))

        assert settings.cooldown.window_seconds == 45.0
        assert settings.capture.device == 2
        assert settings.oracle.api_key == "secret"

    def test_stream_url_device(self, tmp_path, monkeypatch):
        """Verify a non-numeric device is kept as a URL."""
        monkeypatch.setenv("SENTINEL_CAMERA_DEVICE", "rtsp://cam.local/stream")

        settings = load_config(str(tmp_path / "missing.yaml"))

        assert settings.capture.device == "rtsp://cam.local/stream"

    def test_max_references_ceiling(self):
        """Verify more than eight references per request is rejected."""
        with pytest.raises(ValueError):
            Settings.model_validate({"oracle": {"max_references": 9}})
