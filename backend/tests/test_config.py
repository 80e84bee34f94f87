"""Tests for application configuration and settings.

This module contains unit tests for the Settings Pydantic model in
map_renderer.core.config. It ensures that default values, environment
overrides, directory creation logic and get_settings caching work as
expected.

All tests are safe to run in isolation. Temporary directories are used
to verify filesystem interactions where needed.
"""

from __future__ import annotations

import pathlib

import pytest

from map_renderer.core import config


def test_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that Settings has expected default values."""
    monkeypatch.delenv("SVG2PNG_EXECUTABLE", raising=False)
    settings = config.Settings(_env_file=None)
    assert settings.allow_origins == ["*"]
    assert settings.port == 23500
    assert settings.svg2png_executable is None
    assert settings.svg2png_arguments == ["-o", "<PNG>", "<SVG>"]
    assert settings.log_file is None


def test_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that environment variables override defaults."""
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("SVG2PNG_EXECUTABLE", "rsvg-convert")
    monkeypatch.setenv("SVG2PNG_ARGUMENTS", '["<SVG>", "<PNG>"]')
    settings = config.Settings(_env_file=None)
    assert settings.port == 8080
    assert settings.svg2png_executable == "rsvg-convert"
    assert settings.svg2png_arguments == ["<SVG>", "<PNG>"]


def test_settings_ensure_directories(tmp_path: pathlib.Path) -> None:
    """Test that ensure_directories creates the temporary directory."""
    temp_dir = tmp_path / "nested" / "tmp"
    settings = config.Settings(temp_dir=temp_dir)
    assert not temp_dir.exists()
    settings.ensure_directories()
    assert temp_dir.is_dir()


def test_get_settings_cached() -> None:
    """Test that get_settings returns cached instance."""
    config.get_settings.cache_clear()
    settings1 = config.get_settings()
    settings2 = config.get_settings()
    assert settings1 is settings2
    assert settings1.temp_dir.is_dir()
    config.get_settings.cache_clear()
