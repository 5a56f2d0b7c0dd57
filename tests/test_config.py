from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.config import CustomSettings


def test_defaults() -> None:
    settings = CustomSettings(_env_file=None)
    assert settings.default_slot_count == 3
    assert settings.default_slot_width == 30
    assert settings.guide_timezone == "UTC"
    assert settings.cors_origins == ["*"]


def test_cors_origins_from_comma_separated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "http://a.example, http://b.example")
    settings = CustomSettings(_env_file=None)
    assert settings.cors_origins == ["http://a.example", "http://b.example"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"default_slot_width": 7},
        {"default_slot_count": 0},
        {"default_slot_count": 10, "max_slot_count": 5},
        {"guide_timezone": "Mars/Olympus"},
        {"listings_poll_interval_sec": 0},
        {"log_level": "chatty"},
        {"listings_file": "  "},
    ],
)
def test_invalid_settings(overrides: dict) -> None:
    with pytest.raises(ValidationError):
        CustomSettings(_env_file=None, **overrides)


def test_log_level_normalized() -> None:
    assert CustomSettings(_env_file=None, log_level="debug").log_level == "DEBUG"
