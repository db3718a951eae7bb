"""Tests for configuration loading."""

from pathlib import Path

import pytest

from librarydesk.config import Config, get_config, reset_config


@pytest.fixture(autouse=True)
def clean_config(monkeypatch):
    for name in (
        "LIBRARYDESK_DB_PATH",
        "LIBRARYDESK_LOAN_DAYS",
        "LIBRARYDESK_RENEWAL_DAYS",
        "LIBRARYDESK_DUE_SOON_DAYS",
        "LIBRARYDESK_NOTIFICATION_CAPACITY",
        "LIBRARYDESK_FINE_PER_DAY",
        "LIBRARYDESK_HOLD_GRACE_HOURS",
        "LIBRARYDESK_EVENT_REMINDER_DAYS",
        "LIBRARYDESK_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


def test_defaults():
    config = Config.from_env()
    assert config.loan_days == 14
    assert config.renewal_days == 14
    assert config.fine_per_day == 50
    assert config.due_soon_days == 3
    assert config.hold_grace_hours == 24
    assert config.event_reminder_days == 3
    assert config.log_level == "WARNING"


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("LIBRARYDESK_DB_PATH", str(tmp_path / "desk.db"))
    monkeypatch.setenv("LIBRARYDESK_LOAN_DAYS", "21")
    monkeypatch.setenv("LIBRARYDESK_FINE_PER_DAY", "25")
    monkeypatch.setenv("LIBRARYDESK_LOG_LEVEL", "debug")

    config = Config.from_env()
    assert config.db_path == tmp_path / "desk.db"
    assert config.loan_days == 21
    assert config.fine_per_day == 25
    assert config.log_level == "DEBUG"


def test_get_config_is_cached():
    assert get_config() is get_config()


def test_validate(tmp_path):
    config = Config.from_env()
    config.db_path = tmp_path / "nested" / "desk.db"
    assert config.validate() == []
    assert (tmp_path / "nested").exists()

    config.loan_days = 0
    config.fine_per_day = -1
    errors = config.validate()
    assert "loan_days must be positive" in errors
    assert "fine_per_day must not be negative" in errors


def test_validate_memory_path():
    config = Config.from_env()
    config.db_path = Path(":memory:")
    assert config.validate() == []
