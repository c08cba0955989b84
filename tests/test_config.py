import pytest
import os
import sys
from datetime import date
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from shift_roster.config import ConfigurationError, Settings, load_settings

ENV_KEYS = [
    "SUPABASE_URL", "SUPABASE_KEY", "NEXT_PUBLIC_SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_ANON_KEY",
    "SHIFT_ROSTER_LOG_DIR", "SHIFT_ROSTER_LOG_LEVEL", "SHIFT_ROSTER_START_MONTH",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Clear roster variables and point dotenv at an empty file."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("")
    return env_file


def test_load_from_environment(clean_env, monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "anon-key")
    monkeypatch.setenv("SHIFT_ROSTER_LOG_LEVEL", "debug")
    monkeypatch.setenv("SHIFT_ROSTER_START_MONTH", "2025-03")

    settings = load_settings(str(clean_env))

    assert settings.has_credentials
    assert settings.log_level == "DEBUG"
    assert settings.initial_month() == date(2025, 3, 1)
    assert settings.log_dir == Path("logs")


def test_public_variable_fallbacks(clean_env, monkeypatch):
    monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("NEXT_PUBLIC_SUPABASE_ANON_KEY", "anon-key")
    settings = load_settings(str(clean_env))
    assert settings.supabase_url == "https://example.supabase.co"
    assert settings.supabase_key == "anon-key"


def test_env_file_values(clean_env):
    clean_env.write_text("SUPABASE_URL=https://file.supabase.co\nSUPABASE_KEY=file-key\n")
    try:
        settings = load_settings(str(clean_env))
        assert settings.supabase_url == "https://file.supabase.co"
        assert settings.supabase_key == "file-key"
    finally:
        # load_dotenv writes straight into os.environ
        for key in ("SUPABASE_URL", "SUPABASE_KEY"):
            os.environ.pop(key, None)


def test_missing_credentials_raise(clean_env):
    settings = load_settings(str(clean_env))
    assert not settings.has_credentials
    with pytest.raises(ConfigurationError, match="SUPABASE_URL, SUPABASE_KEY"):
        settings.require_credentials()


@pytest.mark.parametrize("value", ["2025", "2025-13", "March"])
def test_invalid_start_month(clean_env, monkeypatch, value):
    monkeypatch.setenv("SHIFT_ROSTER_START_MONTH", value)
    with pytest.raises(ConfigurationError):
        load_settings(str(clean_env))


def test_initial_month_defaults_to_current_month():
    today = date.today()
    assert Settings().initial_month() == date(today.year, today.month, 1)
