"""
Settings Tests
==============
Environment-driven engine settings.

Test Categories:
1. Defaults and NEPHROCALC_* overrides
2. Validation of settings values
3. Caching
"""

import pytest
from pydantic import ValidationError

from nephrocalc.config import Settings, get_settings

ENV_NAMES = ("NEPHROCALC_STRICT_UNITS", "NEPHROCALC_ENFORCE_BOUNDS", "NEPHROCALC_LOG_LEVEL")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================
# TEST: ENVIRONMENT
# ============================================================

class TestEnvironment:

    def test_defaults(self):
        settings = Settings()
        assert settings.strict_units is True
        assert settings.enforce_bounds is True
        assert settings.log_level == "WARNING"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("NEPHROCALC_STRICT_UNITS", "false")
        monkeypatch.setenv("NEPHROCALC_ENFORCE_BOUNDS", "0")
        monkeypatch.setenv("NEPHROCALC_LOG_LEVEL", "debug")
        settings = Settings()
        assert settings.strict_units is False
        assert settings.enforce_bounds is False
        assert settings.log_level == "DEBUG"

    def test_yes_no_words(self, monkeypatch):
        monkeypatch.setenv("NEPHROCALC_STRICT_UNITS", "no")
        monkeypatch.setenv("NEPHROCALC_ENFORCE_BOUNDS", "yes")
        settings = Settings()
        assert settings.strict_units is False
        assert settings.enforce_bounds is True

    def test_keyword_beats_environment(self, monkeypatch):
        monkeypatch.setenv("NEPHROCALC_STRICT_UNITS", "true")
        assert Settings(strict_units=False).strict_units is False

    def test_unprefixed_names_ignored(self, monkeypatch):
        monkeypatch.setenv("STRICT_UNITS", "false")
        assert Settings().strict_units is True


# ============================================================
# TEST: VALIDATION
# ============================================================

class TestValidation:

    def test_unparseable_flag(self, monkeypatch):
        monkeypatch.setenv("NEPHROCALC_STRICT_UNITS", "sometimes")
        with pytest.raises(ValidationError):
            Settings()

    def test_bad_log_level(self):
        with pytest.raises(ValueError):
            Settings(log_level="LOUD")

    def test_bad_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("NEPHROCALC_LOG_LEVEL", "loud")
        with pytest.raises(ValidationError):
            Settings()

    def test_frozen(self):
        settings = Settings()
        with pytest.raises(ValidationError):
            settings.strict_units = False


# ============================================================
# TEST: CACHING
# ============================================================

class TestCaching:

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_cache_reads_env_once(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("NEPHROCALC_STRICT_UNITS", "false")
        assert get_settings() is first
        get_settings.cache_clear()
        assert get_settings().strict_units is False
