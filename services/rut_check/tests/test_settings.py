"""Tests for RUT check settings."""

import pytest
from pydantic import ValidationError

from services.rut_check.settings import RUTCheckSettings, get_settings


@pytest.fixture(autouse=True)
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestRUTCheckSettings:
    """Tests for settings loading and validation."""

    def test_defaults(self, monkeypatch):
        for var in ("LOG_LEVEL", "LOG_FORMAT", "ENVIRONMENT", "RUT_COLUMN", "FLAG_DUPLICATES"):
            monkeypatch.delenv(var, raising=False)

        config = RUTCheckSettings(_env_file=None)

        assert config.log_level == "INFO"
        assert config.log_format == "json"
        assert config.service_name == "rut-check"
        assert config.rut_column is None
        assert config.flag_duplicates is True
        assert config.environment == "development"

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_FORMAT", "TEXT")
        monkeypatch.setenv("ENVIRONMENT", "Production")
        monkeypatch.setenv("RUT_COLUMN", " rut_cliente ")
        monkeypatch.setenv("FLAG_DUPLICATES", "false")

        config = RUTCheckSettings(_env_file=None)

        assert config.log_level == "DEBUG"
        assert config.log_format == "text"
        assert config.environment == "production"
        assert config.rut_column == "rut_cliente"
        assert config.flag_duplicates is False

    def test_blank_rut_column_is_unset(self, monkeypatch):
        monkeypatch.setenv("RUT_COLUMN", "   ")

        assert RUTCheckSettings(_env_file=None).rut_column is None

    @pytest.mark.parametrize(
        "var,value",
        [
            ("LOG_LEVEL", "VERBOSE"),
            ("LOG_FORMAT", "xml"),
            ("ENVIRONMENT", "qa"),
        ],
    )
    def test_invalid_values(self, monkeypatch, var, value):
        monkeypatch.setenv(var, value)

        with pytest.raises(ValidationError):
            RUTCheckSettings(_env_file=None)

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
