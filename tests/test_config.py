import pytest

from core.config import CacheSettings


def test_defaults_without_env(monkeypatch):
    for name in ("CACHE_CAPACITY", "CACHE_TTL_SECONDS", "CACHE_SWEEP_INTERVAL_SECONDS", "ALLOWED_ORIGINS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    settings = CacheSettings.from_env()
    assert settings.capacity == 1024
    assert settings.ttl_seconds == 5.0
    assert settings.sweep_interval_seconds == 1.0
    assert settings.allowed_origins == ["*"]
    assert settings.log_level == "INFO"


def test_reads_env(monkeypatch):
    monkeypatch.setenv("CACHE_CAPACITY", "16")
    monkeypatch.setenv("CACHE_TTL_SECONDS", "2.5")
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.test, http://b.test")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = CacheSettings.from_env()
    assert settings.capacity == 16
    assert settings.ttl_seconds == 2.5
    assert settings.allowed_origins == ["http://a.test", "http://b.test"]
    assert settings.log_level == "DEBUG"


def test_invalid_number_names_variable(monkeypatch):
    monkeypatch.setenv("CACHE_CAPACITY", "lots")
    with pytest.raises(ValueError, match="CACHE_CAPACITY"):
        CacheSettings.from_env()
