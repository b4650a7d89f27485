"""Tests for runtime settings."""

from pathlib import Path

from activity_analytics.config import DEFAULT_TIMEZONE, AnalyticsSettings


def test_defaults():
    settings = AnalyticsSettings()
    assert settings.timezone == DEFAULT_TIMEZONE == "Asia/Seoul"
    assert settings.cache_ttl_s == 6 * 60 * 60
    assert settings.top_keyword_limit == 9
    assert str(settings.zone) == "Asia/Seoul"


def test_values_are_clamped():
    settings = AnalyticsSettings(
        base_url="https://classifier.test/v1/",
        request_timeout_s=0,
        cache_ttl_s=-5,
        background_workers=100,
        max_pending_tasks=0,
        refresh_growth_ratio=-1,
        top_keyword_limit=0,
    )
    assert settings.base_url == "https://classifier.test/v1"
    assert settings.request_timeout_s == 1.0
    assert settings.cache_ttl_s == 1
    assert settings.background_workers == 16
    assert settings.max_pending_tasks == 1
    assert settings.refresh_growth_ratio == 0.0
    assert settings.top_keyword_limit == 1


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("CLASSIFIER_API_KEY", "sk-env")
    monkeypatch.setenv("CLASSIFIER_BASE_URL", "https://llm.internal/v1")
    monkeypatch.setenv("CLASSIFIER_MODEL", "small-model")
    monkeypatch.setenv("CLASSIFIER_TIMEOUT_S", "12.5")
    monkeypatch.setenv("ANALYTICS_TIMEZONE", "UTC")
    monkeypatch.setenv("ANALYTICS_CACHE_TTL_S", "600")
    monkeypatch.setenv("ANALYTICS_DB_PATH", str(tmp_path / "a.db"))
    monkeypatch.setenv("ANALYTICS_BACKGROUND_WORKERS", "4")

    settings = AnalyticsSettings.from_env()

    assert settings.api_key == "sk-env"
    assert settings.base_url == "https://llm.internal/v1"
    assert settings.model == "small-model"
    assert settings.request_timeout_s == 12.5
    assert settings.timezone == "UTC"
    assert settings.cache_ttl_s == 600
    assert settings.db_path == Path(tmp_path / "a.db")
    assert settings.background_workers == 4


def test_from_env_falls_back_to_openai_key(monkeypatch):
    monkeypatch.delenv("CLASSIFIER_API_KEY", raising=False)
    monkeypatch.setenv("OPENAI_API_KEY", "sk-openai")
    assert AnalyticsSettings.from_env().api_key == "sk-openai"
