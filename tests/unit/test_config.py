from __future__ import annotations

import pytest

from painpress.config import get_settings


@pytest.fixture(autouse=True)
def _fresh_settings():
  get_settings.cache_clear()
  yield
  get_settings.cache_clear()


def test_defaults(monkeypatch) -> None:
  monkeypatch.delenv("PAINPRESS_MAX_CONCURRENT_JOBS", raising=False)
  monkeypatch.delenv("PAINPRESS_SCHEDULER_ENABLED", raising=False)
  settings = get_settings()
  assert settings.max_concurrent_jobs == 3
  assert settings.max_generation_retries == 3
  assert settings.scheduler_enabled is False


def test_env_overrides(monkeypatch) -> None:
  monkeypatch.setenv("PAINPRESS_MAX_CONCURRENT_JOBS", "5")
  monkeypatch.setenv("PAINPRESS_SCHEDULER_ENABLED", "yes")
  monkeypatch.setenv("PAINPRESS_ALLOWED_ORIGINS", "https://a.example, https://b.example")
  settings = get_settings()
  assert settings.max_concurrent_jobs == 5
  assert settings.scheduler_enabled is True
  assert settings.allowed_origins == ("https://a.example", "https://b.example")


@pytest.mark.parametrize(
  ("name", "value", "message"),
  [
    ("PAINPRESS_MAX_CONCURRENT_JOBS", "many", "must be an integer"),
    ("PAINPRESS_MAX_CONCURRENT_JOBS", "0", "must be >= 1"),
    ("PAINPRESS_ALLOWED_ORIGINS", "*", "wildcard"),
    ("PAINPRESS_ESBUILD_TIMEOUT_SECONDS", "-1", "must be positive"),
  ],
)
def test_invalid_values_raise(monkeypatch, name: str, value: str, message: str) -> None:
  monkeypatch.setenv(name, value)
  with pytest.raises(ValueError, match=message):
    get_settings()
