"""Integration tests for the secret-protected internal task endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from painpress.config import get_settings
from painpress.jobs.scheduler import TickResult
from painpress.main import app
from tests.doubles import make_settings


@pytest.fixture
def scheduler(monkeypatch):
  fake = MagicMock()
  fake.run_tick = AsyncMock(return_value=TickResult(jobs_started=2, jobs_completed=1, jobs_failed=1, auto_queued=1))
  monkeypatch.setattr("painpress.jobs.scheduler.get_scheduler", lambda _settings: fake)
  return fake


@pytest.fixture
async def client():
  app.dependency_overrides[get_settings] = lambda: make_settings()
  transport = httpx.ASGITransport(app=app)
  async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
    yield http
  app.dependency_overrides.clear()


@pytest.mark.anyio
@pytest.mark.parametrize("headers", [{}, {"x-painpress-task-secret": "wrong"}, {"authorization": "Bearer wrong"}])
async def test_tick_rejects_missing_or_wrong_secret(client, scheduler, headers: dict[str, str]) -> None:
  response = await client.post("/internal/tasks/generation-tick", headers=headers)
  assert response.status_code == 403
  scheduler.run_tick.assert_not_awaited()


@pytest.mark.anyio
@pytest.mark.parametrize("headers", [{"x-painpress-task-secret": "s3cret"}, {"authorization": "Bearer s3cret"}])
async def test_tick_accepts_header_or_bearer(client, scheduler, headers: dict[str, str]) -> None:
  response = await client.post("/internal/tasks/generation-tick", headers=headers)
  assert response.status_code == 200
  assert response.json() == {"jobs_started": 2, "jobs_completed": 1, "jobs_failed": 1, "auto_queued": 1}


@pytest.mark.anyio
async def test_tasks_closed_when_no_secret_configured(client, scheduler) -> None:
  app.dependency_overrides[get_settings] = lambda: make_settings(task_secret=None)
  response = await client.post("/internal/tasks/generation-tick", headers={"x-painpress-task-secret": "s3cret"})
  assert response.status_code == 403


@pytest.mark.anyio
async def test_cleanup_task_runs_with_repositories(client, monkeypatch, jobs_repo, posts_repo, content_repo) -> None:
  monkeypatch.setattr("painpress.storage.factory._get_jobs_repo", lambda _settings: jobs_repo)
  monkeypatch.setattr("painpress.storage.factory._get_posts_repo", lambda _settings: posts_repo)
  monkeypatch.setattr("painpress.storage.factory._get_content_repo", lambda _settings: content_repo)

  response = await client.post("/internal/tasks/cleanup", headers={"x-painpress-task-secret": "s3cret"})

  assert response.status_code == 200
  assert response.json() == {"deleted_posts": 0, "deleted_jobs": 0, "deleted_images": 0, "freed_bytes": 0}
