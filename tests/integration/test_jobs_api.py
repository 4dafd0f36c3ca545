"""Integration tests for the job admin endpoints."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from painpress.config import get_settings
from painpress.main import app
from tests.doubles import make_job, make_post, make_settings


@pytest.fixture
def wired(monkeypatch, jobs_repo, posts_repo):
  """Point the job service at in-memory repositories."""
  monkeypatch.setattr("painpress.services.jobs._get_jobs_repo", lambda _settings: jobs_repo)
  monkeypatch.setattr("painpress.services.jobs._get_posts_repo", lambda _settings: posts_repo)
  app.dependency_overrides[get_settings] = lambda: make_settings()
  yield jobs_repo, posts_repo
  app.dependency_overrides.clear()


@pytest.fixture
async def client(wired):
  transport = httpx.ASGITransport(app=app)
  async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
    yield http


@pytest.mark.anyio
async def test_create_then_fetch_job(client, wired) -> None:
  jobs_repo, posts_repo = wired
  posts_repo.add(make_post())

  response = await client.post("/admin/jobs", json={"post_id": "post-1"})
  assert response.status_code == 200
  job_id = response.json()["job_id"]
  assert posts_repo.posts["post-1"].status == "queued"

  status_response = await client.get(f"/admin/jobs/{job_id}")
  assert status_response.status_code == 200
  body = status_response.json()
  assert body["status"] == "pending"
  assert body["progress"] == 0
  assert "x-request-id" in status_response.headers


@pytest.mark.anyio
async def test_unknown_fields_are_rejected_without_echoing_input(client) -> None:
  response = await client.post("/admin/jobs", json={"post_id": "post-1", "secret": "do-not-echo"})
  assert response.status_code == 422
  assert "do-not-echo" not in response.text
  assert response.json()["requestId"]


@pytest.mark.anyio
async def test_missing_job_returns_404_payload(client) -> None:
  response = await client.get("/admin/jobs/nope")
  assert response.status_code == 404
  assert response.json()["detail"] == "Job not found."


@pytest.mark.anyio
async def test_retry_and_cancel_flow(client, wired) -> None:
  jobs_repo, posts_repo = wired
  posts_repo.add(make_post(status="processing"))
  await jobs_repo.create_job(make_job("job-1", status="research"))

  cancel = await client.post("/admin/jobs/job-1/cancel")
  assert cancel.status_code == 200
  assert cancel.json()["error_message"] == "Cancelled by user"
  assert posts_repo.posts["post-1"].status == "pending"

  retry = await client.post("/admin/jobs/job-1/retry", json={"fresh": True})
  assert retry.status_code == 200
  assert retry.json()["status"] == "pending"
  assert retry.json()["retry_count"] == 1

  again = await client.post("/admin/jobs/job-1/cancel")
  assert again.status_code == 200
  conflict = await client.post("/admin/jobs/job-1/cancel")
  assert conflict.status_code == 409


@pytest.mark.anyio
async def test_start_dispatches_to_scheduler(client, wired, monkeypatch) -> None:
  jobs_repo, _ = wired
  await jobs_repo.create_job(make_job("job-1"))
  scheduler = MagicMock()
  scheduler.is_job_running.return_value = False
  scheduler.run_job = AsyncMock(return_value=True)
  monkeypatch.setattr("painpress.jobs.scheduler.get_scheduler", lambda _settings: scheduler)

  response = await client.post("/admin/jobs/job-1/start")

  assert response.status_code == 200
  scheduler.run_job.assert_awaited_once_with("job-1")


@pytest.mark.anyio
async def test_list_and_stats(client, wired) -> None:
  jobs_repo, _ = wired
  await jobs_repo.create_job(make_job("job-1", status="failed"))
  await jobs_repo.create_job(make_job("job-2", status="completed"))
  await jobs_repo.create_job(make_job("job-3", status="completed"))

  listing = await client.get("/admin/jobs", params={"status": "completed", "limit": 1})
  assert listing.status_code == 200
  assert listing.json()["total"] == 2
  assert len(listing.json()["items"]) == 1

  stats = await client.get("/admin/jobs/stats")
  assert stats.json() == {"counts": {"failed": 1, "completed": 2}, "total": 3, "running": 0}
