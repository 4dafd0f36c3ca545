"""Shared fixtures for the painpress test suite."""

from __future__ import annotations

import os

import pytest

# Keep app imports independent of the developer's environment.
os.environ.setdefault("PAINPRESS_ALLOWED_ORIGINS", "http://localhost")
os.environ.setdefault("PAINPRESS_TASK_SECRET", "s3cret")

from tests.doubles import InMemoryContentRepo, InMemoryJobsRepo, InMemoryPostsRepo, make_settings  # noqa: E402


@pytest.fixture
def anyio_backend():
  return "asyncio"


@pytest.fixture
def settings():
  return make_settings()


@pytest.fixture
def jobs_repo():
  return InMemoryJobsRepo()


@pytest.fixture
def posts_repo():
  return InMemoryPostsRepo()


@pytest.fixture
def content_repo():
  return InMemoryContentRepo()
