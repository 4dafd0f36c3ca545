"""Retry logic for transient model provider failures."""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from painpress.ai.errors import is_transient_error

T = TypeVar("T")
logger = logging.getLogger(__name__)

MAX_RETRIES = 3
INITIAL_DELAY_SECONDS = 1.0
MAX_DELAY_SECONDS = 30.0
BACKOFF_FACTOR = 2.0


async def retry_with_backoff(func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
  """
  Execute a coroutine function, retrying rate limits and transient outages.

  Delays start at 1s and double up to 30s, with up to 1s of jitter.
  Non-transient errors propagate immediately.
  """
  delay = INITIAL_DELAY_SECONDS

  for attempt in range(1, MAX_RETRIES + 2):
    try:
      return await func(*args, **kwargs)
    except Exception as e:
      if attempt > MAX_RETRIES or not is_transient_error(e):
        raise

      sleep_for = min(delay, MAX_DELAY_SECONDS) + random.uniform(0, 1)
      logger.warning("Retry attempt %d/%d needed. Error: %s. Retrying in %.1fs...", attempt, MAX_RETRIES, e, sleep_for)
      await asyncio.sleep(sleep_for)
      delay = min(delay * BACKOFF_FACTOR, MAX_DELAY_SECONDS)

  raise RuntimeError("retry_with_backoff exhausted without a result")
