import logging
import secrets
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from painpress.config import Settings, get_settings

logger = logging.getLogger(__name__)


def require_task_secret(
  settings: Annotated[Settings, Depends(get_settings)],
  authorization: str | None = Header(default=None),
  x_painpress_task_secret: str | None = Header(default=None),
) -> None:
  """Authenticate internal task calls with the shared secret header or a bearer token."""
  # Internal endpoints stay closed until a secret is configured.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")

  shared_secret_valid = secrets.compare_digest(x_painpress_task_secret or "", settings.task_secret)
  bearer_valid = secrets.compare_digest(authorization or "", f"Bearer {settings.task_secret}")
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized internal task request")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")
