import logging
import re
import time
import uuid
from typing import Any

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("painpress.core.middleware")

REQUEST_ID_HEADER = "x-request-id"
# Caller-supplied ids are reused only when they look like a plain token.
_INBOUND_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{8,64}$")


def _resolve_request_id(scope: Scope) -> str:
  """Reuse a well-formed inbound request id (cron callers, proxies), else mint one."""
  inbound = Headers(scope=scope).get(REQUEST_ID_HEADER)
  if inbound and _INBOUND_ID_RE.match(inbound):
    return inbound
  return str(uuid.uuid4())


def _request_target(scope: Scope) -> str:
  path = scope.get("path", "")
  query = scope.get("query_string", b"")
  return f"{path}?{query.decode('latin-1')}" if query else path


class RequestLoggingMiddleware:
  """Tag each HTTP request with an id and log its outcome and latency."""

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    request_id = _resolve_request_id(scope)
    # Exception handlers read this through request.state.
    scope.setdefault("state", {})["request_id"] = request_id

    method = scope.get("method", "UNKNOWN")
    target = _request_target(scope)
    started = time.perf_counter()
    status_code = 0
    logger.info("Incoming request request_id=%s %s %s", request_id, method, target)

    async def send_with_request_id(message: Message) -> None:
      nonlocal status_code
      if message["type"] == "http.response.start":
        status_code = message.get("status", 0)
        headers = MutableHeaders(scope=message)
        headers.setdefault(REQUEST_ID_HEADER, request_id)
      await send(message)

    try:
      await self.app(scope, receive, send_with_request_id)
    finally:
      elapsed_ms = (time.perf_counter() - started) * 1000
      log_level = logging.WARNING if status_code >= 500 or status_code == 0 else logging.INFO
      logger.log(log_level, "Response request_id=%s %s %s status=%s (took %.2fms)", request_id, method, target, status_code, elapsed_ms)


def request_id_from(state: Any) -> str | None:
  return getattr(state, "request_id", None)
