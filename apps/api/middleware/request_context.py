import logging
import re
import time
import uuid
from urllib.parse import unquote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("api.request")

_SAVES_PATH = re.compile(r"^/v1/games/(?P<game_id>[^/]+)/saves(?:/|$)")


def game_id_from_path(path: str) -> str | None:
    match = _SAVES_PATH.match(path)
    if match is None:
        return None
    return unquote(match.group("game_id"))


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tags each request with a trace id and logs its outcome.

    Save routes also log the game they touched and, for downloads, the
    stored save that was served.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        trace_id = request.headers.get("X-Trace-Id") or str(uuid.uuid4())
        request.state.trace_id = trace_id
        game_id = game_id_from_path(request.url.path)
        request.state.game_id = game_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Trace-Id"] = trace_id

        parts = [f"trace_id={trace_id}"]
        if game_id is not None:
            parts.append(f"game_id={game_id!r}")
        served = response.headers.get("X-Save-File-Name")
        if served:
            parts.append(f"save={served}")
        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "%s %s -> %s (%.2fms) %s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            " ".join(parts),
        )
        return response
