# backend/app/middleware/request_context.py
from __future__ import annotations

import logging
import re
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..services.runtime_metrics import METRICS

log = logging.getLogger("facility_analytics.request")

REQUEST_ID_HEADER = "X-Request-ID"

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

_SAFE_ID = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def get_request_id() -> str | None:
    return request_id_ctx.get()


def _incoming_request_id(request: Request) -> str:
    # Header lookup is case-insensitive; anything odd is replaced, not trusted into logs.
    rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if rid and _SAFE_ID.match(rid):
        return rid
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Per-request id plus one structured log line per request.

    The id comes from X-Request-ID when the reporting caller sends one, so a
    dashboard refresh can be followed across services; otherwise a fresh one
    is minted. It is echoed back on the response, stored on request.state and
    in a ContextVar that JsonFormatter reads.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = _incoming_request_id(request)
        token = request_id_ctx.set(rid)
        request.state.request_id = rid

        t0 = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = rid
            return response
        finally:
            latency_ms = int((time.perf_counter() - t0) * 1000)
            METRICS.inc("http.requests")
            if status_code >= 500:
                METRICS.inc("http.server_errors")

            log.info(
                "http_request %s %s -> %s",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": status_code,
                    "latency_ms": latency_ms,
                },
            )
            request_id_ctx.reset(token)
