from __future__ import annotations

import logging
import re
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_RE = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
_TABLE_PATH_RE = re.compile(r"^/api/tables/([^/]+)")
_LOG = logging.getLogger("crm_tables.http")

# Table pages are computed from live backend data and must not be cached.
RESPONSE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "Cache-Control": "no-store",
}


def request_id_for(request: Request) -> str:
    value = str(request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if _REQUEST_ID_RE.fullmatch(value):
        return value
    return uuid4().hex


def table_from_path(path: str) -> str | None:
    match = _TABLE_PATH_RE.match(path)
    return match.group(1) if match else None


def install_http_hardening(app: FastAPI) -> None:
    @app.middleware("http")
    async def _request_context_middleware(request: Request, call_next):
        request_id = request_id_for(request)
        request.state.request_id = request_id
        started_at = perf_counter()

        response = await call_next(request)

        response.headers.update(RESPONSE_HEADERS)
        response.headers[REQUEST_ID_HEADER] = request_id

        # 5xx here means the CRM backend refused a write.
        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        _LOG.log(
            level,
            "%s %s table=%s status=%s duration_ms=%.2f request_id=%s",
            request.method,
            request.url.path,
            table_from_path(request.url.path) or "-",
            response.status_code,
            (perf_counter() - started_at) * 1000.0,
            request_id,
        )
        return response
