from __future__ import annotations

import logging
from typing import Any

import httpx

from crm_tables.core.config import settings
from crm_tables.services.entities import EntityDefinition


class BackendError(Exception):
    pass


class MalformedResponseError(BackendError):
    pass


logger = logging.getLogger("crm_tables.backend")


def _json_or_empty(response: httpx.Response) -> Any:
    try:
        return response.json() if response.content else {}
    except ValueError:
        return {}


def _error_detail(response: httpx.Response, payload: Any) -> str:
    if isinstance(payload, dict):
        detail = payload.get("message") or payload.get("error")
        if detail:
            return str(detail)
    return str(response.text or f"HTTP {response.status_code}")


def normalize_records(payload: Any) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        rows = payload
    elif isinstance(payload, dict) and "data" in payload:
        rows = payload.get("data")
        if not isinstance(rows, list):
            return []
    else:
        raise MalformedResponseError(f"Unexpected response format: {type(payload).__name__}")
    return [dict(row) for row in rows if isinstance(row, dict)]


class BackendClient:
    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = str(base_url or settings.BACKEND_BASE_URL or "").strip().rstrip("/")
        self.timeout = float(timeout or settings.BACKEND_TIMEOUT_SECONDS)
        if not self.base_url:
            raise BackendError("BACKEND_BASE_URL is not configured")

    def _request(self, method: str, path: str, *, json: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.request(method, url, json=json)
        except httpx.HTTPError as exc:
            logger.warning("backend %s %s failed: %s", method, path, exc)
            raise BackendError(f"Backend request failed: {exc}") from exc
        payload = _json_or_empty(response)
        if response.status_code >= 400:
            detail = _error_detail(response, payload)
            logger.warning("backend %s %s status=%s detail=%s", method, path, response.status_code, detail)
            raise BackendError(detail)
        return payload

    def list_records(self, entity: EntityDefinition) -> list[dict[str, Any]]:
        payload = self._request("GET", entity.list_path)
        try:
            return normalize_records(payload)
        except MalformedResponseError:
            logger.error("backend GET %s returned malformed payload: %r", entity.list_path, payload)
            raise

    def create_record(self, entity: EntityDefinition, data: dict[str, Any]) -> Any:
        return self._request("POST", entity.create_path, json=data)

    def update_record(self, entity: EntityDefinition, record_id: str, data: dict[str, Any]) -> Any:
        return self._request("PUT", entity.record_path(entity.update_path, record_id), json=data)

    def delete_record(self, entity: EntityDefinition, record_id: str) -> Any:
        return self._request("DELETE", entity.record_path(entity.delete_path, record_id))
