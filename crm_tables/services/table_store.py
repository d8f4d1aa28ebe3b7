from __future__ import annotations

import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Iterable
from uuid import uuid4

from crm_tables.core.config import settings
from crm_tables.services.backend_client import BackendClient, BackendError, MalformedResponseError
from crm_tables.services.entities import ENTITIES, EntityDefinition
from crm_tables.services.table_state import TableState

_LOG = logging.getLogger("crm_tables.store")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class UnknownEntityError(KeyError):
    pass


class MutationFailed(Exception):
    pass


def _created_at(record: dict[str, Any]) -> datetime:
    text = str(record.get("createdAt") or "").strip()
    if not text:
        return _EPOCH
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def prepare_records(records: Iterable[dict[str, Any]], id_field: str = "_id") -> list[dict[str, Any]]:
    rows = sorted(records, key=_created_at, reverse=True)
    return [{**row, "key": str(row.get(id_field) or uuid4().hex)} for row in rows]


class TableStore:
    """Holds the table state of every entity and keeps it in sync with the backend.

    Fetches are sequenced: each one takes a ticket and a response is applied
    only if no later-issued fetch has already been applied.
    """

    def __init__(self, client: BackendClient | None = None, entities: dict[str, EntityDefinition] | None = None):
        self.client = client or BackendClient()
        self.entities = dict(entities or ENTITIES)
        self.states: dict[str, TableState] = {
            name: TableState(
                accessors=entity.accessors,
                sort_keys=entity.sort_keys,
                rows_per_page=settings.DEFAULT_ROWS_PER_PAGE or entity.default_rows_per_page,
                sort_scope=settings.table_sort_scope,
            )
            for name, entity in self.entities.items()
        }
        self.errors: dict[str, str | None] = {name: None for name in self.entities}
        self._issued: dict[str, int] = {name: 0 for name in self.entities}
        self._applied: dict[str, int] = {name: 0 for name in self.entities}
        self._lock = Lock()

    def entity(self, name: str) -> EntityDefinition:
        entity = self.entities.get(str(name or "").strip().lower())
        if entity is None:
            raise UnknownEntityError(name)
        return entity

    def state(self, name: str) -> TableState:
        return self.states[self.entity(name).name]

    def loaded(self, name: str) -> bool:
        return self._applied[self.entity(name).name] > 0

    def _next_ticket(self, name: str) -> int:
        with self._lock:
            self._issued[name] += 1
            return self._issued[name]

    def _apply(self, name: str, ticket: int, records: list[dict[str, Any]], error: str | None) -> bool:
        with self._lock:
            if ticket < self._applied[name]:
                _LOG.info("dropping stale %s fetch ticket=%s applied=%s", name, ticket, self._applied[name])
                return False
            self._applied[name] = ticket
            self.states[name].replace_records(records)
            self.errors[name] = error
            return True

    def refresh(self, name: str) -> TableState:
        entity = self.entity(name)
        ticket = self._next_ticket(entity.name)
        try:
            records = prepare_records(self.client.list_records(entity), entity.id_field)
        except MalformedResponseError:
            self._apply(entity.name, ticket, [], f"Failed to fetch {entity.label.lower()}: invalid response format")
        except BackendError as exc:
            _LOG.warning("fetch %s failed: %s", entity.name, exc)
            self._apply(entity.name, ticket, [], f"Failed to fetch {entity.label.lower()}: {exc}")
        else:
            self._apply(entity.name, ticket, records, None)
        return self.states[entity.name]

    def _mutate(self, name: str, action: str, call) -> Any:
        entity = self.entity(name)
        try:
            result = call(entity)
        except BackendError as exc:
            _LOG.warning("%s %s failed: %s", action, entity.name, exc)
            raise MutationFailed(f"There was an error trying to {action} the {entity.name}: {exc}") from exc
        self.refresh(entity.name)
        return result

    def create(self, name: str, data: dict[str, Any]) -> Any:
        return self._mutate(name, "create", lambda entity: self.client.create_record(entity, data))

    def update(self, name: str, record_id: str, data: dict[str, Any]) -> Any:
        return self._mutate(name, "update", lambda entity: self.client.update_record(entity, record_id, data))

    def delete(self, name: str, record_id: str) -> Any:
        return self._mutate(name, "delete", lambda entity: self.client.delete_record(entity, record_id))
