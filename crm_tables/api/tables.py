from __future__ import annotations

from typing import Any, get_args

from fastapi import APIRouter, Depends, HTTPException

from crm_tables.core.deps import get_entity_or_404, get_table_store
from crm_tables.schemas.table import Operator, TableQuery
from crm_tables.services.entities import EntityDefinition
from crm_tables.services.status_summary import count_by_status, sum_by_status
from crm_tables.services.table_pipeline import build_table_page
from crm_tables.services.table_store import MutationFailed, TableStore

router = APIRouter()

OPERATORS = list(get_args(Operator))


def _serialize_entity(entity: EntityDefinition) -> dict:
    return {
        "name": entity.name,
        "label": entity.label,
        "id_field": entity.id_field,
        "status_field": entity.status_field,
        "statuses": list(entity.statuses),
        "filter_fields": list(entity.filter_fields),
        "columns": [
            {"uid": column.uid, "label": column.label, "sortable": column.sortable}
            for column in entity.columns
        ],
    }


def _records_for(store: TableStore, entity: EntityDefinition, refresh: bool):
    if refresh or not store.loaded(entity.name):
        store.refresh(entity.name)
    return store.state(entity.name), store.errors.get(entity.name)


@router.get("")
def list_tables(store: TableStore = Depends(get_table_store)):
    return {
        "tables": [_serialize_entity(entity) for entity in store.entities.values()],
        "operators": OPERATORS,
    }


@router.post("/{entity}/query")
def query_table(
    uq: TableQuery,
    refresh: bool = False,
    table: EntityDefinition = Depends(get_entity_or_404),
    store: TableStore = Depends(get_table_store),
):
    state, error = _records_for(store, table, refresh)
    page = build_table_page(
        state.records,
        uq.query,
        uq.conditions,
        uq.sort,
        uq.window.page,
        uq.window.rows_per_page,
        accessors=state.accessors,
        sort_scope=state.sort_scope,
        sort_keys=state.sort_keys,
    )
    return {**page.model_dump(), "error": error}


@router.get("/{entity}/summary")
def table_summary(
    refresh: bool = False,
    table: EntityDefinition = Depends(get_entity_or_404),
    store: TableStore = Depends(get_table_store),
):
    state, error = _records_for(store, table, refresh)
    payload: dict[str, Any] = {
        "entity": table.name,
        "total": len(state.records),
        "by_status": count_by_status(state.records, table.status_field, table.statuses),
        "error": error,
    }
    if table.amount_field:
        payload["amount_field"] = table.amount_field
        payload["amount_by_status"] = sum_by_status(
            state.records, table.amount_field, table.status_field, table.statuses
        )
    return payload


def _mutation_or_502(call):
    try:
        return call()
    except MutationFailed as exc:
        raise HTTPException(status_code=502, detail=str(exc))


@router.post("/{entity}/records", status_code=201)
def create_record(
    payload: dict,
    table: EntityDefinition = Depends(get_entity_or_404),
    store: TableStore = Depends(get_table_store),
):
    result = _mutation_or_502(lambda: store.create(table.name, payload))
    return {"status": "created", "result": result, "total": len(store.state(table.name).records)}


@router.put("/{entity}/records/{record_id}")
def update_record(
    record_id: str,
    payload: dict,
    table: EntityDefinition = Depends(get_entity_or_404),
    store: TableStore = Depends(get_table_store),
):
    result = _mutation_or_502(lambda: store.update(table.name, record_id, payload))
    return {"status": "updated", "id": record_id, "result": result}


@router.delete("/{entity}/records/{record_id}")
def delete_record(
    record_id: str,
    table: EntityDefinition = Depends(get_entity_or_404),
    store: TableStore = Depends(get_table_store),
):
    result = _mutation_or_502(lambda: store.delete(table.name, record_id))
    return {"status": "deleted", "id": record_id, "result": result}
