from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request

from engdesk.core.config import settings
from engdesk.core.deps import get_data_store
from engdesk.schemas.universal import QueryRequest, ResultEnvelope
from engdesk.services.data_access import DataStore
from engdesk.services.universal_query import parse_query_params

router = APIRouter()


def _ensure_table_exposed(table_name: str) -> str:
    allowed = settings.data_tables_list
    if allowed and table_name not in allowed:
        raise HTTPException(status_code=404, detail=f'Unknown table "{table_name}"')
    return table_name


def _unwrap(result: ResultEnvelope):
    if result.is_success:
        return result.data
    status_code = 404 if result.error_kind == "not_found" else 500
    raise HTTPException(status_code=status_code, detail=result.message or "Database error")


def _require_payload(payload: dict[str, Any], action: str) -> dict[str, Any]:
    if not payload:
        raise HTTPException(status_code=400, detail=f"Request body with at least one field is required to {action} a row")
    return payload


@router.get("/{table_name}")
def list_rows(table_name: str, request: Request, store: DataStore = Depends(get_data_store)):
    _ensure_table_exposed(table_name)
    descriptor = parse_query_params(request.query_params.multi_items())
    return _unwrap(store.fetch_data(table_name, descriptor))


@router.post("/{table_name}/query")
def query_rows(table_name: str, body: QueryRequest, store: DataStore = Depends(get_data_store)):
    _ensure_table_exposed(table_name)
    return _unwrap(store.fetch_data(table_name, body.query))


@router.get("/{table_name}/{row_id}")
def get_row(
    table_name: str,
    row_id: str,
    id_column: str = "id",
    store: DataStore = Depends(get_data_store),
):
    _ensure_table_exposed(table_name)
    return _unwrap(store.fetch_one(table_name, id_column, row_id))


@router.post("/{table_name}", status_code=201)
def create_row(table_name: str, payload: dict[str, Any], store: DataStore = Depends(get_data_store)):
    _ensure_table_exposed(table_name)
    return _unwrap(store.insert_data(table_name, _require_payload(payload, "create")))


@router.put("/{table_name}/{row_id}")
def update_row(
    table_name: str,
    row_id: str,
    payload: dict[str, Any],
    id_column: str = "id",
    store: DataStore = Depends(get_data_store),
):
    _ensure_table_exposed(table_name)
    return _unwrap(store.update_data(table_name, id_column, row_id, _require_payload(payload, "update")))


@router.delete("/{table_name}/{row_id}")
def delete_row(
    table_name: str,
    row_id: str,
    id_column: str = "id",
    store: DataStore = Depends(get_data_store),
):
    _ensure_table_exposed(table_name)
    _unwrap(store.delete_data(table_name, id_column, row_id))
    return {"success": True}
