from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import JSON, column, delete, insert, literal_column, select, table, text, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from engdesk.schemas.universal import QueryDescriptor, ResultEnvelope
from engdesk.services.universal_query import build_select

logger = logging.getLogger("engdesk.data")

NOT_FOUND_MESSAGE = 'No row in "{table}" where {id_column} = {id_value!r}'

# Lists and dicts are bound as JSON; every other value goes to the driver as is.
JSON_VALUE = JSON().with_variant(JSONB(), "postgresql")


def _store_error(exc: SQLAlchemyError) -> str:
    # Driver errors carry the database message on .orig; prefer it over the wrapped repr.
    orig = getattr(exc, "orig", None)
    return str(orig if orig is not None else exc).strip() or exc.__class__.__name__


def _value_column(key: str, value: Any):
    if isinstance(value, (dict, list)):
        return column(key, JSON_VALUE)
    return column(key)


def _not_found(table_name: str, id_column: str, id_value: Any) -> ResultEnvelope:
    message = NOT_FOUND_MESSAGE.format(table=table_name, id_column=id_column, id_value=id_value)
    return ResultEnvelope.error(message, kind="not_found")


class DataStore:
    """Table-agnostic CRUD over the backing store.

    Every method runs exactly one statement in its own transaction and returns a
    ``ResultEnvelope``; database failures are reported through the envelope and
    never raised to the caller.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def fetch_data(self, table_name: str, descriptor: QueryDescriptor | None = None) -> ResultEnvelope:
        stmt = build_select(table_name, descriptor)
        try:
            with self.engine.begin() as conn:
                rows = [dict(row) for row in conn.execute(stmt).mappings()]
        except SQLAlchemyError as exc:
            logger.error("fetch failed table=%s error=%s", table_name, _store_error(exc))
            return ResultEnvelope.error(_store_error(exc))
        logger.debug("fetched table=%s rows=%d", table_name, len(rows))
        return ResultEnvelope.success(rows)

    def fetch_one(self, table_name: str, id_column: str, id_value: Any) -> ResultEnvelope:
        stmt = (
            select(literal_column("*"))
            .select_from(table(table_name))
            .where(column(id_column) == id_value)
            .limit(1)
        )
        try:
            with self.engine.begin() as conn:
                row = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            logger.error("fetch_one failed table=%s error=%s", table_name, _store_error(exc))
            return ResultEnvelope.error(_store_error(exc))
        if row is None:
            return _not_found(table_name, id_column, id_value)
        return ResultEnvelope.success(dict(row))

    def insert_data(self, table_name: str, row: Mapping[str, Any]) -> ResultEnvelope:
        target = table(table_name, *(_value_column(key, value) for key, value in row.items()))
        stmt = insert(target).values(dict(row)).returning(literal_column("*"))
        try:
            with self.engine.begin() as conn:
                inserted = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            logger.error("insert failed table=%s error=%s", table_name, _store_error(exc))
            return ResultEnvelope.error(_store_error(exc))
        logger.info("inserted row table=%s", table_name)
        return ResultEnvelope.success(dict(inserted) if inserted is not None else dict(row))

    def update_data(
        self,
        table_name: str,
        id_column: str,
        id_value: Any,
        patch: Mapping[str, Any],
    ) -> ResultEnvelope:
        columns = [_value_column(key, value) for key, value in patch.items() if key != id_column]
        target = table(table_name, column(id_column), *columns)
        stmt = (
            update(target)
            .where(target.c[id_column] == id_value)
            .values(dict(patch))
            .returning(literal_column("*"))
        )
        try:
            with self.engine.begin() as conn:
                updated = conn.execute(stmt).mappings().first()
        except SQLAlchemyError as exc:
            logger.error("update failed table=%s error=%s", table_name, _store_error(exc))
            return ResultEnvelope.error(_store_error(exc))
        if updated is None:
            logger.warning("update matched no row table=%s %s=%r", table_name, id_column, id_value)
            return _not_found(table_name, id_column, id_value)
        logger.info("updated row table=%s %s=%r", table_name, id_column, id_value)
        return ResultEnvelope.success(dict(updated))

    def delete_data(self, table_name: str, id_column: str, id_value: Any) -> ResultEnvelope:
        target = table(table_name, column(id_column))
        stmt = delete(target).where(target.c[id_column] == id_value)
        try:
            with self.engine.begin() as conn:
                deleted = conn.execute(stmt).rowcount
        except SQLAlchemyError as exc:
            logger.error("delete failed table=%s error=%s", table_name, _store_error(exc))
            return ResultEnvelope.error(_store_error(exc))
        if not deleted:
            logger.warning("delete matched no row table=%s %s=%r", table_name, id_column, id_value)
            return _not_found(table_name, id_column, id_value)
        logger.info("deleted row table=%s %s=%r", table_name, id_column, id_value)
        return ResultEnvelope.success()

    def ping(self) -> ResultEnvelope:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("database ping failed error=%s", _store_error(exc))
            return ResultEnvelope.error(_store_error(exc))
        return ResultEnvelope.success()
