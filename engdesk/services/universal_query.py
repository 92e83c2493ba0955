from __future__ import annotations

from typing import Iterable

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import Select, column, literal_column, select, table
from sqlalchemy.sql.elements import ColumnClause

from engdesk.schemas.universal import NULLABLE_OPERATORS, OPERATORS, Condition, OrderClause, QueryDescriptor

FILTER_PREFIX = "filter."
ORDER_PREFIX = "order."
NULL_LITERAL = "null"


def _bad_query_param(key: str, reason: str) -> HTTPException:
    return HTTPException(status_code=400, detail=f'Invalid query parameter "{key}": {reason}')


def _parse_non_negative_int(key: str, raw: str) -> int:
    text = str(raw or "").strip()
    try:
        value = int(text)
    except ValueError:
        raise _bad_query_param(key, "expected an integer")
    if value < 0:
        raise _bad_query_param(key, "must not be negative")
    return value


def _parse_filter_key(key: str) -> tuple[str, str]:
    parts = key[len(FILTER_PREFIX):].split(".")
    if len(parts) == 1:
        column_name, operator = parts[0], "eq"
    elif len(parts) == 2:
        column_name, operator = parts
    else:
        raise _bad_query_param(key, "expected filter.<column>.<operator>")
    column_name = column_name.strip()
    operator = operator.strip().lower()
    if not column_name:
        raise _bad_query_param(key, "column name is empty")
    if operator not in OPERATORS:
        raise _bad_query_param(key, f'unknown operator "{operator}"')
    return column_name, operator


def _parse_filter_value(operator: str, raw: str):
    # Outside eq/neq the literal is compared as text.
    if operator in NULLABLE_OPERATORS and raw.strip().lower() == NULL_LITERAL:
        return None
    return raw


def _parse_order_direction(key: str, raw: str) -> bool:
    direction = str(raw or "").strip().lower() or "asc"
    if direction not in {"asc", "desc"}:
        raise _bad_query_param(key, 'direction must be "asc" or "desc"')
    return direction == "asc"


def parse_query_params(items: Iterable[tuple[str, str]]) -> QueryDescriptor:
    """Build a descriptor from ``filter.<column>.<op>``, ``order.<column>``, ``limit`` and ``offset`` pairs.

    Pairs are consumed in the order given, so repeated ``order.*`` keys become
    primary, secondary, ... sort keys. Keys outside that vocabulary are ignored.
    """
    conditions: list[Condition] = []
    order: list[OrderClause] = []
    limit = None
    offset = None
    for key, raw in items:
        if key.startswith(FILTER_PREFIX):
            column_name, operator = _parse_filter_key(key)
            conditions.append(Condition(column=column_name, operator=operator, value=_parse_filter_value(operator, raw)))
        elif key.startswith(ORDER_PREFIX):
            column_name = key[len(ORDER_PREFIX):].strip()
            if not column_name:
                raise _bad_query_param(key, "column name is empty")
            order.append(OrderClause(column=column_name, ascending=_parse_order_direction(key, raw)))
        elif key == "limit":
            limit = _parse_non_negative_int(key, raw)
        elif key == "offset":
            offset = _parse_non_negative_int(key, raw)
    try:
        return QueryDescriptor(filter=conditions, order=order, limit=limit, offset=offset)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors(include_url=False, include_context=False))


def _condition_clause(col: ColumnClause, operator: str, value):
    if operator == "eq":
        return col.is_(None) if value is None else col == value
    if operator == "neq":
        return col.is_not(None) if value is None else col != value
    if operator == "gt":
        return col > value
    if operator == "lt":
        return col < value
    if operator == "gte":
        return col >= value
    if operator == "lte":
        return col <= value
    if operator == "like":
        return col.like(f"%{value}%")
    if operator == "ilike":
        return col.ilike(f"%{value}%")
    raise ValueError(f"Unsupported operator: {operator}")


def build_select(table_name: str, descriptor: QueryDescriptor | None = None) -> Select:
    # Table and column names are passed through untouched; unknown names fail in the database.
    descriptor = descriptor or QueryDescriptor()
    stmt = select(literal_column("*")).select_from(table(table_name))
    for f in descriptor.filter:
        stmt = stmt.where(_condition_clause(column(f.column), f.operator, f.value))
    for s in descriptor.order:
        col = column(s.column)
        stmt = stmt.order_by(col.asc() if s.ascending else col.desc())
    if descriptor.limit is not None:
        stmt = stmt.limit(descriptor.limit)
    if descriptor.offset:
        stmt = stmt.offset(descriptor.offset)
    return stmt
