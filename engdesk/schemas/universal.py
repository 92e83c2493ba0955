from __future__ import annotations

from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

Operator = Literal["eq", "neq", "gt", "lt", "gte", "lte", "like", "ilike"]
OPERATORS = ("eq", "neq", "gt", "lt", "gte", "lte", "like", "ilike")
# Only these render IS NULL / IS NOT NULL for a None value.
NULLABLE_OPERATORS = ("eq", "neq")

Scalar = Union[bool, int, float, str, None]

ErrorKind = Literal["backing_store", "not_found"]

class Condition(BaseModel):
    column: str = Field(min_length=1)
    operator: Operator = "eq"
    value: Scalar = None

    @model_validator(mode="after")
    def _null_only_for_equality(self) -> "Condition":
        if self.value is None and self.operator not in NULLABLE_OPERATORS:
            raise ValueError(f'operator "{self.operator}" needs a value; null is only allowed with eq/neq')
        return self

class OrderClause(BaseModel):
    column: str = Field(min_length=1)
    ascending: bool = True

class QueryDescriptor(BaseModel):
    filter: List[Condition] = []
    order: List[OrderClause] = []
    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)

class QueryRequest(BaseModel):
    query: QueryDescriptor = QueryDescriptor()

class ResultEnvelope(BaseModel):
    """Uniform outcome of a data-access call. Check ``status`` before using ``data``."""

    status: Literal["success", "error"]
    data: Any = None
    message: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def success(cls, data: Any = None) -> "ResultEnvelope":
        return cls(status="success", data=data)

    @classmethod
    def error(cls, message: str, kind: ErrorKind = "backing_store") -> "ResultEnvelope":
        return cls(status="error", message=message, error_kind=kind)

    @property
    def is_success(self) -> bool:
        return self.status == "success"
