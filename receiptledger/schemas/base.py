"""
Shared schema primitives.

Request bodies come from a JavaScript client and use camelCase keys; every
API model also accepts the snake_case field names.

Envelope fields (`jobId`, `parentTransaction`, ...) are camelCase. Stored
records nested inside an envelope (`RecordModel` subclasses: profiles,
categories, budgets, expenses, jobs) keep their column names, so a client
sees the same keys it would read from the table.
"""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Parse ``value`` into a Decimal rounded to whole cents."""
    if isinstance(value, bool):
        raise ValueError("amount must be a number")
    if isinstance(value, str):
        value = value.strip().replace("$", "").replace(",", "")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError) as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


# Decimal inside the service, plain JSON number on the wire.
Money = Annotated[
    Decimal,
    BeforeValidator(to_money),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(ApiModel):
    success: bool = True
    message: Optional[str] = None


class RecordModel(BaseModel):
    """A stored row as returned by the API: snake_case column names."""
    model_config = ConfigDict(from_attributes=True)


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str
    details: Optional[Any] = None
