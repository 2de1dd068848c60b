"""
Domain DTOs for ledger transactions.

``Transaction`` is the bridge between the storage layer (ORM rows, JSON
payloads) and the pure reporting functions.  It is validated once, at
construction, so the engine downstream can trust every field:

* ``type`` is a ``TransactionType`` (strings are parsed case-insensitively).
* ``value`` is a finite, non-negative ``Decimal``.  Direction lives in
  ``type``, never in the sign of ``value``.
* ``category`` is a string (``None`` becomes ``""``).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from metalgest_kernel.domain.amounts import require_non_negative, to_decimal
from metalgest_kernel.exceptions import InvalidTransactionTypeError, ValidationError


class TransactionType(str, Enum):
    """Direction of a ledger transaction."""

    INCOME = "income"
    EXPENSE = "expense"

    @classmethod
    def parse(cls, value: object) -> TransactionType:
        """Parse ``value`` (enum member or case-insensitive string)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidTransactionTypeError(value)


@dataclass(frozen=True)
class Transaction:
    """A posted income or expense, read-only input to the DRE engine."""

    type: TransactionType
    value: Decimal
    category: str
    date: date | datetime | None = None
    id: Any = None

    def __post_init__(self):
        object.__setattr__(self, "type", TransactionType.parse(self.type))
        amount = to_decimal(self.value, "value")
        object.__setattr__(self, "value", require_non_negative(amount, "value"))
        if self.category is None:
            object.__setattr__(self, "category", "")
        elif not isinstance(self.category, str):
            raise ValidationError(
                f"Transaction category must be a string, got {self.category!r}"
            )
        if self.date is not None and not isinstance(self.date, date):
            raise ValidationError(
                f"Transaction date must be a date or datetime, got {self.date!r}"
            )

    @property
    def posted_on(self) -> date | None:
        """Calendar date of the posting (datetimes are truncated)."""
        if isinstance(self.date, datetime):
            return self.date.date()
        return self.date

    @property
    def is_income(self) -> bool:
        return self.type is TransactionType.INCOME

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Transaction:
        """
        Build a Transaction from a loosely-typed record (e.g. a JSON row).

        ``date`` may be a ``date``/``datetime`` or an ISO-8601 string.
        """
        raw_date = data.get("date")
        if isinstance(raw_date, str):
            try:
                raw_date = (
                    datetime.fromisoformat(raw_date)
                    if "T" in raw_date
                    else date.fromisoformat(raw_date)
                )
            except ValueError as exc:
                raise ValidationError(f"Invalid transaction date: {raw_date!r}") from exc
        return cls(
            type=data.get("type"),
            value=data.get("value"),
            category=data.get("category"),
            date=raw_date,
            id=data.get("id"),
        )
