"""
DRE Domain Models (``metalgest_modules.dre.models``).

Responsibility
--------------
Value objects produced and consumed by the DRE (income statement) engine:
bucket aggregates, the composed statement, period comparatives, reporting
periods and statement series.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  No dependency on
the database, selectors or engines.

Invariants enforced
-------------------
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* Value objects are ``frozen=True``; they are built fresh for every report
  and never mutated.
* ``ReportingPeriod`` is half-open: ``start <= d < end``.

Failure modes
-------------
* ``UnknownBucketError`` / ``UnknownMetricError`` for names that do not
  belong to the DRE.
* ``InvalidPeriodError`` for empty or inverted periods.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum

from metalgest_kernel.domain.amounts import ZERO, to_decimal
from metalgest_kernel.domain.dtos import Transaction, TransactionType
from metalgest_kernel.exceptions import (
    InvalidPeriodError,
    UnknownBucketError,
    UnknownMetricError,
)

__all__ = [
    "HEADLINE_METRICS",
    "STATEMENT_FIELDS",
    "BucketName",
    "BucketResult",
    "Comparative",
    "Contribution",
    "DREReport",
    "PeriodGranularity",
    "ReportMetadata",
    "ReportingPeriod",
    "SignPolicy",
    "Statement",
    "StatementSeries",
    "Transaction",
    "TransactionType",
    "normalize_metric",
]


# =========================================================================
# Enums
# =========================================================================


class BucketName(str, Enum):
    """Aggregation buckets of the DRE."""

    GROSS_REVENUE = "grossRevenue"
    TAXES = "taxes"
    COSTS = "costs"
    OPERATING_EXPENSES = "operatingExpenses"
    FINANCIAL_RESULT = "financialResult"

    @classmethod
    def parse(cls, value: object) -> BucketName:
        """Accept a member, its value (``grossRevenue``) or snake_case (``gross_revenue``)."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            for member in cls:
                if value in (member.value, member.name, member.name.lower()):
                    return member
        raise UnknownBucketError(value)


class SignPolicy(str, Enum):
    """How a matched transaction's value is signed in its bucket."""

    POSITIVE = "positive"  # always +value
    BY_TYPE = "by_type"  # +value for income, -value for expense


class PeriodGranularity(str, Enum):
    """Length of a reporting period."""

    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"

    @property
    def months(self) -> int:
        return {"month": 1, "quarter": 3, "year": 12}[self.value]

    @classmethod
    def parse(cls, value: object) -> PeriodGranularity:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidPeriodError(f"unknown granularity {value!r}")


# =========================================================================
# Statement fields
# =========================================================================


STATEMENT_FIELDS: tuple[str, ...] = (
    "gross_revenue",
    "taxes",
    "net_revenue",
    "costs",
    "gross_profit",
    "operating_expenses",
    "operating_result",
    "financial_result",
    "net_result",
)

HEADLINE_METRICS: tuple[str, ...] = ("gross_revenue", "gross_profit", "net_result")

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def normalize_metric(name: str) -> str:
    """Map ``netResult`` or ``net_result`` to the Statement field name."""
    if name in STATEMENT_FIELDS:
        return name
    snake = _CAMEL_BOUNDARY.sub("_", name).lower()
    if snake in STATEMENT_FIELDS:
        return snake
    raise UnknownMetricError(name)


# =========================================================================
# Classification / aggregation
# =========================================================================


@dataclass(frozen=True)
class Contribution:
    """Signed amount one transaction adds to one bucket."""

    bucket: BucketName
    amount: Decimal
    category: str
    rule: str


@dataclass(frozen=True)
class BucketResult:
    """
    Total of one bucket plus its per-category breakdown.

    ``breakdown`` only lists categories with at least one contributing
    transaction, in lexicographic order of the category label.
    """

    name: BucketName
    total: Decimal = ZERO
    breakdown: dict[str, Decimal] = field(default_factory=dict)


# =========================================================================
# Statement (DRE)
# =========================================================================


@dataclass(frozen=True)
class Statement:
    """
    The DRE, in presentation order.

        Gross revenue
        - Taxes
        = Net revenue
        - Costs
        = Gross profit
        - Operating expenses
        = Operating result
        +/- Financial result
        = Net result
    """

    gross_revenue: Decimal = ZERO
    taxes: Decimal = ZERO
    net_revenue: Decimal = ZERO
    costs: Decimal = ZERO
    gross_profit: Decimal = ZERO
    operating_expenses: Decimal = ZERO
    operating_result: Decimal = ZERO
    financial_result: Decimal = ZERO
    net_result: Decimal = ZERO

    @classmethod
    def zero(cls) -> Statement:
        return cls()

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> Statement:
        """Build from a mapping keyed by snake_case or camelCase field names."""
        values = {
            normalize_metric(key): to_decimal(value, key)
            for key, value in data.items()
        }
        return cls(**values)

    def metric(self, name: str) -> Decimal:
        return getattr(self, normalize_metric(name))

    def as_dict(self) -> dict[str, Decimal]:
        return {name: getattr(self, name) for name in STATEMENT_FIELDS}

    def is_consistent(self, tolerance: Decimal = Decimal("0.01")) -> bool:
        """True when every subtotal identity holds within ``tolerance``."""
        checks = (
            self.net_revenue - (self.gross_revenue - self.taxes),
            self.gross_profit - (self.net_revenue - self.costs),
            self.operating_result - (self.gross_profit - self.operating_expenses),
            self.net_result - (self.operating_result + self.financial_result),
        )
        return all(abs(diff) <= tolerance for diff in checks)

    @property
    def is_loss(self) -> bool:
        return self.net_result < ZERO


# =========================================================================
# Periods
# =========================================================================


@dataclass(frozen=True)
class ReportingPeriod:
    """Half-open date window ``[start, end)`` with a display label."""

    start: date
    end: date
    granularity: PeriodGranularity
    label: str

    def __post_init__(self):
        if self.end <= self.start:
            raise InvalidPeriodError(
                f"end {self.end} must be after start {self.start}"
            )

    def contains(self, day: date) -> bool:
        return self.start <= day < self.end


# =========================================================================
# Comparative / series / report
# =========================================================================


@dataclass(frozen=True)
class Comparative:
    """Current vs previous statement with percentage variation per metric."""

    current: Statement
    previous: Statement
    variation_percent: dict[str, Decimal]
    current_period: ReportingPeriod | None = None
    previous_period: ReportingPeriod | None = None


@dataclass(frozen=True)
class StatementSeries:
    """
    Statements for consecutive periods, oldest first.

    Behaves as a sequence of ``Statement``; also indexable by period label::

        series[0]           # oldest statement
        series["2024-03"]   # statement for March 2024
    """

    periods: tuple[ReportingPeriod, ...]
    statements: tuple[Statement, ...]

    def __post_init__(self):
        if len(self.periods) != len(self.statements):
            raise ValueError("periods and statements must have the same length")

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(p.label for p in self.periods)

    def items(self) -> list[tuple[str, Statement]]:
        return list(zip(self.labels, self.statements))

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self) -> Iterator[Statement]:
        return iter(self.statements)

    def __getitem__(self, key):
        if isinstance(key, str):
            try:
                return self.statements[self.labels.index(key)]
            except ValueError:
                raise KeyError(key) from None
        return self.statements[key]


@dataclass(frozen=True)
class ReportMetadata:
    """Metadata attached to every DRE report."""

    entity_name: str
    currency: str
    generated_at: str | None = None  # ISO timestamp from an injected clock
    period: ReportingPeriod | None = None
    transaction_count: int = 0


@dataclass(frozen=True)
class DREReport:
    """Statement plus the detail shown under each DRE line."""

    metadata: ReportMetadata
    statement: Statement
    buckets: dict[BucketName, BucketResult]
    financial_income: Decimal = ZERO
    financial_expenses: Decimal = ZERO

    def breakdown(self, bucket: BucketName | str) -> dict[str, Decimal]:
        return self.buckets[BucketName.parse(bucket)].breakdown
