"""
DRE statement composition (pure functions).

Responsibility
--------------
Turn bucket totals into the nine-line DRE and assemble full reports with
per-category detail.  ``compose`` is the only place where subtotals are
derived, so every ``Statement`` it returns satisfies:

    net_revenue      = gross_revenue - taxes
    gross_profit     = net_revenue - costs
    operating_result = gross_profit - operating_expenses
    net_result       = operating_result + financial_result

Architecture position
---------------------
**Modules layer** -- pure functions with ZERO I/O.  Receives transactions
or bucket totals, returns frozen value objects.  Transaction loading lives
in ``metalgest_modules.dre.service``.

Failure modes
-------------
* ``NonFiniteAmountError`` / ``InvalidAmountError`` -- a bucket amount is
  NaN, Infinity or not numeric.
* ``NegativeAmountError`` -- gross revenue, taxes, costs or operating
  expenses below zero.  Only the financial result may be negative.
* ``UnknownBucketError`` -- a bucket key outside the DRE.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from metalgest_engines.tracer import traced_engine
from metalgest_kernel.domain.amounts import ZERO, require_non_negative, to_decimal
from metalgest_kernel.domain.dtos import Transaction
from metalgest_kernel.logging_config import get_logger
from metalgest_modules.dre.aggregator import aggregate, split_financial
from metalgest_modules.dre.classifier import (
    classify,
    classify_contributions,
    coerce_transactions,
)
from metalgest_modules.dre.config import DREConfig
from metalgest_modules.dre.models import (
    BucketName,
    BucketResult,
    DREReport,
    ReportMetadata,
    Statement,
)

logger = get_logger("modules.dre.statements")

_MAGNITUDE_BUCKETS = (
    BucketName.GROSS_REVENUE,
    BucketName.TAXES,
    BucketName.COSTS,
    BucketName.OPERATING_EXPENSES,
)


def _bucket_totals(
    buckets: Mapping[BucketName | str, BucketResult | Decimal | int | str],
) -> dict[BucketName, Decimal]:
    totals = {bucket: ZERO for bucket in BucketName}
    for key, value in buckets.items():
        bucket = BucketName.parse(key)
        amount = value.total if isinstance(value, BucketResult) else value
        totals[bucket] = to_decimal(amount, bucket.value)
    for bucket in _MAGNITUDE_BUCKETS:
        require_non_negative(totals[bucket], bucket.value)
    return totals


@traced_engine("dre.compose", "1.0", fingerprint_fields=("buckets",))
def compose(
    buckets: Mapping[BucketName | str, BucketResult | Decimal | int | str],
) -> Statement:
    """
    Derive the DRE from bucket totals.

    ``buckets`` may hold ``BucketResult`` objects (as returned by
    ``classify``) or plain amounts, keyed by ``BucketName`` or its value.
    Missing buckets count as zero.
    """
    totals = _bucket_totals(buckets)

    gross_revenue = totals[BucketName.GROSS_REVENUE]
    taxes = totals[BucketName.TAXES]
    costs = totals[BucketName.COSTS]
    operating_expenses = totals[BucketName.OPERATING_EXPENSES]
    financial_result = totals[BucketName.FINANCIAL_RESULT]

    net_revenue = gross_revenue - taxes
    gross_profit = net_revenue - costs
    operating_result = gross_profit - operating_expenses
    net_result = operating_result + financial_result

    statement = Statement(
        gross_revenue=gross_revenue,
        taxes=taxes,
        net_revenue=net_revenue,
        costs=costs,
        gross_profit=gross_profit,
        operating_expenses=operating_expenses,
        operating_result=operating_result,
        financial_result=financial_result,
        net_result=net_result,
    )
    logger.debug(
        "dre_statement_composed",
        extra={"gross_revenue": gross_revenue, "net_result": net_result},
    )
    return statement


def build_statement(
    transactions: Iterable[Transaction | Mapping],
    config: DREConfig | None = None,
) -> Statement:
    """Classify, aggregate and compose in one call."""
    return compose(classify(transactions, config))


def build_report(
    transactions: Iterable[Transaction | Mapping],
    config: DREConfig | None = None,
    metadata: ReportMetadata | None = None,
) -> DREReport:
    """
    Full DRE report: statement, bucket breakdowns and the financial split.

    When ``metadata`` is omitted it is filled from ``config`` with no
    period and no generation timestamp.
    """
    config = config or DREConfig.with_defaults()
    records = coerce_transactions(transactions)
    contributions = classify_contributions(records, config)
    buckets = aggregate(contributions)
    financial_income, financial_expenses = split_financial(contributions)
    statement = compose(buckets)

    if metadata is None:
        metadata = ReportMetadata(
            entity_name=config.entity_name,
            currency=config.currency,
            transaction_count=len(records),
        )

    logger.info(
        "dre_report_built",
        extra={
            "transaction_count": len(records),
            "period": metadata.period.label if metadata.period else None,
            "net_result": statement.net_result,
        },
    )

    return DREReport(
        metadata=metadata,
        statement=statement,
        buckets=buckets,
        financial_income=financial_income,
        financial_expenses=financial_expenses,
    )


def render_to_dict(report: Any) -> dict:
    """
    Convert any DRE value object to a JSON-friendly dict.

    Decimal becomes str, dates become ISO strings, enums become their
    values.  Dict keys that are enums are converted as well.
    """
    if isinstance(report, Statement):
        return _convert(report.as_dict())
    return _convert(asdict(report))


def _convert(obj: Any) -> Any:
    if isinstance(obj, dict):
        return {_convert_key(k): _convert(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_convert(item) for item in obj]
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return obj


def _convert_key(key: Any) -> Any:
    if isinstance(key, Enum):
        return key.value
    return key
