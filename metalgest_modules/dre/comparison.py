"""
Period comparison and historical series.

``compare`` computes the percentage variation of headline metrics between
two statements.  ``build_comparative`` and ``build_series`` group dated
transactions into calendar periods and build one statement per period.

Variation rule::

    variation = round_half_up((current - previous) / previous * 100, 1)
    variation = 0   when previous == 0
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace
from datetime import date, datetime

from metalgest_engines.tracer import traced_engine
from metalgest_engines.variance import VarianceCalculator
from metalgest_kernel.domain.clock import Clock, SystemClock
from metalgest_kernel.domain.dtos import Transaction
from metalgest_kernel.logging_config import get_logger
from metalgest_modules.dre.classifier import coerce_transactions
from metalgest_modules.dre.config import DREConfig
from metalgest_modules.dre.models import (
    HEADLINE_METRICS,
    Comparative,
    PeriodGranularity,
    Statement,
    StatementSeries,
    normalize_metric,
)
from metalgest_modules.dre.periods import (
    filter_transactions,
    period_containing,
    previous_period,
    trailing_periods,
    transaction_date,
)
from metalgest_modules.dre.statements import build_statement

logger = get_logger("modules.dre.comparison")


def _as_statement(value: Statement | Mapping[str, object]) -> Statement:
    if isinstance(value, Statement):
        return value
    return Statement.from_mapping(value)


@traced_engine("dre.compare", "1.0")
def compare(
    current: Statement | Mapping[str, object],
    previous: Statement | Mapping[str, object],
    metrics: Sequence[str] = HEADLINE_METRICS,
    places: int = 1,
) -> Comparative:
    """
    Percentage variation of ``metrics`` from ``previous`` to ``current``.

    Metric names may be snake_case or camelCase; the keys of
    ``variation_percent`` are always the snake_case field names.
    """
    current_statement = _as_statement(current)
    previous_statement = _as_statement(previous)
    names = [normalize_metric(m) for m in metrics]

    results = VarianceCalculator(places).compare(
        current_statement.as_dict(), previous_statement.as_dict(), names
    )
    return Comparative(
        current=current_statement,
        previous=previous_statement,
        variation_percent={name: r.variance_percent for name, r in results.items()},
    )


def _resolve_anchor(
    anchor: date | datetime | None,
    transactions: Sequence[Transaction],
    clock: Clock | None,
) -> date:
    """Explicit anchor, else the latest transaction date, else today."""
    if anchor is not None:
        return anchor.date() if isinstance(anchor, datetime) else anchor
    if transactions:
        return max(transaction_date(tx) for tx in transactions)
    return (clock or SystemClock()).today()


def build_comparative(
    transactions: Iterable[Transaction | Mapping],
    anchor: date | datetime | None = None,
    granularity: PeriodGranularity | str = PeriodGranularity.MONTH,
    config: DREConfig | None = None,
    clock: Clock | None = None,
) -> Comparative:
    """Statement of the period containing ``anchor`` against the one before it."""
    config = config or DREConfig.with_defaults()
    records = coerce_transactions(transactions)
    current_period = period_containing(_resolve_anchor(anchor, records, clock), granularity)
    prior_period = previous_period(current_period)

    comparative = compare(
        build_statement(filter_transactions(records, current_period), config),
        build_statement(filter_transactions(records, prior_period), config),
        metrics=config.headline_metrics,
        places=config.variation_places,
    )
    logger.info(
        "dre_comparative_built",
        extra={
            "current_period": current_period.label,
            "previous_period": prior_period.label,
            "variation_percent": comparative.variation_percent,
        },
    )
    return replace(
        comparative,
        current_period=current_period,
        previous_period=prior_period,
    )


def build_series(
    transactions: Iterable[Transaction | Mapping],
    periods: int | None = None,
    end: date | datetime | None = None,
    granularity: PeriodGranularity | str = PeriodGranularity.MONTH,
    config: DREConfig | None = None,
    clock: Clock | None = None,
) -> StatementSeries:
    """
    One statement per period for ``periods`` consecutive periods.

    The last period contains ``end`` (default: the latest transaction date,
    or today when there are no transactions).  Periods without
    transactions yield zero statements; transactions outside the window
    are ignored.
    """
    config = config or DREConfig.with_defaults()
    records = coerce_transactions(transactions)
    count = config.series_periods if periods is None else periods
    window = trailing_periods(_resolve_anchor(end, records, clock), count, granularity)

    grouped: dict[date, list[Transaction]] = {p.start: [] for p in window}
    ignored = 0
    for tx in records:
        start = period_containing(transaction_date(tx), window[0].granularity).start
        if start in grouped:
            grouped[start].append(tx)
        else:
            ignored += 1

    statements = tuple(build_statement(grouped[p.start], config) for p in window)
    logger.info(
        "dre_series_built",
        extra={
            "periods": len(window),
            "first_period": window[0].label,
            "last_period": window[-1].label,
            "ignored_transactions": ignored,
        },
    )
    return StatementSeries(periods=window, statements=statements)
