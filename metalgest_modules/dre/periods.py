"""
Reporting period arithmetic.

Periods are calendar-aligned, half-open windows:

    MONTH    2024-03  -> [2024-03-01, 2024-04-01)
    QUARTER  2024-Q1  -> [2024-01-01, 2024-04-01)
    YEAR     2024     -> [2024-01-01, 2025-01-01)

Walking backwards with ``previous_period`` never skips or repeats a
period, including across year boundaries.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime

from metalgest_kernel.domain.dtos import Transaction
from metalgest_kernel.exceptions import InvalidPeriodError, MissingTransactionDateError
from metalgest_modules.dre.models import PeriodGranularity, ReportingPeriod


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise InvalidPeriodError(f"anchor must be a date, got {value!r}")


def add_months(day: date, months: int) -> date:
    """First day of the month ``months`` away from ``day``'s month."""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def period_label(start: date, granularity: PeriodGranularity) -> str:
    if granularity is PeriodGranularity.MONTH:
        return f"{start.year:04d}-{start.month:02d}"
    if granularity is PeriodGranularity.QUARTER:
        return f"{start.year:04d}-Q{(start.month - 1) // 3 + 1}"
    return f"{start.year:04d}"


def _period_starting(start: date, granularity: PeriodGranularity) -> ReportingPeriod:
    return ReportingPeriod(
        start=start,
        end=add_months(start, granularity.months),
        granularity=granularity,
        label=period_label(start, granularity),
    )


def period_containing(
    anchor: date | datetime,
    granularity: PeriodGranularity | str = PeriodGranularity.MONTH,
) -> ReportingPeriod:
    """The calendar period of the given granularity that contains ``anchor``."""
    granularity = PeriodGranularity.parse(granularity)
    day = _as_date(anchor)
    if granularity is PeriodGranularity.MONTH:
        start = date(day.year, day.month, 1)
    elif granularity is PeriodGranularity.QUARTER:
        start = date(day.year, (day.month - 1) // 3 * 3 + 1, 1)
    else:
        start = date(day.year, 1, 1)
    return _period_starting(start, granularity)


def previous_period(period: ReportingPeriod) -> ReportingPeriod:
    return _period_starting(
        add_months(period.start, -period.granularity.months), period.granularity
    )


def next_period(period: ReportingPeriod) -> ReportingPeriod:
    return _period_starting(period.end, period.granularity)


def trailing_periods(
    anchor: date | datetime,
    count: int,
    granularity: PeriodGranularity | str = PeriodGranularity.MONTH,
) -> tuple[ReportingPeriod, ...]:
    """
    ``count`` consecutive periods ending with the one containing ``anchor``.

    Ordered oldest first.
    """
    if isinstance(count, bool) or not isinstance(count, int) or count < 1:
        raise InvalidPeriodError(f"period count must be a positive integer, got {count!r}")
    current = period_containing(anchor, granularity)
    periods = [current]
    for _ in range(count - 1):
        current = previous_period(current)
        periods.append(current)
    periods.reverse()
    return tuple(periods)


def transaction_date(transaction: Transaction) -> date:
    """Posting date, required for any period-based grouping."""
    posted_on = transaction.posted_on
    if posted_on is None:
        raise MissingTransactionDateError(transaction.id)
    return posted_on


def filter_transactions(
    transactions: Iterable[Transaction],
    period: ReportingPeriod,
) -> list[Transaction]:
    """Transactions posted within ``period``."""
    return [tx for tx in transactions if period.contains(transaction_date(tx))]
