"""
metalgest_engines.variance -- Period-over-period variance calculations.

Responsibility:
    Calculate the absolute and percentage change of a metric between a
    current and a previous period, rounded the way the DRE screens display
    it (one decimal place, half-up).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumed by metalgest_modules.dre.comparison.

Invariants enforced:
    - Identical inputs produce identical outputs; no clock access.
    - Division-by-zero safe: the percentage is Decimal("0") when the
      previous value is zero.
    - Decimal arithmetic only; operands pass through to_decimal.

Failure modes:
    - NonFiniteAmountError / InvalidAmountError when an operand is not a
      finite number.

Usage:
    from metalgest_engines.variance import VarianceCalculator

    calculator = VarianceCalculator()
    result = calculator.variance("net_result", Decimal("1200"), Decimal("1000"))
    result.variance_percent  # Decimal("20.0")
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal, localcontext

from metalgest_kernel.db.types import ROUNDING_PRECISION, round_money
from metalgest_kernel.domain.amounts import ZERO, to_decimal
from metalgest_kernel.logging_config import get_logger

logger = get_logger("engines.variance")

HUNDRED = Decimal("100")
DEFAULT_PERCENT_PLACES = 1


def percent_change(
    current: Decimal,
    previous: Decimal,
    places: int = DEFAULT_PERCENT_PLACES,
) -> Decimal:
    """
    ``(current - previous) / previous * 100`` rounded to ``places`` decimals.

    Returns ``Decimal("0")`` when ``previous`` is zero.  A negative
    ``previous`` is used as-is, so a loss shrinking from -100 to -50 reads
    as -50.0.
    """
    current = to_decimal(current, "current")
    previous = to_decimal(previous, "previous")
    if previous == ZERO:
        return ZERO
    with localcontext() as ctx:
        ctx.prec = ROUNDING_PRECISION
        ratio = (current - previous) / previous * HUNDRED
    return round_money(ratio, places)


@dataclass(frozen=True)
class VarianceResult:
    """Change of one metric between two periods."""

    metric: str
    current: Decimal
    previous: Decimal
    variance: Decimal
    variance_percent: Decimal

    @property
    def is_increase(self) -> bool:
        return self.variance > ZERO


class VarianceCalculator:
    """
    Pure calculator for period-over-period variances.

    Contract:
        No I/O, no database access, fully deterministic.
    Guarantees:
        - ``variance`` = current - previous (unrounded).
        - ``variance_percent`` follows ``percent_change``.
    """

    def __init__(self, places: int = DEFAULT_PERCENT_PLACES):
        if places < 0:
            raise ValueError("places cannot be negative")
        self._places = places

    def variance(
        self,
        metric: str,
        current: Decimal,
        previous: Decimal,
    ) -> VarianceResult:
        current = to_decimal(current, metric)
        previous = to_decimal(previous, metric)
        return VarianceResult(
            metric=metric,
            current=current,
            previous=previous,
            variance=current - previous,
            variance_percent=percent_change(current, previous, self._places),
        )

    def compare(
        self,
        current: Mapping[str, Decimal],
        previous: Mapping[str, Decimal],
        metrics: Iterable[str],
    ) -> dict[str, VarianceResult]:
        """Variance for each metric, in the order given."""
        results = {
            metric: self.variance(metric, current[metric], previous[metric])
            for metric in metrics
        }
        logger.debug(
            "variances_calculated",
            extra={
                "metrics": list(results),
                "percentages": {m: r.variance_percent for m, r in results.items()},
            },
        )
        return results
