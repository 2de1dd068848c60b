"""
Bucket aggregation.

Folds classifier contributions into one ``BucketResult`` per bucket.  Every
bucket is always present in the result; a bucket nothing contributed to has
a zero total and an empty breakdown.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from metalgest_kernel.domain.amounts import ZERO
from metalgest_modules.dre.models import BucketName, BucketResult, Contribution


def aggregate(contributions: Iterable[Contribution]) -> dict[BucketName, BucketResult]:
    """Sum contributions per bucket and per category label."""
    totals: dict[BucketName, Decimal] = {bucket: ZERO for bucket in BucketName}
    breakdowns: dict[BucketName, dict[str, Decimal]] = {
        bucket: {} for bucket in BucketName
    }

    for contribution in contributions:
        totals[contribution.bucket] += contribution.amount
        by_category = breakdowns[contribution.bucket]
        by_category[contribution.category] = (
            by_category.get(contribution.category, ZERO) + contribution.amount
        )

    return {
        bucket: BucketResult(
            name=bucket,
            total=totals[bucket],
            breakdown=dict(sorted(breakdowns[bucket].items())),
        )
        for bucket in BucketName
    }


def split_financial(contributions: Iterable[Contribution]) -> tuple[Decimal, Decimal]:
    """
    Financial income and financial expenses as two magnitudes.

    ``income - expenses`` equals the financialResult bucket total.
    """
    income = ZERO
    expenses = ZERO
    for contribution in contributions:
        if contribution.bucket is not BucketName.FINANCIAL_RESULT:
            continue
        if contribution.amount >= ZERO:
            income += contribution.amount
        else:
            expenses -= contribution.amount
    return income, expenses
