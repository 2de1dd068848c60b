"""
DRE classifier.

Maps each transaction to zero or more buckets by evaluating the rule table
of a ``DREConfig``.  The classifier never drops a matched transaction and
never invents one: every ``Contribution`` traces back to exactly one
transaction and one rule.

With ``allow_overlap`` (the default) a transaction contributes to every
bucket whose rule matches it.  Without it, only the first matching
non-additive rule in table order applies; additive rules (the financial
result) are always evaluated on their own.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from decimal import Decimal

from metalgest_engines.tracer import traced_engine
from metalgest_kernel.domain.dtos import Transaction, TransactionType
from metalgest_kernel.exceptions import ValidationError
from metalgest_kernel.logging_config import get_logger
from metalgest_modules.dre.aggregator import aggregate
from metalgest_modules.dre.config import DEFAULT_RULES, ClassificationRule, DREConfig
from metalgest_modules.dre.models import (
    BucketName,
    BucketResult,
    Contribution,
    SignPolicy,
)

logger = get_logger("modules.dre.classifier")


def coerce_transactions(transactions: Iterable[Transaction | Mapping]) -> list[Transaction]:
    """Validate input records, converting mappings to ``Transaction``."""
    result: list[Transaction] = []
    for item in transactions:
        if isinstance(item, Transaction):
            result.append(item)
        elif isinstance(item, Mapping):
            result.append(Transaction.from_dict(item))
        else:
            raise ValidationError(f"Not a transaction: {item!r}")
    return result


def rule_matches(rule: ClassificationRule, transaction: Transaction) -> bool:
    if rule.transaction_type is not None and transaction.type is not rule.transaction_type:
        return False
    category = transaction.category.casefold()
    if any(term.casefold() in category for term in rule.excludes):
        return False
    if not rule.prefixes and not rule.contains:
        return True
    return any(category.startswith(p.casefold()) for p in rule.prefixes) or any(
        term.casefold() in category for term in rule.contains
    )


def signed_amount(rule: ClassificationRule, transaction: Transaction) -> Decimal:
    if rule.sign is SignPolicy.BY_TYPE and transaction.type is TransactionType.EXPENSE:
        return -transaction.value
    return transaction.value


def classify_transaction(
    transaction: Transaction,
    config: DREConfig | None = None,
) -> tuple[Contribution, ...]:
    """Contributions of a single transaction, in rule order."""
    rules = config.rules if config is not None else DEFAULT_RULES
    allow_overlap = config.allow_overlap if config is not None else True
    contributions = []
    ranked_match = False
    for rule in rules:
        if ranked_match and not allow_overlap and not rule.additive:
            continue
        if not rule_matches(rule, transaction):
            continue
        contributions.append(
            Contribution(
                bucket=rule.bucket,
                amount=signed_amount(rule, transaction),
                category=transaction.category,
                rule=rule.name,
            )
        )
        if not rule.additive:
            ranked_match = True
    return tuple(contributions)


def classify_contributions(
    transactions: Iterable[Transaction],
    config: DREConfig,
) -> list[Contribution]:
    contributions: list[Contribution] = []
    unmatched = 0
    for transaction in transactions:
        matched = classify_transaction(transaction, config)
        if not matched:
            unmatched += 1
        contributions.extend(matched)
    if unmatched:
        logger.debug("dre_transactions_unclassified", extra={"count": unmatched})
    return contributions


@traced_engine("dre.classify", "1.0")
def classify(
    transactions: Iterable[Transaction | Mapping],
    config: DREConfig | None = None,
) -> dict[BucketName, BucketResult]:
    """
    Classify and aggregate transactions into the five DRE buckets.

    Returns a mapping with every ``BucketName`` present.
    """
    config = config or DREConfig.with_defaults()
    return aggregate(classify_contributions(coerce_transactions(transactions), config))
