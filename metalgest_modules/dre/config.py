"""
DRE Configuration Schema.

Holds the declarative classification rule table and the report options
(currency, entity name, variation rounding, series length, cache TTL).

Classification is driven entirely by ``DREConfig.rules``: an ordered tuple
of ``ClassificationRule``.  Category matching is case-insensitive.  The
default table reproduces the MetalGest category conventions:

    rule                bucket              match
    ------------------  ------------------  ----------------------------------
    gross_revenue       grossRevenue        income, category without "imposto"
    taxes               taxes               category contains "imposto"
    costs               costs               category starts "cmv" / "custo"
    operating_expenses  operatingExpenses   category starts "despesa"
    financial_result    financialResult     category contains "financeira",
                                            signed by transaction type,
                                            additive (always evaluated)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Self

import yaml

from metalgest_kernel.domain.dtos import TransactionType
from metalgest_kernel.exceptions import MetalGestError
from metalgest_kernel.logging_config import get_logger
from metalgest_modules.dre.models import (
    HEADLINE_METRICS,
    BucketName,
    SignPolicy,
    normalize_metric,
)

logger = get_logger("modules.dre.config")


def _as_tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class ClassificationRule:
    """
    One row of the classification table.

    A transaction matches when:
      * ``transaction_type`` is None or equals the transaction's type, and
      * its category contains none of ``excludes``, and
      * its category starts with one of ``prefixes`` or contains one of
        ``contains`` (a rule with neither matches every category).

    An ``additive`` rule is evaluated on every transaction even when
    ``DREConfig.allow_overlap`` is False; first-match-wins only ranks the
    non-additive rules.
    """

    name: str
    bucket: BucketName
    transaction_type: TransactionType | None = None
    prefixes: tuple[str, ...] = ()
    contains: tuple[str, ...] = ()
    excludes: tuple[str, ...] = ()
    sign: SignPolicy = SignPolicy.POSITIVE
    additive: bool = False

    def __post_init__(self):
        if not self.name:
            raise ValueError("rule name cannot be empty")
        object.__setattr__(self, "bucket", BucketName.parse(self.bucket))
        if self.transaction_type is not None:
            object.__setattr__(
                self, "transaction_type", TransactionType.parse(self.transaction_type)
            )
        object.__setattr__(self, "sign", SignPolicy(self.sign))
        for attr in ("prefixes", "contains", "excludes"):
            object.__setattr__(self, attr, _as_tuple(getattr(self, attr)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            name=data["name"],
            bucket=data["bucket"],
            transaction_type=data.get("transaction_type"),
            prefixes=data.get("prefixes"),
            contains=data.get("contains"),
            excludes=data.get("excludes"),
            sign=data.get("sign", SignPolicy.POSITIVE.value),
            additive=bool(data.get("additive", False)),
        )


DEFAULT_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule(
        name="gross_revenue",
        bucket=BucketName.GROSS_REVENUE,
        transaction_type=TransactionType.INCOME,
        excludes=("imposto",),
    ),
    ClassificationRule(
        name="taxes",
        bucket=BucketName.TAXES,
        contains=("imposto",),
    ),
    ClassificationRule(
        name="costs",
        bucket=BucketName.COSTS,
        prefixes=("cmv", "custo"),
    ),
    ClassificationRule(
        name="operating_expenses",
        bucket=BucketName.OPERATING_EXPENSES,
        prefixes=("despesa",),
    ),
    ClassificationRule(
        name="financial_result",
        bucket=BucketName.FINANCIAL_RESULT,
        contains=("financeira",),
        sign=SignPolicy.BY_TYPE,
        additive=True,
    ),
)


@dataclass
class DREConfig:
    """
    Configuration schema for the DRE module.

    ``allow_overlap`` keeps the MetalGest behaviour where one transaction
    may land in several buckets (e.g. "Despesa Financeira" is both an
    operating expense and a financial expense).  Set it to False for
    first-match-wins in rule order among the non-additive rules; the
    additive financial rule still applies on its own.

    The default ``gross_revenue`` rule skips income categorised as
    "imposto", so tax-labelled income counts in taxes only.  Earlier
    MetalGest releases counted it in gross revenue as well.
    """

    rules: tuple[ClassificationRule, ...] = DEFAULT_RULES
    allow_overlap: bool = True

    # Report presentation
    currency: str = "BRL"
    entity_name: str = "MetalGest"

    # Comparisons
    variation_places: int = 1
    headline_metrics: tuple[str, ...] = HEADLINE_METRICS

    # Historical series length, in periods
    series_periods: int = 12

    cache_ttl_seconds: float = 300

    def __post_init__(self):
        self.rules = tuple(self.rules)
        if not self.rules:
            raise ValueError("at least one classification rule is required")
        names = [rule.name for rule in self.rules]
        if len(set(names)) != len(names):
            raise ValueError("classification rule names must be unique")
        if len(self.currency) != 3:
            raise ValueError("currency must be a 3-letter ISO 4217 code")
        if self.variation_places < 0:
            raise ValueError("variation_places cannot be negative")
        if self.series_periods < 1:
            raise ValueError("series_periods must be at least 1")
        if self.cache_ttl_seconds <= 0:
            raise ValueError("cache_ttl_seconds must be positive")
        try:
            self.headline_metrics = tuple(
                normalize_metric(m) for m in self.headline_metrics
            )
        except MetalGestError as exc:
            raise ValueError(str(exc)) from exc

    @classmethod
    def with_defaults(cls) -> Self:
        """Create config with standard defaults."""
        logger.info("dre_config_created_with_defaults")
        return cls()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Create config from a dictionary (e.g. parsed YAML)."""
        data = dict(data)
        if "rules" in data:
            data["rules"] = tuple(
                rule if isinstance(rule, ClassificationRule)
                else ClassificationRule.from_dict(rule)
                for rule in data["rules"]
            )
        if "headline_metrics" in data:
            data["headline_metrics"] = _as_tuple(data["headline_metrics"])
        logger.info(
            "dre_config_loading_from_dict",
            extra={"keys": sorted(data.keys())},
        )
        return cls(**data)

    @classmethod
    def from_yaml(cls, path: str | Path) -> Self:
        """
        Load config from a YAML file.

        Raises:
            FileNotFoundError: if the file does not exist.
            yaml.YAMLError: if the file contains invalid YAML.
            ValueError / TypeError: if the contents do not form a valid config.
            UnknownBucketError / InvalidTransactionTypeError: bad rule fields.
        """
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"DRE config in {path} must be a mapping")
        return cls.from_dict(data)

    def rule(self, name: str) -> ClassificationRule:
        for rule in self.rules:
            if rule.name == name:
                return rule
        raise KeyError(name)

