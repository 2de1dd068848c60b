"""
Pure function tests for the DRE classifier.

NO database, NO I/O.  Covers the default rule table, case-insensitive
matching, overlap handling and the breakdown ordering.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from metalgest_kernel.domain.dtos import Transaction, TransactionType
from metalgest_kernel.exceptions import ValidationError
from metalgest_modules.dre.classifier import (
    classify,
    classify_transaction,
    coerce_transactions,
    rule_matches,
)
from metalgest_modules.dre.config import ClassificationRule, DREConfig
from metalgest_modules.dre.models import BucketName, SignPolicy

# =========================================================================
# Helpers
# =========================================================================


def _income(value: str, category: str) -> Transaction:
    return Transaction(type=TransactionType.INCOME, value=Decimal(value), category=category)


def _expense(value: str, category: str) -> Transaction:
    return Transaction(type=TransactionType.EXPENSE, value=Decimal(value), category=category)


def _buckets_of(transaction: Transaction, config: DREConfig | None = None) -> list[BucketName]:
    return [c.bucket for c in classify_transaction(transaction, config)]


# =========================================================================
# Default rule table
# =========================================================================


class TestDefaultRules:
    def test_income_is_gross_revenue(self):
        assert _buckets_of(_income("100", "Vendas")) == [BucketName.GROSS_REVENUE]

    def test_income_with_unknown_category_is_still_gross_revenue(self):
        assert _buckets_of(_income("100", "Qualquer coisa")) == [BucketName.GROSS_REVENUE]

    def test_income_with_empty_category_is_gross_revenue(self):
        assert _buckets_of(_income("100", "")) == [BucketName.GROSS_REVENUE]

    def test_tax_expense(self):
        assert _buckets_of(_expense("50", "Impostos")) == [BucketName.TAXES]

    def test_tax_labelled_income_goes_to_taxes_only(self):
        assert _buckets_of(_income("50", "Imposto a recuperar")) == [BucketName.TAXES]

    def test_tax_matches_substring(self):
        assert _buckets_of(_expense("50", "ICMS - imposto estadual")) == [BucketName.TAXES]

    @pytest.mark.parametrize("category", ["CMV", "CMV Aço", "Custo de produção", "Custos"])
    def test_costs_prefixes(self, category):
        assert _buckets_of(_expense("10", category)) == [BucketName.COSTS]

    def test_costs_prefix_must_be_at_start(self):
        assert _buckets_of(_expense("10", "Outros custos")) == []

    def test_operating_expense_prefix(self):
        assert _buckets_of(_expense("10", "Despesas Administrativas")) == [
            BucketName.OPERATING_EXPENSES
        ]

    def test_unknown_expense_contributes_nowhere(self):
        assert classify_transaction(_expense("10", "Retirada de sócio")) == ()

    def test_financial_expense_is_negative(self):
        contributions = classify_transaction(_expense("30", "Tarifa financeira"))
        assert [(c.bucket, c.amount) for c in contributions] == [
            (BucketName.FINANCIAL_RESULT, Decimal("-30")),
        ]


class TestCaseInsensitivity:
    @pytest.mark.parametrize("category", ["cmv", "CMV", "Cmv insumos", "CUSTO FIXO"])
    def test_costs_any_case(self, category):
        assert _buckets_of(_expense("1", category)) == [BucketName.COSTS]

    @pytest.mark.parametrize("category", ["IMPOSTOS", "impostos", "Imposto"])
    def test_taxes_any_case(self, category):
        assert _buckets_of(_expense("1", category)) == [BucketName.TAXES]

    def test_financial_any_case(self):
        assert _buckets_of(_expense("1", "JUROS FINANCEIRA")) == [BucketName.FINANCIAL_RESULT]


# =========================================================================
# Overlap
# =========================================================================


class TestOverlap:
    def test_financial_expense_counts_twice_by_default(self):
        contributions = classify_transaction(_expense("500", "Despesa Financeira"))
        assert [(c.bucket, c.amount) for c in contributions] == [
            (BucketName.OPERATING_EXPENSES, Decimal("500")),
            (BucketName.FINANCIAL_RESULT, Decimal("-500")),
        ]

    def test_financial_income_counts_in_revenue_and_financial(self):
        contributions = classify_transaction(_income("80", "Receita Financeira"))
        assert [(c.bucket, c.amount) for c in contributions] == [
            (BucketName.GROSS_REVENUE, Decimal("80")),
            (BucketName.FINANCIAL_RESULT, Decimal("80")),
        ]

    def test_financial_rule_still_applies_without_overlap(self):
        config = DREConfig(allow_overlap=False)
        contributions = classify_transaction(_expense("500", "Despesa Financeira"), config)
        assert [(c.bucket, c.amount) for c in contributions] == [
            (BucketName.OPERATING_EXPENSES, Decimal("500")),
            (BucketName.FINANCIAL_RESULT, Decimal("-500")),
        ]

    def test_financial_income_without_overlap(self):
        config = DREConfig(allow_overlap=False)
        contributions = classify_transaction(_income("80", "Receita Financeira"), config)
        assert [(c.bucket, c.amount) for c in contributions] == [
            (BucketName.GROSS_REVENUE, Decimal("80")),
            (BucketName.FINANCIAL_RESULT, Decimal("80")),
        ]

    def test_first_match_wins_among_ranked_rules(self):
        expense = _expense("40", "Despesa com Imposto")
        assert _buckets_of(expense) == [BucketName.TAXES, BucketName.OPERATING_EXPENSES]
        assert _buckets_of(expense, DREConfig(allow_overlap=False)) == [BucketName.TAXES]

    def test_additive_custom_rule_evaluated_after_ranked_match(self):
        config = DREConfig(
            rules=(
                ClassificationRule(name="costs", bucket=BucketName.COSTS, prefixes=("custo",)),
                ClassificationRule(
                    name="opex", bucket=BucketName.OPERATING_EXPENSES, contains=("despesa",)
                ),
                ClassificationRule(
                    name="juros",
                    bucket=BucketName.FINANCIAL_RESULT,
                    contains=("juros",),
                    sign=SignPolicy.BY_TYPE,
                    additive=True,
                ),
            ),
            allow_overlap=False,
        )
        assert _buckets_of(_expense("1", "Custo Despesa Juros"), config) == [
            BucketName.COSTS,
            BucketName.FINANCIAL_RESULT,
        ]

    def test_contribution_records_rule_and_category(self):
        (contribution,) = classify_transaction(_expense("10", "CMV"))
        assert contribution.rule == "costs"
        assert contribution.category == "CMV"


# =========================================================================
# Custom rules
# =========================================================================


class TestRuleMatching:
    def test_rule_without_terms_matches_everything_of_its_type(self):
        rule = ClassificationRule(
            name="all_expenses",
            bucket=BucketName.OPERATING_EXPENSES,
            transaction_type=TransactionType.EXPENSE,
        )
        assert rule_matches(rule, _expense("1", "Qualquer"))
        assert not rule_matches(rule, _income("1", "Qualquer"))

    def test_excludes_take_precedence(self):
        rule = ClassificationRule(
            name="opex",
            bucket=BucketName.OPERATING_EXPENSES,
            prefixes=("despesa",),
            excludes=("financeira",),
        )
        assert rule_matches(rule, _expense("1", "Despesa com aluguel"))
        assert not rule_matches(rule, _expense("1", "Despesa Financeira"))

    def test_custom_table_replaces_defaults(self):
        config = DREConfig(
            rules=(
                ClassificationRule(
                    name="juros",
                    bucket="financialResult",
                    contains=("juros",),
                    sign=SignPolicy.BY_TYPE,
                ),
            )
        )
        buckets = classify([_expense("40", "Juros bancários"), _income("100", "Vendas")], config)
        assert buckets[BucketName.FINANCIAL_RESULT].total == Decimal("-40")
        assert buckets[BucketName.GROSS_REVENUE].total == Decimal("0")


# =========================================================================
# classify (classification + aggregation)
# =========================================================================


class TestClassify:
    def test_every_bucket_present_for_empty_input(self):
        buckets = classify([])
        assert set(buckets) == set(BucketName)
        for result in buckets.values():
            assert result.total == Decimal("0")
            assert result.breakdown == {}

    def test_breakdown_sorted_by_category(self):
        buckets = classify([
            _expense("10", "Despesas Gerais"),
            _expense("20", "Despesas Administrativas"),
            _expense("5", "Despesas Gerais"),
        ])
        breakdown = buckets[BucketName.OPERATING_EXPENSES].breakdown
        assert list(breakdown) == ["Despesas Administrativas", "Despesas Gerais"]
        assert breakdown["Despesas Gerais"] == Decimal("15")

    def test_breakdown_sums_to_total(self):
        buckets = classify([
            _income("100.10", "Vendas"),
            _income("50.05", "Serviços"),
            _expense("30", "Despesa Financeira"),
            _income("12", "Receita Financeira"),
        ])
        for result in buckets.values():
            assert sum(result.breakdown.values(), Decimal("0")) == result.total

    def test_accepts_mappings(self):
        buckets = classify([
            {"type": "INCOME", "value": "250.00", "category": "Vendas", "date": "2024-03-10"},
        ])
        assert buckets[BucketName.GROSS_REVENUE].total == Decimal("250.00")

    def test_rejects_non_transactions(self):
        with pytest.raises(ValidationError):
            coerce_transactions([42])

    def test_input_is_not_mutated(self):
        transactions = [_income("100", "Vendas"), _expense("10", "CMV")]
        snapshot = list(transactions)
        classify(transactions)
        assert transactions == snapshot

    def test_emits_engine_trace(self, captured_logs):
        classify([_income("1", "Vendas")])
        traces = [r for r in captured_logs() if r["message"] == "METALGEST_ENGINE_TRACE"]
        assert any(t["engine_name"] == "dre.classify" for t in traces)
