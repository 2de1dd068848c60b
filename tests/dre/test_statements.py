"""
Pure function tests for statements.py.

NO database, NO I/O.  Tests aggregation, composition, the full report and
dict rendering with synthetic transactions.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from metalgest_kernel.domain.dtos import Transaction, TransactionType
from metalgest_kernel.exceptions import (
    InvalidAmountError,
    NegativeAmountError,
    NonFiniteAmountError,
    UnknownBucketError,
    ValidationError,
)
from metalgest_modules.dre.aggregator import aggregate, split_financial
from metalgest_modules.dre.classifier import classify, classify_transaction
from metalgest_modules.dre.config import DREConfig
from metalgest_modules.dre.models import (
    BucketName,
    BucketResult,
    Contribution,
    ReportMetadata,
    Statement,
)
from metalgest_modules.dre.periods import period_containing
from metalgest_modules.dre.statements import (
    build_report,
    build_statement,
    compose,
    render_to_dict,
)

# =========================================================================
# Fixtures / helpers
# =========================================================================


def _income(value, category="Venda", posted_on: date | None = None) -> Transaction:
    return Transaction(
        type=TransactionType.INCOME, value=Decimal(str(value)), category=category, date=posted_on
    )


def _expense(value, category, posted_on: date | None = None) -> Transaction:
    return Transaction(
        type=TransactionType.EXPENSE, value=Decimal(str(value)), category=category, date=posted_on
    )


def _scenario() -> list[Transaction]:
    """The reference MetalGest month used across the DRE tests."""
    return [
        _income(10000, "Venda"),
        _income(1000, "Imposto sobre Venda"),
        _expense(3000, "CMV Material"),
        _expense(2000, "Despesa Administrativa"),
        _expense(500, "Despesa Financeira"),
    ]


# =========================================================================
# Aggregation
# =========================================================================


class TestAggregate:
    def test_empty_contributions_yield_all_buckets(self):
        buckets = aggregate([])
        assert list(buckets) == list(BucketName)
        assert all(r.total == Decimal("0") for r in buckets.values())

    def test_sums_per_bucket_and_category(self):
        contributions = [
            Contribution(BucketName.COSTS, Decimal("10.50"), "CMV", "costs"),
            Contribution(BucketName.COSTS, Decimal("4.50"), "CMV", "costs"),
            Contribution(BucketName.COSTS, Decimal("1"), "Custo frete", "costs"),
        ]
        costs = aggregate(contributions)[BucketName.COSTS]
        assert costs.total == Decimal("16.00")
        assert costs.breakdown == {"CMV": Decimal("15.00"), "Custo frete": Decimal("1")}

    def test_split_financial(self):
        contributions = [
            Contribution(BucketName.FINANCIAL_RESULT, Decimal("80"), "Receita Financeira", "f"),
            Contribution(BucketName.FINANCIAL_RESULT, Decimal("-30"), "Despesa Financeira", "f"),
            Contribution(BucketName.FINANCIAL_RESULT, Decimal("-20"), "Tarifa financeira", "f"),
            Contribution(BucketName.COSTS, Decimal("99"), "CMV", "costs"),
        ]
        assert split_financial(contributions) == (Decimal("80"), Decimal("50"))


# =========================================================================
# Composition
# =========================================================================


class TestCompose:
    def test_derives_subtotals(self):
        statement = compose({
            BucketName.GROSS_REVENUE: Decimal("1000"),
            BucketName.TAXES: Decimal("100"),
            BucketName.COSTS: Decimal("300"),
            BucketName.OPERATING_EXPENSES: Decimal("200"),
            BucketName.FINANCIAL_RESULT: Decimal("-50"),
        })
        assert statement.net_revenue == Decimal("900")
        assert statement.gross_profit == Decimal("600")
        assert statement.operating_result == Decimal("400")
        assert statement.net_result == Decimal("350")
        assert statement.is_consistent()

    def test_accepts_bucket_results_and_string_keys(self):
        statement = compose({
            "grossRevenue": BucketResult(BucketName.GROSS_REVENUE, Decimal("10")),
            "costs": "4",
        })
        assert statement.gross_profit == Decimal("6")

    def test_missing_buckets_are_zero(self):
        assert compose({}) == Statement.zero()

    def test_negative_financial_result_allowed(self):
        statement = compose({BucketName.FINANCIAL_RESULT: Decimal("-10")})
        assert statement.net_result == Decimal("-10")
        assert statement.is_loss

    def test_metric_accepts_camel_case(self):
        statement = compose({BucketName.GROSS_REVENUE: "100", BucketName.TAXES: "10"})
        assert statement.metric("netRevenue") == Decimal("90")
        assert statement.metric("net_revenue") == Decimal("90")

    def test_subtotals_may_go_negative(self):
        statement = compose({BucketName.GROSS_REVENUE: "100", BucketName.COSTS: "250"})
        assert statement.gross_profit == Decimal("-150")

    @pytest.mark.parametrize(
        "bucket",
        [
            BucketName.GROSS_REVENUE,
            BucketName.TAXES,
            BucketName.COSTS,
            BucketName.OPERATING_EXPENSES,
        ],
    )
    def test_rejects_negative_magnitudes(self, bucket):
        with pytest.raises(NegativeAmountError) as exc_info:
            compose({bucket: Decimal("-1")})
        assert exc_info.value.field == bucket.value
        assert exc_info.value.code == "NEGATIVE_AMOUNT"

    @pytest.mark.parametrize("value", [Decimal("NaN"), Decimal("Infinity"), float("inf"), "-Infinity"])
    def test_rejects_non_finite(self, value):
        with pytest.raises(NonFiniteAmountError):
            compose({BucketName.FINANCIAL_RESULT: value})

    def test_rejects_garbage_amount(self):
        with pytest.raises(InvalidAmountError):
            compose({BucketName.COSTS: "abc"})

    def test_validation_errors_share_base(self):
        with pytest.raises(ValidationError):
            compose({BucketName.TAXES: Decimal("-5")})

    def test_rejects_unknown_bucket(self):
        with pytest.raises(UnknownBucketError):
            compose({"ebitda": Decimal("1")})


# =========================================================================
# build_statement
# =========================================================================


class TestBuildStatement:
    def test_empty_input_is_all_zero(self):
        statement = build_statement([])
        assert statement == Statement.zero()
        assert all(v == Decimal("0") for v in statement.as_dict().values())

    def test_reference_scenario(self):
        statement = build_statement(_scenario())
        assert statement == Statement(
            gross_revenue=Decimal("10000"),
            taxes=Decimal("1000"),
            net_revenue=Decimal("9000"),
            costs=Decimal("3000"),
            gross_profit=Decimal("6000"),
            operating_expenses=Decimal("2500"),
            operating_result=Decimal("3500"),
            financial_result=Decimal("-500"),
            net_result=Decimal("3000"),
        )

    def test_reference_scenario_without_overlap(self):
        statement = build_statement(_scenario(), DREConfig(allow_overlap=False))
        assert statement == build_statement(_scenario())
        assert statement.operating_expenses == Decimal("2500")
        assert statement.financial_result == Decimal("-500")
        assert statement.net_result == Decimal("3000")
        assert statement.is_consistent()

    def test_financial_income_kept_without_overlap(self):
        statement = build_statement(
            [_income(80, "Receita Financeira")], DREConfig(allow_overlap=False)
        )
        assert statement.gross_revenue == Decimal("80")
        assert statement.financial_result == Decimal("80")
        assert statement.net_result == Decimal("160")

    def test_simple_cases_hit_one_bucket(self):
        revenue = classify_transaction(_income(1, "Venda"))
        opex = classify_transaction(_expense(1, "Despesa Administrativa"))
        assert [c.bucket for c in revenue] == [BucketName.GROSS_REVENUE]
        assert [c.bucket for c in opex] == [BucketName.OPERATING_EXPENSES]

    def test_decimal_accuracy(self):
        statement = build_statement([_income("0.10") for _ in range(1000)])
        assert statement.gross_revenue == Decimal("100.00")
        assert str(statement.gross_revenue) == "100.00"

    def test_float_values_converted_without_drift(self):
        statement = build_statement([
            {"type": "income", "value": 0.1, "category": "Venda"} for _ in range(10)
        ])
        assert statement.gross_revenue == Decimal("1.0")

    def test_same_input_same_output(self):
        assert build_statement(_scenario()) == build_statement(_scenario())

    def test_matches_compose_of_classify(self):
        assert build_statement(_scenario()) == compose(classify(_scenario()))


# =========================================================================
# build_report
# =========================================================================


class TestBuildReport:
    def test_report_contains_breakdowns(self):
        report = build_report(_scenario())
        assert report.statement.net_result == Decimal("3000")
        assert report.breakdown("operatingExpenses") == {
            "Despesa Administrativa": Decimal("2000"),
            "Despesa Financeira": Decimal("500"),
        }
        assert report.breakdown(BucketName.TAXES) == {"Imposto sobre Venda": Decimal("1000")}

    def test_financial_split(self):
        transactions = _scenario() + [_income(120, "Receita Financeira")]
        report = build_report(transactions)
        assert report.financial_income == Decimal("120")
        assert report.financial_expenses == Decimal("500")
        assert report.financial_income - report.financial_expenses == report.statement.financial_result

    def test_default_metadata_from_config(self):
        report = build_report(_scenario(), DREConfig(entity_name="Metalúrgica Silva"))
        assert report.metadata.entity_name == "Metalúrgica Silva"
        assert report.metadata.currency == "BRL"
        assert report.metadata.transaction_count == 5
        assert report.metadata.period is None

    def test_explicit_metadata_kept(self):
        metadata = ReportMetadata(
            entity_name="ACME",
            currency="BRL",
            generated_at="2024-04-01T00:00:00+00:00",
            period=period_containing(date(2024, 3, 15)),
            transaction_count=5,
        )
        assert build_report(_scenario(), metadata=metadata).metadata is metadata

    def test_logs_report_event(self, captured_logs):
        build_report(_scenario())
        events = [r for r in captured_logs() if r["message"] == "dre_report_built"]
        assert len(events) == 1
        assert events[0]["net_result"] == "3000"
        assert events[0]["transaction_count"] == 5


# =========================================================================
# Rendering
# =========================================================================


class TestRenderToDict:
    def test_statement(self):
        rendered = render_to_dict(build_statement(_scenario()))
        assert rendered["net_result"] == "3000"
        assert rendered["financial_result"] == "-500"
        assert list(rendered)[0] == "gross_revenue"

    def test_report(self):
        metadata = ReportMetadata(
            entity_name="ACME",
            currency="BRL",
            period=period_containing(date(2024, 3, 15)),
        )
        rendered = render_to_dict(build_report(_scenario(), metadata=metadata))
        assert rendered["metadata"]["period"]["start"] == "2024-03-01"
        assert rendered["metadata"]["period"]["granularity"] == "month"
        assert rendered["buckets"]["costs"]["breakdown"] == {"CMV Material": "3000"}
        assert rendered["financial_expenses"] == "500"
