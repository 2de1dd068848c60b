"""
DRE Reporting Module (``metalgest_modules.dre``).

Responsibility
--------------
Builds the DRE (Demonstrativo de Resultado do Exercício, an income
statement) from posted income/expense transactions: classifies each
transaction into buckets by category, aggregates bucket totals, composes
the nine-line statement, compares periods and builds historical series.

Architecture position
---------------------
**Modules layer** -- read-only.  Statement generation is implemented as
pure functions (``classifier``, ``aggregator``, ``statements``,
``comparison``); ``DREService`` is the only part that touches the database.

Invariants enforced
-------------------
* Decimal arithmetic end to end.
* Every statement satisfies the four subtotal identities.
* A period without transactions yields an all-zero statement.
"""

from metalgest_modules.dre.aggregator import aggregate, split_financial
from metalgest_modules.dre.classifier import classify, classify_transaction
from metalgest_modules.dre.comparison import build_comparative, build_series, compare
from metalgest_modules.dre.config import DEFAULT_RULES, ClassificationRule, DREConfig
from metalgest_modules.dre.export import (
    ExportFormat,
    export,
    statement_rows,
    to_csv,
    to_xlsx,
)
from metalgest_modules.dre.models import (
    HEADLINE_METRICS,
    BucketName,
    BucketResult,
    Comparative,
    Contribution,
    DREReport,
    PeriodGranularity,
    ReportingPeriod,
    ReportMetadata,
    SignPolicy,
    Statement,
    StatementSeries,
    Transaction,
    TransactionType,
)
from metalgest_modules.dre.periods import (
    period_containing,
    previous_period,
    trailing_periods,
)
from metalgest_modules.dre.service import DREService
from metalgest_modules.dre.statements import (
    build_report,
    build_statement,
    compose,
    render_to_dict,
)

__all__ = [
    "DEFAULT_RULES",
    "HEADLINE_METRICS",
    "BucketName",
    "BucketResult",
    "ClassificationRule",
    "Comparative",
    "Contribution",
    "DREConfig",
    "DREReport",
    "DREService",
    "ExportFormat",
    "PeriodGranularity",
    "ReportMetadata",
    "ReportingPeriod",
    "SignPolicy",
    "Statement",
    "StatementSeries",
    "Transaction",
    "TransactionType",
    "aggregate",
    "build_comparative",
    "build_report",
    "build_series",
    "build_statement",
    "classify",
    "classify_transaction",
    "compare",
    "compose",
    "export",
    "period_containing",
    "previous_period",
    "render_to_dict",
    "split_financial",
    "statement_rows",
    "to_csv",
    "to_xlsx",
    "trailing_periods",
]
