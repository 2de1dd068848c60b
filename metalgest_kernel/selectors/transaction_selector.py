"""
Module: metalgest_kernel.selectors.transaction_selector
Responsibility: Read-only loading of posted transactions for a reporting
    window.  This is the "transaction source" collaborator of the DRE engine:
    it returns a fully loaded list, the engine never queries storage itself.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Half-open window: start <= date < end.
    - Deterministic order: by date, then id.
    - Rows are converted to validated Transaction DTOs before leaving.

Failure modes:
    - InvalidPeriodError if end <= start.
    - ValidationError if a stored row is malformed (see LedgerTransaction.to_dto).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from metalgest_kernel.domain.dtos import Transaction
from metalgest_kernel.exceptions import InvalidPeriodError
from metalgest_kernel.logging_config import get_logger
from metalgest_kernel.models.transaction import LedgerTransaction
from metalgest_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.transaction")


class TransactionSelector(BaseSelector):
    """Selector for posted income/expense transactions."""

    def between(
        self,
        start: date,
        end: date,
        company_id: UUID | None = None,
    ) -> list[Transaction]:
        """
        Load every transaction dated in ``[start, end)``.

        Args:
            start: First day included.
            end: First day excluded.
            company_id: Restrict to one company; None loads all companies.
        """
        if end <= start:
            raise InvalidPeriodError(f"end {end} must be after start {start}")

        query = (
            select(LedgerTransaction)
            .where(LedgerTransaction.transaction_date >= start)
            .where(LedgerTransaction.transaction_date < end)
            .order_by(LedgerTransaction.transaction_date, LedgerTransaction.id)
        )
        if company_id is not None:
            query = query.where(LedgerTransaction.company_id == company_id)

        rows = self.session.execute(query).scalars().all()
        logger.debug(
            "transactions_loaded",
            extra={
                "start": start,
                "end": end,
                "company_id": company_id,
                "count": len(rows),
            },
        )
        return [row.to_dto() for row in rows]

    def count(self, company_id: UUID | None = None) -> int:
        """Number of stored transactions (optionally for one company)."""
        query = select(func.count()).select_from(LedgerTransaction)
        if company_id is not None:
            query = query.where(LedgerTransaction.company_id == company_id)
        return self.session.execute(query).scalar_one()
