"""
Module: metalgest_kernel.models.transaction
Responsibility: ORM persistence for posted income/expense transactions, the
    raw input of the DRE report.
Architecture position: Kernel > Models.  May import from db/ and domain/ only.

Invariants enforced:
    - value is stored as Numeric(38, 9) and is never negative; direction is
      carried by ``type``.
    - type is one of TransactionType's values.

Failure modes:
    - ValidationError from to_dto() if a row holds an invalid type or a
      negative value (e.g. written by a legacy importer).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from metalgest_kernel.db.base import TrackedBase, UUIDString
from metalgest_kernel.domain.dtos import Transaction, TransactionType


class LedgerTransaction(TrackedBase):
    """
    A posted financial transaction of one company.

    Contract:
        Rows are written by the financial screens (out of scope here) and read
        by TransactionSelector.  to_dto() is the only way rows leave the
        storage layer.
    """

    __tablename__ = "transactions"

    __table_args__ = (
        CheckConstraint("value >= 0", name="ck_transactions_value_non_negative"),
    )

    company_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
        index=True,
    )

    type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )

    value: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    category: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        default="",
    )

    # Column is named "date"; the attribute name avoids shadowing the type.
    transaction_date: Mapped[date] = mapped_column(
        "date",
        Date,
        nullable=False,
        index=True,
    )

    description: Mapped[str | None] = mapped_column(
        String(4000),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<LedgerTransaction {self.transaction_date} {self.type} "
            f"{self.value} {self.category!r}>"
        )

    @classmethod
    def from_dto(
        cls,
        transaction: Transaction,
        *,
        created_by_id: UUID,
        company_id: UUID | None = None,
        description: str | None = None,
    ) -> "LedgerTransaction":
        """Build a row from a validated Transaction DTO."""
        row = cls(
            company_id=company_id,
            type=transaction.type.value,
            value=transaction.value,
            category=transaction.category,
            transaction_date=transaction.posted_on,
            description=description,
            created_by_id=created_by_id,
        )
        if transaction.id is not None and isinstance(transaction.id, UUID):
            row.id = transaction.id
        return row

    def to_dto(self) -> Transaction:
        """Convert to the pure Transaction DTO consumed by the reporting engine."""
        return Transaction(
            type=TransactionType.parse(self.type),
            value=Decimal(self.value),
            category=self.category,
            date=self.transaction_date,
            id=self.id,
        )
