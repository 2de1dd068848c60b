"""ORM models.  Importing this package registers every table on Base.metadata."""

from metalgest_kernel.models.transaction import LedgerTransaction

__all__ = ["LedgerTransaction"]
