"""Read-only query selectors."""

from metalgest_kernel.selectors.transaction_selector import TransactionSelector

__all__ = ["TransactionSelector"]
