"""
Pure domain layer.

Value helpers with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

The clock is the one sanctioned time boundary and is always injected.
"""

from metalgest_kernel.domain.amounts import (
    ZERO,
    require_finite,
    require_non_negative,
    to_decimal,
)
from metalgest_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from metalgest_kernel.domain.dtos import Transaction, TransactionType

__all__ = [
    "ZERO",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Transaction",
    "TransactionType",
    "require_finite",
    "require_non_negative",
    "to_decimal",
]
