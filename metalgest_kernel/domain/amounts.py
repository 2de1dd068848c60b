"""
Decimal amount handling at the engine boundary.

All monetary values inside the engine are ``Decimal``.  Loosely typed
inputs (JSON numbers, strings, ORM values) are converted here exactly once.
Floats are converted through ``str()`` so the shortest round-trip
representation is used instead of the binary expansion.
"""

from decimal import Decimal, InvalidOperation

from metalgest_kernel.exceptions import (
    InvalidAmountError,
    NegativeAmountError,
    NonFiniteAmountError,
)

ZERO = Decimal("0")


def to_decimal(value: object, field: str = "value") -> Decimal:
    """
    Convert ``value`` to a finite Decimal.

    Raises:
        InvalidAmountError: value is None, a bool, or not numeric.
        NonFiniteAmountError: value is NaN or Infinity.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidAmountError(field, value)
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise InvalidAmountError(field, value) from exc
    else:
        raise InvalidAmountError(field, value)
    return require_finite(result, field)


def require_finite(value: Decimal, field: str) -> Decimal:
    """Reject NaN and Infinity."""
    if not value.is_finite():
        raise NonFiniteAmountError(field, value)
    return value


def require_non_negative(value: Decimal, field: str) -> Decimal:
    """Reject negative magnitudes."""
    if value < ZERO:
        raise NegativeAmountError(field, value)
    return value
