"""
Module: metalgest_kernel.db.types
Responsibility: Precision constants and the sanctioned rounding helper for
    monetary values.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    selectors/ and modules.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats anywhere: all monetary amounts use Decimal with explicit
      precision.  Storage precision is Numeric(38, 9) (see db/base.py).
    - round_money() is the ONLY sanctioned rounding function for financial
      values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

from metalgest_kernel.exceptions import InvalidAmountError

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

# Digits available while rounding.  Covers any Numeric(38, 9) value and the
# ratios derived from it, well past the default 28-digit context.
ROUNDING_PRECISION = 80


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    Postconditions: Returns value quantized with the given rounding mode
        (ROUND_HALF_UP by default).  ``decimal_places=0`` yields an integral
        Decimal.

    Raises:
        InvalidAmountError: the rounded value needs more than
            ROUNDING_PRECISION digits.
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, ROUNDING_PRECISION)
        try:
            return value.quantize(quantum, rounding=rounding)
        except InvalidOperation as exc:
            raise InvalidAmountError("value", value) from exc
