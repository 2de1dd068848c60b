"""
Typed Exception Hierarchy for MetalGest.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (RPC handlers, export jobs) must turn engine failures into
responses without parsing message strings. Every error therefore:
  1. Has its own exception class (catch by type, not message)
  2. Carries a CODE class attribute (machine-readable, API-safe)
  3. Stores its context as attributes (not just a message string)

Example:
    try:
        statement = compose(buckets)
    except NegativeAmountError as e:
        return {"error": e.code, "field": e.field, "value": str(e.value)}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MetalGestError (base)
    |
    +-- ValidationError
    |   +-- NonFiniteAmountError
    |   +-- NegativeAmountError
    |   +-- InvalidAmountError
    |   +-- InvalidTransactionTypeError
    |   +-- MissingTransactionDateError
    |   +-- UnknownMetricError
    |   +-- UnknownBucketError
    |
    +-- PeriodError
    |   +-- InvalidPeriodError
    |
    +-- ExportError
        +-- UnsupportedExportFormatError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category    | Code                       | When Raised
------------|----------------------------|------------------------------------
Validation  | NON_FINITE_AMOUNT          | NaN / Infinity reaches the engine
            | NEGATIVE_AMOUNT            | Negative value where disallowed
            | INVALID_AMOUNT             | Value cannot be read as a decimal
            | INVALID_TRANSACTION_TYPE   | Type is not income / expense
            | MISSING_TRANSACTION_DATE   | Period filtering needs a date
            | UNKNOWN_METRIC             | Comparison metric not on Statement
            | UNKNOWN_BUCKET             | Bucket key not a DRE bucket
------------|----------------------------|------------------------------------
Period      | INVALID_PERIOD             | Bad granularity / count / bounds
------------|----------------------------|------------------------------------
Export      | UNSUPPORTED_EXPORT_FORMAT  | Exporter has no writer for format

===============================================================================
NON-ERRORS
===============================================================================

* A period with no transactions yields an all-zero Statement.
* A zero previous value yields a variation of 0, never a division error.
"""

from decimal import Decimal


class MetalGestError(Exception):
    """
    Base exception for all MetalGest errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "METALGEST_ERROR"


# Validation exceptions


class ValidationError(MetalGestError):
    """Malformed input rejected before any computation uses it."""

    code: str = "VALIDATION_ERROR"


class NonFiniteAmountError(ValidationError):
    """Amount is NaN or Infinity."""

    code: str = "NON_FINITE_AMOUNT"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"Amount for {field} must be finite, got {value!r}")


class NegativeAmountError(ValidationError):
    """Amount is negative where only magnitudes are allowed."""

    code: str = "NEGATIVE_AMOUNT"

    def __init__(self, field: str, value: Decimal):
        self.field = field
        self.value = value
        super().__init__(f"Amount for {field} cannot be negative, got {value}")


class InvalidAmountError(ValidationError):
    """Value cannot be interpreted as a decimal amount."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: object):
        self.field = field
        self.value = value
        super().__init__(f"Invalid amount for {field}: {value!r}")


class InvalidTransactionTypeError(ValidationError):
    """Transaction type is neither income nor expense."""

    code: str = "INVALID_TRANSACTION_TYPE"

    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Invalid transaction type: {value!r}")


class MissingTransactionDateError(ValidationError):
    """A transaction without a date cannot be assigned to a period."""

    code: str = "MISSING_TRANSACTION_DATE"

    def __init__(self, transaction_id: object):
        self.transaction_id = transaction_id
        super().__init__(
            f"Transaction {transaction_id!r} has no date and cannot be "
            "assigned to a reporting period"
        )


class UnknownMetricError(ValidationError):
    """Requested metric is not a Statement field."""

    code: str = "UNKNOWN_METRIC"

    def __init__(self, metric: str):
        self.metric = metric
        super().__init__(f"Unknown statement metric: {metric}")


class UnknownBucketError(ValidationError):
    """Bucket key does not name a DRE bucket."""

    code: str = "UNKNOWN_BUCKET"

    def __init__(self, bucket: object):
        self.bucket = bucket
        super().__init__(f"Unknown DRE bucket: {bucket!r}")


# Period exceptions


class PeriodError(MetalGestError):
    """Base exception for reporting period errors."""

    code: str = "PERIOD_ERROR"


class InvalidPeriodError(PeriodError):
    """Period parameters are not usable (bad granularity, count, bounds)."""

    code: str = "INVALID_PERIOD"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid reporting period: {reason}")


# Export exceptions


class ExportError(MetalGestError):
    """Base exception for report export errors."""

    code: str = "EXPORT_ERROR"


class UnsupportedExportFormatError(ExportError):
    """No writer exists for the requested export format."""

    code: str = "UNSUPPORTED_EXPORT_FORMAT"

    def __init__(self, export_format: object):
        self.export_format = export_format
        super().__init__(f"Unsupported export format: {export_format!r}")
