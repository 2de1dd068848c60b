"""
Module: metalgest_engines
Responsibility:
    Pure calculation engines shared by the reporting modules.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import metalgest_kernel (domain, exceptions, logging).
    MUST NOT import metalgest_modules.

Invariants enforced:
    - Purity: engines never read the clock; dates are explicit parameters.
    - Decimal-only arithmetic.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from metalgest_engines.variance import VarianceCalculator, percent_change
"""

from metalgest_engines.tracer import traced_engine
from metalgest_engines.variance import (
    VarianceCalculator,
    VarianceResult,
    percent_change,
)

__all__ = [
    "VarianceCalculator",
    "VarianceResult",
    "percent_change",
    "traced_engine",
]
