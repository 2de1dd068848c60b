"""
MetalGest Kernel

Shared infrastructure for the MetalGest reporting core:
- Typed exceptions with machine-readable codes
- Structured JSON logging
- Injectable clock
- Decimal amount handling
- Transaction storage and read-only selectors
"""

__version__ = "0.1.0"
