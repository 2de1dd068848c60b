"""
MetalGest Modules.

Thin orchestration layers over the MetalGest kernel and engines.

Modules:
- DRE: income statement classification, composition, period comparison,
  historical series and spreadsheet export
"""
