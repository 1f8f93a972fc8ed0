"""Core (UI-agnostic) utilization dashboard logic.

This package contains:
- record normalization and department/location parsing
- per-person per-year target resolution (Grist tables or local files)
- filter, aggregate and sort functions over plain record dicts
- view compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
