"""Core (UI-agnostic) lab records logic.

This package contains:
- CSV ingestion (parser, header aliases, record ids)
- filter normalization and record queries
- aggregates and page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
"""
