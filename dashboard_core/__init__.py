"""Core (UI-agnostic) dashboard logic.

This package contains:
- the aggregate view-model builder (group, rank, label, percentage)
- numeric parsing and display formatting
- page compute functions (JSON-serializable payloads)
- chart helpers (Altair -> Vega-Lite spec dict)
- the backend API client and settings
"""
