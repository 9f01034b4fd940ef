"""Core (UI-agnostic) dashboard logic for the streaming dataset.

This package contains:
- data loading (CSV -> pandas) and record normalization
- filter criteria and the record predicate
- aggregation functions (one derived table per view)
- view handles, the view registry and the dashboard controller
- chart helpers (Altair -> Vega-Lite spec dict)
"""
