"""Adapters — persistence for the case store.

Contains:
- repositories.py  — CaseRepository over the cases table
- event_log.py     — append-only CaseEventRepository over case_events
"""

__all__: list[str] = []
