"""Core domain for caseflow — workflow table, snapshots, and the lifecycle engine.

Contains:
- workflow.py  — CaseState, CaseEventType, and the legal transition table
- models.py    — Case and CaseEvent ORM models
- snapshot.py  — CaseSnapshot and diff_rows() for before/after rendering
- progress.py  — task-list progress derived from a case
- services.py  — CaseLifecycleService, the only code that mutates cases
"""

__all__: list[str] = []
