"""Core ledger logic.

Modules:
- models: Student, VisitEvent and their embedded records
- merge: folds a visit's curriculum updates into a student
- session_cache: in-memory snapshot of the store
- ledger: service combining store, merge and cache
- reports: aggregate statistics
"""

__all__ = [
    "models",
    "merge",
    "session_cache",
    "ledger",
    "reports",
]
