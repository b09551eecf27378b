"""Promotion composition reconciliation.

Flow for a non-atomic promotion update:
1) update the header row
2) read the persisted line items
3) diff them against the desired composition
4) apply quantity updates, inserts and one batched delete
"""

from __future__ import annotations

from .diff import apply_diff, diff_composition
from .executor import ReconciliationExecutor, ReconciliationResult
from .journal import AppliedStep, FailureMode, ReconciliationReport, StepJournal
from .plan import CompositionDiff, LineItemDelete, LineItemInsert, LineItemUpdate

__all__ = [
    "AppliedStep",
    "CompositionDiff",
    "FailureMode",
    "LineItemDelete",
    "LineItemInsert",
    "LineItemUpdate",
    "ReconciliationExecutor",
    "ReconciliationReport",
    "ReconciliationResult",
    "StepJournal",
    "apply_diff",
    "diff_composition",
]
