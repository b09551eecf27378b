"""Dual-path (atomic procedure, then non-atomic fallback) mutations."""

from __future__ import annotations

from .attempt import AtomicAttempt, AtomicStatus, attempt_procedure
from .gateway import TransactionalMutationGateway
from .outcome import MutationOutcome, MutationPath
from .policy import FailureMode, FallbackPolicy, MutationPolicy, OperationKind, ProcedureNames
from .products import update_product_row, validate_product_changes, validate_stock
from .strategy import DualPathMutation

__all__ = [
    "AtomicAttempt",
    "AtomicStatus",
    "DualPathMutation",
    "FailureMode",
    "FallbackPolicy",
    "MutationOutcome",
    "MutationPath",
    "MutationPolicy",
    "OperationKind",
    "ProcedureNames",
    "TransactionalMutationGateway",
    "attempt_procedure",
    "update_product_row",
    "validate_product_changes",
    "validate_stock",
]
