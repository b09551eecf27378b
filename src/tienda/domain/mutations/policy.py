"""Policy knobs for dual-path mutations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum

from tienda.domain.reconciliation import FailureMode

from .attempt import AtomicStatus

__all__ = [
    "FailureMode",
    "FallbackPolicy",
    "MutationPolicy",
    "OperationKind",
    "ProcedureNames",
]


class FallbackPolicy(StrEnum):
    """Which failed atomic attempts may be retried through the non-atomic path."""

    ON_ANY_ERROR = "on_any_error"
    ON_UNAVAILABLE_ONLY = "on_unavailable_only"
    NEVER = "never"

    def allows(self, status: AtomicStatus) -> bool:
        match self:
            case FallbackPolicy.ON_ANY_ERROR:
                return status is not AtomicStatus.SUCCEEDED
            case FallbackPolicy.ON_UNAVAILABLE_ONLY:
                return status is AtomicStatus.UNAVAILABLE
            case FallbackPolicy.NEVER:
                return False


class OperationKind(StrEnum):
    PROMOTION_CREATE = "promotion_create"
    PROMOTION_UPDATE = "promotion_update"
    PRODUCT_FIELDS = "product_fields"
    PRODUCT_STOCK = "product_stock"
    PRODUCT_ACTIVE = "product_active"


@dataclass(frozen=True, slots=True, kw_only=True)
class ProcedureNames:
    promotion_create: str = "create_promotion_transaction"
    promotion_update: str = "update_promotion_transaction"
    product_stock: str = "update_product_stock_transaction"
    product_fields: str = "update_product_transaction"
    product_active: str = "update_product_active_transaction"

    def for_kind(self, kind: OperationKind) -> str:
        return getattr(self, kind.value)


@dataclass(frozen=True, slots=True)
class MutationPolicy:
    """Fallback and failure-handling settings shared by every gateway operation.

    ``overrides`` replaces ``fallback`` for individual operation kinds, e.g. to make
    the atomic procedure mandatory for promotion updates only.
    """

    fallback: FallbackPolicy = FallbackPolicy.ON_ANY_ERROR
    failure_mode: FailureMode = FailureMode.HALT
    procedures: ProcedureNames = field(default_factory=ProcedureNames)
    overrides: Mapping[OperationKind, FallbackPolicy] = field(
        default_factory=dict[OperationKind, FallbackPolicy]
    )

    def fallback_for(self, kind: OperationKind) -> FallbackPolicy:
        return self.overrides.get(kind, self.fallback)
