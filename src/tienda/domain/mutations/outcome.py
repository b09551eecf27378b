"""Result type returned by every dual-path gateway operation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tienda.domain.reconciliation import CompositionDiff


class MutationPath(StrEnum):
    ATOMIC = "atomic"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class MutationOutcome[T]:
    """The canonical entity plus which path produced it.

    ``path`` is for observability only; callers must not branch on it. ``diff`` is
    set when a fallback reconciled promotion line items.
    """

    entity: T
    path: MutationPath
    diff: CompositionDiff | None = None

    @property
    def used_fallback(self) -> bool:
        return self.path is MutationPath.FALLBACK
