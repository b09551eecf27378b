"""Step journal and progress report for non-atomic fallback workflows.

Every store write a fallback performs is recorded here together with the action
that reverses it. In ``halt`` mode the journal only feeds the failure report; in
``compensate`` mode the undo actions run newest-first before the error surfaces.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from tienda.domain.errors import StoreError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from tienda.domain.errors import FallbackStep

    from .plan import CompositionDiff, LineItemDelete, LineItemInsert, LineItemUpdate

log = getLogger(__name__)

type UndoAction = Callable[[], object]


class FailureMode(StrEnum):
    """What a failed fallback does with the steps it already applied."""

    HALT = "halt"
    COMPENSATE = "compensate"


@dataclass(frozen=True, slots=True)
class AppliedStep:
    step: FallbackStep
    description: str
    undo: UndoAction | None = field(default=None, compare=False, repr=False)


@dataclass(slots=True)
class StepJournal:
    applied: list[AppliedStep] = field(default_factory=list["AppliedStep"])

    def record(
        self,
        step: FallbackStep,
        description: str,
        undo: UndoAction | None = None,
    ) -> None:
        self.applied.append(AppliedStep(step=step, description=description, undo=undo))

    def compensate(self) -> list[StoreError]:
        """Run undo actions newest-first; return the failures, having attempted all."""

        failures: list[StoreError] = []
        for entry in reversed(self.applied):
            if entry.undo is None:
                continue
            try:
                entry.undo()
            except StoreError as exc:
                log.error("Compensation for %s (%s) failed: %s", entry.step, entry.description, exc)
                failures.append(exc)
            else:
                log.info("Compensated %s: %s", entry.step, entry.description)
        return failures


@dataclass(slots=True)
class ReconciliationReport:
    """Which parts of a promotion a fallback run did and did not write."""

    promotion_id: int | None = None
    header_applied: bool = False
    diff: CompositionDiff | None = None
    updated: list[LineItemUpdate] = field(default_factory=list["LineItemUpdate"])
    inserted: list[LineItemInsert] = field(default_factory=list["LineItemInsert"])
    deleted: list[LineItemDelete] = field(default_factory=list["LineItemDelete"])
    labels: Mapping[int, str] = field(default_factory=dict[int, str])

    @property
    def pending_updates(self) -> tuple[LineItemUpdate, ...]:
        if self.diff is None:
            return ()
        return tuple(entry for entry in self.diff.to_update if entry not in self.updated)

    @property
    def pending_inserts(self) -> tuple[LineItemInsert, ...]:
        if self.diff is None:
            return ()
        return tuple(entry for entry in self.diff.to_insert if entry not in self.inserted)

    @property
    def pending_deletes(self) -> tuple[LineItemDelete, ...]:
        if self.diff is None:
            return ()
        return tuple(entry for entry in self.diff.to_delete if entry not in self.deleted)

    def describe(self) -> str:
        subject = (
            f"promotion #{self.promotion_id}" if self.promotion_id is not None else "promotion"
        )
        lines = [f"{subject}: header {'updated' if self.header_applied else 'not updated'}"]
        if self.diff is None:
            lines.append("line items were not read; composition unchanged")
            return "\n".join(lines)
        lines.extend(f"  updated {self._name(e.product_id)}" for e in self.updated)
        lines.extend(f"  inserted {self._name(e.product_id)}" for e in self.inserted)
        lines.extend(f"  deleted {self._name(e.product_id)}" for e in self.deleted)
        lines.extend(f"  NOT updated {self._name(e.product_id)}" for e in self.pending_updates)
        lines.extend(f"  NOT inserted {self._name(e.product_id)}" for e in self.pending_inserts)
        lines.extend(f"  NOT deleted {self._name(e.product_id)}" for e in self.pending_deletes)
        return "\n".join(lines)

    def _name(self, product_id: int) -> str:
        return self.labels.get(product_id, f"product #{product_id}")
