"""Non-atomic promotion workflows driven through plain row operations.

Used when the atomic procedure path is not taken. The order of store calls is
fixed: header first, then a fresh read of the line items, then quantity updates,
inserts and a single batched delete. Any failing call stops the workflow and
raises ``FallbackStepError``; what happens to already applied steps depends on
the ``FailureMode``.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, NoReturn

from tienda.domain.errors import FallbackStep, FallbackStepError, StoreError
from tienda.domain.ports import Collection, Filter
from tienda.domain.shaping import shape_line_items, shape_promotion, single_row

from .diff import apply_diff, diff_composition
from .journal import FailureMode, ReconciliationReport, StepJournal

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from tienda.domain.model import (
        DesiredComposition,
        Promotion,
        PromotionHeader,
        PromotionLineItem,
    )
    from tienda.domain.ports import CatalogReference, Row, StoreClient

    from .plan import CompositionDiff, LineItemDelete, LineItemInsert

log = getLogger(__name__)

HEADER_COLUMNS = ("name", "price", "active")


@dataclass(frozen=True, slots=True)
class ReconciliationResult:
    promotion: Promotion
    diff: CompositionDiff
    report: ReconciliationReport


class ReconciliationExecutor:
    """Apply promotion header and composition changes one store call at a time."""

    def __init__(
        self,
        store: StoreClient,
        *,
        failure_mode: FailureMode = FailureMode.HALT,
        catalog: CatalogReference | None = None,
    ) -> None:
        self._store = store
        self.failure_mode = failure_mode
        self._catalog = catalog

    def reconcile(
        self,
        promotion_id: int,
        header: PromotionHeader,
        desired: DesiredComposition,
    ) -> ReconciliationResult:
        journal = StepJournal()
        report = ReconciliationReport(promotion_id=promotion_id)
        by_id = [Filter.eq("id", promotion_id)]

        previous: Row | None = None
        if self.failure_mode is FailureMode.COMPENSATE:
            rows = self._run_step(
                FallbackStep.READ_HEADER,
                journal,
                report,
                partial(self._store.select, Collection.PROMOTION, filters=by_id),
            )
            if not rows:
                self._fail(
                    FallbackStep.READ_HEADER, f"promotion {promotion_id} not found", journal, report
                )
            previous = {column: rows[0].get(column) for column in HEADER_COLUMNS}

        rows = self._run_step(
            FallbackStep.UPDATE_HEADER,
            journal,
            report,
            partial(self._store.update, Collection.PROMOTION, header.as_row(), filters=by_id),
        )
        if not rows:
            self._fail(
                FallbackStep.UPDATE_HEADER, f"promotion {promotion_id} not found", journal, report
            )
        header_row = rows[0]
        report.header_applied = True
        journal.record(
            FallbackStep.UPDATE_HEADER,
            f"header of promotion {promotion_id}",
            undo=None if previous is None else partial(self._restore_header, promotion_id, previous),
        )

        existing = self._run_step(
            FallbackStep.READ_LINE_ITEMS,
            journal,
            report,
            partial(self._read_line_items, promotion_id),
        )
        diff = diff_composition(existing, desired)
        report.diff = diff
        report.labels = self._labels(diff.product_ids)
        log.debug("Promotion %s composition diff: %s", promotion_id, diff.describe(report.labels))

        for update in diff.to_update:
            updated = self._run_step(
                FallbackStep.UPDATE_LINE,
                journal,
                report,
                partial(
                    self._store.update,
                    Collection.PROMOTION_LINE_ITEM,
                    {"quantity": update.new_quantity},
                    filters=[Filter.eq("id", update.line_item_id)],
                ),
            )
            if not updated:
                self._fail(
                    FallbackStep.UPDATE_LINE,
                    f"line item {update.line_item_id} of promotion {promotion_id} not found",
                    journal,
                    report,
                )
            report.updated.append(update)
            journal.record(
                FallbackStep.UPDATE_LINE,
                f"quantity of line item {update.line_item_id}",
                undo=partial(self._set_quantity, update.line_item_id, update.old_quantity),
            )

        inserted_rows: list[Row] = []
        for insert in diff.to_insert:
            rows = self._run_step(
                FallbackStep.INSERT_LINE,
                journal,
                report,
                partial(
                    self._store.insert,
                    Collection.PROMOTION_LINE_ITEM,
                    [_line_item_row(promotion_id, insert)],
                ),
            )
            inserted_rows.extend(rows)
            report.inserted.append(insert)
            journal.record(
                FallbackStep.INSERT_LINE,
                f"line item for product {insert.product_id}",
                undo=partial(self._delete_line_items, [row["id"] for row in rows]),
            )

        if diff.to_delete:
            self._run_step(
                FallbackStep.DELETE_LINES,
                journal,
                report,
                partial(
                    self._store.delete,
                    Collection.PROMOTION_LINE_ITEM,
                    filters=[Filter.in_("id", diff.delete_ids)],
                ),
            )
            report.deleted.extend(diff.to_delete)
            journal.record(
                FallbackStep.DELETE_LINES,
                f"{len(diff.to_delete)} line item(s)",
                undo=partial(self._reinsert_line_items, promotion_id, diff.to_delete),
            )

        line_items = apply_diff(existing, diff, inserted=shape_line_items(inserted_rows))
        promotion = shape_promotion(header_row, line_items=line_items)
        return ReconciliationResult(promotion=promotion, diff=diff, report=report)

    def create(self, header: PromotionHeader, desired: DesiredComposition) -> ReconciliationResult:
        journal = StepJournal()
        report = ReconciliationReport()

        header_row = self._run_step(
            FallbackStep.INSERT_HEADER,
            journal,
            report,
            partial(self._insert_header, header),
        )
        promotion_id = header_row.get("id")
        if not isinstance(promotion_id, int):
            self._fail(
                FallbackStep.INSERT_HEADER,
                f"store returned no id for the new promotion: {promotion_id!r}",
                journal,
                report,
            )
        report.promotion_id = promotion_id
        report.header_applied = True
        journal.record(
            FallbackStep.INSERT_HEADER,
            f"promotion {promotion_id}",
            undo=partial(self._delete_promotion, promotion_id),
        )

        diff = diff_composition((), desired)
        report.diff = diff
        report.labels = self._labels(diff.product_ids)

        rows: list[Row] = []
        if diff.to_insert:
            rows = self._run_step(
                FallbackStep.INSERT_LINES,
                journal,
                report,
                partial(
                    self._store.insert,
                    Collection.PROMOTION_LINE_ITEM,
                    [_line_item_row(promotion_id, entry) for entry in diff.to_insert],
                ),
            )
            report.inserted.extend(diff.to_insert)

        promotion = shape_promotion(header_row, line_items=shape_line_items(rows))
        return ReconciliationResult(promotion=promotion, diff=diff, report=report)

    def _run_step[T](
        self,
        step: FallbackStep,
        journal: StepJournal,
        report: ReconciliationReport,
        action: Callable[[], T],
    ) -> T:
        try:
            return action()
        except StoreError as exc:
            self._fail(step, str(exc), journal, report, cause=exc)

    def _fail(
        self,
        step: FallbackStep,
        message: str,
        journal: StepJournal,
        report: ReconciliationReport,
        *,
        cause: StoreError | None = None,
    ) -> NoReturn:
        log.error("Fallback step %s failed: %s", step, message)
        compensated = False
        compensation_errors: list[StoreError] = []
        if self.failure_mode is FailureMode.COMPENSATE and journal.applied:
            compensation_errors = journal.compensate()
            compensated = not compensation_errors
        raise FallbackStepError(
            step,
            message,
            report=report,
            applied=journal.applied,
            compensated=compensated,
            compensation_errors=compensation_errors,
        ) from cause

    def _labels(self, product_ids: tuple[int, ...]) -> Mapping[int, str]:
        if self._catalog is None or not product_ids:
            return {}
        try:
            return self._catalog.labels_for(product_ids)
        except StoreError as exc:
            log.warning("Could not load product labels: %s", exc)
            return {}

    def _insert_header(self, header: PromotionHeader) -> Row:
        rows = self._store.insert(Collection.PROMOTION, [header.as_row()])
        return single_row(rows, what="promotion")

    def _read_line_items(self, promotion_id: int) -> tuple[PromotionLineItem, ...]:
        rows = self._store.select(
            Collection.PROMOTION_LINE_ITEM,
            filters=[Filter.eq("promotion_id", promotion_id)],
            order_by="id",
        )
        return shape_line_items(rows)

    def _restore_header(self, promotion_id: int, previous: Row) -> None:
        self._store.update(
            Collection.PROMOTION, previous, filters=[Filter.eq("id", promotion_id)]
        )

    def _set_quantity(self, line_item_id: int, quantity: int) -> None:
        self._store.update(
            Collection.PROMOTION_LINE_ITEM,
            {"quantity": quantity},
            filters=[Filter.eq("id", line_item_id)],
        )

    def _delete_line_items(self, line_item_ids: list[object]) -> None:
        self._store.delete(
            Collection.PROMOTION_LINE_ITEM, filters=[Filter.in_("id", line_item_ids)]
        )

    def _reinsert_line_items(
        self, promotion_id: int, deleted: tuple[LineItemDelete, ...]
    ) -> None:
        self._store.insert(
            Collection.PROMOTION_LINE_ITEM,
            [_line_item_row(promotion_id, entry) for entry in deleted],
        )

    def _delete_promotion(self, promotion_id: int) -> None:
        self._store.delete(Collection.PROMOTION, filters=[Filter.eq("id", promotion_id)])


def _line_item_row(promotion_id: int, entry: LineItemInsert | LineItemDelete) -> dict[str, object]:
    return {"promotion_id": promotion_id, "product_id": entry.product_id, "quantity": entry.quantity}
