"""Error taxonomy shared by the mutation core and its store adapters.

``CallerInputError`` is raised before any store call and never retried.
``StoreError`` and its subclasses are the only exceptions adapters may raise;
the mutation core never handles library exceptions directly.
``FallbackStepError`` is the surfaced failure of a non-atomic workflow.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tienda.domain.reconciliation.journal import AppliedStep, ReconciliationReport


class CallerInputError(ValueError):
    """Raised when caller-supplied input is invalid; no store call has been made."""


class StoreError(RuntimeError):
    """Raised by store adapters when an operation fails."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details


class ProcedureNotFoundError(StoreError):
    """The requested atomic procedure does not exist on the store."""

    def __init__(self, procedure: str, *, code: str | None = None) -> None:
        super().__init__(f"Procedure not found: {procedure}", code=code)
        self.procedure = procedure


class ProcedureRejectedError(StoreError):
    """The atomic procedure ran and refused the payload."""


class StoreUnavailableError(StoreError):
    """The store could not be reached or did not answer in time."""


class MalformedResultError(StoreError):
    """The store answered with a payload that cannot be shaped into an entity."""


class AtomicPathRequiredError(StoreError):
    """The atomic attempt failed and the configured policy forbids a fallback."""

    def __init__(self, operation: str, procedure: str, status: str) -> None:
        super().__init__(
            f"{operation}: atomic procedure {procedure} {status} and fallback is disabled",
            code=status,
        )
        self.operation = operation
        self.procedure = procedure
        self.status = status


class FallbackStep(StrEnum):
    """Individual store calls a non-atomic workflow is made of."""

    INSERT_HEADER = "insert_header"
    READ_HEADER = "read_header"
    UPDATE_HEADER = "update_header"
    READ_LINE_ITEMS = "read_line_items"
    UPDATE_LINE = "update_line"
    INSERT_LINE = "insert_line"
    INSERT_LINES = "insert_lines"
    DELETE_LINES = "delete_lines"
    UPDATE_PRODUCT = "update_product"


class FallbackStepError(RuntimeError):
    """A step of a non-atomic fallback workflow failed.

    Steps that ran before the failure may have been applied. ``report`` lists what
    was and was not written; ``compensated`` tells whether applied steps were rolled
    back afterwards. Callers should ask the user to re-check the entity rather than
    assume total success or total failure.
    """

    def __init__(
        self,
        step: FallbackStep,
        message: str,
        *,
        report: ReconciliationReport | None = None,
        applied: Sequence[AppliedStep] = (),
        compensated: bool = False,
        compensation_errors: Sequence[StoreError] = (),
    ) -> None:
        super().__init__(f"{step.value}: {message}")
        self.step = step
        self.report = report
        self.applied = tuple(applied)
        self.compensated = compensated
        self.compensation_errors = tuple(compensation_errors)

    @property
    def partially_applied(self) -> bool:
        return bool(self.applied) and not self.compensated

    def describe(self) -> str:
        lines = [str(self)]
        if self.report is not None:
            lines.append(self.report.describe())
        if self.compensated:
            lines.append(f"rolled back {len(self.applied)} applied step(s)")
        elif self.applied:
            lines.append(f"{len(self.applied)} step(s) remain applied")
        lines.extend(f"compensation failed: {error}" for error in self.compensation_errors)
        return "\n".join(lines)
