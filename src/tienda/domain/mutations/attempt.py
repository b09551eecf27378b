"""Atomic procedure attempts as typed results.

The gateway never wraps the atomic call in a blanket ``try``; it asks
``attempt_procedure`` for an ``AtomicAttempt`` and lets the configured
``FallbackPolicy`` decide whether the status permits the non-atomic path.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from tienda.domain.errors import (
    ProcedureNotFoundError,
    ProcedureRejectedError,
    StoreError,
)
from tienda.domain.shaping import is_empty_result

if TYPE_CHECKING:
    from collections.abc import Mapping

    from tienda.domain.ports import StoreClient

log = getLogger(__name__)


class AtomicStatus(StrEnum):
    SUCCEEDED = "succeeded"
    UNAVAILABLE = "unavailable"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class AtomicAttempt:
    procedure: str
    status: AtomicStatus
    result: object = None
    error: StoreError | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is AtomicStatus.SUCCEEDED


def attempt_procedure(
    store: StoreClient,
    procedure: str,
    payload: Mapping[str, object],
) -> AtomicAttempt:
    """Invoke ``procedure`` once and classify the outcome.

    ``succeeded`` requires a non-empty answer. A missing procedure is
    ``unavailable``, a business refusal is ``rejected``, and every other store
    failure (including an empty answer) is ``failed``.
    """

    try:
        result = store.invoke(procedure, payload)
    except ProcedureNotFoundError as exc:
        return AtomicAttempt(procedure, AtomicStatus.UNAVAILABLE, error=exc)
    except ProcedureRejectedError as exc:
        return AtomicAttempt(procedure, AtomicStatus.REJECTED, error=exc)
    except StoreError as exc:
        return AtomicAttempt(procedure, AtomicStatus.FAILED, error=exc)

    if is_empty_result(result):
        log.debug("Procedure %s returned an empty result", procedure)
        return AtomicAttempt(
            procedure,
            AtomicStatus.FAILED,
            result=result,
            error=StoreError(f"procedure {procedure} returned no result", code="empty_result"),
        )
    return AtomicAttempt(procedure, AtomicStatus.SUCCEEDED, result=result)
