"""Two-path execution: atomic procedure first, non-atomic workflow second."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from tienda.domain.errors import AtomicPathRequiredError

from .attempt import attempt_procedure
from .outcome import MutationOutcome, MutationPath

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from tienda.domain.ports import StoreClient
    from tienda.domain.reconciliation import CompositionDiff

    from .policy import FallbackPolicy, OperationKind

log = getLogger(__name__)

type Fallback[T] = Callable[[], tuple[T, CompositionDiff | None]]


@dataclass(frozen=True, slots=True)
class DualPathMutation[T]:
    """One mutation expressed both as an atomic procedure call and as a fallback."""

    kind: OperationKind
    procedure: str
    payload: Mapping[str, object] = field(repr=False)
    shape: Callable[[object], T] = field(repr=False)
    fallback: Fallback[T] = field(repr=False)

    def run(self, store: StoreClient, policy: FallbackPolicy) -> MutationOutcome[T]:
        attempt = attempt_procedure(store, self.procedure, self.payload)
        if attempt.succeeded:
            return MutationOutcome(self.shape(attempt.result), MutationPath.ATOMIC)

        if not policy.allows(attempt.status):
            raise AtomicPathRequiredError(
                self.kind.value, self.procedure, attempt.status.value
            ) from attempt.error

        log.info(
            "Atomic %s via %s %s (%s); running fallback",
            self.kind,
            self.procedure,
            attempt.status,
            attempt.error,
        )
        entity, diff = self.fallback()
        return MutationOutcome(entity, MutationPath.FALLBACK, diff)
