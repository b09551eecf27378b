"""Fallback and failure-handling settings for dual-path mutations."""

from __future__ import annotations

from tienda.domain.mutations.policy import FailureMode, FallbackPolicy, MutationPolicy

from .env import env_choice


def get_mutation_policy() -> MutationPolicy:
    return MutationPolicy(
        fallback=env_choice("TIENDA_FALLBACK_POLICY", FallbackPolicy, FallbackPolicy.ON_ANY_ERROR),
        failure_mode=env_choice("TIENDA_FAILURE_MODE", FailureMode, FailureMode.HALT),
    )
