"""Run driver — orchestrates a full apply or destroy of one scope."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from .context import RunPhase
from .resource import Registry
from .scope import Scope
from .state import StateStore

logger = logging.getLogger(__name__)

type Declare = Callable[[Scope], Any]


def run(
    scope_id: str,
    run_phase: RunPhase | str,
    declare: Declare | None = None,
    *,
    store: StateStore | None = None,
    registry: Registry | None = None,
) -> dict[str, Any]:
    """Execute one run of a scope and return the live outputs.

    In ``up`` phase, ``declare`` is called with a fresh Scope and must invoke
    resource constructors; the first uncommitted resource aborts the run and
    orphan pruning is skipped. In ``destroy`` phase, ``declare`` is not called
    and every recorded resource is deleted in reverse registration order.
    """
    phase = RunPhase(run_phase)
    scope = Scope(scope_id, phase, store=store, registry=registry)

    if phase is RunPhase.DESTROY:
        logger.info("Destroying scope '%s'", scope_id)
        scope.destroy()
        return {}

    if declare is None:
        raise ValueError(f"Scope '{scope_id}' requires a declare callable to run 'up'")

    logger.info("Applying scope '%s'", scope_id)
    declare(scope)
    outputs = scope.finalize()
    logger.info("Applied %d resource(s) in scope '%s'", len(outputs), scope_id)
    return outputs


def up(
    scope_id: str,
    declare: Declare,
    *,
    store: StateStore | None = None,
    registry: Registry | None = None,
) -> dict[str, Any]:
    """Apply ``declare`` to a scope."""
    return run(scope_id, RunPhase.UP, declare, store=store, registry=registry)


def destroy(
    scope_id: str,
    *,
    store: StateStore | None = None,
    registry: Registry | None = None,
) -> None:
    """Tear down every recorded resource of a scope."""
    run(scope_id, RunPhase.DESTROY, store=store, registry=registry)
