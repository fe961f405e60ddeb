"""Scope — the ordered set of resources belonging to one run."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Any

from .context import RunPhase
from .errors import DestroyError, DuplicateIdError, HandlerFailure, ScopeError
from .resource import Registry, default_registry
from .state import MemoryStateStore, StateRecord, StateStore

if TYPE_CHECKING:
    from .context import Context

logger = logging.getLogger(__name__)


class Scope:
    """Registry of resource invocations for a single run.

    Tracks registration order for reverse-order teardown and detects records
    left over from earlier runs that were not declared again (orphans).
    """

    def __init__(
        self,
        scope_id: str,
        run_phase: RunPhase | str = RunPhase.UP,
        *,
        store: StateStore | None = None,
        registry: Registry | None = None,
    ) -> None:
        self.scope_id = scope_id
        self.run_phase = RunPhase(run_phase)
        self.store = store if store is not None else MemoryStateStore()
        self.registry = registry if registry is not None else default_registry()
        self._lock = threading.Lock()
        self._resources: dict[str, str] = {}
        self._outputs: dict[str, Any] = {}
        self._initial = frozenset(r.id for r in self.store.records(scope_id))
        self._closed = False

    @property
    def resources(self) -> list[str]:
        """Resource ids in registration order."""
        with self._lock:
            return list(self._resources)

    @property
    def outputs(self) -> dict[str, Any]:
        """Committed outputs of this run, in registration order."""
        with self._lock:
            return {rid: self._outputs[rid] for rid in self._resources if rid in self._outputs}

    @property
    def closed(self) -> bool:
        return self._closed

    def register(self, resource_id: str, type_name: str) -> None:
        """Append a resource id to this run; each id may appear once."""
        with self._lock:
            if self._closed:
                raise ScopeError(f"Scope '{self.scope_id}' is already finalized")
            if resource_id in self._resources:
                raise DuplicateIdError(self.scope_id, resource_id)
            self._resources[resource_id] = type_name
        logger.debug("Registered %s '%s' in scope '%s'", type_name, resource_id, self.scope_id)

    def _store_output(self, ctx: Context[Any], output: Any) -> None:
        self.store.put(self.scope_id, ctx.id, ctx.type, ctx.props, output, ctx.phase)
        with self._lock:
            self._outputs[ctx.id] = output

    def _drop_record(self, ctx: Context[Any]) -> None:
        self.store.delete(self.scope_id, ctx.id)
        with self._lock:
            self._outputs.pop(ctx.id, None)

    def _close(self) -> None:
        with self._lock:
            if self._closed:
                raise ScopeError(f"Scope '{self.scope_id}' is already finalized")
            self._closed = True

    def orphans(self) -> list[StateRecord]:
        """Records from earlier runs not declared in this one, newest first."""
        declared = set(self.resources)
        return [
            record
            for record in reversed(self.store.records(self.scope_id))
            if record.id in self._initial and record.id not in declared
        ]

    def _sweep(self, records: Iterable[StateRecord]) -> None:
        """Delete each record in turn, continuing past handler failures."""
        failures: list[HandlerFailure] = []
        for record in records:
            try:
                self.registry[record.type].delete(self, record)
            except HandlerFailure as exc:
                logger.warning("%s: %s", exc, exc.__cause__)
                failures.append(exc)
        if failures:
            raise DestroyError(failures)

    def finalize(self) -> dict[str, Any]:
        """Close the run, delete orphaned resources and return the live outputs."""
        self._close()
        if self.run_phase is RunPhase.UP:
            orphans = self.orphans()
            if orphans:
                logger.info("Pruning %d orphaned resource(s) from scope '%s'", len(orphans), self.scope_id)
            else:
                logger.debug("No orphaned resources in scope '%s'", self.scope_id)
            self._sweep(orphans)
        return self.outputs

    def destroy(self) -> None:
        """Delete every recorded resource of the scope, last created first."""
        self._close()
        records = list(reversed(self.store.records(self.scope_id)))
        logger.info("Destroying %d resource(s) in scope '%s'", len(records), self.scope_id)
        self._sweep(records)

    def gather(self, *calls: Callable[[], Any]) -> list[Any]:
        """Run independent resource constructions concurrently.

        Waits for every call to settle, then returns results in argument order
        or raises the first failure in argument order.
        """
        if not calls:
            return []
        with ThreadPoolExecutor(max_workers=len(calls), thread_name_prefix=f"scope-{self.scope_id}") as pool:
            futures = [pool.submit(call) for call in calls]
        return [f.result() for f in futures]

    def __repr__(self) -> str:
        return (
            f"Scope(scope_id={self.scope_id!r}, phase={self.run_phase.value}, "
            f"resources={len(self._resources)})"
        )
