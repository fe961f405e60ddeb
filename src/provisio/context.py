"""Execution context handed to resource handlers."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from .errors import InvalidContextUseError

if TYPE_CHECKING:
    from .scope import Scope
    from .state import StateRecord

logger = logging.getLogger(__name__)


class Phase(StrEnum):
    """The action a single resource invocation must perform."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class RunPhase(StrEnum):
    """The overall mode of a run."""

    UP = "up"
    DESTROY = "destroy"


def select_phase(run_phase: RunPhase | str, record: StateRecord | None) -> Phase:
    """Derive the invocation phase from the run phase and the prior record."""
    if RunPhase(run_phase) is RunPhase.DESTROY:
        return Phase.DELETE
    if record is None:
        return Phase.CREATE
    return Phase.UPDATE


class Context[O]:
    """Per-invocation state; exposes the prior output and the two terminal actions."""

    def __init__(
        self,
        scope: Scope,
        resource_id: str,
        resource_type: str,
        phase: Phase,
        props: Any,
        *,
        output: O | None = None,
        previous_props: Any = None,
        changed: bool = True,
    ) -> None:
        self.scope = scope
        self.id = resource_id
        self.type = resource_type
        self.phase = phase
        self.props = props
        self.output = output
        self.previous_props = previous_props
        self.changed = changed
        self._result: Phase | None = None
        self._committed: O | None = None

    @property
    def scope_id(self) -> str:
        return self.scope.scope_id

    @property
    def done(self) -> bool:
        """A terminal action has been called."""
        return self._result is not None

    @property
    def committed(self) -> O | None:
        return self._committed

    def _check_terminal(self, action: str) -> None:
        if self._result is not None:
            raise InvalidContextUseError(
                f"{action}() called after {self._result.value} already completed for '{self.id}'"
            )

    def commit(self, output: O) -> O:
        """Persist the new output for this resource and return it."""
        self._check_terminal("commit")
        if self.phase is Phase.DELETE:
            raise InvalidContextUseError(f"commit() is not valid in delete phase for '{self.id}'")

        self.scope._store_output(self, output)
        self._result = self.phase
        self._committed = output
        return output

    def confirm_destroyed(self) -> None:
        """Record that the resource no longer exists."""
        self._check_terminal("confirm_destroyed")
        if self.phase is not Phase.DELETE:
            raise InvalidContextUseError(
                f"confirm_destroyed() is only valid in delete phase, not {self.phase.value} for '{self.id}'"
            )

        self.scope._drop_record(self)
        self._result = Phase.DELETE

    def __repr__(self) -> str:
        return f"Context(scope={self.scope_id!r}, id={self.id!r}, type={self.type!r}, phase={self.phase.value})"
