"""Error taxonomy for the reconciliation engine."""

from __future__ import annotations


class ProvisioError(Exception):
    """Base class for all engine errors."""


class DuplicateTypeError(ProvisioError, ValueError):
    """A handler is already registered for this resource type."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Duplicate resource type: '{type_name}'")
        self.type_name = type_name


class DuplicateIdError(ProvisioError, ValueError):
    """A resource id was declared twice in the same scope."""

    def __init__(self, scope_id: str, resource_id: str) -> None:
        super().__init__(f"Duplicate resource id in scope '{scope_id}': '{resource_id}'")
        self.scope_id = scope_id
        self.resource_id = resource_id


class InvalidContextUseError(ProvisioError, RuntimeError):
    """A terminal action was used in the wrong phase, or more than once."""


class UnknownTypeError(ProvisioError, KeyError):
    """No handler is registered for a resource type."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Unknown resource type: '{type_name}'")
        self.type_name = type_name

    def __str__(self) -> str:
        return self.args[0]


class ScopeError(ProvisioError, RuntimeError):
    """A scope was used after it was finalized."""


class HandlerFailure(ProvisioError):
    """A handler raised before calling a terminal action.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, resource_id: str, resource_type: str, phase: str) -> None:
        super().__init__(f"Failed to {phase} {resource_type} '{resource_id}'")
        self.resource_id = resource_id
        self.resource_type = resource_type
        self.phase = phase


class DestroyError(ProvisioError):
    """One or more resources failed to delete during a sweep."""

    def __init__(self, failures: list[HandlerFailure]) -> None:
        ids = ", ".join(f"'{f.resource_id}'" for f in failures)
        super().__init__(f"Failed to delete {len(failures)} resource(s): {ids}")
        self.failures = failures

    @property
    def resource_ids(self) -> list[str]:
        return [f.resource_id for f in self.failures]
