"""Resource factory — type registry and the constructors host programs call."""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from .context import Context, Phase, select_phase
from .errors import DuplicateTypeError, HandlerFailure, InvalidContextUseError, ProvisioError, UnknownTypeError
from .state import StateRecord, serialize

if TYPE_CHECKING:
    from .scope import Scope

logger = logging.getLogger(__name__)

type Handler[P, O] = Callable[[Context[O], str, P], O]

_VERBS = {
    Phase.CREATE: "Creating",
    Phase.UPDATE: "Updating",
    Phase.DELETE: "Deleting",
}


class Resource[P, O]:
    """A callable constructor for one resource type.

    Calling ``resource(scope, id, props)`` registers ``id`` in the scope, derives
    the phase from the stored record and runs the handler with a fresh Context.
    """

    def __init__(
        self,
        type_name: str,
        handler: Handler[P, O],
        *,
        props: type[BaseModel] | None = None,
        output: type[BaseModel] | None = None,
    ) -> None:
        self.type = type_name
        self.handler = handler
        self.props_type = props
        self.output_type = output
        self.__doc__ = handler.__doc__

    def _coerce(self, model: type[BaseModel] | None, value: Any) -> Any:
        if model is not None and isinstance(value, Mapping):
            return model.model_validate(value)
        # handlers must not reach stored state through a mutable reference
        return copy.deepcopy(value)

    def __call__(
        self,
        scope: Scope,
        resource_id: str,
        props: P | Mapping[str, Any],
        *,
        force: bool = False,
    ) -> O | None:
        """Reconcile one resource instance and return its committed output."""
        props = self._coerce(self.props_type, props)
        scope.register(resource_id, self.type)

        record = scope.store.get(scope.scope_id, resource_id)
        phase = select_phase(scope.run_phase, record)

        if phase is Phase.DELETE:
            if record is None:
                logger.debug("Skipping delete of %s '%s'; not present", self.type, resource_id)
                return None
            scope.registry[record.type].delete(scope, record)
            return None

        if record is not None and record.type != self.type:
            logger.info("Replacing %s '%s' with %s", record.type, resource_id, self.type)
            scope.registry[record.type].delete(scope, record)
            record = None
            phase = Phase.CREATE

        if record is None:
            ctx = Context(scope, resource_id, self.type, phase, props)
        else:
            changed = force or serialize(props) != record.properties
            if not changed:
                logger.debug("%s '%s' is up to date", self.type, resource_id)
            ctx = Context(
                scope,
                resource_id,
                self.type,
                phase,
                props,
                output=self._coerce(self.output_type, record.output),
                previous_props=self._coerce(self.props_type, record.properties),
                changed=changed,
            )

        return self._invoke(ctx)

    def delete(self, scope: Scope, record: StateRecord) -> None:
        """Run the handler in delete phase against a stored record."""
        props = self._coerce(self.props_type, record.properties)
        ctx: Context[O] = Context(
            scope,
            record.id,
            record.type,
            Phase.DELETE,
            props,
            output=self._coerce(self.output_type, record.output),
            previous_props=props,
            changed=False,
        )
        self._invoke(ctx)

    def _invoke(self, ctx: Context[O]) -> O | None:
        logger.info("%s %s '%s'", _VERBS[ctx.phase], ctx.type, ctx.id)
        try:
            self.handler(ctx, ctx.id, ctx.props)
        except ProvisioError:
            raise
        except Exception as exc:
            logger.debug("Handler for %s '%s' raised %r", ctx.type, ctx.id, exc)
            raise HandlerFailure(ctx.id, ctx.type, ctx.phase.value) from exc

        if not ctx.done:
            raise InvalidContextUseError(
                f"Handler for {ctx.type} returned without commit() or confirm_destroyed() for '{ctx.id}'"
            )
        return ctx.committed

    def __repr__(self) -> str:
        return f"Resource({self.type!r})"


class Registry(Mapping[str, Resource[Any, Any]]):
    """Closed mapping of resource type tag to its single Resource."""

    def __init__(self) -> None:
        self._resources: dict[str, Resource[Any, Any]] = {}

    def add(self, res: Resource[Any, Any]) -> Resource[Any, Any]:
        if res.type in self._resources:
            raise DuplicateTypeError(res.type)
        logger.debug("Registered resource type '%s'", res.type)
        self._resources[res.type] = res
        return res

    def define[P, O](
        self,
        type_name: str,
        handler: Handler[P, O],
        *,
        props: type[BaseModel] | None = None,
        output: type[BaseModel] | None = None,
    ) -> Resource[P, O]:
        res = Resource(type_name, handler, props=props, output=output)
        self.add(res)
        return res

    def __getitem__(self, type_name: str) -> Resource[Any, Any]:
        try:
            return self._resources[type_name]
        except KeyError:
            raise UnknownTypeError(type_name) from None

    def __contains__(self, type_name: object) -> bool:
        return type_name in self._resources

    def __iter__(self) -> Iterator[str]:
        return iter(self._resources)

    def __len__(self) -> int:
        return len(self._resources)

    def __repr__(self) -> str:
        return f"Registry(types={len(self._resources)})"


_resource_registry = Registry()


def default_registry() -> Registry:
    """Return the process-wide registry used by ``define`` and ``@resource``."""
    return _resource_registry


def define[P, O](
    type_name: str,
    handler: Handler[P, O],
    *,
    props: type[BaseModel] | None = None,
    output: type[BaseModel] | None = None,
    registry: Registry | None = None,
) -> Resource[P, O]:
    """Register a handler under a type tag and return its constructor."""
    reg = registry if registry is not None else _resource_registry
    return reg.define(type_name, handler, props=props, output=output)


def resource(
    type_name: str,
    *,
    props: type[BaseModel] | None = None,
    output: type[BaseModel] | None = None,
    registry: Registry | None = None,
):
    """Register a handler function as a resource type."""

    def decorator(handler):
        return define(type_name, handler, props=props, output=output, registry=registry)

    return decorator
