"""Blueprint model — a named, reusable group of resource declarations."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field

from .resolve import Resolver, references
from .scope import Scope

logger = logging.getLogger(__name__)


@dataclass
class Declaration:
    """One declared resource: a type tag, a resource id and raw attributes."""

    type: str
    id: str
    attrs: dict[str, Any] = field(default_factory=dict)

    def __call__(self, scope: Scope, variables: Mapping[str, Any] | None = None) -> Any:
        """Resolve references against outputs committed so far and invoke the resource."""
        resource = scope.registry[self.type]
        outputs = scope.outputs
        for ref in sorted(references(self.attrs)):
            head, _, rest = ref.partition(".")
            target = rest.split(".", 1)[0]
            if head == "resources" and target not in outputs:
                raise ValueError(f"Resource '{self.id}' references '{target}' before it was declared")
        namespace = {**(variables or {}), "resources": outputs}
        props = Resolver(namespace).resolve(self.attrs)
        return resource(scope, self.id, props)


class Blueprint(BaseModel):
    """A named collection of resource declarations."""

    model_config = {"arbitrary_types_allowed": True}

    name: str
    declarations: list[Declaration] = Field(default_factory=list)

    def __iter__(self) -> Iterator[Declaration]:  # type: ignore[override]
        return iter(self.declarations)

    def declare(self, scope: Scope, variables: Mapping[str, Any] | None = None) -> None:
        """Invoke every declaration in order."""
        logger.debug("Declaring blueprint '%s'", self.name)
        for decl in self.declarations:
            decl(scope, variables)
