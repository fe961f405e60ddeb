"""Stack base model — the top-level unit that is applied and destroyed."""

from __future__ import annotations

import logging
import os
from typing import Any

from pydantic import BaseModel, Field

from .blueprints import Blueprint
from .resource import Registry
from .driver import destroy, up
from .scope import Scope
from .state import StateStore

logger = logging.getLogger(__name__)


class Stack(BaseModel):
    """Base model that apps subclass with domain-specific fields.

    The stack name doubles as the default scope id for its runs.
    """

    model_config = {"arbitrary_types_allowed": True}

    name: str
    description: str = ""
    blueprints: list[Blueprint] = Field(default_factory=list)

    @property
    def scope_id(self) -> str:
        return self.name

    def variables(self) -> dict[str, Any]:
        """Namespace available to ${...} references besides ``resources``."""
        return {"stack": self, "env": os.environ}

    def declare(self, scope: Scope) -> None:
        """Declare every blueprint's resources into the scope."""
        logger.info("Declaring stack '%s'", self.name)
        variables = self.variables()
        for blueprint in self.blueprints:
            blueprint.declare(scope, variables)

    def up(
        self,
        *,
        store: StateStore | None = None,
        registry: Registry | None = None,
        scope_id: str | None = None,
    ) -> dict[str, Any]:
        """Apply the stack and return the live outputs."""
        return up(scope_id or self.scope_id, self.declare, store=store, registry=registry)

    def destroy(
        self,
        *,
        store: StateStore | None = None,
        registry: Registry | None = None,
        scope_id: str | None = None,
    ) -> None:
        """Tear down everything recorded for the stack."""
        destroy(scope_id or self.scope_id, store=store, registry=registry)
