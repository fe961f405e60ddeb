"""Workspace — a typed collection of stacks parsed from HCL manifests."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path
from typing import Any, overload

from . import hcl
from .blueprints import Blueprint, Declaration
from .stacks import Stack

logger = logging.getLogger(__name__)

_STRUCTURAL_KEYS = {"use", "include", "resource"}


def _parse_declarations(body: dict[str, Any]) -> list[Declaration]:
    """Parse ``resource "type" "id" { ... }`` blocks from a blueprint or stack body.

    HCL2 structure for resource blocks:
        {"resource": [{"docker::Network": {"net": {"name": "app"}}}, ...]}
    """
    decls: list[Declaration] = []
    for type_name, instances in hcl.blocks(body, "resource"):
        for resource_id, attrs in instances.items():
            decls.append(
                Declaration(
                    type=type_name,
                    id=hcl.label(resource_id),
                    attrs=hcl.attributes(attrs, set()),
                )
            )
    return decls


def _resolve_blueprint(
    name: str,
    pending: dict[str, dict[str, Any]],
    resolved: dict[str, Blueprint],
    resolving: set[str],
) -> Blueprint:
    """Recursively resolve a single blueprint, handling includes."""
    if name in resolved:
        return resolved[name]
    if name in resolving:
        raise ValueError(f"Circular include detected: '{name}'")
    if name not in pending:
        raise ValueError(f"Unknown blueprint: '{name}'")
    logger.debug("Resolving blueprint '%s'", name)
    resolving.add(name)

    body = pending[name]
    decls: list[Declaration] = []

    for include_name in body.get("include", []):
        logger.debug("Blueprint '%s' includes '%s'", name, include_name)
        decls.extend(_resolve_blueprint(include_name, pending, resolved, resolving).declarations)

    decls.extend(_parse_declarations(body))

    bp = Blueprint(name=name, declarations=decls)
    resolved[name] = bp
    resolving.discard(name)
    return bp


def _build_stack[S: Stack](
    name: str,
    body: dict[str, Any],
    blueprints: dict[str, Blueprint],
    *,
    stack_type: type[S] = Stack,  # type: ignore[assignment]
) -> S:
    """Build a single Stack instance from parsed HCL data."""
    logger.debug("Building stack '%s' as %s", name, stack_type.__name__)
    stack_blueprints: list[Blueprint] = []
    for bp_name in body.get("use", []):
        if bp_name not in blueprints:
            raise ValueError(f"Stack '{name}' references unknown blueprint: '{bp_name}'")
        stack_blueprints.append(blueprints[bp_name])

    # inline resources form an anonymous blueprint declared last
    inline = _parse_declarations(body)
    if inline:
        stack_blueprints.append(Blueprint(name=f"{name}:inline", declarations=inline))

    kwargs: dict[str, Any] = hcl.attributes(body, _STRUCTURAL_KEYS)
    kwargs.update(name=name, blueprints=stack_blueprints)
    return stack_type(**kwargs)


class Workspace[S: Stack](Mapping[str, S]):
    """Accumulates parsed manifests and resolves stacks on access."""

    def __init__(
        self,
        stack_type: type[S] = Stack,  # type: ignore[assignment]
        *,
        context: dict[str, Any] | None = None,
    ) -> None:
        self._stack_type = stack_type
        self._context = context
        self._pending_blueprints: dict[str, dict[str, Any]] = {}
        self._pending_stacks: dict[str, dict[str, Any]] = {}

    def add(self, data: dict[str, Any]) -> None:
        """Extract blueprint and stack blocks from a parsed data dict.

        Raises ValueError if any blueprint or stack name is already loaded.
        """
        for bp_name, body in hcl.blocks(data, "blueprint"):
            if bp_name in self._pending_blueprints:
                raise ValueError(f"Duplicate blueprint: '{bp_name}'")
            logger.debug("Found blueprint '%s'", bp_name)
            self._pending_blueprints[bp_name] = body

        for stack_name, body in hcl.blocks(data, "stack"):
            if stack_name in self._pending_stacks:
                raise ValueError(f"Duplicate stack: '{stack_name}'")
            logger.debug("Found stack '%s'", stack_name)
            self._pending_stacks[stack_name] = body

    def load(self, file: str | Path) -> None:
        """Parse one HCL file into the workspace."""
        self.add(hcl.load(Path(file), context=self._context))

    def scan(self, path: str | Path, *, recurse: bool = True) -> None:
        """Load every .hcl file under a directory, in sorted order."""
        root = Path(path)
        pattern = "**/*.hcl" if recurse else "*.hcl"
        files = sorted(root.glob(pattern))
        logger.debug("Found %d HCL file(s) in %s", len(files), root)
        for file in files:
            self.load(file)

    def _resolve(self) -> dict[str, S]:
        """Resolve all pending blueprints and build typed stack instances."""
        resolved_bps: dict[str, Blueprint] = {}
        for name in self._pending_blueprints:
            _resolve_blueprint(name, self._pending_blueprints, resolved_bps, set())

        return {
            name: _build_stack(name, body, resolved_bps, stack_type=self._stack_type)
            for name, body in self._pending_stacks.items()
        }

    def __getitem__(self, name: str) -> S:
        return self._resolve()[name]

    def __contains__(self, name: object) -> bool:
        return name in self._pending_stacks

    def __iter__(self) -> Iterator[str]:
        return iter(self._pending_stacks)

    def __len__(self) -> int:
        return len(self._pending_stacks)

    @overload
    def get(self, name: str) -> S | None: ...
    @overload
    def get(self, name: str, default: S) -> S: ...
    @overload
    def get(self, name: str, default: None) -> S | None: ...
    def get(self, name: str, default: Any = None) -> S | None:
        return self._resolve().get(name, default)

    def filter(self, names: Iterable[str]) -> list[S]:
        """Return stacks matching the given names, preserving input order."""
        resolved = self._resolve()
        return [s for n in names if (s := resolved.get(n)) is not None]

    def __repr__(self) -> str:
        type_name = self._stack_type.__name__
        bp_count = len(self._pending_blueprints)
        stack_count = len(self._pending_stacks)
        return f"Workspace(stack_type={type_name}, blueprints={bp_count}, stacks={stack_count})"
