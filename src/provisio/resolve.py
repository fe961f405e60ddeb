"""Resolver — interpolate ${...} references to outputs and variables in declared attributes."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any

logger = logging.getLogger(__name__)

_INTERP_PATTERN = re.compile(r"\$\$\{|(\$\{([^{}]+)\})")
_FULL_PATTERN = re.compile(r"\$\{([^{}]+)\}")


class Resolver:
    """Resolve ${...} references against a namespace of outputs and variables.

    The namespace is usually ``{"resources": ..., "env": ..., "stack": ...}``,
    so ``${resources.net.id}`` reads the ``id`` of the output committed for ``net``.
    """

    def __init__(self, namespace: Mapping[str, Any] | None = None) -> None:
        self._namespace = namespace or {}

    def _lookup(self, ref: str) -> Any:
        """Walk a dotted reference through mappings and attributes."""
        current: Any = self._namespace

        for part in ref.split("."):
            if isinstance(current, Mapping):
                if part not in current:
                    raise ValueError(f"undefined reference '{ref}'")
                current = current[part]
            else:
                try:
                    current = getattr(current, part)
                except AttributeError:
                    raise ValueError(f"undefined reference '{ref}'") from None

        if callable(current) and not isinstance(current, type):
            current = current()

        return current

    def resolve_value(self, value: str) -> Any:
        """Interpolate one string.

        A string that is exactly one ``${ref}`` resolves to the referenced
        object itself; otherwise each reference is stringified in place.
        ``$${`` produces a literal ``${``.
        """
        if "${" not in value:
            return value

        match = _FULL_PATTERN.fullmatch(value)
        if match:
            return self._lookup(match.group(1).strip())

        def _replace(m: re.Match[str]) -> str:
            if m.group(0) == "$${":
                return "${"
            return str(self._lookup(m.group(2).strip()))

        return _INTERP_PATTERN.sub(_replace, value)

    def resolve(self, data: Any) -> Any:
        """Recursively interpolate every string in a nested structure."""
        if isinstance(data, dict):
            return {k: self.resolve(v) for k, v in data.items()}
        if isinstance(data, list):
            return [self.resolve(item) for item in data]
        if isinstance(data, str):
            return self.resolve_value(data)
        return data


def references(data: Any) -> set[str]:
    """Return every dotted reference found in a nested structure."""
    found: set[str] = set()
    if isinstance(data, dict):
        for v in data.values():
            found |= references(v)
    elif isinstance(data, list):
        for item in data:
            found |= references(item)
    elif isinstance(data, str) and "${" in data:
        for m in _INTERP_PATTERN.finditer(data):
            if m.group(2) is not None:
                found.add(m.group(2).strip())
    return found
