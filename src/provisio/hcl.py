"""HCL loading — render manifest templates and parse them into raw block data."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import hcl2
import jinja2

from .stacks import Stack

if TYPE_CHECKING:
    from .workspace import Workspace

logger = logging.getLogger(__name__)


def scan[S: Stack](
    path: str | Path,
    *,
    stack_type: type[S] = Stack,  # type: ignore[assignment]
    recurse: bool = True,
    context: dict[str, Any] | None = None,
) -> Workspace[S]:
    """Scan a directory for .hcl files and return a ready Workspace."""
    from .workspace import Workspace

    ws = Workspace(stack_type=stack_type, context=context)
    ws.scan(path, recurse=recurse)
    return ws


def load(
    file: str | Path,
    *,
    context: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Load and parse a single HCL file, rendering Jinja2 templates with context."""
    file = Path(file)
    text = file.read_text()
    env = jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    try:
        text = env.from_string(text).render(context or {})
    except jinja2.TemplateError as exc:
        raise ValueError(f"{file}: {exc}") from exc

    logger.debug("Parsing %s", file)
    try:
        return hcl2.loads(text)
    except Exception as exc:
        raise ValueError(f"{file}: {exc}") from exc


def label(name: str) -> str:
    """Normalize a block label; some parser versions keep the surrounding quotes."""
    if len(name) >= 2 and name[0] == name[-1] == '"':
        return name[1:-1]
    return name


def blocks(data: dict[str, Any], kind: str) -> list[tuple[str, dict[str, Any]]]:
    """Return ``(label, body)`` pairs for every ``kind "label" { ... }`` block."""
    found: list[tuple[str, dict[str, Any]]] = []
    for block in data.get(kind, []):
        for name, body in block.items():
            found.append((label(name), body))
    return found


def attributes(body: dict[str, Any], skip: set[str]) -> dict[str, Any]:
    """Return plain attributes of a block body, dropping structural and parser metadata keys."""
    return {k: v for k, v in body.items() if k not in skip and not k.startswith("__")}
