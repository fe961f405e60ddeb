"""State stores — durable or in-memory records of each resource's last reconciliation."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import BaseModel
from pydantic_core import to_jsonable_python

from .context import Phase

logger = logging.getLogger(__name__)


def serialize(value: Any) -> Any:
    """Convert a properties or output value into its JSON-compatible form."""
    return to_jsonable_python(value)


class StateRecord(BaseModel):
    """Persisted fact about one resource's last successful reconciliation."""

    model_config = {"frozen": True}

    id: str
    type: str
    properties: Any = None
    output: Any = None
    phase: Phase = Phase.CREATE
    seq: int = 0


class StateStore(ABC):
    """Mapping of (scope_id, resource_id) to StateRecord.

    Subclasses provide whole-scope reads and writes; the base class keeps
    single-record operations atomic under a lock.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()

    @abstractmethod
    def _read(self, scope_id: str) -> dict[str, StateRecord]:
        """Return all records for a scope, keyed by resource id."""

    @abstractmethod
    def _write(self, scope_id: str, records: dict[str, StateRecord]) -> None:
        """Replace all records for a scope."""

    def get(self, scope_id: str, resource_id: str) -> StateRecord | None:
        with self._lock:
            return self._read(scope_id).get(resource_id)

    def records(self, scope_id: str) -> list[StateRecord]:
        """Return the records of a scope in creation order."""
        with self._lock:
            return sorted(self._read(scope_id).values(), key=lambda r: r.seq)

    def put(
        self,
        scope_id: str,
        resource_id: str,
        resource_type: str,
        properties: Any,
        output: Any,
        phase: Phase,
    ) -> StateRecord:
        """Write a record; new ids take the next sequence number, updates keep theirs."""
        with self._lock:
            records = self._read(scope_id)
            if resource_id in records:
                seq = records[resource_id].seq
            else:
                seq = max((r.seq for r in records.values()), default=0) + 1
            record = StateRecord(
                id=resource_id,
                type=resource_type,
                properties=serialize(properties),
                output=serialize(output),
                phase=phase,
                seq=seq,
            )
            records[resource_id] = record
            self._write(scope_id, records)
            logger.debug("Stored %s '%s' in scope '%s' (seq %d)", resource_type, resource_id, scope_id, seq)
            return record

    def delete(self, scope_id: str, resource_id: str) -> bool:
        """Remove a record; returns False if it was not present."""
        with self._lock:
            records = self._read(scope_id)
            if records.pop(resource_id, None) is None:
                return False
            self._write(scope_id, records)
            logger.debug("Removed '%s' from scope '%s'", resource_id, scope_id)
            return True


class MemoryStateStore(StateStore):
    """State held in process memory; lost when the process exits."""

    def __init__(self) -> None:
        super().__init__()
        self._scopes: dict[str, dict[str, StateRecord]] = {}

    def _read(self, scope_id: str) -> dict[str, StateRecord]:
        return dict(self._scopes.get(scope_id, {}))

    def _write(self, scope_id: str, records: dict[str, StateRecord]) -> None:
        if records:
            self._scopes[scope_id] = dict(records)
        else:
            self._scopes.pop(scope_id, None)

    def scopes(self) -> list[str]:
        return list(self._scopes)

    def __repr__(self) -> str:
        return f"MemoryStateStore(scopes={len(self._scopes)})"


class FileStateStore(StateStore):
    """State persisted as one JSON document per scope under a root directory."""

    def __init__(self, root: str | Path = ".provisio") -> None:
        super().__init__()
        self.root = Path(root)

    def path_for(self, scope_id: str) -> Path:
        return self.root / f"{scope_id}.json"

    def _read(self, scope_id: str) -> dict[str, StateRecord]:
        path = self.path_for(scope_id)
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text())
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}: invalid state file: {exc}") from exc
        records = (StateRecord.model_validate(item) for item in data.get("resources", []))
        return {r.id: r for r in records}

    def _write(self, scope_id: str, records: dict[str, StateRecord]) -> None:
        path = self.path_for(scope_id)
        if not records:
            path.unlink(missing_ok=True)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        ordered = sorted(records.values(), key=lambda r: r.seq)
        doc = {"scope": scope_id, "resources": [r.model_dump(mode="json") for r in ordered]}

        # write-then-rename so readers never see a partial file
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as fp:
                json.dump(doc, fp, indent=2)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def __repr__(self) -> str:
        return f"FileStateStore(root={str(self.root)!r})"
