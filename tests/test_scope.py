"""Tests for provisio.scope."""

from __future__ import annotations

import threading

import pytest

from provisio.context import Phase
from provisio.errors import DestroyError, DuplicateIdError, HandlerFailure, ScopeError, UnknownTypeError
from provisio.scope import Scope


class Journal:
    """Shared log of (phase, id) across handlers; can be told to fail deletes."""

    def __init__(self):
        self.events: list[tuple[Phase, str]] = []
        self.fail_delete: set[str] = set()
        self._lock = threading.Lock()

    def handler(self, ctx, id, props):
        with self._lock:
            self.events.append((ctx.phase, id))
        if ctx.phase is Phase.DELETE:
            if id in self.fail_delete:
                raise RuntimeError(f"cannot delete {id}")
            ctx.confirm_destroyed()
            return None
        return ctx.commit({"id": id, **props})

    def deletes(self) -> list[str]:
        return [rid for phase, rid in self.events if phase is Phase.DELETE]


@pytest.fixture
def journal() -> Journal:
    return Journal()


@pytest.fixture
def thing(registry, journal):
    return registry.define("test::Thing", journal.handler)


def _scope(store, registry, phase="up") -> Scope:
    return Scope("test", phase, store=store, registry=registry)


class TestRegister:
    def test_records_order(self, store, registry):
        scope = _scope(store, registry)
        scope.register("b", "t")
        scope.register("a", "t")
        assert scope.resources == ["b", "a"]

    def test_duplicate_fails(self, store, registry):
        scope = _scope(store, registry)
        scope.register("a", "t")
        with pytest.raises(DuplicateIdError):
            scope.register("a", "t")

    def test_closed_scope_rejects(self, store, registry):
        scope = _scope(store, registry)
        scope.finalize()
        assert scope.closed is True
        with pytest.raises(ScopeError):
            scope.register("a", "t")

    def test_defaults(self):
        scope = Scope("test")
        assert scope.run_phase.value == "up"
        assert scope.store is not None
        assert "Scope" in repr(scope)


class TestOutputs:
    def test_outputs_in_registration_order(self, thing, store, registry):
        scope = _scope(store, registry)
        thing(scope, "b", {"n": 1})
        thing(scope, "a", {"n": 2})
        assert list(scope.outputs) == ["b", "a"]
        assert scope.outputs["a"] == {"id": "a", "n": 2}


class TestFinalize:
    def test_returns_outputs(self, thing, store, registry):
        scope = _scope(store, registry)
        thing(scope, "a", {})
        assert scope.finalize() == {"a": {"id": "a"}}

    def test_finalize_twice_fails(self, store, registry):
        scope = _scope(store, registry)
        scope.finalize()
        with pytest.raises(ScopeError):
            scope.finalize()

    def test_orphan_deleted_once(self, thing, journal, store, registry):
        first = _scope(store, registry)
        thing(first, "a", {})
        thing(first, "b", {})
        first.finalize()

        second = _scope(store, registry)
        thing(second, "a", {})
        assert [r.id for r in second.orphans()] == ["b"]
        second.finalize()

        assert journal.deletes() == ["b"]
        assert store.get("test", "b") is None
        assert store.get("test", "a") is not None

    def test_orphans_deleted_newest_first(self, thing, journal, store, registry):
        first = _scope(store, registry)
        for rid in ("a", "b", "c"):
            thing(first, rid, {})
        first.finalize()

        _scope(store, registry).finalize()
        assert journal.deletes() == ["c", "b", "a"]
        assert store.records("test") == []

    def test_orphans_keep_creation_order_after_update(self, thing, journal, store, registry):
        first = _scope(store, registry)
        for rid in ("a", "b", "c"):
            thing(first, rid, {})
        first.finalize()

        # a run that updates "a" and stops before finalizing
        thing(_scope(store, registry), "a", {"v": 2})
        assert store.get("test", "a").properties == {"v": 2}

        third = _scope(store, registry)
        thing(third, "x", {})
        assert [r.id for r in third.orphans()] == ["c", "b", "a"]
        third.finalize()
        assert journal.deletes() == ["c", "b", "a"]
        assert [r.id for r in store.records("test")] == ["x"]

    def test_records_created_this_run_are_not_orphans(self, thing, store, registry):
        scope = _scope(store, registry)
        thing(scope, "a", {})
        assert scope.orphans() == []

    def test_orphan_failures_aggregate(self, thing, journal, store, registry):
        first = _scope(store, registry)
        for rid in ("a", "b", "c"):
            thing(first, rid, {})
        first.finalize()

        journal.fail_delete = {"b"}
        with pytest.raises(DestroyError) as exc_info:
            _scope(store, registry).finalize()
        assert exc_info.value.resource_ids == ["b"]
        assert journal.deletes() == ["c", "b", "a"]
        assert [r.id for r in store.records("test")] == ["b"]

    def test_orphan_with_unknown_type_aborts(self, store, registry):
        store.put("test", "ghost", "test::Ghost", {}, {}, Phase.CREATE)
        with pytest.raises(UnknownTypeError):
            _scope(store, registry).finalize()

    def test_finalize_in_destroy_phase_skips_pruning(self, thing, journal, store, registry):
        thing(_scope(store, registry), "a", {})
        _scope(store, registry, "destroy").finalize()
        assert journal.deletes() == []


class TestDestroy:
    def test_reverse_registration_order(self, thing, journal, store, registry):
        scope = _scope(store, registry)
        thing(scope, "a", {})
        thing(scope, "b", {})
        scope.finalize()

        _scope(store, registry, "destroy").destroy()
        assert journal.deletes() == ["b", "a"]
        assert store.records("test") == []

    def test_continues_past_failures(self, thing, journal, store, registry):
        scope = _scope(store, registry)
        for rid in ("a", "b", "c"):
            thing(scope, rid, {})
        scope.finalize()

        journal.fail_delete = {"c", "a"}
        with pytest.raises(DestroyError) as exc_info:
            _scope(store, registry, "destroy").destroy()

        assert journal.deletes() == ["c", "b", "a"]
        assert exc_info.value.resource_ids == ["c", "a"]
        assert all(isinstance(f, HandlerFailure) for f in exc_info.value.failures)
        assert [r.id for r in store.records("test")] == ["a", "c"]

    def test_retry_deletes_only_failed(self, thing, journal, store, registry):
        scope = _scope(store, registry)
        for rid in ("a", "b"):
            thing(scope, rid, {})
        scope.finalize()

        journal.fail_delete = {"a"}
        with pytest.raises(DestroyError):
            _scope(store, registry, "destroy").destroy()

        journal.events.clear()
        journal.fail_delete = set()
        _scope(store, registry, "destroy").destroy()
        assert journal.deletes() == ["a"]

    def test_empty_scope(self, store, registry):
        _scope(store, registry, "destroy").destroy()


class TestGather:
    def test_results_in_argument_order(self, thing, store, registry):
        scope = _scope(store, registry)
        results = scope.gather(
            lambda: thing(scope, "a", {}),
            lambda: thing(scope, "b", {}),
            lambda: thing(scope, "c", {}),
        )
        assert [r["id"] for r in results] == ["a", "b", "c"]
        assert sorted(scope.resources) == ["a", "b", "c"]

    def test_no_calls(self, store, registry):
        assert _scope(store, registry).gather() == []

    def test_failure_raised_after_all_settle(self, thing, registry, store):
        broken = registry.define("test::Broken", lambda ctx, id, props: 1 / 0)
        scope = _scope(store, registry)
        with pytest.raises(HandlerFailure):
            scope.gather(
                lambda: broken(scope, "x", {}),
                lambda: thing(scope, "a", {}),
            )
        assert store.get("test", "a") is not None
        assert store.get("test", "x") is None

    def test_concurrent_duplicate_registration(self, thing, journal, store, registry):
        scope = _scope(store, registry)
        with pytest.raises(DuplicateIdError):
            scope.gather(*(lambda: thing(scope, "same", {}) for _ in range(4)))
        assert [e for e in journal.events if e[1] == "same"] == [(Phase.CREATE, "same")]
