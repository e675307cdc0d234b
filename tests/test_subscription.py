"""Tests for Subscription — slices, memoized derivations, enablement, hydration."""

import pytest

from slicefx import Enabled, create_store, subscribe


def _scope(initial=None, **kwargs):
    store = create_store(initial if initial is not None else {"count": 0, "name": "x"}, **kwargs)
    return store.provider()


class TestSlice:
    def test_default_keys_are_all_current_keys(self):
        scope = _scope()
        sub = subscribe(scope)
        assert sub.keys == ("count", "name")
        assert sub.snapshot() == {"count": 0, "name": "x"}

    def test_default_keys_are_snapshotted_once(self):
        scope = _scope()
        sub = subscribe(scope)
        scope.handle.update({"extra": 1})
        assert sub.keys == ("count", "name")
        assert "extra" not in sub.snapshot()

    def test_slice_contains_only_watched_keys(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        assert sub.snapshot() == {"count": 0}

    def test_unrelated_update_keeps_slice_identity(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        before = sub.snapshot()
        scope.handle.update({"name": "y"})
        assert sub.snapshot() is before

    def test_watched_update_produces_new_slice(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        before = sub.snapshot()
        scope.handle.update({"count": 1})
        after = sub.snapshot()
        assert after is not before
        assert after == {"count": 1}

    def test_repeated_reads_are_identical(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count", "name"])
        assert sub.snapshot() is sub.snapshot()


class TestMutation:
    def test_derived_value(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"], mutation=lambda s: s["count"] * 2)
        scope.handle.update({"count": 4})
        assert sub.snapshot() == 8

    def test_unrelated_update_does_not_recompute(self):
        scope = _scope()
        calls = []

        def doubled(s):
            calls.append(s["count"])
            return {"doubled": s["count"] * 2}

        sub = subscribe(scope, keys=["count"], mutation=doubled)
        before = sub.snapshot()
        scope.handle.update({"name": "y"})
        assert sub.snapshot() is before
        assert calls == [0]

    def test_falsy_derived_value_is_cached(self):
        scope = _scope()
        calls = []
        sub = subscribe(scope, keys=["count"], mutation=lambda s: calls.append(1) or 0)
        sub.snapshot()
        sub.snapshot()
        scope.handle.update({"name": "y"})
        sub.snapshot()
        assert calls == [1]

    def test_accumulating_mutation(self):
        scope = _scope()
        sub = subscribe(
            scope,
            keys=["count"],
            mutation=lambda new, prev, total: (total or 0) + new["count"],
        )
        assert sub.snapshot() == 0
        scope.handle.update({"count": 1})
        assert sub.snapshot() == 1
        scope.handle.update({"count": 2})
        assert sub.snapshot() == 3
        scope.handle.update({"count": 5})
        assert sub.snapshot() == 8

    def test_two_argument_mutation_receives_previous_slice(self):
        scope = _scope()
        seen = []
        sub = subscribe(scope, keys=["count"], mutation=lambda new, prev: seen.append(prev) or new["count"])
        sub.snapshot()
        scope.handle.update({"count": 1})
        sub.snapshot()
        assert seen == [None, {"count": 0}]

    def test_varargs_mutation_receives_all_three(self):
        scope = _scope()
        seen = []
        sub = subscribe(scope, keys=["count"], mutation=lambda *args: seen.append(len(args)))
        sub.snapshot()
        assert seen == [3]

    def test_mutation_errors_propagate(self):
        scope = _scope()

        def broken(s):
            raise ValueError("boom")

        sub = subscribe(scope, keys=["count"], mutation=broken)
        with pytest.raises(ValueError, match="boom"):
            sub.snapshot()


class TestObserve:
    def test_called_only_on_change(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        log = []
        sub.observe(log.append)
        scope.handle.update({"name": "y"})
        scope.handle.update({"count": 1})
        assert log == [{"count": 1}]

    def test_derived_value_unchanged_is_not_pushed(self):
        scope = _scope({"count": 1, "name": "x"})
        sub = subscribe(scope, keys=["count"], mutation=lambda s: s["count"] > 0)
        log = []
        sub.observe(log.append)
        scope.handle.update({"count": 2})
        scope.handle.update({"count": 0})
        # bool results are singletons, so True -> True is not a change
        assert log == [False]

    def test_multi_key_update_pushes_once(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count", "name"])
        log = []
        sub.observe(log.append)
        scope.handle.update({"count": 1, "name": "y"})
        assert log == [{"count": 1, "name": "y"}]

    def test_unsubscribe(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        log = []
        unsubscribe = sub.observe(log.append)
        unsubscribe()
        unsubscribe()  # idempotent
        scope.handle.update({"count": 1})
        assert log == []

    def test_close_detaches_listeners(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        log = []
        sub.observe(log.append)
        sub.close()
        scope.handle.update({"count": 1})
        assert log == []

    def test_unsubscribe_after_scope_closed(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        unsubscribe = sub.observe(lambda v: None)
        scope.close()
        unsubscribe()  # should not raise


class TestEnabled:
    def test_never_returns_initial_and_never_listens(self):
        scope = _scope()
        scope.handle.update({"count": 7})
        sub = subscribe(scope, keys=["count"], enabled="never")
        log = []
        sub.subscribe(lambda *a: log.append(a))
        assert sub.snapshot() == {"count": 0}
        scope.handle.update({"count": 8})
        assert log == []
        assert sub.snapshot() == {"count": 0}

    def test_never_with_mutation_derives_from_initial_once(self):
        scope = _scope()
        scope.handle.update({"count": 7})
        calls = []
        sub = subscribe(scope, keys=["count"], mutation=lambda s: calls.append(1) or s["count"] * 2, enabled="never")
        assert sub.snapshot() == 0
        assert sub.snapshot() == 0
        assert calls == [1]

    def test_predicate_disabled_keeps_cached_value(self):
        scope = _scope({"count": 0, "paused": False})
        sub = subscribe(scope, keys=["count"], enabled=lambda s: not s["paused"])
        scope.handle.update({"count": 1})
        cached = sub.snapshot()
        assert cached == {"count": 1}
        scope.handle.update({"paused": True})
        scope.handle.update({"count": 2})
        assert sub.snapshot() is cached
        scope.handle.update({"paused": False})
        assert sub.snapshot() == {"count": 2}

    def test_predicate_listeners_are_attached(self):
        scope = _scope({"count": 0, "paused": True})
        sub = subscribe(scope, keys=["count"], enabled=lambda s: not s["paused"])
        calls = []
        sub.subscribe(lambda *a: calls.append(a))
        scope.handle.update({"count": 1})
        assert calls == [(1,)]


class TestHydration:
    def test_first_read_uses_initial_data(self):
        scope = _scope()
        scope.handle.update({"count": 5})
        sub = subscribe(scope, keys=["count"], mutation=lambda s: s["count"] * 10, enabled="after-hydration")
        assert sub.snapshot() == 0

    def test_hydrate_wakes_observer_without_store_change(self):
        scope = _scope()
        scope.handle.update({"count": 5})
        sub = subscribe(scope, keys=["count"], mutation=lambda s: s["count"] * 10, enabled="after-hydration")
        log = []
        sub.observe(log.append)
        assert sub.snapshot() == 0
        sub.hydrate()
        assert log == [50]
        assert sub.snapshot() == 50

    def test_hydrate_only_once(self):
        scope = _scope()
        scope.handle.update({"count": 5})
        sub = subscribe(scope, keys=["count"], enabled="after-hydration")
        calls = []
        sub.subscribe(calls.append)
        sub.hydrate()
        sub.hydrate()
        assert calls == [{"count": 5}]
        assert sub.hydrated

    def test_hydrate_passes_snapshot_to_single_argument_callback(self):
        scope = _scope()
        scope.handle.update({"count": 5})
        sub = subscribe(scope, keys=["count"], mutation=lambda s: s["count"] * 10, enabled="after-hydration")
        seen = []
        sub.subscribe(lambda value: seen.append(value))
        sub.hydrate()
        scope.handle.update({"count": 6})
        assert seen == [50, 6]

    def test_hydrate_does_not_wake_always_subscriptions(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        calls = []
        sub.subscribe(lambda *a: calls.append(a))
        sub.hydrate()
        assert calls == []

    def test_updates_before_hydration_are_held_back(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"], enabled=Enabled.AFTER_HYDRATION)
        log = []
        sub.observe(log.append)
        scope.handle.update({"count": 1})
        assert log == []
        sub.hydrate()
        assert log == [{"count": 1}]
        scope.handle.update({"count": 2})
        assert log == [{"count": 1}, {"count": 2}]


class TestReconfigure:
    def test_new_keys_resubscribe(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        log = []
        sub.observe(log.append)
        sub.reconfigure(keys=["name"])
        scope.handle.update({"count": 1})
        assert log == []
        scope.handle.update({"name": "y"})
        assert log == [{"name": "y"}]

    def test_no_stale_listeners_after_reconfigure(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        sub.subscribe(lambda *a: None)
        sub.reconfigure(keys=["name"])
        slots = scope._registry
        assert slots.find("count").listeners == []
        assert len(slots.find("name").listeners) == 1

    def test_enabling_attaches_listeners(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"], enabled="never")
        log = []
        sub.observe(log.append)
        scope.handle.update({"count": 1})
        assert log == []
        sub.reconfigure(enabled="always")
        scope.handle.update({"count": 2})
        assert log == [{"count": 2}]

    def test_disabling_detaches_listeners(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        sub.subscribe(lambda *a: None)
        sub.reconfigure(enabled=False)
        assert scope._registry.find("count").listeners == []

    def test_same_config_keeps_listeners(self):
        scope = _scope()
        sub = subscribe(scope, keys=["count"])
        sub.subscribe(lambda *a: None)
        entries = list(scope._registry.find("count").listeners)
        sub.reconfigure(keys=["count"], enabled="always")
        assert scope._registry.find("count").listeners == entries
