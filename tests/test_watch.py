"""Tests for watch(): (new, old) change callbacks over a selector."""

from sapwood import WatchHandle, computed, flush, reactive, snapshot, watch


class TestWatch:
    def test_handler_gets_new_and_old(self):
        state = reactive({"count": 0})
        seen = []
        watch(lambda: state["count"], lambda new, old: seen.append((new, old)))

        state["count"] = 1
        assert seen == []  # deferred
        flush()
        assert seen == [(1, 0)]

    def test_batches_writes(self):
        state = reactive({"count": 0})
        seen = []
        watch(lambda: state["count"], lambda new, old: seen.append((new, old)))

        state["count"] = 1
        state["count"] = 2
        state["count"] = 3
        flush()
        assert seen == [(3, 0)]

    def test_fires_again_after_flush(self):
        state = reactive({"count": 0})
        seen = []
        watch(lambda: state["count"], lambda new, old: seen.append((new, old)))

        state["count"] = 1
        flush()
        state["count"] = 2
        flush()
        assert seen == [(1, 0), (2, 1)]

    def test_unrelated_write_is_ignored(self):
        state = reactive({"count": 0, "other": 0})
        seen = []
        watch(lambda: state["count"], lambda new, old: seen.append(new))
        state["other"] = 1
        flush()
        assert seen == []

    def test_immediate(self):
        state = reactive({"count": 5})
        seen = []
        watch(lambda: state["count"], lambda new, old: seen.append((new, old)), immediate=True)
        assert seen == [(5, None)]

    def test_watch_computed(self):
        state = reactive({"items": [1, 2]})

        @computed
        def total():
            return sum(state["items"])

        seen = []
        watch(lambda: total.value, lambda new, old: seen.append((new, old)))
        state["items"].append(3)
        flush()
        assert seen == [(6, 3)]


class TestDeepWatch:
    def test_nested_mutation_triggers(self):
        state = reactive({"todo": {"items": ["a"]}})
        seen = []
        watch(lambda: state["todo"], lambda new, old: seen.append((new, old)), deep=True)

        state["todo"]["items"].append("b")
        flush()
        assert seen == [({"items": ["a", "b"]}, {"items": ["a"]})]

    def test_shallow_ignores_nested_mutation(self):
        state = reactive({"todo": {"items": ["a"]}})
        seen = []
        watch(lambda: state["todo"], lambda new, old: seen.append(new))

        state["todo"]["items"].append("b")
        flush()
        assert seen == []

    def test_snapshot_is_plain(self):
        state = reactive({"a": [1, {"b": {2}}]})
        plain = snapshot(state)
        assert plain == {"a": [1, {"b": {2}}]}
        assert type(plain) is dict
        assert type(plain["a"]) is list
        assert type(plain["a"][1]["b"]) is set


class TestWatchHandle:
    def test_dispose_stops_handler(self):
        state = reactive({"count": 0})
        seen = []
        handle = watch(lambda: state["count"], lambda new, old: seen.append(new))
        assert isinstance(handle, WatchHandle)
        assert not handle.disposed

        handle.dispose()
        assert handle.disposed
        state["count"] = 1
        flush()
        assert seen == []

    def test_handle_is_callable(self):
        state = reactive({"count": 0})
        seen = []
        stop = watch(lambda: state["count"], lambda new, old: seen.append(new))
        stop()
        state["count"] = 1
        flush()
        assert seen == []

    def test_dispose_drops_pending_notification(self):
        state = reactive({"count": 0})
        seen = []
        handle = watch(lambda: state["count"], lambda new, old: seen.append(new))
        state["count"] = 1
        handle()
        flush()
        assert seen == []
