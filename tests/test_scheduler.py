"""Tests for the deferred task queue."""

import asyncio
import logging

from sapwood import Computed, flush, get_pending_count, reactive, schedule, set_scheduler


class TestFlush:
    def test_tasks_wait_for_flush_without_loop(self):
        order = []
        schedule(lambda: order.append(1))
        assert order == []
        assert get_pending_count() == 1
        flush()
        assert order == [1]
        assert get_pending_count() == 0

    def test_reentrant_tasks_run_in_same_pass(self):
        order = []

        def third():
            order.append(3)

        def second():
            order.append(2)
            schedule(third)

        def first():
            order.append(1)
            schedule(second)

        schedule(first)
        flush()
        assert order == [1, 2, 3]
        assert get_pending_count() == 0

    def test_fifo_across_nested_schedules(self):
        order = []

        def make(name):
            def task():
                order.append(f"{name}1")
                schedule(lambda: order.append(f"{name}2"))

            return task

        for name in "abc":
            schedule(make(name))
        flush()
        assert order == ["a1", "b1", "c1", "a2", "b2", "c2"]

    def test_flush_inside_task_is_noop(self):
        order = []

        def outer():
            schedule(lambda: order.append("inner"))
            flush()
            order.append("outer")

        schedule(outer)
        flush()
        assert order == ["outer", "inner"]


class TestErrorIsolation:
    def test_failing_task_is_logged(self, caplog):
        order = []

        def boom():
            raise RuntimeError("boom")

        schedule(lambda: order.append(1))
        schedule(boom)
        schedule(lambda: order.append(2))

        with caplog.at_level(logging.ERROR, logger="sapwood.scheduler"):
            flush()

        assert order == [1, 2]
        assert len(caplog.records) == 1
        assert caplog.records[0].exc_info is not None
        assert "failed" in caplog.records[0].getMessage()

    def test_task_scheduled_before_failure_still_runs(self, caplog):
        order = []

        def first():
            order.append(1)
            schedule(lambda: order.append(2))
            raise ValueError("after scheduling")

        schedule(first)
        schedule(lambda: order.append(3))
        with caplog.at_level(logging.ERROR, logger="sapwood.scheduler"):
            flush()
        assert order == [1, 3, 2]

    def test_failing_change_hook_does_not_block_others(self, caplog):
        state = reactive({"n": 1})
        seen = []

        def bad(node):
            raise RuntimeError("handler")

        a = Computed(lambda: state["n"], on_change=bad)
        b = Computed(lambda: state["n"], on_change=lambda node: seen.append(node.value))
        a.value
        b.value
        state["n"] = 2

        with caplog.at_level(logging.ERROR, logger="sapwood.scheduler"):
            flush()
        assert seen == [2]


class TestEventLoop:
    def test_drains_on_running_loop(self):
        order = []

        async def main():
            schedule(lambda: order.append(1))
            schedule(lambda: order.append(2))
            assert order == []
            await asyncio.sleep(0)
            return list(order)

        assert asyncio.run(main()) == [1, 2]

    def test_change_hook_after_yield(self):
        changes = []

        async def main():
            state = reactive({"n": 1})
            c = Computed(lambda: state["n"], on_change=lambda node: changes.append(node.prev))
            c.value
            state["n"] = 2
            state["n"] = 3
            assert changes == []
            await asyncio.sleep(0)

        asyncio.run(main())
        assert changes == [1]


class TestSetScheduler:
    def test_custom_boundary(self):
        drains = []
        order = []
        set_scheduler(drains.append)

        schedule(lambda: order.append(1))
        schedule(lambda: order.append(2))
        assert len(drains) == 1  # one pending drain for both tasks

        drains[0]()
        assert order == [1, 2]

        schedule(lambda: order.append(3))
        assert len(drains) == 2  # drained, so a fresh drain is requested

    def test_installing_with_pending_tasks_requests_drain(self):
        drains = []
        schedule(lambda: None)
        set_scheduler(drains.append)
        assert len(drains) == 1

    def test_synchronous_boundary(self):
        order = []
        set_scheduler(lambda drain: drain())
        schedule(lambda: order.append(1))
        assert order == [1]


class TestWithoutBoundary:
    def test_parked_task_is_logged(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="sapwood.scheduler"):
            schedule(lambda: None)
            schedule(lambda: None)
        parked = [r for r in caplog.records if "flush()" in r.getMessage()]
        assert len(parked) == 1
