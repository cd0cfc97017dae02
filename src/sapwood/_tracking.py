"""Dependency tracking engine.

Uses contextvars to track which computation is evaluating, so that any read
through a facade registers an edge (trackable, key) <-> node. Writes notify
every node depending on the written key; each notified node drops all of its
edges and is marked dirty, to relearn its dependencies on the next run.

Change notifications are deferred: mark-dirty is synchronous, but the
on_change hook runs from the task queue, drained once per scheduler turn.
Without a running asyncio loop or an installed scheduler nothing drains
the queue on its own: synchronous callers must call flush().
"""

from __future__ import annotations

import asyncio
import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Callable, Iterator

from sapwood import _anchor

if TYPE_CHECKING:
    from sapwood.computed import Computed

logger = logging.getLogger("sapwood.scheduler")

# The currently-evaluating computation.
# When set, any tracked read registers itself as a dependency.
current_node: contextvars.ContextVar[Computed | None] = contextvars.ContextVar(
    "current_node", default=None
)


@contextmanager
def evaluating(node: Computed) -> Iterator[None]:
    """Make node the current computation for the duration of the block."""
    token = current_node.set(node)
    node._running += 1
    try:
        yield
    finally:
        node._running -= 1
        current_node.reset(token)


# ─── Edges ──────────────────────────────────────────────────────────────────


def depend_on(trackable, key) -> None:
    """Record that the current computation read `key` of `trackable`."""
    node = current_node.get()
    if node is None:
        return

    entry = node._dependencies.get(id(trackable))
    if entry is None:
        entry = node._dependencies[id(trackable)] = (trackable, set())
    entry[1].add(key)

    observers = trackable._rx_observers.get(key)
    if observers is None:
        observers = trackable._rx_observers[key] = set()
    observers.add(node)


def notify(trackable, key) -> None:
    """Invalidate every computation that depends on `key` of `trackable`."""
    observers = trackable._rx_observers.get(key)
    if not observers:
        return

    for node in list(observers):
        # edges recorded by a run still in progress belong to that run
        if node._running:
            continue
        clear_edges(node)
        node.mark_dirty()


def clear_edges(node: Computed) -> None:
    """Remove every edge of node from both indexes."""
    for trackable, keys in node._dependencies.values():
        for key in keys:
            observers = trackable._rx_observers.get(key)
            if observers is None:
                continue
            observers.discard(node)
            if not observers:
                del trackable._rx_observers[key]
    node._dependencies.clear()


# ─── Scheduler ──────────────────────────────────────────────────────────────


def set_scheduler(defer: Callable[[Callable[[], None]], object] | None) -> None:
    """Install the deferred boundary used to drain the task queue.

    `defer` receives a zero-argument callback and must run it later on the
    evaluation thread, e.g. `loop.call_soon` or a Textual app's `call_next`.
    Pass None to restore the default (asyncio loop if running, else flush()).
    """
    _anchor.defer = defer
    _anchor.drain_scheduled = False
    logger.debug("Scheduler set to %r", defer)
    if _anchor.task_queue:
        _request_drain()


def schedule(task: Callable[[], None]) -> None:
    """Queue a task for the next drain. Tasks run in FIFO order."""
    _anchor.task_queue.append(task)
    _request_drain()


def _request_drain() -> None:
    if _anchor.drain_scheduled:
        return

    if _anchor.defer is not None:
        _anchor.drain_scheduled = True
        _anchor.defer(_drain)
        return

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        # No boundary available: tasks wait for flush().
        if len(_anchor.task_queue) == 1:
            logger.debug("No event loop or scheduler; tasks wait for flush()")
        return
    _anchor.drain_scheduled = True
    loop.call_soon(_drain)


def _drain() -> None:
    try:
        flush()
    finally:
        _anchor.drain_scheduled = False


def flush() -> None:
    """Run queued tasks until the queue is empty.

    Tasks queued by running tasks are processed in the same pass. A task
    that raises is logged and does not stop the others.
    """
    if _anchor.draining:
        return

    _anchor.draining = True
    try:
        while _anchor.task_queue:
            task = _anchor.task_queue.popleft()
            try:
                task()
            except Exception:
                logger.exception("Scheduled task %r failed", task)
    finally:
        _anchor.draining = False


def get_pending_count() -> int:
    """Number of tasks waiting to run. Useful for testing."""
    return len(_anchor.task_queue)
