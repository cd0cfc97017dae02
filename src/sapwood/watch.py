"""watch(): call a handler with (new, old) whenever a selector's value changes.

The selector runs inside a Computed, so it tracks exactly what it reads.
When any of that changes, the handler runs from the next scheduler drain,
once per dirty period, with the fresh value and the value from before the
first change. Returns a WatchHandle for cleanup via .dispose().
"""

from __future__ import annotations

import copy
from typing import Callable, TypeVar

from sapwood.computed import Computed
from sapwood.proxies import ReactiveDict, ReactiveList, ReactiveObject, ReactiveSet, fields
from sapwood.reactive import to_raw

T = TypeVar("T")


class WatchHandle:
    """Disposable handle for a watcher. Calling it disposes it too."""

    __slots__ = ("_node",)

    def __init__(self, node: Computed):
        self._node = node

    @property
    def disposed(self) -> bool:
        return not self._node.alive

    def dispose(self) -> None:
        """Stop watching. Pending notifications are dropped."""
        self._node.dispose()

    __call__ = dispose


def snapshot(value):
    """Copy value into plain containers, reading every level through facades.

    Inside a computation this makes the computation depend on the whole
    structure, not only on the top-level reference.
    """
    if isinstance(value, ReactiveDict):
        return {key: snapshot(item) for key, item in value.items()}
    if isinstance(value, ReactiveList):
        return [snapshot(item) for item in value]
    if isinstance(value, ReactiveSet):
        return {to_raw(item) for item in value}
    if isinstance(value, ReactiveObject):
        clone = copy.copy(to_raw(value))
        for name, item in fields(value).items():
            object.__setattr__(clone, name, snapshot(item))
        return clone
    return value


def watch(
    selector: Callable[[], T],
    handler: Callable[[T | None, T | None], object],
    *,
    deep: bool = False,
    immediate: bool = False,
) -> WatchHandle:
    """Track selector's reads; call handler(new, old) when they change.

    With deep=True the selector's result is snapshotted, so mutations
    anywhere inside it count, and `old` is a copy unaffected by them.
    With immediate=True the handler is also called right away with
    (current, None).

    Usage:
        state = reactive({"count": 0})
        seen = []

        handle = watch(lambda: state["count"], lambda new, old: seen.append((new, old)))
        state["count"] = 1
        flush()        # seen == [(1, 0)]
        handle()       # stop watching
    """
    get = (lambda: snapshot(selector())) if deep else selector
    node = Computed(
        get,
        name=getattr(selector, "__name__", None),
        on_change=lambda obs: handler(obs.value, obs.prev),
    )

    # run once to collect the dependencies
    value = node.run()
    if immediate:
        handler(value, None)

    return WatchHandle(node)
