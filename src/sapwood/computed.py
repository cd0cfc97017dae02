"""Computed values: memoized computations with automatic dependency tracking.

A Computed wraps a getter. When evaluated, it records which tracked values
the getter reads and caches the result. When any of them changes, the node
is marked dirty: on_immediate_change fires right away, on_change fires from
the next scheduler drain. The value itself is recomputed lazily, on the
next read.

A Computed is also trackable: reading one inside another makes the outer
node depend on it.
"""

from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar, overload

from sapwood import _anchor
from sapwood._tracking import clear_edges, depend_on, evaluating, notify, schedule

T = TypeVar("T")

Hook = Callable[["Computed"], object]

logger = logging.getLogger("sapwood.computed")


class Computed(Generic[T]):
    """A derived value that auto-tracks dependencies and caches the result."""

    __slots__ = (
        "name",
        "cache",
        "alive",
        "dirty",
        "prev",
        "_getter",
        "_setter",
        "_cached",
        "_hooks",
        "_running",
        "_dependencies",
        "_rx_observers",
        "__weakref__",
    )

    def __init__(
        self,
        getter: Callable[[], T],
        setter: Callable[[T], None] | None = None,
        *,
        name: str | None = None,
        cache: bool = True,
        on_get: Hook | None = None,
        on_set: Hook | None = None,
        on_change: Hook | None = None,
        on_immediate_change: Hook | None = None,
    ) -> None:
        self.name = name or getattr(getter, "__name__", None)
        self.cache = bool(cache)
        self.alive = True
        self.dirty = True
        self.prev: T | None = None
        self._getter = getter
        self._setter = setter
        self._cached: T | None = None
        self._hooks = {
            "on_get": on_get,
            "on_set": on_set,
            "on_change": on_change,
            "on_immediate_change": on_immediate_change,
        }
        self._running = 0
        self._dependencies: dict[int, tuple[object, set]] = {}
        self._rx_observers: dict[object, set[Computed]] = {}

    def _call_hook(self, name: str) -> None:
        hook = self._hooks[name]
        if hook is not None:
            hook(self)

    def run(self) -> T | None:
        """Evaluate if needed and return the value. Disposed nodes return None."""
        if not self.alive:
            return None

        if self.dirty or not self.cache:
            clear_edges(self)
            with evaluating(self):
                try:
                    self._cached = self._getter()
                finally:
                    # A failed run settles too; only a new write retries it.
                    self.dirty = False

        depend_on(self, _anchor.NODE)
        self._call_hook("on_get")
        return self._cached

    @property
    def value(self) -> T | None:
        return self.run()

    @value.setter
    def value(self, value: T) -> None:
        if self._setter is None:
            raise AttributeError(f'No setter defined for "{self.name}"')
        self._setter(value)
        self._call_hook("on_set")

    def get(self) -> T | None:
        return self.run()

    def set(self, value: T) -> None:
        self.value = value

    def mark_dirty(self) -> None:
        """Invalidate the cache. Idempotent within one dirty period."""
        if not self.alive or self.dirty:
            return

        self.dirty = True
        self.prev = self._cached
        notify(self, _anchor.NODE)
        self._call_hook("on_immediate_change")
        schedule(self._notify_change)

    def _notify_change(self) -> None:
        if not self.alive:
            return
        try:
            self._call_hook("on_change")
        finally:
            # don't hold on to the previous value past the notification
            self.prev = None

    def dispose(self) -> None:
        """Disconnect from all dependencies. The computed becomes inert."""
        clear_edges(self)
        self.alive = False
        self.dirty = False
        self._cached = None
        self.prev = None
        logger.debug("Disposed %r", self)

    def __repr__(self) -> str:
        if not self.alive:
            state = "disposed"
        elif self.dirty:
            state = "dirty"
        else:
            state = f"cached={self._cached!r}"
        return f"Computed({self.name}, {state})"


@overload
def computed(fn: Callable[[], T]) -> Computed[T]: ...


@overload
def computed(
    fn: None = None, *, name: str | None = None, cache: bool = True
) -> Callable[[Callable[[], T]], Computed[T]]: ...


def computed(fn=None, *, name=None, cache=True):
    """Decorator/factory to create a Computed from a function.

    Usage:
        state = reactive({"count": 0})

        @computed
        def doubled():
            return state["count"] * 2

        doubled.value  # 0
        state["count"] = 5
        doubled.value  # 10

        @computed(cache=False)
        def fresh():
            ...
    """
    if fn is None:
        return lambda f: Computed(f, name=name, cache=cache)
    return Computed(fn, name=name, cache=cache)
