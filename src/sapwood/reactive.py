"""Reactive facades: containers that track their readers.

reactive(target) returns a facade over a raw container. Reads through the
facade register dependencies of the current computation at per-key
granularity; writes notify the computations that read the changed key.
Nested containers are wrapped lazily, on the way out of a read.

Facades are cached per target: wrapping the same target twice returns the
same facade, and wrapping a facade returns it unchanged. The index holds
facades weakly, so it never keeps a target alive on its own.
"""

from __future__ import annotations

import copy
import weakref
from dataclasses import dataclass, replace
from typing import Any, Callable, TypeVar

from sapwood import _anchor
from sapwood._tracking import depend_on, notify

T = TypeVar("T")


@dataclass(frozen=True)
class HookEvent:
    """What a facade hook receives about the operation that triggered it."""

    name: str | None
    target: Any
    key: Any = None
    value: Any = None
    keys_changed: bool = False
    value_changed: bool = False


Hook = Callable[[HookEvent], object]


@dataclass(frozen=True)
class ReactiveOptions:
    """Options shared by a facade and every facade nested under it."""

    name: str | None = None
    deep: bool = True
    on_read: Hook | None = None
    on_write: Hook | None = None
    on_delete: Hook | None = None
    on_membership_test: Hook | None = None
    # (target, key, value) -> bool; False keeps value raw
    should_wrap: Callable[[Any, Any, Any], bool] | None = None


DEFAULT_OPTIONS = ReactiveOptions()


class ReactiveProxy:
    """Base class of all facades. Holds the raw target and its observers."""

    __slots__ = ("_rx_target", "_rx_options", "_rx_observers", "__weakref__")

    def __init__(self, target, options: ReactiveOptions) -> None:
        object.__setattr__(self, "_rx_target", target)
        object.__setattr__(self, "_rx_options", options)
        object.__setattr__(self, "_rx_observers", {})

    # --- Bookkeeping shared by every kind ---

    def _rx_read(self, key, value=None) -> None:
        depend_on(self, key)
        hook = self._rx_options.on_read
        if hook is not None:
            hook(self._rx_event(key, value))

    def _rx_has(self, key=_anchor.KEYS) -> None:
        depend_on(self, key)
        hook = self._rx_options.on_membership_test
        if hook is not None:
            hook(self._rx_event(None if key is _anchor.KEYS else key))

    def _rx_changed(self, key, value, *, keys_changed: bool, value_changed: bool) -> None:
        if keys_changed:
            notify(self, _anchor.KEYS)
        if value_changed:
            notify(self, key)
        hook = self._rx_options.on_write
        if hook is not None and (keys_changed or value_changed):
            hook(self._rx_event(key, value, keys_changed, value_changed))

    def _rx_deleted(self, key) -> None:
        notify(self, key)
        notify(self, _anchor.KEYS)
        hook = self._rx_options.on_delete
        if hook is not None:
            hook(self._rx_event(key, keys_changed=True, value_changed=True))

    def _rx_event(self, key, value=None, keys_changed=False, value_changed=False) -> HookEvent:
        return HookEvent(
            self._rx_options.name, self._rx_target, key, value, keys_changed, value_changed
        )

    # copying a facade copies its raw target
    def __copy__(self):
        return copy.copy(self._rx_target)

    def __deepcopy__(self, memo):
        return copy.deepcopy(self._rx_target, memo)

    def _rx_wrap(self, key, value):
        """Return value wrapped if deep tracking applies to it."""
        options = self._rx_options
        if not options.deep:
            return value
        if options.should_wrap is not None and not options.should_wrap(
            self._rx_target, key, value
        ):
            return value
        return reactive(value, options)


# type -> facade class
_handlers: dict[type, type[ReactiveProxy]] = {}
# predicates consulted when no type in the MRO has a handler
_fallbacks: list[tuple[Callable[[Any], bool], type[ReactiveProxy]]] = []


def register_handler(kind, facade_cls: type[ReactiveProxy]) -> None:
    """Make instances of `kind` instrumentable with `facade_cls`.

    `kind` is a type (matched along the target's MRO) or a predicate
    called with the target.
    """
    if isinstance(kind, type):
        _handlers[kind] = facade_cls
    else:
        _fallbacks.append((kind, facade_cls))


def handler_for(target) -> type[ReactiveProxy] | None:
    for cls in type(target).__mro__:
        facade_cls = _handlers.get(cls)
        if facade_cls is not None:
            return facade_cls
    for predicate, facade_cls in _fallbacks:
        if predicate(target):
            return facade_cls
    return None


def reactive(target: T, options: ReactiveOptions | None = None, **hooks) -> T:
    """Return the facade for target, creating it on first use.

    Targets with no registered handler are returned unchanged, so mixed
    trees with plain leaves can be wrapped safely.

    Usage:
        state = reactive({"count": 0, "items": []})

        doubled = Computed(lambda: state["count"] * 2)
        doubled.value         # 0
        state["count"] = 5    # doubled is now dirty
        doubled.value         # 10
    """
    if isinstance(target, ReactiveProxy):
        return target

    ref = _anchor.facades.get(id(target))
    if ref is not None:
        facade = ref()
        if facade is not None and facade._rx_target is target:
            return facade

    facade_cls = handler_for(target)
    if facade_cls is None:
        return target

    opts = options or DEFAULT_OPTIONS
    if hooks:
        opts = replace(opts, **hooks)

    facade = facade_cls(target, opts)
    key = id(target)

    def _forget(ref, key=key):
        if _anchor.facades.get(key) is ref:
            del _anchor.facades[key]

    _anchor.facades[key] = weakref.ref(facade, _forget)
    return facade


def to_raw(value: T) -> T:
    """Return the raw target behind a facade; anything else unchanged."""
    if isinstance(value, ReactiveProxy):
        return value._rx_target
    return value


def is_reactive(value) -> bool:
    return isinstance(value, ReactiveProxy)
