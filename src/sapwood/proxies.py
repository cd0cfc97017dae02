"""Facade classes, one per container kind.

ReactiveDict, ReactiveList and ReactiveSet implement the mutable
collections.abc interfaces on top of a few tracked primitives, so derived
methods (pop, update, extend, set algebra, ...) are tracked for free.
ReactiveObject does the same for attribute access on records.

Reads depend on the concrete key they touch. Length, iteration and key
enumeration depend on the key set as a whole. Writes only notify when
something actually changed.
"""

from __future__ import annotations

import dataclasses
import inspect
import types
from collections.abc import Mapping, MutableMapping, MutableSequence, MutableSet
from typing import Iterator

from sapwood import _anchor
from sapwood._tracking import notify
from sapwood.reactive import ReactiveProxy, handler_for, register_handler, to_raw

_MISSING = object()


def _differs(old, new) -> bool:
    if old is new:
        return False
    if old is _MISSING:
        return True
    # a container swapped for an equal one still changes what readers track
    if handler_for(old) is not None or handler_for(new) is not None:
        return True
    return old != new


def _binds_to_facade(attr) -> bool:
    """Properties and other data descriptors run with the facade as self."""
    if isinstance(attr, (types.MemberDescriptorType, types.GetSetDescriptorType)):
        return False
    return hasattr(type(attr), "__set__") or hasattr(type(attr), "__delete__")


def _instance_attr(target, name, cls_attr):
    attrs = getattr(target, "__dict__", None)
    if attrs is not None and name in attrs:
        return attrs[name]
    if isinstance(cls_attr, types.MemberDescriptorType):
        return getattr(target, name, _MISSING)
    return _MISSING


class ReactiveObject(ReactiveProxy):
    """A record facade: tracks attribute reads and writes.

    Properties and methods defined on the target's class are bound to the
    facade, so the attribute access they do is tracked too.
    """

    __slots__ = ()

    def __getattr__(self, name: str):
        if name.startswith("_rx_"):
            raise AttributeError(name)

        target = self._rx_target
        cls = type(target)
        cls_attr = inspect.getattr_static(cls, name, _MISSING)

        self._rx_read(name)
        if _binds_to_facade(cls_attr):
            return cls_attr.__get__(self, cls)

        value = _instance_attr(target, name, cls_attr)
        if value is not _MISSING:
            return self._rx_wrap(name, value)

        if cls_attr is _MISSING:
            raise AttributeError(f"{cls.__name__!r} object has no attribute {name!r}")
        if isinstance(cls_attr, types.FunctionType):
            return types.MethodType(cls_attr, self)
        return getattr(target, name)

    def __setattr__(self, name: str, value) -> None:
        target = self._rx_target
        cls_attr = inspect.getattr_static(type(target), name, _MISSING)
        if _binds_to_facade(cls_attr):
            cls_attr.__set__(self, value)
            return

        value = to_raw(value)
        old = _instance_attr(target, name, cls_attr)
        setattr(target, name, value)
        self._rx_changed(
            name,
            value,
            keys_changed=old is _MISSING,
            value_changed=_differs(old, value),
        )

    def __delattr__(self, name: str) -> None:
        target = self._rx_target
        cls_attr = inspect.getattr_static(type(target), name, _MISSING)
        if _binds_to_facade(cls_attr):
            cls_attr.__delete__(self)
            return

        delattr(target, name)
        self._rx_deleted(name)

    def __dir__(self):
        self._rx_has()
        return dir(self._rx_target)

    def __eq__(self, other) -> bool:
        fields(self)
        return self._rx_target == to_raw(other)

    def __hash__(self) -> int:
        return hash(self._rx_target)

    def __repr__(self) -> str:
        return f"ReactiveObject({self._rx_target!r})"


def fields(record: ReactiveObject) -> dict:
    """Instance attributes of a record facade, read through the facade."""
    record._rx_has()
    names = list(getattr(record._rx_target, "__dict__", ()))
    return {name: getattr(record, name) for name in names}


class ReactiveDict(ReactiveProxy, MutableMapping):
    """A map facade: per-key dependencies, key-set dependency for iteration."""

    __slots__ = ()

    # --- Read operations (track) ---

    def __getitem__(self, key):
        self._rx_read(key)
        return self._rx_wrap(key, self._rx_target[key])

    def get(self, key, default=None):
        self._rx_read(key)
        if key in self._rx_target:
            return self._rx_wrap(key, self._rx_target[key])
        return default

    def __contains__(self, key) -> bool:
        self._rx_has(key)
        return key in self._rx_target

    def __len__(self) -> int:
        self._rx_has()
        return len(self._rx_target)

    def __iter__(self) -> Iterator:
        self._rx_has()
        return iter(list(self._rx_target))

    # --- Write operations (notify) ---

    def __setitem__(self, key, value) -> None:
        value = to_raw(value)
        old = self._rx_target.get(key, _MISSING)
        self._rx_target[key] = value
        self._rx_changed(
            key,
            value,
            keys_changed=old is _MISSING,
            value_changed=_differs(old, value),
        )

    def __delitem__(self, key) -> None:
        del self._rx_target[key]
        self._rx_deleted(key)

    def clear(self) -> None:
        keys = list(self._rx_target)
        if not keys:
            return
        self._rx_target.clear()
        notify(self, _anchor.KEYS)
        for key in keys:
            notify(self, key)
        hook = self._rx_options.on_delete
        if hook is not None:
            hook(self._rx_event(None, keys_changed=True, value_changed=True))

    # --- dict API on top of the primitives ---

    def copy(self) -> dict:
        """Plain shallow copy of the raw entries."""
        self._rx_has()
        for key in list(self._rx_target):
            self._rx_read(key)
        return dict(self._rx_target)

    def __or__(self, other):
        if not isinstance(other, Mapping):
            return NotImplemented
        result = self.copy()
        result.update(to_raw(other))
        return result

    def __ror__(self, other):
        if not isinstance(other, Mapping):
            return NotImplemented
        result = dict(to_raw(other))
        result.update(self.copy())
        return result

    def __ior__(self, other):
        self.update(other)
        return self

    def __eq__(self, other) -> bool:
        if isinstance(other, ReactiveDict):
            other = dict(other.items())
        return dict(self.items()) == other

    __hash__ = None

    def __repr__(self) -> str:
        return f"ReactiveDict({self._rx_target!r})"


class ReactiveList(ReactiveProxy, MutableSequence):
    """A sequence facade.

    Index reads depend on that index; length and iteration depend on the
    key set. Any in-range index write counts as a change. Operations that
    shift elements notify every index from the first one touched.
    """

    __slots__ = ()

    def _rx_index(self, index: int) -> int:
        return index + len(self._rx_target) if index < 0 else index

    def _rx_slice_start(self, index: slice, length: int) -> int:
        """Lowest position a slice write or delete can change."""
        touched = range(*index.indices(length))
        if touched:
            return min(touched[0], touched[-1])
        # an empty forward slice still inserts at its start
        return touched.start if touched.step > 0 else length

    def _rx_values(self) -> list:
        """Raw copy of the elements, depending on every index."""
        self._rx_has()
        for i in range(len(self._rx_target)):
            self._rx_read(i)
        return list(self._rx_target)

    def _rx_shifted(self, start: int, old_len: int) -> None:
        new_len = len(self._rx_target)
        for i in range(start, max(old_len, new_len)):
            notify(self, i)
        if new_len != old_len:
            notify(self, _anchor.KEYS)

    # --- Read operations (track) ---

    def __getitem__(self, index):
        if isinstance(index, slice):
            self._rx_has()
            for i in range(*index.indices(len(self._rx_target))):
                self._rx_read(i)
            return [self._rx_wrap(None, v) for v in self._rx_target[index]]
        i = self._rx_index(index)
        if index < 0 or i >= len(self._rx_target):
            # the element seen depends on the length
            self._rx_has()
        self._rx_read(i)
        return self._rx_wrap(i, self._rx_target[index])

    def __len__(self) -> int:
        self._rx_has()
        return len(self._rx_target)

    def __iter__(self) -> Iterator:
        self._rx_has()
        for i, value in enumerate(list(self._rx_target)):
            self._rx_read(i)
            yield self._rx_wrap(i, value)

    def __contains__(self, value) -> bool:
        value = to_raw(value)
        return any(to_raw(v) is value or to_raw(v) == value for v in self)

    # --- Write operations (notify) ---

    def __setitem__(self, index, value) -> None:
        if isinstance(index, slice):
            old_len = len(self._rx_target)
            start = self._rx_slice_start(index, old_len)
            self._rx_target[index] = [to_raw(v) for v in value]
            self._rx_shifted(start, old_len)
            hook = self._rx_options.on_write
            if hook is not None:
                hook(self._rx_event(index, value, keys_changed=True, value_changed=True))
            return

        value = to_raw(value)
        i = self._rx_index(index)
        self._rx_target[index] = value
        # aliasing makes equality unreliable here: every index write counts
        self._rx_changed(i, value, keys_changed=False, value_changed=True)

    def __delitem__(self, index) -> None:
        old_len = len(self._rx_target)
        if isinstance(index, slice):
            start = self._rx_slice_start(index, old_len)
        else:
            start = self._rx_index(index)
        del self._rx_target[index]
        self._rx_shifted(start, old_len)
        hook = self._rx_options.on_delete
        if hook is not None:
            hook(self._rx_event(index, keys_changed=True, value_changed=True))

    def insert(self, index: int, value) -> None:
        old_len = len(self._rx_target)
        start = min(max(self._rx_index(index), 0), old_len)
        self._rx_target.insert(index, to_raw(value))
        self._rx_shifted(start, old_len)
        hook = self._rx_options.on_write
        if hook is not None:
            hook(self._rx_event(start, value, keys_changed=True, value_changed=True))

    def clear(self) -> None:
        old_len = len(self._rx_target)
        if not old_len:
            return
        self._rx_target.clear()
        self._rx_shifted(0, old_len)
        hook = self._rx_options.on_delete
        if hook is not None:
            hook(self._rx_event(None, keys_changed=True, value_changed=True))

    def sort(self, *, key=None, reverse: bool = False) -> None:
        self._rx_target.sort(key=key, reverse=reverse)
        self._rx_shifted(0, len(self._rx_target))

    # --- list API on top of the primitives ---

    def copy(self) -> list:
        return self._rx_values()

    def __add__(self, other):
        if not isinstance(other, (list, ReactiveList)):
            return NotImplemented
        return self._rx_values() + list(to_raw(other))

    def __radd__(self, other):
        if not isinstance(other, list):
            return NotImplemented
        return other + self._rx_values()

    def __mul__(self, n: int) -> list:
        return self._rx_values() * n

    __rmul__ = __mul__

    def __imul__(self, n: int):
        self[:] = self._rx_values() * n
        return self

    def __eq__(self, other) -> bool:
        if isinstance(other, ReactiveList):
            other = list(other)
        return list(self) == other

    __hash__ = None

    def __repr__(self) -> str:
        return f"ReactiveList({self._rx_target!r})"


class ReactiveSet(ReactiveProxy, MutableSet):
    """A set facade: membership tests depend on the element tested."""

    __slots__ = ()

    @classmethod
    def _from_iterable(cls, it):
        # set algebra (a | b, a - b, ...) returns plain sets
        return {to_raw(v) for v in it}

    # --- Read operations (track) ---

    def __contains__(self, value) -> bool:
        value = to_raw(value)
        self._rx_has(value)
        return value in self._rx_target

    def __len__(self) -> int:
        self._rx_has()
        return len(self._rx_target)

    def __iter__(self) -> Iterator:
        self._rx_has()
        for value in list(self._rx_target):
            yield self._rx_wrap(None, value)

    # --- Write operations (notify) ---

    def add(self, value) -> None:
        value = to_raw(value)
        if value in self._rx_target:
            return
        self._rx_target.add(value)
        self._rx_changed(value, value, keys_changed=True, value_changed=True)

    def discard(self, value) -> None:
        value = to_raw(value)
        if value not in self._rx_target:
            return
        self._rx_target.discard(value)
        self._rx_deleted(value)

    def clear(self) -> None:
        values = list(self._rx_target)
        if not values:
            return
        self._rx_target.clear()
        notify(self, _anchor.KEYS)
        for value in values:
            notify(self, value)
        hook = self._rx_options.on_delete
        if hook is not None:
            hook(self._rx_event(None, keys_changed=True, value_changed=True))

    # --- set API on top of the primitives ---

    def _rx_values(self) -> set:
        self._rx_has()
        return set(self._rx_target)

    def copy(self) -> set:
        return self._rx_values()

    def union(self, *others) -> set:
        return self._rx_values().union(*map(to_raw, others))

    def intersection(self, *others) -> set:
        return self._rx_values().intersection(*map(to_raw, others))

    def difference(self, *others) -> set:
        return self._rx_values().difference(*map(to_raw, others))

    def symmetric_difference(self, other) -> set:
        return self._rx_values().symmetric_difference(to_raw(other))

    def issubset(self, other) -> bool:
        return self._rx_values().issubset(to_raw(other))

    def issuperset(self, other) -> bool:
        return self._rx_values().issuperset(to_raw(other))

    def update(self, *others) -> None:
        for other in others:
            for value in list(to_raw(other)):
                self.add(value)

    def intersection_update(self, *others) -> None:
        keep = set(self._rx_target).intersection(*map(to_raw, others))
        for value in set(self._rx_target) - keep:
            self.discard(value)

    def difference_update(self, *others) -> None:
        for other in others:
            for value in list(to_raw(other)):
                self.discard(value)

    def symmetric_difference_update(self, other) -> None:
        for value in set(to_raw(other)):
            if value in self._rx_target:
                self.discard(value)
            else:
                self.add(value)

    def __repr__(self) -> str:
        return f"ReactiveSet({self._rx_target!r})"


def _is_record(target) -> bool:
    return dataclasses.is_dataclass(target) and not isinstance(target, type)


register_handler(dict, ReactiveDict)
register_handler(list, ReactiveList)
register_handler(set, ReactiveSet)
register_handler(types.SimpleNamespace, ReactiveObject)
register_handler(_is_record, ReactiveObject)
