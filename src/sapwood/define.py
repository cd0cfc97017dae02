"""Tracked and memoized fields on ordinary objects.

define_property() installs a field whose reads and writes go through a
tracked single-value cell; define_computed() installs a field backed by a
Computed. auto() does both for a whole object: instance attributes become
tracked fields, properties become memoized ones.

Fields are per instance. The class gets a data descriptor that looks the
cell up on the instance and falls back to the class's original attribute
for instances that have no field of that name.
"""

from __future__ import annotations

import functools
import inspect
import logging
import types
from dataclasses import replace
from typing import Callable, Mapping

from sapwood.computed import Computed
from sapwood.proxies import ReactiveList
from sapwood.reactive import DEFAULT_OPTIONS, ReactiveOptions, reactive, to_raw

logger = logging.getLogger("sapwood.define")

_FIELDS = "__sapwood_fields__"
_MISSING = object()


class _TrackedCell:
    """A single tracked value, stored in a one-attribute record facade."""

    __slots__ = ("_atom",)

    def __init__(self, value, options: ReactiveOptions) -> None:
        self._atom = reactive(types.SimpleNamespace(value=to_raw(value)), options)

    @property
    def value(self):
        value = self._atom.value
        if isinstance(value, ReactiveList):
            # readers of a list field also care about its length
            len(value)
        return value

    @value.setter
    def value(self, value) -> None:
        self._atom.value = value


class _Field:
    """Class-level data descriptor dispatching to per-instance cells."""

    def __init__(self, name: str, fallback) -> None:
        self.name = name
        self.fallback = fallback

    def __get__(self, instance, owner=None):
        if instance is None:
            return self
        cell = _cells(instance).get(self.name)
        if cell is not None:
            return cell.value

        fallback = self.fallback
        if hasattr(type(fallback), "__set__"):
            return fallback.__get__(instance, owner)
        if self.name in vars(instance):
            return vars(instance)[self.name]
        if fallback is _MISSING:
            raise AttributeError(
                f"{type(instance).__name__!r} object has no attribute {self.name!r}"
            )
        if hasattr(type(fallback), "__get__"):
            return fallback.__get__(instance, owner)
        return fallback

    def __set__(self, instance, value) -> None:
        cell = _cells(instance).get(self.name)
        if cell is not None:
            cell.value = value
        elif hasattr(type(self.fallback), "__set__"):
            self.fallback.__set__(instance, value)
        else:
            vars(instance)[self.name] = value

    def __delete__(self, instance) -> None:
        cell = _cells(instance).pop(self.name, None)
        if isinstance(cell, Computed):
            cell.dispose()
        if cell is not None:
            return
        if hasattr(type(self.fallback), "__delete__"):
            self.fallback.__delete__(instance)
        elif self.name in vars(instance):
            del vars(instance)[self.name]
        else:
            raise AttributeError(self.name)


def _cells(instance) -> dict:
    return vars(instance).get(_FIELDS, {})


def _install(target, name: str, cell) -> None:
    cls = type(target)
    if not isinstance(cls.__dict__.get(name), _Field):
        fallback = inspect.getattr_static(cls, name, _MISSING)
        setattr(cls, name, _Field(name, fallback))
        logger.debug("Installed field %s.%s", cls.__name__, name)

    cells = vars(target).setdefault(_FIELDS, {})
    vars(target).pop(name, None)
    old = cells.get(name)
    if isinstance(old, Computed):
        old.dispose()
    cells[name] = cell


def define_property(
    target,
    name: str,
    value=None,
    *,
    deep: bool | None = None,
    options: ReactiveOptions | None = None,
) -> None:
    """Install a tracked field `name` on target, starting at `value`.

    Usage:
        class Point:
            pass

        p = Point()
        define_property(p, "x", 1)
        doubled = Computed(lambda: p.x * 2)
        doubled.value  # 2
        p.x = 5
        doubled.value  # 10
    """
    opts = replace(options or DEFAULT_OPTIONS, name=name)
    if deep is not None:
        opts = replace(opts, deep=deep)
    _install(target, name, _TrackedCell(value, opts))


def define_computed(
    target,
    name: str,
    getter: Callable[[], object],
    setter: Callable[[object], None] | None = None,
    *,
    cache: bool = True,
    **hooks,
) -> Computed:
    """Install a field `name` on target backed by a Computed.

    Returns the node, mostly for tests and disposal.
    """
    node = Computed(getter, setter, name=name, cache=cache, **hooks)
    _install(target, name, node)
    return node


def auto(obj, *, cache: Mapping[str, bool] | None = None):
    """Make obj's attributes tracked and its properties memoized. Returns obj.

    `cache` maps property names to their cache flag (default True).
    """
    cache = cache or {}
    cls = type(obj)

    for name, value in list(vars(obj).items()):
        if name != _FIELDS:
            define_property(obj, name, value)

    names = {name for klass in cls.__mro__ for name in vars(klass)}
    for name in sorted(names):
        attr = inspect.getattr_static(cls, name)
        if isinstance(attr, _Field):
            attr = attr.fallback
        if not isinstance(attr, property) or attr.fget is None:
            continue
        define_computed(
            obj,
            name,
            functools.partial(attr.fget, obj),
            functools.partial(attr.fset, obj) if attr.fset is not None else None,
            cache=cache.get(name, True),
        )

    return obj
