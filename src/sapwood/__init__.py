"""sapwood: fine-grained reactive dependency tracking for Python."""

from importlib.metadata import version as _version

__version__ = _version("sapwood")

from sapwood._tracking import flush, get_pending_count, schedule, set_scheduler
from sapwood.reactive import (
    HookEvent,
    ReactiveOptions,
    ReactiveProxy,
    is_reactive,
    reactive,
    register_handler,
    to_raw,
)
from sapwood.proxies import ReactiveDict, ReactiveList, ReactiveObject, ReactiveSet, fields
from sapwood.computed import Computed, computed
from sapwood.watch import WatchHandle, snapshot, watch
from sapwood.define import auto, define_computed, define_property
# textual is opt-in, not imported here

__all__ = [
    "reactive",
    "to_raw",
    "is_reactive",
    "register_handler",
    "ReactiveOptions",
    "HookEvent",
    "ReactiveProxy",
    "ReactiveDict",
    "ReactiveList",
    "ReactiveObject",
    "ReactiveSet",
    "fields",
    "Computed",
    "computed",
    "watch",
    "WatchHandle",
    "snapshot",
    "define_property",
    "define_computed",
    "auto",
    "schedule",
    "flush",
    "get_pending_count",
    "set_scheduler",
]
