"""Data anchor: plain Python structures that hold the process-wide state.

The target→facade index and the deferred task queue live here. Edge indexes
are not stored here: each facade and node carries its own half of every
edge (see _tracking), so dropping a facade or node lets the garbage
collector reclaim its edges along with it.
"""

from collections import deque
from typing import Callable

# id(raw target) -> weakref to its facade
facades: dict[int, object] = {}

# Dependency keys
KEYS = object()  # the key set of a container as a whole
NODE = object()  # the value of a computation node

# Scheduler state
task_queue: deque[Callable[[], None]] = deque()
drain_scheduled: bool = False
draining: bool = False
defer: Callable[[Callable[[], None]], object] | None = None
