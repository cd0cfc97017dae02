"""Textual integration for sapwood. Opt-in, requires textual.

install(app) drains the change-notification queue from the app's message
loop. watch() is sapwood.watch with a guard: handlers are skipped while the
app is not running or paused, NoMatches from widget queries is ignored, and
calls arriving on another thread are marshaled via call_from_thread.
"""

import logging
import threading
from contextlib import contextmanager

from textual.css.query import NoMatches

from sapwood import set_scheduler, watch as _watch

logger = logging.getLogger("sapwood.textual")

# Pause state, keyed by id(app).
_paused_apps: set[int] = set()


def install(app) -> None:
    """Drain sapwood's task queue via app.call_next."""
    set_scheduler(app.call_next)
    logger.debug("Scheduler bound to %r", app)


@contextmanager
def pause(app):
    """Suspend guarded handlers during widget replacement."""
    key = id(app)
    _paused_apps.add(key)
    try:
        yield
    finally:
        _paused_apps.discard(key)


def is_safe(app) -> bool:
    """Is the widget tree in a queryable state?"""
    return app.is_running and id(app) not in _paused_apps


def watch(app, selector, handler, *, deep=False, immediate=False):
    """watch() that safely bridges to Textual widgets."""
    _main = threading.get_ident()

    def _guarded(new, old):
        if not is_safe(app):
            return
        if threading.get_ident() != _main:
            app.call_from_thread(_safe, new, old)
        else:
            _safe(new, old)

    def _safe(new, old):
        try:
            handler(new, old)
        except NoMatches:
            pass

    return _watch(selector, _guarded, deep=deep, immediate=immediate)
