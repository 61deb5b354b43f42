"""
Dendron Deferred Continuations

Runs callbacks after the current synchronous step instead of inline.

- Inside a running asyncio loop: scheduled with loop.call_soon()
- Otherwise: queued and drained when the outermost step() exits

Usage:
    with step():
        defer(lambda: mold.attachEngine(engine))
        ...  # callback has not run yet
    # callback has run
"""

import asyncio
import threading
from collections import deque
from contextlib import contextmanager
from typing import Callable, Deque

from dendron.logging import getLogger

log = getLogger()

_local = threading.local()


def _queue() -> Deque[Callable[[], None]]:
    if not hasattr(_local, 'queue'):
        _local.queue = deque()
        _local.depth = 0
    return _local.queue


def _run(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception as exc:
        # A failing continuation never reaches the code that scheduled it
        log.error("Deferred callback failed", errorClass=type(exc).__name__, errorMsg=str(exc), exc_info=True)


def defer(callback: Callable[[], None]) -> None:
    """Schedule a callback to run after the current synchronous step."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    if loop is not None:
        loop.call_soon(_run, callback)
        return

    queue = _queue()
    queue.append(callback)
    if _local.depth == 0:
        flushDeferred()


def flushDeferred() -> int:
    """Run queued callbacks (including ones they schedule). Returns how many ran."""
    queue = _queue()
    count = 0
    while queue:
        _run(queue.popleft())
        count += 1
    return count


@contextmanager
def step():
    """Mark a synchronous step; deferred callbacks run when the outermost step exits."""
    _queue()
    _local.depth += 1
    try:
        yield
    finally:
        _local.depth -= 1
        if _local.depth == 0:
            flushDeferred()
