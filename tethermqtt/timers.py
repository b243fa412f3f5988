"""
One-shot timers for the Reconnector.

A timer factory is a callable ``factory(delay, fn)`` that runs ``fn`` once
after ``delay`` seconds and returns a handle with ``cancel()``. Factories
must accept calls from any thread, since state notifications arrive on the
protocol engine's network thread.
"""

import threading


class ThreadingTimerFactory:
    """Run timers on daemon threading.Timer threads (the default)."""
    __slots__ = ()

    def __call__(self, delay, fn):
        timer = threading.Timer(delay, fn)
        timer.daemon = True
        timer.start()
        return timer


class _LoopTimer:
    """Timer handle scheduled on an asyncio event loop."""
    __slots__ = ('_loop', '_handle', '_cancelled')

    def __init__(self, loop, delay, fn):
        self._loop = loop
        self._handle = None
        self._cancelled = False
        loop.call_soon_threadsafe(self._start, delay, fn)

    def _start(self, delay, fn):
        if self._cancelled:
            return
        self._handle = self._loop.call_later(delay, fn)

    def _cancel_handle(self):
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def cancel(self):
        self._cancelled = True
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._cancel_handle)

    @property
    def cancelled(self):
        return self._cancelled


class LoopTimerFactory:
    """Run timers on an asyncio event loop.

    Use this when the application already runs an event loop and wants
    reconnect attempts to start on the loop thread.

    Example:
        loop = asyncio.get_running_loop()
        client = Reconnector(MQTTClient, timer_factory=LoopTimerFactory(loop))
    """
    __slots__ = ('loop',)

    def __init__(self, loop):
        self.loop = loop

    def __call__(self, delay, fn):
        return _LoopTimer(self.loop, delay, fn)
