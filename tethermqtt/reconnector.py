"""
Automatic reconnection with exponential backoff.

Reconnector wraps any MQTTSession and re-issues connect() with the last
options whenever the connection closes without an explicit disconnect().

Delays grow from base_delay by backoff_multiplier per attempt, capped at
max_delay, and reset after a successful connect. Only the 'closed' state
schedules a retry: a failure always reports 'error' then 'closed', so
reacting to both would double-schedule.
"""

import threading
from collections import namedtuple
from functools import partial

from .config import ConnectOptions, ReconnectConfig
from .logging import get_logger
from .qos import QoS
from .session import MQTTSession, SessionState
from .timers import ThreadingTimerFactory


ReconnectStatus = namedtuple('ReconnectStatus', ('attempts', 'next_delay'))


class Reconnector(MQTTSession):
    """
    Reconnecting decorator.

    Example:
        client = Reconnector(MQTTClient, ReconnectConfig(max_delay=30))
        client.connect(ConnectOptions(host='broker.local'))
        # broker restarts: reconnects after 1s, 2s, 4s, ... 30s, 30s
    """

    def __init__(self, session_factory=None, config=None, timer_factory=None, **kwargs):
        """
        Initialize the reconnector.

        Args:
            session_factory: callable returning the wrapped MQTTSession.
                Defaults to MQTTClient.
            config: ReconnectConfig. If None, built from kwargs.
            timer_factory: callable(delay, fn) -> handle with cancel().
                Defaults to ThreadingTimerFactory.
            **kwargs: ReconnectConfig options when config is None

        Raises:
            MQTTConfigError: if the backoff settings are invalid
        """
        if session_factory is None:
            from .client import MQTTClient
            session_factory = MQTTClient

        self.config = config or ReconnectConfig(**kwargs)
        self.config.validate()

        self._session = session_factory()
        self._timer_factory = timer_factory or ThreadingTimerFactory()
        self._log = get_logger('tethermqtt.reconnector')

        self._lock = threading.RLock()
        self._current_delay = self.config.base_delay
        self._attempts = 0
        self._timer = None
        self._generation = 0
        self._options = None
        self._intentional = False
        self._callback_installed = False
        self._state_callback = None

    def __repr__(self):
        return 'Reconnector(%r)' % self._session

    # Backoff

    def reconnect_status(self):
        """
        Return the attempt counter and the delay the next retry will use.

        Returns:
            ReconnectStatus(attempts, next_delay)
        """
        with self._lock:
            return ReconnectStatus(self._attempts, self._current_delay)

    @property
    def pending(self):
        """True while a reconnect attempt is scheduled."""
        with self._lock:
            return self._timer is not None

    def _cancel_timer(self):
        # Caller holds self._lock
        self._generation += 1
        timer = self._timer
        self._timer = None
        if timer is not None:
            timer.cancel()

    def _schedule(self):
        # Caller holds self._lock
        self._attempts += 1
        delay = self._current_delay
        self._generation += 1
        self._log.info("Reconnecting in %ss (attempt %d)", delay, self._attempts)
        self._timer = self._timer_factory(delay, partial(self._fire, self._generation))
        self._current_delay = min(self._current_delay * self.config.backoff_multiplier,
                                  self.config.max_delay)

    def _fire(self, generation):
        # Held across the forwarded connect: a disconnect() from another
        # thread waits for the attempt and is issued after it
        with self._lock:
            if generation != self._generation or self._intentional:
                return
            self._timer = None

            self._log.debug("Reconnect attempt %d", self._attempts)
            try:
                self._session.connect(self._options)
            except Exception as e:
                # No state change will follow, so retry from here
                self._log.error("Reconnect attempt failed to start: %s", e)
                if not self._intentional and self._timer is None:
                    self._schedule()
                return

            # disconnect() from inside the attempt ran before the connect
            closed_during_attempt = self._intentional

        if closed_during_attempt:
            self._log.debug("Disconnected during reconnect attempt, closing again")
            self._session.disconnect()

    def _on_state(self, state):
        with self._lock:
            if state == SessionState.CONNECTED:
                if self._attempts:
                    self._log.info("Reconnected after %d attempt(s)", self._attempts)
                self._current_delay = self.config.base_delay
                self._attempts = 0
                self._intentional = False
                self._cancel_timer()
            elif state == SessionState.CLOSED:
                if not self._intentional and self._timer is None and self._options is not None:
                    self._schedule()
            callback = self._state_callback

        if callback is not None:
            try:
                callback(state)
            except Exception as e:
                self._log.error("Error in state '%s' callback: %s", state, e)

    # MQTTSession

    def connect(self, options=None):
        """
        Connect, remembering options for every later reconnect attempt.

        Args:
            options: ConnectOptions, a dict of ConnectOptions keywords, or
                None for defaults. Converted once, so every attempt sends
                the same options and client id.

        Returns:
            self

        Raises:
            MQTTConfigError: if the options are invalid
        """
        options = ConnectOptions.coerce(options)
        with self._lock:
            self._options = options
            self._intentional = False
            install = not self._callback_installed
            self._callback_installed = True
        if install:
            self._session.set_state_callback(self._on_state)
        self._session.connect(options)
        return self

    def disconnect(self):
        """
        Disconnect and stop reconnecting until the next connect().

        Returns:
            self
        """
        with self._lock:
            self._intentional = True
            self._cancel_timer()
        self._session.disconnect()
        return self

    def publish(self, topic, payload, qos=QoS.AT_MOST_ONCE, retain=False):
        return self._session.publish(topic, payload, qos, retain)

    def subscribe(self, topic, qos=QoS.AT_MOST_ONCE, callback=None):
        self._session.subscribe(topic, qos, callback)
        return self

    def unsubscribe(self, topic):
        self._session.unsubscribe(topic)
        return self

    def set_message_callback(self, fn):
        self._session.set_message_callback(fn)
        return self

    def set_state_callback(self, fn):
        """Set fn(state). Called after the reconnect decision for each state."""
        with self._lock:
            self._state_callback = fn
        return self

    def state(self):
        return self._session.state()
