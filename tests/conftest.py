"""
pytest configuration and fixtures for TetherMQTT tests.

No broker is needed: FakeSession stands in for the paho adapter and
ManualTimerFactory lets tests fire reconnect timers explicitly.
"""

from functools import partial

import pytest

from tethermqtt.client import MQTTClient
from tethermqtt.config import ClientConfig, ConnectOptions
from tethermqtt.session import SessionState, UnderlyingSession


# Configure pytest-asyncio for the asyncio timer tests
pytest_plugins = ('pytest_asyncio',)


class FakeSession(UnderlyingSession):
    """Underlying session that records calls and emits notifications on demand."""

    def __init__(self, auto_ack=False):
        self.calls = []
        self.published = []
        self.connect_options = []
        self.subscriptions = {}
        self.unsubscribed = []
        self.auto_ack = auto_ack
        self.publish_error = None

        self._state = SessionState.CLOSED
        self._next_mid = 0

        self.on_state = None
        self.on_message = None
        self.on_delivery = None

    def connect(self, options):
        self.calls.append('connect')
        self.connect_options.append(options)

    def disconnect(self):
        self.calls.append('disconnect')

    def publish(self, topic, payload, qos, retain):
        self.calls.append('publish')
        if self.publish_error is not None:
            raise self.publish_error
        self.published.append((topic, payload, qos, retain))
        if qos == 0:
            return 0
        self._next_mid += 1
        mid = self._next_mid
        if self.auto_ack and self.on_delivery is not None:
            # Acknowledged before publish() returns, like a fast broker
            self.on_delivery(mid)
        return mid

    def subscribe(self, subscriptions):
        self.calls.append('subscribe')
        self.subscriptions.update(subscriptions)

    def unsubscribe(self, topics):
        self.calls.append('unsubscribe')
        self.unsubscribed.extend(topics)
        for topic in topics:
            self.subscriptions.pop(topic, None)

    def state(self):
        return self._state

    def set_state_handler(self, fn):
        self.on_state = fn

    def set_message_handler(self, fn):
        self.on_message = fn

    def set_delivery_handler(self, fn):
        self.on_delivery = fn

    # Test helpers

    def emit_state(self, *states):
        """Report each state in order, as the transport would."""
        for state in states:
            self._state = state
            if self.on_state is not None:
                self.on_state(state)

    def emit_message(self, topic, payload=b'', retained=False):
        if self.on_message is not None:
            self.on_message(topic, payload, retained)

    def emit_delivered(self, mid):
        if self.on_delivery is not None:
            self.on_delivery(mid)

    def fail(self):
        """Simulate a lost connection."""
        self.emit_state(SessionState.ERROR, SessionState.CLOSED)


class ManualTimer:
    """Timer handle that only fires when a test calls fire()."""

    def __init__(self, delay, fn):
        self.delay = delay
        self.fn = fn
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        """Run the callback, even if cancelled (a timer racing its cancel)."""
        self.fired = True
        self.fn()


class ManualTimerFactory:
    """Timer factory recording every timer it starts."""

    def __init__(self):
        self.timers = []

    def __call__(self, delay, fn):
        timer = ManualTimer(delay, fn)
        self.timers.append(timer)
        return timer

    @property
    def delays(self):
        return [timer.delay for timer in self.timers]

    @property
    def pending(self):
        return [timer for timer in self.timers if not timer.cancelled and not timer.fired]

    @property
    def last(self):
        return self.timers[-1]


# Fixtures

@pytest.fixture
def client_config():
    """Provide a ClientConfig with short shutdown timings."""
    return ClientConfig(
        will_ack_timeout=0.05,
        will_grace_period=0,
        log_level='ERROR'  # Quiet during tests
    )


@pytest.fixture
def fake_session():
    """Provide a fresh FakeSession."""
    return FakeSession()


@pytest.fixture
def acking_session():
    """Provide a FakeSession that acknowledges QoS 1/2 publishes at once."""
    return FakeSession(auto_ack=True)


@pytest.fixture
def timer_factory():
    """Provide a ManualTimerFactory."""
    return ManualTimerFactory()


@pytest.fixture
def client_factory(fake_session, client_config):
    """Provide a factory building an MQTTClient around fake_session."""
    return partial(MQTTClient, lambda: fake_session, client_config)


@pytest.fixture
def client(client_factory):
    """Provide an MQTTClient driving fake_session."""
    return client_factory()


@pytest.fixture
def presence_options():
    """Provide connect options with a will and an online announcement."""
    return ConnectOptions(
        host='broker.test',
        client_id='desk-1',
        will_topic='p/status',
        will_message='offline',
        online_message='online',
    )
