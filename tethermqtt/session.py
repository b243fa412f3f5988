"""
Session interfaces for TetherMQTT.

This module defines:
- The six connection states reported by a session
- MQTTSession, the capability surface shared by the controller and every
  decorator, so any of them can wrap any other
- UnderlyingSession, the contract of the protocol engine adapter the
  controller owns
"""

from abc import ABC, abstractmethod

from .qos import QoS


class SessionState:
    """Connection lifecycle states, reported as plain strings."""
    STARTING = 'starting'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'
    ERROR = 'error'
    CLOSING = 'closing'
    CLOSED = 'closed'

    ALL = (STARTING, CONNECTING, CONNECTED, ERROR, CLOSING, CLOSED)


class MQTTSession(ABC):
    """
    Capability surface shared by MQTTClient, Reconnector and Dispatcher.

    Every operation is listed here; decorators implement each one
    explicitly instead of proxying unknown attributes.
    """

    @abstractmethod
    def connect(self, options):
        """Start connecting with ConnectOptions. Returns self."""

    @abstractmethod
    def disconnect(self):
        """Disconnect gracefully. Returns self."""

    @abstractmethod
    def publish(self, topic, payload, qos=QoS.AT_MOST_ONCE, retain=False):
        """Publish a message. Returns the message id (0 for QoS 0)."""

    @abstractmethod
    def subscribe(self, topic, qos=QoS.AT_MOST_ONCE, callback=None):
        """Subscribe to a filter (or a {filter: qos} mapping). Returns self."""

    @abstractmethod
    def unsubscribe(self, topic):
        """Unsubscribe from a filter or an iterable of filters. Returns self."""

    @abstractmethod
    def set_message_callback(self, fn):
        """Set fn(topic, payload, retained) for received messages. Returns self."""

    @abstractmethod
    def set_state_callback(self, fn):
        """Set fn(state) for state changes. Returns self."""

    @abstractmethod
    def state(self):
        """Return the current SessionState string."""


class UnderlyingSession(ABC):
    """
    Contract of the protocol engine the controller drives.

    Implementations perform network I/O, wire-level retries and QoS
    acknowledgment tracking, and may call the handlers from their own
    thread. Every failure is reported as ERROR immediately followed by
    CLOSED.
    """

    @abstractmethod
    def connect(self, options):
        """Begin connecting; progress is reported through the state handler."""

    @abstractmethod
    def disconnect(self):
        """Close the connection; reports CLOSING then CLOSED."""

    @abstractmethod
    def publish(self, topic, payload, qos, retain):
        """Send a PUBLISH. Returns the message id (0 for QoS 0)."""

    @abstractmethod
    def subscribe(self, subscriptions):
        """Add {filter: qos} entries to the session's subscriptions."""

    @abstractmethod
    def unsubscribe(self, topics):
        """Remove a list of filters from the session's subscriptions."""

    @abstractmethod
    def state(self):
        """Return the current SessionState string."""

    @abstractmethod
    def set_state_handler(self, fn):
        """Set fn(state)."""

    @abstractmethod
    def set_message_handler(self, fn):
        """Set fn(topic, payload_bytes, retained)."""

    @abstractmethod
    def set_delivery_handler(self, fn):
        """Set fn(mid) for acknowledged QoS 1/2 publishes."""


def split_subscribe_args(qos, callback):
    """
    Normalize subscribe() arguments.

    Allows subscribe(topic, callback) as a shorthand for
    subscribe(topic, QoS.AT_MOST_ONCE, callback).

    Returns:
        (qos, callback) tuple
    """
    if callable(qos):
        return QoS.AT_MOST_ONCE, qos
    if qos is None:
        qos = QoS.AT_MOST_ONCE
    return qos, callback


def topic_list(topics):
    """Return a list of filters from a single filter or an iterable."""
    if isinstance(topics, str):
        return [topics]
    return list(topics)
