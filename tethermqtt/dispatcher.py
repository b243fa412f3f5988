"""
Pattern-based message dispatch for TetherMQTT.

Dispatcher wraps any MQTTSession and routes each received message to the
callbacks registered with subscribe(), in registration order. The first
matching callback wins; a callback that returns PASS lets dispatch continue
to the next match.

Register specific patterns before broad ones:

    client.subscribe('sensors/outdoor/#', on_outdoor)
    client.subscribe('sensors/#', on_sensor)
    client.subscribe('#', on_anything)
"""

import threading

from .errors import MQTTConfigError
from .logging import get_logger
from .qos import QoS, validate_qos
from .session import MQTTSession, split_subscribe_args, topic_list
from .topic import TopicPattern


# Returned by a callback to let dispatch continue to the next match
PASS = 'pass'


class Subscription:
    """One registered pattern and its callback."""
    __slots__ = ('pattern', 'matcher', 'qos', 'callback')

    def __init__(self, pattern, qos, callback):
        self.pattern = pattern
        self.matcher = TopicPattern(pattern)
        self.qos = qos
        self.callback = callback

    def __repr__(self):
        return 'Subscription(%r, qos=%d)' % (self.pattern, self.qos)


class Dispatcher(MQTTSession):
    """
    Dispatching decorator.

    Callbacks are called as callback(fields, payload, retained). For
    wildcard patterns fields[0] is the topic and fields[1:] are the levels
    matched by the wildcards; for literal patterns fields is empty.

    Example:
        def on_temperature(fields, payload, retained):
            room = fields[1]
            ...

        client = Dispatcher(MQTTClient)
        client.subscribe('home/+/temperature', 1, on_temperature)
    """

    def __init__(self, session_factory=None):
        """
        Args:
            session_factory: callable returning the wrapped MQTTSession.
                Defaults to MQTTClient.
        """
        if session_factory is None:
            from .client import MQTTClient
            session_factory = MQTTClient

        self._session = session_factory()
        self._lock = threading.RLock()
        self._subscriptions = []
        self._log = get_logger('tethermqtt.dispatcher')

        self._session.set_message_callback(self._dispatch)

    def __repr__(self):
        return 'Dispatcher(%r, subscriptions=%d)' % (self._session, len(self._subscriptions))

    @property
    def subscriptions(self):
        """Snapshot of registered subscriptions in dispatch order."""
        with self._lock:
            return list(self._subscriptions)

    def _dispatch(self, topic, payload, retained):
        with self._lock:
            subscriptions = list(self._subscriptions)

        for sub in subscriptions:
            captures = sub.matcher.match(topic)
            if captures is None:
                continue

            fields = [topic] + captures if sub.matcher.has_wildcards else []
            try:
                result = sub.callback(fields, payload, retained)
            except Exception as e:
                self._log.error("Error in callback for '%s': %s", sub.pattern, e)
                continue

            if result != PASS:
                return

        self._log.warning("No matching subscription for '%s', message dropped", topic)

    # MQTTSession

    def subscribe(self, topic, qos=QoS.AT_MOST_ONCE, callback=None):
        """
        Register a callback for a topic pattern and subscribe to it.

        Args:
            topic: topic filter, may contain '+' and '#'
            qos: 0, 1 or 2 (may be omitted: subscribe(topic, callback))
            callback: callable(fields, payload, retained). Return PASS to
                let later matching subscriptions see the message.

        Returns:
            self

        Raises:
            MQTTConfigError: on a missing callback, invalid filter or QoS
        """
        qos, callback = split_subscribe_args(qos, callback)
        if callback is None:
            raise MQTTConfigError('subscribe() requires a callback', 'callback')
        if not callable(callback):
            raise MQTTConfigError('callback must be callable', 'callback')
        validate_qos(qos)

        sub = Subscription(topic, qos, callback)
        with self._lock:
            self._subscriptions.append(sub)

        self._session.subscribe(topic, qos)
        return self

    def unsubscribe(self, topic):
        """
        Remove every subscription registered with the given pattern(s).

        Returns:
            self
        """
        patterns = topic_list(topic)
        with self._lock:
            self._subscriptions = [sub for sub in self._subscriptions
                                   if sub.pattern not in patterns]
        self._session.unsubscribe(patterns)
        return self

    def set_message_callback(self, fn):
        raise MQTTConfigError('Dispatcher routes messages to subscribe() callbacks; '
                              'set_message_callback() is not available', 'fn')

    def connect(self, options=None):
        self._session.connect(options)
        return self

    def disconnect(self):
        self._session.disconnect()
        return self

    def publish(self, topic, payload, qos=QoS.AT_MOST_ONCE, retain=False):
        return self._session.publish(topic, payload, qos, retain)

    def set_state_callback(self, fn):
        self._session.set_state_callback(fn)
        return self

    def state(self):
        return self._session.state()
