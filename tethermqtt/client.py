"""
TetherMQTT session controller.

MQTTClient owns one underlying session and adds presence messaging:
- publishes the online announcement whenever the connection comes up
- publishes the last will itself on a graceful disconnect, so observers see
  "offline" whether the client exits cleanly or not (the broker only sends
  the will for connections that drop without DISCONNECT)
"""

import threading
import time

from .config import ClientConfig, ConnectOptions
from .errors import MQTTConfigError
from .logging import get_logger
from .qos import QoS, AckWaiter, requires_ack, validate_qos
from .session import MQTTSession, SessionState, split_subscribe_args, topic_list
from .transport import PahoSession
from .utils import to_bytes, validate_topic_filter, validate_topic_name


def _check_callback(fn, name):
    if fn is not None and not callable(fn):
        raise MQTTConfigError('%s must be callable or None' % name, name)


class MQTTClient(MQTTSession):
    """
    MQTT client with presence messaging and graceful shutdown.

    Example:
        client = MQTTClient()
        client.set_state_callback(lambda state: print('state:', state))
        client.connect(ConnectOptions(host='localhost',
                                      will_topic='presence/desk/status',
                                      will_message='offline', will_qos=1,
                                      online_message='online'))
        ...
        client.disconnect()   # publishes 'offline', waits for PUBACK
    """

    def __init__(self, session_factory=None, config=None):
        """
        Initialize the client.

        Args:
            session_factory: callable returning a new UnderlyingSession.
                Defaults to PahoSession.
            config: ClientConfig instance. If None, uses defaults.
        """
        self.config = config or ClientConfig()
        self.config.validate()

        self._log = get_logger('tethermqtt.client', self.config.log_level)

        self._session = (session_factory or PahoSession)()
        get_logger('tethermqtt.transport', self.config.log_level)
        self._lock = threading.RLock()
        self._options = None
        self._hooks_installed = False

        self._message_callback = None
        self._state_callback = None

        # Will publish on disconnect
        self._will_waiter = AckWaiter()

    def __repr__(self):
        return 'MQTTClient(state=%r)' % self.state()

    @property
    def options(self):
        """ConnectOptions passed to the last connect(), or None."""
        return self._options

    # Callback invocation

    def _invoke(self, fn, kind, *args):
        try:
            fn(*args)
        except Exception as e:
            self._log.error("Error in %s callback: %s", kind, e)

    def _handle_state(self, state):
        with self._lock:
            callback = self._state_callback
            options = self._options

        if state == SessionState.CONNECTED:
            self._log.info("Connected")
        elif state == SessionState.ERROR:
            self._log.warning("Connection error")
        else:
            self._log.debug("State: %s", state)

        # The observer sees the raw transition before our side effects
        if callback is not None:
            self._invoke(callback, "state '%s'" % state, state)

        if state == SessionState.CONNECTED and options is not None:
            self._announce_online(options)

    def _handle_message(self, topic, payload, retained):
        with self._lock:
            callback = self._message_callback
        if callback is not None:
            self._invoke(callback, "message '%s'" % topic, topic, payload, retained)

    def _handle_delivery(self, mid):
        self._will_waiter.delivered(mid)

    # Presence

    def _announce_online(self, options):
        online = options.online
        if online is None:
            return
        self._log.debug("Publishing online message to '%s'", online.topic)
        try:
            self._session.publish(online.topic, online.payload, online.qos, online.retain)
        except Exception as e:
            self._log.error("Online message to '%s' failed: %s", online.topic, e)

    def _publish_will(self, will):
        """Publish the will before a graceful disconnect. Never raises."""
        wait_for_ack = requires_ack(will.qos)
        if wait_for_ack:
            self._will_waiter.arm()

        try:
            mid = self._session.publish(will.topic, will.payload, will.qos, will.retain)
        except Exception as e:
            self._will_waiter.disarm()
            self._log.error("Will message to '%s' failed: %s", will.topic, e)
            return

        if not wait_for_ack:
            # QoS 0 has no acknowledgment, give the packet time to leave
            time.sleep(self.config.will_grace_period)
            return

        if not mid:
            self._will_waiter.disarm()
            return

        self._will_waiter.expect(mid)
        if self._will_waiter.wait(self.config.will_ack_timeout):
            self._log.debug("Will message delivered, disconnecting")
        else:
            self._log.warning("Will message to '%s' not acknowledged within %ss, disconnecting anyway",
                              will.topic, self.config.will_ack_timeout)

    # MQTTSession

    def connect(self, options=None):
        """
        Connect to a broker.

        Args:
            options: ConnectOptions, a dict of ConnectOptions keywords, or
                None for defaults. Options become read-only.

        Returns:
            self. Completion is reported through the state callback.

        Raises:
            MQTTConfigError: if the options are invalid
        """
        options = ConnectOptions.coerce(options)

        with self._lock:
            self._options = options
            install = not self._hooks_installed
            self._hooks_installed = True
        self._will_waiter.disarm()

        if install:
            self._session.set_state_handler(self._handle_state)
            self._session.set_message_handler(self._handle_message)
            self._session.set_delivery_handler(self._handle_delivery)

        self._log.info("Connecting to %s:%d as '%s'", options.host, options.port, options.client_id)
        self._session.connect(options)
        return self

    def disconnect(self):
        """
        Disconnect gracefully.

        Publishes the will first when one is configured and
        publish_will_on_disconnect is set. For QoS 1/2 waits for the
        acknowledgment, at most config.will_ack_timeout seconds.

        Call it from application code, not from a state or message
        callback: callbacks run on the network thread, which cannot
        process the acknowledgment while it waits, so a QoS 1/2 will then
        always takes the full will_ack_timeout.

        Returns:
            self
        """
        with self._lock:
            options = self._options

        will = None
        if options is not None and options.publish_will_on_disconnect:
            will = options.will

        if will is not None and self._session.state() == SessionState.CONNECTED:
            self._publish_will(will)

        self._log.info("Disconnecting")
        self._session.disconnect()
        return self

    def publish(self, topic, payload, qos=QoS.AT_MOST_ONCE, retain=False):
        """
        Publish a message.

        Args:
            topic: str topic name (no wildcards)
            payload: str or bytes
            qos: 0, 1 or 2
            retain: retain flag

        Returns:
            int: message id (0 for QoS 0)

        Raises:
            MQTTConfigError: on an invalid topic, QoS or payload
        """
        validate_qos(qos)
        validate_topic_name(topic)
        return self._session.publish(topic, to_bytes(payload), qos, bool(retain))

    def subscribe(self, topic, qos=QoS.AT_MOST_ONCE, callback=None):
        """
        Subscribe to one filter, or to a {filter: qos} mapping.

        Subscriptions are additive and survive reconnects.

        Returns:
            self

        Raises:
            MQTTConfigError: on an invalid filter or QoS, or when a callback
                is given (per-topic callbacks need a Dispatcher)
        """
        qos, callback = split_subscribe_args(qos, callback)
        if callback is not None:
            raise MQTTConfigError('per-topic callbacks require a Dispatcher', 'callback')

        if isinstance(topic, dict):
            subscriptions = dict(topic)
        else:
            subscriptions = {topic: qos}

        for topic_filter, filter_qos in subscriptions.items():
            validate_topic_filter(topic_filter)
            validate_qos(filter_qos)

        self._session.subscribe(subscriptions)
        return self

    def unsubscribe(self, topic):
        """
        Unsubscribe from a filter or an iterable of filters.

        Returns:
            self
        """
        self._session.unsubscribe(topic_list(topic))
        return self

    def set_message_callback(self, fn):
        """
        Set the callback for every received message.

        Args:
            fn: callable(topic, payload, retained) or None to remove it

        Returns:
            self
        """
        _check_callback(fn, 'fn')
        with self._lock:
            self._message_callback = fn
        return self

    def set_state_callback(self, fn):
        """
        Set the callback for connection state changes.

        Args:
            fn: callable(state) or None. state is one of 'starting',
                'connecting', 'connected', 'error', 'closing', 'closed'.

        Returns:
            self
        """
        _check_callback(fn, 'fn')
        with self._lock:
            self._state_callback = fn
        return self

    def state(self):
        """Return the current connection state."""
        return self._session.state()
