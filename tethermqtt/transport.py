"""
paho-mqtt adapter for TetherMQTT.

PahoSession is the UnderlyingSession the controller drives. It turns paho's
callbacks into the six-state lifecycle, keeps the subscription map and
re-subscribes after every successful connect.

paho's own reconnect loop is disabled: every failure ends the paho network
thread and is reported as ERROR followed by CLOSED, so reconnection policy
stays with the Reconnector. A fresh paho client is built on every connect(),
and callbacks from a replaced client are ignored.
"""

import threading

import paho.mqtt.client as mqtt

from .logging import get_logger
from .session import SessionState, UnderlyingSession


def create_paho_client(options):
    """Build a paho client for one connection attempt.

    Args:
        options: ConnectOptions

    Returns:
        paho.mqtt.client.Client with credentials, will and TLS applied
    """
    client = mqtt.Client(
        mqtt.CallbackAPIVersion.VERSION2,
        client_id=options.client_id,
        clean_session=options.clean_session,
        protocol=mqtt.MQTTv311,
        reconnect_on_failure=False,
    )

    if options.username is not None:
        client.username_pw_set(options.username, options.password)

    will = options.will
    if will is not None:
        client.will_set(will.topic, will.payload, will.qos, will.retain)

    if options.tls:
        client.tls_set()

    return client


class PahoSession(UnderlyingSession):
    """
    Underlying session backed by paho-mqtt.

    Handlers are called from paho's network thread, except for STARTING,
    CONNECTING and CLOSING, which are reported from the calling thread.
    """

    def __init__(self, client_factory=None):
        """
        Args:
            client_factory: callable(options) -> paho client. Defaults to
                create_paho_client.
        """
        self._client_factory = client_factory or create_paho_client
        self._lock = threading.RLock()
        self._client = None
        self._state = SessionState.CLOSED
        self._subscriptions = {}  # topic_filter -> qos

        self._on_state = None
        self._on_message = None
        self._on_delivery = None

        self._log = get_logger('tethermqtt.transport')

    # Handler registration

    def set_state_handler(self, fn):
        self._on_state = fn

    def set_message_handler(self, fn):
        self._on_message = fn

    def set_delivery_handler(self, fn):
        self._on_delivery = fn

    def state(self):
        return self._state

    @property
    def subscriptions(self):
        """Copy of the current {filter: qos} map."""
        with self._lock:
            return dict(self._subscriptions)

    # State reporting

    def _notify(self, state):
        self._log.debug("state -> %s", state)
        handler = self._on_state
        if handler is not None:
            handler(state)

    def _set_state(self, state):
        with self._lock:
            self._state = state
        self._notify(state)

    def _is_current(self, client):
        with self._lock:
            return client is self._client

    def _release(self, client):
        """Detach a client so late callbacks from it are ignored.

        Returns:
            bool: True if the client was still the current one
        """
        with self._lock:
            if client is not self._client:
                return False
            self._client = None
            return True

    def _fail(self, client):
        """Report a failed or lost connection as ERROR then CLOSED."""
        if not self._release(client):
            return
        client.loop_stop()
        self._set_state(SessionState.ERROR)
        self._set_state(SessionState.CLOSED)

    # Operations

    def connect(self, options):
        """
        Start an asynchronous connection with a new paho client.

        Args:
            options: validated ConnectOptions
        """
        with self._lock:
            previous = self._client
            self._client = None
        if previous is not None:
            previous.disconnect()
            previous.loop_stop()

        client = self._client_factory(options)
        client.on_connect = self._handle_connect
        client.on_connect_fail = self._handle_connect_fail
        client.on_disconnect = self._handle_disconnect
        client.on_message = self._handle_message
        client.on_publish = self._handle_publish

        with self._lock:
            self._client = client

        self._set_state(SessionState.STARTING)
        try:
            client.connect_async(options.host, options.port, options.keepalive)
            self._set_state(SessionState.CONNECTING)
            client.loop_start()
        except OSError as e:
            self._log.error("Cannot start connection to %s:%d: %s", options.host, options.port, e)
            self._fail(client)

    def disconnect(self):
        """Close the connection gracefully."""
        with self._lock:
            client = self._client
        if client is None:
            if self._state != SessionState.CLOSED:
                self._set_state(SessionState.CLOSED)
            return

        self._set_state(SessionState.CLOSING)
        rc = client.disconnect()
        if rc != mqtt.MQTT_ERR_SUCCESS:
            # Not connected yet: paho will not report a disconnect
            self._log.debug("disconnect before connection was up (rc=%s)", rc)
            if self._release(client):
                client.loop_stop()
                self._set_state(SessionState.CLOSED)

    def publish(self, topic, payload, qos, retain):
        """
        Publish through the current paho client.

        Returns:
            int: paho message id for QoS 1/2, 0 for QoS 0 or when there is
                 no connection
        """
        with self._lock:
            client = self._client
        if client is None:
            self._log.warning("Publish to '%s' dropped: no connection", topic)
            return 0

        info = client.publish(topic, payload, qos, retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            self._log.warning("Publish to '%s' not sent now (rc=%s)", topic, info.rc)
        return info.mid if qos > 0 else 0

    def subscribe(self, subscriptions):
        """
        Add subscriptions. They are sent now if connected and re-sent on
        every later connect.

        Args:
            subscriptions: dict of topic_filter -> qos
        """
        with self._lock:
            self._subscriptions.update(subscriptions)
            client = self._client
            connected = self._state == SessionState.CONNECTED
        if client is not None and connected and subscriptions:
            client.subscribe(list(subscriptions.items()))

    def unsubscribe(self, topics):
        """
        Remove subscriptions.

        Args:
            topics: list of topic filters
        """
        with self._lock:
            for topic in topics:
                self._subscriptions.pop(topic, None)
            client = self._client
            connected = self._state == SessionState.CONNECTED
        if client is not None and connected and topics:
            client.unsubscribe(list(topics))

    # paho callbacks (network thread)

    def _handle_connect(self, client, userdata, flags, reason_code, properties):
        if not self._is_current(client):
            return
        if reason_code.is_failure:
            self._log.error("Connection refused: %s", reason_code)
            self._fail(client)
            return

        with self._lock:
            self._state = SessionState.CONNECTED
            subscriptions = list(self._subscriptions.items())
        if subscriptions:
            client.subscribe(subscriptions)
        self._notify(SessionState.CONNECTED)

    def _handle_connect_fail(self, client, userdata):
        if not self._is_current(client):
            return
        self._log.warning("Connection attempt failed")
        self._fail(client)

    def _handle_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        with self._lock:
            closing = self._state == SessionState.CLOSING
        if not self._release(client):
            return
        client.loop_stop()

        if closing or not reason_code.is_failure:
            self._set_state(SessionState.CLOSED)
        else:
            self._log.warning("Connection lost: %s", reason_code)
            self._set_state(SessionState.ERROR)
            self._set_state(SessionState.CLOSED)

    def _handle_message(self, client, userdata, message):
        if not self._is_current(client):
            return
        handler = self._on_message
        if handler is not None:
            handler(message.topic, message.payload, bool(message.retain))

    def _handle_publish(self, client, userdata, mid, reason_code, properties):
        if not self._is_current(client):
            return
        handler = self._on_delivery
        if handler is not None:
            handler(mid)
