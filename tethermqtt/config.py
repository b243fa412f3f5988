"""
TetherMQTT Configuration

Slot-based configuration classes: connection options handed to connect(),
reconnect backoff settings and client shutdown timing.
"""

from collections import namedtuple

from .errors import MQTTConfigError
from .qos import validate_qos
from .utils import generate_client_id, to_bytes, validate_topic_name


Message = namedtuple('Message', ('topic', 'payload', 'qos', 'retain'))


def _check_number(value, field):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MQTTConfigError('%s must be a number, got %r' % (field, value), field)


class ConnectOptions:
    """Options for a single broker connection.

    Will and online announcement settings are kept flat, the way they are
    passed in, and exposed as Message tuples through the ``will`` and
    ``online`` properties.

    Example:
        opts = ConnectOptions(host='broker.local',
                              will_topic='presence/desk', will_message='offline',
                              will_qos=1, will_retain=True,
                              online_message='online')
    """

    __slots__ = (
        'host', 'port', 'tls', 'keepalive', 'clean_session',
        'username', 'password', 'client_id',
        'will_topic', 'will_message', 'will_qos', 'will_retain',
        'online_topic', 'online_message', 'online_qos', 'online_retain',
        'publish_will_on_disconnect',
        '_frozen'
    )

    def __init__(self, **kwargs):
        """Initialize connection options with defaults, override with kwargs.

        Raises:
            MQTTConfigError: on an unknown option name
        """
        object.__setattr__(self, '_frozen', False)

        # Network settings
        self.host = 'localhost'
        self.port = 1883
        self.tls = False
        self.keepalive = 60
        self.clean_session = True

        # Authentication
        self.username = None
        self.password = None
        self.client_id = None

        # Last will
        self.will_topic = None
        self.will_message = None
        self.will_qos = 0
        self.will_retain = False

        # Online announcement (None = inherit from will, see ``online``)
        self.online_topic = None
        self.online_message = None
        self.online_qos = None
        self.online_retain = None

        self.publish_will_on_disconnect = True

        for key, value in kwargs.items():
            if key.startswith('_') or key not in self.__slots__:
                raise MQTTConfigError('unknown connect option %r' % key, key)
            setattr(self, key, value)

        if self.client_id is None:
            self.client_id = generate_client_id()

    def __setattr__(self, name, value):
        if self._frozen:
            raise AttributeError('ConnectOptions are read-only once passed to connect()')
        object.__setattr__(self, name, value)

    def __repr__(self):
        return 'ConnectOptions(host=%r, port=%d, client_id=%r)' % (self.host, self.port, self.client_id)

    @classmethod
    def coerce(cls, options=None):
        """Turn connect() input into validated, read-only options.

        Args:
            options: ConnectOptions, a dict of option keywords, or None
                for defaults

        Returns:
            ConnectOptions: the same instance when one was given, so a
                replay sends exactly what the caller passed

        Raises:
            MQTTConfigError: if the options are invalid
        """
        if options is None:
            options = cls()
        elif isinstance(options, dict):
            options = cls(**options)
        options.validate()
        return options.freeze()

    def freeze(self):
        """Make the options read-only. Called by connect()."""
        object.__setattr__(self, '_frozen', True)
        return self

    @property
    def frozen(self):
        return self._frozen

    def copy(self, **overrides):
        """Return an unfrozen copy, optionally with some options replaced."""
        values = {name: getattr(self, name) for name in self.__slots__ if name != '_frozen'}
        values.update(overrides)
        return ConnectOptions(**values)

    @property
    def will(self):
        """Last will as a Message, or None when topic or message is unset."""
        if self.will_topic is None or self.will_message is None:
            return None
        return Message(self.will_topic, to_bytes(self.will_message), self.will_qos, bool(self.will_retain))

    @property
    def online(self):
        """Online announcement as a Message, or None.

        When online_message is set, an unset online_topic, online_qos or
        online_retain falls back to the will setting. Without
        online_message nothing is inherited and no announcement exists.
        """
        if self.online_message is None:
            return None
        topic = self.online_topic if self.online_topic is not None else self.will_topic
        if topic is None:
            return None
        qos = self.online_qos if self.online_qos is not None else self.will_qos
        retain = self.online_retain if self.online_retain is not None else self.will_retain
        return Message(topic, to_bytes(self.online_message), qos, bool(retain))

    def validate(self):
        """Validate connection options.

        Raises:
            MQTTConfigError: If any option is invalid.
        """
        if not isinstance(self.host, str) or not self.host:
            raise MQTTConfigError('host must be a non-empty string, got %r' % (self.host,), 'host')

        if isinstance(self.port, bool) or not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            raise MQTTConfigError('port must be in range 1-65535, got %r' % (self.port,), 'port')

        if isinstance(self.keepalive, bool) or not isinstance(self.keepalive, int) or self.keepalive < 0:
            raise MQTTConfigError('keepalive must be an int >= 0, got %r' % (self.keepalive,), 'keepalive')

        if not isinstance(self.client_id, str):
            raise MQTTConfigError('client_id must be a string', 'client_id')

        if self.password is not None and self.username is None:
            raise MQTTConfigError('password requires a username', 'password')

        validate_qos(self.will_qos, 'will_qos')
        if self.online_qos is not None:
            validate_qos(self.online_qos, 'online_qos')

        if self.will_topic is not None:
            validate_topic_name(self.will_topic)
        if self.online_topic is not None:
            validate_topic_name(self.online_topic)

        if self.will_message is not None:
            to_bytes(self.will_message)
        if self.online_message is not None:
            to_bytes(self.online_message)


class ReconnectConfig:
    """Exponential backoff settings for the Reconnector."""

    __slots__ = ('base_delay', 'max_delay', 'backoff_multiplier')

    def __init__(self, **kwargs):
        self.base_delay = 1
        self.max_delay = 60
        self.backoff_multiplier = 2

        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def validate(self):
        """Validate backoff settings.

        Raises:
            MQTTConfigError: If any parameter is invalid.
        """
        _check_number(self.base_delay, 'base_delay')
        _check_number(self.max_delay, 'max_delay')
        _check_number(self.backoff_multiplier, 'backoff_multiplier')

        if self.base_delay <= 0:
            raise MQTTConfigError('base_delay must be > 0, got %s' % self.base_delay, 'base_delay')

        if self.max_delay < self.base_delay:
            raise MQTTConfigError('max_delay must be >= base_delay', 'max_delay')

        if self.backoff_multiplier < 1:
            raise MQTTConfigError('backoff_multiplier must be >= 1, got %s' % self.backoff_multiplier,
                                  'backoff_multiplier')


class ClientConfig:
    """Shutdown timing and logging for the session controller."""

    __slots__ = ('will_ack_timeout', 'will_grace_period', 'log_level')

    def __init__(self, **kwargs):
        # Upper bound on waiting for a QoS 1/2 will to be acknowledged
        self.will_ack_timeout = 2.0

        # Fixed pause after a QoS 0 will, which has no acknowledgment
        self.will_grace_period = 0.1

        self.log_level = 'INFO'

        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)

    def validate(self):
        """Validate client settings.

        Raises:
            MQTTConfigError: If any parameter is invalid.
        """
        _check_number(self.will_ack_timeout, 'will_ack_timeout')
        _check_number(self.will_grace_period, 'will_grace_period')

        if self.will_ack_timeout < 0:
            raise MQTTConfigError('will_ack_timeout must be >= 0, got %s' % self.will_ack_timeout,
                                  'will_ack_timeout')

        if self.will_grace_period < 0:
            raise MQTTConfigError('will_grace_period must be >= 0, got %s' % self.will_grace_period,
                                  'will_grace_period')

        valid_levels = ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        if self.log_level not in valid_levels:
            raise MQTTConfigError('log_level must be one of %s, got %s' % (valid_levels, self.log_level),
                                  'log_level')
