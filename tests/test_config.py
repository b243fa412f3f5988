"""Tests for tethermqtt.config module."""

import pytest
from tethermqtt.config import ConnectOptions, ReconnectConfig, ClientConfig, Message
from tethermqtt.errors import MQTTConfigError


class TestConnectOptionsDefaults:
    """Test default connection options."""

    def test_default_values(self):
        """Check all default values are correct."""
        opts = ConnectOptions()

        assert opts.host == 'localhost'
        assert opts.port == 1883
        assert opts.tls is False
        assert opts.keepalive == 60
        assert opts.clean_session is True
        assert opts.username is None
        assert opts.password is None
        assert opts.will is None
        assert opts.online is None
        assert opts.publish_will_on_disconnect is True

    def test_client_id_generated_once(self):
        """Test a missing client_id is generated at construction."""
        opts = ConnectOptions()

        assert opts.client_id.startswith('tether-')
        assert opts.copy().client_id == opts.client_id
        assert ConnectOptions().client_id != opts.client_id

    def test_kwargs_override(self):
        """Verify kwargs override default values."""
        opts = ConnectOptions(host='broker.local', port=8883, tls=True, client_id='dev')

        assert opts.host == 'broker.local'
        assert opts.port == 8883
        assert opts.tls is True
        assert opts.client_id == 'dev'
        assert opts.keepalive == 60

    def test_unknown_option_rejected(self):
        """Test misspelled options raise instead of being ignored."""
        with pytest.raises(MQTTConfigError) as exc_info:
            ConnectOptions(hostname='broker')
        assert exc_info.value.field == 'hostname'

    def test_private_option_rejected(self):
        """Test underscore names cannot be passed as options."""
        with pytest.raises(MQTTConfigError):
            ConnectOptions(_frozen=True)


class TestConnectOptionsFreeze:
    """Test read-only options after connect()."""

    def test_freeze_blocks_assignment(self):
        """Test frozen options cannot be modified."""
        opts = ConnectOptions().freeze()

        assert opts.frozen is True
        with pytest.raises(AttributeError):
            opts.port = 1884

    def test_copy_is_unfrozen(self):
        """Test copy() returns an editable copy with overrides."""
        opts = ConnectOptions(host='a', client_id='x').freeze()
        other = opts.copy(port=1884)

        assert other.frozen is False
        assert other.host == 'a'
        assert other.client_id == 'x'
        assert other.port == 1884


class TestConnectOptionsCoerce:
    """Test conversion of connect() input."""

    def test_none_gives_defaults(self):
        """Test None becomes frozen default options."""
        opts = ConnectOptions.coerce(None)

        assert opts.host == 'localhost'
        assert opts.frozen is True

    def test_dict(self):
        """Test a dict becomes frozen options with those values."""
        opts = ConnectOptions.coerce({'host': 'broker.local', 'port': 8883})

        assert opts.port == 8883
        assert opts.frozen is True

    def test_instance_returned_as_is(self):
        """Test an existing instance is validated, frozen and returned unchanged."""
        opts = ConnectOptions(client_id='same')

        assert ConnectOptions.coerce(opts) is opts
        assert ConnectOptions.coerce(opts) is opts
        assert opts.client_id == 'same'

    def test_invalid(self):
        """Test invalid input raises."""
        with pytest.raises(MQTTConfigError):
            ConnectOptions.coerce({'port': 70000})


class TestConnectOptionsPresence:
    """Test will and online announcement resolution."""

    def test_will_message(self):
        """Test will is exposed as a Message with bytes payload."""
        opts = ConnectOptions(will_topic='p/status', will_message='offline', will_qos=1, will_retain=1)

        assert opts.will == Message('p/status', b'offline', 1, True)

    def test_will_needs_topic_and_message(self):
        """Test will is None unless both topic and message are set."""
        assert ConnectOptions(will_topic='p/status').will is None
        assert ConnectOptions(will_message='offline').will is None

    def test_online_inherits_from_will(self):
        """Test unset online topic, qos and retain fall back to the will."""
        opts = ConnectOptions(will_topic='p/status', will_message='offline',
                              will_qos=2, will_retain=True, online_message='online')

        assert opts.online == Message('p/status', b'online', 2, True)

    def test_online_own_settings_win(self):
        """Test explicit online settings override the will defaults."""
        opts = ConnectOptions(will_topic='p/status', will_message='offline', will_qos=2,
                              online_topic='p/hello', online_message='up',
                              online_qos=0, online_retain=False)

        assert opts.online == Message('p/hello', b'up', 0, False)

    def test_online_without_message(self):
        """Test nothing is inherited without online_message."""
        opts = ConnectOptions(will_topic='p/status', will_message='offline', online_qos=1)

        assert opts.online is None

    def test_online_without_any_topic(self):
        """Test online_message alone gives no announcement."""
        assert ConnectOptions(online_message='online').online is None

    def test_online_with_own_topic_without_will(self):
        """Test online works without a will when it has its own topic."""
        opts = ConnectOptions(online_topic='p/up', online_message='1')

        assert opts.online == Message('p/up', b'1', 0, False)


class TestConnectOptionsValidation:
    """Test ConnectOptions.validate()."""

    def test_defaults_valid(self):
        """Test default options pass validation."""
        ConnectOptions().validate()

    @pytest.mark.parametrize('port', [0, 65536, -1, '1883', True])
    def test_invalid_port(self, port):
        """Test out-of-range ports are rejected."""
        with pytest.raises(MQTTConfigError) as exc_info:
            ConnectOptions(port=port).validate()
        assert exc_info.value.field == 'port'

    def test_empty_host(self):
        """Test empty host is rejected."""
        with pytest.raises(MQTTConfigError):
            ConnectOptions(host='').validate()

    def test_negative_keepalive(self):
        """Test negative keepalive is rejected."""
        with pytest.raises(MQTTConfigError):
            ConnectOptions(keepalive=-1).validate()

    def test_password_requires_username(self):
        """Test password without username is rejected."""
        with pytest.raises(MQTTConfigError):
            ConnectOptions(password='secret').validate()

    def test_invalid_will_qos(self):
        """Test will QoS outside 0..2 is rejected."""
        with pytest.raises(MQTTConfigError) as exc_info:
            ConnectOptions(will_topic='a', will_message='b', will_qos=3).validate()
        assert exc_info.value.field == 'will_qos'

    def test_invalid_online_qos(self):
        """Test online QoS outside 0..2 is rejected."""
        with pytest.raises(MQTTConfigError):
            ConnectOptions(online_qos=5).validate()

    def test_wildcard_will_topic(self):
        """Test wildcard will topics are rejected."""
        with pytest.raises(MQTTConfigError):
            ConnectOptions(will_topic='p/+', will_message='x').validate()

    def test_bad_will_payload(self):
        """Test unsupported payload types are rejected."""
        with pytest.raises(MQTTConfigError):
            ConnectOptions(will_topic='p', will_message=42).validate()


class TestReconnectConfig:
    """Test ReconnectConfig."""

    def test_defaults(self):
        """Test default backoff settings."""
        cfg = ReconnectConfig()

        assert cfg.base_delay == 1
        assert cfg.max_delay == 60
        assert cfg.backoff_multiplier == 2
        cfg.validate()

    def test_kwargs_override(self):
        """Test kwargs override defaults."""
        cfg = ReconnectConfig(base_delay=0.5, max_delay=10, backoff_multiplier=1.5)

        assert cfg.base_delay == 0.5
        assert cfg.max_delay == 10
        assert cfg.backoff_multiplier == 1.5

    def test_unknown_kwargs_ignored(self):
        """Test unknown kwargs are silently ignored."""
        cfg = ReconnectConfig(jitter=True)

        assert not hasattr(cfg, 'jitter')

    @pytest.mark.parametrize('kwargs', [
        {'base_delay': 0},
        {'base_delay': -1},
        {'base_delay': 10, 'max_delay': 5},
        {'backoff_multiplier': 0.5},
        {'max_delay': 'soon'},
    ])
    def test_invalid(self, kwargs):
        """Test invalid backoff settings are rejected."""
        with pytest.raises(MQTTConfigError):
            ReconnectConfig(**kwargs).validate()


class TestClientConfig:
    """Test ClientConfig."""

    def test_defaults(self):
        """Test default shutdown timings."""
        cfg = ClientConfig()

        assert cfg.will_ack_timeout == 2.0
        assert cfg.will_grace_period == 0.1
        assert cfg.log_level == 'INFO'
        cfg.validate()

    def test_negative_timeout(self):
        """Test negative will_ack_timeout is rejected."""
        with pytest.raises(MQTTConfigError):
            ClientConfig(will_ack_timeout=-1).validate()

    def test_invalid_log_level(self):
        """Test unknown log level is rejected."""
        with pytest.raises(MQTTConfigError):
            ClientConfig(log_level='VERBOSE').validate()
