"""
TetherMQTT utility functions.

Topic validation, payload conversion and client id generation.
"""

import random

from .errors import MQTTConfigError


def to_bytes(payload):
    """Convert a payload to bytes.

    Args:
        payload: str (UTF-8 encoded), bytes, bytearray or None

    Returns:
        bytes

    Raises:
        MQTTConfigError if the payload type is not supported
    """
    if payload is None:
        return b''
    if isinstance(payload, str):
        return payload.encode('utf-8')
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    raise MQTTConfigError("Payload must be str or bytes, got %s" % type(payload).__name__, 'payload')


def validate_topic_name(topic, max_length=65535):
    """Validate MQTT topic name (for PUBLISH).

    Args:
        topic: str
        max_length: maximum allowed length in bytes

    Returns:
        True if valid

    Raises:
        MQTTConfigError if invalid
    """
    if not isinstance(topic, str):
        raise MQTTConfigError("Topic name must be str", 'topic')
    if not topic:
        raise MQTTConfigError("Topic name cannot be empty", 'topic')
    if len(topic.encode('utf-8')) > max_length:
        raise MQTTConfigError("Topic name exceeds maximum length", 'topic')
    if '+' in topic or '#' in topic:
        raise MQTTConfigError("Topic name cannot contain wildcards", 'topic')

    return True


def validate_topic_filter(topic_filter, max_length=65535):
    """Validate MQTT topic filter (for SUBSCRIBE).

    Args:
        topic_filter: str
        max_length: maximum allowed length in bytes

    Returns:
        True if valid

    Raises:
        MQTTConfigError if invalid
    """
    if not isinstance(topic_filter, str):
        raise MQTTConfigError("Topic filter must be str", 'topic')
    if not topic_filter:
        raise MQTTConfigError("Topic filter cannot be empty", 'topic')
    if len(topic_filter.encode('utf-8')) > max_length:
        raise MQTTConfigError("Topic filter exceeds maximum length", 'topic')

    # Check '#' - only allowed as last char after '/' or alone
    hash_pos = topic_filter.find('#')
    if hash_pos != -1:
        if hash_pos != len(topic_filter) - 1:
            raise MQTTConfigError("# wildcard must be last character", 'topic')
        if hash_pos > 0 and topic_filter[hash_pos - 1] != '/':
            raise MQTTConfigError("# must be alone or after /", 'topic')

    # Check '+' - must occupy entire level
    for level in topic_filter.split('/'):
        if '+' in level and level != '+':
            raise MQTTConfigError("+ must occupy entire level", 'topic')

    return True


def generate_client_id(prefix='tether'):
    """Generate a random client ID.

    Returns:
        str in format "<prefix>-XXXXXXXXXXXXXXXX"
    """
    return "%s-%08x%08x" % (prefix, random.getrandbits(32), random.getrandbits(32))
