"""
TetherMQTT Exception Hierarchy

Only configuration mistakes are raised to the caller. Transport failures
surface as the error -> closed state sequence and callback faults are
logged where they happen.
"""


class MQTTError(Exception):
    """Base exception for all TetherMQTT errors."""
    __slots__ = ('message',)

    def __init__(self, message):
        self.message = message
        super().__init__(message)


class MQTTConfigError(MQTTError, ValueError):
    """Invalid argument or configuration value (QoS, port, topic, delays)."""
    __slots__ = ('field',)

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field
