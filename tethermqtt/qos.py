"""
QoS levels and delivery acknowledgment tracking for TetherMQTT.

- QoS 0: fire and forget, no acknowledgment exists
- QoS 1: PUBLISH -> PUBACK
- QoS 2: PUBLISH -> PUBREC -> PUBREL -> PUBCOMP

The protocol engine runs the handshakes; AckWaiter only waits for the
final "delivered" notification of one message id.
"""

import threading

from .errors import MQTTConfigError


class QoS:
    """Quality of Service levels."""
    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2

    ALL = (AT_MOST_ONCE, AT_LEAST_ONCE, EXACTLY_ONCE)


def validate_qos(qos, field='qos'):
    """Validate a QoS level.

    Args:
        qos: int, expected 0, 1 or 2
        field: name reported in the error

    Returns:
        int: the validated QoS

    Raises:
        MQTTConfigError: if qos is not 0, 1 or 2
    """
    if isinstance(qos, bool) or not isinstance(qos, int) or qos not in QoS.ALL:
        raise MQTTConfigError('%s must be 0, 1, or 2, got %r' % (field, qos), field)
    return qos


def requires_ack(qos):
    """True when the broker acknowledges delivery at this QoS."""
    return qos in (QoS.AT_LEAST_ONCE, QoS.EXACTLY_ONCE)


class AckWaiter:
    """Wait for the delivery acknowledgment of a single message id.

    The acknowledgment may arrive on the network thread before the
    publishing thread learns the message id, so delivered ids are
    remembered while the waiter is armed.
    """
    __slots__ = ('_lock', '_event', '_mid', '_delivered', '_armed')

    def __init__(self):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._mid = None
        self._delivered = set()
        self._armed = False

    def arm(self):
        """Start recording acknowledgments. Call before publishing."""
        with self._lock:
            self._event.clear()
            self._delivered = set()
            self._mid = None
            self._armed = True

    def expect(self, mid):
        """Set the message id to wait for."""
        with self._lock:
            self._mid = mid
            if mid in self._delivered:
                self._event.set()

    def delivered(self, mid):
        """Record a delivery notification from the session."""
        with self._lock:
            if not self._armed:
                return
            self._delivered.add(mid)
            if mid == self._mid:
                self._event.set()

    def wait(self, timeout):
        """Block until the expected id is acknowledged or timeout expires.

        Returns:
            bool: True if acknowledged, False on timeout
        """
        try:
            return self._event.wait(timeout)
        finally:
            self.disarm()

    def disarm(self):
        with self._lock:
            self._armed = False
            self._mid = None
            self._delivered = set()

    @property
    def armed(self):
        return self._armed
