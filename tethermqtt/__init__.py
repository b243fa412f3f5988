"""
TetherMQTT - resilient MQTT client sessions

Presence messaging, automatic reconnection with exponential backoff and
ordered wildcard message dispatch on top of paho-mqtt.
"""

__version__ = '1.0.0'
__author__ = 'mateuszsury'

from .client import MQTTClient
from .reconnector import Reconnector, ReconnectStatus
from .dispatcher import Dispatcher, Subscription, PASS
from .simple import create_client
from .config import ConnectOptions, ReconnectConfig, ClientConfig, Message
from .errors import MQTTError, MQTTConfigError
from .qos import QoS
from .session import SessionState, MQTTSession, UnderlyingSession
from .transport import PahoSession
from .topic import TopicPattern
from .timers import ThreadingTimerFactory, LoopTimerFactory
