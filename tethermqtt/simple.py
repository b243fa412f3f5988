"""Simple API for TetherMQTT - a resilient client in one call."""

from functools import partial

from .client import MQTTClient
from .config import ClientConfig, ReconnectConfig
from .dispatcher import Dispatcher
from .reconnector import Reconnector


def create_client(dispatch=True, reconnect=True, reconnect_config=None,
                  client_config=None, timer_factory=None, session_factory=None):
    """Build the usual client stack.

    With the defaults this is Reconnector(Dispatcher(MQTTClient)).

    Example:
        client = create_client()
        client.subscribe('home/+/temperature', on_temperature)
        client.connect(ConnectOptions(host='broker.local'))

    Args:
        dispatch: wrap the client in a Dispatcher (default True)
        reconnect: wrap the stack in a Reconnector (default True)
        reconnect_config: ReconnectConfig for the Reconnector
        client_config: ClientConfig for the MQTTClient
        timer_factory: timer factory for the Reconnector
        session_factory: UnderlyingSession factory for the MQTTClient
            (defaults to PahoSession)

    Returns:
        MQTTSession: the outermost object of the stack
    """
    factory = partial(MQTTClient, session_factory, client_config or ClientConfig())

    if dispatch:
        factory = partial(Dispatcher, factory)

    if not reconnect:
        return factory()

    return Reconnector(factory, reconnect_config or ReconnectConfig(), timer_factory)
