"""
Presence Example
================

A device that reports "online" while connected and "offline" when it stops,
whether it exits cleanly or loses power.

This example demonstrates:
- Last will registered with the broker for ungraceful drops
- Online announcement inheriting topic, QoS and retain from the will
- Will published by disconnect() itself on a clean exit

Test commands:
    mosquitto_sub -h localhost -t 'presence/#' -v
"""

import time

from tethermqtt import ConnectOptions, create_client


def on_state(state):
    print('[STATE] %s' % state)


client = create_client(dispatch=False)
client.set_state_callback(on_state)

client.connect(ConnectOptions(
    host='localhost',
    client_id='desk-lamp',
    will_topic='presence/desk-lamp',
    will_message='offline',
    will_qos=1,
    will_retain=True,
    online_message='online',
))

try:
    while True:
        time.sleep(1)
except KeyboardInterrupt:
    pass
finally:
    # Publishes 'offline' and waits for the PUBACK before closing
    client.disconnect()
