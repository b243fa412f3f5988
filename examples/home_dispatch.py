"""
Dispatch Example
================

Route sensor readings to handlers by topic pattern.

This example demonstrates:
- '+' captures delivered in fields[1:]
- Specific patterns registered before broad ones
- Returning PASS to let a broader handler see the message too
- Automatic reconnection with a custom backoff cap

Test commands:
    mosquitto_pub -h localhost -t 'home/kitchen/temperature' -m '21.5'
    mosquitto_pub -h localhost -t 'sensors/outdoor/wind' -m '12'
    mosquitto_pub -h localhost -t 'misc/thing' -m 'x'
"""

import time

from tethermqtt import PASS, ConnectOptions, ReconnectConfig, create_client


temperatures = {}


def on_temperature(fields, payload, retained):
    room = fields[1]
    temperatures[room] = float(payload)
    print('[TEMP] %s = %.1f%s' % (room, temperatures[room], ' (retained)' if retained else ''))


def on_outdoor(fields, payload, retained):
    print('[OUTDOOR] %s' % fields[1])
    # Let the generic sensor logger see it as well
    return PASS


def on_sensor(fields, payload, retained):
    print('[SENSOR] %s -> %s' % (fields[0], payload.decode('utf-8', 'replace')))


def on_anything(fields, payload, retained):
    print('[OTHER] %s' % fields[0])


client = create_client(reconnect_config=ReconnectConfig(max_delay=30))

client.subscribe('home/+/temperature', 1, on_temperature)
client.subscribe('sensors/outdoor/#', on_outdoor)
client.subscribe('sensors/#', on_sensor)
client.subscribe('#', on_anything)

client.connect(ConnectOptions(host='localhost'))

try:
    while True:
        time.sleep(5)
        print('[STATUS] %s, reconnect %r' % (client.state(), client.reconnect_status()))
except KeyboardInterrupt:
    client.disconnect()
