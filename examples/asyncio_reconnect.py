"""
Asyncio Integration Example
===========================

Run reconnect timers on the application's event loop.

This example demonstrates:
- LoopTimerFactory so reconnect attempts start on the loop thread
- Handing paho's network-thread messages to asyncio code

Test commands:
    mosquitto_pub -h localhost -t 'jobs/new' -m 'build-42'
"""

import asyncio
from functools import partial

from tethermqtt import ConnectOptions, Dispatcher, LoopTimerFactory, MQTTClient, Reconnector


async def main():
    loop = asyncio.get_running_loop()
    jobs = asyncio.Queue()

    def on_job(fields, payload, retained):
        # Called on paho's thread
        loop.call_soon_threadsafe(jobs.put_nowait, payload.decode('utf-8'))

    client = Reconnector(partial(Dispatcher, MQTTClient), timer_factory=LoopTimerFactory(loop))
    client.subscribe('jobs/new', 1, on_job)
    client.connect(ConnectOptions(host='localhost'))

    try:
        while True:
            job = await jobs.get()
            print('[JOB] %s' % job)
    finally:
        client.disconnect()


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print('[TetherMQTT] Stopped by user')
