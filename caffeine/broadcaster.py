"""Server-sent reload events for every open browser tab.

Every registry operation runs on the event loop thread. Callers on other
threads (the watchdog observer) must hop onto the loop first.
"""

import asyncio
import enum
import logging

from aiohttp import web

logger = logging.getLogger(__name__)

RELOAD_EVENT = b"data: reload\n\n"
KEEPALIVE = b": keep-alive\n\n"
CONNECTED = b": connected\n\n"

STREAM_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class SubscriberState(enum.Enum):
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    CLOSED = "closed"
    PRUNED = "pruned"


class Subscriber:
    """One open event stream."""

    def __init__(self, response):
        self.response = response
        self.state = SubscriberState.CONNECTING
        self._closed = asyncio.Event()

    @property
    def alive(self) -> bool:
        return self.state is SubscriberState.SUBSCRIBED

    async def send(self, payload: bytes) -> bool:
        if not self.alive:
            return False
        try:
            await self.response.write(payload)
        except (OSError, RuntimeError) as exc:
            logger.debug("Dropping reload subscriber: %s", exc)
            self._finish(SubscriberState.PRUNED)
            return False
        return True

    def close(self):
        self._finish(SubscriberState.CLOSED)

    def _finish(self, state):
        if self.state in (SubscriberState.CLOSED, SubscriberState.PRUNED):
            return
        self.state = state
        self._closed.set()

    async def wait_closed(self, heartbeat: float):
        """Suspend until closed or pruned.

        The keep-alive comment doubles as a liveness probe, so a tab that
        went away between broadcasts is still noticed.
        """
        while not self._closed.is_set():
            try:
                await asyncio.wait_for(self._closed.wait(), timeout=heartbeat)
            except asyncio.TimeoutError:
                await self.send(KEEPALIVE)


class ConnectionRegistry:
    def __init__(self):
        self._connections = set()

    def add(self, subscriber: Subscriber):
        if not subscriber.response.prepared:
            raise RuntimeError("stream headers must be sent before registering")
        if subscriber.state is SubscriberState.CONNECTING:
            subscriber.state = SubscriberState.SUBSCRIBED
        self._connections.add(subscriber)

    def discard(self, subscriber: Subscriber):
        # removing twice, or removing a stranger, is fine
        self._connections.discard(subscriber)
        subscriber.close()

    def snapshot(self):
        return list(self._connections)

    def __len__(self):
        return len(self._connections)

    def __contains__(self, subscriber):
        return subscriber in self._connections

    def __iter__(self):
        return iter(self.snapshot())


class Broadcaster:
    def __init__(self, heartbeat: float = 15.0):
        self.registry = ConnectionRegistry()
        self.heartbeat = heartbeat

    async def subscribe(self, request: web.Request) -> web.StreamResponse:
        response = web.StreamResponse(status=200, headers=STREAM_HEADERS)
        await response.prepare(request)

        subscriber = Subscriber(response)
        self.registry.add(subscriber)
        logger.debug("Reload subscriber connected (%d open)", len(self.registry))
        try:
            # some aiohttp versions hold the headers back until the first write
            await subscriber.send(CONNECTED)
            await subscriber.wait_closed(self.heartbeat)
        finally:
            self.registry.discard(subscriber)
            logger.debug("Reload subscriber gone (%d open)", len(self.registry))
        return response

    async def broadcast(self) -> int:
        """Send one reload event to every subscriber. Returns how many got it."""
        subscribers = self.registry.snapshot()
        if not subscribers:
            return 0

        results = await asyncio.gather(*(s.send(RELOAD_EVENT) for s in subscribers))
        for subscriber, delivered in zip(subscribers, results):
            if not delivered:
                self.registry.discard(subscriber)

        delivered = sum(results)
        logger.debug("Reload sent to %d of %d subscribers", delivered, len(subscribers))
        return delivered

    def close_all(self):
        for subscriber in self.registry.snapshot():
            self.registry.discard(subscriber)
