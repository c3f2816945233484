"""
Change-notification fanout.

After a mutation commits, the service layer publishes one ``ChangeSignal``
naming the resource type that changed.  Signals carry no payload; clients
decide for themselves whether their current view needs a refetch.

Pieces
------
- ``ChangeNotifier``: in-process async pub/sub bus.  Subscribers are
  async callables taking the signal.  Delivery is best-effort and
  at-most-once: a failing subscriber is logged and skipped, and the
  publisher never sees the failure.
- ``NotificationHub``: a subscriber that forwards every signal to all
  connected WebSocket clients as ``{"signal": "<name>"}``.
- Redis relay: when connected, each locally published signal is also
  sent on ``settings.NOTIFY_CHANNEL`` and signals published by other
  workers are replayed to local subscribers.
"""
import asyncio
import json
import logging
import uuid
from enum import Enum
from typing import Awaitable, Callable

import redis.asyncio as redis
from fastapi import WebSocket

from newsdesk.config import settings

logger = logging.getLogger(__name__)


class ChangeSignal(str, Enum):
    ARTICLES_CHANGED = "ArticlesChanged"
    CATEGORIES_CHANGED = "CategoriesChanged"
    TAGS_CHANGED = "TagsChanged"
    ACCOUNTS_CHANGED = "AccountsChanged"


Subscriber = Callable[[ChangeSignal], Awaitable[None]]


class ChangeNotifier:
    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._redis: redis.Redis | None = None
        self._listener: asyncio.Task | None = None
        # Lets the relay ignore echoes of our own publishes.
        self._origin = uuid.uuid4().hex

    # ------------------------------------------------------------------
    # Subscription
    # ------------------------------------------------------------------

    def subscribe(self, subscriber: Subscriber) -> None:
        if subscriber not in self._subscribers:
            self._subscribers.append(subscriber)

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if subscriber in self._subscribers:
            self._subscribers.remove(subscriber)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def publish(self, signal: ChangeSignal) -> None:
        """Fan *signal* out to local subscribers and, when connected, to other workers."""
        await self._dispatch(signal)
        if self._redis:
            message = json.dumps({"signal": signal.value, "origin": self._origin})
            try:
                await self._redis.publish(settings.NOTIFY_CHANNEL, message)
            except Exception as exc:
                logger.debug("Relay publish failed for %s: %s", signal.value, exc)

    async def _dispatch(self, signal: ChangeSignal) -> None:
        logger.debug("Dispatching %s to %d subscriber(s)", signal.value, len(self._subscribers))
        for subscriber in list(self._subscribers):
            try:
                await subscriber(signal)
            except Exception as exc:
                logger.warning("Notification subscriber %r failed on %s: %s", subscriber, signal.value, exc)

    # ------------------------------------------------------------------
    # Redis relay lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        client = redis.from_url(settings.REDIS_URL, decode_responses=True, socket_connect_timeout=2)
        try:
            await client.ping()
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis unavailable, change notifications stay in-process: %s", exc)
            await client.aclose()
            return
        self._redis = client
        self._listener = asyncio.create_task(self._listen())
        logger.info("Notification relay listening on %s", settings.NOTIFY_CHANNEL)

    async def disconnect(self) -> None:
        if self._listener:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def _listen(self) -> None:  # pragma: no cover - needs a live Redis
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(settings.NOTIFY_CHANNEL)
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    data = json.loads(message["data"])
                    if data.get("origin") == self._origin:
                        continue
                    signal = ChangeSignal(data["signal"])
                except (KeyError, ValueError, TypeError):
                    logger.debug("Ignoring malformed relay message: %r", message.get("data"))
                    continue
                await self._dispatch(signal)
        finally:
            await pubsub.aclose()


class NotificationHub:
    """
    Tracks connected WebSocket clients and broadcasts signals to all of them.

    ``broadcast`` only schedules delivery, so a stalled socket never holds
    up the request that published the signal.  Each send is bounded by
    *send_timeout*; connections that fail or time out are dropped.  A
    missed notification only delays a refresh.
    """

    def __init__(self, send_timeout: float | None = None) -> None:
        self._connections: set[WebSocket] = set()
        self._lock = asyncio.Lock()
        self._send_timeout = send_timeout or settings.NOTIFY_SEND_TIMEOUT
        self._pending: set[asyncio.Task] = set()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._connections.add(websocket)
        logger.info("Notification client connected (%d total)", len(self._connections))

    async def disconnect(self, websocket: WebSocket) -> None:
        async with self._lock:
            self._connections.discard(websocket)
        logger.info("Notification client disconnected (%d total)", len(self._connections))

    async def broadcast(self, signal: ChangeSignal) -> None:
        if not self._connections:
            return
        task = asyncio.create_task(self._deliver(signal))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for deliveries already scheduled.  Used at shutdown and in tests."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _send(self, websocket: WebSocket, message: dict) -> WebSocket | None:
        try:
            await asyncio.wait_for(websocket.send_json(message), self._send_timeout)
        except Exception as exc:
            logger.debug("Dropping notification client after send error: %r", exc)
            return websocket
        return None

    async def _deliver(self, signal: ChangeSignal) -> None:
        message = {"signal": signal.value}
        results = await asyncio.gather(
            *(self._send(websocket, message) for websocket in list(self._connections))
        )
        dead = [websocket for websocket in results if websocket is not None]
        if dead:
            async with self._lock:
                for websocket in dead:
                    self._connections.discard(websocket)


# Module-level singletons shared across request handlers.
notifier = ChangeNotifier()
hub = NotificationHub()
notifier.subscribe(hub.broadcast)
