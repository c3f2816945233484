"""
Change-notification tests — the in-process bus and the WebSocket hub.
"""
import asyncio

import pytest

from newsdesk.notifications import ChangeNotifier, ChangeSignal, NotificationHub


class FakeWebSocket:
    def __init__(self, fail: bool = False, stall: bool = False) -> None:
        self.accepted = False
        self.sent: list[dict] = []
        self.fail = fail
        self.stall = stall

    async def accept(self):
        self.accepted = True

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("connection closed")
        if self.stall:
            await asyncio.Event().wait()
        self.sent.append(data)


@pytest.mark.asyncio
async def test_publish_reaches_every_subscriber():
    bus = ChangeNotifier()
    first, second = [], []

    async def one(signal):
        first.append(signal)

    async def two(signal):
        second.append(signal)

    bus.subscribe(one)
    bus.subscribe(two)
    bus.subscribe(one)  # duplicate subscription is ignored
    await bus.publish(ChangeSignal.TAGS_CHANGED)

    assert first == [ChangeSignal.TAGS_CHANGED]
    assert second == [ChangeSignal.TAGS_CHANGED]

    bus.unsubscribe(one)
    await bus.publish(ChangeSignal.CATEGORIES_CHANGED)
    assert first == [ChangeSignal.TAGS_CHANGED]
    assert second[-1] == ChangeSignal.CATEGORIES_CHANGED


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_block_others():
    bus = ChangeNotifier()
    received = []

    async def broken(signal):
        raise RuntimeError("boom")

    async def healthy(signal):
        received.append(signal)

    bus.subscribe(broken)
    bus.subscribe(healthy)
    await bus.publish(ChangeSignal.ARTICLES_CHANGED)

    assert received == [ChangeSignal.ARTICLES_CHANGED]


@pytest.mark.asyncio
async def test_hub_broadcasts_and_drops_dead_clients():
    local_hub = NotificationHub()
    alive, dead = FakeWebSocket(), FakeWebSocket(fail=True)
    await local_hub.connect(alive)
    await local_hub.connect(dead)
    assert alive.accepted and local_hub.connection_count == 2

    await local_hub.broadcast(ChangeSignal.ACCOUNTS_CHANGED)
    await local_hub.drain()

    assert alive.sent == [{"signal": "AccountsChanged"}]
    assert local_hub.connection_count == 1

    await local_hub.disconnect(alive)
    assert local_hub.connection_count == 0


@pytest.mark.asyncio
async def test_stalled_client_does_not_hold_up_publisher():
    local_hub = NotificationHub(send_timeout=0.05)
    alive, stalled = FakeWebSocket(), FakeWebSocket(stall=True)
    await local_hub.connect(alive)
    await local_hub.connect(stalled)

    # Returns before the stalled send has timed out.
    await asyncio.wait_for(local_hub.broadcast(ChangeSignal.TAGS_CHANGED), timeout=0.01)

    await local_hub.drain()
    assert alive.sent == [{"signal": "TagsChanged"}]
    assert local_hub.connection_count == 1


def test_signal_names():
    assert [s.value for s in ChangeSignal] == [
        "ArticlesChanged",
        "CategoriesChanged",
        "TagsChanged",
        "AccountsChanged",
    ]
