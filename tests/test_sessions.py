"""
Session store tests — the in-process backend used when Redis is absent.
"""
import json

import pytest

from newsdesk.identity import Identity, Role
from newsdesk.sessions import SessionStore

ANN = Identity(account_id=7, email="ann@example.com", name="Ann", role=Role.STAFF)


@pytest.mark.asyncio
async def test_establish_and_read_back():
    store = SessionStore()
    session_id = await store.establish(ANN)

    assert store.backend == "memory"
    assert await store.current_identity(session_id) == ANN
    assert await store.current_identity("unknown") is None
    assert await store.current_identity(None) is None


@pytest.mark.asyncio
async def test_establish_replaces_prior_identity():
    store = SessionStore()
    session_id = await store.establish(ANN)
    promoted = Identity(ANN.account_id, ANN.email, "Ann B.", Role.ADMIN)

    assert await store.establish(promoted, session_id=session_id) == session_id
    assert await store.current_identity(session_id) == promoted


@pytest.mark.asyncio
async def test_snapshot_has_no_password_hash():
    store = SessionStore()
    session_id = await store.establish(ANN)
    _, payload = store._local[session_id]
    assert "password" not in json.loads(payload)
    assert "password" not in payload


@pytest.mark.asyncio
async def test_clear_destroys_session():
    store = SessionStore()
    session_id = await store.establish(ANN)
    await store.clear(session_id)
    await store.clear(session_id)  # twice is fine
    assert await store.current_identity(session_id) is None


@pytest.mark.asyncio
async def test_idle_sessions_expire():
    store = SessionStore(ttl=60)
    session_id = await store.establish(ANN)
    _, payload = store._local[session_id]
    store._local[session_id] = (0.0, payload)

    assert await store.current_identity(session_id) is None
    assert session_id not in store._local


@pytest.mark.asyncio
async def test_abandoned_sessions_are_evicted_on_next_login():
    store = SessionStore(ttl=60)
    abandoned = [await store.establish(ANN) for _ in range(5)]
    for session_id in abandoned:
        _, payload = store._local[session_id]
        store._local[session_id] = (0.0, payload)

    fresh = await store.establish(ANN)

    assert list(store._local) == [fresh]
    assert await store.current_identity(fresh) == ANN


@pytest.mark.asyncio
async def test_unreadable_payload_is_discarded():
    store = SessionStore()
    session_id = await store.establish(ANN)
    expires, _ = store._local[session_id]
    store._local[session_id] = (expires, "{not json")

    assert await store.current_identity(session_id) is None
    assert session_id not in store._local


@pytest.mark.asyncio
async def test_each_login_gets_a_fresh_session_id():
    store = SessionStore()
    assert await store.establish(ANN) != await store.establish(ANN)
