import json
import logging
import secrets
import time

import redis.asyncio as redis

from newsdesk.config import settings
from newsdesk.identity import Identity

logger = logging.getLogger(__name__)


class SessionStore:
    """
    Server-side session store keyed by an opaque session id (the cookie).

    Each session holds one serialised ``Identity`` snapshot (account id,
    email, display name, role; never the password hash) with a sliding
    idle timeout of ``settings.SESSION_TTL_SECONDS``.

    Backed by Redis when it is reachable at startup.  Otherwise sessions
    live in an in-process dictionary, which is enough for a single
    worker and for tests.  Once Redis is connected its errors propagate:
    a broken session backend must not silently log everybody out.
    """

    def __init__(self, ttl: int | None = None) -> None:
        self._redis: redis.Redis | None = None
        self._ttl = ttl or settings.SESSION_TTL_SECONDS
        # session id -> (expires_at monotonic, serialised identity)
        self._local: dict[str, tuple[float, str]] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """Open the Redis pool.  Called once at application startup."""
        client = redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=2,
            socket_timeout=2,
        )
        try:
            await client.ping()
        except Exception as exc:  # pragma: no cover
            logger.warning("Redis unavailable, using in-process sessions: %s", exc)
            await client.aclose()
            return
        self._redis = client
        logger.info("Session store connected: %s", settings.REDIS_URL)

    async def disconnect(self) -> None:
        """Close the Redis pool.  Called once at application shutdown."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    @property
    def backend(self) -> str:
        return "redis" if self._redis else "memory"

    # ------------------------------------------------------------------
    # Session contract
    # ------------------------------------------------------------------

    @staticmethod
    def new_session_id() -> str:
        return secrets.token_urlsafe(32)

    async def establish(self, account, session_id: str | None = None) -> str:
        """
        Store *account*'s identity, replacing whatever the session held.

        Returns the session id to hand back to the client; a fresh one is
        issued when *session_id* is None.
        """
        session_id = session_id or self.new_session_id()
        identity = account if isinstance(account, Identity) else Identity.from_account(account)
        payload = json.dumps(identity.to_dict())

        if self._redis:
            await self._redis.set(self._key(session_id), payload, ex=self._ttl)
        else:
            self._evict_expired()
            self._local[session_id] = (time.monotonic() + self._ttl, payload)

        logger.debug("Session established for account_id=%s", identity.account_id)
        return session_id

    async def current_identity(self, session_id: str | None) -> Identity | None:
        """Return the identity stored under *session_id*, or None; refreshes the idle timeout."""
        if not session_id:
            return None

        if self._redis:
            key = self._key(session_id)
            payload = await self._redis.get(key)
            if payload is None:
                return None
            await self._redis.expire(key, self._ttl)
        else:
            entry = self._local.get(session_id)
            if entry is None:
                return None
            expires_at, payload = entry
            if expires_at < time.monotonic():
                del self._local[session_id]
                return None
            self._local[session_id] = (time.monotonic() + self._ttl, payload)

        try:
            return Identity.from_dict(json.loads(payload))
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning("Discarding unreadable session payload: %s", exc)
            await self.clear(session_id)
            return None

    async def clear(self, session_id: str | None) -> None:
        """Destroy every piece of state held for *session_id* (logout)."""
        if not session_id:
            return
        if self._redis:
            await self._redis.delete(self._key(session_id))
        else:
            self._local.pop(session_id, None)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _evict_expired(self) -> None:
        """Drop in-process sessions whose idle timeout has passed."""
        now = time.monotonic()
        expired = [sid for sid, (expires_at, _) in self._local.items() if expires_at < now]
        for sid in expired:
            del self._local[sid]
        if expired:
            logger.debug("Evicted %d expired session(s)", len(expired))

    @staticmethod
    def _key(session_id: str) -> str:
        return f"{settings.SESSION_KEY_PREFIX}{session_id}"


# Module-level store shared across request handlers.  Identities are looked
# up per request through the session id; nothing here is caller-global.
sessions = SessionStore()
