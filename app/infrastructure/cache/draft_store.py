# app/infrastructure/cache/draft_store.py
"""
GSTR-3B draft snapshots.

One slot per return period (``gstr3b:draft:2025-01``). Saving overwrites the
slot; loading hands back a document without touching any in-memory state,
so the caller decides whether to apply it. Amounts are stored as exact
decimal strings.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol

import redis.asyncio as redis
from pydantic import ValidationError

from app.domain.models.gst import Gstr3bDocument, ReturnPeriod

logger = logging.getLogger("draft_store")


class DraftStoreError(Exception):
    """Base class for draft save/load failures."""


class DraftNotFoundError(DraftStoreError):
    """No draft has been saved for the requested period."""

    def __init__(self, period: ReturnPeriod):
        super().__init__(f"No saved draft for {period.key}")
        self.period = period


class DraftPersistenceError(DraftStoreError):
    """Backend unavailable or stored snapshot could not be parsed."""


# ---------------------------------------------------------------------------
# Key-value backends
# ---------------------------------------------------------------------------

class KeyValueBackend(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...


class InMemoryKeyValueBackend:
    """Process-local backend for development and tests."""

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)


class RedisKeyValueBackend:
    def __init__(self, client: redis.Redis, ttl_seconds: int = 0):
        self._r = client
        self._ttl = ttl_seconds or None

    @classmethod
    def from_url(cls, redis_url: str, ttl_seconds: int = 0) -> "RedisKeyValueBackend":
        if not redis_url:
            raise RuntimeError("REDIS_URL is not set")
        return cls(redis.from_url(redis_url, decode_responses=True), ttl_seconds)

    async def get(self, key: str) -> Optional[str]:
        return await self._r.get(key)

    async def set(self, key: str, value: str) -> None:
        await self._r.set(key, value, ex=self._ttl)

    async def delete(self, key: str) -> None:
        await self._r.delete(key)


# ---------------------------------------------------------------------------
# Draft store
# ---------------------------------------------------------------------------

class DraftStore:
    def __init__(self, backend: KeyValueBackend, key_prefix: str = "gstr3b:draft"):
        self._backend = backend
        self._prefix = key_prefix.rstrip(":")

    def _key(self, period: ReturnPeriod) -> str:
        return f"{self._prefix}:{period.key}"

    async def save(self, doc: Gstr3bDocument) -> None:
        """Snapshot ``doc`` into its period's slot, replacing any earlier draft."""
        key = self._key(doc.return_period)
        try:
            await self._backend.set(key, doc.model_dump_json(context={"lossless": True}))
        except Exception as exc:
            logger.error("Draft save failed for %s: %s", key, exc)
            raise DraftPersistenceError(f"Could not save draft {key}: {exc}") from exc
        logger.info("Draft saved: %s (status=%s)", key, doc.status.value)

    async def load(self, period: ReturnPeriod) -> Gstr3bDocument:
        """Return the saved draft for ``period``.

        Raises DraftNotFoundError when the slot is empty and
        DraftPersistenceError when the backend fails or the snapshot is corrupt.
        """
        key = self._key(period)
        try:
            raw = await self._backend.get(key)
        except Exception as exc:
            logger.error("Draft load failed for %s: %s", key, exc)
            raise DraftPersistenceError(f"Could not load draft {key}: {exc}") from exc

        if not raw:
            raise DraftNotFoundError(period)

        try:
            doc = Gstr3bDocument.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Draft %s has an invalid format: %s", key, exc)
            raise DraftPersistenceError(f"Error loading draft {key}: invalid data format") from exc

        if doc.return_period != period:
            raise DraftPersistenceError(
                f"Draft {key} belongs to period {doc.return_period.key}"
            )
        return doc

    async def delete(self, period: ReturnPeriod) -> None:
        key = self._key(period)
        try:
            await self._backend.delete(key)
        except Exception as exc:
            raise DraftPersistenceError(f"Could not delete draft {key}: {exc}") from exc


def build_draft_store(settings) -> DraftStore:
    """Create the draft store configured by ``DRAFT_STORE_BACKEND``."""
    kind = settings.DRAFT_STORE_BACKEND.lower()
    if kind == "redis":
        backend = RedisKeyValueBackend.from_url(settings.REDIS_URL, settings.DRAFT_TTL_SECONDS)
    elif kind == "memory":
        backend = InMemoryKeyValueBackend()
    else:
        raise ValueError(f"Unknown DRAFT_STORE_BACKEND: {settings.DRAFT_STORE_BACKEND!r}")
    logger.info("Draft store backend: %s", kind)
    return DraftStore(backend, key_prefix=settings.DRAFT_KEY_PREFIX)
