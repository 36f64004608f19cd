"""
Durable document stores used to rehydrate full emails and to reindex.

A DocumentStore is optional for the SearchEngine: without one, semantic hits
are rebuilt from vector metadata and reindex() is unavailable.
"""

import json
from abc import ABC, abstractmethod
from typing import Optional

from loguru import logger
from redis import asyncio as aioredis

from ..config import Config
from ..models import Email, to_millis


class DocumentStore(ABC):
    """Persistent object store for full Email documents."""

    @abstractmethod
    async def get_by_id(self, email_id: str) -> Optional[Email]:
        """Return the stored email, or None when unknown."""

    @abstractmethod
    async def save(self, email: Email) -> None:
        """Insert or replace an email."""

    @abstractmethod
    async def delete(self, email_id: str) -> None:
        """Remove an email; unknown ids are ignored."""

    @abstractmethod
    async def list(self, limit: int) -> list[Email]:
        """Return up to limit emails, newest first."""

    async def close(self) -> None:
        """Release connections (no-op by default)."""


class InMemoryDocumentStore(DocumentStore):
    """Dictionary-backed DocumentStore for tests and ephemeral use."""

    def __init__(self) -> None:
        self._emails: dict[str, Email] = {}

    async def get_by_id(self, email_id: str) -> Optional[Email]:
        return self._emails.get(email_id)

    async def save(self, email: Email) -> None:
        self._emails[email.id] = email

    async def delete(self, email_id: str) -> None:
        self._emails.pop(email_id, None)

    async def list(self, limit: int) -> list[Email]:
        ordered = sorted(self._emails.values(), key=lambda e: to_millis(e.date), reverse=True)
        return ordered[: max(limit, 0)]

    def __len__(self) -> int:
        return len(self._emails)


class RedisDocumentStore(DocumentStore):
    """
    Redis-backed DocumentStore.

    Layout:
    - <prefix>:email:<id>       JSON document (Email.to_dict())
    - <prefix>:emails:by_date   sorted set of ids scored by date (ms)
    """

    def __init__(
        self,
        url: str = Config.REDIS_URL,
        prefix: str = Config.REDIS_KEY_PREFIX,
        socket_timeout: float = Config.REDIS_SOCKET_TIMEOUT,
        client: Optional[aioredis.Redis] = None,
    ):
        self.url = url
        self.prefix = prefix
        self.socket_timeout = socket_timeout
        self._client = client

    async def _get_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = aioredis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
            )
            logger.debug("Redis document store connected to {}", self.url)
        return self._client

    def _key(self, email_id: str) -> str:
        return f"{self.prefix}:email:{email_id}"

    @property
    def _index_key(self) -> str:
        return f"{self.prefix}:emails:by_date"

    async def get_by_id(self, email_id: str) -> Optional[Email]:
        client = await self._get_client()
        raw = await client.get(self._key(email_id))
        if raw is None:
            return None
        return Email.from_dict(json.loads(raw))

    async def save(self, email: Email) -> None:
        client = await self._get_client()
        await client.set(self._key(email.id), json.dumps(email.to_dict()))
        await client.zadd(self._index_key, {email.id: to_millis(email.date)})

    async def delete(self, email_id: str) -> None:
        client = await self._get_client()
        await client.delete(self._key(email_id))
        await client.zrem(self._index_key, email_id)

    async def list(self, limit: int) -> list[Email]:
        if limit <= 0:
            return []
        client = await self._get_client()
        ids = await client.zrevrange(self._index_key, 0, limit - 1)
        if not ids:
            return []

        raws = await client.mget([self._key(email_id) for email_id in ids])
        emails = []
        for email_id, raw in zip(ids, raws):
            if raw is None:
                logger.warning("Redis index references missing email {}", email_id)
                continue
            emails.append(Email.from_dict(json.loads(raw)))
        return emails

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
