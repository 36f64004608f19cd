"""Tests for durable document stores (in-memory and Redis)."""

import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from mail_search.config import Config
from mail_search.errors import ConfigurationError
from mail_search.models import Email, to_millis
from mail_search.storage.documents import InMemoryDocumentStore, RedisDocumentStore
from mail_search.storage.factory import create_document_store

from .conftest import make_email


def dated(email_id, day):
    return make_email(email_id, date=datetime(2024, 1, day, tzinfo=timezone.utc))


class TestInMemoryDocumentStore:
    @pytest.mark.asyncio
    async def test_save_get_delete(self):
        store = InMemoryDocumentStore()
        email = dated("e1", 1)

        await store.save(email)
        assert await store.get_by_id("e1") is email

        await store.delete("e1")
        await store.delete("missing")
        assert await store.get_by_id("e1") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_list_is_newest_first_and_limited(self):
        store = InMemoryDocumentStore()
        for email in (dated("old", 1), dated("new", 20), dated("mid", 10)):
            await store.save(email)

        assert [e.id for e in await store.list(10)] == ["new", "mid", "old"]
        assert [e.id for e in await store.list(2)] == ["new", "mid"]
        assert await store.list(0) == []


class TestRedisDocumentStore:
    @pytest.fixture
    def redis_client(self):
        client = AsyncMock()
        client.get.return_value = None
        client.zrevrange.return_value = []
        return client

    @pytest.fixture
    def store(self, redis_client):
        return RedisDocumentStore(prefix="test", client=redis_client)

    @pytest.mark.asyncio
    async def test_save_writes_document_and_date_index(self, store, redis_client):
        email = dated("e1", 5)

        await store.save(email)

        key, payload = redis_client.set.call_args.args
        assert key == "test:email:e1"
        assert json.loads(payload)["subject"] == email.subject
        redis_client.zadd.assert_awaited_once_with(
            "test:emails:by_date", {"e1": to_millis(email.date)}
        )

    @pytest.mark.asyncio
    async def test_get_by_id_round_trips(self, store, redis_client):
        email = make_email(
            "e1",
            subject="Budget",
            labels=["work"],
            attachments=["a.pdf"],
            date=datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc),
        )
        redis_client.get.return_value = json.dumps(email.to_dict())

        loaded = await store.get_by_id("e1")

        redis_client.get.assert_awaited_once_with("test:email:e1")
        assert loaded == email

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        assert await store.get_by_id("missing") is None

    @pytest.mark.asyncio
    async def test_delete_removes_document_and_index_entry(self, store, redis_client):
        await store.delete("e1")

        redis_client.delete.assert_awaited_once_with("test:email:e1")
        redis_client.zrem.assert_awaited_once_with("test:emails:by_date", "e1")

    @pytest.mark.asyncio
    async def test_list_reads_newest_ids_and_skips_dangling(self, store, redis_client):
        newer, older = dated("e2", 9), dated("e1", 1)
        redis_client.zrevrange.return_value = ["e2", "gone", "e1"]
        redis_client.mget.return_value = [
            json.dumps(newer.to_dict()),
            None,
            json.dumps(older.to_dict()),
        ]

        emails = await store.list(3)

        redis_client.zrevrange.assert_awaited_once_with("test:emails:by_date", 0, 2)
        assert [e.id for e in emails] == ["e2", "e1"]
        assert all(isinstance(e, Email) for e in emails)

    @pytest.mark.asyncio
    async def test_list_with_non_positive_limit(self, store, redis_client):
        assert await store.list(0) == []
        redis_client.zrevrange.assert_not_called()

    @pytest.mark.asyncio
    async def test_close(self, store, redis_client):
        await store.close()
        redis_client.aclose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lazy_client_uses_configured_url(self):
        store = RedisDocumentStore(url="redis://cache:6379", socket_timeout=1.5)

        with patch("mail_search.storage.documents.aioredis.from_url") as from_url:
            from_url.return_value = AsyncMock()
            from_url.return_value.get.return_value = None
            await store.get_by_id("e1")
            await store.get_by_id("e2")

        from_url.assert_called_once()
        assert from_url.call_args.args == ("redis://cache:6379",)
        assert from_url.call_args.kwargs["socket_timeout"] == 1.5
        assert from_url.call_args.kwargs["decode_responses"] is True


class TestDocumentStoreFactory:
    def test_none_disables_store(self):
        assert create_document_store("none") is None

    def test_memory_and_redis(self, monkeypatch):
        monkeypatch.setattr(Config, "REDIS_KEY_PREFIX", "inbox")

        assert isinstance(create_document_store("memory"), InMemoryDocumentStore)
        redis_store = create_document_store("redis")
        assert isinstance(redis_store, RedisDocumentStore)
        assert redis_store.prefix == "inbox"

    def test_unknown_store(self):
        with pytest.raises(ConfigurationError, match="couchdb"):
            create_document_store("couchdb")
