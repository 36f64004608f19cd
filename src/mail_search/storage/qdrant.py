# storage/qdrant.py
"""
Qdrant-backed VectorStore.

Qdrant point ids must be unsigned ints or UUIDs, so entry ids such as
"<emailId>:chunk:3" are mapped to a deterministic uuid5; the original id and
chunk content travel in the payload next to the email metadata.
"""

import uuid
from typing import Any, Mapping, Optional

from loguru import logger
from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchAny,
    MatchValue,
    PointIdsList,
    PointStruct,
    Range as QdrantRange,
    VectorParams,
)

from ..config import Config
from ..errors import DimensionMismatchError
from ..filters import AnyOf, Contains, Equals, In, Range, coerce_filter
from ..models import VectorEntry, VectorSearchResult
from .base import VectorStore

ENTRY_ID_KEY = "entry_id"
CONTENT_KEY = "content"


def point_id(entry_id: str) -> str:
    """Deterministic Qdrant point id for an entry id."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, entry_id))


def build_qdrant_filter(filter: Optional[Mapping[str, Any]]) -> Filter | None:
    """
    Translate a MetadataFilter into a Qdrant Filter.

    Contains maps to MatchValue because Qdrant matches array payloads when
    any element equals the value.
    """
    conditions = coerce_filter(filter)
    if not conditions:
        return None

    must = []
    for key, condition in conditions.items():
        if condition is None:
            continue
        if isinstance(condition, (Equals, Contains)):
            must.append(FieldCondition(key=key, match=MatchValue(value=condition.value)))
        elif isinstance(condition, (AnyOf, In)):
            must.append(FieldCondition(key=key, match=MatchAny(any=list(condition.values))))
        elif isinstance(condition, Range):
            must.append(
                FieldCondition(
                    key=key,
                    range=QdrantRange(
                        gte=condition.gte, lte=condition.lte, gt=condition.gt, lt=condition.lt
                    ),
                )
            )
    return Filter(must=must) if must else None


class QdrantVectorStore(VectorStore):
    """VectorStore over a single Qdrant collection with cosine distance."""

    def __init__(
        self,
        url: str = Config.QDRANT_URL,
        api_key: str | None = Config.QDRANT_API_KEY,
        collection: str = Config.QDRANT_COLLECTION,
        timeout: int = Config.QDRANT_TIMEOUT,
        client: AsyncQdrantClient | None = None,
        upsert_batch_size: int = 100,
    ):
        if client is not None:
            self.client = client
        elif api_key:
            self.client = AsyncQdrantClient(url=url, api_key=api_key, timeout=timeout)
        else:
            self.client = AsyncQdrantClient(url=url, timeout=timeout)
        self.collection = collection
        self.upsert_batch_size = upsert_batch_size
        self._dimensions: int | None = None
        self._ready = False

    @property
    def name(self) -> str:
        return "qdrant"

    async def initialize(self, dimensions: int) -> None:
        if self._ready and self._dimensions == dimensions:
            return

        if await self.client.collection_exists(self.collection):
            existing = await self._collection_dimensions()
            if existing is not None and existing != dimensions:
                raise DimensionMismatchError(existing, dimensions, f"collection {self.collection!r}")
        else:
            await self.client.create_collection(
                collection_name=self.collection,
                vectors_config=VectorParams(size=dimensions, distance=Distance.COSINE),
            )
            logger.info("Created Qdrant collection {} ({} dims)", self.collection, dimensions)

        self._dimensions = dimensions
        self._ready = True

    async def _collection_dimensions(self) -> int | None:
        info = await self.client.get_collection(self.collection)
        vectors = info.config.params.vectors
        return getattr(vectors, "size", None)

    async def _attach(self) -> bool:
        """Pick up an existing collection without creating one."""
        if self._ready:
            return True
        if not await self.client.collection_exists(self.collection):
            return False
        self._dimensions = await self._collection_dimensions()
        self._ready = True
        return True

    def _check_width(self, vector: list[float], context: str) -> None:
        if self._dimensions is not None and len(vector) != self._dimensions:
            raise DimensionMismatchError(self._dimensions, len(vector), context)

    async def upsert(self, entries: list[VectorEntry]) -> None:
        if not entries:
            return
        if not await self._attach():
            await self.initialize(len(entries[0].vector))

        for entry in entries:
            self._check_width(entry.vector, f"entry {entry.id!r}")

        for i in range(0, len(entries), self.upsert_batch_size):
            batch = entries[i : i + self.upsert_batch_size]
            points = [
                PointStruct(
                    id=point_id(entry.id),
                    vector=entry.vector,
                    payload={**entry.metadata, ENTRY_ID_KEY: entry.id, CONTENT_KEY: entry.content},
                )
                for entry in batch
            ]
            await self.client.upsert(collection_name=self.collection, points=points, wait=True)

        logger.debug("Upserted {} points into {}", len(entries), self.collection)

    async def search(
        self,
        vector: list[float],
        limit: int,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> list[VectorSearchResult]:
        if not await self._attach():
            return []
        self._check_width(vector, "query vector")
        if limit <= 0:
            return []

        response = await self.client.query_points(
            collection_name=self.collection,
            query=vector,
            query_filter=build_qdrant_filter(filter),
            limit=limit,
            with_payload=True,
        )

        results = []
        for point in response.points:
            payload = dict(point.payload or {})
            entry_id = payload.pop(ENTRY_ID_KEY, str(point.id))
            content = payload.pop(CONTENT_KEY, "")
            results.append(
                VectorSearchResult(id=entry_id, score=point.score, metadata=payload, content=content)
            )
        return results

    async def delete(self, ids: list[str]) -> None:
        if not ids or not await self._attach():
            return
        await self.client.delete(
            collection_name=self.collection,
            points_selector=PointIdsList(points=[point_id(i) for i in ids]),
            wait=True,
        )

    async def count(self) -> int:
        if not await self._attach():
            return 0
        result = await self.client.count(collection_name=self.collection, exact=True)
        return result.count

    async def close(self) -> None:
        await self.client.close()
        self._ready = False
        self._dimensions = None
