"""
In-memory reference VectorStore.

Brute-force cosine similarity over every stored entry. Suitable for tests
and small mailboxes; reads never block each other because nothing is
awaited while iterating.
"""

import math
from typing import Any, Mapping, Optional

from loguru import logger

from ..errors import DimensionMismatchError
from ..filters import coerce_filter, matches_filter
from ..models import VectorEntry, VectorSearchResult
from .base import VectorStore


def vector_magnitude(vector: list[float]) -> float:
    return math.sqrt(sum(x * x for x in vector))


def cosine_similarity(vector_a: list[float], vector_b: list[float]) -> float:
    """
    Compute cosine similarity between two vectors.

    Returns 0.0 when either vector has zero magnitude.
    """
    mag_a = vector_magnitude(vector_a)
    mag_b = vector_magnitude(vector_b)
    if mag_a == 0.0 or mag_b == 0.0:
        return 0.0

    dot_product = sum(a * b for a, b in zip(vector_a, vector_b))
    return dot_product / (mag_a * mag_b)


class MemoryVectorStore(VectorStore):
    """Dictionary-backed vector store."""

    def __init__(self) -> None:
        self._entries: dict[str, VectorEntry] = {}
        self._dimensions: int | None = None

    @property
    def name(self) -> str:
        return "memory"

    @property
    def dimensions(self) -> int | None:
        return self._dimensions

    def _check_width(self, vector: list[float], context: str) -> None:
        if self._dimensions is not None and len(vector) != self._dimensions:
            raise DimensionMismatchError(self._dimensions, len(vector), context)

    async def initialize(self, dimensions: int) -> None:
        if dimensions <= 0:
            raise ValueError(f"dimensions must be > 0, got {dimensions}")
        if self._dimensions == dimensions:
            return
        if self._entries and self._dimensions is not None:
            raise DimensionMismatchError(self._dimensions, dimensions, "initialize")
        self._dimensions = dimensions
        logger.debug("Memory vector store initialized with {} dimensions", dimensions)

    async def upsert(self, entries: list[VectorEntry]) -> None:
        if not entries:
            return
        if self._dimensions is None:
            await self.initialize(len(entries[0].vector))

        # Validate the whole batch before writing anything
        for entry in entries:
            self._check_width(entry.vector, f"entry {entry.id!r}")
        for entry in entries:
            self._entries[entry.id] = entry

    async def search(
        self,
        vector: list[float],
        limit: int,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> list[VectorSearchResult]:
        if self._dimensions is None or limit <= 0:
            return []
        self._check_width(vector, "query vector")
        if not self._entries:
            return []

        conditions = coerce_filter(filter)
        scored: list[VectorSearchResult] = []
        for entry in self._entries.values():
            if conditions and not matches_filter(entry.metadata, conditions):
                continue
            scored.append(
                VectorSearchResult(
                    id=entry.id,
                    score=cosine_similarity(vector, entry.vector),
                    metadata=entry.metadata,
                    content=entry.content,
                )
            )

        scored.sort(key=lambda hit: hit.score, reverse=True)
        return scored[:limit]

    async def delete(self, ids: list[str]) -> None:
        for entry_id in ids:
            self._entries.pop(entry_id, None)

    async def count(self) -> int:
        return len(self._entries)

    async def close(self) -> None:
        self._entries.clear()
        self._dimensions = None
