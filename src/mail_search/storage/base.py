"""
VectorStore contract.

Every backend (in-memory, Qdrant, ...) must honour the same semantics:
insert-or-replace upserts, cosine-ranked search with the predicate shapes in
mail_search.filters, silent deletes of unknown ids, and an empty result
(never an error) for an empty store.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from ..models import VectorEntry, VectorSearchResult


class VectorStore(ABC):
    """Abstract nearest-neighbour store with metadata filtering."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend identifier, e.g. "memory"."""

    @abstractmethod
    async def initialize(self, dimensions: int) -> None:
        """
        Prepare storage for vectors of the given width.

        Idempotent per instance.

        Raises:
            DimensionMismatchError: If the store already holds vectors of another width
        """

    @abstractmethod
    async def upsert(self, entries: list[VectorEntry]) -> None:
        """
        Insert or replace entries by id.

        Raises:
            DimensionMismatchError: If any vector has the wrong width
        """

    @abstractmethod
    async def search(
        self,
        vector: list[float],
        limit: int,
        filter: Optional[Mapping[str, Any]] = None,
    ) -> list[VectorSearchResult]:
        """
        Rank stored entries by cosine similarity to vector.

        Args:
            vector: Query embedding
            limit: Maximum number of hits
            filter: Optional MetadataFilter (or loose predicate map)

        Returns:
            Hits sorted by score descending
        """

    @abstractmethod
    async def delete(self, ids: list[str]) -> None:
        """Remove entries by id; missing ids are ignored."""

    @abstractmethod
    async def count(self) -> int:
        """Number of stored entries."""

    @abstractmethod
    async def close(self) -> None:
        """Release resources held by the store."""
