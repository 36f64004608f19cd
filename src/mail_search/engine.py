# engine.py
"""
SearchEngine: the single entry point for indexing and searching emails.

Owns a VectorStore, an EmbeddingProvider, an internal LexicalIndex and an
optional DocumentStore, and keeps the lexical and vector indexes in step.
The two indexes are independent stores; reindex() from the DocumentStore
is the recovery path if they drift apart.

Example:
    engine = SearchEngine(MemoryVectorStore(), LiteLLMEmbedder())
    await engine.index(emails)
    results = await engine.search("from:alice budget", mode=SearchMode.FULLTEXT)
    await engine.close()
"""

from dataclasses import fields
from enum import Enum
from typing import Any, Awaitable, Optional

from loguru import logger

from .config import Config
from .embedding import create_embedding_provider, query_embedder_for
from .embedding.provider import EmbeddingProvider
from .errors import ConfigurationError, DimensionMismatchError, MailSearchError, RetrievalError
from .ingestion.chunker import TextChunker, email_to_plain_text
from .models import (
    Email,
    EmailMetadata,
    HybridSearchOptions,
    SearchOptions,
    SearchResult,
    VectorEntry,
    chunk_entry_id,
)
from .retrieval.hybrid import HybridSearch
from .retrieval.lexical import LexicalIndex
from .retrieval.semantic import SemanticSearch
from .storage.base import VectorStore
from .storage.documents import DocumentStore
from .storage.factory import create_document_store, create_vector_store


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"


class SearchMode(str, Enum):
    FULLTEXT = "fulltext"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


class SearchEngine:
    """
    Orchestrates indexing and the three search paths.

    Lifecycle:
    - UNINITIALIZED: the vector store has not been prepared yet
    - READY: the store was initialized by initialize() or the first non-empty index()
    - close() releases the stores and returns to UNINITIALIZED
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: EmbeddingProvider,
        document_store: Optional[DocumentStore] = None,
        dimensions: int = Config.EMBEDDING_DIMENSIONS,
        chunk_size: int = Config.CHUNK_SIZE,
        chunk_overlap: int = Config.CHUNK_OVERLAP,
    ):
        if dimensions <= 0:
            raise ValueError(f"dimensions must be > 0, got {dimensions}")

        self.vector_store = vector_store
        self.embedder = embedder
        self.document_store = document_store
        self.dimensions = dimensions

        self.chunker = TextChunker(chunk_size, chunk_overlap, max_chunks=Config.CHUNK_ID_BOUND)
        self.lexical = LexicalIndex()
        self.semantic = SemanticSearch(
            vector_store, embedder, document_store, query_embedder=query_embedder_for(embedder)
        )
        self.hybrid = HybridSearch(self.semantic, self.lexical)

        self.state = EngineState.UNINITIALIZED

    @classmethod
    def from_config(cls) -> "SearchEngine":
        """Build an engine with the backends and embedder named in Config."""
        Config.validate()
        return cls(
            vector_store=create_vector_store(),
            embedder=create_embedding_provider(),
            document_store=create_document_store(),
            dimensions=Config.EMBEDDING_DIMENSIONS,
        )

    @property
    def is_ready(self) -> bool:
        return self.state is EngineState.READY

    async def _store_call(self, action: str, call: Awaitable[Any]) -> Any:
        """Await a vector store call, wrapping untyped failures in RetrievalError."""
        try:
            return await call
        except MailSearchError:
            raise
        except Exception as e:
            logger.error("Vector store {} failed: {}", action, e)
            raise RetrievalError(f"Vector store {action} failed", cause=e) from e

    async def initialize(self) -> None:
        """Initialize the vector store once; later calls are no-ops."""
        if self.state is EngineState.READY:
            return
        await self._store_call("initialize", self.vector_store.initialize(self.dimensions))
        self.state = EngineState.READY
        logger.info(
            "Search engine ready ({} store, {} dimensions)", self.vector_store.name, self.dimensions
        )

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def _entry_ids(self, email_id: str) -> list[str]:
        """Every vector id an email may own: the base id plus the chunk id range."""
        return [email_id] + [chunk_entry_id(email_id, n) for n in range(Config.CHUNK_ID_BOUND)]

    async def _build_entries(self, emails: list[Email]) -> list[VectorEntry]:
        """
        Chunk and embed every email.

        All embedding happens before anything is written, so a failure
        leaves both indexes untouched.
        """
        texts: list[str] = []
        owners: list[tuple[Email, int, int]] = []

        for email in emails:
            chunks = self.chunker.chunk(email_to_plain_text(email))
            for chunk in chunks:
                texts.append(chunk.text)
                owners.append((email, chunk.index, len(chunks)))

        if not texts:
            return []

        try:
            vectors = await self.embedder.embed(texts)
        except Exception as e:
            logger.error("Embedding {} chunks failed: {}", len(texts), e)
            raise RetrievalError(f"Failed to embed {len(emails)} emails", cause=e) from e

        if len(vectors) != len(texts):
            raise RetrievalError(
                f"Embedding provider returned {len(vectors)} vectors for {len(texts)} chunks"
            )
        for vector in vectors:
            if len(vector) != self.dimensions:
                raise DimensionMismatchError(self.dimensions, len(vector), "embedding")

        entries = []
        for text, vector, (email, chunk_index, total) in zip(texts, vectors, owners):
            entry_id = email.id if total == 1 else chunk_entry_id(email.id, chunk_index)
            entries.append(
                VectorEntry(
                    id=entry_id,
                    vector=vector,
                    metadata=EmailMetadata.from_email(email, chunk_index, total).to_payload(),
                    content=text,
                )
            )
        return entries

    async def _index(
        self, emails: list[Email], persist: bool, replace_lexical: bool = False
    ) -> None:
        if not emails:
            return

        entries = await self._build_entries(emails)
        await self.initialize()

        # A re-indexed email may now have fewer chunks; clear its old ids first
        stale_ids = [entry_id for email in emails for entry_id in self._entry_ids(email.id)]
        await self._store_call("delete", self.vector_store.delete(stale_ids))
        await self._store_call("upsert", self.vector_store.upsert(entries))

        if replace_lexical:
            self.lexical.clear()
        self.lexical.index(emails)

        if persist and self.document_store is not None:
            for email in emails:
                await self.document_store.save(email)

        logger.info("Indexed {} emails as {} vector entries", len(emails), len(entries))

    async def index(self, emails: list[Email]) -> None:
        """
        Index emails into both the vector store and the lexical index.

        An empty list is a no-op and never touches the vector store.

        Raises:
            RetrievalError: If embedding or the vector store fails; nothing
                is written when embedding fails
        """
        await self._index(emails, persist=True)

    async def index_email(self, email: Email) -> None:
        await self.index([email])

    async def remove_from_index(self, email_id: str) -> None:
        """
        Remove an email from every index.

        Deletes the base vector id and the whole chunk id range, since the
        chunk count used at index time is not tracked.
        """
        await self._store_call("delete", self.vector_store.delete(self._entry_ids(email_id)))
        self.lexical.remove_email(email_id)

        if self.document_store is not None:
            await self.document_store.delete(email_id)

        logger.info("Removed email {} from index", email_id)

    async def reindex(self) -> int:
        """
        Rebuild both indexes from the document store.

        Returns:
            Number of emails re-indexed

        Raises:
            ConfigurationError: If no document store is configured
        """
        if self.document_store is None:
            raise ConfigurationError("reindex() requires a document store")

        emails = await self.document_store.list(Config.REINDEX_LIMIT)
        logger.info("Reindexing {} emails from document store", len(emails))

        if not emails:
            self.lexical.clear()
            return 0

        await self._index(emails, persist=False, replace_lexical=True)
        return len(emails)

    async def get_indexed_count(self) -> int:
        """Number of vector entries (chunks, not emails) in the store."""
        return await self._store_call("count", self.vector_store.count())

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search_semantic(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> list[SearchResult]:
        return await self.semantic.search(query, options)

    async def search_full_text(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> list[SearchResult]:
        return self.lexical.search(query, options)

    async def search_hybrid(
        self, query: str, options: Optional[HybridSearchOptions] = None
    ) -> list[SearchResult]:
        return await self.hybrid.search(query, options)

    async def search(
        self,
        query: str,
        options: Optional[SearchOptions] = None,
        mode: SearchMode = SearchMode.HYBRID,
    ) -> list[SearchResult]:
        """
        Route a query to one of the search paths.

        Args:
            query: Query string (the lexical path understands from:, is:, ...)
            options: Search options; plain SearchOptions are accepted for hybrid
            mode: fulltext, semantic or hybrid (default)
        """
        mode = SearchMode(mode)

        if mode is SearchMode.FULLTEXT:
            return await self.search_full_text(query, options)
        if mode is SearchMode.SEMANTIC:
            return await self.search_semantic(query, options)

        if options is not None and not isinstance(options, HybridSearchOptions):
            options = HybridSearchOptions(**{f.name: getattr(options, f.name) for f in fields(options)})
        return await self.search_hybrid(query, options)

    def get_stats(self) -> dict:
        return {
            "state": self.state.value,
            "vector_store": self.vector_store.name,
            "dimensions": self.dimensions,
            "lexical": self.lexical.get_index_stats(),
            "document_store": type(self.document_store).__name__ if self.document_store else None,
        }

    async def close(self) -> None:
        """Release the stores; the next index() initializes again."""
        await self._store_call("close", self.vector_store.close())
        if self.document_store is not None:
            await self.document_store.close()
        self.state = EngineState.UNINITIALIZED
        logger.info("Search engine closed")
