# retrieval/semantic.py
"""
Semantic search: embed the query, ask the vector store, rebuild emails.
"""

from typing import Optional

from loguru import logger

from ..config import Config
from ..embedding.provider import EmbeddingProvider
from ..errors import MailSearchError, RetrievalError
from ..filters import Contains, Equals, MetadataFilter, Range
from ..models import (
    EmailMetadata,
    MatchType,
    SearchOptions,
    SearchResult,
    email_id_from_entry_id,
    to_millis,
)
from ..storage.base import VectorStore
from ..storage.documents import DocumentStore


def build_metadata_filter(options: SearchOptions) -> Optional[MetadataFilter]:
    """
    Translate search options into a vector store filter.

    Returns None (not an empty dict) when no option constrains the search.
    """
    conditions: MetadataFilter = {}

    if options.folder:
        conditions["folder"] = Equals(options.folder)
    if options.label:
        conditions["labels"] = Contains(options.label)
    if options.from_address:
        conditions["from_address"] = Equals(options.from_address)
    if options.after is not None or options.before is not None:
        conditions["date_ms"] = Range(
            gte=to_millis(options.after) if options.after is not None else None,
            lte=to_millis(options.before) if options.before is not None else None,
        )

    return conditions or None


class SemanticSearch:
    """
    Bridges text queries to a VectorStore through an EmbeddingProvider.

    Hits are rehydrated through the optional DocumentStore. When there is
    no store, or it misses, a minimal Email is rebuilt from the stored
    metadata with the chunk content as its body.

    Queries go through query_embedder when given, so asymmetric models can
    embed queries and documents differently.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedder: EmbeddingProvider,
        document_store: Optional[DocumentStore] = None,
        query_embedder: Optional[EmbeddingProvider] = None,
    ):
        self.vector_store = vector_store
        self.embedder = embedder
        self.query_embedder = query_embedder or embedder
        self.document_store = document_store

    async def embed_query(self, query: str) -> list[float]:
        try:
            vectors = await self.query_embedder.embed([query])
        except Exception as e:
            logger.error("Query embedding failed: {}", e)
            raise RetrievalError("Failed to embed query", cause=e) from e

        if len(vectors) != 1:
            raise RetrievalError(f"Embedding provider returned {len(vectors)} vectors for 1 query")
        return vectors[0]

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> list[SearchResult]:
        """
        Run a semantic search.

        Args:
            query: Free-text query
            options: limit (forwarded to the store, default 20), min_score and
                folder/label/from/date filters

        Returns:
            One SearchResult per email, best chunk first

        Raises:
            RetrievalError: If embedding or the vector store fails
        """
        options = options or SearchOptions()
        vector = await self.embed_query(query)
        limit = options.limit if options.limit is not None else Config.SEMANTIC_DEFAULT_LIMIT
        metadata_filter = build_metadata_filter(options)

        try:
            hits = await self.vector_store.search(vector, limit, metadata_filter)
        except MailSearchError:
            raise
        except Exception as e:
            logger.error("Vector store search failed: {}", e)
            raise RetrievalError("Vector store search failed", cause=e) from e

        results: list[SearchResult] = []
        seen: set[str] = set()

        for hit in hits:
            if options.min_score is not None and hit.score <= options.min_score:
                continue

            metadata = EmailMetadata.from_payload(
                hit.metadata, fallback_id=email_id_from_entry_id(hit.id)
            )
            # Hits arrive best first, so the first chunk seen per email wins
            if metadata.email_id in seen:
                continue
            seen.add(metadata.email_id)

            email = None
            if self.document_store is not None:
                email = await self.document_store.get_by_id(metadata.email_id)
            if email is None:
                email = metadata.to_email(hit.content)

            results.append(
                SearchResult(
                    email=email,
                    score=hit.score,
                    match_type=MatchType.SEMANTIC,
                    highlights=[hit.content] if hit.content else [],
                )
            )

        logger.debug("Semantic search returned {} emails from {} hits", len(results), len(hits))
        return results
