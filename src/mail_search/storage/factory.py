"""Build storage backends from Config."""

from typing import Optional

from ..config import Config
from ..errors import ConfigurationError
from .base import VectorStore
from .documents import DocumentStore, InMemoryDocumentStore, RedisDocumentStore
from .memory import MemoryVectorStore
from .qdrant import QdrantVectorStore


def create_vector_store(store_type: Optional[str] = None) -> VectorStore:
    """
    Create the configured VectorStore.

    Args:
        store_type: Backend name; defaults to Config.VECTOR_STORE

    Raises:
        ConfigurationError: If the backend name is unknown
    """
    store_type = (store_type or Config.VECTOR_STORE).lower()

    if store_type == "memory":
        return MemoryVectorStore()
    if store_type == "qdrant":
        return QdrantVectorStore(
            url=Config.QDRANT_URL,
            api_key=Config.QDRANT_API_KEY,
            collection=Config.QDRANT_COLLECTION,
            timeout=Config.QDRANT_TIMEOUT,
        )

    raise ConfigurationError(f"Unknown vector store type: {store_type!r}")


def create_document_store(store_type: Optional[str] = None) -> Optional[DocumentStore]:
    """
    Create the configured DocumentStore, or None when disabled.

    Raises:
        ConfigurationError: If the backend name is unknown
    """
    store_type = (store_type or Config.DOCUMENT_STORE).lower()

    if store_type == "none":
        return None
    if store_type == "memory":
        return InMemoryDocumentStore()
    if store_type == "redis":
        return RedisDocumentStore(
            url=Config.REDIS_URL,
            prefix=Config.REDIS_KEY_PREFIX,
            socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
        )

    raise ConfigurationError(f"Unknown document store type: {store_type!r}")
