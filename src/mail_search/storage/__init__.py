"""Storage layer - vector stores and durable document stores."""

from .base import VectorStore
from .documents import DocumentStore, InMemoryDocumentStore, RedisDocumentStore
from .factory import create_document_store, create_vector_store
from .memory import MemoryVectorStore, cosine_similarity
from .qdrant import QdrantVectorStore

__all__ = [
    "VectorStore",
    "MemoryVectorStore",
    "QdrantVectorStore",
    "cosine_similarity",
    "DocumentStore",
    "InMemoryDocumentStore",
    "RedisDocumentStore",
    "create_vector_store",
    "create_document_store",
]
