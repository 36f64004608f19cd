"""Embedding providers for semantic search."""

from typing import Optional

from ..config import Config
from ..errors import ConfigurationError
from .gemini import EmbeddingUsage, GeminiEmbedder, RateLimiter
from .litellm_embedder import LiteLLMEmbedder
from .provider import EmbeddingProvider


def create_embedding_provider(provider: Optional[str] = None) -> EmbeddingProvider:
    """
    Create the configured EmbeddingProvider.

    Raises:
        ConfigurationError: If the provider is unknown or misconfigured
    """
    provider = (provider or Config.EMBEDDING_PROVIDER).lower()

    if provider == "litellm":
        return LiteLLMEmbedder(model=Config.EMBEDDING_MODEL)
    if provider == "gemini":
        if not Config.GEMINI_API_KEY:
            raise ConfigurationError("GEMINI_API_KEY is required for the gemini embedding provider")
        model = Config.EMBEDDING_MODEL
        if not model.startswith("models/"):
            model = "models/text-embedding-004"
        return GeminiEmbedder(api_key=Config.GEMINI_API_KEY, model=model)

    raise ConfigurationError(f"Unknown embedding provider: {provider!r}")


def query_embedder_for(embedder: EmbeddingProvider) -> EmbeddingProvider:
    """Provider to use for search queries; differs only for asymmetric models."""
    if isinstance(embedder, GeminiEmbedder):
        return embedder.for_queries()
    return embedder


__all__ = [
    "EmbeddingProvider",
    "EmbeddingUsage",
    "GeminiEmbedder",
    "LiteLLMEmbedder",
    "RateLimiter",
    "create_embedding_provider",
    "query_embedder_for",
]
