"""LiteLLM embedding gateway (OpenAI, Azure, Ollama, ... behind one call)."""

from typing import Any

import litellm
from loguru import logger

from ..config import Config


def _vector_of(item: Any) -> tuple[int, list[float]]:
    if isinstance(item, dict):
        return item.get("index", 0), list(item["embedding"])
    return getattr(item, "index", 0), list(item.embedding)


class LiteLLMEmbedder:
    """
    EmbeddingProvider that forwards to litellm.aembedding.

    The default model produces 1536-dim vectors, matching
    Config.EMBEDDING_DIMENSIONS.
    """

    def __init__(
        self,
        model: str = Config.EMBEDDING_MODEL,
        batch_size: int = Config.EMBEDDING_BATCH_SIZE,
        **kwargs: Any,
    ):
        self.model = model
        self.batch_size = batch_size
        self.extra_params = kwargs  # api_key, api_base, dimensions, ...

    async def embed(self, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            response = await litellm.aembedding(model=self.model, input=batch, **self.extra_params)
            # Providers may return items out of order; index restores input order
            ordered = sorted((_vector_of(item) for item in response.data), key=lambda p: p[0])
            vectors.extend(vector for _, vector in ordered)
            logger.debug("Embedded batch of {} texts with {}", len(batch), self.model)
        return vectors
