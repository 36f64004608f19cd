# embedding/gemini.py
"""
Gemini API embedding adapter with batching, retry, and rate limiting.
"""

import asyncio
import copy
import time
from dataclasses import dataclass
from typing import Dict, List

import google.generativeai as genai
from loguru import logger

from ..config import Config


@dataclass
class EmbeddingUsage:
    """Usage counters for quota tracking."""

    call_count: int = 0
    token_count: int = 0
    error_count: int = 0


class RateLimiter:
    """Simple token bucket rate limiter."""

    def __init__(self, calls_per_minute: int = 60):
        self.calls_per_minute = calls_per_minute
        self.interval = 60.0 / calls_per_minute
        self.last_call = 0.0
        self.lock = asyncio.Lock()

    async def wait(self):
        """Wait until we can make the next call."""
        async with self.lock:
            now = time.monotonic()
            time_since_last = now - self.last_call
            if time_since_last < self.interval:
                sleep_time = self.interval - time_since_last
                logger.debug("Rate limiting: sleeping {:.2f}s", sleep_time)
                await asyncio.sleep(sleep_time)
            self.last_call = time.monotonic()


class GeminiEmbedder:
    """
    EmbeddingProvider backed by the Gemini embedding API.

    Features:
    - Batch embedding (up to batch_size texts per call)
    - Automatic retry with exponential backoff on rate limits
    - No retry on invalid requests
    - Usage tracking for quota management

    The google-generativeai client is synchronous, so calls run in a worker
    thread to keep the event loop free.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "models/text-embedding-004",
        batch_size: int = Config.EMBEDDING_BATCH_SIZE,
        max_retries: int = Config.EMBEDDING_MAX_RETRIES,
        retry_base_delay: float = 60.0,
        calls_per_minute: int = 60,
        task_type: str = "retrieval_document",
    ):
        genai.configure(api_key=api_key)
        self.model = model
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.task_type = task_type

        self.rate_limiter = RateLimiter(calls_per_minute)
        self.usage = EmbeddingUsage()

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Batch embed texts via Gemini API with retry.

        Args:
            texts: List of texts to embed

        Returns:
            One vector per text
        """
        vectors: List[List[float]] = []

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            vectors.extend(await self._embed_with_retry(batch))

        return vectors

    def for_queries(self) -> "GeminiEmbedder":
        """
        Return a twin that embeds with the "retrieval_query" task type.

        Gemini embeddings are asymmetric: documents and queries use different
        task types. The twin shares this embedder's rate limiter and usage
        counters.
        """
        twin = copy.copy(self)
        twin.task_type = "retrieval_query"
        return twin

    async def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """Embed a single batch with retry logic."""
        retry_count = 0
        last_error: Exception | None = None

        while retry_count < self.max_retries:
            try:
                await self.rate_limiter.wait()

                response = await asyncio.to_thread(
                    genai.embed_content,
                    model=self.model,
                    content=texts,
                    task_type=self.task_type,
                )

                self.usage.call_count += 1
                self.usage.token_count += sum(len(t.split()) for t in texts)  # Approximate

                embeddings = response["embedding"]
                # Single-text requests come back as a flat vector
                if embeddings and not isinstance(embeddings[0], list):
                    embeddings = [embeddings]

                logger.debug("Embedded batch of {} texts", len(texts))
                return [list(vector) for vector in embeddings]

            except Exception as e:
                error_str = str(e)
                last_error = e

                if "429" in error_str or "quota" in error_str.lower() or "rate" in error_str.lower():
                    wait_time = self.retry_base_delay * (2**retry_count)
                    logger.warning(
                        "Rate limit hit, waiting {}s before retry {}/{}",
                        wait_time,
                        retry_count + 1,
                        self.max_retries,
                    )
                elif "400" in error_str or "invalid" in error_str.lower():
                    self.usage.error_count += 1
                    logger.error("Invalid embedding request: {}", e)
                    raise
                else:
                    wait_time = 5 * (2**retry_count)
                    logger.warning("Embedding error: {}. Retrying in {}s", e, wait_time)

                self.usage.error_count += 1
                retry_count += 1
                if retry_count < self.max_retries:
                    await asyncio.sleep(wait_time)

        logger.error("All retries exhausted for batch embedding")
        raise last_error if last_error else RuntimeError("Embedding failed without an error")

    def get_usage(self) -> Dict:
        """Get usage statistics."""
        return {
            "call_count": self.usage.call_count,
            "token_count": self.usage.token_count,
            "error_count": self.usage.error_count,
            "model": self.model,
        }

    def reset_usage(self):
        """Reset usage counters (e.g., for daily reset)."""
        self.usage = EmbeddingUsage()
