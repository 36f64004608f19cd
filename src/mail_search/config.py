"""Centralized configuration for mail-search."""

import os


def _bool_env(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


# Output width of each provider's default model
PROVIDER_DIMENSIONS: dict[str, int] = {"litellm": 1536, "gemini": 768}


def _default_dimensions() -> str:
    provider = os.getenv("EMBEDDING_PROVIDER", "litellm").lower()
    return str(PROVIDER_DIMENSIONS.get(provider, 1536))


class Config:
    """
    mail-search configuration with environment variable overrides.

    All tunable constants live here with sensible defaults so that ranking
    and indexing behaviour can change without code changes.
    """

    # ========================================================================
    # Indexing
    # ========================================================================
    EMBEDDING_DIMENSIONS: int = int(os.getenv("EMBEDDING_DIMENSIONS") or _default_dimensions())
    CHUNK_SIZE: int = int(os.getenv("CHUNK_SIZE", "1000"))
    CHUNK_OVERLAP: int = int(os.getenv("CHUNK_OVERLAP", "200"))
    # Removal deletes <id>:chunk:0 .. <id>:chunk:{CHUNK_ID_BOUND - 1}
    CHUNK_ID_BOUND: int = 100
    REINDEX_LIMIT: int = int(os.getenv("REINDEX_LIMIT", "10000"))

    # ========================================================================
    # Ranking
    # ========================================================================
    BM25_K1: float = float(os.getenv("BM25_K1", "1.2"))
    BM25_B: float = float(os.getenv("BM25_B", "0.75"))
    SUBJECT_BOOST: int = int(os.getenv("SUBJECT_BOOST", "2"))
    RRF_K: int = int(os.getenv("RRF_K", "60"))
    HYBRID_DEFAULT_ALPHA: float = float(os.getenv("HYBRID_DEFAULT_ALPHA", "0.5"))
    HYBRID_FETCH_MULTIPLIER: int = 3
    SEMANTIC_DEFAULT_LIMIT: int = 20
    FULLTEXT_DEFAULT_LIMIT: int = 10
    HYBRID_DEFAULT_LIMIT: int = 10
    HIGHLIGHT_CONTEXT_CHARS: int = 40
    MAX_HIGHLIGHTS: int = 3

    # ========================================================================
    # Vector Store Backend
    # ========================================================================
    VECTOR_STORE: str = os.getenv("VECTOR_STORE", "memory")
    QDRANT_URL: str = os.getenv("QDRANT_URL", "http://localhost:6333")
    QDRANT_API_KEY: str | None = os.getenv("QDRANT_API_KEY") or None
    QDRANT_COLLECTION: str = os.getenv("QDRANT_COLLECTION", "mail_search_emails")
    QDRANT_TIMEOUT: int = int(os.getenv("QDRANT_TIMEOUT", "30"))

    # ========================================================================
    # Document Store Backend
    # ========================================================================
    DOCUMENT_STORE: str = os.getenv("DOCUMENT_STORE", "none")
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    REDIS_KEY_PREFIX: str = os.getenv("REDIS_KEY_PREFIX", "mail_search")
    REDIS_SOCKET_TIMEOUT: float = float(os.getenv("REDIS_SOCKET_TIMEOUT", "2"))

    # ========================================================================
    # Embeddings
    # ========================================================================
    EMBEDDING_PROVIDER: str = os.getenv("EMBEDDING_PROVIDER", "litellm")
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    GEMINI_API_KEY: str | None = os.getenv("GEMINI_API_KEY") or None
    EMBEDDING_BATCH_SIZE: int = int(os.getenv("EMBEDDING_BATCH_SIZE", "100"))
    EMBEDDING_MAX_RETRIES: int = int(os.getenv("EMBEDDING_MAX_RETRIES", "3"))

    # ========================================================================
    # Logging
    # ========================================================================
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIAGNOSE: bool = _bool_env("LOG_DIAGNOSE", "false")

    VECTOR_STORE_TYPES: tuple[str, ...] = ("memory", "qdrant")
    DOCUMENT_STORE_TYPES: tuple[str, ...] = ("none", "memory", "redis")
    EMBEDDING_PROVIDERS: tuple[str, ...] = ("litellm", "gemini")

    @classmethod
    def validate(cls) -> bool:
        """
        Validate configuration consistency.

        Checks:
        - Chunk window and overlap are coherent
        - Dimensions, limits and RRF constant are positive
        - BM25 parameters are in range
        - Backend names are known
        - Dimensions match a fixed-width embedding provider

        Returns:
            True if validation passes

        Raises:
            ValueError: If validation fails
        """
        errors = []

        if cls.EMBEDDING_DIMENSIONS <= 0:
            errors.append(f"EMBEDDING_DIMENSIONS must be > 0, got {cls.EMBEDDING_DIMENSIONS}")

        if cls.CHUNK_SIZE <= 0:
            errors.append(f"CHUNK_SIZE must be > 0, got {cls.CHUNK_SIZE}")
        if cls.CHUNK_OVERLAP < 0 or cls.CHUNK_OVERLAP >= cls.CHUNK_SIZE:
            errors.append(
                f"CHUNK_OVERLAP must be in [0, CHUNK_SIZE), got {cls.CHUNK_OVERLAP} "
                f"with CHUNK_SIZE={cls.CHUNK_SIZE}"
            )
        if cls.CHUNK_ID_BOUND <= 0:
            errors.append(f"CHUNK_ID_BOUND must be > 0, got {cls.CHUNK_ID_BOUND}")
        if cls.REINDEX_LIMIT <= 0:
            errors.append(f"REINDEX_LIMIT must be > 0, got {cls.REINDEX_LIMIT}")

        if cls.BM25_K1 <= 0:
            errors.append(f"BM25_K1 must be > 0, got {cls.BM25_K1}")
        if not (0.0 <= cls.BM25_B <= 1.0):
            errors.append(f"BM25_B must be in [0, 1], got {cls.BM25_B}")
        if cls.SUBJECT_BOOST < 1:
            errors.append(f"SUBJECT_BOOST must be >= 1, got {cls.SUBJECT_BOOST}")
        if cls.RRF_K <= 0:
            errors.append(f"RRF_K must be > 0, got {cls.RRF_K}")
        if not (0.0 <= cls.HYBRID_DEFAULT_ALPHA <= 1.0):
            errors.append(
                f"HYBRID_DEFAULT_ALPHA must be in [0, 1], got {cls.HYBRID_DEFAULT_ALPHA}"
            )

        for name in (
            "HYBRID_FETCH_MULTIPLIER",
            "SEMANTIC_DEFAULT_LIMIT",
            "FULLTEXT_DEFAULT_LIMIT",
            "HYBRID_DEFAULT_LIMIT",
            "MAX_HIGHLIGHTS",
        ):
            value = getattr(cls, name)
            if value <= 0:
                errors.append(f"{name} must be > 0, got {value}")

        if cls.VECTOR_STORE not in cls.VECTOR_STORE_TYPES:
            errors.append(
                f"VECTOR_STORE must be one of {cls.VECTOR_STORE_TYPES}, got {cls.VECTOR_STORE!r}"
            )
        if cls.DOCUMENT_STORE not in cls.DOCUMENT_STORE_TYPES:
            errors.append(
                f"DOCUMENT_STORE must be one of {cls.DOCUMENT_STORE_TYPES}, "
                f"got {cls.DOCUMENT_STORE!r}"
            )
        if cls.EMBEDDING_PROVIDER not in cls.EMBEDDING_PROVIDERS:
            errors.append(
                f"EMBEDDING_PROVIDER must be one of {cls.EMBEDDING_PROVIDERS}, "
                f"got {cls.EMBEDDING_PROVIDER!r}"
            )
        elif (
            cls.EMBEDDING_PROVIDER == "gemini"
            and cls.EMBEDDING_DIMENSIONS != PROVIDER_DIMENSIONS["gemini"]
        ):
            # Gemini embedding models have a fixed output width
            errors.append(
                f"EMBEDDING_DIMENSIONS must be {PROVIDER_DIMENSIONS['gemini']} for the gemini "
                f"provider, got {cls.EMBEDDING_DIMENSIONS}"
            )

        if cls.QDRANT_TIMEOUT <= 0:
            errors.append(f"QDRANT_TIMEOUT must be > 0, got {cls.QDRANT_TIMEOUT}")
        if cls.REDIS_SOCKET_TIMEOUT <= 0:
            errors.append(f"REDIS_SOCKET_TIMEOUT must be > 0, got {cls.REDIS_SOCKET_TIMEOUT}")

        if errors:
            raise ValueError(f"Config validation failed: {'; '.join(errors)}")

        return True
