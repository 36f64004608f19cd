"""mail-search - dual-mode (lexical + semantic) retrieval engine for emails."""

__version__ = "0.1.0"

from .config import Config
from .engine import EngineState, SearchEngine, SearchMode
from .errors import ConfigurationError, DimensionMismatchError, MailSearchError, RetrievalError
from .models import (
    Email,
    HybridSearchOptions,
    MatchType,
    SearchOptions,
    SearchResult,
    VectorEntry,
    VectorSearchResult,
)

__all__ = [
    "Config",
    "ConfigurationError",
    "DimensionMismatchError",
    "Email",
    "EngineState",
    "HybridSearchOptions",
    "MailSearchError",
    "MatchType",
    "RetrievalError",
    "SearchEngine",
    "SearchMode",
    "SearchOptions",
    "SearchResult",
    "VectorEntry",
    "VectorSearchResult",
    "__version__",
]
