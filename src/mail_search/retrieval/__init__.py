"""Lexical, semantic and hybrid retrieval paths."""

from .hybrid import HybridSearch, reciprocal_rank_fusion
from .lexical import LexicalIndex, matches_search_options
from .query import ParsedQuery, parse_date, parse_query, tokenize
from .semantic import SemanticSearch, build_metadata_filter

__all__ = [
    "HybridSearch",
    "LexicalIndex",
    "ParsedQuery",
    "SemanticSearch",
    "build_metadata_filter",
    "matches_search_options",
    "parse_date",
    "parse_query",
    "reciprocal_rank_fusion",
    "tokenize",
]
