# retrieval/hybrid.py
"""
Hybrid search with Reciprocal Rank Fusion (RRF).

Lexical (BM25) and semantic (cosine) scores live on incomparable scales, so
the two rankings are fused by rank only:

    score(email) = alpha / (rank_semantic + k) + (1 - alpha) / (rank_lexical + k)

Ranks are 1-based; an email missing from one ranking contributes 0 for it.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from loguru import logger

from ..config import Config
from ..models import Email, HybridSearchOptions, MatchType, SearchOptions, SearchResult
from .lexical import LexicalIndex
from .semantic import SemanticSearch


@dataclass
class _FusedEntry:
    email: Email
    score: float = 0.0
    highlights: list[str] = field(default_factory=list)


def reciprocal_rank_fusion(
    semantic_results: list[SearchResult],
    lexical_results: list[SearchResult],
    alpha: float,
    k: int = Config.RRF_K,
) -> list[SearchResult]:
    """
    Fuse two rankings into one list of hybrid results.

    Args:
        semantic_results: Semantic ranking, best first
        lexical_results: Lexical ranking, best first
        alpha: Weight of the semantic ranking (0-1)
        k: RRF smoothing constant

    Returns:
        Fused results sorted by score descending (stable on first appearance)
    """
    fused: dict[str, _FusedEntry] = {}

    def _accumulate(results: list[SearchResult], weight: float, prefer_email: bool) -> None:
        for rank, result in enumerate(results, start=1):
            entry = fused.get(result.email.id)
            if entry is None:
                entry = fused[result.email.id] = _FusedEntry(email=result.email)
            elif prefer_email:
                entry.email = result.email
            entry.score += weight / (rank + k)
            for highlight in result.highlights:
                if highlight not in entry.highlights:
                    entry.highlights.append(highlight)

    _accumulate(semantic_results, alpha, prefer_email=False)
    # Lexical hits carry the complete Email rather than a metadata rebuild
    _accumulate(lexical_results, 1 - alpha, prefer_email=True)

    results = [
        SearchResult(
            email=entry.email,
            score=entry.score,
            match_type=MatchType.HYBRID,
            highlights=entry.highlights,
        )
        for entry in fused.values()
    ]
    results.sort(key=lambda r: r.score, reverse=True)
    return results


class HybridSearch:
    """
    Runs semantic and lexical search and fuses them with RRF.

    alpha = 1 runs the semantic path only, alpha = 0 the lexical path only;
    anything in between runs both concurrently.
    """

    def __init__(
        self,
        semantic: SemanticSearch,
        lexical: LexicalIndex,
        rrf_k: int = Config.RRF_K,
        fetch_multiplier: int = Config.HYBRID_FETCH_MULTIPLIER,
    ):
        self.semantic = semantic
        self.lexical = lexical
        self.rrf_k = rrf_k
        self.fetch_multiplier = fetch_multiplier

    async def search(
        self, query: str, options: Optional[HybridSearchOptions] = None
    ) -> list[SearchResult]:
        """
        Run a hybrid search.

        min_score is applied by each source on its own scale (cosine for
        semantic, BM25 for lexical) before fusion. Fused RRF scores are
        never compared against it, so results may score below min_score.

        Raises:
            ValueError: If alpha is outside [0, 1]
            RetrievalError: If the semantic path fails
        """
        options = options or HybridSearchOptions()
        alpha = options.alpha if options.alpha is not None else Config.HYBRID_DEFAULT_ALPHA
        if not 0.0 <= alpha <= 1.0:
            raise ValueError(f"alpha must be between 0 and 1, got {alpha}")

        limit = options.limit if options.limit is not None else Config.HYBRID_DEFAULT_LIMIT
        source_options = SearchOptions(
            limit=limit * self.fetch_multiplier,
            folder=options.folder,
            label=options.label,
            from_address=options.from_address,
            after=options.after,
            before=options.before,
            min_score=options.min_score,
        )

        async def _lexical() -> list[SearchResult]:
            return self.lexical.search(query, source_options)

        if alpha >= 1.0:
            semantic_results, lexical_results = await self.semantic.search(query, source_options), []
        elif alpha <= 0.0:
            semantic_results, lexical_results = [], await _lexical()
        else:
            semantic_results, lexical_results = await asyncio.gather(
                self.semantic.search(query, source_options), _lexical()
            )

        fused = reciprocal_rank_fusion(semantic_results, lexical_results, alpha, self.rrf_k)
        logger.debug(
            "Hybrid search fused {} semantic + {} lexical hits into {} (alpha={})",
            len(semantic_results),
            len(lexical_results),
            len(fused),
            alpha,
        )
        return fused[: max(limit, 0)]
