"""Tests for hybrid search and Reciprocal Rank Fusion."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from mail_search.models import EmailMetadata, HybridSearchOptions, MatchType, SearchResult, VectorEntry
from mail_search.retrieval.hybrid import HybridSearch, reciprocal_rank_fusion
from mail_search.retrieval.lexical import LexicalIndex
from mail_search.retrieval.semantic import SemanticSearch
from mail_search.storage.memory import MemoryVectorStore

from .conftest import DIMENSIONS, KeywordEmbedder, make_email


def result(email_id, score=1.0, match_type=MatchType.SEMANTIC, highlights=None, email=None):
    return SearchResult(
        email=email or make_email(email_id),
        score=score,
        match_type=match_type,
        highlights=highlights if highlights is not None else [f"{email_id} text"],
    )


def mocked_hybrid(semantic_results, lexical_results):
    semantic = MagicMock()
    semantic.search = AsyncMock(return_value=semantic_results)
    lexical = MagicMock()
    lexical.search = MagicMock(return_value=lexical_results)
    return HybridSearch(semantic, lexical), semantic, lexical


class TestReciprocalRankFusion:
    def test_item_in_both_lists_ranks_first(self):
        fused = reciprocal_rank_fusion(
            [result("e1"), result("e2")],
            [result("e2", match_type=MatchType.FULLTEXT), result("e3", match_type=MatchType.FULLTEXT)],
            alpha=0.5,
        )

        assert [r.email.id for r in fused] == ["e2", "e1", "e3"]
        assert all(r.match_type == MatchType.HYBRID for r in fused)

    def test_rrf_scores(self):
        fused = reciprocal_rank_fusion([result("e1")], [result("e1")], alpha=0.25, k=60)

        assert fused[0].score == pytest.approx(0.25 / 61 + 0.75 / 61)

    def test_missing_source_contributes_zero(self):
        fused = reciprocal_rank_fusion([result("e1")], [], alpha=0.5, k=60)
        assert fused[0].score == pytest.approx(0.5 / 61)

    def test_highlights_are_unioned_without_duplicates(self):
        fused = reciprocal_rank_fusion(
            [result("e1", highlights=["shared", "semantic only"])],
            [result("e1", highlights=["lexical only", "shared"])],
            alpha=0.5,
        )

        assert fused[0].highlights == ["shared", "semantic only", "lexical only"]

    def test_lexical_email_replaces_metadata_rebuild(self):
        rebuilt = make_email("e1", to=[])
        full = make_email("e1", to=["bob@example.com"])

        fused = reciprocal_rank_fusion(
            [result("e1", email=rebuilt)], [result("e1", email=full)], alpha=0.5
        )

        assert fused[0].email is full

    def test_equal_scores_keep_first_appearance(self):
        fused = reciprocal_rank_fusion([result("s1")], [result("l1")], alpha=0.5)
        assert [r.email.id for r in fused] == ["s1", "l1"]


class TestHybridSearch:
    @pytest.mark.asyncio
    async def test_fuses_both_sources(self):
        hybrid, semantic, lexical = mocked_hybrid(
            [result("e1"), result("e2")], [result("e2"), result("e3")]
        )

        fused = await hybrid.search("budget", HybridSearchOptions(alpha=0.5))

        assert fused[0].email.id == "e2"
        semantic.search.assert_awaited_once()
        lexical.search.assert_called_once()

    @pytest.mark.asyncio
    async def test_alpha_zero_skips_semantic(self):
        hybrid, semantic, lexical = mocked_hybrid([result("e1")], [result("e2")])

        fused = await hybrid.search("budget", HybridSearchOptions(alpha=0.0))

        semantic.search.assert_not_called()
        assert [r.email.id for r in fused] == ["e2"]

    @pytest.mark.asyncio
    async def test_alpha_one_skips_lexical(self):
        hybrid, semantic, lexical = mocked_hybrid([result("e1")], [result("e2")])

        fused = await hybrid.search("budget", HybridSearchOptions(alpha=1.0))

        lexical.search.assert_not_called()
        assert [r.email.id for r in fused] == ["e1"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("alpha", [-0.1, 1.5])
    async def test_alpha_out_of_range(self, alpha):
        hybrid, _, _ = mocked_hybrid([], [])

        with pytest.raises(ValueError, match="alpha"):
            await hybrid.search("budget", HybridSearchOptions(alpha=alpha))

    @pytest.mark.asyncio
    async def test_sources_get_wider_fetch_and_pass_through_filters(self):
        hybrid, semantic, lexical = mocked_hybrid([], [])

        await hybrid.search(
            "budget", HybridSearchOptions(limit=4, offset=7, folder="inbox", label="work")
        )

        semantic_options = semantic.search.call_args.args[1]
        lexical_options = lexical.search.call_args.args[1]
        for options in (semantic_options, lexical_options):
            assert options.limit == 12
            assert options.offset == 0
            assert options.folder == "inbox"
            assert options.label == "work"

    @pytest.mark.asyncio
    async def test_min_score_filters_sources_not_fused_scores(self):
        hybrid, semantic, lexical = mocked_hybrid([result("e1")], [result("e2")])

        fused = await hybrid.search("budget", HybridSearchOptions(min_score=0.5))

        assert semantic.search.call_args.args[1].min_score == 0.5
        assert lexical.search.call_args.args[1].min_score == 0.5
        assert {r.email.id for r in fused} == {"e1", "e2"}
        assert all(r.score < 0.5 for r in fused)

    @pytest.mark.asyncio
    async def test_limit_truncates_fused_list(self):
        hybrid, _, _ = mocked_hybrid(
            [result(f"s{i}") for i in range(10)], [result(f"l{i}") for i in range(10)]
        )

        assert len(await hybrid.search("budget", HybridSearchOptions(limit=3))) == 3
        assert len(await hybrid.search("budget")) == 10


@pytest.mark.asyncio
async def test_hybrid_over_real_indexes(sample_emails):
    embedder = KeywordEmbedder()
    store = MemoryVectorStore()
    await store.initialize(DIMENSIONS)
    lexical = LexicalIndex()
    lexical.index(sample_emails)

    await store.upsert(
        [
            VectorEntry(
                id=email.id,
                vector=embedder.vectorize(email.body),
                metadata=EmailMetadata.from_email(email).to_payload(),
                content=email.body,
            )
            for email in sample_emails
        ]
    )
    hybrid = HybridSearch(SemanticSearch(store, embedder), lexical)

    results = await hybrid.search("hiking trip")

    assert results[0].email.id == "email-2"
    assert results[0].match_type == MatchType.HYBRID
    # Lexical highlight and semantic content collapse into one string here
    assert results[0].highlights == [sample_emails[1].body]
