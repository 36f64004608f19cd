# retrieval/lexical.py
"""
BM25 lexical index over emails.

Maintains an inverted index (term -> {email_id: term frequency}) that is
updated incrementally on insert, replace and remove. Subject terms are
counted SUBJECT_BOOST times so subject matches outrank body-only matches.
"""

import math
import re
from collections import Counter
from dataclasses import dataclass, field

from loguru import logger

from ..config import Config
from ..ingestion.chunker import email_body_text
from ..models import Email, MatchType, SearchOptions, SearchResult, ensure_utc
from .query import ParsedQuery, parse_query, tokenize


@dataclass
class _IndexedEmail:
    email: Email
    term_freqs: Counter
    length: int  # Weighted token count (subject tokens count SUBJECT_BOOST times)


def matches_search_options(email: Email, options: SearchOptions) -> bool:
    """Apply folder/label/from/date options as hard predicates."""
    if options.folder and email.folder != options.folder:
        return False
    if options.label and options.label not in email.labels:
        return False
    if options.from_address and options.from_address.lower() not in email.from_address.lower():
        return False

    date = ensure_utc(email.date)
    if options.after is not None and date < ensure_utc(options.after):
        return False
    if options.before is not None and date > ensure_utc(options.before):
        return False
    return True


@dataclass
class LexicalIndex:
    """
    In-memory BM25 index for keyword search over emails.

    BM25 Parameters:
    - k1: Term frequency saturation parameter (default 1.2)
    - b: Document length normalization (default 0.75)

    Example:
        index = LexicalIndex()
        index.index([Email(id="e1", subject="Budget", body="budget meeting")])
        results = index.search("from:alice budget")
    """

    k1: float = Config.BM25_K1
    b: float = Config.BM25_B
    subject_boost: int = Config.SUBJECT_BOOST
    highlight_context: int = Config.HIGHLIGHT_CONTEXT_CHARS
    max_highlights: int = Config.MAX_HIGHLIGHTS

    # Index storage
    _docs: dict[str, _IndexedEmail] = field(default_factory=dict)  # insertion ordered
    _postings: dict[str, dict[str, int]] = field(default_factory=dict)  # term -> {email_id: tf}
    _total_length: int = 0

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def index(self, emails: list[Email]) -> None:
        """
        Add or replace emails in the index.

        Re-indexing a known id replaces its postings and keeps its original
        position for tie-breaking.
        """
        for email in emails:
            self._index_one(email)

        if emails:
            logger.info(
                "Lexical index updated with {} emails ({} total, {} terms)",
                len(emails),
                len(self._docs),
                len(self._postings),
            )

    def _index_one(self, email: Email) -> None:
        term_freqs = Counter(tokenize(email_body_text(email)))
        for term in tokenize(email.subject):
            term_freqs[term] += self.subject_boost

        if email.id in self._docs:
            self._remove_postings(email.id)

        length = sum(term_freqs.values())
        self._docs[email.id] = _IndexedEmail(email=email, term_freqs=term_freqs, length=length)
        self._total_length += length

        for term, freq in term_freqs.items():
            self._postings.setdefault(term, {})[email.id] = freq

    def _remove_postings(self, email_id: str) -> None:
        doc = self._docs[email_id]
        for term in doc.term_freqs:
            postings = self._postings.get(term)
            if postings is None:
                continue
            postings.pop(email_id, None)
            if not postings:
                del self._postings[term]
        self._total_length -= doc.length

    def remove_email(self, email_id: str) -> bool:
        """
        Remove an email from the index.

        Returns:
            True if the email was indexed, False otherwise
        """
        if email_id not in self._docs:
            return False

        self._remove_postings(email_id)
        del self._docs[email_id]
        logger.debug("Removed email {} from lexical index", email_id)
        return True

    def clear(self) -> None:
        """Clear the entire index."""
        self._docs.clear()
        self._postings.clear()
        self._total_length = 0
        logger.info("Lexical index cleared")

    @property
    def document_count(self) -> int:
        return len(self._docs)

    def __contains__(self, email_id: str) -> bool:
        return email_id in self._docs

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def _idf(self, doc_freq: int) -> float:
        total = len(self._docs)
        return math.log(1 + (total - doc_freq + 0.5) / (doc_freq + 0.5))

    def _term_score(self, idf: float, tf: int, doc_length: int, avg_length: float) -> float:
        norm_length = doc_length / avg_length
        return idf * (tf * (self.k1 + 1)) / (tf + self.k1 * (1 - self.b + self.b * norm_length))

    def search(self, query: str, options: SearchOptions | None = None) -> list[SearchResult]:
        """
        Search the index with the structured query grammar.

        Only free-text terms contribute to the score, so a query made of
        filter tokens alone matches nothing.

        Args:
            query: Query string (see retrieval.query for the grammar)
            options: limit, offset, min_score and folder/label/from/date filters

        Returns:
            SearchResults sorted by score descending, ties in insertion order
        """
        options = options or SearchOptions()
        parsed = parse_query(query)
        if not parsed.terms or not self._docs:
            return []

        terms = list(dict.fromkeys(parsed.terms))
        avg_length = (self._total_length / len(self._docs)) or 1.0
        allowed: dict[str, bool] = {}
        scores: dict[str, float] = {}

        for term in terms:
            postings = self._postings.get(term)
            if not postings:
                continue

            idf = self._idf(len(postings))
            for email_id, tf in postings.items():
                if email_id not in allowed:
                    allowed[email_id] = self._passes_filters(email_id, parsed, options)
                if not allowed[email_id]:
                    continue

                doc = self._docs[email_id]
                scores[email_id] = scores.get(email_id, 0.0) + self._term_score(
                    idf, tf, doc.length, avg_length
                )

        # Stable sort over insertion order gives deterministic tie-breaking
        ranked = [(email_id, scores[email_id]) for email_id in self._docs if email_id in scores]
        ranked.sort(key=lambda item: item[1], reverse=True)

        if options.min_score is not None:
            ranked = [item for item in ranked if item[1] > options.min_score]

        limit = options.limit if options.limit is not None else Config.FULLTEXT_DEFAULT_LIMIT
        offset = max(options.offset or 0, 0)
        ranked = ranked[offset : offset + max(limit, 0)]

        results = []
        for email_id, score in ranked:
            email = self._docs[email_id].email
            results.append(
                SearchResult(
                    email=email,
                    score=score,
                    match_type=MatchType.FULLTEXT,
                    highlights=self.generate_highlights(email, terms),
                )
            )

        logger.debug("Lexical search {!r} matched {} emails", query, len(scores))
        return results

    def _passes_filters(self, email_id: str, parsed: ParsedQuery, options: SearchOptions) -> bool:
        email = self._docs[email_id].email
        if parsed.has_filters and not parsed.matches(email):
            return False
        return matches_search_options(email, options)

    # ------------------------------------------------------------------
    # Highlights
    # ------------------------------------------------------------------

    def generate_highlights(self, email: Email, terms: list[str]) -> list[str]:
        """
        Excerpt the body around matched terms.

        Each excerpt spans highlight_context characters either side of the
        match, with "..." marking truncation. Short bodies are returned whole.
        Falls back to the subject when only the subject matched.
        """
        if not terms:
            return []

        text = email_body_text(email)
        lower_text = text.lower()
        highlights: list[str] = []

        for term in terms:
            match = re.search(rf"(?<![a-z0-9]){re.escape(term)}", lower_text)
            if match is None:
                continue

            if len(text) <= 2 * self.highlight_context + len(term):
                snippet = text.strip()
            else:
                start = max(0, match.start() - self.highlight_context)
                end = min(len(text), match.end() + self.highlight_context)
                snippet = text[start:end].strip()
                if start > 0:
                    snippet = "..." + snippet
                if end < len(text):
                    snippet = snippet + "..."

            if snippet and snippet not in highlights:
                highlights.append(snippet)
            if len(highlights) >= self.max_highlights:
                break

        if not highlights and email.subject:
            subject_terms = set(tokenize(email.subject))
            if subject_terms.intersection(terms):
                highlights.append(email.subject)

        return highlights

    def get_index_stats(self) -> dict:
        """
        Get statistics about the current index.

        Returns:
            Dict with index statistics
        """
        total = len(self._docs)
        return {
            "total_documents": total,
            "unique_terms": len(self._postings),
            "avg_doc_length": self._total_length / total if total else 0.0,
            "k1": self.k1,
            "b": self.b,
            "subject_boost": self.subject_boost,
        }
