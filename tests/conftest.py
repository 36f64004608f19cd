"""Pytest fixtures and test utilities for the mail-search test suite."""

from datetime import datetime, timezone
from typing import List

import pytest

from mail_search.models import Email
from mail_search.retrieval.query import tokenize
from mail_search.storage.documents import InMemoryDocumentStore
from mail_search.storage.memory import MemoryVectorStore

# ============================================================================
# FAKE EMBEDDER
# ============================================================================

VOCABULARY = [
    "budget",
    "meeting",
    "quarterly",
    "finance",
    "hiking",
    "trip",
    "mountain",
    "weekend",
    "invoice",
    "payment",
    "project",
    "deadline",
]

# One bucket per vocabulary word plus a constant bias component so that no
# vector has zero magnitude.
DIMENSIONS = len(VOCABULARY) + 1


class KeywordEmbedder:
    """
    Deterministic bag-of-words embedder over a fixed vocabulary.

    Texts sharing vocabulary words get high cosine similarity; unrelated
    texts only share the bias component. Records every call.
    """

    def __init__(self):
        self.calls: List[List[str]] = []

    def vectorize(self, text: str) -> List[float]:
        vector = [0.0] * DIMENSIONS
        for token in tokenize(text):
            if token in VOCABULARY:
                vector[VOCABULARY.index(token)] += 1.0
        vector[-1] = 1.0
        return vector

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [self.vectorize(text) for text in texts]


class FailingEmbedder:
    """Embedder whose every call raises."""

    def __init__(self, error: Exception | None = None):
        self.error = error or RuntimeError("embedding service unavailable")
        self.calls = 0

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls += 1
        raise self.error


# ============================================================================
# EMAIL FIXTURES
# ============================================================================


def make_email(email_id: str, subject: str = "", body: str = "", **kwargs) -> Email:
    """Build an Email with sensible defaults for tests."""
    kwargs.setdefault("from_address", "someone@example.com")
    kwargs.setdefault("to", ["me@example.com"])
    kwargs.setdefault("date", datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))
    return Email(id=email_id, subject=subject, body=body, **kwargs)


@pytest.fixture
def sample_emails() -> List[Email]:
    """
    Four emails spread across senders, folders, labels and dates.

    - email-1: alice, budget meeting, inbox/work, unread
    - email-2: carol, hiking trip, inbox/personal, read + starred
    - email-3: bob, invoice with attachment, archive/work+finance
    - email-4: dave, budget reply, inbox/work
    """
    return [
        make_email(
            "email-1",
            subject="Quarterly budget",
            body="Please review the budget before the meeting on Friday.",
            from_address="alice@example.com",
            from_name="Alice",
            to=["bob@example.com"],
            labels=["work"],
            date=datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc),
        ),
        make_email(
            "email-2",
            subject="Weekend plans",
            body="Want to go on a hiking trip to the mountain this weekend?",
            from_address="carol@example.com",
            to=["alice@example.com"],
            labels=["personal"],
            is_read=True,
            is_starred=True,
            date=datetime(2024, 2, 10, 9, 30, tzinfo=timezone.utc),
        ),
        make_email(
            "email-3",
            subject="Invoice attached",
            body="The invoice for the project is attached. Payment is due by the deadline.",
            from_address="bob@example.com",
            to=["alice@example.com"],
            folder="archive",
            labels=["work", "finance"],
            attachments=["invoice.pdf"],
            date=datetime(2024, 3, 5, 16, 45, tzinfo=timezone.utc),
        ),
        make_email(
            "email-4",
            subject="Re: numbers",
            body="The budget numbers from finance look fine to me.",
            from_address="dave@example.com",
            to=["alice@example.com"],
            labels=["work"],
            date=datetime(2024, 3, 20, 8, 15, tzinfo=timezone.utc),
        ),
    ]


@pytest.fixture
def embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture
def vector_store() -> MemoryVectorStore:
    return MemoryVectorStore()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()
