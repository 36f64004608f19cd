"""
Data models for indexed emails, vector entries and search results.

Email is owned by the caller; the engine derives index entries from it and
never mutates it. EmailMetadata is the fixed-key payload stored next to
every vector so that filters and result reconstruction work against a known
shape rather than an open map.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_millis(value: datetime) -> int:
    """Millisecond epoch timestamp for a datetime."""
    return int(ensure_utc(value).timestamp() * 1000)


def from_millis(value: int | float) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


class MatchType(str, Enum):
    """Which retrieval path produced a SearchResult."""

    FULLTEXT = "fulltext"
    SEMANTIC = "semantic"
    HYBRID = "hybrid"


@dataclass
class Email:
    """
    An indexed email.

    Invariants:
    - id is stable across re-indexing
    - date is interpreted as UTC when naive
    """

    id: str
    subject: str = ""
    body: str = ""
    from_address: str = ""
    from_name: str | None = None
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    folder: str = "inbox"
    labels: list[str] = field(default_factory=list)
    date: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    is_read: bool = False
    is_starred: bool = False
    attachments: list[str] = field(default_factory=list)  # Attachment filenames
    thread_id: str | None = None
    body_html: str | None = None

    @property
    def has_attachments(self) -> bool:
        return len(self.attachments) > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        data = asdict(self)
        data["date"] = ensure_utc(self.date).isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Email":
        """Rebuild an Email from the output of to_dict()."""
        values = dict(data)
        raw_date = values.get("date")
        if isinstance(raw_date, str):
            values["date"] = datetime.fromisoformat(raw_date)
        elif isinstance(raw_date, (int, float)):
            values["date"] = from_millis(raw_date)
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in values.items() if k in known})


@dataclass
class EmailMetadata:
    """Fixed-key metadata stored with each vector entry."""

    email_id: str
    from_address: str
    subject: str
    date_ms: int
    folder: str
    labels: list[str] = field(default_factory=list)
    is_read: bool = False
    is_starred: bool = False
    has_attachments: bool = False
    thread_id: str | None = None
    chunk_index: int = 0
    total_chunks: int = 1

    @classmethod
    def from_email(cls, email: Email, chunk_index: int = 0, total_chunks: int = 1) -> "EmailMetadata":
        return cls(
            email_id=email.id,
            from_address=email.from_address,
            subject=email.subject,
            date_ms=to_millis(email.date),
            folder=email.folder,
            labels=list(email.labels),
            is_read=email.is_read,
            is_starred=email.is_starred,
            has_attachments=email.has_attachments,
            thread_id=email.thread_id,
            chunk_index=chunk_index,
            total_chunks=total_chunks,
        )

    def to_payload(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: dict[str, Any], fallback_id: str = "") -> "EmailMetadata":
        """Tolerant inverse of to_payload(); missing keys fall back to defaults."""
        labels = payload.get("labels")
        return cls(
            email_id=str(payload.get("email_id") or fallback_id),
            from_address=str(payload.get("from_address") or ""),
            subject=str(payload.get("subject") or ""),
            date_ms=int(payload.get("date_ms") or 0),
            folder=str(payload.get("folder") or ""),
            labels=list(labels) if isinstance(labels, list) else [],
            is_read=bool(payload.get("is_read", False)),
            is_starred=bool(payload.get("is_starred", False)),
            has_attachments=bool(payload.get("has_attachments", False)),
            thread_id=payload.get("thread_id"),
            chunk_index=int(payload.get("chunk_index") or 0),
            total_chunks=int(payload.get("total_chunks") or 1),
        )

    def to_email(self, body: str) -> Email:
        """
        Build a minimal Email for display when the full document is unavailable.

        Recipients, attachments and the HTML body are not recoverable from
        vector metadata and are left empty.
        """
        return Email(
            id=self.email_id,
            subject=self.subject,
            body=body,
            from_address=self.from_address,
            folder=self.folder,
            labels=list(self.labels),
            date=from_millis(self.date_ms),
            is_read=self.is_read,
            is_starred=self.is_starred,
            thread_id=self.thread_id,
        )


CHUNK_ID_SEPARATOR = ":chunk:"


def chunk_entry_id(email_id: str, chunk_index: int) -> str:
    return f"{email_id}{CHUNK_ID_SEPARATOR}{chunk_index}"


def email_id_from_entry_id(entry_id: str) -> str:
    """Strip a ":chunk:<n>" suffix, if any, to recover the email id."""
    base, sep, index = entry_id.rpartition(CHUNK_ID_SEPARATOR)
    if sep and index.isdigit():
        return base
    return entry_id


@dataclass
class VectorEntry:
    """One embedded chunk of an email, as stored in a VectorStore."""

    id: str
    vector: list[float]
    metadata: dict[str, Any]
    content: str


@dataclass
class VectorSearchResult:
    """A VectorStore hit."""

    id: str
    score: float
    metadata: dict[str, Any]
    content: str


@dataclass
class SearchResult:
    """A ranked email returned by any of the search paths."""

    email: Email
    score: float
    match_type: MatchType
    highlights: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "email": self.email.to_dict(),
            "score": self.score,
            "match_type": self.match_type.value,
            "highlights": list(self.highlights),
        }


@dataclass
class SearchOptions:
    """
    Options shared by all search paths.

    limit: None means the path's default
    offset: applied by the lexical path only
    min_score: results scoring at or below this value are dropped
    """

    limit: int | None = None
    offset: int = 0
    folder: str | None = None
    label: str | None = None
    from_address: str | None = None
    after: datetime | None = None
    before: datetime | None = None
    min_score: float | None = None


@dataclass
class HybridSearchOptions(SearchOptions):
    """SearchOptions plus the semantic/lexical blend weight."""

    alpha: float | None = None
