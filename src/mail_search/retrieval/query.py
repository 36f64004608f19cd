# retrieval/query.py
"""
Structured query grammar for lexical search.

Grammar (tokens split on whitespace, double quotes keep spans together):
    from:<substr>   to:<substr>   subject:<substr>
    has:attachment  is:read  is:unread  is:starred
    after:<date>    before:<date>        (ISO-8601, inclusive)
Every other token contributes scoring terms.

Example:
    parse_query('from:alice is:unread budget "q3 plan"')
    # ParsedQuery(terms=["budget", "q3", "plan"], from_address="alice", is_read=False)
"""

import re
from dataclasses import dataclass, field
from datetime import datetime

from ..models import Email, ensure_utc

STOP_WORDS = frozenset(
    {
        "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "is", "it", "be", "as", "do", "no", "not", "are",
        "was", "were", "been", "has", "have", "had", "this", "that", "from",
        "will", "can", "if", "so", "up", "out", "just", "than", "them", "then",
    }
)

_QUERY_PART_RE = re.compile(r'(?:[^\s"]+|"[^"]*")+')
_TERM_RE = re.compile(r"[a-z0-9]+")


def tokenize(text: str) -> list[str]:
    """
    Tokenize text into lowercase alphanumeric terms.

    Drops single characters and stop words. Used identically for indexing
    and querying so terms always line up.
    """
    if not text:
        return []
    return [t for t in _TERM_RE.findall(text.lower()) if len(t) > 1 and t not in STOP_WORDS]


def parse_date(value: str) -> datetime | None:
    """Parse an ISO-8601 date or timestamp; None when unparseable."""
    value = value.strip().strip('"')
    if not value:
        return None
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        return ensure_utc(datetime.fromisoformat(value))
    except ValueError:
        return None


@dataclass
class ParsedQuery:
    """Field filters and free-text terms extracted from a query string."""

    terms: list[str] = field(default_factory=list)
    from_address: str | None = None
    to: str | None = None
    subject: str | None = None
    has_attachment: bool | None = None
    is_read: bool | None = None
    is_starred: bool | None = None
    after: datetime | None = None
    before: datetime | None = None

    @property
    def has_filters(self) -> bool:
        return any(
            value is not None
            for value in (
                self.from_address,
                self.to,
                self.subject,
                self.has_attachment,
                self.is_read,
                self.is_starred,
                self.after,
                self.before,
            )
        )

    def matches(self, email: Email) -> bool:
        """Apply every field filter as a hard AND predicate."""
        if self.from_address and self.from_address.lower() not in email.from_address.lower():
            return False
        if self.to:
            needle = self.to.lower()
            if not any(needle in address.lower() for address in email.to):
                return False
        if self.subject and self.subject.lower() not in email.subject.lower():
            return False
        if self.has_attachment and not email.has_attachments:
            return False
        if self.is_read is not None and email.is_read != self.is_read:
            return False
        if self.is_starred is not None and email.is_starred != self.is_starred:
            return False

        date = ensure_utc(email.date)
        if self.after is not None and date < self.after:
            return False
        if self.before is not None and date > self.before:
            return False
        return True


def _field_value(part: str, prefix_len: int) -> str:
    return part[prefix_len:].replace('"', "")


def parse_query(query: str) -> ParsedQuery:
    """
    Split a query into field filters and scoring terms.

    Args:
        query: Raw user query

    Returns:
        ParsedQuery with filters set and residual terms tokenized
    """
    parsed = ParsedQuery()
    if not query:
        return parsed

    for part in _QUERY_PART_RE.findall(query):
        lower = part.lower()

        if lower.startswith("from:"):
            parsed.from_address = _field_value(part, 5) or None
        elif lower.startswith("to:"):
            parsed.to = _field_value(part, 3) or None
        elif lower.startswith("subject:"):
            parsed.subject = _field_value(part, 8) or None
        elif lower == "has:attachment":
            parsed.has_attachment = True
        elif lower == "is:read":
            parsed.is_read = True
        elif lower == "is:unread":
            parsed.is_read = False
        elif lower == "is:starred":
            parsed.is_starred = True
        elif lower.startswith("after:"):
            parsed.after = parse_date(part[6:])
        elif lower.startswith("before:"):
            parsed.before = parse_date(part[7:])
        else:
            parsed.terms.extend(tokenize(part))

    return parsed
