# ingestion/chunker.py
"""
Overlap-aware text chunking for embedding input.

Emails are flattened to plain text (headers block + body) and split into
character windows that overlap, preferring to break on sentence or line
boundaries so chunks do not end mid-sentence.
"""

import html
import re
from dataclasses import dataclass

from loguru import logger

from ..config import Config
from ..models import Email, ensure_utc

_STYLE_RE = re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL)
_SCRIPT_RE = re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")


@dataclass
class Chunk:
    """A single window of document text."""

    text: str
    index: int
    offset_start: int  # Character offset in source text
    offset_end: int


def strip_html(markup: str) -> str:
    """Reduce an HTML body to whitespace-normalized text."""
    if not markup:
        return ""
    text = _STYLE_RE.sub("", markup)
    text = _SCRIPT_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    text = html.unescape(text)
    return _WS_RE.sub(" ", text).strip()


def email_body_text(email: Email) -> str:
    """Plain-text body, falling back to the stripped HTML body."""
    return email.body or strip_html(email.body_html or "")


def email_to_plain_text(email: Email) -> str:
    """
    Flatten an email into the text that gets embedded.

    Format:
        From: Name <addr>
        To: a, b
        CC: c            (only when present)
        Subject: ...
        Date: ISO-8601

        <body>
    """
    sender = f"{email.from_name} <{email.from_address}>" if email.from_name else email.from_address
    parts = [
        f"From: {sender}",
        f"To: {', '.join(email.to)}",
        f"CC: {', '.join(email.cc)}" if email.cc else "",
        f"Subject: {email.subject}",
        f"Date: {ensure_utc(email.date).isoformat()}",
    ]
    header = "\n".join(p for p in parts if p)
    return f"{header}\n\n{email_body_text(email)}".rstrip()


class TextChunker:
    """
    Fixed-width character chunker with overlap.

    Chunking strategy:
    1. Texts no longer than chunk_size become a single chunk
    2. Otherwise take chunk_size windows, pulling the end back to the last
       '.' or newline when that boundary lies past the window midpoint
    3. Step forward by (window - overlap), always making progress
    """

    def __init__(
        self,
        chunk_size: int = Config.CHUNK_SIZE,
        overlap: int = Config.CHUNK_OVERLAP,
        max_chunks: int | None = Config.CHUNK_ID_BOUND,
    ):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError(f"overlap must be in [0, chunk_size), got {overlap}")
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.max_chunks = max_chunks

    def chunk(self, text: str) -> list[Chunk]:
        """
        Split text into overlapping chunks.

        Args:
            text: Full document text

        Returns:
            List of Chunk objects, indexed from 0
        """
        if not text or not text.strip():
            return []

        if len(text) <= self.chunk_size:
            return [Chunk(text=text, index=0, offset_start=0, offset_end=len(text))]

        chunks: list[Chunk] = []
        start = 0

        while start < len(text):
            end = start + self.chunk_size

            if end < len(text):
                break_point = max(text.rfind(".", start, end + 1), text.rfind("\n", start, end + 1))
                if break_point > start + self.chunk_size // 2:
                    end = break_point + 1

            piece = text[start:end].strip()
            if piece:
                chunks.append(
                    Chunk(text=piece, index=len(chunks), offset_start=start, offset_end=min(end, len(text)))
                )

            if end >= len(text):
                break
            start = max(end - self.overlap, start + 1)

        if self.max_chunks is not None and len(chunks) > self.max_chunks:
            logger.warning(
                "Text produced {} chunks, keeping the first {}", len(chunks), self.max_chunks
            )
            chunks = chunks[: self.max_chunks]

        logger.debug("Created {} chunks from {} characters", len(chunks), len(text))
        return chunks


def chunk_text(
    text: str, chunk_size: int = Config.CHUNK_SIZE, overlap: int = Config.CHUNK_OVERLAP
) -> list[str]:
    """Convenience wrapper returning only chunk texts."""
    return [c.text for c in TextChunker(chunk_size, overlap, max_chunks=None).chunk(text)]
