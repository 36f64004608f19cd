"""Ingestion helpers: email flattening and chunking for embedding."""

from .chunker import (
    Chunk,
    TextChunker,
    chunk_text,
    email_body_text,
    email_to_plain_text,
    strip_html,
)

__all__ = [
    "Chunk",
    "TextChunker",
    "chunk_text",
    "email_body_text",
    "email_to_plain_text",
    "strip_html",
]
