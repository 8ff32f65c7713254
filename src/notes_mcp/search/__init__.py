"""Retrieval channels: semantic vector search and exact ripgrep search."""

from notes_mcp.search.ripgrep import (
    NO_MATCHES_MESSAGE,
    RipgrepError,
    RipgrepNotAvailableError,
    RipgrepResult,
    RipgrepSearcher,
)
from notes_mcp.search.vector import merge_results, query_notes

__all__ = [
    "NO_MATCHES_MESSAGE",
    "RipgrepError",
    "RipgrepNotAvailableError",
    "RipgrepResult",
    "RipgrepSearcher",
    "merge_results",
    "query_notes",
]
