"""
Indexer module for notes-mcp.

This module turns Markdown notes into embedded chunks stored in SQLite and
keeps them in step with the files on disk, one checksum at a time.
"""

from notes_mcp.indexer.chunker import Chunk, chunk_markdown, chunk_text
from notes_mcp.indexer.database import Database
from notes_mcp.indexer.embeddings import Embedder, get_embedder
from notes_mcp.indexer.indexer import Indexer, IndexingError
from notes_mcp.indexer.models import IndexStats, NoteRecord, RetrievalResult
from notes_mcp.indexer.parser import (
    Frontmatter,
    FrontmatterError,
    extract_frontmatter,
    has_frontmatter,
)
from notes_mcp.indexer.walker import compute_hash, walk_glob

__all__ = [
    "Chunk",
    "Database",
    "Embedder",
    "Frontmatter",
    "FrontmatterError",
    "IndexStats",
    "Indexer",
    "IndexingError",
    "NoteRecord",
    "RetrievalResult",
    "chunk_markdown",
    "chunk_text",
    "compute_hash",
    "extract_frontmatter",
    "get_embedder",
    "has_frontmatter",
    "walk_glob",
]
