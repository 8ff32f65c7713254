"""Incremental indexer that syncs Markdown notes into the vector index."""

import asyncio
import logging
from pathlib import Path

from notes_mcp.indexer.chunker import DEFAULT_CHUNK_CHARS, Chunk, chunk_markdown
from notes_mcp.indexer.database import Database
from notes_mcp.indexer.embeddings import DOCUMENT_ROLE, Embedder
from notes_mcp.indexer.models import IndexStats, NoteRecord
from notes_mcp.indexer.parser import FrontmatterError, extract_frontmatter
from notes_mcp.indexer.walker import compute_hash, walk_glob

logger = logging.getLogger(__name__)


class IndexingError(Exception):
    """Raised when a single note cannot be indexed."""

    def __init__(self, path: str, operation: str, message: str):
        super().__init__(f"Failed to {operation} {path}: {message}")
        self.path = path
        self.operation = operation


class Indexer:
    """
    Indexer that keeps the notes table in step with files on disk.

    A note is re-indexed only when the SHA-256 of its raw bytes differs from
    the checksum stored with its chunks. Changes that leave the bytes alone
    (mtime, chunk size, embedding model) are not detected; clear the index
    to pick them up.

    Files are processed one at a time: embedding dominates the cost and the
    model is a single shared instance.
    """

    def __init__(
        self,
        db: Database,
        embedder: Embedder,
        chunk_chars: int = DEFAULT_CHUNK_CHARS,
    ):
        """
        Initialize the indexer.

        Args:
            db: Initialized notes database
            embedder: Embedding cache used for chunk and filename vectors
            chunk_chars: Character limit passed to the chunker
        """
        if chunk_chars <= 0:
            raise ValueError(f"chunk_chars must be positive, got {chunk_chars}")
        self.db = db
        self.embedder = embedder
        self.chunk_chars = chunk_chars

    async def index_file(self, path: Path | str) -> bool:
        """
        Index a single note.

        Args:
            path: Path of the note; stored as given so it groups the note's chunks

        Returns:
            True if the note was (re)indexed, False if skipped as unchanged.

        Raises:
            IndexingError: If the file cannot be read, decoded or parsed.
        """
        filename = str(path)
        logger.debug("Loading Markdown file: %s", filename)

        try:
            raw = await asyncio.to_thread(Path(path).read_bytes)
        except OSError as e:
            raise IndexingError(filename, "read", str(e)) from e

        checksum = compute_hash(raw)
        stored_checksum = await asyncio.to_thread(self.db.get_checksum, filename)

        if stored_checksum == checksum:
            logger.debug("Skipping unchanged file: %s", filename)
            return False

        if stored_checksum is not None:
            removed = await asyncio.to_thread(self.db.delete_notes, filename)
            logger.debug("Deleted %d stale chunks of %s", removed, filename)

        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise IndexingError(filename, "decode", str(e)) from e

        try:
            frontmatter = extract_frontmatter(content)
        except FrontmatterError as e:
            raise IndexingError(filename, "parse frontmatter", str(e)) from e

        chunks = chunk_markdown(frontmatter.body, self.chunk_chars)
        if not chunks:
            # Keep one empty record so the checksum and frontmatter are stored
            chunks = [Chunk(content="", index=0)]

        logger.debug("Chunked markdown file: %s (%d chunks)", filename, len(chunks))

        for chunk in chunks:
            try:
                text_vector = await self.embedder.embed(chunk.content, DOCUMENT_ROLE)
                filename_vector = await self.embedder.embed(filename, DOCUMENT_ROLE)
                await asyncio.to_thread(
                    self.db.insert_note,
                    NoteRecord(
                        filename=filename,
                        chunk_index=chunk.index,
                        text=chunk.content,
                        text_vector=text_vector,
                        filename_vector=filename_vector,
                        checksum=checksum,
                        frontmatter_attributes=frontmatter.attrs,
                    ),
                )
            except Exception:
                logger.error("Failed to store chunk %d of %s", chunk.index, filename)
                # No stored checksum means the next run re-indexes the whole note
                await asyncio.to_thread(self.db.delete_notes, filename)
                raise
            logger.debug("Inserted chunk %d of %s into database", chunk.index, filename)

        return True

    async def index_glob(self, pattern: str) -> IndexStats:
        """
        Index every Markdown note matching a glob, sequentially.

        Returns:
            IndexStats with indexed and skipped counts.
        """
        logger.debug("Loading Markdown files from glob: %s", pattern)
        stats = IndexStats()

        for path in walk_glob(pattern):
            if await self.index_file(path):
                stats.indexed += 1
                stats.indexed_files.append(str(path))
            else:
                stats.skipped += 1

        logger.info(
            "Indexed %d Markdown files (%d unchanged) from %s",
            stats.indexed,
            stats.skipped,
            pattern,
        )
        return stats

    async def remove_missing(self, pattern: str) -> int:
        """
        Delete notes that no longer exist on disk or no longer match the glob.

        Returns:
            Number of notes removed.
        """
        current = {str(path) for path in walk_glob(pattern)}
        indexed = await asyncio.to_thread(self.db.list_filenames)

        removed = 0
        for filename in indexed:
            if filename not in current:
                await asyncio.to_thread(self.db.delete_notes, filename)
                logger.debug("Removed deleted note: %s", filename)
                removed += 1
        return removed

    async def sync(self, pattern: str) -> IndexStats:
        """Index changed notes and drop deleted ones."""
        stats = await self.index_glob(pattern)
        stats.removed = await self.remove_missing(pattern)
        return stats
