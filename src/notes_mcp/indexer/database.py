"""SQLite database management for the notes index."""

import json
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import numpy as np

from notes_mcp.indexer.embeddings import DEFAULT_EMBEDDING_DIMENSIONS
from notes_mcp.indexer.models import NoteRecord, RetrievalResult

SCHEMA_VERSION = "1.0"

SCHEMA_SQL = """
-- notes-mcp Index Schema v1.0
-- This index is disposable: it regenerates from the notes directory

PRAGMA journal_mode = WAL;

-- One row per chunk of a note
CREATE TABLE IF NOT EXISTS notes (
    id                     INTEGER PRIMARY KEY AUTOINCREMENT,
    filename               TEXT NOT NULL,
    chunk_index            INTEGER NOT NULL,
    text                   TEXT NOT NULL,
    text_vector            BLOB,
    filename_vector        BLOB,
    checksum               TEXT NOT NULL,
    frontmatter_attributes TEXT,
    UNIQUE (filename, chunk_index)
);

CREATE INDEX IF NOT EXISTS idx_notes_filename ON notes(filename);
CREATE INDEX IF NOT EXISTS idx_notes_checksum ON notes(checksum);

-- Metadata table for index versioning
CREATE TABLE IF NOT EXISTS meta (
    key   TEXT PRIMARY KEY,
    value TEXT
);

INSERT OR REPLACE INTO meta (key, value) VALUES ('schema_version', '1.0');
"""

# Columns that may be ranked by similarity_search
VECTOR_COLUMNS = frozenset({"text_vector", "filename_vector"})


def serialize_vector(vector: np.ndarray) -> bytes:
    """Serialize a vector as little-endian float32 bytes."""
    return np.asarray(vector, dtype="<f4").tobytes()


def deserialize_vector(blob: bytes | None) -> np.ndarray | None:
    """Deserialize a vector stored by serialize_vector."""
    if blob is None:
        return None
    return np.frombuffer(blob, dtype="<f4")


def cosine_distance(a: bytes | None, b: bytes | None) -> float | None:
    """SQL function: cosine distance between two serialized vectors."""
    if a is None or b is None:
        return None
    va = np.frombuffer(a, dtype="<f4")
    vb = np.frombuffer(b, dtype="<f4")
    if va.shape != vb.shape:
        return None
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        return 1.0
    return 1.0 - float(np.dot(va, vb)) / denom


class Database:
    """SQLite database for the notes index."""

    def __init__(self, db_path: Path, dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS):
        """Initialize database connection.

        Args:
            db_path: Path to the SQLite database file
            dimensions: Embedding dimensionality stored vectors must have
        """
        self.db_path = db_path
        self.dimensions = dimensions
        self._local = threading.local()
        self._write_lock = threading.Lock()
        self._connections: list[sqlite3.Connection] = []
        self._connections_lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local database connection."""
        if not hasattr(self._local, "conn") or self._local.conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
            conn.row_factory = sqlite3.Row
            conn.create_function("cosine_distance", 2, cosine_distance, deterministic=True)
            self._local.conn = conn
            with self._connections_lock:
                self._connections.append(conn)
        return self._local.conn

    @contextmanager
    def _read_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor for read operations."""
        conn = self._get_connection()
        cursor = conn.cursor()
        try:
            yield cursor
        finally:
            cursor.close()

    @contextmanager
    def _write_cursor(self) -> Iterator[sqlite3.Cursor]:
        """Get a cursor for write operations with locking."""
        with self._write_lock:
            conn = self._get_connection()
            cursor = conn.cursor()
            try:
                yield cursor
                conn.commit()
            except Exception:
                conn.rollback()
                raise
            finally:
                cursor.close()

    def initialize(self) -> None:
        """Initialize the database schema.

        Raises:
            ValueError: If the index was built with a different embedding size.
        """
        with self._write_cursor() as cursor:
            cursor.executescript(SCHEMA_SQL)
            cursor.execute("SELECT value FROM meta WHERE key = 'embedding_dimensions'")
            row = cursor.fetchone()
            if row is None:
                cursor.execute(
                    "INSERT INTO meta (key, value) VALUES ('embedding_dimensions', ?)",
                    (str(self.dimensions),),
                )
            elif int(row["value"]) != self.dimensions:
                raise ValueError(
                    f"Index at {self.db_path} stores {row['value']}-dimensional vectors, "
                    f"expected {self.dimensions}; delete it to rebuild"
                )

    def close(self) -> None:
        """Close every connection opened by this database."""
        with self._connections_lock:
            for conn in self._connections:
                conn.close()
            self._connections.clear()
        self._local = threading.local()

    def clear(self) -> None:
        """Clear all notes from the database (for reindexing)."""
        with self._write_cursor() as cursor:
            cursor.execute("DELETE FROM notes")

    # Note operations

    def get_checksum(self, filename: str) -> str | None:
        """Get the stored checksum of a note for change detection."""
        with self._read_cursor() as cursor:
            cursor.execute(
                "SELECT checksum FROM notes WHERE filename = ? LIMIT 1",
                (filename,),
            )
            row = cursor.fetchone()
            return row["checksum"] if row else None

    def delete_notes(self, filename: str) -> int:
        """Delete every chunk of a note, returning the number of rows removed."""
        with self._write_cursor() as cursor:
            cursor.execute("DELETE FROM notes WHERE filename = ?", (filename,))
            return cursor.rowcount

    def insert_note(self, record: NoteRecord) -> int:
        """Insert one chunk of a note, returning its ID."""
        for name in ("text_vector", "filename_vector"):
            vector = getattr(record, name)
            if vector is not None and len(vector) != self.dimensions:
                raise ValueError(
                    f"{name} has {len(vector)} dimensions, expected {self.dimensions}"
                )

        attrs_json = (
            json.dumps(record.frontmatter_attributes, default=str)
            if record.frontmatter_attributes is not None
            else None
        )

        with self._write_cursor() as cursor:
            cursor.execute(
                """INSERT INTO notes
                (filename, chunk_index, text, text_vector, filename_vector, checksum, frontmatter_attributes)
                VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.filename,
                    record.chunk_index,
                    record.text,
                    serialize_vector(record.text_vector) if record.text_vector is not None else None,
                    serialize_vector(record.filename_vector)
                    if record.filename_vector is not None
                    else None,
                    record.checksum,
                    attrs_json,
                ),
            )
            return cursor.lastrowid  # type: ignore

    def get_notes(self, filename: str) -> list[NoteRecord]:
        """Get all chunks of a note in chunk order."""
        with self._read_cursor() as cursor:
            cursor.execute(
                """SELECT * FROM notes
                WHERE filename = ?
                ORDER BY chunk_index""",
                (filename,),
            )
            return [self._row_to_record(row) for row in cursor.fetchall()]

    def list_filenames(self) -> list[str]:
        """List every indexed filename."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT DISTINCT filename FROM notes ORDER BY filename")
            return [row["filename"] for row in cursor.fetchall()]

    def count_notes(self) -> int:
        """Count stored chunks."""
        with self._read_cursor() as cursor:
            cursor.execute("SELECT COUNT(*) AS n FROM notes")
            return cursor.fetchone()["n"]

    def _row_to_record(self, row: sqlite3.Row) -> NoteRecord:
        """Convert a database row to a NoteRecord."""
        return NoteRecord(
            id=row["id"],
            filename=row["filename"],
            chunk_index=row["chunk_index"],
            text=row["text"],
            text_vector=deserialize_vector(row["text_vector"]),
            filename_vector=deserialize_vector(row["filename_vector"]),
            checksum=row["checksum"],
            frontmatter_attributes=_load_attrs(row["frontmatter_attributes"]),
        )

    # Search operations

    def similarity_search(
        self,
        column: str,
        vector: np.ndarray,
        threshold: float,
        limit: int,
    ) -> list[RetrievalResult]:
        """
        Rank notes by cosine similarity of one vector column to a query vector.

        Only rows with similarity strictly greater than threshold are kept.
        """
        if column not in VECTOR_COLUMNS:
            raise ValueError(f"Unknown vector column: {column}")

        query = f"""
            SELECT
                id,
                filename,
                chunk_index,
                text,
                frontmatter_attributes,
                1 - cosine_distance({column}, ?) AS similarity
            FROM notes
            WHERE similarity > ?
            ORDER BY similarity DESC, id
            LIMIT ?
        """

        with self._read_cursor() as cursor:
            cursor.execute(query, (serialize_vector(vector), threshold, limit))
            return [
                RetrievalResult(
                    id=row["id"],
                    filename=row["filename"],
                    chunk_index=row["chunk_index"],
                    text=row["text"],
                    frontmatter_attributes=_load_attrs(row["frontmatter_attributes"]),
                    similarity=row["similarity"],
                )
                for row in cursor.fetchall()
            ]

    def find_by_tag(self, tag: str, limit: int = 10) -> list[NoteRecord]:
        """Find chunks whose frontmatter `tags` include the given tag."""
        with self._read_cursor() as cursor:
            cursor.execute(
                """SELECT * FROM notes
                WHERE frontmatter_attributes IS NOT NULL
                AND EXISTS (
                    SELECT 1 FROM json_each(notes.frontmatter_attributes, '$.tags')
                    WHERE json_each.value = ?
                )
                ORDER BY filename, chunk_index
                LIMIT ?""",
                (tag, limit),
            )
            return [self._row_to_record(row) for row in cursor.fetchall()]


def _load_attrs(raw: str | None) -> dict[str, Any] | None:
    return json.loads(raw) if raw else None
