"""Data models for the indexer."""

from dataclasses import dataclass, field
from typing import Any

import numpy as np


@dataclass
class NoteRecord:
    """One persisted chunk of a note, with its embeddings and source checksum."""

    id: int | None = None
    filename: str = ""
    chunk_index: int = 0
    text: str = ""
    text_vector: np.ndarray | None = None
    filename_vector: np.ndarray | None = None
    checksum: str = ""
    frontmatter_attributes: dict[str, Any] | None = None


@dataclass(frozen=True)
class RetrievalResult:
    """A note chunk ranked against a query vector."""

    id: int
    filename: str
    chunk_index: int
    text: str
    frontmatter_attributes: dict[str, Any] | None
    similarity: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.filename,
            "chunk_index": self.chunk_index,
            "content": self.text,
            "frontmatter": self.frontmatter_attributes,
            "similarity": round(self.similarity, 4),
        }


@dataclass
class IndexStats:
    """Counts reported by a bulk indexing run."""

    indexed: int = 0
    skipped: int = 0
    removed: int = 0
    indexed_files: list[str] = field(default_factory=list)
