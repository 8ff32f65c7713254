"""File walker for discovering Markdown notes from a glob."""

import glob
import hashlib
import logging
from collections.abc import Iterator
from pathlib import Path

logger = logging.getLogger(__name__)

MARKDOWN_SUFFIX = ".md"

# Drawing sidecars exported next to notes (e.g. "diagram.excalidraw.md")
AUXILIARY_SUFFIXES = (".excalidraw.md",)


def compute_hash(content: bytes) -> str:
    """Compute SHA-256 hash of content."""
    return hashlib.sha256(content).hexdigest()


def is_indexable(path: Path) -> bool:
    """Check whether a path names a Markdown note worth indexing."""
    name = path.name.lower()
    if not name.endswith(MARKDOWN_SUFFIX):
        return False
    return not any(name.endswith(suffix) for suffix in AUXILIARY_SUFFIXES)


def walk_glob(pattern: str) -> Iterator[Path]:
    """
    Expand a glob and yield every Markdown note it matches, in sorted order.

    Directories, non-Markdown files and auxiliary sidecar files are skipped.
    `**` matches any number of directories.
    """
    if not pattern or not pattern.strip():
        raise ValueError("Glob pattern is required")

    pattern = str(Path(pattern).expanduser())

    for match in sorted(glob.iglob(pattern, recursive=True)):
        path = Path(match)
        if path.is_dir():
            logger.debug("Skipping directory: %s", path)
            continue
        if not is_indexable(path):
            logger.debug("Skipping non-note file: %s", path)
            continue
        yield path
