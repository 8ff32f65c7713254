"""Configuration module for notes-mcp.

Loads configuration from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from notes_mcp.indexer.chunker import DEFAULT_CHUNK_CHARS
from notes_mcp.indexer.embeddings import (
    DEFAULT_EMBEDDING_DIMENSIONS,
    DEFAULT_EMBEDDING_MODEL,
)

DEFAULT_CONTENT_THRESHOLD = 0.5
DEFAULT_FILENAME_THRESHOLD = 0.6


def _int_env(name: str, default: int, minimum: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        value = int(raw)
        if value < minimum:
            raise ValueError(f"must be >= {minimum}, got {value}")
    except ValueError as e:
        raise ValueError(f"Invalid {name} value '{raw}': {e}") from e
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        value = float(raw)
        if not -1.0 <= value <= 1.0:
            raise ValueError(f"must be between -1 and 1, got {value}")
    except ValueError as e:
        raise ValueError(f"Invalid {name} value '{raw}': {e}") from e
    return value


@dataclass
class Config:
    """Application configuration."""

    notes_root: Path
    notes_db: Path
    notes_glob: str
    chunk_chars: int
    embedding_model: str
    embedding_dimensions: int
    content_threshold: float
    filename_threshold: float
    rg_path: str
    sync_interval: int
    log_level: str
    log_file: Path | None

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        default_root = str(Path.home() / "notes")
        notes_root = Path(os.getenv("NOTES_ROOT", default_root)).expanduser().resolve()

        default_db = str(notes_root / ".notes-index.db")
        notes_db = Path(os.getenv("NOTES_DB", default_db)).expanduser()

        notes_glob = os.getenv("NOTES_GLOB") or str(notes_root / "**" / "*.md")

        log_file = os.getenv("NOTES_LOG_FILE")

        return cls(
            notes_root=notes_root,
            notes_db=notes_db,
            notes_glob=notes_glob,
            chunk_chars=_int_env("NOTES_CHUNK_CHARS", DEFAULT_CHUNK_CHARS, 1),
            embedding_model=os.getenv("NOTES_EMBEDDING_MODEL", DEFAULT_EMBEDDING_MODEL),
            embedding_dimensions=_int_env(
                "NOTES_EMBEDDING_DIMENSIONS", DEFAULT_EMBEDDING_DIMENSIONS, 1
            ),
            content_threshold=_float_env("NOTES_CONTENT_THRESHOLD", DEFAULT_CONTENT_THRESHOLD),
            filename_threshold=_float_env(
                "NOTES_FILENAME_THRESHOLD", DEFAULT_FILENAME_THRESHOLD
            ),
            rg_path=os.getenv("NOTES_RG_PATH", "rg"),
            sync_interval=_int_env("NOTES_SYNC_INTERVAL", 0, 0),
            log_level=os.getenv("NOTES_LOG_LEVEL", "INFO").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
        )


# Global config instance (lazy loaded)
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
