"""Semantic search over the notes index."""

import asyncio
import logging

from notes_mcp.config import DEFAULT_CONTENT_THRESHOLD, DEFAULT_FILENAME_THRESHOLD
from notes_mcp.indexer.database import Database
from notes_mcp.indexer.embeddings import QUERY_ROLE, Embedder
from notes_mcp.indexer.models import RetrievalResult

logger = logging.getLogger(__name__)


def merge_results(
    *channels: list[RetrievalResult], limit: int
) -> list[RetrievalResult]:
    """
    Merge per-channel results into one ranked list.

    Duplicates (same record id) keep their first occurrence, so channel order
    decides which similarity survives. Ties keep merge order.
    """
    seen: set[int] = set()
    merged: list[RetrievalResult] = []
    for results in channels:
        for result in results:
            if result.id in seen:
                continue
            seen.add(result.id)
            merged.append(result)

    merged.sort(key=lambda r: r.similarity, reverse=True)
    return merged[:limit]


async def query_notes(
    db: Database,
    embedder: Embedder,
    query: str,
    limit: int = 10,
    content_threshold: float = DEFAULT_CONTENT_THRESHOLD,
    filename_threshold: float = DEFAULT_FILENAME_THRESHOLD,
) -> list[RetrievalResult]:
    """
    Perform a semantic search on the loaded notes.

    Content and filename vectors are ranked separately, each channel keeps its
    own top `limit` rows above its threshold, and the two lists are merged.
    The result approximates a global top-k; a record ranked just outside one
    channel's top `limit` is not recovered by the other.

    Args:
        db: Notes database
        embedder: Embedding cache (query vectors use the search_query role)
        query: Natural-language query
        limit: Maximum number of results
        content_threshold: Minimum (exclusive) similarity on note content
        filename_threshold: Minimum (exclusive) similarity on note filenames

    Returns:
        Results sorted by descending similarity, at most `limit` long.

    Raises:
        ValueError: If the query is blank or limit is not positive.
    """
    if not query or not query.strip():
        raise ValueError("Query is required")
    if limit < 1:
        raise ValueError(f"limit must be positive, got {limit}")

    query_vector = await embedder.embed(query, QUERY_ROLE)

    content_results, filename_results = await asyncio.gather(
        asyncio.to_thread(
            db.similarity_search, "text_vector", query_vector, content_threshold, limit
        ),
        asyncio.to_thread(
            db.similarity_search, "filename_vector", query_vector, filename_threshold, limit
        ),
    )

    results = merge_results(content_results, filename_results, limit=limit)
    logger.debug(
        "Query matched %d content and %d filename chunks, returning %d",
        len(content_results),
        len(filename_results),
        len(results),
    )
    return results
