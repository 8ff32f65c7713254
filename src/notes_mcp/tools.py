"""MCP tools for notes-mcp server.

This module defines the tools exposed to tool-calling agents:
- search_notes: Semantic search over note content and filenames
- grep_notes: Exact regex search over the raw note files using ripgrep
- read_note: Read a complete note by path
- about_author: Notes describing the author (tagged "about-me")
"""

import logging

from fastmcp import FastMCP

from notes_mcp.config import Config
from notes_mcp.context import request_context
from notes_mcp.indexer import Database, Embedder
from notes_mcp.search import RipgrepSearcher, query_notes

logger = logging.getLogger(__name__)

ABOUT_AUTHOR_TAG = "about-me"


class NoteTools:
    """Tool implementations bound to one index and one notes directory.

    Every call runs in its own request scope so log lines from one tool call
    share a request ID.
    """

    def __init__(
        self,
        db: Database,
        embedder: Embedder,
        searcher: RipgrepSearcher,
        config: Config,
    ):
        self.db = db
        self.embedder = embedder
        self.searcher = searcher
        self.config = config

    async def search_notes(self, query: str, limit: int = 8) -> list[dict]:
        with request_context():
            logger.info("Tool search_notes initiated: query=%r limit=%d", query, limit)
            results = await query_notes(
                self.db,
                self.embedder,
                query,
                limit=limit,
                content_threshold=self.config.content_threshold,
                filename_threshold=self.config.filename_threshold,
            )
            logger.debug("Tool search_notes completed: %d documents found", len(results))
            return [result.to_dict() for result in results]

    async def grep_notes(
        self,
        pattern: str,
        flags: list[str] | None = None,
        max_results: int = 10,
    ) -> dict:
        with request_context():
            logger.info(
                "Tool grep_notes initiated: pattern=%r flags=%s max_results=%d",
                pattern,
                flags,
                max_results,
            )
            result = await self.searcher.search(pattern, flags=flags, max_results=max_results)
            logger.debug(
                "Tool grep_notes completed: total_matches=%d limited=%s",
                result.total_matches,
                result.limited,
            )
            return result.to_dict()

    def read_note(self, path: str) -> dict:
        with request_context():
            logger.info("Tool read_note initiated: path=%s", path)
            root = self.config.notes_root.expanduser().resolve()

            # Validate path is within the notes root (security check)
            try:
                full_path = (root / path).resolve()
            except (ValueError, OSError) as e:
                return {"path": path, "error": f"Invalid path: {e}"}

            if not full_path.is_relative_to(root):
                logger.warning("Tool read_note denied path outside notes root: %s", path)
                return {"path": path, "error": f"Access denied: {path}"}

            if not full_path.is_file():
                return {"path": path, "error": f"File not found: {path}"}

            try:
                content = full_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.error("Tool read_note failed for %s: %s", path, e)
                return {"path": path, "error": f"Failed to read file: {e}"}

            logger.debug("Tool read_note completed: %s (%d chars)", path, len(content))
            return {"path": path, "content": content, "size": len(content)}

    def about_author(self, limit: int = 10) -> list[dict]:
        with request_context():
            logger.info("Tool about_author initiated: limit=%d", limit)
            records = self.db.find_by_tag(ABOUT_AUTHOR_TAG, limit=limit)
            logger.debug("Tool about_author completed: %d notes found", len(records))
            return [
                {
                    "path": record.filename,
                    "chunk_index": record.chunk_index,
                    "content": record.text,
                    "frontmatter": record.frontmatter_attributes,
                }
                for record in records
            ]


def register_tools(mcp: FastMCP, tools: NoteTools) -> None:
    """Register all note tools with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        tools: Tool implementations bound to the index
    """

    @mcp.tool()
    async def search_notes(query: str, limit: int = 8) -> list[dict]:
        """Search the user's notes about a given query using vector search.

        Finds semantically relevant content but may miss specific terms; use
        grep_notes for exact matches. Phrase queries as questions, e.g.
        "What meetings have I documented?".

        Args:
            query: The query to search for
            limit: Maximum number of note chunks to return (default: 8)

        Returns:
            List of note chunks with:
            - path: Path of the note
            - chunk_index: Position of the chunk within the note
            - content: Chunk text
            - frontmatter: Frontmatter attributes of the note (may be null)
            - similarity: Cosine similarity to the query (higher is better)
        """
        return await tools.search_notes(query, limit)

    @mcp.tool()
    async def grep_notes(
        pattern: str,
        flags: list[str] | None = None,
        max_results: int = 10,
    ) -> dict:
        """Search the notes directory using ripgrep patterns.

        Returns matching lines with file paths and line numbers.
        Use max_results to limit output.

        Args:
            pattern: The ripgrep pattern to search for (supports regex)
            flags: Additional ripgrep flags (e.g., ["-i"] for case-insensitive,
                ["-w"] for word boundaries)
            max_results: Maximum number of lines to return (default: 10)

        Returns:
            - results: Lines formatted as "path:line:content"
            - total_matches: Number of matching lines before limiting
            - limited: Whether results were truncated
        """
        return await tools.grep_notes(pattern, flags, max_results)

    @mcp.tool()
    def read_note(path: str) -> dict:
        """Read the full contents of a note.

        Use this after finding a note with search_notes or grep_notes.

        Args:
            path: Path of the note, relative to the notes directory

        Returns:
            - path: The requested path
            - content: Full note content (absent on error)
            - size: Content length in characters (absent on error)
            - error: Error message if the note could not be read
        """
        return tools.read_note(path)

    @mcp.tool()
    def about_author(limit: int = 10) -> list[dict]:
        """Basic information about the user making the query (author of the notes).

        Returns notes tagged "about-me" in their frontmatter. More detail can
        be found with search_notes.

        Args:
            limit: Maximum number of note chunks to return (default: 10)
        """
        return tools.about_author(limit)
