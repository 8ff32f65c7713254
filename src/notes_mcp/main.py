"""Main entry point for the notes-mcp server and developer CLI."""

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass

from fastmcp import FastMCP

from notes_mcp.config import Config, get_config
from notes_mcp.context import conversation_context
from notes_mcp.indexer import Database, Embedder, Indexer, IndexingError, get_embedder
from notes_mcp.logging_config import setup_logging
from notes_mcp.search import RipgrepError, RipgrepSearcher, query_notes
from notes_mcp.sync import SyncManager
from notes_mcp.tools import NoteTools, register_tools

logger = logging.getLogger(__name__)

DEFAULT_SSE_PORT = 8000
SNIPPET_CHARS = 200


@dataclass
class Services:
    """Long-lived objects shared by the server, the CLI and background sync."""

    db: Database
    embedder: Embedder
    indexer: Indexer
    searcher: RipgrepSearcher

    def close(self) -> None:
        self.db.close()


def build_services(config: Config, embedder: Embedder | None = None) -> Services:
    """Open the index and wire the retrievers for a configuration.

    Args:
        config: Configuration instance with all settings.
        embedder: Embedder to use; defaults to the process-wide one.
    """
    logger.info("Initializing database at %s", config.notes_db)
    config.notes_db.parent.mkdir(parents=True, exist_ok=True)
    db = Database(config.notes_db, dimensions=config.embedding_dimensions)
    db.initialize()

    if embedder is None:
        embedder = get_embedder(config.embedding_model, config.embedding_dimensions)

    return Services(
        db=db,
        embedder=embedder,
        indexer=Indexer(db, embedder, chunk_chars=config.chunk_chars),
        searcher=RipgrepSearcher(config.notes_root, executable=config.rg_path),
    )


def create_server(config: Config, services: Services | None = None) -> FastMCP:
    """Create and configure the MCP server with all components.

    Args:
        config: Configuration instance with all settings.
        services: Pre-built services; built from config when omitted.
    """
    if services is None:
        services = build_services(config)

    mcp = FastMCP(
        name="notesMCP",
        instructions=(
            "notesMCP gives access to the user's personal Markdown notes. Use "
            "search_notes for semantic questions, grep_notes for exact terms, "
            "read_note to open a whole note and about_author for background "
            "on the user."
        ),
    )

    logger.info("Registering note tools...")
    register_tools(
        mcp,
        NoteTools(services.db, services.embedder, services.searcher, config),
    )

    logger.info("Server configured successfully")
    return mcp


def _log_banner(config: Config) -> None:
    logger.info("=" * 50)
    logger.info("notesMCP starting...")
    logger.info("  NOTES_ROOT: %s", config.notes_root)
    logger.info("  NOTES_DB:   %s", config.notes_db)
    logger.info("  NOTES_GLOB: %s", config.notes_glob)
    logger.info("  MODEL:      %s", config.embedding_model)
    logger.info(
        "  SYNC:       %s",
        f"every {config.sync_interval}s" if config.sync_interval else "disabled",
    )
    logger.info("=" * 50)


def cmd_serve(config: Config, args: argparse.Namespace) -> None:
    """Index (unless disabled) and run the MCP server until interrupted."""
    _log_banner(config)
    services = build_services(config)
    sync_manager: SyncManager | None = None

    try:
        if not args.no_index:
            stats = asyncio.run(services.indexer.sync(config.notes_glob))
            logger.info(
                "Initial index complete: %d indexed, %d unchanged, %d removed",
                stats.indexed,
                stats.skipped,
                stats.removed,
            )

        mcp = create_server(config, services)

        if config.sync_interval > 0:
            sync_manager = SyncManager(
                services.indexer, config.notes_glob, config.sync_interval
            )
            sync_manager.start()

        if args.transport == "sse":
            logger.info("Starting MCP server on port %s...", args.port)
            mcp.run(transport="sse", host="0.0.0.0", port=args.port)
        else:
            logger.info("Starting MCP server on stdio...")
            mcp.run(transport="stdio")
    finally:
        if sync_manager is not None:
            sync_manager.stop()
        services.close()


def cmd_index(config: Config, args: argparse.Namespace) -> None:
    """Index a glob of notes and report the counts."""
    pattern = args.glob or config.notes_glob
    services = build_services(config)
    try:
        stats = asyncio.run(services.indexer.sync(pattern))
    finally:
        services.close()

    print(
        f"Indexed {stats.indexed} notes, {stats.skipped} unchanged, "
        f"{stats.removed} removed"
    )
    for filename in stats.indexed_files:
        print(f"  {filename}")


def cmd_query(config: Config, args: argparse.Namespace) -> None:
    """Run a semantic query against the index and print the matches."""
    services = build_services(config)
    try:
        results = asyncio.run(
            query_notes(
                services.db,
                services.embedder,
                args.text,
                limit=args.limit,
                content_threshold=config.content_threshold,
                filename_threshold=config.filename_threshold,
            )
        )
    finally:
        services.close()

    if not results:
        print("No matching notes")
        return

    for result in results:
        print(f"{result.similarity:.4f}  {result.filename} [chunk {result.chunk_index}]")
        if args.verbose:
            if result.frontmatter_attributes:
                print(f"  frontmatter: {result.frontmatter_attributes}")
            print(result.text)
            print()
        else:
            snippet = " ".join(result.text.split())[:SNIPPET_CHARS]
            print(f"  {snippet}")


def cmd_grep(config: Config, args: argparse.Namespace) -> None:
    """Run ripgrep over the notes directory and print the matching lines."""
    searcher = RipgrepSearcher(config.notes_root, executable=config.rg_path)
    result = asyncio.run(
        searcher.search(args.pattern, flags=args.flags, max_results=args.max_results)
    )
    for line in result.results:
        print(line)


COMMANDS = {
    "serve": cmd_serve,
    "index": cmd_index,
    "query": cmd_query,
    "grep": cmd_grep,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="notes-mcp",
        description="notesMCP - MCP server and RAG tools for Markdown notes",
    )
    subparsers = parser.add_subparsers(dest="command")
    # Running without a subcommand serves over stdio
    parser.set_defaults(
        command="serve", transport="stdio", port=DEFAULT_SSE_PORT, no_index=False
    )

    serve = subparsers.add_parser("serve", help="Run the MCP server (default)")
    serve.add_argument(
        "transport",
        nargs="?",
        choices=["stdio", "sse"],
        default="stdio",
        help="MCP transport (default: stdio)",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=DEFAULT_SSE_PORT,
        help=f"Port for the sse transport (default: {DEFAULT_SSE_PORT})",
    )
    serve.add_argument(
        "--no-index",
        action="store_true",
        help="Skip indexing the notes before starting",
    )

    index = subparsers.add_parser("index", help="Index notes into the vector store")
    index.add_argument("glob", nargs="?", help="Glob of notes (default: NOTES_GLOB)")

    query = subparsers.add_parser("query", help="Semantic search over indexed notes")
    query.add_argument("text", help="Natural-language query")
    query.add_argument("--limit", type=int, default=10, help="Maximum results")
    query.add_argument(
        "--verbose", action="store_true", help="Print full chunks and frontmatter"
    )

    grep = subparsers.add_parser("grep", help="Exact search with ripgrep")
    grep.add_argument("pattern", help="ripgrep pattern")
    grep.add_argument(
        "--flag",
        dest="flags",
        action="append",
        default=None,
        help="Extra ripgrep flag, repeatable (e.g. --flag=-i)",
    )
    grep.add_argument("--max-results", type=int, default=10, help="Maximum lines")

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main function - dispatches the CLI subcommands."""
    args = build_parser().parse_args(argv)

    try:
        config = get_config()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    # Configure logging here to avoid side effects on import
    setup_logging(config.log_level, config.log_file)

    with conversation_context():
        try:
            COMMANDS[args.command](config, args)
        except KeyboardInterrupt:
            logger.info("Stopped by user")
            sys.exit(0)
        except (ValueError, IndexingError, RipgrepError) as e:
            logger.error("%s", e)
            sys.exit(1)
        except Exception:
            logger.exception("Unexpected error")
            sys.exit(1)


if __name__ == "__main__":
    main()
