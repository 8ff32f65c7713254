"""
notes-mcp - retrieval over personal Markdown notes.

An MCP server that indexes a directory of Markdown notes into a local vector
store and exposes semantic search, exact ripgrep search and note reading to
any tool-calling agent.

Stack:
- Python + FastMCP
- SQLite (chunk store with embedding vectors)
- sentence-transformers (nomic-embed-text embeddings)
- ripgrep (exact matches)
- Markdown (source of truth)
"""

__version__ = "0.1.0"
