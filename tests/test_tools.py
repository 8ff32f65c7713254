"""Tests for MCP tools."""

import logging
from pathlib import Path

import pytest
from fakes import FakeModel
from fastmcp import FastMCP

from notes_mcp.config import Config
from notes_mcp.context import get_request_id
from notes_mcp.indexer import Database, Embedder, Indexer
from notes_mcp.search import NO_MATCHES_MESSAGE, RipgrepSearcher
from notes_mcp.tools import NoteTools, register_tools


def make_config(notes_dir: Path, db_path: Path, rg_path: str = "rg") -> Config:
    return Config(
        notes_root=notes_dir,
        notes_db=db_path,
        notes_glob=str(notes_dir / "**" / "*.md"),
        chunk_chars=12_000,
        embedding_model="fake-model",
        embedding_dimensions=8,
        content_threshold=0.5,
        filename_threshold=0.6,
        rg_path=rg_path,
        sync_interval=0,
        log_level="INFO",
        log_file=None,
    )


@pytest.fixture
def config(notes_dir: Path, tmp_path: Path) -> Config:
    return make_config(notes_dir, tmp_path / "index.db")


@pytest.fixture
async def tools(db: Database, embedder: Embedder, config: Config, notes_dir: Path) -> NoteTools:
    """Tools over an index holding three notes."""
    (notes_dir / "me.md").write_text("---\ntags: [about-me]\n---\nI live by the sea.")
    (notes_dir / "boats.md").write_text("# Boats\n\nSailing log for the summer.")
    sub = notes_dir / "work"
    sub.mkdir()
    (sub / "plan.md").write_text("---\ntags: [work]\n---\nQuarterly plan.")

    await Indexer(db, embedder).index_glob(config.notes_glob)
    searcher = RipgrepSearcher(notes_dir, executable=config.rg_path)
    return NoteTools(db, embedder, searcher, config)


class TestRegisterTools:
    async def test_registers_all_tools(self, tools: NoteTools):
        mcp = FastMCP()
        register_tools(mcp, tools)

        registered = await mcp.get_tools()

        assert set(registered) == {"search_notes", "grep_notes", "read_note", "about_author"}


class TestSearchNotes:
    async def test_returns_serialized_results(self, tools: NoteTools, fake_model: FakeModel):
        query = "where do I live?"
        fake_model.vectors[f"search_query: {query}"] = tools.embedder.encode(
            "I live by the sea.", "search_document"
        )

        results = await tools.search_notes(query)

        assert results[0]["path"] == str(tools.config.notes_root / "me.md")
        assert results[0]["content"] == "I live by the sea."
        assert results[0]["frontmatter"] == {"tags": ["about-me"]}
        assert results[0]["similarity"] == pytest.approx(1.0, abs=1e-4)
        assert set(results[0]) == {"path", "chunk_index", "content", "frontmatter", "similarity"}

    async def test_blank_query(self, tools: NoteTools):
        with pytest.raises(ValueError, match="Query is required"):
            await tools.search_notes("")

    async def test_runs_in_request_scope(self, tools: NoteTools, caplog):
        with caplog.at_level(logging.INFO, logger="notes_mcp"):
            await tools.search_notes("anything")

        assert any("Tool search_notes initiated" in r.message for r in caplog.records)
        assert get_request_id() is None


class TestGrepNotes:
    async def test_uses_searcher(self, tools: NoteTools, notes_dir: Path, fake_rg):
        tools.searcher = RipgrepSearcher(notes_dir, executable=str(fake_rg(lines=12)))

        result = await tools.grep_notes("match", max_results=10)

        assert result["total_matches"] == 12
        assert result["limited"] is True
        assert len(result["results"]) == 11

    async def test_no_matches(self, tools: NoteTools, notes_dir: Path, fake_rg):
        tools.searcher = RipgrepSearcher(notes_dir, executable=str(fake_rg(exit_code=1)))

        result = await tools.grep_notes("absent")

        assert result == {"results": [NO_MATCHES_MESSAGE], "total_matches": 0, "limited": False}


class TestReadNote:
    async def test_reads_note(self, tools: NoteTools):
        result = tools.read_note("work/plan.md")

        assert result["path"] == "work/plan.md"
        assert result["content"] == "---\ntags: [work]\n---\nQuarterly plan."
        assert result["size"] == len(result["content"])

    async def test_not_found(self, tools: NoteTools):
        result = tools.read_note("missing.md")

        assert "error" in result
        assert "File not found" in result["error"]

    async def test_rejects_traversal(self, tools: NoteTools, tmp_path: Path):
        (tmp_path / "secret.md").write_text("secret")

        result = tools.read_note("../secret.md")

        assert "Access denied" in result["error"]
        assert "content" not in result

    async def test_rejects_absolute_path_outside_root(self, tools: NoteTools):
        result = tools.read_note("/etc/passwd")

        assert "Access denied" in result["error"]

    async def test_directory_is_not_a_note(self, tools: NoteTools):
        assert "File not found" in tools.read_note("work")["error"]

    async def test_accepts_path_returned_by_search(self, tools: NoteTools):
        path = tools.about_author()[0]["path"]

        result = tools.read_note(path)

        assert result["content"] == "---\ntags: [about-me]\n---\nI live by the sea."

    async def test_relative_root_round_trip(
        self, db: Database, embedder: Embedder, tmp_path: Path, monkeypatch
    ):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("NOTES_ROOT", "vault")
        monkeypatch.delenv("NOTES_GLOB", raising=False)
        (tmp_path / "vault").mkdir()
        (tmp_path / "vault" / "me.md").write_text("---\ntags: [about-me]\n---\nHello.")
        config = Config.from_env()
        await Indexer(db, embedder).index_glob(config.notes_glob)
        tools = NoteTools(db, embedder, RipgrepSearcher(config.notes_root), config)

        path = tools.about_author()[0]["path"]
        monkeypatch.chdir(tmp_path / "vault")

        assert Path(path).is_absolute()
        assert tools.read_note(path)["content"] == "---\ntags: [about-me]\n---\nHello."


class TestAboutAuthor:
    async def test_returns_tagged_notes(self, tools: NoteTools):
        results = tools.about_author()

        assert len(results) == 1
        assert results[0]["content"] == "I live by the sea."
        assert results[0]["frontmatter"] == {"tags": ["about-me"]}
        assert results[0]["path"].endswith("me.md")

    async def test_limit(self, tools: NoteTools):
        assert tools.about_author(limit=0) == []
