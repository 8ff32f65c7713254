"""Tests for main module."""

import logging
from pathlib import Path

import pytest
from fastmcp import FastMCP

from notes_mcp import main as main_module
from notes_mcp.config import Config, reset_config
from notes_mcp.indexer import Embedder
from notes_mcp.logging_config import reset_logging
from notes_mcp.main import build_parser, build_services, create_server, main


@pytest.fixture
def notes_env(tmp_path: Path, notes_dir: Path, monkeypatch, embedder: Embedder):
    """Point the configuration at temporary notes and a fake embedder."""
    (notes_dir / "a.md").write_text("# Alpha\n\nFirst note.")
    (notes_dir / "b.md").write_text("---\ntags: [about-me]\n---\nSecond note.")

    monkeypatch.setenv("NOTES_ROOT", str(notes_dir))
    monkeypatch.setenv("NOTES_DB", str(tmp_path / "db" / "index.db"))
    monkeypatch.setenv("NOTES_EMBEDDING_DIMENSIONS", "8")
    monkeypatch.delenv("NOTES_GLOB", raising=False)
    monkeypatch.delenv("NOTES_SYNC_INTERVAL", raising=False)
    monkeypatch.delenv("NOTES_LOG_FILE", raising=False)
    monkeypatch.setattr(main_module, "get_embedder", lambda name, dims: embedder)

    reset_config()
    reset_logging()
    yield notes_dir
    reset_config()
    reset_logging()


def test_create_server(notes_env: Path, embedder: Embedder, caplog):
    """Test create_server initializes all components."""
    config = Config.from_env()
    services = build_services(config, embedder)

    with caplog.at_level(logging.INFO):
        mcp = create_server(config, services)
    services.close()

    assert mcp is not None
    assert mcp.name == "notesMCP"

    log_messages = [record.message for record in caplog.records]
    assert any("Registering note tools" in msg for msg in log_messages)
    assert any("Server configured successfully" in msg for msg in log_messages)


def test_build_services_creates_database(notes_env: Path, tmp_path: Path, embedder: Embedder):
    """Test the database directory is created on first use."""
    services = build_services(Config.from_env(), embedder)
    services.close()

    assert (tmp_path / "db" / "index.db").exists()


class TestParser:
    def test_defaults_to_serve_over_stdio(self):
        args = build_parser().parse_args([])

        assert args.command == "serve"
        assert args.transport == "stdio"
        assert args.no_index is False

    def test_serve_sse(self):
        args = build_parser().parse_args(["serve", "sse", "--port", "9000", "--no-index"])

        assert (args.transport, args.port, args.no_index) == ("sse", 9000, True)

    def test_grep_flags(self):
        args = build_parser().parse_args(
            ["grep", "TODO", "--flag=-i", "--flag=-w", "--max-results", "5"]
        )

        assert args.flags == ["-i", "-w"]
        assert args.max_results == 5


class TestCommands:
    def test_index(self, notes_env: Path, capsys):
        main(["index"])

        out = capsys.readouterr().out
        assert "Indexed 2 notes, 0 unchanged, 0 removed" in out
        assert str(notes_env / "a.md") in out

    def test_index_twice_skips(self, notes_env: Path, capsys):
        main(["index"])
        capsys.readouterr()

        main(["index", str(notes_env / "*.md")])

        assert "Indexed 0 notes, 2 unchanged, 0 removed" in capsys.readouterr().out

    def test_query(self, notes_env: Path, embedder: Embedder, capsys):
        main(["index"])
        capsys.readouterr()
        embedder.get_model().vectors["search_query: first?"] = embedder.encode(
            "# Alpha\n\nFirst note.", "search_document"
        )

        main(["query", "first?", "--verbose"])

        out = capsys.readouterr().out
        assert f"1.0000  {notes_env / 'a.md'} [chunk 0]" in out
        assert "First note." in out

    def test_blank_query_exits_with_error(self, notes_env: Path):
        with pytest.raises(SystemExit) as exc_info:
            main(["query", "  "])

        assert exc_info.value.code == 1

    def test_grep(self, notes_env: Path, monkeypatch, fake_rg, capsys):
        monkeypatch.setenv("NOTES_RG_PATH", str(fake_rg(lines=3)))

        main(["grep", "match", "--max-results", "2"])

        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "notes/note.md:1:match 1",
            "notes/note.md:2:match 2",
            "... and 1 more results (limited to 2)",
        ]

    def test_grep_failure_exits_with_error(self, notes_env: Path, monkeypatch, fake_rg):
        monkeypatch.setenv("NOTES_RG_PATH", str(fake_rg(exit_code=2, stderr="bad regex")))

        with pytest.raises(SystemExit) as exc_info:
            main(["grep", "("])

        assert exc_info.value.code == 1

    def test_invalid_config_exits_with_error(self, notes_env: Path, monkeypatch):
        monkeypatch.setenv("NOTES_CHUNK_CHARS", "lots")

        with pytest.raises(SystemExit) as exc_info:
            main(["index"])

        assert exc_info.value.code == 1

    def test_serve_indexes_then_runs(self, notes_env: Path, monkeypatch):
        calls = []
        monkeypatch.setattr(FastMCP, "run", lambda self, **kwargs: calls.append(kwargs))

        main(["serve"])

        assert calls == [{"transport": "stdio"}]

    def test_serve_sse(self, notes_env: Path, monkeypatch):
        calls = []
        monkeypatch.setattr(FastMCP, "run", lambda self, **kwargs: calls.append(kwargs))

        main(["serve", "sse", "--port", "9123", "--no-index"])

        assert calls == [{"transport": "sse", "host": "0.0.0.0", "port": 9123}]
