"""Shared fixtures: a fake embedding model, a temporary index and a fake rg."""

import stat
from pathlib import Path

import pytest
from fakes import DIMENSIONS, FakeModel

from notes_mcp.indexer import Database, Embedder


@pytest.fixture
def fake_model():
    return FakeModel()


@pytest.fixture
def embedder(fake_model):
    return Embedder("fake-model", DIMENSIONS, model_factory=lambda name: fake_model)


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "index.db", dimensions=DIMENSIONS)
    database.initialize()
    yield database
    database.close()


@pytest.fixture
def notes_dir(tmp_path):
    path = tmp_path / "notes"
    path.mkdir()
    return path


@pytest.fixture
def fake_rg(tmp_path):
    """Factory writing an executable that mimics ripgrep.

    The script records its arguments (one per line) in `<script>.args`, prints
    `lines` matches to stdout and `stderr` to stderr, then exits with `exit_code`.
    """

    def make(lines: int = 0, exit_code: int = 0, stderr: str = "") -> Path:
        script = tmp_path / f"fake-rg-{lines}-{exit_code}"
        args_file = script.with_suffix(".args")
        script.write_text(
            "#!/bin/sh\n"
            f"printf '%s\\n' \"$@\" > '{args_file}'\n"
            "i=1\n"
            f"while [ $i -le {lines} ]; do\n"
            '  echo "notes/note.md:$i:match $i"\n'
            "  i=$((i + 1))\n"
            "done\n"
            f"printf '%s' '{stderr}' >&2\n"
            f"exit {exit_code}\n"
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return make
