"""Fixtures for integration tests that use a real git repository."""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from pathlib import Path

import pytest


def _run_git(repo: Path, *args: str) -> str:
    completed = subprocess.run(
        ["git", *args],
        cwd=repo,
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout


@pytest.fixture
def run_git() -> Callable[..., str]:
    """Expose a helper that runs git inside a repository.

    Returns:
        Callable[..., str]: Function returning git stdout.
    """
    return _run_git


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create a repository with one committed module.

    Returns:
        Path: Repository root.
    """
    repo = tmp_path.resolve() / "repo"
    repo.mkdir()
    _run_git(repo, "init", "--quiet")
    _run_git(repo, "config", "user.email", "builds@example.com")
    _run_git(repo, "config", "user.name", "Build Bot")
    _run_git(repo, "config", "commit.gpgsign", "false")
    (repo / "app").mkdir()
    (repo / "app" / "index.js").write_text("export default 1;\n", encoding="utf-8")
    (repo / "shared").mkdir()
    (repo / "shared" / "util.js").write_text("export const x = 1;\n", encoding="utf-8")
    _run_git(repo, "add", ".")
    _run_git(repo, "commit", "--quiet", "-m", "initial")
    return repo
