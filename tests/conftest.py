"""Test configuration and fixtures."""

import time
from pathlib import Path
from typing import Callable, Generator

import pytest
from git import Actor, Repo

DAY = 24 * 60 * 60
AUTHOR = Actor("Test User", "test@example.com")


def git_date(days_ago: float) -> str:
    """Git internal date format for a moment ``days_ago`` in the past."""
    return f"{int(time.time() - days_ago * DAY)} +0000"


def commit_file(repo: Repo, name: str, content: str, days_ago: float = 0) -> None:
    """Write a file on the checked-out branch and commit it with a fixed date."""
    path = Path(repo.working_tree_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    repo.index.add([name])
    date = git_date(days_ago)
    repo.index.commit(f"Add {name}", author=AUTHOR, committer=AUTHOR, author_date=date, commit_date=date)


def init_repo(path: Path, trunk: str = "main") -> Repo:
    """Create a repository whose first commit (60 days old) is on ``trunk``."""
    path.mkdir(parents=True, exist_ok=True)
    repo = Repo.init(path)
    repo.config_writer().set_value("user", "name", AUTHOR.name).release()
    repo.config_writer().set_value("user", "email", AUTHOR.email).release()
    commit_file(repo, "README.md", "# Test Repository", days_ago=60)
    # Rename whatever `git init` called the first branch
    repo.git.branch("-M", trunk)
    return repo


def add_branch(repo: Repo, name: str, days_ago: float, base: str = "main", merge: bool = False) -> None:
    """Create ``name`` from ``base`` with one commit, optionally merging it back with --no-ff."""
    repo.git.checkout(base)
    repo.git.checkout("-b", name)
    commit_file(repo, f"{name}.txt", f"{name} content", days_ago=days_ago)
    repo.git.checkout(base)
    if merge:
        repo.git.merge(name, "--no-ff", "-m", f"Merge {name}")


@pytest.fixture
def make_repo(tmp_path: Path) -> Callable[..., Repo]:
    """Factory for extra repositories inside tmp_path."""

    def factory(name: str = "repo", trunk: str = "main") -> Repo:
        return init_repo(tmp_path / name, trunk)

    return factory


@pytest.fixture
def test_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Create a repository with a merged, an unmerged and a protected branch.

    Layout:
        main        trunk, checked out (HEAD detached when tests ask for it)
        feature/a   merged into main, last commit 40 days ago
        feature/b   not merged, last commit 5 days ago
        develop     protected by default, same commit as main's first commit

    HOME points into tmp_path so no real global config is read.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))

    local_path = tmp_path / "local"
    repo = init_repo(local_path)
    repo.create_head("develop")
    add_branch(repo, "feature/a", days_ago=40, merge=True)
    add_branch(repo, "feature/b", days_ago=5)
    repo.git.checkout("main")

    yield local_path


@pytest.fixture
def detached(test_env: Path) -> Path:
    """The test repository with HEAD detached at main."""
    Repo(test_env).git.checkout("--detach", "main")
    return test_env
