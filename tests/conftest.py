"""
Shared fixtures: throwaway Git repositories with a bare ``origin``.
"""

from pathlib import Path

import pytest
from git import Repo


class Sandbox:
    """A working clone plus its bare origin, both under tmp_path."""

    def __init__(self, work: Path, origin: Path) -> None:
        self.work = work
        self.origin = origin
        self.repo = Repo(work)

    def git(self, *args: str) -> str:
        return self.repo.git.execute(["git", *args])

    def commit_file(self, name: str, content: str, message: str) -> str:
        path = self.work / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        self.git("add", name)
        self.git("commit", "-m", message)
        return self.git("rev-parse", "HEAD").strip()

    def current_branch(self) -> str:
        return self.git("rev-parse", "--abbrev-ref", "HEAD").strip()

    def subject(self, ref: str) -> str:
        return self.git("show", "-s", "--format=%s", ref).strip()


@pytest.fixture
def git_env(tmp_path, monkeypatch):
    """Isolate git from the user's configuration and give it an identity."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    monkeypatch.setenv("TIDYBRANCH_LOG", str(tmp_path / "logs" / "tidybranch.log"))
    return home


@pytest.fixture
def sandbox(tmp_path, git_env) -> Sandbox:
    """A repo on ``main`` with one commit pushed to a bare origin."""
    origin = tmp_path / "origin.git"
    bare = Repo.init(origin, bare=True)
    bare.git.execute(["git", "symbolic-ref", "HEAD", "refs/heads/main"])

    work = tmp_path / "work"
    repo = Repo.init(work)
    repo.git.execute(["git", "symbolic-ref", "HEAD", "refs/heads/main"])
    repo.git.execute(["git", "config", "user.name", "Test User"])
    repo.git.execute(["git", "config", "user.email", "test@example.com"])
    repo.git.execute(["git", "config", "commit.gpgsign", "false"])
    repo.git.execute(["git", "config", "tag.gpgSign", "false"])

    box = Sandbox(work, origin)
    box.commit_file("README.md", "hello\n", "Initial commit")
    box.git("remote", "add", "origin", str(origin))
    box.git("push", "-u", "origin", "main")
    return box
