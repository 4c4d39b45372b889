"""Tests for the git history content source."""

from __future__ import annotations

from pathlib import Path

import pytest

from scanbridge.engine.base import CancellationToken
from scanbridge.models import GitMetadata
from scanbridge.sources.git import (
    COMMIT_MARK,
    FIELD_SEP,
    GitError,
    GitSource,
    is_remote_uri,
    local_repo_path,
    parse_log,
)


def header(commit, email="dev@example.com", timestamp="2024-01-01T00:00:00+00:00"):
    return f"{COMMIT_MARK}{commit}{FIELD_SEP}{email}{FIELD_SEP}{timestamp}"


SAMPLE_LOG = "\n".join(
    [
        header("def456"),
        "",
        "diff --git a/app.py b/app.py",
        "index 1111111..2222222 100644",
        "--- a/app.py",
        "+++ b/app.py",
        "@@ -10,3 +10,4 @@ def main():",
        " context",
        "-old = 1",
        "+new_one = 'fake_abcd1234'",
        "+new_two = 2",
        " trailing",
        "@@ -40 +41,2 @@",
        "+--- not a header",
        "+last",
        header("abc123"),
        "",
        "diff --git a/config.py b/config.py",
        "new file mode 100644",
        "index 0000000..e69de29",
        "--- /dev/null",
        "+++ b/config.py",
        "@@ -0,0 +1,2 @@",
        "+import os",
        "+KEY = 'fake_efgh5678'",
        "diff --git a/old.txt b/old.txt",
        "deleted file mode 100644",
        "--- a/old.txt",
        "+++ /dev/null",
        "@@ -1 +0,0 @@",
        "-gone",
        "diff --git a/logo.png b/logo.png",
        "Binary files /dev/null and b/logo.png differ",
    ]
)


class TestUriHelpers:
    """Tests for repository reference helpers."""

    @pytest.mark.parametrize(
        "uri",
        [
            "https://github.com/org/repo.git",
            "ssh://git@example.com/org/repo.git",
            "git://example.com/repo",
            "git@github.com:org/repo.git",
        ],
    )
    def test_remote(self, uri):
        """Test URLs and scp-style references are remote."""
        assert is_remote_uri(uri) is True

    @pytest.mark.parametrize("uri", ["/srv/repo", "relative/repo", "file:///srv/repo"])
    def test_local(self, uri):
        """Test paths and file:// URIs are local."""
        assert is_remote_uri(uri) is False

    def test_local_repo_path(self):
        """Test file:// is stripped from local references."""
        assert local_repo_path("file:///srv/repo") == Path("/srv/repo")
        assert local_repo_path("/srv/repo") == Path("/srv/repo")


class TestParseLog:
    """Tests for parse_log."""

    def test_parses_added_runs(self):
        """Test added line runs carry commit, file and new-file line numbers."""
        runs = list(parse_log(SAMPLE_LOG.splitlines()))

        assert [(r.commit, r.file, r.line, r.lines) for r in runs] == [
            ("def456", "app.py", 11, ["new_one = 'fake_abcd1234'", "new_two = 2"]),
            ("def456", "app.py", 41, ["--- not a header", "last"]),
            ("abc123", "config.py", 1, ["import os", "KEY = 'fake_efgh5678'"]),
        ]
        assert runs[0].email == "dev@example.com"
        assert runs[0].timestamp == "2024-01-01T00:00:00+00:00"

    def test_accepts_trailing_newlines(self):
        """Test lines read from a stream keep working."""
        lines = [line + "\n" for line in SAMPLE_LOG.splitlines()]

        assert len(list(parse_log(lines))) == 3

    def test_text(self):
        """Test the run text ends with a newline."""
        run = next(parse_log(SAMPLE_LOG.splitlines()))

        assert run.text == "new_one = 'fake_abcd1234'\nnew_two = 2\n"

    def test_empty_log(self):
        """Test empty output yields nothing."""
        assert list(parse_log([])) == []


class TestLogArgs:
    """Tests for the git log command line."""

    def test_defaults(self):
        """Test the default command walks HEAD without a limit."""
        source = GitSource("git", "/repo", verify=False)

        args = source.log_args(Path("/repo"))

        assert args[:4] == ["git", "-C", "/repo", "log"]
        assert "-n" not in args
        assert args[-2:] == ["HEAD", "--"]

    def test_options(self):
        """Test branch, since-commit and max-depth are applied."""
        source = GitSource(
            "git", "/repo", verify=False, branch="main", since_commit="abc123", max_depth=5
        )

        args = source.log_args(Path("/repo"))

        assert args[-4:] == ["-n", "5", "abc123..main", "--"]


@pytest.mark.integration
class TestGitSourceRepository:
    """Tests against a real git repository."""

    def scan(self, git_repo, **kwargs):
        source = GitSource("git", str(git_repo["path"]), verify=False, **kwargs)
        return list(source.chunks(CancellationToken()))

    def test_walks_history(self, git_repo):
        """Test every added secret on HEAD is emitted with provenance."""
        chunks = self.scan(git_repo)

        text = b"".join(chunk.data for chunk in chunks)
        assert b"fake_first001" in text
        assert b"fake_second02" in text
        assert b"fake_third003" in text
        assert b"fake_branch01" not in text

        notes = next(c for c in chunks if b"fake_third003" in c.data)
        assert notes.source_metadata == GitMetadata(
            repository=str(git_repo["path"]),
            commit=git_repo["third"],
            file="notes.txt",
            line=1,
            email="dev@example.com",
            timestamp=notes.source_metadata.timestamp,
        )
        assert notes.source_metadata.timestamp

    def test_line_of_modified_file(self, git_repo):
        """Test a line added to an existing file keeps its position."""
        chunks = self.scan(git_repo)

        second = next(c for c in chunks if c.data == b"OTHER = 'fake_second02'\n")
        assert second.source_metadata.commit == git_repo["second"]
        assert second.source_metadata.line == 3

    def test_max_depth(self, git_repo):
        """Test max_depth limits the number of commits walked."""
        chunks = self.scan(git_repo, max_depth=1)

        assert {c.source_metadata.commit for c in chunks} == {git_repo["third"]}

    def test_since_commit(self, git_repo):
        """Test since_commit excludes that commit and its ancestors."""
        chunks = self.scan(git_repo, since_commit=git_repo["second"])

        assert [c.data for c in chunks] == [b"fake_third003\n"]

    def test_branch(self, git_repo):
        """Test a branch other than HEAD can be walked."""
        chunks = self.scan(git_repo, branch="feature")

        text = b"".join(chunk.data for chunk in chunks)
        assert b"fake_branch01" in text
        assert b"fake_third003" not in text

    def test_not_a_repository(self, tmp_path, git_repo):
        """Test git failures raise GitError."""
        source = GitSource("git", str(tmp_path / "empty"), verify=False)
        (tmp_path / "empty").mkdir()

        with pytest.raises(GitError, match="git log failed"):
            list(source.chunks(CancellationToken()))

    def test_clone(self, tmp_path, git_repo):
        """Test a repository can be cloned and walked."""
        source = GitSource("git", str(git_repo["path"]), verify=False)
        target = tmp_path / "clone.git"

        source._clone(str(git_repo["path"]), target, CancellationToken())

        chunks = list(source._history_chunks(target, "origin", CancellationToken()))
        assert any(b"fake_third003" in c.data for c in chunks)
        assert {c.source_metadata.repository for c in chunks} == {"origin"}

    def test_clone_failure(self, tmp_path, git_repo):
        """Test a failed clone raises GitError."""
        source = GitSource("git", "unused", verify=False)

        with pytest.raises(GitError, match="failed to clone"):
            source._clone(str(tmp_path / "missing"), tmp_path / "clone.git", CancellationToken())
