"""Content source over git repository history.

Walks ``git log -p`` with the ``git`` binary and emits the lines each commit
added. Remote repositories are cloned (bare) into a temporary directory that
is removed once the scan of that repository finishes.
"""

from __future__ import annotations

import logging
import re
import subprocess  # nosec B404
import tempfile
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from scanbridge.engine.base import CancellationToken, Chunk, ContentSource, SourceUnit
from scanbridge.engine.chunker import split_chunks
from scanbridge.models import GitMetadata

logger = logging.getLogger(__name__)

COMMIT_MARK = "\x1e"
FIELD_SEP = "\x1f"
LOG_FORMAT = "--format=%x1e%H%x1f%ae%x1f%aI"

_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")
_SCP_STYLE = re.compile(r"^[\w.-]+@[\w.-]+:")

# How long to block on a git process before re-checking cancellation
POLL_INTERVAL = 0.1


class GitError(Exception):
    """Error executing git command."""

    pass


def is_remote_uri(uri: str) -> bool:
    """Return True for URIs that must be cloned rather than read in place.

    ``https://``, ``ssh://``, ``git://`` and scp-style ``user@host:path``
    references are remote. Bare paths and ``file://`` URIs are local.
    """
    if uri.startswith("file://"):
        return False
    return "://" in uri or bool(_SCP_STYLE.match(uri))


def local_repo_path(uri: str) -> Path:
    """Return the filesystem path of a local repository reference."""
    if uri.startswith("file://"):
        return Path(uri[len("file://") :])
    return Path(uri)


@dataclass
class AddedLines:
    """A run of consecutive lines added to one file by one commit."""

    commit: str
    email: str
    timestamp: str
    file: str
    line: int
    lines: list[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "\n".join(self.lines) + "\n"


def parse_log(lines: Iterable[str]) -> Iterator[AddedLines]:
    """Parse ``git log -p`` output produced with ``LOG_FORMAT``.

    Args:
        lines: Output lines, with or without trailing newlines.

    Yields:
        Runs of added lines with the new-file line number of their first line.
        Deleted files and binary diffs yield nothing.
    """
    commit = email = timestamp = ""
    file: str | None = None
    in_hunk = False
    new_line = 0
    run: AddedLines | None = None

    for raw in lines:
        line = raw.rstrip("\n")

        if line.startswith(COMMIT_MARK):
            if run is not None:
                yield run
                run = None
            fields = line[len(COMMIT_MARK) :].split(FIELD_SEP)
            fields += [""] * (3 - len(fields))
            commit, email, timestamp = fields[0], fields[1], fields[2]
            file = None
            in_hunk = False
            continue

        if line.startswith("diff --git "):
            if run is not None:
                yield run
                run = None
            file = None
            in_hunk = False
            continue

        if not in_hunk:
            if line.startswith("+++ "):
                path = line[4:]
                if path == "/dev/null":
                    file = None
                else:
                    file = path[2:] if path.startswith("b/") else path
                continue
            match = _HUNK_HEADER.match(line)
            if match:
                in_hunk = True
                new_line = int(match.group(1))
            continue

        match = _HUNK_HEADER.match(line)
        if match:
            if run is not None:
                yield run
                run = None
            new_line = int(match.group(1))
            continue

        if file is None:
            continue

        if line.startswith("+"):
            if run is None:
                run = AddedLines(commit, email, timestamp, file, new_line)
            run.lines.append(line[1:])
            new_line += 1
        elif line.startswith("-") or line.startswith("\\"):
            continue
        else:
            if run is not None:
                yield run
                run = None
            new_line += 1

    if run is not None:
        yield run


class GitSource(ContentSource):
    """Scan the commit history of a local or remote repository.

    Example:
        source = GitSource("scan", "https://github.com/org/repo", verify=False, max_depth=50)
    """

    def __init__(
        self,
        name: str,
        uri: str,
        verify: bool,
        branch: str | None = None,
        since_commit: str | None = None,
        max_depth: int = 0,
        git_binary: str = "git",
    ) -> None:
        """Initialize the source.

        Args:
            name: Source name reported on chunks.
            uri: Local path, ``file://`` URI or remote URL.
            verify: Whether findings may be verified.
            branch: Branch or ref to walk (default: HEAD).
            since_commit: Only walk commits after this one.
            max_depth: Maximum number of commits to walk (0 = unlimited).
            git_binary: git executable to run.
        """
        super().__init__(name, verify)
        self.uri = uri
        self.branch = branch
        self.since_commit = since_commit
        self.max_depth = max_depth
        self.git_binary = git_binary

    @property
    def source_type(self) -> str:
        return "git"

    def enumerate_units(self, cancel: CancellationToken) -> Iterator[SourceUnit]:
        yield SourceUnit(id=self.uri, kind="repository")

    def chunk_unit(self, unit: SourceUnit, cancel: CancellationToken) -> Iterator[Chunk]:
        if not is_remote_uri(unit.id):
            yield from self._history_chunks(local_repo_path(unit.id), unit.id, cancel)
            return

        with tempfile.TemporaryDirectory(prefix="scanbridge-") as tmp_dir:
            repo_path = Path(tmp_dir) / "repo.git"
            self._clone(unit.id, repo_path, cancel)
            yield from self._history_chunks(repo_path, unit.id, cancel)

    def log_args(self, repo_path: Path) -> list[str]:
        """Build the ``git log`` command line for a repository."""
        args = [
            self.git_binary,
            "-C",
            str(repo_path),
            "log",
            "-p",
            "--no-color",
            "--no-renames",
            "--no-ext-diff",
            LOG_FORMAT,
        ]
        if self.max_depth > 0:
            args += ["-n", str(self.max_depth)]

        rev = self.branch or "HEAD"
        if self.since_commit:
            rev = f"{self.since_commit}..{rev}"
        args += [rev, "--"]
        return args

    def _clone(self, uri: str, target: Path, cancel: CancellationToken) -> None:
        logger.info("Cloning %s", uri)
        args = [self.git_binary, "clone", "--quiet", "--bare", uri, str(target)]

        with tempfile.TemporaryFile() as stderr:
            process = subprocess.Popen(  # nosec B603
                args,
                stdout=subprocess.DEVNULL,
                stderr=stderr,
            )
            try:
                while True:
                    try:
                        returncode = process.wait(timeout=POLL_INTERVAL)
                        break
                    except subprocess.TimeoutExpired:
                        cancel.raise_if_cancelled()
            finally:
                if process.poll() is None:
                    process.kill()
                    process.wait()

            if returncode != 0:
                stderr.seek(0)
                message = stderr.read().decode("utf-8", errors="replace").strip()
                raise GitError(f"failed to clone {uri}: {message}")

    def _history_chunks(
        self, repo_path: Path, repository: str, cancel: CancellationToken
    ) -> Iterator[Chunk]:
        with tempfile.TemporaryFile() as stderr:
            process = subprocess.Popen(  # nosec B603
                self.log_args(repo_path),
                stdout=subprocess.PIPE,
                stderr=stderr,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
            try:
                for added in parse_log(process.stdout):
                    cancel.raise_if_cancelled()
                    yield from self._chunks_for(added, repository)
                returncode = process.wait()
            finally:
                if process.poll() is None:
                    process.kill()
                    process.wait()
                process.stdout.close()

            if returncode != 0:
                stderr.seek(0)
                message = stderr.read().decode("utf-8", errors="replace").strip()
                raise GitError(f"git log failed for {repository}: {message}")

    def _chunks_for(self, added: AddedLines, repository: str) -> Iterator[Chunk]:
        for data, line in split_chunks(added.text.encode("utf-8")):
            yield Chunk(
                data=data,
                source_name=self.name,
                source_metadata=GitMetadata(
                    repository=repository,
                    commit=added.commit,
                    file=added.file,
                    line=added.line + line - 1,
                    email=added.email,
                    timestamp=added.timestamp,
                ),
                verify=self.verify,
            )
