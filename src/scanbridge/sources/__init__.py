"""Content sources: in-memory buffers, local files and git history."""

from scanbridge.sources.bytes_source import BytesSource
from scanbridge.sources.filesystem import FilesystemSource
from scanbridge.sources.git import GitError, GitSource, is_remote_uri, local_repo_path

__all__ = [
    "BytesSource",
    "FilesystemSource",
    "GitError",
    "GitSource",
    "is_remote_uri",
    "local_repo_path",
]
