"""Content source over local files and directories."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from scanbridge.engine.base import CancellationToken, Chunk, ContentSource, SourceUnit
from scanbridge.engine.chunker import split_chunks
from scanbridge.models import FilesystemMetadata

logger = logging.getLogger(__name__)

SKIPPED_DIRS = frozenset({".git"})


class FilesystemSource(ContentSource):
    """Scan files, walking directories recursively.

    Each regular file is one unit. Paths given directly are followed even
    when they are symlinks; inside a walk, symlinks and ``.git`` directories
    are skipped. Findings carry the file path and line number.
    """

    def __init__(self, name: str, paths: list[Path], verify: bool) -> None:
        super().__init__(name, verify)
        self.paths = [Path(p) for p in paths]

    @property
    def source_type(self) -> str:
        return "filesystem"

    def enumerate_units(self, cancel: CancellationToken) -> Iterator[SourceUnit]:
        for path in self.paths:
            cancel.raise_if_cancelled()
            if path.is_file():
                yield SourceUnit(id=str(path), kind="file")
            elif path.is_dir():
                yield from self._walk(path, cancel)

    def _walk(self, root: Path, cancel: CancellationToken) -> Iterator[SourceUnit]:
        for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
            cancel.raise_if_cancelled()
            dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
            for filename in sorted(filenames):
                file_path = Path(dirpath) / filename
                if file_path.is_symlink() or not file_path.is_file():
                    continue
                yield SourceUnit(id=str(file_path), kind="file")

    def chunk_unit(self, unit: SourceUnit, cancel: CancellationToken) -> Iterator[Chunk]:
        try:
            data = Path(unit.id).read_bytes()
        except OSError as e:
            # Files can vanish or become unreadable between walk and read
            logger.warning("Skipping unreadable file %s: %s", unit.id, e)
            return

        for chunk_data, line in split_chunks(data):
            cancel.raise_if_cancelled()
            yield Chunk(
                data=chunk_data,
                source_name=self.name,
                source_metadata=FilesystemMetadata(file=unit.id, line=line),
                verify=self.verify,
            )
