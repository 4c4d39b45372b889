"""Content source over an in-memory byte buffer.

Lets ad-hoc text scans go through exactly the same pipeline as file and
repository scans.
"""

from __future__ import annotations

from collections.abc import Iterator

from scanbridge.engine.base import CancellationToken, Chunk, ContentSource, SourceUnit
from scanbridge.engine.chunker import split_chunks
from scanbridge.models import StdinMetadata

BYTES_UNIT_ID = "<bytes>"


class BytesSource(ContentSource):
    """Scan a byte buffer as a single unit.

    Example:
        source = BytesSource("scan-text", b"AKIA...", verify=False)
        chunks = list(source.chunks(CancellationToken()))
    """

    def __init__(self, name: str, data: bytes, verify: bool) -> None:
        super().__init__(name, verify)
        self.data = data

    @property
    def source_type(self) -> str:
        return "stdin"

    def enumerate_units(self, cancel: CancellationToken) -> Iterator[SourceUnit]:
        """Report the whole buffer as one unit."""
        yield SourceUnit(id=BYTES_UNIT_ID, kind="bytes")

    def chunk_unit(self, unit: SourceUnit, cancel: CancellationToken) -> Iterator[Chunk]:
        """Chunk the buffer. There is only one unit, so this is ``chunks()``."""
        yield from self.chunks(cancel)

    def chunks(self, cancel: CancellationToken) -> Iterator[Chunk]:
        """Emit the buffer's chunks directly, without enumerating."""
        for data, _line in split_chunks(self.data):
            cancel.raise_if_cancelled()
            yield Chunk(
                data=data,
                source_name=self.name,
                source_metadata=StdinMetadata(),
                verify=self.verify,
            )
