"""Split content into overlapping chunks for detectors."""

from __future__ import annotations

from collections.abc import Iterator

CHUNK_SIZE = 10 * 1024
PEEK_SIZE = 3 * 1024


def split_chunks(
    data: bytes,
    chunk_size: int = CHUNK_SIZE,
    peek_size: int = PEEK_SIZE,
) -> Iterator[tuple[bytes, int]]:
    """Split data into chunks that overlap by ``peek_size`` bytes.

    The overlap lets a secret that straddles a chunk boundary still be seen
    whole by at least one chunk.

    Args:
        data: Content to split.
        chunk_size: Bytes owned by each chunk.
        peek_size: Extra bytes read past the end of each chunk.

    Yields:
        Tuples of (chunk bytes, 1-based line number of the chunk's first byte).
        Empty input yields nothing.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")

    line = 1
    for offset in range(0, len(data), chunk_size):
        yield data[offset : offset + chunk_size + peek_size], line
        line += data.count(b"\n", offset, offset + chunk_size)
