"""Contracts between the scan orchestrator and the detection engine.

The orchestrator only talks to the engine through the types in this module:
- Detector: a named matching rule with optional live verification
- ContentSource: enumerates units of work and turns them into chunks
- ResultSink: receives findings from concurrent pipeline workers
- CancellationToken: cooperative cancellation with an optional deadline
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from scanbridge.errors import CancellationError
from scanbridge.models import RawFinding, SourceMetadata


class EngineError(Exception):
    """The detection engine could not be configured or run."""

    pass


class CancellationToken:
    """Cooperative cancellation signal shared by one scan call.

    A token is cancelled when ``cancel()`` is called, when its deadline
    passes, or when its parent token is cancelled.

    Example:
        token = CancellationToken(timeout=30)
        for unit in source.enumerate_units(token):
            token.raise_if_cancelled()
    """

    def __init__(
        self,
        timeout: float | None = None,
        parent: CancellationToken | None = None,
    ) -> None:
        """Create a token.

        Args:
            timeout: Seconds until the token cancels itself. ``None`` or 0 for no deadline.
            parent: Token whose cancellation propagates to this one.
        """
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout else None
        self._parent = parent
        self._reason = ""

    def cancel(self, reason: str = "scan cancelled") -> None:
        """Cancel the token. The first reason given wins."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("scan deadline exceeded")
            return True
        if self._parent is not None and self._parent.cancelled:
            self.cancel(self._parent.reason)
            return True
        return False

    @property
    def reason(self) -> str:
        return self._reason

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or ``None`` without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        """Raise CancellationError if the token has been cancelled."""
        if self.cancelled:
            raise CancellationError(self._reason)

    def child(self, timeout: float | None = None) -> CancellationToken:
        """Return a token cancelled with this one or after ``timeout``."""
        return CancellationToken(timeout=timeout, parent=self)


@dataclass(frozen=True)
class DetectorResult:
    """A match produced by a detector, before provenance is attached."""

    detector_type: str
    raw: bytes
    redacted: str
    verified: bool = False
    detector_name: str = ""
    verification_error: str | None = None
    extra_data: dict[str, str] = field(default_factory=dict)


class Detector(ABC):
    """Abstract interface for detectors.

    Implementations must provide:
    - detector_type: Unique type identifier (e.g. "AWS")
    - description: What the detector finds
    - keywords: Lowercase keywords used to pre-filter chunks
    - from_data: Find (and optionally verify) secrets in decoded text

    A detector may also expose an integer ``version``; the engine treats a
    missing version as unversioned.
    """

    @property
    @abstractmethod
    def detector_type(self) -> str:
        """Return the detector type identifier."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Return a human-readable description."""
        ...

    @abstractmethod
    def keywords(self) -> Sequence[str]:
        """Return the keywords that must appear in a chunk for it to be matched."""
        ...

    @abstractmethod
    def from_data(self, data: str, verify: bool) -> list[DetectorResult]:
        """Find secrets in decoded chunk text.

        Args:
            data: Decoded chunk text.
            verify: Whether to attempt live verification of matches.

        Returns:
            One result per distinct match.
        """
        ...


@dataclass(frozen=True)
class SourceUnit:
    """One independently chunkable piece of a content source."""

    id: str
    kind: str = "unit"


@dataclass(frozen=True)
class Chunk:
    """A piece of content handed to detectors.

    Attributes:
        data: Raw chunk bytes.
        source_name: Name of the source that produced the chunk.
        source_metadata: Provenance of the first byte of the chunk.
        verify: Whether findings in this chunk may be verified.
    """

    data: bytes
    source_name: str
    source_metadata: SourceMetadata | None = None
    verify: bool = False


class ContentSource(ABC):
    """Abstract interface for content sources.

    Sources can be driven in two ways that must yield the same chunks:
    ``chunks()`` emits everything directly, while ``enumerate_units()``
    followed by ``chunk_unit()`` lets the pipeline spread units over workers.
    """

    def __init__(self, name: str, verify: bool) -> None:
        self.name = name
        self.verify = verify

    @property
    @abstractmethod
    def source_type(self) -> str:
        """Return the source type name (e.g. "filesystem")."""
        ...

    @abstractmethod
    def enumerate_units(self, cancel: CancellationToken) -> Iterator[SourceUnit]:
        """Yield the units this source will scan."""
        ...

    @abstractmethod
    def chunk_unit(self, unit: SourceUnit, cancel: CancellationToken) -> Iterator[Chunk]:
        """Yield the chunks of a single unit."""
        ...

    def chunks(self, cancel: CancellationToken) -> Iterator[Chunk]:
        """Yield every chunk of every unit."""
        for unit in self.enumerate_units(cancel):
            cancel.raise_if_cancelled()
            yield from self.chunk_unit(unit, cancel)


class ResultSink(Protocol):
    """Receives findings from pipeline workers. Must be thread-safe."""

    def offer(self, finding: RawFinding) -> None: ...


@dataclass
class PipelineConfig:
    """Configuration for one pipeline run.

    Attributes:
        concurrency: Number of worker threads.
        detectors: Detector set available to the run.
        verify: Verify found secrets.
        include_detectors: Comma-separated detector types to run (empty = all).
        exclude_detectors: Comma-separated detector types to skip.
    """

    concurrency: int
    detectors: Sequence[Detector]
    verify: bool = True
    include_detectors: str = ""
    exclude_detectors: str = ""


@dataclass(frozen=True)
class PipelineMetrics:
    """Counters reported by the pipeline once it has finished."""

    chunks_scanned: int = 0
    bytes_scanned: int = 0
    verified_secrets_found: int = 0
    unverified_secrets_found: int = 0
    scan_duration: float = 0.0

    @property
    def duration_ms(self) -> int:
        return int(self.scan_duration * 1000)
