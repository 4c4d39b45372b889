"""Pipeline - runs detectors over a content source with a worker pool.

The Pipeline is responsible for:
- Resolving include/exclude detector filters
- Fanning source units out over worker threads
- Decoding chunks and running keyword-matched detectors on them
- Attaching provenance to matches and offering them to the result sink
- Counting chunks, bytes and verified/unverified findings
"""

from __future__ import annotations

import dataclasses
import logging
import time
from concurrent.futures import FIRST_EXCEPTION, Future, ThreadPoolExecutor, wait
from threading import Lock

from scanbridge.engine.base import (
    CancellationToken,
    Chunk,
    ContentSource,
    Detector,
    DetectorResult,
    EngineError,
    PipelineConfig,
    PipelineMetrics,
    ResultSink,
    SourceUnit,
)
from scanbridge.engine.decoders import DEFAULT_DECODERS, Decoder
from scanbridge.models import RawFinding

logger = logging.getLogger(__name__)

# How often the driving thread re-checks the cancellation token
POLL_INTERVAL = 0.05


def _parse_filter(value: str) -> list[tuple[str, int | None]]:
    """Parse "aws,github.v2" into [("aws", None), ("github", 2)]."""
    entries: list[tuple[str, int | None]] = []
    for token in value.split(","):
        token = token.strip().lower()
        if not token:
            continue
        name, sep, version = token.rpartition(".v")
        if sep and name and version.isdigit():
            entries.append((name, int(version)))
        else:
            entries.append((token, None))
    return entries


def _detector_version(detector: Detector) -> int | None:
    version = getattr(detector, "version", None)
    return version if isinstance(version, int) else None


def _matches(detector: Detector, entry: tuple[str, int | None]) -> bool:
    name, version = entry
    if detector.detector_type.lower() != name:
        return False
    return version is None or _detector_version(detector) == version


def select_detectors(
    detectors: list[Detector] | tuple[Detector, ...],
    include: str = "",
    exclude: str = "",
) -> list[Detector]:
    """Apply include/exclude filters to a detector set.

    Args:
        detectors: All available detectors.
        include: Comma-separated types to keep (empty keeps all).
        exclude: Comma-separated types to drop.

    Returns:
        The detectors to run.

    Raises:
        EngineError: If a filter names a detector type that does not exist.
    """
    include_entries = _parse_filter(include)
    exclude_entries = _parse_filter(exclude)

    for entry in include_entries + exclude_entries:
        if not any(_matches(d, entry) for d in detectors):
            name, version = entry
            label = f"{name}.v{version}" if version is not None else name
            raise EngineError(f"unrecognized detector type: {label}")

    selected = list(detectors)
    if include_entries:
        selected = [d for d in selected if any(_matches(d, e) for e in include_entries)]
    if exclude_entries:
        selected = [d for d in selected if not any(_matches(d, e) for e in exclude_entries)]
    return selected


class _Counters:
    """Thread-safe pipeline counters."""

    def __init__(self) -> None:
        self._lock = Lock()
        self.chunks = 0
        self.bytes = 0
        self.verified = 0
        self.unverified = 0

    def add_chunk(self, size: int) -> None:
        with self._lock:
            self.chunks += 1
            self.bytes += size

    def add_finding(self, verified: bool) -> None:
        with self._lock:
            if verified:
                self.verified += 1
            else:
                self.unverified += 1


def _with_line(metadata, text: str, raw: bytes):
    """Shift a provenance line number to the line where ``raw`` appears."""
    line = getattr(metadata, "line", 0)
    if not line:
        return metadata
    needle = raw.decode("utf-8", errors="replace")
    index = text.find(needle) if needle else -1
    if index <= 0:
        return metadata
    return dataclasses.replace(metadata, line=line + text.count("\n", 0, index))


class Pipeline:
    """Drives one content source through the detector set.

    Example:
        pipeline = Pipeline(PipelineConfig(concurrency=4, detectors=default_detectors()))
        metrics = pipeline.run(source, collector, CancellationToken())
    """

    def __init__(
        self,
        config: PipelineConfig,
        decoders: tuple[Decoder, ...] = DEFAULT_DECODERS,
    ) -> None:
        """Initialize the pipeline.

        Args:
            config: Pipeline configuration.
            decoders: Decoders applied to every chunk.

        Raises:
            EngineError: If the configuration is invalid.
        """
        if config.concurrency < 1:
            raise EngineError(f"concurrency must be at least 1, got {config.concurrency}")

        self.config = config
        self.decoders = decoders
        self.detectors = select_detectors(
            list(config.detectors),
            include=config.include_detectors,
            exclude=config.exclude_detectors,
        )
        self._keywords = {
            id(d): tuple(k.lower() for k in d.keywords()) for d in self.detectors
        }

    def run(
        self,
        source: ContentSource,
        sink: ResultSink,
        cancel: CancellationToken,
    ) -> PipelineMetrics:
        """Scan every unit of the source and wait for all workers.

        Returns as soon as the token is cancelled, without waiting for
        workers that are still running.

        Raises:
            CancellationError: If the token is cancelled before completion.
            Exception: Whatever a source raised while enumerating or chunking.
        """
        start_time = time.monotonic()
        counters = _Counters()

        executor = ThreadPoolExecutor(
            max_workers=self.config.concurrency,
            thread_name_prefix="scanbridge-worker",
        )
        pending: set[Future] = set()
        finished = False
        try:
            for unit in source.enumerate_units(cancel):
                cancel.raise_if_cancelled()
                pending.add(
                    executor.submit(self._scan_unit, source, unit, sink, cancel, counters)
                )
                pending = self._collect(pending, timeout=0)

            while pending:
                cancel.raise_if_cancelled()
                pending = self._collect(pending, timeout=POLL_INTERVAL)

            cancel.raise_if_cancelled()
            finished = True
        finally:
            if not finished:
                cancel.cancel("scan aborted")
            executor.shutdown(wait=finished, cancel_futures=not finished)

        return PipelineMetrics(
            chunks_scanned=counters.chunks,
            bytes_scanned=counters.bytes,
            verified_secrets_found=counters.verified,
            unverified_secrets_found=counters.unverified,
            scan_duration=time.monotonic() - start_time,
        )

    @staticmethod
    def _collect(pending: set[Future], timeout: float) -> set[Future]:
        """Re-raise the first worker failure and return the unfinished futures."""
        done, not_done = wait(pending, timeout=timeout, return_when=FIRST_EXCEPTION)
        for future in done:
            future.result()
        return not_done

    def _scan_unit(
        self,
        source: ContentSource,
        unit: SourceUnit,
        sink: ResultSink,
        cancel: CancellationToken,
        counters: _Counters,
    ) -> None:
        # Chunks overlap, so one match can show up in two neighbouring chunks
        seen: set[tuple] = set()
        for chunk in source.chunk_unit(unit, cancel):
            cancel.raise_if_cancelled()
            self._scan_chunk(chunk, sink, counters, seen)

    def _scan_chunk(
        self, chunk: Chunk, sink: ResultSink, counters: _Counters, seen: set[tuple]
    ) -> None:
        counters.add_chunk(len(chunk.data))
        verify = self.config.verify and chunk.verify

        for decoder in self.decoders:
            text = decoder.decode(chunk.data)
            if text is None:
                continue
            lowered = text.lower()

            for detector in self.detectors:
                keywords = self._keywords[id(detector)]
                if keywords and not any(k in lowered for k in keywords):
                    continue

                try:
                    results = detector.from_data(text, verify)
                except Exception as e:
                    logger.warning(
                        "Detector %s failed on a chunk from %s: %s",
                        detector.detector_type,
                        chunk.source_name,
                        e,
                    )
                    continue

                for result in results:
                    finding = self._to_finding(result, chunk, text, decoder)
                    key = (
                        result.detector_type.lower(),
                        result.raw,
                        finding.source_metadata,
                    )
                    if key in seen:
                        continue
                    seen.add(key)

                    counters.add_finding(finding.verified)
                    sink.offer(finding)

    @staticmethod
    def _to_finding(
        result: DetectorResult, chunk: Chunk, text: str, decoder: Decoder
    ) -> RawFinding:
        metadata = chunk.source_metadata
        if metadata is not None:
            metadata = _with_line(metadata, text, result.raw)

        return RawFinding(
            detector_type=result.detector_type,
            detector_name=result.detector_name,
            verified=result.verified,
            raw=result.raw,
            redacted=result.redacted,
            verification_error=result.verification_error,
            extra_data=dict(result.extra_data),
            source_metadata=metadata,
            decoder_type=decoder.decoder_type.value,
        )
