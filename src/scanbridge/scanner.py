"""Scanner - runs one scan per call and assembles the report.

The Scanner is responsible for:
- Validating paths and repository references before any work starts
- Resolving per-call options against the deployment defaults
- Building a fresh content source and result collector for every call
- Driving the pipeline to completion, failure or cancellation
- Assembling the report from collector state and pipeline counters
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol, TypeVar

from scanbridge.collector import ResultCollector
from scanbridge.config import ScannerSettings
from scanbridge.detectors import default_detectors
from scanbridge.engine.base import (
    CancellationToken,
    ContentSource,
    Detector,
    PipelineConfig,
    PipelineMetrics,
    ResultSink,
)
from scanbridge.engine.pipeline import Pipeline
from scanbridge.errors import (
    CancellationError,
    InvalidArgumentError,
    NotFoundError,
    ScanFailedError,
)
from scanbridge.models import GitScanOptions, ScanOptions, ScanReport, ScanSummary
from scanbridge.sources import (
    BytesSource,
    FilesystemSource,
    GitSource,
    is_remote_uri,
    local_repo_path,
)

logger = logging.getLogger(__name__)

SOURCE_NAME = "scanbridge-scan"

OptionsT = TypeVar("OptionsT", bound=ScanOptions)


class PipelineRunner(Protocol):
    def run(
        self, source: ContentSource, sink: ResultSink, cancel: CancellationToken
    ) -> PipelineMetrics: ...


def build_detector_filter(detectors: Sequence[str] | None) -> str:
    """Join detector types into the comma-separated filter the pipeline takes."""
    if not detectors:
        return ""
    return ",".join(d.strip() for d in detectors if d and d.strip())


class Scanner:
    """Runs scans against the detection pipeline.

    Every entry point returns a complete ScanReport or raises one of the
    scanbridge errors; a failed scan never returns a partial report.

    Example:
        scanner = Scanner(ScannerSettings(max_results=100))
        report = scanner.scan_directory(Path("/srv/app"))
        print(report.summary.total_results)
    """

    def __init__(
        self,
        settings: ScannerSettings | None = None,
        detectors: Sequence[Detector] | None = None,
        pipeline_factory: Callable[[PipelineConfig], PipelineRunner] = Pipeline,
    ) -> None:
        """Initialize the scanner.

        Args:
            settings: Deployment settings. Uses defaults if None.
            detectors: Detector set. Uses the built-in detectors if None.
            pipeline_factory: Builds the pipeline for each scan.
        """
        self.settings = settings or ScannerSettings()
        self.detectors = list(detectors) if detectors is not None else default_detectors()
        self._pipeline_factory = pipeline_factory

    def resolve_options(self, options: OptionsT | None, default: OptionsT) -> OptionsT:
        """Fill in the default verification setting without touching ``options``."""
        if options is None:
            options = default
        if options.verify is None:
            options = dataclasses.replace(options, verify=self.settings.verify)
        return options

    def scan_text(
        self,
        text: str,
        options: ScanOptions | None = None,
        cancel: CancellationToken | None = None,
    ) -> ScanReport:
        """Scan a string for secrets."""
        return self.scan_bytes(text.encode("utf-8"), options, cancel)

    def scan_bytes(
        self,
        data: bytes,
        options: ScanOptions | None = None,
        cancel: CancellationToken | None = None,
    ) -> ScanReport:
        """Scan an in-memory buffer for secrets.

        An empty buffer returns an empty report without running the pipeline.
        """
        options = self.resolve_options(options, ScanOptions())
        if not data:
            return ScanReport.empty()

        source = BytesSource(SOURCE_NAME, data, verify=bool(options.verify))
        return self._scan(source, options, cancel, label="<bytes>")

    def scan_file(
        self,
        path: Path | str,
        options: ScanOptions | None = None,
        cancel: CancellationToken | None = None,
    ) -> ScanReport:
        """Scan a single file.

        Raises:
            NotFoundError: If the path does not exist or is not a regular file.
        """
        path = Path(path)
        if not path.exists():
            raise NotFoundError(f"file does not exist: {path}")
        if not path.is_file():
            raise NotFoundError(f"not a regular file: {path}")

        options = self.resolve_options(options, ScanOptions())
        source = FilesystemSource(SOURCE_NAME, [path], verify=bool(options.verify))
        return self._scan(source, options, cancel, label=str(path))

    def scan_directory(
        self,
        path: Path | str,
        options: ScanOptions | None = None,
        cancel: CancellationToken | None = None,
    ) -> ScanReport:
        """Scan every file under a directory.

        Raises:
            NotFoundError: If the directory does not exist.
            InvalidArgumentError: If the path is not a directory.
        """
        path = Path(path)
        if not path.exists():
            raise NotFoundError(f"directory does not exist: {path}")
        if not path.is_dir():
            raise InvalidArgumentError(f"path is not a directory: {path}")

        options = self.resolve_options(options, ScanOptions())
        source = FilesystemSource(SOURCE_NAME, [path], verify=bool(options.verify))
        return self._scan(source, options, cancel, label=str(path))

    def scan_git_repo(
        self,
        uri: str,
        options: GitScanOptions | None = None,
        cancel: CancellationToken | None = None,
    ) -> ScanReport:
        """Scan the commit history of a repository.

        Local references (bare paths and ``file://`` URIs) must exist; remote
        URLs are only checked when the clone runs.

        Raises:
            NotFoundError: If a local repository path does not exist.
            InvalidArgumentError: If max_depth is negative.
        """
        if not is_remote_uri(uri):
            local_path = local_repo_path(uri)
            if not local_path.exists():
                raise NotFoundError(f"repository does not exist: {local_path}")

        options = self.resolve_options(options, GitScanOptions())
        if options.max_depth < 0:
            raise InvalidArgumentError(f"max_depth must be >= 0, got {options.max_depth}")

        source = GitSource(
            SOURCE_NAME,
            uri,
            verify=bool(options.verify),
            branch=options.branch or None,
            since_commit=options.since_commit or None,
            max_depth=options.max_depth,
        )
        return self._scan(source, options, cancel, label=uri)

    def _scan(
        self,
        source: ContentSource,
        options: ScanOptions,
        cancel: CancellationToken | None,
        label: str,
    ) -> ScanReport:
        """Run the pipeline over a fresh collector and build the report.

        Raises:
            CancellationError: If the call was cancelled or timed out.
            ScanFailedError: If the pipeline could not be built or failed.
        """
        parent = cancel or CancellationToken()
        token = parent.child(timeout=self.settings.scan_timeout or None)
        collector = ResultCollector(self.settings.max_results)

        logger.debug(
            "Starting %s scan of %s (verify=%s, concurrency=%d)",
            source.source_type,
            label,
            options.verify,
            self.settings.concurrency,
        )

        try:
            pipeline = self._pipeline_factory(
                PipelineConfig(
                    concurrency=self.settings.concurrency,
                    detectors=self.detectors,
                    verify=bool(options.verify),
                    include_detectors=build_detector_filter(options.include_detectors),
                    exclude_detectors=build_detector_filter(options.exclude_detectors),
                )
            )
            metrics = pipeline.run(source, collector, token)
        except CancellationError as e:
            logger.warning("Scan of %s cancelled: %s", label, e)
            raise
        except Exception as e:
            logger.warning("Scan of %s failed: %s", label, e)
            raise ScanFailedError(f"scan failed: {e}") from e

        report = ScanReport(
            results=collector.results(),
            summary=ScanSummary(
                chunks_scanned=metrics.chunks_scanned,
                bytes_scanned=metrics.bytes_scanned,
                verified_secrets=metrics.verified_secrets_found,
                unverified_secrets=metrics.unverified_secrets_found,
                duration_ms=metrics.duration_ms,
                total_results=collector.count(),
                truncated=collector.is_truncated(),
            ),
        )
        logger.info(
            "Scan of %s finished: %d results%s in %d ms",
            label,
            report.summary.total_results,
            " (truncated)" if report.summary.truncated else "",
            report.summary.duration_ms,
        )
        return report
