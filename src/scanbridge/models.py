"""Data model for detectors, findings and scan reports.

Provenance is a closed set of metadata dataclasses (``SourceMetadata``).
They are only turned into plain mappings when a finding is normalized for a
report, see ``scanbridge.normalize``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DetectorDescriptor:
    """Metadata about one detector.

    Attributes:
        type: Detector type identifier (e.g. "AWS"). Unique, case-insensitive.
        name: Human-readable name.
        description: What the detector finds.
        keywords: Keywords used to pre-filter chunks before matching.
        version: Detector version, if the detector is versioned.
    """

    type: str
    name: str
    description: str
    keywords: tuple[str, ...] = ()
    version: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the detector info response shape."""
        data: dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "description": self.description,
            "keywords": list(self.keywords),
        }
        if self.version:
            data["version"] = self.version
        return data


@dataclass
class ScanOptions:
    """Per-call scan options.

    Attributes:
        verify: Verify found secrets. ``None`` falls back to the scanner default.
        include_detectors: Only run these detector types.
        exclude_detectors: Never run these detector types.
    """

    verify: bool | None = None
    include_detectors: list[str] = field(default_factory=list)
    exclude_detectors: list[str] = field(default_factory=list)


@dataclass
class GitScanOptions(ScanOptions):
    """Options for repository history scans.

    Attributes:
        branch: Branch to scan. Defaults to the repository HEAD.
        since_commit: Only scan commits after this commit.
        max_depth: Maximum number of commits to scan (0 = unlimited).
    """

    branch: str | None = None
    since_commit: str | None = None
    max_depth: int = 0


# Provenance variants


@dataclass(frozen=True)
class FilesystemMetadata:
    """Location of a finding in a local file."""

    file: str
    line: int = 0


@dataclass(frozen=True)
class GitMetadata:
    """Location of a finding in a git commit."""

    repository: str
    commit: str
    file: str
    line: int = 0
    email: str = ""
    timestamp: str = ""


@dataclass(frozen=True)
class GitHubMetadata:
    """Location of a finding in a GitHub-hosted repository."""

    repository: str
    file: str
    line: int = 0
    commit: str = ""
    link: str = ""


@dataclass(frozen=True)
class GitLabMetadata:
    """Location of a finding in a GitLab-hosted repository."""

    repository: str
    file: str
    line: int = 0
    commit: str = ""
    link: str = ""


@dataclass(frozen=True)
class StdinMetadata:
    """The finding came from an in-memory buffer."""


SourceMetadata = (
    FilesystemMetadata | GitMetadata | GitHubMetadata | GitLabMetadata | StdinMetadata
)


@dataclass(frozen=True)
class RawFinding:
    """A finding as emitted by the detection engine.

    Attributes:
        detector_type: Type of the detector that matched.
        verified: Whether the secret was confirmed live.
        raw: The raw secret bytes.
        redacted: Display-safe version of the secret.
        detector_name: Human-readable detector name, if the engine has one.
        verification_error: Why verification could not complete, if it failed.
        extra_data: Detector-specific key/value data.
        source_metadata: Where the finding was located, if known.
        decoder_type: Decoder that produced the matched text.
    """

    detector_type: str
    verified: bool
    raw: bytes
    redacted: str
    detector_name: str = ""
    verification_error: str | None = None
    extra_data: dict[str, str] = field(default_factory=dict)
    source_metadata: SourceMetadata | None = None
    decoder_type: str = "PLAIN"


@dataclass(frozen=True)
class NormalizedFinding:
    """A single finding as returned to callers."""

    detector_type: str
    detector_name: str
    verified: bool
    verification_error: str
    raw: str
    redacted: str
    extra_data: dict[str, str]
    source_metadata: dict[str, Any] | None
    decoder_type: str

    def to_dict(self) -> dict[str, Any]:
        """Return the report item shape, omitting empty optional fields."""
        data: dict[str, Any] = {"detector_type": self.detector_type}
        if self.detector_name:
            data["detector_name"] = self.detector_name
        data["verified"] = self.verified
        if self.verification_error:
            data["verification_error"] = self.verification_error
        if self.raw:
            data["raw"] = self.raw
        data["redacted"] = self.redacted
        if self.extra_data:
            data["extra_data"] = dict(self.extra_data)
        if self.source_metadata:
            data["source_metadata"] = dict(self.source_metadata)
        data["decoder_type"] = self.decoder_type
        return data


@dataclass(frozen=True)
class ScanSummary:
    """Aggregate metrics for one scan."""

    chunks_scanned: int = 0
    bytes_scanned: int = 0
    verified_secrets: int = 0
    unverified_secrets: int = 0
    duration_ms: int = 0
    total_results: int = 0
    truncated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "chunks_scanned": self.chunks_scanned,
            "bytes_scanned": self.bytes_scanned,
            "verified_secrets": self.verified_secrets,
            "unverified_secrets": self.unverified_secrets,
            "duration_ms": self.duration_ms,
            "total_results": self.total_results,
            "truncated": self.truncated,
        }


@dataclass(frozen=True)
class ScanReport:
    """Findings and summary returned by every scan entry point."""

    results: list[NormalizedFinding] = field(default_factory=list)
    summary: ScanSummary = field(default_factory=ScanSummary)

    @classmethod
    def empty(cls) -> ScanReport:
        """Report for a scan that had nothing to look at."""
        return cls(results=[], summary=ScanSummary())

    def to_dict(self) -> dict[str, Any]:
        return {
            "results": [finding.to_dict() for finding in self.results],
            "summary": self.summary.to_dict(),
        }
