"""Convert engine findings into report items."""

from __future__ import annotations

from typing import Any

from scanbridge.models import (
    FilesystemMetadata,
    GitHubMetadata,
    GitLabMetadata,
    GitMetadata,
    NormalizedFinding,
    RawFinding,
    StdinMetadata,
)


def convert_result(raw: RawFinding) -> NormalizedFinding:
    """Convert a raw engine finding into a report item.

    The raw secret is only kept for verified findings so unconfirmed
    sensitive values never end up in a report.

    Args:
        raw: Finding emitted by the detection engine.

    Returns:
        The normalized finding.
    """
    source_metadata = None
    if raw.source_metadata is not None:
        source_metadata = convert_source_metadata(raw.source_metadata)

    return NormalizedFinding(
        detector_type=raw.detector_type,
        detector_name=raw.detector_name or raw.detector_type,
        verified=raw.verified,
        verification_error=raw.verification_error or "",
        raw=raw.raw.decode("utf-8", errors="replace") if raw.verified else "",
        redacted=raw.redacted,
        extra_data=dict(raw.extra_data),
        source_metadata=source_metadata,
        decoder_type=raw.decoder_type,
    )


def convert_source_metadata(meta: object) -> dict[str, Any]:
    """Convert a provenance variant into a string-keyed mapping.

    Every mapping has a ``type`` key. Line numbers are only included when
    positive. Unrecognized variants map to ``{"type": "unknown"}``.
    """
    result: dict[str, Any] = {}

    if isinstance(meta, FilesystemMetadata):
        result["type"] = "filesystem"
        result["file"] = meta.file
        if meta.line > 0:
            result["line"] = meta.line
    elif isinstance(meta, GitMetadata):
        result["type"] = "git"
        result["repository"] = meta.repository
        result["commit"] = meta.commit
        result["file"] = meta.file
        if meta.line > 0:
            result["line"] = meta.line
        if meta.email:
            result["email"] = meta.email
        if meta.timestamp:
            result["timestamp"] = meta.timestamp
    elif isinstance(meta, (GitHubMetadata, GitLabMetadata)):
        result["type"] = "github" if isinstance(meta, GitHubMetadata) else "gitlab"
        result["repository"] = meta.repository
        result["file"] = meta.file
        if meta.line > 0:
            result["line"] = meta.line
        if meta.commit:
            result["commit"] = meta.commit
        if meta.link:
            result["link"] = meta.link
    elif isinstance(meta, StdinMetadata):
        result["type"] = "stdin"
    else:
        result["type"] = "unknown"

    return result
