"""Detector sets shipped with scanbridge."""

from __future__ import annotations

from scanbridge.detectors.builtin import BUILTIN_DETECTORS, PatternDetector, redact_secret
from scanbridge.engine.base import Detector


def default_detectors() -> list[Detector]:
    """Return the default detector set."""
    return list(BUILTIN_DETECTORS)


__all__ = [
    "BUILTIN_DETECTORS",
    "PatternDetector",
    "default_detectors",
    "redact_secret",
]
