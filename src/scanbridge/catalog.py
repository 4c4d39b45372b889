"""Detector catalog - metadata about the available detectors."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from threading import Lock
from typing import Any

from scanbridge.engine.base import Detector
from scanbridge.errors import NotFoundError
from scanbridge.models import DetectorDescriptor


def describe_detector(detector: Detector) -> DetectorDescriptor:
    """Build the descriptor of one detector. Unversioned detectors get ``None``."""
    version = getattr(detector, "version", None)
    return DetectorDescriptor(
        type=detector.detector_type,
        name=getattr(detector, "detector_name", "") or detector.detector_type,
        description=detector.description,
        keywords=tuple(detector.keywords()),
        version=version if isinstance(version, int) else None,
    )


class DetectorCatalog:
    """Case-insensitive index of detector descriptors.

    The catalog is built once and is read-only afterwards, so it can be
    shared by every request without further locking.

    Example:
        catalog = DetectorCatalog.from_detectors(default_detectors())
        catalog.describe("aws").description
    """

    def __init__(self, detectors: Sequence[Detector]) -> None:
        self._source = tuple(detectors)
        self._detectors: dict[str, DetectorDescriptor] = {}
        self._built = False
        self._build_lock = Lock()

    @classmethod
    def from_detectors(cls, detectors: Sequence[Detector]) -> DetectorCatalog:
        """Create and build a catalog."""
        catalog = cls(detectors)
        catalog.build()
        return catalog

    def build(self) -> None:
        """Index the detector set. Calling it again has no effect.

        When several detectors share a type, the highest version is kept.
        """
        with self._build_lock:
            if self._built:
                return

            index: dict[str, DetectorDescriptor] = {}
            for detector in self._source:
                info = describe_detector(detector)
                key = info.type.lower()
                existing = index.get(key)
                if existing is None or (info.version or 0) > (existing.version or 0):
                    index[key] = info

            self._detectors = index
            self._built = True

    def list(self, filter: str = "", include_deprecated: bool = False) -> list[DetectorDescriptor]:
        """Return descriptors whose type contains ``filter``, sorted by type.

        Args:
            filter: Case-insensitive substring of the detector type. Empty matches all.
            include_deprecated: Accepted for compatibility. No deprecation data
                is tracked, so it does not change the result.
        """
        needle = filter.lower()
        matches = [
            info
            for key, info in self._detectors.items()
            if not needle or needle in key
        ]
        return sorted(matches, key=lambda info: info.type.lower())

    def describe(self, detector_type: str) -> DetectorDescriptor:
        """Look up one detector by type, ignoring case.

        Raises:
            NotFoundError: If no detector has that type.
        """
        info = self._detectors.get(detector_type.lower())
        if info is None:
            raise NotFoundError(f"unknown detector type: {detector_type}")
        return dataclasses.replace(info)

    def exists(self, detector_type: str) -> bool:
        return detector_type.lower() in self._detectors

    def count(self) -> int:
        return len(self._detectors)

    def catalog(self, filter: str = "") -> dict[str, Any]:
        """Return the listing response for detectors matching ``filter``."""
        detectors = self.list(filter)
        return {
            "total": len(detectors),
            "detectors": [info.to_dict() for info in detectors],
        }
