"""Thread-safe, size-bounded collection of scan findings."""

from __future__ import annotations

import copy
from threading import Lock

from scanbridge.models import NormalizedFinding, RawFinding
from scanbridge.normalize import convert_result


class ResultCollector:
    """Collects findings from concurrent pipeline workers.

    Keeps at most ``max_results`` findings (0 keeps everything). Findings
    offered past the bound are dropped and the collector is marked
    truncated; producers are never told and never slowed down.

    Example:
        collector = ResultCollector(max_results=100)
        pipeline.run(source, collector, token)
        report_items = collector.results()
    """

    def __init__(self, max_results: int = 0) -> None:
        if max_results < 0:
            raise ValueError("max_results must be >= 0")
        self.max_results = max_results
        self._lock = Lock()
        self._results: list[NormalizedFinding] = []
        self._truncated = False

    def offer(self, finding: RawFinding) -> None:
        """Keep the finding if there is room, otherwise mark truncation."""
        with self._lock:
            if self.max_results > 0 and len(self._results) >= self.max_results:
                self._truncated = True
                return
            self._results.append(convert_result(finding))

    def results(self) -> list[NormalizedFinding]:
        """Return an independent copy of the kept findings."""
        with self._lock:
            return copy.deepcopy(self._results)

    def count(self) -> int:
        with self._lock:
            return len(self._results)

    def is_truncated(self) -> bool:
        """Return True once any finding has been dropped."""
        with self._lock:
            return self._truncated
