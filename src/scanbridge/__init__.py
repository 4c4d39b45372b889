"""Expose a secret-scanning pipeline as simple request/response operations.

scanbridge helps you:
- Scan text, files, directories and git history for leaked credentials
- Bound and normalize findings into a stable JSON-ready report
- List and describe the detectors available to a scan
"""

__version__ = "0.1.0"

from scanbridge.config import ScannerSettings
from scanbridge.errors import (
    CancellationError,
    InvalidArgumentError,
    NotFoundError,
    ScanBridgeError,
    ScanFailedError,
)
from scanbridge.scanner import Scanner
from scanbridge.service import ScanService

__all__ = [
    "CancellationError",
    "InvalidArgumentError",
    "NotFoundError",
    "ScanBridgeError",
    "ScanFailedError",
    "ScanService",
    "Scanner",
    "ScannerSettings",
    "__version__",
]
