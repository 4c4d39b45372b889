"""Exceptions raised by scanbridge operations."""

from __future__ import annotations


class ScanBridgeError(Exception):
    """Base exception for scanbridge operations."""

    pass


class NotFoundError(ScanBridgeError):
    """A file, directory, repository or detector does not exist."""

    pass


class InvalidArgumentError(ScanBridgeError):
    """A request argument has the wrong kind or is missing."""

    pass


class ScanFailedError(ScanBridgeError):
    """The scan pipeline could not be built or did not complete.

    The underlying exception is available as ``__cause__``.
    """

    pass


class CancellationError(ScanBridgeError):
    """The scan was cancelled by the caller or its deadline expired."""

    pass
