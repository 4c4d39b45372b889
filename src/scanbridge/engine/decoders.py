"""Decoders that turn chunk bytes into text for detectors.

Every chunk is run through every decoder. A decoder returns ``None`` when it
has nothing to contribute, so detectors only see text a decoder produced.
"""

from __future__ import annotations

import base64
import binascii
import re
from abc import ABC, abstractmethod
from enum import Enum


class DecoderType(str, Enum):
    """Decoder identifiers reported on findings."""

    PLAIN = "PLAIN"
    BASE64 = "BASE64"
    UTF16 = "UTF16"


class Decoder(ABC):
    """Abstract interface for chunk decoders."""

    decoder_type: DecoderType

    @abstractmethod
    def decode(self, data: bytes) -> str | None:
        """Decode chunk bytes, or return None if this decoder does not apply."""
        ...


class PlainDecoder(Decoder):
    """Treat the chunk as UTF-8 text."""

    decoder_type = DecoderType.PLAIN

    def decode(self, data: bytes) -> str | None:
        return data.decode("utf-8", errors="replace")


def _is_text(value: str) -> bool:
    return all(ch.isprintable() or ch in "\r\n\t" for ch in value)


class Base64Decoder(Decoder):
    """Replace base64 runs that decode to printable text with their decoding."""

    decoder_type = DecoderType.BASE64

    _BASE64_RUN = re.compile(rb"[A-Za-z0-9+/]{20,}={0,2}")

    def decode(self, data: bytes) -> str | None:
        parts: list[str] = []
        last = 0
        found = False

        for match in self._BASE64_RUN.finditer(data):
            token = match.group(0).rstrip(b"=")
            token += b"=" * (-len(token) % 4)
            try:
                decoded = base64.b64decode(token, validate=True).decode("utf-8")
            except (binascii.Error, ValueError):
                # UnicodeDecodeError is a ValueError
                continue
            if not decoded or not _is_text(decoded):
                continue

            parts.append(data[last : match.start()].decode("utf-8", errors="replace"))
            parts.append(decoded)
            last = match.end()
            found = True

        if not found:
            return None
        parts.append(data[last:].decode("utf-8", errors="replace"))
        return "".join(parts)


class Utf16Decoder(Decoder):
    """Decode little-endian UTF-16 text (ASCII interleaved with NUL bytes)."""

    decoder_type = DecoderType.UTF16

    def decode(self, data: bytes) -> str | None:
        if len(data) < 2 or data.count(b"\x00") < len(data) // 4:
            return None
        body = data[: len(data) - (len(data) % 2)]
        if body.startswith(b"\xff\xfe"):
            body = body[2:]
        try:
            text = body.decode("utf-16-le")
        except UnicodeDecodeError:
            return None
        if not _is_text(text):
            return None
        return text


DEFAULT_DECODERS: tuple[Decoder, ...] = (PlainDecoder(), Base64Decoder(), Utf16Decoder())
