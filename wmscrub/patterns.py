"""
Watermark pattern compilation and loading for wm-scrub.

Patterns are byte-level regular expressions, not PDF tokens. They can match
inside binary payloads (images, embedded fonts) that happen to contain the
same bytes, and they miss text a PDF tokenizer would see as escaped or split
across operators.
"""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Pattern

from wmscrub.errors import InvalidInput


LITERAL_EMPTY = b"()"
HEX_EMPTY = b"<>"


def text_to_bytes(text: str) -> bytes:
    """
    Map each character of ``text`` to one byte.

    Characters above U+00FF have no single-byte form and are rejected rather
    than truncated.
    """
    for pos, ch in enumerate(text):
        if ord(ch) > 0xFF:
            raise InvalidInput(
                f"Watermark character {ch!r} at position {pos} "
                f"(U+{ord(ch):04X}) does not fit in one byte"
            )
    return text.encode("latin-1")


def hex_encode(data: bytes) -> bytes:
    """Two uppercase hex digits per byte."""
    return data.hex().upper().encode("ascii")


@dataclass(frozen=True)
class WatermarkPattern:
    """Literal and hex matchers derived from one watermark text."""
    text: str
    literal: Pattern[bytes]
    hex: Pattern[bytes]

    @classmethod
    def compile(cls, text: str) -> "WatermarkPattern":
        """Build both matchers for ``text``."""
        if not text:
            raise InvalidInput("Watermark text must not be empty")

        raw = text_to_bytes(text)
        literal = re.compile(b"\\(" + re.escape(raw) + b"\\)")
        hex_ = re.compile(b"<" + hex_encode(raw) + b">", re.IGNORECASE)
        return cls(text=text, literal=literal, hex=hex_)


def load_watermarks(
    strings: Optional[List[str]] = None,
    file_path: Optional[Path] = None,
) -> List[str]:
    """
    Collect watermark texts from strings and/or a file.

    Args:
        strings: Texts given on the command line.
        file_path: File with one text per line. Blank lines and lines
                   starting with '#' are skipped.

    Returns:
        Texts in first-seen order, without duplicates.
    """
    texts: List[str] = []

    if strings:
        texts.extend(s for s in strings if s)

    if file_path:
        if not file_path.exists():
            raise FileNotFoundError(f"Watermark file not found: {file_path}")

        # latin-1 keeps every byte of the file as one character
        with open(file_path, "r", encoding="latin-1") as f:
            for line in f:
                line = line.rstrip("\r\n")
                if not line.strip() or line.startswith("#"):
                    continue
                texts.append(line)

    return list(dict.fromkeys(texts))
