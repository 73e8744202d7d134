"""
Stream encoding for wm-scrub.

Only the Flate filter is decoded. Streams under any other filter are handed
to the scanner as stored. Everything here is bytes in, bytes out.
"""

import logging
import zlib
from dataclasses import dataclass
from typing import Optional, Tuple

from wmscrub.document import PdfDocument
from wmscrub.errors import DecodeFailed, RecompressFailed


logger = logging.getLogger(__name__)

FLATE_NAMES = ("/FlateDecode", "/Fl")


@dataclass
class StreamObject:
    """A stream object for the duration of one scan pass."""
    xref: int
    filters: Tuple[str, ...]
    raw: bytes
    decoded: Optional[bytes] = None

    @property
    def compressed(self) -> bool:
        return len(self.filters) == 1 and self.filters[0] in FLATE_NAMES

    @classmethod
    def load(cls, doc: PdfDocument, xref: int) -> "StreamObject":
        return cls(xref=xref, filters=doc.filter_of(xref), raw=doc.read_raw(xref))


def inflate(data: bytes) -> bytes:
    return zlib.decompress(data)


def deflate(data: bytes) -> bytes:
    return zlib.compress(data)


def decode(stream: StreamObject) -> bytes:
    """
    Return the decoded bytes of ``stream``, inflating Flate data.

    Raises:
        DecodeFailed: If the Flate data is corrupt.
    """
    if stream.decoded is not None:
        return stream.decoded

    if stream.compressed:
        try:
            stream.decoded = inflate(stream.raw)
        except zlib.error as e:
            raise DecodeFailed(stream.xref, f"inflate failed: {e}") from e
    else:
        stream.decoded = stream.raw
    return stream.decoded


def encode(doc: PdfDocument, stream: StreamObject, data: bytes) -> None:
    """
    Store ``data`` as the new decoded content of ``stream``.

    Compressed streams are deflated first. If that fails, nothing is written
    and the stream keeps its previous bytes.

    Raises:
        RecompressFailed: If deflating the new content fails.
    """
    if stream.compressed:
        try:
            raw = deflate(data)
        except (zlib.error, MemoryError) as e:
            raise RecompressFailed(stream.xref, f"deflate failed: {e}") from e
    else:
        raw = data

    doc.write_raw(stream.xref, raw)
    stream.raw = raw
    stream.decoded = data
    logger.debug("Stored %d bytes in xref %d", len(raw), stream.xref)
