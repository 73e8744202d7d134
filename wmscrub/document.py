"""
PDF document access for wm-scrub.

Wraps a PyMuPDF document behind the small surface the scrubbing engine
needs: enumerate stream objects, read and write their raw bytes, read and
rewrite each page's /Contents, delete objects and serialize.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Set, Tuple

import fitz  # PyMuPDF

from wmscrub.errors import InvalidInput


logger = logging.getLogger(__name__)

REF_PATTERN = re.compile(r"(\d+)\s+(\d+)\s+R")
NAME_PATTERN = re.compile(r"/[^\s/\[\]<>()]+")

# Streams that hold the file structure itself, never page content
STRUCTURAL_TYPES = ("/XRef", "/ObjStm")


@dataclass
class PageContents:
    """The /Contents entry of one page."""
    page: int
    page_xref: int
    refs: List[int] = field(default_factory=list)
    is_array: bool = False
    array_xref: Optional[int] = None  # set when /Contents points at an array object
    _tokens: List[str] = field(default_factory=list, repr=False)

    def remove(self, index: int) -> int:
        """Drop the entry at ``index`` and return its xref."""
        del self._tokens[index]
        return self.refs.pop(index)

    def source(self) -> str:
        """PDF array source for the current entries."""
        return "[" + " ".join(self._tokens) + "]"


class PdfDocument:
    """Indirect-object view of a PDF, backed by PyMuPDF."""

    def __init__(self, doc: fitz.Document):
        self.doc = doc
        self._purged: Set[int] = set()

    @classmethod
    def from_bytes(cls, data: bytes) -> "PdfDocument":
        """
        Load a PDF from memory.

        Raises:
            InvalidInput: If the bytes are not a loadable, unencrypted PDF.
        """
        if not data:
            raise InvalidInput("Empty document")
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise InvalidInput(f"Failed to open PDF: {e}") from e

        if not doc.is_pdf:
            doc.close()
            raise InvalidInput("Not a PDF document")
        if doc.needs_pass or doc.is_encrypted:
            doc.close()
            raise InvalidInput("Encrypted documents are not supported")

        return cls(doc)

    def __enter__(self) -> "PdfDocument":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def close(self) -> None:
        self.doc.close()

    @property
    def page_count(self) -> int:
        return self.doc.page_count

    # -- objects -----------------------------------------------------------

    def stream_ids(self) -> Iterator[int]:
        """Yield the xref of every stream object except structural ones."""
        for xref in range(1, self.doc.xref_length()):
            if xref in self._purged or not self.doc.xref_is_stream(xref):
                continue
            typ, value = self.doc.xref_get_key(xref, "Type")
            if typ == "name" and value in STRUCTURAL_TYPES:
                continue
            yield xref

    def has_object(self, xref: int) -> bool:
        if xref in self._purged:
            return False
        if not 0 < xref < self.doc.xref_length():
            return False
        return self.doc.xref_object(xref, compressed=True) != "null"

    def read_raw(self, xref: int) -> bytes:
        """Stream bytes exactly as stored, still encoded."""
        return self.doc.xref_stream_raw(xref) or b""

    def filter_of(self, xref: int) -> Tuple[str, ...]:
        """Filter names declared by the stream, in application order."""
        typ, value = self.doc.xref_get_key(xref, "Filter")
        if typ in ("name", "array"):
            return tuple(NAME_PATTERN.findall(value))
        return ()

    def write_raw(self, xref: int, data: bytes) -> None:
        """
        Store already-encoded bytes, keeping /Filter and /DecodeParms.

        PyMuPDF drops both entries when it is handed uncompressed data, so
        they are captured first and put back afterwards.
        """
        kept = [
            (key, self.doc.xref_get_key(xref, key))
            for key in ("Filter", "DecodeParms")
        ]
        self.doc.update_stream(xref, data, compress=0)
        for key, (typ, value) in kept:
            if typ != "null":
                self.doc.xref_set_key(xref, key, value)

    def delete_object(self, xref: int) -> None:
        """Remove an object from the object table."""
        self.doc._deleteObject(xref)
        self._purged.add(xref)
        logger.debug("Deleted object %d", xref)

    # -- pages -------------------------------------------------------------

    def page_contents(self, page_no: int) -> PageContents:
        """Read the /Contents entry of a page."""
        page_xref = self.doc[page_no].xref
        contents = PageContents(page=page_no, page_xref=page_xref)

        typ, value = self.doc.xref_get_key(page_xref, "Contents")
        if typ == "array":
            contents.is_array = True
            self._fill_refs(contents, value)
        elif typ == "xref":
            target = int(value.split()[0])
            if not self.doc.xref_is_stream(target):
                source = self.doc.xref_object(target, compressed=True)
                if source.lstrip().startswith("["):
                    contents.is_array = True
                    contents.array_xref = target
                    self._fill_refs(contents, source)
                    return contents
            self._fill_refs(contents, value)

        return contents

    def set_page_contents(self, contents: PageContents) -> None:
        """Write back a (possibly shortened) contents array."""
        source = contents.source()
        if contents.array_xref is not None:
            self.doc.update_object(contents.array_xref, source)
        else:
            self.doc.xref_set_key(contents.page_xref, "Contents", source)

    def clear_page_contents(self, contents: PageContents) -> None:
        """Replace a page's /Contents with an empty array."""
        contents.refs.clear()
        contents._tokens.clear()
        contents.is_array = True
        contents.array_xref = None
        self.doc.xref_set_key(contents.page_xref, "Contents", "[]")

    @staticmethod
    def _fill_refs(contents: PageContents, source: str) -> None:
        for match in REF_PATTERN.finditer(source):
            contents.refs.append(int(match.group(1)))
            contents._tokens.append(match.group(0))

    # -- output ------------------------------------------------------------

    def to_bytes(self) -> bytes:
        """Serialize, dropping objects nothing references any more."""
        return self.doc.tobytes(garbage=1)
