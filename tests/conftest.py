import zlib
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import fitz  # PyMuPDF
import pytest

from wmscrub.document import PdfDocument


# ----------------------------
# PDF construction helpers
# ----------------------------

PageLayout = Union[bytes, Sequence[bytes]]


def write_stream(doc: fitz.Document, xref: int, data: bytes, compress: bool) -> None:
    """Store ``data`` in ``xref``, Flate-encoded when ``compress`` is set."""
    doc.update_stream(xref, zlib.compress(data) if compress else data, compress=0)
    if compress:
        doc.xref_set_key(xref, "Filter", "/FlateDecode")


def new_stream(doc: fitz.Document, data: bytes, compress: bool = True) -> int:
    xref = doc.get_new_xref()
    doc.update_object(xref, "<<>>")
    write_stream(doc, xref, data, compress)
    return xref


def ref_array(xrefs: Sequence[int]) -> str:
    return "[" + " ".join(f"{x} 0 R" for x in xrefs) + "]"


def build_pdf(pages: Sequence[PageLayout], compress: bool = True) -> Tuple[bytes, List[List[int]]]:
    """
    Build a PDF with one page per layout.

    A layout given as ``bytes`` becomes a single /Contents reference; a list
    of ``bytes`` becomes a /Contents array.
    """
    doc = fitz.open()
    page_refs: List[List[int]] = []

    for layout in pages:
        page = doc.new_page()
        chunks = [layout] if isinstance(layout, bytes) else list(layout)
        refs = [new_stream(doc, chunk, compress) for chunk in chunks]
        if isinstance(layout, bytes):
            doc.xref_set_key(page.xref, "Contents", f"{refs[0]} 0 R")
        else:
            doc.xref_set_key(page.xref, "Contents", ref_array(refs))
        page_refs.append(refs)

    data = doc.tobytes()
    doc.close()
    return data, page_refs


def decoded(doc: PdfDocument, xref: int) -> bytes:
    """Decoded stream content as PyMuPDF itself sees it."""
    return doc.doc.xref_stream(xref)


# ----------------------------
# Fixtures
# ----------------------------

CONFIDENTIAL_PAGE = b"BT /F1 24 Tf 72 720 Td (CONFIDENTIAL) Tj ET"
BODY_PAGE = b"BT /F1 12 Tf 72 600 Td (Quarterly figures) Tj ET"


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def confidential_pdf():
    """One page, one compressed stream containing (CONFIDENTIAL)."""
    return build_pdf([CONFIDENTIAL_PAGE])


@pytest.fixture
def open_pdf():
    """Open PDF bytes as a PdfDocument, closing it after the test."""
    opened = []

    def _open(data: bytes) -> PdfDocument:
        doc = PdfDocument.from_bytes(data)
        opened.append(doc)
        return doc

    yield _open

    for doc in opened:
        doc.close()


@pytest.fixture
def pdf_file(tmp_path: Path, confidential_pdf):
    data, _ = confidential_pdf
    path = tmp_path / "report.pdf"
    path.write_bytes(data)
    return path
