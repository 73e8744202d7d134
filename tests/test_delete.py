"""
Tests for whole-object deletion and page reference repair.
"""

import fitz  # PyMuPDF
import pytest

from conftest import BODY_PAGE, CONFIDENTIAL_PAGE, new_stream, ref_array
from wmscrub.core import remove_watermark
from wmscrub.document import PdfDocument
from wmscrub.errors import ReferenceRepairInconsistency, WatermarkNotFound
from wmscrub.repair import repair_references, verify_references


def _all_page_refs(doc: PdfDocument):
    refs = set()
    for page_no in range(doc.page_count):
        refs.update(doc.page_contents(page_no).refs)
    return refs


def test_single_reference_becomes_empty_array(confidential_pdf, open_pdf):
    data, refs = confidential_pdf
    doc = open_pdf(data)
    xref = refs[0][0]

    report = remove_watermark(doc, "CONFIDENTIAL", "delete")

    assert report.deleted_count == 1
    contents = doc.page_contents(0)
    assert contents.is_array
    assert contents.refs == []
    assert doc.doc.xref_get_key(contents.page_xref, "Contents") == ("array", "[]")
    assert not doc.has_object(xref)
    assert xref not in set(doc.stream_ids())


def test_saved_document_has_blank_page(confidential_pdf, open_pdf):
    data, _ = confidential_pdf
    doc = open_pdf(data)
    remove_watermark(doc, "CONFIDENTIAL", "delete")

    reopened = fitz.open(stream=doc.to_bytes(), filetype="pdf")
    try:
        assert reopened.page_count == 1
        assert reopened.xref_get_key(reopened[0].xref, "Contents") == ("array", "[]")
        assert b"CONFIDENTIAL" not in reopened.tobytes(expand=255)
    finally:
        reopened.close()


def test_array_entries_removed_in_order(make_pdf, open_pdf):
    first = b"BT (header) Tj ET"
    last = b"BT (footer) Tj ET"
    data, refs = make_pdf([[first, CONFIDENTIAL_PAGE, last, CONFIDENTIAL_PAGE]])
    doc = open_pdf(data)
    a, wm1, c, wm2 = refs[0]

    report = remove_watermark(doc, "CONFIDENTIAL", "delete")

    assert report.deleted_count == 2
    assert doc.page_contents(0).refs == [a, c]
    assert doc.has_object(a) and doc.has_object(c)
    assert not doc.has_object(wm1) and not doc.has_object(wm2)


def test_delete_leaves_stream_bytes_unedited(make_pdf, open_pdf):
    data, refs = make_pdf([[BODY_PAGE, CONFIDENTIAL_PAGE]])
    doc = open_pdf(data)
    body = refs[0][0]
    before = doc.read_raw(body)

    remove_watermark(doc, "CONFIDENTIAL", "delete")

    assert doc.read_raw(body) == before


def test_no_page_references_deleted_objects(make_pdf, open_pdf):
    data, refs = make_pdf([
        [BODY_PAGE, CONFIDENTIAL_PAGE],
        CONFIDENTIAL_PAGE,
        [CONFIDENTIAL_PAGE],
        BODY_PAGE,
    ])
    doc = open_pdf(data)

    report = remove_watermark(doc, "CONFIDENTIAL", "delete")

    assert report.deleted_count == 3
    assert not report.matched_ids & _all_page_refs(doc)
    assert doc.page_contents(3).refs == refs[3]
    assert doc.page_contents(1).refs == []
    assert doc.page_contents(2).refs == []


def test_indirect_contents_array_is_rewritten(make_pdf, open_pdf):
    data, _ = make_pdf([BODY_PAGE])
    doc = open_pdf(data)
    keep = new_stream(doc.doc, b"BT (keep) Tj ET")
    drop = new_stream(doc.doc, b"BT <434F4E464944454E5449414C> Tj ET")
    array_xref = doc.doc.get_new_xref()
    doc.doc.update_object(array_xref, ref_array([keep, drop]))
    doc.doc.xref_set_key(doc.doc[0].xref, "Contents", f"{array_xref} 0 R")

    contents = doc.page_contents(0)
    assert contents.array_xref == array_xref
    assert contents.refs == [keep, drop]

    remove_watermark(doc, "CONFIDENTIAL", "delete")

    assert doc.page_contents(0).refs == [keep]
    assert f"{drop} 0 R" not in doc.doc.xref_object(array_xref)


def test_stream_shared_by_two_pages(make_pdf, open_pdf):
    data, refs = make_pdf([CONFIDENTIAL_PAGE, BODY_PAGE])
    doc = open_pdf(data)
    shared = refs[0][0]
    doc.doc.xref_set_key(doc.doc[1].xref, "Contents", ref_array([refs[1][0], shared]))

    remove_watermark(doc, "CONFIDENTIAL", "delete")

    assert doc.page_contents(0).refs == []
    assert doc.page_contents(1).refs == [refs[1][0]]


def test_not_found_deletes_nothing(confidential_pdf, open_pdf):
    data, refs = confidential_pdf
    doc = open_pdf(data)

    with pytest.raises(WatermarkNotFound):
        remove_watermark(doc, "XYZ", "delete")

    assert doc.page_contents(0).refs == refs[0]
    assert doc.has_object(refs[0][0])


def test_repair_returns_removed_reference_count(make_pdf, open_pdf):
    data, refs = make_pdf([[BODY_PAGE, CONFIDENTIAL_PAGE], CONFIDENTIAL_PAGE])
    doc = open_pdf(data)

    removed = repair_references(doc, {refs[0][1], refs[1][0]})

    assert removed == 2


def test_dangling_reference_is_fatal(confidential_pdf, open_pdf):
    data, refs = confidential_pdf
    doc = open_pdf(data)

    with pytest.raises(ReferenceRepairInconsistency) as exc:
        verify_references(doc, {refs[0][0]})

    assert exc.value.page == 1
    assert exc.value.xrefs == {refs[0][0]}


def test_corrupt_stream_skipped_during_delete(make_pdf, open_pdf):
    data, refs = make_pdf([[BODY_PAGE, b"(junk) Tj", CONFIDENTIAL_PAGE], CONFIDENTIAL_PAGE])
    doc = open_pdf(data)
    body, bad, wm1 = refs[0]
    wm2 = refs[1][0]
    doc.write_raw(bad, b"\x00\x01 not zlib")

    report = remove_watermark(doc, "CONFIDENTIAL", "delete")

    assert report.skipped_on_error == 1
    assert report.deleted_count == 2
    assert doc.page_contents(0).refs == [body, bad]
    assert doc.page_contents(1).refs == []
    assert doc.has_object(bad)
    assert not doc.has_object(wm1) and not doc.has_object(wm2)


def test_unrepaired_page_raises_after_delete(make_pdf, open_pdf, monkeypatch):
    data, refs = make_pdf([[BODY_PAGE, CONFIDENTIAL_PAGE]])
    doc = open_pdf(data)
    monkeypatch.setattr(PdfDocument, "set_page_contents", lambda self, contents: None)

    with pytest.raises(ReferenceRepairInconsistency) as exc:
        remove_watermark(doc, "CONFIDENTIAL", "delete")

    assert exc.value.page == 1
    assert exc.value.xrefs == {refs[0][1]}
