"""
Page reference repair after whole-object deletion.
"""

import logging
from typing import AbstractSet

from wmscrub.document import PdfDocument
from wmscrub.errors import ReferenceRepairInconsistency


logger = logging.getLogger(__name__)


def repair_references(doc: PdfDocument, delete_set: AbstractSet[int]) -> int:
    """
    Unlink deleted streams from every page, then purge them.

    Array entries are removed last-to-first so pending indices stay valid.
    A page whose only stream is deleted gets an empty /Contents array.

    Returns:
        Number of page references removed.

    Raises:
        ReferenceRepairInconsistency: If a page still points at a purged id.
    """
    removed = 0

    for page_no in range(doc.page_count):
        contents = doc.page_contents(page_no)

        if contents.is_array:
            changed = False
            for index in range(len(contents.refs) - 1, -1, -1):
                if contents.refs[index] in delete_set:
                    xref = contents.remove(index)
                    changed = True
                    removed += 1
                    logger.info(
                        "Reference to %d removed from page %d", xref, page_no + 1
                    )
            if changed:
                doc.set_page_contents(contents)

        elif contents.refs and contents.refs[0] in delete_set:
            xref = contents.refs[0]
            doc.clear_page_contents(contents)
            removed += 1
            logger.info(
                "Reference to %d replaced with empty array on page %d",
                xref, page_no + 1,
            )

    for xref in sorted(delete_set):
        doc.delete_object(xref)
        logger.info("Object %d purged", xref)

    verify_references(doc, delete_set)
    return removed


def verify_references(doc: PdfDocument, purged: AbstractSet[int]) -> None:
    """Fail if any page content reference points into ``purged``."""
    for page_no in range(doc.page_count):
        dangling = purged.intersection(doc.page_contents(page_no).refs)
        if dangling:
            raise ReferenceRepairInconsistency(page_no + 1, dangling)
