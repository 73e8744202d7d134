"""
Core scrubbing orchestrator for wm-scrub.

Coordinates pattern compilation, the stream scan, reference repair and
result generation.
"""

import logging
from typing import List, Union

from wmscrub.document import PdfDocument
from wmscrub.errors import (
    InvalidInput,
    ReferenceRepairInconsistency,
    WatermarkNotFound,
)
from wmscrub.patterns import WatermarkPattern
from wmscrub.report import ExitCode, MatchReport, ScrubResult
from wmscrub.scanner import scan
from wmscrub.strategies import RedactionStrategy, get_strategy


logger = logging.getLogger(__name__)


def remove_watermark(
    doc: PdfDocument,
    text: str,
    strategy: Union[str, RedactionStrategy] = "replace",
) -> MatchReport:
    """
    Remove one watermark text from an open document.

    The caller must hold the document exclusively for the whole call.

    Args:
        doc: Document to mutate.
        text: Watermark text, one byte per character.
        strategy: "replace", "delete", or a strategy instance.

    Returns:
        MatchReport for the pass.

    Raises:
        InvalidInput: If the text is empty or not single-byte.
        WatermarkNotFound: If nothing matched. The document is unchanged.
        ReferenceRepairInconsistency: If repair left a dangling page reference.
    """
    if not text:
        raise InvalidInput("Watermark text must not be empty")

    pattern = WatermarkPattern.compile(text)
    if isinstance(strategy, str):
        strategy = get_strategy(strategy)

    report = scan(doc, pattern, strategy)

    if not report.found:
        raise WatermarkNotFound(text, report)

    strategy.finish(doc, report)
    logger.info(
        "'%s': %d replaced, %d deleted, %d skipped",
        text, report.replaced_count, report.deleted_count,
        report.skipped_on_error,
    )
    return report


def scrub(
    data: bytes,
    texts: Union[str, List[str]],
    strategy: str = "replace",
    strict: bool = False,
) -> ScrubResult:
    """
    Remove watermark texts from PDF bytes.

    Args:
        data: Raw PDF bytes.
        texts: One text or several, applied in order.
        strategy: "replace" or "delete".
        strict: Treat a pass with no match but skipped streams as an error,
                since the skipped streams may hide the watermark.

    Returns:
        ScrubResult. On NOT_FOUND ``data`` is the input, byte for byte.
        Failures, including a failed reference repair, come back as an
        ERROR result rather than an exception.
    """
    if isinstance(texts, str):
        texts = [texts]

    try:
        if not texts or not all(texts):
            raise InvalidInput("Watermark text must not be empty")
        for text in texts:
            WatermarkPattern.compile(text)
        get_strategy(strategy)
        doc = PdfDocument.from_bytes(data)
    except InvalidInput as e:
        return ScrubResult(exit_code=ExitCode.ERROR, error=str(e))

    reports: List[MatchReport] = []
    try:
        with doc:
            for text in texts:
                try:
                    reports.append(remove_watermark(doc, text, strategy))
                except WatermarkNotFound as e:
                    logger.info("%s", e)
                    reports.append(e.report)

            if any(r.found for r in reports):
                return ScrubResult(
                    exit_code=ExitCode.REMOVED,
                    data=doc.to_bytes(),
                    reports=reports,
                )
    except ReferenceRepairInconsistency as e:
        logger.error("Reference repair failed: %s", e)
        return ScrubResult(
            exit_code=ExitCode.ERROR,
            reports=reports,
            error=f"Reference repair failed: {e}",
        )
    except Exception as e:
        logger.exception("Unexpected error processing PDF")
        return ScrubResult(
            exit_code=ExitCode.ERROR,
            reports=reports,
            error=f"Unexpected error processing PDF: {e}",
        )

    skipped = sum(r.skipped_on_error for r in reports)
    if strict and skipped:
        return ScrubResult(
            exit_code=ExitCode.ERROR,
            data=data,
            reports=reports,
            error=(
                f"No match, but {skipped} stream(s) could not be scanned; "
                "coverage is incomplete"
            ),
        )

    return ScrubResult(exit_code=ExitCode.NOT_FOUND, data=data, reports=reports)
