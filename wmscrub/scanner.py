"""
Object scanner: walks every stream object and hands matches to a strategy.
"""

import logging

from wmscrub import codec
from wmscrub.codec import StreamObject
from wmscrub.document import PdfDocument
from wmscrub.errors import DecodeFailed, RecompressFailed
from wmscrub.patterns import WatermarkPattern
from wmscrub.report import MatchReport
from wmscrub.strategies import RedactionStrategy


logger = logging.getLogger(__name__)


def scan(
    doc: PdfDocument,
    pattern: WatermarkPattern,
    strategy: RedactionStrategy,
) -> MatchReport:
    """
    Run one pass of ``pattern`` over every stream in ``doc``.

    A stream that fails to decode or re-encode is counted in
    ``skipped_on_error`` and the pass moves on to the next object.
    """
    report = MatchReport(text=pattern.text, strategy=strategy.name)

    # Snapshot ids up front; the strategy may rewrite streams as we go
    for xref in list(doc.stream_ids()):
        stream = StreamObject.load(doc, xref)
        report.streams_scanned += 1

        try:
            data = codec.decode(stream)
        except DecodeFailed as e:
            logger.warning("Skipping stream: %s", e)
            report.record_error(e)
            continue

        literal = pattern.literal.search(data) is not None
        hex_ = pattern.hex.search(data) is not None
        if not (literal or hex_):
            logger.debug("Object %d: no match", xref)
            continue

        report.matched_ids.add(xref)
        if literal:
            report.literal_hits += 1
            logger.info("Object %d contains the text (literal)", xref)
        if hex_:
            report.hex_hits += 1
            logger.info("Object %d contains the text (hex)", xref)

        try:
            strategy.apply(doc, stream, data, pattern, literal, hex_, report)
        except RecompressFailed as e:
            logger.warning("Stream left unchanged: %s", e)
            report.record_error(e)

    return report
