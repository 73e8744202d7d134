"""
Mutation strategies applied to streams that contain the watermark.

``replace`` blanks each occurrence in place (``()`` or ``<>``) and re-encodes
the stream. ``delete`` marks the whole stream object; the marked objects are
unlinked from their pages and purged once the scan is complete.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Type

from wmscrub import codec
from wmscrub.codec import StreamObject
from wmscrub.document import PdfDocument
from wmscrub.errors import InvalidInput
from wmscrub.patterns import HEX_EMPTY, LITERAL_EMPTY, WatermarkPattern
from wmscrub.repair import repair_references
from wmscrub.report import MatchReport


logger = logging.getLogger(__name__)


class RedactionStrategy(ABC):
    """One scan pass worth of mutation state."""

    name: str = ""

    @abstractmethod
    def apply(
        self,
        doc: PdfDocument,
        stream: StreamObject,
        data: bytes,
        pattern: WatermarkPattern,
        literal: bool,
        hex_: bool,
        report: MatchReport,
    ) -> None:
        """Handle a stream in which at least one matcher hit."""
        raise NotImplementedError

    def finish(self, doc: PdfDocument, report: MatchReport) -> None:
        """Called once after a pass that found something."""
        pass


class ReplaceInPlace(RedactionStrategy):
    name = "replace"

    def apply(self, doc, stream, data, pattern, literal, hex_, report):
        new = data
        if literal:
            new = pattern.literal.sub(LITERAL_EMPTY, new)
        if hex_:
            new = pattern.hex.sub(HEX_EMPTY, new)

        # RecompressFailed propagates before any count is taken
        codec.encode(doc, stream, new)
        report.replaced_count += int(literal) + int(hex_)
        logger.info("Object %d: watermark replaced", stream.xref)


class DeleteObject(RedactionStrategy):
    name = "delete"

    def __init__(self):
        self.marked: List[int] = []

    def apply(self, doc, stream, data, pattern, literal, hex_, report):
        self.marked.append(stream.xref)
        report.deleted_count += 1
        logger.info("Object %d marked for deletion", stream.xref)

    def finish(self, doc, report):
        if self.marked:
            repair_references(doc, set(self.marked))


STRATEGIES: Dict[str, Type[RedactionStrategy]] = {
    ReplaceInPlace.name: ReplaceInPlace,
    DeleteObject.name: DeleteObject,
}


def get_strategy(name: str) -> RedactionStrategy:
    """Return a fresh strategy instance for ``name``."""
    try:
        return STRATEGIES[name]()
    except KeyError:
        raise InvalidInput(
            f"Unknown strategy {name!r}; expected one of {', '.join(STRATEGIES)}"
        ) from None
