"""
Exceptions raised by wm-scrub.

Per-object failures (DecodeFailed, RecompressFailed) are recoverable and are
folded into the scan report. InvalidInput and ReferenceRepairInconsistency
abort the whole operation.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from wmscrub.report import MatchReport


class ScrubError(Exception):
    """Base class for all wm-scrub errors."""
    pass


class InvalidInput(ScrubError, ValueError):
    """Raised before any scanning when the text or document is unusable."""
    pass


class StreamError(ScrubError):
    """A failure confined to a single stream object."""

    def __init__(self, xref: int, message: str):
        super().__init__(f"xref {xref}: {message}")
        self.xref = xref


class DecodeFailed(StreamError):
    """The stream's compressed bytes could not be inflated."""
    pass


class RecompressFailed(StreamError):
    """The edited stream could not be deflated; stored bytes are unchanged."""
    pass


class WatermarkNotFound(ScrubError):
    """No stream matched the watermark. The document is left untouched."""

    def __init__(self, text: str, report: Optional["MatchReport"] = None):
        super().__init__(f"Watermark not found: {text!r}")
        self.text = text
        self.report = report


class ReferenceRepairInconsistency(ScrubError):
    """A page still references a purged object after repair."""

    def __init__(self, page: int, xrefs):
        refs = ", ".join(str(x) for x in sorted(xrefs))
        super().__init__(
            f"Page {page} still references purged object(s): {refs}"
        )
        self.page = page
        self.xrefs = set(xrefs)


class RenderCancelled(ScrubError):
    """An in-flight preview render was superseded by a newer request."""
    pass
