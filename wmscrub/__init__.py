"""
wm-scrub: remove a known watermark text from PDF content streams.

Watermark text is matched byte for byte as (literal) and <hex> string
objects, in plain and Flate-compressed streams. Matching streams are either
blanked in place or deleted, with page references repaired afterwards.
"""

__version__ = "0.1.0"

from wmscrub.core import remove_watermark, scrub
from wmscrub.document import PdfDocument
from wmscrub.errors import (
    DecodeFailed,
    InvalidInput,
    RecompressFailed,
    ReferenceRepairInconsistency,
    ScrubError,
    WatermarkNotFound,
)
from wmscrub.report import ExitCode, MatchReport, ScrubResult

__all__ = [
    "remove_watermark",
    "scrub",
    "PdfDocument",
    "MatchReport",
    "ScrubResult",
    "ExitCode",
    "ScrubError",
    "InvalidInput",
    "DecodeFailed",
    "RecompressFailed",
    "WatermarkNotFound",
    "ReferenceRepairInconsistency",
    "__version__",
]
