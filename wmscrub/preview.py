"""
Page preview rendering for wm-scrub.

A PreviewSession keeps the original upload and the current (possibly
scrubbed) buffer, and renders pages from the current buffer. Starting a new
render cancels the one in flight. Cancellation is cooperative and only
affects rendering; the scrubbing engine is never interrupted.
"""

import io
import logging
import threading
from pathlib import Path
from typing import List, Optional, Union

import fitz  # PyMuPDF

from wmscrub.core import scrub
from wmscrub.errors import InvalidInput, RenderCancelled
from wmscrub.report import ScrubResult


logger = logging.getLogger(__name__)


class CancelToken:
    """Cooperative cancellation flag shared with one render."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        if self._event.is_set():
            raise RenderCancelled("Render superseded by a newer request")


def render_page(
    data: bytes,
    page_index: int = 0,
    zoom: float = 1.0,
    token: Optional[CancelToken] = None,
) -> fitz.Pixmap:
    """
    Render one page of a PDF to a pixmap.

    Raises:
        InvalidInput: If the bytes cannot be opened or the page is out of range.
        RenderCancelled: If ``token`` is cancelled before the pixmap is handed back.
    """
    token = token or CancelToken()
    token.check()

    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise InvalidInput(f"Failed to open PDF: {e}") from e

    try:
        if not 0 <= page_index < doc.page_count:
            raise InvalidInput(
                f"Page {page_index} out of range (document has {doc.page_count})"
            )
        token.check()
        pix = doc[page_index].get_pixmap(matrix=fitz.Matrix(zoom, zoom))
        token.check()
    finally:
        doc.close()

    return pix


class PreviewSession:
    """Caller-owned state for one loaded document and its preview."""

    def __init__(self, data: Optional[bytes] = None):
        self.original: Optional[bytes] = None
        self.current: Optional[bytes] = None
        self.last_result: Optional[ScrubResult] = None
        self._render_token: Optional[CancelToken] = None
        if data is not None:
            self.load(data)

    def load(self, data: bytes) -> None:
        self.original = bytes(data)
        self.current = self.original
        self.last_result = None

    def _require_loaded(self) -> bytes:
        if self.current is None:
            raise InvalidInput("No document loaded")
        return self.current

    def analyze(
        self,
        texts: Union[str, List[str]],
        strategy: str = "replace",
    ) -> ScrubResult:
        """Scrub the original buffer and show the result in the preview."""
        self._require_loaded()
        result = scrub(self.original, texts, strategy)
        self.last_result = result
        if result.removed:
            self.current = result.data
        return result

    def reset(self) -> None:
        """Go back to the original upload."""
        self._require_loaded()
        self.current = self.original
        self.last_result = None

    def cancel(self) -> None:
        if self._render_token is not None:
            self._render_token.cancel()
            self._render_token = None

    def render(self, page_index: int = 0, zoom: float = 1.0) -> Optional[fitz.Pixmap]:
        """
        Render a page of the current buffer.

        Returns None if this render was cancelled by a newer request.
        """
        data = self._require_loaded()
        self.cancel()
        token = CancelToken()
        self._render_token = token
        try:
            return render_page(data, page_index, zoom, token)
        except RenderCancelled:
            logger.debug("Render of page %d cancelled", page_index)
            return None
        finally:
            if self._render_token is token:
                self._render_token = None

    def to_image(self, pix: fitz.Pixmap):
        """Convert a rendered pixmap to a Pillow image."""
        from PIL import Image

        return Image.open(io.BytesIO(pix.tobytes("png")))

    def save_png(self, path: Path, page_index: int = 0, zoom: float = 1.0) -> bool:
        """Render and write a PNG. Returns False if the render was cancelled."""
        pix = self.render(page_index, zoom)
        if pix is None:
            return False
        self.to_image(pix).save(str(path), format="PNG")
        return True
