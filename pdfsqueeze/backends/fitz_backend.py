"""PyMuPDF implementation of the document codec and page rasterizer."""

import logging
import threading
from typing import Tuple

import fitz  # PyMuPDF
from PIL import Image

from ..errors import DecodeError, EncodingError, RasterError

logger = logging.getLogger(__name__)

# Document info fields cleared when stripping metadata
METADATA_FIELDS = ("title", "author", "subject", "keywords", "producer", "creator")

# Fields PyMuPDF lets us write back
_WRITABLE_FIELDS = METADATA_FIELDS + ("creationDate", "modDate", "trapped")

_warm_up_lock = threading.Lock()
_warmed_up = False


class PyMuPDFCodec:
    """
    Document codec backed by PyMuPDF.

    Saves use the same options the compressor has always used: full garbage
    collection, deflated streams and cleaned content streams, so unreferenced
    objects are dropped on every re-serialization.
    """

    SAVE_OPTIONS = {
        "garbage": 4,
        "deflate": True,
        "clean": True,
    }

    def open(self, data: bytes) -> fitz.Document:
        if not data:
            raise DecodeError("Document is empty")

        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise DecodeError(f"Failed to open PDF: {e}") from e

        if doc.needs_pass:
            doc.close()
            raise DecodeError("PDF is password protected")

        if doc.page_count == 0:
            doc.close()
            raise DecodeError("PDF has no pages")

        return doc

    def new(self) -> fitz.Document:
        return fitz.open()

    def close(self, doc: fitz.Document) -> None:
        doc.close()

    def page_count(self, doc: fitz.Document) -> int:
        return doc.page_count

    def page_box(self, doc: fitz.Document, index: int) -> Tuple[float, float]:
        try:
            rect = doc.load_page(index).rect
        except Exception as e:
            raise DecodeError(f"Failed to load page {index + 1}: {e}") from e
        return rect.width, rect.height

    def copy_pages(self, src: fitz.Document, dst: fitz.Document) -> None:
        try:
            dst.insert_pdf(src)
        except Exception as e:
            raise DecodeError(f"Failed to copy pages: {e}") from e

    def add_image_page(
        self,
        doc: fitz.Document,
        width: float,
        height: float,
        image_data: bytes,
    ) -> None:
        try:
            page = doc.new_page(width=width, height=height)
            page.insert_image(page.rect, stream=image_data, keep_proportion=False)
        except Exception as e:
            raise RasterError(f"Failed to embed page image: {e}") from e

    def get_metadata(self, doc: fitz.Document) -> dict:
        metadata = doc.metadata or {}
        return {key: metadata.get(key) or "" for key in _WRITABLE_FIELDS}

    def set_metadata(self, doc: fitz.Document, metadata: dict) -> None:
        try:
            doc.set_metadata({
                key: value for key, value in metadata.items() if key in _WRITABLE_FIELDS
            })
        except Exception as e:
            raise EncodingError(f"Failed to write metadata: {e}") from e

    def save(self, doc: fitz.Document) -> bytes:
        try:
            return doc.tobytes(**self.SAVE_OPTIONS)
        except Exception as e:
            raise EncodingError(f"Failed to save PDF: {e}") from e

    def warm_up(self) -> bool:
        """
        Initialize PyMuPDF's rendering machinery once per process.

        Builds and renders a blank one-page document. Returns True when this
        call did the work, False when it had already been done. Failures are
        logged; nothing depends on the warm-up having succeeded.
        """
        global _warmed_up

        with _warm_up_lock:
            if _warmed_up:
                return False
            _warmed_up = True

            try:
                doc = fitz.open()
                doc.new_page()
                data = doc.tobytes()
                doc.close()

                doc = fitz.open(stream=data, filetype="pdf")
                doc.load_page(0).get_pixmap(alpha=False)
                doc.close()
                logger.debug("PyMuPDF warm-up complete")
            except Exception as e:
                logger.warning("PyMuPDF warm-up failed: %s", e)

            return True


class PyMuPDFRasterizer:
    """Renders pages with PyMuPDF into RGB Pillow images."""

    def render(self, doc: fitz.Document, index: int, scale: float) -> Image.Image:
        try:
            page = doc.load_page(index)
            matrix = fitz.Matrix(scale, scale)
            # alpha=False renders onto an opaque white background
            pix = page.get_pixmap(matrix=matrix, alpha=False, colorspace=fitz.csRGB)
            image = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
            del pix
            return image
        except Exception as e:
            raise RasterError(f"Failed to render page {index + 1}: {e}") from e
