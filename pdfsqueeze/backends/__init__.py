"""Document, rendering and image backends used by the engine."""

from .base import DocumentCodec, ImageEncoder, PageRasterizer
from .pillow import PillowJpegEncoder, to_grayscale
from .fitz_backend import METADATA_FIELDS, PyMuPDFCodec, PyMuPDFRasterizer

__all__ = [
    "DocumentCodec",
    "ImageEncoder",
    "PageRasterizer",
    "PillowJpegEncoder",
    "PyMuPDFCodec",
    "PyMuPDFRasterizer",
    "METADATA_FIELDS",
    "to_grayscale",
]
