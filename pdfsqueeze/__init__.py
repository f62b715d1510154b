"""
pdfsqueeze

Local PDF compression: a lossless structural repack and a lossy
rasterize-and-re-embed repack, with the smaller result kept and a
bounded quality search for target sizes.
"""

__version__ = "1.0.0"
__author__ = "pdfsqueeze Team"

from .analyzer import inspect_document
from .engine import CompressionEngine, compress_pdf
from .errors import (
    CompressionCancelled,
    CompressionError,
    DecodeError,
    EncodingError,
    RasterError,
)
from .models import (
    BatchItemResult,
    CompressionMode,
    CompressionRequest,
    CompressionResult,
    DocumentInfo,
    Strategy,
)
from .progress import CancellationToken

__all__ = [
    "CompressionEngine",
    "compress_pdf",
    "inspect_document",
    "CompressionRequest",
    "CompressionResult",
    "CompressionMode",
    "Strategy",
    "BatchItemResult",
    "DocumentInfo",
    "CancellationToken",
    "CompressionError",
    "DecodeError",
    "RasterError",
    "EncodingError",
    "CompressionCancelled",
]
