"""Document inspection for pdfsqueeze."""

import logging
from typing import Optional

from .backends import DocumentCodec, PyMuPDFCodec
from .models import DocumentInfo

logger = logging.getLogger(__name__)


def inspect_document(data: bytes, codec: Optional[DocumentCodec] = None) -> DocumentInfo:
    """
    Read the size and page count of a document without compressing it.

    Encrypted documents that open without a password are reported as such;
    ones that need a password raise DecodeError.

    Args:
        data: PDF bytes
        codec: Document codec (default: PyMuPDF)

    Returns:
        DocumentInfo with size and page count

    Raises:
        DecodeError: If the document cannot be opened
    """
    codec = codec or PyMuPDFCodec()
    doc = codec.open(data)
    try:
        info = DocumentInfo(
            size_bytes=len(data),
            page_count=codec.page_count(doc),
            is_encrypted=bool(getattr(doc, "is_encrypted", False)),
        )
    finally:
        codec.close(doc)

    logger.debug("Inspected document: %d bytes, %d pages", info.size_bytes, info.page_count)
    return info
