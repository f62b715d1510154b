"""The two repacking strategies the engine chooses between."""

import logging
from dataclasses import dataclass
from typing import Optional

from .backends import (
    METADATA_FIELDS,
    DocumentCodec,
    ImageEncoder,
    PageRasterizer,
    to_grayscale,
)
from .progress import CancellationToken, ProgressCallback, check_cancelled, report

logger = logging.getLogger(__name__)


@dataclass
class RepackOutput:
    """Serialized output of one strategy."""
    data: bytes
    page_count: int

    @property
    def size(self) -> int:
        return len(self.data)


def _apply_metadata(codec: DocumentCodec, src, dst, strip_metadata: bool):
    if strip_metadata:
        codec.set_metadata(dst, {key: "" for key in METADATA_FIELDS})
    else:
        codec.set_metadata(dst, codec.get_metadata(src))


class StructuralRepacker:
    """
    Lossless strategy: copy every page into a fresh document and re-serialize.

    Nothing is rendered. The size win comes from the codec dropping objects
    no page references any more, which is often substantial for documents
    that have been edited in place many times.
    """

    def __init__(self, codec: DocumentCodec):
        self.codec = codec

    def repack(self, data: bytes, strip_metadata: bool) -> RepackOutput:
        """
        Args:
            data: Source document bytes
            strip_metadata: Clear title, author, subject, keywords, producer and creator

        Raises:
            DecodeError: If the source cannot be parsed
            EncodingError: If the output cannot be serialized
        """
        src = self.codec.open(data)
        dst = self.codec.new()
        try:
            self.codec.copy_pages(src, dst)
            _apply_metadata(self.codec, src, dst, strip_metadata)
            output = RepackOutput(self.codec.save(dst), self.codec.page_count(dst))
        finally:
            self.codec.close(dst)
            self.codec.close(src)

        logger.debug("Structural repack: %d -> %d bytes", len(data), output.size)
        return output


class RasterRepacker:
    """
    Lossy strategy: render every page and embed it as one full-page JPEG.

    Page boxes are preserved exactly; only the pixel density changes with the
    resolution factor. Vector content and text become part of the bitmap.
    """

    def __init__(
        self,
        codec: DocumentCodec,
        rasterizer: PageRasterizer,
        encoder: ImageEncoder,
    ):
        self.codec = codec
        self.rasterizer = rasterizer
        self.encoder = encoder

    def repack(
        self,
        data: bytes,
        quality: int,
        resolution_factor: float,
        strip_metadata: bool,
        grayscale: bool,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> RepackOutput:
        """
        Rasterize a document page by page.

        Pages are handled strictly in order and each page's pixel buffer is
        released before the next one is rendered. Any page failure aborts the
        whole document; no partially rasterized output is returned.

        Args:
            data: Source document bytes
            quality: JPEG quality (1-100)
            resolution_factor: Render scale relative to 72 units per inch
            strip_metadata: Clear document info fields
            grayscale: Encode pages as luminance only
            progress: Called with (page, total, label) after each page
            cancel: Checked before each page

        Raises:
            DecodeError: If the source cannot be parsed
            RasterError: If rendering or encoding any page fails
            EncodingError: If the output cannot be serialized
            CompressionCancelled: If cancel was triggered
        """
        src = self.codec.open(data)
        dst = self.codec.new()
        try:
            total = self.codec.page_count(src)

            for index in range(total):
                check_cancelled(cancel)

                width, height = self.codec.page_box(src, index)
                image = self.rasterizer.render(src, index, resolution_factor)
                if grayscale:
                    image = to_grayscale(image)

                encoded = self.encoder.encode(image, quality)
                del image

                self.codec.add_image_page(dst, width, height, encoded)
                del encoded

                logger.debug("Rasterized page %d/%d at q=%d", index + 1, total, quality)
                report(progress, index + 1, total, f"Processing page {index + 1}/{total}")

            _apply_metadata(self.codec, src, dst, strip_metadata)
            output = RepackOutput(self.codec.save(dst), total)
        finally:
            self.codec.close(dst)
            self.codec.close(src)

        logger.debug("Raster repack: %d -> %d bytes", len(data), output.size)
        return output
