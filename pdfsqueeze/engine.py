"""PDF compression engine for pdfsqueeze."""

import dataclasses
import logging
from typing import List, Optional, Sequence, Tuple

from .backends import (
    DocumentCodec,
    ImageEncoder,
    PageRasterizer,
    PillowJpegEncoder,
    PyMuPDFCodec,
    PyMuPDFRasterizer,
)
from .config import (
    RASTER_THRESHOLD_BYTES,
    TARGET_MAX_ATTEMPTS,
    TARGET_QUALITY_MAX,
    TARGET_QUALITY_MIN,
)
from .errors import CompressionError, DecodeError, RasterError
from .models import (
    BatchItemResult,
    CompressionMode,
    CompressionRequest,
    CompressionResult,
    Strategy,
)
from .progress import (
    BatchProgress,
    CancellationToken,
    ProgressCallback,
    check_cancelled,
    report,
)
from .repackers import RasterRepacker, RepackOutput, StructuralRepacker
from .utils import format_size

logger = logging.getLogger(__name__)


class CompressionEngine:
    """
    Chooses between structural and raster repacking for each document.

    Every call loads the document fresh from bytes and keeps no state
    between calls. Collaborators are injected; by default PyMuPDF handles
    decoding, rendering and saving and Pillow encodes page images.

    Guarantees:
    - the returned bytes are never larger than the input
    - page count and page boxes are preserved
    - target size mode runs at most TARGET_MAX_ATTEMPTS full compressions
    """

    def __init__(
        self,
        codec: Optional[DocumentCodec] = None,
        rasterizer: Optional[PageRasterizer] = None,
        encoder: Optional[ImageEncoder] = None,
        raster_threshold: int = RASTER_THRESHOLD_BYTES,
    ):
        """
        Initialize engine.

        Args:
            codec: Document codec (default: PyMuPDF)
            rasterizer: Page rasterizer (default: PyMuPDF)
            encoder: Image encoder (default: Pillow JPEG)
            raster_threshold: Documents at or below this many bytes skip rasterization
        """
        self.codec = codec or PyMuPDFCodec()
        self.rasterizer = rasterizer or PyMuPDFRasterizer()
        self.encoder = encoder or PillowJpegEncoder()
        self.raster_threshold = raster_threshold

        self.structural = StructuralRepacker(self.codec)
        self.raster = RasterRepacker(self.codec, self.rasterizer, self.encoder)

    def warm_up(self) -> bool:
        """Run the codec's one-time initialization, if it has one."""
        hook = getattr(self.codec, "warm_up", None)
        if callable(hook):
            return hook()
        return False

    def compress(
        self,
        data: bytes,
        request: CompressionRequest,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> CompressionResult:
        """
        Compress one document according to a request.

        Args:
            data: Source PDF bytes
            request: Compression settings
            progress: Optional callback (completed, total, label)
            cancel: Optional cancellation token

        Returns:
            CompressionResult

        Raises:
            CompressionError: If the document cannot be compressed at all
            CompressionCancelled: If cancel was triggered
        """
        if request.mode == CompressionMode.TARGET_SIZE:
            return self.compress_to_target(data, request, progress, cancel)

        return self.compress_document(
            data,
            quality=request.quality,
            resolution_factor=request.resolution_factor,
            strip_metadata=request.strip_metadata,
            grayscale=request.grayscale,
            progress=progress,
            cancel=cancel,
        )

    def compress_document(
        self,
        data: bytes,
        quality: int,
        resolution_factor: float,
        strip_metadata: bool,
        grayscale: bool,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> CompressionResult:
        """
        Run both strategies once and keep the smaller output.

        The structural repack always runs. The raster repack only runs for
        documents larger than raster_threshold. If neither output is smaller
        than the input, the input bytes are returned unchanged.
        """
        original_size = len(data)
        candidates: List[Tuple[Strategy, RepackOutput]] = []
        errors: List[CompressionError] = []

        check_cancelled(cancel)
        try:
            candidates.append((Strategy.STRUCTURAL, self.structural.repack(data, strip_metadata)))
        except DecodeError as e:
            logger.warning("Structural repack failed: %s", e)
            errors.append(e)

        if original_size > self.raster_threshold:
            check_cancelled(cancel)
            try:
                output = self.raster.repack(
                    data,
                    quality=quality,
                    resolution_factor=resolution_factor,
                    strip_metadata=strip_metadata,
                    grayscale=grayscale,
                    progress=progress,
                    cancel=cancel,
                )
                candidates.append((Strategy.RASTER, output))
            except (DecodeError, RasterError) as e:
                logger.warning("Raster repack failed: %s", e)
                errors.append(e)
        else:
            pages = candidates[0][1].page_count if candidates else 1
            report(progress, pages, pages, "Done")

        if not candidates:
            # Prefer the most specific failure over a plain decode failure
            raise next((e for e in errors if not isinstance(e, DecodeError)), errors[0])

        strategy, best = min(candidates, key=lambda candidate: candidate[1].size)

        if best.size >= original_size:
            logger.info(
                "No strategy beat the original (%s); keeping input bytes",
                format_size(original_size),
            )
            return CompressionResult(
                data=data,
                original_size=original_size,
                compressed_size=original_size,
                page_count=best.page_count,
                strategy_used=Strategy.NONE,
            )

        logger.info(
            "%s repack: %s -> %s",
            strategy.value.capitalize(),
            format_size(original_size),
            format_size(best.size),
        )
        return CompressionResult(
            data=best.data,
            original_size=original_size,
            compressed_size=best.size,
            page_count=best.page_count,
            strategy_used=strategy,
            quality=quality if strategy == Strategy.RASTER else None,
        )

    def compress_to_target(
        self,
        data: bytes,
        request: CompressionRequest,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> CompressionResult:
        """
        Find the highest quality whose output fits in request.target_bytes.

        Bisects integer quality in [TARGET_QUALITY_MIN, TARGET_QUALITY_MAX]
        with at most TARGET_MAX_ATTEMPTS full compressions, all in grayscale.
        Every probe's size is checked; output size is not assumed to be
        monotonic in quality. While nothing has fit, the last attempt is
        spent on the quality floor so the attempt budget holds. As a result,
        when only qualities just above the floor fit (e.g. 6), the search
        returns the floor rather than the highest fitting quality.

        If no attempt fits, the floor result is returned with
        target_achieved False.
        """
        target_bytes = request.target_bytes
        low, high = TARGET_QUALITY_MIN, TARGET_QUALITY_MAX
        best: Optional[CompressionResult] = None
        floor_result: Optional[CompressionResult] = None
        attempts = 0

        while low <= high and attempts < TARGET_MAX_ATTEMPTS:
            check_cancelled(cancel)

            mid = (low + high + 1) // 2
            if best is None and attempts == TARGET_MAX_ATTEMPTS - 1:
                mid = TARGET_QUALITY_MIN
            attempts += 1

            report(progress, attempts - 1, TARGET_MAX_ATTEMPTS, f"Attempt {attempts}: trying quality {mid}%")
            result = self._probe(data, mid, request, cancel)
            logger.debug(
                "Target probe %d: quality %d -> %s (target %s)",
                attempts, mid, format_size(result.compressed_size), format_size(target_bytes),
            )

            if mid == TARGET_QUALITY_MIN:
                floor_result = result

            if result.compressed_size <= target_bytes:
                best = result
                low = mid + 1
            else:
                high = mid - 1

        if best is None:
            if floor_result is None:
                report(progress, attempts, TARGET_MAX_ATTEMPTS, "Using maximum compression")
                floor_result = self._probe(data, TARGET_QUALITY_MIN, request, cancel)
                attempts += 1
            best = floor_result
            logger.warning(
                "Target %s not reached; best achievable is %s",
                format_size(target_bytes),
                format_size(best.compressed_size),
            )

        report(progress, TARGET_MAX_ATTEMPTS, TARGET_MAX_ATTEMPTS, "Done")
        return dataclasses.replace(best, target_bytes=target_bytes, iterations=attempts)

    def _probe(
        self,
        data: bytes,
        quality: int,
        request: CompressionRequest,
        cancel: Optional[CancellationToken],
    ) -> CompressionResult:
        return self.compress_document(
            data,
            quality=quality,
            resolution_factor=request.resolution_factor,
            strip_metadata=request.strip_metadata,
            grayscale=True,
            cancel=cancel,
        )

    def compress_batch(
        self,
        documents: Sequence[Tuple[str, bytes]],
        request: CompressionRequest,
        progress: Optional[ProgressCallback] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[BatchItemResult]:
        """
        Compress several documents one after another.

        Documents run sequentially to bound peak memory. A failure in one
        document is recorded in its BatchItemResult and the batch carries on.
        Progress is reported on a single 0-100 scale that never decreases.

        Args:
            documents: (name, bytes) pairs
            request: Settings applied to every document
            progress: Optional callback (completed, 100, label)
            cancel: Optional cancellation token; aborts the whole batch

        Returns:
            One BatchItemResult per document, in input order
        """
        tracker = BatchProgress(progress, len(documents))
        items: List[BatchItemResult] = []

        for index, (name, data) in enumerate(documents):
            check_cancelled(cancel)

            try:
                result = self.compress(data, request, tracker.for_document(index), cancel)
                items.append(BatchItemResult(name=name, result=result))
            except CompressionError as e:
                logger.warning("Failed to compress %s: %s", name, e)
                items.append(BatchItemResult(name=name, error=str(e)))

            tracker.document_done(index, f"Finished {name}")

        return items


def compress_pdf(
    data: bytes,
    request: CompressionRequest,
    progress: Optional[ProgressCallback] = None,
    cancel: Optional[CancellationToken] = None,
) -> CompressionResult:
    """
    Convenience function to compress PDF bytes with the default backends.

    Args:
        data: Source PDF bytes
        request: Compression settings
        progress: Optional progress callback
        cancel: Optional cancellation token

    Returns:
        CompressionResult
    """
    return CompressionEngine().compress(data, request, progress, cancel)
