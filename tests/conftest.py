"""Shared fixtures: generated PDFs and stand-in repackers."""

import io
import random
from typing import Callable, List, Optional, Tuple

import fitz
import pytest
from PIL import Image

from pdfsqueeze import CompressionEngine
from pdfsqueeze.progress import check_cancelled, report
from pdfsqueeze.repackers import RepackOutput


def make_pdf(
    page_sizes: List[Tuple[float, float]],
    text: str = "Hello pdfsqueeze",
    metadata: Optional[dict] = None,
) -> bytes:
    """Build a text-only PDF with the given page boxes."""
    doc = fitz.open()
    for width, height in page_sizes:
        page = doc.new_page(width=width, height=height)
        page.insert_text((36, 72), text, fontsize=14)
    if metadata:
        doc.set_metadata(metadata)
    data = doc.tobytes()
    doc.close()
    return data


def make_noise_pdf(pages: int = 2, image_size: int = 300, seed: int = 0) -> bytes:
    """Build a PDF whose pages each carry an incompressible noise image."""
    rng = random.Random(seed)
    doc = fitz.open()
    for _ in range(pages):
        page = doc.new_page(width=612, height=792)
        pixels = rng.randbytes(image_size * image_size * 3)
        image = Image.frombytes("RGB", (image_size, image_size), pixels)
        buffer = io.BytesIO()
        image.save(buffer, format="PNG")
        page.insert_image(fitz.Rect(36, 36, 576, 756), stream=buffer.getvalue())
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def text_pdf() -> bytes:
    return make_pdf(
        [(612, 792), (300, 500), (842, 595)],
        metadata={"title": "Quarterly Report", "author": "Jane Doe", "subject": "Numbers"},
    )


@pytest.fixture(scope="session")
def noise_pdf() -> bytes:
    return make_noise_pdf()


class StubStructural:
    """Stands in for StructuralRepacker with a fixed output size."""

    def __init__(self, size: int = 0, page_count: int = 3, error: Optional[Exception] = None):
        self.size = size
        self.page_count = page_count
        self.error = error
        self.calls = 0

    def repack(self, data: bytes, strip_metadata: bool) -> RepackOutput:
        self.calls += 1
        if self.error:
            raise self.error
        return RepackOutput(b"s" * self.size, self.page_count)


class StubRaster:
    """Stands in for RasterRepacker; output size is a function of quality."""

    def __init__(
        self,
        size_for_quality: Callable[[int], int] = lambda q: 0,
        page_count: int = 3,
        error: Optional[Exception] = None,
    ):
        self.size_for_quality = size_for_quality
        self.page_count = page_count
        self.error = error
        self.calls = []

    def repack(
        self,
        data,
        quality,
        resolution_factor,
        strip_metadata,
        grayscale,
        progress=None,
        cancel=None,
    ) -> RepackOutput:
        self.calls.append({"quality": quality, "grayscale": grayscale})
        for index in range(self.page_count):
            check_cancelled(cancel)
            if self.error:
                raise self.error
            report(progress, index + 1, self.page_count, f"Processing page {index + 1}")
        return RepackOutput(b"r" * self.size_for_quality(quality), self.page_count)


@pytest.fixture
def stub_engine():
    """Engine factory with both strategies replaced by stubs."""
    def factory(structural: StubStructural, raster: StubRaster) -> CompressionEngine:
        engine = CompressionEngine()
        engine.structural = structural
        engine.raster = raster
        return engine

    return factory
