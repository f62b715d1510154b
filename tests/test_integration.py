"""End-to-end tests of CompressionEngine with the PyMuPDF and Pillow backends."""

import fitz
import pytest

from conftest import make_noise_pdf
from pdfsqueeze import (
    CancellationToken,
    CompressionCancelled,
    CompressionEngine,
    CompressionRequest,
    DecodeError,
    Strategy,
    compress_pdf,
    inspect_document,
)


# Hand-written one-page file with no xref table; any rewrite adds one
MINIMAL_PDF = (
    b"%PDF-1.0\n"
    b"1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj "
    b"2 0 obj<</Type/Pages/Kids[3 0 R]/Count 1>>endobj "
    b"3 0 obj<</Type/Page/MediaBox[0 0 3 3]/Parent 2 0 R>>endobj\n"
    b"trailer<</Root 1 0 R>>"
)


@pytest.fixture(scope="module")
def five_page_pdf():
    return make_noise_pdf(pages=5, image_size=380, seed=5)


@pytest.fixture
def engine():
    return CompressionEngine()


def page_boxes(data):
    doc = fitz.open(stream=data, filetype="pdf")
    boxes = [(page.rect.width, page.rect.height) for page in doc]
    doc.close()
    return boxes


def test_five_page_document_with_high_preset(engine, five_page_pdf):
    assert len(five_page_pdf) > 1024 * 1024

    result = engine.compress(five_page_pdf, CompressionRequest.from_preset("high"))

    assert result.page_count == 5
    assert result.compressed_size <= len(five_page_pdf)
    assert len(result.data) == result.compressed_size
    assert page_boxes(result.data) == page_boxes(five_page_pdf)


def test_raster_wins_on_image_heavy_document(engine, noise_pdf):
    result = engine.compress(noise_pdf, CompressionRequest.from_preset("maximum"))

    assert result.strategy_used == Strategy.RASTER
    assert result.compressed_size < len(noise_pdf)
    assert result.quality == 12


@pytest.mark.parametrize("level", ["low", "medium", "high", "maximum"])
def test_no_regression_on_small_text_document(engine, text_pdf, level):
    result = engine.compress(text_pdf, CompressionRequest.from_preset(level))

    assert result.compressed_size <= len(text_pdf)
    assert result.page_count == 3
    assert result.strategy_used in (Strategy.STRUCTURAL, Strategy.NONE)


def test_returned_original_bytes_are_untouched(engine):
    data = MINIMAL_PDF

    result = engine.compress(data, CompressionRequest.from_preset("maximum"))

    assert result.strategy_used == Strategy.NONE
    assert result.data is data
    assert result.compressed_size == result.original_size == len(data)
    assert result.page_count == 1
    assert result.quality is None


def test_target_size_on_real_document(engine, noise_pdf):
    target = len(noise_pdf) // 2
    result = engine.compress(noise_pdf, CompressionRequest.target_size(target, dpi=96))

    assert result.target_bytes == target
    assert result.iterations <= 6
    assert result.compressed_size <= len(noise_pdf)
    if result.target_achieved:
        assert result.compressed_size <= target


def test_undecodable_document_is_fatal(engine):
    with pytest.raises(DecodeError):
        engine.compress(b"\x00" * 200_000, CompressionRequest.from_preset("medium"))


def test_batch_isolates_failures(engine, text_pdf, noise_pdf):
    events = []
    items = engine.compress_batch(
        [("a.pdf", text_pdf), ("broken.pdf", b"not a pdf"), ("b.pdf", noise_pdf)],
        CompressionRequest.from_preset("high"),
        progress=lambda *e: events.append(e),
    )

    assert [item.name for item in items] == ["a.pdf", "broken.pdf", "b.pdf"]
    assert [item.success for item in items] == [True, False, True]
    assert items[1].error
    assert items[2].result.page_count == 2

    completed = [done for done, _, _ in events]
    assert completed == sorted(completed)
    assert completed[-1] == 100


def test_batch_cancellation(engine, text_pdf):
    token = CancellationToken()
    token.cancel()

    with pytest.raises(CompressionCancelled):
        engine.compress_batch([("a.pdf", text_pdf)], CompressionRequest.from_preset("low"), cancel=token)


def test_compress_pdf_convenience(text_pdf):
    result = compress_pdf(text_pdf, CompressionRequest.from_preset("medium"))
    assert result.page_count == 3


def test_inspect_document(text_pdf):
    info = inspect_document(text_pdf)

    assert info.page_count == 3
    assert info.size_bytes == len(text_pdf)
    assert info.is_encrypted is False


def test_inspect_rejects_garbage():
    with pytest.raises(DecodeError):
        inspect_document(b"garbage")
