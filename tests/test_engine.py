"""Strategy selection tests for CompressionEngine, using stub repackers."""

import pytest

from conftest import StubRaster, StubStructural
from pdfsqueeze import (
    CancellationToken,
    CompressionCancelled,
    CompressionEngine,
    CompressionRequest,
    DecodeError,
    EncodingError,
    RasterError,
    Strategy,
)

KIB = 1024


@pytest.fixture
def request_high():
    return CompressionRequest.from_preset("high")


def test_picks_smaller_raster_output(stub_engine, request_high):
    engine = stub_engine(StubStructural(size=180 * KIB), StubRaster(lambda q: 60 * KIB))
    data = b"x" * (200 * KIB)

    result = engine.compress(data, request_high)

    assert result.strategy_used == Strategy.RASTER
    assert result.compressed_size == 60 * KIB
    assert result.original_size == 200 * KIB
    assert result.quality == 30
    assert result.page_count == 3
    assert len(result.data) == result.compressed_size


def test_picks_smaller_structural_output(stub_engine, request_high):
    engine = stub_engine(StubStructural(size=50 * KIB), StubRaster(lambda q: 90 * KIB))

    result = engine.compress(b"x" * (200 * KIB), request_high)

    assert result.strategy_used == Strategy.STRUCTURAL
    assert result.compressed_size == 50 * KIB
    assert result.quality is None


def test_tie_goes_to_structural(stub_engine, request_high):
    engine = stub_engine(StubStructural(size=70 * KIB), StubRaster(lambda q: 70 * KIB))
    assert engine.compress(b"x" * (200 * KIB), request_high).strategy_used == Strategy.STRUCTURAL


def test_small_documents_skip_raster(stub_engine, request_high):
    raster = StubRaster(lambda q: 1)
    engine = stub_engine(StubStructural(size=40 * KIB, page_count=4), raster)
    events = []

    result = engine.compress(b"x" * (100 * KIB), request_high, progress=lambda *e: events.append(e))

    assert raster.calls == []
    assert result.strategy_used == Strategy.STRUCTURAL
    assert events == [(4, 4, "Done")]


def test_raster_threshold_is_configurable(stub_engine, request_high):
    engine = stub_engine(StubStructural(size=900), StubRaster(lambda q: 100))
    engine.raster_threshold = 0

    assert engine.compress(b"x" * 1000, request_high).strategy_used == Strategy.RASTER


class TestNoRegression:
    def test_returns_original_when_nothing_is_smaller(self, stub_engine, request_high):
        data = b"o" * (150 * KIB)
        engine = stub_engine(StubStructural(size=160 * KIB), StubRaster(lambda q: 170 * KIB))

        result = engine.compress(data, request_high)

        assert result.strategy_used == Strategy.NONE
        assert result.data is data
        assert result.compressed_size == result.original_size == len(data)
        assert result.quality is None

    def test_equal_size_counts_as_regression(self, stub_engine, request_high):
        data = b"o" * (50 * KIB)
        engine = stub_engine(StubStructural(size=50 * KIB), StubRaster())

        assert engine.compress(data, request_high).strategy_used == Strategy.NONE

    @pytest.mark.parametrize("structural_size, raster_size", [
        (10, 10), (300 * KIB, 1), (1, 300 * KIB), (300 * KIB, 300 * KIB),
    ])
    def test_never_larger_than_input(self, stub_engine, request_high, structural_size, raster_size):
        data = b"o" * (200 * KIB)
        engine = stub_engine(StubStructural(size=structural_size), StubRaster(lambda q: raster_size))

        result = engine.compress(data, request_high)

        assert result.compressed_size <= len(data)
        assert len(result.data) == result.compressed_size


class TestFailures:
    def test_structural_decode_failure_falls_back_to_raster(self, stub_engine, request_high):
        engine = stub_engine(
            StubStructural(error=DecodeError("bad xref")),
            StubRaster(lambda q: 10 * KIB, page_count=2),
        )

        result = engine.compress(b"x" * (200 * KIB), request_high)

        assert result.strategy_used == Strategy.RASTER
        assert result.page_count == 2

    def test_raster_failure_falls_back_to_structural(self, stub_engine, request_high):
        engine = stub_engine(
            StubStructural(size=10 * KIB),
            StubRaster(error=RasterError("render failed")),
        )

        assert engine.compress(b"x" * (200 * KIB), request_high).strategy_used == Strategy.STRUCTURAL

    def test_both_decode_failures_are_fatal(self, stub_engine, request_high):
        engine = stub_engine(
            StubStructural(error=DecodeError("not a pdf")),
            StubRaster(error=DecodeError("not a pdf")),
        )

        with pytest.raises(DecodeError):
            engine.compress(b"x" * (200 * KIB), request_high)

    def test_raster_error_reported_over_decode_error(self, stub_engine, request_high):
        engine = stub_engine(
            StubStructural(error=DecodeError("not a pdf")),
            StubRaster(error=RasterError("page 2")),
        )

        with pytest.raises(RasterError):
            engine.compress(b"x" * (200 * KIB), request_high)

    def test_structural_failure_on_small_document(self, stub_engine, request_high):
        engine = stub_engine(StubStructural(error=DecodeError("not a pdf")), StubRaster())

        with pytest.raises(DecodeError):
            engine.compress(b"x" * KIB, request_high)

    def test_encoding_error_is_fatal(self, stub_engine, request_high):
        raster = StubRaster(lambda q: 1)
        engine = stub_engine(StubStructural(error=EncodingError("disk full")), raster)

        with pytest.raises(EncodingError):
            engine.compress(b"x" * (200 * KIB), request_high)
        assert raster.calls == []


class TestRasterProgressAndCancel:
    def test_per_page_progress(self, stub_engine, request_high):
        engine = stub_engine(StubStructural(size=1), StubRaster(lambda q: 1, page_count=3))
        events = []

        engine.compress(b"x" * (200 * KIB), request_high, progress=lambda *e: events.append(e))

        assert [(done, total) for done, total, _ in events] == [(1, 3), (2, 3), (3, 3)]

    def test_cancel_before_start(self, stub_engine, request_high):
        structural = StubStructural(size=1)
        engine = stub_engine(structural, StubRaster())
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CompressionCancelled):
            engine.compress(b"x" * (200 * KIB), request_high, cancel=token)
        assert structural.calls == 0

    def test_cancel_between_pages(self, stub_engine, request_high):
        engine = stub_engine(StubStructural(size=1), StubRaster(lambda q: 1, page_count=5))
        token = CancellationToken()
        seen = []

        def progress(done, total, label):
            seen.append(done)
            if done == 2:
                token.cancel()

        with pytest.raises(CompressionCancelled):
            engine.compress(b"x" * (200 * KIB), request_high, progress=progress, cancel=token)
        assert seen == [1, 2]


def test_grayscale_passed_through(stub_engine):
    raster = StubRaster(lambda q: 1)
    engine = stub_engine(StubStructural(size=10), raster)

    engine.compress(b"x" * (200 * KIB), CompressionRequest.custom(quality=40, dpi=96, grayscale=True))

    assert raster.calls == [{"quality": 40, "grayscale": True}]


def test_warm_up_delegates_to_codec():
    class Codec:
        def __init__(self):
            self.calls = 0

        def warm_up(self):
            self.calls += 1
            return True

    codec = Codec()
    engine = CompressionEngine(codec=codec)
    assert engine.warm_up() is True
    assert codec.calls == 1


def test_warm_up_without_hook():
    assert CompressionEngine(codec=object()).warm_up() is False
