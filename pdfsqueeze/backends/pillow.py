"""Pillow implementation of the image encoder."""

import io

from PIL import Image

from ..errors import RasterError


def to_grayscale(image: Image.Image) -> Image.Image:
    """
    Collapse an image to luminance.

    Uses L = 0.299 R + 0.587 G + 0.114 B, rounded. The single-channel result
    is what an RGB buffer with R = G = B would encode to.
    """
    if image.mode == "L":
        return image
    if image.mode != "RGB":
        image = image.convert("RGB")
    return image.convert("L")


class PillowJpegEncoder:
    """Encodes RGB or grayscale images as baseline JPEG."""

    def __init__(self, optimize: bool = True):
        self.optimize = optimize

    def encode(self, image: Image.Image, quality: int) -> bytes:
        if image.mode not in ("RGB", "L"):
            image = image.convert("RGB")

        buffer = io.BytesIO()
        try:
            image.save(buffer, format="JPEG", quality=quality, optimize=self.optimize)
        except Exception as e:
            raise RasterError(f"Failed to encode JPEG: {e}") from e
        return buffer.getvalue()
