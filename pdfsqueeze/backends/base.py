"""
Collaborator protocols for the compression engine.

The engine never touches a PDF library directly. It talks to three
collaborators:

- DocumentCodec: bytes <-> page-addressable document, page copying, metadata
- PageRasterizer: renders one page of a decoded document to pixels
- ImageEncoder: turns pixels into a lossy compressed image

Documents are opaque objects owned by the codec that created them.
"""

from typing import Any, Protocol, Tuple

from PIL import Image


class DocumentCodec(Protocol):
    """Loads, builds and serializes documents."""

    def open(self, data: bytes) -> Any:
        """
        Decode document bytes.

        Raises:
            DecodeError: If the bytes cannot be parsed
        """
        ...

    def new(self) -> Any:
        """Create an empty output document."""
        ...

    def close(self, doc: Any) -> None:
        ...

    def page_count(self, doc: Any) -> int:
        ...

    def page_box(self, doc: Any, index: int) -> Tuple[float, float]:
        """Return the (width, height) of a page in document units."""
        ...

    def copy_pages(self, src: Any, dst: Any) -> None:
        """Append every page of src to dst, in order, as opaque units."""
        ...

    def add_image_page(
        self,
        doc: Any,
        width: float,
        height: float,
        image_data: bytes,
    ) -> None:
        """Append a page of the given box with the image stretched to fill it."""
        ...

    def get_metadata(self, doc: Any) -> dict:
        ...

    def set_metadata(self, doc: Any, metadata: dict) -> None:
        ...

    def save(self, doc: Any) -> bytes:
        """
        Serialize a document.

        Raises:
            EncodingError: If serialization fails
        """
        ...


class PageRasterizer(Protocol):
    """Renders pages to pixel buffers."""

    def render(self, doc: Any, index: int, scale: float) -> Image.Image:
        """
        Render page `index` at `scale` on an opaque white canvas.

        Raises:
            RasterError: If rendering fails
        """
        ...


class ImageEncoder(Protocol):
    """Encodes pixel buffers as lossy images."""

    def encode(self, image: Image.Image, quality: int) -> bytes:
        """
        Raises:
            RasterError: If encoding fails
        """
        ...
