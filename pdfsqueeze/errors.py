"""Exception types raised by the compression engine."""


class CompressionError(Exception):
    """Base class for per-document compression failures."""


class DecodeError(CompressionError):
    """The source document could not be parsed."""


class RasterError(CompressionError):
    """Rendering a page or encoding its image failed."""


class EncodingError(CompressionError):
    """Serializing the output document failed."""


class CompressionCancelled(Exception):
    """The caller cancelled the operation; no result is produced."""
