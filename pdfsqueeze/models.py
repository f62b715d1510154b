"""Request and result types for the compression engine."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from .config import (
    DEFAULT_CUSTOM_DPI,
    DEFAULT_STRIP_METADATA,
    PRESETS,
)
from .utils import (
    calculate_compression_ratio,
    dpi_to_resolution_factor,
    estimate_compressed_size,
    format_size,
    resolution_factor_to_dpi,
)


class CompressionMode(str, Enum):
    """How the caller chose the compression settings."""
    PRESET = "preset"
    CUSTOM = "custom"
    TARGET_SIZE = "target"


class Strategy(str, Enum):
    """Which repacking strategy produced the returned bytes."""
    STRUCTURAL = "structural"
    RASTER = "raster"
    NONE = "none"


@dataclass(frozen=True)
class CompressionRequest:
    """Settings for one compression call."""
    mode: CompressionMode
    quality: int
    resolution_factor: float
    strip_metadata: bool = DEFAULT_STRIP_METADATA
    grayscale: bool = False
    target_bytes: Optional[int] = None
    preset: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.quality, bool) or not isinstance(self.quality, int):
            raise ValueError(f"Quality must be an integer, got {self.quality!r}")
        if not 1 <= self.quality <= 100:
            raise ValueError(f"Quality must be between 1 and 100, got {self.quality}")
        if (
            isinstance(self.resolution_factor, bool)
            or not isinstance(self.resolution_factor, (int, float))
            or not math.isfinite(self.resolution_factor)
            or self.resolution_factor <= 0
        ):
            raise ValueError(
                f"Resolution factor must be a positive finite number, got {self.resolution_factor!r}"
            )
        if self.mode == CompressionMode.TARGET_SIZE:
            if (
                isinstance(self.target_bytes, bool)
                or not isinstance(self.target_bytes, int)
                or self.target_bytes <= 0
            ):
                raise ValueError("Target size mode requires a positive target_bytes")
        elif self.target_bytes is not None:
            raise ValueError("target_bytes is only valid in target size mode")

    @property
    def dpi(self) -> float:
        return resolution_factor_to_dpi(self.resolution_factor)

    @classmethod
    def from_preset(cls, level: str, grayscale: bool = False) -> "CompressionRequest":
        """Build a request from one of the named presets."""
        if level not in PRESETS:
            available = ", ".join(PRESETS)
            raise ValueError(f"Unknown preset: '{level}'. Available presets: {available}")
        config = PRESETS[level]
        return cls(
            mode=CompressionMode.PRESET,
            quality=config["quality"],
            resolution_factor=dpi_to_resolution_factor(config["dpi"]),
            strip_metadata=config["strip_metadata"],
            grayscale=grayscale,
            preset=level,
        )

    @classmethod
    def custom(
        cls,
        quality: int,
        dpi: float,
        strip_metadata: bool = DEFAULT_STRIP_METADATA,
        grayscale: bool = False,
    ) -> "CompressionRequest":
        return cls(
            mode=CompressionMode.CUSTOM,
            quality=quality,
            resolution_factor=dpi_to_resolution_factor(dpi),
            strip_metadata=strip_metadata,
            grayscale=grayscale,
        )

    @classmethod
    def target_size(
        cls,
        target_bytes: int,
        dpi: float = DEFAULT_CUSTOM_DPI,
        strip_metadata: bool = DEFAULT_STRIP_METADATA,
    ) -> "CompressionRequest":
        """
        Build a target size request.

        The quality is searched for by the engine; the stored value is only the
        midpoint it starts from. Probing always runs in grayscale.
        """
        return cls(
            mode=CompressionMode.TARGET_SIZE,
            quality=50,
            resolution_factor=dpi_to_resolution_factor(dpi),
            strip_metadata=strip_metadata,
            grayscale=True,
            target_bytes=target_bytes,
        )

    def estimate(self, original_size: int) -> int:
        """Predicted output size for UI feedback only."""
        return estimate_compressed_size(original_size, self.quality, self.resolution_factor)


@dataclass
class CompressionResult:
    """Result of compressing one document."""
    data: bytes = field(repr=False)
    original_size: int
    compressed_size: int
    page_count: int
    strategy_used: Strategy
    quality: Optional[int] = None
    target_bytes: Optional[int] = None
    iterations: int = 1

    @property
    def compression_ratio(self) -> float:
        return calculate_compression_ratio(self.original_size, self.compressed_size)

    @property
    def target_achieved(self) -> bool:
        """False only when a target was requested and the result is still above it."""
        if self.target_bytes is None:
            return True
        return self.compressed_size <= self.target_bytes

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "original_size": self.original_size,
            "original_size_formatted": format_size(self.original_size),
            "compressed_size": self.compressed_size,
            "compressed_size_formatted": format_size(self.compressed_size),
            "compression_ratio": round(self.compression_ratio * 100, 1),
            "page_count": self.page_count,
            "strategy_used": self.strategy_used.value,
            "quality": self.quality,
            "target_size": self.target_bytes,
            "target_size_formatted": (
                format_size(self.target_bytes) if self.target_bytes is not None else None
            ),
            "target_achieved": self.target_achieved,
            "iterations": self.iterations,
        }


@dataclass
class BatchItemResult:
    """Outcome for one document of a batch."""
    name: str
    result: Optional[CompressionResult] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.result is not None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "success": self.success,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


@dataclass
class DocumentInfo:
    """Basic facts about a document before compression."""
    size_bytes: int
    page_count: int
    is_encrypted: bool = False

    def estimates(self) -> Dict[str, int]:
        """Predicted size for every preset, keyed by preset name."""
        return {
            level: estimate_compressed_size(
                self.size_bytes,
                config["quality"],
                dpi_to_resolution_factor(config["dpi"]),
            )
            for level, config in PRESETS.items()
        }

    def to_dict(self) -> dict:
        return {
            "size": self.size_bytes,
            "size_formatted": format_size(self.size_bytes),
            "pages": self.page_count,
            "is_encrypted": self.is_encrypted,
            "estimates": {
                level: {"size": size, "size_formatted": format_size(size)}
                for level, size in self.estimates().items()
            },
        }
