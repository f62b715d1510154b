"""Compression presets and engine tunables."""

from typing import Dict

# Documents at or below this size only get the structural repack
RASTER_THRESHOLD_BYTES = 100 * 1024

# Target-size search bounds
TARGET_QUALITY_MIN = 5
TARGET_QUALITY_MAX = 95
TARGET_MAX_ATTEMPTS = 6

# Documents use 72 units per inch
POINTS_PER_INCH = 72

PRESETS: Dict[str, dict] = {
    "low": {
        "label": "Low",
        "description": "Minimal compression, near-original quality",
        "quality": 80,
        "dpi": 200,
        "strip_metadata": False,
    },
    "medium": {
        "label": "Medium",
        "description": "Balanced quality and file size",
        "quality": 50,
        "dpi": 150,
        "strip_metadata": True,
    },
    "high": {
        "label": "High",
        "description": "Significant size reduction, good quality",
        "quality": 30,
        "dpi": 120,
        "strip_metadata": True,
    },
    "maximum": {
        "label": "Maximum",
        "description": "Smallest file size, aggressive compression",
        "quality": 12,
        "dpi": 72,
        "strip_metadata": True,
    },
}

DPI_OPTIONS = (50, 72, 96, 150, 200, 300)

DEFAULT_PRESET = "medium"
DEFAULT_CUSTOM_QUALITY = 65
DEFAULT_CUSTOM_DPI = 200
DEFAULT_STRIP_METADATA = True
DEFAULT_TARGET_SIZE = 2 * 1024 * 1024
