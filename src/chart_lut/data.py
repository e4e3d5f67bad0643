# src/chart_lut/data.py

from dataclasses import dataclass, field

import numpy as np

# ---------------------------------------------------------------------------
# Universal Constants
# ---------------------------------------------------------------------------

# ITU-R BT.709 luminance coefficients.
LUMA_WEIGHTS = np.array([0.2126, 0.7152, 0.0722])

# Substituted for any patch color that cannot be trusted.
NEUTRAL_GREY = (0.5, 0.5, 0.5)

# Lattice sizes offered by the CLI. The engine itself accepts any size >= 2.
LUT_SIZES = [17, 33, 65]
DEFAULT_LUT_SIZE = 33

# ---------------------------------------------------------------------------
# Chart Layout
# ---------------------------------------------------------------------------
#
# The calibration chart is a 7 x 15 grid. Nine cells carry alignment
# crosshairs instead of color swatches; extraction skips them, so a full
# chart yields 105 - 9 = 96 patches in row-major order.

CHART_ROWS = 7
CHART_COLS = 15

MARKER_POSITIONS = [
    (0, 0), (0, 7), (0, 14),
    (3, 0), (3, 7), (3, 14),
    (6, 0), (6, 7), (6, 14),
]


def is_marker_position(row: int, col: int) -> bool:
    return (row, col) in MARKER_POSITIONS


def patch_positions() -> list[tuple[int, int]]:
    """Row-major (row, col) of every color patch, markers excluded."""
    return [
        (row, col)
        for row in range(CHART_ROWS)
        for col in range(CHART_COLS)
        if not is_marker_position(row, col)
    ]


# ---------------------------------------------------------------------------
# Engine Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class QualityThresholds:
    excellent: float = 0.05  # CV < 5%  -> excellent patch consistency
    good: float = 0.15  # CV < 15% -> good patch consistency
    outlier_threshold: float = 2.0  # MAD units
    min_samples: int = 3  # below this, outlier rejection falls back to all samples


@dataclass(frozen=True)
class RangeThresholds:
    percentile_low: float = 0.05  # robust bounds at the 5th / 95th percentile
    percentile_high: float = 0.95
    good_range: float = 0.3
    full_range: float = 0.8
    centre_low: float = 0.2
    centre_high: float = 0.8
    clip_low: float = 0.02
    clip_high: float = 0.98
    clip_fraction: float = 0.05
    uniformity_reference: float = 0.1
    uniformity_min: float = 0.5
    histogram_bins: int = 50
    quality_bins: int = 10


@dataclass(frozen=True)
class InterpolationSettings:
    neighbors: int = 4
    exact_hit_weight: float = 1e6
    color_weight: float = 1.0
    luminance_weight: float = 2.0
    luminance_floor: float = 0.001  # skip gain correction below this camera luminance
    span_floor: float = 0.001


@dataclass(frozen=True)
class EngineConfig:
    quality: QualityThresholds = field(default_factory=QualityThresholds)
    range: RangeThresholds = field(default_factory=RangeThresholds)
    interpolation: InterpolationSettings = field(default_factory=InterpolationSettings)
    # Lattice nodes interpolated per vectorised batch.
    chunk_size: int = 1000


DEFAULT_CONFIG = EngineConfig()


# ---------------------------------------------------------------------------
# Startup Validation
# ---------------------------------------------------------------------------


def validate_config(config: EngineConfig) -> None:
    """
    Sanity-checks threshold ordering and counts.
    Runs on DEFAULT_CONFIG at import so a bad edit fails before generation.
    """
    errors = []
    q = config.quality
    r = config.range
    i = config.interpolation

    if not 0 < q.excellent < q.good:
        errors.append(f"  quality: need 0 < excellent ({q.excellent}) < good ({q.good})")
    if q.min_samples < 1:
        errors.append(f"  quality: min_samples must be >= 1, got {q.min_samples}")
    if not 0 <= r.percentile_low < r.percentile_high <= 1:
        errors.append("  range: need 0 <= percentile_low < percentile_high <= 1")
    if not r.centre_low < r.centre_high:
        errors.append("  range: centre_low must be below centre_high")
    if not r.clip_low < r.clip_high:
        errors.append("  range: clip_low must be below clip_high")
    if r.histogram_bins < 1 or r.quality_bins < 1:
        errors.append("  range: histogram bin counts must be >= 1")
    if i.neighbors < 1:
        errors.append(f"  interpolation: neighbors must be >= 1, got {i.neighbors}")
    if i.span_floor <= 0 or i.luminance_floor <= 0:
        errors.append("  interpolation: floors must be positive")
    if config.chunk_size < 1:
        errors.append(f"  chunk_size must be >= 1, got {config.chunk_size}")

    if errors:
        raise ValueError(
            "Invalid engine configuration:\n\n" + "\n".join(errors)
        )


validate_config(DEFAULT_CONFIG)
