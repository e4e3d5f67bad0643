# src/chart_lut/engine.py

import logging
import operator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import colour
import numpy as np

from .colorspace import delta_e, to_lab
from .cube import write_cube
from .data import DEFAULT_CONFIG, EngineConfig
from .errors import (
    InsufficientSamplesError,
    InvalidSizeError,
    MissingRangeDataError,
)
from .interpolation import Strategy, create_interpolator
from .patches import PatchSet, sanitize_colors
from .range_analysis import RangeAnalyzer, RangeMapping

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# LUT value
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Lut:
    """
    A size^3 lattice of output colors.

    ``table`` is flat, (size^3, 3), in .cube order: red varies fastest, then
    green, then blue. Node (r, g, b) sits at index r + size*g + size^2*b and
    stores the output for input (r, g, b) / (size - 1).
    """

    size: int
    table: np.ndarray
    strategy: Strategy
    title: str = "Color Chart Calibration"

    def __len__(self) -> int:
        return len(self.table)

    def node(self, r: int, g: int, b: int) -> np.ndarray:
        return self.table[r + self.size * g + self.size * self.size * b]

    def lattice(self) -> np.ndarray:
        """(size, size, size, 3) view indexed [r, g, b]."""
        s = self.size
        return self.table.reshape(s, s, s, 3).transpose(2, 1, 0, 3)

    def to_lut3d(self, comments: list[str] | None = None) -> colour.LUT3D:
        """colour-science view of the lattice, ready for colour.write_LUT."""
        lut = colour.LUT3D(table=np.array(self.lattice()), name=self.title)
        lut.comments = list(comments or [])
        return lut

    def apply(self, rgb) -> np.ndarray:
        """Trilinear lookup of arbitrary colors (shape (..., 3)) through the LUT."""
        rgb = np.clip(np.asarray(rgb, dtype=np.float64), 0.0, 1.0)
        return np.asarray(self.to_lut3d().apply(rgb), dtype=np.float64)


def lattice_inputs(size: int, start: int = 0, stop: int | None = None) -> np.ndarray:
    """Input colors of lattice nodes [start, stop) in .cube order."""
    stop = size**3 if stop is None else stop
    index = np.arange(start, stop)
    r = index % size
    g = (index // size) % size
    b = index // (size * size)
    return np.column_stack([r, g, b]) / (size - 1)


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------


def _colors_of(patches) -> list:
    if isinstance(patches, PatchSet):
        return patches.colors
    if patches is None:
        return []
    return list(patches)


class LutBuilder:
    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config

    def build(
        self,
        strategy,
        ref_colors,
        cam_colors,
        size: int,
        range_mapping: RangeMapping | None = None,
        title: str | None = None,
    ) -> Lut:
        """
        Interpolates every node of a size^3 lattice.

        Contract checks run before any sample is read, in this order:
        strategy name, range mapping presence, sample pairing, lattice size.
        A failure aborts the whole build; no partial LUT is returned.
        """
        strategy = Strategy.parse(strategy)
        if strategy.needs_range_mapping and range_mapping is None:
            raise MissingRangeDataError(
                "Range data required for range-aware LUT generation."
            )

        ref = _colors_of(ref_colors)
        cam = _colors_of(cam_colors)
        if len(ref) == 0 or len(ref) != len(cam):
            raise InsufficientSamplesError(
                f"Reference and camera patch sets must be non-empty and equal in "
                f"length (got {len(ref)} and {len(cam)})."
            )
        if strategy.needs_range_mapping and len(range_mapping.cam_luminances) != len(cam):
            raise InsufficientSamplesError(
                f"Range mapping covers {len(range_mapping.cam_luminances)} patches, "
                f"but {len(cam)} camera colors were given."
            )

        try:
            size = operator.index(size)
        except TypeError:
            raise InvalidSizeError(f"LUT size must be an integer, got {size!r}") from None
        if size < 2:
            raise InvalidSizeError(f"LUT size must be at least 2, got {size}")

        interpolator = create_interpolator(
            strategy,
            sanitize_colors(ref, "reference"),
            sanitize_colors(cam, "camera"),
            range_mapping,
            self.config,
        )

        logger.info(
            "Generating %d^3 LUT using %s algorithm from %d patches",
            size,
            strategy.label,
            len(ref),
        )

        # Nodes are independent: each chunk writes its own disjoint slice.
        total = size**3
        table = np.empty((total, 3), dtype=np.float64)
        chunk = self.config.chunk_size
        for start in range(0, total, chunk):
            stop = min(start + chunk, total)
            table[start:stop] = interpolator.interpolate(lattice_inputs(size, start, stop))
            logger.debug("Interpolated nodes %d-%d of %d", start, stop, total)

        table.flags.writeable = False
        return Lut(
            size=size,
            table=table,
            strategy=strategy,
            title=title or "Color Chart Calibration",
        )


# ---------------------------------------------------------------------------
# Fit evaluation
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class FitReport:
    """CIE76 error between LUT(reference patch) and the camera patch."""

    delta_e: np.ndarray
    mean_delta_e: float
    max_delta_e: float


def evaluate_fit(lut: Lut, ref_colors, cam_colors) -> FitReport:
    ref = sanitize_colors(_colors_of(ref_colors), "reference")
    cam = sanitize_colors(_colors_of(cam_colors), "camera")
    if len(ref) == 0 or len(ref) != len(cam):
        raise InsufficientSamplesError("Fit evaluation needs paired, non-empty patch sets.")
    errors = delta_e(to_lab(lut.apply(ref)), to_lab(cam))
    return FitReport(
        delta_e=errors,
        mean_delta_e=float(np.mean(errors)),
        max_delta_e=float(np.max(errors)),
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class GenerationResult:
    lut: Lut
    range_mapping: RangeMapping | None
    fit: FitReport
    output_path: Path | None = None


def generate_lut(
    reference: PatchSet,
    camera: PatchSet,
    strategy,
    cube_size: int,
    output_filename: str | None = None,
    title: str | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> GenerationResult:
    strategy = Strategy.parse(strategy)
    if len(reference) != len(camera):
        raise InsufficientSamplesError(
            f"Reference has {len(reference)} patches, camera has {len(camera)}."
        )
    logger.info(
        "Starting LUT generation: %s mode, %d^3 resolution, %d patches "
        "(%d markers skipped)",
        strategy.value,
        cube_size,
        len(reference),
        reference.skipped,
    )

    # ------------------------------------------------------------------
    # 1. Range analysis (range-aware only)
    # ------------------------------------------------------------------
    mapping = None
    if strategy.needs_range_mapping:
        analyzer = RangeAnalyzer(config)
        mapping = analyzer.map_ranges(
            analyzer.analyze(reference), analyzer.analyze(camera)
        )

    # ------------------------------------------------------------------
    # 2. Lattice interpolation
    # ------------------------------------------------------------------
    lut = LutBuilder(config).build(
        strategy, reference, camera, cube_size, mapping, title=title
    )

    # ------------------------------------------------------------------
    # 3. How well does the lattice reproduce the chart itself?
    # ------------------------------------------------------------------
    fit = evaluate_fit(lut, reference, camera)
    logger.info(
        "Chart fit: mean dE %.3f, max dE %.3f", fit.mean_delta_e, fit.max_delta_e
    )

    # ------------------------------------------------------------------
    # 4. Optional .cube file
    # ------------------------------------------------------------------
    output_path = None
    if output_filename:
        output_path = write_cube(
            lut,
            output_filename,
            comments=build_comments(lut, reference, camera, mapping, fit, config),
        )

    return GenerationResult(lut=lut, range_mapping=mapping, fit=fit, output_path=output_path)


def build_comments(
    lut: Lut,
    reference: PatchSet,
    camera: PatchSet,
    mapping: RangeMapping | None,
    fit: FitReport,
    config: EngineConfig = DEFAULT_CONFIG,
) -> list[str]:
    """Header lines written as '# ...' at the top of the .cube file."""
    ref_q = reference.summary(config)
    cam_q = camera.summary(config)
    comments = [
        f"Generated   : {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "Tool        : chart-lut",
        f"Cube size   : {lut.size}x{lut.size}x{lut.size}",
        f"Algorithm   : {lut.strategy.label} ({lut.strategy.value})",
        "",
        f"Patches     : {len(reference)}  ({reference.skipped} marker cells skipped)",
        f"  Reference : {ref_q['good_percent']}% good, avg CV {ref_q['avg_cv']:.4f}",
        f"  Camera    : {cam_q['good_percent']}% good, avg CV {cam_q['avg_cv']:.4f}",
        f"Chart fit   : mean dE {fit.mean_delta_e:.3f}, max dE {fit.max_delta_e:.3f}",
    ]
    if mapping is not None:
        comments += [
            "",
            "Range Mapping:",
            f"  Scale     : {mapping.scale:.4f}",
            f"  Offset    : {mapping.offset:.4f}",
            f"  Compat.   : {mapping.compatibility_score:.2f}",
            f"  Suggested : {mapping.recommended_mode}",
        ]
    return comments
