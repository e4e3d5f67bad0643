# src/chart_lut/interpolation.py
#
# Scattered-data interpolation from chart correspondences.
#
# Every strategy answers the same question: given an input color X and the
# paired (reference[i] -> camera[i]) patches, what camera color does X map
# to? They differ in the space the neighbours are searched in and in how the
# neighbours are weighted.
#
# Neighbour search is an exact k-nearest scan over all patches, done for a
# whole batch of inputs at once. A stable sort keeps ties in patch order so
# results do not depend on batch size.

from enum import Enum

import numpy as np

from .colorspace import from_lab, luminance, to_lab
from .data import DEFAULT_CONFIG, EngineConfig
from .errors import (
    InsufficientSamplesError,
    MissingRangeDataError,
    UnknownStrategyError,
)
from .range_analysis import RangeMapping


# ---------------------------------------------------------------------------
# Strategy names
# ---------------------------------------------------------------------------


class Strategy(str, Enum):
    STANDARD = "standard"
    RANGE_AWARE = "rangeAware"
    TETRAHEDRAL = "tetrahedral"
    PERCEPTUAL = "perceptual"

    @classmethod
    def parse(cls, value) -> "Strategy":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            known = ", ".join(s.value for s in cls)
            raise UnknownStrategyError(
                f"Unknown LUT algorithm: {value!r} (expected one of: {known})"
            ) from None

    @property
    def label(self) -> str:
        return STRATEGY_INFO[self]["name"]

    @property
    def description(self) -> str:
        return STRATEGY_INFO[self]["description"]

    @property
    def needs_range_mapping(self) -> bool:
        return self is Strategy.RANGE_AWARE


STRATEGY_INFO = {
    Strategy.STANDARD: {
        "name": "Standard Color Matching",
        "description": "Inverse-distance weighting of the 4 nearest patches in RGB",
    },
    Strategy.RANGE_AWARE: {
        "name": "Dynamic Range Optimization",
        "description": "Luminance-aware neighbour search with per-patch gain correction",
    },
    Strategy.TETRAHEDRAL: {
        "name": "Tetrahedral Interpolation",
        "description": "Approximate barycentric weights over the 4 nearest patches",
    },
    Strategy.PERCEPTUAL: {
        "name": "Perceptual Lab Space",
        "description": "Inverse-distance weighting performed in CIE Lab",
    },
}


# ---------------------------------------------------------------------------
# Shared numerics
# ---------------------------------------------------------------------------


def pairwise_distances(points: np.ndarray, samples: np.ndarray) -> np.ndarray:
    """(M, 3) x (N, 3) -> (M, N) Euclidean distances."""
    diff = points[:, None, :] - samples[None, :, :]
    return np.sqrt(np.sum(diff * diff, axis=-1))


def nearest(distances: np.ndarray, k: int) -> tuple[np.ndarray, np.ndarray]:
    """Indices and distances of the k smallest entries per row, ascending."""
    order = np.argsort(distances, axis=1, kind="stable")[:, :k]
    return order, np.take_along_axis(distances, order, axis=1)


def inverse_square_weights(distances: np.ndarray, exact_hit_weight: float) -> np.ndarray:
    """1 / d^2, with a fixed large weight standing in for d == 0."""
    hit = distances == 0
    safe = np.where(hit, 1.0, distances)
    return np.where(hit, exact_hit_weight, 1.0 / (safe * safe))


def weighted_average(values: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """(M, k, 3) values, (M, k) weights -> (M, 3)."""
    return np.sum(values * weights[..., None], axis=1) / np.sum(weights, axis=1)[:, None]


# ---------------------------------------------------------------------------
# Interpolators
# ---------------------------------------------------------------------------


class Interpolator:
    """
    Base class. ``interpolate`` takes an (M, 3) batch of input colors and
    returns the (M, 3) interpolated outputs; ``__call__`` handles one color.
    """

    strategy: Strategy

    def __init__(self, ref_colors, cam_colors, config: EngineConfig = DEFAULT_CONFIG):
        self.ref = np.asarray(ref_colors, dtype=np.float64).reshape(-1, 3)
        self.cam = np.asarray(cam_colors, dtype=np.float64).reshape(-1, 3)
        if len(self.ref) == 0 or len(self.ref) != len(self.cam):
            raise InsufficientSamplesError(
                f"Need matching non-empty patch sets, got {len(self.ref)} reference "
                f"and {len(self.cam)} camera colors."
            )
        self.config = config
        self.settings = config.interpolation
        # k-NN degrades gracefully to every patch when the chart is tiny.
        self.k = min(self.settings.neighbors, len(self.ref))

    def interpolate(self, colors) -> np.ndarray:
        points = np.asarray(colors, dtype=np.float64).reshape(-1, 3)
        return self._interpolate(points)

    def __call__(self, color) -> np.ndarray:
        return self.interpolate(color)[0]

    def _interpolate(self, points: np.ndarray) -> np.ndarray:
        raise NotImplementedError


class StandardInterpolator(Interpolator):
    strategy = Strategy.STANDARD

    def _interpolate(self, points):
        idx, dist = nearest(pairwise_distances(points, self.ref), self.k)
        weights = inverse_square_weights(dist, self.settings.exact_hit_weight)
        return np.clip(weighted_average(self.cam[idx], weights), 0.0, 1.0)


class RangeAwareInterpolator(Interpolator):
    """
    Picks neighbours by color distance plus the gap between the input
    luminance and each reference patch's luminance. The input luminance is
    mapped into camera space with the range mapping, and each neighbour's
    camera color is pulled to that target before averaging.
    """

    strategy = Strategy.RANGE_AWARE

    def __init__(
        self,
        ref_colors,
        cam_colors,
        range_mapping: RangeMapping | None,
        config: EngineConfig = DEFAULT_CONFIG,
    ):
        if range_mapping is None:
            raise MissingRangeDataError(
                "Range data required for range-aware LUT generation."
            )
        super().__init__(ref_colors, cam_colors, config)
        self.mapping = range_mapping
        self.ref_lum = np.asarray(range_mapping.ref_luminances, dtype=np.float64).ravel()
        self.cam_lum = np.asarray(range_mapping.cam_luminances, dtype=np.float64).ravel()
        if len(self.ref_lum) != len(self.ref) or len(self.cam_lum) != len(self.cam):
            raise InsufficientSamplesError(
                f"Range mapping covers {len(self.cam_lum)} patches, "
                f"but {len(self.cam)} camera colors were given."
            )

    def _interpolate(self, points):
        s = self.settings
        input_lum = luminance(points)
        target = input_lum * self.mapping.scale + self.mapping.offset

        metric = (
            pairwise_distances(points, self.ref) * s.color_weight
            + np.abs(input_lum[:, None] - self.ref_lum[None, :]) * s.luminance_weight
        )
        idx, dist = nearest(metric, self.k)
        weights = inverse_square_weights(dist, s.exact_hit_weight)

        # Per-neighbour gain so every candidate lands on the target luminance.
        # Near-black patches carry no usable gain and are left alone.
        colors = self.cam[idx]
        cand_lum = self.cam_lum[idx]
        usable = cand_lum > s.luminance_floor
        gain = target[:, None] / np.where(usable, cand_lum, 1.0)
        corrected = np.where(
            usable[..., None], np.clip(colors * gain[..., None], 0.0, 1.0), colors
        )
        return np.clip(weighted_average(corrected, weights), 0.0, 1.0)


class TetrahedralInterpolator(Interpolator):
    """
    Approximate tetrahedral interpolation.

    Weights are (total - d_i) / (total * 3) over the 4 nearest patches, a
    normalised inverse-total-distance scheme. This does not solve for true
    barycentric coordinates of an enclosing simplex; outputs are kept
    identical to that approximation on purpose.
    """

    strategy = Strategy.TETRAHEDRAL

    def _interpolate(self, points):
        idx, dist = nearest(pairwise_distances(points, self.ref), self.k)
        total = np.sum(dist, axis=1, keepdims=True)

        exact = np.zeros(self.k)
        exact[0] = 1.0
        flat = total == 0
        weights = np.where(
            flat,
            exact[None, :],
            (total - dist) / np.where(flat, 1.0, total * 3),
        )

        summed = np.sum(self.cam[idx] * weights[..., None], axis=1)
        norm = np.maximum(np.sum(weights, axis=1), 0.001)[:, None]
        return np.clip(summed / norm, 0.0, 1.0)


class PerceptualInterpolator(Interpolator):
    """Standard inverse-distance weighting, carried out in CIE Lab."""

    strategy = Strategy.PERCEPTUAL

    def __init__(self, ref_colors, cam_colors, config: EngineConfig = DEFAULT_CONFIG):
        super().__init__(ref_colors, cam_colors, config)
        self.ref_lab = to_lab(self.ref)
        self.cam_lab = to_lab(self.cam)

    def _interpolate(self, points):
        lab = to_lab(points)
        idx, dist = nearest(pairwise_distances(lab, self.ref_lab), self.k)
        weights = inverse_square_weights(dist, self.settings.exact_hit_weight)
        return from_lab(weighted_average(self.cam_lab[idx], weights))


_INTERPOLATORS = {
    Strategy.STANDARD: StandardInterpolator,
    Strategy.RANGE_AWARE: RangeAwareInterpolator,
    Strategy.TETRAHEDRAL: TetrahedralInterpolator,
    Strategy.PERCEPTUAL: PerceptualInterpolator,
}


def create_interpolator(
    strategy,
    ref_colors,
    cam_colors,
    range_mapping: RangeMapping | None = None,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Interpolator:
    """Resolves ``strategy`` (name or Strategy) and builds its interpolator."""
    strategy = Strategy.parse(strategy)
    cls = _INTERPOLATORS[strategy]
    if strategy.needs_range_mapping:
        return cls(ref_colors, cam_colors, range_mapping, config)
    return cls(ref_colors, cam_colors, config)
