import itertools

import numpy as np
import pytest

from chart_lut.patches import PatchSet


@pytest.fixture
def grid_colors() -> np.ndarray:
    """27 well-separated colors on a 3x3x3 grid."""
    levels = [0.1, 0.5, 0.9]
    return np.array(list(itertools.product(levels, repeat=3)))


@pytest.fixture
def chart_pair(grid_colors) -> tuple[PatchSet, PatchSet]:
    """Reference chart and a slightly flatter, brighter camera rendering of it."""
    camera = np.clip(grid_colors * 0.8 + 0.1, 0.0, 1.0)
    return PatchSet(grid_colors), PatchSet(camera)


@pytest.fixture
def corner_patches() -> list[list[float]]:
    return [[0.0, 0.0, 0.0], [0.5, 0.5, 0.5], [1.0, 1.0, 1.0]]
