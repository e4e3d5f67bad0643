# src/chart_lut/cube.py
#
# .cube I/O goes through colour-science. colour.LUT3D stores its table
# indexed [r, g, b]; the Iridas writer emits it red-fastest, which is the
# order of the engine's flat table.

import logging
from pathlib import Path

import colour
import numpy as np

logger = logging.getLogger(__name__)


def write_cube(lut, path, comments: list[str] | None = None) -> Path:
    """Writes a Lut to ``path``. Returns the path written."""
    output_path = Path(path)
    colour.write_LUT(lut.to_lut3d(comments), str(output_path), method="Iridas Cube")
    logger.info("Written LUT to %s", output_path)
    return output_path


def read_cube(path) -> dict:
    """
    Parses a 3D .cube file.
    Returns {"title", "size", "comments", "table"}, with the table flat,
    (size^3, 3), in file order.
    """
    try:
        lut = colour.read_LUT(str(path), method="Iridas Cube")
    except (IndexError, TypeError, ValueError) as e:
        raise ValueError(f"{path}: not a readable .cube file ({e})") from e
    if not isinstance(lut, colour.LUT3D):
        raise ValueError(f"{path}: expected a 3D LUT, got {type(lut).__name__}")

    size = lut.table.shape[0]
    table = np.asarray(lut.table, dtype=np.float64).transpose(2, 1, 0, 3).reshape(-1, 3)
    return {
        "title": lut.name,
        "size": size,
        "comments": list(lut.comments or []),
        "table": table,
    }
