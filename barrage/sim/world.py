from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field

import numpy as np

from ..config import CraterShape, TerrainConfig
from ..gen.terrain import generate_surface

logger = logging.getLogger("barrage.sim")


@dataclass
class TerrainField:
    """
    Destructible 2D occupancy grid, y pointing down.

    Every column is a single run of ground: solid from `surface[x]` to the
    bottom row, empty above. Carving keeps that true by dropping any material
    left hanging over a hole. Below the bottom row counts as implicit ground
    for callers that ask via `is_ground`; `is_solid` itself is strictly
    bounds-checked.
    """

    cells: np.ndarray  # bool[height, width]
    surface: np.ndarray = field(init=False)  # int32[width], first solid row (height if empty)
    _dirty: set[int] = field(default_factory=set, init=False, repr=False)

    def __post_init__(self) -> None:
        self.cells = np.asarray(self.cells, dtype=bool)
        if self.cells.ndim != 2:
            raise ValueError(f"terrain cells must be 2D, got shape {self.cells.shape}")
        self.surface = self._first_solid(self.cells)

    @property
    def height(self) -> int:
        return int(self.cells.shape[0])

    @property
    def width(self) -> int:
        return int(self.cells.shape[1])

    @classmethod
    def generate(cls, config: TerrainConfig) -> TerrainField:
        surface = generate_surface(config)
        rows = np.arange(config.height, dtype=np.int32)[:, None]
        return cls(cells=rows >= surface[None, :])

    @classmethod
    def flat(cls, width: int, height: int, surface_y: int) -> TerrainField:
        rows = np.arange(height, dtype=np.int32)[:, None]
        return cls(cells=np.broadcast_to(rows >= surface_y, (height, width)).copy())

    @staticmethod
    def _first_solid(cells: np.ndarray) -> np.ndarray:
        has_solid = cells.any(axis=0)
        first = np.argmax(cells, axis=0).astype(np.int32)
        return np.where(has_solid, first, cells.shape[0]).astype(np.int32)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def in_bounds(self, x: float, y: float) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_solid(self, x: float, y: float) -> bool:
        ix, iy = math.floor(x), math.floor(y)
        if not (0 <= ix < self.width and 0 <= iy < self.height):
            return False
        return bool(self.cells[iy, ix])

    def is_ground(self, x: float, y: float) -> bool:
        """Solid, or anywhere below the bottom edge of the field."""
        return y >= self.height or self.is_solid(x, y)

    def solid_mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        """Vectorised `is_solid` over matching arrays of sample points."""
        ix = np.floor(np.asarray(xs, dtype=np.float64)).astype(np.int64)
        iy = np.floor(np.asarray(ys, dtype=np.float64)).astype(np.int64)
        inside = (ix >= 0) & (ix < self.width) & (iy >= 0) & (iy < self.height)
        out = np.zeros(ix.shape, dtype=bool)
        out[inside] = self.cells[iy[inside], ix[inside]]
        return out

    def ground_mask(self, xs: np.ndarray, ys: np.ndarray) -> np.ndarray:
        return self.solid_mask(xs, ys) | (np.asarray(ys) >= self.height)

    def column(self, x: float) -> int:
        return min(self.width - 1, max(0, math.floor(x)))

    def surface_y(self, x: float) -> int:
        return int(self.surface[self.column(x)])

    def surface_normal_angle(self, x: float, span: int = 3) -> float:
        """
        Direction of the upward surface normal at column x, in degrees.

        Flat ground gives -90 (straight up in y-down coordinates).
        """
        ix = self.column(x)
        x0 = max(0, ix - span)
        x1 = min(self.width - 1, ix + span)
        dx = float(x1 - x0) or 1.0
        dy = float(self.surface[x1] - self.surface[x0])
        # Tangent (dx, dy) rotated a quarter turn towards the sky.
        return math.degrees(math.atan2(-dx, dy))

    # ------------------------------------------------------------------
    # Destruction
    # ------------------------------------------------------------------

    def carve(
        self,
        cx: float,
        cy: float,
        radius: float,
        shape: CraterShape = CraterShape.CIRCLE,
        shape_ratio: float = 1.0,
    ) -> frozenset[int]:
        """
        Clear an elliptical crater and return the columns whose cells changed.

        `vertical` stretches the crater downwards by `shape_ratio`, `horizontal`
        stretches it sideways. Cells outside the field are ignored. Material
        left overhanging a cleared cell in a touched column is removed too.
        """
        if radius < 0:
            raise ValueError(f"crater radius must be >= 0, got {radius}")
        if shape_ratio <= 0:
            raise ValueError(f"crater shape ratio must be > 0, got {shape_ratio}")

        rx = ry = float(radius)
        if shape == CraterShape.VERTICAL:
            ry = radius * shape_ratio
        elif shape == CraterShape.HORIZONTAL:
            rx = radius * shape_ratio
        if rx <= 0 or ry <= 0:
            return frozenset()

        x0 = max(0, math.floor(cx - rx))
        x1 = min(self.width - 1, math.ceil(cx + rx))
        y0 = max(0, math.floor(cy - ry))
        y1 = min(self.height - 1, math.ceil(cy + ry))
        if x0 > x1 or y0 > y1:
            return frozenset()

        # Cell centres inside the ellipse.
        ys = np.arange(y0, y1 + 1, dtype=np.float64)[:, None] + 0.5
        xs = np.arange(x0, x1 + 1, dtype=np.float64)[None, :] + 0.5
        inside = ((xs - cx) / rx) ** 2 + ((ys - cy) / ry) ** 2 <= 1.0

        window = self.cells[y0 : y1 + 1, x0 : x1 + 1]
        hit = window & inside
        touched = np.flatnonzero(hit.any(axis=0))
        if touched.size == 0:
            return frozenset()
        window[hit] = False

        cols = touched + x0
        self._settle_columns(cols)

        modified = frozenset(int(c) for c in cols)
        self._dirty |= modified
        logger.debug(f"Crater at ({cx:.1f}, {cy:.1f}) r={radius} {shape.value}: {len(modified)} columns")
        return modified

    def _settle_columns(self, cols: np.ndarray) -> None:
        # Keep only the run below the lowest empty cell of each column.
        sub = self.cells[:, cols]
        empty = ~sub
        has_empty = empty.any(axis=0)
        lowest_empty = self.height - 1 - np.argmax(empty[::-1, :], axis=0)
        new_surface = np.where(has_empty, lowest_empty + 1, 0).astype(np.int32)
        rows = np.arange(self.height, dtype=np.int32)[:, None]
        self.cells[:, cols] = rows >= new_surface[None, :]
        self.surface[cols] = np.where(new_surface >= self.height, self.height, new_surface)

    def take_modified_columns(self) -> frozenset[int]:
        """Columns changed since the last call, for incremental redraw."""
        out = frozenset(self._dirty)
        self._dirty.clear()
        return out
