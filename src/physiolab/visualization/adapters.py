"""
Result/Visualization Adapters

Shape engine output into the sample formats the rendering layer consumes:

- Heatmap samples ``{x, y, intensity}`` with x (lateral) and y (depth)
  normalized to [0, 1].
- Depth samples ``{depth, relative_intensity}`` for 1D charts.
- RGBA image buffers (height x width x 4, uint8) for grayscale slices.

Nothing here draws pixels; drawing belongs to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import numpy as np


@dataclass(frozen=True)
class HeatmapSample:
    """One cell of a 2D heatmap (normalized coordinates)."""

    x: float
    y: float
    intensity: float


@dataclass(frozen=True)
class DepthSample:
    """Relative beam intensity at a depth (cm)."""

    depth: float
    relative_intensity: float


@dataclass(frozen=True)
class TemperatureSample:
    """Temperature at a depth (cm) or elapsed time (min), depending on the series."""

    position: float
    temperature_c: float


def grid_to_heatmap_samples(grid: np.ndarray) -> tuple[HeatmapSample, ...]:
    """
    Flatten a (rows=depth, columns=lateral) grid into heatmap samples.

    Samples are emitted column by column, each column from the surface down.

    Parameters
    ----------
    grid : np.ndarray
        2D intensity grid with shape (n_rows, n_cols), values in [0, 1].

    Returns
    -------
    tuple[HeatmapSample, ...]
        n_rows * n_cols samples.

    Raises
    ------
    ValueError
        If ``grid`` is not two-dimensional.
    """
    grid = np.asarray(grid, dtype=np.float64)
    if grid.ndim != 2:
        raise ValueError(f"grid must be 2D, got shape {grid.shape}")

    n_rows, n_cols = grid.shape
    xs = np.linspace(0.0, 1.0, n_cols) if n_cols > 1 else np.zeros(1)
    ys = np.linspace(0.0, 1.0, n_rows) if n_rows > 1 else np.zeros(1)

    return tuple(
        HeatmapSample(x=float(xs[col]), y=float(ys[row]), intensity=float(grid[row, col]))
        for col in range(n_cols)
        for row in range(n_rows)
    )


def depth_profile_samples(
    depths: Iterable[float],
    relative_intensities: Iterable[float],
) -> tuple[DepthSample, ...]:
    """Pair depths with relative intensities."""
    return tuple(
        DepthSample(depth=float(d), relative_intensity=float(i))
        for d, i in zip(depths, relative_intensities)
    )


def temperature_samples(
    positions: Iterable[float],
    temperatures: Iterable[float],
) -> tuple[TemperatureSample, ...]:
    return tuple(
        TemperatureSample(position=float(p), temperature_c=float(t))
        for p, t in zip(positions, temperatures)
    )


def grayscale_to_rgba(gray: np.ndarray) -> np.ndarray:
    """
    Expand an 8-bit grayscale image into an opaque RGBA buffer.

    Parameters
    ----------
    gray : np.ndarray
        uint8 image with shape (height, width).

    Returns
    -------
    np.ndarray
        uint8 buffer with shape (height, width, 4); alpha is 255.
    """
    gray = np.asarray(gray, dtype=np.uint8)
    if gray.ndim != 2:
        raise ValueError(f"gray must be 2D, got shape {gray.shape}")

    rgba = np.empty(gray.shape + (4,), dtype=np.uint8)
    rgba[..., 0] = gray
    rgba[..., 1] = gray
    rgba[..., 2] = gray
    rgba[..., 3] = 255
    return rgba
