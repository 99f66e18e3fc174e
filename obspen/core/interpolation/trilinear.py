"""
Trilinear interpolation over 3D grids of scalar or vector samples.

A grid is a tensor of shape [size_x, size_y, size_z] (scalar samples) or
[size_x, size_y, size_z, C] (vector samples, C=3 for gradients). The same
code path serves both: the trailing sample shape is carried through the
blend, and the zero returned for out-of-bounds queries has that shape.

Only coordinates strictly inside (0, size - 1) on every axis are
interpolated. Everything else, including the outermost shell of samples,
evaluates to zero. The 8-sample stencil therefore never needs clamping.
"""

import math
from typing import List, Sequence, Tuple

import torch


def in_bound(val: float, size: int) -> bool:
    """Check that a fractional index lies strictly inside (0, size - 1)."""
    return 0.0 < val < size - 1


def in_bounds_mask(arr_points: torch.Tensor, shape: Sequence[int]) -> torch.Tensor:
    """
    Vectorized form of :func:`in_bound` over all three axes.

    Args:
        arr_points: Fractional indices of shape (..., 3)
        shape: Grid shape, only the first three entries are used

    Returns:
        Boolean tensor of shape (...), True where every axis is inside
    """
    sizes = torch.tensor(list(shape[:3]), dtype=arr_points.dtype, device=arr_points.device)
    return ((arr_points > 0) & (arr_points < sizes - 1)).all(dim=-1)


def zero_value(grid: torch.Tensor) -> torch.Tensor:
    """Additive identity for the sample type stored in ``grid``."""
    return grid.new_zeros(grid.shape[3:])


def interpolate3d(grid: torch.Tensor, arr_point: torch.Tensor) -> torch.Tensor:
    """
    Interpolate a grid at a single fractional index.

    Args:
        grid: Grid of shape [X, Y, Z] or [X, Y, Z, C]
        arr_point: Fractional index [x, y, z]

    Returns:
        Interpolated sample with shape grid.shape[3:], or zeros if the
        point is outside the strict interior
    """
    x, y, z = (float(v) for v in arr_point)
    if not (in_bound(x, grid.shape[0]) and
            in_bound(y, grid.shape[1]) and
            in_bound(z, grid.shape[2])):
        return zero_value(grid)

    x0 = int(math.floor(x))
    x1 = x0 + 1
    y0 = int(math.floor(y))
    y1 = y0 + 1
    z0 = int(math.floor(z))
    z1 = z0 + 1

    # kept as tensors so gradients flow back to arr_point
    xd = arr_point[0] - x0
    xdm = x1 - arr_point[0]
    yd = arr_point[1] - y0
    ydm = y1 - arr_point[1]
    zd = arr_point[2] - z0
    zdm = z1 - arr_point[2]

    c00 = xdm * grid[x0, y0, z0] + xd * grid[x1, y0, z0]
    c10 = xdm * grid[x0, y1, z0] + xd * grid[x1, y1, z0]
    c01 = xdm * grid[x0, y0, z1] + xd * grid[x1, y0, z1]
    c11 = xdm * grid[x0, y1, z1] + xd * grid[x1, y1, z1]

    c0 = ydm * c00 + yd * c10
    c1 = ydm * c01 + yd * c11

    return zdm * c0 + zd * c1


def interpolate3d_batch(grid: torch.Tensor, arr_points: torch.Tensor) -> torch.Tensor:
    """
    Interpolate a grid at many fractional indices at once.

    Gives the same result as calling :func:`interpolate3d` on every point.

    Args:
        grid: Grid of shape [X, Y, Z] or [X, Y, Z, C]
        arr_points: Fractional indices of shape (..., 3)

    Returns:
        Tensor of shape (...) + grid.shape[3:]
    """
    lead_shape = arr_points.shape[:-1]
    sample_shape = grid.shape[3:]
    flat = arr_points.reshape(-1, 3)

    if min(grid.shape[:3]) < 2:
        # no interior at all
        return grid.new_zeros(lead_shape + sample_shape)

    inside = in_bounds_mask(flat, grid.shape)

    # Outside points are moved to index 0 so their stencil stays addressable,
    # the result is discarded below.
    safe = torch.where(inside.unsqueeze(-1), flat, torch.zeros_like(flat))
    lower = torch.floor(safe).long()
    upper = lower + 1
    x0, y0, z0 = lower.unbind(-1)
    x1, y1, z1 = upper.unbind(-1)

    # broadcast per-point weights over the sample dimensions
    def expand(t: torch.Tensor) -> torch.Tensor:
        return t.reshape(t.shape + (1,) * len(sample_shape))

    xd = expand(safe[:, 0] - x0.to(safe.dtype))
    xdm = expand(x1.to(safe.dtype) - safe[:, 0])
    yd = expand(safe[:, 1] - y0.to(safe.dtype))
    ydm = expand(y1.to(safe.dtype) - safe[:, 1])
    zd = expand(safe[:, 2] - z0.to(safe.dtype))
    zdm = expand(z1.to(safe.dtype) - safe[:, 2])

    c00 = xdm * grid[x0, y0, z0] + xd * grid[x1, y0, z0]
    c10 = xdm * grid[x0, y1, z0] + xd * grid[x1, y1, z0]
    c01 = xdm * grid[x0, y0, z1] + xd * grid[x1, y0, z1]
    c11 = xdm * grid[x0, y1, z1] + xd * grid[x1, y1, z1]

    c0 = ydm * c00 + yd * c10
    c1 = ydm * c01 + yd * c11

    values = zdm * c0 + zd * c1
    values = torch.where(expand(inside), values, torch.zeros_like(values))

    return values.reshape(lead_shape + sample_shape)


def trilinear_weights(
    arr_point: torch.Tensor, shape: Sequence[int]
) -> Tuple[List[Tuple[int, int, int]], torch.Tensor]:
    """
    Corner indices and blend weights used for a fractional index.

    The interpolated value equals sum(w * grid[corner]) over the returned
    pairs. Each weight is the product of one per-axis factor (d or 1 - d).

    Args:
        arr_point: Fractional index [x, y, z]
        shape: Grid shape

    Returns:
        Tuple of (corners, weights) with 8 corners and a weight tensor of shape (8,)
    """
    coords = [float(v) for v in arr_point]
    if not all(in_bound(c, s) for c, s in zip(coords, shape[:3])):
        raise ValueError(f"Point {coords} is outside the interior of a grid of shape {list(shape[:3])}")

    lows = [int(math.floor(c)) for c in coords]
    factors = []
    for axis, low in enumerate(lows):
        factors.append(((low + 1) - arr_point[axis], arr_point[axis] - low))

    corners = []
    weights = []
    for i in (0, 1):
        for j in (0, 1):
            for k in (0, 1):
                corners.append((lows[0] + i, lows[1] + j, lows[2] + k))
                weights.append(factors[0][i] * factors[1][j] * factors[2][k])

    return corners, torch.stack(weights)


class TrilinearInterpolator:
    """
    Trilinear interpolator bound to one grid of samples.

    Unlike clamping interpolators, points outside the strict interior of
    the grid evaluate to zero rather than to the nearest edge value.
    """
    def __init__(self, grid: torch.Tensor):
        """
        Args:
            grid: A 3D tensor [X, Y, Z] of scalars or a 4D tensor
                  [X, Y, Z, C] of C-component vectors
        """
        if grid.dim() not in (3, 4):
            raise ValueError(f"Grid must be 3D or 4D, got shape {tuple(grid.shape)}")

        self.grid = grid
        self.shape = list(grid.shape[:3])
        self.sample_shape = tuple(grid.shape[3:])

    def evaluate(self, arr_point: torch.Tensor) -> torch.Tensor:
        """Interpolate at a single fractional index [x, y, z]."""
        return interpolate3d(self.grid, arr_point)

    def evaluate_batch(self, arr_points: torch.Tensor) -> torch.Tensor:
        """Interpolate at fractional indices of shape (..., 3)."""
        return interpolate3d_batch(self.grid, arr_points)

    def __call__(self, arr_points: torch.Tensor) -> torch.Tensor:
        if arr_points.dim() == 1:
            return self.evaluate(arr_points)
        return self.evaluate_batch(arr_points)
