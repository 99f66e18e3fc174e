"""
World to grid-index coordinate mapping.

Coordinate Convention:
- Points are in XYZ order [x, y, z] with 0=x, 1=y, 2=z
- Grid samples are indexed as grid[x, y, z]
- A fractional index of (1.5, 0.0, 2.0) lies halfway between samples
  [1, 0, 2] and [2, 0, 2]
"""

from typing import Optional, Sequence, Union

import numpy as np
import torch

PointLike = Union[torch.Tensor, np.ndarray, Sequence[float]]


def as_points(
    point: PointLike,
    dtype: torch.dtype = torch.float64,
    device: Optional[torch.device] = None,
) -> torch.Tensor:
    """
    Convert a point or a batch of points to a tensor of shape (..., 3).

    Args:
        point: A single point (3,) or a batch (..., 3)
        dtype: Target dtype
        device: Target device

    Returns:
        The points as a tensor on the requested dtype/device
    """
    tensor = torch.as_tensor(point, dtype=dtype, device=device)
    if tensor.dim() == 0 or tensor.shape[-1] != 3:
        raise ValueError(f"Points must have a trailing dimension of 3, got shape {tuple(tensor.shape)}")
    return tensor


def point_to_array(point: torch.Tensor, start: torch.Tensor, scale: torch.Tensor) -> torch.Tensor:
    """
    Map world-space points to fractional grid-index coordinates.

    Computes (point - start) / scale elementwise, broadcasting over any
    leading dimensions of ``point``. Scale components must be non-zero.

    Args:
        point: World-space point(s), shape (3,) or (..., 3)
        start: World-space position of grid sample [0, 0, 0], shape (3,)
        scale: World-space spacing between samples on each axis, shape (3,)

    Returns:
        Fractional index coordinates with the same shape as ``point``
    """
    return (point - start) / scale
