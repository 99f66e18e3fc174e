"""Core functionality for obspen package."""

from .mapping import as_points, point_to_array
from .interpolation import TrilinearInterpolator, interpolate3d, interpolate3d_batch

__all__ = [
    "TrilinearInterpolator",
    "as_points",
    "interpolate3d",
    "interpolate3d_batch",
    "point_to_array",
]
