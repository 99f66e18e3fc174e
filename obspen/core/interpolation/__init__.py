"""
Interpolation utilities for the obspen library.

This module provides the trilinear sampler used to evaluate penalty and
gradient grids at arbitrary fractional indices. The sampler works on
plain tensors, so gradients with respect to the query point are kept.
"""

from .trilinear import (
    TrilinearInterpolator,
    in_bound,
    in_bounds_mask,
    interpolate3d,
    interpolate3d_batch,
    trilinear_weights,
    zero_value,
)

__all__ = [
    "TrilinearInterpolator",
    "in_bound",
    "in_bounds_mask",
    "interpolate3d",
    "interpolate3d_batch",
    "trilinear_weights",
    "zero_value",
]
