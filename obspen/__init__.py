"""
Obstacle penalty fields for trajectory optimization.

This package stores an obstacle penalty and its gradient sampled on a
regular 3D grid and evaluates both at arbitrary world points by trilinear
interpolation, giving a smooth collision cost for gradient-based
optimizers.
"""

from .field import PenaltyField
from .core.interpolation import TrilinearInterpolator
from .core.mapping import point_to_array

__version__ = "0.1.0"

__all__ = ["PenaltyField", "TrilinearInterpolator", "point_to_array"]
