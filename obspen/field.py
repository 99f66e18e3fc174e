"""
Obstacle penalty field sampled on a regular 3D grid.

The field holds a scalar penalty and its 3D gradient, both sampled at the
nodes of a grid placed in world space by an origin (``start``) and a
per-axis spacing (``scale``). Queries at arbitrary world points are answered
by trilinear interpolation of the eight surrounding samples. Points outside
the strict interior of the grid get a zero penalty and a zero gradient, so
an optimizer sees "far from obstacles" as free space.

Coordinate Convention:
- Points are in XYZ order [x, y, z] with 0=x, 1=y, 2=z
- Flat sample sequences are x-major: index = (x * size_y + y) * size_z + z
- Grids are stored as grid[x, y, z] (penalty) and grid[x, y, z, :] (gradient)
"""

import logging
from typing import NoReturn, Optional, Sequence, Tuple, Union

import numpy as np
import torch

from obspen.core.interpolation import TrilinearInterpolator
from obspen.core.mapping import PointLike, as_points, point_to_array

logger = logging.getLogger(__name__)

SampleSequence = Union[torch.Tensor, np.ndarray, Sequence[float]]


class PenaltyField:
    """
    Penalty and penalty-gradient grids with world-space placement.

    A new field is unconfigured: it holds no samples and cannot be queried.
    ``set_pen`` loads it, and every later ``set_pen`` replaces the whole
    contents. Copies made with ``copy()``, ``copy.copy`` or ``copy.deepcopy``
    own their own storage.

    Attributes:
        dtype: Floating point type of the stored samples and of query results
        device: Device holding the samples
    """

    def __init__(self, dtype: torch.dtype = torch.float64, device: Optional[torch.device] = None):
        """
        Args:
            dtype: Floating point type for samples and results
            device: Device on which to store the samples
        """
        self.dtype = dtype
        self.device = device

        self._start: Optional[torch.Tensor] = None
        self._scale: Optional[torch.Tensor] = None
        self._pen: Optional[TrilinearInterpolator] = None
        self._pen_grad: Optional[TrilinearInterpolator] = None

    @classmethod
    def from_samples(
        cls,
        start: PointLike,
        scale: PointLike,
        size_x: int,
        size_y: int,
        size_z: int,
        penalty: SampleSequence,
        grad_x: SampleSequence,
        grad_y: SampleSequence,
        grad_z: SampleSequence,
        dtype: torch.dtype = torch.float64,
        device: Optional[torch.device] = None,
    ) -> "PenaltyField":
        """Create a field and load it with ``set_pen`` in one step."""
        field = cls(dtype=dtype, device=device)
        field.set_pen(start, scale, size_x, size_y, size_z, penalty, grad_x, grad_y, grad_z)
        return field

    def set_pen(
        self,
        start: PointLike,
        scale: PointLike,
        size_x: int,
        size_y: int,
        size_z: int,
        penalty: SampleSequence,
        grad_x: SampleSequence,
        grad_y: SampleSequence,
        grad_z: SampleSequence,
    ) -> None:
        """
        Replace the field contents.

        The input is validated before anything is stored; a rejected load
        leaves the previous contents in place.

        Args:
            start: World position of sample [0, 0, 0]
            scale: World distance between neighbouring samples on each axis
            size_x, size_y, size_z: Number of samples on each axis
            penalty: size_x * size_y * size_z penalty samples, x-major order
            grad_x, grad_y, grad_z: Gradient components, same length and order

        Raises:
            ValueError: If the geometry or any sample sequence is malformed
        """
        start_t = self._vector3(start, "start")
        scale_t = self._vector3(scale, "scale")
        if torch.any(scale_t == 0):
            self._reject(f"scale components must be non-zero, got {scale_t.tolist()}")

        sizes = (size_x, size_y, size_z)
        for name, size in zip(("size_x", "size_y", "size_z"), sizes):
            if isinstance(size, bool) or not isinstance(size, (int, np.integer)) or size <= 0:
                self._reject(f"{name} must be a positive integer, got {size!r}")
        sizes = tuple(int(s) for s in sizes)
        count = sizes[0] * sizes[1] * sizes[2]

        samples = []
        for name, values in (("penalty", penalty), ("grad_x", grad_x),
                             ("grad_y", grad_y), ("grad_z", grad_z)):
            flat = torch.as_tensor(values, dtype=self.dtype, device=self.device).reshape(-1)
            if flat.numel() != count:
                self._reject(
                    f"{name} has {flat.numel()} samples, expected {count} "
                    f"for a {sizes[0]}x{sizes[1]}x{sizes[2]} grid"
                )
            samples.append(flat)

        # Same explicit reconstruction for both grids; indexing copies, so
        # the field never aliases the caller's buffers.
        index = self._flat_index(*sizes)
        pen_grid = samples[0][index]
        grad_grid = torch.stack([s[index] for s in samples[1:]], dim=-1)

        self._start = start_t
        self._scale = scale_t
        self._pen = TrilinearInterpolator(pen_grid)
        self._pen_grad = TrilinearInterpolator(grad_grid)

        if logger.isEnabledFor(logging.DEBUG):
            lower, upper = self.extent
            logger.debug(f"Loaded penalty field {sizes[0]}x{sizes[1]}x{sizes[2]} "
                         f"spanning {lower.tolist()} to {upper.tolist()}")

    def penalty(self, point: PointLike) -> torch.Tensor:
        """
        Interpolated penalty at world point(s).

        Args:
            point: A point [x, y, z] or a batch of shape (..., 3)

        Returns:
            A 0-d tensor for a single point, shape (...) for a batch.
            Zero where the point is outside the grid interior.
        """
        return self._pen(self._to_array(point))

    def penalty_gradient(self, point: PointLike) -> torch.Tensor:
        """
        Interpolated penalty gradient at world point(s).

        Args:
            point: A point [x, y, z] or a batch of shape (..., 3)

        Returns:
            Shape (3,) for a single point, (..., 3) for a batch.
            The zero vector where the point is outside the grid interior.
        """
        return self._pen_grad(self._to_array(point))

    @property
    def is_configured(self) -> bool:
        return self._pen is not None

    @property
    def shape(self) -> Tuple[int, int, int]:
        self._check_configured()
        return tuple(self._pen.shape)

    @property
    def start(self) -> torch.Tensor:
        self._check_configured()
        return self._start.clone()

    @property
    def scale(self) -> torch.Tensor:
        self._check_configured()
        return self._scale.clone()

    @property
    def penalty_grid(self) -> torch.Tensor:
        """Copy of the penalty samples, shape [X, Y, Z]."""
        self._check_configured()
        return self._pen.grid.clone()

    @property
    def gradient_grid(self) -> torch.Tensor:
        """Copy of the gradient samples, shape [X, Y, Z, 3]."""
        self._check_configured()
        return self._pen_grad.grid.clone()

    @property
    def extent(self) -> Tuple[torch.Tensor, torch.Tensor]:
        """World positions of the first and last grid samples."""
        self._check_configured()
        last = torch.tensor(self._pen.shape, dtype=self.dtype, device=self.device) - 1
        return self._start.clone(), self._start + self._scale * last

    def copy(self) -> "PenaltyField":
        """Return an independent copy of this field."""
        other = type(self)(dtype=self.dtype, device=self.device)
        if self.is_configured:
            other._start = self._start.clone()
            other._scale = self._scale.clone()
            other._pen = TrilinearInterpolator(self._pen.grid.clone())
            other._pen_grad = TrilinearInterpolator(self._pen_grad.grid.clone())
        return other

    def __copy__(self) -> "PenaltyField":
        return self.copy()

    def __deepcopy__(self, memo) -> "PenaltyField":
        return self.copy()

    def __repr__(self) -> str:
        if not self.is_configured:
            return "PenaltyField(unconfigured)"
        return (f"PenaltyField(shape={self.shape}, start={self._start.tolist()}, "
                f"scale={self._scale.tolist()})")

    def _to_array(self, point: PointLike) -> torch.Tensor:
        self._check_configured()
        points = as_points(point, dtype=self.dtype, device=self.device)
        return point_to_array(points, self._start, self._scale)

    def _check_configured(self) -> None:
        if not self.is_configured:
            raise RuntimeError("PenaltyField has no samples, call set_pen() first")

    def _vector3(self, value: PointLike, name: str) -> torch.Tensor:
        tensor = torch.as_tensor(value, dtype=self.dtype, device=self.device)
        if tensor.shape != (3,):
            self._reject(f"{name} must have 3 components, got shape {tuple(tensor.shape)}")
        return tensor.clone()

    def _flat_index(self, size_x: int, size_y: int, size_z: int) -> torch.Tensor:
        xs = torch.arange(size_x, device=self.device).view(-1, 1, 1)
        ys = torch.arange(size_y, device=self.device).view(1, -1, 1)
        zs = torch.arange(size_z, device=self.device).view(1, 1, -1)
        return (xs * size_y + ys) * size_z + zs

    @staticmethod
    def _reject(message: str) -> NoReturn:
        logger.warning(f"Rejected penalty field load: {message}")
        raise ValueError(message)
