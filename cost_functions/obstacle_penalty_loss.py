"""ObstaclePenaltyLoss cost function for theseus."""

from typing import List, Optional, Tuple

import torch
import theseus as th

from obspen.core.interpolation import interpolate3d_batch
from obspen.core.mapping import point_to_array
from obspen.field import PenaltyField


class ObstaclePenaltyLoss(th.CostFunction):
    """
    A cost function that penalizes a 3D point for being close to obstacles.

    The residual is the obstacle penalty interpolated from a sampled grid at
    the point, and the Jacobian is the interpolated penalty gradient sampled
    on the same grid. Points outside the grid interior have zero residual
    and zero Jacobian.

    The grids and their placement are auxiliary variables, so vectorized
    objectives evaluate every cost function against its own field.

    Important coordinate conventions:
    - All 3D points are in XYZ order [x, y, z]
    - Grids are indexed as grid[batch, x, y, z] and grid[batch, x, y, z, :]
    """
    def __init__(
        self,
        point: th.Point3,
        penalty_grid: th.Variable,   # [batch, X, Y, Z]
        gradient_grid: th.Variable,  # [batch, X, Y, Z, 3]
        start: th.Variable,          # [batch, 3]
        scale: th.Variable,          # [batch, 3]
        cost_weight: th.CostWeight,
        name: Optional[str] = None,
    ):
        """
        Initialize the ObstaclePenaltyLoss cost function.

        Args:
            point: The 3D point to keep clear of obstacles (optimization variable)
            penalty_grid: Penalty samples (auxiliary variable)
            gradient_grid: Penalty gradient samples (auxiliary variable)
            start: World position of sample [0, 0, 0] (auxiliary variable)
            scale: World spacing of the samples on each axis (auxiliary variable)
            cost_weight: Weight for this cost function
            name: Optional name for this cost function
        """
        super().__init__(cost_weight, name=name)

        if penalty_grid.tensor.dim() != 4:
            raise ValueError(f"penalty_grid must be [batch, X, Y, Z], got shape {tuple(penalty_grid.shape)}")
        if gradient_grid.tensor.dim() != 5 or gradient_grid.shape[-1] != 3:
            raise ValueError(f"gradient_grid must be [batch, X, Y, Z, 3], got shape {tuple(gradient_grid.shape)}")
        if penalty_grid.shape[1:] != gradient_grid.shape[1:4]:
            raise ValueError("penalty_grid and gradient_grid must have the same extents")

        self.point = point
        self.penalty_grid = penalty_grid
        self.gradient_grid = gradient_grid
        self.start = start
        self.scale = scale

        self.register_optim_vars(["point"])
        self.register_aux_vars(["penalty_grid", "gradient_grid", "start", "scale"])

    @classmethod
    def from_field(
        cls,
        point: th.Point3,
        field: PenaltyField,
        cost_weight: th.CostWeight,
        name: Optional[str] = None,
    ) -> "ObstaclePenaltyLoss":
        """
        Build the cost function from a loaded PenaltyField.

        The field's samples are copied into auxiliary variables with the
        point's dtype, so later changes to the field do not affect the cost.
        """
        if not field.is_configured:
            raise ValueError("field must be loaded with set_pen() before use")

        dtype = point.dtype
        return cls(
            point,
            th.Variable(tensor=field.penalty_grid.to(dtype=dtype).unsqueeze(0)),
            th.Variable(tensor=field.gradient_grid.to(dtype=dtype).unsqueeze(0)),
            th.Variable(tensor=field.start.to(dtype=dtype).unsqueeze(0)),
            th.Variable(tensor=field.scale.to(dtype=dtype).unsqueeze(0)),
            cost_weight,
            name=name,
        )

    def _sample(self, grid: torch.Tensor) -> torch.Tensor:
        """Interpolate a batched grid at the current point, one grid row per point row."""
        points = self.point.tensor
        batch_size = points.shape[0]
        arr_points = point_to_array(points, self.start.tensor, self.scale.tensor)

        if grid.shape[0] == 1:
            return interpolate3d_batch(grid[0], arr_points)
        if grid.shape[0] != batch_size:
            raise ValueError(f"Grid batch size {grid.shape[0]} does not match point batch size {batch_size}")

        # vectorized objectives stack one field per row
        return torch.stack([
            interpolate3d_batch(grid[b], arr_points[b:b + 1])[0] for b in range(batch_size)
        ])

    def error(self) -> torch.Tensor:
        """
        Compute the penalty at the current point.

        Returns:
            The error tensor of shape [batch_size, 1]
        """
        return self._sample(self.penalty_grid.tensor).unsqueeze(-1)

    def dim(self) -> int:
        return 1

    def jacobians(self) -> Tuple[List[torch.Tensor], torch.Tensor]:
        """
        Compute the Jacobian of the penalty with respect to the point.

        Returns:
            A tuple containing:
                - A list with the [batch_size, 1, 3] Jacobian for the point
                - The error tensor
        """
        jac = self._sample(self.gradient_grid.tensor).unsqueeze(1)

        return [jac], self.error()

    def _copy_impl(self, new_name: Optional[str] = None) -> "ObstaclePenaltyLoss":
        return ObstaclePenaltyLoss(
            self.point.copy(),
            self.penalty_grid.copy(),
            self.gradient_grid.copy(),
            self.start.copy(),
            self.scale.copy(),
            self.weight.copy(),
            name=new_name if new_name else self.name
        )
