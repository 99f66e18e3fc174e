"""Cost functions that evaluate obstacle penalty fields inside theseus objectives."""

from .obstacle_penalty_loss import ObstaclePenaltyLoss

__all__ = ["ObstaclePenaltyLoss"]
