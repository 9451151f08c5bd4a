"""Rank and round-swing based predictor."""

import math
from typing import Dict
from .base import BasePredictor, logistic
from ..models.team import Team


class RankSwingPredictor(BasePredictor):
    """
    Logistic model over world rank and round swing.

    Rank matters more the longer the series: a single map carries more
    variance, so BO1 leans harder on recent form (round swing) than a BO3.
    """

    DEFAULT_RANK_WEIGHTS = {1: 0.50, 3: 0.70}
    LONG_SERIES_RANK_WEIGHT = 0.90

    def __init__(
        self,
        rank_weights: Dict[int, float] = None,
        scale: float = 0.3,
        max_rank: int = 100,
    ):
        """
        Initialize rank/swing predictor.

        Args:
            rank_weights: Weight of rank per series length; longer series
                          not listed use LONG_SERIES_RANK_WEIGHT
            scale: Logistic steepness
            max_rank: Rank used to normalize the logarithmic rank gap
        """
        super().__init__("rank-swing")
        self.rank_weights = dict(rank_weights or self.DEFAULT_RANK_WEIGHTS)
        self.scale = scale
        self.max_rank = max_rank

    def rank_weight(self, best_of: int) -> float:
        return self.rank_weights.get(best_of, self.LONG_SERIES_RANK_WEIGHT)

    def win_probability(self, team1: Team, team2: Team, best_of: int = 1) -> float:
        """
        Probability that team1 wins a best-of-``best_of`` series.

        Ranks below 1 are clamped to 1 so the log term stays defined.
        """
        rank_weight = self.rank_weight(best_of)
        swing_weight = 1.0 - rank_weight

        rank1 = max(1.0, team1.rank)
        rank2 = max(1.0, team2.rank)
        log_rank_adj = (math.log(rank2) - math.log(rank1)) / math.log(self.max_rank)

        # Symmetric log adjustment: boost the better-ranked side, penalize the other
        score1 = (rank_weight / 100.0 * (100.0 - rank1)
                  + swing_weight * team1.round_swing
                  + rank_weight * log_rank_adj)
        score2 = (rank_weight / 100.0 * (100.0 - rank2)
                  + swing_weight * team2.round_swing
                  - rank_weight * log_rank_adj)

        return logistic(self.scale * (score1 - score2))
