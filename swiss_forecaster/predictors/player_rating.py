"""Average player rating predictor."""

from .base import BasePredictor, logistic
from ..models.team import Team


class PlayerRatingPredictor(BasePredictor):
    """Predictor weighting average player rating over world rank.

    Series length does not change the weighting.
    """

    def __init__(self, rank_weight: float = 0.20, scale: float = 5.0):
        super().__init__("player-rating")
        self.rank_weight = rank_weight
        self.rating_weight = 1.0 - rank_weight
        self.scale = scale

    def _score(self, team: Team) -> float:
        rank = max(1.0, team.rank)
        return self.rank_weight / 100.0 * (100.0 - rank) + self.rating_weight * team.avg_player_rating

    def win_probability(self, team1: Team, team2: Team, best_of: int = 1) -> float:
        score_diff = self._score(team1) - self._score(team2)
        return logistic(self.scale * score_diff)
