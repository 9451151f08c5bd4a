"""Pre-computed matchup probabilities."""

from typing import Dict, Iterable, Sequence, Tuple
from .base import BasePredictor
from ..models.team import Team


class MatchupCache(BasePredictor):
    """
    Lookup table of win probabilities for a fixed roster.

    Only plain floats keyed by team name are stored, so the cache pickles
    cheaply into worker processes even when the wrapped predictor would not.
    """

    def __init__(self, predictor: BasePredictor, teams: Sequence[Team], series_lengths: Iterable[int]):
        super().__init__(f"cached-{predictor.name}")
        self.probs: Dict[Tuple[str, str, int], float] = {}

        for best_of in series_lengths:
            for i, team1 in enumerate(teams):
                for j, team2 in enumerate(teams):
                    if i < j:
                        p = predictor.win_probability(team1, team2, best_of)
                        self.probs[(team1.name, team2.name, best_of)] = p
                        self.probs[(team2.name, team1.name, best_of)] = 1.0 - p

    def win_probability(self, team1: Team, team2: Team, best_of: int = 1) -> float:
        return self.probs[(team1.name, team2.name, best_of)]
