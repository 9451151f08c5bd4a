"""Base predictor interface for match outcomes."""

import math
from abc import ABC, abstractmethod
from typing import Tuple
from ..models.team import Team

# Keeps exp() in range and both sides strictly inside (0, 1)
MAX_LOGIT = 30.0


def logistic(x: float) -> float:
    x = min(MAX_LOGIT, max(-MAX_LOGIT, x))
    return 1.0 / (1.0 + math.exp(-x))


class BasePredictor(ABC):
    """Abstract base class for all match outcome models."""

    def __init__(self, name: str):
        """
        Initialize predictor.

        Args:
            name: Name of the predictor model
        """
        self.name = name

    @abstractmethod
    def win_probability(self, team1: Team, team2: Team, best_of: int = 1) -> float:
        """
        Get the probability that team1 wins a series against team2.

        Args:
            team1: First team
            team2: Second team
            best_of: Series length

        Returns:
            Probability that team1 wins (0 to 1)
        """
        pass

    def predict(self, team1: Team, team2: Team, best_of: int = 1) -> Tuple[Team, float]:
        """
        Predict the most likely winner of a series.

        Returns:
            Tuple of (predicted_winner, win_probability)
        """
        prob = self.win_probability(team1, team2, best_of)

        if prob >= 0.5:
            return team1, prob
        else:
            return team2, 1.0 - prob
