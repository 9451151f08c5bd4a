"""Match model: one best-of-N series between two teams."""

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

from ..exceptions import ConfigurationError
from .team import Team


def wins_needed(best_of: int) -> int:
    """Game wins required to take a best-of-``best_of`` series."""
    if best_of < 1 or best_of % 2 == 0:
        raise ConfigurationError(f"Series length must be a positive odd number, got {best_of}")
    return best_of // 2 + 1


@dataclass
class Match:
    """Represents a single series in the bracket."""

    team1: Team
    team2: Team
    best_of: int
    win_probability: float = 0.5
    winner: Optional[Team] = None
    game_results: List[bool] = field(default_factory=list)

    def __post_init__(self):
        if not 0 <= self.win_probability <= 1:
            raise ValueError(f"Probability must be between 0 and 1, got {self.win_probability}")

    @property
    def loser(self) -> Optional[Team]:
        if self.winner is None:
            return None
        return self.team2 if self.winner is self.team1 else self.team1

    def simulate(self, rng: np.random.Generator = None, most_likely_only: bool = False) -> Team:
        """
        Play out the series.

        One uniform draw per potential game is taken up front; game k goes
        to team1 iff draw k is below the win probability. The series stops
        as soon as either side reaches the required game wins.

        Args:
            rng: Random source for this trial
            most_likely_only: Skip the draws and return the favourite

        Returns:
            The winning team
        """
        needed = wins_needed(self.best_of)

        if most_likely_only:
            self.winner = self.team1 if self.win_probability >= 0.5 else self.team2
            return self.winner

        if rng is None:
            rng = np.random.default_rng()

        draws = rng.random(self.best_of)
        team1_wins = 0
        team2_wins = 0
        self.game_results = []

        for draw in draws:
            team1_won = bool(draw < self.win_probability)
            self.game_results.append(team1_won)
            if team1_won:
                team1_wins += 1
            else:
                team2_wins += 1

            if team1_wins == needed or team2_wins == needed:
                break

        self.winner = self.team1 if team1_wins == needed else self.team2
        return self.winner


def simulate_series(
    team1: Team,
    team2: Team,
    best_of: int,
    win_probability: float,
    rng: np.random.Generator = None,
    most_likely_only: bool = False,
) -> Team:
    """Resolve a best-of-N series and return the winner."""
    match = Match(team1, team2, best_of, win_probability)
    return match.simulate(rng, most_likely_only)
