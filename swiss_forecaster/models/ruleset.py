"""Bracket rulesets: team count, thresholds and series lengths."""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

from ..exceptions import ConfigurationError
from .team import Team


class BracketKind(Enum):
    """Pairing family used by the round loop."""

    SWISS = "swiss"
    SINGLE_ELIMINATION = "single-elimination"


@dataclass(frozen=True)
class Ruleset:
    """
    Describes one bracket format.

    A team is decided once it reaches ``win_threshold`` wins or
    ``loss_threshold`` losses. Matches are played as ``best_of`` unless one
    side is a single result away from either threshold, in which case
    ``decider_best_of`` is used.
    """

    kind: BracketKind
    team_count: int
    win_threshold: int
    loss_threshold: int
    best_of: int = 1
    decider_best_of: int = 1
    allow_rematches: bool = True

    def __post_init__(self):
        if self.team_count < 2:
            raise ConfigurationError(f"A bracket needs at least 2 teams, got {self.team_count}")

        if self.win_threshold < 1 or self.loss_threshold < 1:
            raise ConfigurationError(
                f"Thresholds must be positive, got {self.win_threshold}-{self.loss_threshold}"
            )

        for length in (self.best_of, self.decider_best_of):
            if length < 1 or length % 2 == 0:
                raise ConfigurationError(f"Series length must be a positive odd number, got {length}")

        if self.kind is BracketKind.SINGLE_ELIMINATION:
            if self.loss_threshold != 1:
                raise ConfigurationError("Single elimination brackets eliminate on the first loss")
            if self.team_count & (self.team_count - 1):
                raise ConfigurationError(
                    f"Single elimination needs a power-of-two field, got {self.team_count}"
                )

    @classmethod
    def swiss(cls, team_count: int = 16, win_threshold: int = 3, loss_threshold: int = 3,
              best_of: int = 1, decider_best_of: int = 3,
              allow_rematches: bool = True) -> "Ruleset":
        """Swiss stage: BO1 matches, BO3 whenever advancement or elimination is on the line."""
        return cls(
            kind=BracketKind.SWISS,
            team_count=team_count,
            win_threshold=win_threshold,
            loss_threshold=loss_threshold,
            best_of=best_of,
            decider_best_of=decider_best_of,
            allow_rematches=allow_rematches,
        )

    @classmethod
    def single_elimination(cls, team_count: int = 8, best_of: int = 1) -> "Ruleset":
        """Knockout bracket; the champion is the only team to reach the win threshold."""
        rounds = max(1, (team_count - 1).bit_length())
        return cls(
            kind=BracketKind.SINGLE_ELIMINATION,
            team_count=team_count,
            win_threshold=rounds,
            loss_threshold=1,
            best_of=best_of,
            decider_best_of=best_of,
        )

    @property
    def max_rounds(self) -> int:
        """Most rounds any team can play before being decided."""
        return self.win_threshold + self.loss_threshold - 1

    def is_decided(self, wins: int, losses: int) -> bool:
        return wins >= self.win_threshold or losses >= self.loss_threshold

    def series_lengths(self) -> Tuple[int, ...]:
        return tuple(sorted({self.best_of, self.decider_best_of}))

    def final_records(self) -> List[str]:
        """
        Every record a team can finish with, best first.

        Swiss 3/3 gives ``3-0, 3-1, 3-2, 2-3, 1-3, 0-3``.
        """
        qualified = [f"{self.win_threshold}-{losses}" for losses in range(self.loss_threshold)]
        eliminated = [f"{wins}-{self.loss_threshold}" for wins in reversed(range(self.win_threshold))]
        return qualified + eliminated

    def validate_roster(self, teams: Sequence[Team]) -> None:
        """
        Check that a roster can be played under this ruleset.

        Raises:
            ConfigurationError: wrong size, duplicate names or duplicate seeds
        """
        if len(teams) != self.team_count:
            raise ConfigurationError(
                f"{self.kind.value} bracket expects {self.team_count} teams, got {len(teams)}"
            )

        names = [team.name for team in teams]
        if len(set(names)) != len(names):
            duplicates = sorted({name for name in names if names.count(name) > 1})
            raise ConfigurationError(f"Duplicate team names: {', '.join(duplicates)}")

        seeds = [team.seed for team in teams]
        if len(set(seeds)) != len(seeds):
            raise ConfigurationError("Every team needs a distinct seed")
