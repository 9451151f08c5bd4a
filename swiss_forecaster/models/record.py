"""Win/loss record of a team within one trial."""

from dataclasses import dataclass
from typing import Tuple


@dataclass
class Record:
    """Wins and losses; only ever incremented."""

    wins: int = 0
    losses: int = 0

    @property
    def games_played(self) -> int:
        return self.wins + self.losses

    @property
    def differential(self) -> int:
        return self.wins - self.losses

    def as_tuple(self) -> Tuple[int, int]:
        return self.wins, self.losses

    def __str__(self) -> str:
        return f"{self.wins}-{self.losses}"
