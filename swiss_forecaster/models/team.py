"""Team model for bracket simulations."""

from dataclasses import dataclass, replace


@dataclass
class Team:
    """Represents a team entered in the event."""

    name: str
    seed: int
    rank: float
    round_swing: float = 0.0
    avg_player_rating: float = 1.0

    def __post_init__(self):
        """Validate team data."""
        if not self.name:
            raise ValueError("Team name must not be empty")

        if self.seed < 1:
            raise ValueError(f"Seed must be positive, got {self.seed}")

    def clone(self) -> "Team":
        """
        Copy the team for use inside a single trial.

        Returns:
            A new Team equal to this one but not identical to it
        """
        return replace(self)

    def to_dict(self) -> dict:
        """Convert team to dictionary."""
        return {
            "name": self.name,
            "seed": self.seed,
            "rank": self.rank,
            "round_swing": self.round_swing,
            "avg_player_rating": self.avg_player_rating,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Team":
        """Create team from dictionary."""
        return cls(
            name=data["name"],
            seed=data["seed"],
            rank=data.get("rank", data["seed"]),
            round_swing=data.get("round_swing", 0.0),
            avg_player_rating=data.get("avg_player_rating", 1.0),
        )
