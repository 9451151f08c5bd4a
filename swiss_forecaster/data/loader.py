"""Data loader for tournament rosters."""

import json
from typing import List, Optional, Sequence
from ..models.team import Team


# name, rank, seed, round swing, average player rating
SAMPLE_ROSTER = [
    ("FURIA", 1.5, 1, 3.26, 1.044),
    ("Vitality", 2.5, 2, 2.68, 1.110),
    ("Falcons", 2.5, 3, 5.64, 1.0),
    ("MongolZ", 5.0, 4, -0.88, 1.128),
    ("MOUZ", 4.0, 5, 1.93, 1.034),
    ("Spirit", 7.0, 6, 0.74, 1.074),
    ("G2", 9.0, 7, 0.86, 1.046),
    ("paiN", 14.0, 8, 0.32, 1.108),
    ("NAVI", 7.0, 9, 0.11, 1.098),
    ("FaZe", 13.0, 10, 0.83, 1.068),
    ("B8", 14.0, 11, 0.10, 1.0),
    ("Imperial", 31.5, 12, -0.55, 1.0),
    ("PARIVISION", 21.0, 13, 2.44, 1.0),
    ("Liquid", 13.0, 14, -0.83, 1.028),
    ("Passion UA", 23.0, 15, -5.61, 1.0),
    ("3DMAX", 14.5, 16, -0.81, 1.056),
]


class DataLoader:
    """Loads rosters from JSON files."""

    @staticmethod
    def load_teams_from_json(file_path: str) -> List[Team]:
        """
        Load teams from a JSON file.

        Args:
            file_path: Path to JSON file with a top-level "teams" list

        Returns:
            List of Team objects
        """
        with open(file_path, 'r') as f:
            data = json.load(f)

        teams = []
        for team_data in data.get('teams', []):
            team = Team.from_dict(team_data)
            teams.append(team)

        return teams

    @staticmethod
    def save_teams_to_json(teams: Sequence[Team], file_path: str) -> None:
        with open(file_path, 'w') as f:
            json.dump({"teams": [team.to_dict() for team in teams]}, f, indent=2)

    @staticmethod
    def sample_teams() -> List[Team]:
        """The bundled 16-team roster, seeded 1-16."""
        return [
            Team(name=name, seed=seed, rank=rank, round_swing=swing, avg_player_rating=rating)
            for name, rank, seed, swing, rating in SAMPLE_ROSTER
        ]

    @staticmethod
    def create_sample_data(output_path: str) -> None:
        """
        Create sample roster data.

        Args:
            output_path: Path to save sample data
        """
        DataLoader.save_teams_to_json(DataLoader.sample_teams(), output_path)


def get_team_by_name(teams: Sequence[Team], name: str) -> Optional[Team]:
    """Case-insensitive lookup of a team in a roster."""
    for team in teams:
        if team.name.lower() == name.lower():
            return team
    return None
