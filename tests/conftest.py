"""Shared fixtures for bracket simulation tests."""

import pytest

from swiss_forecaster.data.loader import DataLoader
from swiss_forecaster.models.team import Team
from swiss_forecaster.predictors.base import BasePredictor


class SeedFavouritePredictor(BasePredictor):
    """The better seed always wins."""

    def __init__(self):
        super().__init__("seed-favourite")

    def win_probability(self, team1, team2, best_of=1):
        return 1.0 if team1.seed < team2.seed else 0.0


def build_roster(count):
    return [
        Team(
            name=f"team_{seed}",
            seed=seed,
            rank=float(seed * 2),
            round_swing=(count - seed) / 4.0,
            avg_player_rating=1.2 - seed / 100.0,
        )
        for seed in range(1, count + 1)
    ]


@pytest.fixture
def roster16():
    return build_roster(16)


@pytest.fixture
def roster8():
    return build_roster(8)


@pytest.fixture
def sample_roster():
    return DataLoader.sample_teams()


@pytest.fixture
def seed_favourite():
    return SeedFavouritePredictor()
