"""
Per-trial bracket state machine.

One trial moves through ROUND_PENDING -> MATCHES_RESOLVED -> ROUND_PENDING
until every team has reached the win or loss threshold (ALL_DECIDED). The
ruleset kind only selects the pairing policy; the round loop is shared.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..exceptions import PairingError
from ..models.match import Match
from ..models.record import Record
from ..models.ruleset import Ruleset
from ..models.team import Team
from ..predictors.base import BasePredictor
from ..predictors.rank_swing import RankSwingPredictor
from .pairing import PAIRING_POLICIES, compute_buchholz


class BracketPhase(Enum):
    ROUND_PENDING = "round_pending"
    MATCHES_RESOLVED = "matches_resolved"
    ALL_DECIDED = "all_decided"


@dataclass
class RoundLog:
    """What happened in one round of a trial."""

    round_number: int
    matches: List[Match] = field(default_factory=list)
    byes: List[str] = field(default_factory=list)
    forced_rematches: List[Tuple[str, str]] = field(default_factory=list)
    advancing: List[str] = field(default_factory=list)

    def participants(self) -> List[str]:
        return [name for match in self.matches for name in (match.team1.name, match.team2.name)]


class BracketState:
    """
    Mutable state of a single trial.

    The roster is cloned on construction, so nothing done here is visible
    to other trials sharing the same Team objects.
    """

    def __init__(
        self,
        teams: Sequence[Team],
        ruleset: Ruleset,
        predictor: Optional[BasePredictor] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        ruleset.validate_roster(teams)

        self.ruleset = ruleset
        self.predictor = predictor or RankSwingPredictor()
        self.rng = rng if rng is not None else np.random.default_rng()

        ordered = sorted(teams, key=lambda t: t.seed)
        self.teams: Dict[str, Team] = {team.name: team.clone() for team in ordered}
        self.seeds = {name: team.seed for name, team in self.teams.items()}
        self.records = {name: Record() for name in self.teams}
        self.opponents: Dict[str, List[str]] = {name: [] for name in self.teams}
        self.buchholz = {name: 0 for name in self.teams}
        self.active: List[str] = list(self.teams)
        self.rounds: List[RoundLog] = []
        self.phase = BracketPhase.ROUND_PENDING
        self._pair = PAIRING_POLICIES[ruleset.kind]

    def is_decided(self, name: str) -> bool:
        record = self.records[name]
        return self.ruleset.is_decided(record.wins, record.losses)

    def all_decided(self) -> bool:
        return all(self.is_decided(name) for name in self.records)

    def play_round(self) -> RoundLog:
        """Pair the active teams and resolve every match of the round."""
        if self.phase is not BracketPhase.ROUND_PENDING:
            raise PairingError(f"Cannot play a round while {self.phase.value}")

        plan = self._pair(self.active, self.records, self.opponents, self.buchholz, self.seeds, self.ruleset)
        log = RoundLog(round_number=plan.round_number, byes=list(plan.byes))

        for pairing in plan.pairings:
            team1 = self.teams[pairing.team1]
            team2 = self.teams[pairing.team2]
            match = Match(
                team1,
                team2,
                pairing.best_of,
                self.predictor.win_probability(team1, team2, pairing.best_of),
            )
            winner = match.simulate(self.rng)
            loser = match.loser

            self.records[winner.name].wins += 1
            self.records[loser.name].losses += 1
            self.opponents[winner.name].append(loser.name)
            self.opponents[loser.name].append(winner.name)

            log.matches.append(match)
            log.advancing.extend((team1.name, team2.name))
            if pairing.rematch:
                log.forced_rematches.append((team1.name, team2.name))

        log.advancing.extend(plan.byes)
        self.rounds.append(log)
        self.phase = BracketPhase.MATCHES_RESOLVED
        return log

    def advance(self) -> BracketPhase:
        """Drop decided teams, refresh Buchholz scores and move to the next phase."""
        if self.phase is not BracketPhase.MATCHES_RESOLVED:
            raise PairingError(f"Cannot advance while {self.phase.value}")

        self.active = [name for name in self.rounds[-1].advancing if not self.is_decided(name)]
        self.buchholz.update(compute_buchholz(self.active, self.opponents, self.records))

        self.phase = BracketPhase.ALL_DECIDED if self.all_decided() else BracketPhase.ROUND_PENDING
        return self.phase

    def run(self) -> Dict[str, Record]:
        """
        Play rounds until every team is decided.

        Raises:
            ConfigurationError: the cohort table ran out for this roster
            PairingError: the bracket stopped making progress
        """
        while self.phase is not BracketPhase.ALL_DECIDED:
            if len(self.rounds) >= self.ruleset.max_rounds:
                undecided = [name for name in self.records if not self.is_decided(name)]
                raise PairingError(
                    f"Bracket not decided after {len(self.rounds)} rounds: {', '.join(undecided)}"
                )
            self.play_round()
            self.advance()

        return self.final_records()

    def final_records(self) -> Dict[str, Record]:
        return {name: Record(record.wins, record.losses) for name, record in self.records.items()}


def simulate_one_trial(
    teams: Sequence[Team],
    ruleset: Optional[Ruleset] = None,
    rng: Optional[np.random.Generator] = None,
    predictor: Optional[BasePredictor] = None,
    seed: Optional[int] = None,
) -> Dict[str, Record]:
    """
    Run one bracket to completion.

    Args:
        teams: Roster; never mutated
        ruleset: Bracket format (default: 16-team Swiss)
        rng: Random source; built from ``seed`` when omitted
        predictor: Match outcome model (default: RankSwingPredictor)
        seed: Seed used when no rng is given

    Returns:
        Final record of every team, keyed by team name
    """
    if rng is None:
        rng = np.random.default_rng(seed)
    state = BracketState(teams, ruleset or Ruleset.swiss(), predictor, rng)
    return state.run()
