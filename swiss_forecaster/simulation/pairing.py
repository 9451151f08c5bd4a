"""
Pairing policies.

Swiss rounds group the undecided teams by record, rank them by Buchholz
score and seed, and pair every team with the unfaced cohort member whose
Buchholz score differs the most. Single-elimination rounds pair bracket
positions from the outside in.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..exceptions import ConfigurationError, PairingError
from ..models.record import Record
from ..models.ruleset import BracketKind, Ruleset

logger = logging.getLogger(__name__)


@dataclass
class Pairing:
    """Two teams due to play, and the series length they play."""

    team1: str
    team2: str
    best_of: int
    rematch: bool = False


@dataclass
class RoundPlan:
    """Everything the pairing policy decided for one round."""

    round_number: int
    pairings: List[Pairing] = field(default_factory=list)
    byes: List[str] = field(default_factory=list)
    standings: Dict[str, int] = field(default_factory=dict)


def cohort_table(round_number: int, win_threshold: int, loss_threshold: int) -> List[Tuple[int, int]]:
    """
    Ordered records that can exist at the start of a round.

    Qualified records come first (fewest losses first), then the records
    still in play (most wins first), then eliminated records (most wins
    first). For 3/3 thresholds round 5 gives 3-0, 3-1, 2-2, 1-3, 0-3.

    Raises:
        ConfigurationError: round outside 1..win_threshold + loss_threshold
    """
    if not 1 <= round_number <= win_threshold + loss_threshold:
        raise ConfigurationError(f"Unsupported round: {round_number}")

    played = round_number - 1
    qualified = [(win_threshold, losses) for losses in range(loss_threshold)
                 if win_threshold + losses <= played]
    open_records = [(wins, played - wins) for wins in reversed(range(win_threshold))
                    if wins <= played and played - wins < loss_threshold]
    eliminated = [(wins, loss_threshold) for wins in reversed(range(win_threshold))
                  if wins + loss_threshold <= played]
    return qualified + open_records + eliminated


def compute_buchholz(
    teams: Sequence[str],
    opponents: Mapping[str, List[str]],
    records: Mapping[str, Record],
) -> Dict[str, int]:
    """Sum of past opponents' win/loss differentials, for each given team."""
    return {
        team: sum(records[opponent].differential for opponent in opponents[team])
        for team in teams
    }


def compute_standings(
    round_number: int,
    records: Mapping[str, Record],
    buchholz: Mapping[str, int],
    seeds: Mapping[str, int],
    ruleset: Ruleset,
) -> Dict[str, int]:
    """
    Number every team in the round's cohort table, starting from 1.

    Cohorts follow the table order; inside a cohort teams sort by Buchholz
    descending, then seed ascending.

    Raises:
        ConfigurationError: an undecided team holds a record the table
                            does not list (roster size and thresholds
                            do not fit together)
    """
    table = cohort_table(round_number, ruleset.win_threshold, ruleset.loss_threshold)
    cohorts: Dict[Tuple[int, int], List[str]] = {key: [] for key in table}

    for team, record in records.items():
        key = record.as_tuple()
        if key in cohorts:
            cohorts[key].append(team)
        elif not ruleset.is_decided(*key):
            raise ConfigurationError(
                f"{team} holds record {record}, which round {round_number} does not allow"
            )

    standings = {}
    standing = 0
    for key in table:
        for team in sorted(cohorts[key], key=lambda t: (-buchholz.get(t, 0), seeds[t])):
            standing += 1
            standings[team] = standing
    return standings


def series_length(record1: Record, record2: Record, ruleset: Ruleset) -> int:
    """Decider length if either side can qualify or be eliminated with this result."""
    for record in (record1, record2):
        if record.wins == ruleset.win_threshold - 1 or record.losses == ruleset.loss_threshold - 1:
            return ruleset.decider_best_of
    return ruleset.best_of


def select_opponent(
    team: str,
    unpaired: Sequence[str],
    opponents: Mapping[str, List[str]],
    buchholz: Mapping[str, int],
    standings: Mapping[str, int],
) -> Optional[str]:
    """
    Pick the opponent for ``team`` among the still unpaired cohort members.

    Unfaced teams with a different Buchholz score come first, largest gap
    wins; equal gaps go to the numerically larger standing. Otherwise the
    unfaced same-score team with the larger standing. None if every
    remaining team has been faced already.
    """
    faced = opponents[team]
    score = buchholz[team]
    candidates = [other for other in unpaired if other not in faced]

    different = [other for other in candidates if buchholz[other] != score]
    if different:
        return max(different, key=lambda other: (abs(buchholz[other] - score), standings[other]))

    same = [other for other in candidates if buchholz[other] == score]
    if same:
        return max(same, key=lambda other: standings[other])

    return None


def first_round_pairings(
    teams_by_seed: Sequence[str],
    records: Mapping[str, Record],
    ruleset: Ruleset,
) -> RoundPlan:
    """Top half of the seeding plays the bottom half: seed i against seed i + n/2."""
    plan = RoundPlan(round_number=1)
    half = len(teams_by_seed) // 2

    for i in range(half):
        team1 = teams_by_seed[i]
        team2 = teams_by_seed[half + i]
        plan.pairings.append(Pairing(team1, team2, series_length(records[team1], records[team2], ruleset)))

    if len(teams_by_seed) % 2 == 1:
        plan.byes.append(teams_by_seed[-1])

    return plan


def pair_swiss_round(
    active: Sequence[str],
    records: Mapping[str, Record],
    opponents: Mapping[str, List[str]],
    buchholz: Mapping[str, int],
    seeds: Mapping[str, int],
    ruleset: Ruleset,
) -> RoundPlan:
    """
    Pair one Swiss round.

    Raises:
        ConfigurationError: round or record outside the cohort table
        PairingError: only rematches remain and the ruleset forbids them
    """
    undecided = [team for team in active if not ruleset.is_decided(*records[team].as_tuple())]
    if not undecided:
        raise PairingError("No undecided teams left to pair")

    round_number = records[undecided[0]].games_played + 1

    if round_number == 1:
        return first_round_pairings(sorted(undecided, key=lambda t: seeds[t]), records, ruleset)

    standings = compute_standings(round_number, records, buchholz, seeds, ruleset)
    plan = RoundPlan(round_number=round_number, standings=standings)
    table = cohort_table(round_number, ruleset.win_threshold, ruleset.loss_threshold)

    for key in table:
        group = sorted(
            (team for team in undecided if records[team].as_tuple() == key),
            key=lambda t: standings[t],
        )
        unpaired = list(group)

        for team in group:
            if team not in unpaired:
                continue
            unpaired.remove(team)

            if not unpaired:
                plan.byes.append(team)
                continue

            opponent = select_opponent(team, unpaired, opponents, buchholz, standings)
            rematch = False

            if opponent is None:
                if not ruleset.allow_rematches:
                    raise PairingError(
                        f"No unfaced opponent left for {team} in the {key[0]}-{key[1]} cohort "
                        f"(round {round_number})"
                    )
                opponent = max(unpaired, key=lambda other: standings[other])
                rematch = True
                logger.debug("Round %d: forced rematch %s vs %s", round_number, team, opponent)

            unpaired.remove(opponent)
            plan.pairings.append(
                Pairing(team, opponent, series_length(records[team], records[opponent], ruleset), rematch)
            )

    return plan


def pair_single_elimination_round(
    active: Sequence[str],
    records: Mapping[str, Record],
    opponents: Mapping[str, List[str]],
    buchholz: Mapping[str, int],
    seeds: Mapping[str, int],
    ruleset: Ruleset,
) -> RoundPlan:
    """Pair bracket positions i and n-1-i; the middle team of an odd field gets a bye."""
    if not active:
        raise PairingError("No teams left to pair")

    plan = RoundPlan(round_number=records[active[0]].games_played + 1)
    n = len(active)

    for i in range(n // 2):
        team1 = active[i]
        team2 = active[n - 1 - i]
        plan.pairings.append(Pairing(team1, team2, series_length(records[team1], records[team2], ruleset)))

    if n % 2 == 1:
        plan.byes.append(active[n // 2])

    return plan


PairingPolicy = Callable[..., RoundPlan]

PAIRING_POLICIES: Dict[BracketKind, PairingPolicy] = {
    BracketKind.SWISS: pair_swiss_round,
    BracketKind.SINGLE_ELIMINATION: pair_single_elimination_round,
}
