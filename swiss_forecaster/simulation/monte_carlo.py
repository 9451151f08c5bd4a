"""
Monte Carlo simulation engine for bracket outcomes.

Runs a large number of independent bracket trials across a process pool
and reduces each team's final records into probability estimates.
"""

import logging
import math
import multiprocessing
import threading
import time
from concurrent.futures import Future, ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np
import pandas as pd

from ..exceptions import ConfigurationError
from ..models.record import Record
from ..models.ruleset import Ruleset
from ..models.team import Team
from ..predictors.base import BasePredictor
from ..predictors.cache import MatchupCache
from ..predictors.rank_swing import RankSwingPredictor
from .bracket_state import BracketState

logger = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Configuration for Monte Carlo simulation."""

    num_simulations: int = 100000
    random_seed: Optional[int] = None
    parallel_workers: int = None  # None = use all CPUs but one
    batch_size: int = 5000  # Trials per worker task

    def __post_init__(self):
        if self.parallel_workers is None:
            self.parallel_workers = max(1, multiprocessing.cpu_count() - 1)

        if self.num_simulations < 0:
            raise ConfigurationError(f"Simulation count must not be negative, got {self.num_simulations}")

        if self.batch_size < 1:
            raise ConfigurationError(f"Batch size must be positive, got {self.batch_size}")


@dataclass
class BatchTally:
    """Counts produced by one batch of trials."""

    start: int
    trials: int
    record_counts: Dict[str, Dict[str, int]]
    head_to_head: Dict[str, Dict[str, int]]


class RecordCounters:
    """
    Cumulative final-record counts for one simulation run.

    Owned by the caller; every update happens under a lock so a trial or a
    batch is either counted completely or not at all.
    """

    def __init__(self, team_names: Iterable[str], final_records: Iterable[str]):
        final_records = list(final_records)
        self._lock = threading.Lock()
        self.record_counts: Dict[str, Dict[str, int]] = {
            name: {record: 0 for record in final_records} for name in team_names
        }
        self.head_to_head: Dict[str, Dict[str, int]] = {name: {} for name in self.record_counts}
        self.trials = 0

    @classmethod
    def for_roster(cls, teams: Sequence[Team], ruleset: Ruleset) -> "RecordCounters":
        return cls([team.name for team in teams], ruleset.final_records())

    def add_trial(self, records: Dict[str, Record], opponents: Dict[str, List[str]] = None) -> None:
        """
        Count one finished trial.

        Each batch tallies its trials through a private instance. Callers
        driving `simulate_one_trial` themselves can count into the same
        counters they later pass to `MonteCarloEngine.simulate`.
        """
        with self._lock:
            for name, record in records.items():
                counts = self.record_counts[name]
                key = str(record)
                counts[key] = counts.get(key, 0) + 1

            for name, faced in (opponents or {}).items():
                meetings = self.head_to_head[name]
                for opponent in faced:
                    meetings[opponent] = meetings.get(opponent, 0) + 1

            self.trials += 1

    def merge(self, tally: BatchTally) -> None:
        """Fold a finished batch into the totals."""
        with self._lock:
            for name, counts in tally.record_counts.items():
                totals = self.record_counts[name]
                for record, count in counts.items():
                    totals[record] = totals.get(record, 0) + count

            for name, meetings in tally.head_to_head.items():
                totals = self.head_to_head[name]
                for opponent, count in meetings.items():
                    totals[opponent] = totals.get(opponent, 0) + count

            self.trials += tally.trials


@dataclass
class AggregatedResults:
    """Aggregated results from all simulations."""

    record_counts: Dict[str, Dict[str, int]] = field(default_factory=dict)
    record_odds: Dict[str, Dict[str, float]] = field(default_factory=dict)

    # Summary odds
    advance_odds: Dict[str, float] = field(default_factory=dict)
    elimination_odds: Dict[str, float] = field(default_factory=dict)
    advance_with_losses_odds: Dict[str, float] = field(default_factory=dict)
    eliminated_with_wins_odds: Dict[str, float] = field(default_factory=dict)

    # Meetings per opponent, summed over all trials
    head_to_head: Dict[str, Dict[str, int]] = field(default_factory=dict)

    seeds: Dict[str, int] = field(default_factory=dict)
    final_records: List[str] = field(default_factory=list)
    win_threshold: int = 0
    loss_threshold: int = 0
    num_simulations: int = 0
    interrupted: bool = False
    elapsed_seconds: float = 0.0

    # Standard errors and confidence intervals (Wilson score)
    simulation_se: Dict[str, Dict[str, float]] = field(default_factory=dict)
    ci_lower: Dict[str, Dict[str, float]] = field(default_factory=dict)
    ci_upper: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def most_faced(self, team: str, limit: int = 3) -> List[Tuple[str, float]]:
        """
        Opponents a team met most often.

        Returns:
            List of (opponent, share of the team's matches), most frequent first
        """
        meetings = self.head_to_head.get(team, {})
        total = sum(meetings.values())
        if total == 0:
            return []

        ranked = sorted(meetings.items(), key=lambda item: (-item[1], self.seeds.get(item[0], 0)))
        return [(opponent, count / total) for opponent, count in ranked[:limit]]

    def to_dict(self) -> dict:
        return {
            "num_simulations": self.num_simulations,
            "interrupted": self.interrupted,
            "elapsed_seconds": self.elapsed_seconds,
            "record_counts": self.record_counts,
            "record_odds": self.record_odds,
            "advance_odds": self.advance_odds,
            "elimination_odds": self.elimination_odds,
            "ci_lower": self.ci_lower,
            "ci_upper": self.ci_upper,
            "head_to_head": self.head_to_head,
        }

    def to_frame(self, percent: bool = True) -> pd.DataFrame:
        """One row per team ordered by seed, one column per final record plus summaries."""
        scale = 100.0 if percent else 1.0
        rows = []

        for team in sorted(self.record_odds, key=lambda name: self.seeds.get(name, 0)):
            row = {"seed": self.seeds.get(team), "team": team}
            for record in self.final_records:
                row[record] = self.record_odds[team].get(record, 0.0) * scale
            row[f"{self.win_threshold}-X"] = self.advance_with_losses_odds.get(team, 0.0) * scale
            row[f"X-{self.loss_threshold}"] = self.eliminated_with_wins_odds.get(team, 0.0) * scale
            row["advance"] = self.advance_odds.get(team, 0.0) * scale
            rows.append(row)

        return pd.DataFrame(rows).set_index("seed") if rows else pd.DataFrame()


def _run_batch(
    start: int,
    batch_size: int,
    entropy: int,
    teams: List[Team],
    ruleset: Ruleset,
    predictor: BasePredictor,
) -> BatchTally:
    """
    Run a batch of bracket trials in a subprocess.

    Trial ``i`` draws from its own generator seeded by ``(entropy, i)``, so
    results do not depend on how trials are split into batches or on the
    order batches complete in.

    Args:
        start: Index of the first trial in the batch
        batch_size: Number of trials to run
        entropy: Root seed of the run
        teams: Roster; each trial clones it
        ruleset: Bracket format
        predictor: Match outcome model (normally a MatchupCache)

    Returns:
        Counts for the whole batch
    """
    counters = RecordCounters.for_roster(teams, ruleset)

    for trial_index in range(start, start + batch_size):
        rng = np.random.default_rng(np.random.SeedSequence(entropy, spawn_key=(trial_index,)))
        state = BracketState(teams, ruleset, predictor, rng)
        counters.add_trial(state.run(), state.opponents)

    return BatchTally(
        start=start,
        trials=counters.trials,
        record_counts=counters.record_counts,
        head_to_head=counters.head_to_head,
    )


class MonteCarloEngine:
    """
    Monte Carlo simulation engine for Swiss and single-elimination brackets.

    Features:
    - True parallel simulation via ProcessPoolExecutor
    - Independent random stream per trial
    - Pre-computed matchup probability cache
    - Interrupt-safe partial results
    """

    def __init__(
        self,
        predictor: BasePredictor = None,
        config: SimulationConfig = None
    ):
        """
        Initialize Monte Carlo engine.

        Args:
            predictor: Match outcome model (default: RankSwingPredictor)
            config: Simulation configuration
        """
        self.predictor = predictor or RankSwingPredictor()
        self.config = config or SimulationConfig()

    def simulate(
        self,
        teams: Sequence[Team],
        ruleset: Ruleset = None,
        counters: RecordCounters = None,
    ) -> AggregatedResults:
        """
        Run the full Monte Carlo simulation.

        Pre-computes all matchup probabilities, then distributes batches
        across ProcessPoolExecutor workers.

        Args:
            teams: Roster matching the ruleset's team count
            ruleset: Bracket format (default: 16-team Swiss)
            counters: Caller-owned counters to accumulate into

        Returns:
            Aggregated simulation results

        Raises:
            ConfigurationError: roster and ruleset do not fit together
            PairingError: a trial could not be paired
        """
        ruleset = ruleset or Ruleset.swiss()
        ruleset.validate_roster(teams)
        teams = list(teams)

        # Pre-compute matchup probabilities so the predictor itself never
        # has to cross process boundaries.
        cache = MatchupCache(self.predictor, teams, ruleset.series_lengths())
        if counters is None:
            counters = RecordCounters.for_roster(teams, ruleset)

        num_sims = self.config.num_simulations
        batch_size = self.config.batch_size
        n_workers = self.config.parallel_workers
        if self.config.random_seed is not None:
            entropy = self.config.random_seed
        else:
            entropy = np.random.SeedSequence().entropy

        batches = [(start, min(batch_size, num_sims - start)) for start in range(0, num_sims, batch_size)]
        completed: Set[int] = set()
        interrupted = False
        started = time.perf_counter()

        logger.info(
            "Simulating %d %s brackets in %d batches (%d workers)",
            num_sims, ruleset.kind.value, len(batches), n_workers,
        )

        try:
            if n_workers > 1 and len(batches) > 1:
                try:
                    self._run_pool(batches, entropy, teams, ruleset, cache, counters, completed)
                except (RuntimeError, OSError) as exc:
                    # Fallback to sequential if multiprocessing fails
                    logger.warning("Process pool failed (%s); running remaining batches inline", exc)
                    remaining = [batch for batch in batches if batch[0] not in completed]
                    self._run_inline(remaining, entropy, teams, ruleset, cache, counters, completed)
            else:
                self._run_inline(batches, entropy, teams, ruleset, cache, counters, completed)
        except KeyboardInterrupt:
            interrupted = True
            logger.warning("Simulation interrupted after %d of %d trials", counters.trials, num_sims)

        elapsed = time.perf_counter() - started
        logger.info("Finished %d trials in %.2f seconds", counters.trials, elapsed)

        results = self._aggregate(counters, teams, ruleset)
        results.interrupted = interrupted
        results.elapsed_seconds = elapsed
        return results

    def _run_inline(self, batches, entropy, teams, ruleset, cache, counters, completed) -> None:
        for start, size in batches:
            tally = _run_batch(start, size, entropy, teams, ruleset, cache)
            counters.merge(tally)
            completed.add(start)
            logger.debug("Batch at trial %d done (%d trials)", start, size)

    def _run_pool(self, batches, entropy, teams, ruleset, cache, counters, completed) -> None:
        with ProcessPoolExecutor(max_workers=self.config.parallel_workers) as executor:
            futures: Dict[Future, int] = {
                executor.submit(_run_batch, start, size, entropy, teams, ruleset, cache): start
                for start, size in batches
            }

            try:
                for future in as_completed(futures):
                    tally = future.result()
                    counters.merge(tally)
                    completed.add(tally.start)
                    logger.debug("Batch at trial %d done (%d trials)", tally.start, tally.trials)
            except KeyboardInterrupt:
                # Let running batches finish, schedule nothing new
                executor.shutdown(wait=True, cancel_futures=True)
                for future, start in futures.items():
                    if start in completed or not future.done() or future.cancelled():
                        continue
                    if future.exception() is None:
                        counters.merge(future.result())
                        completed.add(start)
                raise
            except Exception:
                executor.shutdown(wait=False, cancel_futures=True)
                raise

    def _aggregate(
        self,
        counters: RecordCounters,
        teams: Sequence[Team],
        ruleset: Ruleset,
    ) -> AggregatedResults:
        """Convert counters into probabilities."""
        n = counters.trials
        win_threshold = ruleset.win_threshold
        loss_threshold = ruleset.loss_threshold

        results = AggregatedResults(
            record_counts={name: dict(counts) for name, counts in counters.record_counts.items()},
            head_to_head={name: dict(meetings) for name, meetings in counters.head_to_head.items()},
            seeds={team.name: team.seed for team in teams},
            final_records=ruleset.final_records(),
            win_threshold=win_threshold,
            loss_threshold=loss_threshold,
            num_simulations=n,
        )

        for team, counts in results.record_counts.items():
            odds = {record: (count / n if n else 0.0) for record, count in counts.items()}
            results.record_odds[team] = odds

            advance = 0.0
            advance_with_losses = 0.0
            eliminated = 0.0
            eliminated_with_wins = 0.0
            for record, p in odds.items():
                wins, losses = (int(part) for part in record.split("-"))
                if wins >= win_threshold:
                    advance += p
                    if losses > 0:
                        advance_with_losses += p
                elif losses >= loss_threshold:
                    eliminated += p
                    if wins > 0:
                        eliminated_with_wins += p

            results.advance_odds[team] = advance
            results.elimination_odds[team] = eliminated
            results.advance_with_losses_odds[team] = advance_with_losses
            results.eliminated_with_wins_odds[team] = eliminated_with_wins

        if n == 0:
            return results

        # Compute standard errors and Wilson score confidence intervals
        z = 1.96  # 95% CI

        for team, odds in results.record_odds.items():
            results.simulation_se[team] = {}
            results.ci_lower[team] = {}
            results.ci_upper[team] = {}

            for label, p in list(odds.items()) + [("ADV", results.advance_odds[team])]:
                se = math.sqrt(p * (1 - p) / n)
                denom = 1 + z**2 / n
                center = (p + z**2 / (2 * n)) / denom
                margin = z * math.sqrt(p * (1 - p) / n + z**2 / (4 * n**2)) / denom
                results.simulation_se[team][label] = se
                results.ci_lower[team][label] = max(0.0, center - margin)
                results.ci_upper[team][label] = min(1.0, center + margin)

        return results


def simulate_many(
    teams: Sequence[Team],
    trial_count: int,
    ruleset: Ruleset = None,
    predictor: BasePredictor = None,
    random_seed: Optional[int] = None,
    parallel_workers: Optional[int] = None,
    batch_size: int = 5000,
    counters: RecordCounters = None,
) -> AggregatedResults:
    """
    Convenience function to run a Monte Carlo simulation.

    Args:
        teams: Roster
        trial_count: Number of bracket trials
        ruleset: Bracket format (default: 16-team Swiss)
        predictor: Match outcome model
        random_seed: Root seed; None draws fresh entropy
        parallel_workers: Worker processes (None = all CPUs but one)
        batch_size: Trials per worker task
        counters: Caller-owned counters to accumulate into

    Returns:
        Aggregated results; ``record_counts`` maps team -> record -> count
    """
    config = SimulationConfig(
        num_simulations=trial_count,
        random_seed=random_seed,
        parallel_workers=parallel_workers,
        batch_size=batch_size,
    )
    engine = MonteCarloEngine(predictor, config)

    return engine.simulate(teams, ruleset, counters)
