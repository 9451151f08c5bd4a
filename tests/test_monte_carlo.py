"""Tests for Monte Carlo aggregation of bracket trials."""

import pytest
from swiss_forecaster.exceptions import ConfigurationError
from swiss_forecaster.models.record import Record
from swiss_forecaster.models.ruleset import Ruleset
from swiss_forecaster.predictors.rank_swing import RankSwingPredictor
from swiss_forecaster.simulation import monte_carlo
from swiss_forecaster.simulation.bracket_state import simulate_one_trial
from swiss_forecaster.simulation.monte_carlo import (
    MonteCarloEngine,
    RecordCounters,
    SimulationConfig,
    simulate_many,
)


def _engine(num_simulations, seed=42, workers=1, batch_size=50, predictor=None):
    return MonteCarloEngine(
        predictor,
        config=SimulationConfig(
            num_simulations=num_simulations,
            random_seed=seed,
            parallel_workers=workers,
            batch_size=batch_size,
        ),
    )


def test_zero_trials_returns_zero_counters(roster16):
    results = simulate_many(roster16, 0, Ruleset.swiss(), random_seed=1, parallel_workers=1)

    assert results.num_simulations == 0
    assert not results.interrupted
    assert set(results.record_counts) == {team.name for team in roster16}
    for counts in results.record_counts.values():
        assert counts == {"3-0": 0, "3-1": 0, "3-2": 0, "2-3": 0, "1-3": 0, "0-3": 0}
    assert all(p == 0.0 for odds in results.record_odds.values() for p in odds.values())
    assert all(p == 0.0 for p in results.advance_odds.values())


def test_record_counts_sum_to_trial_count(roster16):
    n = 120
    results = _engine(n).simulate(roster16, Ruleset.swiss())

    assert results.num_simulations == n
    for counts in results.record_counts.values():
        assert sum(counts.values()) == n

    # Every trial produces exactly two 3-0 and two 0-3 teams
    assert sum(counts["3-0"] for counts in results.record_counts.values()) == 2 * n
    assert sum(counts["0-3"] for counts in results.record_counts.values()) == 2 * n


def test_probabilities_are_consistent(roster16):
    results = _engine(200).simulate(roster16, Ruleset.swiss())

    for team, odds in results.record_odds.items():
        assert sum(odds.values()) == pytest.approx(1.0)
        assert results.advance_odds[team] + results.elimination_odds[team] == pytest.approx(1.0)
        assert results.advance_with_losses_odds[team] == pytest.approx(odds["3-1"] + odds["3-2"])
        assert results.eliminated_with_wins_odds[team] == pytest.approx(odds["2-3"] + odds["1-3"])

    # Eight of sixteen teams advance in every trial
    assert sum(results.advance_odds.values()) == pytest.approx(8.0)


def test_results_do_not_depend_on_batching(roster16):
    baseline = _engine(90, seed=7, batch_size=90).simulate(roster16).record_counts
    small_batches = _engine(90, seed=7, batch_size=13).simulate(roster16).record_counts
    parallel = _engine(90, seed=7, batch_size=20, workers=2).simulate(roster16).record_counts

    assert small_batches == baseline
    assert parallel == baseline


def test_different_seeds_differ(roster16):
    first = _engine(200, seed=1).simulate(roster16).record_counts
    second = _engine(200, seed=2).simulate(roster16).record_counts
    assert first != second


def test_stronger_teams_advance_more_often(sample_roster):
    results = _engine(400, seed=3).simulate(sample_roster)

    assert results.advance_odds["FURIA"] > results.advance_odds["Passion UA"]
    assert results.record_odds["Passion UA"]["0-3"] > results.record_odds["FURIA"]["0-3"]


def test_se_and_ci_populated(roster16):
    results = _engine(100).simulate(roster16)

    for team in results.record_odds:
        for label in ("3-0", "ADV"):
            se = results.simulation_se[team][label]
            lo = results.ci_lower[team][label]
            hi = results.ci_upper[team][label]
            assert se >= 0
            assert 0 <= lo <= hi <= 1


def test_head_to_head_counts(roster16):
    n = 60
    results = _engine(n).simulate(roster16)

    for team, meetings in results.head_to_head.items():
        assert team not in meetings
        for opponent, count in meetings.items():
            assert results.head_to_head[opponent][team] == count

    total_matches = sum(sum(m.values()) for m in results.head_to_head.values()) // 2
    # 8 + 8 + 8 + 6 + 3 matches per Swiss trial
    assert total_matches == 33 * n

    most_faced = results.most_faced("team_1")
    assert 0 < len(most_faced) <= 3
    shares = [share for _, share in most_faced]
    assert shares == sorted(shares, reverse=True)
    assert results.most_faced("unknown") == []


def test_caller_owned_counters_accumulate(roster16):
    ruleset = Ruleset.swiss()
    counters = RecordCounters.for_roster(roster16, ruleset)

    _engine(40, seed=1).simulate(roster16, ruleset, counters)
    results = _engine(40, seed=2).simulate(roster16, ruleset, counters)

    assert counters.trials == 80
    assert results.num_simulations == 80
    assert all(sum(c.values()) == 80 for c in results.record_counts.values())


def test_record_counters_add_trial():
    counters = RecordCounters(["A", "B"], ["1-0", "0-1"])
    counters.add_trial({"A": Record(1, 0), "B": Record(0, 1)}, {"A": ["B"], "B": ["A"]})

    assert counters.trials == 1
    assert counters.record_counts == {"A": {"1-0": 1, "0-1": 0}, "B": {"1-0": 0, "0-1": 1}}
    assert counters.head_to_head == {"A": {"B": 1}, "B": {"A": 1}}


def test_batch_tally_counts_every_trial(roster16):
    ruleset = Ruleset.swiss()
    tally = monte_carlo._run_batch(10, 5, 123, roster16, ruleset, RankSwingPredictor())

    assert tally.start == 10
    assert tally.trials == 5
    for counts in tally.record_counts.values():
        assert list(counts) == ruleset.final_records()
        assert sum(counts.values()) == 5
    assert sum(sum(m.values()) for m in tally.head_to_head.values()) == 2 * 33 * 5


def test_single_trials_feed_engine_counters(roster16):
    ruleset = Ruleset.swiss()
    counters = RecordCounters.for_roster(roster16, ruleset)
    for seed in range(10):
        counters.add_trial(simulate_one_trial(roster16, ruleset, seed=seed))

    results = _engine(30).simulate(roster16, ruleset, counters)

    assert results.num_simulations == 40
    assert all(sum(c.values()) == 40 for c in results.record_counts.values())


def test_interrupt_keeps_completed_batches(roster16, monkeypatch):
    real_run_batch = monte_carlo._run_batch
    calls = []

    def run_batch_then_interrupt(*args):
        calls.append(args[0])
        if len(calls) == 3:
            raise KeyboardInterrupt
        return real_run_batch(*args)

    monkeypatch.setattr(monte_carlo, "_run_batch", run_batch_then_interrupt)

    results = _engine(100, batch_size=20).simulate(roster16)

    assert results.interrupted
    assert results.num_simulations == 40
    # No batch is scheduled after the interrupt
    assert calls == [0, 20, 40]
    for team, odds in results.record_odds.items():
        assert sum(results.record_counts[team].values()) == 40
        assert sum(odds.values()) == pytest.approx(1.0)
    assert sum(results.advance_odds.values()) == pytest.approx(8.0)


def test_single_elimination_simulation(roster8, seed_favourite):
    results = _engine(50, predictor=seed_favourite).simulate(roster8, Ruleset.single_elimination())

    assert results.final_records == ["3-0", "2-1", "1-1", "0-1"]
    assert results.advance_odds["team_1"] == pytest.approx(1.0)
    assert results.record_odds["team_2"]["2-1"] == pytest.approx(1.0)
    assert sum(results.advance_odds.values()) == pytest.approx(1.0)


def test_configuration_errors_abort_the_run(roster8, roster16):
    with pytest.raises(ConfigurationError):
        _engine(10).simulate(roster8, Ruleset.swiss())

    with pytest.raises(ConfigurationError):
        _engine(10).simulate(roster8, Ruleset.swiss(team_count=8))

    with pytest.raises(ConfigurationError):
        SimulationConfig(num_simulations=-1)

    with pytest.raises(ConfigurationError):
        Ruleset.single_elimination(team_count=6)


def test_results_frame(sample_roster):
    results = _engine(50).simulate(sample_roster)
    frame = results.to_frame()

    assert len(frame) == 16
    assert list(frame.index) == list(range(1, 17))
    for column in ("team", "3-0", "3-1", "3-2", "2-3", "1-3", "0-3", "3-X", "X-3", "advance"):
        assert column in frame.columns
    assert frame.loc[1, "team"] == "FURIA"
    assert frame["advance"].sum() == pytest.approx(800.0)

    payload = results.to_dict()
    assert payload["num_simulations"] == 50
    assert set(payload["record_counts"]) == {team.name for team in sample_roster}
