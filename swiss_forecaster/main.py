"""Main CLI interface for the bracket forecaster."""

import argparse
import json
import logging
import sys

from .data.loader import DataLoader, get_team_by_name
from .exceptions import SwissError
from .models.ruleset import BracketKind, Ruleset
from .predictors.player_rating import PlayerRatingPredictor
from .predictors.rank_swing import RankSwingPredictor
from .simulation.monte_carlo import MonteCarloEngine, SimulationConfig


def create_predictor(model_type: str):
    """
    Create predictor based on model type.

    Args:
        model_type: Type of model ('rank-swing', 'player-rating')

    Returns:
        Predictor instance
    """
    if model_type == "rank-swing":
        return RankSwingPredictor()
    elif model_type == "player-rating":
        return PlayerRatingPredictor()
    else:
        raise ValueError(f"Unknown model type: {model_type}")


def create_ruleset(bracket: str) -> Ruleset:
    if bracket == BracketKind.SWISS.value:
        return Ruleset.swiss()
    elif bracket == BracketKind.SINGLE_ELIMINATION.value:
        return Ruleset.single_elimination()
    else:
        raise ValueError(f"Unknown bracket: {bracket}")


def load_teams(args):
    if args.input:
        print(f"Loading roster from {args.input}...")
        return DataLoader.load_teams_from_json(args.input)
    return DataLoader.sample_teams()


def run_simulation(args):
    """Simulate many brackets and print the record table."""
    try:
        teams = load_teams(args)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error loading data: {e}")
        return 1

    ruleset = create_ruleset(args.bracket)

    if ruleset.kind is BracketKind.SINGLE_ELIMINATION and len(teams) > ruleset.team_count:
        print(f"Roster has {len(teams)} teams; keeping the top {ruleset.team_count} seeds.")
        teams = sorted(teams, key=lambda t: t.seed)[:ruleset.team_count]

    print(f"Simulating {args.simulations:,} {ruleset.kind.value} brackets...")
    try:
        config = SimulationConfig(
            num_simulations=args.simulations,
            random_seed=args.seed,
            parallel_workers=args.workers,
            batch_size=args.batch_size,
        )
        engine = MonteCarloEngine(create_predictor(args.model), config)
        results = engine.simulate(teams, ruleset)
    except SwissError as e:
        print(f"Simulation failed: {e}")
        return 1

    print(f"\n{'='*60}")
    status = " (interrupted)" if results.interrupted else ""
    print(f"Results after {results.num_simulations:,} simulations{status} "
          f"(took {results.elapsed_seconds:.2f} seconds)")
    print(f"{'='*60}\n")
    print("Note: these predictions are not guaranteed to be accurate.")
    print("Use them as a guideline, alongside form, betting odds and results.\n")
    print(results.to_frame().to_string(float_format=lambda v: f"{v:6.2f}%"))

    if args.head_to_head:
        print()
        for team in sorted(results.seeds, key=results.seeds.get):
            print(f"{team}'s most faced opponents:")
            for opponent, share in results.most_faced(team):
                print(f"- {opponent} ({share * 100:.2f}%)")
            print()

    if args.output:
        with open(args.output, 'w') as f:
            json.dump(results.to_dict(), f, indent=2)
        print(f"\n✓ Results saved to {args.output}")

    return 0


def show_matchup(args):
    """Print the favourite of a single series."""
    try:
        teams = load_teams(args)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error loading data: {e}")
        return 1

    team1 = get_team_by_name(teams, args.team1)
    team2 = get_team_by_name(teams, args.team2)
    for name, team in ((args.team1, team1), (args.team2, team2)):
        if team is None:
            print(f"Unknown team: {name}")
            return 1

    predictor = create_predictor(args.model)
    winner, prob = predictor.predict(team1, team2, args.best_of)
    loser = team2 if winner is team1 else team1
    print(f"{winner.name} has a {prob * 100:.2f}% chance of winning against {loser.name} (BO{args.best_of})")
    return 0


def show_first_round(args):
    """Print the favourite of every opening-round Swiss pairing."""
    try:
        teams = sorted(load_teams(args), key=lambda t: t.seed)
    except (OSError, ValueError, KeyError) as e:
        print(f"Error loading data: {e}")
        return 1

    predictor = create_predictor(args.model)
    half = len(teams) // 2
    for team1, team2 in zip(teams[:half], teams[half:]):
        winner, prob = predictor.predict(team1, team2, 1)
        loser = team2 if winner is team1 else team1
        print(f"{winner.name} has a {prob * 100:.2f}% chance of winning against {loser.name}")
    return 0


def create_sample(args):
    """Write the bundled roster to JSON."""
    DataLoader.create_sample_data(args.output)
    print(f"✓ Sample roster written to {args.output}")
    return 0


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Swiss Forecaster - Monte Carlo odds for Swiss and single-elimination brackets"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    def add_roster_arguments(sub):
        sub.add_argument(
            "--input", "-i",
            default=None,
            help="Roster JSON file (default: bundled sample roster)"
        )
        sub.add_argument(
            "--model", "-m",
            choices=["rank-swing", "player-rating"],
            default="rank-swing",
            help="Match outcome model (default: rank-swing)"
        )

    simulate_parser = subparsers.add_parser("simulate", help="Simulate many brackets")
    add_roster_arguments(simulate_parser)
    simulate_parser.add_argument(
        "--bracket", "-b",
        choices=[kind.value for kind in BracketKind],
        default=BracketKind.SWISS.value,
        help="Bracket format (default: swiss)"
    )
    simulate_parser.add_argument("--simulations", "-n", type=int, default=100000, help="Brackets to simulate")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Random seed")
    simulate_parser.add_argument("--workers", type=int, default=None, help="Worker processes (default: CPUs - 1)")
    simulate_parser.add_argument("--batch-size", type=int, default=5000, help="Trials per worker task")
    simulate_parser.add_argument("--head-to-head", action="store_true", help="Print most faced opponents")
    simulate_parser.add_argument("--output", "-o", default=None, help="Optional JSON report path")

    matchup_parser = subparsers.add_parser("matchup", help="Most likely winner of one series")
    add_roster_arguments(matchup_parser)
    matchup_parser.add_argument("team1", help="First team name")
    matchup_parser.add_argument("team2", help="Second team name")
    matchup_parser.add_argument("--best-of", type=int, default=1, help="Series length (default: 1)")

    first_round_parser = subparsers.add_parser("first-round", help="Most likely winners of the opening round")
    add_roster_arguments(first_round_parser)

    sample_parser = subparsers.add_parser("sample", help="Create sample roster data")
    sample_parser.add_argument(
        "--output", "-o",
        default="sample_roster.json",
        help="Output file for sample data (default: sample_roster.json)"
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "simulate":
        return run_simulation(args)
    elif args.command == "matchup":
        return show_matchup(args)
    elif args.command == "first-round":
        return show_first_round(args)
    elif args.command == "sample":
        return create_sample(args)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
