#!/usr/bin/env python3
"""Clubnight evening simulator.

Pairs mode (default):
    clubnight [config.yaml] [--seed N] [--players A B C D] [--wins W] [-o DIR]

    Plays a full pairs evening with random scores and writes:
      {DIR}/evening.json  - The finished evening, reloadable with load_evening
      {DIR}/summary.txt   - Round-by-round view, validation report, standings

Singles mode:
    clubnight --singles [--clubs-per-player K] [--players A B C ...]

Examples:
    clubnight                              # default config, random seed
    clubnight --seed 42 -o friday          # reproducible, custom directory
    clubnight --wins 5 --players Ana Ben Cy Dov
    clubnight --singles --clubs-per-player 3
"""

import argparse
import random
import sys
from pathlib import Path

from clubnight.config import load_config
from clubnight.errors import ClubnightError
from clubnight.evening import (
    EngineContext, RedrawDecider, StartRound, SubmitResult, create_evening,
    reduce,
)
from clubnight.models import Evening, Player
from clubnight.output import write_evening
from clubnight.ranking import (
    calculate_player_stats, calculate_singles_stats, format_standings_report,
)
from clubnight.rounds import needs_decider
from clubnight.singles import (
    available_clubs, create_singles_evening, submit_singles_result,
)
from clubnight.verify import format_validation_report, validate_evening


DEFAULT_PLAYERS = ["Player 1", "Player 2", "Player 3", "Player 4"]

# Guard against a run of drawn deciders that never ends
MAX_DECIDERS = 20


def _random_score(rng: random.Random) -> tuple[int, int]:
    return (rng.randint(0, 4), rng.randint(0, 4))


def simulate_pairs(evening: Evening, ctx: EngineContext) -> Evening:
    """Play every round of a pairs evening with random scores."""
    while not evening.completed:
        evening = reduce(StartRound(), evening, ctx)
        deciders = 0
        while not evening.current_round.completed:
            rnd = evening.current_round
            match = rnd.open_match
            if match is None and needs_decider(rnd, evening.wins_to_complete):
                deciders += 1
                if deciders > MAX_DECIDERS:
                    raise ClubnightError(
                        f"Round {rnd.number} still level after "
                        f"{MAX_DECIDERS} deciders")
                evening = reduce(RedrawDecider(), evening, ctx)
                continue

            clubs = None
            if not match.is_decider and rnd.team_pools:
                clubs = _pick_clubs(rnd, ctx.rng)
            evening = reduce(
                SubmitResult(match.id, _random_score(ctx.rng), clubs),
                evening, ctx)
    return evening


def _pick_clubs(rnd, rng: random.Random):
    """Each side picks an unplayed club from its own pool."""
    played = {c.id for m in rnd.matches if m.completed for c in m.clubs}
    picks = []
    for pool in rnd.team_pools:
        left = [c for c in pool if c.id not in played]
        if not left:
            return None
        picks.append(rng.choice(left))
    if picks[0].id == picks[1].id:
        return None
    return (picks[0], picks[1])


def simulate_singles(evening: Evening, rng: random.Random) -> Evening:
    """Play a singles evening, each player picking any club still in hand."""
    while not evening.completed:
        game = evening.game_sequence[evening.current_game_index]
        clubs = tuple(rng.choice(available_clubs(evening, p.id))
                      for p in game.players)
        evening = submit_singles_result(evening, game.id,
                                        _random_score(rng), clubs)
    return evening


def main():
    parser = argparse.ArgumentParser(
        description="Clubnight evening simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""\
Output files:
  {dir}/evening.json   The finished evening as JSON
  {dir}/summary.txt    Evening view + validation report + standings

Exit codes:
  0  Evening simulated and valid
  1  Invalid input, config error, or validation errors found
""",
    )
    parser.add_argument(
        "config", nargs="?", default="config.yaml",
        help="Path to config YAML file (default: config.yaml)"
    )
    parser.add_argument(
        "--seed", type=int, default=None,
        help="Random seed for a reproducible evening"
    )
    parser.add_argument(
        "--players", nargs="+", metavar="NAME",
        help="Player names (4 for pairs, 2 or more for singles)"
    )
    parser.add_argument(
        "--wins", type=int, default=None,
        help="Wins needed to take a round (default: from config)"
    )
    parser.add_argument(
        "--singles", action="store_true",
        help="Play a singles evening instead of pairs"
    )
    parser.add_argument(
        "--clubs-per-player", type=int, default=None,
        help="Clubs dealt to each player in singles (default: from config)"
    )
    parser.add_argument(
        "--output-prefix", "-o", default="output",
        help="Output directory for generated files (default: output/)"
    )
    args = parser.parse_args()

    config_path = args.config
    if not Path(config_path).exists():
        print(f"Error: config file {config_path} not found")
        sys.exit(1)

    print(f"Loading config from {config_path}...")
    try:
        config = load_config(config_path)
    except ClubnightError as e:
        print(f"Error: {e}")
        sys.exit(1)

    rng = random.Random(args.seed)
    players = [Player.from_name(n) for n in (args.players or DEFAULT_PLAYERS)]

    try:
        if args.singles:
            per_player = (args.clubs_per_player
                          or config["evening"]["clubs_per_player"])
            print(f"Simulating singles evening (seed={args.seed}, "
                  f"{per_player} clubs each)...")
            evening = create_singles_evening(players, per_player,
                                             config["clubs"], rng)
            evening = simulate_singles(evening, rng)
            stats = calculate_singles_stats(evening)
        else:
            wins = args.wins or config["evening"]["wins_to_complete"]
            print(f"Simulating pairs evening (seed={args.seed}, "
                  f"first to {wins})...")
            ctx = EngineContext(clubs=config["clubs"],
                                pool_configs=config["pool_configs"], rng=rng)
            evening = create_evening(players, wins, rng)
            evening = simulate_pairs(evening, ctx)
            stats = calculate_player_stats(evening)
    except ClubnightError as e:
        print(f"Error: {e}")
        sys.exit(1)

    # Validate
    print("\nValidating...")
    result = validate_evening(evening)
    report = format_validation_report(result)
    print(report)

    # Standings
    standings = format_standings_report(stats, evening.rankings)
    print("\n" + standings)

    # Write outputs
    print("\nWriting output files...")
    write_evening(evening, output_prefix=args.output_prefix,
                  summary=report + "\n\n" + standings)

    if result["valid"]:
        print("\nEvening simulated successfully!")
    else:
        print(f"\nEvening has {len(result['errors'])} validation errors.")
        sys.exit(1)


if __name__ == "__main__":
    main()
