#!/usr/bin/env python3
"""Scan seeds to find evenings whose pools never run short or recycle clubs.

Usage: clubnight-scan [config.yaml] [-n MAX_SEED] [--wins W]
"""

import argparse
import random
import sys
from pathlib import Path

from clubnight.cli import DEFAULT_PLAYERS, simulate_pairs
from clubnight.config import load_config
from clubnight.errors import ClubnightError
from clubnight.evening import EngineContext, create_evening
from clubnight.models import Player
from clubnight.pools import pool_size
from clubnight.verify import validate_evening


def scan_seed(config: dict, seed: int, wins: int) -> dict:
    """Run a single seed and return summary info."""
    rng = random.Random(seed)
    ctx = EngineContext(clubs=config["clubs"],
                        pool_configs=config["pool_configs"], rng=rng)
    players = [Player.from_name(n) for n in DEFAULT_PLAYERS]
    try:
        evening = simulate_pairs(create_evening(players, wins, rng), ctx)
    except ClubnightError as e:
        return {"seed": seed, "ok": False, "error": str(e)}

    config_entry = config["pool_configs"].get(wins)
    target = config_entry.slots_per_side if config_entry else pool_size(wins)

    short = 0
    recycled = 0
    deciders = 0
    for rnd in evening.rounds:
        if rnd.team_pools and any(len(p) < target for p in rnd.team_pools):
            short += 1
        recycled += len(rnd.recycled_club_ids)
        deciders += sum(1 for m in rnd.matches if m.is_decider)

    valid = validate_evening(evening)["valid"]
    return {
        "seed": seed,
        "ok": valid and short == 0 and recycled == 0,
        "short": short,
        "recycled": recycled,
        "deciders": deciders,
        "valid": valid,
    }


def main():
    parser = argparse.ArgumentParser(
        description="Scan seeds to find evenings with full pools "
                    "and no recycled clubs",
    )
    parser.add_argument(
        "config", nargs="?", default="config.yaml",
        help="Path to config YAML file (default: config.yaml)"
    )
    parser.add_argument(
        "-n", "--max-seed", type=int, default=100,
        help="Maximum seed to try (default: 100, scans 0..N-1)"
    )
    parser.add_argument(
        "--wins", type=int, default=None,
        help="Wins needed to take a round (default: from config)"
    )
    args = parser.parse_args()

    config_path = args.config
    if not Path(config_path).exists():
        print(f"Error: config file {config_path} not found")
        sys.exit(1)

    config = load_config(config_path)
    max_seed = args.max_seed
    wins = args.wins or config["evening"]["wins_to_complete"]

    print(f"Scanning seeds 0..{max_seed - 1} using {config_path} "
          f"(first to {wins})...")
    print(f"{'Seed':>6}  {'Short':>5}  {'Recyc':>5}  {'Decid':>5}  Result")
    print("-" * 50)

    good_seeds = []
    for seed in range(max_seed):
        result = scan_seed(config, seed, wins)
        status = "OK" if result["ok"] else "FAIL"
        short = result.get("short", "?")
        recycled = result.get("recycled", "?")
        deciders = result.get("deciders", "?")
        print(f"{seed:>6}  {short:>5}  {recycled:>5}  {deciders:>5}  {status}",
              flush=True)
        if result["ok"]:
            good_seeds.append(seed)

    print("-" * 50)
    if good_seeds:
        print(f"\nGood seeds ({len(good_seeds)}/{max_seed}): "
              f"{', '.join(str(s) for s in good_seeds)}")
    else:
        print(f"\nNo good seeds found in 0..{max_seed - 1}")

    sys.exit(0 if good_seeds else 1)


if __name__ == "__main__":
    main()
