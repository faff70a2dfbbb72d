"""Partner rotation for a 4-player pairs evening."""

import random

from clubnight.errors import InvalidInputError
from clubnight.models import Pair, Player


def _make_pair(a: Player, b: Player, round_number: int) -> Pair:
    return Pair(id=f"{a.id}-{b.id}-r{round_number}", players=(a, b))


def generate_pairs(players: list[Player], rng: random.Random | None = None,
                   seed: int | None = None) -> list[list[Pair]]:
    """Generate the 3-round partner schedule for exactly 4 players.

    Four players split into two pairs in exactly three ways, so playing
    all three partitions has every player partner each other player once.
    Players are shuffled before building the partitions and the rounds are
    shuffled after, so the schedule looks random while staying complete.

    Generate once per evening and keep it: a second call gives a different
    schedule.
    """
    if len(players) != 4:
        raise InvalidInputError(
            f"A pairs evening needs exactly 4 players, got {len(players)}")
    if len({p.id for p in players}) != 4:
        raise InvalidInputError("Player ids must be distinct")

    if rng is None:
        rng = random.Random(seed)

    shuffled = list(players)
    rng.shuffle(shuffled)
    a, b, c, d = shuffled

    partitions = [
        ((a, b), (c, d)),
        ((a, c), (b, d)),
        ((a, d), (b, c)),
    ]
    rng.shuffle(partitions)

    # Pair ids carry the round they end up in after the shuffle
    schedule = []
    for i, (first, second) in enumerate(partitions):
        schedule.append([
            _make_pair(*first, i + 1),
            _make_pair(*second, i + 1),
        ])
    return schedule


def verify_pair_schedule(schedule: list[list[Pair]],
                         players: list[Player]) -> dict:
    """Verify a partner schedule is complete.

    Returns dict with:
    - valid: bool
    - errors: list of error strings
    - partner_counts: dict of (player_a, player_b) -> times partnered
    """
    errors = []
    partner_counts: dict[tuple[str, str], int] = {}
    ids = [p.id for p in players]

    for rnd_idx, pairs in enumerate(schedule, 1):
        if len(pairs) != 2:
            errors.append(f"Round {rnd_idx}: expected 2 pairs, got {len(pairs)}")
        in_round = set()
        for pair in pairs:
            for p in pair.players:
                if p.id in in_round:
                    errors.append(f"Round {rnd_idx}: {p.id} appears twice")
                in_round.add(p.id)
            key = tuple(sorted(p.id for p in pair.players))
            partner_counts[key] = partner_counts.get(key, 0) + 1

    for i, p1 in enumerate(ids):
        for p2 in ids[i + 1:]:
            key = tuple(sorted([p1, p2]))
            count = partner_counts.get(key, 0)
            if count != 1:
                errors.append(
                    f"{p1} + {p2}: partnered {count} times (expected 1)")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "partner_counts": partner_counts,
    }
