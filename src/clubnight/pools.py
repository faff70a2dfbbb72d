"""Club pool allocation.

Every round of a pairs evening offers each side a pool of clubs to pick
from. Pools are drawn without replacement from the catalog so the two sides
never share a club, and clubs already used earlier in the evening stay out
unless the catalog has nothing else left (recycling).

Four entry points:
1. generate_pools: tiered draw from a DistributionConfig
2. generate_team_pools: balance fallback when no config exists
3. generate_balanced_decider_teams: one club per side for a decider
4. tier_candidates / assign_tier: trivia mode, one tier at a time

Nothing here raises on exhaustion. Short pools come back as they are and
PoolResult.is_short tells the caller to offer a manual draw.
"""

import random
from typing import Iterable, Optional, Sequence

from clubnight.catalog import prime_teams, star_levels
from clubnight.errors import InvalidInputError
from clubnight.models import Club, DistributionConfig, PoolResult, TierEntry


# Fallback draws never go below this rating
MIN_FALLBACK_STARS = 4

# Clubs per side drawn from the top of the catalog by the balance fallback
TOP_CLUBS_PER_SIDE = 2


def pool_size(wins_to_complete: int) -> int:
    """Most matches a first-to-N round can take, so clubs needed per side."""
    return wins_to_complete * 2 - 1


def _check_sides(sides: Sequence) -> None:
    if len(sides) != 2:
        raise InvalidInputError(f"Pools are drawn for 2 sides, got {len(sides)}")


def _matches_tier(club: Club, tier: TierEntry) -> bool:
    if tier.is_prime:
        return club.is_prime
    if club.is_prime or club.stars != tier.stars:
        return False
    return tier.include_national or not club.is_national


def _draw_with_fallback(tier: TierEntry, clubs: list[Club], banned: set[str],
                        excluded: set[str], in_round: set[str],
                        rng: random.Random) -> tuple[Optional[Club], bool]:
    """Draw one club for a tier slot. Returns (club, recycled)."""
    candidates = [c for c in clubs
                  if c.id not in banned and _matches_tier(c, tier)]
    if candidates:
        return rng.choice(candidates), False

    # Tier is dry: highest rating that still has clubs, label ignored
    for stars in star_levels(clubs, MIN_FALLBACK_STARS):
        candidates = [c for c in clubs
                      if c.stars == stars and not c.is_prime
                      and c.id not in banned]
        if candidates:
            return rng.choice(candidates), False

    # Catalog is dry: reuse a club from earlier in the evening, but never
    # one already in this round's pools
    reusable = [c for c in clubs if c.id in excluded and c.id not in in_round]
    candidates = [c for c in reusable if _matches_tier(c, tier)]
    if not candidates:
        candidates = [c for c in reusable
                      if not c.is_prime and c.stars >= MIN_FALLBACK_STARS]
    if candidates:
        return rng.choice(candidates), True

    return None, False


def generate_pools(sides: Sequence, exclude_club_ids: Iterable[str],
                   config: DistributionConfig, clubs: list[Club],
                   rng: random.Random | None = None,
                   seed: int | None = None) -> PoolResult:
    """Draw one pool per side following a distribution config.

    Tiers are drawn in config order (prime first when enabled), alternating
    sides slot by slot so a thin tier is shared out evenly. Each drawn club
    is banned at once, so it cannot land in the other pool or a later tier.
    """
    _check_sides(sides)
    if rng is None:
        rng = random.Random(seed)

    excluded = set(exclude_club_ids)
    banned = set(excluded)
    in_round: set[str] = set()
    recycled: set[str] = set()
    pools: tuple[list[Club], list[Club]] = ([], [])

    for tier in config.tiers():
        for _ in range(tier.count):
            for side in (0, 1):
                club, was_recycled = _draw_with_fallback(
                    tier, clubs, banned, excluded, in_round, rng)
                if club is None:
                    continue
                pools[side].append(club)
                banned.add(club.id)
                in_round.add(club.id)
                if was_recycled:
                    recycled.add(club.id)

    return PoolResult(
        pools=pools,
        recycled_club_ids=recycled,
        target_size=config.slots_per_side,
    )


def generate_team_pools(sides: Sequence, exclude_club_ids: Iterable[str],
                        clubs: list[Club], rng: random.Random | None = None,
                        clubs_per_side: int = 5,
                        seed: int | None = None) -> PoolResult:
    """Draw balanced pools when no distribution config is available.

    Each side first gets two top clubs (5 stars, then 4.5, then anything,
    preferring 4+). The rest are drawn two at a time: the better of the two
    goes to the pool with the lower running star total, the other to the
    other pool. Greedy, not an optimal split.
    """
    _check_sides(sides)
    if rng is None:
        rng = random.Random(seed)

    banned = set(exclude_club_ids)
    pools: tuple[list[Club], list[Club]] = ([], [])
    sums = [0.0, 0.0]

    def _take(side: int, club: Club) -> None:
        pools[side].append(club)
        sums[side] += club.stars
        banned.add(club.id)

    def _open_candidates() -> list[Club]:
        cands = [c for c in clubs if not c.is_prime and c.id not in banned]
        preferred = [c for c in cands if c.stars >= MIN_FALLBACK_STARS]
        return preferred or cands

    def _pick_top() -> Optional[Club]:
        for stars in (5, 4.5):
            cands = [c for c in clubs
                     if c.stars == stars and not c.is_prime
                     and c.id not in banned]
            if cands:
                return rng.choice(cands)
        cands = _open_candidates()
        return rng.choice(cands) if cands else None

    for side in (0, 1):
        for _ in range(min(TOP_CLUBS_PER_SIDE, clubs_per_side)):
            club = _pick_top()
            if club is None:
                break
            _take(side, club)

    while any(len(p) < clubs_per_side for p in pools):
        cands = _open_candidates()
        if not cands:
            break
        drawn = rng.sample(cands, min(2, len(cands)))
        drawn.sort(key=lambda c: c.stars, reverse=True)
        open_sides = [s for s in (0, 1) if len(pools[s]) < clubs_per_side]
        open_sides.sort(key=lambda s: (sums[s], s))
        for club, side in zip(drawn, open_sides):
            _take(side, club)

    return PoolResult(pools=pools, target_size=clubs_per_side)


def _closest_partner(first: Club, rest: list[Club], max_diff: float,
                     rng: random.Random) -> Club:
    same = [c for c in rest if c.stars == first.stars]
    if same:
        return rng.choice(same)
    near = [c for c in rest if abs(c.stars - first.stars) <= max_diff]
    if near:
        return rng.choice(near)
    best = min(abs(c.stars - first.stars) for c in rest)
    return rng.choice([c for c in rest if abs(c.stars - first.stars) == best])


def generate_balanced_decider_teams(clubs: list[Club],
                                    exclude_club_ids: Iterable[str],
                                    rng: random.Random | None = None,
                                    min_stars: float = 4,
                                    max_diff: float = 1,
                                    seed: int | None = None,
                                    ) -> Optional[PoolResult]:
    """Pick one club per side for a decider, as evenly rated as possible.

    When fewer than two unused clubs of min_stars remain, any two clubs of
    min_stars are used instead (reused ones are marked recycled and the
    max_diff bound may not hold). Returns None when the catalog itself has
    fewer than two such clubs.
    """
    if rng is None:
        rng = random.Random(seed)

    banned = set(exclude_club_ids)
    eligible = [c for c in clubs if not c.is_prime and c.stars >= min_stars]
    fresh = [c for c in eligible if c.id not in banned]

    if len(fresh) >= 2:
        first = rng.choice(fresh)
        rest = [c for c in fresh if c.id != first.id]
        second = _closest_partner(first, rest, max_diff, rng)
    elif len(eligible) >= 2:
        if fresh:
            first = fresh[0]
            second = rng.choice([c for c in eligible if c.id != first.id])
        else:
            first, second = rng.sample(eligible, 2)
    else:
        return None

    return PoolResult(
        pools=([first], [second]),
        recycled_club_ids={c.id for c in (first, second) if c.id in banned},
        target_size=1,
    )


def remaining_pools(pools: tuple[list[Club], list[Club]],
                    used_club_ids: Iterable[str]) -> tuple[list[Club], list[Club]]:
    """The part of a round's pools nobody has picked yet."""
    used = set(used_club_ids)
    return ([c for c in pools[0] if c.id not in used],
            [c for c in pools[1] if c.id not in used])


# ---------------------------------------------------------------------------
# Trivia mode: one tier at a time, the question winner picks first
# ---------------------------------------------------------------------------

def tier_candidates(tier: TierEntry, clubs: list[Club],
                    used_club_ids: Iterable[str],
                    rng: random.Random | None = None,
                    seed: int | None = None) -> list[Club]:
    """Shuffled unused clubs for one tier, enough for both sides."""
    if rng is None:
        rng = random.Random(seed)
    used = set(used_club_ids)
    available = [c for c in clubs
                 if c.id not in used and _matches_tier(c, tier)]
    rng.shuffle(available)
    return available[:tier.count * 2]


def assign_tier(candidates: list[Club], tier: TierEntry, winner_side: int,
                chosen_club_id: str) -> tuple[list[Club], list[Club]]:
    """Split one tier's candidates after a trivia question.

    The winning side gets its chosen club plus count-1 more, the losing
    side gets count. The rest are dealt best first, each to the side with
    the lower star total that still has room (the loser on ties).
    """
    if winner_side not in (0, 1):
        raise InvalidInputError(f"winner_side must be 0 or 1, got {winner_side}")
    chosen = next((c for c in candidates if c.id == chosen_club_id), None)
    if chosen is None:
        raise InvalidInputError(
            f"Chosen club {chosen_club_id!r} is not a candidate of this tier")

    loser_side = 1 - winner_side
    assigned: tuple[list[Club], list[Club]] = ([], [])
    assigned[winner_side].append(chosen)

    remaining = sorted((c for c in candidates if c.id != chosen.id),
                       key=lambda c: c.stars, reverse=True)
    for club in remaining:
        open_sides = [s for s in (0, 1) if len(assigned[s]) < tier.count]
        if not open_sides:
            break
        side = min(open_sides, key=lambda s: (
            sum(c.stars for c in assigned[s]), s != loser_side))
        assigned[side].append(club)

    return assigned


# ---------------------------------------------------------------------------
# Swapping a single club out of a pool
# ---------------------------------------------------------------------------

def swap_candidates(club: Club, clubs: list[Club],
                    exclude_ids: Iterable[str]) -> list[Club]:
    """Clubs that may replace `club` in a pool, best rated first.

    Prime clubs only swap with prime clubs. Others list same-rated clubs
    and then every other 4+ star club.
    """
    banned = set(exclude_ids) | {club.id}
    if club.is_prime:
        candidates = [c for c in prime_teams(clubs) if c.id not in banned]
    else:
        open_clubs = [c for c in clubs if not c.is_prime and c.id not in banned]
        same = [c for c in open_clubs if c.stars == club.stars]
        other = [c for c in open_clubs
                 if c.stars != club.stars and c.stars >= MIN_FALLBACK_STARS]
        candidates = same + other
    return sorted(candidates, key=lambda c: (-c.stars, c.name))


def swap_club(pools: tuple[list[Club], list[Club]], side: int, club_id: str,
              clubs: list[Club], used_club_ids: Iterable[str],
              rng: random.Random | None = None,
              replacement_id: str | None = None,
              seed: int | None = None) -> tuple[list[Club], list[Club]]:
    """Return new pools with one club of `side` replaced.

    Without replacement_id a random candidate of the same rating is used
    (any prime club for a prime club).
    """
    if side not in (0, 1):
        raise InvalidInputError(f"side must be 0 or 1, got {side}")
    if rng is None:
        rng = random.Random(seed)

    pool = pools[side]
    idx = next((i for i, c in enumerate(pool) if c.id == club_id), None)
    if idx is None:
        raise InvalidInputError(f"Club {club_id!r} is not in pool {side}")
    old = pool[idx]

    exclude_ids = {c.id for p in pools for c in p} | set(used_club_ids)
    candidates = swap_candidates(old, clubs, exclude_ids)

    if replacement_id is not None:
        new = next((c for c in candidates if c.id == replacement_id), None)
        if new is None:
            raise InvalidInputError(
                f"Club {replacement_id!r} cannot replace {club_id!r}")
    else:
        pickable = candidates if old.is_prime else [
            c for c in candidates if c.stars == old.stars]
        if not pickable:
            raise InvalidInputError(f"No club left to swap for {club_id!r}")
        new = rng.choice(pickable)

    new_pools = (list(pools[0]), list(pools[1]))
    new_pools[side][idx] = new
    return new_pools
