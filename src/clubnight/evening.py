"""Evening transitions for pairs mode.

Every change to an evening is an event folded in by reduce(), which returns
a new Evening and leaves the old one untouched. Undo is keeping the previous
snapshot; replaying the same events with the same seed rebuilds the same
evening.

Flow of one round:
1. StartRound draws the pools and opens match 1
2. SelectClubs / SubmitResult until a pair reaches the target or the match
   cap is used up
3. A level round opens one decider with a club drawn for each side; after a
   drawn decider the caller decides whether to send RedrawDecider
4. After round 3 the evening completes with rankings

EditMatch and DeleteMatch recount a round from its remaining matches. A
round still being played is then moved on the same way SubmitResult moves
it; a completed round stays completed.
"""

import random
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Optional

from clubnight.errors import InvalidInputError, UnknownMatchError
from clubnight.models import (
    PAIRS, Club, DistributionConfig, Evening, Match, Pair, Player, Round,
)
from clubnight.pairing import generate_pairs
from clubnight.pools import (
    generate_balanced_decider_teams, generate_pools, generate_team_pools,
    pool_size,
)
from clubnight.ranking import (
    calculate_player_stats, calculate_rankings, evening_stats,
)
from clubnight.rounds import (
    check_score, create_decider_match, create_next_match, create_round,
    get_round_winner, is_round_complete, match_winner, needs_decider,
    used_club_ids, with_recomputed_scores,
)


@dataclass
class EngineContext:
    """Everything a transition needs besides the evening itself."""
    clubs: list[Club]
    pool_configs: dict[int, DistributionConfig] = field(default_factory=dict)
    rng: random.Random = field(default_factory=random.Random)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------

@dataclass
class StartRound:
    pass


@dataclass
class SelectClubs:
    match_id: str
    clubs: tuple[Club, Club]


@dataclass
class SubmitResult:
    match_id: str
    score: tuple[int, int]
    clubs: Optional[tuple[Club, Club]] = None


@dataclass
class RedrawDecider:
    pass


@dataclass
class EditMatch:
    round_number: int
    match_id: str
    score: tuple[int, int]


@dataclass
class DeleteMatch:
    round_number: int
    match_id: str


@dataclass
class CompleteEvening:
    pass


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def _new_id(prefix: str, rng: random.Random) -> str:
    return f"{prefix}-{rng.getrandbits(32):08x}"


def _check_players(players: list[Player], count: int | None = None) -> None:
    if count is not None and len(players) != count:
        raise InvalidInputError(f"Expected {count} players, got {len(players)}")
    if len({p.id for p in players}) != len(players):
        raise InvalidInputError("Player ids must be distinct")
    if any(not p.id for p in players):
        raise InvalidInputError("Player names must contain a letter or digit")


def create_evening(players: list[Player], wins_to_complete: int = 4,
                   rng: random.Random | None = None,
                   evening_date: str | None = None,
                   seed: int | None = None) -> Evening:
    """Start a pairs evening. The partner schedule is fixed here for good."""
    _check_players(players, 4)
    if wins_to_complete < 1:
        raise InvalidInputError("wins_to_complete must be at least 1")
    if rng is None:
        rng = random.Random(seed)

    return Evening(
        id=_new_id("evening", rng),
        date=evening_date or date.today().isoformat(),
        players=list(players),
        wins_to_complete=wins_to_complete,
        type=PAIRS,
        pair_schedule=generate_pairs(players, rng),
    )


# Seat order of each round in a manually entered evening
MANUAL_PAIRINGS = [(0, 1, 2, 3), (0, 2, 1, 3), (0, 3, 1, 2)]


def create_manual_evening(players: list[Player],
                          round_results: list[tuple[int, int]],
                          evening_date: str | None = None,
                          rng: random.Random | None = None) -> Evening:
    """Record an evening played without the app, from round win counts.

    round_results[i] is (wins of pair 1, wins of pair 2) for round i + 1 with
    the seating of MANUAL_PAIRINGS. Rankings count rounds won.
    """
    _check_players(players, 4)
    if len(round_results) != len(MANUAL_PAIRINGS):
        raise InvalidInputError(
            f"Expected {len(MANUAL_PAIRINGS)} round results, "
            f"got {len(round_results)}")
    if rng is None:
        rng = random.Random()

    schedule: list[list[Pair]] = []
    rounds: list[Round] = []

    for i, (seats, result) in enumerate(zip(MANUAL_PAIRINGS, round_results), 1):
        w1, w2 = check_score(result)
        if w1 == w2:
            raise InvalidInputError(f"Round {i} needs a winner, got {w1}-{w2}")
        a, b, c, d = (players[s] for s in seats)
        pair1 = Pair(id=f"{a.id}-{b.id}-r{i}", players=(a, b))
        pair2 = Pair(id=f"{c.id}-{d.id}-r{i}", players=(c, d))
        schedule.append([pair1, pair2])
        rounds.append(Round(
            id=f"round-{i}",
            number=i,
            completed=True,
            pair_scores={pair1.id: w1, pair2.id: w2},
        ))

    evening = Evening(
        id=_new_id("evening", rng),
        date=evening_date or date.today().isoformat(),
        players=list(players),
        rounds=rounds,
        wins_to_complete=max(max(r) for r in round_results),
        completed=True,
        type=PAIRS,
        pair_schedule=schedule,
    )
    return replace(evening, rankings=calculate_rankings(evening_stats(evening)))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _round_pairs(evening: Evening, rnd: Round) -> list[Pair]:
    return evening.pair_schedule[rnd.number - 1]


def _find_round(evening: Evening, number: int) -> Round:
    for rnd in evening.rounds:
        if rnd.number == number:
            return rnd
    raise UnknownMatchError(f"Evening has no round {number}")


def _replace_round(evening: Evening, rnd: Round) -> Evening:
    rounds = [rnd if r.number == rnd.number else r for r in evening.rounds]
    return replace(evening, rounds=rounds)


def _replace_match(rnd: Round, match: Match) -> Round:
    """Swap in a played match with the same id."""
    matches = [match if m.completed and m.id == match.id else m
               for m in rnd.matches]
    return replace(rnd, matches=matches)


def _replace_open_match(rnd: Round, match: Match) -> Round:
    """Swap in the match being played, leaving played ones alone."""
    current = rnd.open_match
    matches = [match if m is current else m for m in rnd.matches]
    return replace(rnd, matches=matches)


def _open_match(evening: Evening, match_id: str) -> tuple[Round, Match]:
    rnd = evening.current_round
    match = rnd.open_match if rnd else None
    if match is None or match.id != match_id:
        raise UnknownMatchError(f"{match_id} is not the match being played")
    return rnd, match


def _completed_match(rnd: Round, match_id: str) -> Match:
    for m in rnd.matches:
        if m.id == match_id:
            if not m.completed:
                raise InvalidInputError(f"{match_id} has not been played yet")
            return m
    raise UnknownMatchError(f"Round {rnd.number} has no match {match_id}")


def _check_clubs(rnd: Round, match: Match, clubs: tuple[Club, Club]) -> None:
    if len(clubs) != 2 or any(c.is_placeholder for c in clubs):
        raise InvalidInputError("Both sides need a club")
    if clubs[0].id == clubs[1].id:
        raise InvalidInputError("Both sides picked the same club")
    played = used_club_ids([replace(rnd, matches=[
        m for m in rnd.matches if m.id != match.id])])
    for club in clubs:
        if club.id in played:
            raise InvalidInputError(
                f"{club.name} was already played in round {rnd.number}")


def _require_pairs(evening: Evening) -> None:
    if evening.type != PAIRS:
        raise InvalidInputError("Not a pairs evening")
    if evening.completed:
        raise InvalidInputError("Evening is already completed")


def _open_decider(evening: Evening, rnd: Round, ctx: EngineContext) -> Round:
    """Append a decider match with one club drawn per side."""
    others = [r for r in evening.rounds if r.number != rnd.number]
    exclude = used_club_ids(others + [rnd])
    drawn = generate_balanced_decider_teams(ctx.clubs, exclude, ctx.rng)

    decider = create_decider_match(rnd, _round_pairs(evening, rnd))
    recycled = list(rnd.recycled_club_ids)
    decider_pools = None
    if drawn is not None:
        decider_pools = drawn.pools
        decider = replace(decider, clubs=(drawn.pools[0][0], drawn.pools[1][0]))
        recycled += sorted(drawn.recycled_club_ids - set(recycled))

    return replace(
        rnd,
        is_decider_match=True,
        decider_pools=decider_pools,
        recycled_club_ids=recycled,
        matches=rnd.matches + [decider],
    )


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def start_round(evening: Evening, ctx: EngineContext) -> Evening:
    _require_pairs(evening)
    current = evening.current_round
    if current is not None and not current.completed:
        raise InvalidInputError(f"Round {current.number} is still being played")
    number = len(evening.rounds) + 1
    if number > len(evening.pair_schedule):
        raise InvalidInputError("All rounds have been played")

    pairs = evening.pair_schedule[number - 1]
    wins = evening.wins_to_complete
    rnd = create_round(number, pairs, wins)

    used = used_club_ids(evening.rounds)
    config = ctx.pool_configs.get(wins)
    if config is not None:
        drawn = generate_pools(pairs, used, config, ctx.clubs, ctx.rng)
    else:
        drawn = generate_team_pools(pairs, used, ctx.clubs, ctx.rng,
                                    clubs_per_side=pool_size(wins))

    rnd = replace(rnd, team_pools=drawn.pools,
                  recycled_club_ids=sorted(drawn.recycled_club_ids))
    rnd = replace(rnd, matches=[create_next_match(rnd, pairs)])
    return replace(evening, rounds=evening.rounds + [rnd])


def select_clubs(evening: Evening, event: SelectClubs) -> Evening:
    _require_pairs(evening)
    rnd, match = _open_match(evening, event.match_id)
    _check_clubs(rnd, match, event.clubs)
    match = replace(match, clubs=(event.clubs[0], event.clubs[1]))
    return _replace_round(evening, _replace_open_match(rnd, match))


def submit_result(evening: Evening, event: SubmitResult,
                  ctx: EngineContext) -> Evening:
    """Complete the open match and move the round on."""
    _require_pairs(evening)
    score = check_score(event.score)
    rnd, match = _open_match(evening, event.match_id)
    if event.clubs is not None:
        _check_clubs(rnd, match, event.clubs)
        match = replace(match, clubs=(event.clubs[0], event.clubs[1]))

    match = replace(match, score=score, winner=match_winner(match, score),
                    completed=True)
    rnd = with_recomputed_scores(_replace_open_match(rnd, match))
    return _finish_round(evening, _advance_round(evening, rnd, ctx))


def _advance_round(evening: Evening, rnd: Round, ctx: EngineContext) -> Round:
    """Move on a round that has no open match from its current scores."""
    if is_round_complete(rnd, evening.wins_to_complete):
        if get_round_winner(rnd) is not None:
            return replace(rnd, completed=True)
        if rnd.matches and rnd.matches[-1].is_decider:
            # a drawn decider waits for RedrawDecider
            return rnd
        return _open_decider(evening, rnd, ctx)
    return replace(rnd, matches=rnd.matches + [
        create_next_match(rnd, _round_pairs(evening, rnd))])


def _finish_round(evening: Evening, rnd: Round) -> Evening:
    evening = _replace_round(evening, rnd)
    if rnd.completed and rnd.number == len(evening.pair_schedule):
        evening = complete_evening(evening)
    return evening


def _recount_round(evening: Evening, rnd: Round,
                   ctx: EngineContext) -> Evening:
    """Recount a round after a correction.

    A completed round stays completed. A round still being played keeps its
    open match while that match is still the right one to play; otherwise
    the open match is dropped and the round completes, opens a decider or
    opens the next regular match from the new scores.
    """
    rnd = with_recomputed_scores(rnd)
    if rnd.completed or evening.completed:
        return _refresh_rankings(_replace_round(evening, rnd))

    wins = evening.wins_to_complete
    complete = is_round_complete(rnd, wins)
    current = rnd.open_match
    if current is not None:
        if not complete and not current.is_decider:
            return _replace_round(evening, rnd)
        if complete and current.is_decider and get_round_winner(rnd) is None:
            return _replace_round(evening, rnd)

    played = [m for m in rnd.matches if m.completed]
    in_decider = complete and any(m.is_decider for m in played)
    rnd = replace(rnd, matches=played, is_decider_match=in_decider,
                  decider_pools=rnd.decider_pools if in_decider else None)
    return _finish_round(evening, _advance_round(evening, rnd, ctx))


def redraw_decider(evening: Evening, ctx: EngineContext) -> Evening:
    """Play another decider after the previous one ended level."""
    _require_pairs(evening)
    rnd = evening.current_round
    if rnd is None or not rnd.is_decider_match \
            or not needs_decider(rnd, evening.wins_to_complete):
        raise InvalidInputError("No drawn decider to replay")
    return _replace_round(evening, _open_decider(evening, rnd, ctx))


def edit_match(evening: Evening, event: EditMatch,
               ctx: EngineContext) -> Evening:
    """Correct the score of a played match and recount everything."""
    score = check_score(event.score)
    rnd = _find_round(evening, event.round_number)
    match = _completed_match(rnd, event.match_id)
    match = replace(match, score=score, winner=match_winner(match, score))
    return _recount_round(evening, _replace_match(rnd, match), ctx)


def delete_match(evening: Evening, event: DeleteMatch,
                 ctx: EngineContext) -> Evening:
    rnd = _find_round(evening, event.round_number)
    _completed_match(rnd, event.match_id)
    rnd = replace(rnd, matches=[m for m in rnd.matches
                                if not (m.completed and m.id == event.match_id)])
    return _recount_round(evening, rnd, ctx)


def _refresh_rankings(evening: Evening) -> Evening:
    if not evening.completed:
        return evening
    return replace(evening, rankings=calculate_rankings(
        calculate_player_stats(evening)))


def complete_evening(evening: Evening) -> Evening:
    stats = calculate_player_stats(evening)
    return replace(evening, completed=True,
                   rankings=calculate_rankings(stats))


def reduce(event, evening: Evening, ctx: EngineContext) -> Evening:
    """Apply one event to an evening, returning the next evening."""
    if isinstance(event, StartRound):
        return start_round(evening, ctx)
    if isinstance(event, SelectClubs):
        return select_clubs(evening, event)
    if isinstance(event, SubmitResult):
        return submit_result(evening, event, ctx)
    if isinstance(event, RedrawDecider):
        return redraw_decider(evening, ctx)
    if isinstance(event, EditMatch):
        return edit_match(evening, event, ctx)
    if isinstance(event, DeleteMatch):
        return delete_match(evening, event, ctx)
    if isinstance(event, CompleteEvening):
        _require_pairs(evening)
        return complete_evening(evening)
    raise InvalidInputError(f"Unknown event {type(event).__name__}")


def replay(events: list, evening: Evening, ctx: EngineContext) -> Evening:
    for event in events:
        evening = reduce(event, evening, ctx)
    return evening
