"""Round and match state for a pairs evening.

A round runs OPEN -> (DECIDER) -> COMPLETED. It is over once a pair reaches
wins_to_complete or the match cap (2 * wins - 1) is used up; the cap keeps a
string of draws from running forever. If the round ends level a single
decider match settles it.

Functions here never mutate the round they are given.
"""

from dataclasses import replace
from typing import Iterable, Optional

from clubnight.errors import InvalidInputError
from clubnight.models import Match, Pair, Round, RoundState
from clubnight.pools import pool_size


def create_round(number: int, pairs: list[Pair],
                 wins_to_complete: int) -> Round:
    """A fresh round with both pairs on zero wins and no matches."""
    if len(pairs) != 2:
        raise InvalidInputError(f"A round needs 2 pairs, got {len(pairs)}")
    if wins_to_complete < 1:
        raise InvalidInputError("wins_to_complete must be at least 1")
    return Round(
        id=f"round-{number}",
        number=number,
        pair_scores={pairs[0].id: 0, pairs[1].id: 0},
    )


def _next_match_number(rnd: Round) -> int:
    """One past the highest numbered match, so ids stay unique after deletes."""
    highest = len(rnd.matches)
    for m in rnd.matches:
        tail = m.id.rsplit("-", 1)[-1]
        if tail.isdigit():
            highest = max(highest, int(tail))
    return highest + 1


def create_next_match(rnd: Round, pairs: list[Pair]) -> Match:
    """Next regular match with placeholder clubs. Clubs are picked later."""
    k = _next_match_number(rnd)
    return Match(id=f"match-r{rnd.number}-{k}", pairs=(pairs[0], pairs[1]))


def create_decider_match(rnd: Round, pairs: list[Pair]) -> Match:
    k = _next_match_number(rnd)
    return Match(id=f"match-r{rnd.number}-decider-{k}",
                 pairs=(pairs[0], pairs[1]), is_decider=True)


def completed_match_count(rnd: Round) -> int:
    return sum(1 for m in rnd.matches if m.completed)


def match_winner(match: Match, score: tuple[int, int]) -> Optional[str]:
    """Pair id of the side with more goals, None for a draw."""
    a, b = score
    if a > b:
        return match.pairs[0].id
    if b > a:
        return match.pairs[1].id
    return None


def check_score(score) -> tuple[int, int]:
    """Validate a submitted score and return it as a tuple of ints."""
    try:
        a, b = score
    except (TypeError, ValueError):
        raise InvalidInputError(f"Score must be two numbers, got {score!r}") from None
    for v in (a, b):
        if isinstance(v, bool) or not isinstance(v, int) or v < 0:
            raise InvalidInputError(
                f"Goals must be non-negative integers, got {score!r}")
    return (a, b)


def recompute_pair_scores(rnd: Round) -> dict[str, int]:
    """Count wins per pair from the match list, never from running totals."""
    scores = {pid: 0 for pid in rnd.pair_scores}
    for m in rnd.matches:
        if m.completed and m.winner:
            scores[m.winner] = scores.get(m.winner, 0) + 1
    return scores


def with_recomputed_scores(rnd: Round) -> Round:
    return replace(rnd, pair_scores=recompute_pair_scores(rnd))


def is_round_complete(rnd: Round, wins_to_complete: int) -> bool:
    scores = list(rnd.pair_scores.values()) or [0]
    if max(scores) >= wins_to_complete:
        return True
    return completed_match_count(rnd) >= pool_size(wins_to_complete)


def is_round_tied(rnd: Round, wins_to_complete: int) -> bool:
    """Level scores at the target, or level when the match cap ran out."""
    scores = list(rnd.pair_scores.values())
    if len(scores) != 2 or scores[0] != scores[1]:
        return False
    if scores[0] == wins_to_complete:
        return True
    return completed_match_count(rnd) >= pool_size(wins_to_complete)


def needs_decider(rnd: Round, wins_to_complete: int) -> bool:
    """A decider match should be created now.

    Stays true after a drawn decider; creating another one is up to the
    caller.
    """
    return (is_round_complete(rnd, wins_to_complete)
            and is_round_tied(rnd, wins_to_complete)
            and rnd.open_match is None)


def get_round_winner(rnd: Round) -> Optional[str]:
    """Pair id with strictly more wins, None when level."""
    items = list(rnd.pair_scores.items())
    if len(items) != 2:
        return None
    (id_a, a), (id_b, b) = items
    if a > b:
        return id_a
    if b > a:
        return id_b
    return None


def round_state(rnd: Round, wins_to_complete: int) -> RoundState:
    if rnd.completed:
        return RoundState.COMPLETED
    if rnd.is_decider_match or is_round_tied(rnd, wins_to_complete):
        return RoundState.DECIDER
    return RoundState.OPEN


def used_club_ids(rounds: Iterable[Round]) -> set[str]:
    """Ids of clubs picked in completed matches."""
    used = set()
    for rnd in rounds:
        for m in rnd.matches:
            if not m.completed:
                continue
            for club in m.clubs:
                if not club.is_placeholder:
                    used.add(club.id)
    return used
