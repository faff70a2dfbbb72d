"""Tests for rounds.py: round and match state."""

from dataclasses import replace

import pytest

from clubnight.errors import InvalidInputError
from clubnight.models import Club, Pair, Player, RoundState
from clubnight.rounds import (
    check_score, create_decider_match, create_next_match, create_round,
    get_round_winner, is_round_complete, is_round_tied, match_winner,
    needs_decider, recompute_pair_scores, round_state, used_club_ids,
    with_recomputed_scores,
)


def _make_pairs():
    a, b, c, d = (Player.from_name(n) for n in ("A", "B", "C", "D"))
    return [Pair("a-b-r1", (a, b)), Pair("c-d-r1", (c, d))]


def _play(rnd, pairs, scores):
    """Append completed matches with the given scores."""
    for score in scores:
        m = create_next_match(rnd, pairs)
        m = replace(m, score=score, winner=match_winner(m, score),
                    completed=True)
        rnd = with_recomputed_scores(replace(rnd, matches=rnd.matches + [m]))
    return rnd


class TestCreateRound:
    def test_fresh_round(self):
        pairs = _make_pairs()
        rnd = create_round(2, pairs, 4)
        assert rnd.id == "round-2"
        assert rnd.pair_scores == {"a-b-r1": 0, "c-d-r1": 0}
        assert rnd.matches == []
        assert not rnd.completed

    def test_bad_input(self):
        with pytest.raises(InvalidInputError):
            create_round(1, _make_pairs()[:1], 4)
        with pytest.raises(InvalidInputError):
            create_round(1, _make_pairs(), 0)


class TestMatches:
    def test_match_ids(self):
        pairs = _make_pairs()
        rnd = create_round(1, pairs, 4)
        assert create_next_match(rnd, pairs).id == "match-r1-1"
        rnd = _play(rnd, pairs, [(1, 0)])
        assert create_next_match(rnd, pairs).id == "match-r1-2"
        decider = create_decider_match(rnd, pairs)
        assert decider.id == "match-r1-decider-2"
        assert decider.is_decider

    def test_ids_stay_unique_after_removal(self):
        pairs = _make_pairs()
        rnd = _play(create_round(1, pairs, 4), pairs, [(1, 0), (1, 0)])
        rnd = replace(rnd, matches=rnd.matches[1:])
        assert create_next_match(rnd, pairs).id == "match-r1-3"
        assert create_decider_match(rnd, pairs).id == "match-r1-decider-3"

    def test_match_winner(self):
        m = create_next_match(create_round(1, _make_pairs(), 4), _make_pairs())
        assert match_winner(m, (3, 1)) == "a-b-r1"
        assert match_winner(m, (0, 2)) == "c-d-r1"
        assert match_winner(m, (2, 2)) is None


class TestCheckScore:
    def test_valid(self):
        assert check_score([2, 1]) == (2, 1)

    def test_invalid(self):
        for bad in [(-1, 0), (1.5, 0), ("1", 0), (True, 0), (1,), None]:
            with pytest.raises(InvalidInputError):
                check_score(bad)


class TestCompletion:
    def test_first_to_target(self):
        pairs = _make_pairs()
        rnd = _play(create_round(1, pairs, 4), pairs, [(1, 0)] * 4)
        assert rnd.pair_scores == {"a-b-r1": 4, "c-d-r1": 0}
        assert is_round_complete(rnd, 4)
        assert not is_round_tied(rnd, 4)
        assert get_round_winner(rnd) == "a-b-r1"

    def test_not_complete_before_target(self):
        pairs = _make_pairs()
        rnd = _play(create_round(1, pairs, 4), pairs, [(1, 0), (0, 1), (2, 0)])
        assert not is_round_complete(rnd, 4)
        assert round_state(rnd, 4) is RoundState.OPEN

    def test_match_cap_with_draws(self):
        pairs = _make_pairs()
        scores = [(1, 0), (0, 1), (1, 1), (1, 1), (1, 1), (2, 0), (0, 2)]
        rnd = _play(create_round(1, pairs, 4), pairs, scores)
        assert rnd.pair_scores == {"a-b-r1": 2, "c-d-r1": 2}
        assert is_round_complete(rnd, 4)
        assert is_round_tied(rnd, 4)
        assert needs_decider(rnd, 4)
        assert get_round_winner(rnd) is None
        assert round_state(rnd, 4) is RoundState.DECIDER

    def test_cap_reached_with_leader(self):
        pairs = _make_pairs()
        scores = [(1, 0), (1, 0), (1, 1), (1, 1), (1, 1), (1, 1), (1, 1)]
        rnd = _play(create_round(1, pairs, 4), pairs, scores)
        assert is_round_complete(rnd, 4)
        assert not needs_decider(rnd, 4)
        assert get_round_winner(rnd) == "a-b-r1"

    def test_completion_monotonic(self):
        pairs = _make_pairs()
        rnd = create_round(1, pairs, 2)
        seen_complete = False
        for score in [(1, 0), (0, 1), (1, 0), (0, 1)]:
            rnd = _play(rnd, pairs, [score])
            if seen_complete:
                assert is_round_complete(rnd, 2)
            seen_complete = is_round_complete(rnd, 2)

    def test_open_match_blocks_decider(self):
        pairs = _make_pairs()
        rnd = _play(create_round(1, pairs, 1), pairs, [(1, 1)])
        assert needs_decider(rnd, 1)
        rnd = replace(rnd, matches=rnd.matches + [create_decider_match(rnd, pairs)])
        assert not needs_decider(rnd, 1)

    def test_completed_flag_wins(self):
        pairs = _make_pairs()
        rnd = replace(create_round(1, pairs, 4), completed=True)
        assert round_state(rnd, 4) is RoundState.COMPLETED


class TestRecompute:
    def test_from_match_list(self):
        pairs = _make_pairs()
        rnd = _play(create_round(1, pairs, 4), pairs, [(1, 0), (0, 1), (3, 0)])
        stale = replace(rnd, pair_scores={"a-b-r1": 9, "c-d-r1": 9})
        assert recompute_pair_scores(stale) == {"a-b-r1": 2, "c-d-r1": 1}

    def test_idempotent(self):
        pairs = _make_pairs()
        rnd = _play(create_round(1, pairs, 4), pairs, [(1, 0), (1, 1)])
        once = with_recomputed_scores(rnd)
        assert with_recomputed_scores(once) == once


class TestUsedClubIds:
    def test_collects_completed_picks(self):
        pairs = _make_pairs()
        rnd = create_round(1, pairs, 4)
        m1 = replace(create_next_match(rnd, pairs),
                     clubs=(Club("psg", "PSG", 5, "L"), Club("roma", "Roma", 4, "L")),
                     score=(1, 0), winner="a-b-r1", completed=True)
        m2 = replace(create_next_match(rnd, pairs),
                     clubs=(Club("city", "City", 5, "L"), Club.placeholder()))
        rnd = replace(rnd, matches=[m1, m2])
        assert used_club_ids([rnd]) == {"psg", "roma"}
