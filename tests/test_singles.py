"""Tests for singles.py: singles evenings with club inventories."""

import random
from collections import Counter

import pytest

from clubnight.errors import InvalidInputError, UnknownMatchError
from clubnight.evening import create_evening
from clubnight.models import Club, Player
from clubnight.singles import (
    available_clubs, create_singles_evening, deal_inventories,
    find_next_playable_game_index, is_game_playable, is_singles_complete,
    submit_singles_result,
)
from clubnight.verify import validate_evening


def _make_players(n):
    return [Player.from_name(n_) for n_ in ("Ana", "Ben", "Cy", "Dov", "Eli")[:n]]


def _make_catalog():
    clubs = [Club(f"club-{i}", f"Club {i}", 4 + (i % 3) * 0.5, "Test")
             for i in range(12)]
    clubs.append(Club("weak", "Weak", 3, "Test"))
    clubs.append(Club("xi", "Legends XI", 5, "Prime", is_prime=True))
    return clubs


def _make_evening(n=3, per_player=2, seed=1):
    return create_singles_evening(_make_players(n), per_player, _make_catalog(),
                                  seed=seed, evening_date="2026-10-16")


class TestDealInventories:
    def test_distinct_and_eligible(self):
        players = _make_players(4)
        inv = deal_inventories(players, 5, _make_catalog(), random.Random(1))
        for p in players:
            ids = [c.id for c in inv[p.id]]
            assert len(ids) == 5
            assert len(set(ids)) == 5
            assert "weak" not in ids
            assert "xi" not in ids

    def test_spreads_before_sharing(self):
        players = _make_players(3)
        inv = deal_inventories(players, 4, _make_catalog(), random.Random(2))
        counts = Counter(c.id for p in players for c in inv[p.id])
        assert max(counts.values()) == 1

    def test_too_few_clubs(self):
        with pytest.raises(InvalidInputError):
            deal_inventories(_make_players(2), 13, _make_catalog(), random.Random(1))


class TestCreateSinglesEvening:
    def test_sequence(self):
        ev = _make_evening()
        assert ev.type == "singles"
        assert ev.wins_to_complete == 1
        assert ev.current_game_index == 0
        # 3 player pairs x 2 club slots
        assert len(ev.game_sequence) == 6
        assert [g.id for g in ev.game_sequence] == [f"game-{i}" for i in range(1, 7)]
        meetings = Counter(tuple(sorted(p.id for p in g.players))
                           for g in ev.game_sequence)
        assert set(meetings.values()) == {2}

    def test_suggested_clubs_from_inventory(self):
        ev = _make_evening()
        for g in ev.game_sequence:
            for side, p in enumerate(g.players):
                assert g.clubs[side] in ev.player_clubs[p.id]

    def test_bad_input(self):
        with pytest.raises(InvalidInputError):
            _make_evening(n=1)
        with pytest.raises(InvalidInputError):
            _make_evening(per_player=0)
        ana = Player.from_name("Ana")
        with pytest.raises(InvalidInputError):
            create_singles_evening([ana, ana], 2, _make_catalog())


class TestLivePlay:
    def _play_current(self, ev, score=(1, 0)):
        game = ev.game_sequence[ev.current_game_index]
        clubs = tuple(available_clubs(ev, p.id)[0] for p in game.players)
        return submit_singles_result(ev, game.id, score, clubs), game

    def test_clubs_consumed(self):
        ev = _make_evening()
        game = ev.game_sequence[ev.current_game_index]
        picked = [available_clubs(ev, p.id)[0] for p in game.players]
        ev, _ = self._play_current(ev)
        for club, p in zip(picked, game.players):
            left = available_clubs(ev, p.id)
            assert len(left) == 1
            assert club not in left

    def test_three_players_two_clubs_each(self):
        ev = _make_evening()
        ana, ben, cy = ev.players
        head_to_head = [g for g in ev.game_sequence
                        if {p.id for p in g.players} == {ana.id, ben.id}]
        assert len(head_to_head) == 2

        # Ana and Ben use up both their clubs against each other
        for g in head_to_head:
            assert not ev.completed
            ev = submit_singles_result(ev, g.id, (2, 1))

        assert available_clubs(ev, ana.id) == []
        assert available_clubs(ev, ben.id) == []
        assert len(available_clubs(ev, cy.id)) == 2

        # Every game left involves Ana or Ben, so nothing is playable
        unplayed = [g for g in ev.game_sequence if not g.completed]
        assert len(unplayed) == 4
        assert not any(is_game_playable(ev, g) for g in unplayed)
        assert find_next_playable_game_index(ev) is None
        assert ev.current_game_index == len(ev.game_sequence)
        assert is_singles_complete(ev)
        assert ev.completed
        assert ev.rankings is not None
        assert validate_evening(ev)["valid"]

    def test_play_until_done(self):
        for seed in range(10):
            ev = _make_evening(seed=seed)
            played = 0
            while not ev.completed:
                ev, _ = self._play_current(ev)
                played += 1
            # 6 clubs in hand, two per game
            assert played in (2, 3)
            assert validate_evening(ev)["valid"]

    def test_winner_and_draw(self):
        ev = _make_evening()
        ev, game = self._play_current(ev, score=(0, 2))
        played = next(g for g in ev.game_sequence if g.id == game.id)
        assert played.winner == game.players[1].id

        ev, game = self._play_current(ev, score=(1, 1))
        played = next(g for g in ev.game_sequence if g.id == game.id)
        assert played.winner is None
        assert played.completed

    def test_club_not_available(self):
        ev = _make_evening()
        game = ev.game_sequence[0]
        foreign = Club("weak", "Weak", 3, "Test")
        with pytest.raises(InvalidInputError):
            submit_singles_result(ev, game.id, (1, 0), (foreign, game.clubs[1]))

    def test_club_used_twice(self):
        ev = _make_evening(n=2, per_player=2)
        first, second = ev.game_sequence
        ev = submit_singles_result(ev, first.id, (1, 0))
        # both games are between the same two players
        reused = {p.id: first.clubs[i] for i, p in enumerate(first.players)}
        clubs = tuple(reused[p.id] for p in second.players)
        with pytest.raises(InvalidInputError):
            submit_singles_result(ev, second.id, (1, 0), clubs)

    def test_unknown_game(self):
        with pytest.raises(UnknownMatchError):
            submit_singles_result(_make_evening(), "game-99", (1, 0))

    def test_replayed_game(self):
        ev = _make_evening()
        game = ev.game_sequence[0]
        ev = submit_singles_result(ev, game.id, (1, 0))
        with pytest.raises(InvalidInputError):
            submit_singles_result(ev, game.id, (1, 0))

    def test_not_a_singles_evening(self):
        pairs = create_evening(_make_players(4), seed=1)
        with pytest.raises(InvalidInputError):
            submit_singles_result(pairs, "game-1", (1, 0))

    def test_does_not_mutate(self):
        ev = _make_evening()
        submit_singles_result(ev, ev.game_sequence[0].id, (1, 0))
        assert not any(g.completed for g in ev.game_sequence)
