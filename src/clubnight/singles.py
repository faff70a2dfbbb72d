"""Singles evenings: N players, each with a personal club inventory.

Every player is dealt clubs_per_player clubs up front. The game sequence has
one game per club index and unordered player pair, shuffled. The club
printed on a scheduled game is only a suggestion: at the board each player
picks any club from their inventory not used in a completed game. A game
whose players have run out of clubs is skipped, and the evening ends when
every game is played or skipped.
"""

import random
from dataclasses import replace
from datetime import date
from typing import Optional

from clubnight.errors import InvalidInputError, UnknownMatchError
from clubnight.models import SINGLES, Club, Evening, Player, SinglesGame
from clubnight.ranking import calculate_rankings, calculate_singles_stats
from clubnight.rounds import check_score


# Inventories only hold clubs of at least this rating
MIN_INVENTORY_STARS = 4


def deal_inventories(players: list[Player], clubs_per_player: int,
                     clubs: list[Club],
                     rng: random.Random) -> dict[str, list[Club]]:
    """Deal each player distinct clubs of 4+ stars.

    Clubs come off one shuffled deck, so nobody shares a club until the
    deck runs out and is reshuffled.
    """
    eligible = [c for c in clubs
                if c.stars >= MIN_INVENTORY_STARS and not c.is_prime]
    if len(eligible) < clubs_per_player:
        raise InvalidInputError(
            f"Only {len(eligible)} clubs of {MIN_INVENTORY_STARS}+ stars, "
            f"cannot deal {clubs_per_player} per player")

    deck: list[Club] = []
    player_clubs: dict[str, list[Club]] = {}
    for p in players:
        inventory: list[Club] = []
        held: set[str] = set()
        while len(inventory) < clubs_per_player:
            if not deck:
                deck = list(eligible)
                rng.shuffle(deck)
            club = deck.pop()
            if club.id in held:
                continue
            inventory.append(club)
            held.add(club.id)
        player_clubs[p.id] = inventory
    return player_clubs


def generate_singles_game_sequence(players: list[Player],
                                   player_clubs: dict[str, list[Club]],
                                   rng: random.Random) -> list[SinglesGame]:
    """One game per club index and player pair, in random order.

    Every pair of players meets once per club index, so each player plays
    each opponent clubs_per_player times.
    """
    slots = min(len(player_clubs[p.id]) for p in players) if players else 0
    games = []
    for k in range(slots):
        for i, pi in enumerate(players):
            for pj in players[i + 1:]:
                games.append(SinglesGame(
                    id="",
                    players=(pi, pj),
                    clubs=(player_clubs[pi.id][k], player_clubs[pj.id][k]),
                ))
    rng.shuffle(games)
    return [replace(g, id=f"game-{n}") for n, g in enumerate(games, 1)]


def create_singles_evening(players: list[Player], clubs_per_player: int,
                           clubs: list[Club],
                           rng: random.Random | None = None,
                           evening_date: str | None = None,
                           seed: int | None = None) -> Evening:
    if len(players) < 2:
        raise InvalidInputError(
            f"A singles evening needs at least 2 players, got {len(players)}")
    if len({p.id for p in players}) != len(players):
        raise InvalidInputError("Player ids must be distinct")
    if clubs_per_player < 1:
        raise InvalidInputError("clubs_per_player must be at least 1")
    if rng is None:
        rng = random.Random(seed)

    player_clubs = deal_inventories(players, clubs_per_player, clubs, rng)
    sequence = generate_singles_game_sequence(players, player_clubs, rng)

    return Evening(
        id=f"evening-{rng.getrandbits(32):08x}",
        date=evening_date or date.today().isoformat(),
        players=list(players),
        wins_to_complete=1,
        type=SINGLES,
        clubs_per_player=clubs_per_player,
        player_clubs=player_clubs,
        game_sequence=sequence,
        current_game_index=0,
    )


# ---------------------------------------------------------------------------
# Live play
# ---------------------------------------------------------------------------

def available_clubs(evening: Evening, pid: str) -> list[Club]:
    """A player's inventory minus clubs they used in completed games."""
    used = set()
    for g in evening.game_sequence or []:
        if not g.completed:
            continue
        for side, p in enumerate(g.players):
            if p.id == pid and not g.clubs[side].is_placeholder:
                used.add(g.clubs[side].id)
    inventory = (evening.player_clubs or {}).get(pid, [])
    return [c for c in inventory if c.id not in used]


def is_game_playable(evening: Evening, game: SinglesGame) -> bool:
    if game.completed:
        return False
    return all(available_clubs(evening, p.id) for p in game.players)


def find_next_playable_game_index(evening: Evening) -> Optional[int]:
    """Index of the first unplayed game both players still have clubs for."""
    for i, g in enumerate(evening.game_sequence or []):
        if is_game_playable(evening, g):
            return i
    return None


def is_singles_complete(evening: Evening) -> bool:
    games = evening.game_sequence or []
    if all(g.completed for g in games):
        return True
    return find_next_playable_game_index(evening) is None


def submit_singles_result(evening: Evening, game_id: str,
                          score: tuple[int, int],
                          clubs: tuple[Club, Club] | None = None) -> Evening:
    """Record a played singles game and return the next evening.

    clubs are the clubs actually used; the scheduled suggestion is used
    when omitted. Each must still be available to its player.
    """
    if evening.type != SINGLES:
        raise InvalidInputError("Not a singles evening")
    if evening.completed:
        raise InvalidInputError("Evening is already completed")
    score = check_score(score)

    sequence = list(evening.game_sequence or [])
    idx = next((i for i, g in enumerate(sequence) if g.id == game_id), None)
    if idx is None:
        raise UnknownMatchError(f"No singles game {game_id}")
    game = sequence[idx]
    if game.completed:
        raise InvalidInputError(f"{game_id} has already been played")
    if not is_game_playable(evening, game):
        raise InvalidInputError(f"{game_id} cannot be played, a player is out of clubs")

    if clubs is None:
        clubs = game.clubs
    for side, club in enumerate(clubs):
        p = game.players[side]
        if club.id not in {c.id for c in available_clubs(evening, p.id)}:
            raise InvalidInputError(f"{club.name or club.id} is not available to {p.name}")

    a, b = score
    winner = None
    if a > b:
        winner = game.players[0].id
    elif b > a:
        winner = game.players[1].id

    sequence[idx] = replace(game, clubs=(clubs[0], clubs[1]), score=score,
                            winner=winner, completed=True)
    evening = replace(evening, game_sequence=sequence)

    next_idx = find_next_playable_game_index(evening)
    evening = replace(evening, current_game_index=(
        next_idx if next_idx is not None else len(sequence)))

    if is_singles_complete(evening):
        stats = calculate_singles_stats(evening)
        evening = replace(evening, completed=True,
                          rankings=calculate_rankings(stats))
    return evening
