"""Data models for the clubnight tournament engine."""

import re
import unicodedata
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


PAIRS = "pairs"
SINGLES = "singles"

RANK_BUCKETS = ("alpha", "beta", "gamma", "delta")


def player_id(name: str) -> str:
    """Derive a stable slug from a player name: 'Dan Levi' -> 'dan-levi'."""
    s = unicodedata.normalize("NFKC", name).strip().lower()
    s = re.sub(r"[^\w]+", "-", s, flags=re.UNICODE)
    return s.strip("-_")


@dataclass
class Player:
    id: str
    name: str

    @classmethod
    def from_name(cls, name: str) -> "Player":
        return cls(id=player_id(name), name=name.strip())


@dataclass
class Club:
    """A selectable club or national team with its resolved star rating."""
    id: str
    name: str
    stars: float
    league: str
    is_national: bool = False
    is_prime: bool = False

    @classmethod
    def placeholder(cls) -> "Club":
        """The empty club used for match slots nobody has picked yet."""
        return cls(id="", name="", stars=0, league="")

    @property
    def is_placeholder(self) -> bool:
        return self.id == ""


@dataclass
class Pair:
    """Two partners playing together for one round."""
    id: str
    players: tuple[Player, Player]

    def involves(self, pid: str) -> bool:
        return any(p.id == pid for p in self.players)

    @property
    def label(self) -> str:
        return " + ".join(p.name for p in self.players)


@dataclass
class Match:
    id: str
    pairs: tuple[Pair, Pair]
    clubs: tuple[Club, Club] = field(
        default_factory=lambda: (Club.placeholder(), Club.placeholder()))
    score: Optional[tuple[int, int]] = None
    winner: Optional[str] = None  # pair id, None for a draw or unplayed
    completed: bool = False
    is_decider: bool = False

    @property
    def is_draw(self) -> bool:
        return self.completed and self.winner is None


@dataclass
class Round:
    """One best-of sequence between two fixed pairs."""
    id: str
    number: int
    matches: list[Match] = field(default_factory=list)
    completed: bool = False
    pair_scores: dict[str, int] = field(default_factory=dict)
    is_decider_match: bool = False
    team_pools: Optional[tuple[list[Club], list[Club]]] = None
    recycled_club_ids: list[str] = field(default_factory=list)
    decider_pools: Optional[tuple[list[Club], list[Club]]] = None

    @property
    def pair_ids(self) -> list[str]:
        return list(self.pair_scores.keys())

    @property
    def open_match(self) -> Optional[Match]:
        """The match currently being played, if any."""
        for m in self.matches:
            if not m.completed:
                return m
        return None


class RoundState(Enum):
    OPEN = "open"
    DECIDER = "decider"
    COMPLETED = "completed"


@dataclass
class SinglesGame:
    """A 1v1 game in a singles evening."""
    id: str
    players: tuple[Player, Player]
    clubs: tuple[Club, Club] = field(
        default_factory=lambda: (Club.placeholder(), Club.placeholder()))
    score: Optional[tuple[int, int]] = None
    winner: Optional[str] = None  # player id
    completed: bool = False

    def involves(self, pid: str) -> bool:
        return any(p.id == pid for p in self.players)


@dataclass
class Rankings:
    alpha: list[Player] = field(default_factory=list)
    beta: list[Player] = field(default_factory=list)
    gamma: list[Player] = field(default_factory=list)
    delta: list[Player] = field(default_factory=list)

    def bucket_of(self, pid: str) -> Optional[str]:
        for name in RANK_BUCKETS:
            if any(p.id == pid for p in getattr(self, name)):
                return name
        return None


@dataclass
class Evening:
    """One tournament session. The root of everything it contains."""
    id: str
    date: str
    players: list[Player]
    rounds: list[Round] = field(default_factory=list)
    wins_to_complete: int = 4
    completed: bool = False
    type: str = PAIRS
    pair_schedule: Optional[list[list[Pair]]] = None
    rankings: Optional[Rankings] = None
    # Singles only
    clubs_per_player: Optional[int] = None
    player_clubs: Optional[dict[str, list[Club]]] = None
    game_sequence: Optional[list[SinglesGame]] = None
    current_game_index: Optional[int] = None

    def player(self, pid: str) -> Player:
        for p in self.players:
            if p.id == pid:
                return p
        raise KeyError(pid)

    @property
    def current_round(self) -> Optional[Round]:
        return self.rounds[-1] if self.rounds else None


@dataclass
class PlayerStats:
    player: Player
    wins: int = 0
    goals_for: int = 0
    goals_against: int = 0
    longest_win_streak: int = 0
    points: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against


@dataclass
class TierEntry:
    """How many clubs of one star level each side of a round receives."""
    stars: float
    count: int
    include_national: bool = False
    is_prime: bool = False


@dataclass
class DistributionConfig:
    """Pool composition for rounds played to a given number of wins."""
    wins_to_complete: int
    distribution: list[TierEntry] = field(default_factory=list)
    include_prime: bool = False
    prime_count: int = 0

    def tiers(self) -> list[TierEntry]:
        """Tiers in draw order: the prime tier first when enabled."""
        tiers = []
        if self.include_prime and self.prime_count > 0:
            tiers.append(TierEntry(stars=5, count=self.prime_count,
                                   is_prime=True))
        tiers.extend(self.distribution)
        return tiers

    @property
    def slots_per_side(self) -> int:
        return sum(t.count for t in self.tiers())


@dataclass
class PoolResult:
    pools: tuple[list[Club], list[Club]]
    recycled_club_ids: set[str] = field(default_factory=set)
    target_size: int = 0

    @property
    def is_short(self) -> bool:
        """True when the catalog ran dry before either pool was filled."""
        return any(len(p) < self.target_size for p in self.pools)
