"""Club catalog queries.

The catalog is whatever list of clubs the caller hands in, with admin star
overrides already applied. Nothing here caches or loads data.
"""

import random
from dataclasses import replace
from typing import Iterable, Optional

from clubnight.models import Club


def apply_star_overrides(clubs: list[Club],
                         overrides: dict[str, float]) -> list[Club]:
    """Return a new catalog with overridden star ratings."""
    return [replace(c, stars=overrides[c.id]) if c.id in overrides else c
            for c in clubs]


def clubs_by_stars(clubs: list[Club], stars: float) -> list[Club]:
    return [c for c in clubs if c.stars == stars]


def clubs_only(clubs: list[Club], stars: float) -> list[Club]:
    """Regular clubs (no national or prime teams) with the given rating."""
    return [c for c in clubs
            if c.stars == stars and not c.is_national and not c.is_prime]


def national_teams(clubs: list[Club], min_stars: float = 4) -> list[Club]:
    return [c for c in clubs
            if c.is_national and not c.is_prime and c.stars >= min_stars]


def national_teams_by_stars(clubs: list[Club], stars: float) -> list[Club]:
    return [c for c in clubs
            if c.is_national and not c.is_prime and c.stars == stars]


def prime_teams(clubs: list[Club]) -> list[Club]:
    return [c for c in clubs if c.is_prime]


def star_levels(clubs: list[Club], min_stars: float = 0) -> list[float]:
    """Distinct star ratings present in the catalog, highest first."""
    return sorted({c.stars for c in clubs if c.stars >= min_stars},
                  reverse=True)


def exclude(clubs: list[Club], ids: Iterable[str]) -> list[Club]:
    banned = set(ids)
    return [c for c in clubs if c.id not in banned]


def random_club(clubs: list[Club], rng: random.Random,
                exclude_ids: Iterable[str] = (),
                min_stars: Optional[float] = None,
                max_stars: Optional[float] = None) -> Optional[Club]:
    """Pick a random non-national, non-prime club honoring the exclusions.

    Returns None when nothing qualifies.
    """
    banned = set(exclude_ids)
    candidates = []
    for c in clubs:
        if c.id in banned or c.is_national or c.is_prime:
            continue
        if min_stars is not None and c.stars < min_stars:
            continue
        if max_stars is not None and c.stars > max_stars:
            continue
        candidates.append(c)
    if not candidates:
        return None
    return rng.choice(candidates)


def find_club(clubs: list[Club], club_id: str) -> Optional[Club]:
    for c in clubs:
        if c.id == club_id:
            return c
    return None
