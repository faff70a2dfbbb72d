"""Config loading and validation for clubnight."""

from pathlib import Path

import yaml

from clubnight.catalog import apply_star_overrides
from clubnight.errors import ConfigError
from clubnight.models import Club, DistributionConfig, TierEntry


def default_pool_configs() -> dict[int, DistributionConfig]:
    """Pool compositions used when the config has no pool_configs section."""
    return {
        4: DistributionConfig(
            wins_to_complete=4,
            distribution=[
                TierEntry(stars=5, count=2, include_national=True),
                TierEntry(stars=4.5, count=3, include_national=True),
                TierEntry(stars=4, count=2, include_national=False),
            ],
        ),
        5: DistributionConfig(
            wins_to_complete=5,
            distribution=[
                TierEntry(stars=5, count=3, include_national=True),
                TierEntry(stars=4.5, count=3, include_national=True),
                TierEntry(stars=4, count=2, include_national=False),
            ],
            include_prime=True,
            prime_count=1,
        ),
        6: DistributionConfig(
            wins_to_complete=6,
            distribution=[
                TierEntry(stars=5, count=3, include_national=True),
                TierEntry(stars=4.5, count=4, include_national=True),
                TierEntry(stars=4, count=4, include_national=False),
            ],
        ),
    }


def parse_stars(value) -> float:
    """Parse star ratings like 5, '4.5', '4½', ' 3.5 '.

    Ratings must sit on the half-star grid between 0.5 and 5.
    """
    s = str(value).strip().replace("½", ".5").replace(",", ".")
    if s.startswith("."):
        s = "0" + s
    try:
        stars = float(s)
    except ValueError:
        raise ConfigError(f"Cannot parse star rating: {value!r}") from None
    if stars * 2 != int(stars * 2) or not 0.5 <= stars <= 5:
        raise ConfigError(f"Star rating {value!r} is not a half star in 0.5-5")
    # 5.0 -> 5 so ids and reports print the way they were written
    return int(stars) if stars == int(stars) else stars


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "y", "on")


def parse_club(raw: dict) -> Club:
    """Build a Club from one entry of the clubs list."""
    if "id" not in raw or "stars" not in raw:
        raise ConfigError(f"Club entry needs at least id and stars: {raw!r}")
    return Club(
        id=str(raw["id"]).strip(),
        name=str(raw.get("name", raw["id"])).strip(),
        stars=parse_stars(raw["stars"]),
        league=str(raw.get("league", "")).strip(),
        is_national=parse_bool(raw.get("national", raw.get("is_national", False))),
        is_prime=parse_bool(raw.get("prime", raw.get("is_prime", False))),
    )


def parse_pool_config(raw: dict) -> DistributionConfig:
    if "wins_to_complete" not in raw:
        raise ConfigError(f"Pool config needs wins_to_complete: {raw!r}")
    distribution = []
    for entry in raw.get("distribution", []):
        if "stars" not in entry:
            raise ConfigError(f"Distribution entry needs stars: {entry!r}")
        distribution.append(TierEntry(
            stars=parse_stars(entry["stars"]),
            count=int(entry.get("count", 0)),
            include_national=parse_bool(entry.get("include_national", False)),
        ))
    return DistributionConfig(
        wins_to_complete=int(raw["wins_to_complete"]),
        distribution=distribution,
        include_prime=parse_bool(raw.get("include_prime", False)),
        prime_count=int(raw.get("prime_count", 0)),
    )


def load_config(path: str | Path) -> dict:
    """Load and validate config YAML, returning structured data.

    Returns dict with:
    - evening: {wins_to_complete, clubs_per_player}
    - clubs: list[Club] with star overrides applied
    - star_overrides: dict[club id -> stars]
    - pool_configs: dict[wins_to_complete -> DistributionConfig]
    """
    path = Path(path)
    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    # Evening defaults
    ev = raw.get("evening", {}) or {}
    evening = {
        "wins_to_complete": int(ev.get("wins_to_complete", 4)),
        "clubs_per_player": int(ev.get("clubs_per_player", 7)),
    }

    warnings = []

    # Catalog
    clubs: list[Club] = []
    seen: set[str] = set()
    for entry in raw.get("clubs", []):
        club = parse_club(entry)
        if club.id in seen:
            warnings.append(f"Duplicate club id {club.id}, keeping the first")
            continue
        seen.add(club.id)
        clubs.append(club)

    # Admin star overrides
    overrides: dict[str, float] = {}
    for cid, stars in (raw.get("star_overrides") or {}).items():
        cid = str(cid)
        if cid not in seen:
            warnings.append(f"Star override for unknown club {cid}")
            continue
        overrides[cid] = parse_stars(stars)
    clubs = apply_star_overrides(clubs, overrides)

    # Pool distribution
    if raw.get("pool_configs"):
        pool_configs = {}
        for entry in raw["pool_configs"]:
            pc = parse_pool_config(entry)
            if pc.slots_per_side != pc.wins_to_complete * 2 - 1:
                warnings.append(
                    f"Pool config for {pc.wins_to_complete} wins gives "
                    f"{pc.slots_per_side} clubs per side "
                    f"(a round can need {pc.wins_to_complete * 2 - 1})"
                )
            pool_configs[pc.wins_to_complete] = pc
    else:
        pool_configs = default_pool_configs()

    if evening["wins_to_complete"] < 1:
        raise ConfigError("evening.wins_to_complete must be at least 1")

    if warnings:
        print("Config validation warnings:")
        for w in warnings:
            print(f"  {w}")

    return {
        "evening": evening,
        "clubs": clubs,
        "star_overrides": overrides,
        "pool_configs": pool_configs,
    }
