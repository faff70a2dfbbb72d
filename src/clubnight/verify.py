"""Evening validation for clubnight.

Checks a stored or simulated evening against the engine's invariants, so a
snapshot coming back from storage or another device can be trusted before
play resumes.
"""

from collections import defaultdict

from clubnight.models import RANK_BUCKETS, SINGLES, Evening
from clubnight.pairing import verify_pair_schedule
from clubnight.rounds import (
    get_round_winner, is_round_complete, recompute_pair_scores,
)


def _validate_pairs(evening: Evening, errors: list, warnings: list) -> None:
    if not evening.pair_schedule:
        errors.append("Pairs evening has no pair schedule")
        return

    sched = verify_pair_schedule(evening.pair_schedule, evening.players)
    errors.extend(sched["errors"])

    used_before: set[str] = set()
    for rnd in evening.rounds:
        label = f"Round {rnd.number}"
        if not 1 <= rnd.number <= len(evening.pair_schedule):
            errors.append(f"{label}: not in the pair schedule")
            continue

        expected = [p.id for p in evening.pair_schedule[rnd.number - 1]]
        if sorted(rnd.pair_scores) != sorted(expected):
            errors.append(
                f"{label}: scores kept for {sorted(rnd.pair_scores)}, "
                f"pairs are {sorted(expected)}")

        if rnd.matches:
            recount = recompute_pair_scores(rnd)
            if recount != rnd.pair_scores:
                errors.append(
                    f"{label}: pair scores {rnd.pair_scores} do not match "
                    f"the match list {recount}")
        elif any(rnd.pair_scores.values()):
            warnings.append(f"{label}: recorded without match detail")

        recycled = set(rnd.recycled_club_ids)
        if rnd.team_pools:
            ids0 = {c.id for c in rnd.team_pools[0]}
            ids1 = {c.id for c in rnd.team_pools[1]}
            for cid in sorted(ids0 & ids1):
                errors.append(f"{label}: {cid} is in both pools")
            for cid in sorted((ids0 | ids1) & used_before - recycled):
                errors.append(
                    f"{label}: {cid} was played earlier but not marked recycled")

        picks: dict[str, int] = defaultdict(int)
        for m in rnd.matches:
            if not m.completed:
                continue
            for club in m.clubs:
                if club.is_placeholder:
                    continue
                picks[club.id] += 1
                if club.id in used_before and club.id not in recycled:
                    warnings.append(
                        f"{label}: {club.id} played again in {m.id}")
        for cid, count in sorted(picks.items()):
            if count > 1 and cid not in recycled:
                errors.append(f"{label}: {cid} played {count} times")
        used_before.update(picks)

        if rnd.completed:
            if rnd.matches and not is_round_complete(rnd, evening.wins_to_complete):
                warnings.append(f"{label}: marked completed but short of the target")
            if get_round_winner(rnd) is None:
                warnings.append(f"{label}: marked completed without a winner")
        elif (rnd.open_match is None
              and is_round_complete(rnd, evening.wins_to_complete)
              and get_round_winner(rnd) is not None):
            errors.append(f"{label}: has a winner but is not marked completed")


def _validate_singles(evening: Evening, errors: list, warnings: list) -> None:
    inventories = evening.player_clubs or {}
    used: dict[str, set[str]] = defaultdict(set)
    for g in evening.game_sequence or []:
        if not g.completed:
            continue
        for side, p in enumerate(g.players):
            club = g.clubs[side]
            owned = {c.id for c in inventories.get(p.id, [])}
            if club.id not in owned:
                errors.append(f"{g.id}: {p.id} played {club.id} outside their clubs")
            if club.id in used[p.id]:
                errors.append(f"{g.id}: {p.id} played {club.id} twice")
            used[p.id].add(club.id)


def validate_evening(evening: Evening) -> dict:
    """Validate an evening against the engine's invariants.

    Returns dict with:
    - valid: bool (True if no errors)
    - errors: list of broken invariants
    - warnings: list of things worth a look
    """
    errors: list[str] = []
    warnings: list[str] = []

    if evening.type == SINGLES:
        _validate_singles(evening, errors, warnings)
    else:
        _validate_pairs(evening, errors, warnings)

    if evening.completed:
        if evening.rankings is None:
            errors.append("Completed evening has no rankings")
        else:
            for p in evening.players:
                found = sum(1 for name in RANK_BUCKETS
                            if any(r.id == p.id for r in getattr(evening.rankings, name)))
                if found != 1:
                    errors.append(f"{p.id} appears in {found} ranking buckets")

    return {
        "valid": len(errors) == 0,
        "errors": errors,
        "warnings": warnings,
    }


def format_validation_report(result: dict) -> str:
    """Format validation results as text."""
    lines = []
    lines.append("=" * 60)
    lines.append("EVENING VALIDATION REPORT")
    lines.append("=" * 60)

    if result["valid"]:
        lines.append("\nRESULT: VALID (no broken invariants)")
    else:
        lines.append(f"\nRESULT: INVALID ({len(result['errors'])} errors)")

    if result["errors"]:
        lines.append(f"\n--- ERRORS ({len(result['errors'])}) ---")
        for e in result["errors"]:
            lines.append(f"  ERROR: {e}")

    if result["warnings"]:
        lines.append(f"\n--- WARNINGS ({len(result['warnings'])}) ---")
        for w in result["warnings"]:
            lines.append(f"  WARN: {w}")

    return "\n".join(lines)
