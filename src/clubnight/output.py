"""Output formatters for clubnight evenings."""

import json
from dataclasses import asdict
from pathlib import Path

from clubnight.models import (
    RANK_BUCKETS, SINGLES, Club, Evening, Match, Pair, Player, Rankings,
    Round, SinglesGame,
)


def _club_label(club: Club) -> str:
    if club.is_placeholder:
        return "-"
    return f"{club.name} ({club.stars}*)"


def _score_label(score) -> str:
    return f"{score[0]}-{score[1]}" if score is not None else "   "


def _format_pairs(evening: Evening, lines: list[str]) -> None:
    for rnd in evening.rounds:
        pairs = evening.pair_schedule[rnd.number - 1]
        labels = {p.id: p.label for p in pairs}
        scores = "  ".join(f"{labels.get(pid, pid)} {wins}"
                           for pid, wins in rnd.pair_scores.items())
        status = "completed" if rnd.completed else "in progress"
        lines.append(f"\n--- ROUND {rnd.number} ({status}) ---")
        lines.append(f"  {scores}")

        if rnd.team_pools:
            for side, pool in enumerate(rnd.team_pools):
                names = ", ".join(c.name for c in pool) or "(empty)"
                lines.append(f"  Pool {labels.get(pairs[side].id)}: {names}")
        if rnd.recycled_club_ids:
            lines.append(f"  Recycled: {', '.join(rnd.recycled_club_ids)}")

        for m in rnd.matches:
            tag = "D" if m.is_decider else " "
            lines.append(
                f"    [{tag}] {_score_label(m.score):>5}  "
                f"{_club_label(m.clubs[0]):<28} vs {_club_label(m.clubs[1])}"
            )


def _format_singles(evening: Evening, lines: list[str]) -> None:
    lines.append("\n--- CLUBS ---")
    for p in evening.players:
        inventory = (evening.player_clubs or {}).get(p.id, [])
        lines.append(f"  {p.name}: {', '.join(c.name for c in inventory)}")

    lines.append("\n--- GAMES ---")
    for g in evening.game_sequence or []:
        if g.completed:
            status = _score_label(g.score)
        else:
            status = "skip" if evening.completed else ""
        a, b = g.players
        lines.append(
            f"  {g.id:<8} {status:>5}  {a.name} ({g.clubs[0].name}) vs "
            f"{b.name} ({g.clubs[1].name})"
        )


def format_evening(evening: Evening) -> str:
    """Format an evening as human-readable text, round by round."""
    lines = []
    lines.append("=" * 80)
    lines.append(f"CLUBNIGHT {evening.type.upper()} EVENING {evening.date}")
    lines.append("=" * 80)
    lines.append(f"Players: {', '.join(p.name for p in evening.players)}")
    if evening.type != SINGLES:
        lines.append(f"Playing to {evening.wins_to_complete} wins")

    if evening.type == SINGLES:
        _format_singles(evening, lines)
    else:
        _format_pairs(evening, lines)

    if evening.rankings is not None:
        lines.append("\n--- RANKINGS ---")
        for name in RANK_BUCKETS:
            players = getattr(evening.rankings, name)
            if players:
                lines.append(f"  {name.upper():<6} "
                             f"{', '.join(p.name for p in players)}")

    return "\n".join(lines)


# ---------------------------------------------------------------------------
# JSON
# ---------------------------------------------------------------------------

def evening_to_dict(evening: Evening) -> dict:
    """Plain dict of an evening, ready for json.dump."""
    return asdict(evening)


def _player(raw: dict) -> Player:
    return Player(id=raw["id"], name=raw["name"])


def _club(raw: dict) -> Club:
    return Club(**raw)


def _pair(raw: dict) -> Pair:
    a, b = raw["players"]
    return Pair(id=raw["id"], players=(_player(a), _player(b)))


def _pools(raw) -> tuple[list[Club], list[Club]] | None:
    if raw is None:
        return None
    return ([_club(c) for c in raw[0]], [_club(c) for c in raw[1]])


def _score(raw) -> tuple[int, int] | None:
    return tuple(raw) if raw is not None else None


def _match(raw: dict) -> Match:
    return Match(
        id=raw["id"],
        pairs=tuple(_pair(p) for p in raw["pairs"]),
        clubs=tuple(_club(c) for c in raw["clubs"]),
        score=_score(raw["score"]),
        winner=raw["winner"],
        completed=raw["completed"],
        is_decider=raw["is_decider"],
    )


def _round(raw: dict) -> Round:
    return Round(
        id=raw["id"],
        number=raw["number"],
        matches=[_match(m) for m in raw["matches"]],
        completed=raw["completed"],
        pair_scores=dict(raw["pair_scores"]),
        is_decider_match=raw["is_decider_match"],
        team_pools=_pools(raw["team_pools"]),
        recycled_club_ids=list(raw["recycled_club_ids"]),
        decider_pools=_pools(raw["decider_pools"]),
    )


def _game(raw: dict) -> SinglesGame:
    return SinglesGame(
        id=raw["id"],
        players=tuple(_player(p) for p in raw["players"]),
        clubs=tuple(_club(c) for c in raw["clubs"]),
        score=_score(raw["score"]),
        winner=raw["winner"],
        completed=raw["completed"],
    )


def evening_from_dict(raw: dict) -> Evening:
    """Rebuild an Evening from evening_to_dict output (or its JSON)."""
    rankings = None
    if raw.get("rankings") is not None:
        rankings = Rankings(**{
            name: [_player(p) for p in raw["rankings"][name]]
            for name in RANK_BUCKETS
        })
    schedule = None
    if raw.get("pair_schedule") is not None:
        schedule = [[_pair(p) for p in rnd] for rnd in raw["pair_schedule"]]
    player_clubs = None
    if raw.get("player_clubs") is not None:
        player_clubs = {pid: [_club(c) for c in inventory]
                        for pid, inventory in raw["player_clubs"].items()}
    sequence = None
    if raw.get("game_sequence") is not None:
        sequence = [_game(g) for g in raw["game_sequence"]]

    return Evening(
        id=raw["id"],
        date=raw["date"],
        players=[_player(p) for p in raw["players"]],
        rounds=[_round(r) for r in raw.get("rounds", [])],
        wins_to_complete=raw.get("wins_to_complete", 4),
        completed=raw.get("completed", False),
        type=raw.get("type", "pairs"),
        pair_schedule=schedule,
        rankings=rankings,
        clubs_per_player=raw.get("clubs_per_player"),
        player_clubs=player_clubs,
        game_sequence=sequence,
        current_game_index=raw.get("current_game_index"),
    )


def load_evening(path: str | Path) -> Evening:
    with open(path) as f:
        return evening_from_dict(json.load(f))


def write_evening(evening: Evening, output_prefix: str = "output",
                  summary: str = "") -> None:
    """Write evening.json and summary.txt into the output directory."""
    out_dir = Path(output_prefix)
    out_dir.mkdir(parents=True, exist_ok=True)

    json_path = out_dir / "evening.json"
    with open(json_path, "w") as f:
        json.dump(evening_to_dict(evening), f, indent=2)
    print(f"Written: {json_path}")

    text = format_evening(evening)
    if summary:
        text += "\n\n" + summary
    summary_path = out_dir / "summary.txt"
    summary_path.write_text(text + "\n")
    print(f"Written: {summary_path}")
