"""Player statistics and rankings for clubnight evenings."""

from dataclasses import replace

from clubnight.models import (
    RANK_BUCKETS, SINGLES, Evening, Player, PlayerStats, Rankings,
)


def _credit(stats: dict[str, PlayerStats], streaks: dict[str, int],
            sides: list[tuple[Player, ...]], score: tuple[int, int],
            winner_side: int | None) -> None:
    """Fold one finished game into the running totals."""
    for i, side in enumerate(sides):
        for p in side:
            s = stats[p.id]
            s.goals_for += score[i]
            s.goals_against += score[1 - i]

    if winner_side is None:
        # A draw ends everybody's streak
        for side in sides:
            for p in side:
                streaks[p.id] = 0
        return

    for p in sides[winner_side]:
        s = stats[p.id]
        s.wins += 1
        s.points += 1
        streaks[p.id] += 1
        s.longest_win_streak = max(s.longest_win_streak, streaks[p.id])
    for p in sides[1 - winner_side]:
        streaks[p.id] = 0


def _sorted(stats: dict[str, PlayerStats]) -> list[PlayerStats]:
    return sorted(stats.values(), key=lambda s: (
        -s.points, -s.wins, -s.goal_difference, s.player.name))


def calculate_player_stats(evening: Evening) -> list[PlayerStats]:
    """Aggregate every completed match of a pairs evening, in play order.

    Sorted by points, then wins, then goal difference (name last so the
    order is stable).
    """
    stats = {p.id: PlayerStats(player=p) for p in evening.players}
    streaks = {p.id: 0 for p in evening.players}

    for rnd in evening.rounds:
        for m in rnd.matches:
            if not m.completed or m.score is None:
                continue
            pair_ids = [pair.id for pair in m.pairs]
            winner_side = pair_ids.index(m.winner) if m.winner in pair_ids else None
            _credit(stats, streaks, [pair.players for pair in m.pairs],
                    m.score, winner_side)

    return _sorted(stats)


def calculate_singles_stats(evening: Evening) -> list[PlayerStats]:
    """Same as calculate_player_stats, over a singles game sequence."""
    stats = {p.id: PlayerStats(player=p) for p in evening.players}
    streaks = {p.id: 0 for p in evening.players}

    for g in evening.game_sequence or []:
        if not g.completed or g.score is None:
            continue
        player_ids = [p.id for p in g.players]
        winner_side = player_ids.index(g.winner) if g.winner in player_ids else None
        _credit(stats, streaks, [(p,) for p in g.players], g.score, winner_side)

    return _sorted(stats)


def _manual_round_stats(evening: Evening) -> list[PlayerStats]:
    """Round wins for an evening entered without match detail."""
    stats = {p.id: PlayerStats(player=p) for p in evening.players}
    for rnd in evening.rounds:
        pairs = {pair.id: pair for pair in evening.pair_schedule[rnd.number - 1]}
        items = list(rnd.pair_scores.items())
        if len(items) != 2 or items[0][1] == items[1][1]:
            continue
        winner = max(items, key=lambda item: item[1])[0]
        for p in pairs[winner].players:
            stats[p.id].wins += 1
            stats[p.id].points += 1
    return _sorted(stats)


def evening_stats(evening: Evening) -> list[PlayerStats]:
    """Stats for one evening of either type."""
    if evening.type == SINGLES:
        return calculate_singles_stats(evening)
    if evening.rounds and not any(rnd.matches for rnd in evening.rounds):
        return _manual_round_stats(evening)
    return calculate_player_stats(evening)


def calculate_cumulative_stats(evenings: list[Evening]) -> list[PlayerStats]:
    """Merge the stats of every completed evening, keyed by player id.

    Counts are summed; the win streak is the longest seen on any one evening.
    """
    merged: dict[str, PlayerStats] = {}
    for evening in evenings:
        if not evening.completed:
            continue
        for s in evening_stats(evening):
            total = merged.get(s.player.id)
            if total is None:
                merged[s.player.id] = replace(s)
                continue
            total.wins += s.wins
            total.goals_for += s.goals_for
            total.goals_against += s.goals_against
            total.points += s.points
            total.longest_win_streak = max(total.longest_win_streak,
                                           s.longest_win_streak)
    return _sorted(merged)


def calculate_rankings(stats: list[PlayerStats]) -> Rankings:
    """Bucket players by distinct points level.

    Everybody on the same points shares a bucket: the best level is alpha,
    then beta, gamma, delta. Levels past the fourth (possible in singles
    with more than four players) all land in delta.
    """
    rankings = Rankings()
    levels = sorted({s.points for s in stats}, reverse=True)
    for s in sorted(stats, key=lambda s: -s.points):
        level = min(levels.index(s.points), len(RANK_BUCKETS) - 1)
        getattr(rankings, RANK_BUCKETS[level]).append(s.player)
    return rankings


def format_standings_report(stats: list[PlayerStats],
                            rankings: Rankings | None = None) -> str:
    """Format player statistics into a human-readable table."""
    lines = []
    lines.append("=" * 60)
    lines.append("STANDINGS")
    lines.append("=" * 60)

    if rankings is None:
        rankings = calculate_rankings(stats)

    lines.append(f"{'Player':<16} {'Rank':<6} {'Pts':>4} {'W':>4} "
                 f"{'GF':>4} {'GA':>4} {'GD':>5} {'Strk':>5}")
    lines.append("-" * 60)
    for s in stats:
        bucket = rankings.bucket_of(s.player.id) or ""
        lines.append(
            f"{s.player.name:<16} {bucket:<6} {s.points:>4} {s.wins:>4} "
            f"{s.goals_for:>4} {s.goals_against:>4} "
            f"{s.goal_difference:>+5} {s.longest_win_streak:>5}"
        )

    lines.append("")
    for name in RANK_BUCKETS:
        players = getattr(rankings, name)
        if players:
            lines.append(f"{name.upper():<6} {', '.join(p.name for p in players)}")

    return "\n".join(lines)
