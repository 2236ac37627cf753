"""
Read-side views built on an EngineSnapshot

League standings and round tables, global leaderboards with rank changes,
and the per-user statistic bundle. Everything here is computed from one
snapshot and returned as plain dicts ready for jsonify.
"""

import logging
from collections import defaultdict

from predictor.services.submission_service import league_all_submitted
from predictor.utils.gameweek_state import GameweekState
from predictor.utils.performance import PerformanceMonitor
from predictor.utils.rankings import (
    attach_rank_changes,
    form_leaderboard,
    form_totals,
    overall_standings_as_of,
    rank_entries,
    ranks_by_user,
    user_percentile,
)
from predictor.utils.standings import (
    award_round_points,
    build_league_standings,
    build_round_table,
)
from predictor.utils.streaks import longest_top_quartile_streak
from predictor.utils.unicorns import unicorn_fixtures

logger = logging.getLogger(__name__)

# A pick is "rare" when at most this share of pickers chose the same outcome
RARE_PICK_SHARE = 25.0
MIN_TEAM_PICKS = 3


def _previous_decided_round(snapshot, round_number):
    earlier = [r for r in snapshot.decided_rounds() if r < round_number]
    return earlier[-1] if earlier else None


# League views


def league_standings(snapshot, league_id):
    """Season standings of a league, or None if the league does not exist"""
    league = snapshot.leagues.get(league_id)
    if league is None:
        return None

    with PerformanceMonitor(f"league_standings:{league_id}"):
        members = snapshot.league_members(league_id)
        rounds = snapshot.league_relevant_rounds(league_id)
        rows = build_league_standings(
            members, snapshot.league_round_inputs(league_id, rounds), snapshot.min_group_size
        )

    return {
        "league": {"id": league_id, "name": league["name"]},
        "effective_start_round": snapshot.league_effective_start(league_id),
        "rounds": rounds,
        "standings": [row.to_dict() for row in rows],
    }


def league_round_table(snapshot, league_id, round_number):
    """
    One round's table for a league.

    LIVE rounds are scored against live scores where present and are always
    flagged provisional.
    Returns None if the league or round does not exist.
    """
    if league_id not in snapshot.leagues or round_number not in snapshot.fixtures:
        return None

    timeline = snapshot.timeline(round_number)
    members = snapshot.league_members(league_id)
    is_live = timeline.state is GameweekState.LIVE
    outcomes, used_live = snapshot.round_outcomes(round_number, provisional=is_live)
    table = build_round_table(
        members,
        snapshot.submitted_picks(round_number, set(members)),
        outcomes,
        snapshot.min_group_size,
    )
    if timeline.state in (GameweekState.LIVE, GameweekState.RESULTS_FINAL):
        award_round_points(table)

    effective_start = snapshot.league_effective_start(league_id)
    return {
        "league_id": league_id,
        "round": round_number,
        "state": timeline.state.value,
        "is_provisional": is_live or used_live,
        "counts_for_standings": timeline.is_decided and round_number >= effective_start,
        "all_submitted": league_all_submitted(snapshot, league_id, round_number),
        "rows": [row.to_dict() for row in table],
    }


# Global leaderboards


def overall_leaderboard(snapshot):
    """Overall leaderboard by OCP with rank changes since the previous decided round"""
    latest = snapshot.latest_decided_round()
    if latest is None:
        return {"round": None, "entries": []}

    points_by_round = snapshot.points_by_round()
    with PerformanceMonitor("overall_leaderboard"):
        entries = overall_standings_as_of(points_by_round, snapshot.users, latest)
        previous = _previous_decided_round(snapshot, latest)
        before = (
            ranks_by_user(overall_standings_as_of(points_by_round, snapshot.users, previous))
            if previous is not None
            else {}
        )
        attach_rank_changes(entries, before)

    totals = {e.user_id: e.value for e in entries}
    data = []
    for entry in entries:
        row = entry.to_dict()
        row["percentile"] = user_percentile(entry.user_id, totals)
        data.append(row)
    return {"round": latest, "entries": data}


def last_round_leaderboard(snapshot):
    """Leaderboard of the latest decided round"""
    latest = snapshot.latest_decided_round()
    if latest is None:
        return {"round": None, "entries": []}

    round_points = snapshot.points_by_round()[latest]
    entries = rank_entries(round_points, snapshot.users)
    data = []
    for entry in entries:
        row = entry.to_dict()
        row["percentile"] = user_percentile(entry.user_id, round_points)
        data.append(row)
    return {"round": latest, "entries": data}


def form_leaderboard_view(snapshot, window):
    """
    Trailing-window form leaderboard with rank changes.

    Returns None when fewer decided rounds exist than the window needs.

    Raises:
        ValueError: if window is not one of the configured form windows
    """
    latest = snapshot.latest_decided_round()
    points_by_round = snapshot.points_by_round()
    entries = form_leaderboard(
        points_by_round, snapshot.users, latest, window, snapshot.form_windows
    )
    if entries is None:
        return None

    previous = _previous_decided_round(snapshot, latest)
    before_entries = (
        form_leaderboard(
            points_by_round, snapshot.users, previous, window, snapshot.form_windows
        )
        if previous is not None
        else None
    )
    attach_rank_changes(entries, ranks_by_user(before_entries or []))

    return {
        "window": window,
        "rounds": [latest - window + 1, latest],
        "entries": [entry.to_dict() for entry in entries],
    }


# User statistics


def round_percentiles(snapshot, user_id):
    """(rounds, percentiles) for every decided round, None where the user has no entry"""
    rounds = snapshot.decided_rounds()
    points_by_round = snapshot.points_by_round()
    return rounds, [user_percentile(user_id, points_by_round[r]) for r in rounds]


def _rare_picks(snapshot, user_id):
    """Picks of the user chosen by at most RARE_PICK_SHARE percent of pickers"""
    total = 0
    rare = 0
    rare_correct = 0
    for r in snapshot.decided_rounds():
        submitted = snapshot.submitted_picks(r)
        mine = submitted.get(user_id)
        if not mine:
            continue
        outcomes = snapshot.outcomes(r)
        for fixture_index, pick in mine.items():
            total += 1
            same = sum(1 for picks in submitted.values() if picks.get(fixture_index) == pick)
            share = 100.0 * same / len(submitted)
            if share <= RARE_PICK_SHARE:
                rare += 1
                if outcomes.get(fixture_index) == pick:
                    rare_correct += 1

    if total == 0:
        return None
    return {
        "chaos_index": round(100.0 * rare / total, 2),
        "rare_picks": rare,
        "rare_correct": rare_correct,
        "total_picks": total,
    }


def _team_records(snapshot, user_id):
    """{team: [correct, total]} over both teams of every scored fixture"""
    records = defaultdict(lambda: [0, 0])
    for r in snapshot.decided_rounds():
        if not snapshot.has_valid_submission(user_id, r):
            continue
        outcomes = snapshot.outcomes(r)
        picks = snapshot.user_picks(user_id, r)
        for fixture_index, fixture in snapshot.fixtures[r].items():
            correct = picks.get(fixture_index) == outcomes.get(fixture_index)
            for team in (fixture["home_team"], fixture["away_team"]):
                records[team][1] += 1
                if correct:
                    records[team][0] += 1
    return records


def team_extremes(snapshot, user_id, min_picks=MIN_TEAM_PICKS):
    """Teams whose matches the user called best and worst (at least min_picks each)"""
    eligible = [
        (team, correct, total)
        for team, (correct, total) in sorted(_team_records(snapshot, user_id).items())
        if total >= min_picks
    ]
    if not eligible:
        return None, None

    def as_dict(team, correct, total, share):
        return {"team": team, "correct": correct, "total": total, "percentage": share}

    best = max(eligible, key=lambda t: t[1] / t[2])
    worst = max(eligible, key=lambda t: (t[2] - t[1]) / t[2])
    return (
        as_dict(best[0], best[1], best[2], round(100.0 * best[1] / best[2], 2)),
        as_dict(worst[0], worst[1], worst[2], round(100.0 * (worst[2] - worst[1]) / worst[2], 2)),
    )


def weekly_par(snapshot, user_id):
    """User points against the round average for every round the user played"""
    par = []
    for r, round_points in sorted(snapshot.points_by_round().items()):
        if user_id not in round_points:
            continue
        average = round(sum(round_points.values()) / len(round_points), 2)
        par.append({
            "round": r,
            "points": round_points[user_id],
            "average": average,
            "difference": round(round_points[user_id] - average, 2),
        })
    return par


def unicorn_collection(snapshot, user_id):
    """
    Every unicorn the user earned in any league, grouped by fixture.

    Returns:
        list of {"round", "fixture_index", "home_team", "away_team", "pick",
        "leagues"} ordered by round and fixture
    """
    collected = {}
    for league_id in snapshot.leagues_for_user(user_id):
        members = snapshot.league_members(league_id)
        for r in snapshot.league_relevant_rounds(league_id):
            winners = unicorn_fixtures(
                snapshot.submitted_picks(r, set(members)),
                snapshot.outcomes(r),
                len(members),
                snapshot.min_group_size,
            )
            for fixture_index, winner in winners.items():
                if winner != user_id:
                    continue
                key = (r, fixture_index)
                if key not in collected:
                    fixture = snapshot.fixtures[r][fixture_index]
                    collected[key] = {
                        "round": r,
                        "fixture_index": fixture_index,
                        "home_team": fixture["home_team"],
                        "away_team": fixture["away_team"],
                        "pick": snapshot.user_picks(user_id, r)[fixture_index].value,
                        "leagues": [],
                    }
                collected[key]["leagues"].append(snapshot.leagues[league_id]["name"])

    for item in collected.values():
        item["leagues"].sort()
    return [collected[key] for key in sorted(collected)]


def trophy_cabinet(snapshot, user_id):
    """How often the user ranked first, per leaderboard, over all decided rounds"""
    trophies = {"last_round": 0, "overall": 0}
    for window in snapshot.form_windows:
        trophies[f"form{window}"] = 0
    points_by_round = snapshot.points_by_round()

    for r in snapshot.decided_rounds():
        if ranks_by_user(rank_entries(points_by_round[r], snapshot.users)).get(user_id) == 1:
            trophies["last_round"] += 1
        overall = ranks_by_user(overall_standings_as_of(points_by_round, snapshot.users, r))
        if overall.get(user_id) == 1:
            trophies["overall"] += 1
        for window in snapshot.form_windows:
            totals = form_totals(points_by_round, r, window, snapshot.form_windows)
            if totals and ranks_by_user(rank_entries(totals, snapshot.users)).get(user_id) == 1:
                trophies[f"form{window}"] += 1
    return trophies


def user_stats(snapshot, user_id):
    """Statistic bundle for one user, None if the user does not exist"""
    if user_id not in snapshot.users:
        return None

    with PerformanceMonitor(f"user_stats:{user_id}"):
        points_by_round = snapshot.points_by_round()
        played = {r: pts[user_id] for r, pts in points_by_round.items() if user_id in pts}
        latest = snapshot.latest_decided_round()

        totals = {}
        for round_points in points_by_round.values():
            for uid, pts in round_points.items():
                totals[uid] = totals.get(uid, 0) + pts

        fixtures_played = sum(len(snapshot.fixtures[r]) for r in played)
        ocp = sum(played.values())

        best_round = worst_round = None
        if played:
            best = max(sorted(played), key=lambda r: played[r])
            worst = min(sorted(played), key=lambda r: played[r])
            best_round = {"round": best, "points": played[best]}
            worst_round = {"round": worst, "points": played[worst]}

        rounds, percentiles = round_percentiles(snapshot, user_id)
        streak = longest_top_quartile_streak(percentiles, rounds, snapshot.top_quartile)
        most_correct, most_incorrect = team_extremes(snapshot, user_id)

        stats = {
            "user_id": user_id,
            "name": snapshot.users[user_id],
            "rounds_played": len(played),
            "last_round": None,
            "overall": {
                "ocp": ocp if played else None,
                "percentile": user_percentile(user_id, totals),
            },
            "correct_rate": (
                round(100.0 * ocp / fixtures_played, 2) if fixtures_played else None
            ),
            "average_points": round(ocp / len(played), 2) if played else None,
            "best_round": best_round,
            "worst_round": worst_round,
            "best_streak": streak.to_dict() if streak.length else None,
            "chaos": _rare_picks(snapshot, user_id),
            "weekly_par": weekly_par(snapshot, user_id),
            "most_correct_team": most_correct,
            "most_incorrect_team": most_incorrect,
            "unicorns": unicorn_collection(snapshot, user_id),
            "trophies": trophy_cabinet(snapshot, user_id),
        }

        if latest is not None and user_id in points_by_round[latest]:
            stats["last_round"] = {
                "round": latest,
                "points": points_by_round[latest][user_id],
                "percentile": user_percentile(user_id, points_by_round[latest]),
            }

    return stats
