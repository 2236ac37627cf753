"""
Global Ranking Engine

Percentiles, competition ranks, rank changes between two points in time and
trailing-window form leaderboards. Every global leaderboard is built from
these functions.

Inputs are plain mappings so the functions stay independent of the database:

    points_by_round = {round_number: {user_id: correct_picks}}
    names = {user_id: display name}

A user appears in points_by_round[r] only if they have a points entry for r.
"""

import logging

logger = logging.getLogger(__name__)

FORM_WINDOWS = (5, 10)


def name_key(name):
    """Case-insensitive sort key for the name tie-break"""
    return (name or "").casefold()


def percentile(value, all_values):
    """
    Inclusive percentile of `value` within `all_values`.

    100 * (number of values <= value) / (number of values), rounded to 2
    decimals. Returns None when there are no values.
    """
    all_values = list(all_values)
    if not all_values:
        return None
    at_or_below = sum(1 for v in all_values if v <= value)
    return round(100.0 * at_or_below / len(all_values), 2)


def user_percentile(user_id, values_by_user):
    """Percentile of one user's value, or None if they have no value"""
    if user_id not in values_by_user:
        return None
    return percentile(values_by_user[user_id], values_by_user.values())


class RankEntry:
    def __init__(self, user_id, name, value, rank):
        self.user_id = user_id
        self.name = name
        self.value = value
        self.rank = rank
        self.change = None

    def __repr__(self):
        return f"<RankEntry #{self.rank} {self.name} {self.value}>"

    def to_dict(self):
        data = {
            "rank": self.rank,
            "user_id": self.user_id,
            "name": self.name,
            "value": self.value,
        }
        if self.change is not None:
            data["rank_change"] = self.change.to_dict()
        return data


def rank_entries(values_by_user, names):
    """
    Competition ranking ("1224") by value descending.

    Tied values share a rank; display order within a tie is by name.

    Returns:
        list of RankEntry
    """
    ordered = sorted(
        values_by_user.items(),
        key=lambda item: (-item[1], name_key(names.get(item[0])), item[0]),
    )

    entries = []
    current_rank = 0
    previous_value = None
    for position, (user_id, value) in enumerate(ordered, start=1):
        if position == 1 or value != previous_value:
            current_rank = position
        previous_value = value
        entries.append(RankEntry(user_id, names.get(user_id), value, current_rank))
    return entries


def ranks_by_user(entries):
    return {entry.user_id: entry.rank for entry in entries}


class RankChange:
    """
    Rank movement of a user between two snapshots.

    change is before - after, so a positive value means the user climbed.
    A user with no earlier rank is a new entrant and has no change value.
    """

    def __init__(self, before, after):
        self.before = before
        self.after = after
        self.is_new_entrant = before is None
        self.change = None if before is None else before - after

    def __repr__(self):
        if self.is_new_entrant:
            return f"<RankChange new -> {self.after}>"
        return f"<RankChange {self.before} -> {self.after}>"

    def to_dict(self):
        return {
            "before": self.before,
            "after": self.after,
            "change": self.change,
            "is_new_entrant": self.is_new_entrant,
        }


def rank_delta(before_ranks, after_ranks, user_id):
    """
    Diff one user's rank between two snapshots.

    Args:
        before_ranks: {user_id: rank} at the earlier snapshot
        after_ranks: {user_id: rank} now

    Returns:
        RankChange, or None when the user is not ranked now
    """
    if user_id not in after_ranks:
        return None
    return RankChange(before_ranks.get(user_id), after_ranks[user_id])


def attach_rank_changes(entries, before_ranks):
    """Set `change` on every entry from an earlier rank map"""
    after_ranks = ranks_by_user(entries)
    for entry in entries:
        entry.change = rank_delta(before_ranks, after_ranks, entry.user_id)
    return entries


def overall_totals_as_of(points_by_round, round_number=None):
    """Cumulative correct picks (OCP) per user through `round_number`"""
    totals = {}
    for r, round_points in points_by_round.items():
        if round_number is not None and r > round_number:
            continue
        for user_id, points in round_points.items():
            totals[user_id] = totals.get(user_id, 0) + points
    return totals


def overall_standings_as_of(points_by_round, names, round_number=None):
    """Overall leaderboard (by OCP) as it stood after `round_number`"""
    return rank_entries(overall_totals_as_of(points_by_round, round_number), names)


def form_window(latest_round, window):
    """Round numbers covered by a trailing window ending at latest_round"""
    return list(range(latest_round - window + 1, latest_round + 1))


def form_totals(points_by_round, latest_round, window, allowed_windows=FORM_WINDOWS):
    """
    Summed points over the trailing window for users who played every round.

    Returns:
        {user_id: points}, or None when fewer than `window` rounds exist

    Raises:
        ValueError: if window is not one of allowed_windows
    """
    if window not in allowed_windows:
        raise ValueError(
            f"Unsupported form window {window}, expected one of {allowed_windows}"
        )
    if latest_round is None or latest_round < window:
        return None

    rounds = form_window(latest_round, window)
    qualified = None
    for r in rounds:
        played = set(points_by_round.get(r, {}))
        qualified = played if qualified is None else qualified & played

    totals = {}
    for user_id in qualified or ():
        totals[user_id] = sum(points_by_round[r][user_id] for r in rounds)
    return totals


def form_leaderboard(points_by_round, names, latest_round, window,
                     allowed_windows=FORM_WINDOWS):
    """
    Trailing-window form leaderboard.

    Only users with a points entry in every round of the window are ranked;
    partial participants are left out entirely.

    Returns:
        list of RankEntry, or None when the window is not available yet
    """
    totals = form_totals(points_by_round, latest_round, window, allowed_windows)
    if totals is None:
        logger.debug(f"Form {window} not available at round {latest_round}")
        return None
    return rank_entries(totals, names)
