"""
League Standings Builder

Per-round league tables, weighted league points and the season standings of a
mini-league. Rows are ordered by a fixed cascade:

    weighted points -> unicorns -> OCP (overall correct predictions) -> name

Per round, the sole top scorer (correct picks, then unicorns) earns 3 points.
When the top spot is shared on both, every co-leader earns 1 point instead.
"""

import logging

from predictor.utils.rankings import name_key
from predictor.utils.scoring import count_correct_picks
from predictor.utils.timezone_utils import ensure_utc
from predictor.utils.unicorns import MIN_GROUP_SIZE, count_unicorns

logger = logging.getLogger(__name__)

WIN_POINTS = 3
DRAW_POINTS = 1

FORM_WIN = "W"
FORM_DRAW = "D"
FORM_LOSS = "L"


class RoundTableRow:
    """One member's line in a single round's league table"""

    def __init__(self, user_id, name, correct=0, unicorns=0, submitted=False):
        self.user_id = user_id
        self.name = name
        self.correct = correct
        self.unicorns = unicorns
        self.submitted = submitted
        self.points = 0

    def __repr__(self):
        return f"<RoundTableRow {self.name} correct={self.correct}>"

    def to_dict(self):
        return {
            "user_id": self.user_id,
            "name": self.name,
            "correct": self.correct,
            "unicorns": self.unicorns,
            "submitted": self.submitted,
            "points": self.points,
        }


class StandingsRow:
    """Cumulative league line of one member"""

    def __init__(self, user_id, name):
        self.user_id = user_id
        self.name = name
        self.points = 0
        self.unicorns = 0
        self.ocp = 0
        self.wins = 0
        self.draws = 0
        self.played = 0
        self.form = []
        self.rank = 0

    def __repr__(self):
        return f"<StandingsRow #{self.rank} {self.name} pts={self.points}>"

    @property
    def losses(self):
        return self.played - self.wins - self.draws

    def to_dict(self):
        return {
            "rank": self.rank,
            "user_id": self.user_id,
            "name": self.name,
            "points": self.points,
            "unicorns": self.unicorns,
            "ocp": self.ocp,
            "wins": self.wins,
            "draws": self.draws,
            "losses": self.losses,
            "played": self.played,
            "form": "".join(self.form[-5:]),
        }


def build_round_table(members, picks_by_user, outcomes, min_group_size=MIN_GROUP_SIZE):
    """
    Score one round for every league member.

    Members without submitted picks still get a row with zero correct picks.
    The unicorn comparison group is the full member set.

    Args:
        members: {user_id: name}
        picks_by_user: {user_id: {fixture_index: Outcome}} of submitted picks
        outcomes: {fixture_index: Outcome or None}

    Returns:
        list of RoundTableRow ordered by correct desc, unicorns desc, name asc
    """
    member_picks = {
        user_id: picks
        for user_id, picks in picks_by_user.items()
        if user_id in members
    }
    unicorns = count_unicorns(member_picks, outcomes, len(members), min_group_size)

    rows = []
    for user_id, name in members.items():
        picks = member_picks.get(user_id)
        rows.append(RoundTableRow(
            user_id=user_id,
            name=name,
            correct=count_correct_picks(picks, outcomes) if picks else 0,
            unicorns=unicorns.get(user_id, 0),
            submitted=picks is not None,
        ))

    rows.sort(key=lambda r: (-r.correct, -r.unicorns, name_key(r.name), r.user_id))
    return rows


def award_round_points(round_rows):
    """
    Weighted league points for one round.

    Returns:
        {user_id: points}; 3 for a sole leader, 1 for each co-leader, else 0
    """
    if not round_rows:
        return {}

    best = max((r.correct, r.unicorns) for r in round_rows)
    leaders = [r.user_id for r in round_rows if (r.correct, r.unicorns) == best]
    award = WIN_POINTS if len(leaders) == 1 else DRAW_POINTS

    points = {r.user_id: 0 for r in round_rows}
    for user_id in leaders:
        points[user_id] = award

    for row in round_rows:
        row.points = points[row.user_id]
    return points


def _form_letter(points):
    if points == WIN_POINTS:
        return FORM_WIN
    if points == DRAW_POINTS:
        return FORM_DRAW
    return FORM_LOSS


def standings_sort_key(row):
    return (-row.points, -row.unicorns, -row.ocp, name_key(row.name), row.user_id)


def build_league_standings(members, round_inputs, min_group_size=MIN_GROUP_SIZE):
    """
    Build the season standings of a league.

    Args:
        members: {user_id: name}
        round_inputs: {round_number: (picks_by_user, outcomes)} for the league's
            relevant rounds only
        min_group_size: smallest league that can award unicorns

    Returns:
        list of StandingsRow, ranked
    """
    rows = {
        user_id: StandingsRow(user_id=user_id, name=name)
        for user_id, name in members.items()
    }

    for round_number in sorted(round_inputs):
        picks_by_user, outcomes = round_inputs[round_number]
        table = build_round_table(members, picks_by_user, outcomes, min_group_size)
        points = award_round_points(table)

        for entry in table:
            row = rows[entry.user_id]
            row.points += points[entry.user_id]
            row.unicorns += entry.unicorns
            row.ocp += entry.correct
            row.played += 1
            letter = _form_letter(points[entry.user_id])
            if letter == FORM_WIN:
                row.wins += 1
            elif letter == FORM_DRAW:
                row.draws += 1
            row.form.append(letter)

    ranked = sorted(rows.values(), key=standings_sort_key)
    for position, row in enumerate(ranked, start=1):
        row.rank = position

    logger.debug(
        f"Built standings for {len(ranked)} members over {len(round_inputs)} rounds"
    )
    return ranked


def resolve_effective_start_round(league_start_round, league_created_at,
                                  decided_round_deadlines):
    """
    First round that counts towards a league's standings.

    Args:
        league_start_round: explicit override, or None
        league_created_at: league creation time, or None
        decided_round_deadlines: {round_number: deadline or None} of decided rounds

    Returns:
        int round number
    """
    if league_start_round is not None:
        return league_start_round

    decided = sorted(decided_round_deadlines)

    if league_created_at is None:
        return decided[0] if decided else 1

    created_at = ensure_utc(league_created_at)
    for round_number in decided:
        deadline = decided_round_deadlines[round_number]
        if deadline is not None and created_at <= ensure_utc(deadline):
            return round_number

    # Not eligible for any decided round yet
    if decided:
        return decided[-1] + 1
    return 1


def relevant_rounds(decided_rounds, effective_start_round):
    """Decided rounds that count for a league, ascending"""
    return sorted(r for r in decided_rounds if r >= effective_start_round)
