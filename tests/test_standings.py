from datetime import datetime, timezone

from predictor.utils.outcomes import Outcome
from predictor.utils.standings import (
    RoundTableRow,
    StandingsRow,
    award_round_points,
    build_league_standings,
    build_round_table,
    relevant_rounds,
    resolve_effective_start_round,
    standings_sort_key,
)

H, D, A = Outcome.HOME, Outcome.DRAW, Outcome.AWAY
MEMBERS = {1: "alice", 2: "Bob", 3: "carol"}


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestRoundPoints:
    def test_sole_leader_gets_three(self):
        rows = [RoundTableRow(1, "a", correct=7), RoundTableRow(2, "b", correct=5)]
        assert award_round_points(rows) == {1: 3, 2: 0}
        assert rows[0].points == 3

    def test_tie_on_score_and_unicorns_shares_one_each(self):
        rows = [
            RoundTableRow(1, "a", correct=6, unicorns=1),
            RoundTableRow(2, "b", correct=6, unicorns=1),
            RoundTableRow(3, "c", correct=4),
        ]
        assert award_round_points(rows) == {1: 1, 2: 1, 3: 0}

    def test_unicorns_break_score_tie(self):
        rows = [
            RoundTableRow(1, "a", correct=6, unicorns=0),
            RoundTableRow(2, "b", correct=6, unicorns=2),
        ]
        assert award_round_points(rows) == {1: 0, 2: 3}

    def test_empty_round(self):
        assert award_round_points([]) == {}


class TestRoundTable:
    def test_non_submitters_get_zero_rows(self):
        picks = {1: {0: H, 1: D}, 2: {0: A, 1: D}}
        table = build_round_table(MEMBERS, picks, {0: H, 1: D})

        by_user = {row.user_id: row for row in table}
        assert by_user[1].correct == 2
        assert by_user[1].unicorns == 1
        assert by_user[2].correct == 1
        assert by_user[3].correct == 0
        assert by_user[3].submitted is False
        assert [row.user_id for row in table] == [1, 2, 3]

    def test_non_member_picks_ignored(self):
        picks = {1: {0: H}, 99: {0: H}}
        table = build_round_table(MEMBERS, picks, {0: H})
        assert {row.user_id for row in table} == {1, 2, 3}
        # user 99 is outside the league so user 1 is the only correct member
        assert table[0].unicorns == 1


class TestLeagueStandings:
    def test_cascade_points_then_unicorns_then_ocp_then_name(self):
        rows = []
        for user_id, name, points, unicorns, ocp in [
            (1, "dave", 6, 1, 20),
            (2, "Erin", 6, 2, 10),
            (3, "frank", 6, 2, 15),
            (4, "bea", 6, 2, 15),
            (5, "zed", 9, 0, 0),
        ]:
            row = StandingsRow(user_id, name)
            row.points, row.unicorns, row.ocp = points, unicorns, ocp
            rows.append(row)

        ordered = sorted(rows, key=standings_sort_key)
        assert [row.name for row in ordered] == ["zed", "bea", "frank", "Erin", "dave"]

    def test_season_accumulates_points_and_form(self):
        round_inputs = {
            # alice sole leader
            1: ({1: {0: H, 1: H}, 2: {0: H, 1: A}, 3: {0: A, 1: A}}, {0: H, 1: H}),
            # alice and Bob tie on score and unicorns
            2: ({1: {0: D, 1: A}, 2: {0: D, 1: A}, 3: {0: H, 1: H}}, {0: D, 1: A}),
        }
        ranked = build_league_standings(MEMBERS, round_inputs)

        alice, bob, carol = ranked
        assert alice.name == "alice"
        assert (alice.points, alice.wins, alice.draws, alice.losses) == (4, 1, 1, 0)
        assert alice.ocp == 4
        assert alice.unicorns == 1
        assert alice.to_dict()["form"] == "WD"

        assert bob.name == "Bob"
        assert bob.points == 1
        assert bob.to_dict()["form"] == "LD"

        assert carol.points == 0
        assert [row.rank for row in ranked] == [1, 2, 3]

    def test_no_relevant_rounds(self):
        ranked = build_league_standings(MEMBERS, {})
        assert [row.points for row in ranked] == [0, 0, 0]
        # name tie-break is case-insensitive
        assert [row.name for row in ranked] == ["alice", "Bob", "carol"]


class TestEffectiveStartRound:
    DEADLINES = {
        4: utc(2024, 9, 1, 12, 45),
        5: utc(2024, 9, 8, 12, 45),
        6: utc(2024, 9, 15, 12, 45),
    }

    def test_league_created_between_rounds(self):
        created = utc(2024, 9, 10, 9, 0)
        assert resolve_effective_start_round(None, created, self.DEADLINES) == 6
        assert relevant_rounds([4, 5, 6], 6) == [6]

    def test_created_exactly_at_deadline_counts(self):
        assert resolve_effective_start_round(None, self.DEADLINES[5], self.DEADLINES) == 5

    def test_explicit_start_round_wins(self):
        created = utc(2024, 9, 10, 9, 0)
        assert resolve_effective_start_round(4, created, self.DEADLINES) == 4

    def test_created_after_every_decided_round(self):
        created = utc(2024, 10, 1)
        assert resolve_effective_start_round(None, created, self.DEADLINES) == 7
        assert relevant_rounds([4, 5, 6], 7) == []

    def test_no_creation_time_uses_first_decided_round(self):
        assert resolve_effective_start_round(None, None, self.DEADLINES) == 4

    def test_nothing_decided(self):
        assert resolve_effective_start_round(None, utc(2024, 9, 1), {}) == 1
        assert resolve_effective_start_round(None, None, {}) == 1
