"""
Consistent read snapshot for the scoring and ranking engine

All read-side computations load one EngineSnapshot and then run pure
functions over it, so every figure in a response comes from the same view of
fixtures, results, picks and submissions. Lifecycle state is resolved once
per round here and shared by every consumer.
"""

import logging

from flask import current_app

from predictor import db
from predictor.models import (
    Fixture,
    League,
    LeagueMember,
    LiveScore,
    Pick,
    Result,
    Submission,
    User,
)
from predictor.utils.gameweek_state import DEADLINE_BUFFER_MINUTES, RoundTimeline
from predictor.utils.performance import PerformanceMonitor
from predictor.utils.rankings import FORM_WINDOWS
from predictor.utils.scoring import (
    count_correct_picks,
    merge_provisional,
    provisional_outcomes,
)
from predictor.utils.standings import relevant_rounds, resolve_effective_start_round
from predictor.utils.streaks import TOP_QUARTILE_PERCENTILE
from predictor.utils.submissions import picks_match_fixtures
from predictor.utils.timezone_utils import ensure_utc, get_utc_time
from predictor.utils.unicorns import MIN_GROUP_SIZE

logger = logging.getLogger(__name__)


class EngineSnapshot:
    """
    Plain-data view of everything the engine reads.

    Attributes:
        fixtures: {round: {fixture_index: {"home_team", "away_team", "kickoff"}}}
        results: {round: {fixture_index: Outcome}}
        picks: {round: {user_id: {fixture_index: Outcome}}}
        submissions: {round: {user_id: submitted_at}}
        live: {round: {fixture_index: Outcome}} from in-play live scores
        leagues: {league_id: {"name", "created_at", "start_round", "members"}}
        users: {user_id: name}
    """

    def __init__(self, now, fixtures=None, results=None, picks=None,
                 submissions=None, live=None, leagues=None, users=None,
                 buffer_minutes=DEADLINE_BUFFER_MINUTES,
                 min_group_size=MIN_GROUP_SIZE,
                 top_quartile=TOP_QUARTILE_PERCENTILE,
                 form_windows=FORM_WINDOWS):
        self.now = ensure_utc(now)
        self.fixtures = fixtures or {}
        self.results = results or {}
        self.picks = picks or {}
        self.submissions = submissions or {}
        self.live = live or {}
        self.leagues = leagues or {}
        self.users = users or {}
        self.buffer_minutes = buffer_minutes
        self.min_group_size = min_group_size
        self.top_quartile = top_quartile
        self.form_windows = tuple(form_windows)
        self._timelines = {}
        self._points_by_round = None

    def __repr__(self):
        return f"<EngineSnapshot rounds={len(self.fixtures)} users={len(self.users)}>"

    # Rounds and lifecycle

    def rounds(self):
        return sorted(self.fixtures)

    def fixture_indices(self, round_number):
        return set(self.fixtures.get(round_number, {}))

    def kickoff_times(self, round_number):
        return [f["kickoff"] for f in self.fixtures.get(round_number, {}).values()]

    def outcomes(self, round_number):
        """{fixture_index: Outcome or None} for every fixture of the round"""
        round_results = self.results.get(round_number, {})
        return {idx: round_results.get(idx) for idx in self.fixture_indices(round_number)}

    def is_decided(self, round_number):
        outcomes = self.outcomes(round_number)
        return bool(outcomes) and all(o is not None for o in outcomes.values())

    def decided_rounds(self):
        return [r for r in self.rounds() if self.is_decided(r)]

    def latest_decided_round(self):
        decided = self.decided_rounds()
        return decided[-1] if decided else None

    def timeline(self, round_number):
        """RoundTimeline for a round, built once per snapshot"""
        if round_number not in self._timelines:
            self._timelines[round_number] = RoundTimeline(
                round_number,
                self.kickoff_times(round_number),
                self.now,
                self.is_decided(round_number),
                self.buffer_minutes,
            )
        return self._timelines[round_number]

    def current_round(self):
        """First round that is not decided yet, else the latest round"""
        rounds = self.rounds()
        for r in rounds:
            if not self.is_decided(r):
                return r
        return rounds[-1] if rounds else None

    def decided_round_deadlines(self):
        return {r: self.timeline(r).deadline for r in self.decided_rounds()}

    # Picks and submissions

    def user_picks(self, user_id, round_number):
        return self.picks.get(round_number, {}).get(user_id, {})

    def picks_complete(self, user_id, round_number):
        return picks_match_fixtures(
            self.user_picks(user_id, round_number), self.fixture_indices(round_number)
        )

    def has_submission(self, user_id, round_number):
        return user_id in self.submissions.get(round_number, {})

    def has_valid_submission(self, user_id, round_number):
        """Submitted and the stored picks still cover the round exactly"""
        return self.has_submission(user_id, round_number) and self.picks_complete(
            user_id, round_number
        )

    def invalid_submissions(self, round_number):
        return [
            user_id
            for user_id in self.submissions.get(round_number, {})
            if not self.picks_complete(user_id, round_number)
        ]

    def submitted_picks(self, round_number, user_ids=None):
        """{user_id: picks} of valid submissions, optionally limited to user_ids"""
        submitted = {}
        for user_id in self.submissions.get(round_number, {}):
            if user_ids is not None and user_id not in user_ids:
                continue
            if self.picks_complete(user_id, round_number):
                submitted[user_id] = self.user_picks(user_id, round_number)
        return submitted

    # Scoring inputs

    def round_outcomes(self, round_number, provisional=False):
        """
        Outcomes to score a round with.

        Returns:
            tuple: (outcomes, is_provisional)
        """
        final = self.outcomes(round_number)
        if not provisional:
            return final, False
        merged, used_live = merge_provisional(final, self.live.get(round_number, {}))
        return merged, used_live

    def points_by_round(self):
        """{round: {user_id: correct}} for decided rounds and valid submissions"""
        if self._points_by_round is None:
            points = {}
            for r in self.decided_rounds():
                outcomes = self.outcomes(r)
                points[r] = {
                    user_id: count_correct_picks(picks, outcomes)
                    for user_id, picks in self.submitted_picks(r).items()
                }
            self._points_by_round = points
        return self._points_by_round

    # Leagues

    def league_members(self, league_id):
        """{user_id: name} of a league's members"""
        league = self.leagues.get(league_id)
        if league is None:
            return {}
        return {user_id: self.users.get(user_id) for user_id in league["members"]}

    def league_effective_start(self, league_id):
        league = self.leagues[league_id]
        return resolve_effective_start_round(
            league["start_round"], league["created_at"], self.decided_round_deadlines()
        )

    def league_relevant_rounds(self, league_id):
        return relevant_rounds(self.decided_rounds(), self.league_effective_start(league_id))

    def league_round_inputs(self, league_id, rounds=None):
        """{round: (submitted member picks, outcomes)} for a league's rounds"""
        members = set(self.league_members(league_id))
        if rounds is None:
            rounds = self.league_relevant_rounds(league_id)
        return {
            r: (self.submitted_picks(r, members), self.outcomes(r))
            for r in rounds
        }

    def leagues_for_user(self, user_id):
        return [
            league_id
            for league_id, league in self.leagues.items()
            if user_id in league["members"]
        ]


def _set_isolation_level():
    level = current_app.config.get("SNAPSHOT_ISOLATION_LEVEL")
    if not level:
        return
    if db.session.in_transaction():
        logger.debug("Snapshot joins the open transaction, isolation level unchanged")
        return
    db.session.connection(execution_options={"isolation_level": level})


def load_snapshot(now=None):
    """
    Load an EngineSnapshot inside a single transaction.

    Args:
        now: reference time for lifecycle resolution, defaults to current UTC
    """
    with PerformanceMonitor("load_snapshot"):
        _set_isolation_level()

        fixtures = {}
        for f in Fixture.query.all():
            fixtures.setdefault(f.round_number, {})[f.fixture_index] = {
                "home_team": f.home_team,
                "away_team": f.away_team,
                "kickoff": f.kickoff_utc,
            }

        results = {}
        for r in Result.query.all():
            results.setdefault(r.round_number, {})[r.fixture_index] = r.outcome

        picks = {}
        for p in Pick.query.all():
            outcome = p.outcome
            if outcome is None:
                continue
            round_picks = picks.setdefault(p.round_number, {})
            round_picks.setdefault(p.user_id, {})[p.fixture_index] = outcome

        submissions = {}
        for s in Submission.query.all():
            submissions.setdefault(s.round_number, {})[s.user_id] = ensure_utc(
                s.submitted_at
            )

        live_rows = {}
        for row in LiveScore.query.all():
            live_rows.setdefault(row.round_number, []).append(row)
        live = {r: provisional_outcomes(rows) for r, rows in live_rows.items()}

        users = {u.id: u.full_name for u in User.query.all()}

        leagues = {}
        for league in League.query.all():
            leagues[league.id] = {
                "name": league.name,
                "created_at": ensure_utc(league.created_at),
                "start_round": league.start_round,
                "members": [],
            }
        for membership in LeagueMember.query.all():
            if membership.league_id in leagues:
                leagues[membership.league_id]["members"].append(membership.user_id)

        snapshot = EngineSnapshot(
            now or get_utc_time(),
            fixtures=fixtures,
            results=results,
            picks=picks,
            submissions=submissions,
            live=live,
            leagues=leagues,
            users=users,
            buffer_minutes=current_app.config.get(
                "DEADLINE_BUFFER_MINUTES", DEADLINE_BUFFER_MINUTES
            ),
            min_group_size=current_app.config.get(
                "UNICORN_MIN_GROUP_SIZE", MIN_GROUP_SIZE
            ),
            top_quartile=current_app.config.get(
                "TOP_QUARTILE_PERCENTILE", TOP_QUARTILE_PERCENTILE
            ),
            form_windows=current_app.config.get("FORM_WINDOWS", FORM_WINDOWS),
        )

    logger.debug(f"Loaded {snapshot!r}")
    return snapshot
