from functools import wraps

from flask import abort, jsonify, request

from predictor import db, limiter
from predictor.models import Pick, User
from predictor.routes.api import bp
from predictor.services import stats_service
from predictor.services.snapshot import load_snapshot
from predictor.services.submission_service import (
    league_all_submitted,
    revalidate_submission,
    save_picks,
    submission_status,
    submit,
)
from predictor.utils.cache_utils import cached_route


def add_security_headers(f):
    """Add security headers to API responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if isinstance(response, tuple):
            target = response[0]
        else:
            target = response
        if hasattr(target, "headers"):
            target.headers["X-Content-Type-Options"] = "nosniff"
            target.headers["X-Frame-Options"] = "DENY"
            target.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
        return response

    return decorated_function


def _caller_id(required=True):
    """User id from the X-User-Id header set by the upstream auth layer"""
    raw = request.headers.get("X-User-Id")
    if not raw:
        if required:
            abort(403)
        return None
    try:
        user_id = int(raw)
    except ValueError:
        abort(400, description="X-User-Id must be an integer")

    if db.session.get(User, user_id) is None:
        abort(403)
    return user_id


# Rounds


@bp.route("/rounds/<int:round_number>/state")
@add_security_headers
def round_state(round_number):
    """Lifecycle state and deadline, resolved per user when X-User-Id is sent"""
    user_id = _caller_id(required=False)
    snapshot = load_snapshot()
    if not snapshot.fixture_indices(round_number):
        return jsonify({"error": f"Round {round_number} not found"}), 404

    picks_complete = None
    if user_id is not None:
        picks_complete = snapshot.picks_complete(user_id, round_number)

    data = snapshot.timeline(round_number).to_dict(picks_complete)
    data["fixtures"] = len(snapshot.fixture_indices(round_number))
    if user_id is not None:
        data["submission"] = submission_status(snapshot, user_id, round_number)
    return jsonify(data)


@bp.route("/rounds/<int:round_number>/picks", methods=["PUT"])
@limiter.limit("120 per minute")
@add_security_headers
def put_picks(round_number):
    """Upsert one or many picks: {"picks": {"0": "H", "1": "D"}}"""
    user_id = _caller_id()
    data = request.get_json(silent=True) or {}
    raw_picks = data.get("picks")
    if not isinstance(raw_picks, dict):
        return jsonify({"error": "Expected a 'picks' object"}), 400

    picks = save_picks(user_id, round_number, raw_picks)
    return jsonify(
        {
            "round": round_number,
            "picks": {str(idx): outcome.value for idx, outcome in sorted(picks.items())},
        }
    )


@bp.route("/rounds/<int:round_number>/picks")
@add_security_headers
def get_picks(round_number):
    """The caller's picks for a round"""
    user_id = _caller_id()
    picks = (
        Pick.query.filter_by(user_id=user_id, round_number=round_number)
        .order_by(Pick.fixture_index)
        .all()
    )
    return jsonify([pick.to_dict() for pick in picks])


@bp.route("/rounds/<int:round_number>/submission", methods=["POST"])
@limiter.limit("30 per minute")
@add_security_headers
def post_submission(round_number):
    """Submit the caller's picks for a round"""
    user_id = _caller_id()
    submission, created = submit(user_id, round_number)
    return jsonify({"submission": submission.to_dict(), "created": created}), (
        201 if created else 200
    )


@bp.route("/rounds/<int:round_number>/submission")
@add_security_headers
def get_submission(round_number):
    """Submission status; revokes a submission that no longer matches the round"""
    user_id = _caller_id()
    status = revalidate_submission(user_id, round_number)
    return jsonify({"user_id": user_id, "round": round_number, "status": status})


# Leagues


@bp.route("/leagues/<int:league_id>/standings")
@cached_route(timeout=300, key_prefix="league_standings")
def league_standings(league_id):
    """Season standings of a league"""
    data = stats_service.league_standings(load_snapshot(), league_id)
    if data is None:
        return jsonify({"error": "League not found"}), 404
    return jsonify(data)


@bp.route("/leagues/<int:league_id>/rounds/<int:round_number>/table")
def league_round_table(league_id, round_number):
    """One round's league table, provisional while the round is live"""
    data = stats_service.league_round_table(load_snapshot(), league_id, round_number)
    if data is None:
        return jsonify({"error": "League or round not found"}), 404
    return jsonify(data)


@bp.route("/leagues/<int:league_id>/rounds/<int:round_number>/all-submitted")
def league_round_all_submitted(league_id, round_number):
    snapshot = load_snapshot()
    if league_id not in snapshot.leagues:
        return jsonify({"error": "League not found"}), 404
    return jsonify(
        {
            "league_id": league_id,
            "round": round_number,
            "all_submitted": league_all_submitted(snapshot, league_id, round_number),
        }
    )


# Global leaderboards


@bp.route("/leaderboards/overall")
@cached_route(timeout=300, key_prefix="overall_leaderboard")
def overall_leaderboard():
    """Overall leaderboard by OCP with rank changes"""
    return jsonify(stats_service.overall_leaderboard(load_snapshot()))


@bp.route("/leaderboards/last-round")
@cached_route(timeout=300, key_prefix="last_round_leaderboard")
def last_round_leaderboard():
    return jsonify(stats_service.last_round_leaderboard(load_snapshot()))


@bp.route("/leaderboards/form/<int:window>")
@cached_route(timeout=300, key_prefix="form_leaderboard")
def form_leaderboard(window):
    """Form leaderboard over the last 5 or 10 decided rounds"""
    try:
        data = stats_service.form_leaderboard_view(load_snapshot(), window)
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    if data is None:
        return jsonify({"error": f"Form {window} is not available yet"}), 404
    return jsonify(data)


# Users


@bp.route("/users/<int:user_id>/stats")
@cached_route(timeout=300, key_prefix="user_stats")
def user_stats(user_id):
    """Statistic bundle of a user"""
    data = stats_service.user_stats(load_snapshot(), user_id)
    if data is None:
        return jsonify({"error": "User not found"}), 404
    return jsonify(data)
