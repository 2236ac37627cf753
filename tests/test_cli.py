from datetime import datetime, timedelta, timezone

from conftest import enter_picks, make_league, make_round, make_user

from predictor import db
from predictor.models import Pick, Result


def test_round_state(runner, app):
    make_round(1, datetime.now(timezone.utc) + timedelta(days=2))
    result = runner.invoke(args=["round", "state", "1"])

    assert result.exit_code == 0
    assert "Round 1: OPEN" in result.output
    assert "Fixtures: 3" in result.output
    assert "0: HOM0 v AWY0" in result.output


def test_results_record_is_write_once(runner, app):
    make_round(1, datetime.now(timezone.utc) - timedelta(days=1))

    result = runner.invoke(args=["results", "record", "1", "0", "--home", "2", "--away", "1"])
    assert result.exit_code == 0
    assert "Recorded round 1 fixture 0: H" in result.output

    result = runner.invoke(args=["results", "record", "1", "0", "--outcome", "A"])
    assert result.exit_code == 0
    assert "left unchanged" in result.output
    assert Result.query.one().outcome_code is None

    result = runner.invoke(args=["results", "record", "1", "9", "--outcome", "A"])
    assert result.exit_code != 0
    assert "No fixture 9" in result.output


def test_round_heal(runner, app):
    make_round(1, datetime.now(timezone.utc) + timedelta(days=2))
    ann = make_user("ann")
    enter_picks(ann, 1, "HDA")

    result = runner.invoke(args=["round", "heal"])
    assert "All submissions are consistent" in result.output

    Pick.query.filter_by(user_id=ann.id, fixture_index=1).delete()
    db.session.commit()
    result = runner.invoke(args=["round", "heal", "1"])
    assert f"Round 1: revoked 1 submission(s) [{ann.id}]" in result.output


def test_league_and_leaderboards(runner, app):
    users = [make_user(name) for name in ("ann", "ben", "cat")]
    league = make_league("Office", users, start_round=1)
    make_round(1, datetime.now(timezone.utc) - timedelta(days=7))
    enter_picks(users[0], 1, "HDA")
    enter_picks(users[1], 1, "HHH")
    runner.invoke(args=["results", "record", "1", "0", "--outcome", "H"])
    runner.invoke(args=["results", "record", "1", "1", "--outcome", "D"])
    runner.invoke(args=["results", "record", "1", "2", "--outcome", "A"])

    result = runner.invoke(args=["league", "standings", str(league.id)])
    assert result.exit_code == 0
    assert "Office (from round 1, 1 rounds counted)" in result.output
    assert result.output.index("ann") < result.output.index("ben")

    result = runner.invoke(args=["leaderboard", "overall"])
    assert "Overall after round 1" in result.output

    result = runner.invoke(args=["leaderboard", "form", "5"])
    assert "Form 5 is not available yet" in result.output

    result = runner.invoke(args=["leaderboard", "form", "3"])
    assert result.exit_code != 0

    result = runner.invoke(args=["user", "stats", str(users[0].id)])
    assert result.exit_code == 0
    assert '"rounds_played": 1' in result.output


def test_status(runner, app):
    result = runner.invoke(args=["status"])
    assert result.exit_code == 0
    assert "Database: Connected" in result.output
    assert "Cache: NullCache" in result.output
    assert "Scheduler: stopped" in result.output
