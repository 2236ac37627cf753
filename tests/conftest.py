from datetime import datetime, timedelta, timezone

import pytest

from predictor import create_app, db
from predictor.models import Fixture, League, Pick, Result, Submission, User
from predictor.utils.outcomes import Outcome

NOW = datetime(2024, 9, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def app():
    app = create_app("testing")
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


def make_user(username, display_name=None):
    user = User(username=username)
    user.set_display_name(display_name)
    db.session.add(user)
    db.session.commit()
    return user


def make_round(round_number, kickoff, count=3):
    """Create `count` fixtures, the n-th kicking off n hours after `kickoff`"""
    fixtures = []
    for index in range(count):
        fixture = Fixture(
            round_number=round_number,
            fixture_index=index,
            home_team=f"HOM{index}",
            away_team=f"AWY{index}",
            kickoff_time=kickoff + timedelta(hours=index) if kickoff else None,
        )
        db.session.add(fixture)
        fixtures.append(fixture)
    db.session.commit()
    return fixtures


def make_league(name, users, start_round=None, created_at=None):
    league = League(name=name, start_round=start_round)
    if created_at is not None:
        league.created_at = created_at
    db.session.add(league)
    for user in users:
        league.add_member(user)
    db.session.commit()
    return league


def enter_picks(user, round_number, choices, submitted=True):
    """Store picks ("HDA" string, one letter per fixture) and optionally a submission"""
    for index, code in enumerate(choices):
        db.session.add(
            Pick(
                user_id=user.id,
                round_number=round_number,
                fixture_index=index,
                choice=Outcome(code).value,
            )
        )
    if submitted:
        db.session.add(Submission(user_id=user.id, round_number=round_number))
    db.session.commit()


def record_results(round_number, outcomes):
    for index, code in enumerate(outcomes):
        db.session.add(
            Result(round_number=round_number, fixture_index=index, outcome_code=code)
        )
    db.session.commit()
