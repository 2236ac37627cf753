from datetime import timedelta

import pytest
from conftest import NOW, enter_picks, make_league, make_round, make_user

from predictor import db
from predictor.models import Pick
from predictor.services.scheduler_service import SchedulerService
from predictor.services.snapshot import load_snapshot
from predictor.signals import league_round_submitted, submission_revoked


@pytest.fixture
def service(app):
    service = SchedulerService()
    service.app = app
    return service


@pytest.fixture
def received():
    events = []

    def on_league(sender, **kwargs):
        events.append(("league", kwargs))

    def on_revoked(sender, **kwargs):
        events.append(("revoked", kwargs))

    league_round_submitted.connect(on_league)
    submission_revoked.connect(on_revoked)
    yield events
    league_round_submitted.disconnect(on_league)
    submission_revoked.disconnect(on_revoked)


def test_league_announced_once_per_round(service, received):
    make_round(1, NOW + timedelta(days=1))
    users = [make_user(name) for name in ("ann", "ben", "cat")]
    league = make_league("Office", users)
    for user in users[:2]:
        enter_picks(user, 1, "HDA")

    assert service.announce_complete_leagues(load_snapshot(NOW)) == 0
    assert received == []

    enter_picks(users[2], 1, "AAA")
    assert service.announce_complete_leagues(load_snapshot(NOW)) == 1
    assert service.announce_complete_leagues(load_snapshot(NOW)) == 0
    assert received == [("league", {"league_id": league.id, "round_number": 1})]


def test_no_rounds_no_announcements(service, received):
    assert service.announce_complete_leagues(load_snapshot(NOW)) == 0


def test_heal_sweep_sends_revocations(service, received):
    make_round(1, NOW + timedelta(days=1))
    ann = make_user("ann")
    enter_picks(ann, 1, "HDA")
    Pick.query.filter_by(user_id=ann.id, fixture_index=0).delete()
    db.session.commit()

    ok, message = service.force_run("heal")

    assert ok
    assert received == [("revoked", {"user_id": ann.id, "round_number": 1})]
    status = service.get_status()
    assert status["stats"]["submissions_revoked"] == 1
    assert status["stats"]["successful_runs"] == 1
    assert status["is_running"] is False


def test_unknown_job(service):
    ok, message = service.force_run("sync")
    assert not ok
    assert "sync" in message
