from datetime import datetime, timedelta, timezone

import pytest
from conftest import enter_picks, make_league, make_round, make_user, record_results

from predictor.models import Submission


@pytest.fixture
def league_setup(app):
    """Two decided rounds in the past and an open round in two days"""
    now = datetime.now(timezone.utc)
    users = [make_user(name) for name in ("ann", "ben", "cat")]
    league = make_league("Office", users, start_round=1)

    for r, results in ((1, "HDA"), (2, "AAA")):
        make_round(r, now - timedelta(weeks=3 - r))
        enter_picks(users[0], r, "HDA")
        enter_picks(users[1], r, "AAA")
        record_results(r, results)

    make_round(3, now + timedelta(days=2))
    return {"league": league, "users": users}


def headers(user):
    return {"X-User-Id": str(user.id)}


class TestRoundEndpoints:
    def test_round_state(self, client, league_setup):
        response = client.get("/api/rounds/3/state")
        assert response.status_code == 200
        data = response.get_json()
        assert data["state"] == "OPEN"
        assert data["fixtures"] == 3
        assert "submission" not in data

        assert client.get("/api/rounds/1/state").get_json()["state"] == "RESULTS_FINAL"

    def test_round_state_for_user(self, client, league_setup):
        cat = league_setup["users"][2]
        client.put("/api/rounds/3/picks", json={"picks": {"0": "H", "1": "D", "2": "A"}},
                   headers=headers(cat))

        data = client.get("/api/rounds/3/state", headers=headers(cat)).get_json()
        assert data["state"] == "PREDICTED"
        assert data["submission"] == "not_submitted"

    def test_unknown_round(self, client, league_setup):
        response = client.get("/api/rounds/42/state")
        assert response.status_code == 404
        assert "error" in response.get_json()

    def test_pick_and_submit(self, client, league_setup):
        ann = league_setup["users"][0]

        response = client.put(
            "/api/rounds/3/picks", json={"picks": {"0": "H", "1": "D"}}, headers=headers(ann)
        )
        assert response.status_code == 200
        assert response.get_json()["picks"] == {"0": "H", "1": "D"}

        response = client.post("/api/rounds/3/submission", headers=headers(ann))
        assert response.status_code == 400
        assert response.get_json() == {"error": "Missing picks for fixtures [2]"}

        client.put("/api/rounds/3/picks", json={"picks": {"2": "A"}}, headers=headers(ann))
        response = client.post("/api/rounds/3/submission", headers=headers(ann))
        assert response.status_code == 201
        assert response.get_json()["created"] is True

        response = client.post("/api/rounds/3/submission", headers=headers(ann))
        assert response.status_code == 200
        assert response.get_json()["created"] is False
        assert Submission.query.filter_by(round_number=3).count() == 1

        response = client.put(
            "/api/rounds/3/picks", json={"picks": {"0": "A"}}, headers=headers(ann)
        )
        assert response.status_code == 409

        status = client.get("/api/rounds/3/submission", headers=headers(ann)).get_json()
        assert status["status"] == "submitted"

    def test_get_picks(self, client, league_setup):
        ann = league_setup["users"][0]
        picks = client.get("/api/rounds/1/picks", headers=headers(ann)).get_json()
        assert [p["pick"] for p in picks] == ["H", "D", "A"]

    def test_closed_round_rejects_picks(self, client, league_setup):
        cat = league_setup["users"][2]
        response = client.put(
            "/api/rounds/1/picks", json={"picks": {"0": "H"}}, headers=headers(cat)
        )
        assert response.status_code == 409
        assert "RESULTS_FINAL" in response.get_json()["error"]

    def test_caller_identity_required(self, client, league_setup):
        body = {"picks": {"0": "H"}}
        assert client.put("/api/rounds/3/picks", json=body).status_code == 403
        assert client.put(
            "/api/rounds/3/picks", json=body, headers={"X-User-Id": "abc"}
        ).status_code == 400
        assert client.put(
            "/api/rounds/3/picks", json=body, headers={"X-User-Id": "999"}
        ).status_code == 403

    def test_malformed_body(self, client, league_setup):
        ann = league_setup["users"][0]
        response = client.put("/api/rounds/3/picks", json={"0": "H"}, headers=headers(ann))
        assert response.status_code == 400


class TestLeagueEndpoints:
    def test_standings(self, client, league_setup):
        league = league_setup["league"]
        response = client.get(f"/api/leagues/{league.id}/standings")
        assert response.status_code == 200

        rows = response.get_json()["standings"]
        assert [(r["name"], r["points"]) for r in rows] == [("ann", 3), ("ben", 3), ("cat", 0)]

    def test_missing_league(self, client, league_setup):
        assert client.get("/api/leagues/999/standings").status_code == 404
        assert client.get("/api/leagues/999/rounds/1/all-submitted").status_code == 404

    def test_round_table(self, client, league_setup):
        league = league_setup["league"]
        data = client.get(f"/api/leagues/{league.id}/rounds/2/table").get_json()
        assert data["state"] == "RESULTS_FINAL"
        assert data["rows"][0]["name"] == "ben"
        assert data["rows"][0]["points"] == 3

    def test_all_submitted(self, client, league_setup):
        league = league_setup["league"]
        data = client.get(f"/api/leagues/{league.id}/rounds/1/all-submitted").get_json()
        assert data["all_submitted"] is False


class TestLeaderboardEndpoints:
    def test_overall(self, client, league_setup):
        data = client.get("/api/leaderboards/overall").get_json()
        assert data["round"] == 2
        assert [(e["name"], e["value"], e["rank"]) for e in data["entries"]] == [
            ("ann", 4, 1),
            ("ben", 4, 1),
        ]

    def test_last_round(self, client, league_setup):
        data = client.get("/api/leaderboards/last-round").get_json()
        assert data["round"] == 2
        assert data["entries"][0]["name"] == "ben"

    def test_form_not_available(self, client, league_setup):
        response = client.get("/api/leaderboards/form/5")
        assert response.status_code == 404

    def test_form_bad_window(self, client, league_setup):
        response = client.get("/api/leaderboards/form/7")
        assert response.status_code == 400

    def test_user_stats(self, client, league_setup):
        ann = league_setup["users"][0]
        data = client.get(f"/api/users/{ann.id}/stats").get_json()
        assert data["rounds_played"] == 2
        assert data["overall"]["ocp"] == 4

        assert client.get("/api/users/999/stats").status_code == 404

    def test_security_headers(self, client, league_setup):
        response = client.get("/api/leaderboards/overall")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
