"""
Tests for GET /api/v1/stats
===========================
Covers:
- New user: every section empty, zero counts
- Default range from settings (30d)
- Explicit range: older workouts excluded, recent list follows the range
- Recent list capped at ten, newest first
- Legacy Norwegian rows aggregated like current ones
- Timezone: buckets follow ?tz, unknown zone rejected (422 invalid_timezone)
- Unknown range rejected
- Query: only the caller's workouts, newest first
- Auth: invalid token

Run: pytest tests/test_stats_endpoint.py -v
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from conftest import AUTH_HEADER, USER_ID


def _iso(days_ago: float) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days_ago)).isoformat()


def _run_row(days_ago: float, km: float = 5.0, time: str = "25:00", zone: int = 2) -> dict:
    return {
        "id": f"run-{days_ago}",
        "user_id": USER_ID,
        "type": "running",
        "title": "Run",
        "created_at": _iso(days_ago),
        "distance": km,
        "total_time": time,
        "zone": zone,
    }


class TestStatsEndpoint:

    def test_new_user_gets_empty_sections(self, client, fake_db):
        response = client.get("/api/v1/stats", headers=AUTH_HEADER)

        assert response.status_code == 200
        body = response.json()
        assert body["range"] == "30d"
        assert body["totals"]["count"] == 0
        assert body["totals"]["by_type"] == {"running": 0, "strength": 0, "other": 0}
        assert body["running"]["avg_pace_sec_per_km"] is None
        assert body["running"]["avg_pace_display"] == "-"
        assert body["strength"]["top_exercises"] == []
        assert body["monthly"] == {}
        assert body["weekly"] == {}
        assert body["recent"] == []

    def test_queries_own_workouts_newest_first(self, client, fake_db):
        client.get("/api/v1/stats", headers=AUTH_HEADER)

        query = fake_db.queries("workouts", "select")[0]
        assert query.filters("eq") == [("user_id", USER_ID)]
        assert query.filters("order") == [("created_at",)]

    def test_range_excludes_older_workouts(self, client, fake_db):
        fake_db.on("workouts", "select", data=[
            _run_row(1, km=10, time="50:00"),
            _run_row(20, km=21, time="2:00:00"),
        ])

        response = client.get("/api/v1/stats?range=7d", headers=AUTH_HEADER)

        body = response.json()
        assert body["range"] == "7d"
        assert body["totals"]["count"] == 1
        assert body["running"]["total_distance_km"] == 10
        assert body["running"]["avg_pace_sec_per_km"] == 300
        assert body["running"]["avg_pace_display"] == "5:00 /km"
        assert [w["id"] for w in body["recent"]] == ["run-1"]

    def test_all_range_includes_everything(self, client, fake_db):
        fake_db.on("workouts", "select", data=[_run_row(1), _run_row(400)])

        body = client.get("/api/v1/stats?range=all", headers=AUTH_HEADER).json()

        assert body["totals"]["count"] == 2
        assert len(body["recent"]) == 2

    def test_recent_capped_at_ten(self, client, fake_db):
        fake_db.on("workouts", "select", data=[_run_row(i * 0.1) for i in range(15)])

        body = client.get("/api/v1/stats", headers=AUTH_HEADER).json()

        assert body["totals"]["count"] == 15
        assert [w["id"] for w in body["recent"]] == [f"run-{i * 0.1}" for i in range(10)]

    def test_legacy_rows_are_aggregated(self, client, fake_db):
        fake_db.on("workouts", "select", data=[
            {
                "id": "s1", "type": "styrke", "title": "Bein", "created_at": _iso(1),
                "strength_exercises": [
                    {"exercise": "Knebøy", "category": "Bein", "sets": 3, "reps": 10, "weight": 50},
                    {"exercise": "Markløft", "category": "Rygg", "sets": "3", "reps": "10", "weight": "100"},
                ],
            },
            {"id": "r1", "type": "løping", "title": "Tur", "created_at": _iso(2),
             "distance": 5, "total_time": "0:25:00", "zone": 2},
        ])

        body = client.get("/api/v1/stats", headers=AUTH_HEADER).json()

        assert body["totals"]["by_type"] == {"running": 1, "strength": 1, "other": 0}
        assert body["strength"]["total_volume"] == 4500
        assert [e["name"] for e in body["strength"]["top_exercises"]] == ["Markløft", "Knebøy"]
        assert body["running"]["total_duration_sec"] == 1500
        assert body["running"]["zones"] == {"2": 1}

    def test_timezone_moves_bucket(self, client, fake_db):
        fake_db.on("workouts", "select", data=[{
            "id": "o1", "type": "other", "title": "Late swim",
            "created_at": "2024-01-31T23:30:00+00:00",
        }])

        utc = client.get("/api/v1/stats?range=all", headers=AUTH_HEADER).json()
        oslo = client.get("/api/v1/stats?range=all&tz=Europe/Oslo", headers=AUTH_HEADER).json()

        assert list(utc["monthly"]) == ["2024-01"]
        assert list(oslo["monthly"]) == ["2024-02"]

    def test_unknown_timezone(self, client):
        response = client.get("/api/v1/stats?tz=Mars/Olympus", headers=AUTH_HEADER)

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "invalid_timezone"

    def test_unknown_range(self, client):
        response = client.get("/api/v1/stats?range=1y", headers=AUTH_HEADER)

        assert response.status_code == 422

    def test_invalid_token(self, client, fake_db):
        fake_db.reject_token()

        response = client.get("/api/v1/stats", headers=AUTH_HEADER)

        assert response.status_code == 401
