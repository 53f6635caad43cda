"""
Tests for the HTTP front end.
"""

from datetime import datetime, timezone


def _ts(*args) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
    assert client.get("/dbcheck").json() == {"db": "ok"}


# ── users ────────────────────────────────────────────────────────────

def test_create_and_fetch_user(client):
    res = client.post("/api/user", json={"username": "Alice"})
    assert res.status_code == 201
    body = res.json()
    assert body["username"] == "Alice"
    assert isinstance(body["created_at"], int)

    res = client.get("/api/user/ALICE")
    assert res.status_code == 200
    assert res.json()["username"] == "Alice"

    assert [u["username"] for u in client.get("/api/user").json()] == ["Alice"]


def test_duplicate_user_conflicts(client):
    client.post("/api/user", json={"username": "Alice"})
    res = client.post("/api/user", json={"username": "alice"})
    assert res.status_code == 409
    assert res.json()["error"] == "already_exists"


def test_unknown_user_is_404(client):
    res = client.get("/api/user/ghost")
    assert res.status_code == 404
    assert res.json()["error"] == "not_found"


def test_user_body_must_match_shape(client):
    res = client.post("/api/user", json={"name": "Alice"})
    assert res.status_code == 422
    assert res.json()["error"] == "validation_error"


# ── events ───────────────────────────────────────────────────────────

def test_create_event_returns_full_wire_shape(client, standup):
    res = client.post("/api/event", json=standup)
    assert res.status_code == 201
    body = res.json()
    assert body["id"] >= 1
    assert body["title"] == "Standup"
    assert body["description"] is None
    assert body["location_name"] is None
    assert body["edited_at"] is None
    assert body["color"] == "#87d45d"
    assert set(body) == {
        "id", "title", "description", "color", "start_date", "end_date",
        "location_lng", "location_lat", "location_name", "created_at", "edited_at",
    }


def test_get_event(client, hike):
    created = client.post("/api/event", json=hike).json()
    res = client.get(f"/api/event/{created['id']}")
    assert res.status_code == 200
    assert res.json() == created


def test_get_missing_event(client):
    res = client.get("/api/event/404")
    assert res.status_code == 404
    assert res.json() == {"error": "not_found", "message": "Event 404 does not exist"}


def test_put_updates_only_given_fields(client, hike):
    created = client.post("/api/event", json=hike).json()
    res = client.put(f"/api/event/{created['id']}", json={"title": "Renamed"})
    assert res.status_code == 200
    body = res.json()
    assert body["title"] == "Renamed"
    assert body["edited_at"] is not None
    assert body["description"] == hike["description"]
    assert body["start_date"] == hike["start_date"]


def test_put_with_inverted_dates_is_rejected(client, standup):
    created = client.post("/api/event", json=standup).json()
    res = client.put(f"/api/event/{created['id']}", json={"end_date": 50})
    assert res.status_code == 422
    assert res.json()["error"] == "validation_error"
    assert client.get(f"/api/event/{created['id']}").json() == created


def test_post_event_with_partial_coordinates(client, standup):
    res = client.post("/api/event", json={**standup, "location_lat": 10.0})
    assert res.status_code == 422


def test_post_event_missing_dates(client):
    res = client.post("/api/event", json={"title": "No dates"})
    assert res.status_code == 422
    body = res.json()
    assert body["error"] == "validation_error"
    assert "start_date" in body["message"]


def test_list_events_in_start_order(client):
    for title, start in [("b", 200), ("a", 100), ("c", 300)]:
        client.post("/api/event", json={"title": title, "start_date": start, "end_date": start + 10})
    res = client.get("/api/event")
    assert [e["title"] for e in res.json()] == ["a", "b", "c"]


def test_list_events_range_accepts_seconds_and_iso(client):
    day = _ts(2023, 8, 5)
    client.post("/api/event", json={"title": "morning", "start_date": day + 9 * 3600, "end_date": day + 10 * 3600})
    client.post("/api/event", json={"title": "next week", "start_date": day + 7 * 86400, "end_date": day + 7 * 86400})

    res = client.get("/api/event", params={"start": day, "end": day + 86400})
    assert [e["title"] for e in res.json()] == ["morning"]

    res = client.get("/api/event", params={"start": "2023-08-05T00:00:00Z", "end": "2023-08-06"})
    assert [e["title"] for e in res.json()] == ["morning"]


def test_list_events_bad_bound(client):
    res = client.get("/api/event", params={"start": "yesterday-ish"})
    assert res.status_code == 422
    assert res.json()["error"] == "validation_error"


def test_create_event_without_color(client):
    res = client.post("/api/event", json={"title": "Standup", "start_date": 100, "end_date": 200})
    assert res.status_code == 201
    body = res.json()
    assert body["color"] == "#87d45d"
    assert body["created_at"] >= 0
    assert body["edited_at"] is None


def test_timestamp_beyond_int64_is_a_validation_error(client):
    res = client.post(
        "/api/event",
        json={"title": "Far", "color": "#000000", "start_date": 2**63, "end_date": 2**63 + 1},
    )
    assert res.status_code == 422
    assert res.json()["error"] == "validation_error"
    assert client.get("/api/event").json() == []


def test_huge_event_id_is_404(client):
    res = client.get(f"/api/event/{2**64}")
    assert res.status_code == 404
    assert res.json()["error"] == "not_found"
