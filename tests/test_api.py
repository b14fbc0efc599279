from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from biketrain.app import create_app
from biketrain.core import today
from biketrain.models import RideStatus

from .helpers import add_instance, instances_for, load_instance

ADMIN = {"Authorization": "Bearer s3cret"}


@pytest.fixture
def client(engine):
    with TestClient(create_app(engine, admin_token="s3cret")) as test_client:
        yield test_client


def send(ws, event, **data):
    ws.send_json({"event": event, "data": data})


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


def test_health(client):
    assert client.get("/health").json() == {"ok": True}
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["uptime"] >= 0


def test_group_ride_over_websocket(client, engine, store, route):
    scheduled = add_instance(engine, route, today())

    with client.websocket_connect("/ws") as leader:
        send(leader, "ride:start", accessCode="ABCD")
        assert leader.receive_json() == {"event": "ride:started", "data": {"accessCode": "ABCD"}}
        assert load_instance(engine, scheduled.id).status == RideStatus.LIVE.value

        with client.websocket_connect("/ws") as follower:
            send(follower, "follow:start", accessCode="ABCD")
            # Room size minus the leader.
            assert follower.receive_json() == {
                "event": "follow:started",
                "data": {"accessCode": "ABCD", "followerCount": 1},
            }
            joined = leader.receive_json()
            assert joined["event"] == "follower:joined"
            assert joined["data"]["followerCount"] == 1

            send(leader, "location:update", accessCode="ABCD", lat=39.95, lng=-75.16, accuracy=5)
            update = follower.receive_json()
            assert update["event"] == "location:updated"
            assert update["data"]["accessCode"] == "ABCD"
            assert update["data"]["lat"] == 39.95
            assert update["data"]["lng"] == -75.16
            assert update["data"]["accuracy"] == 5
            assert isinstance(update["data"]["timestamp"], int)

            assert wait_for(
                lambda: (store.find_live_instance(route.id).current_location or {}).get("lat")
                == 39.95
            )
            by_code = client.get("/rides/by-code/abcd").json()
            assert by_code["status"] == "live"
            assert by_code["follower_count"] == 1
            assert len(by_code["location_trail"]) == 1

            send(leader, "ride:end", accessCode="ABCD")
            assert follower.receive_json() == {"event": "ride:ended", "data": {"accessCode": "ABCD"}}

    instance = load_instance(engine, scheduled.id)
    assert instance.status == RideStatus.COMPLETED.value
    assert instance.ended_at is not None
    assert instance.current_location is None
    assert instance.location_trail == []


def test_start_with_unknown_code_returns_error(client):
    with client.websocket_connect("/ws") as leader:
        send(leader, "ride:start", accessCode="ZZZZ")
        message = leader.receive_json()
        assert message["event"] == "ride:error"
        assert "ZZZZ" in message["data"]["message"]
    assert client.get("/admin/sessions", headers=ADMIN).json() == {"count": 0, "rooms": {}}


def test_malformed_frame_keeps_connection_open(client, route):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("{not json")
        assert ws.receive_json() == {"event": "ride:error", "data": {"message": "Malformed message"}}
        send(ws, "ride:start", accessCode="abcd")
        assert ws.receive_json()["event"] == "ride:started"


def test_binary_frame_is_rejected_without_closing(client, route):
    with client.websocket_connect("/ws") as ws:
        ws.send_bytes(b"\x00\x01")
        assert ws.receive_json() == {"event": "ride:error", "data": {"message": "Malformed message"}}
        send(ws, "follow:start", accessCode="ABCD")
        assert ws.receive_json() == {
            "event": "follow:started",
            "data": {"accessCode": "ABCD", "followerCount": 0},
        }


def test_watch_all_over_websocket(client, route):
    with client.websocket_connect("/ws") as leader:
        send(leader, "ride:start", accessCode="ABCD")
        leader.receive_json()
        with client.websocket_connect("/ws") as watcher:
            send(watcher, "watch:all")
            assert watcher.receive_json() == {"event": "watch:all:joined", "data": {"rides": ["ABCD"]}}

            send(leader, "location:update", accessCode="ABCD", lat=39.9, lng=-75.1)
            assert watcher.receive_json()["event"] == "location:updated"

            send(watcher, "watch:all:stop")
            sessions = None
            for _ in range(50):
                sessions = client.get("/admin/sessions", headers=ADMIN).json()
                if sessions["rooms"]["ABCD"]["watcher"] == 0:
                    break
                time.sleep(0.02)
            assert sessions["rooms"]["ABCD"] == {
                "leader": 1,
                "follower": 0,
                "watcher": 0,
                "members": 1,
            }


def test_disconnect_clears_rooms(client, route):
    with client.websocket_connect("/ws") as leader:
        send(leader, "ride:start", accessCode="ABCD")
        leader.receive_json()
        with client.websocket_connect("/ws") as follower:
            send(follower, "follow:start", accessCode="ABCD")
            follower.receive_json()
            leader.receive_json()
        left = leader.receive_json()
        assert left["event"] == "follower:left"
        assert left["data"]["followerCount"] == 0

    assert wait_for(
        lambda: client.get("/admin/sessions", headers=ADMIN).json()["count"] == 0
    )


def test_live_rides_listing(client, engine, store, region, route):
    store.start_instance("ABCD", today())
    body = client.get("/rides/live").json()
    assert body["count"] == 1
    assert body["data"][0]["access_code"] == "ABCD"
    assert body["data"][0]["follower_count"] == 0

    assert client.get("/rides/live", params={"region": "philly"}).json()["count"] == 1
    assert client.get("/rides/live", params={"region": "nowhere"}).status_code == 404


def test_by_code_not_found(client, route):
    assert client.get("/rides/by-code/ABCD").status_code == 404
    assert client.get("/rides/by-code/ZZZZ").status_code == 404


def test_trail_export(client, engine, store, route):
    outcome = store.start_instance("ABCD", today())
    store.append_location(route.id, {"lat": 39.95, "lng": -75.16, "accuracy": 5, "timestamp": 1_760_000_000_000})
    store.append_location(route.id, {"lat": 39.96, "lng": -75.16, "accuracy": 5, "timestamp": 1_760_000_010_000})

    response = client.get(f"/rides/{outcome.instance.id}/trail.gpx")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/gpx+xml")
    assert response.text.count("<trkpt") == 2
    assert client.get("/rides/9999/trail.gpx").status_code == 404


def test_admin_requires_token(client):
    assert client.get("/admin/sessions").status_code == 401
    assert client.get("/admin/sessions", headers={"Authorization": "Bearer nope"}).status_code == 401
    assert client.post("/admin/rides/ABCD/end").status_code == 401


def test_admin_disabled_without_configured_token(engine):
    with TestClient(create_app(engine, admin_token=None)) as test_client:
        response = test_client.get("/admin/sessions", headers={"Authorization": "Bearer "})
        assert response.status_code == 401


def test_admin_force_end(client, engine, route):
    with client.websocket_connect("/ws") as leader:
        send(leader, "ride:start", accessCode="ABCD")
        leader.receive_json()
        with client.websocket_connect("/ws") as follower:
            send(follower, "follow:start", accessCode="ABCD")
            follower.receive_json()
            leader.receive_json()

            response = client.post("/admin/rides/abcd/end", headers=ADMIN)
            assert response.json() == {"ok": True, "access_code": "ABCD", "completed": 1}
            assert follower.receive_json() == {"event": "ride:ended", "data": {"accessCode": "ABCD"}}
            assert leader.receive_json() == {"event": "ride:ended", "data": {"accessCode": "ABCD"}}

    [instance] = instances_for(engine, route)
    assert instance.status == RideStatus.COMPLETED.value
