import os

import pytest
from fastapi.testclient import TestClient

# Settings requires these env vars at import time
os.environ.setdefault("ROOM_ID", "ROOM1")
os.environ.setdefault("SEAT", "white")
os.environ.setdefault("USERNAME", "alice")

from matchclient.channel import MOVE, OPPONENT_JOINED
from matchclient.main import app, match
from matchclient.match import RemoteMove, RosterChanged
from matchclient.models import Player


@pytest.fixture(scope="module")
def app_client():
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def client(app_client):
    # Start every test from an empty room and a fresh board
    match.process_pending()
    match.orchestrator.reset_match("remote")
    match.gate.update([])
    match.notices.drain()
    return app_client


def join_opponent():
    match.dispatch(RosterChanged((Player(username="alice"), Player(username="bob"))))


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_waiting_snapshot(client):
    data = client.get("/api/match").json()
    assert data["room"] == "ROOM1"
    assert data["seat"] == "white"
    assert data["fen"] == "rnbqkbnr/pppppppp/8/8/8/8/PPPPPPPP/RNBQKBNR w KQkq - 0 1"
    assert data["ready"] is False
    assert data["status_text"] == "Waiting"


def test_move_rejected_until_opponent_joins(client):
    response = client.post("/api/match/move", json={"from": "e2", "to": "e4"})
    assert response.status_code == 409
    notices = client.get("/api/notices").json()
    assert notices[0]["title"] == "Game Not Ready"


def test_click_flow(client):
    join_opponent()
    data = client.post("/api/match/click", json={"square": "e2"}).json()
    assert data["selection"]["square"] == "e2"
    assert set(data["square_styles"]) == {"e2", "e3", "e4"}

    data = client.post("/api/match/click", json={"square": "e4"}).json()
    assert data["selection"] is None
    assert data["turn"] == "black"
    assert data["move_log"][0]["move"] == "e4"


def test_click_invalid_square(client):
    response = client.post("/api/match/click", json={"square": "z9"})
    assert response.status_code == 400


def test_move_endpoint(client):
    join_opponent()
    response = client.post("/api/match/move", json={"from": "g1", "to": "f3"})
    assert response.status_code == 200
    assert response.json()["san"] == "Nf3"
    assert response.json()["status"] == "in_progress"

    # Not white's turn any more
    response = client.post("/api/match/move", json={"from": "b1", "to": "c3"})
    assert response.status_code == 409


def test_illegal_move_endpoint(client):
    join_opponent()
    response = client.post("/api/match/move", json={"from": "e2", "to": "e5"})
    assert response.status_code == 400


def test_reset_requires_opponent(client):
    assert client.post("/api/match/reset").status_code == 409
    join_opponent()
    client.post("/api/match/move", json={"from": "e2", "to": "e4"})
    data = client.post("/api/match/reset").json()
    assert data["move_log"] == []
    assert data["turn"] == "white"


def test_remote_move_visible_in_snapshot(client):
    join_opponent()
    client.post("/api/match/move", json={"from": "e2", "to": "e4"})
    match.dispatch(RemoteMove({"from": "e7", "to": "e5", "promotion": "q"}))
    data = client.get("/api/match").json()
    assert [row["move"] for row in data["move_log"]] == ["e4", "e5"]
    assert data["is_local_turn"] is True


def test_relay_websocket(client):
    with client.websocket_connect("/ws/relay") as ws:
        ws.send_json({"event": OPPONENT_JOINED,
                      "data": {"players": [{"username": "alice"}, {"username": "bob"}]}})
        # round-trip through the relay reader, then play a move that goes out on the socket
        for _ in range(100):
            if client.get("/api/match").json()["ready"]:
                break
        assert client.post("/api/match/move", json={"from": "d2", "to": "d4"}).status_code == 200
        # earlier tests may have left frames buffered while no relay was attached
        frame = ws.receive_json()
        while frame["data"].get("move", {}).get("from") != "d2":
            frame = ws.receive_json()
        assert frame == {"event": MOVE, "data": {"move": {"from": "d2", "to": "d4", "promotion": "q"}, "room": "ROOM1"}}
