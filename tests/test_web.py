import chess
import pytest
from fastapi.testclient import TestClient

import web.app as web_app

AFTER_E4 = "rnbqkbnr/pppppppp/8/8/4P3/8/PPPP1PPP/RNBQKBNR b KQkq - 0 1"


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(web_app, "THINK_SCALE", 0.0)
    with TestClient(web_app.app) as test_client:
        yield test_client
    # Clock tasks die with the client's event loop.
    web_app._sessions.clear()


def _new_game(client: TestClient, **body) -> dict:
    body.setdefault("persona", "legend")
    body.setdefault("seed", 1)
    response = client.post("/api/games", json=body)
    assert response.status_code == 201, response.text
    return response.json()


def test_catalogues(client: TestClient) -> None:
    personas = client.get("/api/personas").json()
    assert [p["key"] for p in personas] == [
        "beginner", "intermediate", "advanced", "master", "legend",
    ]
    controls = client.get("/api/time-controls").json()
    assert {tc["key"]: tc["seconds"] for tc in controls}["unlimited"] is None


def test_stateless_move_from_book(client: TestClient) -> None:
    response = client.post("/api/move", json={"fen": AFTER_E4, "persona": "legend", "seed": 3})
    assert response.status_code == 200
    data = response.json()
    assert data["move"] == "c7c5"
    assert data["source"] == "book"
    assert data["score"] is None
    assert chess.Board(data["fen"]).piece_at(chess.C5) == chess.Piece(chess.PAWN, chess.BLACK)


def test_stateless_move_rejects_bad_positions(client: TestClient) -> None:
    assert client.post("/api/move", json={"fen": "not a fen"}).status_code == 400
    mated = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"
    response = client.post("/api/move", json={"fen": mated})
    assert response.status_code == 400
    assert "over" in response.json()["detail"]


def test_game_flow(client: TestClient) -> None:
    game = _new_game(client, time_control="blitz", player_color="white")
    assert game["status"] == "in_progress"
    assert game["clock"]["active_side"] == "player"
    assert game["clock"]["status"] == "running"
    assert game["clock"]["opponent"]["text"] == "5:00"

    state = client.post(f"/api/games/{game['id']}/move", json={"move": "e2e4"}).json()
    assert state["turn"] == "black"
    assert state["clock"]["active_side"] == "opponent"

    state = client.post(f"/api/games/{game['id']}/opponent").json()
    assert state["last_move"] == "c7c5"
    assert state["last_source"] == "book"
    assert state["history"] == ["e4", "c5"]
    assert state["clock"]["active_side"] == "player"

    state = client.post(f"/api/games/{game['id']}/undo").json()
    assert state["history"] == []

    assert client.get(f"/api/games/{game['id']}").json()["fen"] == chess.STARTING_FEN


def test_game_errors(client: TestClient) -> None:
    game = _new_game(client)
    game_id = game["id"]

    assert client.post(f"/api/games/{game_id}/move", json={"move": "e2e5"}).status_code == 400
    assert client.post(f"/api/games/{game_id}/opponent").status_code == 409
    assert client.post(f"/api/games/{game_id}/undo").status_code == 409
    assert client.get("/api/games/missing").status_code == 404
    assert client.post("/api/games", json={"player_color": "purple"}).status_code == 422


def test_persona_moves_first_as_white(client: TestClient) -> None:
    game = _new_game(client, player_color="black")
    assert game["player_color"] == "black"
    assert game["clock"]["active_side"] == "opponent"
    state = client.post(f"/api/games/{game['id']}/opponent").json()
    assert state["last_move"] == "e2e4"


def test_pause_resume_reset_delete(client: TestClient) -> None:
    game = _new_game(client, time_control="rapid")
    game_id = game["id"]

    state = client.post(f"/api/games/{game_id}/pause").json()
    assert state["clock"]["status"] == "idle"
    state = client.post(f"/api/games/{game_id}/resume").json()
    assert state["clock"]["status"] == "running"
    assert state["clock"]["active_side"] == "player"

    client.post(f"/api/games/{game_id}/move", json={"move": "d2d4"})
    state = client.post(f"/api/games/{game_id}/reset").json()
    assert state["history"] == []
    assert state["clock"]["player"]["text"] == "10:00"

    assert client.delete(f"/api/games/{game_id}").status_code == 204
    assert client.get(f"/api/games/{game_id}").status_code == 404


def test_unlimited_game_shows_infinity(client: TestClient) -> None:
    game = _new_game(client, time_control="unlimited")
    assert game["clock"]["player"]["text"] == "∞"
    assert game["clock"]["player"]["seconds"] is None
    assert game["clock"]["status"] == "idle"
