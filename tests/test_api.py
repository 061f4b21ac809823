import pytest
from fastapi.testclient import TestClient

import api
from config import BEST_SCORE_KEY, FeatureFlags
from conftest import ALTERNATING, make_state


@pytest.fixture
def flags():
    return FeatureFlags(enable_undo=True, enable_hints=True, enable_save_load=True)


@pytest.fixture
def client(storage, flags):
    api.app.dependency_overrides[api.get_storage] = lambda: storage
    api.app.dependency_overrides[api.get_feature_flags] = lambda: flags
    api.limiter.enabled = False
    yield TestClient(api.app)
    api.limiter.enabled = True
    api.app.dependency_overrides.clear()


def payload(state):
    return state.model_dump(mode="json")


def merge_ready_state(**fields):
    return make_state([[2, 2, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0], [0, 0, 0, 0]], **fields)


def test_new_game_defaults(client):
    response = client.post("/game/new", json={})
    assert response.status_code == 200
    data = response.json()
    assert data["size"] == 4
    assert len(data["board"]) == 4
    assert data["score"] == 0
    assert data["history"] == []


def test_new_game_uses_stored_best(client, storage):
    storage.set(BEST_SCORE_KEY, "300")
    response = client.post("/game/new", json={"size": 3})
    assert response.json()["best_score"] == 300
    assert len(response.json()["board"]) == 3


def test_new_game_rejects_bad_size(client):
    assert client.post("/game/new", json={"size": 0}).status_code == 422


def test_move(client, storage):
    response = client.post("/game/move", json={"state": payload(merge_ready_state()), "direction": "LEFT"})
    assert response.status_code == 200
    data = response.json()
    assert data["move_was_effective"]
    assert data["state"]["score"] == 4
    assert data["state"]["board"][0][0] == 4
    assert len(data["state"]["history"]) == 1
    assert storage.get(BEST_SCORE_KEY) == "4"


def test_ineffective_move(client):
    response = client.post("/game/move", json={"state": payload(merge_ready_state()), "direction": "UP"})
    data = response.json()
    assert not data["move_was_effective"]
    assert data["state"]["board"][0] == [2, 2, 0, 0]
    assert data["message"]


def test_move_on_finished_game(client):
    state = make_state(ALTERNATING, over=True)
    data = client.post("/game/move", json={"state": payload(state), "direction": "LEFT"}).json()
    assert not data["move_was_effective"]
    assert data["progress"] == 2


def test_move_rejects_unknown_direction(client):
    response = client.post("/game/move", json={"state": payload(merge_ready_state()), "direction": "SIDEWAYS"})
    assert response.status_code == 422


def test_move_rejects_malformed_board(client):
    state = payload(merge_ready_state())
    state["board"][0][0] = 3
    response = client.post("/game/move", json={"state": state, "direction": "LEFT"})
    assert response.status_code == 422


def test_reset_keeps_best(client):
    state = merge_ready_state(score=64, best_score=128)
    data = client.post("/game/reset", json={"state": payload(state)}).json()
    assert data["score"] == 0
    assert data["best_score"] == 128


def test_continue(client):
    state = make_state([[2048, 0], [0, 0]], won=True, has_seen_win_message=True)
    data = client.post("/game/continue", json=payload(state)).json()
    assert not data["won"]
    assert data["has_seen_win_message"]


def test_undo(client):
    moved = client.post("/game/move", json={"state": payload(merge_ready_state()), "direction": "LEFT"}).json()
    data = client.post("/game/undo", json=moved["state"]).json()
    assert data["board"][0] == [2, 2, 0, 0]
    assert data["score"] == 0
    assert data["best_score"] == 4


def test_hint(client):
    data = client.post("/game/hint", json=payload(merge_ready_state())).json()
    assert data["direction"] == "LEFT"
    assert data["text"] == "Try: ← LEFT"


def test_hint_when_stuck(client):
    data = client.post("/game/hint", json=payload(make_state(ALTERNATING))).json()
    assert data["direction"] is None


def test_save_load_delete(client):
    state = merge_ready_state(score=8)
    assert client.post("/game/save", json=payload(state)).status_code == 204

    loaded = client.get("/game/saved")
    assert loaded.status_code == 200
    assert loaded.json()["score"] == 8
    assert loaded.json()["history"] == []

    assert client.delete("/game/saved").status_code == 204
    assert client.get("/game/saved").status_code == 404


@pytest.mark.parametrize("flags", [FeatureFlags()])
def test_disabled_features(client, flags):
    body = payload(merge_ready_state())
    assert client.post("/game/undo", json=body).status_code == 403
    assert client.post("/game/hint", json=body).status_code == 403
    assert client.post("/game/save", json=body).status_code == 403
    assert client.get("/game/saved").status_code == 403



def test_finished_game_that_was_won_reports_over(client):
    state = make_state([[2048, 4], [4, 2]], won=True, has_seen_win_message=True, over=True)
    data = client.post("/game/move", json={"state": payload(state), "direction": "LEFT"}).json()
    assert not data["move_was_effective"]
    assert data["message"] == "Game is over; start a new game."


def test_optional_move_fields_off_by_default(client):
    data = client.post("/game/move", json={"state": payload(merge_ready_state()), "direction": "LEFT"}).json()
    assert data["move_count"] is None
    assert data["elapsed_time"] is None
    assert data["combo_multiplier"] is None


@pytest.mark.parametrize("flags", [FeatureFlags(enable_move_counter=True, enable_timer=True, enable_combo=True)])
def test_optional_move_fields(client, flags):
    state = merge_ready_state(combo=4, move_count=9)
    data = client.post("/game/move", json={"state": payload(state), "direction": "LEFT"}).json()
    assert data["move_count"] == 10
    assert data["combo_multiplier"] == pytest.approx(1.5)
    minutes, seconds = data["elapsed_time"].split(":")
    assert len(minutes) >= 2 and len(seconds) == 2
