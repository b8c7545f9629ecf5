import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from conftest import FakeGateway, fast_timings
from prepwise.api import session
from prepwise.core.database import UserDB
from prepwise.main import app
from prepwise.models.interview import GenerationResponse
from prepwise.services.auth_service import AuthService
from prepwise.services.generation_gateway import DirectGenerationGateway, HttpGenerationGateway
from prepwise.services.setup_dialogue import FAILURE_MESSAGE, REASK_PREFIX, SUCCESS_MESSAGE

ANSWERS = ["yes", "technical", "backend engineer", "Go, Postgres", "senior", "5"]

@pytest.fixture
def setup_call(users_collection):
    user = users_collection.insert_one({"name": "Ada", "email": "ada@example.com", "hashed_password": "x"})
    user_id = str(user.inserted_id)
    token = AuthService.create_token(user_id, "ada@example.com")
    gateway = FakeGateway()
    state = {"gateway": gateway, "timings": fast_timings()}

    app.dependency_overrides[session.get_generation_gateway] = lambda: state["gateway"]
    app.dependency_overrides[session.get_dialogue_timings] = lambda: state["timings"]
    app.dependency_overrides[session.get_user_db_factory] = lambda: (lambda: UserDB(users_collection))
    yield TestClient(app), token, user_id, state
    app.dependency_overrides.clear()
    session.active_sessions.clear()

def receive_until(ws, frame_type):
    while True:
        frame = ws.receive_json()
        if frame["type"] == frame_type:
            return frame

def answer_next_question(ws, text):
    speak = receive_until(ws, "speak")
    ws.send_json({"type": "speech_ended", "message_id": speak["message_id"]})
    receive_until(ws, "start_listening")
    ws.send_json({"type": "recognition_result", "text": text, "is_final": True})
    return speak

def test_full_setup_call_over_websocket(setup_call):
    client, token, user_id, state = setup_call

    with client.websocket_connect(f"/session/ws/setup?token={token}") as ws:
        ws.send_json({"type": "start_call"})
        connecting = receive_until(ws, "state")
        assert connecting["call_status"] == "CONNECTING"

        spoken = [answer_next_question(ws, text)["text"] for text in ANSWERS]
        assert spoken[0].startswith("Hello Ada!")

        announcements = []
        while True:
            frame = ws.receive_json()
            if frame["type"] == "speak":
                announcements.append(frame["text"])
            if frame["type"] == "navigate":
                break

    assert frame["url"] == "/"
    assert announcements[-1] == SUCCESS_MESSAGE
    assert state["gateway"].calls == [({
        "type": "technical",
        "role": "backend engineer",
        "techstack": "Go, Postgres",
        "level": "senior",
        "amount": "5",
    }, user_id)]

def test_failed_generation_still_navigates(setup_call):
    client, token, _, state = setup_call
    state["gateway"] = FakeGateway(response=GenerationResponse(success=False, error="boom"))

    with client.websocket_connect(f"/session/ws/setup?token={token}") as ws:
        ws.send_json({"type": "start_call"})
        for text in ANSWERS:
            answer_next_question(ws, text)
        failure = None
        while True:
            frame = ws.receive_json()
            if frame["type"] == "speak":
                failure = frame["text"]
            if frame["type"] == "navigate":
                break

    assert failure == FAILURE_MESSAGE

def test_silence_triggers_reask(setup_call):
    client, token, _, state = setup_call
    state["timings"] = fast_timings(no_response_timeout=0.05)

    with client.websocket_connect(f"/session/ws/setup?token={token}") as ws:
        ws.send_json({"type": "start_call"})
        first = receive_until(ws, "speak")
        ws.send_json({"type": "speech_ended", "message_id": first["message_id"]})
        receive_until(ws, "start_listening")
        receive_until(ws, "stop_listening")
        reask = receive_until(ws, "speak")
        ws.send_json({"type": "end_call"})
        navigate = receive_until(ws, "navigate")

    assert reask["text"] == REASK_PREFIX + first["text"]
    assert navigate["url"] == "/"

def test_end_call_cancels_speech_and_navigates(setup_call):
    client, token, _, _ = setup_call

    with client.websocket_connect(f"/session/ws/setup?token={token}") as ws:
        ws.send_json({"type": "start_call"})
        speak = receive_until(ws, "speak")
        ws.send_json({"type": "end_call"})
        cancel = receive_until(ws, "cancel_speech")
        final_state = receive_until(ws, "state")
        navigate = receive_until(ws, "navigate")

    assert cancel["message_id"] == speak["message_id"]
    assert final_state["phase"] == "FINISHED"
    assert final_state["call_status"] == "FINISHED"
    assert navigate["url"] == "/"

def test_second_call_for_same_user_is_rejected(setup_call):
    client, token, user_id, _ = setup_call
    session.active_sessions.add(user_id)

    with client.websocket_connect(f"/session/ws/setup?token={token}") as ws:
        frame = ws.receive_json()

    assert frame["type"] == "terminate"

def test_connection_without_session_is_refused(setup_call):
    client, _, _, _ = setup_call

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/session/ws/setup") as ws:
            ws.receive_json()

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/session/ws/setup?token=not-a-jwt") as ws:
            ws.receive_json()

def test_session_cookie_authenticates_call(setup_call):
    client, token, _, _ = setup_call
    client.cookies.set("session", token)

    with client.websocket_connect("/session/ws/setup") as ws:
        ws.send_json({"type": "start_call"})
        speak = receive_until(ws, "speak")

    assert speak["text"].startswith("Hello Ada!")

def test_malformed_frames_do_not_end_the_call(setup_call):
    client, token, _, _ = setup_call

    with client.websocket_connect(f"/session/ws/setup?token={token}") as ws:
        ws.send_text("not json")
        ws.send_text("[1, 2, 3]")
        ws.send_json({"no_type": True})
        ws.send_json({"type": "start_call"})
        connecting = receive_until(ws, "state")
        speak = receive_until(ws, "speak")

    assert connecting["call_status"] == "CONNECTING"
    assert speak["text"].startswith("Hello Ada!")

def test_gateway_selection_follows_generation_base_url(monkeypatch):
    monkeypatch.setattr(session.settings, "GENERATION_BASE_URL", None)
    assert isinstance(session.get_generation_gateway(), DirectGenerationGateway)

    monkeypatch.setattr(session.settings, "GENERATION_BASE_URL", "http://generator.test/")
    gateway = session.get_generation_gateway()
    assert isinstance(gateway, HttpGenerationGateway)
    assert gateway.url == "http://generator.test/api/chat"
