"""
Tests for the HTTP API.

Tests:
1. Health check and the authentication gate
2. Session lifecycle over HTTP: create, answer, navigate, submit
3. Error mapping: validation 400, foreign session 404, bad transition 409
4. Question audio and practice endpoints, including closing a conversation
"""
import pytest
from fastapi.testclient import TestClient

import app as app_module
from mockprep.api import InterviewPracticeService
from mockprep.api import service as service_module
from mockprep.auth import InMemoryAuthProvider
from mockprep.interview import InterviewSessionManager, QuestionGenerator

from conftest import FakeChain, generator_reply


class FakeTTS:
    available = True

    def speak_question(self, prompt):
        return b"ID3" + prompt.encode("utf-8")


class NoSTT:
    available = False


@pytest.fixture
def client(monkeypatch, scenario_items, down_evaluator):
    generator = QuestionGenerator(
        chain=FakeChain([generator_reply(scenario_items)], "questions"),
        id_prefix_factory=lambda: "q-1"
    )
    service = InterviewPracticeService(
        auth=InMemoryAuthProvider(bcrypt_rounds=4),
        session_manager=InterviewSessionManager(),
        generator=generator,
        evaluator=down_evaluator,
        tts=FakeTTS(),
        stt=NoSTT(),
        tick_interval=None,
        supply_options={"sleep": lambda _: None}
    )
    monkeypatch.setattr(service_module, "_service_instance", service)
    with TestClient(app_module.app) as test_client:
        yield test_client


def sign_in(client, email="jane@example.com"):
    response = client.post("/auth/signup", json={"email": email, "password": "s3cretpass", "full_name": "Jane"})
    assert response.status_code == 201
    response = client.post("/auth/signin", json={"email": email, "password": "s3cretpass"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


SCENARIO = {
    "topic": "JavaScript",
    "difficulty": "easy",
    "mcq_count": 2,
    "coding_count": 1,
    "voice_count": 0,
    "time_limit_seconds": 600,
}


class TestGeneral:
    """Health and authentication."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["llm_ready"] is True
        assert data["tts_available"] is True
        assert data["stt_available"] is False

    def test_sessions_require_sign_in(self, client):
        response = client.post("/sessions", json=SCENARIO)

        assert response.status_code == 401
        assert response.json()["detail"] == "Please sign in to continue."

    def test_sign_out(self, client):
        headers = sign_in(client)

        assert client.get("/auth/me", headers=headers).status_code == 200
        client.post("/auth/signout", headers=headers)
        assert client.get("/auth/me", headers=headers).status_code == 401

    def test_sign_up_rejects_malformed_email(self, client):
        response = client.post("/auth/signup", json={"email": "not-an-email", "password": "s3cretpass"})

        assert response.status_code == 422

    def test_bad_credentials(self, client):
        sign_in(client)
        response = client.post("/auth/signin", json={"email": "jane@example.com", "password": "wrong-pass"})

        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password."


class TestSessionEndpoints:
    """Interview session over HTTP."""

    @pytest.fixture
    def headers(self, client):
        return sign_in(client)

    @pytest.fixture
    def session_id(self, client, headers):
        response = client.post("/sessions", json=SCENARIO, headers=headers)
        assert response.status_code == 201
        return response.json()["session_id"]

    def test_created_session_is_active(self, client, headers):
        response = client.post("/sessions", json=SCENARIO, headers=headers)

        data = response.json()
        assert data["phase"] == "active"
        assert data["total_questions"] == 3
        assert data["current_question"]["id"] == "q-1-1"
        assert "expected_answer" not in data["current_question"]
        assert data["remaining_seconds"] == 600

    def test_full_flow_scores_67(self, client, headers, session_id):
        base = f"/sessions/{session_id}"

        client.post(f"{base}/answers", json={"question_id": "q-1-1", "answer": "answer q-1-1"}, headers=headers)
        client.post(f"{base}/answers", json={"question_id": "q-1-2", "answer": "answer q-1-2"}, headers=headers)
        response = client.post(f"{base}/goto", json={"index": 2}, headers=headers)
        assert response.json()["current_index"] == 2

        response = client.post(f"{base}/submit", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["phase"] == "results"
        assert data["result"]["overall_score"] == 67
        assert data["result"]["correct_answers"] == 2
        assert data["performance_message"] == "Good effort! Keep practicing."

    def test_submit_before_last_question_is_rejected(self, client, headers, session_id):
        response = client.post(f"/sessions/{session_id}/submit", headers=headers)

        assert response.status_code == 400
        assert client.get(f"/sessions/{session_id}", headers=headers).json()["phase"] == "active"

    def test_empty_configuration_is_rejected(self, client, headers):
        config = dict(SCENARIO, mcq_count=0, coding_count=0, voice_count=0)

        response = client.post("/sessions", json=config, headers=headers)

        assert response.status_code == 400
        assert "at least one question type" in response.json()["detail"]

    def test_unknown_question_answer_is_rejected(self, client, headers, session_id):
        response = client.post(
            f"/sessions/{session_id}/answers",
            json={"question_id": "nope", "answer": "x"},
            headers=headers
        )
        assert response.status_code == 400

    def test_resume_without_failure_conflicts(self, client, headers, session_id):
        response = client.post(f"/sessions/{session_id}/resume", headers=headers)
        assert response.status_code == 409

    def test_other_users_cannot_see_session(self, client, session_id):
        other = sign_in(client, email="bob@example.com")

        response = client.get(f"/sessions/{session_id}", headers=other)

        assert response.status_code == 404

    def test_close_session(self, client, headers, session_id):
        assert client.delete(f"/sessions/{session_id}", headers=headers).status_code == 204
        assert client.get(f"/sessions/{session_id}", headers=headers).status_code == 404

    def test_question_speech(self, client, headers, session_id):
        response = client.get(f"/sessions/{session_id}/questions/q-1-1/speech", headers=headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content.startswith(b"ID3")

    def test_recording_upload_and_playback(self, client, headers, session_id):
        base = f"/sessions/{session_id}"

        client.post(f"{base}/capture", json={"mode": "recording"}, headers=headers)
        client.post(f"{base}/capture/audio", content=b"webm-bytes", headers=headers)
        response = client.delete(f"{base}/capture", headers=headers)
        assert response.json()["recorded_questions"] == ["q-1-1"]

        response = client.get(f"{base}/questions/q-1-1/recording", headers=headers)
        assert response.content == b"webm-bytes"

    def test_recording_transcription_unavailable(self, client, headers, session_id):
        base = f"/sessions/{session_id}"

        client.post(f"{base}/capture", json={"mode": "recording"}, headers=headers)
        client.post(f"{base}/capture/audio", content=b"webm-bytes", headers=headers)
        response = client.delete(f"{base}/capture", params={"transcribe": "true"}, headers=headers)

        assert response.status_code == 503
        assert "type your answer" in response.json()["detail"]

    def test_live_transcript_fills_answer(self, client, headers, session_id):
        base = f"/sessions/{session_id}"

        client.post(f"{base}/capture", json={"mode": "live", "question_id": "q-1-3"}, headers=headers)
        response = client.post(f"{base}/transcript", json={"text": "return a plus b"}, headers=headers)

        assert response.json()["answers"]["q-1-3"] == "return a plus b"


class TestPracticeEndpoints:
    """Conversational practice over HTTP."""

    def test_practice_flow(self, client):
        headers = sign_in(client)

        response = client.post("/practice", headers=headers)
        assert response.status_code == 201
        conversation_id = response.json()["conversation_id"]

        response = client.post(f"/practice/{conversation_id}/answer", json={"answer": "  "}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Please provide an answer before submitting."

        response = client.post(
            f"/practice/{conversation_id}/answer",
            json={"answer": "I enjoy building reliable backend services."},
            headers=headers
        )
        data = response.json()
        assert data["question_count"] == 2
        assert data["messages"][-1]["role"] == "interviewer"

        response = client.post(f"/practice/{conversation_id}/reset", headers=headers)
        assert response.json()["question_count"] == 1
        assert len(response.json()["messages"]) == 1

    def test_practice_is_private(self, client):
        conversation_id = client.post("/practice", headers=sign_in(client)).json()["conversation_id"]

        other = sign_in(client, email="bob@example.com")
        response = client.get(f"/practice/{conversation_id}", headers=other)

        assert response.status_code == 404

    def test_close_practice(self, client):
        headers = sign_in(client)
        conversation_id = client.post("/practice", headers=headers).json()["conversation_id"]

        other = sign_in(client, email="bob@example.com")
        assert client.delete(f"/practice/{conversation_id}", headers=other).status_code == 404
        assert client.delete(f"/practice/{conversation_id}", headers=headers).status_code == 204
        assert client.get(f"/practice/{conversation_id}", headers=headers).status_code == 404
