"""
API integration tests using FastAPI TestClient with in-memory DB.
"""
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from api.models.models import Certificate, utcnow
from proctor.core.certificates import validate_certificate_id


def full_submit(answers: dict, *, violation_count: int = 0, score: int = 0) -> dict:
    return {
        "answers": [{"questionId": qid, "selectedOption": opt} for qid, opt in answers.items()],
        "startTime": "2025-01-01T10:00:00Z",
        "endTime": "2025-01-01T10:20:00Z",
        "metadata": {
            "score": score,
            "totalPoints": 4,
            "percentageScore": score * 25,
            "passed": score >= 2,
            "violationCount": violation_count,
        },
    }


@pytest.mark.integration
class TestHealthRoutes:
    """Health and root endpoints (no auth)."""

    def test_root_returns_healthy(self, api_client: TestClient):
        response = api_client.get("/")
        assert response.status_code == 200
        assert "healthy" in response.json()["message"].lower()

    def test_request_id_is_echoed(self, api_client: TestClient):
        response = api_client.get("/", headers={"x-request-id": "rid-42"})
        assert response.headers["x-request-id"] == "rid-42"


@pytest.mark.integration
class TestAuth:
    def test_missing_token_is_401(self, api_client: TestClient, quiz):
        response = api_client.post("/attempts/start", json={"quizId": quiz.id})
        assert response.status_code == 401

    def test_invalid_token_is_401(self, api_client: TestClient, quiz):
        response = api_client.post(
            "/attempts/start", json={"quizId": quiz.id}, headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401

    def test_unknown_user_is_401(self, api_client: TestClient, quiz, auth_headers):
        response = api_client.get(f"/quizzes/{quiz.id}", headers=auth_headers("ghost@example.com"))
        assert response.status_code == 401

    def test_cookie_token_is_accepted(self, api_client: TestClient, quiz, student):
        _, headers = student
        token = headers["Authorization"].split(" ", 1)[1]
        api_client.cookies.set("access_token", token)
        response = api_client.get(f"/quizzes/{quiz.id}")
        assert response.status_code == 200


@pytest.mark.integration
class TestQuizRoutes:
    def test_get_quiz_definition(self, api_client: TestClient, quiz, student):
        _, headers = student
        response = api_client.get(f"/quizzes/{quiz.id}", headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == quiz.id
        assert data["durationMinutes"] == 30
        assert data["totalPoints"] == 4
        assert len(data["questions"]) == 2
        assert data["questions"][0]["options"][1] == {"text": "B", "isCorrect": True}

    def test_unknown_quiz_is_404(self, api_client: TestClient, student):
        _, headers = student
        assert api_client.get("/quizzes/missing", headers=headers).status_code == 404


@pytest.mark.integration
class TestStartAttempt:
    def test_start_shape(self, api_client: TestClient, quiz, student):
        _, headers = student
        response = api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=headers)
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "in-progress"
        assert data["quizId"] == quiz.id
        assert data["durationMinutes"] == 30
        assert data["totalQuestions"] == 2
        assert data["violationCount"] == 0
        assert data["startTime"].endswith("Z")
        assert data["attemptId"]

    def test_start_twice_returns_same_attempt(self, api_client: TestClient, quiz, student):
        _, headers = student
        first = api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=headers).json()
        second = api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=headers).json()
        assert first["attemptId"] == second["attemptId"]
        listed = api_client.get("/attempts", params={"quizId": quiz.id}, headers=headers).json()
        assert [a["attemptId"] for a in listed] == [first["attemptId"]]

    def test_other_users_get_their_own_attempt(self, api_client: TestClient, quiz, student, seed, auth_headers):
        _, headers = student
        other = seed.user("other@example.com")
        mine = api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=headers).json()
        theirs = api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=auth_headers(other.email)).json()
        assert mine["attemptId"] != theirs["attemptId"]

    def test_unknown_quiz_is_404(self, api_client: TestClient, student):
        _, headers = student
        response = api_client.post("/attempts/start", json={"quizId": "missing"}, headers=headers)
        assert response.status_code == 404

    def test_missing_quiz_id_is_422(self, api_client: TestClient, student):
        _, headers = student
        assert api_client.post("/attempts/start", json={}, headers=headers).status_code == 422


@pytest.mark.integration
class TestSubmitAttempt:
    def _start(self, api_client, quiz, headers) -> str:
        return api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=headers).json()["attemptId"]

    def test_submit_scores_on_server(self, api_client: TestClient, quiz, student):
        _, headers = student
        attempt_id = self._start(api_client, quiz, headers)
        # Client metadata claims a perfect score; the stored score is recomputed.
        response = api_client.post(
            f"/attempts/{attempt_id}/submit", json=full_submit({"q1": "B", "q2": "A"}, score=4), headers=headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["attemptId"] == attempt_id
        assert data["score"] == 2
        assert data["percentageScore"] == 50
        assert data["passed"] is True
        assert validate_certificate_id(data["certificateId"])

        stored = api_client.get(f"/attempts/{attempt_id}", headers=headers).json()
        assert stored["status"] == "completed"
        assert stored["totalPoints"] == 4
        assert stored["certificateId"] == data["certificateId"]
        assert stored["endTime"] == "2025-01-01T10:20:00Z"

    def test_reduced_payload_is_accepted(self, api_client: TestClient, quiz, student):
        _, headers = student
        attempt_id = self._start(api_client, quiz, headers)
        response = api_client.post(
            f"/attempts/{attempt_id}/submit",
            json={"answers": [{"questionId": "q1", "selectedOption": "B"}, {"questionId": "q2", "selectedOption": "B"}]},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["percentageScore"] == 100

    def test_submit_is_idempotent(self, api_client: TestClient, quiz, student):
        _, headers = student
        attempt_id = self._start(api_client, quiz, headers)
        first = api_client.post(f"/attempts/{attempt_id}/submit", json=full_submit({"q1": "B"}), headers=headers).json()
        second = api_client.post(
            f"/attempts/{attempt_id}/submit", json=full_submit({"q1": "B", "q2": "B"}), headers=headers
        ).json()
        assert second == first

    def test_failed_attempt_gets_no_certificate(self, api_client: TestClient, quiz, student):
        _, headers = student
        attempt_id = self._start(api_client, quiz, headers)
        data = api_client.post(f"/attempts/{attempt_id}/submit", json=full_submit({}), headers=headers).json()
        assert data["passed"] is False
        assert "certificateId" not in data

    def test_ineligible_quiz_gets_no_certificate(self, api_client: TestClient, seed, student):
        _, headers = student
        quiz = seed.quiz(quiz_id="quiz-practice", certificate_eligible=False)
        attempt_id = self._start(api_client, quiz, headers)
        data = api_client.post(
            f"/attempts/{attempt_id}/submit", json=full_submit({"q1": "B", "q2": "B"}), headers=headers
        ).json()
        assert data["passed"] is True
        assert "certificateId" not in data

    def test_violation_count_is_stored(self, api_client: TestClient, quiz, student):
        _, headers = student
        attempt_id = self._start(api_client, quiz, headers)
        api_client.post(f"/attempts/{attempt_id}/submit", json=full_submit({}, violation_count=2), headers=headers)
        assert api_client.get(f"/attempts/{attempt_id}", headers=headers).json()["violationCount"] == 2

    def test_unknown_question_ids_are_ignored(self, api_client: TestClient, quiz, student):
        _, headers = student
        attempt_id = self._start(api_client, quiz, headers)
        data = api_client.post(
            f"/attempts/{attempt_id}/submit", json=full_submit({"q1": "B", "q9": "B"}), headers=headers
        ).json()
        assert data["score"] == 2

    def test_other_user_is_forbidden(self, api_client: TestClient, quiz, student, seed, auth_headers):
        _, headers = student
        attempt_id = self._start(api_client, quiz, headers)
        intruder = auth_headers(seed.user("intruder@example.com").email)
        assert api_client.post(f"/attempts/{attempt_id}/submit", json=full_submit({}), headers=intruder).status_code == 403
        assert api_client.get(f"/attempts/{attempt_id}", headers=intruder).status_code == 403

    def test_unknown_attempt_is_404(self, api_client: TestClient, student):
        _, headers = student
        assert api_client.post("/attempts/nope/submit", json=full_submit({}), headers=headers).status_code == 404


@pytest.mark.integration
class TestAbandonAttempt:
    def test_abandon_then_submit_conflicts(self, api_client: TestClient, quiz, student):
        _, headers = student
        attempt_id = api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=headers).json()["attemptId"]
        response = api_client.post(f"/attempts/{attempt_id}/abandon", json={"violationCount": 3}, headers=headers)
        assert response.status_code == 200
        assert response.json()["status"] == "abandoned"
        assert response.json()["violationCount"] == 3

        assert api_client.post(f"/attempts/{attempt_id}/submit", json=full_submit({}), headers=headers).status_code == 409
        restarted = api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=headers).json()
        assert restarted["attemptId"] == attempt_id
        assert restarted["status"] == "abandoned"

    def test_abandon_completed_attempt_is_noop(self, api_client: TestClient, quiz, student):
        _, headers = student
        attempt_id = api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=headers).json()["attemptId"]
        api_client.post(f"/attempts/{attempt_id}/submit", json=full_submit({"q1": "B"}), headers=headers)
        response = api_client.post(f"/attempts/{attempt_id}/abandon", json={"violationCount": 3}, headers=headers)
        assert response.json()["status"] == "completed"


@pytest.mark.integration
class TestCertificates:
    def _pass(self, api_client, quiz, headers) -> str:
        attempt_id = api_client.post("/attempts/start", json={"quizId": quiz.id}, headers=headers).json()["attemptId"]
        data = api_client.post(
            f"/attempts/{attempt_id}/submit", json=full_submit({"q1": "B", "q2": "B"}), headers=headers
        ).json()
        return data["certificateId"]

    def test_list_certificates(self, api_client: TestClient, quiz, student):
        _, headers = student
        certificate_id = self._pass(api_client, quiz, headers)
        data = api_client.get("/certificates", headers=headers).json()
        assert [c["certificateId"] for c in data["certificates"]] == [certificate_id]
        cert = data["certificates"][0]
        assert cert["recipientName"] == "Test Student"
        assert cert["quizTitle"] == "Python Basics"
        assert cert["score"] == 100
        assert cert["status"] == "active"

    def test_verify_is_public(self, api_client: TestClient, quiz, student):
        _, headers = student
        certificate_id = self._pass(api_client, quiz, headers)
        response = api_client.get(f"/certificates/{certificate_id}/verify")
        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["certificate"]["certificateId"] == certificate_id
        assert data["certificate"]["courseTitle"] == "Intro to Python"

    def test_verify_unknown_is_404(self, api_client: TestClient):
        response = api_client.get("/certificates/CERT-1700000000000-abcdef12/verify")
        assert response.status_code == 404
        assert response.json()["valid"] is False

    def test_verify_malformed_is_404(self, api_client: TestClient):
        response = api_client.get("/certificates/not-a-cert/verify")
        assert response.status_code == 404
        assert response.json()["valid"] is False

    def test_revoked_is_invalid_and_hidden(self, api_client: TestClient, quiz, student, session_factory):
        _, headers = student
        certificate_id = self._pass(api_client, quiz, headers)
        with session_factory() as db:
            db.query(Certificate).filter(Certificate.certificate_id == certificate_id).update({"status": "revoked"})
            db.commit()
        data = api_client.get(f"/certificates/{certificate_id}/verify").json()
        assert data == {"valid": False, "status": "revoked", "message": "Certificate is revoked"}
        assert api_client.get("/certificates", headers=headers).json()["certificates"] == []

    def test_expired_is_invalid(self, api_client: TestClient, seed, student, session_factory):
        _, headers = student
        quiz = seed.quiz(quiz_id="quiz-expiring", certificate_expiry_days=30)
        certificate_id = self._pass(api_client, quiz, headers)
        with session_factory() as db:
            db.query(Certificate).filter(Certificate.certificate_id == certificate_id).update(
                {"expires_at": utcnow() - timedelta(days=1)}
            )
            db.commit()
        data = api_client.get(f"/certificates/{certificate_id}/verify").json()
        assert data["valid"] is False
        assert data["status"] == "expired"
