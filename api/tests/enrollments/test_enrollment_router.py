"""Tests for the module enrollment endpoints."""

from uuid import UUID, uuid4

from fastapi.testclient import TestClient

from fakes import Engine, auth_headers, essay_final, make_category, make_module, make_user
from src.catalog.models import ModuleLevel


BASE = "/v1/module-enrollments"


def _setup(engine: Engine, **module_kwargs):
    category = make_category()
    beginner = make_module(category, **module_kwargs)
    intermediate = make_module(category, level=ModuleLevel.INTERMEDIATE)
    engine.catalog.add(category, beginner, intermediate)
    return category, beginner, intermediate


def _paying_student(engine: Engine, category_id: UUID):
    student = make_user()
    student_id = UUID(str(student.id))
    engine.acquisitions.grant(student_id, category_id)
    engine.users.add(student_id, "Ana", "Souza")
    return student


def _enroll(client: TestClient, module_id: UUID, user) -> dict:
    response = client.post(f"{BASE}/modules/{module_id}/enroll", headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


def _complete_lessons(client: TestClient, enrollment: dict, user) -> None:
    for index in range(enrollment["total_lessons"]):
        response = client.put(
            f"{BASE}/{enrollment['id']}/lessons/{index}/complete",
            headers=auth_headers(user),
        )
        assert response.status_code == 200


class TestEnrollEndpoint:
    """Tests for POST /modules/{module_id}/enroll."""

    def test_requires_token(self, engine_client: TestClient, engine: Engine) -> None:
        _, beginner, _ = _setup(engine)

        response = engine_client.post(f"{BASE}/modules/{beginner.id}/enroll")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_plain_user_cannot_enroll(
        self, engine_client: TestClient, engine: Engine
    ) -> None:
        _, beginner, _ = _setup(engine)

        response = engine_client.post(
            f"{BASE}/modules/{beginner.id}/enroll", headers=auth_headers(make_user("user"))
        )

        assert response.status_code == 403

    def test_payment_required(self, engine_client: TestClient, engine: Engine) -> None:
        category, beginner, _ = _setup(engine)

        response = engine_client.post(
            f"{BASE}/modules/{beginner.id}/enroll", headers=auth_headers(make_user())
        )

        assert response.status_code == 402
        data = response.json()
        assert data["error"] is True
        assert data["message"] == "Payment required to access Clinical Pharmacy"
        assert data["detail"]["requires_payment"] is True
        assert data["detail"]["category_id"] == str(category.id)
        assert data["detail"]["price"] == "49.90"

    def test_level_locked(self, engine_client: TestClient, engine: Engine) -> None:
        category, _, intermediate = _setup(engine)
        student = _paying_student(engine, category.id)

        response = engine_client.post(
            f"{BASE}/modules/{intermediate.id}/enroll", headers=auth_headers(student)
        )

        assert response.status_code == 403
        assert "Beginner" in response.json()["message"]

    def test_enroll_twice_returns_same_enrollment(
        self, engine_client: TestClient, engine: Engine
    ) -> None:
        category, beginner, _ = _setup(engine)
        student = _paying_student(engine, category.id)

        first = _enroll(engine_client, beginner.id, student)
        second = _enroll(engine_client, beginner.id, student)

        assert first["id"] == second["id"]
        assert first["state"] == "enrolled"
        assert first["progress"] == 0

    def test_unknown_module(self, engine_client: TestClient) -> None:
        response = engine_client.post(
            f"{BASE}/modules/{uuid4()}/enroll", headers=auth_headers(make_user())
        )

        assert response.status_code == 404


class TestAssessmentEndpoints:
    """Tests for lesson and final assessment submission."""

    def test_final_before_lessons_conflicts(
        self, engine_client: TestClient, engine: Engine
    ) -> None:
        category, beginner, _ = _setup(engine)
        student = _paying_student(engine, category.id)
        enrollment = _enroll(engine_client, beginner.id, student)

        response = engine_client.post(
            f"{BASE}/{enrollment['id']}/final-assessment",
            json={"answers": [{"question_index": 0, "answer": "B"}]},
            headers=auth_headers(student),
        )

        assert response.status_code == 409
        assert response.json()["message"].startswith("Complete all lessons")

    def test_out_of_range_answer_is_rejected(
        self, engine_client: TestClient, engine: Engine
    ) -> None:
        category, beginner, _ = _setup(engine)
        student = _paying_student(engine, category.id)
        enrollment = _enroll(engine_client, beginner.id, student)
        _complete_lessons(engine_client, enrollment, student)

        response = engine_client.post(
            f"{BASE}/{enrollment['id']}/final-assessment",
            json={"answers": [{"question_index": 7, "answer": "B"}]},
            headers=auth_headers(student),
        )

        assert response.status_code == 422

    def test_pass_returns_certificate(
        self, engine_client: TestClient, engine: Engine
    ) -> None:
        category, beginner, _ = _setup(engine)
        student = _paying_student(engine, category.id)
        enrollment = _enroll(engine_client, beginner.id, student)
        _complete_lessons(engine_client, enrollment, student)

        response = engine_client.post(
            f"{BASE}/{enrollment['id']}/final-assessment",
            json={
                "answers": [
                    {"question_index": 0, "answer": "B"},
                    {"question_index": 1, "answer": "true"},
                ]
            },
            headers=auth_headers(student),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "passed"
        assert data["score"] == 100
        assert data["level_unlocked"] == "intermediate"
        assert data["certificate_number"].startswith("MC-")
        assert data["enrollment"]["is_completed"] is True
        assert data["enrollment"]["certificate_public_id"] == data["certificate_public_id"]

    def test_fail_reports_remaining_attempts(
        self, engine_client: TestClient, engine: Engine
    ) -> None:
        category, beginner, _ = _setup(engine)
        student = _paying_student(engine, category.id)
        enrollment = _enroll(engine_client, beginner.id, student)
        _complete_lessons(engine_client, enrollment, student)

        response = engine_client.post(
            f"{BASE}/{enrollment['id']}/final-assessment",
            json={"answers": [{"question_index": 0, "answer": "C"}]},
            headers=auth_headers(student),
        )

        data = response.json()
        assert data["status"] == "failed"
        assert data["remaining_attempts"] == 2
        assert data["message"].endswith("Remaining attempts: 2.")

    def test_unknown_enrollment(self, engine_client: TestClient) -> None:
        response = engine_client.put(
            f"{BASE}/{uuid4()}/lessons/0/complete", headers=auth_headers(make_user())
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Enrollment not found"


class TestGradeEssayEndpoint:
    """Tests for POST /{enrollment_id}/grade-essay."""

    def _pending(self, client: TestClient, engine: Engine):
        instructor = make_user("instructor")
        category, beginner, _ = _setup(
            engine,
            final=essay_final(),
            instructor_ids=[UUID(str(instructor.id))],
        )
        student = _paying_student(engine, category.id)
        enrollment = _enroll(client, beginner.id, student)
        _complete_lessons(client, enrollment, student)
        response = client.post(
            f"{BASE}/{enrollment['id']}/final-assessment",
            json={
                "answers": [
                    {"question_index": 0, "answer": "true"},
                    {"question_index": 1, "answer": "Adjust by creatinine clearance"},
                ]
            },
            headers=auth_headers(student),
        )
        assert response.json()["status"] == "pending_review"
        return beginner, student, instructor, enrollment

    def test_pass_alias(self, engine_client: TestClient, engine: Engine) -> None:
        _, _, instructor, enrollment = self._pending(engine_client, engine)

        response = engine_client.post(
            f"{BASE}/{enrollment['id']}/grade-essay",
            json={"pass": True, "feedback": "Thorough answer"},
            headers=auth_headers(instructor),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "passed"
        assert data["score"] == 100
        assert data["certificate_public_id"] is not None

    def test_passed_field_name(self, engine_client: TestClient, engine: Engine) -> None:
        _, _, instructor, enrollment = self._pending(engine_client, engine)

        response = engine_client.post(
            f"{BASE}/{enrollment['id']}/grade-essay",
            json={"passed": False, "feedback": "Needs references", "score": 35},
            headers=auth_headers(instructor),
        )

        data = response.json()
        assert data["status"] == "failed"
        assert data["score"] == 35
        assert data["enrollment"]["state"] == "in_progress"

    def test_pending_review_queue(self, engine_client: TestClient, engine: Engine) -> None:
        module, _, instructor, enrollment = self._pending(engine_client, engine)

        response = engine_client.get(
            f"{BASE}/modules/{module.id}/pending-reviews", headers=auth_headers(instructor)
        )

        assert response.status_code == 200
        assert [e["id"] for e in response.json()] == [enrollment["id"]]

    def test_students_cannot_grade(self, engine_client: TestClient, engine: Engine) -> None:
        _, student, _, enrollment = self._pending(engine_client, engine)

        response = engine_client.post(
            f"{BASE}/{enrollment['id']}/grade-essay",
            json={"pass": True, "feedback": "Self-approved"},
            headers=auth_headers(student),
        )

        assert response.status_code == 403

    def test_other_instructor_is_refused(
        self, engine_client: TestClient, engine: Engine
    ) -> None:
        _, _, _, enrollment = self._pending(engine_client, engine)

        response = engine_client.post(
            f"{BASE}/{enrollment['id']}/grade-essay",
            json={"pass": True, "feedback": "ok"},
            headers=auth_headers(make_user("instructor")),
        )

        assert response.status_code == 403
        assert "not assigned" in response.json()["message"]
