"""Tests for certificate issuing, verification and download."""

import asyncio
import re
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from fakes import Engine, auth_headers, make_category, make_module, make_user
from src.certificates.models import generate_certificate_number
from src.certificates.service import CertificateNotFoundError
from src.enrollments.machine import new_enrollment


def _completed(engine: Engine, *, known_names: bool = True):
    category = make_category()
    module = make_module(category)
    engine.catalog.add(category, module)
    student_id = uuid4()
    if known_names:
        engine.users.add(student_id, "Ana", "Souza")
        engine.users.add(module.instructor_ids[0], "Marta", "Lima", role="instructor")
    return module, new_enrollment(student_id, module)


class TestCertificateNumber:
    def test_format(self) -> None:
        number = generate_certificate_number()
        assert re.fullmatch(r"MC-\d{13}-[0-9A-F]{8}", number)

    def test_custom_prefix(self) -> None:
        assert generate_certificate_number("LP").startswith("LP-")


class TestIssue:
    """Tests for minting certificates."""

    @pytest.mark.asyncio
    async def test_snapshot_of_names(self, engine: Engine) -> None:
        module, enrollment = _completed(engine)

        certificate = await engine.certificates.issue(enrollment, module, 85)

        assert certificate.student_name == "Ana Souza"
        assert certificate.instructor_name == "Marta Lima"
        assert certificate.category_name == "Clinical Pharmacy"
        assert certificate.module_name == "Dosage Basics"
        assert certificate.module_level == module.level
        assert certificate.score_achieved == 85

    @pytest.mark.asyncio
    async def test_fallback_names(self, engine: Engine) -> None:
        module, enrollment = _completed(engine, known_names=False)
        engine.catalog.categories.clear()

        certificate = await engine.certificates.issue(enrollment, module, 70)

        assert certificate.student_name == "Student"
        assert certificate.instructor_name == "Instructor"
        assert certificate.category_name == "General"

    @pytest.mark.asyncio
    async def test_one_certificate_per_enrollment(self, engine: Engine) -> None:
        module, enrollment = _completed(engine)

        first = await engine.certificates.issue(enrollment, module, 90)
        second = await engine.certificates.issue(enrollment, module, 40)

        assert second == first
        assert len(engine.certificates_repo.rows) == 1

    @pytest.mark.asyncio
    async def test_lost_insert_returns_winner(self, engine: Engine) -> None:
        module, enrollment = _completed(engine)
        winner = await engine.certificates.issue(enrollment, module, 90)
        engine.certificates_repo.get_for_enrollment = AsyncMock(side_effect=[None, winner])

        certificate = await engine.certificates.issue(enrollment, module, 90)

        assert certificate.public_id == winner.public_id


class TestLookup:
    @pytest.mark.asyncio
    async def test_unknown_public_id(self, engine: Engine) -> None:
        with pytest.raises(CertificateNotFoundError):
            await engine.certificates.get_by_public_id(uuid4())

    @pytest.mark.asyncio
    async def test_render_without_renderer(self, engine: Engine) -> None:
        module, enrollment = _completed(engine)
        certificate = await engine.certificates.issue(enrollment, module, 90)

        assert engine.certificates.can_render is False
        with pytest.raises(RuntimeError):
            await engine.certificates.render(certificate.public_id)


class TestCertificateEndpoints:
    """Tests for /v1/certificates."""

    def test_public_verification(self, engine_client: TestClient, engine: Engine) -> None:
        module, enrollment = _completed(engine)
        certificate = asyncio.run(engine.certificates.issue(enrollment, module, 95))

        response = engine_client.get(f"/v1/certificates/verify/{certificate.public_id}")

        assert response.status_code == 200
        data = response.json()
        assert data["student_name"] == "Ana Souza"
        assert data["score_achieved"] == 95
        assert data["certificate_number"] == certificate.certificate_number

    def test_verification_of_unknown_certificate(self, engine_client: TestClient) -> None:
        response = engine_client.get(f"/v1/certificates/verify/{uuid4()}")

        assert response.status_code == 404
        assert response.json()["message"] == "Certificate not found"

    def test_download_without_renderer(self, engine_client: TestClient) -> None:
        response = engine_client.get(
            f"/v1/certificates/{uuid4()}/pdf", headers=auth_headers(make_user())
        )

        assert response.status_code == 503

    def test_download_by_owner(self, engine_client: TestClient, engine: Engine) -> None:
        module, enrollment = _completed(engine)
        certificate = asyncio.run(engine.certificates.issue(enrollment, module, 95))
        engine.certificates.renderer = AsyncMock()
        engine.certificates.renderer.render.return_value = b"%PDF-1.7"
        owner = make_user(user_id=UUID(str(enrollment.student_id)))

        response = engine_client.get(
            f"/v1/certificates/{certificate.public_id}/pdf", headers=auth_headers(owner)
        )
        stranger = engine_client.get(
            f"/v1/certificates/{certificate.public_id}/pdf",
            headers=auth_headers(make_user()),
        )

        assert response.status_code == 200
        assert response.content == b"%PDF-1.7"
        assert response.headers["content-type"] == "application/pdf"
        assert certificate.certificate_number in response.headers["content-disposition"]
        assert stranger.status_code == 404
