"""Tests for learning notification emails."""

import base64
from email import message_from_bytes
from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from googleapiclient.errors import HttpError

from src.email.service import EmailService
from src.email.templates import render_certificate_earned, render_essay_graded


@pytest.fixture
def gmail() -> MagicMock:
    gmail = MagicMock()
    gmail.users.return_value.messages.return_value.send.return_value.execute.return_value = {
        "id": "msg-1",
        "threadId": "thread-1",
    }
    return gmail


@pytest.fixture
def email_service(tmp_path) -> EmailService:
    return EmailService(
        credentials_path=str(tmp_path / "missing.json"),
        sender_address="no-reply@learnpath.io",
        frontend_url="https://learn.example.com/",
    )


def _sent_message(gmail: MagicMock):
    body = gmail.users.return_value.messages.return_value.send.call_args.kwargs["body"]
    return message_from_bytes(base64.urlsafe_b64decode(body["raw"]))


class TestTemplates:
    def test_essay_graded_escapes_feedback(self) -> None:
        html, text = render_essay_graded(
            student_name="Ana",
            module_title="Dosage <Basics>",
            passed=False,
            score=40,
            feedback="<script>alert(1)</script>",
            repeat_required=True,
            module_url="https://learn.example.com/modules/1",
        )

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "Dosage &lt;Basics&gt;" in html
        assert "Module Repeat Required" in html
        assert "<script>alert(1)</script>" in text

    def test_certificate_links_to_verification(self) -> None:
        html, text = render_certificate_earned(
            student_name="Ana",
            module_title="Dosage Basics",
            certificate_number="MC-1-ABCDEF12",
            verify_url="https://learn.example.com/certificates/abc",
        )

        assert "MC-1-ABCDEF12" in html
        assert "https://learn.example.com/certificates/abc" in text


class TestEmailService:
    """Tests for sending through the Gmail API."""

    @pytest.mark.asyncio
    async def test_certificate_email(
        self, email_service: EmailService, gmail: MagicMock
    ) -> None:
        public_id = uuid4()
        with patch.object(EmailService, "_get_service", return_value=gmail):
            response = await email_service.send_certificate_email(
                to_email="ana@example.com",
                student_name="Ana Souza",
                module_title="Dosage Basics",
                certificate_number="MC-1-ABCDEF12",
                public_id=public_id,
            )

        assert response.success is True
        assert response.message_id == "msg-1"
        message = _sent_message(gmail)
        assert message["To"] == "Ana Souza <ana@example.com>"
        assert message["Subject"] == "Certificate Earned: Dosage Basics"
        html = message.get_payload()[-1].get_payload(decode=True).decode()
        assert f"https://learn.example.com/certificates/{public_id}" in html

    @pytest.mark.asyncio
    async def test_repeat_required_subject(
        self, email_service: EmailService, gmail: MagicMock
    ) -> None:
        with patch.object(EmailService, "_get_service", return_value=gmail):
            await email_service.send_essay_graded_email(
                to_email="ana@example.com",
                student_name="Ana",
                module_id=uuid4(),
                module_title="Dosage Basics",
                passed=False,
                score=0,
                repeat_required=True,
            )

        subject = _sent_message(gmail)["Subject"]
        assert subject == "Essay Assessment: Module Repeat Required for Dosage Basics"

    @pytest.mark.asyncio
    async def test_essay_pass_links_certificate(
        self, email_service: EmailService, gmail: MagicMock
    ) -> None:
        public_id = uuid4()
        with patch.object(EmailService, "_get_service", return_value=gmail):
            await email_service.send_essay_graded_email(
                to_email="ana@example.com",
                student_name="Ana",
                module_id=uuid4(),
                module_title="Dosage Basics",
                passed=True,
                score=100,
                certificate_public_id=public_id,
            )

        message = _sent_message(gmail)
        assert message["Subject"] == "Essay Assessment Graded: Dosage Basics"
        html = message.get_payload()[-1].get_payload(decode=True).decode()
        assert f"https://learn.example.com/certificates/{public_id}" in html
        assert "View certificate" in html

    @pytest.mark.asyncio
    async def test_missing_credentials_reported(self, email_service: EmailService) -> None:
        response = await email_service.send_simple_email(
            to="ana@example.com", subject="Hi", body_html="<p>Hi</p>"
        )

        assert response.success is False
        assert "credentials file missing" in response.error

    @pytest.mark.asyncio
    async def test_api_error_reported(
        self, email_service: EmailService, gmail: MagicMock
    ) -> None:
        send = gmail.users.return_value.messages.return_value.send.return_value
        send.execute.side_effect = HttpError(MagicMock(status=500, reason="boom"), b"boom")
        with patch.object(EmailService, "_get_service", return_value=gmail):
            response = await email_service.send_simple_email(
                to="ana@example.com", subject="Hi", body_html="<p>Hi</p>"
            )

        assert response.success is False
        assert response.error.startswith("Gmail API error")
