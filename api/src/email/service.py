"""Email service using Gmail API with Service Account.

Uses domain-wide delegation to send emails on behalf of a Google Workspace user.
The service account must have domain-wide delegation enabled in Google Admin Console.

Required Google Admin Console setup:
1. Go to Security > Access and data control > API controls > Domain-wide delegation
2. Add the service account client_id with scope: https://www.googleapis.com/auth/gmail.send
"""

import base64
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import UUID

from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from src.core.logging import get_logger

from .schemas import EmailRecipient, SendEmailRequest, SendEmailResponse
from .templates import (
    render_certificate_earned,
    render_essay_graded,
    render_essay_submitted,
    render_module_submitted,
)


if TYPE_CHECKING:
    from googleapiclient._apis.gmail.v1 import GmailResource


logger = get_logger(__name__)

# Gmail API scope for sending emails
GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.send"]


class EmailService:
    """Service for sending emails via Gmail API.

    Uses a service account with domain-wide delegation to impersonate
    a Google Workspace user (e.g., no-reply@learnpath.io).
    """

    def __init__(
        self,
        credentials_path: str,
        sender_address: str,
        sender_name: str = "LearnPath",
        frontend_url: str = "http://localhost:3000",
    ):
        """Initialize Gmail API service.

        Args:
            credentials_path: Path to service account JSON file
            sender_address: Email address to send from (must be in Google Workspace)
            sender_name: Display name for sender
            frontend_url: Base URL used for links inside emails
        """
        self.credentials_path = credentials_path
        self.sender_address = sender_address
        self.sender_name = sender_name
        self.frontend_url = frontend_url.rstrip("/")
        self._service: GmailResource | None = None

        if not Path(credentials_path).exists():
            logger.warning(
                "email_credentials_not_found",
                path=credentials_path,
                message="Gmail API will not be available",
            )

    def _get_service(self) -> "GmailResource":
        """Get or create Gmail API service.

        Raises:
            FileNotFoundError: If credentials file doesn't exist
        """
        if self._service is not None:
            return self._service

        credentials_file = Path(self.credentials_path)
        if not credentials_file.exists():
            msg = f"Credentials file not found: {self.credentials_path}"
            raise FileNotFoundError(msg)

        try:
            credentials = service_account.Credentials.from_service_account_file(
                str(credentials_file),
                scopes=GMAIL_SCOPES,
            )
            delegated_credentials = credentials.with_subject(self.sender_address)
            self._service = build(
                "gmail",
                "v1",
                credentials=delegated_credentials,
                cache_discovery=False,
            )
            logger.info("gmail_service_initialized", sender=self.sender_address)
            return self._service

        except Exception as e:
            logger.exception(
                "gmail_service_init_failed",
                error=str(e),
                credentials_path=self.credentials_path,
            )
            raise

    def _format_address(self, recipient: EmailRecipient) -> str:
        if recipient.name:
            return f"{recipient.name} <{recipient.email}>"
        return recipient.email

    def _create_message(self, request: SendEmailRequest) -> dict:
        """Create email message in Gmail API format.

        Returns:
            Dict with 'raw' key containing base64url encoded message
        """
        message = MIMEMultipart("alternative")
        message["From"] = f"{self.sender_name} <{self.sender_address}>"
        message["To"] = ", ".join(self._format_address(r) for r in request.to)
        message["Subject"] = request.subject

        if request.reply_to:
            message["Reply-To"] = request.reply_to

        # Plain text first, then HTML (email clients prefer last)
        if request.body_text:
            message.attach(MIMEText(request.body_text, "plain", "utf-8"))
        message.attach(MIMEText(request.body_html, "html", "utf-8"))

        raw_message = base64.urlsafe_b64encode(message.as_bytes()).decode("utf-8")
        return {"raw": raw_message}

    async def send_email(self, request: SendEmailRequest) -> SendEmailResponse:
        """Send an email via Gmail API.

        Failures are logged and reported in the response, never raised.
        """
        try:
            service = self._get_service()
            message = self._create_message(request)
            result = (
                service.users().messages().send(userId="me", body=message).execute()
            )

            logger.info(
                "email_sent",
                message_id=result.get("id"),
                thread_id=result.get("threadId"),
                to=[r.email for r in request.to],
                subject=request.subject[:50],
            )
            return SendEmailResponse(
                success=True,
                message_id=result.get("id"),
                thread_id=result.get("threadId"),
            )

        except HttpError as e:
            error_message = str(e)
            logger.exception(
                "email_send_failed",
                error=error_message,
                to=[r.email for r in request.to],
                subject=request.subject[:50],
            )
            return SendEmailResponse(
                success=False,
                error=f"Gmail API error: {error_message}",
            )

        except FileNotFoundError as e:
            logger.error("email_credentials_missing", error=str(e))
            return SendEmailResponse(
                success=False,
                error="Email service not configured: credentials file missing",
            )

        except Exception as e:
            logger.exception("email_send_unexpected_error", error=str(e))
            return SendEmailResponse(
                success=False,
                error=f"Unexpected error: {e!s}",
            )

    async def send_simple_email(
        self,
        to: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
        to_name: str | None = None,
    ) -> SendEmailResponse:
        """Send a single-recipient email (convenience method)."""
        request = SendEmailRequest(
            to=[EmailRecipient(email=to, name=to_name)],
            subject=subject,
            body_html=body_html,
            body_text=body_text,
        )
        return await self.send_email(request)

    # ==========================================================================
    # Learning notifications
    # ==========================================================================

    async def send_essay_submitted_email(
        self,
        to_email: str,
        instructor_name: str,
        student_name: str,
        module_title: str,
        enrollment_id: UUID,
    ) -> SendEmailResponse:
        """Ask an instructor to grade a submitted essay assessment."""
        body_html, body_text = render_essay_submitted(
            instructor_name=instructor_name,
            student_name=student_name,
            module_title=module_title,
            review_url=f"{self.frontend_url}/instructor/reviews/{enrollment_id}",
        )
        return await self.send_simple_email(
            to=to_email,
            subject=f"Essay Awaiting Review: {module_title}",
            body_html=body_html,
            body_text=body_text,
            to_name=instructor_name,
        )

    async def send_essay_graded_email(
        self,
        to_email: str,
        student_name: str,
        module_id: UUID,
        module_title: str,
        passed: bool,
        score: int,
        feedback: str | None = None,
        repeat_required: bool = False,
        certificate_public_id: UUID | None = None,
    ) -> SendEmailResponse:
        """Tell a student the outcome of an instructor-graded assessment.

        A passing result links to the certificate when one was issued.
        """
        body_html, body_text = render_essay_graded(
            student_name=student_name,
            module_title=module_title,
            passed=passed,
            score=score,
            feedback=feedback,
            repeat_required=repeat_required,
            module_url=f"{self.frontend_url}/modules/{module_id}",
            certificate_url=(
                f"{self.frontend_url}/certificates/{certificate_public_id}"
                if certificate_public_id
                else None
            ),
        )
        if repeat_required:
            subject = f"Essay Assessment: Module Repeat Required for {module_title}"
        else:
            subject = f"Essay Assessment Graded: {module_title}"
        return await self.send_simple_email(
            to=to_email,
            subject=subject,
            body_html=body_html,
            body_text=body_text,
            to_name=student_name,
        )

    async def send_module_submitted_email(
        self,
        to_email: str,
        module_title: str,
        module_id: UUID,
        submitted_by: str,
    ) -> SendEmailResponse:
        body_html, body_text = render_module_submitted(
            module_title=module_title,
            submitted_by=submitted_by,
            review_url=f"{self.frontend_url}/admin/modules/{module_id}",
        )
        return await self.send_simple_email(
            to=to_email,
            subject=f"Module Submitted for Review: {module_title}",
            body_html=body_html,
            body_text=body_text,
        )

    async def send_certificate_email(
        self,
        to_email: str,
        student_name: str,
        module_title: str,
        certificate_number: str,
        public_id: UUID,
    ) -> SendEmailResponse:
        body_html, body_text = render_certificate_earned(
            student_name=student_name,
            module_title=module_title,
            certificate_number=certificate_number,
            verify_url=f"{self.frontend_url}/certificates/{public_id}",
        )
        return await self.send_simple_email(
            to=to_email,
            subject=f"Certificate Earned: {module_title}",
            body_html=body_html,
            body_text=body_text,
            to_name=student_name,
        )
