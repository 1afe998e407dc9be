"""Pydantic schemas for outgoing email."""

from pydantic import BaseModel, EmailStr, Field


class EmailRecipient(BaseModel):
    """Email recipient with optional name."""

    email: EmailStr = Field(..., description="Recipient email address")
    name: str | None = Field(None, description="Recipient display name")


class SendEmailRequest(BaseModel):
    """An email ready to be sent."""

    to: list[EmailRecipient] = Field(..., min_length=1, max_length=50)
    subject: str = Field(..., min_length=1, max_length=998)
    body_html: str = Field(..., min_length=1)
    body_text: str | None = Field(None, description="Plain text body (fallback)")
    reply_to: EmailStr | None = None


class SendEmailResponse(BaseModel):
    """Outcome of a send attempt."""

    success: bool
    message_id: str | None = None
    thread_id: str | None = None
    error: str | None = None
