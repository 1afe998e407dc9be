"""Pydantic schemas for authentication."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """Authenticated caller, built from access token claims."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    role: str
    name: str | None = None
