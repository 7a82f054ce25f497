"""
User Models

AuthUser is what the identity provider hands back after sign-in.
UserProfile is the extra document written once at registration.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthUser(BaseModel):
    """The signed-in identity: {uid, displayName, email}."""
    model_config = ConfigDict(frozen=True)

    uid: str = Field(..., min_length=1)
    email: Optional[str] = None
    display_name: Optional[str] = None


class UserProfile(BaseModel):
    """Profile document stored under users/<uid>."""
    model_config = ConfigDict(str_strip_whitespace=True, populate_by_name=True)

    uid: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        alias="createdAt",
    )

    def to_document(self) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "createdAt": self.created_at.isoformat(),
        }
