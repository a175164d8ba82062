"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from trustgraph.domain.models import FollowEdge, PublicProfile


class SignupRequest(BaseModel):
    """Request model for account signup."""

    email: EmailStr
    password: str = Field(..., min_length=1, description="Account password")
    display_name: str | None = Field(default=None, max_length=255)


class ProfileResponse(BaseModel):
    """Public account projection."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    display_name: str | None
    bio: str | None
    username: str | None
    avatar_ref: str | None
    verified: bool
    private: bool
    created_at: datetime

    @classmethod
    def from_profile(cls, profile: PublicProfile) -> "ProfileResponse":
        return cls.model_validate(profile)


class SignupResponse(BaseModel):
    """Response model for successful signup."""

    message: str
    account: ProfileResponse
    verification_expires_at: datetime


class VerifyRequest(BaseModel):
    """Request model for email verification."""

    email: str
    token: str = Field(..., min_length=1)


class ResendVerificationRequest(BaseModel):
    email: str


class LoginRequest(BaseModel):
    """
    Request model for login.

    ``email`` is a plain string: an unknown address must come back as 404,
    not as a validation error.
    """

    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account: ProfileResponse


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; omitted fields are left unchanged."""

    display_name: str | None = None
    bio: str | None = None
    username: str | None = None
    avatar_ref: str | None = None


class PrivacyRequest(BaseModel):
    private: bool


class FollowResponse(BaseModel):
    follower_id: str
    following_id: str
    created_at: datetime

    @classmethod
    def from_edge(cls, edge: FollowEdge) -> "FollowResponse":
        return cls(follower_id=edge.follower_id, following_id=edge.following_id, created_at=edge.created_at)


class AccountListResponse(BaseModel):
    account_ids: list[str]


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
