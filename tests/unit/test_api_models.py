"""
Unit tests for API request/response models.

Tests Pydantic model validation and the projections built from domain objects.
"""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from trustgraph.api.models import (
    FollowResponse,
    LoginRequest,
    LoginResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    SignupRequest,
    VerifyRequest,
)
from trustgraph.domain.models import FollowEdge, PublicProfile

CREATED = datetime(2026, 1, 1, tzinfo=UTC)


class TestSignupRequest:
    def test_valid_signup_request(self) -> None:
        request = SignupRequest(email="user@example.com", password="secret1")
        assert request.email == "user@example.com"
        assert request.display_name is None

    def test_email_domain_normalized(self) -> None:
        """EmailStr normalizes domain to lowercase."""
        request = SignupRequest(email="USER@EXAMPLE.COM", password="secret1")
        assert request.email == "USER@example.com"

    def test_invalid_email_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            SignupRequest(email="not-an-email", password="secret1")
        assert "email" in str(exc_info.value)

    def test_missing_password_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SignupRequest(email="user@example.com")  # type: ignore[call-arg]


class TestLoginRequest:
    def test_email_is_not_format_checked(self) -> None:
        """Unknown or malformed addresses reach the domain and come back as not found."""
        assert LoginRequest(email="not-an-email", password="x").email == "not-an-email"


class TestVerifyRequest:
    def test_empty_token_rejected(self) -> None:
        with pytest.raises(ValidationError):
            VerifyRequest(email="user@example.com", token="")


class TestProfileUpdateRequest:
    def test_only_set_fields_are_dumped(self) -> None:
        request = ProfileUpdateRequest(bio="hello")
        assert request.model_dump(exclude_unset=True) == {"bio": "hello"}


class TestResponses:
    def test_profile_from_domain(self) -> None:
        profile = PublicProfile(
            id="id-1",
            email="user@example.com",
            display_name="User",
            bio=None,
            username="user",
            avatar_ref=None,
            verified=True,
            private=False,
            created_at=CREATED,
        )

        response = ProfileResponse.from_profile(profile)

        assert response.id == "id-1"
        assert response.username == "user"
        assert "password_hash" not in response.model_dump()

    def test_follow_from_edge(self) -> None:
        response = FollowResponse.from_edge(FollowEdge("a", "b", CREATED))
        assert response.model_dump() == {"follower_id": "a", "following_id": "b", "created_at": CREATED}

    def test_login_response_token_type(self) -> None:
        profile = ProfileResponse(
            id="id-1",
            email="user@example.com",
            display_name=None,
            bio=None,
            username=None,
            avatar_ref=None,
            verified=True,
            private=False,
            created_at=CREATED,
        )
        assert LoginResponse(access_token="jwt", account=profile).token_type == "bearer"
