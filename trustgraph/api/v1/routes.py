"""
API v1 routes.

Thin HTTP layer over the identity domain: each handler calls one domain
operation and either serializes the ``Ok`` value or hands the failure to
``failure_to_http``. Handlers are plain ``def`` so blocking storage calls run
in FastAPI's threadpool.
"""

from fastapi import APIRouter, Depends, Query, Response, status

from trustgraph.api.dependencies import (
    get_credential_store,
    get_current_account_id,
    get_follow_graph,
    get_identity_service,
    get_visibility_authorizer,
)
from trustgraph.api.errors import failure_to_http
from trustgraph.api.models import (
    AccountListResponse,
    ErrorResponse,
    FollowResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PrivacyRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    ResendVerificationRequest,
    SignupRequest,
    SignupResponse,
    VerifyRequest,
)
from trustgraph.domain.credentials import CredentialStore
from trustgraph.domain.follows import FollowGraph
from trustgraph.domain.identity import IdentityService
from trustgraph.domain.models import ProfileUpdate
from trustgraph.domain.visibility import VisibilityAuthorizer

router = APIRouter(tags=["v1"])

_AUTH_RESPONSES = {401: {"model": ErrorResponse, "description": "Missing, invalid or expired session"}}


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        409: {"model": ErrorResponse, "description": "Email already registered"},
        422: {"description": "Validation error"},
    },
    summary="Create an account",
    description="Create an unverified account and send an email verification link.",
)
def signup(
    request_data: SignupRequest,
    service: IdentityService = Depends(get_identity_service),
) -> SignupResponse:
    result = service.signup(request_data.email, request_data.password, request_data.display_name)
    if result.is_err():
        raise failure_to_http(result.failure)

    receipt = result.value
    message = "Account created, check your email to verify it"
    if not receipt.delivered:
        message = "Account created, but the verification email could not be sent; request a new one"
    return SignupResponse(
        message=message,
        account=ProfileResponse.from_profile(receipt.account),
        verification_expires_at=receipt.expires_at,
    )


def _verify(email: str, token: str, service: IdentityService) -> ProfileResponse:
    result = service.verify_email(email, token)
    if result.is_err():
        raise failure_to_http(result.failure)
    return ProfileResponse.from_profile(result.value)


@router.post(
    "/verify",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired token"}},
    summary="Verify an email address",
)
def verify(
    request_data: VerifyRequest,
    service: IdentityService = Depends(get_identity_service),
) -> ProfileResponse:
    return _verify(request_data.email, request_data.token, service)


@router.get(
    "/verify",
    response_model=ProfileResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid or expired token"}},
    summary="Verify an email address from the emailed link",
)
def verify_link(
    email: str = Query(...),
    token: str = Query(..., min_length=1),
    service: IdentityService = Depends(get_identity_service),
) -> ProfileResponse:
    return _verify(email, token, service)


@router.post(
    "/verify/resend",
    response_model=MessageResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        404: {"model": ErrorResponse, "description": "Unknown email"},
        422: {"model": ErrorResponse, "description": "Email already verified"},
        502: {"model": ErrorResponse, "description": "Email delivery failed"},
    },
    summary="Send a new verification token",
)
def resend_verification(
    request_data: ResendVerificationRequest,
    service: IdentityService = Depends(get_identity_service),
) -> MessageResponse:
    result = service.resend_verification(request_data.email)
    if result.is_err():
        raise failure_to_http(result.failure)
    return MessageResponse(message="Verification email sent")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid password"},
        403: {"model": ErrorResponse, "description": "Email not verified"},
        404: {"model": ErrorResponse, "description": "Unknown email"},
    },
    summary="Log in and obtain a session token",
)
def login(
    request_data: LoginRequest,
    service: IdentityService = Depends(get_identity_service),
) -> LoginResponse:
    result = service.login(request_data.email, request_data.password)
    if result.is_err():
        raise failure_to_http(result.failure)
    return LoginResponse(
        access_token=result.value.access_token,
        account=ProfileResponse.from_profile(result.value.account),
    )


@router.get("/users/me", response_model=ProfileResponse, responses=_AUTH_RESPONSES)
def get_me(
    account_id: str = Depends(get_current_account_id),
    credentials: CredentialStore = Depends(get_credential_store),
) -> ProfileResponse:
    result = credentials.find_by_id(account_id)
    if result.is_err():
        raise failure_to_http(result.failure)
    return ProfileResponse.from_profile(result.value)


@router.patch("/users/me", response_model=ProfileResponse, responses=_AUTH_RESPONSES)
def update_me(
    request_data: ProfileUpdateRequest,
    account_id: str = Depends(get_current_account_id),
    credentials: CredentialStore = Depends(get_credential_store),
) -> ProfileResponse:
    changes = ProfileUpdate(**request_data.model_dump(exclude_unset=True))
    result = credentials.update_profile(account_id, changes)
    if result.is_err():
        raise failure_to_http(result.failure)
    return ProfileResponse.from_profile(result.value)


@router.put("/users/me/privacy", response_model=ProfileResponse, responses=_AUTH_RESPONSES)
def set_privacy(
    request_data: PrivacyRequest,
    account_id: str = Depends(get_current_account_id),
    credentials: CredentialStore = Depends(get_credential_store),
) -> ProfileResponse:
    result = credentials.set_privacy(account_id, request_data.private)
    if result.is_err():
        raise failure_to_http(result.failure)
    return ProfileResponse.from_profile(result.value)


@router.get(
    "/users/by-username/{username}",
    response_model=ProfileResponse,
    responses={**_AUTH_RESPONSES, 403: {"model": ErrorResponse, "description": "Private account"}},
)
def get_by_username(
    username: str,
    viewer_id: str = Depends(get_current_account_id),
    credentials: CredentialStore = Depends(get_credential_store),
    visibility: VisibilityAuthorizer = Depends(get_visibility_authorizer),
) -> ProfileResponse:
    found = credentials.find_by_username(username)
    if found.is_err():
        raise failure_to_http(found.failure)
    result = visibility.view_profile(viewer_id, found.value.id)
    if result.is_err():
        raise failure_to_http(result.failure)
    return ProfileResponse.from_profile(result.value)


@router.get(
    "/users/{account_id}",
    response_model=ProfileResponse,
    responses={**_AUTH_RESPONSES, 403: {"model": ErrorResponse, "description": "Private account"}},
)
def get_profile(
    account_id: str,
    viewer_id: str = Depends(get_current_account_id),
    visibility: VisibilityAuthorizer = Depends(get_visibility_authorizer),
) -> ProfileResponse:
    result = visibility.view_profile(viewer_id, account_id)
    if result.is_err():
        raise failure_to_http(result.failure)
    return ProfileResponse.from_profile(result.value)


@router.post(
    "/users/{account_id}/follow",
    response_model=FollowResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        **_AUTH_RESPONSES,
        400: {"model": ErrorResponse, "description": "Cannot follow yourself"},
        404: {"model": ErrorResponse, "description": "Unknown account"},
        409: {"model": ErrorResponse, "description": "Already following"},
    },
)
def follow(
    account_id: str,
    follower_id: str = Depends(get_current_account_id),
    follow_graph: FollowGraph = Depends(get_follow_graph),
) -> FollowResponse:
    result = follow_graph.follow(follower_id, account_id)
    if result.is_err():
        raise failure_to_http(result.failure)
    return FollowResponse.from_edge(result.value)


@router.delete(
    "/users/{account_id}/follow",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={**_AUTH_RESPONSES, 404: {"model": ErrorResponse, "description": "Not following"}},
)
def unfollow(
    account_id: str,
    follower_id: str = Depends(get_current_account_id),
    follow_graph: FollowGraph = Depends(get_follow_graph),
) -> Response:
    result = follow_graph.unfollow(follower_id, account_id)
    if result.is_err():
        raise failure_to_http(result.failure)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/users/{account_id}/followers", response_model=AccountListResponse, responses=_AUTH_RESPONSES)
def list_followers(
    account_id: str,
    _viewer_id: str = Depends(get_current_account_id),
    follow_graph: FollowGraph = Depends(get_follow_graph),
) -> AccountListResponse:
    return AccountListResponse(account_ids=follow_graph.list_followers(account_id))


@router.get("/users/{account_id}/following", response_model=AccountListResponse, responses=_AUTH_RESPONSES)
def list_following(
    account_id: str,
    _viewer_id: str = Depends(get_current_account_id),
    follow_graph: FollowGraph = Depends(get_follow_graph),
) -> AccountListResponse:
    return AccountListResponse(account_ids=follow_graph.list_following(account_id))
