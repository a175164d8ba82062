"""
Failure translation - Maps domain failure kinds to HTTP responses.

Every ``FailureKind`` has exactly one status code here; routes never
inspect failures themselves.
"""

from fastapi import HTTPException, status

from trustgraph.domain.result import Failure, FailureKind

STATUS_BY_KIND: dict[FailureKind, int] = {
    FailureKind.EMAIL_ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    FailureKind.INVALID_INPUT: 422,  # Unprocessable Content
    FailureKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    FailureKind.EMAIL_NOT_VERIFIED: status.HTTP_403_FORBIDDEN,
    FailureKind.INVALID_PASSWORD: status.HTTP_401_UNAUTHORIZED,
    FailureKind.INVALID_OR_EXPIRED_TOKEN: status.HTTP_401_UNAUTHORIZED,
    FailureKind.MISSING_TOKEN: status.HTTP_401_UNAUTHORIZED,
    FailureKind.CANNOT_FOLLOW_SELF: status.HTTP_400_BAD_REQUEST,
    FailureKind.ALREADY_FOLLOWING: status.HTTP_409_CONFLICT,
    FailureKind.NOT_FOLLOWING: status.HTTP_404_NOT_FOUND,
    FailureKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    FailureKind.DELIVERY_FAILED: status.HTTP_502_BAD_GATEWAY,
}

_BEARER_CHALLENGE = {FailureKind.MISSING_TOKEN, FailureKind.INVALID_OR_EXPIRED_TOKEN}


def failure_to_http(failure: Failure, *, bearer: bool = False) -> HTTPException:
    """
    Build the HTTPException for a domain failure.

    Args:
        failure: Domain failure from an ``Err`` result
        bearer: Add a ``WWW-Authenticate: Bearer`` challenge for session token failures
    """
    headers = None
    if bearer and failure.kind in _BEARER_CHALLENGE:
        headers = {"WWW-Authenticate": "Bearer"}
    return HTTPException(
        status_code=STATUS_BY_KIND[failure.kind],
        detail=failure.detail,
        headers=headers,
    )
