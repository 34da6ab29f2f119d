"""
Authentication routes backed by the hosted auth provider.
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.core.security import REFRESH_TOKEN_EXPIRE_DAYS, verify_token
from app.dependencies import get_auth_provider, get_optional_token
from app.schemas.auth import (
    AuthSession,
    Credentials,
    SessionStatus,
    SignUpRequest,
    SignUpResponse,
)
from app.services.backend import (
    AuthEvent,
    AuthEventKind,
    AuthFailureReason,
    AuthProviderClient,
    AuthProviderError,
    auth_events,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

SIGN_IN_MESSAGES = {
    AuthFailureReason.UNCONFIRMED_EMAIL: "Please check your email and confirm your account before signing in.",
    AuthFailureReason.INVALID_CREDENTIALS: "Invalid email or password. Please try again.",
}
UNEXPECTED_ERROR = "An unexpected error occurred. Please try again."
CONFIRMATION_PENDING = (
    "Please check your email to confirm your account, then try signing in!"
)


def set_session_cookies(response: Response, session: AuthSession) -> None:
    response.set_cookie(
        key="access_token",
        value=session.access_token,
        httponly=True,
        secure=True,
        samesite="lax",
        max_age=session.expires_in,
    )
    if session.refresh_token:
        response.set_cookie(
            key="refresh_token",
            value=session.refresh_token,
            httponly=True,
            secure=True,
            samesite="lax",
            max_age=REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        )


def auth_failure(error: AuthProviderError) -> HTTPException:
    if error.reason in SIGN_IN_MESSAGES:
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=SIGN_IN_MESSAGES[error.reason],
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)


@router.post("/signin", response_model=AuthSession)
async def sign_in(
    credentials: Credentials,
    response: Response,
    provider: AuthProviderClient = Depends(get_auth_provider),
):
    """
    Sign in with email and password.

    Sets session cookies and notifies any open library of the new session.
    """
    try:
        session = await provider.sign_in(credentials.email, credentials.password)
    except AuthProviderError as e:
        raise auth_failure(e)
    except httpx.HTTPError as e:
        logger.error(f"Unexpected login error: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UNEXPECTED_ERROR)

    set_session_cookies(response, session)
    await auth_events.publish(
        AuthEvent(AuthEventKind.SIGNED_IN, session.user_id, session.access_token)
    )
    logger.info(f"Login successful for {session.user_id}")
    return session


@router.post("/signup", response_model=SignUpResponse)
async def sign_up(
    request: SignUpRequest,
    response: Response,
    provider: AuthProviderClient = Depends(get_auth_provider),
):
    """
    Create an account.

    When the provider requires email confirmation no session is issued and
    the user is asked to confirm first.
    """
    try:
        result = await provider.sign_up(request.email, request.password, request.name)
    except AuthProviderError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    except httpx.HTTPError as e:
        logger.error(f"Unexpected sign-up error: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=UNEXPECTED_ERROR)

    if result.pending_confirmation:
        return SignUpResponse(status="pending_confirmation", message=CONFIRMATION_PENDING)

    set_session_cookies(response, result.session)
    await auth_events.publish(
        AuthEvent(
            AuthEventKind.SIGNED_IN, result.session.user_id, result.session.access_token
        )
    )
    return SignUpResponse(
        status="signed_in", message="Account created", session=result.session
    )


@router.post("/logout")
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_optional_token),
    provider: AuthProviderClient = Depends(get_auth_provider),
):
    """
    Log out the user.

    Revokes the provider session, closes the user's library and clears
    authentication cookies.
    """
    if token:
        try:
            user_id = verify_token(token)["sub"]
        except ValueError:
            user_id = None

        await provider.sign_out(token)
        if user_id:
            await auth_events.publish(AuthEvent(AuthEventKind.SIGNED_OUT, user_id))

    response.delete_cookie(key="access_token")
    response.delete_cookie(key="refresh_token")
    response.delete_cookie(key="csrf_token")

    return {"message": "Logged out successfully"}


@router.get("/session", response_model=SessionStatus)
async def get_session(token: Optional[str] = Depends(get_optional_token)):
    """Report whether the request carries a valid session."""
    if not token:
        return SessionStatus(authenticated=False)

    try:
        claims = verify_token(token)
    except ValueError:
        return SessionStatus(authenticated=False)

    return SessionStatus(
        authenticated=True, user_id=claims["sub"], email=claims.get("email")
    )
