"""
Client for the hosted authentication service (GoTrue-compatible REST API).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from app.core import config
from app.schemas.auth import AuthSession

logger = logging.getLogger(__name__)


class AuthFailureReason(str, Enum):
    UNCONFIRMED_EMAIL = "unconfirmed_email"
    INVALID_CREDENTIALS = "invalid_credentials"
    OTHER = "other"


class AuthProviderError(Exception):
    """Sign-in or sign-up rejected by the provider."""

    def __init__(self, reason: AuthFailureReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


@dataclass
class SignUpResult:
    """A session when the account is usable at once, else pending confirmation."""

    user_id: Optional[str]
    session: Optional[AuthSession] = None

    @property
    def pending_confirmation(self) -> bool:
        return self.session is None


def classify_failure(message: str) -> AuthFailureReason:
    """Map a provider error message onto the reasons the sign-in form shows."""
    if "Email not confirmed" in message:
        return AuthFailureReason.UNCONFIRMED_EMAIL
    if "Invalid login credentials" in message:
        return AuthFailureReason.INVALID_CREDENTIALS
    return AuthFailureReason.OTHER


class AuthProviderClient:
    """Client for sign-up, sign-in and sign-out against the auth provider."""

    def __init__(
        self,
        base_url: str = config.SUPABASE_URL,
        api_key: str = config.SUPABASE_ANON_KEY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.transport = transport

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Dict[str, Any] = None,
        data: Dict[str, Any] = None,
        access_token: Optional[str] = None,
    ) -> httpx.Response:
        """Send a request to the auth API and return the raw response."""
        headers = {
            "apikey": self.api_key,
            "Content-Type": "application/json",
        }
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        async with httpx.AsyncClient(transport=self.transport) as client:
            return await client.request(
                method=method,
                url=f"{self.base_url}/auth/v1{endpoint}",
                params=params,
                json=data,
                headers=headers,
                timeout=10.0,
            )

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        return (
            body.get("error_description")
            or body.get("msg")
            or body.get("message")
            or body.get("error")
            or f"HTTP {response.status_code}"
        )

    @staticmethod
    def _body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _session_from(body: Dict[str, Any]) -> AuthSession:
        """
        Build a session from a token response.

        Raises:
            AuthProviderError: If the response carries no access token
        """
        if not body.get("access_token"):
            logger.error("Auth provider response carried no access token")
            raise AuthProviderError(
                AuthFailureReason.OTHER, "Auth provider returned no session"
            )

        user = body.get("user") or {}
        return AuthSession(
            access_token=body["access_token"],
            refresh_token=body.get("refresh_token"),
            token_type=body.get("token_type", "bearer"),
            expires_in=body.get("expires_in", 3600),
            user_id=user.get("id", ""),
            email=user.get("email"),
        )

    async def sign_in(self, email: str, password: str) -> AuthSession:
        """
        Sign in with email and password.

        Raises:
            AuthProviderError: With the classified failure reason
        """
        response = await self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            data={"email": email, "password": password},
        )

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error(f"Sign-in failed for {email}: {message}")
            raise AuthProviderError(classify_failure(message), message)

        return self._session_from(self._body(response))

    async def sign_up(
        self, email: str, password: str, name: Optional[str] = None
    ) -> SignUpResult:
        """
        Create an account.

        The provider only returns a session when email confirmation is off.
        """
        payload: Dict[str, Any] = {"email": email, "password": password}
        if name:
            payload["data"] = {"name": name}

        response = await self._request("POST", "/signup", data=payload)

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.error(f"Sign-up failed for {email}: {message}")
            raise AuthProviderError(classify_failure(message), message)

        body = self._body(response)
        if body.get("access_token"):
            session = self._session_from(body)
            return SignUpResult(user_id=session.user_id, session=session)

        # Without confirmation the body is the bare user object
        user = body.get("user") or body
        return SignUpResult(user_id=user.get("id"))

    async def sign_out(self, access_token: str) -> bool:
        """Revoke the session at the provider. Failures are logged, not raised."""
        try:
            response = await self._request(
                "POST", "/logout", access_token=access_token
            )
        except httpx.HTTPError as e:
            logger.error(f"Sign-out request failed: {e}")
            return False

        if response.status_code >= 400:
            logger.error(
                f"Sign-out rejected by provider: {self._error_message(response)}"
            )
            return False

        return True
