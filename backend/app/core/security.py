"""
Security utilities for verifying access tokens issued by the auth provider.
"""

from typing import Any, Dict, Optional

from jose import jwt

import os

# The provider signs access tokens with the project's JWT secret
JWT_SECRET_KEY = os.getenv("SUPABASE_JWT_SECRET")
if not JWT_SECRET_KEY:
    if os.getenv("ENVIRONMENT") == "production":
        raise RuntimeError("SUPABASE_JWT_SECRET must be set in production")
    JWT_SECRET_KEY = "dev-secret-key-never-use-in-production"

# JWT settings
ALGORITHM = "HS256"
TOKEN_AUDIENCE = "authenticated"
REFRESH_TOKEN_EXPIRE_DAYS = 7


def verify_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a provider-issued access token.

    Args:
        token: JWT access token

    Returns:
        Token claims if valid

    Raises:
        ValueError: If the token is invalid, expired, or carries no subject
    """
    try:
        payload = jwt.decode(
            token, JWT_SECRET_KEY, algorithms=[ALGORITHM], audience=TOKEN_AUDIENCE
        )
    except jwt.JWTError:
        raise ValueError("Invalid token")

    if not payload.get("sub"):
        raise ValueError("Token has no subject")

    return payload


def display_name_from_claims(claims: Dict[str, Any]) -> str:
    """
    Derive a display name from token claims.

    Prefers the name given at sign-up, then the local part of the email.
    """
    metadata: Optional[Dict[str, Any]] = claims.get("user_metadata") or {}
    if metadata.get("name"):
        return metadata["name"]

    email = claims.get("email") or ""
    if email:
        return email.split("@")[0]

    return "User"
