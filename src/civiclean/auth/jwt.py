"""
JWT verification for identity-provider access tokens.

Tokens are issued elsewhere (Supabase Auth by default, HS256 with a shared
secret); this service only verifies them. RS256 deployments point
``jwt_public_key_path`` at the issuer's public key instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jwt

from civiclean.config import get_settings

_public_key: str | None = None


def _verification_key() -> str:
    """Return the key used to check signatures (public key cached after first read)."""
    global _public_key  # noqa: PLW0603
    settings = get_settings()
    if settings.jwt_algorithm.startswith("HS"):
        if not settings.jwt_secret:
            msg = "JWT secret is not configured"
            raise jwt.InvalidTokenError(msg)
        return settings.jwt_secret
    if _public_key is None:
        _public_key = Path(settings.jwt_public_key_path).read_text()
    return _public_key


def reset_keys() -> None:
    """Reset cached keys (useful for testing)."""
    global _public_key  # noqa: PLW0603
    _public_key = None


def verify_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Args:
        token: The encoded JWT string.

    Returns:
        Decoded payload dictionary.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired or has no subject.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            _verification_key(),
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"verify_aud": settings.jwt_audience is not None},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    if not payload.get("sub"):
        msg = "Token has no subject"
        raise jwt.InvalidTokenError(msg)

    return payload
