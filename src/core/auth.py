"""Bearer tokens carrying the user id, role tags and organization."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import UTC, datetime, timedelta
from enum import Enum
from typing import Any

import jwt
from src.core.config import get_settings


class TokenError(Exception):
    """Raised when a token cannot be decoded or validated."""


class Role(str, Enum):
    LEARNER = "learner"
    EDUCATOR = "educator"
    # industry expert
    MASTER = "master"

    @classmethod
    def contains(cls, value: str) -> bool:
        return value in cls._value2member_map_


def create_access_token(
    subject: str,
    *,
    roles: Sequence[str],
    email: str | None = None,
    org_id: str | None = None,
    expires_delta: timedelta | None = None,
) -> str:
    """Sign a token for ``subject``; ``org_id`` scopes educator and learner requests."""
    settings = get_settings()
    _ensure_roles(roles, allowed=settings.allowed_roles)

    issued_at = datetime.now(UTC)
    lifetime = expires_delta or timedelta(seconds=settings.access_token_ttl_seconds)
    claims: dict[str, Any] = {
        "sub": subject,
        "roles": list(roles),
        "iss": settings.app_name,
        "iat": int(issued_at.timestamp()),
        "exp": int((issued_at + lifetime).timestamp()),
    }
    if email:
        claims["email"] = email
    if org_id:
        claims["org_id"] = org_id

    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Verify signature, expiry and issuer, then return the claims."""
    settings = get_settings()

    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.app_name,
            options={"require": ["sub", "roles", "exp", "iss"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token expired") from exc
    except jwt.PyJWTError as exc:  # pragma: no cover - third-party raises numerous subclasses
        raise TokenError("Invalid token") from exc

    _ensure_roles(claims.get("roles", []), allowed=settings.allowed_roles)
    return claims


def _ensure_roles(roles: Iterable[str], *, allowed: Iterable[str]) -> None:
    permitted = set(allowed)
    unknown = [role for role in roles if not Role.contains(role) or role not in permitted]
    if unknown:
        raise TokenError(f"Unsupported role(s): {', '.join(unknown)}")
