"""Bearer token verification for Supabase-issued access tokens."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import jwt

from bride_buddy.errors import Unauthenticated

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"


@dataclass(frozen=True, slots=True)
class AuthSettings:
    jwt_secret: str | None
    audience: str


def auth_settings_from_env() -> AuthSettings:
    return AuthSettings(
        jwt_secret=os.environ.get("SUPABASE_JWT_SECRET"),
        audience=os.environ.get("SUPABASE_JWT_AUDIENCE", "authenticated"),
    )


@dataclass(frozen=True, slots=True)
class AuthenticatedUser:
    id: str
    email: str | None = None
    full_name: str = ""


def bearer_token_from_header(authorization: str | None) -> str:
    if not authorization:
        raise Unauthenticated("Unauthorized: missing bearer token")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Unauthorized: malformed authorization header")
    return token.strip()


def verify_access_token(token: str, *, settings: AuthSettings | None = None) -> AuthenticatedUser:
    """Decode and validate an access token, returning the user it identifies."""

    s = settings or auth_settings_from_env()
    if not s.jwt_secret:
        raise RuntimeError("Set SUPABASE_JWT_SECRET to verify access tokens")

    try:
        payload = jwt.decode(token, s.jwt_secret, algorithms=[JWT_ALGORITHM], audience=s.audience)
    except jwt.ExpiredSignatureError as e:
        raise Unauthenticated("Unauthorized: token expired") from e
    except jwt.InvalidTokenError as e:
        logger.info("Rejected access token: %s", e)
        raise Unauthenticated("Unauthorized: invalid token") from e

    sub = payload.get("sub")
    if not isinstance(sub, str) or not sub:
        raise Unauthenticated("Unauthorized: token has no subject")

    metadata = payload.get("user_metadata") or {}
    full_name = metadata.get("full_name") or metadata.get("name") or ""
    return AuthenticatedUser(id=sub, email=payload.get("email"), full_name=str(full_name))


def authenticate(authorization: str | None, *, settings: AuthSettings | None = None) -> AuthenticatedUser:
    return verify_access_token(bearer_token_from_header(authorization), settings=settings)
