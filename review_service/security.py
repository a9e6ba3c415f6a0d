"""Security helpers: password hashing, verification and JWT handling.

Passwords are hashed with Argon2 through :class:`passlib.context.CryptContext`;
session tokens are HS256 JSON Web Tokens produced by :mod:`jwt` (PyJWT).

Tokens are stateless: :func:`decode_access_token` only checks the signature,
structure and expiry and never looks the user up, so a token stays valid for
its whole lifetime even if the account changes in the meantime. There is no
revocation list.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from pydantic import ValidationError as PydanticValidationError

from review_service import config
from review_service.errors import TokenInvalidError, TokenMissingError
from review_service.schemas import TokenClaims

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("id", "username", "email", "iat", "exp")

pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__time_cost=config.ARGON2_TIME_COST,
    argon2__memory_cost=config.ARGON2_MEMORY_COST,
    argon2__parallelism=config.ARGON2_PARALLELISM,
)

bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    """Return a salted Argon2 hash for ``password``."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify that ``plain_password`` matches ``hashed_password``.

    A stored value passlib cannot parse never matches.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as exc:
        logger.warning("Stored password hash could not be verified: %s", exc)
        return False


async def hash_password_async(password: str) -> str:
    """Hash in a worker thread so the event loop keeps serving requests."""
    return await asyncio.to_thread(get_password_hash, password)


@lru_cache(maxsize=1)
def _unknown_user_hash() -> str:
    return get_password_hash("unknown-user-placeholder")


def verify_login_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Check a login password; ``hashed_password`` is None for an unknown email.

    An unknown email is verified against a placeholder hash, so both outcomes
    cost one Argon2 verification and take the same time.
    """
    if hashed_password is None:
        verify_password(plain_password, _unknown_user_hash())
        return False
    return verify_password(plain_password, hashed_password)


async def verify_login_password_async(
    plain_password: str, hashed_password: Optional[str]
) -> bool:
    return await asyncio.to_thread(verify_login_password, plain_password, hashed_password)


def create_access_token(
    claims: Dict[str, Any], issued_at: Optional[datetime] = None
) -> str:
    """Create a signed JWT carrying ``claims`` plus ``iat`` and ``exp``.

    ``exp`` is always ``iat`` + :data:`config.ACCESS_TOKEN_LIFETIME`.
    """
    if issued_at is None:
        issued_at = datetime.now(timezone.utc)
    to_encode = {
        "id": claims["id"],
        "username": claims["username"],
        "email": claims["email"],
        "iat": issued_at,
        "exp": issued_at + config.ACCESS_TOKEN_LIFETIME,
    }
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


def decode_access_token(token: str) -> TokenClaims:
    """Decode a JWT access token and return its identity claims.

    Raises :class:`TokenInvalidError` on expired, tampered or malformed
    tokens.
    """
    try:
        payload = jwt.decode(
            token,
            config.SECRET_KEY,
            algorithms=[config.ALGORITHM],
            options={"require": list(REQUIRED_CLAIMS)},
        )
    except jwt.ExpiredSignatureError:
        raise TokenInvalidError("Token has expired")
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected access token: %s", exc)
        raise TokenInvalidError()

    try:
        return TokenClaims.model_validate(payload)
    except PydanticValidationError:
        logger.info("Rejected access token with malformed identity claims")
        raise TokenInvalidError()


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenClaims:
    """Return the claims of the bearer token on the current request.

    Raises :class:`TokenMissingError` when no bearer token was presented.
    """
    if credentials is None or not credentials.credentials:
        raise TokenMissingError()
    return decode_access_token(credentials.credentials)
