"""Pydantic schemas for request and response bodies of the review service.

Request validators raise :class:`PydanticCustomError` so every violation
carries the exact client-facing message, and since each field is validated
independently pydantic reports all of them together.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic_core import PydanticCustomError

USERNAME_MIN_LENGTH = 3
PASSWORD_MIN_LENGTH = 6
COMMENT_MIN_LENGTH = 10
RATING_MIN = 1
RATING_MAX = 5

USERNAME_MESSAGE = f"Username must be at least {USERNAME_MIN_LENGTH} characters long"
EMAIL_MESSAGE = "Invalid email address"
PASSWORD_LENGTH_MESSAGE = f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"
PASSWORD_REQUIRED_MESSAGE = "Password is required"
RATING_MESSAGE = f"Rating must be an integer between {RATING_MIN} and {RATING_MAX}"
COMMENT_MESSAGE = f"Comment must be at least {COMMENT_MIN_LENGTH} characters long"

_INTEGER_RE = re.compile(r"^[+-]?[0-9]+$")


def _check_email(value: Any) -> str:
    if not isinstance(value, str):
        raise PydanticCustomError("email_invalid", EMAIL_MESSAGE)
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise PydanticCustomError("email_invalid", EMAIL_MESSAGE) from exc
    return value


def parse_rating(value: Any) -> Optional[int]:
    """Return ``value`` as an int if it denotes one, else ``None``.

    Accepts ints, integral floats and digit strings; rejects booleans.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INTEGER_RE.match(value.strip()):
        return int(value.strip())
    return None


class _RequestModel(BaseModel):
    # Defaults are validated too, so a missing field yields its own message.
    model_config = ConfigDict(extra="ignore", validate_default=True)


class UserCreate(_RequestModel):
    """Schema for registration requests."""

    username: str = ""
    email: str = ""
    password: str = ""

    @field_validator("username", mode="before")
    @classmethod
    def _validate_username(cls, value: Any) -> str:
        if not isinstance(value, str) or len(value.strip()) < USERNAME_MIN_LENGTH:
            raise PydanticCustomError("username_too_short", USERNAME_MESSAGE)
        return value.strip()

    @field_validator("email", mode="before")
    @classmethod
    def _validate_email(cls, value: Any) -> str:
        return _check_email(value)

    @field_validator("password", mode="before")
    @classmethod
    def _validate_password(cls, value: Any) -> str:
        if not isinstance(value, str) or len(value) < PASSWORD_MIN_LENGTH:
            raise PydanticCustomError("password_too_short", PASSWORD_LENGTH_MESSAGE)
        return value


class UserLogin(_RequestModel):
    """Schema for login requests."""

    email: str = ""
    password: str = ""

    @field_validator("email", mode="before")
    @classmethod
    def _validate_email(cls, value: Any) -> str:
        return _check_email(value)

    @field_validator("password", mode="before")
    @classmethod
    def _validate_password(cls, value: Any) -> str:
        if not isinstance(value, str) or value == "":
            raise PydanticCustomError("password_required", PASSWORD_REQUIRED_MESSAGE)
        return value


class ReviewCreate(_RequestModel):
    """Schema for submitting a review."""

    rating: int = 0
    comment: str = ""

    @field_validator("rating", mode="before")
    @classmethod
    def _validate_rating(cls, value: Any) -> int:
        rating = parse_rating(value)
        if rating is None or not RATING_MIN <= rating <= RATING_MAX:
            raise PydanticCustomError("rating_out_of_range", RATING_MESSAGE)
        return rating

    @field_validator("comment", mode="before")
    @classmethod
    def _validate_comment(cls, value: Any) -> str:
        if not isinstance(value, str) or len(value.strip()) < COMMENT_MIN_LENGTH:
            raise PydanticCustomError("comment_too_short", COMMENT_MESSAGE)
        return value.strip()


class TokenClaims(BaseModel):
    """Identity claims carried by a session token."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    username: str
    email: str
    iat: Optional[int] = None
    exp: Optional[int] = None
