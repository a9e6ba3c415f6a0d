"""Error taxonomy of the review service.

Every expected failure is a :class:`ReviewBoardError` carrying the HTTP
status it maps to; ``app.py`` renders them with :meth:`to_dict`.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class ReviewBoardError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message}


class ValidationError(ReviewBoardError):
    """One or more field-level violations, reported together."""

    status_code = 400
    default_message = "Validation failed"

    def __init__(self, errors: List[Dict[str, str]]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(e["msg"] for e in self.errors) or None)

    @classmethod
    def single(cls, field: str, msg: str) -> "ValidationError":
        return cls([{"field": field, "msg": msg}])

    def to_dict(self) -> Dict[str, Any]:
        return {"errors": self.errors}


class DuplicateIdentityError(ReviewBoardError):
    """Username or email already belongs to another user."""

    status_code = 400
    MESSAGES = {
        "username": "Username is already taken",
        "email": "Email is already registered",
    }

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(self.MESSAGES.get(field, "User already exists"))

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "field": self.field}


class AuthenticationError(ReviewBoardError):
    status_code = 401
    default_message = "Invalid email or password"


class TokenMissingError(ReviewBoardError):
    status_code = 401
    default_message = "Access token is missing"


class TokenInvalidError(ReviewBoardError):
    status_code = 403
    default_message = "Invalid token"


class StoreUnavailableError(ReviewBoardError):
    """The durable store is not configured or cannot be reached."""

    status_code = 503
    default_message = "Review store is unavailable"


class InternalError(ReviewBoardError):
    status_code = 500
