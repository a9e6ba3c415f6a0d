"""Credential and review stores backed by an async SQLAlchemy session.

The repositories are engine-agnostic: the same code runs against SQLite
(aiosqlite) or PostgreSQL (asyncpg), selected only by ``DATABASE_URL``.
Connection-level failures surface as :class:`StoreUnavailableError`;
constraint violations become domain errors.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from review_service.errors import (
    DuplicateIdentityError,
    StoreUnavailableError,
    ValidationError,
)
from review_service.models import Review, User
from review_service.schemas import RATING_MESSAGE

logger = logging.getLogger(__name__)

_IDENTITY_FIELDS = ("username", "email")


@asynccontextmanager
async def _store_errors(session: AsyncSession) -> AsyncIterator[None]:
    try:
        yield
    except (OperationalError, InterfaceError, OSError) as exc:
        await _safe_rollback(session)
        logger.error("Review store operation failed: %s", exc)
        raise StoreUnavailableError() from exc


async def _safe_rollback(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except (OperationalError, InterfaceError, OSError) as exc:
        logger.warning("Rollback failed: %s", exc)


def _collided_field(exc: IntegrityError) -> Optional[str]:
    """Name the identity field behind a unique violation, if the driver says.

    SQLite reports ``users.<column>``, PostgreSQL the constraint name.
    """
    text = str(exc.orig)
    for field in _IDENTITY_FIELDS:
        if f"uq_users_{field}" in text or f"users.{field}" in text:
            return field
    return None


class UserRepository:
    """Credential store: create users and look them up by email."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_user(self, username: str, email: str, password_hash: str) -> User:
        """Insert a user; raise :class:`DuplicateIdentityError` on collision.

        Uniqueness is decided by the database constraints at commit time, so
        two concurrent registrations of the same identity cannot both win.
        """
        user = User(username=username, email=email, hashed_password=password_hash)
        async with _store_errors(self.session):
            self.session.add(user)
            try:
                await self.session.commit()
            except IntegrityError as exc:
                await self.session.rollback()
                field = _collided_field(exc) or await self._find_collision(
                    username, email
                )
                logger.warning(
                    "Registration rejected: %s already exists (%s)", field, email
                )
                raise DuplicateIdentityError(field) from exc
        return user

    async def _find_collision(self, username: str, email: str) -> str:
        stmt = select(User.id).where(User.username == username)
        result = await self.session.execute(stmt)
        return "username" if result.first() is not None else "email"

    async def find_by_email(self, email: str) -> Optional[User]:
        async with _store_errors(self.session):
            stmt = select(User).where(User.email == email)
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()


class ReviewRepository:
    """Review store: append reviews and read the feed newest first."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self, user_id: int, username: str, rating: int, comment: str
    ) -> Review:
        review = Review(
            user_id=user_id, username=username, rating=rating, comment=comment
        )
        async with _store_errors(self.session):
            self.session.add(review)
            try:
                await self.session.commit()
            except IntegrityError as exc:
                await self.session.rollback()
                if "rating" in str(exc.orig):
                    raise ValidationError.single("rating", RATING_MESSAGE) from exc
                logger.warning("Review rejected: author %s does not exist", user_id)
                raise ValidationError.single(
                    "user_id", "Review author does not exist"
                ) from exc
        return review

    async def list_all(self) -> List[Review]:
        async with _store_errors(self.session):
            stmt = select(Review).order_by(Review.created_at.desc(), Review.id.desc())
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
