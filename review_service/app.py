"""Review board FastAPI application.

Endpoints:

- ``POST /api/register``: create a user and return a session token.
- ``POST /api/login``: exchange email and password for a session token.
- ``GET /api/reviews``: public review feed, newest first.
- ``POST /api/reviews``: post a review (bearer token required).
- ``GET /api/me``: identity claims of the presented token.
- ``GET /health``: service and store status.

The durable store is reached through the :class:`Database` kept on
``app.state.database``; if it is missing or unreachable the service keeps
running and answers store-backed requests with 503.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from review_service import config
from review_service.database import Database
from review_service.errors import (
    AuthenticationError,
    InternalError,
    ReviewBoardError,
    StoreUnavailableError,
    TokenMissingError,
)
from review_service.repositories import ReviewRepository, UserRepository
from review_service.schemas import ReviewCreate, TokenClaims, UserCreate, UserLogin
from review_service.security import (
    create_access_token,
    get_current_user,
    hash_password_async,
    verify_login_password_async,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

MALFORMED_BODY_MESSAGE = "Malformed JSON body"
MISSING_BODY_MESSAGE = "Request body is required"


def get_database(request: Request) -> Database:
    return request.app.state.database


def _validation_errors(exc: RequestValidationError) -> List[Dict[str, str]]:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = loc[-1] if loc else "body"
        if error.get("type") == "json_invalid":
            field, msg = "body", MALFORMED_BODY_MESSAGE
        elif error.get("type") == "missing" and not loc:
            msg = MISSING_BODY_MESSAGE
        else:
            msg = error.get("msg", "Invalid value")
        errors.append({"field": field, "msg": msg})
    return errors


def _auth_response(message: str, user: Dict[str, Any]) -> Dict[str, Any]:
    return {"message": message, "token": create_access_token(user), "user": user}


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = _validation_errors(exc)
        logger.info(
            "Validation failed for %s %s: %s",
            request.method,
            request.url.path,
            "; ".join(e["msg"] for e in errors),
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"errors": errors}
        )

    @app.exception_handler(ReviewBoardError)
    async def handle_review_board_error(
        request: Request, exc: ReviewBoardError
    ) -> JSONResponse:
        headers: Optional[Dict[str, str]] = None
        if isinstance(exc, StoreUnavailableError):
            database: Database = request.app.state.database
            if database.is_ready:
                cause = exc.__cause__
                database.mark_degraded(
                    type(cause).__name__ if cause else exc.message
                )
        elif isinstance(exc, TokenMissingError):
            headers = {"WWW-Authenticate": "Bearer"}
        return JSONResponse(
            status_code=exc.status_code, content=exc.to_dict(), headers=headers
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(
            "Unhandled error during %s %s", request.method, request.url.path
        )
        content: Dict[str, Any] = InternalError().to_dict()
        if config.DEBUG:
            content["detail"] = f"{type(exc).__name__}: {exc}"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content
        )


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build the application around ``database`` (defaults from config)."""
    if database is None:
        database = Database(
            config.DATABASE_URL,
            init_attempts=config.DB_INIT_ATTEMPTS,
            retry_delay=config.DB_INIT_RETRY_DELAY,
            echo=config.SQL_ECHO,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        state = await app.state.database.initialize()
        if not app.state.database.is_ready:
            logger.error(
                "Starting with the review store %s: %s",
                state.value,
                app.state.database.reason,
            )
        yield
        await app.state.database.dispose()

    app = FastAPI(
        title="Review Board",
        description="User registration, authentication and star-rated reviews.",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.database = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials="*" not in config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        latency_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            latency_ms,
        )
        return response

    register_exception_handlers(app)

    @app.get("/health")
    async def health(db: Database = Depends(get_database)) -> Dict[str, Any]:
        """Health check endpoint returning the service and store status."""
        payload: Dict[str, Any] = {"status": "ok" if db.is_ready else "degraded"}
        payload.update(db.status())
        if not config.DEBUG:
            payload.pop("reason", None)
        return payload

    @app.post("/api/register", status_code=status.HTTP_201_CREATED)
    async def register(
        payload: UserCreate, db: Database = Depends(get_database)
    ) -> Dict[str, Any]:
        """Register a new user and sign them in.

        Username and email uniqueness is enforced by the store; a collision
        is reported with the field that collided.
        """
        logger.info("Registration attempt for email: %s", payload.email)
        await db.ensure_ready()
        hashed_password = await hash_password_async(payload.password)
        async with db.session() as session:
            user = await UserRepository(session).create_user(
                payload.username, payload.email, hashed_password
            )
        logger.info("User created with ID: %s", user.id)
        return _auth_response("User registered successfully", user.to_dict())

    @app.post("/api/login")
    async def login(
        payload: UserLogin, db: Database = Depends(get_database)
    ) -> Dict[str, Any]:
        """Authenticate with email and password and return a session token."""
        async with db.session() as session:
            user = await UserRepository(session).find_by_email(payload.email)

        hashed_password = user.hashed_password if user is not None else None
        if not await verify_login_password_async(payload.password, hashed_password):
            logger.warning("Login failed for email: %s", payload.email)
            raise AuthenticationError()

        logger.info("Login successful for user_id: %s", user.id)
        return _auth_response("Login successful", user.to_dict())

    @app.get("/api/reviews")
    async def list_reviews(db: Database = Depends(get_database)) -> List[Dict[str, Any]]:
        """Return every review, newest first."""
        async with db.session() as session:
            reviews = await ReviewRepository(session).list_all()
        return [review.to_dict() for review in reviews]

    @app.post("/api/reviews", status_code=status.HTTP_201_CREATED)
    async def create_review(
        payload: ReviewCreate,
        current_user: TokenClaims = Depends(get_current_user),
        db: Database = Depends(get_database),
    ) -> Dict[str, Any]:
        """Post a review as the user identified by the bearer token."""
        async with db.session() as session:
            review = await ReviewRepository(session).create(
                current_user.id, current_user.username, payload.rating, payload.comment
            )
        logger.info("Review %s added by user_id: %s", review.id, current_user.id)
        return {"message": "Review added successfully", "review": review.to_dict()}

    @app.get("/api/me")
    async def me(current_user: TokenClaims = Depends(get_current_user)) -> Dict[str, Any]:
        """Return the identity claims carried by the bearer token."""
        return {"user": current_user.model_dump()}

    return app


app = create_app()
