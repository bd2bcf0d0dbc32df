"""Account registration, login and session API routes."""

import logging
from datetime import timedelta

from fastapi import APIRouter, BackgroundTasks, HTTPException, Query, Request, Response

from fotofi.api.deps import CurrentUserDep, UserRepositoryDep, get_session_token
from fotofi.core.config import settings
from fotofi.models.chat import LoginRequest, LoginResponse, RegisterRequest, UserOut, UserResponse
from fotofi.repositories.exceptions import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidTokenError,
)
from fotofi.services.email import send_verification_email

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/register", response_model=UserResponse, status_code=201)
def register(
    request: RegisterRequest,
    users: UserRepositoryDep,
    background_tasks: BackgroundTasks,
) -> UserResponse:
    """Create an account and send a verification email."""
    if not request.name or not request.email or not request.password:
        raise HTTPException(status_code=400, detail="Name, email and password are required")

    if len(request.password) < settings.MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {settings.MIN_PASSWORD_LENGTH} characters",
        )

    try:
        user = users.register(request.name, request.email, request.password)
    except EmailAlreadyRegisteredError:
        raise HTTPException(status_code=409, detail="Email is already registered")

    token = users.create_verification_token(user)
    background_tasks.add_task(send_verification_email, user.email, token)

    return UserResponse(user=UserOut.model_validate(user))


@router.post("/login", response_model=LoginResponse)
def login(request: LoginRequest, users: UserRepositoryDep, response: Response) -> LoginResponse:
    """Check credentials and open a session (cookie + bearer token)."""
    if not request.email or not request.password:
        raise HTTPException(status_code=400, detail="Email and password are required")

    try:
        user = users.authenticate(request.email, request.password)
    except InvalidCredentialsError:
        raise HTTPException(status_code=401, detail="Invalid email or password")

    ttl = timedelta(hours=settings.SESSION_TTL_HOURS)
    session = users.create_session(user, ttl)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.token,
        max_age=int(ttl.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=settings.ENV != "local",
    )

    logger.info("User logged in", extra={"user_id": user.id})
    return LoginResponse(user=UserOut.model_validate(user), token=session.token)


@router.post("/logout")
def logout(request: Request, users: UserRepositoryDep, response: Response) -> dict:
    token = get_session_token(request)
    if token:
        users.delete_session(token)
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/me", response_model=UserResponse)
def me(user: CurrentUserDep) -> UserResponse:
    return UserResponse(user=UserOut.model_validate(user))


@router.get("/verify-email", response_model=UserResponse)
def verify_email(users: UserRepositoryDep, token: str = Query(...)) -> UserResponse:
    """Consume a verification token from the sign-up email."""
    try:
        user = users.verify_email(token)
    except InvalidTokenError:
        raise HTTPException(status_code=400, detail="Invalid or expired token")
    return UserResponse(user=UserOut.model_validate(user))
