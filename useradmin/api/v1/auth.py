"""Login, logout, password reset, and the session dependencies (get_current_user, get_current_actor)."""

import logging
from typing import Annotated

import jwt
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from useradmin.core.config import Settings, get_settings
from useradmin.core.database import get_db
from useradmin.core.security import (
    create_session_token,
    decode_session_token,
    generate_csrf_token,
    tokens_match,
)
from useradmin.schemas.auth import (
    CurrentUser,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
)
from useradmin.services import password_reset
from useradmin.services.accounts import resolve_actor
from useradmin.services.authorization import Actor, Subject
from useradmin.services.errors import Unauthenticated
from useradmin.services.mail import MailSender, send_password_reset_email
from useradmin.services.store import AccountStore

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)

SESSION_COOKIE = "access_token"
CSRF_COOKIE = "csrf_token"
CSRF_HEADER = "X-CSRF-Token"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

MSG_LOGIN_FAILED = "Login failed: Invalid email or password."
MSG_RESET_SENT = "Please check your email to reset your password."
MSG_RESET_DONE = "Your password has been reset."


def get_mail_sender(settings: Annotated[Settings, Depends(get_settings)]) -> MailSender:
    """Dependency: SMTP sender built from settings (overridden in tests)."""
    return MailSender(settings)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser:
    """
    Dependency: resolve the session to the current user and the roles it holds now.

    Accepts a Bearer token, or the HttpOnly session cookie set at login. Cookie
    sessions must echo the csrf_token cookie in X-CSRF-Token on unsafe methods.
    Raises 401 if the token is missing, invalid, or its user no longer exists.
    """
    from_cookie = credentials is None
    token = request.cookies.get(SESSION_COOKIE) if from_cookie else credentials.credentials
    if not token:
        raise _unauthorized("Not authenticated")
    try:
        payload = decode_session_token(token)
    except jwt.PyJWTError:
        raise _unauthorized("Invalid or expired token")
    sub = payload.get("sub")
    if not sub:
        raise _unauthorized("Invalid token payload")
    if from_cookie and request.method not in SAFE_METHODS:
        if not tokens_match(request.cookies.get(CSRF_COOKIE), request.headers.get(CSRF_HEADER)):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="CSRF token missing or invalid.",
            )

    user, actor = resolve_actor(db, str(sub))
    return CurrentUser(
        id=user.id,
        username=user.username,
        email=user.email,
        roles=sorted(actor.roles),
    )


def get_current_actor(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Actor:
    """Dependency: the authorization subject for this request (id plus current roles)."""
    return Subject.of(current_user.id, current_user.roles)


def _set_session_cookies(response: Response, token: str, csrf_token: str, settings: Settings) -> None:
    max_age = settings.JWT_EXPIRE_MINUTES * 60
    response.set_cookie(
        SESSION_COOKIE,
        token,
        max_age=max_age,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    response.set_cookie(
        CSRF_COOKIE,
        csrf_token,
        max_age=max_age,
        httponly=False,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )


@router.post("/login", response_model=LoginResponse)
def login(
    body: LoginRequest,
    response: Response,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> LoginResponse:
    """
    Authenticate with email and password.

    The session token is set as an HttpOnly cookie and also returned for use as
    `Authorization: Bearer <access_token>`.
    """
    store = AccountStore(db)
    user = store.find_by_email(body.email)
    if user is None or not body.password or not store.check_password(user, body.password):
        logger.warning("Login failed for email=%s", body.email)
        raise Unauthenticated(MSG_LOGIN_FAILED)

    token = create_session_token(user.id)
    csrf_token = generate_csrf_token()
    _set_session_cookies(response, token, csrf_token, settings)
    logger.info("Login succeeded: user_id=%s", user.id)
    return LoginResponse(
        access_token=token,
        token_type="bearer",
        csrf_token=csrf_token,
        has_roles=bool(store.roles_of(user)),
    )


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response) -> MessageResponse:
    """Clear the session and CSRF cookies."""
    response.delete_cookie(SESSION_COOKIE)
    response.delete_cookie(CSRF_COOKIE)
    return MessageResponse(message="Logged out.")


@router.get("/me", response_model=CurrentUser)
def me(current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
    return current_user


@router.post("/password-reset", response_model=MessageResponse)
def request_password_reset(
    body: PasswordResetRequest,
    background_tasks: BackgroundTasks,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    sender: Annotated[MailSender, Depends(get_mail_sender)],
) -> MessageResponse:
    """Send a reset link to the account's email. The mail goes out after the response."""
    issued = password_reset.request_reset(db, body.email, settings)
    if issued is not None:
        background_tasks.add_task(
            send_password_reset_email,
            sender,
            issued.user.email,
            issued.user.username,
            issued.link,
            settings.RESET_TOKEN_EXPIRE_MINUTES,
        )
    return MessageResponse(message=MSG_RESET_SENT)


@router.post("/password-reset/confirm", response_model=MessageResponse)
def confirm_password_reset(
    body: PasswordResetConfirm,
    db: Annotated[Session, Depends(get_db)],
) -> MessageResponse:
    password_reset.redeem(
        db,
        token=body.token,
        email=body.email,
        password=body.password,
        confirm_password=body.confirm_password,
    )
    return MessageResponse(message=MSG_RESET_DONE)
