"""Registration, login and logout with cookie sessions."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from sqlmodel import select

from shelfsim.auth import SESSION_COOKIE, hash_password, verify_password
from shelfsim.logging_config import get_logger
from shelfsim.models import User, UserStatus
from shelfsim.schemas import Credentials, RegisterRequest, UserRead
from web.deps import CurrentUser, SessionDep, SettingsDep

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def _start_session(request: Request, response: Response, user: User, secure: bool) -> None:
    store = request.app.state.sessions
    sid = store.create(user.id)
    response.set_cookie(
        SESSION_COOKIE,
        sid,
        max_age=store.max_age,
        httponly=True,
        samesite="lax",
        secure=secure,
    )


@router.post("/register")
def register(
    body: RegisterRequest,
    request: Request,
    response: Response,
    session: SessionDep,
    settings: SettingsDep,
) -> dict[str, Any]:
    existing = session.exec(select(User).where(User.username == body.username)).first()
    if existing is not None:
        logger.warning("Registration attempt with existing username %s", body.username)
        raise HTTPException(status_code=400, detail="Email already exists")

    user = User(
        username=body.username,
        password=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
        status=UserStatus.ACTIVE,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("New user registered: %s", user.username)

    _start_session(request, response, user, settings.session_cookie_secure)
    return {
        "message": "Registration successful",
        "user": {"id": user.id, "username": user.username},
    }


@router.post("/login")
def login(
    body: Credentials,
    request: Request,
    response: Response,
    session: SessionDep,
    settings: SettingsDep,
) -> dict[str, Any]:
    user = session.exec(select(User).where(User.username == body.username)).first()
    if user is None or not verify_password(body.password, user.password):
        logger.warning("Failed login for %s", body.username)
        raise HTTPException(status_code=401, detail="Invalid credentials.")
    if user.status != UserStatus.ACTIVE:
        logger.warning("Login refused for %s user %s", user.status.value, user.username)
        raise HTTPException(status_code=401, detail="Account is not active.")

    _start_session(request, response, user, settings.session_cookie_secure)
    logger.info("User logged in: %s", user.username)
    return {
        "message": "Login successful",
        "user": {"id": user.id, "username": user.username},
    }


@router.post("/logout")
def logout(request: Request, response: Response) -> dict[str, str]:
    request.app.state.sessions.delete(request.cookies.get(SESSION_COOKIE))
    response.delete_cookie(SESSION_COOKIE)
    return {"message": "Logout successful"}


@router.get("/user", response_model=UserRead)
def me(user: CurrentUser) -> User:
    return user
