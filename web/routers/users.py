"""User administration: invitations, password setup and suspension."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from sqlmodel import col, select

from shelfsim.auth import hash_password, new_reset_token
from shelfsim.logging_config import get_logger
from shelfsim.models import User, UserStatus
from shelfsim.schemas import SetPasswordRequest, UserCreate, UserRead
from web.deps import CurrentUser, SessionDep

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["users"])


@router.get("/users", response_model=list[UserRead])
def list_users(session: SessionDep, _user: CurrentUser) -> list[User]:
    return list(session.exec(select(User).order_by(col(User.id))))


@router.post("/users")
def create_user(body: UserCreate, session: SessionDep, _user: CurrentUser) -> dict[str, Any]:
    """Invite a user; they become ACTIVE once they set a password with the token."""
    existing = session.exec(select(User).where(User.username == body.username)).first()
    if existing is not None:
        raise HTTPException(status_code=400, detail="User already exists")

    user = User(
        username=body.username,
        first_name=body.first_name,
        last_name=body.last_name,
        password="",
        status=UserStatus.PENDING,
        password_reset_token=new_reset_token(),
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("New user created: %s", user.id)
    return {
        **UserRead.model_validate(user).model_dump(mode="json"),
        "password_reset_token": user.password_reset_token,
    }


@router.post("/set-password/{token}")
def set_password(token: str, body: SetPasswordRequest, session: SessionDep) -> dict[str, str]:
    user = session.exec(select(User).where(User.password_reset_token == token)).first()
    if user is None:
        raise HTTPException(status_code=404, detail="Invalid or expired token")

    user.password = hash_password(body.password)
    user.password_reset_token = None
    user.status = UserStatus.ACTIVE
    session.add(user)
    session.commit()
    logger.info("Password set for user %s", user.id)
    return {"message": "Password set successfully"}


@router.post("/users/{user_id}/suspend", response_model=UserRead)
def suspend_user(user_id: int, session: SessionDep, _user: CurrentUser) -> User:
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    user.status = UserStatus.SUSPENDED
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("User %s suspended", user_id)
    return user


@router.post("/users/{user_id}/invite")
def invite_user(user_id: int, session: SessionDep, _user: CurrentUser) -> dict[str, str]:
    user = session.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    user.password_reset_token = new_reset_token()
    session.add(user)
    session.commit()
    logger.info("New invite link generated for user %s", user_id)
    return {"password_reset_token": user.password_reset_token}
