"""
FastAPI dependencies shared by the routers.

Tests override ``get_simulator`` and ``get_screenshotter`` through
``app.dependency_overrides``.
"""

from __future__ import annotations

from functools import partial
from pathlib import Path
from typing import Annotated, Callable

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from shelfsim.ai import ConsumerSimulator
from shelfsim.auth import SESSION_COOKIE
from shelfsim.config import Settings
from shelfsim.db import get_session
from shelfsim.models import User
from shelfsim.themes import screenshot_url

Screenshotter = Callable[[str], bytes]


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


SessionDep = Annotated[Session, Depends(get_session)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def current_user(request: Request, session: SessionDep) -> User:
    """The logged-in user, or 401."""
    sid = request.cookies.get(SESSION_COOKIE)
    user_id = request.app.state.sessions.get(sid)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    user = session.get(User, user_id)
    if user is None:
        request.app.state.sessions.delete(sid)
        raise HTTPException(status_code=401, detail="Not logged in")
    return user


CurrentUser = Annotated[User, Depends(current_user)]


def get_simulator(settings: SettingsDep) -> ConsumerSimulator:
    return ConsumerSimulator.from_settings(settings)


def get_screenshotter(settings: SettingsDep) -> Screenshotter:
    return partial(
        screenshot_url,
        chromium_path=settings.chromium_path,
        chromedriver_path=settings.chromedriver_path,
    )


def get_upload_dir(settings: SettingsDep) -> Path:
    return Path(settings.upload_dir)


SimulatorDep = Annotated[ConsumerSimulator, Depends(get_simulator)]
ScreenshotterDep = Annotated[Screenshotter, Depends(get_screenshotter)]
UploadDirDep = Annotated[Path, Depends(get_upload_dir)]
