"""
Site themes generated from a website's colors.

``/api/themes/generate`` screenshots the site, asks the model for its
primary color and style, and stores the result; ``/api/themes/apply``
writes the chosen theme to the theme file served at ``/theme.json``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastapi import APIRouter, HTTPException
from sqlmodel import col, select

from shelfsim.logging_config import get_logger
from shelfsim.models import Theme
from shelfsim.schemas import ThemeApplyRequest, ThemeGenerateRequest, ThemeRead
from shelfsim.themes import apply_theme, theme_name_from_url
from web.deps import CurrentUser, ScreenshotterDep, SessionDep, SettingsDep, SimulatorDep

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["themes"])


@router.get("/themes", response_model=list[ThemeRead])
def list_themes(session: SessionDep, _user: CurrentUser) -> list[Theme]:
    return list(session.exec(
        select(Theme).order_by(col(Theme.created_at).desc(), col(Theme.id).desc())
    ))


@router.post("/themes/generate", response_model=ThemeRead)
def generate_theme(
    body: ThemeGenerateRequest,
    session: SessionDep,
    simulator: SimulatorDep,
    screenshot: ScreenshotterDep,
    user: CurrentUser,
) -> Theme:
    name = theme_name_from_url(body.url)
    png = screenshot(body.url)
    logger.info("Analyzing colors of %s", body.url)
    primary, variant = simulator.analyze_colors(png)
    logger.info("Color analysis of %s complete: %s (%s)", name, primary, variant.value)

    theme = Theme(name=name, primary=primary, variant=variant, created_by=user.id)
    session.add(theme)
    session.commit()
    session.refresh(theme)
    return theme


@router.post("/themes/apply")
def apply(
    body: ThemeApplyRequest,
    session: SessionDep,
    settings: SettingsDep,
    _user: CurrentUser,
) -> dict[str, Any]:
    theme = session.get(Theme, body.theme_id)
    if theme is None:
        raise HTTPException(status_code=404, detail="Theme not found")

    config = apply_theme(Path(settings.theme_path), theme.primary, theme.variant.value)
    return {"message": "Theme applied successfully", "theme": config}
