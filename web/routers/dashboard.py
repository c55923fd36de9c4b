"""Dashboard counters."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from shelfsim import services
from web.deps import CurrentUser, SessionDep

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/dashboard/stats")
def dashboard_stats(session: SessionDep, _user: CurrentUser) -> dict[str, Any]:
    return services.dashboard_stats(session)
