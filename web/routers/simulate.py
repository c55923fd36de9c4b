"""Quick persona check: which listed product does a persona buy per demand space."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from shelfsim import services
from shelfsim.schemas import SimulatePreferencesRequest
from web.deps import CurrentUser, SessionDep, SimulatorDep

router = APIRouter(prefix="/api", tags=["simulation"])


@router.post("/simulate-persona-preferences")
def simulate_persona_preferences(
    body: SimulatePreferencesRequest,
    session: SessionDep,
    simulator: SimulatorDep,
    _user: CurrentUser,
) -> list[dict[str, Any]]:
    return services.simulate_persona_preferences(
        session, body.persona_id, body.product_ids, simulator
    )
