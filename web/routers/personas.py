"""Personas: AI-simulated consumer profiles."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException
from sqlmodel import col, select

from shelfsim import services
from shelfsim.logging_config import get_logger
from shelfsim.models import Persona, RecordStatus, SurveyResponse
from shelfsim.schemas import (
    GenerateDemographicsRequest,
    PersonaCreate,
    PersonaRead,
    PersonaSimulateRequest,
    PersonaUpdate,
    QuestionRead,
)
from web.deps import CurrentUser, SessionDep, SimulatorDep

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["personas"])


@router.get("/personas", response_model=list[PersonaRead])
def list_personas(session: SessionDep, _user: CurrentUser) -> list[Persona]:
    return list(session.exec(
        select(Persona)
        .where(Persona.status == RecordStatus.ACTIVE)
        .order_by(col(Persona.created_at).desc(), col(Persona.id).desc())
    ))


@router.post("/personas", response_model=PersonaRead)
def create_persona(body: PersonaCreate, session: SessionDep, user: CurrentUser) -> Persona:
    persona = Persona(
        name=body.name,
        demographic_screener=body.demographic_screener,
        demographics=body.demographics,
        demand_spaces=body.demand_spaces,
        questions=[q.model_dump(mode="json") for q in body.questions],
        created_by=user.id,
    )
    session.add(persona)
    session.commit()
    session.refresh(persona)
    logger.info("New persona created: %s", persona.id)
    return persona


@router.post("/personas/generate-demographics")
def generate_demographics(
    body: GenerateDemographicsRequest,
    session: SessionDep,
    simulator: SimulatorDep,
    _user: CurrentUser,
) -> dict[str, Any]:
    """Answer every active screening question for a described demographic."""
    questions = services.active_questions(session)
    if not questions:
        raise HTTPException(status_code=400, detail="No active questions found in the system")

    demographics = simulator.generate_demographics(body.description, questions)
    return {
        "demographics": demographics,
        "questions": [QuestionRead.model_validate(q).model_dump(mode="json") for q in questions],
    }


@router.put("/personas/{persona_id}", response_model=PersonaRead)
def update_persona(
    persona_id: int,
    body: PersonaUpdate,
    session: SessionDep,
    user: CurrentUser,
) -> Persona:
    persona = services.get_owned_persona(session, persona_id, user.id)
    for key, value in body.model_dump(exclude_unset=True).items():
        if key in ("name", "status") and value is None:
            continue
        setattr(persona, key, value)
    session.add(persona)
    session.commit()
    session.refresh(persona)
    logger.info("Persona %s updated", persona_id)
    return persona


@router.put("/personas/{persona_id}/delete", response_model=PersonaRead)
def delete_persona(persona_id: int, session: SessionDep, user: CurrentUser) -> Persona:
    persona = services.get_owned_persona(session, persona_id, user.id)
    persona.status = RecordStatus.DELETED
    session.add(persona)
    session.commit()
    session.refresh(persona)
    logger.info("Persona %s deleted", persona_id)
    return persona


@router.post("/personas/{persona_id}/simulate", response_model=list[SurveyResponse])
def simulate_persona(
    persona_id: int,
    body: PersonaSimulateRequest,
    session: SessionDep,
    simulator: SimulatorDep,
    user: CurrentUser,
) -> list[SurveyResponse]:
    persona = services.get_owned_persona(session, persona_id, user.id)
    shelf = services.get_owned_shelf(session, body.shelf_id, user.id)
    return services.simulate_persona_variants(session, persona, shelf.id, simulator)
