"""Shelf setup: projects, their products/personas/questions, conjoint configuration."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter
from sqlmodel import col, select

from shelfsim import services
from shelfsim.logging_config import get_logger
from shelfsim.models import (
    ConjointConfiguration,
    RecordStatus,
    Shelf,
    ShelfPersona,
    ShelfProduct,
    ShelfQuestion,
    ShelfVariant,
)
from shelfsim.schemas import (
    ConjointConfigRequest,
    PersonaIdsRequest,
    PersonaRead,
    ProductIdsRequest,
    ProductRead,
    QuestionIdsRequest,
    QuestionRead,
    ShelfCreate,
    ShelfDetail,
    ShelfRead,
    VariantConfigRequest,
)
from web.deps import CurrentUser, SessionDep

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["shelves"])


def _shelf_read(session: Any, shelf: Shelf) -> ShelfRead:
    read = ShelfRead.model_validate(shelf)
    read.metrics = services.shelf_metrics(session, shelf.id)
    return read


# ---------------------------------------------------------------------
# Shelves
# ---------------------------------------------------------------------

@router.get("/shelves", response_model=list[ShelfRead])
def list_shelves(session: SessionDep, user: CurrentUser) -> list[ShelfRead]:
    shelves = session.exec(
        select(Shelf)
        .where(Shelf.created_by == user.id, Shelf.status == RecordStatus.ACTIVE)
        .order_by(col(Shelf.created_at).desc(), col(Shelf.id).desc())
    )
    return [_shelf_read(session, shelf) for shelf in shelves]


@router.post("/shelves", response_model=ShelfRead)
def create_shelf(body: ShelfCreate, session: SessionDep, user: CurrentUser) -> ShelfRead:
    shelf = Shelf(project_name=body.project_name, description=body.description, created_by=user.id)
    session.add(shelf)
    session.commit()
    session.refresh(shelf)
    logger.info("User %s created shelf %s", user.id, shelf.id)
    return _shelf_read(session, shelf)


@router.get("/shelves/{shelf_id}", response_model=ShelfDetail)
def get_shelf(shelf_id: int, session: SessionDep, user: CurrentUser) -> ShelfDetail:
    shelf = services.get_owned_shelf(session, shelf_id, user.id)
    return ShelfDetail(
        **_shelf_read(session, shelf).model_dump(),
        products=[services.product_read(session, p) for p in services.shelf_products(session, shelf_id)],
        personas=[PersonaRead.model_validate(p) for p in services.shelf_personas(session, shelf_id)],
        questions=[QuestionRead.model_validate(q) for q in services.shelf_questions(session, shelf_id)],
    )


@router.delete("/shelves/{shelf_id}")
def delete_shelf(shelf_id: int, session: SessionDep, user: CurrentUser) -> dict[str, bool]:
    shelf = services.get_owned_shelf(session, shelf_id, user.id)
    shelf.status = RecordStatus.DELETED
    session.add(shelf)
    session.commit()
    logger.info("Shelf %s deleted", shelf_id)
    return {"success": True}


# ---------------------------------------------------------------------
# Associations
# ---------------------------------------------------------------------

@router.post("/shelves/{shelf_id}/products", response_model=list[ShelfProduct])
def set_shelf_products(
    shelf_id: int,
    body: ProductIdsRequest,
    session: SessionDep,
    user: CurrentUser,
) -> list[ShelfProduct]:
    services.get_owned_shelf(session, shelf_id, user.id)
    return services.replace_shelf_links(session, shelf_id, ShelfProduct, "product_id", body.product_ids)


@router.get("/shelves/{shelf_id}/products", response_model=list[ProductRead])
def get_shelf_products(shelf_id: int, session: SessionDep, user: CurrentUser) -> list[ProductRead]:
    services.get_owned_shelf(session, shelf_id, user.id)
    return [services.product_read(session, p) for p in services.shelf_products(session, shelf_id)]


@router.post("/shelves/{shelf_id}/personas", response_model=list[ShelfPersona])
def set_shelf_personas(
    shelf_id: int,
    body: PersonaIdsRequest,
    session: SessionDep,
    user: CurrentUser,
) -> list[ShelfPersona]:
    services.get_owned_shelf(session, shelf_id, user.id)
    return services.replace_shelf_links(session, shelf_id, ShelfPersona, "persona_id", body.persona_ids)


@router.post("/shelves/{shelf_id}/questions", response_model=list[ShelfQuestion])
def set_shelf_questions(
    shelf_id: int,
    body: QuestionIdsRequest,
    session: SessionDep,
    user: CurrentUser,
) -> list[ShelfQuestion]:
    services.get_owned_shelf(session, shelf_id, user.id)
    return services.replace_shelf_links(session, shelf_id, ShelfQuestion, "question_id", body.question_ids)


# ---------------------------------------------------------------------
# Pricing setup
# ---------------------------------------------------------------------

@router.post("/shelves/{shelf_id}/variants", response_model=list[ShelfVariant])
def configure_variants(
    shelf_id: int,
    body: VariantConfigRequest,
    session: SessionDep,
    user: CurrentUser,
) -> list[ShelfVariant]:
    shelf = services.get_owned_shelf(session, shelf_id, user.id)
    return services.configure_price_variants(session, shelf, body.products)


@router.get(
    "/shelves/{shelf_id}/conjoint-configuration",
    response_model=Optional[ConjointConfiguration],
)
def get_conjoint_configuration(
    shelf_id: int,
    session: SessionDep,
    user: CurrentUser,
) -> Optional[ConjointConfiguration]:
    services.get_owned_shelf(session, shelf_id, user.id)
    return services.latest_configuration(session, shelf_id)


@router.post("/shelves/{shelf_id}/conjoint-configuration", response_model=ConjointConfiguration)
def save_conjoint_configuration(
    shelf_id: int,
    body: ConjointConfigRequest,
    session: SessionDep,
    user: CurrentUser,
) -> ConjointConfiguration:
    shelf = services.get_owned_shelf(session, shelf_id, user.id)
    return services.save_conjoint_configuration(session, shelf, body.price_levels, user.id)


@router.get("/panelists/{kind}")
def list_panelists(kind: str, session: SessionDep, user: CurrentUser) -> list[dict[str, Any]]:
    return services.list_panelists(session, kind, user.id)
