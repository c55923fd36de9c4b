"""
Load demo data from a YAML file.

The file names a login user plus optional questions, products, personas
and shelves.  Questions and products carry a ``key`` that personas and
shelves refer to; personas are referred to by name.  The user is created
once; the catalogue is only loaded into a database without products.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field
from rich.console import Console
from sqlmodel import Session, func, select

from shelfsim.answers import validate_answer
from shelfsim.auth import hash_password
from shelfsim.config import get_settings
from shelfsim.db import create_db_engine, init_db
from shelfsim.design import conjoint_configuration_metrics, dollars_to_cents
from shelfsim.errors import InvalidConfigurationError, ShelfSimError
from shelfsim.logging_config import get_logger
from shelfsim.models import (
    ConjointConfiguration,
    Persona,
    Product,
    Question,
    Shelf,
    ShelfPersona,
    ShelfProduct,
    ShelfQuestion,
    User,
    UserStatus,
)
from shelfsim.schemas import Credentials, PersonaQuestion, ProductCreate, QuestionCreate

logger = get_logger(__name__)

console = Console()

DEFAULT_SEED_FILE = Path(__file__).resolve().parent.parent / "configs" / "seed.yaml"

# ---------------------------------------------------------------------------
# Seed file schema
# ---------------------------------------------------------------------------


class SeedUser(Credentials):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class SeedQuestion(QuestionCreate):
    key: str


class SeedProduct(ProductCreate):
    key: str


class SeedPersona(BaseModel):
    name: str
    demographic_screener: Optional[str] = None
    demand_spaces: list[str] = Field(default_factory=list)
    demographics: dict[str, Any] = Field(
        default_factory=dict, description="Answers keyed by question key"
    )


class SeedShelf(BaseModel):
    project_name: str
    description: Optional[str] = None
    price_levels: Optional[int] = None
    products: list[str] = Field(default_factory=list)
    personas: list[str] = Field(default_factory=list)
    questions: list[str] = Field(default_factory=list)


class SeedData(BaseModel):
    user: SeedUser
    questions: list[SeedQuestion] = Field(default_factory=list)
    products: list[SeedProduct] = Field(default_factory=list)
    personas: list[SeedPersona] = Field(default_factory=list)
    shelves: list[SeedShelf] = Field(default_factory=list)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "SeedData":
        """Load seed data from a YAML file."""
        path = Path(path)
        with path.open() as f:
            data = yaml.safe_load(f)
        return cls.model_validate(data)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _lookup(table: dict[str, Any], key: str, kind: str) -> Any:
    if key not in table:
        raise InvalidConfigurationError(f"Seed file refers to unknown {kind} '{key}'")
    return table[key]


def _check_catalogue(data: SeedData) -> dict[str, dict[str, Any]]:
    """
    Resolve every key and validate every answer and price level up front.

    Returns the validated persona answers, keyed by persona name then
    question key.  Nothing is written.
    """
    questions = {q.key: q for q in data.questions}
    products = {p.key: p for p in data.products}
    answers: dict[str, dict[str, Any]] = {}

    for persona in data.personas:
        answers[persona.name] = {}
        for key, value in persona.demographics.items():
            question = _lookup(questions, key, "question")
            answers[persona.name][key] = validate_answer(
                question.answer_type, question.options, value,
                label=f"persona '{persona.name}' question '{key}'",
            )

    for shelf in data.shelves:
        for key in shelf.products:
            _lookup(products, key, "product")
        for name in shelf.personas:
            _lookup(answers, name, "persona")
        for key in shelf.questions:
            _lookup(questions, key, "question")
        if shelf.price_levels is not None:
            conjoint_configuration_metrics(shelf.price_levels, len(shelf.products))
    return answers


def _seed_user(session: Session, data: SeedUser) -> User:
    user = session.exec(select(User).where(User.username == data.username)).first()
    if user is not None:
        logger.info("Seed user %s already exists", data.username)
        return user

    user = User(
        username=data.username,
        password=hash_password(data.password),
        first_name=data.first_name,
        last_name=data.last_name,
        status=UserStatus.ACTIVE,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("Created seed user %s", user.username)
    return user


def _seed_catalogue(session: Session, data: SeedData, user: User) -> dict[str, int]:
    answers = _check_catalogue(data)

    questions: dict[str, Question] = {}
    for q in data.questions:
        question = Question(
            question=q.question,
            answer_type=q.answer_type,
            options=q.options,
            created_by=user.id,
        )
        session.add(question)
        questions[q.key] = question

    products: dict[str, Product] = {}
    for p in data.products:
        fields = p.model_dump(exclude={"key"}, exclude_none=True)
        for name in ("list_price", "cost", "low_price", "high_price"):
            if name in fields:
                fields[name] = dollars_to_cents(fields[name])
        product = Product(**fields)
        session.add(product)
        products[p.key] = product
    session.flush()

    personas: dict[str, Persona] = {}
    for p in data.personas:
        answered = [questions[key] for key in answers[p.name]]
        persona = Persona(
            name=p.name,
            demographic_screener=p.demographic_screener,
            demand_spaces=p.demand_spaces,
            demographics={
                str(questions[key].id): value for key, value in answers[p.name].items()
            },
            questions=[
                PersonaQuestion(
                    id=q.id,
                    question=q.question,
                    answer_type=q.answer_type,
                    options=q.options,
                ).model_dump(mode="json")
                for q in answered
            ],
            created_by=user.id,
        )
        session.add(persona)
        personas[p.name] = persona
    session.flush()

    for s in data.shelves:
        shelf = Shelf(project_name=s.project_name, description=s.description, created_by=user.id)
        session.add(shelf)
        session.flush()
        session.add_all(
            ShelfProduct(shelf_id=shelf.id, product_id=products[key].id) for key in s.products
        )
        session.add_all(
            ShelfPersona(shelf_id=shelf.id, persona_id=personas[name].id) for name in s.personas
        )
        session.add_all(
            ShelfQuestion(shelf_id=shelf.id, question_id=questions[key].id) for key in s.questions
        )
        if s.price_levels is not None:
            count, duration = conjoint_configuration_metrics(s.price_levels, len(s.products))
            session.add(ConjointConfiguration(
                shelf_id=shelf.id,
                price_levels=s.price_levels,
                combination_count=count,
                estimated_duration=duration,
                created_by=user.id,
            ))

    session.commit()
    return {
        "questions": len(questions),
        "products": len(products),
        "personas": len(personas),
        "shelves": len(data.shelves),
    }


def seed_database(session: Session, data: SeedData) -> dict[str, int]:
    """
    Load *data* into the database behind *session*.

    The catalogue is written in one transaction: a bad seed file leaves no
    rows behind.  Returns how many rows of each kind were created.
    """
    user = _seed_user(session, data.user)
    existing = session.exec(select(func.count()).select_from(Product)).one()
    if existing:
        logger.info("Database already has %d products; skipping catalogue", existing)
        return {"questions": 0, "products": 0, "personas": 0, "shelves": 0}
    try:
        counts = _seed_catalogue(session, data, user)
    except ShelfSimError:
        session.rollback()
        raise
    logger.info("Seeded %s", counts)
    return counts


def run_seed(path: Optional[Path] = None, *, database_url: Optional[str] = None) -> dict[str, int]:
    """Seed the configured database from *path* (default ``configs/seed.yaml``)."""
    path = path or DEFAULT_SEED_FILE
    data = SeedData.from_yaml(path)
    engine = create_db_engine(database_url or get_settings().database_url)
    init_db(engine)

    with Session(engine) as session:
        counts = seed_database(session, data)

    console.print(f"[green]Seeded from {path}[/green]")
    for kind, n in counts.items():
        console.print(f"  {kind}: {n}")
    console.print(f"Log in as [bold]{data.user.username}[/bold]")
    return counts
