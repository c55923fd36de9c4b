"""
Database tables for shelfsim.

Money columns hold integer cents.  JSON columns are always reassigned as a
whole so SQLAlchemy notices the change.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional

from sqlmodel import JSON, Column, DateTime, Field, SQLModel


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo anyway)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _created_at() -> Any:
    return Field(default_factory=utcnow, sa_column=Column(DateTime, nullable=False))


# ------------------------------------------------------------------
# Enumerations
# ------------------------------------------------------------------

class UserStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class RecordStatus(str, enum.Enum):
    """Soft-delete flag shared by products, shelves, questions and personas."""

    ACTIVE = "ACTIVE"
    DELETED = "DELETED"


class AnswerType(str, enum.Enum):
    SINGLE = "SINGLE"
    MULTIPLE = "MULTIPLE"
    NUMBER = "NUMBER"
    TEXT = "TEXT"


class RespondentType(str, enum.Enum):
    HUMAN = "HUMAN"
    SYNTHETIC = "SYNTHETIC"


class ThemeVariant(str, enum.Enum):
    PROFESSIONAL = "professional"
    TINT = "tint"
    VIBRANT = "vibrant"


# ------------------------------------------------------------------
# Users
# ------------------------------------------------------------------

class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, unique=True)
    password: str = ""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    status: UserStatus = UserStatus.PENDING
    password_reset_token: Optional[str] = Field(default=None, index=True)
    created_at: datetime = _created_at()


# ------------------------------------------------------------------
# Catalogue
# ------------------------------------------------------------------

class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    brand_name: str
    product_name: str
    description: Optional[str] = None
    list_price: int
    benefits: Optional[str] = None
    cost: Optional[int] = None
    low_price: Optional[int] = None
    high_price: Optional[int] = None
    price_levels: Optional[int] = None
    pack_size: Optional[str] = None
    volume_size: Optional[str] = None
    new_product: str = "yes"
    status: RecordStatus = RecordStatus.ACTIVE
    created_at: datetime = _created_at()


class ProductImage(SQLModel, table=True):
    __tablename__ = "product_images"

    id: Optional[int] = Field(default=None, primary_key=True)
    product_id: int = Field(foreign_key="products.id", index=True)
    url: str
    ordinal: int = 0
    created_at: datetime = _created_at()


class Question(SQLModel, table=True):
    __tablename__ = "questions"

    id: Optional[int] = Field(default=None, primary_key=True)
    question: str
    answer_type: AnswerType
    options: Optional[list[str]] = Field(default=None, sa_column=Column(JSON))
    status: RecordStatus = RecordStatus.ACTIVE
    created_at: datetime = _created_at()
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")


class Persona(SQLModel, table=True):
    __tablename__ = "personas"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    demographic_screener: Optional[str] = None
    demographics: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    demand_spaces: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    # Snapshot of the screening questions the demographics answer:
    # [{"id", "question", "answer_type", "options"}]
    questions: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))
    status: RecordStatus = RecordStatus.ACTIVE
    created_at: datetime = _created_at()
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")


# ------------------------------------------------------------------
# Shelves and their associations
# ------------------------------------------------------------------

class Shelf(SQLModel, table=True):
    __tablename__ = "shelves"

    id: Optional[int] = Field(default=None, primary_key=True)
    project_name: str
    description: Optional[str] = None
    status: RecordStatus = RecordStatus.ACTIVE
    created_at: datetime = _created_at()
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")


class ShelfProduct(SQLModel, table=True):
    __tablename__ = "shelf_products"

    id: Optional[int] = Field(default=None, primary_key=True)
    shelf_id: int = Field(foreign_key="shelves.id", index=True)
    product_id: int = Field(foreign_key="products.id")
    created_at: datetime = _created_at()


class ShelfPersona(SQLModel, table=True):
    __tablename__ = "shelf_personas"

    id: Optional[int] = Field(default=None, primary_key=True)
    shelf_id: int = Field(foreign_key="shelves.id", index=True)
    persona_id: int = Field(foreign_key="personas.id")
    created_at: datetime = _created_at()


class ShelfQuestion(SQLModel, table=True):
    __tablename__ = "shelf_questions"

    id: Optional[int] = Field(default=None, primary_key=True)
    shelf_id: int = Field(foreign_key="shelves.id", index=True)
    question_id: int = Field(foreign_key="questions.id")
    created_at: datetime = _created_at()


class ConjointConfiguration(SQLModel, table=True):
    __tablename__ = "conjoint_configurations"

    id: Optional[int] = Field(default=None, primary_key=True)
    shelf_id: int = Field(foreign_key="shelves.id", index=True)
    price_levels: int = 3
    combination_count: int
    estimated_duration: int  # seconds
    created_at: datetime = _created_at()
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")


class ShelfVariant(SQLModel, table=True):
    """A product lineup snapshot.  Survey links point at a variant id."""

    __tablename__ = "shelf_variants"

    id: Optional[int] = Field(default=None, primary_key=True)
    shelf_id: int = Field(foreign_key="shelves.id", index=True)
    # [{"product_id": int, "price": cents}]
    product_lineup: list[dict[str, int]] = Field(default_factory=list, sa_column=Column(JSON))
    configuration_id: Optional[int] = Field(default=None, foreign_key="conjoint_configurations.id")
    run_name: Optional[str] = None
    created_at: datetime = _created_at()


# ------------------------------------------------------------------
# Responses
# ------------------------------------------------------------------

class Respondent(SQLModel, table=True):
    __tablename__ = "respondents"

    id: Optional[int] = Field(default=None, primary_key=True)
    type: RespondentType
    persona_id: Optional[int] = Field(default=None, foreign_key="personas.id")
    demographics: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    answers: Optional[dict[str, Any]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = _created_at()


class SurveyResponse(SQLModel, table=True):
    """One product choice made by a respondent on a shelf variant."""

    __tablename__ = "responses"

    id: Optional[int] = Field(default=None, primary_key=True)
    respondent_id: int = Field(foreign_key="respondents.id", index=True)
    shelf_variant_id: int = Field(foreign_key="shelf_variants.id", index=True)
    selected_product_id: int = Field(foreign_key="products.id")
    selected_price: Optional[int] = None
    created_at: datetime = _created_at()


# ------------------------------------------------------------------
# Themes
# ------------------------------------------------------------------

class Theme(SQLModel, table=True):
    __tablename__ = "themes"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    primary: str
    variant: ThemeVariant
    created_at: datetime = _created_at()
    created_by: Optional[int] = Field(default=None, foreign_key="users.id")
