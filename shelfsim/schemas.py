"""
Pydantic models that are not database tables.

Two groups live here: the survey definitions the engine and the frontends
pass around (priced product options, choice cards, survey questions), and
the request/response bodies of the HTTP API.  API money fields are dollars;
the database stores cents.
"""

# Import modules
from __future__ import annotations

import enum
import re
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shelfsim.models import AnswerType, RecordStatus, ThemeVariant, UserStatus

HSL_PATTERN = re.compile(r"^hsl\(\d+(\.\d+)?(\s+\d+(\.\d+)?%){2}\)$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# ------------------------------------------------------------------
# Survey definitions
# ------------------------------------------------------------------

class ShelfProductInfo(BaseModel):
    """The pricing-relevant view of a product placed on a shelf (cents)."""

    id: int
    brand_name: str
    product_name: str
    description: Optional[str] = None
    benefits: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    list_price: int
    low_price: Optional[int] = None
    high_price: Optional[int] = None
    price_levels: Optional[int] = None


class PricedOption(BaseModel):
    """One product shown at one price on a choice card."""

    id: str = ""
    product_id: int
    brand_name: str
    product_name: str
    description: Optional[str] = None
    benefits: list[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    price: int
    formatted_price: str = ""

    def model_post_init(self, _context: Any) -> None:
        if not self.id:
            self.id = f"{self.product_id}_{self.price}"
        if not self.formatted_price:
            self.formatted_price = f"${self.price / 100:.2f}"


class ProductCard(BaseModel):
    """A choice task: the respondent picks one of the options."""

    id: int
    options: list[PricedOption]


class SurveyQuestion(BaseModel):
    """A screening question as shown to a human respondent.

    Persona screener questions carry ids of the form ``demo_<question id>``;
    shelf questions use the bare question id.
    """

    id: str
    question: str
    type: AnswerType
    options: Optional[list[str]] = None


class SurveyDefinition(BaseModel):
    variant_id: int
    shelf_id: int
    project_name: str = ""
    questions: list[SurveyQuestion] = Field(default_factory=list)
    product_combinations: list[ProductCard] = Field(default_factory=list)


# ------------------------------------------------------------------
# Survey engine stages and question types
# ------------------------------------------------------------------

class SurveyStage(str, enum.Enum):
    """The stages a human respondent progresses through."""

    INTRO = "intro"
    DEMOGRAPHICS = "demographics"
    CHOICE = "choice"
    COMPLETE = "complete"


class DemographicQuestion(BaseModel):
    """Ask one screening question."""

    stage: str = "demographics"
    question: SurveyQuestion
    number: int
    total: int
    prompt: str = ""

    def model_post_init(self, _context: Any) -> None:
        if not self.prompt:
            self.prompt = self.question.question


class ChoiceQuestion(BaseModel):
    """Show a card of priced products; respondent picks one."""

    stage: str = "choice"
    card: ProductCard
    number: int
    total: int
    prompt: str = "Which of these products would you buy?"


SurveyStep = DemographicQuestion | ChoiceQuestion


# ------------------------------------------------------------------
# Auth and users
# ------------------------------------------------------------------

class Credentials(BaseModel):
    username: str
    password: str = Field(min_length=6)

    @field_validator("username")
    @classmethod
    def _email(cls, value: str) -> str:
        if not EMAIL_PATTERN.match(value):
            raise ValueError("Please enter a valid email address")
        return value


class RegisterRequest(Credentials):
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class UserRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    status: UserStatus
    created_at: datetime


class UserCreate(BaseModel):
    username: str = Field(pattern=EMAIL_PATTERN.pattern)
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class SetPasswordRequest(BaseModel):
    password: str = Field(min_length=6)


# ------------------------------------------------------------------
# Products
# ------------------------------------------------------------------

class ProductFields(BaseModel):
    """Editable product fields in dollars."""

    brand_name: Optional[str] = None
    product_name: Optional[str] = None
    description: Optional[str] = None
    list_price: Optional[float] = Field(default=None, ge=0)
    benefits: Optional[str] = None
    cost: Optional[float] = Field(default=None, ge=0)
    low_price: Optional[float] = Field(default=None, ge=0)
    high_price: Optional[float] = Field(default=None, ge=0)
    price_levels: Optional[int] = Field(default=None, ge=2, le=5)
    pack_size: Optional[str] = None
    volume_size: Optional[str] = None
    new_product: Optional[str] = None

    @field_validator("new_product")
    @classmethod
    def _yes_or_no(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in ("yes", "no"):
            raise ValueError("new_product must be 'yes' or 'no'")
        return value


class ProductCreate(ProductFields):
    brand_name: str
    product_name: str
    list_price: float = Field(ge=0)


class ProductUpdate(ProductFields):
    pass


class ProductImageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    ordinal: int


class ProductRead(ProductFields):
    id: int
    brand_name: str
    product_name: str
    list_price: float
    status: RecordStatus
    created_at: datetime
    images: list[ProductImageRead] = Field(default_factory=list)


class PriceConfigRequest(BaseModel):
    low_price: float = Field(gt=0)
    high_price: float = Field(gt=0)
    price_levels: int


class ProductIdeaRequest(BaseModel):
    brand_name: str = Field(min_length=1)
    prompt: str = Field(min_length=1)


class ProductIdea(BaseModel):
    brand_name: str = ""
    product_name: str = ""
    description: str = ""
    benefits: str = ""
    cost: Optional[float] = None
    list_price: Optional[float] = None
    image_prompt: str = ""
    image_url: Optional[str] = None
    image_error: Optional[str] = None


class EditImageRequest(BaseModel):
    image: str = Field(min_length=1, description="Base64 encoded PNG")
    mask: str = Field(min_length=1, description="Base64 encoded PNG mask")
    prompt: str = Field(min_length=1)


class DownloadImageRequest(BaseModel):
    image_url: str


# ------------------------------------------------------------------
# Shelves
# ------------------------------------------------------------------

class ShelfCreate(BaseModel):
    project_name: str = Field(min_length=1)
    description: Optional[str] = None


class ShelfMetrics(BaseModel):
    total_combinations: int
    minimum_sample_size: int


class ShelfRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    project_name: str
    description: Optional[str] = None
    status: RecordStatus
    created_at: datetime
    created_by: Optional[int] = None
    metrics: Optional[ShelfMetrics] = None


class ProductIdsRequest(BaseModel):
    product_ids: list[int]


class PersonaIdsRequest(BaseModel):
    persona_ids: list[int]


class QuestionIdsRequest(BaseModel):
    question_ids: list[int]


class VariantPriceRange(BaseModel):
    product_id: int
    min_price_percent: float
    max_price_percent: float


class VariantConfigRequest(BaseModel):
    products: list[VariantPriceRange]


class ConjointConfigRequest(BaseModel):
    price_levels: int


# ------------------------------------------------------------------
# Personas and questions
# ------------------------------------------------------------------

class PersonaQuestion(BaseModel):
    id: int
    question: str
    answer_type: AnswerType
    options: Optional[list[str]] = None


class PersonaCreate(BaseModel):
    name: str = Field(min_length=1)
    demographic_screener: Optional[str] = None
    demographics: dict[str, Any] = Field(default_factory=dict)
    demand_spaces: list[str] = Field(default_factory=list)
    questions: list[PersonaQuestion] = Field(default_factory=list)


class PersonaUpdate(BaseModel):
    name: Optional[str] = None
    demographic_screener: Optional[str] = None
    demand_spaces: Optional[list[str]] = None
    status: Optional[RecordStatus] = None


class PersonaRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    demographic_screener: Optional[str] = None
    demographics: dict[str, Any] = Field(default_factory=dict)
    demand_spaces: list[str] = Field(default_factory=list)
    questions: list[PersonaQuestion] = Field(default_factory=list)
    status: RecordStatus
    created_at: datetime
    created_by: Optional[int] = None


class PersonaSimulateRequest(BaseModel):
    shelf_id: int


class GenerateDemographicsRequest(BaseModel):
    description: str = Field(min_length=1)


class QuestionCreate(BaseModel):
    question: str = Field(min_length=1)
    answer_type: AnswerType
    options: Optional[list[str]] = None


class QuestionUpdate(BaseModel):
    question: Optional[str] = None
    answer_type: Optional[AnswerType] = None
    options: Optional[list[str]] = None


class QuestionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    question: str
    answer_type: AnswerType
    options: Optional[list[str]] = None
    status: RecordStatus
    created_at: datetime
    created_by: Optional[int] = None


# ------------------------------------------------------------------
# Surveys and simulation
# ------------------------------------------------------------------

class Selection(BaseModel):
    product_id: int
    price: Optional[int] = None


class SurveySubmission(BaseModel):
    """Answers posted by a human respondent.

    ``selections`` accepts bare product ids as well as
    ``{"product_id", "price"}`` objects.
    """

    demographics: dict[str, Any] = Field(default_factory=dict)
    selections: list[Selection] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _wrap_bare_ids(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("selections"), list):
            data = dict(data)
            data["selections"] = [
                {"product_id": s} if isinstance(s, int) else s
                for s in data["selections"]
            ]
        return data


class RunSurveyRequest(BaseModel):
    run_name: str = ""


class SimulatePreferencesRequest(BaseModel):
    persona_id: int
    product_ids: list[int] = Field(min_length=1)


# ------------------------------------------------------------------
# Themes
# ------------------------------------------------------------------

class ThemeGenerateRequest(BaseModel):
    url: str = Field(min_length=1)


class ThemeApplyRequest(BaseModel):
    theme_id: int


class ThemeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    primary: str
    variant: ThemeVariant
    created_at: datetime
    created_by: Optional[int] = None


# ------------------------------------------------------------------
# Composite views
# ------------------------------------------------------------------

class ShelfDetail(ShelfRead):
    products: list[ProductRead] = Field(default_factory=list)
    personas: list[PersonaRead] = Field(default_factory=list)
    questions: list[QuestionRead] = Field(default_factory=list)
