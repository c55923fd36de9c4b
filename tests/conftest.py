"""
Shared fixtures.

Every test gets its own in-memory SQLite database (``StaticPool`` so all
sessions share one connection), an app built on it, and a fake consumer
simulator in place of the OpenAI-backed one.
"""

from __future__ import annotations

from typing import Any, Optional, Sequence

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from shelfsim.config import Settings
from shelfsim.db import create_db_engine, init_db
from shelfsim.errors import AIResponseError
from shelfsim.models import ThemeVariant
from shelfsim.schemas import PricedOption, ProductIdea
from web.app import create_app
from web.deps import get_screenshotter, get_simulator

TEST_USER = {"username": "tester@example.com", "password": "secret123"}


class FakeSimulator:
    """Deterministic stand-in for ``ConsumerSimulator``.

    Conjoint cards: the cheapest option wins.  Per-variant simulation picks
    the last option; demand-space checks pick the first.
    """

    def __init__(self) -> None:
        self.fail = False
        self.demographics: dict[str, Any] = {}
        self.calls: list[tuple[str, Any]] = []

    def choose_product(self, persona: Any, options: Sequence[PricedOption]) -> Optional[int]:
        self.calls.append(("choose_product", persona.id))
        if self.fail:
            return None
        return min(options, key=lambda o: o.price).product_id

    def choose_for_demand_space(
        self, screener: Optional[str], demand_space: str, options: Sequence[PricedOption]
    ) -> Optional[int]:
        self.calls.append(("choose_for_demand_space", demand_space))
        return options[0].product_id

    def choose_by_id(self, persona: Any, options: Sequence[PricedOption]) -> int:
        self.calls.append(("choose_by_id", persona.id))
        if self.fail:
            raise AIResponseError("Invalid product ID from model: maybe")
        return options[-1].product_id

    def generate_demographics(self, description: str, questions: Sequence[Any]) -> dict[str, Any]:
        self.calls.append(("generate_demographics", description))
        return dict(self.demographics)

    def generate_product_ideas(self, brand_name: str, prompt: str) -> list[ProductIdea]:
        self.calls.append(("generate_product_ideas", brand_name))
        return [
            ProductIdea(
                brand_name=brand_name,
                product_name="Idea One",
                description=prompt,
                benefits="Fresh",
                cost=1.0,
                list_price=2.5,
                image_prompt="a snack",
                image_url="https://images.example.com/idea.png",
            )
        ]

    def edit_image(self, image: bytes, mask: bytes, prompt: str, *, n: int = 4) -> list[str]:
        self.calls.append(("edit_image", prompt))
        return ["https://images.example.com/a.png", "https://images.example.com/b.png"]

    def analyze_colors(self, screenshot_png: bytes) -> tuple[str, ThemeVariant]:
        self.calls.append(("analyze_colors", len(screenshot_png)))
        return "hsl(12 80% 45%)", ThemeVariant.VIBRANT


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url="sqlite://",
        upload_dir=str(tmp_path / "uploads"),
        theme_path=str(tmp_path / "theme.json"),
        max_upload_bytes=1024,
        max_choice_tasks=0,
        openai_api_key=None,
    )


@pytest.fixture
def engine(settings):
    engine = create_db_engine(settings.database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def simulator() -> FakeSimulator:
    return FakeSimulator()


@pytest.fixture
def screenshots() -> list[str]:
    """URLs the fake screenshotter was asked to render."""
    return []


@pytest.fixture
def app(settings, engine, simulator, screenshots):
    app = create_app(settings, engine=engine, seed=7)

    def fake_screenshot(url: str) -> bytes:
        screenshots.append(url)
        return b"\x89PNG fake screenshot"

    app.dependency_overrides[get_simulator] = lambda: simulator
    app.dependency_overrides[get_screenshotter] = lambda: fake_screenshot
    return app


@pytest.fixture
def client(app) -> TestClient:
    """Anonymous client."""
    return TestClient(app)


def register(client: TestClient, username: str, password: str = "secret123") -> dict[str, Any]:
    response = client.post("/api/register", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["user"]


@pytest.fixture
def auth_client(app) -> TestClient:
    """Client logged in as ``TEST_USER``."""
    client = TestClient(app)
    register(client, TEST_USER["username"], TEST_USER["password"])
    return client


@pytest.fixture
def other_client(app) -> TestClient:
    """A second logged-in user."""
    client = TestClient(app)
    register(client, "someone.else@example.com")
    return client


# ---------------------------------------------------------------------------
# API builders
# ---------------------------------------------------------------------------


@pytest.fixture
def make_product(auth_client):
    def _make(**overrides: Any) -> dict[str, Any]:
        body = {"brand_name": "Acme", "product_name": "Widget", "list_price": 10.0, **overrides}
        response = auth_client.post("/api/products", json=body)
        assert response.status_code == 200, response.text
        return response.json()

    return _make


@pytest.fixture
def make_question(auth_client):
    def _make(**overrides: Any) -> dict[str, Any]:
        body = {"question": "What is your age?", "answer_type": "NUMBER", **overrides}
        response = auth_client.post("/api/questions", json=body)
        assert response.status_code == 200, response.text
        return response.json()

    return _make


@pytest.fixture
def make_persona(auth_client):
    def _make(**overrides: Any) -> dict[str, Any]:
        body = {
            "name": "Busy Parent",
            "demographic_screener": "Parent of two",
            "demographics": {},
            "demand_spaces": ["Lunchbox", "Movie night"],
            "questions": [],
            **overrides,
        }
        response = auth_client.post("/api/personas", json=body)
        assert response.status_code == 200, response.text
        return response.json()

    return _make


@pytest.fixture
def make_shelf(auth_client):
    def _make(
        products: Sequence[int] = (),
        personas: Sequence[int] = (),
        questions: Sequence[int] = (),
        project_name: str = "Snack Aisle",
    ) -> dict[str, Any]:
        response = auth_client.post("/api/shelves", json={"project_name": project_name})
        assert response.status_code == 200, response.text
        shelf = response.json()
        for kind, ids in (("products", products), ("personas", personas), ("questions", questions)):
            if ids:
                linked = auth_client.post(
                    f"/api/shelves/{shelf['id']}/{kind}", json={f"{kind[:-1]}_ids": list(ids)}
                )
                assert linked.status_code == 200, linked.text
        return shelf

    return _make


@pytest.fixture
def survey_shelf(make_product, make_question, make_persona, make_shelf) -> dict[str, Any]:
    """A shelf with two priced products, one persona with a screener and one shelf question."""
    cheap = make_product(product_name="Chips", list_price=10.0, price_levels=3)
    pricey = make_product(product_name="Nuts", list_price=20.0, price_levels=3)
    age = make_question(question="What is your age?", answer_type="NUMBER")
    why = make_question(question="Why do you buy snacks?", answer_type="TEXT")
    persona = make_persona(
        demographics={str(age["id"]): 35},
        questions=[{
            "id": age["id"],
            "question": age["question"],
            "answer_type": "NUMBER",
            "options": None,
        }],
    )
    shelf = make_shelf(
        products=[cheap["id"], pricey["id"]],
        personas=[persona["id"]],
        questions=[why["id"]],
    )
    return {
        "shelf": shelf,
        "products": [cheap, pricey],
        "persona": persona,
        "age": age,
        "why": why,
    }
