"""Tests for loading demo data from the seed file."""

from __future__ import annotations

import pytest
from sqlmodel import select

from cli.seed import DEFAULT_SEED_FILE, SeedData, seed_database
from shelfsim.errors import InvalidAnswerError, InvalidConfigurationError
from shelfsim.models import ConjointConfiguration, Persona, Product, Question, Shelf


@pytest.fixture
def seed_data() -> SeedData:
    return SeedData.from_yaml(DEFAULT_SEED_FILE)


class TestSeed:
    def test_loads_demo_catalogue(self, session, seed_data):
        counts = seed_database(session, seed_data)
        assert counts == {"questions": 4, "products": 3, "personas": 2, "shelves": 1}

        questions = {q.question: q for q in session.exec(select(Question))}
        age = questions["What is your age?"]
        parent = session.exec(select(Persona).where(Persona.name == "Busy Parent")).one()
        assert parent.demographics[str(age.id)] == 38
        assert [q["id"] for q in parent.questions][0] == age.id

        config = session.exec(select(ConjointConfiguration)).one()
        assert config.price_levels == 3
        assert config.combination_count == 27

    def test_second_run_is_a_no_op(self, session, seed_data):
        seed_database(session, seed_data)
        assert seed_database(session, seed_data) == {
            "questions": 0, "products": 0, "personas": 0, "shelves": 0,
        }

    def test_seed_user_can_log_in(self, session, seed_data, client):
        seed_database(session, seed_data)
        response = client.post(
            "/api/login", json={"username": "admin@example.com", "password": "888888"}
        )
        assert response.status_code == 200
        assert client.get("/api/shelves").json()[0]["project_name"] == "Salty Snacks Q3"

    def test_unknown_reference(self, session, seed_data):
        seed_data.shelves[0].products.append("missing")
        with pytest.raises(InvalidConfigurationError, match="unknown product 'missing'"):
            seed_database(session, seed_data)

    def test_failed_seed_leaves_nothing_behind(self, session, seed_data):
        broken = seed_data.model_copy(deep=True)
        broken.shelves.append(broken.shelves[0].model_copy(update={"products": ["crunch", "missing"]}))

        with pytest.raises(InvalidConfigurationError, match="unknown product 'missing'"):
            seed_database(session, broken)
        assert session.exec(select(Product)).all() == []
        assert session.exec(select(Shelf)).all() == []

        counts = seed_database(session, seed_data)
        assert counts == {"questions": 4, "products": 3, "personas": 2, "shelves": 1}

    def test_invalid_price_levels_are_rejected_before_writing(self, session, seed_data):
        seed_data.shelves[0].price_levels = 9
        with pytest.raises(InvalidConfigurationError, match="Price levels must be between 2 and 5"):
            seed_database(session, seed_data)
        assert session.exec(select(Product)).all() == []

    def test_invalid_persona_answer(self, session, seed_data):
        seed_data.personas[0].demographics["household"] = "12"
        with pytest.raises(InvalidAnswerError):
            seed_database(session, seed_data)
        assert session.exec(select(Persona)).all() == []
