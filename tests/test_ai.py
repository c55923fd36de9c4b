"""Tests for prompt building, reply parsing and the OpenAI-backed simulator."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Optional

import pytest
from openai import OpenAIError

from shelfsim.ai import (
    IMAGE_ERROR,
    ConsumerSimulator,
    build_choice_by_id_prompt,
    build_choice_prompt,
    build_questions_prompt,
    parse_choice_index,
)
from shelfsim.errors import AIResponseError
from shelfsim.models import AnswerType, ThemeVariant
from shelfsim.schemas import PricedOption


def _option(product_id: int, price: int, name: str = "Chips") -> PricedOption:
    return PricedOption(
        product_id=product_id,
        brand_name="Acme",
        product_name=name,
        description="Crunchy",
        price=price,
    )


OPTIONS = [_option(4, 349), _option(7, 499, "Nuts"), _option(9, 299, "Pretzels")]
PERSONA = SimpleNamespace(id=1, demographics={"1": 30}, demand_spaces=["Lunchbox"])


class FakeCompletions:
    def __init__(self, replies: list[Any]) -> None:
        self.replies = list(replies)
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=reply))])


class FakeImages:
    def __init__(self, urls: Optional[list[str]] = None, error: Optional[Exception] = None) -> None:
        self.urls = urls or []
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def _respond(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=[SimpleNamespace(url=url) for url in self.urls])

    generate = _respond
    edit = _respond


def _simulator(*replies: Any, images: Optional[FakeImages] = None) -> tuple[ConsumerSimulator, FakeCompletions]:
    completions = FakeCompletions(list(replies))
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions), images=images or FakeImages())
    return ConsumerSimulator(client, model="test-model"), completions


class TestReplyParsing:
    @pytest.mark.parametrize(
        "reply, expected",
        [
            ("2", 1),
            ("Product 3.", 2),
            (" 1\n", 0),
            ("0", None),
            ("4", None),
            ("none of them", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse_choice_index(self, reply, expected):
        assert parse_choice_index(reply, 3) == expected


class TestPrompts:
    def test_choice_prompt_lists_numbered_products(self):
        prompt = build_choice_prompt({"1": 30}, ["Lunchbox"], OPTIONS)
        assert 'Demographics: {"1": 30}' in prompt
        assert 'Demand Spaces: ["Lunchbox"]' in prompt
        assert "Product 1:\nBrand: Acme\nName: Chips" in prompt
        assert "Price: $4.99" in prompt
        assert "product number 1-3" in prompt

    def test_single_demand_space_prompt(self):
        prompt = build_choice_prompt("Parent of two", "Movie night", OPTIONS, single_demand_space=True)
        assert "Demographics: Parent of two" in prompt
        assert "Demand Space: Movie night" in prompt
        assert "place or occasion" in prompt

    def test_choice_by_id_prompt_shows_ids(self):
        prompt = build_choice_by_id_prompt({"1": 30}, ["Lunchbox"], OPTIONS)
        assert "ID: 7" in prompt
        assert "Product: Acme Nuts" in prompt

    def test_questions_prompt(self):
        questions = [
            SimpleNamespace(id=1, question="Age", answer_type=AnswerType.NUMBER, options=None),
            SimpleNamespace(id=2, question="Where?", answer_type="MULTIPLE", options=["Mall"]),
        ]
        assert build_questions_prompt(questions) == (
            'Question 1: "Age" (NUMBER)\n'
            'Question 2: "Where?" (MULTIPLE) Options: ["Mall"]'
        )


class TestChoices:
    def test_choose_product_maps_number_to_id(self):
        simulator, completions = _simulator("2")
        assert simulator.choose_product(PERSONA, OPTIONS) == 7
        call = completions.calls[0]
        assert call["model"] == "test-model"
        assert call["max_tokens"] == 10
        assert call["messages"][0]["role"] == "system"

    def test_choose_product_out_of_range(self):
        simulator, _ = _simulator("7")
        assert simulator.choose_product(PERSONA, OPTIONS) is None

    def test_choose_product_api_error(self):
        simulator, _ = _simulator(OpenAIError("rate limited"))
        assert simulator.choose_product(PERSONA, OPTIONS) is None

    def test_choose_for_demand_space(self):
        simulator, completions = _simulator("3")
        assert simulator.choose_for_demand_space("Parent", "Lunchbox", OPTIONS) == 9
        assert "Demand Space: Lunchbox" in completions.calls[0]["messages"][1]["content"]

    def test_choose_by_id(self):
        simulator, _ = _simulator(" 9 ")
        assert simulator.choose_by_id(PERSONA, OPTIONS) == 9

    @pytest.mark.parametrize("reply", ["nine", "42"])
    def test_choose_by_id_rejects_bad_reply(self, reply):
        simulator, _ = _simulator(reply)
        with pytest.raises(AIResponseError):
            simulator.choose_by_id(PERSONA, OPTIONS)

    def test_empty_reply(self):
        simulator, _ = _simulator("")
        with pytest.raises(AIResponseError, match="Empty response"):
            simulator.choose_by_id(PERSONA, OPTIONS)


class TestGeneration:
    @pytest.fixture
    def questions(self):
        return [
            SimpleNamespace(id=1, question="Age", answer_type=AnswerType.NUMBER, options=None),
            SimpleNamespace(
                id=2, question="Where?", answer_type=AnswerType.MULTIPLE, options=["Mall", "Online"]
            ),
        ]

    def test_generate_demographics(self, questions):
        simulator, completions = _simulator('{"1": 25, "2": ["Mall", "Online"]}')
        result = simulator.generate_demographics("Young urban shopper", questions)

        assert result == {"1": 25, "2": ["Mall", "Online"]}
        assert completions.calls[0]["response_format"] == {"type": "json_object"}
        assert "Young urban shopper" in completions.calls[0]["messages"][1]["content"]

    def test_generate_demographics_invalid_json(self, questions):
        simulator, _ = _simulator("not json")
        with pytest.raises(AIResponseError, match="invalid JSON"):
            simulator.generate_demographics("x", questions)

    def test_generate_demographics_invalid_answer(self, questions):
        simulator, _ = _simulator('{"2": ["Catalog"]}')
        with pytest.raises(AIResponseError, match="not valid options"):
            simulator.generate_demographics("x", questions)

    def test_generate_product_ideas(self):
        reply = '{"products": [{"product_name": "Crisps", "list_price": 2.99, "image_prompt": "crisps"}]}'
        images = FakeImages(urls=["https://img.example.com/1.png"])
        simulator, _ = _simulator(reply, images=images)

        ideas = simulator.generate_product_ideas("Acme", "salty snacks")
        assert len(ideas) == 1
        assert ideas[0].brand_name == "Acme"
        assert ideas[0].image_url == "https://img.example.com/1.png"
        assert images.calls[0]["prompt"] == "crisps"

    def test_product_idea_image_failure_is_reported(self):
        reply = '{"products": [{"brand_name": "Acme", "product_name": "Crisps"}]}'
        simulator, _ = _simulator(reply, images=FakeImages(error=OpenAIError("no images")))

        idea = simulator.generate_product_ideas("Acme", "salty snacks")[0]
        assert idea.image_url is None
        assert idea.image_error == IMAGE_ERROR

    def test_product_ideas_bad_shape(self):
        simulator, _ = _simulator('{"ideas": []}')
        with pytest.raises(AIResponseError, match="Invalid response format"):
            simulator.generate_product_ideas("Acme", "x")

    @pytest.mark.parametrize(
        "reply",
        [
            '{"products": ["just a string"]}',
            '{"products": [{"product_name": "Crisps", "cost": "cheap"}]}',
        ],
    )
    def test_malformed_product_idea(self, reply):
        images = FakeImages(urls=["https://img.example.com/1.png"])
        simulator, _ = _simulator(reply, images=images)
        with pytest.raises(AIResponseError, match="Invalid product idea"):
            simulator.generate_product_ideas("Acme", "x")
        assert images.calls == []

    def test_edit_image(self):
        images = FakeImages(urls=["https://img.example.com/a.png", "https://img.example.com/b.png"])
        simulator, _ = _simulator(images=images)
        assert simulator.edit_image(b"img", b"mask", "add a lid") == [
            "https://img.example.com/a.png",
            "https://img.example.com/b.png",
        ]
        assert images.calls[0]["n"] == 4

    def test_edit_image_without_results(self):
        simulator, _ = _simulator(images=FakeImages(urls=[]))
        with pytest.raises(AIResponseError, match="Failed to generate images"):
            simulator.edit_image(b"img", b"mask", "add a lid")


class TestColorAnalysis:
    def test_analyze_colors(self):
        simulator, completions = _simulator('{"primary": "hsl(222.2 47.4% 11.2%)", "variant": "tint"}')
        assert simulator.analyze_colors(b"png") == ("hsl(222.2 47.4% 11.2%)", ThemeVariant.TINT)
        content = completions.calls[0]["messages"][1]["content"]
        assert content[1]["image_url"]["url"].startswith("data:image/png;base64,")

    @pytest.mark.parametrize(
        "reply",
        [
            '{"primary": "#ffffff", "variant": "tint"}',
            '{"primary": "hsl(10 50% 40%)", "variant": "neon"}',
            '{"variant": "tint"}',
            '{"primary": 12, "variant": "tint"}',
            '{"primary": "hsl(10 50% 40%)", "variant": ["tint"]}',
            '["hsl(10 50% 40%)", "tint"]',
        ],
    )
    def test_analyze_colors_rejects_bad_replies(self, reply):
        simulator, _ = _simulator(reply)
        with pytest.raises(AIResponseError):
            simulator.analyze_colors(b"png")
