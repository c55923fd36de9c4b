"""
AI-simulated consumers and the other OpenAI-backed helpers.

``ConsumerSimulator`` wraps an ``openai.OpenAI`` client.  The prompt
builders and the reply parser are plain functions so they can be tested
without a client.
"""

from __future__ import annotations

import base64
import json
import re
from typing import Any, Optional, Sequence

from openai import OpenAI, OpenAIError
from pydantic import ValidationError

from shelfsim.answers import validate_generated_demographics
from shelfsim.config import Settings
from shelfsim.errors import AIResponseError, InvalidAnswerError
from shelfsim.logging_config import get_logger
from shelfsim.models import ThemeVariant
from shelfsim.schemas import HSL_PATTERN, PricedOption, ProductIdea

logger = get_logger(__name__)

CHOICE_SYSTEM_PROMPT = (
    "You are a consumer behavior expert. Select the product number that best "
    "matches the persona's preferences and constraints."
)

CHOICE_BY_ID_SYSTEM_PROMPT = (
    "You are a consumer behavior expert. Analyze the consumer profile and products, "
    "then select the product that best matches their preferences."
)

DEMOGRAPHICS_SYSTEM_PROMPT = """You are a demographic analysis expert. Given a natural language description of a demographic profile, generate appropriate answers to the provided screening questions. Output must be a valid JSON object where each key is the question ID and the value is the appropriate answer based on the question type:
- For SINGLE: choose one option from the provided options
- For MULTIPLE: return an array of selected options
- For NUMBER: return a number
- For TEXT: return a text string

Example: If given questions are:
Question 1: "Age" (NUMBER)
Question 2: "Preferred shopping locations" (MULTIPLE) Options: ["Mall", "Online", "Local store"]

And description is "Young urban shopper", output should be:
{"1": 25, "2": ["Mall", "Online"]}"""

PRODUCT_IDEAS_SYSTEM_PROMPT = """You are a product ideation expert that only responds in JSON format. Generate product ideas for the brand provided based on the prompt.
Return your response in this exact JSON format:
{
  "products": [
    {
      "brand_name": "string",
      "product_name": "string",
      "description": "string",
      "benefits": "string",
      "cost": 0.00,
      "list_price": 0.00,
      "image_prompt": "string"
    }
  ]
}"""

COLORS_SYSTEM_PROMPT = (
    "You are a design expert specializing in color analysis. Analyze the provided "
    "website screenshot and extract its primary color scheme and overall style variant. "
    "Respond in JSON format with the following structure: { primary: string (HSL color), "
    "variant: 'professional' | 'tint' | 'vibrant' }. The primary color should be in HSL "
    "format (e.g., 'hsl(222.2 47.4% 11.2%)'). Choose the variant based on the website's "
    "overall design approach."
)

IMAGE_ERROR = "Failed to generate image"

# ------------------------------------------------------------------
# Prompt builders and reply parsing
# ------------------------------------------------------------------

def _describe_option(option: PricedOption, label: str) -> str:
    return (
        f"{label}:\n"
        f"Brand: {option.brand_name}\n"
        f"Name: {option.product_name}\n"
        f"Description: {option.description or ''}\n"
        f"Price: {option.formatted_price}\n"
    )


def build_choice_prompt(
    demographics: Any,
    demand_spaces: Any,
    options: Sequence[PricedOption],
    *,
    single_demand_space: bool = False,
) -> str:
    """Numbered-product prompt; the model must answer with 1..len(options)."""
    if not isinstance(demographics, str):
        demographics = json.dumps(demographics)
    if not isinstance(demand_spaces, str):
        demand_spaces = json.dumps(demand_spaces)

    header = "You are simulating a consumer with the following characteristics:\n"
    header += f"Demographics: {demographics}\n"
    if single_demand_space:
        header += f"Demand Space: {demand_spaces}\n\n"
        header += (
            "The Demand Space is the place or occasion where the consumer is "
            "considering purchasing a product.\n"
        )
    else:
        header += f"Demand Spaces: {demand_spaces}\n"

    products = "\n".join(
        _describe_option(option, f"Product {i + 1}") for i, option in enumerate(options)
    )
    return (
        f"{header}\nYou are presented with the following products:\n{products}\n"
        f"Based on this consumer's profile and the product options, which product "
        f"(respond with just the product number 1-{len(options)}) would they be most "
        f"likely to purchase? Consider their demographics, preferences, and the value "
        f"proposition of each product."
    )


def build_choice_by_id_prompt(
    demographics: Any,
    demand_spaces: Any,
    options: Sequence[PricedOption],
) -> str:
    """Prompt asking for the chosen product's database id."""
    products = "\n".join(
        f"Product: {o.brand_name} {o.product_name}\n"
        f"Description: {o.description or ''}\n"
        f"Price: {o.formatted_price}\n"
        f"ID: {o.product_id}\n"
        for o in options
    )
    return (
        "You are simulating a consumer with the following profile:\n"
        f"Demographics: {json.dumps(demographics)}\n"
        f"Demand Spaces: {json.dumps(demand_spaces)}\n\n"
        f"You are presented with the following products:\n{products}\n"
        "Based on this consumer's profile and the product options, which product would "
        "they choose?\nRespond with only the product ID number of the chosen product. "
        'For example: "5" for product with ID 5.'
    )


def parse_choice_index(reply: Optional[str], n_options: int) -> Optional[int]:
    """0-based option index from the first integer in *reply*, or None."""
    if not reply:
        return None
    match = re.search(r"\d+", reply)
    if not match:
        return None
    index = int(match.group()) - 1
    if index < 0 or index >= n_options:
        return None
    return index


def build_questions_prompt(questions: Sequence[Any]) -> str:
    lines = []
    for q in questions:
        answer_type = getattr(q.answer_type, "value", q.answer_type)
        line = f'Question {q.id}: "{q.question}" ({answer_type})'
        if q.options:
            line += f" Options: {json.dumps(q.options)}"
        lines.append(line)
    return "\n".join(lines)


def _load_json(content: str) -> Any:
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise AIResponseError(f"Model returned invalid JSON: {exc}") from exc


# ------------------------------------------------------------------
# Simulator
# ------------------------------------------------------------------

class ConsumerSimulator:
    """
    OpenAI-backed consumer simulation and content generation.

    Parameters
    ----------
    client : OpenAI
        Configured OpenAI client.
    model : str
        Chat model used for choices, demographics, ideation and color analysis.
    image_model : str
        Model used for product image generation.
    """

    def __init__(
        self,
        client: OpenAI,
        *,
        model: str = "gpt-4o",
        image_model: str = "dall-e-3",
        temperature: float = 0.7,
    ) -> None:
        self._client = client
        self.model = model
        self.image_model = image_model
        self.temperature = temperature

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConsumerSimulator":
        config = settings.openai
        try:
            client = OpenAI(api_key=config.api_key, base_url=config.base_url)
        except OpenAIError as exc:
            raise AIResponseError(f"OpenAI client is not configured: {exc}") from exc
        return cls(client, model=config.model, image_model=config.image_model)

    # ------------------------------------------------------------------
    # Chat plumbing
    # ------------------------------------------------------------------

    def _complete(
        self,
        messages: list[dict[str, Any]],
        *,
        json_mode: bool = False,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        kwargs: dict[str, Any] = {"model": self.model, "messages": messages}
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens
        if temperature is not None:
            kwargs["temperature"] = temperature

        try:
            completion = self._client.chat.completions.create(**kwargs)
        except OpenAIError as exc:
            raise AIResponseError(f"OpenAI request failed: {exc}") from exc

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise AIResponseError("Empty response from model")
        return content

    def _choose_index(self, system: str, prompt: str, options: Sequence[PricedOption]) -> Optional[int]:
        logger.debug("Choice prompt: %s", prompt)
        try:
            reply = self._complete(
                [{"role": "system", "content": system}, {"role": "user", "content": prompt}],
                max_tokens=10,
                temperature=self.temperature,
            )
        except AIResponseError as exc:
            logger.error("Error getting simulated choice: %s", exc)
            return None
        logger.debug("Choice reply: %s", reply)

        index = parse_choice_index(reply, len(options))
        if index is None:
            logger.warning("Unusable choice reply %r for %d options", reply, len(options))
            return None
        return options[index].product_id

    # ------------------------------------------------------------------
    # Choices
    # ------------------------------------------------------------------

    def choose_product(self, persona: Any, options: Sequence[PricedOption]) -> Optional[int]:
        """
        Ask the model which option *persona* would buy.

        Returns the chosen product id, or None when the call fails or the
        reply does not name a listed option.
        """
        prompt = build_choice_prompt(persona.demographics, persona.demand_spaces, options)
        return self._choose_index(CHOICE_SYSTEM_PROMPT, prompt, options)

    def choose_for_demand_space(
        self,
        screener: Optional[str],
        demand_space: str,
        options: Sequence[PricedOption],
    ) -> Optional[int]:
        """Same contract as ``choose_product``, framed by one demand space."""
        prompt = build_choice_prompt(
            screener or "", demand_space, options, single_demand_space=True
        )
        return self._choose_index(CHOICE_SYSTEM_PROMPT, prompt, options)

    def choose_by_id(self, persona: Any, options: Sequence[PricedOption]) -> int:
        """
        Ask for the chosen product's id directly.

        Raises ``AIResponseError`` if the reply is not the id of a listed product.
        """
        prompt = build_choice_by_id_prompt(persona.demographics, persona.demand_spaces, options)
        logger.info("Sending product selection prompt for persona %s", persona.id)
        reply = self._complete(
            [
                {"role": "system", "content": CHOICE_BY_ID_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ]
        )
        logger.info("Received selection reply %r for persona %s", reply, persona.id)

        try:
            product_id = int(reply.strip())
        except ValueError as exc:
            raise AIResponseError(f"Invalid product ID from model: {reply}") from exc
        if product_id not in {o.product_id for o in options}:
            raise AIResponseError(f"Selected product ID {product_id} not found in lineup")
        return product_id

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_demographics(self, description: str, questions: Sequence[Any]) -> dict[str, Any]:
        """Answer every screening question for a described demographic."""
        content = self._complete(
            [
                {"role": "system", "content": DEMOGRAPHICS_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": (
                        f"Available questions:\n{build_questions_prompt(questions)}\n\n"
                        f"Demographic description: {description}"
                    ),
                },
            ],
            json_mode=True,
        )
        demographics = _load_json(content)
        if not isinstance(demographics, dict):
            raise AIResponseError("Demographics must be a JSON object")
        try:
            return validate_generated_demographics(questions, demographics)
        except InvalidAnswerError as exc:
            raise AIResponseError(exc.message) from exc

    def generate_product_ideas(self, brand_name: str, prompt: str) -> list[ProductIdea]:
        """Product concepts for *brand_name*, each with a generated image when possible."""
        content = self._complete(
            [
                {"role": "system", "content": PRODUCT_IDEAS_SYSTEM_PROMPT},
                {"role": "user", "content": f"Brand: {brand_name}\n\n{prompt}"},
            ],
            json_mode=True,
        )
        data = _load_json(content)
        if not isinstance(data, dict) or not isinstance(data.get("products"), list):
            raise AIResponseError("Invalid response format from model")

        ideas: list[ProductIdea] = []
        for raw in data["products"]:
            try:
                idea = ProductIdea.model_validate(raw)
            except ValidationError as exc:
                raise AIResponseError(f"Invalid product idea from model: {exc}") from exc
            if not idea.brand_name:
                idea.brand_name = brand_name
            try:
                image = self._client.images.generate(
                    model=self.image_model,
                    prompt=idea.image_prompt or f"{idea.brand_name} {idea.product_name}",
                    size="1024x1024",
                    quality="standard",
                    n=1,
                )
                idea.image_url = image.data[0].url
            except OpenAIError as exc:
                logger.error("Error generating image for %s: %s", idea.product_name, exc)
                idea.image_url = None
                idea.image_error = IMAGE_ERROR
            ideas.append(idea)
        return ideas

    def edit_image(self, image: bytes, mask: bytes, prompt: str, *, n: int = 4) -> list[str]:
        """Inpaint *image* where *mask* is transparent; returns remote URLs."""
        try:
            response = self._client.images.edit(
                image=("image.png", image, "image/png"),
                mask=("mask.png", mask, "image/png"),
                prompt=prompt,
                n=n,
                size="1024x1024",
            )
        except OpenAIError as exc:
            raise AIResponseError(f"Image edit failed: {exc}") from exc

        urls = [item.url for item in (response.data or []) if item.url]
        if not urls:
            raise AIResponseError("Failed to generate images")
        return urls

    def analyze_colors(self, screenshot_png: bytes) -> tuple[str, ThemeVariant]:
        """Primary HSL color and style variant of a website screenshot."""
        encoded = base64.b64encode(screenshot_png).decode("ascii")
        content = self._complete(
            [
                {"role": "system", "content": COLORS_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": (
                                "Analyze this image in detail and provide the primary color "
                                "and style variant that best matches its design."
                            ),
                        },
                        {
                            "type": "image_url",
                            "image_url": {"url": f"data:image/png;base64,{encoded}"},
                        },
                    ],
                },
            ],
            json_mode=True,
        )
        result = _load_json(content)
        primary = result.get("primary") if isinstance(result, dict) else None
        variant = result.get("variant") if isinstance(result, dict) else None
        if not (isinstance(primary, str) and primary and isinstance(variant, str) and variant):
            raise AIResponseError("Invalid response format from model")
        if not HSL_PATTERN.match(primary):
            raise AIResponseError(f"Primary color is not an HSL value: {primary}")
        try:
            return primary, ThemeVariant(variant)
        except ValueError as exc:
            raise AIResponseError(f"Unknown theme variant: {variant}") from exc
