"""
Shelf survey engine: the state machine that drives one human respondent.

The engine is **frontend-agnostic**.  A frontend (CLI, web, etc.) interacts
with the engine through a simple loop:

    engine = SurveyEngine(definition)
    while not engine.is_complete:
        question = engine.get_current_question()
        answer = <frontend collects answer>
        engine.submit_answer(answer)
    results = engine.get_results()

Screening questions come first (persona screeners, then shelf questions),
followed by one choice card per product combination.
"""

from __future__ import annotations

from typing import Any, Mapping

from shelfsim.answers import coerce_form_answer, validate_answer
from shelfsim.errors import InvalidAnswerError
from shelfsim.schemas import (
    ChoiceQuestion,
    DemographicQuestion,
    Selection,
    SurveyDefinition,
    SurveyStage,
    SurveyStep,
)

DEMOGRAPHIC_PREFIX = "demo_"


def split_answers(raw: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split survey answers into (persona screener answers, shelf question answers).

    Screener keys lose their ``demo_`` prefix.
    """
    demographics: dict[str, Any] = {}
    answers: dict[str, Any] = {}
    for key, value in raw.items():
        if key.startswith(DEMOGRAPHIC_PREFIX):
            demographics[key[len(DEMOGRAPHIC_PREFIX):]] = value
        else:
            answers[key] = value
    return demographics, answers


class SurveyEngine:
    """
    Stateful shelf survey engine.

    Parameters
    ----------
    definition : SurveyDefinition
        Questions and choice cards for one shelf variant.
    """

    def __init__(self, definition: SurveyDefinition) -> None:
        self._definition = definition
        self._stage = SurveyStage.INTRO
        self._question_index = 0
        self._card_index = 0
        self._answers: dict[str, Any] = {}
        self._selections: list[Selection] = []
        if not self.total_steps:
            self._stage = SurveyStage.COMPLETE

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def definition(self) -> SurveyDefinition:
        return self._definition

    @property
    def stage(self) -> SurveyStage:
        return self._stage

    @property
    def is_complete(self) -> bool:
        return self._stage == SurveyStage.COMPLETE

    @property
    def total_steps(self) -> int:
        return len(self._definition.questions) + len(self._definition.product_combinations)

    @property
    def progress(self) -> int:
        """Percentage of questions and cards answered so far."""
        if self.is_complete or not self.total_steps:
            return 100
        done = self._question_index + self._card_index
        return int(done / self.total_steps * 100)

    def get_current_question(self) -> SurveyStep:
        """Return the next question the frontend should display."""
        if self._stage == SurveyStage.INTRO:
            self._advance_from_intro()

        if self._stage == SurveyStage.DEMOGRAPHICS:
            questions = self._definition.questions
            return DemographicQuestion(
                question=questions[self._question_index],
                number=self._question_index + 1,
                total=len(questions),
            )

        if self._stage == SurveyStage.CHOICE:
            cards = self._definition.product_combinations
            return ChoiceQuestion(
                card=cards[self._card_index],
                number=self._card_index + 1,
                total=len(cards),
            )

        raise RuntimeError(f"No question in stage: {self._stage}")

    def submit_answer(self, answer: Any) -> None:
        """
        Process the respondent's answer and advance the state.

        The expected *answer* type depends on the current stage:
        - DEMOGRAPHICS: value matching the question's answer type (form
          strings are coerced for NUMBER and MULTIPLE questions)
        - CHOICE: int (product id of the chosen option)
        """
        if self._stage == SurveyStage.DEMOGRAPHICS:
            self._handle_demographic_answer(answer)
        elif self._stage == SurveyStage.CHOICE:
            self._handle_choice_answer(answer)
        else:
            raise RuntimeError(f"Cannot submit answer in stage: {self._stage}")

    def get_results(self) -> dict[str, Any]:
        """
        Return the collected answers after completion.

        ``demographics`` holds the persona screener answers keyed by bare
        question id; ``answers`` holds the shelf question answers.
        """
        if not self.is_complete:
            raise RuntimeError("Survey is not yet complete")

        demographics, answers = split_answers(self._answers)
        return {
            "variant_id": self._definition.variant_id,
            "demographics": demographics,
            "answers": answers,
            "raw_answers": dict(self._answers),
            "selections": list(self._selections),
        }

    # ------------------------------------------------------------------
    # Stage transitions
    # ------------------------------------------------------------------

    def _advance_from_intro(self) -> None:
        if self._definition.questions:
            self._stage = SurveyStage.DEMOGRAPHICS
        else:
            self._enter_choice()

    def _enter_choice(self) -> None:
        if self._definition.product_combinations:
            self._stage = SurveyStage.CHOICE
        else:
            self._stage = SurveyStage.COMPLETE

    # ------------------------------------------------------------------
    # Demographics stage
    # ------------------------------------------------------------------

    def _handle_demographic_answer(self, answer: Any) -> None:
        question = self._definition.questions[self._question_index]
        value = coerce_form_answer(question.type, answer)
        self._answers[question.id] = validate_answer(
            question.type, question.options, value, label=f"question '{question.question}'"
        )
        self._question_index += 1

        if self._question_index >= len(self._definition.questions):
            self._enter_choice()

    # ------------------------------------------------------------------
    # Choice stage
    # ------------------------------------------------------------------

    def _handle_choice_answer(self, product_id: Any) -> None:
        card = self._definition.product_combinations[self._card_index]
        try:
            product_id = int(product_id)
        except (TypeError, ValueError) as exc:
            raise InvalidAnswerError(f"Not a product id: {product_id!r}") from exc
        chosen = next((o for o in card.options if o.product_id == product_id), None)
        if chosen is None:
            raise InvalidAnswerError(
                f"Product {product_id} is not on card {card.id}. "
                f"Valid products: {[o.product_id for o in card.options]}"
            )

        self._selections.append(Selection(product_id=chosen.product_id, price=chosen.price))
        self._card_index += 1

        if self._card_index >= len(self._definition.product_combinations):
            self._stage = SurveyStage.COMPLETE
