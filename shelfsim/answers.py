"""
Answer validation for screening questions.

Used for AI-generated persona demographics (every answer must fit its
question) and for human survey submissions.
"""

# import modules
from __future__ import annotations

import numbers
from typing import Any, Mapping, Optional, Sequence

from shelfsim.errors import InvalidAnswerError
from shelfsim.models import AnswerType

# ------------------------------------------------------------------
# Single answers
# ------------------------------------------------------------------

def validate_answer(
    answer_type: AnswerType | str,
    options: Optional[Sequence[str]],
    value: Any,
    *,
    label: str = "question",
) -> Any:
    """
    Check *value* against the question's answer type and return it.

    - SINGLE: one of *options* (anything when the question has none).
    - MULTIPLE: a list whose items are all in *options*.
    - NUMBER: an int or float (booleans are rejected).
    - TEXT: a string.
    """
    kind = AnswerType(answer_type)

    if kind is AnswerType.SINGLE:
        if options is not None and value not in options:
            raise InvalidAnswerError(
                f"Invalid answer for {label}: answer must be one of the provided options"
            )
        return value

    if kind is AnswerType.MULTIPLE:
        if not isinstance(value, list):
            raise InvalidAnswerError(f"Invalid answer for {label}: answer must be an array")
        if options is not None:
            invalid = [v for v in value if v not in options]
            if invalid:
                raise InvalidAnswerError(
                    f"Invalid options for {label}: "
                    f"{', '.join(map(str, invalid))} are not valid options"
                )
        return value

    if kind is AnswerType.NUMBER:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise InvalidAnswerError(f"Invalid answer for {label}: answer must be a number")
        return value

    if not isinstance(value, str):
        raise InvalidAnswerError(f"Invalid answer for {label}: answer must be a string")
    return value


# ------------------------------------------------------------------
# Answer sets
# ------------------------------------------------------------------

def validate_generated_demographics(
    questions: Sequence[Any],
    demographics: Mapping[str, Any],
) -> dict[str, Any]:
    """
    Validate a ``{question_id: answer}`` mapping produced by the model.

    Every key must be the id of one of *questions* (objects with ``id``,
    ``answer_type`` and ``options``) and every answer must fit its question.
    """
    by_id = {str(q.id): q for q in questions}
    validated: dict[str, Any] = {}
    for key, value in demographics.items():
        question = by_id.get(str(key))
        if question is None:
            raise InvalidAnswerError(f"Invalid question ID in response: {key}")
        validated[str(key)] = validate_answer(
            question.answer_type, question.options, value, label=f"question {key}"
        )
    return validated


def coerce_form_answer(answer_type: AnswerType | str, raw: Any) -> Any:
    """Convert an HTML form / prompt answer into the type validate_answer expects."""
    kind = AnswerType(answer_type)
    if kind is AnswerType.NUMBER and isinstance(raw, str):
        try:
            number = float(raw)
        except ValueError as exc:
            raise InvalidAnswerError("Answer must be a number") from exc
        return int(number) if number.is_integer() else number
    if kind is AnswerType.MULTIPLE and isinstance(raw, str):
        return [raw]
    return raw
