"""Screening questions."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException

from shelfsim import services
from shelfsim.logging_config import get_logger
from shelfsim.models import Question, RecordStatus
from shelfsim.schemas import QuestionCreate, QuestionRead, QuestionUpdate
from web.deps import CurrentUser, SessionDep

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["questions"])


def _get_question(session: SessionDep, question_id: int) -> Question:
    question = session.get(Question, question_id)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")
    return question


@router.get("/questions", response_model=list[QuestionRead])
def list_questions(session: SessionDep, _user: CurrentUser) -> list[Question]:
    return services.active_questions(session)


@router.post("/questions", response_model=QuestionRead)
def create_question(body: QuestionCreate, session: SessionDep, user: CurrentUser) -> Question:
    question = Question(
        question=body.question,
        answer_type=body.answer_type,
        options=body.options,
        created_by=user.id,
    )
    session.add(question)
    session.commit()
    session.refresh(question)
    logger.info("Question %s created", question.id)
    return question


@router.put("/questions/{question_id}", response_model=QuestionRead)
def update_question(
    question_id: int,
    body: QuestionUpdate,
    session: SessionDep,
    _user: CurrentUser,
) -> Question:
    question = _get_question(session, question_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        if key in ("question", "answer_type") and value is None:
            continue
        setattr(question, key, value)
    session.add(question)
    session.commit()
    session.refresh(question)
    return question


@router.delete("/questions/{question_id}")
def delete_question(question_id: int, session: SessionDep, _user: CurrentUser) -> dict[str, str]:
    question = _get_question(session, question_id)
    question.status = RecordStatus.DELETED
    session.add(question)
    session.commit()
    logger.info("Question %s deleted", question_id)
    return {"message": "Question deleted successfully"}
