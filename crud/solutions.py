# crud/solutions.py
import logging
from datetime import datetime
from typing import Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crud.answers import get_answer_row
from crud.errors import InconsistentState, NotAuthorized, NotFound, ValidationFailed
from crud.questions import get_question_row
from models import Answer, Question
from schemas import Identity

logger = logging.getLogger("qa_engine.solutions")


def require_privileged(identity: Optional[Identity]) -> Identity:
    if identity is None or not identity.is_privileged:
        raise NotAuthorized("Not authorized")
    return identity


def mark_as_solution(db: Session, answer_id: int, question_id: int, identity: Optional[Identity]) -> Tuple[Question, Answer]:
    """
    open -> resolved, with `answer_id` as the only accepted answer.

    Clearing the siblings, flagging the answer and resolving the question are a
    single transaction, taken under a row lock on the question so concurrent
    calls for the same topic run one after the other. Re-running on an already
    resolved question repeats the whole sequence, so the latest successful call
    decides the solution.
    """
    require_privileged(identity)

    answer = get_answer_row(db, answer_id)
    question = get_question_row(db, question_id, for_update=True)
    if answer.question_id != question.id:
        db.rollback()
        raise NotFound("Answer not found for this question")
    if question.status == "converted":
        db.rollback()
        raise ValidationFailed("Question was already converted into an article")

    try:
        db.execute(
            update(Answer)
            .where(Answer.question_id == question.id, Answer.id != answer.id, Answer.is_solution.is_(True))
            .values(is_solution=False)
            .execution_options(synchronize_session="fetch")
        )
        answer.is_solution = True
        if question.status != "resolved":
            question.status = "resolved"
        if question.resolved_at is None:
            question.resolved_at = datetime.utcnow()
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("mark_as_solution failed for question %s / answer %s", question_id, answer_id, exc_info=True)
        raise InconsistentState("Could not mark the solution, please retry") from e

    db.refresh(question)
    db.refresh(answer)
    logger.info("Answer %s accepted as solution of question %s by %s", answer.id, question.id, identity.account_id)
    return question, answer
