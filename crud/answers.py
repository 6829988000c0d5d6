# crud/answers.py
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crud.errors import NotFound, ValidationFailed
from crud.questions import get_question_row
from models import Answer, Question
from schemas import AnswerCreate, Identity
from utils.text import extract_mentions, unique

logger = logging.getLogger("qa_engine.answers")


def get_answer_row(db: Session, answer_id: int) -> Answer:
    answer = db.query(Answer).filter(Answer.id == answer_id).first()
    if not answer:
        raise NotFound("Answer not found")
    return answer


def bump_question_activity(db: Session, question_id: int, answer_delta: int = 0) -> None:
    """Row-level update of the denormalized counter and the activity stamp (no commit)."""
    values = {"last_activity_at": datetime.utcnow()}
    if answer_delta:
        values["answer_count"] = Question.answer_count + answer_delta
    db.execute(
        update(Question)
        .where(Question.id == question_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


def create_answer(db: Session, question_id: int, payload: AnswerCreate, identity: Optional[Identity] = None) -> Answer:
    identity = identity or Identity()
    question = get_question_row(db, question_id)
    if question.status == "converted":
        raise ValidationFailed("This topic was converted into an article and no longer accepts answers")

    mentions = unique([m.strip().lstrip("@") for m in payload.mentions] + extract_mentions(payload.content))

    answer = Answer(
        question_id=question.id,
        content=payload.content,
        author_name=payload.author_name or identity.display_name,
        account_id=identity.account_id,
        images=list(payload.images),
        mentions=mentions,
        is_solution=False,
        upvote_count=0,
        created_at=datetime.utcnow(),
    )
    db.add(answer)
    db.commit()
    db.refresh(answer)

    # second step: denormalized counter. A failure here leaves a stale count, repaired by reconcile.
    try:
        bump_question_activity(db, question.id, answer_delta=1)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.warning("answer_count update failed for question %s after answer %s", question.id, answer.id, exc_info=True)

    db.expire(question)
    logger.info("Answer %s added to question %s", answer.id, question.id)
    return answer
