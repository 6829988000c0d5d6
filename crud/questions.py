# crud/questions.py
import logging
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import cast
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Query, Session

from crud.errors import NotFound, ValidationFailed
from models import Answer, Category, Question, QUESTION_STATUSES
from schemas import Identity, QuestionCreate, MAX_TAGS, TAG_MAX
from utils.text import extract_hashtags, normalize_tags

logger = logging.getLogger("qa_engine.questions")

CATEGORY_SORTS = ("recent", "popular", "resolved")
DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def get_category(db: Session, category_id: int) -> Category:
    category = db.query(Category).filter(Category.id == category_id).first()
    if not category:
        raise NotFound("Category not found")
    return category


def question_query(db: Session, question_id: int, for_update: bool = False) -> Query:
    qry = db.query(Question).filter(Question.id == question_id)
    if for_update:
        # row lock held until commit/rollback; SQLite ignores it and serializes writers itself
        qry = qry.with_for_update().populate_existing()
    return qry


def get_question_row(db: Session, question_id: int, for_update: bool = False) -> Question:
    question = question_query(db, question_id, for_update=for_update).first()
    if not question:
        raise NotFound("Question not found")
    return question


def tag_filter(dialect_name: str, tag: str):
    """SQL clause matching `tag` inside Question.tags, or None where the backend has no JSON containment."""
    if dialect_name == "postgresql":
        return cast(Question.tags, JSONB).contains([tag])
    return None


def _page(limit: int, offset: int) -> Tuple[int, int]:
    return max(1, min(int(limit), MAX_PAGE_SIZE)), max(0, int(offset))


def create_question(db: Session, payload: QuestionCreate, identity: Optional[Identity] = None) -> Question:
    identity = identity or Identity()
    if payload.category_id is not None:
        get_category(db, payload.category_id)

    # explicit tags first, then #hashtags written in the body
    hashtags = [h for h in extract_hashtags(payload.description) if len(h) <= TAG_MAX]
    tags = normalize_tags(list(payload.tags) + hashtags)[:MAX_TAGS]

    now = datetime.utcnow()
    question = Question(
        title=payload.title,
        description=payload.description,
        author_name=payload.author_name or identity.display_name,
        account_id=identity.account_id,
        category_id=payload.category_id,
        tags=tags,
        images=list(payload.images),
        status="open",
        answer_count=0,
        view_count=0,
        is_pinned=False,
        created_at=now,
        last_activity_at=now,
    )
    db.add(question)
    db.commit()
    db.refresh(question)
    logger.info("Question %s created (category=%s, account=%s)", question.id, question.category_id, question.account_id)
    return question


def list_questions(
    db: Session,
    status: Optional[str] = None,
    category_id: Optional[int] = None,
    tag: Optional[str] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> List[Question]:
    if status is not None and status not in QUESTION_STATUSES:
        raise ValidationFailed(f"Invalid status '{status}'")
    limit, offset = _page(limit, offset)

    qry = db.query(Question)
    if status:
        qry = qry.filter(Question.status == status)
    if category_id is not None:
        qry = qry.filter(Question.category_id == category_id)
    qry = qry.order_by(Question.created_at.desc(), Question.id.desc())

    wanted = normalize_tags([tag]) if tag else []
    if wanted:
        clause = tag_filter(db.get_bind().dialect.name, wanted[0])
        if clause is None:
            matching = [q for q in qry.all() if wanted[0] in (q.tags or [])]
            return matching[offset:offset + limit]
        qry = qry.filter(clause)

    return qry.offset(offset).limit(limit).all()


def list_questions_by_category(
    db: Session,
    category_id: int,
    sort: str = "recent",
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> List[Question]:
    if sort not in CATEGORY_SORTS:
        raise ValidationFailed(f"Invalid sort '{sort}' (expected one of {', '.join(CATEGORY_SORTS)})")
    get_category(db, category_id)
    limit, offset = _page(limit, offset)

    qry = db.query(Question).filter(Question.category_id == category_id)
    if sort == "popular":
        qry = qry.order_by(Question.answer_count.desc(), Question.last_activity_at.desc(), Question.id.desc())
    else:
        if sort == "resolved":
            qry = qry.filter(Question.status == "resolved")
        qry = qry.order_by(Question.is_pinned.desc(), Question.last_activity_at.desc(), Question.id.desc())

    return qry.offset(offset).limit(limit).all()


def get_question(db: Session, question_id: int) -> Tuple[Question, List[Answer]]:
    """Question plus its answers: solution first, then most upvoted, then oldest."""
    question = get_question_row(db, question_id)
    answers = (
        db.query(Answer)
        .filter(Answer.question_id == question_id)
        .order_by(
            Answer.is_solution.desc(),
            Answer.upvote_count.desc(),
            Answer.created_at.asc(),
            Answer.id.asc(),
        )
        .all()
    )
    return question, answers


def increment_view_count(db: Session, question_id: int) -> int:
    # read-then-write: may lose increments under concurrency, it is a display counter
    question = get_question_row(db, question_id)
    question.view_count = (question.view_count or 0) + 1
    db.commit()
    return question.view_count
