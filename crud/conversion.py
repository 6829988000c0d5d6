# crud/conversion.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from crud.errors import AlreadyConverted, InconsistentState
from crud.questions import get_category, get_question_row
from crud.solutions import require_privileged
from models import Answer, Article, Question
from schemas import Identity
from utils.text import slugify

logger = logging.getLogger("qa_engine.conversion")

MAX_SLUG_ATTEMPTS = 50


def unique_slug(db: Session, title: str) -> str:
    base = slugify(title)
    slug = base
    n = 1
    while db.query(Article.id).filter(Article.slug == slug).first() is not None:
        n += 1
        if n > MAX_SLUG_ATTEMPTS:
            raise InconsistentState(f"Could not find a free slug for '{base}'")
        slug = f"{base}-{n}"
    return slug


def article_for_question(db: Session, question_id: int) -> Optional[Article]:
    return db.query(Article).filter(Article.source_question_id == question_id).first()


def _solution_text(db: Session, question: Question) -> str:
    solution = (
        db.query(Answer.content)
        .filter(Answer.question_id == question.id, Answer.is_solution.is_(True))
        .order_by(Answer.id.asc())
        .first()
    )
    return solution[0] if solution else question.description


def _create_article(db: Session, question: Question, category_id: int) -> Article:
    article = Article(
        title=question.title,
        slug=unique_slug(db, question.title),
        category_id=category_id,
        quick_answer=_solution_text(db, question),
        steps=[],
        status="draft",
        created_at=datetime.utcnow(),
        source_question_id=question.id,
    )
    db.add(article)
    try:
        db.commit()
    except IntegrityError as e:
        # lost a race with another conversion of the same question (or the same slug)
        db.rollback()
        existing = article_for_question(db, question.id)
        if existing is None:
            raise InconsistentState("Could not create the article, please retry") from e
        logger.warning("Article for question %s already created concurrently (#%s)", question.id, existing.id)
        return existing
    db.refresh(article)
    logger.info("Article %s (%s) created from question %s", article.id, article.slug, question.id)
    return article


def _link_question(db: Session, question: Question, article: Article) -> None:
    # same lock as mark_as_solution, so a racing solution cannot overwrite "converted"
    question = get_question_row(db, question.id, for_update=True)
    question.status = "converted"
    question.converted_problem_id = article.id
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Article %s created but question %s was not updated", article.id, question.id, exc_info=True)
        raise InconsistentState(
            f"Article {article.id} was created but the topic was not marked as converted; retry to finish",
            orphaned_article_id=article.id,
        ) from e


def convert_to_article(db: Session, question_id: int, category_id: int, identity: Optional[Identity]) -> Article:
    """
    One-way promotion of a topic into a draft article.

    Step 1 creates the article (once: source_question_id is unique), step 2
    marks the topic converted. A retry after a failed step 2 re-uses the
    existing article and only repeats step 2.
    """
    require_privileged(identity)

    question = get_question_row(db, question_id)
    get_category(db, category_id)

    if question.status == "converted":
        raise AlreadyConverted("Question was already converted into an article")

    article = article_for_question(db, question.id)
    if article is not None:
        logger.info("Resuming conversion of question %s with orphaned article %s", question.id, article.id)
    else:
        article = _create_article(db, question, category_id)

    _link_question(db, question, article)
    db.refresh(article)
    return article


def find_orphaned_articles(db: Session) -> List[Article]:
    """Articles whose source topic never got marked as converted."""
    return (
        db.query(Article)
        .join(Question, Question.id == Article.source_question_id)
        .filter((Question.status != "converted") | (Question.converted_problem_id.is_(None)))
        .order_by(Article.id.asc())
        .all()
    )
