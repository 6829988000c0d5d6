# crud/reconcile.py
import logging
from datetime import datetime
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from crud.conversion import article_for_question
from crud.questions import get_question_row
from models import Answer, Question, Upvote
from schemas import ReconcileReport

logger = logging.getLogger("qa_engine.reconcile")


def reconcile_question(db: Session, question_id: int, commit: bool = True) -> ReconcileReport:
    """
    Recompute the denormalized counters of one topic from live rows and roll
    forward any half-finished transition (solution marked but topic still open,
    article created but topic not converted). More than one accepted answer is
    cut back to the highest id.
    """
    question = get_question_row(db, question_id, for_update=True)
    answer_count_before = question.answer_count or 0
    status_before = question.status

    answers = db.query(Answer).filter(Answer.question_id == question.id).order_by(Answer.id.asc()).all()
    question.answer_count = len(answers)

    # at most one accepted answer: keep the highest id
    flagged = [a for a in answers if a.is_solution]
    cleared = [a.id for a in flagged[:-1]]
    for a in flagged[:-1]:
        a.is_solution = False

    live_votes = dict(
        db.query(Upvote.answer_id, func.count(Upvote.id))
        .join(Answer, Answer.id == Upvote.answer_id)
        .filter(Answer.question_id == question.id)
        .group_by(Upvote.answer_id)
        .all()
    )
    fixed = []
    for a in answers:
        live = live_votes.get(a.id, 0)
        if (a.upvote_count or 0) != live:
            a.upvote_count = live
            fixed.append(a.id)

    if question.status == "open" and any(a.is_solution for a in answers):
        question.status = "resolved"
        if question.resolved_at is None:
            question.resolved_at = datetime.utcnow()

    article = article_for_question(db, question.id)
    if article is not None and (question.status != "converted" or question.converted_problem_id != article.id):
        question.status = "converted"
        question.converted_problem_id = article.id

    report = ReconcileReport(
        question_id=question.id,
        answer_count_before=answer_count_before,
        answer_count_after=question.answer_count,
        upvote_counts_fixed=fixed,
        solutions_cleared=cleared,
        status_before=status_before,
        status_after=question.status,
    )
    if report.changed:
        logger.info(
            "Reconciled question %s: answers %s->%s, upvotes fixed on %s, extra solutions cleared %s, status %s->%s",
            question.id, answer_count_before, question.answer_count, fixed, cleared, status_before, question.status,
        )
    if commit:
        db.commit()
    return report


def reconcile_all(db: Session) -> List[ReconcileReport]:
    """Run reconcile_question over every topic, one commit per topic. Returns only the ones that changed."""
    changed = []
    ids = [qid for (qid,) in db.query(Question.id).order_by(Question.id.asc()).all()]
    for qid in ids:
        report = reconcile_question(db, qid, commit=True)
        if report.changed:
            changed.append(report)
    logger.info("Reconciliation pass done: %s/%s topics repaired", len(changed), len(ids))
    return changed
