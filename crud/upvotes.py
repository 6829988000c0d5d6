# crud/upvotes.py
import logging
from typing import Dict, Iterable, List

from sqlalchemy import case, delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crud.answers import bump_question_activity, get_answer_row
from crud.errors import ValidationFailed, VoteConflict
from models import Answer, Upvote

logger = logging.getLogger("qa_engine.upvotes")


def _find_vote(db: Session, answer_id: int, voter_identity: str):
    return (
        db.query(Upvote.id)
        .filter(Upvote.answer_id == answer_id, Upvote.voter_identity == voter_identity)
        .first()
    )


def _adjust_count(db: Session, answer_id: int, delta: int) -> None:
    # atomic in the row, floored at 0
    if delta > 0:
        new_value = Answer.upvote_count + delta
    else:
        new_value = case((Answer.upvote_count + delta < 0, 0), else_=Answer.upvote_count + delta)
    db.execute(
        update(Answer)
        .where(Answer.id == answer_id)
        .values(upvote_count=new_value)
        .execution_options(synchronize_session=False)
    )


def _remove_vote(db: Session, answer_id: int, voter_identity: str) -> None:
    result = db.execute(
        delete(Upvote)
        .where(Upvote.answer_id == answer_id, Upvote.voter_identity == voter_identity)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        # a concurrent toggle from the same voter removed it first
        db.rollback()
        raise VoteConflict("Vote state changed concurrently, reload and try again")
    _adjust_count(db, answer_id, -1)


def toggle_upvote(db: Session, answer_id: int, voter_identity: str) -> Dict:
    """
    Flip the (answer, voter) vote.

    Uniqueness is enforced by the storage layer: losing the insert race on
    uq_forum_upvotes_answer_voter means the same voter already holds a vote,
    so the call turns into a remove.
    """
    if not voter_identity:
        raise ValidationFailed("Voter identity required")

    answer = get_answer_row(db, answer_id)
    question_id = answer.question_id

    if _find_vote(db, answer_id, voter_identity) is None:
        try:
            db.add(Upvote(answer_id=answer_id, voter_identity=voter_identity))
            db.flush()
        except IntegrityError:
            db.rollback()
            logger.warning("Duplicate vote race on answer %s, retrying as remove", answer_id)
            _remove_vote(db, answer_id, voter_identity)
            action = "removed"
        else:
            _adjust_count(db, answer_id, +1)
            action = "added"
    else:
        _remove_vote(db, answer_id, voter_identity)
        action = "removed"

    bump_question_activity(db, question_id)
    db.commit()

    upvote_count = db.query(Answer.upvote_count).filter(Answer.id == answer_id).scalar() or 0
    return {"action": action, "answer_id": answer_id, "upvote_count": upvote_count}


def list_votes_for_voter(db: Session, answer_ids: Iterable[int], voter_identity: str) -> List[int]:
    ids = list(dict.fromkeys(answer_ids))
    if not ids or not voter_identity:
        return []
    rows = (
        db.query(Upvote.answer_id)
        .filter(Upvote.answer_id.in_(ids), Upvote.voter_identity == voter_identity)
        .all()
    )
    voted = {aid for (aid,) in rows}
    return [aid for aid in ids if aid in voted]


def count_live_votes(db: Session, answer_id: int) -> int:
    return db.query(func.count(Upvote.id)).filter(Upvote.answer_id == answer_id).scalar() or 0


def recount_upvotes(db: Session, answer_id: int, commit: bool = True) -> int:
    """Recompute upvote_count from live rows (the counter is only a cache of this COUNT)."""
    answer = get_answer_row(db, answer_id)
    live = count_live_votes(db, answer_id)
    if answer.upvote_count != live:
        logger.info("Answer %s upvote_count %s -> %s", answer_id, answer.upvote_count, live)
        answer.upvote_count = live
    if commit:
        db.commit()
    return live
