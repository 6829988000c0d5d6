from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from crud import answers as answers_crud
from crud import conversion as conversion_crud
from crud import questions as questions_crud
from crud import reconcile as reconcile_crud
from crud import solutions as solutions_crud
from crud import upvotes as upvotes_crud
from crud.errors import ValidationFailed
from database import get_db
from routers.auth import get_optional_identity
from schemas import (
    AnswerCreate, AnswerOut, ArticleOut, ClientSignals, ConvertIn, Identity, QuestionCreate,
    QuestionDetailOut, QuestionOut, ReconcileReport, UpvoteToggleIn, UpvoteToggleOut, VoteLookupIn, VoteLookupOut,
)
from utils.fingerprint import resolve_voter_identity

router = APIRouter()


def voter_identity_for(identity: Identity, signals: Optional[ClientSignals]) -> str:
    try:
        return resolve_voter_identity(identity.account_id, signals)
    except ValueError as e:
        raise ValidationFailed(str(e))


# ---------- questions ----------

@router.post("/questions", response_model=QuestionOut)
def create_question(
    payload: QuestionCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_optional_identity),
):
    return questions_crud.create_question(db, payload, identity)


@router.get("/questions", response_model=List[QuestionOut])
def list_questions(
    status: Optional[str] = None,
    category_id: Optional[int] = None,
    tag: Optional[str] = None,
    limit: int = Query(questions_crud.DEFAULT_PAGE_SIZE, ge=1, le=questions_crud.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return questions_crud.list_questions(db, status=status, category_id=category_id, tag=tag, limit=limit, offset=offset)


@router.get("/categories/{category_id}/questions", response_model=List[QuestionOut])
def list_questions_by_category(
    category_id: int,
    sort: str = "recent",
    limit: int = Query(questions_crud.DEFAULT_PAGE_SIZE, ge=1, le=questions_crud.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    return questions_crud.list_questions_by_category(db, category_id, sort=sort, limit=limit, offset=offset)


@router.get("/questions/{question_id}", response_model=QuestionDetailOut)
def get_question(question_id: int, db: Session = Depends(get_db)):
    question, answers = questions_crud.get_question(db, question_id)
    out = QuestionOut.model_validate(question).model_dump()
    return QuestionDetailOut(**out, answers=[AnswerOut.model_validate(a) for a in answers])


@router.post("/questions/{question_id}/view")
def increment_view_count(question_id: int, db: Session = Depends(get_db)):
    views = questions_crud.increment_view_count(db, question_id)
    return {"status": "ok", "view_count": views}


# ---------- answers & votes ----------

@router.post("/questions/{question_id}/answers", response_model=AnswerOut)
def create_answer(
    question_id: int,
    payload: AnswerCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_optional_identity),
):
    return answers_crud.create_answer(db, question_id, payload, identity)


@router.post("/answers/{answer_id}/upvote", response_model=UpvoteToggleOut)
def toggle_upvote(
    answer_id: int,
    payload: Optional[UpvoteToggleIn] = None,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_optional_identity),
):
    voter = voter_identity_for(identity, payload.signals if payload else None)
    return upvotes_crud.toggle_upvote(db, answer_id, voter)


@router.post("/votes/lookup", response_model=VoteLookupOut)
def list_votes_for_voter(
    payload: VoteLookupIn,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_optional_identity),
):
    voter = voter_identity_for(identity, payload.signals)
    return {"voter_identity": voter, "answer_ids": upvotes_crud.list_votes_for_voter(db, payload.answer_ids, voter)}


# ---------- moderator only ----------

@router.post("/questions/{question_id}/solution/{answer_id}", response_model=QuestionDetailOut)
def mark_as_solution(
    question_id: int,
    answer_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_optional_identity),
):
    solutions_crud.mark_as_solution(db, answer_id, question_id, identity)
    return get_question(question_id, db)


@router.post("/questions/{question_id}/convert", response_model=ArticleOut)
def convert_to_article(
    question_id: int,
    payload: ConvertIn,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_optional_identity),
):
    return conversion_crud.convert_to_article(db, question_id, payload.category_id, identity)


@router.post("/questions/{question_id}/reconcile", response_model=ReconcileReport)
def reconcile_question(
    question_id: int,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_optional_identity),
):
    solutions_crud.require_privileged(identity)
    return reconcile_crud.reconcile_question(db, question_id)


@router.post("/reconcile", response_model=List[ReconcileReport])
def reconcile_all(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_optional_identity),
):
    solutions_crud.require_privileged(identity)
    return reconcile_crud.reconcile_all(db)


@router.get("/articles/orphaned", response_model=List[ArticleOut])
def orphaned_articles(
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_optional_identity),
):
    solutions_crud.require_privileged(identity)
    return conversion_crud.find_orphaned_articles(db)
