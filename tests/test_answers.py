import pytest
from pydantic import ValidationError
from sqlalchemy.exc import OperationalError

from crud import answers as answers_crud
from crud.errors import NotFound, ValidationFailed
from models import Answer, Question
from schemas import AnswerCreate


def test_create_answer_updates_parent(db, make_question, make_answer, member):
    q = make_question()
    before = db.get(Question, q.id).last_activity_at

    a = make_answer(q.id, content="Tente esquecer a rede e conectar de novo, @carlos", identity=member, mentions=["@ana"])

    assert a.is_solution is False
    assert a.upvote_count == 0
    assert a.author_name == "Joana"
    assert a.account_id == "user-1"
    assert a.mentions == ["ana", "carlos"]

    db.expire_all()
    parent = db.get(Question, q.id)
    assert parent.answer_count == 1
    assert parent.last_activity_at >= before


def test_answer_content_limits():
    with pytest.raises(ValidationError):
        AnswerCreate(content="oi")
    with pytest.raises(ValidationError):
        AnswerCreate(content="x" * 5001)
    # padding does not count towards the minimum
    with pytest.raises(ValidationError):
        AnswerCreate(content="   oi   ")
    assert AnswerCreate(content="  valeu!  ").content == "valeu!"


def test_answer_unknown_question(db, make_answer):
    with pytest.raises(NotFound):
        make_answer(999)


def test_converted_question_does_not_accept_answers(db, make_question, make_answer):
    q = make_question()
    q.status = "converted"
    db.commit()
    with pytest.raises(ValidationFailed):
        make_answer(q.id)
    assert db.query(Answer).count() == 0


def test_counter_failure_keeps_the_answer(db, make_question, make_answer, monkeypatch):
    q = make_question()

    def broken(*args, **kwargs):
        raise OperationalError("UPDATE forum_questions", {}, Exception("connection lost"))

    monkeypatch.setattr(answers_crud, "bump_question_activity", broken)
    a = make_answer(q.id)

    assert db.get(Answer, a.id) is not None
    db.expire_all()
    # stale counter, repaired later by reconciliation
    assert db.get(Question, q.id).answer_count == 0
