from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from crud import upvotes as upvotes_crud
from crud.errors import NotFound, ValidationFailed
from database import Base
from models import Answer, Question, Upvote


def _live_rows(db, answer_id):
    return db.query(Upvote).filter(Upvote.answer_id == answer_id).count()


def test_toggle_adds_then_removes(db, make_question, make_answer):
    q = make_question()
    a = make_answer(q.id)

    first = upvotes_crud.toggle_upvote(db, a.id, "fp-1")
    assert first == {"action": "added", "answer_id": a.id, "upvote_count": 1}
    assert _live_rows(db, a.id) == 1

    second = upvotes_crud.toggle_upvote(db, a.id, "fp-1")
    assert second["action"] == "removed"
    assert second["upvote_count"] == 0
    assert _live_rows(db, a.id) == 0


def test_distinct_voters_accumulate(db, make_question, make_answer):
    q = make_question()
    a = make_answer(q.id)
    for voter in ("fp-1", "fp-2", "acc-3"):
        upvotes_crud.toggle_upvote(db, a.id, voter)

    db.expire_all()
    assert db.get(Answer, a.id).upvote_count == 3
    assert _live_rows(db, a.id) == 3


def test_vote_refreshes_question_activity(db, make_question, make_answer):
    q = make_question()
    a = make_answer(q.id)
    db.expire_all()
    before = db.get(Question, q.id).last_activity_at

    upvotes_crud.toggle_upvote(db, a.id, "fp-1")

    db.expire_all()
    assert db.get(Question, q.id).last_activity_at >= before


def test_counter_matches_rows_after_any_sequence(db, make_question, make_answer):
    q = make_question()
    answers = [make_answer(q.id, content=f"Resposta numero {i}") for i in range(3)]
    sequence = ["a", "b", "a", "c", "b", "b", "a", "c", "c", "a"]
    for i, voter in enumerate(sequence):
        upvotes_crud.toggle_upvote(db, answers[i % 3].id, voter)

    db.expire_all()
    for a in answers:
        assert db.get(Answer, a.id).upvote_count == _live_rows(db, a.id)
        assert upvotes_crud.count_live_votes(db, a.id) == _live_rows(db, a.id)


def test_unknown_answer_and_missing_identity(db, make_question, make_answer):
    with pytest.raises(NotFound):
        upvotes_crud.toggle_upvote(db, 999, "fp-1")
    q = make_question()
    a = make_answer(q.id)
    with pytest.raises(ValidationFailed):
        upvotes_crud.toggle_upvote(db, a.id, "")


def test_lost_insert_race_becomes_remove(db, make_question, make_answer, monkeypatch):
    q = make_question()
    a = make_answer(q.id)
    upvotes_crud.toggle_upvote(db, a.id, "fp-1")

    # the existence check misses a row a concurrent toggle just wrote
    monkeypatch.setattr(upvotes_crud, "_find_vote", lambda *args: None)
    result = upvotes_crud.toggle_upvote(db, a.id, "fp-1")

    assert result["action"] == "removed"
    assert result["upvote_count"] == 0
    assert _live_rows(db, a.id) == 0


def test_decrement_is_floored_at_zero(db, make_question, make_answer):
    q = make_question()
    a = make_answer(q.id)
    db.add(Upvote(answer_id=a.id, voter_identity="fp-1"))
    db.commit()
    # counter drifted below the live rows
    assert db.get(Answer, a.id).upvote_count == 0

    result = upvotes_crud.toggle_upvote(db, a.id, "fp-1")
    assert result == {"action": "removed", "answer_id": a.id, "upvote_count": 0}


def test_list_votes_for_voter(db, make_question, make_answer):
    q = make_question()
    a1, a2, a3 = (make_answer(q.id, content=f"Resposta numero {i}") for i in range(3))
    upvotes_crud.toggle_upvote(db, a1.id, "fp-1")
    upvotes_crud.toggle_upvote(db, a3.id, "fp-1")
    upvotes_crud.toggle_upvote(db, a2.id, "fp-2")

    assert upvotes_crud.list_votes_for_voter(db, [a3.id, a2.id, a1.id], "fp-1") == [a3.id, a1.id]
    assert upvotes_crud.list_votes_for_voter(db, [], "fp-1") == []
    assert upvotes_crud.list_votes_for_voter(db, [a1.id], "nobody") == []


def test_recount_upvotes(db, make_question, make_answer):
    q = make_question()
    a = make_answer(q.id)
    upvotes_crud.toggle_upvote(db, a.id, "fp-1")
    upvotes_crud.toggle_upvote(db, a.id, "fp-2")
    answer = db.get(Answer, a.id)
    answer.upvote_count = 40
    db.commit()

    assert upvotes_crud.recount_upvotes(db, a.id) == 2
    db.expire_all()
    assert db.get(Answer, a.id).upvote_count == 2


def test_concurrent_voters_on_the_same_answer(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'votes.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)

    with Session() as db:
        q = Question(title="Pergunta concorrente", description="Dois votos ao mesmo tempo", tags=[], images=[])
        db.add(q)
        db.flush()
        a = Answer(question_id=q.id, content="Resposta disputada", images=[], mentions=[])
        db.add(a)
        db.commit()
        answer_id = a.id

    def vote(voter):
        with Session() as s:
            return upvotes_crud.toggle_upvote(s, answer_id, voter)["action"]

    with ThreadPoolExecutor(max_workers=2) as pool:
        actions = list(pool.map(vote, ["fp-a", "fp-b"]))

    assert actions == ["added", "added"]
    with Session() as db:
        assert db.get(Answer, answer_id).upvote_count == 2
        assert db.query(Upvote).filter(Upvote.answer_id == answer_id).count() == 2
    engine.dispose()
