import os

# settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENV", "test")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("PRIVILEGED_ACCOUNTS", "mod-by-config")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
import models
from crud.stats import clear_stats_cache
from main import app
from routers.auth import create_access_token
from schemas import Identity


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    clear_stats_cache()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    clear_stats_cache()


@pytest.fixture()
def category(db):
    c = models.Category(name="Internet", slug="internet", description="Wi-Fi, roteadores e operadoras")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@pytest.fixture()
def other_category(db):
    c = models.Category(name="Celular", slug="celular")
    db.add(c)
    db.commit()
    db.refresh(c)
    return c


@pytest.fixture()
def moderator():
    return Identity(account_id="mod-1", display_name="Moderadora", is_privileged=True)


@pytest.fixture()
def member():
    return Identity(account_id="user-1", display_name="Joana", is_privileged=False)


def bearer(sub, role=None, name=None):
    claims = {"sub": sub}
    if role:
        claims["role"] = role
    if name:
        claims["name"] = name
    return {"Authorization": f"Bearer {create_access_token(claims)}"}


@pytest.fixture()
def auth():
    return bearer


@pytest.fixture()
def make_question(db):
    from crud.questions import create_question
    from schemas import QuestionCreate

    def _make(title="Meu Wi-Fi não conecta no notebook", description="Desde ontem o notebook não encontra a rede de casa.", identity=None, **kw):
        return create_question(db, QuestionCreate(title=title, description=description, **kw), identity)

    return _make


@pytest.fixture()
def make_answer(db):
    from crud.answers import create_answer
    from schemas import AnswerCreate

    def _make(question_id, content="Reinicie o roteador", identity=None, **kw):
        return create_answer(db, question_id, AnswerCreate(content=content, **kw), identity)

    return _make


@pytest.fixture()
def mod_headers():
    return bearer("mod-1", role="moderator", name="Moderadora")


@pytest.fixture()
def user_headers():
    return bearer("user-1", name="Joana")
