from sqlalchemy import Column, Integer, String, ForeignKey, Text, DateTime, Boolean, JSON, UniqueConstraint, Index
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base

QUESTION_STATUSES = ("open", "resolved", "converted")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    slug = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)

    questions = relationship("Question", back_populates="category")
    articles = relationship("Article", back_populates="category")


class Question(Base):
    __tablename__ = "forum_questions"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    description = Column(Text, nullable=False)
    author_name = Column(String(100), nullable=True)
    account_id = Column(String, nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    tags = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list)  # jsonb for @> filtering
    images = Column(JSON, nullable=False, default=list)

    status = Column(String, nullable=False, default="open", index=True)  # open / resolved / converted
    answer_count = Column(Integer, nullable=False, default=0)
    view_count = Column(Integer, nullable=False, default=0)
    is_pinned = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    resolved_at = Column(DateTime, nullable=True)
    # plain reference, the article side carries the FK (source_question_id)
    converted_problem_id = Column(Integer, nullable=True)

    category = relationship("Category", back_populates="questions")
    answers = relationship("Answer", back_populates="question", order_by="Answer.created_at")


class Answer(Base):
    __tablename__ = "forum_answers"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("forum_questions.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    author_name = Column(String(100), nullable=True)
    account_id = Column(String, nullable=True, index=True)
    images = Column(JSON, nullable=False, default=list)
    mentions = Column(JSON, nullable=False, default=list)
    is_solution = Column(Boolean, nullable=False, default=False)
    upvote_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    question = relationship("Question", back_populates="answers")
    upvotes = relationship("Upvote", back_populates="answer", cascade="all, delete-orphan")


class Upvote(Base):
    __tablename__ = "forum_upvotes"

    id = Column(Integer, primary_key=True)
    answer_id = Column(Integer, ForeignKey("forum_answers.id", ondelete="CASCADE"), nullable=False)
    voter_identity = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    answer = relationship("Answer", back_populates="upvotes")

    # one live vote per (answer, voter)
    __table_args__ = (
        UniqueConstraint("answer_id", "voter_identity", name="uq_forum_upvotes_answer_voter"),
        Index("ix_forum_upvotes_voter", "voter_identity"),
    )


class Article(Base):
    """Knowledge-base entry ("problem") produced by converting a question."""
    __tablename__ = "problems"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(300), nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    quick_answer = Column(Text, nullable=False)
    steps = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default="draft")
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # unique: a question can only ever produce one article
    source_question_id = Column(Integer, ForeignKey("forum_questions.id"), nullable=True, unique=True)

    category = relationship("Category", back_populates="articles")
    source_question = relationship("Question")
