from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime

TITLE_MIN, TITLE_MAX = 10, 300
DESCRIPTION_MIN, DESCRIPTION_MAX = 20, 5000
ANSWER_MIN, ANSWER_MAX = 5, 5000
AUTHOR_NAME_MAX = 100
MAX_TAGS, TAG_MAX = 10, 30
MAX_IMAGES = 5


# Identity handed to us by the auth collaborator
class Identity(BaseModel):
    account_id: Optional[str] = None
    display_name: Optional[str] = None
    is_privileged: bool = False

    @property
    def is_anonymous(self) -> bool:
        return self.account_id is None


class ClientSignals(BaseModel):
    user_agent: Optional[str] = None
    language: Optional[str] = None
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    timezone_offset: Optional[int] = None


# Questions
class QuestionCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=TITLE_MIN, max_length=TITLE_MAX)
    description: str = Field(..., min_length=DESCRIPTION_MIN, max_length=DESCRIPTION_MAX)
    author_name: Optional[str] = Field(default=None, max_length=AUTHOR_NAME_MAX)
    category_id: Optional[int] = None
    tags: List[str] = Field(default_factory=list, max_length=MAX_TAGS)
    images: List[str] = Field(default_factory=list, max_length=MAX_IMAGES)

    @field_validator("tags")
    @classmethod
    def _tag_length(cls, tags: List[str]) -> List[str]:
        for t in tags:
            if len(t) > TAG_MAX:
                raise ValueError(f"tag '{t[:TAG_MAX]}...' is longer than {TAG_MAX} characters")
        return tags


class QuestionOut(BaseModel):
    id: int
    title: str
    description: str
    author_name: Optional[str] = None
    account_id: Optional[str] = None
    category_id: Optional[int] = None
    tags: List[str] = []
    images: List[str] = []
    status: str
    answer_count: int = 0
    view_count: int = 0
    is_pinned: bool = False
    created_at: datetime
    last_activity_at: datetime
    resolved_at: Optional[datetime] = None
    converted_problem_id: Optional[int] = None

    class Config:
        from_attributes = True


# Answers
class AnswerCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=ANSWER_MIN, max_length=ANSWER_MAX)
    author_name: Optional[str] = Field(default=None, max_length=AUTHOR_NAME_MAX)
    images: List[str] = Field(default_factory=list, max_length=MAX_IMAGES)
    mentions: List[str] = Field(default_factory=list)


class AnswerOut(BaseModel):
    id: int
    question_id: int
    content: str
    author_name: Optional[str] = None
    account_id: Optional[str] = None
    images: List[str] = []
    mentions: List[str] = []
    is_solution: bool = False
    upvote_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class QuestionDetailOut(QuestionOut):
    answers: List[AnswerOut] = []


# Votes
class UpvoteToggleIn(BaseModel):
    signals: Optional[ClientSignals] = None


class UpvoteToggleOut(BaseModel):
    action: Literal["added", "removed"]
    answer_id: int
    upvote_count: int


class VoteLookupIn(BaseModel):
    answer_ids: List[int] = Field(default_factory=list, max_length=500)
    signals: Optional[ClientSignals] = None


class VoteLookupOut(BaseModel):
    voter_identity: str
    answer_ids: List[int]


# Conversion
class ConvertIn(BaseModel):
    category_id: int


class ArticleOut(BaseModel):
    id: int
    title: str
    slug: str
    category_id: int
    quick_answer: str
    steps: List[dict] = []
    status: str
    created_at: datetime
    source_question_id: Optional[int] = None

    class Config:
        from_attributes = True


# Reconciliation
class ReconcileReport(BaseModel):
    question_id: int
    answer_count_before: int
    answer_count_after: int
    upvote_counts_fixed: List[int] = []
    solutions_cleared: List[int] = []
    status_before: str
    status_after: str

    @property
    def changed(self) -> bool:
        return (
            self.answer_count_before != self.answer_count_after
            or bool(self.upvote_counts_fixed)
            or bool(self.solutions_cleared)
            or self.status_before != self.status_after
        )


# Stats
class CategoryStatsOut(BaseModel):
    category_id: int
    name: str
    slug: str
    topic_count: int
    comment_count: int


class RecentTopicOut(BaseModel):
    id: int
    title: str
    status: str
    answer_count: int
    view_count: int
    is_pinned: bool
    category_id: Optional[int] = None
    last_activity_at: datetime

    class Config:
        from_attributes = True


class StatsOut(BaseModel):
    total_questions: int
    total_answers: int
    resolved_questions: int
    active_today: int
    categories: List[CategoryStatsOut]
    recent_topics: List[RecentTopicOut]
    avg_response_minutes: Optional[float] = None
    avg_response_label: str
    generated_at: datetime


class BadgesOut(BaseModel):
    account_id: str
    answers: int
    solutions: int
    upvotes_received: int
    badges: List[str]
