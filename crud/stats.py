# crud/stats.py
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple
from zoneinfo import ZoneInfo

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from models import Answer, Category, Question
from schemas import BadgesOut, CategoryStatsOut, RecentTopicOut, StatsOut
from settings import settings
from utils.cache import TTLCache

logger = logging.getLogger("qa_engine.stats")

RESPONSE_SAMPLE_SIZE = 50
RESPONSE_MAX_MINUTES = 7 * 24 * 60  # ignore first answers later than a week

# (badge, metric, threshold) - checked in this order
BADGE_RULES = (
    ("contributor", "answers", 5),
    ("helper", "answers", 10),
    ("expert", "answers", 25),
    ("guru", "answers", 50),
    ("problem_solver", "solutions", 5),
    ("popular", "upvotes_received", 50),
)

_stats_cache = TTLCache(settings.STATS_CACHE_TTL_SECONDS)


def _utc_naive(dt: datetime) -> datetime:
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def local_day_bounds(now: datetime, tz_name: str) -> Tuple[datetime, datetime]:
    """[start, end) of the calendar day containing `now` in `tz_name`, as naive UTC."""
    tz = ZoneInfo(tz_name)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(tz)
    start = datetime(local.year, local.month, local.day, tzinfo=tz)
    nxt = local.date() + timedelta(days=1)
    end = datetime(nxt.year, nxt.month, nxt.day, tzinfo=tz)
    return _utc_naive(start), _utc_naive(end)


def format_response_time(minutes: Optional[float]) -> str:
    if not minutes or minutes <= 0:
        return "< 5min"
    if minutes < 60:
        return f"{int(minutes + 0.5)}min"
    if minutes < 1440:
        return f"{int(minutes / 60 + 0.5)}h"
    return f"{int(minutes / 1440 + 0.5)}d"


def average_response_minutes(db: Session, sample_size: int = RESPONSE_SAMPLE_SIZE) -> Optional[float]:
    first_answer = (
        db.query(Answer.question_id, func.min(Answer.created_at).label("first_at"))
        .group_by(Answer.question_id)
        .subquery()
    )
    rows = (
        db.query(Question.created_at, first_answer.c.first_at)
        .join(first_answer, first_answer.c.question_id == Question.id)
        .filter(Question.status == "resolved")
        .order_by(Question.resolved_at.desc(), Question.id.desc())
        .limit(sample_size)
        .all()
    )
    gaps = []
    for created_at, first_at in rows:
        minutes = (first_at - created_at).total_seconds() / 60
        if 0 < minutes < RESPONSE_MAX_MINUTES:
            gaps.append(minutes)
    if not gaps:
        return None
    return sum(gaps) / len(gaps)


def category_breakdown(db: Session) -> List[CategoryStatsOut]:
    topics = dict(
        db.query(Question.category_id, func.count(Question.id))
        .filter(Question.category_id.isnot(None))
        .group_by(Question.category_id)
        .all()
    )
    comments = dict(
        db.query(Question.category_id, func.count(Answer.id))
        .join(Answer, Answer.question_id == Question.id)
        .filter(Question.category_id.isnot(None))
        .group_by(Question.category_id)
        .all()
    )
    return [
        CategoryStatsOut(
            category_id=c.id,
            name=c.name,
            slug=c.slug,
            topic_count=topics.get(c.id, 0),
            comment_count=comments.get(c.id, 0),
        )
        for c in db.query(Category).order_by(Category.name.asc()).all()
    ]


def compute_stats(
    db: Session,
    now: Optional[datetime] = None,
    tz_name: Optional[str] = None,
    recent_limit: Optional[int] = None,
) -> StatsOut:
    now = now or datetime.now(timezone.utc)
    tz_name = tz_name or settings.STATS_TIMEZONE
    recent_limit = recent_limit or settings.RECENT_TOPICS_LIMIT

    total_questions = db.query(func.count(Question.id)).scalar() or 0
    total_answers = db.query(func.count(Answer.id)).scalar() or 0
    resolved = db.query(func.count(Question.id)).filter(Question.status == "resolved").scalar() or 0

    day_start, day_end = local_day_bounds(now, tz_name)
    active_today = (
        db.query(func.count(Question.id))
        .filter(Question.last_activity_at >= day_start, Question.last_activity_at < day_end)
        .scalar()
        or 0
    )

    recent = (
        db.query(Question)
        .order_by(Question.is_pinned.desc(), Question.last_activity_at.desc(), Question.id.desc())
        .limit(recent_limit)
        .all()
    )

    avg_minutes = average_response_minutes(db)
    return StatsOut(
        total_questions=total_questions,
        total_answers=total_answers,
        resolved_questions=resolved,
        active_today=active_today,
        categories=category_breakdown(db),
        recent_topics=[RecentTopicOut.model_validate(q) for q in recent],
        avg_response_minutes=round(avg_minutes, 1) if avg_minutes is not None else None,
        avg_response_label=format_response_time(avg_minutes),
        generated_at=_utc_naive(now),
    )


def get_stats(db: Session) -> StatsOut:
    """Cached rollup, may be up to STATS_CACHE_TTL_SECONDS old."""
    return _stats_cache.get_or_load("stats", lambda: compute_stats(db))


def clear_stats_cache() -> None:
    _stats_cache.clear()


def get_account_badges(db: Session, account_id: str) -> BadgesOut:
    answers, solutions, upvotes = (
        db.query(
            func.count(Answer.id),
            func.coalesce(func.sum(case((Answer.is_solution.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(Answer.upvote_count), 0),
        )
        .filter(Answer.account_id == account_id)
        .one()
    )
    metrics = {"answers": answers or 0, "solutions": int(solutions or 0), "upvotes_received": int(upvotes or 0)}
    badges = [name for name, metric, threshold in BADGE_RULES if metrics[metric] >= threshold]
    if not badges:
        badges = ["newcomer"]
    return BadgesOut(account_id=account_id, badges=badges, **metrics)
