from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from orderbot.logging_config import get_logger
from orderbot.models import Subscription, UsageCounter

logger = get_logger("usage_service")

METRIC_AI_REPLIES = "ai_replies"
METRIC_ORDERS = "orders"

UNLIMITED = -1
DEFAULT_PLAN_ID = "trial"

# Daily automated-reply allowance per plan.
PLAN_DAILY_REPLY_LIMITS = {
    "trial": 100,
    "starter": 200,
    "growth": 1000,
    "pro": 3000,
    "enterprise": 10000,
}


@dataclass
class UsageCheck:
    allowed: bool
    current: int
    limit: int


def period_keys(now: datetime) -> dict[str, str]:
    day = now.astimezone(timezone.utc).strftime("%Y-%m-%d")
    return {"daily": day, "monthly": day[:7]}


def get_plan_id(db: Session, owner_id: str) -> str:
    plan_id = db.query(Subscription.plan_id).filter(Subscription.owner_id == owner_id).scalar()
    return plan_id or DEFAULT_PLAN_ID


def limit_for(plan_id: str, metric: str) -> int:
    if metric == METRIC_AI_REPLIES:
        return PLAN_DAILY_REPLY_LIMITS.get(plan_id, PLAN_DAILY_REPLY_LIMITS[DEFAULT_PLAN_ID])
    return UNLIMITED


def _dialect_insert(db: Session):
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert
    return sqlite_insert


def _upsert_counter(
    db: Session,
    owner_id: str,
    metric: str,
    period: str,
    period_key: str,
    amount: int,
    usage_limit: int,
    now: datetime,
) -> None:
    insert = _dialect_insert(db)
    stmt = insert(UsageCounter).values(
        owner_id=owner_id,
        metric=metric,
        period=period,
        period_key=period_key,
        count=amount,
        usage_limit=usage_limit,
        updated_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["owner_id", "metric", "period", "period_key"],
        set_={"count": UsageCounter.count + amount, "updated_at": now},
    )
    db.execute(stmt)


def increment_usage(
    db: Session,
    owner_id: str,
    metric: str,
    amount: int = 1,
    now: Optional[datetime] = None,
) -> None:
    """Bump the daily and monthly counters with relative SQL updates."""
    now = now or datetime.now(timezone.utc)
    usage_limit = limit_for(get_plan_id(db, owner_id), metric)
    for period, period_key in period_keys(now).items():
        _upsert_counter(db, owner_id, metric, period, period_key, amount, usage_limit, now)


def check_usage_limit(
    db: Session,
    owner_id: str,
    metric: str,
    now: Optional[datetime] = None,
) -> UsageCheck:
    """Read-before-write quota check against the daily counter."""
    usage_limit = limit_for(get_plan_id(db, owner_id), metric)
    if usage_limit == UNLIMITED:
        return UsageCheck(allowed=True, current=0, limit=UNLIMITED)

    now = now or datetime.now(timezone.utc)
    current = (
        db.query(UsageCounter.count)
        .filter(
            UsageCounter.owner_id == owner_id,
            UsageCounter.metric == metric,
            UsageCounter.period == "daily",
            UsageCounter.period_key == period_keys(now)["daily"],
        )
        .scalar()
    ) or 0

    return UsageCheck(allowed=current < usage_limit, current=current, limit=usage_limit)


def get_usage_summary(db: Session, owner_id: str, now: Optional[datetime] = None) -> list[UsageCounter]:
    keys = period_keys(now or datetime.now(timezone.utc))
    return (
        db.query(UsageCounter)
        .filter(
            UsageCounter.owner_id == owner_id,
            UsageCounter.period_key.in_([keys["daily"], keys["monthly"]]),
        )
        .order_by(UsageCounter.metric, UsageCounter.period)
        .all()
    )
