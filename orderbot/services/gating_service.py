from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sqlalchemy.orm import Session

from orderbot.logging_config import get_logger
from orderbot.models import BusinessSettings, ChatbotSettings, Subscription
from orderbot.services.usage_service import METRIC_AI_REPLIES, check_usage_limit

logger = get_logger("gating_service")

DAY_KEYS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")

GATE_CHATBOT_DISABLED = "chatbot_disabled"
GATE_SUBSCRIPTION_INACTIVE = "subscription_inactive"
GATE_QUOTA_EXCEEDED = "quota_exceeded"
GATE_OUTSIDE_BUSINESS_HOURS = "outside_business_hours"


@dataclass
class GateDecision:
    allowed: bool
    reason: Optional[str] = None

    @staticmethod
    def open() -> "GateDecision":
        return GateDecision(allowed=True)

    @staticmethod
    def closed(reason: str) -> "GateDecision":
        return GateDecision(allowed=False, reason=reason)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_subscription_operational(subscription: Optional[Subscription], now: datetime) -> bool:
    """Active or trialing within the paid period, or inside the grace window."""
    if subscription is None:
        return False

    period_end = as_utc(subscription.current_period_end)
    grace_end = as_utc(subscription.grace_period_ends_at)
    in_period = period_end is None or now < period_end
    in_grace = grace_end is not None and now < grace_end

    if subscription.status in ("active", "trial"):
        return in_period or in_grace
    if subscription.status == "past_due":
        return in_grace
    return False


def _to_minutes(value: str) -> Optional[int]:
    try:
        hours, minutes = value.split(":")
        return int(hours) * 60 + int(minutes)
    except (AttributeError, ValueError):
        return None


def is_within_business_hours(config: Optional[dict], now: datetime) -> bool:
    """Evaluate a weekly schedule in its own timezone. No schedule means always open."""
    if not config or not isinstance(config.get("hours"), dict):
        return True

    tz_name = config.get("timezone") or "UTC"
    try:
        local_now = now.astimezone(ZoneInfo(tz_name))
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown business timezone, using UTC", extra={"context": {"timezone": tz_name}})
        local_now = now.astimezone(timezone.utc)

    day = config["hours"].get(DAY_KEYS[local_now.weekday()]) or {}
    if not day.get("isOpen"):
        return False

    minute_of_day = local_now.hour * 60 + local_now.minute
    for shift in day.get("shifts") or []:
        start = _to_minutes(shift.get("start"))
        end = _to_minutes(shift.get("end"))
        if start is None or end is None:
            continue
        if start <= minute_of_day < end:
            return True
    return False


def run_gates(
    db: Session,
    owner_id: str,
    chatbot_settings: Optional[ChatbotSettings],
    now: Optional[datetime] = None,
) -> GateDecision:
    """Short-circuiting eligibility checks for an automated reply, in fixed order."""
    now = now or datetime.now(timezone.utc)

    if chatbot_settings is None or not chatbot_settings.enabled or not chatbot_settings.auto_reply:
        return GateDecision.closed(GATE_CHATBOT_DISABLED)

    subscription = db.query(Subscription).filter(Subscription.owner_id == owner_id).first()
    if not is_subscription_operational(subscription, now):
        return GateDecision.closed(GATE_SUBSCRIPTION_INACTIVE)

    usage = check_usage_limit(db, owner_id, METRIC_AI_REPLIES, now)
    if not usage.allowed:
        logger.info(
            "Reply quota exhausted",
            extra={"context": {"owner_id": owner_id, "current": usage.current, "limit": usage.limit}},
        )
        return GateDecision.closed(GATE_QUOTA_EXCEEDED)

    if chatbot_settings.business_hours_only:
        business = db.query(BusinessSettings).filter(BusinessSettings.owner_id == owner_id).first()
        if not is_within_business_hours(business.business_hours if business else None, now):
            return GateDecision.closed(GATE_OUTSIDE_BUSINESS_HOURS)

    return GateDecision.open()
