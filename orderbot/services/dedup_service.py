import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from orderbot.logging_config import get_logger
from orderbot.models import WebhookLog
from orderbot.schemas.whatsapp import StatusEntry

logger = get_logger("dedup_service")

FALLBACK_EVENT_PREFIX = "local-"
WEBHOOK_LOG_RETENTION_DAYS = 7


@dataclass
class EventClaim:
    event_id: str
    duplicate: bool
    reason: Optional[str] = None


def derive_event_id(statuses: list[StatusEntry]) -> str:
    """Key a status callback by message id and status, or generate a local fallback.

    The provider sends sent, delivered and read as separate callbacks for the
    same message id, so the status is part of the key. Batches with several
    entries get a digest over every (id, status) pair appended.
    """
    pairs = [(entry.id, (entry.status or "").lower()) for entry in statuses if entry.id]
    if not pairs:
        return f"{FALLBACK_EVENT_PREFIX}{uuid4().hex}"

    first_id, first_status = pairs[0]
    event_id = f"{first_id}:{first_status}"
    if len(pairs) > 1:
        joined = "|".join(f"{message_id}:{status}" for message_id, status in pairs)
        event_id += f":{hashlib.sha256(joined.encode('utf-8')).hexdigest()[:16]}"
    return event_id


def is_fallback_event_id(event_id: str) -> bool:
    return event_id.startswith(FALLBACK_EVENT_PREFIX)


def begin_event(db: Session, event_id: str, payload: dict, source: str = "whatsapp") -> EventClaim:
    """Claim an event before any downstream mutation.

    The log row is committed with processed=False so an aborted run leaves a
    replayable entry behind. Only processed entries count as duplicates.
    """
    if not is_fallback_event_id(event_id):
        existing = db.query(WebhookLog).filter(WebhookLog.event_id == event_id).first()
        if existing is not None:
            if existing.processed:
                return EventClaim(event_id=event_id, duplicate=True, reason="already_processed")
            logger.info("Replaying unprocessed webhook event", extra={"context": {"event_id": event_id}})
            return EventClaim(event_id=event_id, duplicate=False, reason="replay")

    db.add(
        WebhookLog(
            event_id=event_id,
            source=source,
            raw_payload=payload,
            processed=False,
            created_at=datetime.now(timezone.utc),
        )
    )
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info("Webhook event claimed concurrently", extra={"context": {"event_id": event_id}})
        return EventClaim(event_id=event_id, duplicate=True, reason="in_flight")

    return EventClaim(event_id=event_id, duplicate=False)


def mark_event_processed(db: Session, event_id: str) -> None:
    db.execute(
        update(WebhookLog)
        .where(WebhookLog.event_id == event_id)
        .values(processed=True, processed_at=datetime.now(timezone.utc))
    )


def cleanup_webhook_logs(db: Session, older_than_days: int = WEBHOOK_LOG_RETENTION_DAYS) -> int:
    """Delete processed log entries older than the retention window."""
    cutoff = datetime.now(timezone.utc) - timedelta(days=older_than_days)
    result = db.execute(
        delete(WebhookLog).where(WebhookLog.processed.is_(True), WebhookLog.created_at < cutoff)
    )
    db.commit()
    deleted = result.rowcount or 0
    logger.info(
        "Webhook logs cleaned up",
        extra={"context": {"deleted": deleted, "older_than_days": older_than_days}},
    )
    return deleted
