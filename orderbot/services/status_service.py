from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from orderbot.logging_config import get_logger
from orderbot.models import Campaign, QueuedMessage
from orderbot.schemas.whatsapp import StatusEntry

logger = get_logger("status_service")

# Statuses from which each target status may be reached.
ALLOWED_PREVIOUS = {
    "sent": ("queued",),
    "delivered": ("queued", "sent"),
    "read": ("queued", "sent", "delivered"),
    "failed": ("queued", "sent"),
}

TIMESTAMP_COLUMNS = {
    "sent": "sent_at",
    "delivered": "delivered_at",
    "read": "read_at",
    "failed": "failed_at",
}

CAMPAIGN_COUNTERS = {
    "delivered": "delivered_count",
    "read": "read_count",
    "failed": "failed_count",
}


class StatusOutcome(str, Enum):
    APPLIED = "applied"
    IGNORED = "ignored"
    UNKNOWN_MESSAGE = "unknown_message"


@dataclass
class StatusBatchResult:
    applied: int = 0
    ignored: int = 0
    unknown: int = 0
    errors: list[dict] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return not self.errors

    def as_dict(self) -> dict:
        return {
            "applied": self.applied,
            "ignored": self.ignored,
            "unknown": self.unknown,
            "errors": len(self.errors),
        }


def _status_time(raw: Optional[str]) -> datetime:
    try:
        return datetime.fromtimestamp(int(raw), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return datetime.now(timezone.utc)


def _error_fields(entry: StatusEntry) -> tuple[str, str]:
    first = entry.errors[0] if entry.errors else None
    if first is None:
        return "UNKNOWN", "Failed"
    code = str(first.code) if first.code is not None else "UNKNOWN"
    return code, first.title or first.message or "Failed"


def increment_campaign_counter(db: Session, campaign_id: str, status: str) -> None:
    column_name = CAMPAIGN_COUNTERS.get(status)
    if not column_name:
        return
    column = getattr(Campaign, column_name)
    db.execute(update(Campaign).where(Campaign.id == campaign_id).values({column_name: column + 1}))


def apply_status_update(db: Session, entry: StatusEntry) -> StatusOutcome:
    """Move one queued message forward; backward or repeated transitions are no-ops."""
    status = (entry.status or "").lower()
    if not entry.id or status not in ALLOWED_PREVIOUS:
        logger.info(
            "Ignoring unsupported status entry",
            extra={"context": {"provider_message_id": entry.id, "status": entry.status}},
        )
        return StatusOutcome.IGNORED

    row = (
        db.query(QueuedMessage.id, QueuedMessage.campaign_id)
        .filter(QueuedMessage.provider_message_id == entry.id)
        .first()
    )
    if row is None:
        logger.info(
            "Status for unknown message",
            extra={"context": {"provider_message_id": entry.id, "status": status}},
        )
        return StatusOutcome.UNKNOWN_MESSAGE

    values = {"delivery_status": status, TIMESTAMP_COLUMNS[status]: _status_time(entry.timestamp)}
    if status == "failed":
        values["error_code"], values["error_message"] = _error_fields(entry)

    result = db.execute(
        update(QueuedMessage)
        .where(
            QueuedMessage.id == row.id,
            QueuedMessage.delivery_status.in_(ALLOWED_PREVIOUS[status]),
        )
        .values(values)
    )
    if result.rowcount != 1:
        return StatusOutcome.IGNORED

    if row.campaign_id:
        increment_campaign_counter(db, row.campaign_id, status)

    return StatusOutcome.APPLIED


def apply_status_updates(db: Session, statuses: list[StatusEntry]) -> StatusBatchResult:
    """Apply every entry in its own savepoint; one failing entry does not stop the rest."""
    result = StatusBatchResult()

    for entry in statuses:
        try:
            with db.begin_nested():
                outcome = apply_status_update(db, entry)
        except Exception as exc:
            logger.error(
                "Status update failed",
                exc_info=True,
                extra={"context": {"provider_message_id": entry.id, "status": entry.status}},
            )
            result.errors.append({"provider_message_id": entry.id, "error": str(exc)})
            continue

        if outcome == StatusOutcome.APPLIED:
            result.applied += 1
        elif outcome == StatusOutcome.UNKNOWN_MESSAGE:
            result.unknown += 1
        else:
            result.ignored += 1

    return result
