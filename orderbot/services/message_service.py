from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from orderbot.logging_config import get_logger
from orderbot.models import Message, QueuedMessage

logger = get_logger("message_service")


def find_inbound_message(db: Session, owner_id: str, provider_message_id: str) -> Optional[Message]:
    return (
        db.query(Message)
        .filter(Message.owner_id == owner_id, Message.provider_message_id == provider_message_id)
        .first()
    )


def save_inbound_message(
    db: Session,
    owner_id: str,
    phone: str,
    provider_message_id: Optional[str],
    content: str,
    message_type: str = "text",
    received_at: Optional[datetime] = None,
) -> Tuple[Message, bool]:
    """Persist an inbound message once per provider id. Returns (message, created)."""
    if provider_message_id:
        existing = find_inbound_message(db, owner_id, provider_message_id)
        if existing:
            return existing, False

    message = Message(
        owner_id=owner_id,
        phone=phone,
        direction="inbound",
        provider_message_id=provider_message_id,
        message_type=message_type,
        content=content,
        created_at=received_at or datetime.now(timezone.utc),
    )
    try:
        with db.begin_nested():
            db.add(message)
            db.flush()
    except IntegrityError:
        existing = find_inbound_message(db, owner_id, provider_message_id)
        if existing is None:
            raise
        return existing, False

    return message, True


def mark_message_processed(db: Session, message: Message, now: Optional[datetime] = None) -> None:
    message.processed_at = now or datetime.now(timezone.utc)
    db.flush()


def record_outbound_message(
    db: Session,
    owner_id: str,
    phone: str,
    content: str,
    customer_id: Optional[str] = None,
    provider_message_id: Optional[str] = None,
) -> Message:
    """Append a sent reply to history; with a provider id it is also tracked for delivery status."""
    now = datetime.now(timezone.utc)
    message = Message(
        owner_id=owner_id,
        customer_id=customer_id,
        phone=phone,
        direction="outbound",
        provider_message_id=provider_message_id,
        message_type="text",
        content=content,
        created_at=now,
    )
    db.add(message)

    if provider_message_id:
        db.add(
            QueuedMessage(
                owner_id=owner_id,
                recipient=phone,
                content=content,
                provider_message_id=provider_message_id,
                delivery_status="sent",
                sent_at=now,
                created_at=now,
            )
        )

    db.flush()
    return message
