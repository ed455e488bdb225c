from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from orderbot.config import settings
from orderbot.logging_config import get_logger
from orderbot.models import ChatbotSettings, WhatsAppAccount
from orderbot.services.conversation_engine import ConversationEngine
from orderbot.services.conversation_service import customer_lock, get_or_create_customer, lock_customer_row, touch_customer
from orderbot.services.dedup_service import begin_event, derive_event_id, mark_event_processed
from orderbot.services.gating_service import run_gates
from orderbot.services.message_service import mark_message_processed, save_inbound_message
from orderbot.services.payload_classifier import ClassifiedPayload, PayloadKind, classify_payload
from orderbot.services.status_service import apply_status_updates
from orderbot.services.whatsapp_service import ChannelError, get_system_client

logger = get_logger("webhook_service")

MSG_ONBOARDING_ACK = "Thanks! We've received your details. Our system is processing them."

OUTCOME_IGNORED = "ignored"
OUTCOME_DUPLICATE = "duplicate"
OUTCOME_ONBOARDING = "onboarding"
OUTCOME_UNKNOWN_ACCOUNT = "unknown_account"
OUTCOME_GATED = "gated"
OUTCOME_STATUS = "status_processed"


def _received_at(raw_timestamp: Optional[str]) -> datetime:
    try:
        return datetime.fromtimestamp(int(raw_timestamp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return datetime.now(timezone.utc)


def process_webhook(db: Session, payload: dict, engine: ConversationEngine) -> dict:
    """Route one verified webhook body to the message or status path."""
    classified = classify_payload(payload)

    if classified.kind == PayloadKind.STATUS:
        return handle_status_event(db, payload, classified)
    if classified.kind == PayloadKind.MESSAGE:
        return handle_message_event(db, classified, engine)

    logger.info("Unclassified webhook payload", extra={"context": {"keys": list(payload.keys())[:10]}})
    return {"outcome": OUTCOME_IGNORED}


def handle_status_event(db: Session, payload: dict, classified: ClassifiedPayload) -> dict:
    event_id = derive_event_id(classified.statuses)
    claim = begin_event(db, event_id, payload)
    if claim.duplicate:
        logger.info("Duplicate status event", extra={"context": {"event_id": event_id, "reason": claim.reason}})
        return {"outcome": OUTCOME_DUPLICATE, "event_id": event_id}

    batch = apply_status_updates(db, classified.statuses)
    if batch.all_succeeded:
        mark_event_processed(db, event_id)
    db.commit()

    logger.info("Status event processed", extra={"context": {"event_id": event_id, **batch.as_dict()}})
    return {"outcome": OUTCOME_STATUS, "event_id": event_id, **batch.as_dict()}


def _send_onboarding_ack(phone: str) -> None:
    client = get_system_client()
    if client is None:
        logger.warning("System WhatsApp number not configured, onboarding ack skipped")
        return
    try:
        client.send_text_message(phone, MSG_ONBOARDING_ACK)
    except ChannelError as e:
        logger.error(f"Onboarding ack failed: {e}", extra={"context": {"phone": phone}})


def handle_message_event(db: Session, classified: ClassifiedPayload, engine: ConversationEngine) -> dict:
    message = classified.message
    sender = message.sender if message else None
    phone_number_id = classified.phone_number_id
    if not sender or not phone_number_id:
        logger.info("Message event without sender or phone number id")
        return {"outcome": OUTCOME_IGNORED}

    if settings.system_phone_number_id and phone_number_id == settings.system_phone_number_id:
        logger.info("System onboarding message", extra={"context": {"phone": sender}})
        _send_onboarding_ack(sender)
        return {"outcome": OUTCOME_ONBOARDING}

    account = db.query(WhatsAppAccount).filter(WhatsAppAccount.phone_number_id == phone_number_id).first()
    if account is None:
        logger.warning("No account for phone number id", extra={"context": {"phone_number_id": phone_number_id}})
        return {"outcome": OUTCOME_UNKNOWN_ACCOUNT}

    owner_id = account.owner_id
    text = classified.message_text if classified.message_kind == "text" else f"[{message.type} message]"
    log_context = {"owner_id": owner_id, "phone": sender, "message_id": message.id}

    inbound, created = save_inbound_message(
        db,
        owner_id=owner_id,
        phone=sender,
        provider_message_id=message.id,
        content=text,
        message_type=classified.message_kind,
        received_at=_received_at(message.timestamp),
    )
    already_processed = not created and inbound.processed_at is not None
    db.commit()

    if already_processed:
        logger.info("Duplicate inbound message", extra={"context": log_context})
        return {"outcome": OUTCOME_DUPLICATE}

    # no transaction may be open while waiting on the customer lock
    with customer_lock(owner_id, sender):
        db.refresh(inbound)
        if inbound.processed_at is not None:
            logger.info("Inbound message handled concurrently", extra={"context": log_context})
            return {"outcome": OUTCOME_DUPLICATE}

        chatbot_settings = db.query(ChatbotSettings).filter(ChatbotSettings.owner_id == owner_id).first()

        customer = get_or_create_customer(db, owner_id, sender)
        customer = lock_customer_row(db, customer)
        touch_customer(db, customer)
        inbound.customer_id = customer.id

        decision = run_gates(db, owner_id, chatbot_settings)
        if not decision.allowed:
            mark_message_processed(db, inbound)
            db.commit()
            logger.info("Message gated", extra={"context": {**log_context, "reason": decision.reason}})
            return {"outcome": OUTCOME_GATED, "reason": decision.reason}

        result = engine.handle(db, customer, text, chatbot_settings, inbound)

    logger.info("Message handled", extra={"context": {**log_context, "outcome": result.outcome.value}})
    response = {"outcome": result.outcome.value}
    if result.order_id is not None:
        response["order_id"] = result.order_id
    return response
