import threading
from dataclasses import dataclass
from typing import Callable, Optional

from sqlalchemy.orm import Session

from orderbot.config import settings
from orderbot.logging_config import get_logger
from orderbot.models import ChatbotSettings, Customer, PaymentSettings, Product
from orderbot.services.ai_service import MAX_CONTEXT_PRODUCTS, SalesReplyGenerator, build_product_context
from orderbot.services.message_service import record_outbound_message
from orderbot.services.reply_tables import DEFAULT_REPLY_TABLES, ReplyTables
from orderbot.services.trigger_resolver import coerce_triggers, find_best_trigger_match
from orderbot.services.usage_service import METRIC_AI_REPLIES, increment_usage
from orderbot.services.whatsapp_service import ChannelError

logger = get_logger("reply_service")

STAGE_KEYWORD = "keyword_trigger"
STAGE_PAYMENT_FAQ = "payment_faq"
STAGE_CATALOG = "catalog_generation"
STAGE_FALLBACK = "fallback"

# Set on process shutdown; interrupts pending typing delays.
shutdown_event = threading.Event()


@dataclass
class ReplyResolution:
    stage: str
    text: str


def wait_typing_delay(seconds: float) -> bool:
    """Pause before replying. Returns False when shutdown interrupted the wait."""
    if seconds <= 0:
        return not shutdown_event.is_set()
    return not shutdown_event.wait(seconds)


def payment_faq_reply(text: str, payment: Optional[PaymentSettings], tables: ReplyTables) -> Optional[str]:
    if payment is None:
        return None
    lowered = text.lower()
    if not any(term in lowered for term in tables.payment_terms):
        return None

    preference = payment.payment_preference or "both"
    reply = tables.payment_faq.get(preference, tables.payment_faq["both"])
    if preference == "cod" and payment.cod_notes:
        reply += f" Note: {payment.cod_notes}"
    return reply


def catalog_reply(db: Session, owner_id: str, text: str, generator: SalesReplyGenerator) -> Optional[str]:
    products = (
        db.query(Product)
        .filter(Product.owner_id == owner_id, Product.is_active.is_(True))
        .order_by(Product.created_at, Product.name)
        .limit(MAX_CONTEXT_PRODUCTS)
        .all()
    )
    if not products:
        return None

    try:
        return generator.generate_sales_reply(text, build_product_context(products))
    except Exception as e:
        logger.warning(f"Catalog reply unavailable, falling back: {e}", extra={"context": {"owner_id": owner_id}})
        return None


def fallback_reply(chatbot_settings: ChatbotSettings, tables: ReplyTables) -> Optional[str]:
    if chatbot_settings.welcome_message:
        return chatbot_settings.welcome_message
    return f"{tables.greeting(chatbot_settings.language)} {tables.tone_response(chatbot_settings.tone)}".strip() or None


def resolve_reply(
    db: Session,
    owner_id: str,
    text: str,
    chatbot_settings: ChatbotSettings,
    generator: SalesReplyGenerator,
    tables: ReplyTables = DEFAULT_REPLY_TABLES,
) -> Optional[ReplyResolution]:
    """Run the reply stages in order; the first non-empty answer wins."""
    trigger = find_best_trigger_match(text, coerce_triggers(chatbot_settings.keyword_triggers))
    if trigger:
        return ReplyResolution(stage=STAGE_KEYWORD, text=trigger.response)

    payment = db.query(PaymentSettings).filter(PaymentSettings.owner_id == owner_id).first()
    reply = payment_faq_reply(text, payment, tables)
    if reply:
        return ReplyResolution(stage=STAGE_PAYMENT_FAQ, text=reply)

    reply = catalog_reply(db, owner_id, text, generator)
    if reply:
        return ReplyResolution(stage=STAGE_CATALOG, text=reply)

    reply = fallback_reply(chatbot_settings, tables)
    if reply:
        return ReplyResolution(stage=STAGE_FALLBACK, text=reply)

    return None


def deliver_reply(
    db: Session,
    customer: Customer,
    resolution: ReplyResolution,
    chatbot_settings: ChatbotSettings,
    channel,
    wait: Callable[[float], bool] = wait_typing_delay,
) -> bool:
    """Send a resolved reply, then record it and count it against the reply quota."""
    if channel is None:
        logger.warning("Reply dropped, no outbound channel", extra={"context": {"owner_id": customer.owner_id}})
        return False

    delay_seconds = min((chatbot_settings.typing_delay or 0) / 1000, settings.max_typing_delay_seconds)
    if not wait(delay_seconds):
        logger.info("Reply abandoned during shutdown", extra={"context": {"owner_id": customer.owner_id}})
        return False

    try:
        provider_message_id = channel.send_text_message(customer.phone, resolution.text)
    except ChannelError as e:
        logger.error(
            f"Reply send failed: {e}",
            extra={"context": {"owner_id": customer.owner_id, "phone": customer.phone, "stage": resolution.stage}},
        )
        return False

    record_outbound_message(
        db,
        owner_id=customer.owner_id,
        phone=customer.phone,
        content=resolution.text,
        customer_id=customer.id,
        provider_message_id=provider_message_id,
    )
    increment_usage(db, customer.owner_id, METRIC_AI_REPLIES)
    logger.info(
        "Reply sent",
        extra={"context": {"owner_id": customer.owner_id, "phone": customer.phone, "stage": resolution.stage}},
    )
    return True
