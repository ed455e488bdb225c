"""Per-message conversation flow: order collection or the reply chain."""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.orm import Session

from orderbot.logging_config import get_logger
from orderbot.models import ChatbotSettings, Customer, Message
from orderbot.schemas.conversation import CollectingOrderContext, OrderDetails
from orderbot.services.ai_service import OrderDetailsExtractor, SalesReplyGenerator
from orderbot.services.conversation_service import get_context, get_stage, reset_to_browsing, set_stage
from orderbot.services.intent_service import detect_purchase_intent
from orderbot.services.message_service import mark_message_processed, record_outbound_message
from orderbot.services.order_service import (
    ERROR_OUT_OF_STOCK,
    MSG_REPROMPT,
    assemble_order,
    compose_payment_message,
)
from orderbot.services.reply_service import deliver_reply, resolve_reply, wait_typing_delay
from orderbot.services.reply_tables import DEFAULT_REPLY_TABLES, ReplyTables
from orderbot.services.state_machine import ConversationStage
from orderbot.services.whatsapp_service import ORDER_DETAILS_TEMPLATE, ChannelError, get_channel

logger = get_logger("conversation_engine")


class TurnOutcome(str, Enum):
    TEMPLATE_SENT = "order_template_sent"
    ORDER_CREATED = "order_created"
    OUT_OF_STOCK = "out_of_stock"
    REPROMPTED = "reprompted"
    ORDER_FAILED = "order_failed"
    REPLIED = "replied"
    NO_REPLY = "no_reply"


@dataclass
class TurnResult:
    outcome: TurnOutcome
    order_id: Optional[int] = None
    reply_stage: Optional[str] = None


class ConversationEngine:
    """Decides what one inbound message does to a customer's conversation.

    State changes and the inbound processed mark are committed before any
    message goes out, so a redelivered message never repeats a side effect.
    """

    def __init__(
        self,
        extractor: Optional[OrderDetailsExtractor] = None,
        generator: Optional[SalesReplyGenerator] = None,
        channel_factory: Callable = get_channel,
        tables: ReplyTables = DEFAULT_REPLY_TABLES,
        wait: Callable[[float], bool] = wait_typing_delay,
    ):
        self.extractor = extractor or OrderDetailsExtractor()
        self.generator = generator or SalesReplyGenerator()
        self.channel_factory = channel_factory
        self.tables = tables
        self.wait = wait

    def handle(
        self,
        db: Session,
        customer: Customer,
        text: str,
        chatbot_settings: ChatbotSettings,
        inbound: Optional[Message] = None,
    ) -> TurnResult:
        if get_stage(customer) == ConversationStage.COLLECTING_ORDER_DETAILS:
            return self._continue_order(db, customer, text, inbound)

        if detect_purchase_intent(text):
            return self._start_order(db, customer, inbound)

        return self._reply(db, customer, text, chatbot_settings, inbound)

    def _finish_turn(self, db: Session, inbound: Optional[Message]) -> None:
        if inbound is not None:
            mark_message_processed(db, inbound, datetime.now(timezone.utc))
        db.commit()

    def _send_text(self, db: Session, customer: Customer, body: str) -> bool:
        channel = self.channel_factory(db, customer.owner_id)
        if channel is None:
            return False
        try:
            provider_message_id = channel.send_text_message(customer.phone, body)
        except ChannelError as e:
            logger.error(f"Send failed: {e}", extra={"context": {"owner_id": customer.owner_id, "phone": customer.phone}})
            return False
        record_outbound_message(db, customer.owner_id, customer.phone, body, customer.id, provider_message_id)
        db.commit()
        return True

    def _start_order(self, db: Session, customer: Customer, inbound: Optional[Message]) -> TurnResult:
        set_stage(db, customer, CollectingOrderContext())
        self._finish_turn(db, inbound)

        channel = self.channel_factory(db, customer.owner_id)
        if channel is None:
            return TurnResult(outcome=TurnOutcome.TEMPLATE_SENT)
        try:
            provider_message_id = channel.send_order_details_template(customer.phone)
        except ChannelError as e:
            logger.error(
                f"Order template send failed: {e}",
                extra={"context": {"owner_id": customer.owner_id, "phone": customer.phone}},
            )
            return TurnResult(outcome=TurnOutcome.TEMPLATE_SENT)

        record_outbound_message(
            db, customer.owner_id, customer.phone, ORDER_DETAILS_TEMPLATE, customer.id, provider_message_id
        )
        db.commit()
        return TurnResult(outcome=TurnOutcome.TEMPLATE_SENT)

    def _extract(self, text: str) -> Optional[OrderDetails]:
        try:
            return self.extractor.parse_order_details(text)
        except Exception as e:
            logger.warning(f"Order extraction unavailable: {e}")
            return None

    def _continue_order(self, db: Session, customer: Customer, text: str, inbound: Optional[Message]) -> TurnResult:
        details = self._extract(text)

        if details is None or not details.is_complete():
            context = get_context(customer)
            attempts = context.attempts + 1 if isinstance(context, CollectingOrderContext) else 1
            partial = details.model_dump(exclude_none=True) if details is not None else {}
            set_stage(db, customer, CollectingOrderContext(partial_fields=partial, attempts=attempts))
            self._finish_turn(db, inbound)
            self._send_text(db, customer, MSG_REPROMPT)
            return TurnResult(outcome=TurnOutcome.REPROMPTED)

        result = assemble_order(db, customer.owner_id, customer, details)
        reset_to_browsing(db, customer)
        self._finish_turn(db, inbound)

        if result.ok:
            assembled = result.value
            self._send_text(db, customer, compose_payment_message(assembled.order, assembled.payment_settings))
            return TurnResult(outcome=TurnOutcome.ORDER_CREATED, order_id=assembled.order.id)

        if result.error_code == ERROR_OUT_OF_STOCK:
            self._send_text(db, customer, result.error)
            return TurnResult(outcome=TurnOutcome.OUT_OF_STOCK)

        self._send_text(db, customer, MSG_REPROMPT)
        return TurnResult(outcome=TurnOutcome.ORDER_FAILED)

    def _reply(
        self,
        db: Session,
        customer: Customer,
        text: str,
        chatbot_settings: ChatbotSettings,
        inbound: Optional[Message],
    ) -> TurnResult:
        resolution = resolve_reply(db, customer.owner_id, text, chatbot_settings, self.generator, self.tables)
        self._finish_turn(db, inbound)
        if resolution is None:
            return TurnResult(outcome=TurnOutcome.NO_REPLY)

        channel = self.channel_factory(db, customer.owner_id)
        sent = deliver_reply(db, customer, resolution, chatbot_settings, channel, wait=self.wait)
        db.commit()
        if not sent:
            return TurnResult(outcome=TurnOutcome.NO_REPLY, reply_stage=resolution.stage)
        return TurnResult(outcome=TurnOutcome.REPLIED, reply_stage=resolution.stage)
