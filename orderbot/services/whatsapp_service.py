from typing import Optional

import httpx
from sqlalchemy.orm import Session

from orderbot.config import settings
from orderbot.logging_config import get_logger
from orderbot.models import WhatsAppAccount
from orderbot.services.alert_service import alert_critical

logger = get_logger("whatsapp_service")

ORDER_DETAILS_TEMPLATE = (
    "To place your order, please reply in this format (you can copy-paste and fill):\n\n"
    "1) Full Name\n"
    "2) Phone Number\n"
    "3) Email Address\n"
    "4) Delivery Address (with PIN)\n\n"
    "Example:\n\n"
    "Rahul Verma\n"
    "9876543210\n"
    "rahul@example.com\n"
    "221002, Gomti Nagar, Lucknow"
)


class ChannelError(Exception):
    """Outbound send was rejected or could not reach the provider."""


class WhatsAppClient:
    """Send-message client for one WhatsApp Cloud API phone number."""

    def __init__(
        self,
        phone_number_id: str,
        access_token: str,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.phone_number_id = phone_number_id
        self.access_token = access_token
        self.base_url = (base_url or settings.graph_api_base_url).rstrip("/")
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else settings.whatsapp_send_timeout_seconds

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/{self.phone_number_id}/messages"

    def send_message(self, to: str, message: dict) -> Optional[str]:
        """POST one message; returns the provider message id when the API reports one."""
        payload = {"messaging_product": "whatsapp", "to": to, **message}
        try:
            with httpx.Client(timeout=self.timeout_seconds) as client:
                response = client.post(
                    self.messages_url,
                    headers={
                        "Authorization": f"Bearer {self.access_token}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"WhatsApp send failed: {e}", extra={"context": {"to": to}})
            alert_critical("WhatsApp send failed", {"to": to, "error": str(e)})
            raise ChannelError(str(e)) from e

        if response.status_code >= 400:
            logger.error(
                "WhatsApp API rejected message",
                extra={"context": {"to": to, "status": response.status_code, "body": response.text[:300]}},
            )
            raise ChannelError(f"WhatsApp API error: {response.status_code}")

        try:
            data = response.json()
        except ValueError:
            return None
        messages = data.get("messages") or []
        return messages[0].get("id") if messages else None

    def send_text_message(self, to: str, body: str) -> Optional[str]:
        return self.send_message(to, {"type": "text", "text": {"body": body}})

    def send_order_details_template(self, to: str) -> Optional[str]:
        return self.send_text_message(to, ORDER_DETAILS_TEMPLATE)


def get_system_client() -> Optional[WhatsAppClient]:
    if not settings.system_phone_number_id or not settings.system_access_token:
        return None
    return WhatsAppClient(settings.system_phone_number_id, settings.system_access_token)


def get_business_client(db: Session, owner_id: str) -> Optional[WhatsAppClient]:
    account = (
        db.query(WhatsAppAccount)
        .filter(WhatsAppAccount.owner_id == owner_id, WhatsAppAccount.is_active.is_(True))
        .first()
    )
    if not account or not account.access_token:
        return None
    return WhatsAppClient(account.phone_number_id, account.access_token)


def get_channel(db: Session, owner_id: str) -> Optional[WhatsAppClient]:
    """Business number when configured, otherwise the system number."""
    client = get_business_client(db, owner_id)
    if client is None:
        client = get_system_client()
    if client is None:
        logger.warning("No WhatsApp client available", extra={"context": {"owner_id": owner_id}})
    return client
