"""Shared builders and collaborator doubles for the test suite."""

import json
from datetime import datetime, timedelta, timezone
from typing import Optional

from orderbot.models import (
    ChatbotSettings,
    Customer,
    PaymentSettings,
    Product,
    Subscription,
    WhatsAppAccount,
)
from orderbot.services.signature import compute_signature
from orderbot.services.whatsapp_service import ChannelError

TEST_SECRET = "test-app-secret"
OWNER_ID = "owner-1"
PHONE_NUMBER_ID = "pn-1"
SYSTEM_PHONE_NUMBER_ID = "pn-system"
CUSTOMER_PHONE = "919876543210"


class FakeChannel:
    """Outbound channel double that records every send."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.texts: list[tuple[str, str]] = []
        self.templates: list[str] = []
        self._counter = 0

    def _next_id(self) -> str:
        self._counter += 1
        return f"wamid.out-{self._counter}"

    def send_text_message(self, to: str, body: str) -> Optional[str]:
        if self.fail:
            raise ChannelError("send failed")
        self.texts.append((to, body))
        return self._next_id()

    def send_order_details_template(self, to: str) -> Optional[str]:
        if self.fail:
            raise ChannelError("send failed")
        self.templates.append(to)
        return self._next_id()


class StubExtractor:
    def __init__(self, result=None):
        self.result = result
        self.calls: list[str] = []

    def parse_order_details(self, text):
        self.calls.append(text)
        return self.result


class StubGenerator:
    def __init__(self, reply=None):
        self.reply = reply
        self.calls: list[tuple[str, str]] = []

    def generate_sales_reply(self, message, product_context):
        self.calls.append((message, product_context))
        return self.reply


def seed_business(
    db,
    *,
    owner_id: str = OWNER_ID,
    subscription_status: str = "active",
    plan_id: str = "starter",
    chatbot_enabled: bool = True,
    keyword_triggers: Optional[list] = None,
    payment_preference: Optional[str] = "both",
):
    now = datetime.now(timezone.utc)
    db.add(WhatsAppAccount(owner_id=owner_id, phone_number_id=PHONE_NUMBER_ID, access_token="biz-token"))
    db.add(
        ChatbotSettings(
            owner_id=owner_id,
            enabled=chatbot_enabled,
            auto_reply=True,
            language="en",
            tone="friendly",
            typing_delay=0,
            keyword_triggers=keyword_triggers or [],
        )
    )
    db.add(
        Subscription(
            owner_id=owner_id,
            plan_id=plan_id,
            status=subscription_status,
            current_period_end=now + timedelta(days=20),
        )
    )
    if payment_preference:
        db.add(
            PaymentSettings(
                owner_id=owner_id,
                payment_preference=payment_preference,
                upi_id="shop@upi",
                razorpay_link="https://rzp.io/l/shop",
            )
        )
    db.commit()


def seed_product(db, *, owner_id: str = OWNER_ID, name: str = "Cotton Kurta", price: int = 49900, stock: int = 5):
    product = Product(owner_id=owner_id, name=name, price=price, stock=stock, is_active=True)
    db.add(product)
    db.commit()
    return product


def seed_customer(db, *, owner_id: str = OWNER_ID, phone: str = CUSTOMER_PHONE, state: str = "browsing"):
    customer = Customer(owner_id=owner_id, phone=phone, name=phone, conversation_state=state)
    db.add(customer)
    db.commit()
    return customer


def message_payload(
    text: str,
    *,
    message_id: str = "wamid.in-1",
    sender: str = CUSTOMER_PHONE,
    phone_number_id: str = PHONE_NUMBER_ID,
) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "waba-1",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"display_phone_number": "15550000000", "phone_number_id": phone_number_id},
                            "messages": [
                                {
                                    "id": message_id,
                                    "from": sender,
                                    "timestamp": "1717000000",
                                    "type": "text",
                                    "text": {"body": text},
                                }
                            ],
                        },
                    }
                ],
            }
        ],
    }


def status_payload(statuses: list[dict], phone_number_id: str = PHONE_NUMBER_ID) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "id": "waba-1",
                "changes": [
                    {
                        "field": "messages",
                        "value": {
                            "messaging_product": "whatsapp",
                            "metadata": {"phone_number_id": phone_number_id},
                            "statuses": statuses,
                        },
                    }
                ],
            }
        ],
    }


def signed_post(client, payload, secret: str = TEST_SECRET, signature: Optional[str] = None):
    raw = json.dumps(payload).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    if signature is None:
        signature = f"sha256={compute_signature(raw, secret)}"
    if signature:
        headers["X-Hub-Signature-256"] = signature
    return client.post("/webhooks/whatsapp", content=raw, headers=headers)
