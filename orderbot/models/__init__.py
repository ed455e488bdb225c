from orderbot.models.account import WhatsAppAccount
from orderbot.models.business import BusinessSettings, ChatbotSettings, PaymentSettings
from orderbot.models.customer import Customer, Lead
from orderbot.models.message import Campaign, Message, QueuedMessage
from orderbot.models.order import Order, OrderItem, PaymentRecord
from orderbot.models.product import Product
from orderbot.models.subscription import Subscription
from orderbot.models.usage import UsageCounter
from orderbot.models.webhook_log import WebhookLog

__all__ = [
    "WhatsAppAccount",
    "ChatbotSettings",
    "BusinessSettings",
    "PaymentSettings",
    "Subscription",
    "Product",
    "Customer",
    "Lead",
    "Message",
    "Campaign",
    "QueuedMessage",
    "WebhookLog",
    "Order",
    "OrderItem",
    "PaymentRecord",
    "UsageCounter",
]
