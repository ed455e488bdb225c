"""Fixed reply copy, exposed as read-only mappings."""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

DEFAULT_TONE = "friendly"
DEFAULT_LANGUAGE = "en"

TONE_RESPONSES: Mapping[str, str] = MappingProxyType(
    {
        "friendly": "Thanks for your message! I'm here to help you with a friendly and warm approach. How can I assist you today?",
        "professional": "Thank you for contacting us. We appreciate your inquiry and are ready to assist you with your needs in a professional manner.",
        "casual": "Hey there! Got your message. What can I do for you?",
        "formal": "We acknowledge receipt of your message. We shall attend to your inquiry with due diligence and professionalism.",
    }
)

LANGUAGE_GREETINGS: Mapping[str, str] = MappingProxyType(
    {
        "en": "Hello!",
        "hi": "नमस्ते!",
        "es": "¡Hola!",
        "fr": "Bonjour!",
        "de": "Hallo!",
    }
)

PAYMENT_TERMS = ("pay", "cod", "upi", "card", "cash")

PAYMENT_FAQ: Mapping[str, str] = MappingProxyType(
    {
        "cod": "We accept Cash on Delivery (COD). You can pay when the order arrives.",
        "online": "We accept online payments via UPI, Credit/Debit Card, and Netbanking. We do not support COD at this time.",
        "both": "We accept both Online Payments (UPI/Cards) and Cash on Delivery (COD). Choose your preferred method at checkout.",
    }
)


@dataclass(frozen=True)
class ReplyTables:
    tone_responses: Mapping[str, str] = field(default_factory=lambda: TONE_RESPONSES)
    language_greetings: Mapping[str, str] = field(default_factory=lambda: LANGUAGE_GREETINGS)
    payment_faq: Mapping[str, str] = field(default_factory=lambda: PAYMENT_FAQ)
    payment_terms: tuple = PAYMENT_TERMS

    def tone_response(self, tone: str | None) -> str:
        return self.tone_responses.get(tone or DEFAULT_TONE, self.tone_responses[DEFAULT_TONE])

    def greeting(self, language: str | None) -> str:
        return self.language_greetings.get(language or DEFAULT_LANGUAGE, self.language_greetings[DEFAULT_LANGUAGE])


DEFAULT_REPLY_TABLES = ReplyTables()
