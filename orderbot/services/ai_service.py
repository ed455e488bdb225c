import json
from typing import Iterable, Optional

import httpx
from pydantic import ValidationError

from orderbot.config import settings
from orderbot.logging_config import get_logger
from orderbot.models import Product
from orderbot.schemas.conversation import OrderDetails
from orderbot.services.llm import LLMProvider, LLMProviderError, OpenAIProvider

logger = get_logger("ai_service")

MAX_CONTEXT_PRODUCTS = 20

ORDER_PARSER_PROMPT = """You parse WhatsApp order messages. The customer replies with their details in this order (numbering is optional):

1) Full Name
2) Phone Number
3) Email Address
4) Delivery Address (with PIN)
5) Items/Product (optional)

Return a JSON object with exactly these keys: name, phone, email, address, items_summary, quantity.
- items_summary: any mention of products or quantities (e.g. "2 shirts"), else an empty string.
- quantity: integer if the customer states one, else null.
- Set any missing field to an empty string.
- Output JSON only, no markdown or commentary."""

SALES_REPLY_PROMPT = """You are a friendly sales assistant for a store on WhatsApp.
Answer questions about products using ONLY the context below.
- Be concise and friendly.
- Give price and details for products the customer asks about and ask if they want to buy.
- Products marked [Out of Stock] are unavailable: say so and suggest alternatives. Never offer to order them.
- Prices are in INR (₹).
- Never invent products.

Context (Available Products):
{product_context}
"""

_llm_provider: Optional[LLMProvider] = None


def get_llm_provider() -> Optional[LLMProvider]:
    global _llm_provider
    if _llm_provider is None and settings.openai_api_key:
        _llm_provider = OpenAIProvider(api_key=settings.openai_api_key, default_model=settings.llm_model)
    return _llm_provider


def format_price(minor_units: int) -> str:
    return f"₹{minor_units / 100:.2f}"


def build_product_context(products: Iterable[Product], limit: int = MAX_CONTEXT_PRODUCTS) -> str:
    lines = []
    for product in list(products)[:limit]:
        line = f"- {product.name}: {format_price(product.price or 0)}"
        if (product.stock or 0) <= 0:
            line += " [Out of Stock]"
        lines.append(line)
    return "\n".join(lines)


def _strip_code_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    return text.strip()


class OrderDetailsExtractor:
    """Turns a free-text order reply into structured fields."""

    def __init__(self, provider: Optional[LLMProvider] = None, timeout_seconds: Optional[float] = None):
        self.provider = provider
        self.timeout_seconds = timeout_seconds or settings.extraction_timeout_seconds

    def parse_order_details(self, text: str) -> Optional[OrderDetails]:
        provider = self.provider or get_llm_provider()
        if provider is None or not (text or "").strip():
            return None

        try:
            response = provider.generate(
                messages=[
                    {"role": "system", "content": ORDER_PARSER_PROMPT},
                    {"role": "user", "content": text},
                ],
                temperature=0,
                max_tokens=300,
                timeout_seconds=self.timeout_seconds,
            )
            data = json.loads(_strip_code_fence(response.content))
            if not isinstance(data, dict):
                return None
            return OrderDetails.model_validate(data)
        except (httpx.HTTPError, LLMProviderError, ValueError, ValidationError) as e:
            logger.warning(f"Order details extraction failed: {e}")
            return None


class SalesReplyGenerator:
    """Catalog-grounded reply generation."""

    def __init__(self, provider: Optional[LLMProvider] = None, timeout_seconds: Optional[float] = None):
        self.provider = provider
        self.timeout_seconds = timeout_seconds or settings.generation_timeout_seconds

    def generate_sales_reply(self, message: str, product_context: str) -> Optional[str]:
        provider = self.provider or get_llm_provider()
        if provider is None:
            return None

        try:
            response = provider.generate(
                messages=[
                    {"role": "system", "content": SALES_REPLY_PROMPT.format(product_context=product_context)},
                    {"role": "user", "content": message},
                ],
                temperature=0.7,
                max_tokens=150,
                timeout_seconds=self.timeout_seconds,
            )
        except (httpx.HTTPError, LLMProviderError, ValueError) as e:
            logger.warning(f"Sales reply generation failed: {e}")
            return None

        return (response.content or "").strip() or None
