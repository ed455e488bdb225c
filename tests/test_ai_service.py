from unittest.mock import Mock

import httpx

from orderbot.models import Product
from orderbot.services.ai_service import (
    OrderDetailsExtractor,
    SalesReplyGenerator,
    build_product_context,
    format_price,
)
from orderbot.services.llm import LLMProviderError, LLMResponse


def _provider(content=None, side_effect=None):
    provider = Mock()
    if side_effect is not None:
        provider.generate.side_effect = side_effect
    else:
        provider.generate.return_value = LLMResponse(content=content, model="gpt-4o-mini")
    return provider


class TestProductContext:
    def test_formats_price_and_stock(self):
        products = [
            Product(name="Cotton Kurta", price=49900, stock=3),
            Product(name="Silk Saree", price=250000, stock=0),
        ]

        context = build_product_context(products)

        assert context == "- Cotton Kurta: ₹499.00\n- Silk Saree: ₹2500.00 [Out of Stock]"

    def test_respects_limit(self):
        products = [Product(name=f"Item {i}", price=100, stock=1) for i in range(30)]
        assert len(build_product_context(products).splitlines()) == 20

    def test_format_price(self):
        assert format_price(5) == "₹0.05"


class TestOrderDetailsExtractor:
    def test_parses_json_reply(self):
        provider = _provider(
            '{"name": "Rahul Verma", "phone": 9876543210, "email": "rahul@example.com", '
            '"address": "221002, Lucknow", "items_summary": "", "quantity": "2"}'
        )

        details = OrderDetailsExtractor(provider=provider).parse_order_details("Rahul ...")

        assert details.name == "Rahul Verma"
        assert details.phone == "9876543210"
        assert details.quantity == 2
        assert details.is_complete()
        kwargs = provider.generate.call_args.kwargs
        assert kwargs["temperature"] == 0
        assert kwargs["timeout_seconds"] > 0

    def test_strips_code_fence(self):
        provider = _provider('```json\n{"name": "A", "phone": "1", "email": "", "address": "X"}\n```')

        details = OrderDetailsExtractor(provider=provider).parse_order_details("A 1 X")

        assert details.missing_fields() == ["email"]

    def test_invalid_json_returns_none(self):
        provider = _provider("Sorry, I cannot help with that")
        assert OrderDetailsExtractor(provider=provider).parse_order_details("hi") is None

    def test_non_object_json_returns_none(self):
        provider = _provider('["Rahul"]')
        assert OrderDetailsExtractor(provider=provider).parse_order_details("hi") is None

    def test_timeout_returns_none(self):
        provider = _provider(side_effect=httpx.ReadTimeout("timed out"))
        assert OrderDetailsExtractor(provider=provider).parse_order_details("hi") is None

    def test_blank_text_skips_provider(self):
        provider = _provider("{}")
        assert OrderDetailsExtractor(provider=provider).parse_order_details("   ") is None
        provider.generate.assert_not_called()


class TestSalesReplyGenerator:
    def test_returns_trimmed_reply(self):
        provider = _provider("  The Cotton Kurta is ₹499.00. Want one?  ")

        reply = SalesReplyGenerator(provider=provider).generate_sales_reply("kurta?", "- Cotton Kurta: ₹499.00")

        assert reply == "The Cotton Kurta is ₹499.00. Want one?"
        system_prompt = provider.generate.call_args.kwargs["messages"][0]["content"]
        assert "- Cotton Kurta: ₹499.00" in system_prompt

    def test_empty_reply_is_none(self):
        provider = _provider("   ")
        assert SalesReplyGenerator(provider=provider).generate_sales_reply("hi", "") is None

    def test_provider_error_is_none(self):
        provider = _provider(side_effect=LLMProviderError("OpenAI API error: 500"))
        assert SalesReplyGenerator(provider=provider).generate_sales_reply("hi", "") is None
