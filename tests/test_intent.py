import pytest

from orderbot.services.intent_service import detect_purchase_intent


class TestDetectPurchaseIntent:
    @pytest.mark.parametrize(
        "text",
        ["I want to buy this", "ORDER NOW", "can I place order?", "Book this for me", "i want this one"],
    )
    def test_detects_purchase_phrases(self, text):
        assert detect_purchase_intent(text) is True

    @pytest.mark.parametrize("text", ["hello", "what are your hours?", "", None])
    def test_ignores_other_messages(self, text):
        assert detect_purchase_intent(text) is False
