import pytest

from orderbot.services.reply_tables import (
    DEFAULT_REPLY_TABLES,
    LANGUAGE_GREETINGS,
    PAYMENT_FAQ,
    TONE_RESPONSES,
    ReplyTables,
)


class TestReplyTables:
    def test_defaults_share_module_tables(self):
        tables = ReplyTables()

        assert tables.tone_responses is TONE_RESPONSES
        assert tables.language_greetings is LANGUAGE_GREETINGS
        assert tables.payment_faq is PAYMENT_FAQ
        assert tables == DEFAULT_REPLY_TABLES

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_REPLY_TABLES.tone_responses["friendly"] = "changed"

    def test_custom_tables_fall_back_to_defaults_for_unknown_keys(self):
        tables = ReplyTables(
            tone_responses={"friendly": "Hi friend!", "brief": "Yes?"},
            language_greetings={"en": "Hey!"},
        )

        assert tables.tone_response("brief") == "Yes?"
        assert tables.tone_response("sarcastic") == "Hi friend!"
        assert tables.greeting("ta") == "Hey!"
        assert tables.payment_faq is PAYMENT_FAQ
