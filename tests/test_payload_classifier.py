from helpers import PHONE_NUMBER_ID, message_payload, status_payload
from orderbot.services.payload_classifier import PayloadKind, classify_payload


class TestClassifyPayload:
    def test_message_event(self):
        classified = classify_payload(message_payload("hi there"))

        assert classified.kind == PayloadKind.MESSAGE
        assert classified.message.id == "wamid.in-1"
        assert classified.message.sender == "919876543210"
        assert classified.message_text == "hi there"
        assert classified.message_kind == "text"
        assert classified.phone_number_id == PHONE_NUMBER_ID
        assert classified.statuses == []

    def test_status_event_collects_entries_across_changes(self):
        payload = status_payload([{"id": "wamid.a", "status": "sent"}])
        payload["entry"].append(status_payload([{"id": "wamid.b", "status": "read"}])["entry"][0])

        classified = classify_payload(payload)

        assert classified.kind == PayloadKind.STATUS
        assert [s.id for s in classified.statuses] == ["wamid.a", "wamid.b"]
        assert classified.message is None

    def test_message_and_status_in_one_payload_is_a_message(self):
        payload = message_payload("hello")
        payload["entry"][0]["changes"][0]["value"]["statuses"] = [{"id": "wamid.x", "status": "sent"}]

        classified = classify_payload(payload)

        assert classified.kind == PayloadKind.MESSAGE
        assert classified.statuses == []

    def test_media_message_kind(self):
        payload = message_payload("")
        msg = payload["entry"][0]["changes"][0]["value"]["messages"][0]
        msg["type"] = "image"
        msg.pop("text")

        classified = classify_payload(payload)

        assert classified.kind == PayloadKind.MESSAGE
        assert classified.message_kind == "media"
        assert classified.message_text == ""

    def test_unknown_payloads(self):
        assert classify_payload({}).kind == PayloadKind.UNKNOWN
        assert classify_payload({"entry": [{"changes": [{"value": {}}]}]}).kind == PayloadKind.UNKNOWN
        assert classify_payload({"entry": "not-a-list"}).kind == PayloadKind.UNKNOWN
        assert classify_payload(["not", "a", "dict"]).kind == PayloadKind.UNKNOWN
