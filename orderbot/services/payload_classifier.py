from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from pydantic import ValidationError

from orderbot.logging_config import get_logger
from orderbot.schemas.whatsapp import InboundMessage, StatusEntry, WebhookPayload

logger = get_logger("payload_classifier")


class PayloadKind(str, Enum):
    MESSAGE = "message"
    STATUS = "status"
    UNKNOWN = "unknown"


@dataclass
class ClassifiedPayload:
    kind: PayloadKind
    message: Optional[InboundMessage] = None
    statuses: List[StatusEntry] = field(default_factory=list)
    phone_number_id: Optional[str] = None

    @property
    def message_text(self) -> str:
        if self.message and self.message.text and self.message.text.body:
            return self.message.text.body
        return ""

    @property
    def message_kind(self) -> str:
        if not self.message:
            return "other"
        if self.message.type == "text":
            return "text"
        if self.message.type in {"image", "video", "audio", "document", "sticker"}:
            return "media"
        return "other"


def classify_payload(payload: object) -> ClassifiedPayload:
    """Split a verified webhook body into a message event, a status event or neither.

    The first inbound message wins; statuses are only considered when no
    message is present anywhere in the payload.
    """
    if not isinstance(payload, dict):
        return ClassifiedPayload(kind=PayloadKind.UNKNOWN)

    try:
        parsed = WebhookPayload.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Webhook payload failed validation", extra={"context": {"error": str(exc)[:300]}})
        return ClassifiedPayload(kind=PayloadKind.UNKNOWN)

    statuses: List[StatusEntry] = []
    status_phone_number_id = None
    for entry in parsed.entry:
        for change in entry.changes:
            value = change.value
            if value is None:
                continue
            phone_number_id = value.metadata.phone_number_id if value.metadata else None
            if value.messages:
                return ClassifiedPayload(
                    kind=PayloadKind.MESSAGE,
                    message=value.messages[0],
                    phone_number_id=phone_number_id,
                )
            if value.statuses:
                statuses.extend(value.statuses)
                status_phone_number_id = status_phone_number_id or phone_number_id

    if statuses:
        return ClassifiedPayload(kind=PayloadKind.STATUS, statuses=statuses, phone_number_id=status_phone_number_id)

    return ClassifiedPayload(kind=PayloadKind.UNKNOWN)
