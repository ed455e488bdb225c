from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TextBody(_Lenient):
    body: Optional[str] = None


class InboundMessage(_Lenient):
    id: Optional[str] = None
    sender: Optional[str] = Field(default=None, alias="from")
    timestamp: Optional[str] = None
    type: Optional[str] = "text"
    text: Optional[TextBody] = None


class StatusError(_Lenient):
    code: Optional[int | str] = None
    title: Optional[str] = None
    message: Optional[str] = None


class StatusEntry(_Lenient):
    id: Optional[str] = None
    status: Optional[str] = None
    timestamp: Optional[str] = None
    recipient_id: Optional[str] = None
    errors: Optional[List[StatusError]] = None


class ChangeMetadata(_Lenient):
    display_phone_number: Optional[str] = None
    phone_number_id: Optional[str] = None


class ChangeValue(_Lenient):
    messaging_product: Optional[str] = None
    metadata: Optional[ChangeMetadata] = None
    messages: Optional[List[InboundMessage]] = None
    statuses: Optional[List[StatusEntry]] = None


class Change(_Lenient):
    field: Optional[str] = None
    value: Optional[ChangeValue] = None


class Entry(_Lenient):
    id: Optional[str] = None
    changes: List[Change] = Field(default_factory=list)


class WebhookPayload(_Lenient):
    object: Optional[str] = None
    entry: List[Entry] = Field(default_factory=list)
