from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class OrderDetails(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    items_summary: Optional[str] = None
    quantity: Optional[int] = None

    @field_validator("name", "phone", "email", "address", "items_summary", mode="before")
    @classmethod
    def _stringify(cls, value):
        if value is None:
            return None
        return str(value).strip()

    @field_validator("quantity", mode="before")
    @classmethod
    def _positive_quantity(cls, value):
        if value in ("", None):
            return None
        try:
            quantity = int(value)
        except (TypeError, ValueError):
            return None
        return quantity if quantity > 0 else None

    def missing_fields(self) -> list[str]:
        required = ("name", "phone", "email", "address")
        return [field for field in required if not (getattr(self, field) or "").strip()]

    def is_complete(self) -> bool:
        return not self.missing_fields()


class BrowsingContext(BaseModel):
    stage: Literal["browsing"] = "browsing"


class CollectingOrderContext(BaseModel):
    stage: Literal["collecting_order_details"] = "collecting_order_details"
    partial_fields: dict = Field(default_factory=dict)
    attempts: int = 0


ConversationContext = Annotated[
    Union[BrowsingContext, CollectingOrderContext],
    Field(discriminator="stage"),
]

_context_adapter = TypeAdapter(ConversationContext)


def parse_context(state: str, raw: Optional[dict]):
    """Decode a stored context blob, falling back to the empty context for the state."""
    data = dict(raw or {})
    data["stage"] = state
    try:
        return _context_adapter.validate_python(data)
    except ValueError:
        if state == "collecting_order_details":
            return CollectingOrderContext()
        return BrowsingContext()
