PURCHASE_KEYWORDS = (
    "i want to buy",
    "order now",
    "i want this",
    "book this",
    "place order",
    "i want to purchase",
    "buy",
    "order",
    "purchase",
)


def detect_purchase_intent(text: str | None, keywords: tuple[str, ...] = PURCHASE_KEYWORDS) -> bool:
    """Case-insensitive substring match against the purchase phrase list."""
    normalized = (text or "").lower()
    if not normalized.strip():
        return False
    return any(keyword in normalized for keyword in keywords)
