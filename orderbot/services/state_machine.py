from enum import Enum


class ConversationStage(str, Enum):
    BROWSING = "browsing"
    COLLECTING_ORDER_DETAILS = "collecting_order_details"


VALID_TRANSITIONS = {
    ConversationStage.BROWSING: [ConversationStage.COLLECTING_ORDER_DETAILS],
    ConversationStage.COLLECTING_ORDER_DETAILS: [ConversationStage.BROWSING],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_stage: ConversationStage, to_stage: ConversationStage):
        self.from_stage = from_stage
        self.to_stage = to_stage
        super().__init__(f"Invalid transition: {from_stage.value} -> {to_stage.value}")


def coerce_stage(value: str | None) -> ConversationStage:
    """Unknown or empty stored values read as browsing."""
    try:
        return ConversationStage(value)
    except ValueError:
        return ConversationStage.BROWSING


def can_transition(from_stage: ConversationStage, to_stage: ConversationStage) -> bool:
    return to_stage in VALID_TRANSITIONS.get(from_stage, [])


def transition(from_stage: ConversationStage, to_stage: ConversationStage) -> ConversationStage:
    """Perform stage transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_stage, to_stage):
        raise InvalidTransitionError(from_stage, to_stage)
    return to_stage
