"""Keyword trigger matching and save-time conflict detection."""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

CONFLICT_DUPLICATE = "duplicate"
CONFLICT_OVERLAP = "overlap"


@dataclass(frozen=True)
class Trigger:
    keyword: str
    response: str

    @property
    def normalized(self) -> str:
        return normalize_keyword(self.keyword)


@dataclass
class TriggerConflict:
    kind: str
    keywords: List[str]
    detail: str


@dataclass
class TriggerCheck:
    """Either ok, or a list of conflicts that make matching ambiguous."""

    ok: bool
    conflicts: List[TriggerConflict] = field(default_factory=list)


def normalize_keyword(value: str) -> str:
    return " ".join((value or "").lower().split())


def coerce_triggers(raw: Optional[Iterable]) -> List[Trigger]:
    """Accept stored triggers as dicts or objects and drop blank entries."""
    triggers = []
    for item in raw or []:
        if isinstance(item, dict):
            keyword, response = item.get("keyword"), item.get("response")
        else:
            keyword, response = getattr(item, "keyword", None), getattr(item, "response", None)
        if keyword and response and normalize_keyword(keyword):
            triggers.append(Trigger(keyword=keyword, response=response))
    return triggers


def find_best_trigger_match(message: str, triggers: Iterable[Trigger]) -> Optional[Trigger]:
    """Pick a trigger by specificity rather than list position.

    An exact match of the whole message wins. Otherwise the longest keyword
    contained in the message wins, ties broken alphabetically.
    """
    text = normalize_keyword(message)
    if not text:
        return None

    candidates = []
    for trigger in triggers:
        keyword = trigger.normalized
        if not keyword:
            continue
        if keyword == text:
            return trigger
        if keyword in text:
            candidates.append(trigger)

    if not candidates:
        return None
    candidates.sort(key=lambda t: (-len(t.normalized), t.normalized))
    return candidates[0]


def detect_trigger_conflicts(triggers: Iterable[Trigger]) -> TriggerCheck:
    """Find keyword pairs that would make runtime matching ambiguous.

    Duplicates (same normalized keyword, different response) are always a
    conflict. A keyword contained in another with a different response is an
    overlap: the shorter one silently loses whenever both appear.
    """
    items = list(triggers)
    conflicts: List[TriggerConflict] = []

    for i, first in enumerate(items):
        for second in items[i + 1 :]:
            a, b = first.normalized, second.normalized
            if first.response == second.response:
                continue
            if a == b:
                conflicts.append(
                    TriggerConflict(
                        kind=CONFLICT_DUPLICATE,
                        keywords=[first.keyword, second.keyword],
                        detail=f"'{a}' is configured twice with different responses",
                    )
                )
            elif a in b or b in a:
                shorter, longer = (a, b) if len(a) < len(b) else (b, a)
                conflicts.append(
                    TriggerConflict(
                        kind=CONFLICT_OVERLAP,
                        keywords=[first.keyword, second.keyword],
                        detail=f"'{shorter}' is contained in '{longer}'; messages with '{longer}' never reach '{shorter}'",
                    )
                )

    return TriggerCheck(ok=not conflicts, conflicts=conflicts)
