from typing import List, Optional

from pydantic import BaseModel, Field


class KeywordTrigger(BaseModel):
    keyword: str = Field(min_length=1)
    response: str = Field(min_length=1)


class TriggerUpdateRequest(BaseModel):
    triggers: List[KeywordTrigger]


class TriggerConflictOut(BaseModel):
    kind: str
    keywords: List[str]
    detail: str


class TriggerUpdateResponse(BaseModel):
    ok: bool
    conflicts: List[TriggerConflictOut] = Field(default_factory=list)


class CleanupResponse(BaseModel):
    deleted: int
    older_than_days: int


class UsageEntry(BaseModel):
    metric: str
    period: str
    period_key: str
    count: int
    limit: int


class UsageSummaryResponse(BaseModel):
    owner_id: str
    usage: List[UsageEntry]
    plan_id: Optional[str] = None
