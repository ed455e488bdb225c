"""Admin endpoints for trigger configuration, log retention and usage."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from orderbot.config import settings
from orderbot.database import get_db
from orderbot.models import ChatbotSettings
from orderbot.schemas.admin import (
    CleanupResponse,
    TriggerConflictOut,
    TriggerUpdateRequest,
    TriggerUpdateResponse,
    UsageEntry,
    UsageSummaryResponse,
)
from orderbot.services.dedup_service import WEBHOOK_LOG_RETENTION_DAYS, cleanup_webhook_logs
from orderbot.services.trigger_resolver import Trigger, detect_trigger_conflicts
from orderbot.services.usage_service import get_plan_id, get_usage_summary

router = APIRouter(prefix="/admin", tags=["admin"])


def require_admin_token(x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token")) -> None:
    if not settings.admin_token:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="ADMIN_TOKEN not configured")
    if not x_admin_token or x_admin_token != settings.admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid admin token")


@router.put(
    "/chatbot/{owner_id}/triggers",
    response_model=TriggerUpdateResponse,
    dependencies=[Depends(require_admin_token)],
)
def update_triggers(owner_id: str, request: TriggerUpdateRequest, db: Session = Depends(get_db)):
    """Replace keyword triggers; ambiguous sets are refused with 409."""
    triggers = [Trigger(keyword=t.keyword.strip(), response=t.response) for t in request.triggers]
    check = detect_trigger_conflicts(triggers)
    if not check.ok:
        body = TriggerUpdateResponse(
            ok=False,
            conflicts=[TriggerConflictOut(kind=c.kind, keywords=c.keywords, detail=c.detail) for c in check.conflicts],
        )
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=body.model_dump())

    chatbot_settings = db.query(ChatbotSettings).filter(ChatbotSettings.owner_id == owner_id).first()
    if chatbot_settings is None:
        chatbot_settings = ChatbotSettings(owner_id=owner_id)
        db.add(chatbot_settings)

    chatbot_settings.keyword_triggers = [{"keyword": t.keyword, "response": t.response} for t in triggers]
    db.commit()
    return TriggerUpdateResponse(ok=True)


@router.post(
    "/webhook-logs/cleanup",
    response_model=CleanupResponse,
    dependencies=[Depends(require_admin_token)],
)
def cleanup_logs(
    older_than_days: int = Query(default=WEBHOOK_LOG_RETENTION_DAYS, ge=1),
    db: Session = Depends(get_db),
):
    deleted = cleanup_webhook_logs(db, older_than_days)
    return CleanupResponse(deleted=deleted, older_than_days=older_than_days)


@router.get(
    "/usage/{owner_id}",
    response_model=UsageSummaryResponse,
    dependencies=[Depends(require_admin_token)],
)
def usage_summary(owner_id: str, db: Session = Depends(get_db)):
    rows = get_usage_summary(db, owner_id)
    return UsageSummaryResponse(
        owner_id=owner_id,
        plan_id=get_plan_id(db, owner_id),
        usage=[
            UsageEntry(
                metric=row.metric,
                period=row.period,
                period_key=row.period_key,
                count=row.count,
                limit=row.usage_limit,
            )
            for row in rows
        ],
    )
