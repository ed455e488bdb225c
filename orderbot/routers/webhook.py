import json
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from orderbot.config import settings
from orderbot.database import get_db
from orderbot.logging_config import get_logger
from orderbot.services.alert_service import alert_critical
from orderbot.services.conversation_engine import ConversationEngine
from orderbot.services.signature import verify_signature
from orderbot.services.webhook_service import process_webhook

logger = get_logger("webhook")

router = APIRouter(tags=["webhooks"])

FALLBACK_VERIFY_TOKEN = "orderbot_whatsapp_verify"
SIGNATURE_HEADER = "X-Hub-Signature-256"

_engine: Optional[ConversationEngine] = None


def get_conversation_engine() -> ConversationEngine:
    global _engine
    if _engine is None:
        _engine = ConversationEngine()
    return _engine


def _accepted_verify_tokens() -> set[str]:
    tokens = {FALLBACK_VERIFY_TOKEN}
    if settings.whatsapp_verify_token:
        tokens.add(settings.whatsapp_verify_token)
    return tokens


@router.get("/webhooks/whatsapp")
async def verify_webhook(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    verify_token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
):
    """Subscription handshake: echo the challenge when the token matches."""
    if mode == "subscribe" and verify_token in _accepted_verify_tokens():
        logger.info("Webhook subscription verified")
        return PlainTextResponse(challenge or "")

    logger.warning("Webhook verification rejected", extra={"context": {"mode": mode}})
    return PlainTextResponse("Forbidden", status_code=status.HTTP_403_FORBIDDEN)


@router.post("/webhooks/whatsapp")
async def receive_webhook(
    request: Request,
    db: Session = Depends(get_db),
    engine: ConversationEngine = Depends(get_conversation_engine),
):
    raw_body = await request.body()

    if not verify_signature(raw_body, request.headers.get(SIGNATURE_HEADER), settings.whatsapp_app_secret):
        logger.warning(
            "Webhook signature rejected",
            extra={"context": {"has_header": SIGNATURE_HEADER.lower() in request.headers}},
        )
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")

    try:
        payload = json.loads(raw_body)
    except ValueError as exc:
        logger.warning(
            "Webhook payload is not valid JSON",
            extra={"context": {"error": str(exc), "body_preview": raw_body[:200].decode("utf-8", "ignore")}},
        )
        return {"ok": True}

    if not isinstance(payload, dict):
        logger.info("Webhook payload is not an object")
        return {"ok": True}

    try:
        result = await run_in_threadpool(process_webhook, db, payload, engine)
    except Exception as exc:
        db.rollback()
        logger.error("Webhook processing failed", exc_info=True, extra={"context": {"error": str(exc)}})
        alert_critical("Webhook processing failed", {"error": str(exc)[:200]})
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": "Internal error"})

    logger.info("Webhook handled", extra={"context": result})
    return {"ok": True}
