import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from orderbot.config import settings
from orderbot.database import init_db
from orderbot.logging_config import get_logger, setup_logging
from orderbot.routers import admin, webhook
from orderbot.services.reply_service import shutdown_event

setup_logging(settings.log_level)
logger = get_logger("main")

app = FastAPI(
    title="Orderbot API",
    description="WhatsApp webhook ingestion and conversational ordering",
    version="0.1.0",
)

cors_env = os.environ.get("CORS_ALLOW_ORIGINS", "*")
cors_origins = [origin.strip() for origin in cors_env.split(",") if origin.strip()] or ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook.router)
app.include_router(admin.router)


@app.on_event("startup")
def on_startup() -> None:
    shutdown_event.clear()
    init_db()
    logger.info("Orderbot started")


@app.on_event("shutdown")
def on_shutdown() -> None:
    shutdown_event.set()
    logger.info("Orderbot shutting down")


@app.get("/health")
async def health():
    return {"status": "ok"}
