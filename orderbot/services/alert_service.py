"""Operational alerts for the on-call chat.

Alerts go to a Telegram bot when ``ALERT_BOT_TOKEN`` and ``ALERT_CHAT_ID``
are set and are only logged otherwise. A failed delivery never raises into
the caller.
"""

from typing import Optional

import httpx

from orderbot.config import settings
from orderbot.logging_config import get_logger

logger = get_logger("alert_service")

TELEGRAM_API_URL = "https://api.telegram.org"
ALERT_TIMEOUT_SECONDS = 10.0
MAX_CONTEXT_VALUE_LENGTH = 200

LEVEL_MARKERS = {"WARNING": "[!]", "ERROR": "[x]", "CRITICAL": "[!!!]"}


def format_alert(level: str, message: str, context: Optional[dict] = None) -> str:
    lines = [f"{LEVEL_MARKERS.get(level, '[*]')} {level} orderbot", "", message]
    if context:
        lines.append("")
        for key, value in context.items():
            lines.append(f"{key}: {str(value)[:MAX_CONTEXT_VALUE_LENGTH]}")
    return "\n".join(lines)


def send_alert(level: str, message: str, context: Optional[dict] = None) -> bool:
    """Post one alert; True when Telegram accepted it."""
    if not settings.alert_bot_token or not settings.alert_chat_id:
        logger.warning(f"Alert not delivered, no alert chat configured: {level} {message}")
        return False

    try:
        response = httpx.post(
            f"{TELEGRAM_API_URL}/bot{settings.alert_bot_token}/sendMessage",
            json={"chat_id": settings.alert_chat_id, "text": format_alert(level, message, context)},
            timeout=ALERT_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
    except httpx.HTTPError as e:
        logger.error(f"Alert delivery failed: {e}", extra={"context": {"level": level}})
        return False
    return True


def alert_error(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("ERROR", message, context)


def alert_critical(message: str, context: Optional[dict] = None) -> bool:
    return send_alert("CRITICAL", message, context)
