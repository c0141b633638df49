"""
Notification Service — Telegram messages to customers, drivers and admins.

All outbound Telegram notifications go through send_message().
Failures are logged but NEVER raise — fire-and-forget.
"""

import logging
from typing import Any

import httpx

from config import settings

logger = logging.getLogger(__name__)

STATUS_EMOJIS = {
    "PENDING": "🕐",
    "CONFIRMED": "✅",
    "ASSIGNED": "🚚",
    "IN_TRANSIT": "🛣️",
    "DELIVERED": "🎉",
    "CANCELLED": "❌",
}


async def send_message(
    telegram_id: int,
    text: str,
    reply_markup: dict | None = None,
    parse_mode: str = "HTML",
) -> bool:
    """
    Send a Telegram message via the Bot API.

    Returns:
        True if the message was accepted, False otherwise (never raises).
    """
    token = settings.TELEGRAM_BOT_TOKEN
    if not token:
        logger.info("TELEGRAM_BOT_TOKEN not set, skipping notification to %s", telegram_id)
        return False

    url = f"https://api.telegram.org/bot{token}/sendMessage"
    payload: dict[str, Any] = {
        "chat_id": telegram_id,
        "text": text,
        "parse_mode": parse_mode,
    }
    if reply_markup:
        payload["reply_markup"] = reply_markup

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            resp = await client.post(url, json=payload)
            if resp.status_code == 200:
                logger.info("Notification sent: telegram_id=%s", telegram_id)
                return True
            logger.warning(
                "Notification failed: telegram_id=%s, status=%s, body=%s",
                telegram_id, resp.status_code, resp.text[:200],
            )
            return False
    except Exception as e:
        logger.error("Notification error: telegram_id=%s, error=%s", telegram_id, e)
        return False


# ── Templates ──────────────────────────────────────────────

def order_status_text(order_number: str, status: str, extra_info: str = "") -> str:
    emoji = STATUS_EMOJIS.get(status, "📋")
    text = (
        f"{emoji} <b>Order #{order_number}</b>\n"
        f"Status: <b>{status.replace('_', ' ').title()}</b>\n"
    )
    if extra_info:
        text += f"\n{extra_info}"
    return text


async def notify_user_order_status(
    telegram_id: int,
    order_number: str,
    status: str,
    extra_info: str = "",
) -> bool:
    return await send_message(telegram_id, order_status_text(order_number, status, extra_info))


async def notify_zone_drivers(
    driver_telegram_ids: list[int],
    order_number: str,
    zone_name: str,
    order_id: str,
) -> int:
    """Tell the available drivers of a zone that a new order is up for grabs."""
    text = (
        f"🆕 <b>New order in {zone_name}</b>\n\n"
        f"Order: <code>#{order_number}</code>\n"
        f"Open your queue to accept it."
    )
    markup = {
        "inline_keyboard": [
            [{"text": "✅ Accept", "callback_data": f"drv_accept_{order_id}"}],
        ]
    }
    sent = 0
    for telegram_id in driver_telegram_ids:
        if await send_message(telegram_id, text, reply_markup=markup):
            sent += 1
    return sent


async def notify_admin(message: str) -> bool:
    """Alert the admin, e.g. for orders outside every zone."""
    if not settings.ADMIN_TELEGRAM_ID:
        return False
    return await send_message(int(settings.ADMIN_TELEGRAM_ID), f"🔔 <b>Admin Alert</b>\n\n{message}")
