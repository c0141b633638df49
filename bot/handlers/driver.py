"""
Driver Telegram Bot Handler — zone work queue and delivery steps.

Flow: /driver → Go Available → Queue (mine + available in my zone)
      → Accept → Start Delivery → Mark Delivered

Drivers only ever see orders whose zone matches the zone an administrator
assigned them. Sharing a location updates the driver's GPS position only.
"""

import logging

from aiogram import Router, F
from aiogram.types import Message, CallbackQuery
from aiogram.filters import Command, StateFilter
from aiogram.exceptions import TelegramBadRequest

from bot.config import settings
from bot.keyboards.driver_kb import driver_menu_keyboard, driver_order_keyboard, queue_keyboard
from bot.services.api import api_call, api_request
from bot.services.location_picker import maps_link

router = Router()
logger = logging.getLogger(__name__)
CURRENCY = settings.CURRENCY

STATUS_EMOJI = {
    "AVAILABLE": "🟢",
    "BUSY": "🚚",
    "OFFLINE": "🔴",
    "SUSPENDED": "⛔",
}

ACTION_BY_PREFIX = {
    "drv_accept_": "accept_order",
    "drv_start_": "start_delivery",
    "drv_complete_": "complete_delivery",
}

NOT_A_DRIVER = "❌ You are not registered as a driver.\nContact your manager to be added to the system."


async def safe_edit(callback: CallbackQuery, text: str, **kwargs):
    try:
        await callback.message.edit_text(text, **kwargs)
    except TelegramBadRequest as e:
        if "message is not modified" not in str(e):
            raise


def _menu_text(driver: dict) -> str:
    status = driver["status"]
    return (
        f"🚚 <b>Driver Dashboard</b>\n\n"
        f"👤 {driver['full_name']}\n"
        f"📱 Status: {STATUS_EMOJI.get(status, '⚪')} {status.title()}\n"
        f"🛻 {driver['vehicle_type']} • {driver['vehicle_plate']}"
    )


# ── Menu / Status ──────────────────────────────────────────

@router.message(Command("driver"))
async def cmd_driver(message: Message):
    driver = await api_call("GET", f"/api/drivers/telegram/{message.from_user.id}")
    if not driver:
        await message.answer(NOT_A_DRIVER)
        return
    await message.answer(_menu_text(driver), reply_markup=driver_menu_keyboard(driver["status"]))


@router.callback_query(F.data == "drv_menu")
async def driver_menu(callback: CallbackQuery):
    await callback.answer()
    driver = await api_call("GET", f"/api/drivers/telegram/{callback.from_user.id}")
    if not driver:
        await safe_edit(callback, NOT_A_DRIVER)
        return
    await safe_edit(callback, _menu_text(driver), reply_markup=driver_menu_keyboard(driver["status"]))


@router.callback_query(F.data.startswith("drv_status_"))
async def change_status(callback: CallbackQuery):
    new_status = callback.data.removeprefix("drv_status_")
    driver, error = await api_request(
        "PATCH", f"/api/drivers/telegram/{callback.from_user.id}/status",
        json={"status": new_status},
    )
    if driver is None:
        await callback.answer(error, show_alert=True)
        return

    await callback.answer(f"You are now {new_status.lower()}")
    await safe_edit(callback, _menu_text(driver), reply_markup=driver_menu_keyboard(driver["status"]))


@router.callback_query(F.data == "drv_stats")
async def show_stats(callback: CallbackQuery):
    await callback.answer()
    stats = await api_call("GET", f"/api/drivers/telegram/{callback.from_user.id}/stats")
    if not stats:
        await safe_edit(callback, "❌ Could not load your stats.")
        return
    await safe_edit(
        callback,
        f"📊 <b>My Stats</b>\n\n"
        f"✅ Delivered today: <b>{stats['today_deliveries']}</b>\n"
        f"📦 Delivered total: <b>{stats['total_deliveries']}</b>\n"
        f"🚚 Active orders: <b>{stats['pending_orders']}</b>\n"
        f"💰 Earnings today: <b>{stats['earnings_today']:,} {CURRENCY}</b>",
        reply_markup=driver_menu_keyboard(stats["status"]),
    )


# ── Queue ──────────────────────────────────────────────────

@router.callback_query(F.data == "drv_queue")
async def show_queue(callback: CallbackQuery):
    await callback.answer()
    queue = await api_call("GET", f"/api/drivers/telegram/{callback.from_user.id}/queue")
    if queue is None:
        await safe_edit(callback, "❌ Could not load your queue.")
        return

    if not queue["has_zone"]:
        await safe_edit(callback, f"⚠️ {queue['message']}", reply_markup=queue_keyboard([], []))
        return

    zone_name = queue["zone"]["name"] if queue.get("zone") else "your zone"
    mine, available = queue["mine"], queue["available"]
    if not mine and not available:
        text = f"📦 <b>Queue — {zone_name}</b>\n\nNo orders right now. Check back soon!"
    else:
        text = (
            f"📦 <b>Queue — {zone_name}</b>\n\n"
            f"🚚 Mine: <b>{len(mine)}</b>\n"
            f"🆕 Available: <b>{len(available)}</b>\n\n"
            f"Tap an order:"
        )
    await safe_edit(callback, text, reply_markup=queue_keyboard(mine, available))


@router.callback_query(F.data.startswith("drv_order_"))
async def show_order(callback: CallbackQuery):
    await callback.answer()
    order_id = callback.data.removeprefix("drv_order_")
    driver = await api_call("GET", f"/api/drivers/telegram/{callback.from_user.id}")
    order = await api_call("GET", f"/api/drivers/telegram/{callback.from_user.id}/orders/{order_id}")
    if not driver or not order:
        await safe_edit(callback, "❌ This order is no longer in your queue.", reply_markup=queue_keyboard([], []))
        return

    text = (
        f"📋 <b>Order #{order['order_number']}</b>\n\n"
        f"Status: <b>{order['status'].replace('_', ' ').title()}</b>\n"
        f"🛢️ {order['quantity']} × {order['tank_type']}\n"
        f"📍 {order['delivery_address']}\n"
        f"📞 {order['phone_number']}\n"
        f"💰 Collect: {float(order['total_price']):,.0f} {CURRENCY}"
    )
    if order.get("notes"):
        text += f"\n📝 {order['notes']}"
    await safe_edit(callback, text, reply_markup=driver_order_keyboard(order, driver["id"]))


@router.callback_query(F.data.startswith(tuple(ACTION_BY_PREFIX)))
async def order_action(callback: CallbackQuery):
    """Accept / start / complete. Two drivers accepting at once: only one wins."""
    prefix = next(p for p in ACTION_BY_PREFIX if callback.data.startswith(p))
    order_id = callback.data.removeprefix(prefix)
    action = ACTION_BY_PREFIX[prefix]

    result, error = await api_request(
        "POST", f"/api/drivers/telegram/{callback.from_user.id}/orders/{order_id}/action",
        json={"action": action},
    )
    if result is None:
        await callback.answer(error, show_alert=True)
        return

    await callback.answer(result["message"])
    order = result["order"]
    driver = await api_call("GET", f"/api/drivers/telegram/{callback.from_user.id}")
    await safe_edit(
        callback,
        f"✅ <b>{result['message']}</b>\n\n"
        f"📋 Order #{order['order_number']} — {order['status'].replace('_', ' ').title()}\n"
        f"📍 {order['delivery_address']}",
        reply_markup=driver_order_keyboard(order, driver["id"] if driver else ""),
    )


# ── GPS ────────────────────────────────────────────────────

@router.message(StateFilter(None), F.location)
async def driver_location(message: Message):
    """A driver sharing a location outside any flow updates their GPS position."""
    lat, lng = message.location.latitude, message.location.longitude
    driver = await api_call(
        "PATCH", f"/api/drivers/telegram/{message.from_user.id}/location",
        json={"lat": lat, "lng": lng},
    )
    if driver:
        logger.info("📍 Driver %s location updated", message.from_user.id)
        await message.answer(f"📍 Location updated (<a href=\"{maps_link(lat, lng)}\">map</a>).")
    else:
        await message.answer("📍 To set a delivery location, open the menu with /start.")
