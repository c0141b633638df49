"""Inline keyboard builders for driver bot interactions."""

from aiogram.types import InlineKeyboardMarkup, InlineKeyboardButton


def driver_menu_keyboard(current_status: str = "OFFLINE") -> InlineKeyboardMarkup:
    """Driver main menu — availability toggle depends on current status."""
    buttons = []

    if current_status == "OFFLINE":
        buttons.append([InlineKeyboardButton(text="🟢 Go Available", callback_data="drv_status_AVAILABLE")])
    elif current_status != "SUSPENDED":
        buttons.append([InlineKeyboardButton(text="🔴 Go Offline", callback_data="drv_status_OFFLINE")])

    buttons.append([
        InlineKeyboardButton(text="📦 My Queue", callback_data="drv_queue"),
        InlineKeyboardButton(text="📊 My Stats", callback_data="drv_stats"),
    ])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def queue_keyboard(mine: list[dict], available: list[dict]) -> InlineKeyboardMarkup:
    buttons = []
    for o in mine:
        buttons.append([InlineKeyboardButton(
            text=f"🚚 #{o['order_number']} • {o['status'].replace('_', ' ').title()}",
            callback_data=f"drv_order_{o['id']}",
        )])
    for o in available:
        buttons.append([InlineKeyboardButton(
            text=f"🆕 #{o['order_number']} • {o['quantity']}× {o['tank_type']}",
            callback_data=f"drv_order_{o['id']}",
        )])
    buttons.append([
        InlineKeyboardButton(text="🔄 Refresh", callback_data="drv_queue"),
        InlineKeyboardButton(text="🏠 Menu", callback_data="drv_menu"),
    ])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def driver_order_keyboard(order: dict, driver_id: str) -> InlineKeyboardMarkup:
    """Next step for an order, depending on who holds it and its status."""
    order_id = order["id"]
    buttons = []
    if order.get("driver_id") is None and order["status"] in ("PENDING", "CONFIRMED"):
        buttons.append([InlineKeyboardButton(text="✅ Accept", callback_data=f"drv_accept_{order_id}")])
    elif order.get("driver_id") == driver_id:
        if order["status"] == "ASSIGNED":
            buttons.append([InlineKeyboardButton(text="🛣️ Start Delivery", callback_data=f"drv_start_{order_id}")])
        elif order["status"] == "IN_TRANSIT":
            buttons.append([InlineKeyboardButton(text="🎉 Mark Delivered", callback_data=f"drv_complete_{order_id}")])
    buttons.append([InlineKeyboardButton(text="⬅️ Back to Queue", callback_data="drv_queue")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)
