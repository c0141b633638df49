"""Keyboard builders for customer bot interactions."""

from aiogram.types import (
    InlineKeyboardMarkup, InlineKeyboardButton, KeyboardButton, ReplyKeyboardMarkup,
)

CANCELLABLE = ("PENDING", "CONFIRMED", "ASSIGNED")


def main_menu_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="🛒 Order Propane", callback_data="order_start")],
        [
            InlineKeyboardButton(text="📍 Delivery Location", callback_data="set_location"),
            InlineKeyboardButton(text="🗺️ Zones", callback_data="show_zones"),
        ],
        [InlineKeyboardButton(text="📋 My Orders", callback_data="my_orders")],
    ])


def share_location_keyboard() -> ReplyKeyboardMarkup:
    """Device geolocation button; typed ``lat,lng`` pins are accepted too."""
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text="📍 Share Location", request_location=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def share_contact_keyboard() -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(
        keyboard=[[KeyboardButton(text="📱 Share Contact", request_contact=True)]],
        resize_keyboard=True,
        one_time_keyboard=True,
    )


def confirm_location_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="✅ Use This Location", callback_data="loc_confirm")],
        [InlineKeyboardButton(text="🔄 Pick Another", callback_data="loc_retry")],
        [InlineKeyboardButton(text="❌ Cancel", callback_data="main_menu")],
    ])


def tank_type_keyboard(prices: list[dict], currency: str = "IQD") -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(
            text=f"🛢️ {p['type']} — {float(p['base_price']):,.0f} {currency}",
            callback_data=f"tank_{p['type']}",
        )]
        for p in prices
    ]
    buttons.append([InlineKeyboardButton(text="❌ Cancel", callback_data="main_menu")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def quantity_keyboard(max_quantity: int = 6) -> InlineKeyboardMarkup:
    row1 = [InlineKeyboardButton(text=str(n), callback_data=f"qty_{n}") for n in range(1, 4)]
    row2 = [InlineKeyboardButton(text=str(n), callback_data=f"qty_{n}") for n in range(4, max_quantity + 1)]
    return InlineKeyboardMarkup(inline_keyboard=[
        row1,
        row2,
        [InlineKeyboardButton(text="❌ Cancel", callback_data="main_menu")],
    ])


def order_confirm_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(inline_keyboard=[
        [InlineKeyboardButton(text="✅ Place Order", callback_data="order_confirm")],
        [InlineKeyboardButton(text="❌ Cancel", callback_data="main_menu")],
    ])


def order_list_keyboard(orders: list[dict]) -> InlineKeyboardMarkup:
    buttons = [
        [InlineKeyboardButton(
            text=f"#{o['order_number']} • {o['status'].replace('_', ' ').title()}",
            callback_data=f"vieworder_{o['id']}",
        )]
        for o in orders[:10]
    ]
    buttons.append([InlineKeyboardButton(text="🏠 Main Menu", callback_data="main_menu")])
    return InlineKeyboardMarkup(inline_keyboard=buttons)


def order_actions_keyboard(order_id: str, status: str) -> InlineKeyboardMarkup:
    buttons = []
    if status in CANCELLABLE:
        buttons.append([InlineKeyboardButton(text="❌ Cancel Order", callback_data=f"cancel_{order_id}")])
    buttons.append([
        InlineKeyboardButton(text="📋 My Orders", callback_data="my_orders"),
        InlineKeyboardButton(text="🏠 Main Menu", callback_data="main_menu"),
    ])
    return InlineKeyboardMarkup(inline_keyboard=buttons)
