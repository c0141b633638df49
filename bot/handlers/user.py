"""
Customer Telegram Bot Handler — signup, delivery location, ordering, history.

FSM Flow:
  /start → Register (phone) → Delivery Location → Main Menu
  Delivery Location → Share pin → Zone verdict → Confirm → Street address
  Order Propane → Tank type → Quantity → Confirm → Done

The delivery location step is the zone-aware picker: every pin is checked
against the active zones before it is saved, and the API stores the zone id.
"""

import logging

from aiogram import Router, F
from aiogram.types import Message, CallbackQuery, ReplyKeyboardRemove
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.exceptions import TelegramBadRequest

from bot.config import settings
from bot.keyboards.user_kb import (
    main_menu_keyboard, share_location_keyboard, share_contact_keyboard,
    confirm_location_keyboard, tank_type_keyboard, quantity_keyboard,
    order_confirm_keyboard, order_list_keyboard, order_actions_keyboard,
)
from bot.services.api import api_call, api_request
from bot.services.location_picker import (
    format_fee, format_verdict, format_zone_list, maps_link, parse_pin_text,
)
from bot.states.user_states import LocationPicker, OrderFlow, UserRegistration

router = Router()
logger = logging.getLogger(__name__)
CURRENCY = settings.CURRENCY

STATUS_EMOJI = {
    "PENDING": "🕐", "CONFIRMED": "✅", "ASSIGNED": "🚚",
    "IN_TRANSIT": "🛣️", "DELIVERED": "🎉", "CANCELLED": "❌",
}

MENU_TEXT = (
    "━━━━━━━━━━━━━━━━━━━━━━\n"
    "🛢️ <b>PropaneHub</b>\n"
    "━━━━━━━━━━━━━━━━━━━━━━\n\n"
    "What would you like to do?"
)


async def safe_edit(callback: CallbackQuery, text: str, **kwargs):
    """Edit message, silently ignoring 'message not modified' errors."""
    try:
        await callback.message.edit_text(text, **kwargs)
    except TelegramBadRequest as e:
        if "message is not modified" not in str(e):
            raise


async def _ask_for_location(message: Message, state: FSMContext, intro: str = ""):
    await state.set_state(LocationPicker.waiting_location)
    await message.answer(
        f"{intro}"
        "📍 Where should we deliver?\n\n"
        "• Tap <b>Share Location</b>, or\n"
        "• Type coordinates like <code>36.8572, 43.0076</code>",
        reply_markup=share_location_keyboard(),
    )


# ── /start ─────────────────────────────────────────────────

@router.message(Command("start"))
async def cmd_start(message: Message, state: FSMContext):
    """Handle /start — register or welcome back."""
    await state.clear()
    telegram_id = message.from_user.id

    identity = await api_call("GET", f"/api/users/identity/{telegram_id}")
    if identity is None:
        await message.answer("⚠️ Service is temporarily unavailable. Please try again shortly.")
        return

    if identity["is_driver"] and not identity["is_customer"]:
        await message.answer("🚚 You are registered as a driver. Use /driver to open your work queue.")
        return

    if not identity["is_customer"]:
        logger.info("➕ Creating new user: %s", telegram_id)
        await api_call("POST", "/api/users/", json={
            "telegram_id": telegram_id,
            "full_name": message.from_user.full_name,
            "telegram_username": message.from_user.username,
        })
        await state.set_state(UserRegistration.waiting_phone)
        await message.answer(
            "👋 Welcome to PropaneHub!\n"
            "Please share your phone number so drivers can reach you.",
            reply_markup=share_contact_keyboard(),
        )
        return

    user = await api_call("GET", f"/api/users/{telegram_id}")
    if user and not user.get("phone"):
        await state.set_state(UserRegistration.waiting_phone)
        await message.answer(
            "👋 Welcome back! Let's complete your profile.\n"
            "Please share your phone number to continue.",
            reply_markup=share_contact_keyboard(),
        )
        return

    if user and user.get("map_pin_lat") is None:
        await _ask_for_location(message, state, "👋 Welcome back! One more step.\n\n")
        return

    hint = "\n\n🚚 Driver? Use /driver for your queue." if identity["is_driver"] else ""
    await message.answer(
        f"Welcome back <b>{message.from_user.first_name}</b>! 👋{hint}",
        reply_markup=ReplyKeyboardRemove(),
    )
    await message.answer(MENU_TEXT, reply_markup=main_menu_keyboard())


@router.message(UserRegistration.waiting_phone, F.contact | F.text)
async def process_phone(message: Message, state: FSMContext):
    """Handle the user sharing their contact."""
    phone = message.contact.phone_number if message.contact else message.text.strip()

    user = await api_call("PATCH", f"/api/users/{message.from_user.id}", json={"phone": phone})
    if not user:
        await message.answer("⚠️ Failed to save your phone number. Please try again.")
        return

    await _ask_for_location(message, state, "✅ Phone saved!\n\n")


# ── Main Menu ──────────────────────────────────────────────

@router.callback_query(F.data == "main_menu")
async def back_to_menu(callback: CallbackQuery, state: FSMContext):
    """Return to main menu."""
    await state.clear()
    await callback.answer()
    await safe_edit(callback, MENU_TEXT, reply_markup=main_menu_keyboard())


@router.message(Command("zones"))
async def cmd_zones(message: Message):
    zones = await api_call("GET", "/api/zones/")
    if zones is None:
        await message.answer("⚠️ Could not load delivery zones.")
        return
    await message.answer(format_zone_list(zones, CURRENCY))


@router.callback_query(F.data == "show_zones")
async def show_zones(callback: CallbackQuery):
    await callback.answer()
    zones = await api_call("GET", "/api/zones/")
    text = format_zone_list(zones, CURRENCY) if zones is not None else "⚠️ Could not load delivery zones."
    await safe_edit(callback, text, reply_markup=main_menu_keyboard())


# ── Delivery Location (zone-aware picker) ──────────────────

@router.callback_query(F.data == "set_location")
async def start_location_picker(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    await _ask_for_location(callback.message, state)


@router.message(LocationPicker.waiting_location, F.location | F.text)
async def receive_location(message: Message, state: FSMContext):
    """Validate the pin against the delivery zones and show the verdict."""
    if message.location:
        lat, lng = message.location.latitude, message.location.longitude
    else:
        pin = parse_pin_text(message.text)
        if pin is None:
            await message.answer(
                "❌ I couldn't read that. Tap <b>Share Location</b> or send "
                "coordinates like <code>36.8572, 43.0076</code>.",
            )
            return
        lat, lng = pin

    verdict = await api_call("POST", "/api/zones/validate", json={"lat": lat, "lng": lng})
    if verdict is None:
        await message.answer("⚠️ Could not check this location. Please try again.")
        return

    await state.update_data(lat=lat, lng=lng)
    await state.set_state(LocationPicker.confirm_location)
    await message.answer(f"📌 <a href=\"{maps_link(lat, lng)}\">Your pin</a>", reply_markup=ReplyKeyboardRemove())
    await message.answer(format_verdict(verdict, CURRENCY), reply_markup=confirm_location_keyboard())


@router.callback_query(LocationPicker.confirm_location, F.data == "loc_retry")
async def retry_location(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    await _ask_for_location(callback.message, state)


@router.callback_query(LocationPicker.confirm_location, F.data == "loc_confirm")
async def confirm_location(callback: CallbackQuery, state: FSMContext):
    """Report the chosen pin upstream; the API re-classifies and stores the zone."""
    data = await state.get_data()
    result, error = await api_request(
        "PATCH", f"/api/users/{callback.from_user.id}/location",
        json={"lat": data["lat"], "lng": data["lng"]},
    )
    if result is None:
        await callback.answer(error or "Failed to save location", show_alert=True)
        return

    await callback.answer("Location saved!")
    validation = result["validation"]
    zone_line = (
        f"🗺️ Zone: <b>{validation['zone']['name']}</b>"
        if validation["is_serviceable"] else "⚠️ Outside our delivery zones"
    )

    if not result["user"].get("address"):
        await state.set_state(LocationPicker.waiting_address)
        await safe_edit(
            callback,
            f"✅ <b>Location saved</b>\n{zone_line}\n\n"
            "🏠 Now type your street address, building or landmark so the driver can find you:",
        )
        return

    await state.clear()
    await safe_edit(callback, f"✅ <b>Location saved</b>\n{zone_line}", reply_markup=main_menu_keyboard())


@router.message(LocationPicker.waiting_address, F.text)
async def receive_address(message: Message, state: FSMContext):
    address = message.text.strip()
    if len(address) < 5:
        await message.answer("❌ Please send a bit more detail (street, building, landmark).")
        return

    user = await api_call("PATCH", f"/api/users/{message.from_user.id}", json={"address": address})
    if not user:
        await message.answer("⚠️ Failed to save your address. Please try again.")
        return

    await state.clear()
    await message.answer("✅ <b>Address saved!</b>\n\n" + MENU_TEXT, reply_markup=main_menu_keyboard())


# ── Ordering ───────────────────────────────────────────────

@router.callback_query(F.data == "order_start")
async def start_order(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    profile = await api_call("GET", f"/api/users/{callback.from_user.id}/profile")
    if not profile or not profile["has_complete_profile"]:
        await _ask_for_location(callback.message, state, "📍 We need your delivery location first.\n\n")
        return

    prices = await api_call("GET", "/api/prices/")
    if not prices:
        await safe_edit(callback, "⚠️ No tank types are available right now.", reply_markup=main_menu_keyboard())
        return

    zone = profile.get("zone")
    zone_line = f"🗺️ Zone: <b>{zone['name']}</b>" if zone else "⚠️ Your location is outside our delivery zones."
    await state.set_state(OrderFlow.choose_tank)
    await state.update_data(prices={p["type"]: p for p in prices})
    await safe_edit(
        callback,
        f"🛒 <b>New Order</b>\n\n📍 {profile['address']}\n{zone_line}\n\nChoose a tank type:",
        reply_markup=tank_type_keyboard(prices, CURRENCY),
    )


@router.callback_query(OrderFlow.choose_tank, F.data.startswith("tank_"))
async def choose_tank(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    tank_type = callback.data.removeprefix("tank_")
    await state.update_data(tank_type=tank_type)
    await state.set_state(OrderFlow.choose_quantity)
    await safe_edit(callback, f"🛢️ <b>{tank_type}</b>\n\nHow many tanks?", reply_markup=quantity_keyboard())


@router.callback_query(OrderFlow.choose_quantity, F.data.startswith("qty_"))
async def choose_quantity(callback: CallbackQuery, state: FSMContext):
    await callback.answer()
    quantity = int(callback.data.removeprefix("qty_"))
    data = await state.get_data()
    price = data["prices"][data["tank_type"]]
    base, fee = float(price["base_price"]), float(price["delivery_fee"])
    total = (base + fee) * quantity

    await state.update_data(quantity=quantity)
    await state.set_state(OrderFlow.confirm)
    await safe_edit(
        callback,
        f"🧾 <b>Order Summary</b>\n\n"
        f"🛢️ {quantity} × {data['tank_type']}\n"
        f"💵 Tank: {format_fee(base, CURRENCY)}\n"
        f"🚚 Delivery: {format_fee(fee, CURRENCY)}\n"
        f"━━━━━━━━━━━━━━━━━━━━━━\n"
        f"💰 <b>Total: {total:,.0f} {CURRENCY}</b>",
        reply_markup=order_confirm_keyboard(),
    )


@router.callback_query(OrderFlow.confirm, F.data == "order_confirm")
async def place_order(callback: CallbackQuery, state: FSMContext):
    data = await state.get_data()
    order, error = await api_request("POST", "/api/orders/", json={
        "telegram_id": callback.from_user.id,
        "tank_type": data["tank_type"],
        "quantity": data["quantity"],
    })
    await state.clear()

    if order is None:
        await callback.answer()
        await safe_edit(callback, f"❌ {error}", reply_markup=main_menu_keyboard())
        return

    await callback.answer("Order placed!")
    await safe_edit(
        callback,
        f"🎉 <b>Order #{order['order_number']} placed!</b>\n\n"
        f"💰 Total: {float(order['total_price']):,.0f} {CURRENCY}\n"
        f"We'll message you when a driver picks it up.",
        reply_markup=order_actions_keyboard(order["id"], order["status"]),
    )


# ── Order History ──────────────────────────────────────────

@router.callback_query(F.data == "my_orders")
async def show_orders(callback: CallbackQuery):
    """Show user's recent orders as a browsable list."""
    await callback.answer()
    orders = await api_call("GET", f"/api/orders/user/{callback.from_user.id}")

    if not orders:
        await safe_edit(
            callback,
            "📋 <b>Your Orders</b>\n\nNo orders yet!",
            reply_markup=main_menu_keyboard(),
        )
        return

    await safe_edit(callback, "📋 <b>Your Orders</b>\n\nTap an order for details:", reply_markup=order_list_keyboard(orders))


def _order_detail_text(order: dict) -> str:
    emoji = STATUS_EMOJI.get(order["status"], "📦")
    text = (
        f"📋 <b>Order #{order['order_number']}</b>\n\n"
        f"{emoji} Status: <b>{order['status'].replace('_', ' ').title()}</b>\n"
        f"🛢️ {order['quantity']} × {order['tank_type']}\n"
        f"📍 {order['delivery_address'][:80]}\n"
        f"💰 Total: {float(order['total_price']):,.0f} {CURRENCY}"
    )
    if order.get("delivered_at"):
        text += f"\n✅ Delivered: {order['delivered_at'][:16]}"
    return text


@router.callback_query(F.data.startswith("vieworder_"))
async def show_order_detail(callback: CallbackQuery):
    await callback.answer()
    order_id = callback.data.removeprefix("vieworder_")
    order = await api_call("GET", f"/api/orders/{order_id}")
    if not order:
        await safe_edit(callback, "❌ Could not load order details.", reply_markup=main_menu_keyboard())
        return
    await safe_edit(callback, _order_detail_text(order), reply_markup=order_actions_keyboard(order_id, order["status"]))


@router.callback_query(F.data.startswith("cancel_"))
async def cancel_order(callback: CallbackQuery):
    order_id = callback.data.removeprefix("cancel_")
    order, error = await api_request("POST", f"/api/orders/{order_id}/cancel")
    if order is None:
        await callback.answer(error, show_alert=True)
        return
    await callback.answer("Order cancelled")
    await safe_edit(callback, _order_detail_text(order), reply_markup=order_actions_keyboard(order_id, order["status"]))
