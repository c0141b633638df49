"""FSM states for the customer bot flows."""

from aiogram.fsm.state import StatesGroup, State


class UserRegistration(StatesGroup):
    """User registration state machine."""
    waiting_phone = State()


class LocationPicker(StatesGroup):
    """Pick a delivery pin, see the zone verdict, confirm."""
    waiting_location = State()
    confirm_location = State()
    waiting_address = State()


class OrderFlow(StatesGroup):
    """Tank type → quantity → confirm."""
    choose_tank = State()
    choose_quantity = State()
    confirm = State()
