from models.user import User
from models.driver import Driver
from models.order import Order, OrderEvent
from models.zone import DeliveryZone
from models.price import Price

__all__ = [
    "User", "Driver", "Order", "OrderEvent",
    "DeliveryZone", "Price",
]
