"""
Notification Service Abstract Base Class

Defines the interface for WhatsApp messages sent to customers when an
order is placed or changes status. Supports both Mock (development) and
Real (Twilio) implementations. Calls are synchronous: they run inside
Celery workers, never on the API event loop.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from orderdesk.core.config import get_settings
from orderdesk.utils import digits_only

STATUS_LINES = {
    "pending": "has been received and is waiting for the kitchen",
    "preparing": "is being prepared",
    "ready": "is ready",
    "served": "has been served. Enjoy your meal!",
    "out-for-delivery": "is out for delivery",
    "delivered": "has been delivered. Enjoy your meal!",
    "cancelled": "has been cancelled",
}


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


def to_e164(number: str, default_country_code: str) -> str:
    """Normalize a customer-entered number to +<country><number>."""
    digits = digits_only(number)
    if len(digits) == 10:
        digits = f"{default_country_code}{digits}"
    return f"+{digits}"


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    def __init__(self):
        self.settings = get_settings()

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    def send_whatsapp(self, to_number: str, message: str) -> NotificationResult:
        """Send a WhatsApp message."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    # =========================================================================
    # ORDER MESSAGES
    # =========================================================================

    def _where(self, order: dict[str, Any]) -> str:
        if order.get("orderType") == "home-delivery":
            return f"Delivery to: {order.get('deliveryAddress')}"
        return f"Table: {order.get('tableNumber')}"

    def order_placed_message(self, order: dict[str, Any]) -> str:
        symbol = self.settings.currency_symbol
        lines = [
            f"Thank you for ordering from {self.settings.restaurant_name}!",
            f"Your order ID is #{order['trackingId']}.",
            self._where(order),
        ]
        for item in order.get("items", []):
            lines.append(f"  {item['qty']} x {item['name']}  {symbol}{item['price'] * item['qty']:.2f}")
        lines.append(f"Total: {symbol}{order['total']:.2f}")
        lines.append("Use your order ID to track the order at any time.")
        return "\n".join(lines)

    def status_update_message(self, order: dict[str, Any]) -> str:
        status = order.get("status", "pending")
        line = STATUS_LINES.get(status, f"is now {status}")
        message = f"Your order #{order['trackingId']} {line}"
        if order.get("paid"):
            message += "\nPayment received, thank you."
        return message

    def send_order_placed(self, order: dict[str, Any]) -> NotificationResult:
        return self.send_whatsapp(order["whatsappNumber"], self.order_placed_message(order))

    def send_status_update(self, order: dict[str, Any]) -> NotificationResult:
        return self.send_whatsapp(order["whatsappNumber"], self.status_update_message(order))
