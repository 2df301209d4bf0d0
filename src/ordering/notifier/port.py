"""Notifier port: fire-and-forget messages to shoppers.

Delivery itself (email, SMS) happens elsewhere; callers never wait on or
roll back because of a notification.
"""

from abc import ABC, abstractmethod
from enum import Enum


class NotificationKind(Enum):
    ORDER_PLACED = "order_placed"
    ORDER_STATUS_CHANGED = "order_status_changed"
    ORDER_CANCELLED = "order_cancelled"
    CART_RECOVERY = "cart_recovery"


class Notifier(ABC):
    @abstractmethod
    def send(self, kind: NotificationKind, recipient_id: str, payload: dict) -> dict:
        """Hand a message to the delivery channel.

        Returns ``{"message_id": ..., "status": "sent" | "failed"}``.
        """
        ...
