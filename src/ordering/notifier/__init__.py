"""Notifier factory and best-effort dispatch.

get_notifier() / set_notifier() swap the delivery adapter; notify() is what
the ordering services call after their changes are persisted.
"""

import structlog

from ordering.notifier.fake_adapter import FakeNotifier
from ordering.notifier.port import NotificationKind, Notifier

logger = structlog.get_logger(__name__)

_current_notifier: Notifier | None = None


def get_notifier() -> Notifier:
    """Return the current notifier. Defaults to FakeNotifier."""
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = FakeNotifier()
    return _current_notifier


def set_notifier(notifier: Notifier) -> None:
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None


def notify(kind: NotificationKind, recipient_id: str, **payload) -> bool:
    """Send a notification without letting a failure reach the caller."""
    try:
        result = get_notifier().send(kind, str(recipient_id), payload)
    except Exception as exc:
        logger.warning("Notification dispatch failed", kind=kind.value, recipient_id=str(recipient_id), error=str(exc))
        return False

    if result.get("status") != "sent":
        logger.warning("Notification was not sent", kind=kind.value, recipient_id=str(recipient_id), result=result)
        return False
    return True
