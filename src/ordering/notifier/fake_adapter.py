"""Fake notifier: records messages in memory instead of delivering them."""

from uuid import uuid4

from ordering.notifier.port import NotificationKind, Notifier


class FakeNotifier(Notifier):
    def __init__(self):
        self.sent: list[dict] = []
        self.should_succeed = True
        self.raise_error = False

    def configure(self, should_succeed: bool = True, raise_error: bool = False):
        """Make later sends report failure, or blow up outright."""
        self.should_succeed = should_succeed
        self.raise_error = raise_error

    def send(self, kind: NotificationKind, recipient_id: str, payload: dict) -> dict:
        if self.raise_error:
            raise ConnectionError("Notification channel unavailable")
        if not self.should_succeed:
            return {"message_id": None, "status": "failed"}

        message_id = f"notif-{uuid4().hex[:12]}"
        self.sent.append(
            {
                "message_id": message_id,
                "kind": kind.value,
                "recipient_id": recipient_id,
                "payload": payload,
            }
        )
        return {"message_id": message_id, "status": "sent"}

    def of_kind(self, kind: NotificationKind) -> list[dict]:
        return [message for message in self.sent if message["kind"] == kind.value]

    def reset(self):
        self.sent.clear()
        self.should_succeed = True
        self.raise_error = False
