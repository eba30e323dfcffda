"""Messages produced inside a workflow transaction and delivered after commit."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Protocol
from uuid import UUID

from coworks.core.logging_setup import logger
from coworks.models.document import TaskRole


class MessageKind(str, Enum):
    ASSIGNMENT = "assignment"
    REJECTION = "rejection"
    SIGNATURE_REQUEST = "signature_request"
    DEADLINE_REMINDER = "deadline_reminder"


@dataclass(frozen=True)
class OutboundMessage:
    kind: MessageKind
    document_id: UUID
    document_title: str
    recipient_email: str
    recipient_name: str | None = None
    recipient_id: UUID | None = None
    task_role: TaskRole | None = None
    actor_name: str | None = None
    reason: str | None = None
    deadline: datetime | None = None


class MessageDeliverer(Protocol):
    def deliver(self, message: OutboundMessage) -> bool: ...


class Outbox:
    def __init__(self) -> None:
        self._messages: list[OutboundMessage] = []

    def add(self, message: OutboundMessage) -> None:
        self._messages.append(message)

    def drain(self) -> list[OutboundMessage]:
        messages, self._messages = self._messages, []
        return messages

    def clear(self) -> None:
        self._messages = []

    def __len__(self) -> int:
        return len(self._messages)


def dispatch_messages(messages: Iterable[OutboundMessage], deliverer: MessageDeliverer) -> int:
    """Deliver each message independently. Failures are logged and never raised."""
    delivered = 0
    for message in messages:
        try:
            if deliverer.deliver(message):
                delivered += 1
        except Exception:
            logger.exception(
                "Failed to deliver %s message for document %s to %s",
                message.kind.value,
                message.document_id,
                message.recipient_email,
            )
    return delivered
