"""
User-facing notifications.

The core never talks to a UI directly. Outcomes that a user should see
(completed writes, timeouts, malformed replies, generic OK/ERROR lines) are
emitted as Notification values to an optional listener callable.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from mokbus.protocol.constants import RequestKind


class NotificationLevel(Enum):
    """Severity of a notification."""

    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """
    A message for the user.

    Attributes:
        level: Severity.
        message: Human-readable text.
        kind: Request kind the message relates to, if any.
        error: Exception that caused the message, if any.
        record: Decoded record that caused the message, if any.
    """

    level: NotificationLevel
    message: str
    kind: RequestKind | None = None
    error: Exception | None = None
    record: Any = None

    def __str__(self) -> str:
        return f"[{self.level.value}] {self.message}"


Listener = Callable[[Notification], None]
"""Callable that receives notifications."""
