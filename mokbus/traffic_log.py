"""
Bounded log of bus traffic.

When enabled, every line sent (TX) and received (RX) is kept with a
timestamp so the user can inspect or export the session. The log keeps at
most MAX_ENTRIES entries; once exceeded it drops all but the newest
KEEP_ENTRIES.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Final


class Direction(Enum):
    """Traffic direction."""

    TX = "TX"
    RX = "RX"


@dataclass(frozen=True)
class TrafficEntry:
    """One logged line."""

    direction: Direction
    data: str
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self) -> str:
        """Format as ``[HH:MM:SS] TX: data``."""
        return f"[{self.timestamp:%H:%M:%S}] {self.direction.value}: {self.data}"

    def __str__(self) -> str:
        return self.format()


class TrafficLog:
    """
    Optional TX/RX log.

    Example:
        >>> log = TrafficLog(enabled=True)
        >>> log.record(Direction.TX, "a1017fdf00")
        >>> len(log)
        1
    """

    MAX_ENTRIES: Final[int] = 1000
    KEEP_ENTRIES: Final[int] = 500

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._entries: list[TrafficEntry] = []

    @property
    def entries(self) -> list[TrafficEntry]:
        """Logged entries, oldest first."""
        return self._entries.copy()

    def record(self, direction: Direction, data: str) -> None:
        """Log a line if the log is enabled."""
        if not self.enabled:
            return

        self._entries.append(TrafficEntry(direction=direction, data=data))
        if len(self._entries) > self.MAX_ENTRIES:
            self._entries = self._entries[-self.KEEP_ENTRIES :]

    def clear(self) -> None:
        """Drop all entries."""
        self._entries.clear()

    def render(self) -> str:
        """All entries as newline-separated text."""
        return "\n".join(entry.format() for entry in self._entries)

    def export(self, path: Path | str) -> Path:
        """
        Write the log to a text file.

        Args:
            path: Destination file.

        Returns:
            The path written.

        Raises:
            ValueError: If the log is empty.
        """
        if not self._entries:
            raise ValueError("Traffic log is empty")

        destination = Path(path)
        destination.write_text(self.render() + "\n", encoding="utf-8")
        return destination

    @staticmethod
    def default_filename(now: datetime | None = None) -> str:
        """Suggested export file name, e.g. ``rs485-log-2024-05-01T10-20-30.txt``."""
        stamp = (now or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
        return f"rs485-log-{stamp}.txt"

    def __len__(self) -> int:
        return len(self._entries)
