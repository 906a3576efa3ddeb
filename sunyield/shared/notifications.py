"""User-visible notifications (the toast outbox a UI would render)."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum

import structlog

logger = structlog.get_logger()


class NotificationLevel(StrEnum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


@dataclass
class Notification:
    level: NotificationLevel
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class Notifier:
    """Collects transient notifications in the order they were raised."""

    def __init__(self) -> None:
        self.history: list[Notification] = []

    def success(self, message: str) -> None:
        self._push(NotificationLevel.SUCCESS, message)

    def error(self, message: str) -> None:
        self._push(NotificationLevel.ERROR, message)

    def info(self, message: str) -> None:
        self._push(NotificationLevel.INFO, message)

    @property
    def last(self) -> Notification | None:
        return self.history[-1] if self.history else None

    def errors(self) -> list[str]:
        return [n.message for n in self.history if n.level == NotificationLevel.ERROR]

    def clear(self) -> None:
        self.history.clear()

    def _push(self, level: NotificationLevel, message: str) -> None:
        self.history.append(Notification(level=level, message=message))
        logger.debug("notification", level=level.value, message=message)
