"""Short-lived user notifications (e.g. "move failed, board restored")."""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    message: str
    level: str = "error"
    created_at: float = field(default_factory=time.monotonic)
    ttl: float = 4.0

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.monotonic()) >= self.expires_at


class Notifier:
    """Keeps transient notifications until they expire."""

    def __init__(self, default_ttl: float = 4.0, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._items: List[Notification] = []
        self._subscribers: List[Callable[[Notification], None]] = []

    def subscribe(self, callback: Callable[[Notification], None]) -> None:
        self._subscribers.append(callback)

    def push(self, message: str, level: str = "error", ttl: Optional[float] = None) -> Notification:
        note = Notification(
            message=message,
            level=level,
            created_at=self._clock(),
            ttl=self.default_ttl if ttl is None else ttl,
        )
        self._items.append(note)
        for callback in self._subscribers:
            try:
                callback(note)
            except Exception as e:
                logger.error(f"Error in notification callback: {e}")
        return note

    def active(self) -> List[Notification]:
        """Unexpired notifications, oldest first. Expired ones are pruned."""
        now = self._clock()
        self._items = [n for n in self._items if not n.is_expired(now)]
        return list(self._items)

    def clear(self) -> None:
        self._items.clear()
